"""Data models for cooking statistics storage."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ActivityType(Enum):
    """Types of activity entries written for a cook."""

    COOKED = "cooked"


@dataclass
class CookingStatsDTO:
    """Aggregated cooking statistics of one user."""

    user_id: str
    recipes_cooked: int = 0
    total_cooking_time: int = 0
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CookingStatsDTO":
        """Create from a profile document."""
        stats = data.get("stats", {})
        return cls(
            user_id=data.get("user_id", ""),
            recipes_cooked=stats.get("recipes_cooked", 0),
            total_cooking_time=stats.get("total_cooking_time", 0),
            updated_at=data.get("updated_at"),
        )


@dataclass
class CookedActivityDTO:
    """Activity entry recording that a recipe was cooked."""

    user_id: str
    recipe_id: str
    recipe_title: str
    minutes: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    type: ActivityType = ActivityType.COOKED
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "user_id": self.user_id,
            "type": self.type.value,
            "recipe_id": self.recipe_id,
            "recipe_title": self.recipe_title,
            "minutes": self.minutes,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CookedActivityDTO":
        """Create from MongoDB document."""
        return cls(
            id=str(data.get("_id", "")),
            user_id=data.get("user_id", ""),
            recipe_id=data.get("recipe_id", ""),
            recipe_title=data.get("recipe_title", ""),
            minutes=data.get("minutes", 0),
            created_at=data.get("created_at", datetime.now(UTC)),
            type=ActivityType(data.get("type", ActivityType.COOKED.value)),
        )


__all__ = ["ActivityType", "CookedActivityDTO", "CookingStatsDTO"]
