"""MongoDB storage client for cooking statistics.

Provides connection management, retry logic, and repository access.
"""

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from ..errors import StorageError
from .models import ActivityType, CookedActivityDTO, CookingStatsDTO

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_connection_failure(
    max_retries: int = 3,
    base_delay: float = 0.5,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for exponential backoff retry on connection failures.

    Args:
        max_retries: Maximum number of attempts.
        base_delay: Base delay in seconds (doubles each retry).

    Returns:
        Decorated function with retry logic.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Exception | None = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Connection failed (attempt %d/%d), retrying in %.1fs: %s",
                            attempt + 1,
                            max_retries,
                            delay,
                            str(e),
                        )
                        time.sleep(delay)
                    else:
                        logger.error(
                            "Connection failed after %d attempts: %s",
                            max_retries,
                            str(e),
                        )

            if last_exception:
                raise last_exception
            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator


class CookingStatsRepository:
    """Repository for per-user cooking statistics and activity."""

    def __init__(
        self,
        profiles: Collection[dict[str, Any]],
        activities: Collection[dict[str, Any]],
    ) -> None:
        """Initialize repository with MongoDB collections.

        Args:
            profiles: Collection of user profile documents.
            activities: Collection of activity entries.
        """
        self._profiles = profiles
        self._activities = activities
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        """Create indexes for efficient queries."""
        self._profiles.create_index("user_id", unique=True)
        self._activities.create_index([("user_id", 1), ("created_at", DESCENDING)])

    def record_recipe_cooked(
        self,
        user_id: str,
        recipe_id: str,
        title: str,
        minutes: int,
    ) -> str:
        """Credit a finished cooking session to a user.

        Appends a "cooked" activity entry, then increments the profile's
        cooked count and total cooking time. Only the insert is retried, so
        a connection drop never credits the same session twice.

        Args:
            user_id: The cook.
            recipe_id: The recipe that was cooked.
            title: Recipe title, denormalized into the activity.
            minutes: Whole minutes spent cooking.

        Returns:
            The activity document ID.
        """
        now = datetime.now(UTC)
        activity = CookedActivityDTO(
            user_id=user_id,
            recipe_id=recipe_id,
            recipe_title=title,
            minutes=minutes,
            created_at=now,
        )
        activity_id = self._insert_activity(activity)

        self._profiles.update_one(
            {"user_id": user_id},
            {
                "$inc": {"stats.recipes_cooked": 1, "stats.total_cooking_time": minutes},
                "$set": {"updated_at": now},
            },
            upsert=True,
        )
        logger.info(f"Recorded '{title}' cooked by {user_id} in {minutes} min")
        return activity_id

    @retry_on_connection_failure()
    def _insert_activity(self, activity: CookedActivityDTO) -> str:
        result = self._activities.insert_one(activity.to_dict())
        return str(result.inserted_id)

    @retry_on_connection_failure()
    def get_stats(self, user_id: str) -> CookingStatsDTO:
        """Get a user's statistics, zeroed if none were recorded."""
        doc = self._profiles.find_one({"user_id": user_id})
        if doc is None:
            return CookingStatsDTO(user_id=user_id)
        return CookingStatsDTO.from_dict(doc)

    @retry_on_connection_failure()
    def get_recent_activity(self, user_id: str, limit: int = 10) -> list[CookedActivityDTO]:
        """Get a user's cooked entries, most recent first.

        Args:
            user_id: The cook.
            limit: Maximum number to return.
        """
        cursor = (
            self._activities.find({"user_id": user_id, "type": ActivityType.COOKED.value})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [CookedActivityDTO.from_dict(doc) for doc in cursor]


class MongoStorageClient:
    """High-level MongoDB storage client.

    Manages connection and provides access to the stats repository.
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        database_name: str = "cuisto",
        server_selection_timeout_ms: int = 2000,
    ) -> None:
        """Initialize the storage client.

        Args:
            uri: MongoDB connection URI.
            database_name: Name of the database to use.
            server_selection_timeout_ms: Server selection timeout in milliseconds.
        """
        self._uri = uri
        self._database_name = database_name
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._client: MongoClient[dict[str, Any]] | None = None
        self._db: Database[dict[str, Any]] | None = None
        self._stats: CookingStatsRepository | None = None
        self._connected = False

    def connect(self) -> None:
        """Connect to MongoDB.

        Raises:
            ConnectionFailure: If the server cannot be reached.
        """
        if self._connected:
            return

        try:
            self._client = MongoClient(
                self._uri,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            )

            # Verify connection
            self._client.admin.command("ping")

            self._db = self._client[self._database_name]
            self._stats = CookingStatsRepository(self._db["profiles"], self._db["activities"])
            self._connected = True

            logger.info("Connected to MongoDB at %s", self._uri)

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error("Failed to connect to MongoDB: %s", str(e))
            self._connected = False
            raise

    def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            self._stats = None
            self._connected = False
            logger.info("Disconnected from MongoDB")

    def is_connected(self) -> bool:
        """Check if connected to MongoDB."""
        if not self._connected or self._client is None:
            return False

        try:
            self._client.admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError):
            return False

    @property
    def stats(self) -> CookingStatsRepository:
        """Get the cooking stats repository.

        Raises:
            StorageError: If not connected.
        """
        if self._stats is None:
            raise StorageError("Not connected to MongoDB. Call connect() first.")
        return self._stats

    def __enter__(self) -> "MongoStorageClient":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "CookingStatsRepository",
    "MongoStorageClient",
    "retry_on_connection_failure",
]
