"""MongoDB storage for cooking statistics.

Credits finished cooking sessions to a user's profile and activity feed.
"""

from .client import CookingStatsRepository, MongoStorageClient, retry_on_connection_failure
from .models import ActivityType, CookedActivityDTO, CookingStatsDTO
from .recorder import CompletionRecorder, StatsRepository, create_storage_client

__all__ = [
    "ActivityType",
    "CompletionRecorder",
    "CookedActivityDTO",
    "CookingStatsDTO",
    "CookingStatsRepository",
    "MongoStorageClient",
    "StatsRepository",
    "create_storage_client",
    "retry_on_connection_failure",
]
