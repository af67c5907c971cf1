"""Fire-and-forget persistence of completed cooking sessions."""

import logging
import threading
from typing import Protocol

from ..config import StorageConfig
from .client import MongoStorageClient

logger = logging.getLogger(__name__)


class StatsRepository(Protocol):
    """Anything that can credit a cooked recipe to a user."""

    def record_recipe_cooked(self, user_id: str, recipe_id: str, title: str, minutes: int) -> str:
        ...


class CompletionRecorder:
    """Writes completed sessions on a background thread.

    A failed write is logged and dropped; the session stays completed.
    """

    def __init__(
        self,
        repository: StatsRepository,
        client: MongoStorageClient | None = None,
    ) -> None:
        """Initialize the recorder.

        Args:
            repository: Where completions are written.
            client: Connection owning the repository, disconnected on close().
        """
        self._repository = repository
        self._client = client
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @classmethod
    def from_client(cls, client: MongoStorageClient) -> "CompletionRecorder":
        """Create a recorder that owns a connected storage client."""
        return cls(client.stats, client=client)

    def submit(self, user_id: str, recipe_id: str, title: str, minutes: int) -> threading.Thread:
        """Queue one completion for persistence.

        Returns:
            The daemon thread doing the write.
        """
        thread = threading.Thread(
            target=self._record,
            args=(user_id, recipe_id, title, minutes),
            name="cuisto-recorder",
            daemon=True,
        )
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()
        return thread

    def flush(self, timeout: float = 5.0) -> None:
        """Wait for pending writes, e.g. before shutdown."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout=timeout)

    def close(self, timeout: float = 5.0) -> None:
        """Flush pending writes, then disconnect the owned client."""
        self.flush(timeout=timeout)
        if self._client is not None:
            self._client.disconnect()
            self._client = None

    def _record(self, user_id: str, recipe_id: str, title: str, minutes: int) -> None:
        try:
            self._repository.record_recipe_cooked(user_id, recipe_id, title, minutes)
        except Exception as e:
            logger.error(f"Failed to record completion of '{title}': {e}")


def create_storage_client(config: StorageConfig) -> MongoStorageClient | None:
    """Connect the stats storage described by config.

    Returns:
        The connected client, or None if storage is disabled or unreachable.
    """
    if not config.enabled:
        logger.info("Cooking stats storage disabled")
        return None

    client = MongoStorageClient(
        uri=config.uri,
        database_name=config.database,
        server_selection_timeout_ms=config.server_selection_timeout_ms,
    )
    try:
        client.connect()
    except Exception as e:
        logger.warning(f"Cooking stats storage unavailable, completions won't be saved: {e}")
        return None
    return client


__all__ = ["CompletionRecorder", "StatsRepository", "create_storage_client"]
