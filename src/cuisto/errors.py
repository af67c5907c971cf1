"""Error types for the cooking engine."""


class CuistoError(Exception):
    """Base exception for cooking engine errors."""

    pass


class UnknownSessionError(CuistoError):
    """Raised when a session id does not match an open session."""

    def __init__(self, session_id: str) -> None:
        """Initialize with the offending session id.

        Args:
            session_id: The id that was looked up.
        """
        super().__init__(f"No open cooking session: {session_id}")
        self.session_id = session_id


class UnknownTimerError(CuistoError):
    """Raised when a timer key is not registered with the scheduler."""

    pass


class RecognitionBusyError(CuistoError):
    """Raised when the recognition channel is held by another owner."""

    def __init__(self, holder: str) -> None:
        """Initialize with the current holder.

        Args:
            holder: Name of the owner currently holding the channel.
        """
        super().__init__(f"Speech recognition is already in use by {holder}")
        self.holder = holder


class StorageError(CuistoError):
    """Raised when cooking statistics cannot be persisted."""

    pass


__all__ = [
    "CuistoError",
    "RecognitionBusyError",
    "StorageError",
    "UnknownSessionError",
    "UnknownTimerError",
]
