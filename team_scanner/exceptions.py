class ScannerError(Exception):
    """Base exception for the team scanner."""


class DirectoryError(ScannerError):
    """Raised when a directory lookup fails for a transient reason."""


class TeamNotFoundError(DirectoryError):
    """Raised when the directory confirms a team number does not exist."""

    def __init__(self, number: str) -> None:
        super().__init__(f"Team {number} not found")
        self.number = number


class CacheStoreError(ScannerError):
    """Raised when the durable cache store cannot be read or written."""


class RecognizerError(ScannerError):
    """Raised when text recognizer initialization or inference fails."""
