"""Exceptions raised by the conformance engine outside of test bodies."""


class ConformanceError(Exception):
    """Base class for engine errors."""


class ConfigurationError(ConformanceError):
    """Raised when declared sequences are inconsistent.

    Detected at load time, before any run starts.
    """

    def __init__(
        self, message: str, *, sequence_id: str, test_id: str | None = None
    ) -> None:
        location = sequence_id if test_id is None else f"{sequence_id}/{test_id}"
        super().__init__(f"{location}: {message}")
        self.sequence_id = sequence_id
        self.test_id = test_id


class ProfileError(ConformanceError):
    """Raised when a profile is unknown or its definition is malformed."""
