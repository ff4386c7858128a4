"""Custom exception classes for the PDF job pipeline."""


class BookLookerError(Exception):
    """Base exception for all pipeline errors."""

    pass


class JobDecodeError(BookLookerError):
    """Raised when a queue payload cannot be decoded into a job."""

    pass


class JobValidationError(BookLookerError):
    """Raised when a job is well-formed but inconsistent, or its input files are unusable."""

    pass


class SubmitError(BookLookerError):
    """Raised when a job could not be published after every delivery attempt."""

    def __init__(self, attempts: int, message: str | None = None):
        """Initialize submit error.

        Args:
            attempts: Number of delivery attempts made
            message: Optional error message
        """
        self.attempts = attempts
        super().__init__(message or f"Failed to send message after {attempts} attempts")


class SubmitCancelledError(BookLookerError):
    """Raised when submission is cancelled while waiting between attempts."""

    pass


class ExtractionError(BookLookerError):
    """Raised when text extraction for a single file fails."""

    pass
