"""Exception hierarchy shared by the pipeline, providers and CLI."""


class ScrumMasterError(Exception):
    """Base class for every error the CLI reports as a failed stage."""


class InputError(ScrumMasterError):
    """Source or analysis file could not be read or parsed."""


class ProviderError(ScrumMasterError):
    """The AI breakdown provider call failed."""


class ParseError(ProviderError):
    """The model answered, but not with a breakdown-shaped JSON document."""


class RetryError(ScrumMasterError):
    """Every attempt failed. Wraps the last observed failure."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class TrackerError(ScrumMasterError):
    """Issue tracker call failed. Carries the raw HTTP status and body when known."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        if status_code is not None and f"(status {status_code})" not in message:
            message = f"{message} (status {status_code})"
            if body:
                message = f"{message}: {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TrackerConnectivityError(TrackerError):
    """Pre-check failed; nothing was created."""


class TrackerEpicError(TrackerError):
    """An epic could not be created; creation stopped, earlier tickets remain."""


class TrackerStoryError(TrackerError):
    """A story could not be created; recoverable, the run continues."""
