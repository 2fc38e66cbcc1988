class CareError(Exception):
    """Base class for errors raised to collaborators."""


class UnknownStatusError(CareError, ValueError):
    """A setter was given a status or role outside its allowed set."""


class BackendError(CareError):
    """The live backend answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url
