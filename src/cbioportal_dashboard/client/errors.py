"""Exceptions raised by the cBioPortal client."""


class CBioPortalError(Exception):
    """Exception raised for cBioPortal API errors."""

    pass


class ResponseShapeError(CBioPortalError):
    """The upstream body was not JSON or did not match the expected shape."""

    pass


class UpstreamError(CBioPortalError):
    """A proxied upstream request failed."""

    def __init__(self, status_code: int = 500, message: str = "Failed to fetch from cBioPortal") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
