"""
Error types for the overview app. Routes and exception handlers decide how each maps to a response.
"""


class OverviewError(Exception):
    """Base class for all errors raised by overview_web."""


# --- Authentication ---


class AuthError(OverviewError):
    pass


class EmptyRefreshToken(AuthError):
    """Token endpoint answered without a refresh token. Nothing may be stored."""

    def __init__(self, message: str = "token response did not include a refresh token"):
        super().__init__(message)


class UpstreamRejected(AuthError):
    """Token endpoint answered with a non-2xx status (or an unusable body)."""

    def __init__(self, status: int, description: str = ""):
        self.status = status
        self.description = description
        msg = f"token endpoint rejected the request (HTTP {status})"
        if description:
            msg = f"{msg}: {description}"
        super().__init__(msg)


class TransportError(AuthError):
    """Token endpoint could not be reached (connect error, timeout, ...)."""


class NotAuthenticated(AuthError):
    """No usable session or credential. Callers send the user to /login."""

    def __init__(self, message: str = "not authenticated"):
        super().__init__(message)


# --- Credential store ---


class StoreError(OverviewError):
    pass


class StoreUnavailable(StoreError):
    pass


class StoreCorrupt(StoreError):
    pass


# --- Schedule document ---


class FormatError(OverviewError):
    pass


class InvalidDocument(FormatError):
    """Schedule document is not well-formed JSON."""


class UnexpectedShape(FormatError):
    """Schedule document is JSON but not shaped like a services/getAll response."""


# --- Schedule API ---


class ScheduleError(OverviewError):
    pass


class ScheduleUnavailable(ScheduleError):
    """Schedule API unreachable or answered with an error status other than 401."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)
