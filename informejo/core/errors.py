"""Domain exceptions shared by the service and route layers."""


class InformejoError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)
        self.detail = detail


class InvalidCredentialError(InformejoError):
    """Token, short-id or bearer credential is missing, unknown or expired.

    The detail is deliberately the same for every cause so a caller cannot
    tell an unknown token from an expired one.
    """

    status_code = 401

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(detail)


class NotFoundError(InformejoError):
    """Requested ticket, user or file does not exist."""

    status_code = 404

    def __init__(self, detail: str = "Not found"):
        super().__init__(detail)


class ForbiddenError(InformejoError):
    """Identity is known but lacks rights over the target entity."""

    status_code = 403

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(detail)


class TicketValidationError(InformejoError, ValueError):
    """Input failed a business rule."""

    status_code = 400

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(detail)
