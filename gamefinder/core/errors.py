"""Error taxonomy for the API.

Every error a handler raises deliberately is an :class:`ApiError`. It is an
``HTTPException`` so FastAPI treats it the usual way, and it carries a stable
machine-readable ``code`` that the exception handler in ``main`` renders next
to ``detail``.
"""

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    default_detail: str = "Bad request"

    def __init__(
        self,
        detail: str | None = None,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )
        if code:
            self.code = code


class ValidationFailed(ApiError):
    code = "VALIDATION_ERROR"
    default_detail = "Invalid input"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_detail = "Unauthorized"


class CredentialMismatch(ApiError):
    code = "INVALID_CREDENTIALS"
    default_detail = "Invalid email or password"


class InvalidCredentials(CredentialMismatch):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid credentials"


class InvalidCode(CredentialMismatch):
    code = "INVALID_CODE"
    default_detail = "Invalid code"


class CodeExpired(CredentialMismatch):
    code = "CODE_EXPIRED"
    default_detail = "Code expired"


class CodeAlreadyUsed(CredentialMismatch):
    code = "CODE_ALREADY_USED"
    default_detail = "Code already used"


class InvalidResetToken(CredentialMismatch):
    code = "INVALID_RESET_TOKEN"
    default_detail = "Invalid or expired reset token"


class InvalidAssertion(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_ASSERTION"
    default_detail = "Invalid Google token"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_detail = "Already in use"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_detail = "User not found"


class UpstreamFailure(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_FAILURE"
    default_detail = "Upstream service unavailable"


class NotConfigured(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "NOT_CONFIGURED"
    default_detail = "Service is not configured"
