"""Default-deny access gate for the HTTP API.

The gate holds an ordered tuple of :class:`AccessRule` entries. The first rule
whose pattern matches the request path decides the policy; paths that match no
rule are protected. ``PUBLIC`` paths still pick up the caller's identity when a
valid bearer token is sent, they simply do not insist on one.
"""

import enum
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from gamefinder.core.errors import Unauthorized
from gamefinder.core.security import InvalidToken, TokenService

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


class AccessPolicy(enum.Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


@dataclass(frozen=True)
class AccessRule:
    pattern: str | re.Pattern[str]
    policy: AccessPolicy

    def matches(self, path: str) -> bool:
        if isinstance(self.pattern, re.Pattern):
            return self.pattern.search(path) is not None
        prefix = self.pattern.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")


PUBLIC_API_PATHS = (
    "/signup",
    "/login",
    "/auth/google",
    "/auth/forgot",
    "/auth/reset",
    "/health",
    "/games",
    "/genres",
    "/youtube",
)

ACCESS_RULES: tuple[AccessRule, ...] = (
    *(AccessRule(API_PREFIX + p, AccessPolicy.PUBLIC) for p in PUBLIC_API_PATHS),
    AccessRule(re.compile(r"^/(docs|redoc)(/.*)?$"), AccessPolicy.PUBLIC),
    AccessRule("/openapi.json", AccessPolicy.PUBLIC),
)


def resolve_policy(
    path: str,
    rules: Iterable[AccessRule] = ACCESS_RULES,
    default: AccessPolicy = AccessPolicy.PROTECTED,
) -> AccessPolicy:
    for rule in rules:
        if rule.matches(path):
            return rule.policy
    return default


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, param = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not param.strip():
        return None
    return param.strip()


def _unauthorized_response() -> JSONResponse:
    exc = Unauthorized()
    return JSONResponse(
        {"detail": exc.detail, "code": exc.code},
        status_code=exc.status_code,
        headers={"WWW-Authenticate": "Bearer"},
    )


class AccessGateMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        token_service: TokenService,
        rules: tuple[AccessRule, ...] = ACCESS_RULES,
    ) -> None:
        super().__init__(app)
        self.token_service = token_service
        self.rules = rules

    def _authenticate(self, request: Request) -> int | None:
        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            return None
        try:
            return self.token_service.verify_session(token)
        except InvalidToken:
            return None

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        policy = resolve_policy(request.url.path, self.rules)
        account_id = self._authenticate(request)

        if account_id is None and policy is AccessPolicy.PROTECTED:
            logger.info("Rejected unauthenticated %s %s", request.method, request.url.path)
            return _unauthorized_response()

        request.state.account_id = account_id
        return await call_next(request)
