import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gamefinder.api import account, auth, password_reset
from gamefinder.core.access import AccessGateMiddleware
from gamefinder.core.config import get_settings
from gamefinder.core.database import Base, engine, ping_database
from gamefinder.core.errors import ApiError
from gamefinder.core.security import TokenService

root = logging.getLogger()
if not root.handlers:  # don't double-add in reloads
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(h)

root.setLevel(logging.INFO)

logger = logging.getLogger(__name__)

settings = get_settings()
token_service = TokenService.from_settings(settings)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="GameFinder API", version="0.1.0")
app.state.token_service = token_service

# Starlette runs the last-added middleware first, so CORS answers preflight
# requests before the gate sees them.
app.add_middleware(AccessGateMiddleware, token_service=token_service)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(password_reset.router)
app.include_router(account.router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(
        {"detail": exc.detail, "code": exc.code},
        status_code=exc.status_code,
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"detail": "Internal server error", "code": "INTERNAL_ERROR"},
        status_code=500,
    )


@app.get("/api/health", tags=["health"])
def health_check():
    """Report service status and confirm database connectivity."""
    database_status = "ok" if ping_database() else "error"
    return {
        "status": "ok",
        "database": database_status,
    }
