from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from lumenpulse.config import settings
from lumenpulse.database import engine, init_db
from lumenpulse.errors import AuthError
from lumenpulse.logging_config import setup_logging
from lumenpulse.middleware.logging import LoggingMiddleware
from lumenpulse.middleware.rate_limit import limiter
from lumenpulse.routers import auth, challenges, password_reset
from lumenpulse.scheduler import shutdown_scheduler, start_scheduler
from lumenpulse.services.challenge_store import InMemoryChallengeStore
from lumenpulse.services.session_service import SessionIssuer
from lumenpulse.services.stellar_challenge import load_server_keypair, network_passphrase
from lumenpulse.services.wallet_auth_service import WalletAuthService

setup_logging()
logger = structlog.get_logger()


def build_services(app: FastAPI) -> None:
    """
    Construct the long-lived services and attach them to ``app.state``.

    Raises ConfigurationError if the signing secrets are missing, which
    aborts startup.
    """
    session_issuer = SessionIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expires_minutes,
    )
    app.state.session_issuer = session_issuer
    app.state.challenge_store = InMemoryChallengeStore()
    app.state.wallet_auth = WalletAuthService(
        app.state.challenge_store,
        load_server_keypair(settings.stellar_server_secret),
        session_issuer,
        passphrase=network_passphrase(settings.stellar_network),
        home_domain=settings.web_auth_domain,
        data_name=settings.challenge_data_name,
        ttl_seconds=settings.challenge_ttl_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services, create tables, and own the cleanup scheduler."""
    build_services(app)
    init_db(engine)

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = start_scheduler(app.state.challenge_store)

    logger.info("auth_service_started", stellar_network=settings.stellar_network)
    yield

    if scheduler is not None:
        shutdown_scheduler(scheduler)


app = FastAPI(
    title="LumenPulse Auth",
    description="Account, password reset and Stellar wallet authentication API",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Request logging with correlation IDs
app.add_middleware(LoggingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(challenges.router, prefix="/api/v1", tags=["wallet-auth"])
app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(password_reset.router, prefix="/api/v1", tags=["password-reset"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
