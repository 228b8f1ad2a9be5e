import os

from stellar_sdk import Keypair

# Must be set before the application modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-at-least-32-bytes!")
os.environ.setdefault("STELLAR_SERVER_SECRET", Keypair.random().secret)
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import lumenpulse.main as main_module  # noqa: E402
from lumenpulse.config import settings  # noqa: E402
from lumenpulse.database import Base, enable_sqlite_foreign_keys, get_db, init_db  # noqa: E402
from lumenpulse.main import app  # noqa: E402
from lumenpulse.middleware.rate_limit import limiter  # noqa: E402
from lumenpulse.services.challenge_store import InMemoryChallengeStore  # noqa: E402
from lumenpulse.services.session_service import SessionIssuer  # noqa: E402
from lumenpulse.services.stellar_challenge import (  # noqa: E402
    load_server_keypair,
    network_passphrase,
)
from lumenpulse.services.wallet_auth_service import WalletAuthService  # noqa: E402
from tests.test_utils import utcnow  # noqa: E402


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """Create a test client with the test database and disabled rate limiting."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Disable rate limiting for tests
    limiter.enabled = False

    # Startup creates tables on the test database instead of the default engine
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine


@pytest.fixture
def session_issuer():
    return SessionIssuer(settings.jwt_secret, expires_minutes=5)


@pytest.fixture
def server_keypair():
    return load_server_keypair(settings.stellar_server_secret)


@pytest.fixture
def passphrase():
    return network_passphrase(settings.stellar_network)


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FakeClock(utcnow())


@pytest.fixture
def wallet_auth(server_keypair, session_issuer, passphrase, clock):
    """A wallet auth service with its own store and a controllable clock."""
    return WalletAuthService(
        InMemoryChallengeStore(),
        server_keypair,
        session_issuer,
        passphrase=passphrase,
        home_domain="lumenpulse.test",
        data_name="LumenPulse auth",
        ttl_seconds=300,
        clock=clock,
    )
