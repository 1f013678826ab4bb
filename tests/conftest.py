# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CHAT_ENCRYPTION_KEY", "test-chat-key")

from chatdesk.core.errors import UnavailableError
from chatdesk.core.security import create_access_token, hash_password
from chatdesk.db.session import Base
from chatdesk.db.session import get_db as app_get_session
from chatdesk.main import app as fastapi_app
from chatdesk.models import ROLE_ADMIN, ROLE_USER, User
from chatdesk.services.captcha import TurnstileVerifier, get_captcha_verifier
from chatdesk.services.ephemeral import ExpiringStore, get_expiring_store
from chatdesk.services.mailer import Mailer, MailerConfig, get_mailer
from chatdesk.services.realtime import InMemoryBroker, get_realtime_broker

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse"
CHAT_KEY = os.environ["CHAT_ENCRYPTION_KEY"]

# Hashing once keeps user fixtures fast; bcrypt is deliberately slow.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class RecordingMailer(Mailer):
    """Mailer that keeps messages in memory instead of calling the API."""

    def __init__(self) -> None:
        super().__init__(
            MailerConfig(
                api_key="test-resend-key",
                api_url="http://mail.test/emails",
                from_address="noreply@chatdesk.dev",
                from_name="Chatdesk",
                timeout_seconds=1.0,
            )
        )
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def send(self, to: str, subject: str, body_html: str) -> None:
        if self.fail:
            raise UnavailableError("Email service is unavailable")
        self.sent.append((to, subject, body_html))


class StubCaptcha(TurnstileVerifier):
    """Bot verification with a fixed outcome."""

    def __init__(self) -> None:
        super().__init__(secret_key="test-turnstile", verify_url="http://captcha.test")
        self.accept = True
        self.unavailable = False
        self.tokens: list[str] = []

    async def verify(self, token: str, remote_ip: str | None = None) -> bool:
        self.tokens.append(token)
        if self.unavailable:
            raise UnavailableError("Bot verification service is unavailable")
        return self.accept


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Services commit, so wipe every table to keep tests independent.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def broker() -> InMemoryBroker:
    return InMemoryBroker()


@pytest.fixture()
def expiring_store() -> ExpiringStore:
    return ExpiringStore()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def captcha() -> StubCaptcha:
    return StubCaptcha()


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    broker: InMemoryBroker,
    expiring_store: ExpiringStore,
    mailer: RecordingMailer,
    captcha: StubCaptcha,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Any, Any] = {
        app_get_session: _get_session_override,
        get_realtime_broker: lambda: broker,
        get_expiring_store: lambda: expiring_store,
        get_mailer: lambda: mailer,
        get_captcha_verifier: lambda: captcha,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_user(
    db: Session,
    email: str,
    username: str | None = None,
    *,
    user_id: str | None = None,
    role: str = ROLE_USER,
    is_banned: bool = False,
) -> User:
    """Persist a user whose password is ``TEST_PASSWORD``."""
    user = User(
        email=email,
        username=username,
        password_hash=_PASSWORD_HASH,
        role=role,
        is_banned=is_banned,
    )
    if user_id is not None:
        user.id = user_id
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    """Return authorization headers for ``user``."""
    token = create_access_token(user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def alice(db_session: Session) -> User:
    return make_user(db_session, "alice@chatdesk.dev", "alice")


@pytest.fixture()
def bob(db_session: Session) -> User:
    return make_user(db_session, "bob@chatdesk.dev", "bob")


@pytest.fixture()
def carol(db_session: Session) -> User:
    return make_user(db_session, "carol@chatdesk.dev", "carol")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return make_user(db_session, "admin@chatdesk.dev", "admin", role=ROLE_ADMIN)


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers(bob)


@pytest.fixture()
def carol_headers(carol: User) -> dict[str, str]:
    return auth_headers(carol)


@pytest.fixture()
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)
