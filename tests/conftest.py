"""
conftest.py — Shared Test Fixtures

Provides an in-memory SQLite database, a FastAPI TestClient with auth
overrides, user fixtures and a message factory.

Business Rules:
- All tests run against an isolated in-memory DB
- Auth is overridden so tests don't need a login session
- Each test function gets fresh tables (create_all / drop_all)

Called by: all test files via pytest autodiscovery
Depends on: messaging.models (Base), messaging.database (get_db),
            messaging.dependencies
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from messaging.models import Base, Message, User

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"  # in-memory, fresh per session

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db: Session, email: str, name: str) -> User:
    user = User(email=email, name=name, created_at=datetime.now(timezone.utc))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def alice(db_session: Session) -> User:
    """The receiver most tests act as."""
    return _make_user(db_session, "alice@example.com", "Alice")


@pytest.fixture()
def bob(db_session: Session) -> User:
    return _make_user(db_session, "bob@example.com", "Bob")


@pytest.fixture()
def carol(db_session: Session) -> User:
    return _make_user(db_session, "carol@example.com", "Carol")


@pytest.fixture()
def make_message(db_session: Session):
    """Factory: persist a message with recipients.

    Each call is one minute newer than the previous one so "latest per
    thread" ordering is deterministic.
    """
    base = datetime.now(timezone.utc) - timedelta(days=1)
    tick = count()

    def _make(sender, to=(), cc=(), bcc=(), subject="Hello", body="Body",
              state="sent", original=None):
        message = Message(
            sender=sender,
            subject=subject,
            body=body,
            state=state,
            original_message_id=original.id if original is not None else None,
            created_at=base + timedelta(minutes=next(tick)),
        )
        for kind, receivers in (("to", to), ("cc", cc), ("bcc", bcc)):
            for receiver in receivers:
                message.add_recipient(receiver, kind)
        db_session.add(message)
        db_session.commit()
        db_session.refresh(message)
        return message

    return _make


@pytest.fixture()
def recipient_for():
    """Look up the recipient row a user has on a message."""

    def _find(message: Message, user: User, kind: str = "to"):
        return next(
            r for r in message.recipients
            if r.receiver_id == user.id and r.kind == kind
        )

    return _find


@pytest.fixture()
def client(db_session: Session, alice: User) -> TestClient:
    """FastAPI TestClient with auth overridden to return alice."""
    from messaging.database import get_db
    from messaging.dependencies import require_user
    from messaging.main import app

    def _override_db():
        yield db_session

    def _override_user():
        return alice

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_user] = _override_user

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
