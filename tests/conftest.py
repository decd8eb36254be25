import itertools
import os

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from escalation.core.config import get_settings
from escalation.core.security import generate_share_token, get_password_hash
from escalation.db.base import Base
from escalation.db.session import get_db
from escalation.main import app
from escalation.models import League, LeagueMembership, User
from escalation.services.rate_limit import rate_limiter


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = itertools.count(1)

    def _make_user(name: str | None = None) -> User:
        n = next(counter)
        user = User(
            auth_subject=f"auth|user-{n}",
            email=f"user{n}@example.com",
            name=name or f"User {n}",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_league(db):
    def _make_league(
        owner: User | None = None,
        *,
        name: str = "Escalation Season",
        status: str = "active",
        max_players: int | None = None,
        password: str | None = None,
        is_private: bool = True,
    ) -> League:
        league = League(
            name=name,
            status=status,
            is_private=is_private,
            share_token=generate_share_token() if is_private else None,
            join_password_hash=get_password_hash(password) if password else None,
            max_players=max_players,
            created_by_user_id=owner.id if owner else None,
        )
        db.add(league)
        db.flush()
        if owner is not None:
            db.add(
                LeagueMembership(
                    league_id=league.id,
                    user_id=owner.id,
                    role="owner",
                    status="active",
                )
            )
        db.commit()
        db.refresh(league)
        return league

    return _make_league


@pytest.fixture()
def add_member(db):
    def _add_member(
        league: League, user: User, *, role: str = "player", status: str = "active"
    ) -> LeagueMembership:
        membership = LeagueMembership(
            league_id=league.id, user_id=user.id, role=role, status=status
        )
        db.add(membership)
        db.commit()
        db.refresh(membership)
        return membership

    return _add_member


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict:
        settings = get_settings()
        token = jwt.encode(
            {"sub": user.auth_subject, "email": user.email, "name": user.name},
            settings.AUTH_JWT_SECRET,
            algorithm=settings.AUTH_JWT_ALGORITHM,
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
