import itertools
import os
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel

DEFAULT_TEST_DB_URL = f"sqlite:///{Path(tempfile.gettempdir()) / 'unishare_auth_test.db'}"
TEST_DB_URL = os.getenv("TEST_DB_URL", DEFAULT_TEST_DB_URL)
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ.setdefault("SECRET_KEY", "test-secret")

from app.core.config import settings
from app.db.init_db import init_db
from app.models.enums import UserRole
from app.models.user import User
from app.services.token_issuer import AccessTokenIssuer

settings.DATABASE_URL = TEST_DB_URL


class SequenceTokenGenerator:
    """Deterministic refresh-token source for tests."""

    def __init__(self, prefix: str = "rt") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def generate(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


def _ensure_mysql_database(url: str) -> None:
    parsed_url = make_url(url)
    if not parsed_url.drivername.startswith("mysql"):
        return
    database = parsed_url.database
    if not database:
        raise RuntimeError("TEST_DB_URL must include a database name.")
    test_engine = create_engine(parsed_url, pool_pre_ping=True)
    try:
        with test_engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            return
    except OperationalError as exc:
        if "Unknown database" not in str(exc):
            raise
    finally:
        test_engine.dispose()

    admin_url = os.getenv("TEST_DB_ADMIN_URL")
    if admin_url:
        admin_engine = create_engine(admin_url, pool_pre_ping=True)
    else:
        root_password = os.getenv("MYSQL_ROOT_PASSWORD", "")
        server_url = parsed_url.set(
            username="root" if root_password else parsed_url.username,
            password=root_password or parsed_url.password,
            database="mysql",
        )
        admin_engine = create_engine(server_url, pool_pre_ping=True)
    with admin_engine.connect() as connection:
        connection.execute(
            text(
                f"CREATE DATABASE IF NOT EXISTS `{database}` "
                "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
            )
        )
    admin_engine.dispose()


@pytest.fixture(autouse=True, scope="session")
def _configure_test_database():
    _ensure_mysql_database(TEST_DB_URL)
    init_db(drop_all=True)
    yield


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'tokens.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)

    def factory() -> Session:
        return Session(engine)

    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def issuer() -> AccessTokenIssuer:
    return AccessTokenIssuer(secret_key="test-secret", algorithm="HS256", lifetime_seconds=900)


@pytest.fixture
def generator() -> SequenceTokenGenerator:
    return SequenceTokenGenerator()


@pytest.fixture
def make_user():
    def factory(session: Session, email: str = "student@uaic.ro", role: UserRole = UserRole.USER) -> User:
        # placeholder hash keeps service tests fast; login tests go through create_user
        user = User(email=email, hashed_password="not-a-real-hash", role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return factory
