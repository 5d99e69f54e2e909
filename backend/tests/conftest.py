import os
import sys
from pathlib import Path

import pytest

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# 必须在导入 dashhub 之前设置：settings 与 engine 在导入时创建
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_TIMEZONE"] = "UTC"

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dashhub import crud  # noqa: E402
from dashhub.core.enums import Role  # noqa: E402
from dashhub.db.base import Base  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(email=None, role=Role.ANALYST, name=None):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        return crud.user.create_user(
            db, email=email, name=name or email.split("@")[0], password="secret", role=role
        )

    return _make_user


@pytest.fixture
def make_dashboard(db):
    def _make_dashboard(owner, title="Sales", is_public=False, description=None):
        return crud.crud_dashboard.create_dashboard(
            db, owner_id=owner.id, title=title, description=description, is_public=is_public
        )

    return _make_dashboard
