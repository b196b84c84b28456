import os
import tempfile

# Settings are read at import time, so point them at a scratch database first
_db_dir = tempfile.mkdtemp(prefix="vocabulary-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-the-vocabulary-app-0123456789"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import User, VocabularyItem  # noqa: E402
from app.services.auth import create_access_token, hash_password  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

COUNTER_FIELDS = (
    "choice_attempts", "choice_correct", "choice_mistakes",
    "swipe_attempts", "swipe_known", "swipe_unknown", "practice_count",
)


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh tables for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _create_user(db, username):
    user = User(username=username, password_hash=hash_password("secret-password"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _create_user(db, "anna")


@pytest.fixture
def other_user(db):
    return _create_user(db, "bert")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def make_item():
    """
    Build an unsaved item with every counter set, so selection and stats can
    be exercised without a database.
    """
    def _make(item_id, german=None, english=None, bengali=None, practiced_minutes_ago=None, **counters):
        values = {name: 0 for name in COUNTER_FIELDS}
        values.update(counters)
        last_practiced_at = None
        if practiced_minutes_ago is not None:
            last_practiced_at = BASE_TIME - timedelta(minutes=practiced_minutes_ago)
        return VocabularyItem(
            id=item_id,
            user_id=1,
            german=german or f"Wort {item_id}",
            english=english or f"Word {item_id}",
            bengali=bengali or f"শব্দ {item_id}",
            last_practiced_at=last_practiced_at,
            **values
        )
    return _make


@pytest.fixture
def saved_items(db, user):
    """Three stored items for the default user"""
    items = [
        VocabularyItem(user_id=user.id, german="Kommen", english="To come", bengali="আসা"),
        VocabularyItem(user_id=user.id, german="Laufen", english="To run", bengali="দৌড়ানো"),
        VocabularyItem(user_id=user.id, german="Haus", english="House", bengali="বাড়ি", section="Nouns"),
    ]
    db.add_all(items)
    db.commit()
    for item in items:
        db.refresh(item)
    return items
