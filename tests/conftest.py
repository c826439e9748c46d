"""Shared fixtures: in-memory MongoDB, a recording mailer and document factories."""

import os

# Settings are read at import time
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_USER", "")
os.environ.setdefault("SENTRY_DSN", "")

from datetime import datetime, timedelta  # noqa: E402
from typing import List, Tuple  # noqa: E402

import pytest  # noqa: E402
from mongomock_motor import AsyncMongoMockClient  # noqa: E402

from glitchlab.core.security import Principal, get_password_hash  # noqa: E402
from glitchlab.db.mongo import USERS, WORKSHOPS, create_indexes  # noqa: E402
from glitchlab.models.user import User  # noqa: E402
from glitchlab.models.workshop import LocalizedText, Workshop  # noqa: E402
from glitchlab.services.auth_service import AuthService  # noqa: E402
from glitchlab.services.badge_service import BadgeService  # noqa: E402
from glitchlab.services.review_service import ReviewService  # noqa: E402
from glitchlab.services.user_service import UserService  # noqa: E402
from glitchlab.services.workshop_service import WorkshopService  # noqa: E402

PASSWORD = "password123"


class FakeMailer:
    """Records every email instead of sending it."""

    def __init__(self):
        self.sent: List[Tuple[str, str, tuple]] = []
        self.failing: set = set()

    async def _record(self, kind: str, to: str, *args) -> bool:
        self.sent.append((kind, to, args))
        return to not in self.failing

    def to(self, kind: str) -> List[str]:
        return [to for k, to, _ in self.sent if k == kind]

    async def send_verification_email(self, to, code, language="en"):
        return await self._record("verification", to, code, language)

    async def send_password_reset_email(self, to, code, language="en"):
        return await self._record("password_reset", to, code, language)

    async def send_workshop_cancellation_email(self, to, workshop_name, start_date, language="en"):
        return await self._record("cancellation", to, workshop_name, start_date, language)

    async def send_workshop_reminder_email(self, to, workshop_name, start_date, language="en"):
        return await self._record("reminder", to, workshop_name, start_date, language)

    async def send_workshop_update_email(self, to, workshop_name, previous, current, language="en"):
        return await self._record("update", to, workshop_name, previous, current, language)


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["glitchlab_test"]
    await create_indexes(database)
    return database


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def auth_service(db, mailer):
    return AuthService(db, mailer)


@pytest.fixture
def workshop_service(db, mailer):
    return WorkshopService(db, mailer)


@pytest.fixture
def review_service(db):
    return ReviewService(db)


@pytest.fixture
def user_service(db):
    return UserService(db)


@pytest.fixture
def badge_service(db):
    return BadgeService(db)


@pytest.fixture
def make_user(db):
    """Insert a verified user and return its Principal."""
    counter = {"n": 0}

    async def factory(role: str = "user", **overrides) -> Principal:
        counter["n"] += 1
        fields = {
            "name": f"{role.title()} {counter['n']}",
            "email": f"{role}{counter['n']}@example.com",
            "password": get_password_hash(PASSWORD),
            "role": role,
            "is_verified": True,
        }
        fields.update(overrides)
        doc = User(**fields).to_document()
        result = await db[USERS].insert_one(doc)
        return await reload(db, result.inserted_id)

    return factory


@pytest.fixture
def make_workshop(db):
    """Insert a workshop starting ``starts_in`` from now and lasting ``duration``."""

    async def factory(
        instructor: Principal,
        starts_in: timedelta = timedelta(days=7),
        duration: timedelta = timedelta(hours=2),
        **overrides,
    ) -> dict:
        start = datetime.utcnow() + starts_in
        fields = {
            "name": "Glitch Art",
            "name_translations": LocalizedText(en="Glitch Art", it="Arte Glitch"),
            "description_translations": LocalizedText(en="Break things", it="Rompi le cose"),
            "start_date": start,
            "end_date": start + duration,
            "image_src": "/images/glitch.png",
            "badge_name_translations": LocalizedText(en="Glitcher", it="Glitchatore"),
            "level": "beginner",
            "location": "Milan",
            "instructor_ids": [instructor.id],
        }
        fields.update(overrides)
        doc = Workshop(**fields).to_document()
        result = await db[WORKSHOPS].insert_one(doc)
        return await db[WORKSHOPS].find_one({"_id": result.inserted_id})

    return factory


async def reload(db, user_id) -> Principal:
    """Fresh Principal for a user, as the auth dependency would build it."""
    user = await db[USERS].find_one({"_id": user_id})
    return Principal.from_user(user)


@pytest.fixture
def refresh(db):
    """Re-read a Principal after the service changed the user."""

    async def _refresh(principal: Principal) -> Principal:
        return await reload(db, principal.id)

    return _refresh
