from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import mongomock
import pytest
from bson import ObjectId

from sessionguard.core.config import Settings
from sessionguard.domain.device import DeviceContext
from sessionguard.infrastructure.db.bootstrap import ensure_collections
from sessionguard.repositories.session_repo import SessionRepository
from sessionguard.repositories.user_repo import UserRepository
from sessionguard.services.auth_service import AuthService
from sessionguard.services.rotation_service import RotationEngine
from sessionguard.services.session_service import SessionService
from sessionguard.services.token_service import TokenCodec
from sessionguard.services.verification_service import VerificationService


class FakeClock:
    """Manually advanced naive-UTC clock."""

    def __init__(self, start: datetime = datetime(2030, 1, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_access_secret="test-access-secret-0123456789abcdef0123",
        jwt_refresh_secret="test-refresh-secret-0123456789abcdef012",
        max_sessions_per_user=3,
        refresh_cookie_secure=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db():
    database = mongomock.MongoClient()["sessionguard_test"]
    ensure_collections(database)
    return database


@pytest.fixture
def sessions(db, clock) -> SessionRepository:
    return SessionRepository(db, clock)


@pytest.fixture
def users(db, clock) -> UserRepository:
    return UserRepository(db, clock)


@pytest.fixture
def codec(settings) -> TokenCodec:
    return TokenCodec(settings)


@pytest.fixture
def auth(sessions, users, codec, settings, clock) -> AuthService:
    return AuthService(sessions, users, codec, settings, clock)


@pytest.fixture
def engine(sessions, users, codec, settings, clock) -> RotationEngine:
    return RotationEngine(sessions, users, codec, settings, clock)


@pytest.fixture
def verification(sessions, users, clock) -> VerificationService:
    return VerificationService(sessions, users, clock)


@pytest.fixture
def session_service(sessions, settings, clock) -> SessionService:
    return SessionService(sessions, settings, clock)


@pytest.fixture
def make_user(db, users):
    def _make(known_countries: Optional[List[str]] = None, known_ips: Optional[List[str]] = None) -> Dict[str, Any]:
        oid = ObjectId()
        db["user"].insert_one(
            {
                "_id": oid,
                "email": f"{oid}@example.test",
                "token_version": 0,
                "known_countries": known_countries or [],
                "known_ips": known_ips or [],
            }
        )
        return users.get_user_by_id(str(oid))

    return _make


@pytest.fixture
def user(make_user) -> Dict[str, Any]:
    return make_user()


@pytest.fixture
def device() -> DeviceContext:
    return DeviceContext(
        device_name="Google Pixel 8",
        browser="Chrome 120.0",
        os="Android 14",
        ip_address="203.0.113.10",
        user_agent="Mozilla/5.0 (Linux; Android 14; Pixel 8)",
        country="AR",
        city="Cordoba",
    )


@pytest.fixture
def foreign_device() -> DeviceContext:
    return DeviceContext(
        device_name="Desktop",
        browser="Firefox 121.0",
        os="Windows 10",
        ip_address="198.51.100.7",
        user_agent="Mozilla/5.0 (Windows NT 10.0; rv:121.0)",
        country="BR",
        city="Sao Paulo",
    )
