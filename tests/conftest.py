import os

# Keep the app engine off the working directory during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from opsboard import cache as cache_module  # noqa: E402
from opsboard.database import Base, get_db  # noqa: E402
from opsboard.domain.booking.router import (  # noqa: E402
    booking_rate_limiter,
    get_video_service,
    slots_rate_limiter,
)
from opsboard.main import app  # noqa: E402
from opsboard.models import MeetingType, Tenant, TenantUser, User  # noqa: E402
from opsboard.services.video_service import VideoProvisioningError  # noqa: E402

# 2030-01-07 is a Monday
MONDAY = datetime(2030, 1, 7)


class FakeVideoService:
    """Stands in for the Daily.co client"""

    provider = "fake"

    def __init__(self):
        self.fail_create = False
        self.created = []
        self.deleted = []

    async def create_room(self, room_name, start, end):
        if self.fail_create:
            raise VideoProvisioningError("provider down")
        self.created.append(room_name)
        return {"name": room_name, "url": f"https://video.test/{room_name}"}

    async def delete_room(self, room_name):
        self.deleted.append(room_name)
        return True


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    monkeypatch.setattr(cache_module.cache, "_get_client", lambda: None)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def workspace(db):
    """A tenant with an owner, a member, an outsider and one meeting type"""
    tenant = Tenant(slug="acme", name="Acme Studio")
    owner = User(email="owner@acme.test", full_name="Olive Owner")
    member = User(email="member@acme.test", full_name="Max Member")
    outsider = User(email="outsider@other.test", full_name="Otto Outsider")
    db.add_all([tenant, owner, member, outsider])
    db.flush()

    db.add_all(
        [
            TenantUser(tenant_id=tenant.id, user_id=owner.id, role="owner"),
            TenantUser(tenant_id=tenant.id, user_id=member.id, role="member"),
        ]
    )
    meeting_type = MeetingType(
        tenant_id=tenant.id, name="Intro Call", slug="intro-call", duration=30
    )
    db.add(meeting_type)
    db.commit()

    return {
        "tenant": tenant,
        "owner": owner,
        "member": member,
        "outsider": outsider,
        "meeting_type": meeting_type,
    }


@pytest.fixture
def video():
    return FakeVideoService()


@pytest.fixture
def client(db, video):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_video_service] = lambda: video
    app.dependency_overrides[slots_rate_limiter] = lambda: None
    app.dependency_overrides[booking_rate_limiter] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def headers_for(workspace, who="owner"):
    return {"X-Tenant-ID": workspace["tenant"].id, "X-User-ID": workspace[who].id}
