"""
Centralized Test Configuration.
"""

import asyncio
import time
from collections import deque

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.redis_client import get_redis
from backend.app.core.reliability import broadcast_circuit_breaker
from backend.app.models.delivery import Delivery
from backend.app.models.enums import DeliveryStatus, ServiceType, UserRole
from backend.app.models.user import User
import backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Mock Redis for reliability in CI/CD
class MockPubSub:
    """Channel subscription fed by MockRedis.publish, safe across event loops."""
    
    def __init__(self, broker):
        self.broker = broker
        self.channels = set()
        self.messages = deque()
    
    async def subscribe(self, *channels):
        if self.broker.fail_subscribe:
            raise ConnectionError("Redis unavailable")
        self.channels.update(channels)
        self.broker.subscribers.append(self)
    
    async def unsubscribe(self, *channels):
        self.channels.difference_update(channels)
    
    async def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        deadline = time.monotonic() + (timeout or 0)
        while not self.messages:
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(0.01)
        return self.messages.popleft()
    
    async def aclose(self):
        self.channels.clear()
        if self in self.broker.subscribers:
            self.broker.subscribers.remove(self)


class MockRedis:
    def __init__(self):
        self.store = {}
        self.published = []
        self.subscribers = []
        self.fail_publish = False
        self.fail_subscribe = False
        self._closed = False
    
    def pubsub(self):
        return MockPubSub(self)
    
    def has_subscriber(self, channel):
        return any(channel in s.channels for s in list(self.subscribers))
    
    async def ping(self):
        if self._closed:
            return False
        return True
    
    async def publish(self, channel, message):
        if self.fail_publish or self._closed:
            raise ConnectionError("Redis unavailable")
        self.published.append((channel, message))
        receivers = [s for s in list(self.subscribers) if channel in s.channels]
        for subscriber in receivers:
            subscriber.messages.append({"type": "message", "channel": channel, "data": message})
        return len(receivers)
    
    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)
        
    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True
    
    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0
        
    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.published = []
            self.subscribers = []
        
    async def aclose(self):
        self._closed = True
        self.store = {}

# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()

@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session.
    Global override is safer here than per-test override to avoid app state flux.
    """
    
    # Patch the global redis client used by the health check
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session
    
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield
    
    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client

@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    await redis_client_session.flushdb()
    redis_client_session.fail_publish = False
    redis_client_session.fail_subscribe = False
    broadcast_circuit_breaker.reset_state()
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
def mock_redis(redis_client_session):
    return redis_client_session

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """Fresh sessions for asserting on committed state."""
    return TestingSessionLocal


@pytest.fixture
async def users(db_session):
    """admin, two drivers and a business account."""
    accounts = {
        "admin": User(email="admin@test.com", username="admin", role=UserRole.ADMIN),
        "driver": User(email="driver1@test.com", username="driver1", role=UserRole.DRIVER),
        "driver2": User(email="driver2@test.com", username="driver2", role=UserRole.DRIVER),
        "business": User(email="shop@test.com", username="shop", role=UserRole.BUSINESS),
    }
    db_session.add_all(accounts.values())
    await db_session.commit()
    return accounts


@pytest.fixture
async def deliveries(db_session, users):
    """
    Deliveries for the test driver around Dubai.
    
    d1/d2 are routable, "delivered" is not, "foreign" belongs to driver2.
    """
    driver = users["driver"]
    business = users["business"]
    records = {
        "d1": Delivery(
            tracking_number="TRK-1", business_id=business.id, driver_id=driver.id,
            status=DeliveryStatus.ASSIGNED, service_type=ServiceType.EXPRESS,
            customer_name="Alice", delivery_latitude=25.080328, delivery_longitude=55.139309,
            delivery_address="Dubai Marina"
        ),
        "d2": Delivery(
            tracking_number="TRK-2", business_id=business.id, driver_id=driver.id,
            status=DeliveryStatus.PICKED_UP, service_type=ServiceType.NEXT_DAY,
            customer_name="Bob", delivery_latitude=25.197197, delivery_longitude=55.274376,
            delivery_address="Downtown Dubai"
        ),
        "delivered": Delivery(
            tracking_number="TRK-3", business_id=business.id, driver_id=driver.id,
            status=DeliveryStatus.DELIVERED, customer_name="Carol",
            delivery_latitude=25.2048, delivery_longitude=55.2708
        ),
        "foreign": Delivery(
            tracking_number="TRK-4", business_id=business.id, driver_id=users["driver2"].id,
            status=DeliveryStatus.ASSIGNED, customer_name="Dave",
            delivery_latitude=25.1, delivery_longitude=55.2
        ),
    }
    db_session.add_all(records.values())
    await db_session.commit()
    return records
