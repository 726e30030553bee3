import os

# Must be set before rfq_api is imported: settings are read once at import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ.pop("EVENT_WEBHOOK_URL", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rfq_api.database import Base, get_db
from rfq_api.main import app
from rfq_api.models.directory import (
    Admin,
    Buyer,
    Category,
    Product,
    Seller,
    product_categories,
)
from rfq_api.services.auth_service import create_access_token
from rfq_api.services.events import EventPublisher, get_event_publisher

# ---------------------------------------------------------------------------
# Directory fixtures: two categories, three approved sellers, one pending.
# seller-1 sells in cat-tools, seller-2 in cat-paint, seller-3 sells nothing.
# ---------------------------------------------------------------------------

ADMIN_ID = "admin-1"
BUYER_ID = "buyer-1"
OTHER_BUYER_ID = "buyer-2"
SELLER_1 = "seller-1"
SELLER_2 = "seller-2"
SELLER_3 = "seller-3"
PENDING_SELLER = "seller-pending"
CAT_TOOLS = "cat-tools"
CAT_PAINT = "cat-paint"
PRODUCT_DRILL = "prod-drill"
PRODUCT_PAINT = "prod-paint"


class RecordingPublisher(EventPublisher):
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def publish(self, topic, payload):
        self.events.append((topic, payload))


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        # One shared connection: a session returning it must not roll back
        # work another concurrent session has in flight.
        pool_reset_on_return=None,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def seeded(session_factory):
    async with session_factory() as s:
        s.add_all(
            [
                Admin(id=ADMIN_ID, name="Ada Admin", email="ada@market.test"),
                Buyer(id=BUYER_ID, name="Bo Buyer", email="bo@buyer.test"),
                Buyer(id=OTHER_BUYER_ID, name="Bea Buyer", email="bea@buyer.test"),
                Seller(id=SELLER_1, name="Sam", company_name="Tools Co", email="sam@tools.test", status="approved"),
                Seller(id=SELLER_2, name="Sue", company_name="Paint Co", email="sue@paint.test", status="approved"),
                Seller(id=SELLER_3, name="Sid", company_name="Idle Co", email="sid@idle.test", status="approved"),
                Seller(id=PENDING_SELLER, name="Pat", email="pat@pending.test", status="pending"),
                Category(id=CAT_TOOLS, name="Tools"),
                Category(id=CAT_PAINT, name="Paint"),
            ]
        )
        await s.flush()
        s.add_all(
            [
                Product(id=PRODUCT_DRILL, name="Drill", sku="DR-1", price=99.0, seller_id=SELLER_1, status="approved"),
                Product(id=PRODUCT_PAINT, name="Paint", sku="PT-1", price=19.5, seller_id=SELLER_2, status="approved"),
            ]
        )
        await s.flush()
        await s.execute(
            product_categories.insert(),
            [
                {"product_id": PRODUCT_DRILL, "category_id": CAT_TOOLS},
                {"product_id": PRODUCT_PAINT, "category_id": CAT_PAINT},
            ],
        )
        await s.commit()
    return True


@pytest.fixture
async def db(session_factory, seeded):
    """Session for service-level tests; the caller decides when to commit."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
async def client(session_factory, seeded, publisher):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Principals and auth headers
# ---------------------------------------------------------------------------


def principal(user_id: str, role: str) -> dict:
    return {"user_id": user_id, "role": role}


def headers_for(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def admin_headers():
    return headers_for(ADMIN_ID, "admin")


@pytest.fixture
def buyer_headers():
    return headers_for(BUYER_ID, "buyer")


@pytest.fixture
def seller_headers():
    return {sid: headers_for(sid, "seller") for sid in (SELLER_1, SELLER_2, SELLER_3, PENDING_SELLER)}
