"""Shared fixtures: a throwaway SQLite database, an ASGI client and seed data."""

import os

os.environ["ENVIRONMENT"] = "development"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key"
os.environ["APP_BASE_URL"] = "https://khairat.test"

from collections.abc import AsyncGenerator, Callable
from datetime import date

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.encryption import encrypt_sensitive
from app.database import Base, get_db
from app.main import app
from app.models.claim import Claim
from app.models.contribution import Contribution
from app.models.legacy import LegacyRecord
from app.models.mosque import ContributionProgram, Mosque
from app.models.payment import PaymentProvider
from app.models.user import User
from app.services.gateway_service import gateway_service

BILLPLZ_API_KEY = "73eb57f0-7d4e-42b9-a544-aeac6e4b0f81"
BILLPLZ_X_SIGNATURE_KEY = "S-0Sq67GFD9Y5iXmi5iXMKsA"
BILLPLZ_COLLECTION_ID = "inbmmepb"
TOYYIBPAY_SECRET_KEY = "w5x7srq7-rx5r-3t89-2ou3-k7ps2qxs7vsd"
TOYYIBPAY_CATEGORY_CODE = "gcbhict9"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'khairat.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def reload(session_factory) -> Callable:
    """Read a row back through a fresh session."""

    async def _reload(model, ident):
        async with session_factory() as session:
            return await session.get(model, ident)

    return _reload


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def mock_gateway():
    """Route gateway HTTP traffic to a handler; returns the captured requests."""
    captured: list[httpx.Request] = []

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> list[httpx.Request]:
        def _handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return handler(request)

        gateway_service.transport = httpx.MockTransport(_handler)
        return captured

    yield install
    gateway_service.transport = None


@pytest.fixture
async def admin(db) -> User:
    user = User(email="imam@masjid-alfalah.my", full_name="Haji Rahman", role="admin")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def member(db) -> User:
    user = User(
        email="ahmad@example.my",
        full_name="Ahmad bin Ali",
        phone="60123456789",
        ic_passport_number="900101-14-5678",
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def other_member(db) -> User:
    user = User(email="siti@example.my", full_name="Siti binti Omar")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def mosque(db, admin) -> Mosque:
    mosque = Mosque(name="Masjid Al-Falah", admin_id=admin.id)
    db.add(mosque)
    await db.commit()
    return mosque


@pytest.fixture
async def program(db, mosque) -> ContributionProgram:
    program = ContributionProgram(mosque_id=mosque.id, name="Tabung Khairat Kematian")
    db.add(program)
    await db.commit()
    return program


@pytest.fixture
async def claim(db, mosque, member, program) -> Claim:
    claim = Claim(
        mosque_id=mosque.id,
        program_id=program.id,
        claimant_id=member.id,
        title="Khairat kematian bapa",
        requested_amount=100000,
        status="pending",
    )
    db.add(claim)
    await db.commit()
    return claim


@pytest.fixture
async def billplz_provider(db, mosque) -> PaymentProvider:
    context = str(mosque.id)
    provider = PaymentProvider(
        mosque_id=mosque.id,
        provider_type="billplz",
        is_active=True,
        is_sandbox=True,
        billplz_api_key_encrypted=encrypt_sensitive(BILLPLZ_API_KEY, context),
        billplz_x_signature_key_encrypted=encrypt_sensitive(BILLPLZ_X_SIGNATURE_KEY, context),
        billplz_collection_id=BILLPLZ_COLLECTION_ID,
    )
    db.add(provider)
    await db.commit()
    return provider


@pytest.fixture
async def toyyibpay_provider(db, mosque) -> PaymentProvider:
    provider = PaymentProvider(
        mosque_id=mosque.id,
        provider_type="toyyibpay",
        is_active=True,
        is_sandbox=True,
        toyyibpay_secret_key_encrypted=encrypt_sensitive(TOYYIBPAY_SECRET_KEY, str(mosque.id)),
        toyyibpay_category_code=TOYYIBPAY_CATEGORY_CODE,
    )
    db.add(provider)
    await db.commit()
    return provider


@pytest.fixture
async def pending_contribution(db, mosque, program, member) -> Contribution:
    contribution = Contribution(
        mosque_id=mosque.id,
        program_id=program.id,
        contributor_id=member.id,
        contributor_name=member.full_name,
        amount=5000,
        status="pending",
    )
    db.add(contribution)
    await db.commit()
    return contribution


@pytest.fixture
async def billplz_contribution(db, pending_contribution) -> Contribution:
    pending_contribution.payment_method = "billplz"
    pending_contribution.payment_reference = "8x4cgkbz"
    await db.commit()
    return pending_contribution


@pytest.fixture
async def toyyibpay_contribution(db, pending_contribution) -> Contribution:
    pending_contribution.payment_method = "toyyibpay"
    pending_contribution.payment_reference = "k2m9qx7p"
    await db.commit()
    return pending_contribution


@pytest.fixture
async def legacy_records(db, mosque) -> list[LegacyRecord]:
    records = [
        LegacyRecord(
            mosque_id=mosque.id,
            full_name="Ahmad bin Ali",
            ic_passport_number="900101-14-5678",
            amount=2400,
            payment_date=date(2019, 1, 15),
            invoice_number="INV-2019-001",
        ),
        LegacyRecord(
            mosque_id=mosque.id,
            full_name="Ahmad bin Ali",
            ic_passport_number="900101-14-5678",
            amount=2400,
            payment_date=date(2020, 1, 12),
            invoice_number="INV-2020-007",
        ),
        LegacyRecord(
            mosque_id=mosque.id,
            full_name="Ahmad Ali",
            amount=3000,
            payment_date=date(2021, 2, 3),
        ),
    ]
    db.add_all(records)
    await db.commit()
    return records
