"""Shared pytest fixtures for SheetLedger tests.

Tests run against an in-memory SQLite database (via aiosqlite) so they need
no running PostgreSQL. A single shared connection (StaticPool) keeps the
schema alive for the whole test.
"""

from collections.abc import Callable, Sequence
from io import BytesIO
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SHEET_HEADERS: dict[str, list[str]] = {
    "customers": ["CustomerId", "Name", "Email", "Phone"],
    "products": ["ProductId", "ProductName", "Category", "Price"],
    "sales": ["SaleId", "CustomerId", "ProductId", "Quantity", "Total"],
}

WorkbookBuilder = Callable[[dict[str, Sequence[Sequence[Any]]]], bytes]


def build_workbook(sheets: dict[str, Sequence[Sequence[Any]]]) -> bytes:
    """Serialize sheets to .xlsx bytes.

    Known sheet names (any case) get their canonical header row prepended;
    other sheets are written as given.
    """
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(title=name)
        header = SHEET_HEADERS.get(name.lower())
        if header is not None:
            sheet.append(header)
        for row in rows:
            sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_workbook() -> WorkbookBuilder:
    """Build an .xlsx payload from {sheet name: rows}."""
    return build_workbook


@pytest.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    """Create async database session for tests."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
async def client(session_maker):
    """Create async HTTP client with get_db bound to the test database."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.pop(get_db, None)
