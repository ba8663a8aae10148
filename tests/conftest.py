"""Pytest fixtures for payroll desk tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport

from hrms_payroll.api.client import PayrollBackendClient
from hrms_payroll.config import Settings
from hrms_payroll.services.payroll_service import PayrollService
from tests.fake_backend import FEB_2025, ROWS_FEB_2025, TODAY, FakePayrollBackend


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the in-process backend, with no settle delay."""
    return Settings(
        api_base_url="http://test/api",
        request_timeout=5.0,
        created_by_user_id=7,
        reconcile_delay_seconds=0.0,
        log_level="DEBUG",
    )


@pytest.fixture
def backend() -> FakePayrollBackend:
    """Fake backend seeded with February 2025."""
    fake = FakePayrollBackend()
    fake.seed(FEB_2025.month, FEB_2025.year, ROWS_FEB_2025)
    return fake


@pytest.fixture
def client_factory(backend: FakePayrollBackend):
    """Build clients that talk to the fake backend."""

    def factory(settings: Settings) -> PayrollBackendClient:
        return PayrollBackendClient.from_settings(
            settings, transport=ASGITransport(app=backend.app)
        )

    return factory


@pytest_asyncio.fixture
async def client(
    client_factory, settings: Settings
) -> AsyncGenerator[PayrollBackendClient, None]:
    """HTTP client for the fake backend."""
    async with client_factory(settings) as client:
        yield client


@pytest_asyncio.fixture
async def service(client: PayrollBackendClient, settings: Settings) -> PayrollService:
    """Payroll service with February 2025 loaded and a fixed clock."""
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    service = PayrollService(client, settings=settings, clock=lambda: TODAY, sleep=fake_sleep)
    service.slept = slept
    await service.load_period(FEB_2025)
    return service
