"""Async HTTP client for the HR backend's payroll endpoints.

The backend owns persistence, validation and authorization. This client
only shapes requests, parses responses, and turns failures into
BackendError carrying the backend's own message.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from hrms_payroll.api.schemas import (
    BulkUpsertRequest,
    DeductionTypeRecord,
    EntryPayload,
    PayAllRequest,
    PayIndividualRequest,
    PayResult,
    PayrollRow,
)
from hrms_payroll.calculators.types import DeductionType, PayPeriod, PayrollEntry
from hrms_payroll.config import Settings, get_settings

logger = logging.getLogger(__name__)

_ROWS = TypeAdapter(list[PayrollRow])
_DEDUCTION_TYPES = TypeAdapter(list[DeductionTypeRecord])


class BackendError(Exception):
    """Raised when the backend rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None, path: str | None = None):
        self.message = message
        self.status_code = status_code
        self.path = path
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    """Prefer the backend's ``error`` field, then ``detail``, then the raw body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            if body.get(key):
                return str(body[key])

    text = response.text.strip()
    return text or f"Request failed with status code {response.status_code}"


class PayrollBackendClient:
    """Client for the five payroll REST operations.

    Usage:
        async with PayrollBackendClient.from_settings() as client:
            entries = await client.get_entries(PayPeriod(month=3, year=2025))
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> PayrollBackendClient:
        settings = settings or get_settings()
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> PayrollBackendClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_entries(self, period: PayPeriod) -> list[PayrollEntry]:
        """GET /payroll/employees for a period."""
        data = await self._request("GET", "/payroll/employees", params=period.as_params())
        rows = self._parse(_ROWS, data or [], "/payroll/employees")
        logger.debug("Received %d payroll rows for %s", len(rows), period)
        return [row.to_domain(period) for row in rows]

    async def get_deduction_types(self) -> list[DeductionType]:
        """GET /payroll/deduction-types."""
        data = await self._request("GET", "/payroll/deduction-types")
        records = self._parse(_DEDUCTION_TYPES, data or [], "/payroll/deduction-types")
        return [record.to_domain() for record in records]

    async def upsert_entries(
        self,
        period: PayPeriod,
        entries: Sequence[EntryPayload],
        created_by_user_id: int,
    ) -> Any:
        """POST /payroll/entries; idempotent per (assignment, month, year)."""
        body = BulkUpsertRequest(
            month=period.month,
            year=period.year,
            entries=list(entries),
            created_by_user_id=created_by_user_id,
        )
        return await self._request("POST", "/payroll/entries", json=body.model_dump(mode="json"))

    async def pay_individual(
        self,
        period: PayPeriod,
        assignment_id: int,
        employee_id: int,
    ) -> PayResult:
        """POST /payroll/pay-individual for one already-persisted entry."""
        body = PayIndividualRequest(
            month=period.month,
            year=period.year,
            assignment_id=assignment_id,
            employee_id=employee_id,
        )
        data = await self._request(
            "POST", "/payroll/pay-individual", json=body.model_dump(mode="json")
        )
        return self._parse(PayResult, data or {}, "/payroll/pay-individual")

    async def pay_all(self, period: PayPeriod) -> PayResult:
        """POST /payroll/pay-all; the backend pays every unpaid entry in the period."""
        body = PayAllRequest(month=period.month, year=period.year)
        data = await self._request("POST", "/payroll/pay-all", json=body.model_dump(mode="json"))
        return self._parse(PayResult, data or {}, "/payroll/pay-all")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise BackendError(str(exc) or exc.__class__.__name__, path=path) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "%s %s rejected with %d: %s", method, path, response.status_code, message
            )
            raise BackendError(message, status_code=response.status_code, path=path)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(
                f"Backend returned invalid JSON for {path}",
                status_code=response.status_code,
                path=path,
            ) from exc

    @staticmethod
    def _parse(model: Any, data: Any, path: str) -> Any:
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            return model.model_validate(data)
        except ValidationError as exc:
            raise BackendError(f"Unexpected response shape from {path}: {exc}", path=path) from exc
