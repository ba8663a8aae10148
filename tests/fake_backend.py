"""In-process stand-in for the HR backend's payroll endpoints.

Served to the client through httpx.ASGITransport. Keeps rows in memory,
records every call, and can simulate stale reads and endpoint failures.
"""

from __future__ import annotations

import copy
from datetime import date
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hrms_payroll.calculators.types import PayPeriod

DEFAULT_PAY_DATE = "2025-02-28"

# February 2025 has 20 weekdays -> 160 expected hours
FEB_2025 = PayPeriod(month=2, year=2025)
TODAY = date(2025, 3, 3)

ROWS_FEB_2025 = [
    {
        "employee_id": 1,
        "employee_name": "Amira Haddad",
        "assignment_id": 11,
        "payroll_entry_id": None,
        "gross_salary": 5000,
        "bonus_amount": 200,
        "hour_variance": -2,
        "net_salary": 0,
        "run_status": None,
        "pay_date": None,
        "remarks": None,
        "deductions": [
            {
                "deduction_type_id": 3,
                "deduction_type_name": "Salary Advance",
                "amount": 150,
                "reason": "January advance",
                "effective_date": "2025-02-01",
            }
        ],
    },
    {
        "employee_id": 2,
        "employee_name": "Bongani Dlamini",
        "assignment_id": 12,
        "payroll_entry_id": 501,
        "gross_salary": 3200,
        "bonus_amount": 0,
        "hour_variance": 6,
        "net_salary": 3200,
        "run_status": "draft ",
        "pay_date": None,
        "remarks": "Overtime in week 2",
        "deductions": [],
    },
    {
        "employee_id": 3,
        "employee_name": "Chen Wei",
        "assignment_id": 13,
        "payroll_entry_id": 502,
        "gross_salary": 4000,
        "bonus_amount": 0,
        "hour_variance": 0,
        "net_salary": 4000,
        "run_status": "processed",
        "pay_date": "2025-02-27",
        "remarks": None,
        "deductions": [],
    },
]


class FakePayrollBackend:
    """Payroll endpoints backed by dicts."""

    def __init__(self) -> None:
        self.rows: dict[tuple[int, int], list[dict[str, Any]]] = {}
        self.deduction_types: list[dict[str, Any]] = [
            {"deduction_type_id": 3, "name": "Salary Advance"},
            {"deduction_type_id": 4, "name": "Loan Repayment"},
        ]
        self.calls: list[tuple[str, str, Any]] = []
        self.failures: dict[str, tuple[int, Any]] = {}
        self.pay_date: str | None = DEFAULT_PAY_DATE
        self.stale_reads = 0
        self._stale_snapshot: dict[tuple[int, int], list[dict[str, Any]]] | None = None
        self._next_entry_id = 900
        self.app = self._build_app()

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed(self, month: int, year: int, rows: list[dict[str, Any]]) -> None:
        self.rows[(year, month)] = copy.deepcopy(rows)

    def row(self, month: int, year: int, assignment_id: int) -> dict[str, Any]:
        return next(r for r in self.rows[(year, month)] if r["assignment_id"] == assignment_id)

    def fail(self, path: str, status_code: int = 500, body: Any = None) -> None:
        self.failures[path] = (status_code, body if body is not None else {"error": "Boom"})

    def lag_next_reads(self, count: int) -> None:
        """Answer the next ``count`` listings from the state before the next pay."""
        self.stale_reads = count

    def calls_to(self, path: str) -> list[Any]:
        return [body for _, p, body in self.calls if p == path]

    @property
    def paths(self) -> list[str]:
        return [path for _, path, _ in self.calls]

    # ------------------------------------------------------------------
    # App
    # ------------------------------------------------------------------

    def _failure(self, path: str) -> JSONResponse | None:
        if path in self.failures:
            status_code, body = self.failures[path]
            return JSONResponse(status_code=status_code, content=body)
        return None

    def _snapshot_for_lag(self) -> None:
        if self.stale_reads:
            self._stale_snapshot = copy.deepcopy(self.rows)

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.get("/api/payroll/employees")
        async def list_employees(month: int, year: int):
            self.calls.append(("GET", "/payroll/employees", {"month": month, "year": year}))
            failure = self._failure("/payroll/employees")
            if failure is not None:
                return failure
            if self._stale_snapshot is not None and self.stale_reads > 0:
                self.stale_reads -= 1
                rows = self._stale_snapshot.get((year, month), [])
                if self.stale_reads == 0:
                    self._stale_snapshot = None
                return rows
            return self.rows.get((year, month), [])

        @app.get("/api/payroll/deduction-types")
        async def deduction_types():
            self.calls.append(("GET", "/payroll/deduction-types", None))
            failure = self._failure("/payroll/deduction-types")
            if failure is not None:
                return failure
            return self.deduction_types

        @app.post("/api/payroll/entries")
        async def upsert_entries(request: Request):
            body = await request.json()
            self.calls.append(("POST", "/payroll/entries", body))
            failure = self._failure("/payroll/entries")
            if failure is not None:
                return failure

            names = {t["deduction_type_id"]: t["name"] for t in self.deduction_types}
            period_rows = self.rows.setdefault((body["year"], body["month"]), [])
            for entry in body["entries"]:
                row = next(
                    (r for r in period_rows if r["assignment_id"] == entry["assignment_id"]),
                    None,
                )
                if row is None:
                    continue
                if row.get("payroll_entry_id") is None:
                    self._next_entry_id += 1
                    row["payroll_entry_id"] = self._next_entry_id
                for key in ("gross_salary", "bonus_amount", "hour_variance", "net_salary", "remarks"):
                    row[key] = entry[key]
                row["deductions"] = [
                    {**d, "deduction_type_name": names.get(d["deduction_type_id"], "")}
                    for d in entry["deductions"]
                ]
            return {"message": "Payroll entries saved", "count": len(body["entries"])}

        @app.post("/api/payroll/pay-individual")
        async def pay_individual(request: Request):
            body = await request.json()
            self.calls.append(("POST", "/payroll/pay-individual", body))
            failure = self._failure("/payroll/pay-individual")
            if failure is not None:
                return failure

            self._snapshot_for_lag()
            row = self.row(body["month"], body["year"], body["assignment_id"])
            row["run_status"] = "PAID"
            row["pay_date"] = self.pay_date
            return {"pay_date": self.pay_date, "status": "PAID"}

        @app.post("/api/payroll/pay-all")
        async def pay_all(request: Request):
            body = await request.json()
            self.calls.append(("POST", "/payroll/pay-all", body))
            failure = self._failure("/payroll/pay-all")
            if failure is not None:
                return failure

            self._snapshot_for_lag()
            for row in self.rows.get((body["year"], body["month"]), []):
                if str(row.get("run_status") or "").strip().upper() not in ("PAID", "APPROVED", "PROCESSED"):
                    row["run_status"] = "PAID"
                    row["pay_date"] = self.pay_date
            return {"pay_date": self.pay_date}

        return app
