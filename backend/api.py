from __future__ import annotations

"""
Client for the spreadsheet-backed field-sales backend.

The backend exposes ONE endpoint. Every call is a POST whose JSON body carries
an `action` key plus that action's arguments; the answer is JSON. All business
logic (auth, stock balances, targets, aggregation) lives on the other side.

Usage:
    api = ApiService()  # requires FIELD_SALES_BACKEND_URL in env or base_url=...
    user = api.login("12345678", "secret")
    api.save_visit(record)
"""

import json
import os
from typing import Any, Dict, Optional

import requests

from common.errors import BackendError
from common.logging_setup import fields, get_logger


log = get_logger("backend.api")


class ApiService:
    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ):
        """
        Params:
            base_url: backend endpoint (falls back to env FIELD_SALES_BACKEND_URL)
            session: optional requests.Session for connection reuse
            timeout: per-request timeout in seconds
        """
        self.base_url = base_url or os.getenv("FIELD_SALES_BACKEND_URL")
        if not self.base_url:
            raise ValueError(
                "Backend URL is required. "
                "Set FIELD_SALES_BACKEND_URL environment variable or pass base_url=..."
            )
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    # ----------------------------
    # Transport
    # ----------------------------
    def request(self, payload: Dict[str, Any]) -> Any:
        """
        POST one action and return the decoded JSON answer.
        Body goes out as text/plain, the content type the web-app endpoint accepts.
        """
        action = payload.get("action", "?")
        try:
            r = self.session.post(
                self.base_url,
                data=json.dumps(payload),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error("backend request failed: %s", e, extra=fields(action=action))
            raise BackendError(f"{action}: backend unreachable: {e}") from e

        if r.status_code != 200:
            log.warning("backend answered %s for %s: %s", r.status_code, action, r.text[:200])
            raise BackendError(f"{action}: backend error {r.text[:200]}", status=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise BackendError(f"{action}: response is not JSON", status=r.status_code) from e

    # ----------------------------
    # Field agent actions
    # ----------------------------
    def login(self, national_id: str, password: str) -> Any:
        return self.request({"action": "login", "nationalID": national_id, "password": password})

    def save_visit(self, record: Dict[str, Any]) -> Any:
        log.info(
            "saving visit",
            extra=fields(nationalID=record.get("nationalID"), shop=record.get("shopName")),
        )
        return self.request({"action": "saveVisit", "record": record})

    def get_dashboard(self, national_id: str) -> Any:
        return self.request({"action": "dashboard", "nationalID": national_id})

    # ----------------------------
    # Admin actions
    # ----------------------------
    def get_all_visits(self) -> Any:
        return self.request({"action": "getAllVisits"})

    def get_admin_summary(self, params: Dict[str, Any]) -> Any:
        return self.request({"action": "adminSummary", "params": params})

    def get_sku_analysis(self, params: Dict[str, Any]) -> Any:
        return self.request({"action": "getSKUAnalysis", "params": params})

    def get_all_uplift_visits(self) -> Any:
        return self.request({"action": "getAllUpliftVisits"})

    def get_pending_uplifts(self) -> Any:
        return self.request({"action": "getPendingUplifts"})

    def approve_uplift(self, row_index: int, approved_by: str) -> Any:
        return self.request({"action": "approveUplift", "rowIndex": int(row_index), "approvedBy": approved_by})

    def reject_uplift(self, row_index: int, reason: str, rejected_by: str) -> Any:
        if not reason or not reason.strip():
            raise ValueError("A rejection reason is required")
        return self.request({
            "action": "rejectUplift",
            "rowIndex": int(row_index),
            "reason": reason.strip(),
            "rejectedBy": rejected_by,
        })

    def get_all_targets(self) -> Any:
        return self.request({"action": "getAllTargets"})

    def set_user_targets(
        self,
        national_id: str,
        name: str,
        daily_target: Optional[float],
        weekly_target: Optional[float],
        monthly_target: Optional[float],
    ) -> Any:
        return self.request({
            "action": "setUserTargets",
            "nationalID": national_id,
            "name": name,
            "dailyTarget": daily_target,
            "weeklyTarget": weekly_target,
            "monthlyTarget": monthly_target,
        })
