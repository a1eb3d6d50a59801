from __future__ import annotations

"""
Admin review helpers over records returned by the backend.

Visits and uplifts arrive as plain dicts in the backend's field naming
(`timestamp`, `name`, `nationalID`, ...). Everything here is pure data logic;
fetching goes through backend.api.ApiService.

Usage:
    flt = ReviewFilter(year=2026, month=5, salesperson="jane")
    visits = filter_records(api.get_all_visits(), flt)
    summary = api.get_admin_summary(flt.summary_params("visits"))
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from common.utils import parse_iso8601


Record = Dict[str, Any]


@dataclass(frozen=True)
class ReviewFilter:
    """
    Dashboard filter.

    Attributes:
        year: calendar year to keep
        month: 1..12, or None for the whole year
        salesperson: case-insensitive substring of the agent's name or national ID
    """
    year: int
    month: Optional[int] = None
    salesperson: Optional[str] = None

    def __post_init__(self) -> None:
        if self.month is not None and not 1 <= int(self.month) <= 12:
            raise ValueError("month must be in 1..12")

    def matches(self, record: Record) -> bool:
        ts = parse_iso8601(record.get("timestamp"))
        if ts is None:
            return False
        if ts.year != int(self.year):
            return False
        if self.month is not None and ts.month != int(self.month):
            return False
        if self.salesperson:
            needle = self.salesperson.lower()
            name = str(record.get("name") or "").lower()
            nid = str(record.get("nationalID") or "").lower()
            if needle not in name and needle not in nid:
                return False
        return True

    def summary_params(self, kind: str) -> Dict[str, Any]:
        """Params for the `adminSummary` action."""
        return {
            "type": kind,
            "month": None if self.month is None else int(self.month),
            "year": int(self.year),
            "salesperson": self.salesperson or None,
        }

    def sku_params(self) -> Dict[str, Any]:
        """Params for the `getSKUAnalysis` action."""
        return {"month": None if self.month is None else int(self.month), "year": int(self.year)}


def filter_records(records: Iterable[Record], flt: ReviewFilter) -> List[Record]:
    """Visits or uplifts that pass the filter; records without a usable timestamp are dropped."""
    return [r for r in records if flt.matches(r)]


def salespeople(visits: Iterable[Record]) -> List[str]:
    """Sorted unique agent names."""
    return sorted({str(v["name"]) for v in visits if v.get("name")})


def users_from_visits(visits: Iterable[Record]) -> List[Dict[str, str]]:
    """
    One entry per national ID, first-seen order, for target setting.
    Name falls back to the national ID.
    """
    users: Dict[str, Dict[str, str]] = {}
    for v in visits:
        nid = v.get("nationalID")
        if nid and nid not in users:
            users[nid] = {"nationalID": nid, "name": v.get("name") or nid}
    return list(users.values())


def summary_totals(summary: Dict[str, Any]) -> Dict[str, float]:
    """Sum visits/sold/cartons over the `users` rows of an adminSummary answer."""
    totals = {"visits": 0, "sold": 0, "cartons": 0}
    for row in summary.get("users") or []:
        for key in totals:
            totals[key] += row.get(key) or 0
    return totals
