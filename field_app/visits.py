from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from backend.api import ApiService
from common.errors import (
    LocationAcquisitionFailed,
    LocationError,
    LocationUnavailable,
    SubmissionBlocked,
    VisitValidationError,
)
from common.logging_setup import fields, get_logger
from common.types import ResolvedLocation
from positioning.sampler import LocationSampler


log = get_logger("field_app.visits")

DEFAULT_SKUS = ("Chicken", "Beef", "Supa Mojo")
OTHER_REASON = "Other"


@dataclass
class Agent:
    national_id: str
    name: str


@dataclass
class VisitForm:
    """
    What the agent filled in for one shop visit.

    Attributes:
        region, shop: where the visit happened
        sold: "Yes" or "No"
        skus: SKU name -> cartons sold (only used when sold == "Yes")
        reason: why nothing was sold (only used when sold == "No")
        other_reason: free text when reason == "Other"
        selfie: captured photo as a data URL
    """
    region: str = ""
    shop: str = ""
    sold: str = ""
    skus: Dict[str, int] = field(default_factory=dict)
    reason: str = ""
    other_reason: str = ""
    selfie: str = ""


def validate(form: VisitForm) -> Tuple[List[Dict[str, Any]], str]:
    """
    Check a form and return (skus_payload, reason).

    Raises VisitValidationError carrying the message shown to the agent.
    """
    if not form.selfie:
        raise VisitValidationError("Capture selfie")

    skus: List[Dict[str, Any]] = []
    if form.sold == "Yes":
        skus = [{"name": name, "qty": int(qty)} for name, qty in form.skus.items() if int(qty) > 0]
        if not skus:
            raise VisitValidationError("Select SKU quantity")

    reason = ""
    if form.sold == "No":
        if not form.reason:
            raise VisitValidationError("Select reason")
        reason = form.other_reason.strip() if form.reason == OTHER_REASON else form.reason
        if not reason:
            raise VisitValidationError("Specify reason")
    return skus, reason


def user_message(exc: LocationError) -> str:
    """Actionable text for a blocked submission."""
    if isinstance(exc, LocationUnavailable):
        return "This device cannot provide a location. Enable GPS to continue."
    if isinstance(exc, LocationAcquisitionFailed):
        return "Could not get your location. Enable GPS to continue, or move to open sky and retry."
    return "Enable GPS to continue."


def build_record(
    agent: Agent,
    form: VisitForm,
    location: ResolvedLocation,
    skus: List[Dict[str, Any]],
    reason: str,
) -> Dict[str, Any]:
    """Visit record in the backend's field naming."""
    return {
        "nationalID": agent.national_id,
        "name": agent.name,
        "region": form.region,
        "shopName": form.shop,
        "sold": form.sold,
        "skus": skus,
        "reason": reason,
        "longitude": location.longitude,
        "latitude": location.latitude,
        "selfie": form.selfie,
    }


class VisitSubmitter:
    """
    Validate -> locate -> send.

    The form is validated before any location request is issued.
    """

    def __init__(self, api: ApiService, sampler: LocationSampler, sampler_kwargs: Optional[Dict[str, Any]] = None):
        self.api = api
        self.sampler = sampler
        self.sampler_kwargs = dict(sampler_kwargs or {})

    def locate(self) -> ResolvedLocation:
        try:
            return self.sampler.acquire(**self.sampler_kwargs)
        except LocationError as e:
            log.warning("submission blocked: %s", e, extra=fields(error=type(e).__name__))
            raise SubmissionBlocked(user_message(e), cause=e) from e

    def submit(self, agent: Agent, form: VisitForm) -> Any:
        skus, reason = validate(form)
        location = self.locate()
        record = build_record(agent, form, location, skus, reason)
        result = self.api.save_visit(record)
        log.info(
            "visit submitted",
            extra=fields(nationalID=agent.national_id, shop=form.shop, sold=form.sold,
                         lat=location.latitude, lon=location.longitude),
        )
        return result
