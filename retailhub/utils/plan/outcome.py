# retailhub/utils/plan/outcome.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PlanErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    NOT_ASSIGNED = "NotAssigned"
    PAYMENT_REQUIRED = "PaymentRequired"
    EXPIRED = "Expired"
    STILL_VALID = "StillValid"
    NOT_PAUSED = "NotPaused"
    NO_PRIMARY_PLAN = "NoPrimaryPlan"
    NO_PLAN = "NoPlan"
    INSUFFICIENT_CAPACITY = "InsufficientCapacity"
    NOT_ELIGIBLE = "NotEligible"
    INVALID_REQUEST = "InvalidRequest"
    RETRYABLE = "Retryable"
    INTERNAL = "Internal"


# PlanErrorKind -> HTTP_STATUS_CODES key
KIND_STATUS_CODES = {
    PlanErrorKind.NOT_FOUND: "NOT_FOUND",
    PlanErrorKind.NOT_ASSIGNED: "NOT_FOUND",
    PlanErrorKind.PAYMENT_REQUIRED: "PAYMENT_REQUIRED",
    PlanErrorKind.EXPIRED: "BAD_REQUEST",
    PlanErrorKind.STILL_VALID: "CONFLICT",
    PlanErrorKind.NOT_PAUSED: "CONFLICT",
    PlanErrorKind.NO_PRIMARY_PLAN: "NOT_FOUND",
    PlanErrorKind.NO_PLAN: "PAYMENT_REQUIRED",
    PlanErrorKind.INSUFFICIENT_CAPACITY: "FORBIDDEN",
    PlanErrorKind.NOT_ELIGIBLE: "BAD_REQUEST",
    PlanErrorKind.INVALID_REQUEST: "BAD_REQUEST",
    PlanErrorKind.RETRYABLE: "SERVICE_UNAVAILABLE",
    PlanErrorKind.INTERNAL: "INTERNAL_SERVER_ERROR",
}


@dataclass(frozen=True)
class PlanOutcome:
    """Result of a plan engine operation; business failures are values, not exceptions."""
    success: bool
    message: str
    kind: Optional[PlanErrorKind] = None
    data: Optional[Dict[str, Any]] = None
    status_code: str = "OK"

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None, status_code: str = "OK") -> "PlanOutcome":
        return cls(success=True, message=message, data=data, status_code=status_code)

    @classmethod
    def fail(cls, kind: PlanErrorKind, message: str, data: Optional[Dict[str, Any]] = None) -> "PlanOutcome":
        return cls(
            success=False,
            message=message,
            kind=kind,
            data=data,
            status_code=KIND_STATUS_CODES[kind],
        )
