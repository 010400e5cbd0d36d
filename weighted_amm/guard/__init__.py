"""Guards that approve or reject pool operations before submission."""

from weighted_amm.guard.guards import GuardLayer
from weighted_amm.guard.result import Approved, GuardResult, Leg, OperationKind, Rejected

__all__ = [
    "GuardLayer",
    "Approved",
    "Rejected",
    "GuardResult",
    "Leg",
    "OperationKind",
]
