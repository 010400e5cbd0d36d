"""Ledger-ready operation descriptors."""

from dataclasses import dataclass
from typing import Any, Optional, Union

from weighted_amm.core.units import format_amount
from weighted_amm.guard.result import Leg, OperationKind


@dataclass(frozen=True)
class Param:
    """One positional argument of a ledger method.

    Amounts carry both the human-readable decimal string and the integer
    units the ledger expects; token ids carry only ``value``.
    """
    name: str
    value: Union[str, tuple[str, ...]]
    units: Union[int, tuple[int, ...], None] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if isinstance(self.value, tuple):
            data["value"] = list(self.value)
        else:
            data["value"] = self.value
        if isinstance(self.units, tuple):
            data["units"] = [str(u) for u in self.units]
        elif self.units is not None:
            data["units"] = str(self.units)
        return data


@dataclass(frozen=True)
class OperationDescriptor:
    """A complete, self-describing operation for the ledger submitter.

    ``params`` are in ledger call order. ``expected_in`` and ``expected_out``
    are the quoted amounts; ``approvals`` are the spending rights the pool
    needs before submission.
    """
    kind: OperationKind
    pool_id: Optional[str]
    params: tuple[Param, ...]
    expected_in: tuple[Leg, ...]
    expected_out: tuple[Leg, ...]
    approvals: tuple[Leg, ...] = ()

    @property
    def method(self) -> str:
        return self.kind.value

    def param(self, name: str) -> Param:
        for p in self.params:
            if p.name == name:
                return p
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form. Equal descriptors give equal dicts."""

        def legs(items: tuple[Leg, ...]) -> list[dict[str, str]]:
            return [{"token": leg.token, "amount": format_amount(leg.amount)} for leg in items]

        return {
            "method": self.method,
            "pool": self.pool_id,
            "params": [p.to_dict() for p in self.params],
            "expected_in": legs(self.expected_in),
            "expected_out": legs(self.expected_out),
            "approvals": legs(self.approvals),
        }
