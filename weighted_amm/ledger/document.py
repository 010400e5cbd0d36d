"""JSON snapshot documents.

A snapshot document looks like::

    {
      "pool": "0xpool",
      "tokens": [{"id": "0xdt", "reserve": "100", "weight": "3", "decimals": 18}, ...],
      "fee": "0.003",
      "totalShareSupply": "100",
      "finalized": true
    }

Amounts are decimal strings. ``decimals`` is optional.
"""

from typing import Any, Mapping, Optional

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import ValidationError
from weighted_amm.core.pool import PoolSnapshot, TokenRecord
from weighted_amm.core.units import format_amount, resolve_decimals


def snapshot_from_document(data: Mapping[str, Any], pool_id: Optional[str] = None) -> PoolSnapshot:
    try:
        tokens = tuple(
            TokenRecord(
                token=str(entry["id"]),
                reserve=fp.to_decimal(entry["reserve"]),
                weight=fp.to_decimal(entry["weight"]),
                decimals=resolve_decimals(entry.get("decimals")),
            )
            for entry in data["tokens"]
        )
        return PoolSnapshot(
            pool_id=pool_id or str(data["pool"]),
            tokens=tokens,
            swap_fee=fp.to_decimal(data["fee"]),
            total_supply=fp.to_decimal(data["totalShareSupply"]),
            finalized=bool(data.get("finalized", True)),
        )
    except (KeyError, TypeError) as e:
        raise ValidationError(f"Malformed snapshot document: {e!r}") from e


def snapshot_to_document(snapshot: PoolSnapshot) -> dict[str, Any]:
    return {
        "pool": snapshot.pool_id,
        "tokens": [
            {
                "id": t.token,
                "reserve": format_amount(t.reserve),
                "weight": format_amount(t.weight),
                "decimals": t.decimals,
            }
            for t in snapshot.tokens
        ],
        "fee": format_amount(snapshot.swap_fee),
        "totalShareSupply": format_amount(snapshot.total_supply),
        "finalized": snapshot.finalized,
    }
