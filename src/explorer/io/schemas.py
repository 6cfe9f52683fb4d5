from __future__ import annotations

from typing import Any, Dict, List

from explorer.core.models import QueryResult, TransactionRow

ROW_FIELDS = [
    "timestamp",
    "tx_hash",
    "kind",
    "entrypoint",
    "caller",
    "target_address",
    "fee",
    "status",
    "network",
]


def row_to_dict(r: TransactionRow) -> Dict[str, Any]:
    return {
        "timestamp": r.timestamp,
        "tx_hash": r.tx_hash,
        "kind": r.kind.value,
        "entrypoint": r.entrypoint,
        "caller": r.caller,
        "target_address": r.target_address,
        # keep as string for JSON precision safety (fees exceed 2**53)
        "fee": str(r.fee),
        "status": r.status.value,
        "network": r.network.value,
    }


def result_to_dict(res: QueryResult) -> Dict[str, Any]:
    rows: List[Dict[str, Any]] = [row_to_dict(r) for r in res.rows]
    return {
        "rows": rows,
        "total_estimated": res.total_estimated,
        "has_more": res.has_more,
        "trace_complete": res.trace_complete,
        "budget_exhausted": res.budget_exhausted,
    }
