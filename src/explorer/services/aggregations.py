from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from explorer.core.models import NO_ENTRYPOINT, TransactionRow


@dataclass(frozen=True)
class Kpis:
    total: int
    callers: int
    avg_fee: float
    last_ts: int


def kpis(rows: Sequence[TransactionRow]) -> Kpis:
    total = len(rows)
    callers = len({r.caller.lower() for r in rows})
    avg_fee = (sum(r.fee for r in rows) / total) if total else 0.0
    last_ts = max((r.timestamp for r in rows), default=0)
    return Kpis(total=total, callers=callers, avg_fee=avg_fee, last_ts=last_ts)


def top_callers(rows: Sequence[TransactionRow], n: int = 10) -> List[Tuple[str, int]]:
    counts = Counter(r.caller.lower() for r in rows)
    return counts.most_common(n)


def method_counts(rows: Sequence[TransactionRow], n: int = 20) -> List[Tuple[str, int]]:
    counts = Counter(r.entrypoint or NO_ENTRYPOINT for r in rows)
    return counts.most_common(n)
