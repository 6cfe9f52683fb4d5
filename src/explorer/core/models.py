from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional


class Network(str, Enum):
    MAINNET = "mainnet"
    SEPOLIA = "sepolia"


class TxKind(str, Enum):
    INVOKE = "INVOKE"
    DECLARE = "DECLARE"
    DEPLOY = "DEPLOY"
    L1_HANDLER = "L1_HANDLER"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "TxKind":
        value = (raw or "INVOKE").upper()
        if value == "DECLARE":
            return cls.DECLARE
        if value in ("DEPLOY", "DEPLOY_ACCOUNT"):
            return cls.DEPLOY
        if value == "L1_HANDLER":
            return cls.L1_HANDLER
        return cls.INVOKE


class TxStatus(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# Rows without an entrypoint are matched against this token by the method filter
NO_ENTRYPOINT = "—"


@dataclass(frozen=True)
class TransactionRow:
    """
    One interaction with the inspected contract.
    """

    timestamp: int
    tx_hash: str
    kind: TxKind
    entrypoint: Optional[str]
    caller: str
    target_address: str
    fee: int
    status: TxStatus
    network: Network


# Query models

@dataclass(frozen=True)
class InteractionFilters:
    kind: Optional[TxKind] = None
    method: Optional[str] = None
    status: Optional[TxStatus] = None
    min_fee: Optional[int] = None
    max_fee: Optional[int] = None


@dataclass(frozen=True)
class InteractionQuery:
    """
    User input for one discovery run.
    """

    address: str
    network: Network = Network.MAINNET
    from_ts: Optional[int] = None      # seconds since epoch, inclusive
    to_ts: Optional[int] = None        # seconds since epoch, inclusive
    page: int = 1
    page_size: int = 50
    filters: InteractionFilters = field(default_factory=InteractionFilters)

    # None = use settings.TRACE_LOOKUP_BUDGET
    trace_lookup_budget: Optional[int] = None

    @property
    def match_threshold(self) -> int:
        return self.page * self.page_size


@dataclass
class QueryResult:
    rows: List[TransactionRow] = field(default_factory=list)

    # lower bound: discovery may stop before the full range was scanned
    total_estimated: int = 0
    has_more: bool = False

    trace_complete: bool = True
    budget_exhausted: bool = False


# Observability

@dataclass(frozen=True)
class LogEntry:
    level: str      # info | warn | error
    message: str


LogSink = Callable[[LogEntry], None]
