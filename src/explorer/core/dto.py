from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class BlockHeader:
    block_number: int
    timestamp: Optional[int]


@dataclass(frozen=True)
class EmittedEvent:
    from_address: str
    keys: List[str] = field(default_factory=list)
    data: List[str] = field(default_factory=list)
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class EventsPage:
    events: List[EmittedEvent]
    continuation_token: Optional[str] = None


@dataclass(frozen=True)
class Receipt:
    transaction_hash: str
    block_number: Optional[int] = None
    type: Optional[str] = None
    sender_address: Optional[str] = None
    fee_amount: Optional[str] = None       # hex string, e.g. "0x10"
    execution_status: Optional[str] = None
    revert_reason: Optional[str] = None
    events: List[EmittedEvent] = field(default_factory=list)


@dataclass(frozen=True)
class NodeTransaction:
    transaction_hash: str
    type: Optional[str] = None
    sender_address: Optional[str] = None
    contract_address: Optional[str] = None
    entry_point_selector: Optional[str] = None
    entry_point_selector_name: Optional[str] = None


@dataclass(frozen=True)
class BlockWithTxs:
    block_number: int
    timestamp: Optional[int]
    transactions: List[NodeTransaction] = field(default_factory=list)


# Execution traces

@dataclass(frozen=True)
class FunctionInvocation:
    contract_address: str
    entry_point_selector: Optional[str] = None
    caller_address: Optional[str] = None
    calls: List["FunctionInvocation"] = field(default_factory=list)


@dataclass(frozen=True)
class InvokeTrace:
    # None when the execution reverted
    execute_invocation: Optional[FunctionInvocation] = None

    def roots(self) -> List[FunctionInvocation]:
        return [self.execute_invocation] if self.execute_invocation else []


@dataclass(frozen=True)
class DeployAccountTrace:
    constructor_invocation: Optional[FunctionInvocation] = None

    def roots(self) -> List[FunctionInvocation]:
        return [self.constructor_invocation] if self.constructor_invocation else []


@dataclass(frozen=True)
class L1HandlerTrace:
    function_invocation: Optional[FunctionInvocation] = None

    def roots(self) -> List[FunctionInvocation]:
        return [self.function_invocation] if self.function_invocation else []


@dataclass(frozen=True)
class DeclareTrace:
    validate_invocation: Optional[FunctionInvocation] = None

    def roots(self) -> List[FunctionInvocation]:
        return [self.validate_invocation] if self.validate_invocation else []


TransactionTrace = Union[InvokeTrace, DeployAccountTrace, L1HandlerTrace, DeclareTrace]
