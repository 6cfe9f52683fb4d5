from __future__ import annotations

import copy
import itertools
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import requests

from explorer.config import settings
from explorer.adapters.node.rate_limiter import TokenBucketRateLimiter
from explorer.adapters.node.retry import RetryPolicy
from explorer.core.activity import ActivityLog
from explorer.core.dto import (
    BlockHeader,
    BlockWithTxs,
    DeclareTrace,
    DeployAccountTrace,
    EmittedEvent,
    EventsPage,
    FunctionInvocation,
    InvokeTrace,
    L1HandlerTrace,
    NodeTransaction,
    Receipt,
    TransactionTrace,
)
from explorer.core.errors import DataSourceError, NodeError, RateLimitError
from explorer.ports.node_port import NodePort

logger = logging.getLogger(__name__)

# Starknet JSON-RPC error codes
TXN_HASH_NOT_FOUND = 29


@lru_cache(maxsize=None)
def shared_rate_limiter() -> TokenBucketRateLimiter:
    """Process-wide limiter built once from settings."""
    return TokenBucketRateLimiter(settings.REQUESTS_PER_SEC, settings.MAX_CONCURRENCY)


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.RETRY_MAX_ATTEMPTS,
        max_duration_sec=settings.RETRY_MAX_DURATION_SEC,
        base_delay_sec=settings.RETRY_BASE_DELAY_SEC,
        max_delay_sec=settings.RETRY_MAX_DELAY_SEC,
    )


class RpcNodeAdapter(NodePort):

    def __init__(
        self,
        network: str = "mainnet",
        rpc_url: Optional[str] = None,
        limiter: Optional[TokenBucketRateLimiter] = None,
        retry: Optional[RetryPolicy] = None,
        timeout_sec: float = settings.RPC_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ) -> None:
        url = rpc_url or settings.RPC_URLS.get(getattr(network, "value", network))
        if not url:
            raise DataSourceError(f"No RPC endpoint configured for network {network!r}")
        self._rpc_url = url
        self._timeout = timeout_sec
        self._limiter = limiter or shared_rate_limiter()
        self._retry = retry or default_retry_policy()
        self._session = session or requests.Session()
        self._activity = ActivityLog(logger)
        self._ids = itertools.count(1)

    def with_activity(self, activity: ActivityLog) -> "RpcNodeAdapter":
        bound = copy.copy(self)
        bound._activity = activity
        return bound

    # ---------- internal ----------

    def _post(self, method: str, params: Dict[str, Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = self._session.post(self._rpc_url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise DataSourceError(f"{method} transport failure: {e}") from e

        if resp.status_code == 429:
            raise RateLimitError(
                f"{method}: HTTP 429",
                status_code=429,
                retry_after=resp.headers.get("Retry-After"),
            )
        try:
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise DataSourceError(f"{method} failed: {e}") from e

        err = data.get("error") if isinstance(data, dict) else None
        if err:
            code = err.get("code")
            message = str(err.get("message", "unknown error"))
            if code == 429 or "rate limit" in message.lower():
                raise RateLimitError(
                    f"{method}: {message}",
                    status_code=None,
                    retry_after=resp.headers.get("Retry-After"),
                )
            raise NodeError(f"{method}: {message}", code=code)

        if not isinstance(data, dict) or "result" not in data:
            raise DataSourceError(f"Invalid {method} response: {data}")
        return data["result"]

    def _call(self, method: str, params: Dict[str, Any]) -> Any:
        # every attempt goes through the limiter; backoff sleeps hold no slot
        return self._retry.with_retry(
            lambda: self._limiter.schedule(
                lambda: self._post(method, params), label=method, activity=self._activity
            ),
            label=method,
            activity=self._activity,
        )

    @staticmethod
    def _int(val: Any) -> Optional[int]:
        if val is None:
            return None
        try:
            return int(val, 0) if isinstance(val, str) else int(val)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _block_id(block_number: int) -> Dict[str, int]:
        return {"block_number": int(block_number)}

    @classmethod
    def _event(cls, e: Dict[str, Any]) -> EmittedEvent:
        return EmittedEvent(
            from_address=str(e.get("from_address") or ""),
            keys=list(e.get("keys") or []),
            data=list(e.get("data") or []),
            transaction_hash=e.get("transaction_hash"),
            block_number=cls._int(e.get("block_number")),
        )

    @classmethod
    def _transaction(cls, t: Dict[str, Any]) -> NodeTransaction:
        return NodeTransaction(
            transaction_hash=str(t.get("transaction_hash") or ""),
            type=t.get("type"),
            sender_address=t.get("sender_address"),
            contract_address=t.get("contract_address"),
            entry_point_selector=t.get("entry_point_selector"),
            entry_point_selector_name=t.get("entry_point_selector_name"),
        )

    @classmethod
    def _invocation(cls, raw: Any) -> Optional[FunctionInvocation]:
        # reverted executions carry {"revert_reason": ...} instead of an invocation
        if not isinstance(raw, dict) or "contract_address" not in raw:
            return None
        calls = [cls._invocation(c) for c in (raw.get("calls") or [])]
        return FunctionInvocation(
            contract_address=str(raw.get("contract_address") or ""),
            entry_point_selector=raw.get("entry_point_selector"),
            caller_address=raw.get("caller_address"),
            calls=[c for c in calls if c is not None],
        )

    # ---------- port methods ----------

    def get_latest_block(self) -> BlockHeader:
        raw = self._call("starknet_getBlockWithTxHashes", {"block_id": "latest"})
        return BlockHeader(
            block_number=self._int(raw.get("block_number")) or 0,
            timestamp=self._int(raw.get("timestamp")),
        )

    def get_block(self, block_number: int) -> BlockHeader:
        raw = self._call("starknet_getBlockWithTxHashes", {"block_id": self._block_id(block_number)})
        return BlockHeader(
            block_number=int(block_number),
            timestamp=self._int(raw.get("timestamp")),
        )

    def get_block_with_txs(self, block_number: int) -> BlockWithTxs:
        raw = self._call("starknet_getBlockWithTxs", {"block_id": self._block_id(block_number)})
        txs = raw.get("transactions") if isinstance(raw.get("transactions"), list) else []
        return BlockWithTxs(
            block_number=int(block_number),
            timestamp=self._int(raw.get("timestamp")),
            transactions=[self._transaction(t) for t in txs if isinstance(t, dict)],
        )

    def get_events(
        self,
        address: str,
        from_block: Optional[int],
        to_block: Optional[int],
        chunk_size: int,
        continuation_token: Optional[str] = None,
    ) -> EventsPage:
        flt: Dict[str, Any] = {"address": address, "chunk_size": int(chunk_size)}
        if from_block is not None:
            flt["from_block"] = self._block_id(from_block)
        if to_block is not None:
            flt["to_block"] = self._block_id(to_block)
        if continuation_token:
            flt["continuation_token"] = continuation_token

        raw = self._call("starknet_getEvents", {"filter": flt})
        events = raw.get("events") if isinstance(raw.get("events"), list) else []
        return EventsPage(
            events=[self._event(e) for e in events if isinstance(e, dict)],
            continuation_token=raw.get("continuation_token") or None,
        )

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        try:
            raw = self._call("starknet_getTransactionReceipt", {"transaction_hash": tx_hash})
        except NodeError as e:
            if e.code == TXN_HASH_NOT_FOUND:
                return None
            raise
        if not isinstance(raw, dict):
            return None

        events: List[Dict[str, Any]] = raw.get("events") if isinstance(raw.get("events"), list) else []
        return Receipt(
            transaction_hash=str(raw.get("transaction_hash") or tx_hash),
            block_number=self._int(raw.get("block_number")),
            type=raw.get("type"),
            sender_address=raw.get("sender_address"),
            fee_amount=(raw.get("actual_fee") or {}).get("amount"),
            execution_status=raw.get("execution_status"),
            revert_reason=raw.get("revert_reason"),
            events=[self._event(e) for e in events if isinstance(e, dict)],
        )

    def get_transaction(self, tx_hash: str) -> Optional[NodeTransaction]:
        try:
            raw = self._call("starknet_getTransactionByHash", {"transaction_hash": tx_hash})
        except NodeError as e:
            if e.code == TXN_HASH_NOT_FOUND:
                return None
            raise
        if not isinstance(raw, dict):
            return None
        return self._transaction({"transaction_hash": tx_hash, **raw})

    def get_transaction_trace(self, tx_hash: str) -> TransactionTrace:
        raw = self._call("starknet_traceTransaction", {"transaction_hash": tx_hash})
        if not isinstance(raw, dict):
            raise DataSourceError(f"Invalid trace for {tx_hash}: {raw}")

        kind = str(raw.get("type") or "INVOKE").upper()
        if kind == "DEPLOY_ACCOUNT":
            return DeployAccountTrace(self._invocation(raw.get("constructor_invocation")))
        if kind == "L1_HANDLER":
            return L1HandlerTrace(self._invocation(raw.get("function_invocation")))
        if kind == "DECLARE":
            return DeclareTrace(self._invocation(raw.get("validate_invocation")))
        return InvokeTrace(self._invocation(raw.get("execute_invocation")))
