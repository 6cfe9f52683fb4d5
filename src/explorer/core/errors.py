from typing import Optional


class ExplorerError(Exception):
    pass


class InvalidQueryError(ExplorerError):
    pass


class DataSourceError(ExplorerError):
    pass


class NodeError(DataSourceError):
    """JSON-RPC level error returned by the node."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class RateLimitError(DataSourceError):
    def __init__(
        self,
        message: str = "rate limited",
        status_code: Optional[int] = 429,
        retry_after: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class RetryBudgetExceeded(DataSourceError):
    pass
