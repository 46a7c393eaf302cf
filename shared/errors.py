"""Error taxonomy shared by every layer of the agent."""


class AgentError(Exception):
    """Base class for all agent errors."""


class TransportError(AgentError):
    """A ledger endpoint was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, endpoint: str = "", status_code: int | None = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class OracleDataError(AgentError):
    """The oracle price is unavailable."""

    def __init__(self, message: str, feed_id: int):
        super().__init__(message)
        self.feed_id = feed_id


class OracleFeedNotFound(OracleDataError):
    pass


class OracleMissingAggregate(OracleDataError):
    pass


class ValidationError(AgentError):
    """Malformed configuration or malformed prediction output."""


class StaleStateError(AgentError):
    """A wager no longer qualifies for the action chosen for it."""

    def __init__(self, message: str, wager_id: int):
        super().__init__(message)
        self.wager_id = wager_id


class InsufficientFundsError(AgentError):
    """Balance after reserve is below the minimum stake."""

    def __init__(self, available: float, required: float):
        super().__init__(
            f"Available balance {available:.4f} below minimum stake {required:.4f}"
        )
        self.available = available
        self.required = required
