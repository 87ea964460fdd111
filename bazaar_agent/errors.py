"""Error hierarchy shared by the fetcher, the sink and the poll loop."""


class BazaarAgentError(Exception):
    """Base class for every error the agent raises on purpose."""


class ConfigError(BazaarAgentError):
    """Configuration file missing required structure or holding invalid values."""


class TransportError(BazaarAgentError):
    """Upstream could not be reached (network failure, timeout, HTTP error status)."""


class DecodeError(BazaarAgentError):
    """Upstream body is not JSON or does not match the snapshot schema."""


class UnsuccessfulResponseError(DecodeError):
    """Upstream decoded fine but reported ``success: false``."""


class StoreError(BazaarAgentError):
    """A MongoDB read or write failed.

    ``written`` counts the records committed before the failure, so callers
    can report partial cycles.
    """

    def __init__(self, message: str, written: int = 0):
        super().__init__(message)
        self.written = written
