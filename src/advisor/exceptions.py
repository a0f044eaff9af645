"""Error taxonomy for the signal advisor.

Every error carries a short ``label`` that interactive callers surface next
to the human-readable cause. Exchange, normalization and indicator errors
abort only the current evaluation cycle of one subscription.
"""


class AdvisorError(Exception):
    """Base exception for all advisor errors."""

    label = "AdvisorError"


class ExchangeUnavailable(AdvisorError):
    """Transport or HTTP failure talking to an exchange. Retried next cycle."""

    label = "ExchangeUnavailable"


class ExchangeRejected(AdvisorError):
    """The exchange answered with an error status in its own envelope.

    Typically an unknown symbol or unsupported interval. Not retried with the
    same parameters.
    """

    label = "ExchangeRejected"


class MalformedResponse(ExchangeUnavailable):
    """Response did not have the expected shape.

    Subclasses ExchangeUnavailable so retry handling treats both the same way.
    The raw payload is kept for diagnosis.
    """

    label = "MalformedResponse"

    def __init__(self, message: str, payload: object = None) -> None:
        super().__init__(message)
        self.payload = payload


class InsufficientHistory(AdvisorError):
    """Fewer valid candles than the analysis needs."""

    label = "InsufficientHistory"

    def __init__(self, message: str, available: int = 0, required: int = 0) -> None:
        super().__init__(message)
        self.available = available
        self.required = required


class OracleUnavailable(AdvisorError):
    """Oracle call timed out, failed, or returned output that failed validation."""

    label = "OracleUnavailable"


class DispatchFailed(AdvisorError):
    """Notification could not be delivered. Logged, never raised into a cycle."""

    label = "DispatchFailed"


class SubscriptionNotFound(AdvisorError):
    """No live monitor subscription with the given id."""

    label = "SubscriptionNotFound"
