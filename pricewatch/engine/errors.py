"""Error taxonomy for the alert engine.

Absence of an alert or quote is not an error: lookups return None and
deletes return False. Out-of-order ticks are reported through
`CacheUpdate.accepted` rather than raised.
"""


class AlertError(Exception):
    """Base class for alert engine errors."""
    pass


class InvalidSpec(AlertError):
    """Alert creation input was rejected."""
    pass


class InvalidTransition(AlertError):
    """Requested state change is not allowed for this alert."""
    pass


class InvalidTick(AlertError):
    """Market data tick could not be parsed."""
    pass


class DeliveryFailure(AlertError):
    """Notification delivery failed.
    
    Transient failures are retried by the dispatcher; permanent ones
    (bad credentials, rejected payloads) are not.
    """
    
    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable
