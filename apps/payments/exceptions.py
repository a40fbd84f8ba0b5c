"""Payment errors.

None of these is fatal to a booking's workflow: the orchestrator turns
gateway failures into outcomes and the state machine decides what to do.
"""


class PaymentError(Exception):
    """Base class for payment errors."""


class GatewayError(PaymentError):
    def __init__(self, message: str = "", code: str = ""):
        self.code = code
        super().__init__(message or code or self.__class__.__name__)


class GatewayDeclined(GatewayError):
    """The gateway refused the operation (card declined, intent in wrong state)."""


class GatewayUnavailable(GatewayError):
    """Network error, rate limit or gateway outage. Retrying later may succeed."""


class CaptureFailed(PaymentError):
    """Outcome marker: the deposit could not be captured and needs manual collection."""


class HoldAlreadyOpen(PaymentError):
    """open_hold() called twice for the same booking."""


class RefundNotAllowed(PaymentError):
    """Refund requested for a booking whose deposit was never paid."""
