"""Simulated payment authorization used at checkout."""

import logging
import threading
from decimal import Decimal

from .errors import CheckoutCancelledError, PaymentTimeoutError

logger = logging.getLogger(__name__)


class SimulatedPaymentGateway:
    """
    Stands in for a real gateway: answers pass/fail after a fixed delay.

    The wait is interruptible through a cancel event and never runs past
    the caller's timeout.
    """

    def __init__(self, delay: float = 2.0, approve: bool = True):
        self.delay = delay
        self.approve = approve

    def authorize(
        self,
        amount: Decimal,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> bool:
        """
        Authorize a charge of ``amount``.

        Args:
            amount: Order total to charge.
            cancel: Set by the caller to abandon the checkout.
            timeout: Upper bound on the wait in seconds; None means no bound.

        Returns:
            True if approved, False if declined.

        Raises:
            CheckoutCancelledError: If ``cancel`` is set before the gateway answers.
            PaymentTimeoutError: If the gateway would answer after ``timeout``.
        """
        cancel = cancel or threading.Event()
        timed_out = timeout is not None and self.delay > timeout
        wait_for = timeout if timed_out else self.delay

        logger.info("Authorizing payment of %s", amount)
        if cancel.wait(wait_for):
            logger.info("Payment of %s cancelled by caller", amount)
            raise CheckoutCancelledError()
        if timed_out:
            logger.warning("Payment of %s timed out after %ss", amount, timeout)
            raise PaymentTimeoutError(timeout)

        logger.info("Payment of %s %s", amount, "approved" if self.approve else "declined")
        return self.approve
