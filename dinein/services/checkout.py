"""
Checkout Session

Customer-side state around the submission transaction: the cart, the
optional table/customer fields, and the short-lived "order sent"
confirmation.

submit() never raises. Every outcome comes back as a SubmissionResult:
    - success: the sent quantities leave the cart (anything added while
      the order was in flight stays), fields are cleared, confirmation
      is shown
    - already sending: rejected as a validation error, store untouched
    - validation error: reported without touching the data store
    - persistence error: cart and fields stay exactly as they were

The confirmation ends after `confirmation_seconds` or when the caller
dismisses it, whichever comes first.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from dinein.core.config import get_settings
from dinein.core.exceptions import DineInError, OrderValidationError
from dinein.schemas import Order
from dinein.services.cart import Cart
from dinein.services.orders import OrderSubmitter

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """
    Outcome of a checkout attempt.

    Attributes:
        success: Whether the order was stored
        order: The stored order on success
        error_kind: "validation" or "persistence" on failure
        error_message: Human-readable failure message
    """
    success: bool
    order: Optional[Order] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def is_validation_error(self) -> bool:
        return self.error_kind == "validation"

    @property
    def is_persistence_error(self) -> bool:
        return self.error_kind == "persistence"


class CheckoutSession:
    """One customer's storefront session."""

    def __init__(self, submitter: OrderSubmitter, confirmation_seconds: Optional[float] = None):
        self.submitter = submitter
        self.confirmation_seconds = (
            confirmation_seconds
            if confirmation_seconds is not None
            else get_settings().confirmation_display_seconds
        )

        self.cart = Cart()
        self.table_number: Optional[int] = None
        self.customer_name = ""
        self.customer_phone = ""
        self.notes = ""

        self.submitting = False
        self.submitted = False
        self.last_result: Optional[SubmissionResult] = None
        self._confirmation_timer: Optional[asyncio.TimerHandle] = None

    def _clear_fields(self) -> None:
        self.table_number = None
        self.customer_name = ""
        self.customer_phone = ""
        self.notes = ""

    async def submit(self) -> SubmissionResult:
        if self.submitting:
            return SubmissionResult(
                success=False,
                error_kind="validation",
                error_message="Order is already being sent",
            )

        self.submitting = True
        # Quantities sent with this order; lines added while it is in flight stay
        sent = [(line.item_id, line.quantity) for line in self.cart.lines]
        try:
            order = await self.submitter.submit(
                self.cart.lines,
                table_number=self.table_number,
                customer_name=self.customer_name,
                customer_phone=self.customer_phone,
                notes=self.notes,
            )
        except OrderValidationError as e:
            result = SubmissionResult(success=False, error_kind="validation", error_message=e.message)
        except DineInError as e:
            logger.warning(f"Checkout failed, cart kept ({len(self.cart)} lines): {e}")
            result = SubmissionResult(success=False, error_kind="persistence", error_message=e.message)
        except Exception:
            logger.exception("Unexpected checkout failure, cart kept")
            result = SubmissionResult(
                success=False,
                error_kind="persistence",
                error_message="The order could not be sent, please try again",
            )
        else:
            for item_id, quantity in sent:
                self.cart.adjust_quantity(item_id, -quantity)
            self._clear_fields()
            self._show_confirmation()
            result = SubmissionResult(success=True, order=order)
        finally:
            self.submitting = False

        self.last_result = result
        return result

    def _show_confirmation(self) -> None:
        self._cancel_timer()
        self.submitted = True
        loop = asyncio.get_running_loop()
        self._confirmation_timer = loop.call_later(self.confirmation_seconds, self._end_confirmation)

    def _end_confirmation(self) -> None:
        self.submitted = False
        self._confirmation_timer = None

    def _cancel_timer(self) -> None:
        if self._confirmation_timer is not None:
            self._confirmation_timer.cancel()
            self._confirmation_timer = None

    def dismiss_confirmation(self) -> None:
        self._cancel_timer()
        self.submitted = False
