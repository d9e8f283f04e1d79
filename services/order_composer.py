"""
Order composition.

Turns a cart snapshot plus OrderOptions into one order-creation request.

Precondition gate (first failing check wins):
    1. no session                       -> SessionMissingError
    2. empty cart                       -> CartEmptyError
    3. any item pending/processing      -> ItemsProcessingError
    4. any item errored                 -> ItemsErroredError
    5. nothing left after eligibility   -> NoValidItemsError

Payload:
    - one line item per eligible cart item (override price if set, else the
      mass-based base price) carrying its print settings as properties
    - one flat-fee line item per enabled paid add-on
    - a tag per enabled boolean option
    - note attributes echoing the options

Composition is pure. submit() performs the single, non-retried remote call
and mutates nothing locally, so a failed checkout can simply be re-attempted.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from core.exceptions import (
    CartEmptyError,
    ItemsErroredError,
    ItemsProcessingError,
    NoValidItemsError,
    SessionMissingError,
)
from core.order_client import OrderServiceClient
from models.cart import CartItem, SessionContext
from models.file import FileStatus
from models.order import LineItem, NoteAttribute, OrderConfirmation, OrderOptions, OrderRequest
from modules import pricing
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Layer height every item is printed at
DEFAULT_QUALITY = "0.20mm"

# Add-on line item titles
MULTICOLOR_TITLE = "Multicolor Printing"
PRIORITY_TITLE = "Queue Priority"

# Tags per enabled option
OPTION_TAGS = (
    ("multicolor", "multicolor"),
    ("priority", "priority"),
    ("assistance", "assistance-requested"),
    ("test_mode", "test-order"),
)


def _checkout_eligible(item: CartItem) -> bool:
    """Priced items that also carry the measurements the shop needs."""
    return (
        pricing.item_eligible(item)
        and bool(item.file.mass_grams)
        and item.file.dimensions is not None
    )


def unit_price(item: CartItem) -> float:
    """Override price when set, otherwise the mass-based base price."""
    if item.unit_price_override:
        return round(item.unit_price_override, 2)
    return pricing.base_price(item.file.mass_grams)


class OrderComposer:
    """
    Gatekeeper and payload builder for checkout.

    Attributes:
        order_client: Client for the external order service (only needed
            for submit())
    """

    def __init__(self, order_client: Optional[OrderServiceClient] = None):
        self.order_client = order_client

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    @staticmethod
    def check_preconditions(
        session: Optional[SessionContext],
        items: Sequence[CartItem],
    ) -> List[CartItem]:
        """
        Run the precondition gate.

        Returns:
            The eligible items, in cart order

        Raises:
            CheckoutError subclass for the first failing condition
        """
        if session is None or not session.session_id:
            raise SessionMissingError()

        if not items:
            raise CartEmptyError()

        processing = [item.id for item in items if item.file.status.is_in_flight]
        if processing:
            raise ItemsProcessingError(processing)

        errored = [item.id for item in items if item.file.status is FileStatus.ERROR]
        if errored:
            raise ItemsErroredError(errored)

        eligible = [item for item in items if _checkout_eligible(item)]
        if not eligible:
            raise NoValidItemsError()

        return eligible

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @staticmethod
    def build_line_items(items: Sequence[CartItem], options: OrderOptions) -> List[LineItem]:
        """Line items for the eligible cart items plus paid add-ons."""
        line_items = []
        for item in items:
            properties = [
                NoteAttribute("Material", item.material),
                NoteAttribute("Color", item.color),
                NoteAttribute("Infill", f"{item.infill}%"),
                NoteAttribute("Layer Height", DEFAULT_QUALITY),
                NoteAttribute("Mass", f"{item.file.mass_grams:.1f} g"),
                NoteAttribute("File ID", item.file_id),
            ]
            if item.file.dimensions is not None:
                properties.insert(5, NoteAttribute("Dimensions", item.file.dimensions.display()))

            line_items.append(LineItem(
                title=f"3D Print - {item.file.file_name or item.file_id}",
                price=unit_price(item),
                quantity=item.quantity,
                properties=properties,
            ))

        if options.multicolor:
            line_items.append(LineItem(MULTICOLOR_TITLE, pricing.MULTICOLOR_FEE, is_addon=True))
        if options.priority:
            line_items.append(LineItem(PRIORITY_TITLE, pricing.PRIORITY_FEE, is_addon=True))

        return line_items

    @staticmethod
    def build_tags(options: OrderOptions) -> List[str]:
        """One tag per enabled option; no options means no tags."""
        return [tag for name, tag in OPTION_TAGS if getattr(options, name)]

    @staticmethod
    def build_note_attributes(options: OrderOptions) -> List[NoteAttribute]:
        """Echo every option so fulfilment sees exactly what was chosen."""
        attributes = [
            NoteAttribute("multicolor", "yes" if options.multicolor else "no"),
            NoteAttribute("priority", "yes" if options.priority else "no"),
            NoteAttribute("assistance", "yes" if options.assistance else "no"),
        ]
        if options.test_mode:
            attributes.append(NoteAttribute("test_mode", "yes"))
        if options.comments:
            attributes.append(NoteAttribute("comments", options.comments))
        return attributes

    # ------------------------------------------------------------------
    # Compose / submit
    # ------------------------------------------------------------------

    def compose(
        self,
        session: Optional[SessionContext],
        items: Sequence[CartItem],
        options: OrderOptions,
        email: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> OrderRequest:
        """
        Gate the cart and build the order request.

        Args:
            idempotency_key: Reuse the key of a previous attempt when retrying
                after a lost response; a fresh key is generated otherwise
        """
        eligible = self.check_preconditions(session, items)

        request_fields = dict(
            line_items=self.build_line_items(eligible, options),
            tags=self.build_tags(options),
            note_attributes=self.build_note_attributes(options),
            note=options.comments,
            email=email or None,
        )
        if idempotency_key:
            request_fields["idempotency_key"] = idempotency_key

        order_request = OrderRequest(**request_fields)
        logger.debug(
            f"Composed order for session {session.short_id}: "
            f"{len(eligible)} items, tags={order_request.tags}"
        )
        return order_request

    def submit(
        self,
        session: Optional[SessionContext],
        items: Sequence[CartItem],
        options: OrderOptions,
        email: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> OrderConfirmation:
        """
        Compose and send the order.

        Raises:
            CheckoutError: From the gate, or OrderCreationFailedError
            NetworkError: If the order service is unreachable
            RuntimeError: If no order client was configured
        """
        order_request = self.compose(session, items, options, email, idempotency_key)

        if self.order_client is None:
            raise RuntimeError("OrderComposer has no order client configured")

        return self.order_client.create_order(order_request)
