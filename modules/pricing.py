"""Deterministic pricing for cart items and order add-ons.

All functions are pure: they read a cart snapshot and OrderOptions and never
touch the store. Shipping is not priced here; the order service adds it at
checkout and its total is the authoritative one.

Formula:
    base_price = round(mass_grams * 0.05 + 1.00, 2)   (0 when mass is unknown)
    subtotal   = sum(base_price * quantity) over items whose file is SUCCESS
    total      = subtotal + multicolor fee + priority fee
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from models.cart import CartItem
from models.file import FileStatus
from models.order import OrderOptions

# Per-gram material rate and flat handling fee
PRICE_PER_GRAM = 0.05
BASE_HANDLING_FEE = 1.00

# Order add-ons
MULTICOLOR_FEE = 2.00
PRIORITY_FEE = 15.00

# Production lead time shown next to the total
BASE_PRODUCTION_DAYS = 20
PRIORITY_SPEEDUP_DAYS = 5


def base_price(mass_grams: Optional[float]) -> float:
    """Unit price for a model of the given mass; 0 when mass is absent or zero."""
    if not mass_grams:
        return 0.0
    return round(mass_grams * PRICE_PER_GRAM + BASE_HANDLING_FEE, 2)


def item_eligible(item: CartItem) -> bool:
    """Only items whose file finished successfully are priced and ordered."""
    return item.file.status is FileStatus.SUCCESS


def item_price(item: CartItem) -> float:
    """Line price shown in the cart (0 for ineligible items)."""
    if not item_eligible(item):
        return 0.0
    return round(base_price(item.file.mass_grams) * item.quantity, 2)


def subtotal(items: Iterable[CartItem]) -> float:
    """Sum of eligible line prices. Ineligible items stay listed but add 0."""
    return round(sum(item_price(item) for item in items), 2)


def addon_cost(options: OrderOptions) -> float:
    cost = 0.0
    if options.multicolor:
        cost += MULTICOLOR_FEE
    if options.priority:
        cost += PRIORITY_FEE
    return cost


def total(items: Iterable[CartItem], options: OrderOptions) -> float:
    """Subtotal plus add-ons, before shipping."""
    return round(subtotal(items) + addon_cost(options), 2)


def has_processing_items(items: Iterable[CartItem]) -> bool:
    return any(item.file.status.is_in_flight for item in items)


def has_error_items(items: Iterable[CartItem]) -> bool:
    return any(item.file.status is FileStatus.ERROR for item in items)


def is_checkout_ready(items: Sequence[CartItem]) -> bool:
    """
    Whether the checkout button should be enabled.

    Requires a non-empty cart with nothing pending, processing or errored.
    """
    if not items:
        return False
    return not has_processing_items(items) and not has_error_items(items)


def production_estimate_days(options: OrderOptions) -> int:
    """Estimated production time before shipping."""
    if options.priority:
        return BASE_PRODUCTION_DAYS - PRIORITY_SPEEDUP_DAYS
    return BASE_PRODUCTION_DAYS


@dataclass(frozen=True)
class CartPricing:
    """Everything the cart summary panel needs, computed in one pass."""

    item_prices: Dict[str, float]
    subtotal: float
    addons: List[Dict[str, Any]] = field(default_factory=list)
    addon_cost: float = 0.0
    total: float = 0.0
    checkout_ready: bool = False
    has_processing_items: bool = False
    has_error_items: bool = False
    production_days: int = BASE_PRODUCTION_DAYS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "itemPrices": dict(self.item_prices),
            "subtotal": self.subtotal,
            "addons": list(self.addons),
            "addonCost": self.addon_cost,
            # Total is not meaningful while items are still being measured
            "total": None if self.has_processing_items else self.total,
            "checkoutReady": self.checkout_ready,
            "hasProcessingItems": self.has_processing_items,
            "hasErrorItems": self.has_error_items,
            "productionDays": self.production_days,
            "shipping": "calculated at checkout",
        }


def price_cart(items: Sequence[CartItem], options: OrderOptions) -> CartPricing:
    """Price a cart snapshot for display."""
    addons = []
    if options.multicolor:
        addons.append({"name": "Multicolor Printing", "price": MULTICOLOR_FEE})
    if options.priority:
        addons.append({"name": "Queue Priority", "price": PRIORITY_FEE})

    return CartPricing(
        item_prices={item.id: item_price(item) for item in items},
        subtotal=subtotal(items),
        addons=addons,
        addon_cost=addon_cost(options),
        total=total(items, options),
        checkout_ready=is_checkout_ready(items),
        has_processing_items=has_processing_items(items),
        has_error_items=has_error_items(items),
        production_days=production_estimate_days(options),
    )
