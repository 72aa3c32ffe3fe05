"""
Order points calculation.

Pure functions: no database access, no side effects. The ledger writer in
points_service persists whatever these return.

Rules per line item:
- Base points: item subtotal x base rate (1%), truncated
- Sale items earn their base points again as a bonus (double points)
- Campaign items earn an extra bonus of item subtotal x campaign rate (5%)
- Both bonuses stack on the same item
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from ..utils.dates import add_years

DEFAULT_BASE_RATE = 0.01
DEFAULT_CAMPAIGN_BONUS_RATE = 0.05
DEFAULT_EXPIRY_YEARS = 1

SALE_BONUS_REASON = 'Sale item double points'
CAMPAIGN_BONUS_REASON = 'Campaign bonus'


def _item_field(item, name: str, default=None):
    """Read a field from an OrderItem row or a plain dict."""
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _product_flags(item):
    product = _item_field(item, 'product')
    if product is None:
        return (
            bool(_item_field(item, 'on_sale', False)),
            _item_field(item, 'campaign_id'),
            _item_field(item, 'name'),
        )
    return (
        bool(_item_field(product, 'on_sale', False)),
        _item_field(product, 'campaign_id'),
        _item_field(product, 'name'),
    )


def calculate_order_points(
    items: Iterable,
    base_rate: float = DEFAULT_BASE_RATE,
    campaign_bonus_rate: float = DEFAULT_CAMPAIGN_BONUS_RATE
) -> Dict[str, Any]:
    """
    Calculate base and bonus points for an order's line items.

    Args:
        items: OrderItem rows (with .product loaded) or dicts with
            id, name, price, quantity, on_sale, campaign_id
        base_rate: Fraction of the item subtotal earned as base points
        campaign_bonus_rate: Fraction of the item subtotal earned as campaign bonus

    Returns:
        Dict with base_points, bonus_points, total_points and a per-item breakdown
    """
    base_points = 0
    bonus_points = 0
    breakdown = []

    for item in items:
        price = _item_field(item, 'price', 0) or 0
        quantity = _item_field(item, 'quantity', 0) or 0
        on_sale, campaign_id, name = _product_flags(item)

        item_subtotal = price * quantity
        item_base = int(item_subtotal * base_rate)
        item_bonus = 0
        reasons = []

        if on_sale:
            item_bonus += item_base
            reasons.append(SALE_BONUS_REASON)

        if campaign_id:
            item_bonus += int(item_subtotal * campaign_bonus_rate)
            reasons.append(CAMPAIGN_BONUS_REASON)

        base_points += item_base
        bonus_points += item_bonus

        breakdown.append({
            'item_id': _item_field(item, 'id'),
            'item_name': name,
            'base_points': item_base,
            'bonus_points': item_bonus,
            'bonus_reason': ', '.join(reasons) if reasons else None
        })

    return {
        'base_points': base_points,
        'bonus_points': bonus_points,
        'total_points': base_points + bonus_points,
        'breakdown': breakdown
    }


def calculate_point_expiry_date(
    awarded_at: Optional[datetime] = None,
    years: int = DEFAULT_EXPIRY_YEARS
) -> datetime:
    """Points expire a fixed number of years after they are awarded."""
    return add_years(awarded_at or datetime.utcnow(), years)
