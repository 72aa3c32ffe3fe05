"""
Coupon templates.

Fixed reward configurations keyed by lifecycle trigger. The mapping is
read-only; issuance picks a template and mints a coupon from it.
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Optional


class CouponTemplateKey(str, Enum):
    WELCOME = 'WELCOME'
    FIRST_ORDER = 'FIRST_ORDER'
    REACTIVATION = 'REACTIVATION'
    BIRTHDAY = 'BIRTHDAY'
    LAUNCH = 'LAUNCH'


@dataclass(frozen=True)
class CouponTemplate:
    key: CouponTemplateKey
    code_prefix: str
    discount_type: str  # percentage, fixed
    discount_value: int
    minimum_purchase: Optional[int]
    expiry_months: int
    description: str


COUPON_TEMPLATES = MappingProxyType({
    CouponTemplateKey.WELCOME: CouponTemplate(
        key=CouponTemplateKey.WELCOME,
        code_prefix='WELCOME',
        discount_type='percentage',
        discount_value=10,
        minimum_purchase=2000,
        expiry_months=1,
        description='New member signup reward',
    ),
    CouponTemplateKey.FIRST_ORDER: CouponTemplate(
        key=CouponTemplateKey.FIRST_ORDER,
        code_prefix='FIRST',
        discount_type='fixed',
        discount_value=1000,
        minimum_purchase=5000,
        expiry_months=2,
        description='First purchase reward',
    ),
    CouponTemplateKey.REACTIVATION: CouponTemplate(
        key=CouponTemplateKey.REACTIVATION,
        code_prefix='COMEBACK',
        discount_type='percentage',
        discount_value=20,
        minimum_purchase=3000,
        expiry_months=1,
        description='Welcome back reward',
    ),
    CouponTemplateKey.BIRTHDAY: CouponTemplate(
        key=CouponTemplateKey.BIRTHDAY,
        code_prefix='BDAY',
        discount_type='percentage',
        discount_value=15,
        minimum_purchase=None,
        expiry_months=1,
        description='Birthday reward',
    ),
    CouponTemplateKey.LAUNCH: CouponTemplate(
        key=CouponTemplateKey.LAUNCH,
        code_prefix='LAUNCH',
        discount_type='percentage',
        discount_value=15,
        minimum_purchase=3000,
        expiry_months=1,
        description='Launch celebration',
    ),
})


def get_coupon_template(key) -> CouponTemplate:
    """
    Look up a template by enum member or name ('WELCOME', 'welcome').

    Raises:
        KeyError: Unknown template key
    """
    if not isinstance(key, CouponTemplateKey):
        try:
            key = CouponTemplateKey(str(key).upper())
        except ValueError:
            raise KeyError(key)
    return COUPON_TEMPLATES[key]
