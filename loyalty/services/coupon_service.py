"""
Coupon Service.

Issues lifecycle coupons to users and marks them used when an order
completes.

Issuance rules are evaluated in order; the first matching rule wins:
1. WELCOME       - account created less than 7 days ago, no WELCOME coupon yet
2. FIRST_ORDER   - exactly one completed order
3. REACTIVATION  - previous completed order more than 90 days ago
4. BIRTHDAY      - birthday month, no BIRTHDAY coupon issued this year
5. LAUNCH        - launch period enabled, no LAUNCH coupon yet
"""
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from flask import current_app

from ..extensions import db
from ..models import Coupon, Order, OrderStatus, User
from ..utils.dates import add_months, format_date
from ..utils.exceptions import LoyaltyError, UserNotFoundError, ValidationError
from .coupon_templates import CouponTemplateKey, get_coupon_template
from .email_service import email_service, format_discount
from .notification_service import notification_service

# Ambiguous characters (0, O, 1, I) are left out so codes can be typed by hand
COUPON_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
DEFAULT_CODE_LENGTH = 8
DEFAULT_EXPIRY_MONTHS = 3
MAX_CODE_ATTEMPTS = 10


def generate_coupon_code(prefix: str = '', length: int = DEFAULT_CODE_LENGTH) -> str:
    """Prefix followed by `length` random characters from the coupon alphabet."""
    return prefix + ''.join(secrets.choice(COUPON_CODE_ALPHABET) for _ in range(length))


def calculate_coupon_expiry_date(months: int = DEFAULT_EXPIRY_MONTHS, now: Optional[datetime] = None) -> datetime:
    return add_months(now or datetime.utcnow(), months)


@dataclass
class EligibilityContext:
    """Everything the issuance rules look at for one user."""
    user: User
    completed_orders: List[Order]
    coupons: List[Coupon]
    now: datetime
    welcome_window_days: int
    reactivation_after_days: int
    launch_period: bool
    current_order_id: Optional[int] = None

    def has_coupon(self, template_key: CouponTemplateKey) -> bool:
        return any(c.template_key == template_key.value for c in self.coupons)


def _is_new_member(ctx: EligibilityContext) -> bool:
    age = ctx.now - ctx.user.created_at
    return age < timedelta(days=ctx.welcome_window_days) and not ctx.has_coupon(CouponTemplateKey.WELCOME)


def _is_first_order(ctx: EligibilityContext) -> bool:
    return len(ctx.completed_orders) == 1


def _is_returning_after_break(ctx: EligibilityContext) -> bool:
    # The order being completed is the return, not the last visit
    previous = [o for o in ctx.completed_orders if o.id != ctx.current_order_id]
    if not previous:
        return False
    last_order = max(previous, key=lambda o: o.created_at)
    days_since = (ctx.now - last_order.created_at).total_seconds() / 86400
    return days_since > ctx.reactivation_after_days


def _is_birthday_month(ctx: EligibilityContext) -> bool:
    birthdate = ctx.user.birthdate
    if not birthdate or birthdate.month != ctx.now.month:
        return False
    return not any(
        c.template_key == CouponTemplateKey.BIRTHDAY.value and c.created_at.year == ctx.now.year
        for c in ctx.coupons
    )


def _is_launch_period(ctx: EligibilityContext) -> bool:
    return ctx.launch_period and not ctx.has_coupon(CouponTemplateKey.LAUNCH)


# First match wins
ISSUANCE_RULES: Tuple[Tuple[CouponTemplateKey, Callable[[EligibilityContext], bool]], ...] = (
    (CouponTemplateKey.WELCOME, _is_new_member),
    (CouponTemplateKey.FIRST_ORDER, _is_first_order),
    (CouponTemplateKey.REACTIVATION, _is_returning_after_break),
    (CouponTemplateKey.BIRTHDAY, _is_birthday_month),
    (CouponTemplateKey.LAUNCH, _is_launch_period),
)


class CouponService:
    """
    Service for coupon issuance and usage.

    Usage:
        # Evaluate the lifecycle rules after an order completes
        result = coupon_service.issue_coupon_if_eligible(user.id)

        # Issue a specific template (CLI / admin)
        result = coupon_service.issue_coupon(user.id, 'BIRTHDAY', send_email=False)
    """

    def _unique_code(self, prefix: str) -> str:
        length = current_app.config.get('COUPON_CODE_LENGTH', DEFAULT_CODE_LENGTH)
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_coupon_code(prefix, length)
            if not Coupon.query.filter_by(code=code).first():
                return code
        raise LoyaltyError('Could not generate a unique coupon code', 'COUPON_CODE_COLLISION')

    def issue_coupon(self, user_id: int, template_key, send_email: bool = True) -> Dict[str, Any]:
        """
        Mint a coupon from a template for a user.

        Persists the coupon and its COUPON_ISSUED notification together,
        then optionally emails the user. Email failures are logged and do
        not undo the issuance.

        Args:
            user_id: Recipient
            template_key: CouponTemplateKey or its name
            send_email: Send the coupon email after committing

        Returns:
            Dict with success status and the coupon
        """
        try:
            try:
                template = get_coupon_template(template_key)
            except KeyError:
                raise ValidationError(f'Unknown coupon template: {template_key}', 'template')

            user = User.query.get(user_id)
            if not user:
                raise UserNotFoundError(user_id)

            coupon = Coupon(
                user_id=user.id,
                code=self._unique_code(template.code_prefix),
                discount_type=template.discount_type,
                discount_value=template.discount_value,
                minimum_purchase=template.minimum_purchase,
                template_key=template.key.value,
                description=template.description,
                expires_at=calculate_coupon_expiry_date(template.expiry_months),
                is_used=False
            )
            db.session.add(coupon)
            db.session.flush()

            currency = current_app.config.get('CURRENCY_SYMBOL', '¥')
            notification_service.coupon_issued(
                user.id,
                coupon,
                f"{format_discount(coupon.discount_type, coupon.discount_value, currency)}, "
                f"valid until {format_date(coupon.expires_at)}"
            )

            db.session.commit()

            current_app.logger.info(
                f"Issued {template.key.value} coupon {coupon.code} to user {user.id}"
            )

            email_result = None
            if send_email and user.email:
                email_template = (
                    'birthday_coupon' if template.key == CouponTemplateKey.BIRTHDAY else 'coupon_issued'
                )
                email_result = email_service.send_coupon_email(user, coupon, email_template)
                if not email_result.get('success'):
                    current_app.logger.warning(
                        f"Coupon email not sent to user {user.id}: {email_result.get('error')}"
                    )

            return {
                'success': True,
                'coupon_issued': True,
                'template_key': template.key.value,
                'coupon': coupon.to_dict(),
                'email': email_result
            }

        except LoyaltyError as e:
            db.session.rollback()
            return {'success': False, 'error': e.message}
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error issuing coupon to user {user_id}: {str(e)}")
            return {'success': False, 'error': f'Failed to issue coupon: {str(e)}'}

    def build_context(
        self,
        user: User,
        now: Optional[datetime] = None,
        current_order_id: Optional[int] = None
    ) -> EligibilityContext:
        return EligibilityContext(
            user=user,
            completed_orders=user.orders.filter_by(status=OrderStatus.COMPLETED).all(),
            coupons=user.coupons.all(),
            now=now or datetime.utcnow(),
            welcome_window_days=current_app.config.get('WELCOME_WINDOW_DAYS', 7),
            reactivation_after_days=current_app.config.get('REACTIVATION_AFTER_DAYS', 90),
            launch_period=bool(current_app.config.get('COUPON_LAUNCH_PERIOD')),
            current_order_id=current_order_id
        )

    def select_template(self, ctx: EligibilityContext) -> Optional[CouponTemplateKey]:
        """Template of the first matching issuance rule, or None."""
        for template_key, predicate in ISSUANCE_RULES:
            if predicate(ctx):
                return template_key
        return None

    def issue_coupon_if_eligible(
        self,
        user_id: int,
        send_email: bool = True,
        order_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Evaluate the lifecycle rules for a user and issue at most one coupon.

        order_id names the order whose completion triggered the evaluation;
        REACTIVATION measures the break from the completed order before it.

        Returns:
            The issue_coupon result, or {'success': True, 'coupon_issued': False}
            when no rule matches
        """
        try:
            user = User.query.get(user_id)
            if not user:
                raise UserNotFoundError(user_id)

            template_key = self.select_template(self.build_context(user, current_order_id=order_id))

        except LoyaltyError as e:
            return {'success': False, 'error': e.message}
        except Exception as e:
            current_app.logger.error(f"Error evaluating coupons for user {user_id}: {str(e)}")
            return {'success': False, 'error': f'Failed to evaluate coupons: {str(e)}'}

        if template_key is None:
            return {
                'success': True,
                'coupon_issued': False,
                'message': 'No coupon conditions matched'
            }

        return self.issue_coupon(user_id, template_key, send_email=send_email)

    def mark_coupon_used(self, coupon_id: int, order_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Flag a coupon as used by an order.

        The coupon must still be unused, unexpired and owned by the order's
        user. The flag is flipped with a conditional update so two orders
        completing at once cannot both claim it.

        Returns:
            Dict with success status; on failure the order must not keep
            the coupon's discount
        """
        now = now or datetime.utcnow()
        try:
            coupon = Coupon.query.get(coupon_id)
            if not coupon:
                return {'success': False, 'error': 'Coupon not found'}

            if coupon.is_used and coupon.used_by_order_id == order_id:
                return {'success': True, 'message': 'Coupon already used by this order', 'coupon': coupon.to_dict()}

            order = Order.query.get(order_id)
            if not order or order.user_id != coupon.user_id:
                return {'success': False, 'error': 'This coupon belongs to another user'}

            if coupon.is_used:
                return {'success': False, 'error': 'This coupon has already been used'}

            if coupon.is_expired(now):
                return {'success': False, 'error': 'This coupon has expired'}

            claimed = Coupon.query.filter_by(id=coupon_id, is_used=False).update({
                Coupon.is_used: True,
                Coupon.used_at: now,
                Coupon.used_by_order_id: order_id
            }, synchronize_session=False)
            db.session.commit()

            if not claimed:
                return {'success': False, 'error': 'This coupon has already been used'}

            current_app.logger.info(f"Coupon {coupon.code} used by order {order_id}")
            return {'success': True, 'coupon': coupon.to_dict()}

        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error marking coupon {coupon_id} used: {str(e)}")
            return {'success': False, 'error': str(e)}

    def get_user_coupons(self, user_id: int) -> List[Coupon]:
        """Unused coupons first, then by soonest expiry."""
        return Coupon.query.filter_by(user_id=user_id).order_by(
            Coupon.is_used.asc(),
            Coupon.expires_at.asc()
        ).all()


# Singleton instance
coupon_service = CouponService()
