"""
Tests for checkout-time coupon and points validation.
"""
from datetime import datetime, timedelta

import pytest

from loyalty.extensions import db
from loyalty.models import Coupon
from loyalty.services.checkout_service import calculate_discount, checkout_service


@pytest.fixture
def make_coupon(sample_user):
    def _make(code='TESTCODE', user=None, discount_type='percentage', discount_value=10,
              minimum_purchase=None, expires_in_days=30, is_used=False):
        coupon = Coupon(
            user_id=(user or sample_user).id,
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            minimum_purchase=minimum_purchase,
            is_used=is_used,
            expires_at=datetime.utcnow() + timedelta(days=expires_in_days)
        )
        db.session.add(coupon)
        db.session.commit()
        return coupon
    return _make


class TestCalculateDiscount:
    """Tests for calculate_discount."""

    def test_percentage_is_truncated(self):
        coupon = Coupon(discount_type='percentage', discount_value=15)

        assert calculate_discount(coupon, 3333) == 499

    def test_fixed_amount(self):
        coupon = Coupon(discount_type='fixed', discount_value=1000)

        assert calculate_discount(coupon, 5000) == 1000

    def test_fixed_amount_capped_at_subtotal(self):
        coupon = Coupon(discount_type='fixed', discount_value=1000)

        assert calculate_discount(coupon, 600) == 600


class TestValidateCoupon:
    """Tests for CheckoutService.validate_coupon."""

    def test_valid_coupon(self, sample_user, make_coupon):
        make_coupon(discount_value=10)

        result = checkout_service.validate_coupon('TESTCODE', sample_user.id, 5000)

        assert result['valid'] is True
        assert result['discount_amount'] == 500
        assert result['coupon']['code'] == 'TESTCODE'

    def test_unknown_code(self, sample_user):
        result = checkout_service.validate_coupon('NOPE', sample_user.id, 5000)

        assert result['valid'] is False
        assert 'Invalid' in result['message']

    def test_used_coupon(self, sample_user, make_coupon):
        make_coupon(is_used=True)

        result = checkout_service.validate_coupon('TESTCODE', sample_user.id, 5000)

        assert result['valid'] is False
        assert 'already been used' in result['message']

    def test_expired_coupon(self, sample_user, make_coupon):
        make_coupon(expires_in_days=-1)

        result = checkout_service.validate_coupon('TESTCODE', sample_user.id, 5000)

        assert result['valid'] is False
        assert 'expired' in result['message']

    def test_minimum_purchase_boundary(self, sample_user, make_coupon):
        make_coupon(minimum_purchase=5000)

        below = checkout_service.validate_coupon('TESTCODE', sample_user.id, 4999)
        at = checkout_service.validate_coupon('TESTCODE', sample_user.id, 5000)

        assert below['valid'] is False
        assert 'minimum purchase' in below['message']
        assert '5,000' in below['message']
        assert at['valid'] is True

    def test_other_users_coupon(self, sample_user, other_user, make_coupon):
        make_coupon(user=other_user)

        result = checkout_service.validate_coupon('TESTCODE', sample_user.id, 5000)

        assert result['valid'] is False
        assert 'another user' in result['message']

    def test_used_is_reported_before_expired(self, sample_user, make_coupon):
        make_coupon(is_used=True, expires_in_days=-1)

        result = checkout_service.validate_coupon('TESTCODE', sample_user.id, 5000)

        assert 'already been used' in result['message']

    def test_minimum_is_reported_before_ownership(self, sample_user, other_user, make_coupon):
        make_coupon(user=other_user, minimum_purchase=5000)

        result = checkout_service.validate_coupon('TESTCODE', sample_user.id, 100)

        assert 'minimum purchase' in result['message']


class TestValidatePoints:
    """Tests for CheckoutService.validate_points."""

    def test_within_balance(self, sample_user, points_factory):
        points_factory(sample_user, 500)

        result = checkout_service.validate_points(sample_user.id, 300)

        assert result['success'] is True
        assert result['validated_points'] == 300
        assert result['available_points'] == 500

    def test_exact_balance(self, sample_user, points_factory):
        points_factory(sample_user, 500)

        assert checkout_service.validate_points(sample_user.id, 500)['success'] is True

    def test_above_balance(self, sample_user, points_factory):
        points_factory(sample_user, 500)

        result = checkout_service.validate_points(sample_user.id, 501)

        assert result['success'] is False
        assert '500' in result['message']

    def test_zero_is_allowed(self, sample_user):
        assert checkout_service.validate_points(sample_user.id, 0)['success'] is True

    def test_negative_is_rejected(self, sample_user, points_factory):
        points_factory(sample_user, 500)

        assert checkout_service.validate_points(sample_user.id, -1)['success'] is False

    def test_expired_points_do_not_count(self, sample_user, points_factory):
        points_factory(sample_user, 500, expires_at=datetime.utcnow() - timedelta(seconds=1))

        assert checkout_service.validate_points(sample_user.id, 1)['success'] is False
