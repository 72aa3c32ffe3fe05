"""
Tests for the Orders API endpoints.

- POST /api/orders/complete
- POST /api/orders/cancel
"""
from datetime import datetime, timedelta
from unittest.mock import patch

from loyalty.extensions import db
from loyalty.models import Coupon, Order, OrderStatus, PointEntry, PointEntryType


class TestCompleteOrder:
    """Tests for POST /api/orders/complete."""

    def test_complete_awards_points(self, client, auth_headers, sample_user, sample_order):
        response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['order']['status'] == OrderStatus.COMPLETED
        assert data['order']['completed_at'] is not None
        assert data['points']['success'] is True
        assert data['points']['points'] == 140

        order = Order.query.get(sample_order.id)
        assert order.points_awarded is True

    def test_first_completed_order_issues_coupon(self, client, auth_headers, sample_order):
        response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        coupon = response.get_json()['coupon']
        assert coupon['coupon_issued'] is True
        assert coupon['template_key'] == 'FIRST_ORDER'

    def test_marks_applied_coupon_used(self, client, auth_headers, sample_user, sample_order):
        coupon = Coupon(
            user_id=sample_user.id,
            code='LAUNCHQWER2345',
            discount_type='percentage',
            discount_value=15,
            expires_at=datetime.utcnow() + timedelta(days=10)
        )
        db.session.add(coupon)
        db.session.commit()
        sample_order.coupon_id = coupon.id
        db.session.commit()

        client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        coupon = Coupon.query.get(coupon.id)
        assert coupon.is_used is True
        assert coupon.used_by_order_id == sample_order.id

    def test_single_use_coupon_discounts_one_order(
        self, client, auth_headers, sample_user, sample_products, sample_order, order_factory
    ):
        second_order = order_factory(sample_user, [(sample_products['regular'], 5)])
        coupon = Coupon(
            user_id=sample_user.id,
            code='FIRSTK7M2P9QX',
            discount_type='fixed',
            discount_value=1000,
            expires_at=datetime.utcnow() + timedelta(days=10)
        )
        db.session.add(coupon)
        db.session.commit()
        for order in (sample_order, second_order):
            order.coupon_id = coupon.id
            order.discount_amount = 1000
        db.session.commit()

        first = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)
        second = client.post('/api/orders/complete', json={'orderId': second_order.id}, headers=auth_headers)

        assert first.get_json()['coupon_used']['success'] is True
        assert second.status_code == 200
        assert second.get_json()['coupon_used']['success'] is False
        assert second.get_json()['order']['status'] == OrderStatus.COMPLETED

        discounted = Order.query.filter(Order.discount_amount > 0).all()
        assert [o.id for o in discounted] == [sample_order.id]
        assert Order.query.get(second_order.id).coupon_id is None
        assert Coupon.query.get(coupon.id).used_by_order_id == sample_order.id

    def test_expired_coupon_is_detached_on_completion(self, client, auth_headers, sample_user, sample_order):
        coupon = Coupon(
            user_id=sample_user.id,
            code='WELCOMEEXPRD2345',
            discount_type='percentage',
            discount_value=10,
            expires_at=datetime.utcnow() - timedelta(hours=1)
        )
        db.session.add(coupon)
        db.session.commit()
        sample_order.coupon_id = coupon.id
        sample_order.discount_amount = 400
        db.session.commit()

        response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.get_json()['coupon_used'] == {'success': False, 'error': 'This coupon has expired'}
        order = Order.query.get(sample_order.id)
        assert order.coupon_id is None
        assert order.discount_amount == 0
        assert Coupon.query.get(coupon.id).is_used is False

    def test_other_users_coupon_is_detached_on_completion(
        self, client, auth_headers, other_user, sample_order
    ):
        coupon = Coupon(
            user_id=other_user.id,
            code='LAUNCHTARO2345',
            discount_type='fixed',
            discount_value=500,
            expires_at=datetime.utcnow() + timedelta(days=10)
        )
        db.session.add(coupon)
        db.session.commit()
        sample_order.coupon_id = coupon.id
        sample_order.discount_amount = 500
        db.session.commit()

        response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.get_json()['coupon_used']['success'] is False
        assert Order.query.get(sample_order.id).coupon_id is None
        assert Coupon.query.get(coupon.id).is_used is False

    def test_returning_customer_gets_reactivation(
        self, client, auth_headers, sample_user, sample_products, order_factory
    ):
        for days_ago in (200, 120):
            order_factory(
                sample_user,
                [(sample_products['regular'], 1)],
                status=OrderStatus.COMPLETED,
                created_at=datetime.utcnow() - timedelta(days=days_ago)
            )
        order = order_factory(sample_user, [(sample_products['regular'], 1)])

        response = client.post('/api/orders/complete', json={'orderId': order.id}, headers=auth_headers)

        coupon = response.get_json()['coupon']
        assert coupon['coupon_issued'] is True
        assert coupon['template_key'] == 'REACTIVATION'

    def test_regular_customer_gets_no_reactivation(
        self, client, auth_headers, sample_user, sample_products, order_factory
    ):
        for days_ago in (200, 30):
            order_factory(
                sample_user,
                [(sample_products['regular'], 1)],
                status=OrderStatus.COMPLETED,
                created_at=datetime.utcnow() - timedelta(days=days_ago)
            )
        order = order_factory(sample_user, [(sample_products['regular'], 1)])

        response = client.post('/api/orders/complete', json={'orderId': order.id}, headers=auth_headers)

        assert response.get_json()['coupon']['coupon_issued'] is False

    def test_does_not_award_twice(self, client, auth_headers, sample_order):
        sample_order.points_awarded = True
        db.session.commit()

        response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.status_code == 200
        assert PointEntry.query.count() == 0

    def test_already_completed(self, client, auth_headers, sample_order):
        client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_STATUS'
        assert PointEntry.query.count() == 1

    def test_missing_order_id(self, client, auth_headers):
        response = client.post('/api/orders/complete', json={}, headers=auth_headers)

        assert response.status_code == 400

    def test_unknown_order(self, client, auth_headers):
        response = client.post('/api/orders/complete', json={'orderId': 9999}, headers=auth_headers)

        assert response.status_code == 404

    def test_other_users_order(self, client, other_user, sample_order):
        response = client.post(
            '/api/orders/complete',
            json={'orderId': sample_order.id},
            headers={'X-User-ID': str(other_user.id)}
        )

        assert response.status_code == 403
        assert Order.query.get(sample_order.id).status == OrderStatus.PENDING

    def test_points_failure_does_not_undo_completion(self, client, auth_headers, sample_order):
        with patch(
            'loyalty.services.order_service.points_service.award_order_points',
            return_value={'success': False, 'error': 'ledger down'}
        ):
            response = client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['points']['success'] is False
        assert Order.query.get(sample_order.id).status == OrderStatus.COMPLETED


class TestCancelOrder:
    """Tests for POST /api/orders/cancel."""

    def test_cancel_reverses_points(self, client, auth_headers, sample_user, sample_order):
        client.post('/api/orders/complete', json={'orderId': sample_order.id}, headers=auth_headers)

        response = client.post(
            '/api/orders/cancel',
            json={'orderId': sample_order.id, 'reason': 'Customer request'},
            headers=auth_headers
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['order']['status'] == OrderStatus.CANCELLED
        assert data['points']['canceled_points'] == 140

        cancel = PointEntry.query.filter_by(entry_type=PointEntryType.CANCEL).one()
        assert cancel.amount == -140
        assert cancel.reason == 'Customer request'

    def test_cancel_restores_used_points(self, client, auth_headers, sample_user, sample_order, points_factory):
        points_factory(sample_user, 300)
        client.post(
            '/api/checkout/redeem-points',
            json={'pointsToUse': 100, 'orderId': sample_order.id},
            headers=auth_headers
        )

        response = client.post('/api/orders/cancel', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.get_json()['restored']['restored_points'] == 100
        balance = client.get('/api/user/points', headers=auth_headers).get_json()['total_points']
        assert balance == 300

    def test_cancel_twice(self, client, auth_headers, sample_order):
        client.post('/api/orders/cancel', json={'orderId': sample_order.id}, headers=auth_headers)

        response = client.post('/api/orders/cancel', json={'orderId': sample_order.id}, headers=auth_headers)

        assert response.status_code == 400

    def test_cancel_other_users_order(self, client, other_user, sample_order):
        response = client.post(
            '/api/orders/cancel',
            json={'orderId': sample_order.id},
            headers={'X-User-ID': str(other_user.id)}
        )

        assert response.status_code == 403
