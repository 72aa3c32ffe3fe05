"""
Points Service for the storefront loyalty program.

Owns every write to the points ledger:
- Awarding order points on completion
- Cancelling awarded points when an order is cancelled
- Consuming points at checkout (FIFO by earliest expiry)
- Restoring consumed points when the order is cancelled

ARCHITECTURE:
- PointEntry is an insert-only signed ledger; rows are never updated or deleted
- Positive earn rows are "lots"; cancel/redeem/restore rows point at the lot
  they draw against through source_entry_id and inherit its expiry
- The available balance is the sum of all rows that have not expired

Each public write runs in a single transaction. Failures roll back and are
returned as {'success': False, 'error': ...}.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app

from ..extensions import db
from ..models import Order, PointEntry, PointEntryType, User
from ..utils.dates import format_date
from ..utils.exceptions import (
    InsufficientPointsError,
    LoyaltyError,
    OrderNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from .notification_service import notification_service
from .points_calculator import calculate_order_points, calculate_point_expiry_date

DEFAULT_CANCEL_REASON = 'Order cancelled'


class PointsService:
    """
    Central service for points ledger operations.

    Usage:
        # Award points when an order completes
        result = points_service.award_order_points(order.id)

        # Spend points at checkout
        result = points_service.consume_points(user.id, order.id, 500)
    """

    # ==================== Balance ====================

    def get_available_balance(self, user_id: int, now: Optional[datetime] = None) -> int:
        """Sum of every ledger row for the user that has not expired yet."""
        now = now or datetime.utcnow()
        total = db.session.query(
            db.func.coalesce(db.func.sum(PointEntry.amount), 0)
        ).filter(
            PointEntry.user_id == user_id,
            PointEntry.expires_at > now
        ).scalar()
        return int(total or 0)

    def get_points_history(self, user_id: int, limit: Optional[int] = None) -> List[PointEntry]:
        """Ledger rows for the user, newest first."""
        query = PointEntry.query.filter_by(user_id=user_id).order_by(
            PointEntry.created_at.desc(),
            PointEntry.id.desc()
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def _lot_remaining(self, lots: List[PointEntry]) -> Dict[int, int]:
        """Remaining points per lot: lot amount plus every row drawn against it."""
        if not lots:
            return {}

        drawn = dict(
            db.session.query(
                PointEntry.source_entry_id,
                db.func.sum(PointEntry.amount)
            ).filter(
                PointEntry.source_entry_id.in_([lot.id for lot in lots])
            ).group_by(PointEntry.source_entry_id).all()
        )
        return {lot.id: lot.amount + int(drawn.get(lot.id) or 0) for lot in lots}

    # ==================== Award / Cancel ====================

    def award_order_points(self, order_id: int) -> Dict[str, Any]:
        """
        Award points for a completed order.

        Writes the earn row, sets order.points_awarded and creates the
        POINTS_EARNED notification in one commit. Does not check the
        points_awarded flag itself; callers guard against double awards.

        Args:
            order_id: Order to award points for

        Returns:
            Dict with success status, points and the ledger entry
        """
        try:
            order = Order.query.get(order_id)
            if not order or not order.user_id:
                raise OrderNotFoundError(order_id)

            calculation = calculate_order_points(
                order.items,
                base_rate=current_app.config.get('POINTS_BASE_RATE', 0.01),
                campaign_bonus_rate=current_app.config.get('POINTS_CAMPAIGN_BONUS_RATE', 0.05)
            )

            now = datetime.utcnow()
            expires_at = calculate_point_expiry_date(
                now,
                current_app.config.get('POINTS_EXPIRY_YEARS', 1)
            )

            entry = PointEntry(
                user_id=order.user_id,
                order_id=order.id,
                amount=calculation['total_points'],
                entry_type=PointEntryType.EARN,
                reason=f'Order #{order.order_number}',
                meta={
                    'base_points': calculation['base_points'],
                    'bonus_points': calculation['bonus_points'],
                    'breakdown': calculation['breakdown']
                },
                expires_at=expires_at,
                created_at=now
            )
            db.session.add(entry)

            order.points_awarded = True

            notification_service.points_earned(
                order.user_id,
                order,
                calculation['total_points'],
                format_date(expires_at)
            )

            db.session.commit()

            current_app.logger.info(
                f"Awarded {calculation['total_points']} points to user {order.user_id} "
                f"for order {order.order_number}"
            )

            return {
                'success': True,
                'points': calculation['total_points'],
                'base_points': calculation['base_points'],
                'bonus_points': calculation['bonus_points'],
                'breakdown': calculation['breakdown'],
                'expires_at': expires_at.isoformat(),
                'entry': entry.to_dict()
            }

        except LoyaltyError as e:
            db.session.rollback()
            return {'success': False, 'error': e.message}
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error awarding points for order {order_id}: {str(e)}")
            return {'success': False, 'error': f'Failed to award points: {str(e)}'}

    def cancel_order_points(self, order_id: int, reason: str = DEFAULT_CANCEL_REASON) -> Dict[str, Any]:
        """
        Reverse the points awarded for an order.

        Every earn row of the order that has not been reversed yet gets a
        negated cancel row with the same expiry, plus a POINTS_CANCELED
        notification. Running it again finds nothing left to reverse.

        Args:
            order_id: Order whose points are cancelled
            reason: Stored on the cancel rows and shown to the user

        Returns:
            Dict with success status and the cancel entries
        """
        try:
            order = Order.query.get(order_id)
            if not order:
                raise OrderNotFoundError(order_id)

            earned = PointEntry.query.filter(
                PointEntry.order_id == order_id,
                PointEntry.entry_type == PointEntryType.EARN,
                PointEntry.amount > 0
            ).order_by(PointEntry.id).all()

            already_cancelled = {
                row.related_entry_id
                for row in PointEntry.query.filter_by(
                    order_id=order_id,
                    entry_type=PointEntryType.CANCEL
                ).all()
            }

            to_cancel = [row for row in earned if row.id not in already_cancelled]
            if not to_cancel:
                return {
                    'success': True,
                    'message': 'No points to cancel for this order',
                    'canceled_points': 0,
                    'canceled_entries': []
                }

            cancel_rows = []
            for row in to_cancel:
                cancel_row = PointEntry(
                    user_id=row.user_id,
                    order_id=order_id,
                    amount=-row.amount,
                    entry_type=PointEntryType.CANCEL,
                    source_entry_id=row.id,
                    related_entry_id=row.id,
                    reason=reason,
                    meta={'canceled_entry_id': row.id},
                    expires_at=row.expires_at
                )
                db.session.add(cancel_row)
                cancel_rows.append(cancel_row)

                notification_service.points_canceled(row.user_id, order, row.amount, reason)

            db.session.commit()

            total = sum(row.amount for row in to_cancel)
            current_app.logger.info(
                f"Cancelled {total} points for order {order.order_number} ({reason})"
            )

            return {
                'success': True,
                'canceled_points': total,
                'canceled_entries': [row.to_dict() for row in cancel_rows]
            }

        except LoyaltyError as e:
            db.session.rollback()
            return {'success': False, 'error': e.message}
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error cancelling points for order {order_id}: {str(e)}")
            return {'success': False, 'error': f'Failed to cancel points: {str(e)}'}

    # ==================== Consume / Restore ====================

    def consume_points(self, user_id: int, order_id: int, points: int) -> Dict[str, Any]:
        """
        Spend points on a pending order.

        Locks the user row, re-checks the available balance and draws the
        points from non-expired lots, earliest expiry first. Each redeem row
        inherits the expiry of the lot it draws from. Nothing is written if
        the balance is insufficient.

        Args:
            user_id: User spending the points
            order_id: Pending order the points are applied to
            points: Points to spend (must be positive)

        Returns:
            Dict with success status, points used and remaining balance
        """
        try:
            if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
                raise ValidationError('Points to use must be a positive whole number', 'points')

            user = User.query.filter_by(id=user_id).with_for_update().first()
            if not user:
                raise UserNotFoundError(user_id)

            order = Order.query.get(order_id)
            if not order or order.user_id != user_id:
                raise OrderNotFoundError(order_id)

            now = datetime.utcnow()
            available = self.get_available_balance(user_id, now)
            if points > available:
                raise InsufficientPointsError(available, points)

            lots = PointEntry.query.filter(
                PointEntry.user_id == user_id,
                PointEntry.entry_type == PointEntryType.EARN,
                PointEntry.amount > 0,
                PointEntry.expires_at > now
            ).order_by(PointEntry.expires_at.asc(), PointEntry.id.asc()).all()

            remaining_by_lot = self._lot_remaining(lots)

            redeem_rows = []
            still_needed = points
            for lot in lots:
                if still_needed <= 0:
                    break

                remaining = remaining_by_lot.get(lot.id, 0)
                if remaining <= 0:
                    continue

                take = min(remaining, still_needed)
                redeem_row = PointEntry(
                    user_id=user_id,
                    order_id=order.id,
                    amount=-take,
                    entry_type=PointEntryType.REDEEM,
                    source_entry_id=lot.id,
                    reason=f'Used on order #{order.order_number}',
                    expires_at=lot.expires_at,
                    created_at=now
                )
                db.session.add(redeem_row)
                redeem_rows.append(redeem_row)
                still_needed -= take

            if still_needed > 0:
                raise InsufficientPointsError(points - still_needed, points)

            order.points_used = (order.points_used or 0) + points

            notification_service.points_redeemed(user_id, order, points)

            db.session.commit()

            current_app.logger.info(
                f"User {user_id} used {points} points on order {order.order_number}"
            )

            return {
                'success': True,
                'points_used': points,
                'remaining_balance': available - points,
                'entries': [row.to_dict() for row in redeem_rows]
            }

        except LoyaltyError as e:
            db.session.rollback()
            return {'success': False, 'error': e.message, 'code': e.code}
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error consuming points for user {user_id}: {str(e)}")
            return {'success': False, 'error': f'Failed to use points: {str(e)}'}

    def restore_used_points(self, order_id: int) -> Dict[str, Any]:
        """
        Give back the points spent on a cancelled order.

        Writes a restore row for every redeem row of the order that has not
        been restored yet and resets order.points_used.
        """
        try:
            order = Order.query.get(order_id)
            if not order:
                raise OrderNotFoundError(order_id)

            redeemed = PointEntry.query.filter_by(
                order_id=order_id,
                entry_type=PointEntryType.REDEEM
            ).order_by(PointEntry.id).all()

            already_restored = {
                row.related_entry_id
                for row in PointEntry.query.filter_by(
                    order_id=order_id,
                    entry_type=PointEntryType.RESTORE
                ).all()
            }

            to_restore = [row for row in redeemed if row.id not in already_restored]
            if not to_restore:
                return {'success': True, 'message': 'No used points to restore', 'restored_points': 0}

            for row in to_restore:
                db.session.add(PointEntry(
                    user_id=row.user_id,
                    order_id=order_id,
                    amount=-row.amount,
                    entry_type=PointEntryType.RESTORE,
                    source_entry_id=row.source_entry_id,
                    related_entry_id=row.id,
                    reason=f'Restored from cancelled order #{order.order_number}',
                    expires_at=row.expires_at
                ))

            order.points_used = 0
            db.session.commit()

            restored = -sum(row.amount for row in to_restore)
            current_app.logger.info(f"Restored {restored} points for order {order.order_number}")

            return {'success': True, 'restored_points': restored}

        except LoyaltyError as e:
            db.session.rollback()
            return {'success': False, 'error': e.message}
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error restoring points for order {order_id}: {str(e)}")
            return {'success': False, 'error': f'Failed to restore points: {str(e)}'}


# Singleton instance
points_service = PointsService()
