"""
Point expiry alerts.

Finds users with earned points expiring on a given day and notifies them
in-app and by email. Run daily by the scheduler for 7, 14 and 30 days ahead,
or manually with `flask loyalty expiry-alerts`.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models import PointEntry, User
from ..utils.dates import format_date
from .email_service import email_service
from .notification_service import notification_service

DEFAULT_ALERT_DAYS = (7, 14, 30)


def process_point_expiry_alerts(days_until_expiry: int = 14, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Notify users whose points expire `days_until_expiry` days from today.

    Ledger rows expiring within that calendar day are summed per user.
    Cancel, redeem and restore rows carry the expiry of the lot they draw
    on, so the sum is what is actually left to expire. Users whose sum is
    positive get a POINTS_EXPIRING notification and an email. Email
    failures are recorded per user and do not stop the run.

    Returns:
        Dict with success status, count of notified users and details
    """
    try:
        now = now or datetime.utcnow()
        day_start = datetime(now.year, now.month, now.day) + timedelta(days=days_until_expiry)
        day_end = day_start + timedelta(days=1)

        expiring_total = db.func.sum(PointEntry.amount)
        rows = db.session.query(
            PointEntry.user_id,
            expiring_total.label('expiring_points'),
            db.func.min(PointEntry.expires_at).label('expiry_date')
        ).filter(
            PointEntry.expires_at >= day_start,
            PointEntry.expires_at < day_end
        ).group_by(
            PointEntry.user_id
        ).having(
            expiring_total > 0
        ).all()

        if not rows:
            current_app.logger.info(f"No points expiring in {days_until_expiry} days")
            return {
                'success': True,
                'count': 0,
                'message': 'No users have points expiring on that day'
            }

        notified = []
        for row in rows:
            user = User.query.get(row.user_id)
            if not user:
                continue

            points = int(row.expiring_points)
            expiry_date = row.expiry_date or day_start
            notification_service.points_expiring(
                user.id, points, format_date(expiry_date), days_until_expiry
            )
            notified.append((user, points, expiry_date))

        db.session.commit()

        details = []
        for user, points, expiry_date in notified:
            email_result = email_service.send_points_expiring_email(
                user, points, expiry_date, days_until_expiry
            )
            details.append({
                'user_id': user.id,
                'email': user.email,
                'expiring_points': points,
                'notified': True,
                'email_sent': bool(email_result.get('success'))
            })

        current_app.logger.info(
            f"Sent point expiry alerts to {len(details)} users ({days_until_expiry} days ahead)"
        )

        return {
            'success': True,
            'count': len(details),
            'message': f'Sent point expiry alerts to {len(details)} users',
            'details': details
        }

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error processing point expiry alerts: {str(e)}")
        return {'success': False, 'error': f'Failed to process point expiry alerts: {str(e)}'}


def process_scheduled_expiry_alerts(days: Optional[Iterable[int]] = None) -> Dict[int, Dict[str, Any]]:
    """Run the expiry alerts for every configured lead time (7, 14 and 30 days by default)."""
    days = days or current_app.config.get('POINT_EXPIRY_ALERT_DAYS', DEFAULT_ALERT_DAYS)
    return {day: process_point_expiry_alerts(day) for day in days}
