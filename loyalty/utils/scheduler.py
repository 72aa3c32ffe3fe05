"""
Background scheduler for automated tasks.

Handles:
- Point expiry alerts, 7/14/30 days ahead (daily at 9 AM UTC)
"""
import os
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None
_flask_app = None  # Store Flask app reference for context


def init_scheduler(app):
    """
    Initialize the background scheduler.

    Only runs in production or when ENABLE_SCHEDULER=true.
    Only the main gunicorn process should run the scheduler.
    """
    global _scheduler, _flask_app

    _flask_app = app

    if app.config.get('TESTING'):
        logger.info('[Scheduler] Disabled in testing mode')
        return None

    if not (os.getenv('FLASK_ENV') == 'production' or app.config.get('ENABLE_SCHEDULER')):
        logger.info('[Scheduler] Disabled (set FLASK_ENV=production or ENABLE_SCHEDULER=true)')
        return None

    # Prevent multiple scheduler instances (gunicorn workers)
    if os.getenv('SCHEDULER_RUNNING') == 'true':
        logger.info('[Scheduler] Already running in another process')
        return None

    try:
        _scheduler = BackgroundScheduler(
            timezone='UTC',
            job_defaults={
                'coalesce': True,  # Combine missed runs
                'max_instances': 1,  # Prevent concurrent runs
                'misfire_grace_time': 3600  # 1 hour grace period
            }
        )

        _scheduler.add_job(
            run_point_expiry_alerts,
            trigger=CronTrigger(hour=9, minute=0),
            id='point_expiry_alerts',
            name='Send point expiry alerts',
            replace_existing=True
        )

        _scheduler.start()
        os.environ['SCHEDULER_RUNNING'] = 'true'

        logger.info('[Scheduler] Started: point expiry alerts daily at 9:00 UTC')

        import atexit
        atexit.register(shutdown_scheduler)

    except Exception as e:
        logger.error(f'[Scheduler] Failed to initialize: {e}')
        _scheduler = None

    return _scheduler


def shutdown_scheduler():
    """Gracefully shutdown the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info('[Scheduler] Shutdown complete')


def run_point_expiry_alerts():
    """
    Send point expiry alerts for every configured lead time.
    Runs daily.
    """
    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return

    logger.info('[Scheduler] Processing point expiry alerts...')

    with _flask_app.app_context():
        try:
            from ..services.point_expiry_alerts import process_scheduled_expiry_alerts

            results = process_scheduled_expiry_alerts()
            for days, result in results.items():
                if result.get('success'):
                    logger.info(f'[Scheduler] {days}-day expiry alerts: {result["count"]} users notified')
                else:
                    logger.error(f'[Scheduler] {days}-day expiry alerts failed: {result.get("error")}')

        except Exception as e:
            logger.error(f'[Scheduler] Point expiry alerts failed: {e}')
