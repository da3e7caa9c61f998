"""
APScheduler Configuration

Daily jobs that drive time-based internship transitions. Jobs call the same
service operations an authorized teacher triggers over the API.
"""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from internhub.services.internship_service import get_internship_service
from internhub.services.position_service import get_position_service

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def sweep_expired_internships():
    """
    Daily job moving ended internships to pending_evaluation.

    Also closes positions whose end date has passed.
    """
    logger.info("Starting daily expiry sweep")

    try:
        summary = await get_internship_service().sweep_expired()
        closed = await get_position_service().close_expired_positions()
        logger.info(f"Expiry sweep complete: {summary['updated']} internships, {closed} positions closed")
    except Exception as e:
        logger.error(f"Failed to sweep expired internships: {e}", exc_info=True)


async def send_expiry_reminders():
    """Daily job reminding students and teachers of internships about to end."""
    logger.info("Starting daily expiry reminders")

    try:
        summary = await get_internship_service().remind()
        logger.info(
            f"Expiry reminders complete: {summary['checked']} internships checked, "
            f"{summary['sent']} notifications sent"
        )
    except Exception as e:
        logger.error(f"Failed to send expiry reminders: {e}", exc_info=True)


def configure_scheduler():
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Expiry sweep: Every day at 00:05
        - Expiry reminders: Every day at 09:00
    """
    scheduler.add_job(
        sweep_expired_internships,
        trigger=CronTrigger(hour=0, minute=5),
        id='internship_expiry_sweep',
        name='Sweep Expired Internships',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1
    )

    scheduler.add_job(
        send_expiry_reminders,
        trigger=CronTrigger(hour=9, minute=0),
        id='internship_expiry_reminders',
        name='Send Internship Expiry Reminders',
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )

    logger.info("Scheduler configured with expiry sweep and reminder jobs")


def start_scheduler():
    """Start the APScheduler"""
    configure_scheduler()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
