"""
APScheduler configuration for running backups on a crontab schedule.

Used with --cron: the process stays in the foreground and runs the requested
stages at every trigger instead of once.
"""

import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from dbdumper.config import BackupSettings, Config
from dbdumper.backup.executor import run_backup


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def scheduled_backup(settings: BackupSettings):
    """
    Scheduled job wrapper.

    A failed run is logged; the scheduler keeps going.
    """
    exit_code = run_backup(settings)
    if exit_code != 0:
        logger.error(f"Scheduled backup run failed (exit status {exit_code})")
    else:
        logger.info("Scheduled backup run completed")


def init_scheduler(settings: BackupSettings):
    """
    Initialize and configure APScheduler.

    Args:
        settings: Settings with a crontab expression in settings.cron

    Raises:
        ValueError: If the crontab expression is invalid
    """
    global scheduler

    if scheduler is not None:
        return scheduler

    trigger = CronTrigger.from_crontab(settings.cron, timezone=Config.SCHEDULER_TIMEZONE)

    job_defaults = {
        'coalesce': True,  # Combine multiple pending instances into one
        'max_instances': 1,  # Only one instance of a job at a time
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    scheduler = BlockingScheduler(
        job_defaults=job_defaults,
        timezone=Config.SCHEDULER_TIMEZONE
    )

    scheduler.add_job(
        func=scheduled_backup,
        trigger=trigger,
        args=[settings],
        id='database_backup',
        name='Database Backup',
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the scheduler. Blocks until interrupted.
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    for job in scheduler.get_jobs():
        logger.info(f"Scheduled job {job.id}: {job.name} ({job.trigger})")

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler interrupted")
    finally:
        stop_scheduler()


def stop_scheduler():
    """Stop the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    scheduler = None
