"""Background scheduler for periodic cleanup tasks."""

import logging
from datetime import UTC, datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lumenpulse.config import settings
from lumenpulse.database import SessionLocal
from lumenpulse.services.challenge_store import ChallengeStore
from lumenpulse.services.password_reset_service import delete_stale_reset_tokens
from lumenpulse.services.refresh_token_service import delete_stale_refresh_tokens

logger = logging.getLogger(__name__)


def sweep_challenges_job(store: ChallengeStore) -> None:
    """Evict expired wallet challenges from the store."""
    try:
        evicted = store.sweep_expired(datetime.now(UTC).replace(tzinfo=None))
        if evicted:
            logger.debug(f"Sweep: evicted {evicted} expired challenges")
    except Exception as e:
        logger.error(f"Challenge sweep failed: {e}")


def cleanup_tokens_job() -> None:
    """Delete used/expired reset tokens and revoked/expired refresh tokens."""
    db = SessionLocal()
    try:
        reset_deleted = delete_stale_reset_tokens(db)
        refresh_deleted = delete_stale_refresh_tokens(db)
        if reset_deleted or refresh_deleted:
            logger.info(
                f"Cleanup: deleted {reset_deleted} reset tokens, {refresh_deleted} refresh tokens"
            )
    except Exception as e:
        logger.error(f"Cleanup failed: {e}")
    finally:
        db.close()


def start_scheduler(store: ChallengeStore) -> BackgroundScheduler:
    """Create and start a scheduler owned by the caller."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        sweep_challenges_job,
        trigger=IntervalTrigger(seconds=settings.challenge_sweep_interval_seconds),
        args=[store],
        id="sweep_expired_challenges",
        replace_existing=True,
    )
    scheduler.add_job(
        cleanup_tokens_job,
        trigger=IntervalTrigger(hours=settings.cleanup_interval_hours),
        id="cleanup_stale_tokens",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started - challenge sweep every {settings.challenge_sweep_interval_seconds}s, "
        f"token cleanup every {settings.cleanup_interval_hours} hour(s)"
    )
    return scheduler


def shutdown_scheduler(scheduler: BackgroundScheduler) -> None:
    """Shutdown the scheduler gracefully."""
    scheduler.shutdown()
    logger.info("Scheduler stopped")
