"""
Maintenance job: deletes rate limit attempts that fell out of the window.
The guard never counts them; this only keeps the table small. Run from cron.
"""
import sys
import os
from datetime import datetime, timedelta, timezone

# Add the project root to the python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.logger import logger
from app.ratelimit.store import SqlAttemptStore


def prune_attempts(retention_minutes: int = settings.RATE_LIMIT_WINDOW_MINUTES) -> int:
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=retention_minutes)
    logger.info(f"Pruning rate limit attempts older than {cutoff.isoformat()}")

    db = SessionLocal()
    try:
        deleted = SqlAttemptStore(db).prune_before(cutoff)
    except Exception as e:
        logger.error(f"Error pruning attempts: {e}")
        raise
    finally:
        db.close()

    logger.info(f"Removed {deleted} expired attempts")
    return deleted


if __name__ == "__main__":
    prune_attempts()
