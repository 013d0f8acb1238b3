import logging
import threading
from datetime import datetime, timezone
from sqlalchemy.orm import sessionmaker
from repositories.kv_entry_repository import KVEntryRepository

logger = logging.getLogger(__name__)

class AutoCleanup:
    """
    Periodically deletes kv_entries rows whose TTL has passed.

    Reads already treat such rows as absent; this only reclaims the space
    taken by keys nobody reads again (old query cache entries, login logs).
    """

    def __init__(self, session_factory: sessionmaker, interval_hours: int = 24):
        self.session_factory = session_factory
        self.interval_hours = interval_hours
        self._running = False
        self._stop_event = threading.Event()
        self._thread = None
        logger.info(f"AutoCleanup initialized with interval: {interval_hours}h")

    def start(self):
        if self._running:
            logger.warning("Auto cleanup already running")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info(f"Auto cleanup started (runs every {self.interval_hours}h)")

    def stop(self):
        self._running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info("Auto cleanup stopped")

    def is_running(self):
        return self._running

    def _run(self):
        while self._running:
            try:
                self.cleanup()
            except Exception as e:
                logger.error(f"Cleanup error: {str(e)}", exc_info=True)

            self._stop_event.wait(self.interval_hours * 3600)

    def cleanup(self) -> int:
        db = self.session_factory()
        try:
            deleted = KVEntryRepository.delete_expired(db, datetime.now(timezone.utc))
            db.commit()
            if deleted > 0:
                logger.info(f"Cleanup completed: {deleted} expired keys removed")
            return deleted
        except Exception as e:
            db.rollback()
            logger.error(f"Expired key cleanup error: {str(e)}")
            return 0
        finally:
            db.close()
