"""
Background Services

- MatchSweepService: auto-rejects pending match requests whose response
  deadline has passed and re-queues the affected mentees.
- SelectionEmailService: emails approved mentees their mentor selection link
  once a published program's registrations have closed.

Both are started and stopped from the application lifespan.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from db import get_db
from mentoring.logic.constants import MATCH_SWEEP_INTERVAL_MINUTES, SELECTION_EMAIL_INTERVAL_MINUTES
from mentoring.logic.lifecycle import expire_overdue_matches
from mentoring.logic.runner import auto_send_selection_emails

logger = logging.getLogger(__name__)


class PeriodicService:
    """Runs `sweep_once` in a worker thread every `interval_minutes`."""

    name = "Periodic"

    def __init__(self, interval_minutes: int, session_factory=get_db):
        self.interval_seconds = interval_minutes * 60
        self.session_factory = session_factory

        self.running = False
        self._task: Optional[asyncio.Task] = None

        self.stats = {"last_sweep": None}

    async def start(self):
        """Start the background loop"""
        if self.running:
            logger.warning(f"[{self.name}] Service already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"[{self.name}] Started - Interval: {self.interval_seconds}s")

    async def stop(self):
        """Stop the background loop"""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info(f"[{self.name}] Stopped")

    async def _sweep_loop(self):
        while self.running:
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception as e:
                logger.error(f"[{self.name}] Error in sweep loop: {e}", exc_info=True)

            await asyncio.sleep(self.interval_seconds)

    def sweep_once(self, now: Optional[datetime] = None):
        raise NotImplementedError


class MatchSweepService(PeriodicService):
    """Runs expire_overdue_matches every `interval_minutes`."""

    name = "MatchSweep"

    def __init__(self, interval_minutes: int = MATCH_SWEEP_INTERVAL_MINUTES, session_factory=get_db):
        super().__init__(interval_minutes, session_factory)
        self.stats["total_auto_rejected"] = 0

    def sweep_once(self, now: Optional[datetime] = None) -> int:
        """
        Run one sweep in its own transaction.

        Returns:
            Number of matches auto-rejected
        """
        with self.session_factory() as db:
            count = expire_overdue_matches(db, now)

        self.stats["total_auto_rejected"] += count
        self.stats["last_sweep"] = datetime.utcnow().isoformat()
        if count:
            logger.info(f"[{self.name}] Auto-rejected {count} expired match requests")
        return count


class SelectionEmailService(PeriodicService):
    """Runs auto_send_selection_emails every `interval_minutes` (six hours by default)."""

    name = "SelectionEmails"

    def __init__(self, interval_minutes: int = SELECTION_EMAIL_INTERVAL_MINUTES, session_factory=get_db):
        super().__init__(interval_minutes, session_factory)
        self.stats["total_programs"] = 0
        self.stats["total_emails_sent"] = 0

    def sweep_once(self, now: Optional[datetime] = None) -> dict:
        with self.session_factory() as db:
            summary = auto_send_selection_emails(db, now)

        self.stats["total_programs"] += summary["programsProcessed"]
        self.stats["total_emails_sent"] += summary["emailsSent"]
        self.stats["last_sweep"] = datetime.utcnow().isoformat()
        return summary


match_sweep_service = MatchSweepService()
selection_email_service = SelectionEmailService()
