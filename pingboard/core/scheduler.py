"""Background polling so history keeps filling without dashboard traffic."""

from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pingboard.core.dashboard import DashboardService
from pingboard.utils.logger import get_logger

logger = get_logger(__name__)

JOB_ID = "poll_providers"


class PollingScheduler:
    """
    Runs the poll cache refresh on a fixed interval.

    The job goes through the same poll cache as dashboard reads, so a
    scheduled run and a concurrent page load share one probe. Every tick
    probes, joining a probe already in flight instead of starting another.
    """

    def __init__(self, dashboard: DashboardService, interval_seconds: int):
        """
        Initialize polling scheduler.

        Args:
            dashboard: Service whose providers are polled
            interval_seconds: Seconds between runs
        """
        self.dashboard = dashboard
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler()
        self.job_id: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def start(self) -> None:
        """Schedule the polling job and start the scheduler."""
        if not self.dashboard.providers:
            logger.warning("No providers configured, background polling not started")
            return

        job = self.scheduler.add_job(
            self._poll,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Poll providers",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.job_id = job.id
        self.scheduler.start()

        logger.info(
            "Polling scheduler started",
            extra={
                "interval_seconds": self.interval_seconds,
                "providers": len(self.dashboard.providers)
            }
        )

    async def stop(self) -> None:
        """Stop the scheduler without waiting for a running job."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Polling scheduler stopped")

    async def _poll(self) -> None:
        """Scheduled job body; errors are logged so the schedule keeps running."""
        try:
            history = await self.dashboard.refresh(force=True)
            logger.debug(
                "Scheduled poll finished",
                extra={"providers_with_history": len(history)}
            )
        except Exception as e:
            logger.exception("Error during scheduled poll", extra={"error": str(e)})

    def get_job_status(self) -> Optional[Dict]:
        """Next run time and trigger of the polling job, or None if not scheduled."""
        if self.job_id is None:
            return None
        job = self.scheduler.get_job(self.job_id)
        if not job:
            return None
        return {
            "job_id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        }
