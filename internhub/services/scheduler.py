"""
Scheduled Maintenance - periodic notification jobs.

Jobs (crontab schedule taken from Settings):
- wishlist_reminders   → notify due wishlist reminders, then clear them
- deadline_alerts      → warn about saved postings closing within 3 days
- expired_internships  → expire postings past their deadline
- weekly_summary       → weekly wishlist digest per student
- notification_cleanup → delete old read notifications

Each job is an async function returning how many records it handled, so
the admin API can run any of them on demand via `run_job(name)`.
"""

import logging
from datetime import timedelta
from typing import Awaitable, Callable, Dict, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import text

from internhub.core.config import Settings, get_settings
from internhub.db.postgres import execute_raw_sql, get_db_session, in_clause
from internhub.services.notification_service import (
    NotificationService, PreferenceService, build_data, notify_user
)
from internhub.services.wishlist_service import (
    WishlistService, days_until, deadline_urgency, internship_summaries
)
from internhub.utils.dates import utcnow

logger = logging.getLogger(__name__)

DEADLINE_ALERT_DAYS = 3


async def check_wishlist_reminders() -> int:
    """Notify every due reminder once, then clear its reminder date."""
    wishlist = WishlistService()
    preferences = PreferenceService()
    due = wishlist.due_reminders()
    summaries = internship_summaries(item["internship_id"] for item in due)

    sent = 0
    for item in due:
        summary = summaries.get(item["internship_id"])
        if summary and preferences.wants(item["user_id"], "wishlist_reminders"):
            await notify_user(
                item["user_id"],
                "wishlist_reminder",
                "Wishlist Reminder",
                f"Don't forget about \"{summary['title']}\" at {summary['company_name']}",
                data=build_data(
                    internship_id=item["internship_id"],
                    wishlist_id=item["id"],
                    url=f"/internships/{item['internship_id']}",
                    action_required=True,
                ),
                priority=item["priority"],
            )
            sent += 1
        wishlist.clear_reminder(item["id"])

    logger.info(f"Wishlist reminders: {sent} sent, {len(due)} cleared")
    return sent


async def check_deadline_alerts() -> int:
    """Warn wishlist holders who have not applied about postings closing soon."""
    now = utcnow()
    rows = execute_raw_sql(
        """
        SELECT internship_id, title, application_deadline FROM internships
        WHERE status = 'active'
          AND application_deadline >= :now
          AND application_deadline <= :until
        """,
        {"now": now, "until": now + timedelta(days=DEADLINE_ALERT_DAYS)}
    )
    if not rows:
        return 0

    postings = {row["internship_id"]: row for row in rows}
    holders = WishlistService().holders(postings.keys(), ["not_applied", "planning_to_apply"])
    preferences = PreferenceService()

    sent = 0
    for item in holders:
        if not preferences.wants(item["user_id"], "deadline_alerts"):
            continue
        posting = postings[item["internship_id"]]
        days_left = days_until(posting["application_deadline"], now)
        plural = "" if days_left == 1 else "s"
        await notify_user(
            item["user_id"],
            "wishlist_deadline_approaching",
            "Application Deadline Approaching",
            f"\"{posting['title']}\" application deadline is in {days_left} day{plural}",
            data=build_data(
                internship_id=item["internship_id"],
                wishlist_id=item["id"],
                url=f"/internships/{item['internship_id']}",
                action_required=True,
                metadata={"days_left": days_left},
            ),
            priority=deadline_urgency(days_left),
        )
        sent += 1

    logger.info(f"Deadline alerts: {sent} sent")
    return sent


async def check_expired_internships() -> int:
    """Expire active postings past their deadline and retire wishlist items."""
    now = utcnow()
    rows = execute_raw_sql(
        "SELECT internship_id, title FROM internships WHERE status = 'active' AND application_deadline < :now",
        {"now": now}
    )
    if not rows:
        return 0

    fragment, params = in_clause("id", [row["internship_id"] for row in rows])
    with get_db_session() as db:
        db.execute(
            text(f"UPDATE internships SET status = 'expired', updated_at = :now WHERE internship_id IN {fragment}"),
            {**params, "now": now}
        )

    wishlist = WishlistService()
    for row in rows:
        for item in wishlist.mark_expired(row["internship_id"]):
            await notify_user(
                item["user_id"],
                "wishlist_internship_expired",
                "Internship Expired",
                f"Application deadline for \"{row['title']}\" has passed",
                data=build_data(internship_id=row["internship_id"], wishlist_id=item["id"]),
                priority="low",
            )

    logger.info(f"Expired {len(rows)} internship(s)")
    return len(rows)


async def send_weekly_wishlist_summary() -> int:
    """Send each student with saved postings a weekly digest."""
    wishlist = WishlistService()
    sent = 0
    for user_id in wishlist.users_with_items():
        stats = wishlist.stats(user_id)
        if not stats["total"]:
            continue
        closing = stats["closing_soon"]
        await notify_user(
            user_id,
            "system_update",
            "Weekly Wishlist Summary",
            f"You have {stats['total']} items in your wishlist with {closing} deadlines this week",
            data=build_data(
                url="/wishlist",
                metadata={
                    "total": stats["total"],
                    "deadlines_this_week": closing,
                    "by_priority": stats["by_priority"],
                },
            ),
            priority="low",
        )
        sent += 1

    logger.info(f"Weekly summaries: {sent} sent")
    return sent


async def cleanup_old_notifications() -> int:
    """Delete read notifications older than the retention window."""
    deleted = NotificationService().cleanup(get_settings().notification_retention_days)
    logger.info(f"Notification cleanup: {deleted} deleted")
    return deleted


# name → (job, Settings attribute holding its crontab expression)
JOBS: Dict[str, Tuple[Callable[[], Awaitable[int]], str]] = {
    "wishlist_reminders": (check_wishlist_reminders, "reminder_cron"),
    "deadline_alerts": (check_deadline_alerts, "deadline_alert_cron"),
    "expired_internships": (check_expired_internships, "expiry_cron"),
    "weekly_summary": (send_weekly_wishlist_summary, "weekly_summary_cron"),
    "notification_cleanup": (cleanup_old_notifications, "cleanup_cron"),
}


async def run_job(name: str) -> int:
    """Run one job now. Raises KeyError for an unknown job name."""
    job, _ = JOBS[name]
    logger.info(f"Running maintenance job '{name}'")
    return await job()


async def _scheduled(name: str) -> None:
    try:
        await run_job(name)
    except Exception:
        logger.exception(f"Maintenance job '{name}' failed")


def job_trigger(name: str, settings: Optional[Settings] = None) -> CronTrigger:
    """Build the cron trigger for a job from its crontab setting."""
    settings = settings or get_settings()
    _, cron_attr = JOBS[name]
    return CronTrigger.from_crontab(getattr(settings, cron_attr), timezone=settings.scheduler_timezone)


class MaintenanceScheduler:
    """Registers every job in JOBS on an APScheduler cron trigger in the app's event loop."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._scheduler = AsyncIOScheduler(timezone=self.settings.scheduler_timezone)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def job_ids(self) -> list:
        return [job.id for job in self._scheduler.get_jobs()]

    def start(self) -> None:
        if self._scheduler.running:
            return
        for name in JOBS:
            self._scheduler.add_job(
                _scheduled,
                trigger=job_trigger(name, self.settings),
                args=[name],
                id=name,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=self.settings.scheduler_misfire_grace_seconds,
            )
        self._scheduler.start()
        logger.info(f"Maintenance scheduler started ({len(JOBS)} jobs)")

    async def stop(self) -> None:
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=False)
        logger.info("Maintenance scheduler stopped")
