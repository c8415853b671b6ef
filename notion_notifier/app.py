import logging
import os
import signal
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.blocking import BlockingScheduler
from dotenv import load_dotenv

from notion_notifier.config import ConfigError, Settings, load_settings, validate_environment
from notion_notifier.dates import current_weekday_short, to_iso_utc, utc_now
from notion_notifier.messaging import DEFAULT_TITLE, DeliveryError, build_notifier, format_message
from notion_notifier.records import NotionClient, NotionError
from notion_notifier.scheduling import reschedule

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# ---------------------------------------------------------------------------
# Run loop
# ---------------------------------------------------------------------------
@dataclass
class RunSummary:
    fetched: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def run_once(settings: Settings, client: NotionClient, notifier, now: Optional[datetime] = None) -> RunSummary:
    """
    Run a single pass: fetch due records, then send and reschedule each one.

    ``now`` is captured once and used for the query bound, the weekday filter
    and every LastSent write. A fetch failure raises NotionError; failures
    while sending or updating one record are logged and the pass moves on.
    """
    now = now or utc_now()
    now_iso = to_iso_utc(now)
    summary = RunSummary()

    records = client.query_due(now_iso, settings.page_size)
    summary.fetched = len(records)
    if not records:
        logger.info("No items to notify.")
        return summary

    today = current_weekday_short(settings.tz, now)
    markup = getattr(notifier, "markup", "html")

    for record in records:
        title = record.title or DEFAULT_TITLE

        if settings.weekday_filter_enabled and record.notify_days and today not in record.notify_days:
            logger.info(
                "Skipping %s: today is %s, notify days are %s",
                title,
                today,
                ", ".join(sorted(record.notify_days)),
            )
            summary.skipped += 1
            continue

        message = format_message(record, markup=markup)
        try:
            notifier.send(message)
            logger.info("Sent: %s", title)
            update = reschedule(
                record,
                now,
                tz=settings.tz,
                weekend=settings.weekend_days,
                repeat_aware=settings.repeat_aware,
            )
            client.update_page(record.id, update.to_properties())
            logger.info("Scheduled next or disabled: %s", title)
            summary.sent += 1
        except (DeliveryError, NotionError) as exc:
            logger.error("Send/update error for %s: %s", title, exc.payload or exc)
            summary.failed += 1
        except Exception as exc:
            logger.error("Send/update error for %s: %s", title, exc, exc_info=True)
            summary.failed += 1

    logger.info(
        "Run complete: %d fetched, %d sent, %d skipped, %d failed",
        summary.fetched,
        summary.sent,
        summary.skipped,
        summary.failed,
    )
    return summary


def run_pass(settings: Settings, client: NotionClient, notifier) -> bool:
    """Run one pass, logging a fatal fetch error. Returns False on failure."""
    try:
        run_once(settings, client, notifier)
        return True
    except NotionError as exc:
        logger.error("Error fetching records: %s", exc.payload or exc)
        return False


# ---------------------------------------------------------------------------
# Interval mode (APS)
# ---------------------------------------------------------------------------
def build_scheduler(settings: Settings, client: NotionClient, notifier) -> BlockingScheduler:
    scheduler = BlockingScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        timezone=settings.timezone,
    )
    scheduler.add_job(
        run_pass,
        "interval",
        minutes=settings.run_every_minutes,
        args=[settings, client, notifier],
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def register_signal_handlers(scheduler: BlockingScheduler) -> None:
    """Shut the scheduler down on SIGTERM/SIGINT."""

    def shutdown_scheduler(signum, frame) -> None:
        logger.info("Stopping scheduler (signal %s)", signum)
        scheduler.shutdown(wait=False)

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            signal.signal(sig, shutdown_scheduler)
        except (ValueError, OSError) as exc:
            logger.warning("Could not register handler for signal %s: %s", sig, exc)


# ---------------------------------------------------------------------------
# Main entrypoint
# ---------------------------------------------------------------------------
def main(environ: Optional[Mapping[str, str]] = None) -> int:
    if environ is None:
        load_dotenv()
        environ = os.environ
    setup_logging(environ.get("LOG_LEVEL", "INFO"))

    # Exits with code 1 when required variables are missing
    validate_environment(environ)
    try:
        settings = load_settings(environ)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    logger.info("=== Notion Notifier Configuration ===")
    logger.info("Database ID: %s", settings.database_id)
    logger.info("Messaging provider: %s", settings.messaging_provider)
    logger.info("Timezone: %s (weekend: %s)", settings.timezone, ",".join(settings.weekend_days))
    logger.info("Repeat aware: %s", settings.repeat_aware)
    logger.info("Weekday filter: %s", settings.weekday_filter_enabled)
    logger.info("=====================================")

    client = NotionClient(
        settings.notion_token,
        settings.database_id,
        settings.notion_version,
        timeout=settings.request_timeout,
    )
    notifier = build_notifier(settings)

    if not run_pass(settings, client, notifier):
        return 1

    if settings.run_every_minutes > 0:
        scheduler = build_scheduler(settings, client, notifier)
        register_signal_handlers(scheduler)
        logger.info("Scheduler started: running every %d minute(s)", settings.run_every_minutes)
        scheduler.start()

    return 0


if __name__ == "__main__":
    sys.exit(main())
