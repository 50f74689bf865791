"""
Logging setup and the subscriber that turns crawl events into log records.
"""
from __future__ import annotations

import json as jsonlib
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from linkratio.models import (
    CRAWL_COMPLETED,
    CRAWL_STARTED,
    PAGE_PROCESSED,
    ROUND_COMPLETED,
    ROUND_STARTED,
    TASK_COMPLETED,
    TASK_FAILED,
    CrawlEvent,
)

EVENT_LEVELS = {
    CRAWL_STARTED: logging.INFO,
    ROUND_STARTED: logging.INFO,
    ROUND_COMPLETED: logging.INFO,
    CRAWL_COMPLETED: logging.INFO,
    TASK_COMPLETED: logging.DEBUG,
    PAGE_PROCESSED: logging.DEBUG,
    TASK_FAILED: logging.ERROR,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event is not None:
            payload["event"] = event
        return jsonlib.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str = "INFO", *, to_file: Optional[str] = None, json: bool = False) -> None:
    if to_file:
        handler: logging.Handler = logging.FileHandler(to_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    if json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.addHandler(handler)

    # reduce noise from HTTP internals
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class EventLogger:
    """Crawl event subscriber that writes each event to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.log = logger or logging.getLogger("linkratio.crawl")

    def __call__(self, event: CrawlEvent) -> None:
        level = EVENT_LEVELS.get(event.kind, logging.INFO)
        if not self.log.isEnabledFor(level):
            return
        fields = " ".join(f"{k}={v}" for k, v in event.data.items())
        self.log.log(level, "%s %s", event.kind, fields, extra={"event": event.kind})
