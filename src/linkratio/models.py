"""
Data structures passed between the coordinator and its executors.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Event kinds published by the crawl coordinators
CRAWL_STARTED = "crawl_started"
ROUND_STARTED = "round_started"
TASK_COMPLETED = "task_completed"
TASK_FAILED = "task_failed"
PAGE_PROCESSED = "page_processed"
ROUND_COMPLETED = "round_completed"
CRAWL_COMPLETED = "crawl_completed"


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    """A URL waiting to be visited, with its link distance from the root."""
    url: str
    depth: int


@dataclass(frozen=True, slots=True)
class PageResult:
    """Same-domain link ratio for a single crawled page."""
    url: str
    depth: int
    ratio: float


@dataclass(frozen=True, slots=True)
class CrawlTask:
    """A slice of the frontier handed to one executor for one round."""
    id: str
    urls: Tuple[FrontierEntry, ...]
    root_url: str
    max_depth: int
    timeout: float


@dataclass(slots=True)
class TaskOutcome:
    """What an executor hands back to the coordinator."""
    task_id: str
    page_results: List[PageResult] = field(default_factory=list)
    discovered_links: List[FrontierEntry] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def lost(cls, task_id: str, error: str) -> "TaskOutcome":
        """Outcome for a slice that could not be processed at all."""
        return cls(task_id=task_id, error=error)


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_crawled: int = 0
    rounds: int = 0
    tasks_dispatched: int = 0
    tasks_failed: int = 0
    links_discovered: int = 0
    urls_scheduled: int = 0

    def record_outcome(self, outcome: TaskOutcome) -> None:
        self.tasks_dispatched += 1
        if outcome.failed:
            self.tasks_failed += 1
            return
        self.pages_crawled += len(outcome.page_results)
        self.links_discovered += len(outcome.discovered_links)

    def record_round(self, scheduled: int) -> None:
        self.rounds += 1
        self.urls_scheduled += scheduled


@dataclass(frozen=True, slots=True)
class CrawlEvent:
    """Structured notification published while a crawl runs."""
    kind: str
    data: Dict[str, Any] = field(default_factory=dict)
