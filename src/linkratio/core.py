"""
Core crawling logic: work distribution and the round-based coordinators.

A crawl proceeds in rounds. Each round takes the whole current frontier
level, runs it through the executors, waits for every one of them, and only
then merges results and deduplicates newly discovered links into the next
level. The visited set and the result list are touched by the coordinator
alone, between rounds.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import BrokenExecutor, Executor, ProcessPoolExecutor
from functools import partial
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from linkratio.config import CrawlConfig
from linkratio.models import (
    CRAWL_COMPLETED,
    CRAWL_STARTED,
    PAGE_PROCESSED,
    ROUND_COMPLETED,
    ROUND_STARTED,
    TASK_COMPLETED,
    TASK_FAILED,
    CrawlEvent,
    CrawlStats,
    CrawlTask,
    FrontierEntry,
    PageResult,
    TaskOutcome,
)
from linkratio.urls import resolve_url, same_domain
from linkratio.worker import run_task

log = logging.getLogger(__name__)

EventHandler = Callable[[CrawlEvent], None]
TaskRunner = Callable[[CrawlTask], TaskOutcome]
ExecutorFactory = Callable[[int], Executor]


def distribute(
    entries: Sequence[FrontierEntry],
    worker_count: int,
    root_url: str,
    max_depth: int,
    timeout: float,
    prefix: str = "worker",
) -> List[CrawlTask]:
    """
    Split entries into at most worker_count contiguous slices.

    Every slice holds ceil(len / worker_count) entries except possibly the
    last; empty slices are dropped, so an empty frontier yields no tasks.
    """
    if not entries:
        return []
    if worker_count < 1:
        raise ValueError("worker_count must be at least 1")

    per_task = math.ceil(len(entries) / worker_count)
    tasks = []
    for i in range(worker_count):
        chunk = tuple(entries[i * per_task:(i + 1) * per_task])
        if not chunk:
            break
        tasks.append(CrawlTask(
            id=f"{prefix}-{i}",
            urls=chunk,
            root_url=root_url,
            max_depth=max_depth,
            timeout=timeout,
        ))
    return tasks


class _Coordinator:
    """Shared frontier, visited-set and merge logic of both crawl modes."""

    mode = ""

    def __init__(
        self,
        config: CrawlConfig,
        task_runner: TaskRunner = run_task,
        on_event: Optional[EventHandler] = None,
    ) -> None:
        self.config = config
        self.task_runner = task_runner
        self.on_event = on_event
        self.results: List[PageResult] = []
        self.stats = CrawlStats()
        self.visited: Set[str] = set()

    def emit(self, kind: str, **data) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(CrawlEvent(kind, data))
        except Exception:
            log.exception("event handler failed for %s", kind)

    def admit(self, entry: FrontierEntry) -> bool:
        """Single deduplication point: claim a URL for the next round."""
        cfg = self.config
        if entry.depth > cfg.max_depth or entry.url in self.visited:
            return False
        if not same_domain(entry.url, cfg.root_url, cfg.root_url):
            return False
        self.visited.add(entry.url)
        return True

    def merge(self, outcomes: Iterable[TaskOutcome], next_frontier: List[FrontierEntry]) -> None:
        """Fold outcomes into the accumulator and extend next_frontier."""
        for outcome in outcomes:
            self.stats.record_outcome(outcome)
            if outcome.failed:
                self.emit(TASK_FAILED, task_id=outcome.task_id, error=outcome.error)
                continue

            for result in outcome.page_results:
                self.results.append(result)
                self.emit(PAGE_PROCESSED, url=result.url, depth=result.depth, ratio=result.ratio)

            admitted = 0
            for entry in outcome.discovered_links:
                if self.admit(entry):
                    next_frontier.append(entry)
                    admitted += 1

            self.emit(
                TASK_COMPLETED,
                task_id=outcome.task_id,
                pages=len(outcome.page_results),
                discovered=len(outcome.discovered_links),
                admitted=admitted,
            )

    def run_round(self, frontier: List[FrontierEntry]) -> Optional[List[FrontierEntry]]:
        """Process one frontier level; None means nothing could be dispatched."""
        raise NotImplementedError

    def crawl(self) -> List[PageResult]:
        """Run rounds until the frontier is exhausted and return all results."""
        cfg = self.config
        # Seed with the same form discovered links take
        root = resolve_url(cfg.root_url, cfg.root_url) or cfg.root_url
        self.visited.add(root)
        frontier = [FrontierEntry(url=root, depth=0)]

        self.emit(
            CRAWL_STARTED,
            root_url=root,
            max_depth=cfg.max_depth,
            mode=self.mode,
            workers=cfg.worker_count,
            timeout=cfg.timeout,
        )

        round_no = 0
        while frontier:
            self.emit(ROUND_STARTED, round=round_no, urls=len(frontier))
            next_frontier = self.run_round(frontier)
            if next_frontier is None:
                break
            self.stats.record_round(len(frontier))
            self.emit(
                ROUND_COMPLETED,
                round=round_no,
                new_urls=len(next_frontier),
                total_pages=len(self.results),
            )
            frontier = next_frontier
            round_no += 1

        self.emit(
            CRAWL_COMPLETED,
            root_url=root,
            total_pages=len(self.results),
            rounds=self.stats.rounds,
            failed_tasks=self.stats.tasks_failed,
        )
        return self.results


class ParallelCrawler(_Coordinator):
    """
    Crawl with a fixed pool of isolated executors.

    Each round the frontier is sliced across the pool and every slice runs
    in its own worker; the round ends when all of them have returned.
    """

    mode = "parallel"

    def __init__(
        self,
        config: CrawlConfig,
        executor_factory: Optional[ExecutorFactory] = None,
        task_runner: TaskRunner = run_task,
        on_event: Optional[EventHandler] = None,
    ) -> None:
        super().__init__(config, task_runner, on_event)
        self.executor_factory = executor_factory or ProcessPoolExecutor
        self._pool: Optional[Executor] = None
        self._broken = False

    def _ensure_pool(self) -> Executor:
        """Return a usable pool, replacing one a dead worker has broken."""
        if self._pool is not None and self._broken:
            log.warning("executor pool broken, starting a new one")
            self._pool.shutdown(wait=False, cancel_futures=True)
            self._pool = None
        if self._pool is None:
            self._pool = self.executor_factory(self.config.worker_count)
            self._broken = False
        return self._pool

    def execute(self, tasks: Sequence[CrawlTask]) -> List[TaskOutcome]:
        """Dispatch all tasks and wait for every one (the round barrier)."""
        try:
            pool = self._ensure_pool()
        except Exception as e:
            log.error("cannot start executor pool: %s", e)
            return [TaskOutcome.lost(task.id, f"{type(e).__name__}: {e}") for task in tasks]
        pending = []
        outcomes = []
        for task in tasks:
            try:
                pending.append((task, pool.submit(self.task_runner, task)))
            except Exception as e:
                self._broken = self._broken or isinstance(e, BrokenExecutor)
                outcomes.append(TaskOutcome.lost(task.id, f"{type(e).__name__}: {e}"))

        for task, future in pending:
            try:
                outcomes.append(future.result())
            except Exception as e:
                self._broken = self._broken or isinstance(e, BrokenExecutor)
                outcomes.append(TaskOutcome.lost(task.id, f"{type(e).__name__}: {e}"))
        return outcomes

    def run_round(self, frontier: List[FrontierEntry]) -> Optional[List[FrontierEntry]]:
        cfg = self.config
        tasks = distribute(frontier, cfg.worker_count, cfg.root_url, cfg.max_depth, cfg.timeout)
        if not tasks:
            return None
        next_frontier: List[FrontierEntry] = []
        self.merge(self.execute(tasks), next_frontier)
        return next_frontier

    def crawl(self) -> List[PageResult]:
        try:
            return super().crawl()
        finally:
            if self._pool is not None:
                self._pool.shutdown(wait=True, cancel_futures=True)
                self._pool = None


class BatchCrawler(_Coordinator):
    """
    Single-process fallback.

    Walks each frontier level in slices of batch_size, running every slice
    through the same executor function in-process.
    """

    mode = "batch"

    def run_round(self, frontier: List[FrontierEntry]) -> Optional[List[FrontierEntry]]:
        cfg = self.config
        size = cfg.batch_size
        next_frontier: List[FrontierEntry] = []
        for i, start in enumerate(range(0, len(frontier), size)):
            task = CrawlTask(
                id=f"batch-{i}",
                urls=tuple(frontier[start:start + size]),
                root_url=cfg.root_url,
                max_depth=cfg.max_depth,
                timeout=cfg.timeout,
            )
            try:
                outcome = self.task_runner(task)
            except Exception as e:
                outcome = TaskOutcome.lost(task.id, f"{type(e).__name__}: {e}")
            self.merge([outcome], next_frontier)
        return next_frontier


def crawl(
    config: CrawlConfig,
    on_event: Optional[EventHandler] = None,
) -> Tuple[List[PageResult], CrawlStats]:
    """
    Crawl same-domain links from config.root_url down to config.max_depth.

    Args:
        config: Crawl settings; validated before anything is fetched.
        on_event: Optional subscriber receiving CrawlEvent notifications.

    Returns:
        Tuple of (page results in completion order, crawl statistics).

    Raises:
        ConfigError: If the configuration is invalid.
    """
    config.validate()
    runner = partial(run_task, user_agent=config.user_agent)
    if config.parallel:
        crawler: _Coordinator = ParallelCrawler(config, task_runner=runner, on_event=on_event)
    else:
        crawler = BatchCrawler(config, task_runner=runner, on_event=on_event)
    results = crawler.crawl()
    return results, crawler.stats
