"""
Executor side of a crawl round.

run_task() processes one CrawlTask in isolation: it shares nothing with the
coordinator and returns everything it learned in a TaskOutcome. It is a
module-level function so it can be shipped to a worker process.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Set, Tuple

import requests

from linkratio.config import DEFAULT_USER_AGENT
from linkratio.fetch import extract_links, fetch_page, new_session
from linkratio.models import CrawlTask, FrontierEntry, PageResult, TaskOutcome
from linkratio.urls import same_domain, same_domain_ratio

log = logging.getLogger(__name__)

Fetcher = Callable[..., Optional[str]]
Extractor = Callable[[str, str], List[str]]

EntryResult = Optional[Tuple[PageResult, List[FrontierEntry]]]


def process_entry(
    task: CrawlTask,
    entry: FrontierEntry,
    fetch: Fetcher,
    extract: Extractor,
    session: Optional[requests.Session] = None,
) -> EntryResult:
    """Fetch one page, score its links and collect same-site children."""
    if entry.depth > task.max_depth:
        return None

    html = fetch(entry.url, timeout=task.timeout, session=session)
    if html is None:
        return None

    links = extract(html, entry.url)
    result = PageResult(url=entry.url, depth=entry.depth, ratio=same_domain_ratio(links, entry.url))

    children: List[FrontierEntry] = []
    if entry.depth < task.max_depth:
        children = [
            FrontierEntry(url=link, depth=entry.depth + 1)
            for link in links
            if same_domain(link, task.root_url, task.root_url)
        ]
    return result, children


def _safe_process(
    task: CrawlTask,
    entry: FrontierEntry,
    fetch: Fetcher,
    extract: Extractor,
    session: Optional[requests.Session],
) -> EntryResult:
    try:
        return process_entry(task, entry, fetch, extract, session)
    except Exception as e:
        log.warning("task=%s skip url=%s err=%s", task.id, entry.url, e)
        return None


def run_task(
    task: CrawlTask,
    fetch: Fetcher = fetch_page,
    extract: Extractor = extract_links,
    user_agent: str = DEFAULT_USER_AGENT,
) -> TaskOutcome:
    """
    Process every entry of a task concurrently.

    A failing page is skipped; only a failure to set the task up at all
    produces an outcome with an error.
    """
    # Repeated URLs inside one slice are only fetched once
    seen: Set[str] = set()
    entries: List[FrontierEntry] = []
    for entry in task.urls:
        if entry.url not in seen:
            seen.add(entry.url)
            entries.append(entry)

    outcome = TaskOutcome(task_id=task.id)
    if not entries:
        return outcome

    try:
        session = new_session(user_agent)
        pool = ThreadPoolExecutor(max_workers=len(entries), thread_name_prefix=task.id)
    except Exception as e:
        log.error("task=%s setup failed err=%s", task.id, e)
        return TaskOutcome.lost(task.id, f"setup failed: {e}")

    with session, pool:
        futures = [
            pool.submit(_safe_process, task, entry, fetch, extract, session)
            for entry in entries
        ]
        for future in futures:
            processed = future.result()
            if processed is None:
                continue
            result, children = processed
            outcome.page_results.append(result)
            outcome.discovered_links.extend(children)

    log.debug(
        "task=%s done pages=%d discovered=%d",
        task.id, len(outcome.page_results), len(outcome.discovered_links),
    )
    return outcome
