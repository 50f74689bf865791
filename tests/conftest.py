from __future__ import annotations

import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Dict, List, Optional

import pytest

from linkratio.config import CrawlConfig
from linkratio.core import BatchCrawler, ParallelCrawler
from linkratio.worker import run_task

ROOT = "https://example.com/"


class FakeSite:
    """In-memory website: url -> list of absolute links on that page."""

    def __init__(self, pages: Dict[str, List[str]]) -> None:
        self.pages = pages
        self.fetched: Counter = Counter()
        self._lock = threading.Lock()

    def fetch(self, url: str, timeout: float = 10.0, session=None) -> Optional[str]:
        with self._lock:
            self.fetched[url] += 1
        if url not in self.pages:
            return None
        return f"<html>{url}</html>"

    def extract(self, html: str, base_url: str) -> List[str]:
        return list(self.pages[base_url])

    def runner(self):
        return partial(run_task, fetch=self.fetch, extract=self.extract)


@pytest.fixture
def make_site():
    return FakeSite


@pytest.fixture
def make_parallel():
    def _make(site: FakeSite, max_depth: int, workers: int = 4, root: str = ROOT, **kw) -> ParallelCrawler:
        cfg = CrawlConfig(root_url=root, max_depth=max_depth, workers=workers)
        kw.setdefault("task_runner", site.runner())
        return ParallelCrawler(cfg, executor_factory=ThreadPoolExecutor, **kw)
    return _make


@pytest.fixture
def make_batch():
    def _make(site: FakeSite, max_depth: int, batch_size: int = 2, root: str = ROOT, **kw) -> BatchCrawler:
        cfg = CrawlConfig(root_url=root, max_depth=max_depth, workers=1, batch_size=batch_size)
        kw.setdefault("task_runner", site.runner())
        return BatchCrawler(cfg, **kw)
    return _make
