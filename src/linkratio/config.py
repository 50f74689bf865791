"""
Crawl configuration and startup validation.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

DEFAULT_TIMEOUT_S = 10.0
DEFAULT_BATCH_SIZE = 10
DEFAULT_USER_AGENT = "LinkRatioCrawler/1.0"


class ConfigError(ValueError):
    """Raised when the crawl cannot start because of a bad setting."""


def cpu_count() -> int:
    """Number of CPUs this process may run on."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


def resolve_worker_count(requested: Optional[int] = None) -> int:
    """
    Pick the executor pool size.

    Defaults to all CPUs but one, leaving a core for the coordinator.
    An explicit request is returned unchanged so validation can reject it.
    """
    if requested is not None:
        return requested
    return max(1, cpu_count() - 1)


@dataclass
class CrawlConfig:
    """Settings consumed by the crawl engine."""

    root_url: str
    max_depth: int
    timeout: float = DEFAULT_TIMEOUT_S
    workers: Optional[int] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def worker_count(self) -> int:
        return resolve_worker_count(self.workers)

    @property
    def parallel(self) -> bool:
        return self.worker_count > 1

    def validate(self) -> "CrawlConfig":
        """Reject settings that would make the crawl meaningless."""
        try:
            parsed = urlparse(self.root_url)
            hostname = parsed.hostname
        except (TypeError, ValueError, AttributeError):
            raise ConfigError(f"Invalid root URL: {self.root_url!r}") from None
        if parsed.scheme not in ("http", "https") or not hostname:
            raise ConfigError(f"Invalid root URL: {self.root_url!r}")

        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int) or self.max_depth < 0:
            raise ConfigError("max_depth must be a non-negative integer")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1")

        workers = self.worker_count
        if workers < 1:
            raise ConfigError("workers must be at least 1")
        cpus = cpu_count()
        if workers > cpus:
            raise ConfigError(f"workers ({workers}) exceeds available CPUs ({cpus})")
        return self
