"""
Presentation of crawl results as TSV.
"""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from linkratio.models import PageResult

TSV_HEADER = ("Url", "depth", "ratio")
DEFAULT_PRECISION = 6


def sort_results(results: Iterable[PageResult]) -> List[PageResult]:
    """Order results by depth, then URL."""
    return sorted(results, key=lambda r: (r.depth, r.url))


def format_tsv(results: Iterable[PageResult], precision: int = DEFAULT_PRECISION) -> str:
    lines = ["\t".join(TSV_HEADER)]
    for r in sort_results(results):
        lines.append(f"{r.url}\t{r.depth}\t{r.ratio:.{precision}f}")
    return "\n".join(lines) + "\n"


def write_tsv(results: Iterable[PageResult], path: Path, precision: int = DEFAULT_PRECISION) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_tsv(results, precision), encoding="utf-8")
    return path


def generate_output_path(
    root_url: str,
    directory: str = "crawls",
    now: Optional[datetime] = None,
) -> Path:
    """Generate output path: {directory}/{hostname}_{datetime}.tsv"""
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    try:
        hostname = urlparse(root_url).hostname
    except ValueError:
        hostname = None

    if hostname:
        # Sanitize hostname for filename
        name = re.sub(r"[^a-zA-Z0-9.-]", "_", hostname).replace(".", "_")
    else:
        name = "crawl_results"
    return Path(directory) / f"{name}_{timestamp}.tsv"
