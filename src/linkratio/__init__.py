"""
Web crawler that walks same-domain links from a root URL, depth by depth,
and reports the share of each page's links that stay on its own domain.
"""
from linkratio.config import ConfigError, CrawlConfig
from linkratio.core import crawl
from linkratio.models import CrawlStats, PageResult

__version__ = "1.0.0"
__all__ = ["crawl", "ConfigError", "CrawlConfig", "CrawlStats", "PageResult"]
