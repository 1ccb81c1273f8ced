"""
Runtime dependency downloader.

This package handles:
1. Resolving a release on the release host
2. Downloading assets into a local cache
3. Extracting archives
"""

from .downloader import CachingDownloader
from .extractor import ArchiveExtractor
from .release_client import ReleaseClient

__all__ = ["ArchiveExtractor", "CachingDownloader", "ReleaseClient"]
