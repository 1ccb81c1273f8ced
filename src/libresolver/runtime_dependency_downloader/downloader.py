"""
Caching downloader for release assets.

Assets are cached under a key derived from their download URL and size. A
cached file younger than the maximum age is trusted without contacting the
host. Freshness is judged by modification time only, so an artifact
re-published under the same URL and size goes unnoticed until the entry ages
out.
"""

import hashlib
import logging
import os
import tempfile
import time
from typing import Callable, List, Optional

import requests

from libresolver.libresolver_config import DEFAULT_MAX_AGE_SECONDS
from libresolver.libresolver_exceptions import DownloadFailed
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.libresolver_utils import FileUtils
from libresolver.runtime_dependency_models import Asset, CacheEntry

ProgressCallback = Callable[[int, int], None]

PARTIAL_SUFFIX = ".part"


class CachingDownloader:
    """
    Streams assets into a cache directory. Never retries; a failed download
    leaves no file behind.
    """

    def __init__(
        self,
        logger: LibresolverLogger,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        user_agent: str = "libresolver",
        chunk_size: int = 64 * 1024,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            logger: Logger for progress and error messages
            session: HTTP session, a new requests.Session by default
            timeout: Connect/read timeout in seconds
            max_age: Cache entries older than this many seconds are downloaded again
        """
        self.logger = logger
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_age = max_age
        self.user_agent = user_agent
        self.chunk_size = chunk_size
        self.clock = clock

    @staticmethod
    def cache_key(asset: Asset) -> str:
        return hashlib.sha256(f"{asset.download_url}{asset.size_bytes}".encode("utf-8")).hexdigest()

    def cache_path(self, asset: Asset, cache_dir: str) -> str:
        extension = FileUtils.archive_extension(asset.name) or os.path.splitext(asset.name)[1].lower()
        return os.path.join(cache_dir, self.cache_key(asset) + extension)

    def lookup(self, asset: Asset, cache_dir: str) -> Optional[CacheEntry]:
        """
        Return the cache entry for `asset` if one exists and is fresh.
        """
        path = self.cache_path(asset, cache_dir)
        try:
            last_write = os.path.getmtime(path)
        except OSError:
            return None

        entry = CacheEntry(key=self.cache_key(asset), path=path, last_write=last_write)
        if not entry.is_fresh(self.max_age, now=self.clock()):
            self.logger.log(f"Cached {asset.name} at {path} is stale", logging.INFO)
            return None
        return entry

    def download(
        self,
        asset: Asset,
        cache_dir: str,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Return a local path holding `asset`, downloading it if the cache has no fresh copy.

        Args:
            asset: The asset to fetch
            cache_dir: Cache directory, created if missing
            progress: Optional callable(bytes_read, total_bytes); total_bytes is 0 when unknown

        Raises:
            DownloadFailed: On any HTTP or I/O error, or a size mismatch
        """
        entry = self.lookup(asset, cache_dir)
        if entry is not None:
            self.logger.log(f"Using cached {asset.name} from {entry.path}", logging.INFO)
            return entry.path

        action = f"downloading {asset.download_url}"
        final_path = self.cache_path(asset, cache_dir)
        try:
            os.makedirs(cache_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(suffix=PARTIAL_SUFFIX, dir=cache_dir)
        except OSError as e:
            raise DownloadFailed(f"Cannot write to cache directory {cache_dir}", action=action, cause=e) from e

        self.logger.log(f"Downloading {asset.name} ({asset.size_bytes:,} bytes) from {asset.download_url}", logging.INFO)
        try:
            with os.fdopen(fd, "wb") as out:
                read = self._stream(asset, out, progress)
            if asset.size_bytes and read != asset.size_bytes:
                raise DownloadFailed(
                    f"Received {read:,} bytes for {asset.name}, expected {asset.size_bytes:,}",
                    action=action,
                )
            os.replace(tmp_path, final_path)
        except DownloadFailed:
            self._discard(tmp_path)
            raise
        except (requests.RequestException, OSError, ValueError) as e:
            self._discard(tmp_path)
            raise DownloadFailed(f"Download of {asset.name} failed", action=action, cause=e) from e
        except BaseException:
            self._discard(tmp_path)
            raise

        self.logger.log(f"Downloaded {asset.name} to {final_path} ({read:,} bytes)", logging.INFO)
        return final_path

    def _stream(self, asset: Asset, out, progress: Optional[ProgressCallback]) -> int:
        headers = {"User-Agent": self.user_agent, "Accept": "application/octet-stream"}
        with self.session.get(asset.download_url, headers=headers, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total = asset.size_bytes or self._content_length(response)
            read = 0
            if progress:
                progress(read, total)
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if not chunk:
                    continue
                out.write(chunk)
                read += len(chunk)
                if progress:
                    progress(read, total)
        return read

    @staticmethod
    def _content_length(response) -> int:
        """
        The declared body size, 0 when the header is missing or malformed.
        """
        try:
            return max(int(response.headers.get("Content-Length") or 0), 0)
        except (TypeError, ValueError):
            return 0

    def purge(self, cache_dir: str, older_than: Optional[float] = None) -> List[str]:
        """
        Delete cache files (and leftover partial downloads) older than
        `older_than` seconds, or all of them when `older_than` is None.

        Returns:
            The removed paths
        """
        if not os.path.isdir(cache_dir):
            return []

        now = self.clock()
        removed = []
        for name in sorted(os.listdir(cache_dir)):
            path = os.path.join(cache_dir, name)
            if not os.path.isfile(path):
                continue
            if older_than is not None and now - os.path.getmtime(path) < older_than:
                continue
            os.unlink(path)
            removed.append(path)

        if removed:
            self.logger.log(f"Purged {len(removed)} file(s) from {cache_dir}", logging.INFO)
        return removed

    @staticmethod
    def _discard(path: str) -> None:
        if os.path.exists(path):
            os.unlink(path)
