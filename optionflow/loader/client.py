"""
Client File Loader

Fetches the published file listing and every listed file over HTTP,
with a TTL cache in front of the content fetches.

- Listing failures fall back to a single placeholder entry
- Content fetches run concurrently; one failing fetch never cancels the
  others and failed files are left out of the result
- bust_cache=True refetches everything and repopulates the cache
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional

import requests

from ..config import LoaderConfig
from ..parsing.filenames import parse_timestamp_from_filename
from .cache import FileCache
from .dataset import MergedDataset, merge_loaded_files

logger = logging.getLogger(__name__)


class NoDataFilesError(Exception):
    """No data file could be loaded."""


@dataclass
class FileInfo:
    """One entry of the published listing."""

    filename: str
    timestamp: datetime
    size: int = 0


@dataclass
class LoadedFile:
    filename: str
    timestamp: datetime
    data: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ClientFileLoader:
    """
    Loads data files from the web server that publishes them.

    Args:
        config: endpoint and cache settings
        session: HTTP session (anything with ``get(url, timeout=...)``)
        cache: content cache; a new FileCache with the configured TTL if None
        now_func: wall clock for filename-less timestamps
    """

    def __init__(
        self,
        config: LoaderConfig,
        session: Optional[requests.Session] = None,
        cache: Optional[FileCache] = None,
        now_func: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.session = session if session is not None else requests.Session()
        self.cache = cache if cache is not None else FileCache(config.cache_ttl_seconds)
        self._now = now_func

    # ============================================================
    # Listing
    # ============================================================

    def _fallback_listing(self) -> List[FileInfo]:
        filename = self.config.fallback_filename
        timestamp = parse_timestamp_from_filename(filename) or self._now()
        return [FileInfo(filename=filename, timestamp=timestamp, size=0)]

    def get_data_files(self) -> List[FileInfo]:
        """Published files, most recent first. Never raises."""
        try:
            response = self.session.get(self.config.listing_url, timeout=self.config.request_timeout)
            response.raise_for_status()
            entries = response.json()
            files = [
                FileInfo(
                    filename=entry["name"],
                    timestamp=parse_timestamp_from_filename(entry["name"]) or self._now(),
                    size=int(entry.get("size") or 0),
                )
                for entry in entries
            ]
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to fetch data files list, using fallback: {e}")
            return self._fallback_listing()

        files.sort(key=lambda f: f.timestamp, reverse=True)
        return files

    # ============================================================
    # Content
    # ============================================================

    def load_file(self, filename: str) -> LoadedFile:
        """Fetch one file. Failures are reported on the result, not raised."""
        timestamp = parse_timestamp_from_filename(filename)
        try:
            response = self.session.get(self.config.file_url(filename), timeout=self.config.request_timeout)
            response.raise_for_status()
            return LoadedFile(filename=filename, timestamp=timestamp or self._now(), data=response.text)
        except requests.RequestException as e:
            return LoadedFile(filename=filename, timestamp=self._now(), data="", error=str(e))

    def _fetch_all(self, filenames: List[str]) -> Dict[str, LoadedFile]:
        results: Dict[str, LoadedFile] = {}
        if not filenames:
            return results

        workers = max(1, min(self.config.max_workers, len(filenames)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_name = {
                executor.submit(self.load_file, name): name
                for name in filenames
            }

            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.error(f"Unexpected error loading {name}: {e}")
                    results[name] = LoadedFile(filename=name, timestamp=self._now(), data="", error=str(e))

        return results

    def load_all_data_files(self, bust_cache: bool = False) -> List[LoadedFile]:
        """
        Load every listed file, in listing order.

        In default mode only files that are missing from the cache or past
        their lifetime are fetched; the rest come from the cache.
        """
        files = self.get_data_files()
        names = [f.filename for f in files]

        to_fetch = names if bust_cache else self.cache.stale_keys(names)
        fetched = self._fetch_all(to_fetch)

        failed = [r for r in fetched.values() if not r.ok]
        for result in fetched.values():
            if result.ok:
                self.cache.set(result.filename, result)

        if failed:
            logger.warning(
                f"Failed to load {len(failed)} data file(s): "
                + ", ".join(f"{r.filename} ({r.error})" for r in failed)
            )

        loaded = []
        for name in names:
            result = fetched.get(name)
            if result is None:
                result = self.cache.get(name)
            if result is not None and result.ok:
                loaded.append(result)

        logger.info(
            f"Successfully loaded {len(loaded)} data files "
            f"({len(to_fetch)} fetched, {len(names) - len(to_fetch)} from cache)"
        )
        return loaded

    def clear_cache(self):
        """Hard refresh: forget every cached file."""
        self.cache.clear()

    def load_dataset(self, bust_cache: bool = False, now: Optional[datetime] = None) -> MergedDataset:
        """
        Load every file and merge the parsed records.

        Raises:
            NoDataFilesError: if no file could be loaded
        """
        loaded = self.load_all_data_files(bust_cache=bust_cache)
        if not loaded:
            raise NoDataFilesError("No data files could be loaded")
        return merge_loaded_files(loaded, now=now)


# ============================================================
# Listing helpers
# ============================================================

def most_recent_timestamp(files: List[FileInfo]) -> Optional[datetime]:
    if not files:
        return None
    return max(f.timestamp for f in files)


def recent_files(files: List[FileInfo], hours: float = 24, now: Optional[datetime] = None) -> List[FileInfo]:
    """Files whose timestamp is within the last ``hours`` hours of ``now``."""
    if now is None:
        now = datetime.now()
    cutoff = now - timedelta(hours=hours)
    return [f for f in files if f.timestamp >= cutoff]
