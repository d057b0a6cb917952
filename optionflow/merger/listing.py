"""
Published file listing.

Scans the data directory for every ``.csv`` file and writes the JSON list
of ``{name, size, timestamp}`` entries (newest first) that the client file
loader fetches from ``/api/data-files``.
"""

import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional

from ..parsing.filenames import parse_timestamp_from_filename
from .state import write_json

logger = logging.getLogger(__name__)


def scan_data_directory(data_dir: Path, now: Optional[datetime] = None) -> List[Dict]:
    """
    List CSV files in data_dir.

    The timestamp comes from the filename when it follows the naming
    convention, otherwise it is the reference instant.
    """
    if not data_dir.is_dir():
        logger.warning(f"Data directory does not exist: {data_dir}")
        return []

    if now is None:
        now = datetime.now()

    stamped = []
    for path in sorted(data_dir.glob("*.csv")):
        try:
            size = path.stat().st_size
        except OSError as e:
            logger.warning(f"Failed to get file size for {path.name}: {e}")
            size = 0

        stamp = parse_timestamp_from_filename(path.name) or now
        stamped.append((stamp.replace(tzinfo=None), {
            "name": path.name,
            "size": size,
            "timestamp": stamp.isoformat(),
        }))

    # Newest first
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [entry for _, entry in stamped]


def publish_listing(data_dir: Path, listing_file: Path, now: Optional[datetime] = None) -> List[Dict]:
    """Write the listing atomically and return it."""
    entries = scan_data_directory(data_dir, now)
    write_json(listing_file, entries)

    logger.info(f"Updated data files list with {len(entries)} files")
    for entry in entries:
        logger.info(f"   - {entry['name']} ({entry['size'] / 1024:.1f}KB, {entry['timestamp']})")
    return entries
