"""
OptionFlow Configuration

Centralized configuration for the merge engine and the client file loader.
All paths, naming conventions and parsing constants are defined here.
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Parsing constants - SINGLE SOURCE OF TRUTH
# =============================================================================

# Words that show up in the ticker column of broken alert rows
RESERVED_TICKER_WORDS = frozenset({
    "ASK", "ABOVE", "BID", "BELOW", "SWEEP", "BLOCK", "TRADE", "VOLUME", "PREMIUM",
})

MIN_RAW_FIELDS = 16
MIN_COMBINED_FIELDS = 11
MAX_TICKER_LENGTH = 10

# Filename prefixes understood by the timestamp helper
KNOWN_SOURCE_PREFIXES = ("options_data_", "option_data_", "darkpool_data_")
DEFAULT_SOURCE_PREFIX = "options_data_"

# Ledger layout version ("2.0" = append mode)
LEDGER_VERSION = "2.0"
LEDGER_GENERATED_BY = "optionflow.merger"

DEFAULT_MARKET_TIMEZONE = "America/New_York"

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_FALLBACK_FILENAME = "options_data_2024-01-15_10-00.csv"


@dataclass
class MergeConfig:
    """
    Configuration for the incremental merge engine.

    Paths default to locations under root.
    """

    root: Path
    data_dir: Path
    logs_dir: Path
    listing_file: Path

    source_prefix: str = DEFAULT_SOURCE_PREFIX
    market_timezone: str = DEFAULT_MARKET_TIMEZONE

    @property
    def combined_filename(self) -> str:
        return f"{self.source_prefix}combined.csv"

    @property
    def metadata_filename(self) -> str:
        return f"{self.source_prefix}combined.metadata.json"

    @property
    def combined_file(self) -> Path:
        return self.data_dir / self.combined_filename

    @property
    def metadata_file(self) -> Path:
        return self.data_dir / self.metadata_filename

    @classmethod
    def for_directory(cls, data_dir: Path, **overrides) -> 'MergeConfig':
        """Build a config rooted at the parent of an explicit data directory."""
        data_dir = Path(data_dir)
        root = data_dir.parent
        return cls(
            root=root,
            data_dir=data_dir,
            logs_dir=overrides.pop("logs_dir", root / "logs"),
            listing_file=overrides.pop("listing_file", root / "public" / "api" / "data-files"),
            **overrides,
        )

    @classmethod
    def from_environment(cls, root: Optional[Path] = None) -> 'MergeConfig':
        """
        Create MergeConfig from environment variables and defaults.

        Args:
            root: Optional project root. If None, uses OPTIONFLOW_ROOT env var
                  or the current working directory.

        Returns:
            MergeConfig instance
        """
        if root is None:
            root = Path(os.getenv("OPTIONFLOW_ROOT", os.getcwd()))
        else:
            root = Path(root)

        data_dir = Path(os.getenv("OPTIONFLOW_DATA_DIR", str(root / "data")))

        return cls(
            root=root,
            data_dir=data_dir,
            logs_dir=root / "logs",
            listing_file=root / "public" / "api" / "data-files",
            source_prefix=os.getenv("OPTIONFLOW_SOURCE_PREFIX", DEFAULT_SOURCE_PREFIX),
            market_timezone=os.getenv("OPTIONFLOW_MARKET_TZ", DEFAULT_MARKET_TIMEZONE),
        )


@dataclass
class LoaderConfig:
    """Configuration for the client-side file loader."""

    base_url: str
    listing_path: str = "/api/data-files"
    data_path: str = "/data"
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    request_timeout: float = 30.0
    max_workers: int = 8
    fallback_filename: str = DEFAULT_FALLBACK_FILENAME

    @property
    def listing_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.listing_path}"

    def file_url(self, filename: str) -> str:
        return f"{self.base_url.rstrip('/')}{self.data_path}/{filename}"

    @classmethod
    def from_environment(cls) -> 'LoaderConfig':
        return cls(
            base_url=os.getenv("OPTIONFLOW_BASE_URL", "http://localhost:5173"),
            cache_ttl_seconds=float(os.getenv("OPTIONFLOW_CACHE_TTL", str(DEFAULT_CACHE_TTL_SECONDS))),
        )


__all__ = [
    'RESERVED_TICKER_WORDS', 'MIN_RAW_FIELDS', 'MIN_COMBINED_FIELDS', 'MAX_TICKER_LENGTH',
    'KNOWN_SOURCE_PREFIXES', 'DEFAULT_SOURCE_PREFIX', 'LEDGER_VERSION', 'LEDGER_GENERATED_BY',
    'DEFAULT_MARKET_TIMEZONE', 'DEFAULT_CACHE_TTL_SECONDS', 'DEFAULT_FALLBACK_FILENAME',
    'MergeConfig', 'LoaderConfig',
]
