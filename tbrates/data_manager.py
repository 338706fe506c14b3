"""Data manager for loading, caching and refreshing the canonical table.

This module fetches the raw WHO estimates, keeps a copy on disk so the
dashboard can start without the network, and owns the
:class:`TableStore` that swaps in a freshly cleaned table atomically.
The cache files include a version tag to make it easy to invalidate
caches when the expected source columns change.
"""

import os
import tempfile
import logging
import threading
from pathlib import Path
from typing import Optional

import pandas as pd

from .cleaning import CanonicalTable, RawRows, clean
from .config import DEFAULT_SEP, MIN_YEAR, SOURCE_COLUMNS, TB_SOURCE

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Cache setup
# ---------------------------------------------------------------------------
# Bump whenever the raw columns kept in the cache change.
CACHE_VERSION: str = "v1"


def _resolve_cache_dir() -> Path:
    """Select a writable directory for caching.

    The lookup order is:

    1. The ``DATA_CACHE_DIR`` environment variable, if set.
    2. A ``data`` folder at the repository root.
    3. A temporary directory in ``/tmp``.

    The first candidate that accepts a sentinel file is returned.
    """
    candidates: list[Path] = []
    env = os.getenv("DATA_CACHE_DIR")
    if env:
        candidates.append(Path(env).expanduser().resolve())

    candidates.append(Path(__file__).resolve().parent.parent / "data")
    candidates.append(Path(tempfile.gettempdir()) / "tb_rates_cache")

    for path in candidates:
        try:
            path.mkdir(parents=True, exist_ok=True)
            test_file = path / ".write_test"
            test_file.write_text("ok", encoding="utf-8")
            test_file.unlink()
            return path
        except OSError:
            continue

    fallback = Path(tempfile.gettempdir()) / "tb_rates_cache"
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def raw_cache_path(cache_dir: Optional[Path] = None) -> Path:
    return (cache_dir or _resolve_cache_dir()) / f"tb_estimates_{CACHE_VERSION}.csv"


def _atomic_to_csv(df: pd.DataFrame, path: Path) -> None:
    """Write a DataFrame to CSV via a temporary file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    df.to_csv(tmp_path, index=False)
    tmp_path.replace(path)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_tb_raw(source: str | Path = TB_SOURCE, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Read the WHO TB estimates CSV from a URL or path."""
    return pd.read_csv(source, sep=sep)


def load_raw(
    force_refresh: bool = False,
    *,
    source: str | Path = TB_SOURCE,
    cache_dir: Optional[Path] = None,
) -> pd.DataFrame:
    """
    Load raw estimates from the disk cache if available, otherwise fetch and save.

    Only the source columns listed in ``config.SOURCE_COLUMNS`` are cached.

    Parameters
    ----------
    force_refresh : bool, optional
        If ``True``, fetch from ``source`` even when a cache file exists.
    source : str or Path, optional
        Location of the estimates CSV.  Defaults to ``config.TB_SOURCE``.
    cache_dir : Path, optional
        Directory for the cache file; resolved automatically when omitted.

    Returns
    -------
    pd.DataFrame
        The raw rows, not yet cleaned.
    """
    cache = raw_cache_path(cache_dir)
    if not force_refresh and cache.exists():
        logger.info("Loading raw estimates from cache %s", cache)
        try:
            return pd.read_csv(cache)
        except (OSError, ValueError) as exc:
            logger.warning("Error reading cache file %s: %s; fetching again", cache, exc)

    logger.info("Fetching TB estimates from %s", source)
    raw = load_tb_raw(source)
    keep = [c for c in SOURCE_COLUMNS if c in raw.columns]
    raw = raw[keep]

    try:
        _atomic_to_csv(raw, cache)
        logger.info("Cache updated: %s", cache.name)
    except OSError as exc:
        logger.warning("Could not write cache file: %s", exc)
    return raw


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TableStore:
    """Holds the current :class:`CanonicalTable` and replaces it atomically.

    Readers call :attr:`table` and keep the reference they get; a refresh
    builds the new table first and only then swaps it in, so a failed
    refresh leaves the previous table untouched.
    """

    def __init__(self, table: Optional[CanonicalTable] = None, *, min_year: int = MIN_YEAR):
        self._table = table
        self._min_year = min_year
        self._swap_lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    @property
    def table(self) -> CanonicalTable:
        with self._swap_lock:
            table = self._table
        if table is None:
            raise LookupError("No canonical table loaded yet")
        return table

    @property
    def loaded(self) -> bool:
        with self._swap_lock:
            return self._table is not None

    def refresh(self, raw_rows: RawRows) -> CanonicalTable:
        """Clean ``raw_rows`` and make the result the current table.

        Errors from cleaning (such as ``DuplicateKeyError``) propagate and
        the previous table stays current.
        """
        with self._refresh_lock:
            try:
                table = clean(raw_rows, min_year=self._min_year)
            except Exception:
                logger.exception("Refresh rejected; keeping the previous table")
                raise
            with self._swap_lock:
                previous, self._table = self._table, table
            logger.info(
                "Canonical table swapped: %s -> %s",
                previous.version if previous is not None else None,
                table.version,
            )
            return table

    def refresh_from_source(self, force_refresh: bool = False, **kwargs) -> CanonicalTable:
        """Load raw rows with :func:`load_raw` and refresh from them."""
        return self.refresh(load_raw(force_refresh, **kwargs))
