"""
Download — fetch a package artifact into the shared cache.

Artifacts are cached under ``<DEVBOX_HOME>/cache/<cache_key><ext>``; a
cached file is reused without touching the network.  HTTP downloads are
retried with exponential backoff and jitter; nothing else in devbox
retries.
"""

from __future__ import annotations

import logging
import os
import random
import shutil
import tempfile
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from pathlib import Path

from devbox import __version__
from devbox.core.errors import DownloadError

logger = logging.getLogger(__name__)

USER_AGENT = f"devbox/{__version__}"

DEFAULT_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_TIMEOUT = 30

_ARCHIVE_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz", ".tgz", ".tar", ".zip")

# Client errors worth retrying.
_RETRYABLE_STATUS = {408, 425, 429}


def artifact_suffix(url: str) -> str:
    """Archive extension of a URL's path, or ""."""
    path = urllib.parse.urlparse(url).path.lower()
    for suffix in _ARCHIVE_SUFFIXES:
        if path.endswith(suffix):
            return suffix
    return Path(path).suffix


def cache_path(cache_dir: Path, url: str, cache_key: str) -> Path:
    return cache_dir / f"{cache_key}{artifact_suffix(url)}"


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt`` (1-based), jitter included."""
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    return delay + random.uniform(0, delay * 0.3)


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, urllib.error.HTTPError):
        return error.code >= 500 or error.code in _RETRYABLE_STATUS
    return True


def _fetch(url: str, dest: Path, timeout: int) -> None:
    """Stream ``url`` into ``dest`` via a temp file in the same directory."""
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    fd, tmp_path = tempfile.mkstemp(dir=dest.parent, prefix=".dl_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "wb") as out, urllib.request.urlopen(req, timeout=timeout) as resp:
            shutil.copyfileobj(resp, out)
        tmp.replace(dest)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _local_source(url: str) -> Path:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme == "file":
        return Path(urllib.parse.unquote(parsed.path))
    return Path(url).expanduser()


def download(
    url: str,
    cache_key: str,
    source_kind: str = "http",
    *,
    cache_dir: Path,
    attempts: int = DEFAULT_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    timeout: int = DEFAULT_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
) -> Path:
    """Return a cached copy of an artifact, fetching it if needed.

    Args:
        url: HTTP(S) URL, ``file://`` URL or local path.
        cache_key: File stem inside the cache (usually ``name-version``).
        source_kind: ``http`` or ``file``.
        cache_dir: Cache directory; created if missing.
        attempts: Total HTTP attempts before giving up.

    Returns:
        Path of the cached artifact.

    Raises:
        DownloadError: the artifact could not be obtained.
    """
    cache_dir.mkdir(parents=True, exist_ok=True)
    dest = cache_path(cache_dir, url, cache_key)

    if dest.is_file() and dest.stat().st_size > 0:
        logger.debug("Cache hit for %s: %s", cache_key, dest)
        return dest

    if source_kind == "file":
        src = _local_source(url)
        if not src.is_file():
            raise DownloadError(f"{cache_key}: source file not found: {src}")
        shutil.copyfile(src, dest)
        logger.info("Copied %s -> %s", src, dest)
        return dest

    if source_kind != "http":
        raise DownloadError(f"{cache_key}: unsupported source kind '{source_kind}'")

    last_error: Exception | None = None
    for attempt in range(1, max(attempts, 1) + 1):
        try:
            logger.info("Downloading %s (attempt %d/%d)", url, attempt, attempts)
            _fetch(url, dest, timeout)
            return dest
        except (urllib.error.URLError, OSError) as e:
            last_error = e
            if not _is_retryable(e) or attempt >= attempts:
                break
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "Download of %s failed: %s — retrying in %.1fs", url, e, delay,
            )
            sleep(delay)

    raise DownloadError(f"{cache_key}: download failed from {url}: {last_error}")
