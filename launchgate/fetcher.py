from __future__ import annotations
import os
import time
from pathlib import Path

import requests

from .context import RunContext
from .errors import FetchError

TMP_SUFFIX = ".tmp"
CHUNK = 64 * 1024


def staging_path(dest: Path) -> Path:
    return dest.with_name(dest.name + TMP_SUFFIX)


def download(http: requests.Session, dest: Path, url: str, timeout: float) -> int:
    """Stream `url` into `dest` via a `.tmp` sibling. Returns bytes written.

    The final path is only ever replaced by a completely written file; on any
    failure the staging file is removed and FetchError is raised.
    """
    dest = Path(dest)
    tmp = staging_path(dest)
    if not url:
        raise FetchError(url, "no source url configured")
    written = 0
    try:
        with http.get(url, stream=True, timeout=timeout, allow_redirects=True) as resp:
            resp.raise_for_status()
            with open(tmp, "wb") as f:
                for block in resp.iter_content(CHUNK):
                    if block:
                        f.write(block)
                        written += len(block)
        os.replace(tmp, dest)
    except (requests.RequestException, OSError) as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(url, str(e)) from e
    return written


def fetch(ctx: RunContext, dest: Path, url: str, label: str) -> bool:
    t0 = time.monotonic()
    try:
        n = download(ctx.http, dest, url, ctx.cfg.runtime.http_timeout)
    except FetchError as e:
        dt = (time.monotonic() - t0) * 1000.0
        ctx.logger.log_download(artifact=label, url=url, ok=False, latency_ms=dt, error=e.reason)
        ctx.logger.log("ERROR", f"{label}: {e}")
        return False
    dt = (time.monotonic() - t0) * 1000.0
    ctx.logger.log_download(artifact=label, url=url, ok=True, nbytes=n, latency_ms=dt)
    ctx.logger.log("INFO", f"{label}: fetched {n} bytes -> {Path(dest).name}")
    return True


def fetch_or_prompt(ctx: RunContext, dest: Path, url: str, label: str) -> bool:
    """Fetch; on failure the operator chooses to continue (no retry) or abort."""
    if fetch(ctx, dest, url, label):
        return True
    ctx.console.failure_pause(f"Failed to download {label}.")
    return False
