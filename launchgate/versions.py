from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import requests

from .context import RunContext


class Freshness(str, Enum):
    STALE = "stale"
    CURRENT = "current"


@dataclass
class RefreshDecision:
    status: Freshness
    local_build: int
    remote_build: Optional[int]  # None: metadata fetch failed
    missing: list[str] = field(default_factory=list)

    @property
    def newer_build(self) -> bool:
        return self.remote_build is not None and self.remote_build > self.local_build


def _dig(doc: Any, dotted: str) -> Any:
    cur = doc
    for key in dotted.split("."):
        if not isinstance(cur, dict) or key not in cur:
            raise KeyError(dotted)
        cur = cur[key]
    return cur


def fetch_remote_build(ctx: RunContext) -> Optional[int]:
    vc = ctx.cfg.versions
    if not vc.metadata_url:
        ctx.logger.log("WARN", "no build metadata url configured")
        return None
    try:
        resp = ctx.http.get(vc.metadata_url, timeout=ctx.cfg.runtime.http_timeout)
        resp.raise_for_status()
        return int(_dig(resp.json(), vc.build_field))
    except (requests.RequestException, ValueError, KeyError, TypeError) as e:
        ctx.logger.log("WARN", f"build metadata unavailable: {e}")
        return None


def read_local_build(ctx: RunContext) -> int:
    if not ctx.artifact_path(ctx.cfg.primary).is_file():
        return 0
    p = ctx.build_file
    if not p.is_file():
        return 0
    try:
        return int(p.read_text(encoding="utf-8").strip() or 0)
    except ValueError:
        ctx.logger.log("WARN", f"unreadable build number in {p.name}; treating as 0")
        return 0


def write_local_build(ctx: RunContext, build: int) -> bool:
    """Persist `build` if it is newer than the stored value."""
    p = ctx.build_file
    current = 0
    if p.is_file():
        try:
            current = int(p.read_text(encoding="utf-8").strip() or 0)
        except ValueError:
            current = 0
    if build <= current:
        return False
    p.write_text(f"{build}\n", encoding="utf-8")
    ctx.logger.log("INFO", f"build number {current} -> {build}")
    return True


def missing_artifacts(ctx: RunContext) -> list[str]:
    return [a.name for a in ctx.cfg.artifacts if not ctx.artifact_path(a).is_file()]


def needs_refresh(ctx: RunContext, remote_build: Optional[int] = None) -> RefreshDecision:
    if remote_build is None:
        remote_build = fetch_remote_build(ctx)
    local = read_local_build(ctx)
    missing = missing_artifacts(ctx)
    stale = bool(missing) or (remote_build is not None and remote_build > local)
    return RefreshDecision(
        status=Freshness.STALE if stale else Freshness.CURRENT,
        local_build=local,
        remote_build=remote_build,
        missing=missing,
    )
