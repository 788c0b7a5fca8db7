from __future__ import annotations
import locale
import sys
from enum import Enum
from pathlib import Path

from .context import RunContext, DIGEST_SUFFIX
from .errors import IntegrityError
from .fetcher import fetch, fetch_or_prompt
from .hashing import verify, VerifyResult

PACKAGE_DIR = Path(__file__).resolve().parent


class SelfUpdate(str, Enum):
    SKIPPED = "skipped"
    NO_UPDATE = "no-update"
    UPDATED = "updated"
    CHECK_FAILED = "check-failed"


def resolve_script_path(ctx: RunContext) -> Path | None:
    if ctx.cfg.self_update.script_path:
        return Path(ctx.cfg.self_update.script_path).resolve()
    entry = Path(sys.argv[0])
    # console-script shims and frozen executables are not replaced in place
    if entry.suffix.lower() != ".py" or not entry.is_file():
        return None
    entry = entry.resolve()
    # `python -m launchgate` runs a module of this package, never a standalone script
    if PACKAGE_DIR in entry.parents:
        return None
    return entry


def _marker(ctx: RunContext) -> Path:
    cand = ctx.candidate_script
    return cand.with_name(cand.name + DIGEST_SUFFIX)


def install(candidate: Path, script_path: Path, encoding: str = "") -> None:
    """Copy the verified candidate over the entry script in the host encoding."""
    text = candidate.read_text(encoding="utf-8")
    enc = encoding or locale.getpreferredencoding(False)
    script_path.write_text(text, encoding=enc, errors="replace")


def check_self_update(ctx: RunContext, script_path: Path | None) -> SelfUpdate:
    su = ctx.cfg.self_update
    if not su.enabled or not su.digest_url or script_path is None:
        ctx.logger.log("INFO", "self-update disabled")
        return SelfUpdate.SKIPPED

    marker = _marker(ctx)
    if marker.exists():
        # left behind by the process that just installed an update
        marker.unlink()
        ctx.logger.log("INFO", "self-update just applied; skipping check")
        return SelfUpdate.SKIPPED

    ctx.console.say(" Checking for launcher updates...")
    if not fetch(ctx, marker, su.digest_url, "launcher digest"):
        ctx.console.say(" Launcher update check failed; continuing with the current version.")
        return SelfUpdate.CHECK_FAILED

    candidate = ctx.candidate_script
    if verify(candidate, marker) is VerifyResult.MATCH:
        marker.unlink()
        ctx.logger.log("INFO", "launcher is up to date")
        return SelfUpdate.NO_UPDATE

    ctx.console.say(" Downloading the latest launcher...")
    if not fetch_or_prompt(ctx, candidate, su.script_url, "launcher"):
        marker.unlink(missing_ok=True)
        return SelfUpdate.CHECK_FAILED

    result = verify(candidate, marker)
    if result is not VerifyResult.MATCH:
        candidate.unlink(missing_ok=True)
        marker.unlink(missing_ok=True)
        ctx.logger.log("ERROR", f"downloaded launcher failed verification: {result.value}")
        ctx.console.failure_pause(
            "Launcher update failed verification and was deleted. Run the launcher again."
        )
        raise IntegrityError("launcher", result.value)

    install(candidate, script_path, su.target_encoding)
    ctx.logger.log("INFO", f"launcher updated: {script_path}")
    return SelfUpdate.UPDATED


def relaunch(ctx: RunContext, script_path: Path, argv: list[str]) -> None:
    """Start the freshly installed script as a new process; caller then exits."""
    ctx.logger.log("INFO", f"handing off to {script_path}")
    ctx.spawn([sys.executable, str(script_path), *argv], cwd=str(script_path.parent))
