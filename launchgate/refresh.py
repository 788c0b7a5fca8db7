from __future__ import annotations
from dataclasses import dataclass, field

from .config import ArtifactCfg
from .context import RunContext
from .errors import IntegrityError
from .fetcher import fetch_or_prompt
from .hashing import verify, VerifyResult
from .versions import RefreshDecision, needs_refresh, write_local_build


@dataclass
class RefreshReport:
    decision: RefreshDecision
    fetched: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    verified: dict[str, VerifyResult] = field(default_factory=dict)


def fetch_artifact(ctx: RunContext, art: ArtifactCfg) -> bool:
    ok = fetch_or_prompt(ctx, ctx.artifact_path(art), art.url, art.name)
    if art.hash_url:
        ok = fetch_or_prompt(ctx, ctx.digest_path(art), art.hash_url, f"{art.name} digest") and ok
    return ok


def _fetch(ctx: RunContext, art: ArtifactCfg, report: RefreshReport) -> bool:
    ok = fetch_artifact(ctx, art)
    (report.fetched if ok else report.failed).append(art.name)
    return ok


def verify_artifacts(ctx: RunContext, report: RefreshReport | None = None) -> dict[str, VerifyResult]:
    """Verify every artifact that carries a digest record.

    Failing artifacts are deleted together with their record, so the next
    run fetches both again, and IntegrityError is raised after the operator
    has seen the failure.
    """
    results: dict[str, VerifyResult] = {}
    bad: list[tuple[str, VerifyResult]] = []
    for art in ctx.cfg.artifacts:
        if not art.hash_url:
            continue
        ctx.console.say(f" Verifying {art.filename}")
        res = verify(ctx.artifact_path(art), ctx.digest_path(art))
        results[art.name] = res
        if res.ok:
            ctx.console.say(f" {art.filename} verified.")
            continue
        ctx.artifact_path(art).unlink(missing_ok=True)
        ctx.digest_path(art).unlink(missing_ok=True)
        ctx.logger.log("ERROR", f"{art.name} failed verification ({res.value}); deleted")
        bad.append((art.name, res))
    if report is not None:
        report.verified = results
    if bad:
        lines = [f"{name}: {res.value}" for name, res in bad]
        ctx.console.failure_pause(
            "Integrity check failed and the file was deleted. Run the launcher again to download it.\n  "
            + "\n  ".join(lines)
        )
        raise IntegrityError(bad[0][0], bad[0][1].value)
    return results


def refresh_artifacts(ctx: RunContext) -> RefreshReport:
    ctx.console.banner("CHECKING FOR UPDATES")
    ctx.console.say(" Fetching latest build information...")
    decision = needs_refresh(ctx)
    report = RefreshReport(decision=decision)
    ctx.logger.log("INFO", f"refresh decision={decision.status.value} local={decision.local_build} "
                           f"remote={decision.remote_build} missing={decision.missing}")
    if decision.remote_build is None:
        ctx.console.say(" Could not check for updates; using local files.")

    if decision.newer_build:
        ctx.console.say(f" Downloading build {decision.remote_build}...")
        versioned = [a for a in ctx.cfg.artifacts if a.versioned]
        results = [_fetch(ctx, a, report) for a in versioned]
        if all(results):
            write_local_build(ctx, decision.remote_build)
    elif decision.remote_build is not None:
        ctx.console.say(" Local build is up to date.")

    for art in ctx.cfg.artifacts:
        if art.name in report.fetched or art.name in report.failed or ctx.artifact_path(art).is_file():
            continue
        ctx.console.say(f" {art.filename} not found, downloading...")
        _fetch(ctx, art, report)

    verify_artifacts(ctx, report)
    return report
