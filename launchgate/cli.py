from __future__ import annotations
import argparse
import sys
from pathlib import Path

from .config import Config
from .console import Console
from .consent import revoke
from .context import RunContext
from .errors import ConfigError
from .hashing import verify
from .logging_db import RunLogger
from .privileges import request_elevation
from .selfupdate import resolve_script_path
from .stats_cmd import summarize_runs, print_run_stats, watch_run
from .supervisor import State, Supervisor

EXIT_CODES = {State.DONE: 0, State.HANDOFF: 0, State.FATAL: 1, State.ABORTED: 2}


def _load(args) -> Config:
    try:
        return Config.load(args.config)
    except ConfigError as e:
        raise SystemExit(f"config error: {e}")


def _context(cfg: Config, cmd: str, verbose: bool) -> RunContext:
    logger = RunLogger(cfg.runtime.sqlite_path, echo=verbose)
    logger.start(cmd=cmd, config_hash=cfg.hash())
    return RunContext.create(cfg, Console(), logger)


def cmd_run(args) -> int:
    cfg = _load(args)
    ctx = _context(cfg, "run", getattr(args, "verbose", False))
    sup = Supervisor(
        ctx,
        argv=args.argv,
        script_path=resolve_script_path(ctx),
        self_update=not args.no_self_update,
        elevation_check=not args.no_elevation_check,
        elevate=lambda a: request_elevation(["-m", "launchgate", *a]),
    )
    session = None
    try:
        session = sup.run()
    finally:
        ctx.logger.finish(session.disposition.value if session and session.disposition else "interrupted")
    return EXIT_CODES[session.disposition]


def cmd_verify(args) -> int:
    cfg = _load(args)
    ctx = _context(cfg, "verify", getattr(args, "verbose", False))
    bad = 0
    try:
        for art in cfg.artifacts:
            if not art.hash_url:
                print(f"{art.name:16s} no digest record")
                continue
            res = verify(ctx.artifact_path(art), ctx.digest_path(art))
            ctx.logger.log("INFO", f"verify {art.name}: {res.value}")
            print(f"{art.name:16s} {res.value}")
            bad += 0 if res.ok else 1
    finally:
        ctx.logger.finish("done" if not bad else "fatal")
    return 1 if bad else 0


def cmd_consent_revoke(args) -> int:
    cfg = _load(args)
    ctx = _context(cfg, "consent-revoke", getattr(args, "verbose", False))
    try:
        removed = revoke(ctx)
        ctx.logger.log("INFO", f"consent revoked={removed}")
        print("Consent withdrawn." if removed else "No consent record found.")
    finally:
        ctx.logger.finish("done")
    return 0


def cmd_stats_runs(args) -> int:
    cfg = _load(args)
    ra = summarize_runs(cfg.runtime.sqlite_path)
    if args.json:
        print(ra.to_json())
    else:
        print_run_stats(ra)
    return 0


def cmd_watch(args) -> int:
    cfg = _load(args)
    db = cfg.runtime.sqlite_path
    if not Path(db).exists():
        print("No run log yet:", db)
        return 0
    try:
        watch_run(db, args.run_id)
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="launchgate")
    p.add_argument("--verbose", action="store_true", help="Echo run log events to the console")
    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("run", help="Run the full bootstrap sequence")
    pr.add_argument("--config", default="config.example.yaml", help="Config file")
    pr.add_argument("--no-self-update", action="store_true", help="Skip the launcher update check")
    pr.add_argument("--no-elevation-check", action="store_true", help="Do not require administrator rights")
    pr.set_defaults(func=cmd_run)

    pv = sub.add_parser("verify", help="Check artifacts against their digest records")
    pv.add_argument("--config", default="config.example.yaml", help="Config file")
    pv.set_defaults(func=cmd_verify)

    pc = sub.add_parser("consent", help="Manage the liability acknowledgment")
    csub = pc.add_subparsers(dest="action", required=True)
    pcr = csub.add_parser("revoke", help="Delete the stored acknowledgment")
    pcr.add_argument("--config", default="config.example.yaml", help="Config file")
    pcr.set_defaults(func=cmd_consent_revoke)

    pstats = sub.add_parser("stats", help="Show statistics for logged runs")
    ssub = pstats.add_subparsers(dest="target", required=True)
    psr = ssub.add_parser("runs", help="Summarize run outcomes and durations from SQLite")
    psr.add_argument("--config", default="config.example.yaml", help="Config file (for sqlite path)")
    psr.add_argument("--json", action="store_true", help="Output JSON")
    psr.set_defaults(func=cmd_stats_runs)

    pw = sub.add_parser("watch", help="Follow a run's events and state changes until it finishes")
    pw.add_argument("--config", default="config.example.yaml", help="Config file")
    pw.add_argument("--run-id", type=int, help="Run to follow (default: the most recent)")
    pw.set_defaults(func=cmd_watch)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    args.argv = list(sys.argv[1:] if argv is None else argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
