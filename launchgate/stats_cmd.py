from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path
import json
import sqlite3


@dataclass
class RunAgg:
    by_cmd: dict  # {cmd: {count, mean_sec, p50_sec, p95_sec}}
    by_disposition: dict = field(default_factory=dict)  # {disposition: count}
    downloads: dict = field(default_factory=dict)  # {ok, failed, bytes}
    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


def _pct(xs: list[float], p: float) -> float:
    if not xs: return 0.0
    xs = sorted(xs)
    i = int(round((p / 100.0) * (len(xs) - 1)))
    return xs[i]


def summarize_runs(sqlite_path: str) -> RunAgg:
    p = Path(sqlite_path)
    if not p.exists():
        return RunAgg(by_cmd={})
    conn = sqlite3.connect(str(p))
    buckets: dict[str, list[float]] = defaultdict(list)
    dispositions: dict[str, int] = defaultdict(int)
    try:
        for cmd, start_s, end_s, disp in conn.execute(
                "SELECT cmd, started_at, finished_at, disposition FROM runs"):
            dispositions[disp or "unfinished"] += 1
            if not (start_s and end_s):
                continue
            try:
                start = datetime.fromisoformat(start_s)
                end = datetime.fromisoformat(end_s)
            except ValueError:
                continue
            buckets[cmd].append(max(0.0, (end - start).total_seconds()))
        ok, failed, nbytes = conn.execute(
            "SELECT COALESCE(SUM(ok),0), COALESCE(SUM(1-ok),0), COALESCE(SUM(bytes),0) FROM downloads"
        ).fetchone()
    finally:
        conn.close()
    out: dict[str, dict] = {}
    for cmd, xs in buckets.items():
        if not xs: continue
        mean = sum(xs) / len(xs)
        out[cmd] = {"count": len(xs), "mean_sec": round(mean, 3),
                    "p50_sec": round(_pct(xs, 50), 3),
                    "p95_sec": round(_pct(xs, 95), 3)}
    return RunAgg(by_cmd=out, by_disposition=dict(dispositions),
                  downloads={"ok": int(ok), "failed": int(failed), "bytes": int(nbytes)})


def print_run_stats(ra: RunAgg):
    if not ra.by_cmd and not ra.by_disposition:
        print("No runs found.")
        return
    if ra.by_cmd:
        print("Run durations by command:")
        for cmd, m in ra.by_cmd.items():
            print(f"  {cmd}: count={m['count']} mean={m['mean_sec']}s p50={m['p50_sec']}s p95={m['p95_sec']}s")
    if ra.by_disposition:
        print("Outcomes:")
        for disp, n in sorted(ra.by_disposition.items()):
            print(f"  - {disp}: {n}")
    if ra.downloads:
        d = ra.downloads
        print(f"Downloads: ok={d['ok']} failed={d['failed']} bytes={d['bytes']}")


def latest_run_id(conn: sqlite3.Connection) -> int | None:
    row = conn.execute("SELECT MAX(id) FROM runs").fetchone()
    return row[0] if row else None


def watch_run(sqlite_path: str, run_id: int | None = None, *,
              interval: float = 0.5, sleep=None, out=print) -> str | None:
    """Tail one run's events and state transitions until it records a disposition.

    Defaults to the most recent run. Returns the final disposition, or None
    when there is no such run.
    """
    import time
    sleep = sleep or time.sleep
    conn = sqlite3.connect(sqlite_path)
    try:
        if run_id is None:
            run_id = latest_run_id(conn)
        row = conn.execute("SELECT cmd, started_at FROM runs WHERE id=?", (run_id,)).fetchone()
        if row is None:
            out("No such run.")
            return None
        out(f"Watching run {run_id} ({row[0]}, started {row[1]})")
        last_event = last_transition = 0
        while True:
            # read the disposition first so nothing logged before it is missed
            disp = conn.execute("SELECT disposition FROM runs WHERE id=?", (run_id,)).fetchone()[0]
            lines = []
            for eid, ts, level, msg in conn.execute(
                    "SELECT id, ts, level, msg FROM events WHERE run_id=? AND id > ? ORDER BY id",
                    (run_id, last_event)):
                lines.append((ts, f"[{ts}] {level:5s} {msg}"))
                last_event = eid
            for tid, ts, src, dst in conn.execute(
                    "SELECT id, ts, src, dst FROM transitions WHERE run_id=? AND id > ? ORDER BY id",
                    (run_id, last_transition)):
                lines.append((ts, f"[{ts}] STATE {src} -> {dst}"))
                last_transition = tid
            for _, line in sorted(lines, key=lambda x: x[0]):
                out(line)
            if disp:
                out(f"Run {run_id} finished: {disp}")
                return disp
            sleep(interval)
    finally:
        conn.close()
