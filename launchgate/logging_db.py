from __future__ import annotations
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS runs(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  started_at TEXT NOT NULL,
  finished_at TEXT,
  cmd TEXT NOT NULL,
  config_hash TEXT NOT NULL,
  disposition TEXT
);
CREATE TABLE IF NOT EXISTS events(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  run_id INTEGER NOT NULL,
  ts TEXT NOT NULL,
  level TEXT NOT NULL,
  msg TEXT NOT NULL,
  FOREIGN KEY(run_id) REFERENCES runs(id)
);
CREATE TABLE IF NOT EXISTS transitions(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  run_id INTEGER NOT NULL,
  ts TEXT NOT NULL,
  src TEXT NOT NULL,
  dst TEXT NOT NULL,
  FOREIGN KEY(run_id) REFERENCES runs(id)
);
CREATE TABLE IF NOT EXISTS downloads(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  run_id INTEGER NOT NULL,
  ts TEXT NOT NULL,
  artifact TEXT NOT NULL,
  url TEXT NOT NULL,
  ok INTEGER NOT NULL,
  bytes INTEGER,
  latency_ms REAL,
  error TEXT,
  FOREIGN KEY(run_id) REFERENCES runs(id)
);
"""

@dataclass
class Run:
    id: int

class RunLogger:
    def __init__(self, path: str, echo: bool = False):
        self.path = path
        self.echo = echo
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(path)
        self.conn.executescript(SCHEMA)
        self.conn.commit()
        self._run_id: int | None = None

    @property
    def run_id(self) -> int | None:
        return self._run_id

    def start(self, cmd: str, config_hash: str) -> Run:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO runs(started_at, cmd, config_hash) VALUES (?, ?, ?)",
            (datetime.utcnow().isoformat(), cmd, config_hash),
        )
        self.conn.commit()
        self._run_id = cur.lastrowid
        return Run(id=self._run_id)

    def log(self, level: str, msg: str):
        assert self._run_id is not None
        ts = datetime.utcnow().isoformat()
        self.conn.execute(
            "INSERT INTO events(run_id, ts, level, msg) VALUES (?, ?, ?, ?)",
            (self._run_id, ts, level.upper(), msg),
        )
        self.conn.commit()
        if self.echo:
            print(f"[{ts}] {level.upper():5s} {msg}")

    def log_transition(self, src: str, dst: str):
        assert self._run_id is not None
        ts = datetime.utcnow().isoformat()
        self.conn.execute(
            "INSERT INTO transitions(run_id, ts, src, dst) VALUES (?, ?, ?, ?)",
            (self._run_id, ts, src, dst),
        )
        self.conn.commit()
        if self.echo:
            print(f"[{ts}] STATE {src} -> {dst}")

    def log_download(self, *, artifact: str, url: str, ok: bool,
                     nbytes: int | None = None, latency_ms: float = 0.0,
                     error: str | None = None):
        """Record one download attempt (artifact payload or digest record)."""
        assert self._run_id is not None
        self.conn.execute(
            "INSERT INTO downloads(run_id, ts, artifact, url, ok, bytes, latency_ms, error) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                self._run_id,
                datetime.utcnow().isoformat(),
                artifact, url, int(bool(ok)),
                nbytes,
                float(latency_ms),
                (error or "")[:400] or None,
            ),
        )
        self.conn.commit()

    def transitions(self) -> list[tuple[str, str]]:
        assert self._run_id is not None
        cur = self.conn.execute(
            "SELECT src, dst FROM transitions WHERE run_id=? ORDER BY id ASC", (self._run_id,)
        )
        return [(s, d) for s, d in cur]

    def finish(self, disposition: str | None = None):
        if self._run_id is not None:
            ts = datetime.utcnow().isoformat()
            self.conn.execute(
                "UPDATE runs SET finished_at=?, disposition=? WHERE id=?",
                (ts, disposition, self._run_id),
            )
            self.conn.commit()
            if self.echo:
                print(f"[{ts}] FINISH run_id={self._run_id} disposition={disposition}")
            self.conn.close()
