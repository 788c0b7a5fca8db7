from __future__ import annotations
import subprocess
import time
import webbrowser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import requests

from .config import Config, ArtifactCfg
from .console import Console
from .logging_db import RunLogger

DIGEST_SUFFIX = ".sha256"


@dataclass
class RunContext:
    cfg: Config
    workdir: Path
    console: Console
    logger: RunLogger
    http: requests.Session = field(default_factory=requests.Session)
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run
    spawn: Callable[..., object] = subprocess.Popen
    sleep: Callable[[float], None] = time.sleep
    open_uri: Callable[[str], bool] = webbrowser.open
    list_processes: Optional[Callable[[], list[str]]] = None  # None: psutil process table

    @classmethod
    def create(cls, cfg: Config, console: Console, logger: RunLogger, **hooks) -> "RunContext":
        workdir = Path(cfg.runtime.workdir).resolve()
        workdir.mkdir(parents=True, exist_ok=True)
        return cls(cfg=cfg, workdir=workdir, console=console, logger=logger, **hooks)

    @property
    def build_file(self) -> Path:
        return self.workdir / self.cfg.versions.build_file

    @property
    def consent_file(self) -> Path:
        return self.workdir / self.cfg.consent.record_file

    @property
    def candidate_script(self) -> Path:
        return self.workdir / self.cfg.self_update.candidate_name

    def artifact_path(self, art: ArtifactCfg | str) -> Path:
        if isinstance(art, str):
            art = self.cfg.artifact(art)
        return self.workdir / art.filename

    def digest_path(self, art: ArtifactCfg | str) -> Path:
        p = self.artifact_path(art)
        return p.with_name(p.name + DIGEST_SUFFIX)

    def pause(self):
        if self.cfg.runtime.step_pause > 0:
            self.sleep(self.cfg.runtime.step_pause)
