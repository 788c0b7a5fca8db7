from __future__ import annotations
import hashlib
import subprocess
from pathlib import Path

import pytest

from launchgate.config import Config
from launchgate.console import Console
from launchgate.context import RunContext
from launchgate.logging_db import RunLogger

BASE = "https://dl.test"
PHRASE = "I accept all consequences of using this program"


def sha(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ScriptedInput:
    """Feeds prepared answers to Console prompts; raises EOFError when exhausted."""

    def __init__(self, answers=None):
        self.answers = list(answers or [])
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class FakeRunner:
    def __init__(self, codes=None):
        self.codes = dict(codes or {})
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []

    def __call__(self, args, **kwargs):
        self.calls.append(list(args))
        self.kwargs.append(kwargs)
        code = self.codes.get(Path(args[0]).name, 0)
        return subprocess.CompletedProcess(args, code)


def make_config(tmp_path: Path, **sections) -> Config:
    data = {
        "runtime": {
            "workdir": str(tmp_path / "work"),
            "sqlite_path": str(tmp_path / "runlog.sqlite"),
            "step_pause": 0,
            "http_timeout": 5,
        },
        "consent": {"phrase": PHRASE},
        "self_update": {
            "enabled": True,
            "script_url": f"{BASE}/launcher.py",
            "digest_url": f"{BASE}/launcher.py.sha256",
        },
        "versions": {"metadata_url": f"{BASE}/api/json"},
        "artifacts": [
            {"name": "controller", "filename": "controller.exe", "url": f"{BASE}/controller.exe",
             "versioned": True, "primary": True},
            {"name": "driver", "filename": "driver.sys", "url": f"{BASE}/driver.sys",
             "hash_url": f"{BASE}/driver.sys.sha256", "versioned": True},
            {"name": "loader", "filename": "mapper.exe", "url": f"{BASE}/mapper.exe",
             "hash_url": f"{BASE}/mapper.exe.sha256"},
            {"name": "loader_driver", "filename": "drv.sys", "url": f"{BASE}/drv.sys",
             "hash_url": f"{BASE}/drv.sys.sha256"},
        ],
        "game": {"process_name": "game.exe", "launch_uri": "store://run/1",
                 "poll_interval": 1.0, "settle_delay": 15},
    }
    for k, v in sections.items():
        if isinstance(v, dict) and isinstance(data.get(k), dict):
            data[k] = {**data[k], **v}
        else:
            data[k] = v
    return Config.from_dict(data)


@pytest.fixture
def answers():
    return ScriptedInput()


@pytest.fixture
def output():
    return []


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def processes():
    return {"names": ["explorer.exe", "game.exe"]}


@pytest.fixture
def opened():
    return []


@pytest.fixture
def cfg(tmp_path):
    return make_config(tmp_path)


@pytest.fixture
def ctx(cfg, answers, output, runner, sleeps, processes, opened):
    logger = RunLogger(cfg.runtime.sqlite_path)
    logger.start(cmd="test", config_hash=cfg.hash())
    console = Console(input_fn=answers, print_fn=lambda *a: output.append(" ".join(str(x) for x in a)))

    def open_uri(uri):
        opened.append(uri)
        return True

    c = RunContext.create(
        cfg, console, logger,
        run=runner,
        spawn=runner,
        sleep=sleeps.append,
        open_uri=open_uri,
        list_processes=lambda: list(processes["names"]),
    )
    yield c
    logger.finish("test")


# Payloads served by the fake remote, keyed by artifact file name.
PAYLOADS = {
    "controller.exe": b"controller build",
    "driver.sys": b"driver image",
    "mapper.exe": b"mapper binary",
    "drv.sys": b"mapper driver image",
}


def serve_artifacts(mock, payloads=None, build=7):
    payloads = dict(PAYLOADS, **(payloads or {}))
    mock.get(f"{BASE}/api/json", json={"lastSuccessfulBuild": {"number": build}})
    for fname, body in payloads.items():
        mock.get(f"{BASE}/{fname}", content=body)
        mock.get(f"{BASE}/{fname}.sha256", text=f"{sha(body).upper()}  {fname}\n")
    return payloads


def install_artifacts(ctx, payloads=None, build=None):
    payloads = dict(PAYLOADS, **(payloads or {}))
    for art in ctx.cfg.artifacts:
        body = payloads[art.filename]
        ctx.artifact_path(art).write_bytes(body)
        if art.hash_url:
            ctx.digest_path(art).write_text(sha(body) + "\n", encoding="utf-8")
    if build is not None:
        ctx.build_file.write_text(f"{build}\n", encoding="utf-8")


def artifact_requests(mock) -> list[str]:
    return [r.url.rsplit("/", 1)[-1] for r in mock.request_history if not r.url.endswith("/api/json")]
