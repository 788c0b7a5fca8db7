from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any
import hashlib
import io
import yaml

from .errors import ConfigError


@dataclass
class RuntimeCfg:
    workdir: str = "./nightly"
    sqlite_path: str = "./nightly/runlog.sqlite"
    step_pause: float = 4.0  # seconds between stages
    http_timeout: float = 60.0


@dataclass
class ConsentCfg:
    phrase: str = "I accept all consequences of using this program"
    record_file: str = "answered"
    docs_url: str = ""


@dataclass
class SelfUpdateCfg:
    enabled: bool = True
    script_url: str = ""
    digest_url: str = ""
    # downloaded next to the artifacts, never over the running script
    candidate_name: str = "launcher.update"
    script_path: str = ""  # empty: the running entry script
    target_encoding: str = ""  # empty: host locale


@dataclass
class VersionsCfg:
    metadata_url: str = ""
    build_field: str = "lastSuccessfulBuild.number"
    build_file: str = "nightly.txt"


@dataclass
class ArtifactCfg:
    name: str
    filename: str
    url: str = ""
    hash_url: str = ""  # empty: no companion digest record
    versioned: bool = False
    primary: bool = False


@dataclass
class DriverCfg:
    loader: str = "loader"
    loader_payload: str = "loader_driver"
    target: str = "driver"


@dataclass
class GameCfg:
    process_name: str = ""
    launch_uri: str = ""
    poll_interval: float = 1.0
    settle_delay: float = 15.0


@dataclass
class ControllerCfg:
    artifact: str = "controller"
    log_env: str = "RUST_LOG"
    log_level: str = "INFO"
    args: List[str] = field(default_factory=list)


def _default_artifacts() -> List[ArtifactCfg]:
    return [
        ArtifactCfg(name="controller", filename="controller.exe", versioned=True, primary=True),
        ArtifactCfg(name="driver", filename="driver.sys", versioned=True),
        ArtifactCfg(name="loader", filename="mapper.exe"),
        ArtifactCfg(name="loader_driver", filename="drv.sys"),
    ]


@dataclass
class Config:
    runtime: RuntimeCfg = field(default_factory=RuntimeCfg)
    consent: ConsentCfg = field(default_factory=ConsentCfg)
    self_update: SelfUpdateCfg = field(default_factory=SelfUpdateCfg)
    versions: VersionsCfg = field(default_factory=VersionsCfg)
    artifacts: List[ArtifactCfg] = field(default_factory=_default_artifacts)
    driver: DriverCfg = field(default_factory=DriverCfg)
    game: GameCfg = field(default_factory=GameCfg)
    controller: ControllerCfg = field(default_factory=ControllerCfg)

    @staticmethod
    def load(path: str) -> "Config":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        return Config.from_dict(data)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Config":
        if not isinstance(data, dict):
            raise ConfigError(f"config must be a mapping, got {type(data).__name__}")
        # Merge file keys over the known defaults
        def merged(default_obj, src: dict):
            base = {**default_obj.__dict__}
            base.update(src or {})
            return base

        try:
            runtime = RuntimeCfg(**merged(RuntimeCfg(), data.get("runtime", {})))
            consent = ConsentCfg(**merged(ConsentCfg(), data.get("consent", {})))
            self_update = SelfUpdateCfg(**merged(SelfUpdateCfg(), data.get("self_update", {})))
            versions = VersionsCfg(**merged(VersionsCfg(), data.get("versions", {})))
            driver = DriverCfg(**merged(DriverCfg(), data.get("driver", {})))
            game = GameCfg(**merged(GameCfg(), data.get("game", {})))
            controller = ControllerCfg(**merged(ControllerCfg(), data.get("controller", {})))
            if "artifacts" in data:
                artifacts = [ArtifactCfg(**a) for a in (data.get("artifacts") or [])]
            else:
                artifacts = _default_artifacts()
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid config: {e}") from e

        cfg = Config(runtime=runtime, consent=consent, self_update=self_update, versions=versions,
                     artifacts=artifacts, driver=driver, game=game, controller=controller)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        names = [a.name for a in self.artifacts]
        if len(set(names)) != len(names):
            raise ConfigError("artifact names must be unique")
        primaries = [a for a in self.artifacts if a.primary]
        if len(primaries) != 1:
            raise ConfigError(f"exactly one primary artifact required, found {len(primaries)}")
        for role, name in (("driver.loader", self.driver.loader),
                           ("driver.loader_payload", self.driver.loader_payload),
                           ("driver.target", self.driver.target),
                           ("controller.artifact", self.controller.artifact)):
            if name not in names:
                raise ConfigError(f"{role} refers to unknown artifact '{name}'")
        if not self.consent.phrase.strip():
            raise ConfigError("consent.phrase must not be empty")

    def artifact(self, name: str) -> ArtifactCfg:
        for a in self.artifacts:
            if a.name == name:
                return a
        raise ConfigError(f"unknown artifact '{name}'")

    @property
    def primary(self) -> ArtifactCfg:
        return next(a for a in self.artifacts if a.primary)

    def hash(self) -> str:
        buf = io.StringIO()
        yaml.safe_dump(
            {
                "runtime": self.runtime.__dict__,
                "consent": self.consent.__dict__,
                "self_update": self.self_update.__dict__,
                "versions": self.versions.__dict__,
                "artifacts": [asdict(a) for a in self.artifacts],
                "driver": self.driver.__dict__,
                "game": self.game.__dict__,
                "controller": asdict(self.controller),
            },
            buf,
            sort_keys=True,
        )
        return hashlib.sha256(buf.getvalue().encode()).hexdigest()[:12]
