import pytest

from launchgate.config import Config
from launchgate.errors import ConfigError

from conftest import make_config


def test_defaults_without_sections(tmp_path):
    p = tmp_path / "c.yaml"
    p.write_text("runtime:\n  step_pause: 0\n", encoding="utf-8")
    cfg = Config.load(str(p))
    assert cfg.runtime.step_pause == 0
    assert cfg.runtime.http_timeout == 60.0
    assert cfg.primary.name == "controller"
    assert [a.name for a in cfg.artifacts if a.versioned] == ["controller", "driver"]
    assert cfg.versions.build_field == "lastSuccessfulBuild.number"


def test_example_config_loads():
    from pathlib import Path
    cfg = Config.load(str(Path(__file__).resolve().parent.parent / "config.example.yaml"))
    assert cfg.driver.loader == "loader"
    assert cfg.artifact("driver").hash_url.endswith(".sha256")
    assert cfg.artifact("controller").hash_url == ""


def test_hash_is_stable_and_sensitive(tmp_path):
    a = make_config(tmp_path)
    b = make_config(tmp_path)
    assert a.hash() == b.hash()
    c = make_config(tmp_path, game={"process_name": "other.exe"})
    assert c.hash() != a.hash()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        Config.load(str(tmp_path / "absent.yaml"))


def test_unknown_key_rejected(tmp_path):
    with pytest.raises(ConfigError):
        make_config(tmp_path, game={"bogus": 1})


@pytest.mark.parametrize("artifacts", [
    [{"name": "controller", "filename": "c.exe"}],
    [{"name": "controller", "filename": "c.exe", "primary": True},
     {"name": "driver", "filename": "d.sys", "primary": True}],
])
def test_primary_required_once(tmp_path, artifacts):
    with pytest.raises(ConfigError):
        make_config(tmp_path, artifacts=artifacts)


def test_driver_roles_must_name_artifacts(tmp_path):
    with pytest.raises(ConfigError):
        make_config(tmp_path, driver={"target": "kernel"})


def test_yaml_syntax_error(tmp_path):
    p = tmp_path / "c.yaml"
    p.write_text("runtime: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load(str(p))


@pytest.mark.parametrize("text", ["- just\n- a list\n", "plain string\n", "runtime: 5\n"])
def test_non_mapping_rejected(tmp_path, text):
    p = tmp_path / "c.yaml"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load(str(p))
