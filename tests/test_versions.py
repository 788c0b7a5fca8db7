import requests

from launchgate.versions import (Freshness, fetch_remote_build, needs_refresh,
                                 read_local_build, write_local_build)

from conftest import BASE, install_artifacts


def test_remote_build_from_metadata(ctx, requests_mock):
    requests_mock.get(f"{BASE}/api/json", json={"lastSuccessfulBuild": {"number": 42}, "name": "x"})
    assert fetch_remote_build(ctx) == 42


def test_remote_build_failure_is_none(ctx, requests_mock):
    requests_mock.get(f"{BASE}/api/json", exc=requests.exceptions.ConnectTimeout)
    assert fetch_remote_build(ctx) is None
    requests_mock.get(f"{BASE}/api/json", json={"lastSuccessfulBuild": None})
    assert fetch_remote_build(ctx) is None
    requests_mock.get(f"{BASE}/api/json", text="<html>portal</html>")
    assert fetch_remote_build(ctx) is None


def test_local_build_zero_without_primary(ctx):
    ctx.build_file.write_text("99\n")
    assert read_local_build(ctx) == 0
    ctx.artifact_path("controller").write_bytes(b"c")
    assert read_local_build(ctx) == 99


def test_local_build_only_increases(ctx):
    assert write_local_build(ctx, 5)
    assert not write_local_build(ctx, 3)
    assert not write_local_build(ctx, 5)
    assert ctx.build_file.read_text().strip() == "5"
    assert write_local_build(ctx, 6)
    assert ctx.build_file.read_text().strip() == "6"


def test_stale_when_primary_missing(ctx):
    install_artifacts(ctx, build=10)
    ctx.artifact_path("controller").unlink()
    d = needs_refresh(ctx, remote_build=10)
    assert d.status is Freshness.STALE
    assert d.missing == ["controller"]


def test_stale_when_remote_newer(ctx):
    install_artifacts(ctx, build=10)
    d = needs_refresh(ctx, remote_build=11)
    assert d.status is Freshness.STALE and d.newer_build


def test_current_when_present_and_not_newer(ctx):
    install_artifacts(ctx, build=10)
    assert needs_refresh(ctx, remote_build=10).status is Freshness.CURRENT
    assert needs_refresh(ctx, remote_build=9).status is Freshness.CURRENT


def test_stale_when_any_artifact_missing(ctx):
    install_artifacts(ctx, build=10)
    ctx.artifact_path("loader").unlink()
    assert needs_refresh(ctx, remote_build=10).status is Freshness.STALE


def test_unknown_remote_with_everything_present(ctx, requests_mock):
    install_artifacts(ctx, build=10)
    requests_mock.get(f"{BASE}/api/json", status_code=503)
    d = needs_refresh(ctx)
    assert d.status is Freshness.CURRENT
    assert d.remote_build is None and not d.newer_build
