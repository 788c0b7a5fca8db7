import threading

from launchgate.process_wait import await_process, is_running, wait_until


def test_already_running_no_launch_no_settle(ctx, processes, opened, sleeps):
    assert await_process(ctx) is True
    assert opened == []
    assert sleeps == []


def test_name_match_is_exact_ignoring_case(ctx, processes):
    processes["names"] = ["GAME.EXE", "game.exe.bak"]
    assert is_running(ctx, "game.exe")
    processes["names"] = ["game.exe.bak", "mygame.exe"]
    assert not is_running(ctx, "game.exe")


def test_launch_request_then_poll_until_observed(ctx, processes, opened, sleeps):
    processes["names"] = ["explorer.exe"]
    polls = {"n": 0}

    def lister():
        polls["n"] += 1
        if polls["n"] >= 5:
            return ["explorer.exe", "game.exe"]
        return ["explorer.exe"]

    ctx.list_processes = lister
    assert await_process(ctx) is True
    assert opened == ["store://run/1"]
    # three one-second polls, then the settle delay
    assert sleeps == [1.0, 1.0, 1.0, 15]


def test_launch_failure_keeps_polling(ctx, processes, sleeps):
    calls = {"n": 0}

    def bad_open(uri):
        raise OSError("no handler")

    def lister():
        calls["n"] += 1
        return ["game.exe"] if calls["n"] > 2 else []

    ctx.open_uri = bad_open
    ctx.list_processes = lister
    assert await_process(ctx) is True


def test_cancel_stops_wait(ctx, processes):
    processes["names"] = []
    cancel = threading.Event()
    cancel.set()
    assert await_process(ctx, cancel=cancel) is False


def test_wait_until_timeout():
    slept = []
    assert wait_until(lambda: False, 0.5, slept.append, timeout=2.0) is False
    assert slept == [0.5, 0.5, 0.5, 0.5]


def test_wait_until_immediate():
    slept = []
    assert wait_until(lambda: True, 1.0, slept.append) is True
    assert slept == []
