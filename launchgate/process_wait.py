from __future__ import annotations
import threading
from typing import Callable, Optional

import psutil

from .context import RunContext


def running_process_names() -> list[str]:
    names = []
    for proc in psutil.process_iter(["name"]):
        name = proc.info.get("name")
        if name:
            names.append(name)
    return names


def wait_until(predicate: Callable[[], bool], interval: float, sleep: Callable[[float], None],
               cancel: Optional[threading.Event] = None, timeout: Optional[float] = None) -> bool:
    """Poll `predicate` every `interval` seconds.

    Returns True once it holds, False if `cancel` is set or `timeout` elapses.
    With neither, waits indefinitely.
    """
    waited = 0.0
    while True:
        if predicate():
            return True
        if cancel is not None and cancel.is_set():
            return False
        if timeout is not None and waited >= timeout:
            return False
        sleep(interval)
        waited += interval


def is_running(ctx: RunContext, name: str) -> bool:
    lister = ctx.list_processes or running_process_names
    want = name.casefold()
    return any(n.casefold() == want for n in lister())


def await_process(ctx: RunContext, cancel: Optional[threading.Event] = None,
                  timeout: Optional[float] = None) -> bool:
    g = ctx.cfg.game
    ctx.console.banner("STARTING GAME")
    if is_running(ctx, g.process_name):
        ctx.console.say(f" {g.process_name} is running. Starting the controller...")
        ctx.logger.log("INFO", f"{g.process_name} already running")
        return True

    ctx.console.say(f" {g.process_name} is not running.")
    if g.launch_uri:
        ctx.console.say(" Trying to launch it...")
        try:
            ctx.open_uri(g.launch_uri)
            ctx.logger.log("INFO", f"launch requested: {g.launch_uri}")
        except Exception as e:
            # best effort; keep polling either way
            ctx.logger.log("WARN", f"launch request failed: {e}")
    ctx.console.say(f" Waiting for {g.process_name}...")
    found = wait_until(lambda: is_running(ctx, g.process_name), g.poll_interval, ctx.sleep,
                       cancel=cancel, timeout=timeout)
    if not found:
        ctx.logger.log("WARN", f"stopped waiting for {g.process_name}")
        return False
    ctx.console.say(" Game detected!")
    ctx.logger.log("INFO", f"{g.process_name} observed; settling {g.settle_delay}s")
    if g.settle_delay > 0:
        ctx.sleep(g.settle_delay)
    ctx.console.say(" Starting the controller...")
    return True
