from __future__ import annotations
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from . import __version__
from .consent import Consent, ensure_consent
from .context import RunContext
from .driver import load_driver, unload_driver
from .errors import LaunchError, RunAborted
from .privileges import is_elevated, request_elevation
from .process_wait import await_process
from .refresh import RefreshReport, refresh_artifacts
from .selfupdate import SelfUpdate, check_self_update, relaunch


class State(str, Enum):
    INIT = "init"
    CONSENTING = "consenting"
    SELF_UPDATING = "self-updating"
    REFRESHING = "refreshing"
    DRIVER_LOADING = "driver-loading"
    AWAITING_GAME = "awaiting-game"
    RUNNING = "running"
    UNLOADING = "unloading"
    DONE = "done"
    HANDOFF = "handoff"  # another process carries on (self-update, elevation)
    ABORTED = "aborted"
    FATAL = "fatal"


TERMINAL = {State.DONE, State.HANDOFF, State.ABORTED, State.FATAL}


@dataclass
class RunSession:
    self_update: Optional[SelfUpdate] = None
    refresh: Optional[RefreshReport] = None
    driver_loaded: bool = False
    game_observed: bool = False
    controller_exit: Optional[int] = None
    cancelled: bool = False
    error: Optional[str] = None
    history: list[State] = field(default_factory=list)
    disposition: Optional[State] = None


class Supervisor:
    """Sequences one bootstrap run as an explicit state machine.

    Each handler performs its stage and returns the next state. Stage errors
    that escape a handler end the run: RunAborted in ABORTED, any other
    LaunchError in FATAL. Once the controller has run, UNLOADING always follows.
    """

    def __init__(self, ctx: RunContext, *, argv: list[str] | None = None,
                 script_path: Path | None = None, self_update: bool = True,
                 elevation_check: bool = True,
                 elevated: Callable[[], bool] = is_elevated,
                 elevate: Callable[[list[str]], bool] = request_elevation,
                 cancel: Optional[threading.Event] = None):
        self.ctx = ctx
        self.argv = list(argv or [])
        self.script_path = script_path
        self.self_update = self_update
        self.elevation_check = elevation_check
        self._elevated = elevated
        self._elevate = elevate
        self.cancel = cancel
        self.session = RunSession()
        self._handlers: dict[State, Callable[[], State]] = {
            State.INIT: self._init,
            State.CONSENTING: self._consenting,
            State.SELF_UPDATING: self._self_updating,
            State.REFRESHING: self._refreshing,
            State.DRIVER_LOADING: self._driver_loading,
            State.AWAITING_GAME: self._awaiting_game,
            State.RUNNING: self._running,
            State.UNLOADING: self._unloading,
        }

    def run(self) -> RunSession:
        state = State.INIT
        self.session.history.append(state)
        while state not in TERMINAL:
            try:
                nxt = self._handlers[state]()
            except RunAborted as e:
                self.session.error = str(e)
                self.ctx.logger.log("INFO", f"aborted in {state.value}: {e}")
                self.ctx.console.say(" Launcher will exit.")
                nxt = State.ABORTED
            except LaunchError as e:
                self.session.error = str(e)
                self.ctx.logger.log("ERROR", f"fatal in {state.value}: {e}")
                self.ctx.console.say(f" Cannot continue: {e}")
                nxt = State.FATAL
            self.ctx.logger.log_transition(state.value, nxt.value)
            self.session.history.append(nxt)
            state = nxt
        self.session.disposition = state
        return self.session

    def _init(self) -> State:
        self.ctx.console.say(f"Launch Gate v{__version__}")
        if not self.elevation_check or self._elevated():
            return State.CONSENTING
        self.ctx.console.say(" Requesting administrator rights...")
        if self._elevate(self.argv):
            return State.HANDOFF
        raise LaunchError("administrator rights are required to load the driver")

    def _consenting(self) -> State:
        if ensure_consent(self.ctx) is Consent.ABORT:
            return State.ABORTED
        self.ctx.pause()
        return State.SELF_UPDATING

    def _self_updating(self) -> State:
        if not self.self_update:
            self.session.self_update = SelfUpdate.SKIPPED
            return State.REFRESHING
        result = check_self_update(self.ctx, self.script_path)
        self.session.self_update = result
        if result is SelfUpdate.UPDATED:
            relaunch(self.ctx, self.script_path, self.argv)
            return State.HANDOFF
        return State.REFRESHING

    def _refreshing(self) -> State:
        self.session.refresh = refresh_artifacts(self.ctx)
        self.ctx.pause()
        return State.DRIVER_LOADING

    def _driver_loading(self) -> State:
        load_driver(self.ctx)
        self.session.driver_loaded = True
        self.ctx.pause()
        return State.AWAITING_GAME

    def _awaiting_game(self) -> State:
        if not await_process(self.ctx, cancel=self.cancel):
            self.session.cancelled = True
            return State.UNLOADING
        self.session.game_observed = True
        return State.RUNNING

    def _running(self) -> State:
        cc = self.ctx.cfg.controller
        args = [str(self.ctx.artifact_path(cc.artifact)), *cc.args]
        env = dict(os.environ)
        if cc.log_env and cc.log_level:
            env[cc.log_env] = cc.log_level
        self.ctx.logger.log("INFO", "exec " + " ".join(args))
        try:
            proc = self.ctx.run(args, cwd=str(self.ctx.workdir), env=env)
            self.session.controller_exit = proc.returncode
            self.ctx.logger.log("INFO", f"controller exited with {proc.returncode}")
        except OSError as e:
            self.session.error = f"controller failed to start: {e}"
            self.ctx.logger.log("ERROR", self.session.error)
            self.ctx.console.say(f" {self.session.error}")
        return State.UNLOADING

    def _unloading(self) -> State:
        unload_driver(self.ctx)
        if self.session.cancelled:
            return State.ABORTED
        self.ctx.console.say()
        try:
            self.ctx.console.pause("Press Enter to exit.")
        except RunAborted:
            self.ctx.logger.log("DEBUG", "exit prompt closed")
        if self.session.controller_exit is None:
            # the controller never ran
            return State.FATAL
        return State.DONE
