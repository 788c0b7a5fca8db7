from __future__ import annotations
from .context import RunContext
from .errors import DriverLoadError

TROUBLESHOOT = "Driver load failed! See the troubleshooting section of the documentation."


def _invoke(ctx: RunContext, args: list[str]):
    ctx.logger.log("INFO", "exec " + " ".join(args))
    return ctx.run(args, cwd=str(ctx.workdir))


def load_driver(ctx: RunContext) -> None:
    """Map the target driver: the loader takes its own payload first, then the target image."""
    d = ctx.cfg.driver
    args = [
        str(ctx.artifact_path(d.loader)),
        str(ctx.artifact_path(d.loader_payload)),
        str(ctx.artifact_path(d.target)),
    ]
    ctx.console.banner("LOADING DRIVER")
    ctx.console.say(" Loading driver...")
    try:
        proc = _invoke(ctx, args)
    except OSError as e:
        err = DriverLoadError(None, str(e))
    else:
        if proc.returncode == 0:
            ctx.logger.log("INFO", "driver loaded")
            return
        err = DriverLoadError(proc.returncode)
    ctx.logger.log("ERROR", str(err))
    ctx.console.failure_pause(TROUBLESHOOT)
    raise err


def unload_driver(ctx: RunContext) -> int | None:
    d = ctx.cfg.driver
    args = [str(ctx.artifact_path(d.loader)), str(ctx.artifact_path(d.target))]
    try:
        proc = _invoke(ctx, args)
    except OSError as e:
        ctx.logger.log("ERROR", f"driver unload failed: {e}")
        ctx.console.say(f" Driver unload failed: {e}")
        return None
    level = "INFO" if proc.returncode == 0 else "WARN"
    ctx.logger.log(level, f"driver unload exited with {proc.returncode}")
    return proc.returncode
