from __future__ import annotations
from enum import Enum

from .context import RunContext

CAUTION = "You alone bear all consequences of using this tool!"


class Consent(str, Enum):
    PROCEED = "proceed"
    ABORT = "abort"


def read_record(ctx: RunContext) -> str | None:
    p = ctx.consent_file
    if not p.is_file():
        return None
    return p.read_text(encoding="utf-8", errors="replace").rstrip("\r\n")


def revoke(ctx: RunContext) -> bool:
    p = ctx.consent_file
    if p.exists():
        p.unlink()
        return True
    return False


def _notice(ctx: RunContext):
    ctx.console.banner("LAUNCH GATE")
    ctx.console.say(" This launcher fetches and starts third-party components,")
    ctx.console.say(" including a privileged driver.")
    if ctx.cfg.consent.docs_url:
        ctx.console.say(f" Read the documentation before use: {ctx.cfg.consent.docs_url}")
    ctx.console.say()
    for _ in range(3):
        ctx.console.say(f" {CAUTION}")
    ctx.console.say()


def ensure_consent(ctx: RunContext) -> Consent:
    phrase = ctx.cfg.consent.phrase
    record = read_record(ctx)
    if record is not None and record != phrase:
        ctx.logger.log("WARN", "consent record does not match the required phrase; discarding it")
        ctx.consent_file.unlink()
        record = None

    _notice(ctx)
    if record == phrase:
        ctx.console.say(" You have already accepted the above; continuing. You may quit at any time.")
        ctx.console.say(f" Delete '{ctx.consent_file.name}' to withdraw your acceptance.")
        ctx.logger.log("INFO", "consent record present")
        return Consent.PROCEED

    ctx.console.say(" If you have read the documentation and accept all consequences,")
    ctx.console.say(f" type: {phrase}")
    ctx.console.say(" Otherwise, close this program.")
    ctx.console.say()
    answer = ctx.console.ask("Input: ")
    if answer != phrase:
        ctx.console.say(" Acknowledgment not given. Exiting.")
        ctx.logger.log("INFO", "consent declined")
        return Consent.ABORT

    ctx.consent_file.write_text(phrase + "\n", encoding="utf-8")
    ctx.console.say(" Accepted. The launcher will continue; you may quit at any time.")
    ctx.logger.log("INFO", "consent recorded")
    return Consent.PROCEED
