from __future__ import annotations


class LaunchError(Exception):
    """Base class for failures the supervisor knows how to report."""


class ConfigError(LaunchError):
    pass


class RunAborted(LaunchError):
    """Operator declined consent or closed a failure prompt."""


class FetchError(LaunchError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"download failed: {url} ({reason})")
        self.url = url
        self.reason = reason


class IntegrityError(LaunchError):
    """An artifact failed verification and was deleted; a re-run fetches it again."""

    def __init__(self, artifact: str, result: str):
        super().__init__(f"{artifact}: {result}")
        self.artifact = artifact
        self.result = result


class DriverLoadError(LaunchError):
    def __init__(self, returncode: int | None, detail: str = ""):
        msg = f"driver loader exited with {returncode}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.returncode = returncode
