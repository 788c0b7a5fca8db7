from __future__ import annotations
import os
import subprocess
import sys


def is_elevated() -> bool:
    """Return True if running with administrative privileges."""
    if os.name == "nt":
        try:
            import ctypes  # windows admin API
            windll = getattr(ctypes, "windll", None)
            if windll is None:
                return False
            return bool(windll.shell32.IsUserAnAdmin())
        except Exception:
            return False
    return os.geteuid() == 0


def request_elevation(argv: list[str]) -> bool:
    """Ask the OS to start this launcher again with admin rights.

    True means an elevated instance was requested and the caller should exit.
    """
    if os.name != "nt":
        return False
    try:
        import ctypes
        windll = getattr(ctypes, "windll", None)
        if windll is None:
            return False
        # ShellExecuteW returns a value > 32 on success
        rc = windll.shell32.ShellExecuteW(
            None, "runas", sys.executable, subprocess.list2cmdline(argv), os.getcwd(), 1
        )
        return int(rc) > 32
    except Exception:
        return False
