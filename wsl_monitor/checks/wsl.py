from __future__ import annotations

import subprocess

from wsl_monitor.runner import DEFAULT_EXECUTABLE


def _decode(raw: bytes) -> str:
    # wsl.exe writes its own messages as UTF-16LE
    if b"\x00" in raw:
        return raw.decode("utf-16-le", "ignore")
    return raw.decode("utf-8", "ignore")


def is_wsl_available(executable: str = DEFAULT_EXECUTABLE) -> bool:
    try:
        p = subprocess.run(
            [executable, "--status"],
            check=False,
            capture_output=True,
        )
    except OSError:
        return False
    return p.returncode == 0


def list_distributions(executable: str = DEFAULT_EXECUTABLE) -> list[str]:
    try:
        p = subprocess.run(
            [executable, "--list", "--quiet"],
            check=False,
            capture_output=True,
        )
    except OSError:
        return []
    if p.returncode != 0:
        return []
    out: list[str] = []
    for line in _decode(p.stdout or b"").splitlines():
        s = line.strip().lstrip("\ufeff")
        if s:
            out.append(s)
    return out
