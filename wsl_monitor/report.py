from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from wsl_monitor.utils import write_json

log = logging.getLogger("wsl_monitor.report")

OUTPUT_FILE_NAME = ".wsl-monitor"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SEPARATOR = "-" * 40


def report_path(home: Path) -> Path:
    return Path(home).expanduser() / OUTPUT_FILE_NAME


def render_report(count: int, details: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    lines = [
        f"WSL Update Check - {now.strftime(TIMESTAMP_FORMAT)}\n",
        f"{SEPARATOR}\n",
        f"Upgradable packages: {count}\n",
        "\n",
    ]
    if count > 0:
        lines.append("Details:\n")
        lines.append(details)
    else:
        lines.append("Your system is up to date.\n")
    return "".join(lines)


def write_report(path: Path, count: int, details: str, now: datetime | None = None) -> None:
    """Overwrite ``path`` with the report for ``count`` upgradable packages.

    The text goes to a sibling ``.tmp`` file first and is then moved over the
    target. Errors creating the directory or writing the file propagate.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = render_report(count, details, now)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        f.write(text)
    tmp.replace(path)
    log.info("report_written path=%s count=%d", path, count)


def write_snapshot(path: Path, distribution: str | None, report: Path, record: dict, now: datetime | None = None) -> None:
    now = now or datetime.now()
    payload = {
        "meta": {
            "ts": now.astimezone().isoformat(),
            "distribution": distribution or "",
            "report": str(report),
        },
        "updates": record,
    }
    write_json(path, payload)
    log.info("snapshot_saved path=%s", path)
