from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from datetime import datetime
from pathlib import Path

from wsl_monitor.checks.updates import check_updates, count_upgradable, extract_upgradable, format_package_list
from wsl_monitor.checks.wsl import is_wsl_available, list_distributions
from wsl_monitor.report import report_path, write_report, write_snapshot
from wsl_monitor.runner import (
    DEFAULT_EXECUTABLE,
    CommandStartError,
    DistributionNotFoundError,
    ExecutionError,
    run_command,
)
from wsl_monitor.utils import default_config_path, find_root, init_env, load_config, resolve_path, section

log = logging.getLogger("wsl_monitor.agent")

UPDATE_COMMAND = "apt update"
LIST_COMMAND = "apt list --upgradable"


def check_for_updates(
    distribution: str | None,
    output_path: Path,
    *,
    executable: str = DEFAULT_EXECUTABLE,
    cancel: threading.Event | None = None,
    run=run_command,
    now: datetime | None = None,
) -> tuple[dict, str]:
    """Refresh the package index, list upgradable packages and write the report.

    Returns the update check record and the raw ``apt list`` output. Any
    ExecutionError from either command aborts before the report is written.
    """
    run(distribution, UPDATE_COMMAND, executable=executable, cancel=cancel)
    output = run(distribution, LIST_COMMAND, executable=executable, cancel=cancel)
    count = count_upgradable(output)
    write_report(output_path, count, output, now)
    return check_updates(output), output


def _configure_logging(log_file: Path | None) -> None:
    if log_file is None:
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[logging.FileHandler(log_file, encoding="utf-8", delay=True)],
    )


def _print_hints(err: ExecutionError, executable: str) -> None:
    if isinstance(err, DistributionNotFoundError):
        names = list_distributions(executable)
        if names:
            print(f"Available distributions: {', '.join(names)}", file=sys.stderr)
    elif isinstance(err, CommandStartError) and not is_wsl_available(executable):
        print("WSL does not appear to be installed or enabled.", file=sys.stderr)


def run(config_path: str, distribution: str | None = None) -> int:
    cfg_path = Path(config_path).expanduser().resolve()
    config = load_config(cfg_path)
    init_env(cfg_path)

    root = find_root(cfg_path)
    paths = section(config, "paths")
    wsl = section(config, "wsl")

    executable = str(wsl.get("executable") or DEFAULT_EXECUTABLE)
    if distribution is None:
        distribution = str(wsl.get("distribution") or "").strip() or None

    home_raw = (os.getenv("WSL_MONITOR_HOME") or "").strip() or str(paths.get("home") or "~")
    output_path = report_path(resolve_path(root, home_raw))
    # log and snapshot files are opt-in; the report is the only default output
    log_raw = str(paths.get("log_file") or "").strip()
    log_file = resolve_path(root, log_raw) if log_raw else None
    state_raw = str(paths.get("state_file") or "").strip()
    state_file = resolve_path(root, state_raw) if state_raw else None
    strict = bool(config.get("strict_exit_code", False))

    _configure_logging(log_file)
    log.info("run_start root=%s distribution=%s output=%s", root, distribution or "<default>", output_path)

    print("Starting WSL Monitor")
    print(f"Results will be written to: {output_path}")

    try:
        record, output = check_for_updates(distribution, output_path, executable=executable)
    except ExecutionError as e:
        print(f"Error checking for updates: {e}", file=sys.stderr)
        log.error("update_check_failed error=%s", e)
        _print_hints(e, executable)
        return 1 if strict else 0
    except OSError as e:
        print(f"Error writing results to {output_path}: {e}", file=sys.stderr)
        log.error("report_write_failed path=%s error=%s", output_path, e)
        return 1 if strict else 0

    if state_file is not None:
        try:
            write_snapshot(state_file, distribution, output_path, record)
        except OSError as e:
            log.warning("snapshot_failed path=%s error=%s", state_file, e)

    count = record["data"]["count"]
    print(f"WSL update check completed. Found {count} upgradable packages.")
    if count:
        print(format_package_list(extract_upgradable(output)))
    log.info("run_done status=%s details=%s", record["status"], record["details"])
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="wsl-monitor",
        description="Check a WSL distribution for package updates and write ~/.wsl-monitor",
    )
    parser.add_argument("distribution", nargs="?", default=None, help="WSL distribution name (default: WSL default)")
    args = parser.parse_args(argv)
    return run(str(default_config_path()), args.distribution)


if __name__ == "__main__":
    raise SystemExit(main())
