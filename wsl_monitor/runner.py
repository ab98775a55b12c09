from __future__ import annotations

import logging
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import IO, TextIO

log = logging.getLogger("wsl_monitor.runner")

DEFAULT_EXECUTABLE = "wsl"
SUDO_PREFIX = ("sudo", "-n")

PASSWORD_REQUIRED_MARKERS = ("sudo: a password is required",)
DISTRIBUTION_NOT_FOUND_MARKERS = (
    "WSL distribution name not found",
    "There is no distribution with the supplied name",
    "WSL_E_DISTRO_NOT_FOUND",
)


class ExecutionError(Exception):
    """A WSL command could not be run to a usable result."""


class CommandStartError(ExecutionError):
    pass


class CommandInterrupted(ExecutionError):
    pass


class PasswordRequiredError(ExecutionError):
    def __init__(self) -> None:
        super().__init__(
            "Passwordless sudo is not configured. "
            "Allow 'sudo -n apt' for your WSL user before running the monitor."
        )


class DistributionNotFoundError(ExecutionError):
    def __init__(self, distribution: str | None = None) -> None:
        self.distribution = distribution or None
        if self.distribution:
            msg = f"WSL distribution '{self.distribution}' not found."
        else:
            msg = "Default WSL distribution not found. Please make sure WSL is properly installed."
        super().__init__(msg)


@dataclass
class CommandResult:
    argv: list[str]
    output: str
    returncode: int


def build_command(distribution: str | None, command: str, executable: str = DEFAULT_EXECUTABLE) -> list[str]:
    argv = [executable]
    name = (distribution or "").strip()
    if name:
        argv += ["-d", name]
    argv += ["-e", *SUDO_PREFIX]
    # plain whitespace split, no quoting support
    argv += command.split()
    return argv


def classify_failure(output: str, distribution: str | None = None) -> ExecutionError | None:
    """Map the output of a failed command to a known error, or None for a soft failure."""
    if any(m in output for m in PASSWORD_REQUIRED_MARKERS):
        return PasswordRequiredError()
    if any(m in output for m in DISTRIBUTION_NOT_FOUND_MARKERS):
        return DistributionNotFoundError(distribution)
    return None


class _Capture:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lines: list[str] = []

    def add(self, line: str) -> None:
        if not line.endswith("\n"):
            line += "\n"
        with self._lock:
            self._lines.append(line)

    def text(self) -> str:
        with self._lock:
            return "".join(self._lines)


def _pump_stderr(stream: IO[str], capture: _Capture, sink: TextIO) -> None:
    for line in stream:
        capture.add(line)
        try:
            sink.write(line)
            sink.flush()
        except ValueError:
            # sink closed underneath us; keep capturing
            continue


def _watch_cancel(
    proc: subprocess.Popen, cancel: threading.Event, done: threading.Event, killed: threading.Event
) -> None:
    while not done.is_set():
        if cancel.wait(0.1):
            if proc.poll() is None:
                proc.kill()
                killed.set()
            return


def _terminate(proc: subprocess.Popen) -> None:
    if proc.poll() is None:
        proc.kill()
    proc.wait()


def run_command_result(
    distribution: str | None,
    command: str,
    *,
    executable: str = DEFAULT_EXECUTABLE,
    cancel: threading.Event | None = None,
    stderr: TextIO | None = None,
) -> CommandResult:
    """Run ``command`` inside WSL through non-interactive sudo.

    stdout and stderr are captured into one text blob while stderr is also
    mirrored live to ``stderr`` (``sys.stderr`` by default). Known failures
    (missing passwordless sudo, unknown distribution) raise; any other
    non-zero exit is only reported and the output is returned.
    """
    argv = build_command(distribution, command, executable)
    sink = stderr if stderr is not None else sys.stderr
    print(f"Executing: {' '.join(argv)}")
    log.info("command_start argv=%s", argv)

    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        log.error("command_start_failed argv=%s error=%s", argv, e)
        raise CommandStartError(f"Failed to start '{' '.join(argv)}': {e}") from e

    capture = _Capture()
    done = threading.Event()
    killed = threading.Event()
    pump = threading.Thread(target=_pump_stderr, args=(proc.stderr, capture, sink), daemon=True)
    watcher = None
    if cancel is not None:
        watcher = threading.Thread(target=_watch_cancel, args=(proc, cancel, done, killed), daemon=True)

    with proc:
        pump.start()
        if watcher is not None:
            watcher.start()
        try:
            for line in proc.stdout:
                capture.add(line)
            returncode = proc.wait()
            pump.join()
        except KeyboardInterrupt as e:
            _terminate(proc)
            pump.join()
            log.warning("command_interrupted argv=%s", argv)
            raise CommandInterrupted(f"Command '{command}' execution was interrupted") from e
        finally:
            done.set()
            if watcher is not None:
                watcher.join()

    output = capture.text()
    if killed.is_set():
        log.warning("command_cancelled argv=%s", argv)
        raise CommandInterrupted(f"Command '{command}' was cancelled")

    log.info("command_exit argv=%s code=%d chars=%d", argv, returncode, len(output))
    if returncode != 0:
        print(f"Warning: Command '{command}' exited with code {returncode}", file=sink)
        print(f"Output: {output}", file=sink)
        log.warning("command_failed command=%r code=%d", command, returncode)
        err = classify_failure(output, distribution)
        if err is not None:
            raise err

    return CommandResult(argv=argv, output=output, returncode=returncode)


def run_command(
    distribution: str | None,
    command: str,
    *,
    executable: str = DEFAULT_EXECUTABLE,
    cancel: threading.Event | None = None,
    stderr: TextIO | None = None,
) -> str:
    return run_command_result(
        distribution,
        command,
        executable=executable,
        cancel=cancel,
        stderr=stderr,
    ).output
