from __future__ import annotations

import io
import subprocess
import threading

import pytest

from wsl_monitor import runner

LIST_OUTPUT = (
    "Listing...\n"
    "libc6/stable-security 2.31-13+deb11u6 amd64 [upgradable from: 2.31-13+deb11u5]\n"
    "libssl1.1/stable-security 1.1.1n-0+deb11u5 amd64 [upgradable from: 1.1.1n-0+deb11u4]\n"
)


class FakeProcess:
    def __init__(self, argv, stdout="", stderr="", returncode=0, interrupt_wait=False, hang=False, after_wait=None):
        self.args = argv
        self.stdout = io.StringIO(stdout)
        self.stderr = io.StringIO(stderr)
        self.returncode = None
        self.killed = False
        self._rc = returncode
        self._interrupt_wait = interrupt_wait
        self._hang = hang
        self._after_wait = after_wait
        self._killed = threading.Event()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stdout.close()
        self.stderr.close()
        return False

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self._interrupt_wait:
            self._interrupt_wait = False
            raise KeyboardInterrupt
        if self._hang:
            self._killed.wait(5)
        self.returncode = -9 if self.killed else self._rc
        if self._after_wait is not None:
            self._after_wait()
        return self.returncode

    def kill(self):
        self.killed = True
        self._killed.set()


class FakeWsl:
    """Stands in for subprocess.Popen; each spawn consumes the next queued script."""

    def __init__(self):
        self.scripts: list[dict] = []
        self.procs: list[FakeProcess] = []

    def queue(self, **script) -> "FakeWsl":
        self.scripts.append(script)
        return self

    @property
    def argvs(self) -> list[list[str]]:
        return [p.args for p in self.procs]

    def __call__(self, argv, **kwargs):
        script = self.scripts.pop(0) if self.scripts else {}
        err = script.pop("start_error", None)
        if err is not None:
            raise err
        proc = FakeProcess(argv, **script)
        self.procs.append(proc)
        return proc


@pytest.fixture
def fake_wsl(monkeypatch) -> FakeWsl:
    fake = FakeWsl()
    monkeypatch.setattr(runner.subprocess, "Popen", fake)
    return fake


@pytest.fixture
def fake_run(monkeypatch):
    """Patch subprocess.run for the WSL helper checks."""
    calls: list[list[str]] = []
    results: dict[str, subprocess.CompletedProcess] = {}

    def _run(argv, **kwargs):
        calls.append(list(argv))
        key = argv[1] if len(argv) > 1 else ""
        if key in results:
            return results[key]
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(subprocess, "run", _run)
    _run.calls = calls
    _run.results = results
    return _run


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A project root with a config that points home at a scratch directory."""
    root = tmp_path / "project"
    (root / "config").mkdir(parents=True)
    home = tmp_path / "home"
    cfg = root / "config" / "config.yml"
    cfg.write_text(
        "wsl:\n"
        "  executable: wsl\n"
        "  distribution: \"\"\n"
        "paths:\n"
        f"  home: {home}\n"
        "  log_file: ./var/wsl-monitor/wsl-monitor.log\n"
        "  state_file: ./var/wsl-monitor/latest.json\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("WSL_MONITOR_ROOT", str(root))
    monkeypatch.delenv("WSL_MONITOR_HOME", raising=False)
    monkeypatch.delenv("WSL_MONITOR_CONFIG", raising=False)
    return {"root": root, "config": cfg, "home": home}
