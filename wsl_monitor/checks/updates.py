from __future__ import annotations

UPGRADABLE_MARKER = "[upgradable from"


def _is_upgradable(line: str) -> bool:
    # "name/suite version arch [upgradable from: old]"
    return "/" in line and UPGRADABLE_MARKER in line


def count_upgradable(output: str) -> int:
    return sum(1 for line in output.splitlines() if _is_upgradable(line))


def extract_upgradable(output: str) -> list[tuple[str, str]]:
    pkgs: list[tuple[str, str]] = []
    for line in output.splitlines():
        if not _is_upgradable(line):
            continue
        name = line.split("/", 1)[0].strip()
        version = line.split(UPGRADABLE_MARKER, 1)[1].split("]", 1)[0].strip()
        pkgs.append((name, version.lstrip(":").strip()))
    return pkgs


def format_package_list(packages: list[tuple[str, str]]) -> str:
    if not packages:
        return "No packages found."
    return "\n".join(f"• {name}: {version}" for name, version in packages)


def check_updates(output: str) -> dict:
    pkgs = extract_upgradable(output)
    count = count_upgradable(output)
    status = "ok" if count == 0 else "warn"
    return {
        "status": status,
        "details": f"updates={count}",
        "data": {"backend": "apt", "count": count, "packages": [name for name, _ in pkgs][:50]},
    }
