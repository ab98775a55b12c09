from wsl_monitor.checks.updates import check_updates, count_upgradable, extract_upgradable, format_package_list
from wsl_monitor.checks.wsl import is_wsl_available, list_distributions

__all__ = [
    "check_updates",
    "count_upgradable",
    "extract_upgradable",
    "format_package_list",
    "is_wsl_available",
    "list_distributions",
]
