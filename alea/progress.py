# alea/progress.py
from typing import Dict, Iterable, List


class ProgressLocked(Exception):
    """Raised when a module is opened before its predecessor is complete."""

    def __init__(self, day: int, blocking_day: int, blocking_title: str):
        super().__init__(
            f"You must complete 'Day {blocking_day}: {blocking_title}' before starting this module."
        )
        self.day = day
        self.blocking_day = blocking_day
        self.blocking_title = blocking_title


def module_day(module: Dict) -> int:
    return int(module.get("day") or module["id"])


def sort_modules(modules: Iterable[Dict]) -> List[Dict]:
    return sorted(modules, key=module_day)


def check_unlocked(modules: Iterable[Dict], day: int):
    """Day 1 is always open; day N needs day N-1 completed."""
    if day <= 1:
        return
    by_day = {module_day(m): m for m in modules}
    previous = by_day.get(day - 1)
    if previous is None or not previous.get("isCompleted"):
        title = previous.get("title", "") if previous else "missing module"
        raise ProgressLocked(day, day - 1, title)


def progress_percent(modules: Iterable[Dict]) -> float:
    modules = list(modules)
    if not modules:
        return 0.0
    completed = sum(1 for m in modules if m.get("isCompleted"))
    return completed / len(modules) * 100
