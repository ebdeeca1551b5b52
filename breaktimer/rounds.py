from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable, List, Tuple

try:
    from .preferences import PreferenceStore
except ImportError:
    from preferences import PreferenceStore


ROUND_COUNT_KEY = "workRoundCount"


def parse_entry(entry: str) -> Tuple[str, int] | None:
    fields = str(entry).split(",")
    if len(fields) != 2:
        return None
    day = fields[0].strip()
    try:
        count = int(fields[1])
    except ValueError:
        return None
    return day, count


def format_entry(day: str, count: int) -> str:
    return f"{day},{count}"


def _entry_date(entry: str) -> str:
    return str(entry).split(",", 1)[0].strip()


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def bump_round_log(entries: List[str], today: str) -> List[str]:
    """Return a copy of the log with one more completed round for ``today``.

    Only the trailing entry is ever touched: it is incremented when it belongs
    to today, otherwise a fresh ``today,1`` entry is appended.
    """
    counters = list(entries)
    if not counters:
        return [format_entry(today, 1)]

    last_day = _entry_date(counters[-1])
    if last_day == today:
        parsed = parse_entry(counters[-1])
        count = parsed[1] + 1 if parsed else 1
        counters[-1] = format_entry(today, count)
        return counters
    if _is_iso_date(last_day) and last_day > today:
        logging.warning("round log ends after today (%s > %s), not recorded", last_day, today)
        return counters
    counters.append(format_entry(today, 1))
    return counters


def read_round_count(entries: List[str], today: str) -> int:
    if not entries:
        return 0
    parsed = parse_entry(entries[-1])
    if parsed is None or parsed[0] != today:
        return 0
    return parsed[1]


class RoundCounter:
    def __init__(
        self,
        prefs: PreferenceStore,
        key: str = ROUND_COUNT_KEY,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._prefs = prefs
        self._key = key
        self._today = today or date.today
        self._lock = threading.Lock()

    def _today_key(self) -> str:
        return self._today().isoformat()

    def increment(self) -> int:
        today = self._today_key()
        with self._lock:
            counters = bump_round_log(self._prefs.get_string_list(self._key), today)
            self._prefs.set_string_list(self._key, counters)
        count = read_round_count(counters, today)
        logging.info("work round recorded: %s -> %s", today, count)
        return count

    def count_today(self) -> int:
        return read_round_count(self._prefs.get_string_list(self._key), self._today_key())

    def history(self) -> List[Tuple[str, int]]:
        result: List[Tuple[str, int]] = []
        for entry in self._prefs.get_string_list(self._key):
            parsed = parse_entry(entry)
            if parsed:
                result.append(parsed)
        return result

    def format_summary(self, days: int = 7) -> str:
        lines = [f"Today: {self.count_today()} rounds"]
        recent = self.history()[-days:]
        if recent:
            lines.append("")
            lines.extend(f"{day}  {count}" for day, count in reversed(recent))
        return "\n".join(lines)
