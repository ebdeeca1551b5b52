from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict

try:
    from .preferences import PreferenceStore
except ImportError:
    from preferences import PreferenceStore


WORK_MINUTES_KEY = "workMinutes"
BREAK_MINUTES_KEY = "breakMinutes"
FORCE_FOCUS_KEY = "forceWindowFocusDuration"

DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5
DEFAULT_FORCE_FOCUS_SECONDS = 60

MIN_VALUE = 0
MAX_VALUE = 999


class SettingsValidationError(ValueError):
    def __init__(self, message: str, errors: Dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


def validate_range(value: Any, low: int = MIN_VALUE, high: int = MAX_VALUE) -> int:
    if isinstance(value, bool):
        raise SettingsValidationError("not a valid number")
    if isinstance(value, int):
        number = value
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            raise SettingsValidationError("not a valid number") from None
    if number < low:
        raise SettingsValidationError(f"must be at least {low}")
    if number > high:
        raise SettingsValidationError(f"must be at most {high}")
    return number


def make_range_validator(low: int = MIN_VALUE, high: int = MAX_VALUE) -> Callable[[Any], int]:
    def validator(value: Any) -> int:
        return validate_range(value, low, high)

    return validator


@dataclass
class Pref:
    work_minutes: int = DEFAULT_WORK_MINUTES
    break_minutes: int = DEFAULT_BREAK_MINUTES
    force_window_focus_duration: int = DEFAULT_FORCE_FOCUS_SECONDS

    @property
    def work_seconds(self) -> int:
        return self.work_minutes * 60

    @property
    def break_seconds(self) -> int:
        return self.break_minutes * 60


def load(prefs: PreferenceStore) -> Pref:
    return Pref(
        work_minutes=prefs.get_int(WORK_MINUTES_KEY, DEFAULT_WORK_MINUTES),
        break_minutes=prefs.get_int(BREAK_MINUTES_KEY, DEFAULT_BREAK_MINUTES),
        force_window_focus_duration=prefs.get_int(FORCE_FOCUS_KEY, DEFAULT_FORCE_FOCUS_SECONDS),
    )


def save(prefs: PreferenceStore, pref: Pref) -> None:
    prefs.set_int(WORK_MINUTES_KEY, pref.work_minutes)
    prefs.set_int(BREAK_MINUTES_KEY, pref.break_minutes)
    prefs.set_int(FORCE_FOCUS_KEY, pref.force_window_focus_duration)


FIELDS = ("work_minutes", "break_minutes", "force_window_focus_duration")


class SettingsModel:
    def __init__(self, prefs: PreferenceStore) -> None:
        self._prefs = prefs
        self._validator = make_range_validator(MIN_VALUE, MAX_VALUE)
        self._on_submit: Callable[[Pref], None] | None = None

    def load(self) -> Pref:
        return load(self._prefs)

    def set_on_submit(self, callback: Callable[[Pref], None]) -> None:
        self._on_submit = callback

    def validate(self, values: Dict[str, Any]) -> Pref:
        current = self.load()
        accepted: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        for field in FIELDS:
            raw = values.get(field, getattr(current, field))
            try:
                accepted[field] = self._validator(raw)
            except SettingsValidationError as exc:
                errors[field] = str(exc)
        if errors:
            raise SettingsValidationError("invalid settings", errors)
        return Pref(**accepted)

    def submit(self, values: Dict[str, Any]) -> Pref:
        try:
            pref = self.validate(values)
        except SettingsValidationError as exc:
            logging.warning("settings rejected: %s", exc.errors)
            raise
        save(self._prefs, pref)
        logging.info("settings saved: %s", pref)
        if self._on_submit:
            self._on_submit(pref)
        return pref
