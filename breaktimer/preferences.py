from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, List


class PreferenceStore:
    """Process-wide key/value preferences persisted as a JSON file."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._load()

    @property
    def path(self) -> str:
        return self._path

    def _load(self) -> None:
        try:
            if os.path.exists(self._path):
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._data = data if isinstance(data, dict) else {}
            logging.info("preferences loaded: %s", self._path)
        except Exception as exc:
            logging.exception("preferences read failed: %s", exc)
            self._data = {}

    def _save(self) -> None:
        try:
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
        except Exception as exc:
            logging.exception("preferences write failed: %s", exc)

    def get_int(self, key: str, fallback: int = 0) -> int:
        with self._lock:
            value = self._data.get(key)
        if value is None or isinstance(value, bool):
            return fallback
        try:
            return int(value)
        except (TypeError, ValueError):
            return fallback

    def set_int(self, key: str, value: int) -> None:
        with self._lock:
            self._data[key] = int(value)
            self._save()

    def get_string_list(self, key: str) -> List[str]:
        with self._lock:
            value = self._data.get(key)
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    def set_string_list(self, key: str, values: List[str]) -> None:
        with self._lock:
            self._data[key] = [str(item) for item in values]
            self._save()
