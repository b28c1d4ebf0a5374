"""
Shared region — the JSON document exchanged with the enforcement process.

Layout (top-level keys)
-----------------------
  goals                 {app: {base_limit, pending_limit, effective_limit,
                               is_blocked, restriction, block_window,
                               extension_minutes, session}}      written here
  daily_blocked_status  {"YYYY-MM-DD": bool}                     written here
  health_history        {"YYYY-MM-DD": {score, mood}}            written here
  app_usage             {"YYYY-MM-DD": {app: minutes}}           read here
  daily_screen_time     {"YYYY-MM-DD": minutes}                  read here
  daily_puzzles         {"YYYY-MM-DD": count}                    read here

Last writer wins; there is no locking across the process boundary.
Writes go to a temp file that is renamed over the document, so a reader
sees the old or the new version, never half of one. Reads tolerate a
missing, empty or corrupt file by returning {}. Absent or zero usage is
reported as None ("no data yet"), never as 0.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Sections owned by the ledger; everything else belongs to the enforcement side.
LEDGER_SECTIONS = ("goals", "daily_blocked_status", "health_history")


class SharedRegion:
    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    # --- raw document -------------------------------------------------------

    def read(self) -> dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Shared region %s unreadable (%s); treating as empty", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, sort_keys=True, default=str)
        os.replace(tmp_path, self.path)

    def publish(self, **sections: Any) -> None:
        """Replace the ledger-owned sections, keeping whatever else is there."""
        unknown = set(sections) - set(LEDGER_SECTIONS)
        if unknown:
            raise ValueError(f"Not ledger-owned sections: {sorted(unknown)}")
        data = self.read()
        data.update(sections)
        self.write(data)

    # --- enforcement-side values -------------------------------------------

    def _section(self, name: str) -> dict[str, Any]:
        section = self.read().get(name)
        return section if isinstance(section, dict) else {}

    @staticmethod
    def _positive_int(value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        try:
            number = int(value)
        except (TypeError, ValueError, OverflowError):
            return None
        return number if number > 0 else None

    def app_usage(self, day: date) -> dict[str, int]:
        """Per-app minutes for `day`; apps with no data are left out."""
        raw = self._section("app_usage").get(day.isoformat())
        if not isinstance(raw, dict):
            return {}
        usage: dict[str, int] = {}
        for app, value in raw.items():
            minutes = self._positive_int(value)
            if minutes is not None:
                usage[str(app)] = minutes
        return usage

    def screen_time(self, day: date) -> Optional[int]:
        return self._positive_int(self._section("daily_screen_time").get(day.isoformat()))

    def puzzles_solved(self, day: date) -> Optional[int]:
        value = self._section("daily_puzzles").get(day.isoformat())
        if isinstance(value, bool):
            return None
        try:
            count = int(value)
        except (TypeError, ValueError, OverflowError):
            return None
        return max(0, count)
