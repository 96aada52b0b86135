"""
Day plan persistence.

Plans are stored as JSON documents keyed by day id; anchors live in a
separate document since they are shared by every day.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .models import Anchor, AnchorRole, DayPlan

logger = logging.getLogger(__name__)

DAY_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_day_id(day_id: str) -> str:
    """
    Raises:
        ValueError: If ``day_id`` is not a short slug usable as a file name
    """
    if not DAY_ID_PATTERN.match(day_id):
        raise ValueError(f"Invalid day id '{day_id}': use letters, digits, '-' or '_'")
    return day_id


class DayPlanStore(Protocol):
    """Durable storage for day plans and anchors."""

    def load(self, day_id: str) -> DayPlan:
        """Return the stored plan, or an empty one for an unknown day."""
        ...

    def save(self, plan: DayPlan) -> DayPlan:
        """Persist ``plan`` and return it with ``updated_at`` stamped."""
        ...

    def list_days(self) -> List[str]:
        ...

    def load_anchor(self, role: AnchorRole) -> Optional[Anchor]:
        ...

    def save_anchor(self, anchor: Anchor) -> None:
        ...

    def delete_anchor(self, role: AnchorRole) -> None:
        ...


def _stamp(plan: DayPlan) -> DayPlan:
    return plan.model_copy(update={"updated_at": datetime.now(timezone.utc)})


class InMemoryDayPlanStore:
    """Process-local store; keeps serialised copies so callers never share state."""

    def __init__(self):
        self._days: Dict[str, str] = {}
        self._anchors: Dict[AnchorRole, str] = {}

    def load(self, day_id: str) -> DayPlan:
        validate_day_id(day_id)
        raw = self._days.get(day_id)
        if raw is None:
            return DayPlan(day_id=day_id)
        return DayPlan.model_validate_json(raw)

    def save(self, plan: DayPlan) -> DayPlan:
        validate_day_id(plan.day_id)
        stamped = _stamp(plan)
        self._days[plan.day_id] = stamped.model_dump_json()
        return stamped

    def list_days(self) -> List[str]:
        return sorted(self._days)

    def raw(self, day_id: str) -> Optional[str]:
        """Serialised form of a stored plan."""
        return self._days.get(day_id)

    def load_anchor(self, role: AnchorRole) -> Optional[Anchor]:
        raw = self._anchors.get(role)
        return None if raw is None else Anchor.model_validate_json(raw)

    def save_anchor(self, anchor: Anchor) -> None:
        self._anchors[anchor.role] = anchor.model_dump_json()

    def delete_anchor(self, role: AnchorRole) -> None:
        self._anchors.pop(role, None)


class JsonDayPlanStore:
    """One JSON file per day under ``<directory>/days`` plus ``anchors.json``."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.days_dir = self.directory / "days"
        self.anchors_path = self.directory / "anchors.json"
        self.days_dir.mkdir(parents=True, exist_ok=True)

    def _day_path(self, day_id: str) -> Path:
        return self.days_dir / f"{validate_day_id(day_id)}.json"

    def _write_atomic(self, path: Path, text: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def load(self, day_id: str) -> DayPlan:
        path = self._day_path(day_id)
        if not path.exists():
            return DayPlan(day_id=day_id)
        return DayPlan.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, plan: DayPlan) -> DayPlan:
        stamped = _stamp(plan)
        self._write_atomic(self._day_path(plan.day_id), stamped.model_dump_json(indent=2))
        logger.debug("Saved day %s (%d stops)", plan.day_id, len(plan.stops))
        return stamped

    def list_days(self) -> List[str]:
        return sorted(path.stem for path in self.days_dir.glob("*.json"))

    def _read_anchors(self) -> Dict[str, dict]:
        if not self.anchors_path.exists():
            return {}
        with self.anchors_path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def load_anchor(self, role: AnchorRole) -> Optional[Anchor]:
        payload = self._read_anchors().get(role.value)
        return None if payload is None else Anchor.model_validate(payload)

    def save_anchor(self, anchor: Anchor) -> None:
        anchors = self._read_anchors()
        anchors[anchor.role.value] = anchor.model_dump(mode="json")
        self._write_atomic(self.anchors_path, json.dumps(anchors, indent=2))

    def delete_anchor(self, role: AnchorRole) -> None:
        anchors = self._read_anchors()
        if anchors.pop(role.value, None) is not None:
            self._write_atomic(self.anchors_path, json.dumps(anchors, indent=2))
