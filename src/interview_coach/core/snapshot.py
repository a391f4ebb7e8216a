from __future__ import annotations

import json
import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Optional

from interview_coach.core.models import PageSnapshot

logger = logging.getLogger(__name__)

_PROBLEM_KEYS = ("title", "description", "topics", "hints", "test_cases")
_RUN_KEYS = ("last_input", "runtime_error", "runtime_exception")


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


def _read_text(path: Optional[Path]) -> str:
    if path is None or not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("could not read %s: %s", path, e)
        return ""


def _read_json(path: Optional[Path]) -> dict:
    raw = _read_text(path)
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("ignoring malformed JSON in %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


class StaticSnapshotSupplier:
    """Snapshot held in memory; surfaces push edits with `update`."""

    def __init__(self, snapshot: Optional[PageSnapshot] = None) -> None:
        self._snapshot = snapshot or PageSnapshot()

    def update(self, **values: str) -> None:
        allowed = {f.name for f in fields(PageSnapshot)}
        unknown = set(values) - allowed
        if unknown:
            raise ValueError(f"Unknown snapshot fields: {', '.join(sorted(unknown))}")
        self._snapshot = replace(self._snapshot, **{k: _as_text(v) for k, v in values.items()})

    def get_snapshot(self) -> PageSnapshot:
        return self._snapshot


class WorkspaceSnapshotSupplier:
    """
    Reads the practice workspace from disk on every call:
      - problem_path: JSON with title, description, topics, hints, test_cases
      - code_path: the solution being written
      - run_path (optional): JSON with last_input, runtime_error, runtime_exception
    """

    def __init__(self, problem_path: Path, code_path: Path, run_path: Optional[Path] = None) -> None:
        self.problem_path = Path(problem_path)
        self.code_path = Path(code_path)
        self.run_path = Path(run_path) if run_path else None

    def get_snapshot(self) -> PageSnapshot:
        problem = _read_json(self.problem_path)
        run = _read_json(self.run_path)
        values = {k: _as_text(problem.get(k)) for k in _PROBLEM_KEYS}
        values.update({k: _as_text(run.get(k)) for k in _RUN_KEYS})
        return PageSnapshot(code=_read_text(self.code_path), **values)
