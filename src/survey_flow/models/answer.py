"""Answer Store — the respondent's current answers keyed by question id.

Non-iterative questions hold a single ``value`` (scalar, or a list for
multi-select).  Iterative questions hold ``values``: one slot per repetition,
indexed 0..count-1, where a slot may stay ``None`` while the respondent is
still typing.

Wire shape used by ``snapshot()`` / ``from_payload()`` (API bodies, session
caches)::

    {
        "q_pets": 2,
        "q_colours": ["Red", "Blue"],
        "q_pet_name": {"is_iterative": true, "values": ["Rex", "Tom"]},
    }

Provenance timestamps are advisory and never consulted by the resolution
algorithm.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pydantic import BaseModel

from survey_flow.constants import HISTORY_SEPARATOR


def is_empty(value: Any) -> bool:
    """True for values that do not count as an answer (None, blank, [])."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def answer_to_text(value: Any) -> str:
    """Flatten an answer into the single string used in Q&A history."""
    if isinstance(value, (list, tuple)):
        return HISTORY_SEPARATOR.join(str(v) for v in value if not is_empty(v))
    if value is None:
        return ""
    return str(value)


class AnswerEntry(BaseModel):
    """One question's answer plus provenance."""

    value: Any = None
    # Per-iteration slots; None for non-iterative questions
    values: Optional[list[Any]] = None
    started_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None
    time_taken_seconds: Optional[float] = None

    @property
    def is_iterative(self) -> bool:
        return self.values is not None

    @property
    def raw(self) -> Any:
        """The value the evaluator sees: the scalar/list, or the slot list."""
        return self.values if self.values is not None else self.value

    def has_answer(self) -> bool:
        if self.values is not None:
            return any(not is_empty(v) for v in self.values)
        return not is_empty(self.value)


class AnswerStore:
    """Mutable mapping of question id -> ``AnswerEntry``.

    Mutated only by respondent input (``record``) and cleared on successful
    submission or rollback.
    """

    def __init__(self, entries: dict[str, AnswerEntry] | None = None) -> None:
        self._entries: dict[str, AnswerEntry] = dict(entries or {})

    # ------------------------------------------------------------------
    # Construction / serialisation
    # ------------------------------------------------------------------

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> AnswerStore:
        """Build a store from the wire shape described in the module docstring."""
        store = cls()
        for qid, raw in (payload or {}).items():
            if isinstance(raw, dict) and raw.get("is_iterative"):
                store._entries[str(qid)] = AnswerEntry(values=list(raw.get("values") or []))
            else:
                store._entries[str(qid)] = AnswerEntry(value=raw)
        return store

    def snapshot(self) -> dict[str, Any]:
        """Return the wire-shape dict (provenance omitted)."""
        out: dict[str, Any] = {}
        for qid, entry in self._entries.items():
            if entry.is_iterative:
                out[qid] = {"is_iterative": True, "values": list(entry.values)}
            else:
                out[qid] = entry.value
        return out

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def mark_started(self, qid: str, at: datetime | None = None) -> None:
        """Record when a question was first presented (kept on later calls)."""
        entry = self._entries.setdefault(qid, AnswerEntry())
        if entry.started_at is None:
            entry.started_at = at or datetime.now(timezone.utc)

    def record(
        self,
        qid: str,
        value: Any,
        *,
        iteration: int | None = None,
        at: datetime | None = None,
    ) -> AnswerEntry:
        """Store an answer; ``iteration`` targets one slot of an iterative answer."""
        now = at or datetime.now(timezone.utc)
        entry = self._entries.setdefault(qid, AnswerEntry())
        if iteration is None:
            entry.value = value
            entry.values = None
        else:
            if iteration < 0:
                raise ValueError(f"iteration must be >= 0, got {iteration}")
            slots = list(entry.values or [])
            if len(slots) <= iteration:
                slots.extend([None] * (iteration + 1 - len(slots)))
            slots[iteration] = value
            entry.values = slots
        entry.answered_at = now
        if entry.started_at is not None:
            entry.time_taken_seconds = max((now - entry.started_at).total_seconds(), 0.0)
        return entry

    def discard(self, qid: str) -> None:
        self._entries.pop(qid, None)

    def clear(self) -> None:
        self._entries.clear()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, qid: str) -> AnswerEntry | None:
        return self._entries.get(qid)

    def value(self, qid: str) -> Any:
        """Raw answer for ``qid`` (scalar, list, or iteration slots), or None."""
        entry = self._entries.get(qid)
        return entry.raw if entry is not None else None

    def iteration_value(self, qid: str, iteration: int) -> Any:
        entry = self._entries.get(qid)
        if entry is None or entry.values is None or iteration >= len(entry.values):
            return None
        return entry.values[iteration]

    def has_answer(self, qid: str) -> bool:
        entry = self._entries.get(qid)
        return entry is not None and entry.has_answer()

    def items(self) -> Iterator[tuple[str, AnswerEntry]]:
        return iter(self._entries.items())

    def __contains__(self, qid: object) -> bool:
        return qid in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<AnswerStore({len(self._entries)} answers)>"
