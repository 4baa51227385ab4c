"""Local (no external call) answer checks shared by the flow engine and the validator.

``check_value`` returns ``(canonical, error)``: exactly one of the two is
meaningful.  Canonical values are what gets stored:

  - number: ``int`` when integral, otherwise ``float``
  - yes-no / multiple-choice: the matching option text
  - multiple-choice-multi: list of matching option texts, input order, no repeats
  - text: the stripped string
"""

from __future__ import annotations

import math
from typing import Any

from survey_flow.constants import (
    INVALID_NUMBER_MESSAGE,
    INVALID_OPTION_MESSAGE,
    REQUIRED_MESSAGE,
)
from survey_flow.models.answer import is_empty
from survey_flow.models.question import Question


def _fmt(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else str(x)


def parse_number(value: Any) -> float | None:
    """Parse a finite number from an int/float/str answer; ``None`` if impossible."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        try:
            num = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return num if math.isfinite(num) else None


def range_message(question: Question) -> str:
    lo, hi = question.min_range, question.max_range
    if lo is not None and hi is not None:
        return f"Please enter a number between {_fmt(lo)} and {_fmt(hi)}."
    if lo is not None:
        return f"Please enter a number of at least {_fmt(lo)}."
    return f"Please enter a number of at most {_fmt(hi)}."


def match_option(question: Question, value: Any) -> str | None:
    """Map a reply onto an option label (case-insensitive label, then option id)."""
    text = str(value).strip().lower()
    if not text:
        return None
    for label in question.choice_labels:
        if label.strip().lower() == text:
            return label
    for opt in question.options:
        if opt.id.strip().lower() == text:
            return opt.text
    return None


def _check_multi(question: Question, value: Any) -> tuple[Any, str | None]:
    if isinstance(value, str):
        # A label may itself contain a comma; only split when the whole reply is not a label
        whole = match_option(question, value)
        parts = [whole] if whole is not None else [p for p in value.split(",") if p.strip()]
    elif isinstance(value, (list, tuple)):
        parts = [p for p in value if not is_empty(p)]
    else:
        parts = [value]
    if not parts:
        return None, REQUIRED_MESSAGE

    picked: list[str] = []
    for part in parts:
        label = match_option(question, part)
        if label is None:
            return None, INVALID_OPTION_MESSAGE
        if label not in picked:
            picked.append(label)
    return picked, None


def check_value(question: Question, value: Any) -> tuple[Any, str | None]:
    """Presence + type/range + option-membership check for one answer slot."""
    if is_empty(value):
        return None, REQUIRED_MESSAGE

    if question.type == "number":
        num = parse_number(value)
        if num is None:
            return None, INVALID_NUMBER_MESSAGE
        if (question.min_range is not None and num < question.min_range) or (
            question.max_range is not None and num > question.max_range
        ):
            return None, range_message(question)
        return (int(num) if num.is_integer() else num), None

    if question.is_multi:
        return _check_multi(question, value)

    if question.is_choice:
        if isinstance(value, (list, tuple)):
            if len(value) != 1:
                return None, INVALID_OPTION_MESSAGE
            value = value[0]
        label = match_option(question, value)
        if label is None:
            return None, INVALID_OPTION_MESSAGE
        return label, None

    # text
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if not is_empty(v))
    return str(value).strip(), None
