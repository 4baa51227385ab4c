"""Question models for survey question trees.

Each question type maps to a specific answer widget and answer handling logic:

    - text: open-ended text input (semantically validated by the judgment service)
    - number: numeric input with optional min/max range
    - yes-no: pick "Yes" or "No" (implicit options, none stored)
    - multiple-choice: pick one option
    - multiple-choice-multi: pick one or more options (answer is a list)

Tree edges are stored once, as the ``parent_question_id`` back-reference on
each ``Question``.  ``QuestionNode`` is the nested authoring shape (YAML
files, builder payloads) carrying ``sub_questions``; the tree loader turns
containment into back-references and never keeps both.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from survey_flow.constants import CHOICE_TYPES, YES_NO_OPTIONS

QuestionType = Literal[
    "text",
    "number",
    "yes-no",
    "multiple-choice",
    "multiple-choice-multi",
]


# --- Options ---

class QuestionOption(BaseModel):
    """A selectable option with an id and display text."""

    id: str
    text: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v


def _normalise_options(raw: Any) -> Any:
    """Accept bare strings or id-less dicts; assign 1-based ids in order."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        return raw
    out = []
    for index, item in enumerate(raw, start=1):
        if isinstance(item, str):
            out.append({"id": str(index), "text": item})
        elif isinstance(item, dict) and "id" not in item:
            out.append({**item, "id": str(index)})
        else:
            out.append(item)
    return out


# --- Question ---

class Question(BaseModel):
    """A single node of the question arena.

    ``parent_question_id`` + ``trigger_condition_value`` make the question a
    conditional child: it is only eligible when the parent's answer matches
    the trigger (case-insensitively).

    ``is_iterative`` + ``iterative_source_question_id`` make it repeat once per
    unit of the numeric answer given to the source question.

    ``iterative_source_question_text`` is the legacy text-based linkage found
    in stored surveys; the tree loader resolves it to an id (it must match
    exactly one question) and clears it.
    """

    id: str
    text: str
    type: QuestionType
    options: List[QuestionOption] = []
    min_range: Optional[float] = None
    max_range: Optional[float] = None
    expected_answers: List[str] = []

    parent_question_id: Optional[str] = None
    trigger_condition_value: Optional[str] = None

    is_iterative: bool = False
    iterative_source_question_id: Optional[str] = None
    iterative_source_question_text: Optional[str] = None

    @field_validator(
        "id", "parent_question_id", "trigger_condition_value",
        "iterative_source_question_id", mode="before",
    )
    @classmethod
    def _scalar_to_str(cls, v: Any) -> Any:
        # YAML happily turns `id: 1` or `trigger_condition_value: 3` into ints
        if isinstance(v, bool):
            return "Yes" if v else "No"
        if isinstance(v, float) and v.is_integer():
            # `3.0` must compare equal to the answer 3
            return str(int(v))
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, v: Any) -> Any:
        return _normalise_options(v)

    @field_validator("expected_answers", mode="before")
    @classmethod
    def _expected_answers(cls, v: Any) -> Any:
        # Stored surveys keep expected answers as one comma-separated string
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @model_validator(mode="after")
    def _chk(self):
        if not self.text.strip():
            raise ValueError(f"question {self.id!r}: text must not be empty")
        if self.type in CHOICE_TYPES and not self.options:
            raise ValueError(f"question {self.id!r}: {self.type} requires options")
        if self.type not in CHOICE_TYPES and self.options:
            raise ValueError(f"question {self.id!r}: {self.type} must not carry options")
        if (
            self.min_range is not None
            and self.max_range is not None
            and self.min_range > self.max_range
        ):
            raise ValueError(f"question {self.id!r}: min_range must be <= max_range")
        if self.trigger_condition_value is not None and self.parent_question_id is None:
            raise ValueError(
                f"question {self.id!r}: trigger_condition_value requires parent_question_id"
            )
        if self.is_iterative and not (
            self.iterative_source_question_id or self.iterative_source_question_text
        ):
            raise ValueError(
                f"question {self.id!r}: iterative question needs a source question"
            )
        return self

    @property
    def is_conditional(self) -> bool:
        """True if visibility depends on the parent's answer matching a trigger."""
        return self.parent_question_id is not None and self.trigger_condition_value is not None

    @property
    def is_choice(self) -> bool:
        """True for types whose answer must match an option label."""
        return self.type in CHOICE_TYPES or self.type == "yes-no"

    @property
    def is_multi(self) -> bool:
        return self.type == "multiple-choice-multi"

    @property
    def choice_labels(self) -> list[str]:
        """Option texts a respondent may pick, in display order."""
        if self.type == "yes-no":
            return list(YES_NO_OPTIONS)
        return [opt.text for opt in self.options]


class QuestionNode(Question):
    """Nested authoring shape: a question together with its sub-questions."""

    sub_questions: List["QuestionNode"] = []

    @model_validator(mode="before")
    @classmethod
    def _inherit_parent(cls, data: Any) -> Any:
        """Give raw child dicts their parent id from containment.

        Children that declare a *different* parent are left alone so the
        tree loader can reject the divergence.
        """
        if not isinstance(data, dict) or data.get("id") is None:
            return data
        children = data.get("sub_questions")
        if not isinstance(children, list):
            return data
        parent_id = str(data["id"])
        patched = []
        for child in children:
            if isinstance(child, dict) and child.get("parent_question_id") is None:
                child = {**child, "parent_question_id": parent_id}
            patched.append(child)
        return {**data, "sub_questions": patched}


QuestionNode.model_rebuild()
