"""SurveyLibrary — loads ready-made survey templates from ``surveys/*.yaml``.

Each file holds one survey in the nested authoring format::

    title: Car ownership
    description: Short household car survey
    questions:
      - id: q_car
        text: Do you own a car?
        type: yes-no
        sub_questions:
          - id: q_model
            text: What is the model of your car?
            type: text
            trigger_condition_value: "Yes"

The library is loaded once at startup; every template is validated by
building its ``QuestionTree`` so a malformed file fails loudly.

Usage::

    library = SurveyLibrary()       # defaults to surveys/ at the repo root
    library.load()
    tree = library.get_tree("car_ownership")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel

from survey_flow.models.question import QuestionNode
from survey_flow.tree import QuestionTree

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class SurveyTemplate(BaseModel):
    """One library survey; ``name`` is the file stem."""

    name: str
    title: str
    description: str = ""
    has_personalized_questions: bool = False
    questions: list[QuestionNode]


# ---------------------------------------------------------------------------
# SurveyLibrary
# ---------------------------------------------------------------------------

class SurveyLibrary:
    """Loads all ``*.yaml`` survey templates from a directory."""

    def __init__(self, survey_dir: str | Path | None = None) -> None:
        if survey_dir is None:
            survey_dir = find_repo_root() / "surveys"
        self._base = Path(survey_dir)

        # Populated by load()
        self.templates: dict[str, SurveyTemplate] = {}
        self._trees: dict[str, QuestionTree] = {}

    def load(self) -> None:
        """Parse and validate every template.

        Raises ``FileNotFoundError`` if the directory is missing and
        ``StructuralError`` / ``pydantic.ValidationError`` for bad files.
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing survey directory: {self._base}")

        for path in sorted(self._base.glob("*.yaml")):
            raw = load_yaml(path) or {}
            template = SurveyTemplate(name=path.stem, **raw)
            self._trees[template.name] = QuestionTree.from_nodes(template.questions)
            self.templates[template.name] = template

        logger.info("SurveyLibrary loaded: %d surveys from %s", len(self.templates), self._base)

    def names(self) -> list[str]:
        return sorted(self.templates)

    def get(self, name: str) -> SurveyTemplate:
        """Return a template by name.  Raises ``KeyError`` if missing."""
        try:
            return self.templates[name]
        except KeyError:
            raise KeyError(f"Library survey {name!r} not found") from None

    def get_tree(self, name: str) -> QuestionTree:
        self.get(name)
        return self._trees[name]
