import yaml
from pathlib import Path
from typing import Any, Iterator, Optional


def find_repo_root(start: Optional[Path] = None) -> Path:
    """
    Walk upwards to the directory holding pyproject.toml and the surveys/ library.
    Falls back to the working directory when run from an unusual location.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() and (parent / "surveys").is_dir():
            return parent

    return Path.cwd()


def load_survey_yaml(survey_dir: Path, name: str) -> dict[str, Any]:
    path = survey_dir / f"{name}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Missing survey file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def iter_question_ids(nodes: list[dict[str, Any]]) -> Iterator[str]:
    """Yield ids of an authored question list depth-first, sub-questions included."""
    for node in nodes:
        yield node["id"]
        yield from iter_question_ids(node.get("sub_questions", []))
