#!/usr/bin/env python3
"""Simulate a chat-mode pass through a library survey with random answers.

Drives ``FlowSession`` over one of the YAML surveys in ``surveys/``,
printing a rich audit log of every question asked, the iteration being
answered, the mock answer chosen and the available choices.  Finishes
with a submission-time validation of the collected answers.

Answers are randomised by default so each run explores a different path
through the question tree.  ``--invalid-rate`` occasionally sends a bad
answer first to exercise the re-ask path.

Usage::

    # Random run over the car survey
    python scripts/simulate_survey.py car_ownership

    # Reproducible run
    python scripts/simulate_survey.py household_pets --seed 42

    # List available surveys
    python scripts/simulate_survey.py --list
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

_REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from survey_flow.engine import FlowEngine  # noqa: E402
from survey_flow.library import SurveyLibrary  # noqa: E402
from survey_flow.models.session import QuestionStep  # noqa: E402
from survey_flow.prompt import PromptManager  # noqa: E402
from survey_flow.session import FlowSession  # noqa: E402
from survey_flow.validator import SubmissionValidator  # noqa: E402

# Pool of free-text answers
_FREE_TEXT_POOL = [
    "Not sure",
    "Toyota Corolla",
    "Rex",
    "Mostly on weekends",
    "Nothing else to add",
]

# Answers that fail the local checks for their type
_INVALID_ANSWERS = {
    "number": "lots",
    "yes-no": "maybe",
    "multiple-choice": "none of these",
    "multiple-choice-multi": "none of these",
}


def random_answer(step: QuestionStep, rng: random.Random) -> Any:
    """Pick a valid answer for the step's question."""
    q = step.question
    labels = [opt["text"] for opt in q.options or []]
    if q.type == "number":
        lo = int((q.constraints or {}).get("min") or 0)
        hi = int((q.constraints or {}).get("max") or 10)
        # Keep repetition counts small
        return rng.randint(lo, min(hi, lo + 4))
    if q.type == "multiple-choice-multi":
        return rng.sample(labels, rng.randint(1, len(labels)))
    if labels:
        return rng.choice(labels)
    return rng.choice(_FREE_TEXT_POOL)


async def run_simulation(name: str, seed: int, invalid_rate: float, console: Console) -> int:
    library = SurveyLibrary(_REPO_ROOT / "surveys")
    library.load()
    template = library.get(name)
    tree = library.get_tree(name)
    prompts = PromptManager()
    rng = random.Random(seed)

    console.rule(f"[bold]{template.title}")
    console.print(f"[dim]{len(tree)} questions, seed {seed}[/]")

    session = FlowSession(FlowEngine(tree))
    step = await session.start()
    if step.type == "question":
        console.print(f"\n[cyan]bot:[/] {prompts.render_bot_message(step, is_first=True)}")

    asked = 0
    while step.type == "question":
        q = step.question
        if q.type in _INVALID_ANSWERS and step.error is None and rng.random() < invalid_rate:
            answer: Any = _INVALID_ANSWERS[q.type]
        else:
            answer = random_answer(step, rng)
        suffix = f" [{step.iteration + 1}/{step.iteration_count}]" if q.is_iterative else ""
        console.print(f"[dim]Q:[/] {q.text} ({q.id}, {q.type}){suffix}")
        console.print(f"[dim]A:[/] {answer}")

        step = await session.submit(answer)
        asked += 1
        if step.type == "question":
            colour = "yellow" if step.error else "cyan"
            console.print(f"\n[{colour}]bot:[/] {prompts.render_bot_message(step)}")

    console.print(f"\n[green]Complete[/] after {asked} answers")

    # --- Submission-time validation ---
    report = await SubmissionValidator(tree).validate(session.answers)
    table = Table(title="Collected answers", show_lines=True)
    table.add_column("Question")
    table.add_column("Answer")
    for qid in report.visible_question_ids:
        table.add_row(tree.get(qid).text, str(session.answers.value(qid)))
    console.print(table)

    if report.ok:
        console.print("[green]Validation passed[/]")
        return 0
    for key, message in report.errors.items():
        console.print(f"[red]{key}[/]: {message}")
    return 1


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Simulate a chat-mode pass through a library survey.",
    )
    parser.add_argument("survey", nargs="?", default="car_ownership", help="Library survey name")
    parser.add_argument("--list", action="store_true", help="List library surveys and exit")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed (default: random)")
    parser.add_argument(
        "--invalid-rate",
        type=float,
        default=0.2,
        help="Probability of sending an invalid answer first (default: 0.2)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show SDK debug logs")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    console = Console()

    if args.list:
        library = SurveyLibrary(_REPO_ROOT / "surveys")
        library.load()
        for name in library.names():
            console.print(f"  {name:<20s} {library.get(name).title}")
        sys.exit(0)

    seed = args.seed if args.seed is not None else random.randrange(2**32)
    sys.exit(asyncio.run(run_simulation(args.survey, seed, args.invalid_rate, console)))


if __name__ == "__main__":
    main()
