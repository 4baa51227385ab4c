"""Exception taxonomy for the survey flow SDK.

  - StructuralError: the question tree is malformed (dangling or cyclic
    references).  Fatal for the tree, raised at load time.
  - FlowBusyError: an answer was submitted while the previous one for the
    same session is still being validated.
  - ExternalServiceFault: a generation/judgment adapter failed.  Adapters
    raise it; the guards in ``survey_flow.judgment`` catch it (and any other
    exception), log it, and fall back to the permissive default.

Per-question validation failures are never raised: they travel as messages
in ``ValidationReport.errors`` and ``QuestionStep.error``.

``StructuralError`` and ``FlowBusyError`` subclass ``ValueError`` so the
server's global ``ValueError`` handler maps them to HTTP errors.
"""


class StructuralError(ValueError):
    """The question tree references a question that does not exist, or is cyclic."""


class FlowBusyError(ValueError):
    """A previous answer for this session is still in flight."""

    def __init__(self, question_id: str | None) -> None:
        super().__init__(
            f"Answer already in progress for question {question_id!r}"
        )
        self.question_id = question_id


class ExternalServiceFault(Exception):
    """A generation or judgment service call failed or returned garbage."""

    def __init__(self, service: str, detail: str = "") -> None:
        super().__init__(f"{service} failed: {detail}" if detail else f"{service} failed")
        self.service = service
        self.detail = detail
