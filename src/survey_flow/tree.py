"""QuestionTree — id-addressed arena of questions with parent back-references.

The tree is built once per survey and is immutable for the lifetime of a
session.  Parent/child edges are stored only as ``parent_question_id`` on
each question; the child index and the depth-first document order are
derived at load time.

Usage::

    tree = QuestionTree.from_dicts(yaml_questions)   # nested or flat dicts
    tree.order                      # ids in document order
    tree.children("q_pets")         # direct children, input order
    tree.following("q_pets")        # everything after q_pets' subtree

Load-time validation raises ``StructuralError`` for duplicate ids, dangling
parent or iterative-source references, parent cycles, visibility
dependency cycles, and legacy text-based source links that do not resolve
to exactly one question.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from survey_flow.exceptions import StructuralError
from survey_flow.models.question import Question, QuestionNode

logger = logging.getLogger(__name__)


def _flatten(nodes: Iterable[QuestionNode], parent_id: str | None = None) -> list[Question]:
    """Turn nested ``sub_questions`` containment into parent back-references."""
    flat: list[Question] = []
    for node in nodes:
        if parent_id is not None and node.parent_question_id != parent_id:
            raise StructuralError(
                f"question {node.id!r} is nested under {parent_id!r} "
                f"but declares parent {node.parent_question_id!r}"
            )
        data = node.model_dump(exclude={"sub_questions"})
        flat.append(Question(**data))
        flat.extend(_flatten(node.sub_questions, node.id))
    return flat


class QuestionTree:
    """Validated question arena with document-order traversal helpers."""

    def __init__(self, questions: Iterable[Question]) -> None:
        items = list(questions)

        # --- Index by id ---
        self._questions: dict[str, Question] = {}
        for q in items:
            if q.id in self._questions:
                raise StructuralError(f"duplicate question id {q.id!r}")
            self._questions[q.id] = q

        # --- Parent references ---
        for q in items:
            if q.parent_question_id is None:
                continue
            if q.parent_question_id not in self._questions:
                raise StructuralError(
                    f"question {q.id!r} references missing parent {q.parent_question_id!r}"
                )
            if q.parent_question_id == q.id:
                raise StructuralError(f"question {q.id!r} is its own parent")

        # Child index; siblings keep input order
        self._children: dict[str, list[str]] = {qid: [] for qid in self._questions}
        roots: list[str] = []
        for q in items:
            if q.parent_question_id is None:
                roots.append(q.id)
            else:
                self._children[q.parent_question_id].append(q.id)

        # --- Document order (DFS, parent before children) ---
        self._order: list[str] = []
        self._depth: dict[str, int] = {}
        stack: list[tuple[str, int]] = [(qid, 0) for qid in reversed(roots)]
        while stack:
            qid, depth = stack.pop()
            self._order.append(qid)
            self._depth[qid] = depth
            for child in reversed(self._children[qid]):
                stack.append((child, depth + 1))

        # Questions never reached from a root sit on a parent cycle
        if len(self._order) != len(self._questions):
            unreached = sorted(set(self._questions) - set(self._order))
            raise StructuralError(f"parent cycle among questions {unreached}")

        self._position: dict[str, int] = {qid: i for i, qid in enumerate(self._order)}

        # --- Iterative sources ---
        self._resolve_text_sources()
        for q in self._questions.values():
            src = q.iterative_source_question_id
            if not q.is_iterative or src is None:
                continue
            if src not in self._questions:
                raise StructuralError(
                    f"question {q.id!r} references missing iterative source {src!r}"
                )
            if src == q.id:
                raise StructuralError(f"question {q.id!r} is its own iterative source")
            if self._position[src] > self._position[q.id]:
                logger.warning(
                    "Iterative source %s comes after %s in document order; "
                    "chat mode cannot reach it before the dependent question",
                    src, q.id,
                )
        self._check_dependency_cycles()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_nodes(cls, nodes: Iterable[QuestionNode]) -> QuestionTree:
        """Build from the nested authoring shape."""
        return cls(_flatten(nodes))

    @classmethod
    def from_dicts(cls, raw: list[dict[str, Any]]) -> QuestionTree:
        """Build from raw dicts; nested ``sub_questions`` and flat records both work."""
        return cls.from_nodes(QuestionNode(**item) for item in raw)

    def _resolve_text_sources(self) -> None:
        """Rewrite legacy ``iterative_source_question_text`` links to ids."""
        for qid, q in list(self._questions.items()):
            if not q.is_iterative or q.iterative_source_question_id is not None:
                continue
            text = (q.iterative_source_question_text or "").strip().lower()
            matches = [
                other.id for other in self._questions.values()
                if other.id != qid and other.text.strip().lower() == text
            ]
            if len(matches) != 1:
                raise StructuralError(
                    f"question {qid!r}: iterative source text "
                    f"{q.iterative_source_question_text!r} matches {len(matches)} questions"
                )
            self._questions[qid] = q.model_copy(update={
                "iterative_source_question_id": matches[0],
                "iterative_source_question_text": None,
            })

    def _check_dependency_cycles(self) -> None:
        """Reject trees where visibility would depend on itself.

        A question's visibility depends on its parent and, for iterative
        questions, on its source.
        """
        state: dict[str, int] = {}  # 1 = on stack, 2 = done

        for start in self._order:
            if state.get(start) == 2:
                continue
            stack: list[tuple[str, Iterator[str]]] = [(start, iter(self._deps(start)))]
            state[start] = 1
            while stack:
                qid, deps = stack[-1]
                nxt = next(deps, None)
                if nxt is None:
                    state[qid] = 2
                    stack.pop()
                elif state.get(nxt) == 1:
                    raise StructuralError(
                        f"visibility of {nxt!r} depends on itself via {qid!r}"
                    )
                elif state.get(nxt) is None:
                    state[nxt] = 1
                    stack.append((nxt, iter(self._deps(nxt))))

    def _deps(self, qid: str) -> list[str]:
        q = self._questions[qid]
        deps = []
        if q.parent_question_id is not None:
            deps.append(q.parent_question_id)
        if q.is_iterative and q.iterative_source_question_id is not None:
            deps.append(q.iterative_source_question_id)
        return deps

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, qid: str) -> Question:
        """Return a question by id.  Raises ``KeyError`` if missing."""
        try:
            return self._questions[qid]
        except KeyError:
            raise KeyError(f"Question {qid!r} not found") from None

    def __contains__(self, qid: object) -> bool:
        return qid in self._questions

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        """Iterate questions in document order."""
        return (self._questions[qid] for qid in self._order)

    @property
    def order(self) -> list[str]:
        """Question ids in document order."""
        return list(self._order)

    def position(self, qid: str) -> int:
        return self._position[qid]

    def depth(self, qid: str) -> int:
        return self._depth[qid]

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def roots(self) -> list[Question]:
        return [self._questions[qid] for qid in self._order if self._depth[qid] == 0]

    def children(self, qid: str) -> list[Question]:
        return [self._questions[c] for c in self._children[qid]]

    def parent(self, qid: str) -> Question | None:
        pid = self.get(qid).parent_question_id
        return self._questions[pid] if pid is not None else None

    def ancestors(self, qid: str) -> list[Question]:
        """Parent first, root last."""
        out = []
        parent = self.parent(qid)
        while parent is not None:
            out.append(parent)
            parent = self.parent(parent.id)
        return out

    def descendants(self, qid: str) -> list[Question]:
        """Every question in ``qid``'s subtree (excluding itself), document order."""
        start = self._position[qid]
        end = self._subtree_end(qid)
        return [self._questions[x] for x in self._order[start + 1:end]]

    def following(self, qid: str) -> list[Question]:
        """Every question after ``qid``'s subtree, document order."""
        return [self._questions[x] for x in self._order[self._subtree_end(qid):]]

    def preceding(self, qid: str) -> list[Question]:
        """Every question before ``qid`` in document order."""
        return [self._questions[x] for x in self._order[:self._position[qid]]]

    def _subtree_end(self, qid: str) -> int:
        """Index in ``order`` just past the last descendant of ``qid``."""
        depth = self._depth[qid]
        end = self._position[qid] + 1
        while end < len(self._order) and self._depth[self._order[end]] > depth:
            end += 1
        return end

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_nested(self) -> list[dict[str, Any]]:
        """Rebuild the nested authoring shape (``sub_questions``) from the arena."""

        def build(qid: str) -> dict[str, Any]:
            data = self._questions[qid].model_dump(exclude_none=True)
            data.pop("iterative_source_question_text", None)
            data["sub_questions"] = [build(c) for c in self._children[qid]]
            return data

        return [build(q.id) for q in self.roots()]

    def __repr__(self) -> str:
        return f"<QuestionTree({len(self._questions)} questions)>"
