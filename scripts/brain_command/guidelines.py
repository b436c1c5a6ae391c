"""Guideline Builder: named instructional blocks made of text and ordered phases.

    workflow = definition.guideline("workflow").goal("Create task").example()
    workflow.phase("parse", "Parse {TASK_DESCRIPTION}")
    workflow.phase(store.declare("IS_SIMPLE", "description < 140 chars"))
    workflow.phase(if_then_else(store.get("IS_SIMPLE"), "check duplicates"))

Phase order is the workflow's step order and is preserved verbatim.
Phase keys are unique within one guideline (DuplicatePhaseKeyError); a phase
added without a key gets its 1-based position as key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from brain_command.errors import DuplicatePhaseKeyError

logger = logging.getLogger(__name__)

# Distinguishes phase(key, None) from phase(value).
_UNSET: Any = object()


def _noop() -> None:
    return None


@dataclass(frozen=True)
class Phase:
    """One ordered step. value is text, a SymbolReference, a Symbol, an
    operator descriptor or a ToolReference."""

    key: str
    value: Any
    explicit_key: bool = True


class GuidelineHandle:
    """Typed builder handle for one guideline."""

    def __init__(self, guideline_id: str, *, guard: Callable[[], None] = _noop) -> None:
        if not guideline_id or not guideline_id.strip():
            raise ValueError("Guideline id must be a non-empty string.")
        self._id = guideline_id.strip()
        self._guard = guard
        self._title: str | None = None
        self._goal: Any = None
        self._example = False
        self._text: list[Any] = []
        self._phases: list[Phase] = []

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self._id

    @property
    def title(self) -> str:
        """Explicit title, or the id with '-'/'_' shown as spaces."""
        if self._title:
            return self._title
        return self._id.replace("-", " ").replace("_", " ")

    @property
    def goal_value(self) -> Any:
        return self._goal

    @property
    def is_example(self) -> bool:
        return self._example

    @property
    def text_values(self) -> tuple[Any, ...]:
        return tuple(self._text)

    @property
    def phases(self) -> tuple[Phase, ...]:
        return tuple(self._phases)

    @property
    def is_empty(self) -> bool:
        return not self._text and not self._phases

    # ── Mutators ──────────────────────────────────────────────────────────────

    def text(self, text: Any) -> GuidelineHandle:
        """Append a text line. A list of strings is joined with spaces."""
        self._guard()
        if isinstance(text, (list, tuple)) and all(isinstance(t, str) for t in text):
            text = " ".join(text)
        self._text.append(text)
        return self

    def titled(self, title: str) -> GuidelineHandle:
        self._guard()
        self._title = title
        return self

    def goal(self, goal: Any) -> GuidelineHandle:
        self._guard()
        self._goal = goal
        return self

    def example(self) -> GuidelineHandle:
        """Mark the guideline as a worked example (phases shown with keys)."""
        self._guard()
        self._example = True
        return self

    def phase(self, key: Any = _UNSET, value: Any = _UNSET) -> PhaseHandle:
        """Append a phase and return its handle.

        phase(value)       — automatic key (1-based position)
        phase(key, value)  — explicit key

        Raises:
            DuplicatePhaseKeyError: key already used in this guideline.
            ValueError: no value given, or an explicit key paired with None.
        """
        self._guard()
        if value is _UNSET:
            if key is _UNSET or key is None:
                raise ValueError(f"Guideline {self._id!r}: phase() needs a value.")
            key, value = None, key
        elif value is None:
            raise ValueError(f"Guideline {self._id!r}: phase {key!r} needs a value, got None.")
        explicit = key is not None
        if explicit and not isinstance(key, str):
            raise TypeError(
                f"Guideline {self._id!r}: phase key must be a string, got {type(key).__name__}."
            )
        phase_key = key.strip() if explicit else str(len(self._phases) + 1)
        self._check_key(phase_key)
        self._phases.append(Phase(phase_key, value, explicit))
        logger.debug("guideline %s: phase %s added", self._id, phase_key)
        return PhaseHandle(self, len(self._phases) - 1)

    # ── Private Helpers ───────────────────────────────────────────────────────

    def _check_key(self, key: str) -> None:
        if any(phase.key == key for phase in self._phases):
            raise DuplicatePhaseKeyError(self._id, key)

    def _rekey(self, index: int, key: str) -> None:
        self._guard()
        key = key.strip()
        current = self._phases[index]
        if key == current.key:
            return
        self._check_key(key)
        self._phases[index] = Phase(key, current.value, True)

    def __repr__(self) -> str:
        return f"GuidelineHandle({self._id!r}, phases={len(self._phases)})"


class PhaseHandle:
    """Handle to one phase of a guideline.

    Chaining phase() on a PhaseHandle appends a sibling to the same guideline,
    so a whole workflow reads as one chain.
    """

    def __init__(self, guideline: GuidelineHandle, index: int) -> None:
        self._guideline = guideline
        self._index = index

    @property
    def guideline(self) -> GuidelineHandle:
        return self._guideline

    @property
    def key_name(self) -> str:
        return self._guideline.phases[self._index].key

    @property
    def value(self) -> Any:
        return self._guideline.phases[self._index].value

    def key(self, key: str) -> PhaseHandle:
        """Rename this phase's key (DuplicatePhaseKeyError on collision)."""
        self._guideline._rekey(self._index, key)
        return self

    def phase(self, key: Any = None, value: Any = None) -> PhaseHandle:
        return self._guideline.phase(key, value)

    def __repr__(self) -> str:
        return f"PhaseHandle({self._guideline.id!r}, {self.key_name!r})"
