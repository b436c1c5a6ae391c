"""Operator Library: control-flow descriptors recorded as inert data.

Nothing here is ever evaluated. Each constructor returns a frozen descriptor
whose render(store) produces the pseudo-syntax the host agent reads:

    if_then_else  → IF(cond) → then | ELSE → else      (block form ends with END-IF)
    validate      → VALIDATE(pred) → FAILS → action
    sequence      → step → step → step
    skip          → SKIP(reason)
    task_ref      → TASK → step                        (block form ends with END-TASK)
    for_each      → FOREACH(items) → body              (block form ends with END-FOREACH)
    note          → NOTE(text)
    abort         → ABORT "message"
    output        → OUTPUT(parts)          (also context, report, check, scenario)
    verify        → VERIFY-SUCCESS(parts)
    input_        → INPUT(a && b)
    parallel      → [PARALLEL] → (a + b) → END-PARALLEL
    return_       → RETURN value
    continue_     → CONTINUE               (break_ → BREAK)

Descriptors compare structurally, so two identical definitions produce equal
phase values. Steps may be plain text, SymbolReferences, Symbols, ToolReferences
or other descriptors; all of them are rendered through the store, which
substitutes symbol markers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from brain_command.store import ValueStore

ARROW = "→"

# Inline/block switch point, in characters of rendered text.
INLINE_THRESHOLD = 60


def _steps(value: Any) -> tuple[Any, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _block(opening: str, sections: Sequence[tuple[str | None, Sequence[str]]], closing: str) -> str:
    """Lay out a multi-line operator: opening line, indented steps, END marker.

    sections pairs an optional separator line (e.g. "→ ELSE →") with its steps.
    Multi-line steps are indented as a unit.
    """
    lines = [opening]
    for separator, items in sections:
        if separator is not None:
            lines.append(separator)
        for item in items:
            lines.extend("  " + line for line in item.split("\n"))
    lines.append(f"{ARROW} {closing}")
    return "\n".join(lines)


# ─── Descriptors ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Conditional:
    condition: Any
    then: tuple[Any, ...]
    otherwise: tuple[Any, ...] | None = None

    def render(self, store: ValueStore) -> str:
        condition = store.render_value(self.condition)
        then = [store.render_value(step) for step in self.then]
        otherwise = (
            [store.render_value(step) for step in self.otherwise]
            if self.otherwise is not None
            else None
        )

        then_inline = f" {ARROW} ".join(then)
        else_inline = f" {ARROW} ".join(otherwise) if otherwise else ""
        inline_length = len(condition) + len(then_inline)
        if otherwise:
            inline_length += len(else_inline) + 10
        multi_step = len(then) > 1 or (otherwise is not None and len(otherwise) > 1)
        multi_line = any("\n" in step for step in [*then, *(otherwise or [])])

        if multi_step or multi_line or inline_length > INLINE_THRESHOLD:
            sections: list[tuple[str | None, Sequence[str]]] = [(None, then)]
            if otherwise is not None:
                sections.append((f"{ARROW} ELSE {ARROW}", otherwise))
            return _block(f"IF({condition}) {ARROW}", sections, "END-IF")

        result = f"IF({condition}) {ARROW} {then_inline}"
        if otherwise:
            result += f" | ELSE {ARROW} {else_inline}"
        return result


@dataclass(frozen=True)
class ValidationGate:
    predicate: tuple[Any, ...]
    wait_action: Any = None

    def render(self, store: ValueStore) -> str:
        predicate = " && ".join(store.render_value(part) for part in self.predicate)
        result = f"VALIDATE({predicate})"
        if self.wait_action is not None:
            result += f" {ARROW} FAILS {ARROW} {store.render_value(self.wait_action)}"
        return result


@dataclass(frozen=True)
class Sequential:
    steps: tuple[Any, ...]

    def render(self, store: ValueStore) -> str:
        rendered = [store.render_value(step) for step in self.steps]
        return f" {ARROW} ".join(text for text in rendered if text)


@dataclass(frozen=True)
class Skip:
    reason: Any

    def render(self, store: ValueStore) -> str:
        return f"SKIP({store.render_value(self.reason)})"


@dataclass(frozen=True)
class TaskBlock:
    steps: tuple[Any, ...]

    def render(self, store: ValueStore) -> str:
        rendered = [store.render_value(step) for step in self.steps]
        if len(rendered) == 1 and "\n" not in rendered[0] and len(rendered[0]) < INLINE_THRESHOLD:
            return f"TASK {ARROW} {rendered[0]}"
        return _block(f"TASK {ARROW}", [(None, rendered)], "END-TASK")


@dataclass(frozen=True)
class ForEach:
    items: Any
    body: tuple[Any, ...]

    def render(self, store: ValueStore) -> str:
        items = store.render_value(self.items)
        rendered = [store.render_value(step) for step in self.body]
        if len(rendered) == 1 and "\n" not in rendered[0] and len(rendered[0]) < INLINE_THRESHOLD:
            return f"FOREACH({items}) {ARROW} {rendered[0]}"
        return _block(f"FOREACH({items}) {ARROW}", [(None, rendered)], "END-FOREACH")


@dataclass(frozen=True)
class Note:
    text: Any

    def render(self, store: ValueStore) -> str:
        return f"NOTE({store.render_value(self.text)})"


@dataclass(frozen=True)
class Abort:
    message: Any = ""

    def render(self, store: ValueStore) -> str:
        message = store.render_value(self.message) if self.message else ""
        return f'ABORT "{message}"' if message else "ABORT"


@dataclass(frozen=True)
class Directive:
    """One-line ``KEYWORD(parts)`` marker (OUTPUT, VERIFY-SUCCESS, INPUT, ...)."""

    keyword: str
    parts: tuple[Any, ...]
    separator: str = " "

    def render(self, store: ValueStore) -> str:
        body = self.separator.join(store.render_value(part) for part in self.parts)
        return f"{self.keyword}({body})"


@dataclass(frozen=True)
class Parallel:
    # (label, task) pairs; label is None for unlabelled tasks.
    branches: tuple[tuple[str | None, Any], ...]

    def render(self, store: ValueStore) -> str:
        rendered = []
        for label, task in self.branches:
            text = store.render_value(task)
            rendered.append(text if label is None else f"{label}: '{text}'")
        return f"[PARALLEL] {ARROW} ({' + '.join(rendered)}) {ARROW} END-PARALLEL"


@dataclass(frozen=True)
class Return:
    value: Any = ""

    def render(self, store: ValueStore) -> str:
        value = store.render_value(self.value) if self.value else ""
        return f"RETURN {value}" if value else "RETURN"


@dataclass(frozen=True)
class LoopControl:
    keyword: str

    def render(self, store: ValueStore) -> str:
        return self.keyword


OperatorDescriptor = (
    Conditional
    | ValidationGate
    | Sequential
    | Skip
    | TaskBlock
    | ForEach
    | Note
    | Abort
    | Directive
    | Parallel
    | Return
    | LoopControl
)


# ─── Constructors ─────────────────────────────────────────────────────────────


def if_then_else(condition: Any, then: Any, else_: Any = None) -> Conditional:
    """Conditional branch. then/else_ may be a single step or a list of steps.

    An empty else_ ("" or []) is the same as no else branch.
    """
    otherwise = _steps(else_) if else_ is not None and else_ != "" else None
    return Conditional(
        condition=condition,
        then=_steps(then),
        otherwise=otherwise or None,
    )


def validate(predicate: Any, wait_action: Any = None) -> ValidationGate:
    """Validation gate. A list predicate is joined with &&."""
    return ValidationGate(predicate=_steps(predicate), wait_action=wait_action)


def sequence(*steps: Any) -> Sequential:
    return Sequential(steps=tuple(steps))


def skip(reason: Any) -> Skip:
    return Skip(reason=reason)


def task_ref(*steps: Any) -> TaskBlock:
    return TaskBlock(steps=tuple(steps))


def for_each(items: Any, body: Any) -> ForEach:
    return ForEach(items=items, body=_steps(body))


def note(text: Any) -> Note:
    return Note(text=text)


def abort(message: Any = "") -> Abort:
    return Abort(message=message)


def _flatten(parts: Sequence[Any]) -> tuple[Any, ...]:
    flat: list[Any] = []
    for part in parts:
        if isinstance(part, (list, tuple)):
            flat.extend(_flatten(part))
        else:
            flat.append(part)
    return tuple(flat)


def output(*parts: Any) -> Directive:
    """Expected output format: OUTPUT(parts)."""
    return Directive("OUTPUT", _flatten(parts))


def verify(*parts: Any) -> Directive:
    """Success check after an operation: VERIFY-SUCCESS(parts)."""
    return Directive("VERIFY-SUCCESS", _flatten(parts))


def input_(*parts: Any) -> Directive:
    """Required inputs, joined with &&: INPUT(a && b)."""
    return Directive("INPUT", _flatten(parts), " && ")


def context(*parts: Any) -> Directive:
    return Directive("CONTEXT", _flatten(parts))


def report(*parts: Any) -> Directive:
    return Directive("REPORT", _flatten(parts))


def check(*parts: Any) -> Directive:
    return Directive("CHECK", _flatten(parts))


def scenario(*parts: Any) -> Directive:
    return Directive("SCENARIO", _flatten(parts))


def parallel(tasks: Any) -> Parallel:
    """Tasks run side by side.

    A mapping labels each task (``{"@agent-explore": "Scan"}`` renders as
    ``@agent-explore: 'Scan'``); a list or single step is unlabelled.
    """
    if isinstance(tasks, Mapping):
        branches = tuple((str(label), task) for label, task in tasks.items())
    else:
        branches = tuple((None, task) for task in _steps(tasks))
    if not branches:
        raise ValueError("parallel() needs at least one task.")
    return Parallel(branches=branches)


def return_(value: Any = "") -> Return:
    return Return(value=value)


def continue_() -> LoopControl:
    return LoopControl("CONTINUE")


def break_() -> LoopControl:
    return LoopControl("BREAK")
