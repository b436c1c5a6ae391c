"""Value Store: symbol bindings shared by the phases of one command definition.

The store records text, it never executes anything. "Resolution" is literal
substitution for the final document: every ``{NAME}`` marker (NAME is an
upper-case identifier) and every embedded SymbolReference is replaced by the
bound expression, recursively.

Key types:
    Symbol          — a declaration (name + expression); renders as STORE-AS(...)
    SymbolReference — lazy handle; renders to the resolved text
    ValueStore      — per-definition registry of bindings and external inputs
    Renderable      — protocol for values that render against a store

Marker rules:
    - ``{TASK_SCOPE}``       → reference to symbol TASK_SCOPE
    - ``{objective, scope}`` → agent-fill text, left as-is (lower case / spaces)
    - a symbol declared without an expression, or registered as an external
      input, resolves to its ``$NAME`` marker for the host runtime to fill.
    - ``$NAME`` written directly (var()) stays as-is, but render_checked()
      reports it when NAME is neither declared nor external.
"""

from __future__ import annotations

import json
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol, runtime_checkable

from brain_command.errors import (
    BrainCommandError,
    CyclicReferenceError,
    ResolutionError,
    UnknownReferenceError,
)

logger = logging.getLogger(__name__)

# Deep enough for any real chain of derived values; anything longer is a cycle.
MAX_RESOLVE_DEPTH = 16

_NAME_RE = re.compile(r"[A-Z][A-Z0-9_]*")
_MARKER_RE = re.compile(r"\{([A-Z][A-Z0-9_]*)\}")
_RUNTIME_MARKER_RE = re.compile(r"\$([A-Z][A-Z0-9_]*)")


def normalize_name(name: str) -> str:
    """Return the canonical symbol name: stripped, no leading '$', upper case.

    Raises:
        ValueError: If the result is not an identifier.
    """
    normalized = name.strip().lstrip("$").upper()
    if not _NAME_RE.fullmatch(normalized):
        raise ValueError(
            f"Invalid symbol name {name!r}: expected letters, digits and '_', "
            "starting with a letter."
        )
    return normalized


def var(name: str) -> str:
    """Format the runtime marker for a symbol: ``$NAME``."""
    return "$" + normalize_name(name)


@runtime_checkable
class Renderable(Protocol):
    """Anything that renders to document text against a store."""

    def render(self, store: ValueStore) -> str: ...


@dataclass(frozen=True)
class SymbolReference:
    """Lazy handle to a symbol; resolved only when rendered."""

    name: str

    def render(self, store: ValueStore) -> str:
        return store.resolve(self.name)

    def __str__(self) -> str:
        return "{" + self.name + "}"


@dataclass(frozen=True)
class Symbol:
    """A declaration of name = expression.

    Used as a phase value it renders the store instruction itself,
    ``STORE-AS($NAME = <expression>)``, with this declaration's expression
    (not a later rebinding). expression None means "filled in by the agent".
    """

    name: str
    expression: Any = None

    def reference(self) -> SymbolReference:
        return SymbolReference(self.name)

    def render(self, store: ValueStore) -> str:
        if self.expression is None:
            return f"STORE-AS({var(self.name)})"
        return f"STORE-AS({var(self.name)} = {store.render_value(self.expression)})"


class ValueStore:
    """Per-definition symbol registry.

    Not thread-safe: resolution keeps its in-progress chain on the instance.
    guard, when given, is called before every declaration (the owning
    definition uses it to freeze the store after compile()).
    Each command definition owns its own store, so independent definitions
    never share one.

    Usage:
        store = ValueStore(externals=["ARGUMENTS"])
        store.declare("X", "5")
        store.declare("Y", "{X}-ok")
        store.resolve("Y")  # "5-ok"
    """

    def __init__(
        self,
        externals: Iterable[str] = (),
        *,
        guard: Callable[[], None] | None = None,
    ) -> None:
        self._bindings: dict[str, Any] = {}
        self._externals: set[str] = {normalize_name(name) for name in externals}
        self._chain: list[str] = []
        self._collected: list[BrainCommandError] | None = None
        self._guard = guard

    # ── Declaration ───────────────────────────────────────────────────────────

    def declare(self, name: str, expression: Any = None) -> Symbol:
        """Bind name to expression and return the declaration.

        References inside expression are not checked here: forward references
        are legal until compile time.
        """
        if self._guard is not None:
            self._guard()
        key = normalize_name(name)
        if key in self._bindings:
            logger.debug("rebinding symbol %s", key)
        else:
            logger.debug("declaring symbol %s", key)
        self._bindings[key] = expression
        return Symbol(key, expression)

    def bind_external(self, name: str) -> SymbolReference:
        """Register a runtime input (e.g. ARGUMENTS) that renders as ``$NAME``."""
        if self._guard is not None:
            self._guard()
        key = normalize_name(name)
        self._externals.add(key)
        return SymbolReference(key)

    def reference(self, name: str) -> SymbolReference:
        """Return a lazy handle; name need not be declared yet."""
        return SymbolReference(normalize_name(name))

    get = reference

    # ── Introspection ─────────────────────────────────────────────────────────

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = normalize_name(name)
        return key in self._bindings or key in self._externals

    @property
    def names(self) -> tuple[str, ...]:
        """Declared symbol names in declaration order."""
        return tuple(self._bindings)

    @property
    def externals(self) -> frozenset[str]:
        return frozenset(self._externals)

    def expression(self, name: str) -> Any:
        """Return the raw bound expression (KeyError if undeclared)."""
        return self._bindings[normalize_name(name)]

    # ── Resolution ────────────────────────────────────────────────────────────

    def resolve(self, name: str) -> str:
        """Return the fully substituted text bound to name.

        Raises:
            UnknownReferenceError: name (or anything it references) is undeclared.
            CyclicReferenceError: the reference chain loops or exceeds
                MAX_RESOLVE_DEPTH.
        """
        key = normalize_name(name)
        if key in self._chain:
            start = self._chain.index(key)
            raise CyclicReferenceError([*self._chain[start:], key])
        if len(self._chain) >= MAX_RESOLVE_DEPTH:
            raise CyclicReferenceError([*self._chain, key])

        if key not in self._bindings:
            if key in self._externals:
                return var(key)
            raise UnknownReferenceError(key)

        expression = self._bindings[key]
        if expression is None:
            return var(key)

        self._chain.append(key)
        try:
            return self.render_value(expression)
        finally:
            self._chain.pop()

    def interpolate(self, text: str) -> str:
        """Substitute every ``{NAME}`` marker in text."""
        return _MARKER_RE.sub(self._substitute_marker, text)

    def render_value(self, value: Any) -> str:
        """Render any phase/expression value to text.

        str → interpolated; SymbolReference → resolved; Renderable → its
        render(); list/tuple → items joined with " + "; mapping → JSON
        object; scalars exported the way the pseudo-syntax spells them
        (true/false/null).
        """
        if isinstance(value, str):
            return self.interpolate(value)
        if isinstance(value, SymbolReference):
            return self._guarded(lambda: value.render(self), str(value))
        if isinstance(value, Renderable):
            return value.render(self)
        if isinstance(value, (list, tuple)):
            return " + ".join(self.render_value(item) for item in value)
        if isinstance(value, Mapping):
            return json.dumps(
                {str(key): item for key, item in value.items()},
                ensure_ascii=False,
                default=self.render_value,
            )
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "null"
        return str(value)

    def render_checked(self, value: Any) -> tuple[str, list[BrainCommandError]]:
        """Render value, collecting resolution errors instead of raising.

        Unresolvable markers are left verbatim in the returned text. Every
        ``$NAME`` runtime marker in the result must name a declared symbol or
        an external input; others are reported as UnknownReferenceError.
        Returns (text, errors); errors is empty when the text is fully resolved.
        """
        with self._collecting() as errors:
            text = self.render_value(value)
        errors.extend(
            UnknownReferenceError(name)
            for name in _RUNTIME_MARKER_RE.findall(text)
            if name not in self
        )
        unique: dict[tuple[type, str], BrainCommandError] = {}
        for error in errors:
            unique.setdefault((type(error), str(error)), error)
        return text, list(unique.values())

    def check(self, value: Any) -> list[BrainCommandError]:
        """Return every resolution error in value (empty = resolvable)."""
        return self.render_checked(value)[1]

    # ── Private Helpers ───────────────────────────────────────────────────────

    def _substitute_marker(self, match: re.Match[str]) -> str:
        name = match.group(1)
        return self._guarded(lambda: self.resolve(name), match.group(0))

    def _guarded(self, render: Callable[[], str], fallback: str) -> str:
        try:
            return render()
        except ResolutionError as error:
            if self._collected is None:
                raise
            self._collected.append(error)
            return fallback

    @contextmanager
    def _collecting(self) -> Iterator[list[BrainCommandError]]:
        previous = self._collected
        errors: list[BrainCommandError] = []
        self._collected = errors
        try:
            yield errors
        finally:
            self._collected = previous
