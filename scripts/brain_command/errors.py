"""Error taxonomy for the brain_command engine.

Two propagation policies:
    - Structural errors (DuplicateRuleIdError, DuplicatePhaseKeyError,
      DuplicateGuidelineIdError, EmptyGuidelineError) are raised immediately
      by the builder call that introduced them.
    - Resolution errors (UnknownReferenceError, CyclicReferenceError) and
      IncompleteRuleError are collected during compilation and raised together
      as one CompilationError, so a single pass shows every defect.
"""

from __future__ import annotations

import copy
from typing import Sequence


class BrainCommandError(Exception):
    """Base class for every error raised by the engine."""


# ─── Structural (fail fast) ───────────────────────────────────────────────────


class DuplicateRuleIdError(BrainCommandError):
    """Raised when a rule id is registered twice in one command.

    How to fix: rename one of the rules; rule ids are unique per command.
    """

    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(
            f"Rule {rule_id!r} is already registered in this command. "
            "Rule ids must be unique; rename the second rule."
        )


class DuplicateGuidelineIdError(BrainCommandError):
    """Raised when a guideline id is registered twice in one command."""

    def __init__(self, guideline_id: str) -> None:
        self.guideline_id = guideline_id
        super().__init__(
            f"Guideline {guideline_id!r} is already registered in this command. "
            "Extend the existing guideline or rename the new one."
        )


class DuplicatePhaseKeyError(BrainCommandError):
    """Raised when a phase key repeats inside one guideline.

    Why: later phases and downstream readers address "phase K of guideline G";
    two phases sharing K inside G would make that address ambiguous.
    Keys may repeat across different guidelines.
    """

    def __init__(self, guideline_id: str, key: str) -> None:
        self.guideline_id = guideline_id
        self.key = key
        super().__init__(
            f"Guideline {guideline_id!r} already has a phase keyed {key!r}. "
            "Phase keys must be unique within a guideline."
        )


class EmptyGuidelineError(BrainCommandError):
    """Raised for a guideline that has neither text nor phases."""

    def __init__(self, guideline_id: str) -> None:
        self.guideline_id = guideline_id
        super().__init__(
            f"Guideline {guideline_id!r} is empty: add text() or at least one phase()."
        )


class DefinitionStateError(BrainCommandError):
    """Raised when a compiled or failed definition is mutated.

    A definition leaves BUILDING exactly once. Start a fresh definition to
    change anything after compile().
    """


class DefinitionLoadError(BrainCommandError):
    """Raised when a YAML command definition is malformed.

    where is a dotted path inside the document (e.g. "guidelines[1].phases[3]").
    """

    def __init__(self, where: str, message: str, source: str | None = None) -> None:
        self.where = where
        self.source = source
        self.message = message
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{where}: {message}")


# ─── Deferred (aggregated at compile time) ────────────────────────────────────


class ResolutionError(BrainCommandError):
    """Common parent of the symbol-resolution errors.

    location names the rule/guideline/phase being rendered when the error was
    found; it is filled in by the compiler through at().
    """

    location: str | None = None

    def at(self, location: str) -> ResolutionError:
        """Return a copy of this error that names location.

        Subclasses whose message embeds the location rebuild themselves.
        """
        located = copy.copy(self)
        located.location = location
        located.args = (f"{self} (in {location})",)
        return located


class UnknownReferenceError(ResolutionError):
    """Raised when a referenced symbol was never declared."""

    def __init__(self, name: str, location: str | None = None) -> None:
        self.name = name
        self.location = location
        where = f" (in {location})" if location else ""
        super().__init__(
            f"Unknown symbol {name!r}{where}: declare it with store.declare({name!r}, ...) "
            "or register it as an external input."
        )

    def at(self, location: str) -> UnknownReferenceError:
        return UnknownReferenceError(self.name, location)


class CyclicReferenceError(ResolutionError):
    """Raised when resolution loops back on itself or exceeds the depth guard."""

    def __init__(self, chain: Sequence[str], location: str | None = None) -> None:
        self.chain: tuple[str, ...] = tuple(chain)
        self.location = location
        where = f" (in {location})" if location else ""
        super().__init__(
            f"Cyclic symbol reference{where}: {' -> '.join(self.chain)}"
        )

    def at(self, location: str) -> CyclicReferenceError:
        return CyclicReferenceError(self.chain, location)


class IncompleteRuleError(BrainCommandError):
    """Raised for a rule missing its severity, text, why or on_violation.

    An agent-facing rule without rationale or remediation is malformed.
    """

    def __init__(self, rule_id: str, missing: Sequence[str]) -> None:
        self.rule_id = rule_id
        self.missing: tuple[str, ...] = tuple(missing)
        super().__init__(
            f"Rule {rule_id!r} is incomplete: missing {', '.join(self.missing)}."
        )


class CompilationError(BrainCommandError):
    """Aggregated compile failure.

    errors lists every defect found in one pass, in document order. Always
    non-empty when raised.
    """

    def __init__(self, command_id: str, errors: Sequence[BrainCommandError]) -> None:
        self.command_id = command_id
        self.errors: list[BrainCommandError] = list(errors)
        lines = [f"Compilation of {command_id!r} failed with {len(self.errors)} error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines))

    def of_type(self, error_type: type[BrainCommandError]) -> list[BrainCommandError]:
        """Return the aggregated errors that are instances of error_type."""
        return [error for error in self.errors if isinstance(error, error_type)]
