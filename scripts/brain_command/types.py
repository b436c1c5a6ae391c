"""Shared type definitions for the brain_command engine.

All enums are str Enums so they serialize cleanly to JSON/YAML output.
All rendered dataclasses are frozen (immutable): a CommandDocument is owned by
the compile call that produced it and is never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


# ─── Enums ────────────────────────────────────────────────────────────────────


class Severity(str, Enum):
    """Rule severity.

    Ordered critical → low. The order drives presentation only; the engine
    documents rules for the consuming agent and never enforces them.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Position in the presentation order (0 = most severe)."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
)


class DefinitionState(str, Enum):
    """Lifecycle of a command definition.

    BUILDING → COMPILED on a successful compile, BUILDING → FAILED on an
    aggregated compilation failure. Nothing leaves COMPILED or FAILED.
    """

    BUILDING = "building"
    COMPILED = "compiled"
    FAILED = "failed"


class ToolKind(str, Enum):
    """Kind of external capability a ToolReference points at."""

    AGENT = "agent"
    MCP = "mcp"


# ─── Rendered Document Parts ──────────────────────────────────────────────────


@dataclass(frozen=True)
class RenderedRule:
    """A complete rule, ready for the Rules section."""

    id: str
    severity: Severity
    statement: str
    rationale: str
    violation_action: str


@dataclass(frozen=True)
class RenderedPhase:
    """One phase with every symbol reference substituted.

    explicit_key is False when the key was assigned automatically (1-based
    position), which lets renderers hide meaningless numeric keys.
    """

    key: str
    text: str
    explicit_key: bool = True


@dataclass(frozen=True)
class RenderedGuideline:
    """A guideline with its text lines, goal and phases rendered in order."""

    id: str
    title: str
    text: tuple[str, ...]
    goal: str | None
    example: bool
    phases: tuple[RenderedPhase, ...]


@dataclass(frozen=True)
class CommandDocument:
    """The compiled, ordered artifact consumed by the host agent runtime.

    rules precede guidelines; both keep declaration order (rules are
    additionally grouped by severity). text is the markdown rendering
    produced at compile time.
    """

    command_id: str
    description: str
    rules: tuple[RenderedRule, ...]
    guidelines: tuple[RenderedGuideline, ...]
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Structured form shared by the json and yaml renderers."""
        return {
            "id": self.command_id,
            "description": self.description,
            "rules": [
                {
                    "id": rule.id,
                    "severity": rule.severity.value,
                    "text": rule.statement,
                    "why": rule.rationale,
                    "on_violation": rule.violation_action,
                }
                for rule in self.rules
            ],
            "guidelines": [
                {
                    "id": guideline.id,
                    "title": guideline.title,
                    "example": guideline.example,
                    "text": list(guideline.text),
                    "goal": guideline.goal,
                    "phases": [
                        {"key": phase.key, "text": phase.text}
                        for phase in guideline.phases
                    ],
                }
                for guideline in self.guidelines
            ],
        }
