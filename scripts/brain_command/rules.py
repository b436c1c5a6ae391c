"""Rule Builder: one imperative constraint for the consuming agent.

    definition.rule("create-only").critical()
        .text("This command ONLY creates tasks.")
        .why("The user decides when work starts.")
        .on_violation("STOP. Return control to the user.")

Every mutator returns the same RuleHandle. Completeness (severity, text, why,
on_violation) is checked at compile time, not while chaining, so the fields
may be set in any order.
"""

from __future__ import annotations

from typing import Callable, Sequence

from brain_command.errors import IncompleteRuleError
from brain_command.types import RenderedRule, Severity


def _noop() -> None:
    return None


def _join(text: str | Sequence[str]) -> str:
    if isinstance(text, str):
        return text
    return " ".join(text)


class RuleHandle:
    """Typed builder handle for a single rule.

    guard is called before every mutation; the owning CommandDefinition uses
    it to reject changes once the definition has left BUILDING.
    """

    def __init__(self, rule_id: str, *, guard: Callable[[], None] = _noop) -> None:
        if not rule_id or not rule_id.strip():
            raise ValueError("Rule id must be a non-empty string.")
        self._id = rule_id.strip()
        self._guard = guard
        self._severity: Severity | None = None
        self._statement: str | None = None
        self._rationale: str | None = None
        self._violation_action: str | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def severity(self) -> Severity | None:
        return self._severity

    # ── Severity ──────────────────────────────────────────────────────────────

    def severity_level(self, severity: Severity | str) -> RuleHandle:
        self._guard()
        self._severity = Severity(severity)
        return self

    def critical(self) -> RuleHandle:
        return self.severity_level(Severity.CRITICAL)

    def high(self) -> RuleHandle:
        return self.severity_level(Severity.HIGH)

    def medium(self) -> RuleHandle:
        return self.severity_level(Severity.MEDIUM)

    def low(self) -> RuleHandle:
        return self.severity_level(Severity.LOW)

    # ── Content ───────────────────────────────────────────────────────────────

    def text(self, statement: str | Sequence[str]) -> RuleHandle:
        """Set the statement. A second call appends on a new line."""
        self._guard()
        statement = _join(statement)
        if self._statement:
            self._statement += "\n" + statement
        else:
            self._statement = statement
        return self

    def why(self, rationale: str | Sequence[str]) -> RuleHandle:
        self._guard()
        self._rationale = _join(rationale)
        return self

    def on_violation(self, action: str | Sequence[str]) -> RuleHandle:
        self._guard()
        self._violation_action = _join(action)
        return self

    # ── Compilation ───────────────────────────────────────────────────────────

    def missing_fields(self) -> tuple[str, ...]:
        """Names of the required fields still unset, in a fixed order."""
        fields = (
            ("severity", self._severity),
            ("text", self._statement),
            ("why", self._rationale),
            ("on_violation", self._violation_action),
        )
        return tuple(name for name, value in fields if not value)

    def build(self) -> RenderedRule:
        """Return the finished rule.

        Raises:
            IncompleteRuleError: If any of the four required fields is unset.
        """
        missing = self.missing_fields()
        if missing:
            raise IncompleteRuleError(self._id, missing)
        return RenderedRule(
            id=self._id,
            severity=self._severity,  # type: ignore[arg-type]
            statement=self._statement,  # type: ignore[arg-type]
            rationale=self._rationale,  # type: ignore[arg-type]
            violation_action=self._violation_action,  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return f"RuleHandle({self._id!r}, severity={self._severity!r})"
