"""CommandDefinition: one command's rules, guidelines and Value Store.

Lifecycle (DefinitionState):
    BUILDING ──compile() ok──▶ COMPILED
    BUILDING ──compile() err─▶ FAILED

Every builder mutation (rule/guideline/phase/declare) goes through the
definition's guard, so a definition that has left BUILDING raises
DefinitionStateError instead of silently diverging from its document.

Key types:
    CommandDefinition — fluent entry point: rule(), guideline(), store, compile()
    CommandRoutine    — callable that fills a fresh CommandDefinition

Registry:
    @command("task:create", description="...")
    def task_create(definition: CommandDefinition) -> None: ...

    build_command("task:create", environ=os.environ).compile()
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from brain_command.compiler import compile_command
from brain_command.errors import (
    CompilationError,
    DefinitionStateError,
    DuplicateGuidelineIdError,
    DuplicateRuleIdError,
    EmptyGuidelineError,
)
from brain_command.guidelines import GuidelineHandle
from brain_command.rules import RuleHandle
from brain_command.store import ValueStore
from brain_command.types import CommandDocument, DefinitionState

logger = logging.getLogger(__name__)

CommandRoutine = Callable[["CommandDefinition"], None]

# Env instructions carry no rationale of their own; these keep them complete.
ENV_RULE_WHY = "Project-specific instruction supplied through the environment."
ENV_RULE_ON_VIOLATION = "STOP. Follow the environment instruction before continuing."


# ─── Definition ───────────────────────────────────────────────────────────────


class CommandDefinition:
    """Fluent builder for one command.

    Usage:
        definition = CommandDefinition("task:create", externals=["ARGUMENTS"])
        definition.rule("create-only").critical().text("...").why("...").on_violation("...")
        definition.guideline("workflow").phase("parse", "Parse {TASK_DESCRIPTION}")
        document = definition.compile()
    """

    def __init__(
        self,
        command_id: str,
        *,
        description: str = "",
        externals: Iterable[str] = (),
    ) -> None:
        if not command_id or not command_id.strip():
            raise ValueError("Command id must be a non-empty string.")
        self._id = command_id.strip()
        self._description = description
        self._state = DefinitionState.BUILDING
        self._store = ValueStore(externals, guard=self._ensure_building)
        self._rules: list[RuleHandle] = []
        self._guidelines: list[GuidelineHandle] = []
        self._document: CommandDocument | None = None
        self._failure: CompilationError | None = None

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self._id

    @property
    def description(self) -> str:
        return self._description

    @property
    def state(self) -> DefinitionState:
        return self._state

    @property
    def store(self) -> ValueStore:
        return self._store

    @property
    def rules(self) -> tuple[RuleHandle, ...]:
        return tuple(self._rules)

    @property
    def guidelines(self) -> tuple[GuidelineHandle, ...]:
        return tuple(self._guidelines)

    def describe(self, description: str) -> CommandDefinition:
        self._ensure_building()
        self._description = description
        return self

    # ── Builders ──────────────────────────────────────────────────────────────

    def rule(self, rule_id: str) -> RuleHandle:
        """Register a new rule.

        Raises:
            DuplicateRuleIdError: rule_id already registered in this command.
        """
        self._ensure_building()
        handle = RuleHandle(rule_id, guard=self._ensure_building)
        if any(rule.id == handle.id for rule in self._rules):
            raise DuplicateRuleIdError(handle.id)
        self._rules.append(handle)
        logger.debug("%s: rule %s registered", self._id, handle.id)
        return handle

    def guideline(self, guideline_id: str) -> GuidelineHandle:
        """Open a new guideline.

        Raises:
            EmptyGuidelineError: the previously opened guideline got neither
                text nor phases.
            DuplicateGuidelineIdError: guideline_id already registered.
        """
        self._ensure_building()
        if self._guidelines and self._guidelines[-1].is_empty:
            raise EmptyGuidelineError(self._guidelines[-1].id)
        handle = GuidelineHandle(guideline_id, guard=self._ensure_building)
        if any(guideline.id == handle.id for guideline in self._guidelines):
            raise DuplicateGuidelineIdError(handle.id)
        self._guidelines.append(handle)
        logger.debug("%s: guideline %s opened", self._id, handle.id)
        return handle

    def apply_variables(self, variables: Mapping[str, Any]) -> CommandDefinition:
        """Bind each name to its value, overriding earlier declarations."""
        for name, value in variables.items():
            self._store.declare(name, value)
        return self

    # ── Compilation ───────────────────────────────────────────────────────────

    def compile(self) -> CommandDocument:
        """Compile the definition and leave BUILDING.

        A COMPILED definition recompiles to an equal document; a FAILED one
        raises the same CompilationError again.

        Raises:
            CompilationError: Every defect found, aggregated.
        """
        if self._failure is not None:
            raise self._failure
        try:
            document = compile_command(
                self._id,
                self._rules,
                self._guidelines,
                self._store,
                description=self._description,
            )
        except CompilationError as error:
            self._state = DefinitionState.FAILED
            self._failure = error
            raise
        self._state = DefinitionState.COMPILED
        self._document = document
        return document

    # ── Private Helpers ───────────────────────────────────────────────────────

    def _ensure_building(self) -> None:
        if self._state is not DefinitionState.BUILDING:
            raise DefinitionStateError(
                f"Command {self._id!r} is {self._state.value}; it can no longer be "
                "modified. Build a fresh definition to change it."
            )

    def __repr__(self) -> str:
        return (
            f"CommandDefinition({self._id!r}, state={self._state.value}, "
            f"rules={len(self._rules)}, guidelines={len(self._guidelines)})"
        )


# ─── Environment Instructions ─────────────────────────────────────────────────


def env_prefix(command_id: str) -> str:
    """Environment prefix for a command: upper case, non-alphanumerics as '_'.

    "task:create" → "TASK_CREATE"
    """
    return re.sub(r"[^A-Z0-9]+", "_", command_id.upper()).strip("_")


def is_disabled(command_id: str, environ: Mapping[str, str] | None = None) -> bool:
    """True when <PREFIX>_DISABLE is set to a non-empty, non-false value."""
    env = os.environ if environ is None else environ
    value = env.get(f"{env_prefix(command_id)}_DISABLE", "")
    return value.strip().lower() not in ("", "0", "false", "no")


def load_env_instructions(
    definition: CommandDefinition,
    prefix: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[int, int]:
    """Append env-supplied rules and guidelines to definition.

    <PREFIX>_RULE_0, _RULE_1, ... become critical rules special-rule-<i>;
    <PREFIX>_GUIDELINE_0, ... become guidelines special-guideline-<i>.
    Each series stops at the first missing or empty index.

    Returns:
        (rules_added, guidelines_added)
    """
    env = os.environ if environ is None else environ
    prefix = prefix or env_prefix(definition.id)

    rules = 0
    while text := env.get(f"{prefix}_RULE_{rules}", "").strip():
        (
            definition.rule(f"special-rule-{rules}")
            .critical()
            .text(text)
            .why(ENV_RULE_WHY)
            .on_violation(ENV_RULE_ON_VIOLATION)
        )
        rules += 1

    guidelines = 0
    while text := env.get(f"{prefix}_GUIDELINE_{guidelines}", "").strip():
        definition.guideline(f"special-guideline-{guidelines}").text(text)
        guidelines += 1

    if rules or guidelines:
        logger.info(
            "%s: %d env rule(s), %d env guideline(s) from %s_*",
            definition.id,
            rules,
            guidelines,
            prefix,
        )
    return rules, guidelines


# ─── Registry ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RegisteredCommand:
    command_id: str
    description: str
    routine: CommandRoutine
    externals: tuple[str, ...] = ()


_REGISTRY: dict[str, RegisteredCommand] = {}


def command(
    command_id: str,
    *,
    description: str = "",
    externals: Iterable[str] = (),
) -> Callable[[CommandRoutine], CommandRoutine]:
    """Decorator registering a definition routine under command_id.

    Raises:
        ValueError: command_id is already registered.
    """

    def decorator(routine: CommandRoutine) -> CommandRoutine:
        if command_id in _REGISTRY:
            raise ValueError(f"Command {command_id!r} is already registered.")
        _REGISTRY[command_id] = RegisteredCommand(
            command_id, description, routine, tuple(externals)
        )
        return routine

    return decorator


def registered_commands() -> list[str]:
    """Registered command ids, sorted."""
    return sorted(_REGISTRY)


def get_command(command_id: str) -> RegisteredCommand:
    """Raises KeyError (listing the known ids) for an unknown command."""
    try:
        return _REGISTRY[command_id]
    except KeyError:
        known = ", ".join(registered_commands()) or "(none)"
        raise KeyError(f"Unknown command {command_id!r}. Registered: {known}") from None


def build_command(
    command_id: str,
    *,
    environ: Mapping[str, str] | None = None,
    variables: Mapping[str, Any] | None = None,
) -> CommandDefinition:
    """Build a fresh, still-BUILDING definition of a registered command.

    Order: the routine, then env instructions (when environ is given), then
    variables, which override anything the routine declared.
    """
    entry = get_command(command_id)
    definition = CommandDefinition(
        entry.command_id,
        description=entry.description,
        externals=entry.externals,
    )
    entry.routine(definition)
    if environ is not None:
        load_env_instructions(definition, environ=environ)
    if variables:
        definition.apply_variables(variables)
    return definition
