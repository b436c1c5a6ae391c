"""Shared pytest fixtures and helpers for the brain_command test suite.

Provides:
- Module-level helper functions importable directly by any test module.
- pytest fixtures for common definition/store setups.
- Module-level _COMMAND_FIXTURE singleton for YAML-driven parametrized tests.

Module-level helpers (import directly):
    define_release_check(definition) — Python form of fixtures/release_check.yaml.
    complete_rule(definition, rule_id, severity) — add a fully populated rule.

pytest fixtures:
    store             — fresh ValueStore with ARGUMENTS registered as external.
    definition        — fresh CommandDefinition "test:command" in BUILDING.
    release_check     — definition filled by define_release_check().
    command_fixture   — CommandFixture singleton.
    isolated_registry — registry snapshot restored after the test.
"""

from __future__ import annotations

import pytest

from brain_command import definition as definition_module
from brain_command.definition import CommandDefinition
from brain_command.operators import abort, if_then_else, validate
from brain_command.rules import RuleHandle
from brain_command.store import ValueStore
from brain_command.tools import agent_call, mcp_call
from brain_command.types import Severity

# Import after production imports so PYTHONPATH=scripts:tests resolves fixtures/
from fixtures.fixture_loader import CommandFixture


# ─── Command Fixture Singleton ────────────────────────────────────────────────
# Loaded once at import time; parametrize decorators read it directly.

_COMMAND_FIXTURE = CommandFixture()


# ─── Module-Level Helpers ─────────────────────────────────────────────────────


def complete_rule(
    definition: CommandDefinition,
    rule_id: str,
    severity: Severity = Severity.HIGH,
) -> RuleHandle:
    """Register a rule with every required field set."""
    return (
        definition.rule(rule_id)
        .severity_level(severity)
        .text(f"{rule_id} statement")
        .why(f"{rule_id} rationale")
        .on_violation(f"{rule_id} remedy")
    )


def define_release_check(definition: CommandDefinition) -> None:
    """Python form of tests/fixtures/release_check.yaml. Keep the two in sync."""
    store = definition.store
    (
        definition.rule("verify-first").high()
        .text("Run the test suite before tagging.")
        .why("A tag marks a known-good state.")
        .on_violation("Delete the tag and re-run the checks.")
    )
    (
        definition.rule("never-push").critical()
        .text("NEVER push tags without approval.")
        .why("Tags trigger the publish pipeline.")
        .on_violation("STOP. Ask the user.")
    )
    workflow = definition.guideline("workflow").goal("Check release {VERSION}")
    workflow.phase("read", store.declare("VERSION", "{ARGUMENTS}"))
    workflow.phase("Run the test suite")
    workflow.phase(if_then_else("tests fail", abort("Tests failed")))
    workflow.phase(
        validate(["changelog updated", "version bumped"], "Ask the user to fix the release notes")
    )
    workflow.phase(agent_call("explore", "Compare {VERSION} with the previous tag"))
    workflow.phase(
        mcp_call(
            "vector-memory",
            "store_memory",
            {"content": "Checked {VERSION}", "category": "release"},
        )
    )
    definition.guideline("notes").text("Keep the check read-only.")


def new_release_check() -> CommandDefinition:
    definition = CommandDefinition(
        "release:check",
        description="Verify a release before tagging it.",
        externals=["ARGUMENTS"],
    )
    define_release_check(definition)
    return definition


# ─── pytest Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def store() -> ValueStore:
    return ValueStore(externals=["ARGUMENTS"])


@pytest.fixture
def definition() -> CommandDefinition:
    return CommandDefinition("test:command", externals=["ARGUMENTS"])


@pytest.fixture
def release_check() -> CommandDefinition:
    return new_release_check()


@pytest.fixture
def command_fixture() -> CommandFixture:
    return _COMMAND_FIXTURE


@pytest.fixture
def isolated_registry():
    """Let a test register commands without leaking them into other tests."""
    saved = dict(definition_module._REGISTRY)
    try:
        yield definition_module._REGISTRY
    finally:
        definition_module._REGISTRY.clear()
        definition_module._REGISTRY.update(saved)
