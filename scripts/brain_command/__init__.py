"""brain_command — declarative rule/workflow engine for agent commands — public API.

A command definition registers rules and guidelines through fluent builders;
symbols bound in a Value Store let later phases reference values named by
earlier ones; control-flow operators and tool calls are recorded as inert
data; the compiler assembles one ordered, deterministic document for an
external agent runtime.

Public API (re-exported from submodules):

Enums (from types.py):
    Severity         — critical, high, medium, low (presentation order)
    DefinitionState  — building, compiled, failed
    ToolKind         — agent, mcp

Frozen Dataclasses (from types.py):
    RenderedRule, RenderedPhase, RenderedGuideline, CommandDocument

Value Store (from store.py):
    ValueStore, Symbol, SymbolReference, var(name), normalize_name(name)

Operators (from operators.py):
    if_then_else, validate, sequence, skip, task_ref, for_each, note, abort,
    output, verify, input_, context, report, check, scenario, parallel,
    return_, continue_, break_

Tool References (from tools.py):
    ToolReference, agent_call(name, instruction), mcp_call(service, method, args)

Builders:
    RuleHandle (rules.py), GuidelineHandle / PhaseHandle (guidelines.py)

Definition & Registry (from definition.py):
    CommandDefinition  — rule(), guideline(), store, compile()
    command(id)        — decorator registering a definition routine
    build_command(id)  — fresh definition of a registered command
    registered_commands(), load_env_instructions(), is_disabled(), env_prefix()

Compiler & Renderers:
    compile_command (compiler.py); render, render_markdown, render_xml,
    render_json, render_yaml (render.py)

YAML (from loader.py):
    load_definition(path_or_mapping)

Errors (from errors.py):
    BrainCommandError and its subclasses.
"""

from brain_command.compiler import compile_command
from brain_command.definition import (
    CommandDefinition,
    build_command,
    command,
    env_prefix,
    is_disabled,
    load_env_instructions,
    registered_commands,
)
from brain_command.errors import (
    BrainCommandError,
    CompilationError,
    CyclicReferenceError,
    DefinitionLoadError,
    DefinitionStateError,
    DuplicateGuidelineIdError,
    DuplicatePhaseKeyError,
    DuplicateRuleIdError,
    EmptyGuidelineError,
    IncompleteRuleError,
    UnknownReferenceError,
)
from brain_command.guidelines import GuidelineHandle, PhaseHandle
from brain_command.loader import load_definition
from brain_command.operators import (
    abort,
    break_,
    check,
    context,
    continue_,
    for_each,
    if_then_else,
    input_,
    note,
    output,
    parallel,
    report,
    return_,
    scenario,
    sequence,
    skip,
    task_ref,
    validate,
    verify,
)
from brain_command.render import (
    render,
    render_json,
    render_markdown,
    render_xml,
    render_yaml,
)
from brain_command.rules import RuleHandle
from brain_command.store import Symbol, SymbolReference, ValueStore, normalize_name, var
from brain_command.tools import ToolReference, agent_call, mcp_call
from brain_command.types import (
    CommandDocument,
    DefinitionState,
    RenderedGuideline,
    RenderedPhase,
    RenderedRule,
    Severity,
    ToolKind,
)

# Registers the built-in commands; must follow the definition imports.
from brain_command import commands  # noqa: E402,F401

__all__ = [
    # Enums
    "Severity",
    "DefinitionState",
    "ToolKind",
    # Frozen dataclasses
    "RenderedRule",
    "RenderedPhase",
    "RenderedGuideline",
    "CommandDocument",
    # Value Store
    "ValueStore",
    "Symbol",
    "SymbolReference",
    "var",
    "normalize_name",
    # Operators
    "if_then_else",
    "validate",
    "sequence",
    "skip",
    "task_ref",
    "for_each",
    "note",
    "abort",
    "output",
    "verify",
    "input_",
    "context",
    "report",
    "check",
    "scenario",
    "parallel",
    "return_",
    "continue_",
    "break_",
    # Tool references
    "ToolReference",
    "agent_call",
    "mcp_call",
    # Builders
    "RuleHandle",
    "GuidelineHandle",
    "PhaseHandle",
    # Definition & registry
    "CommandDefinition",
    "command",
    "build_command",
    "registered_commands",
    "load_env_instructions",
    "is_disabled",
    "env_prefix",
    # Compiler & renderers
    "compile_command",
    "render",
    "render_markdown",
    "render_xml",
    "render_json",
    "render_yaml",
    # YAML
    "load_definition",
    # Errors
    "BrainCommandError",
    "CompilationError",
    "CyclicReferenceError",
    "DefinitionLoadError",
    "DefinitionStateError",
    "DuplicateGuidelineIdError",
    "DuplicatePhaseKeyError",
    "DuplicateRuleIdError",
    "EmptyGuidelineError",
    "IncompleteRuleError",
    "UnknownReferenceError",
]
