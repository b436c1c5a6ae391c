"""YAML command definitions.

A YAML file describes the same command a Python routine would build, and
load_definition() replays it through the same builders, so both forms compile
to identical documents.

    id: task:create
    description: Create tasks, never execute them.
    externals: [ARGUMENTS]
    rules:
      - id: create-only
        severity: critical
        text: This command ONLY creates tasks.
        why: The user decides when work starts.
        on_violation: STOP. Return control to the user.
    guidelines:
      - id: workflow
        goal: Create a task from {TASK_DESCRIPTION}
        example: true
        phases:
          - Read the request                       # automatic key
          - key: parse                             # explicit key
            value: {store: TASK_DESCRIPTION, value: "{ARGUMENTS}"}
          - if: "{IS_SIMPLE}"                      # bare tagged value
            then: Create directly
            else: [Research, Decompose]

Tagged values (exactly one tag per mapping):
    store/value, get, if/then/else, validate/fails, sequence, skip, task,
    foreach/do, note, abort, output, verify, input, context, report, check,
    scenario, parallel, return, continue, break, agent/instruction,
    mcp/method/args

    continue and break take no value: ``- continue: ~``. parallel takes a
    list of tasks or a mapping of label to task.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Callable, Mapping

import yaml

from brain_command import operators, tools
from brain_command.definition import CommandDefinition
from brain_command.errors import BrainCommandError, DefinitionLoadError
from brain_command.types import Severity

logger = logging.getLogger(__name__)

_TOP_LEVEL_KEYS = frozenset({"id", "description", "externals", "rules", "guidelines"})
_RULE_KEYS = frozenset({"id", "severity", "text", "why", "on_violation"})
_GUIDELINE_KEYS = frozenset({"id", "title", "text", "goal", "example", "phases"})
_PHASE_KEYS = frozenset({"key", "value"})

# tag → every key allowed next to it
_TAGS: dict[str, frozenset[str]] = {
    "store": frozenset({"store", "value"}),
    "get": frozenset({"get"}),
    "if": frozenset({"if", "then", "else"}),
    "validate": frozenset({"validate", "fails"}),
    "sequence": frozenset({"sequence"}),
    "skip": frozenset({"skip"}),
    "task": frozenset({"task"}),
    "foreach": frozenset({"foreach", "do"}),
    "note": frozenset({"note"}),
    "abort": frozenset({"abort"}),
    "output": frozenset({"output"}),
    "verify": frozenset({"verify"}),
    "input": frozenset({"input"}),
    "context": frozenset({"context"}),
    "report": frozenset({"report"}),
    "check": frozenset({"check"}),
    "scenario": frozenset({"scenario"}),
    "parallel": frozenset({"parallel"}),
    "return": frozenset({"return"}),
    "continue": frozenset({"continue"}),
    "break": frozenset({"break"}),
    "agent": frozenset({"agent", "instruction"}),
    "mcp": frozenset({"mcp", "method", "args"}),
}

_SCALARS = (str, int, float, bool)

_DIRECTIVES: dict[str, Callable[..., operators.Directive]] = {
    "output": operators.output,
    "verify": operators.verify,
    "input": operators.input_,
    "context": operators.context,
    "report": operators.report,
    "check": operators.check,
    "scenario": operators.scenario,
}


class _Loader:
    """Walks one parsed document, tracking the path for error messages."""

    def __init__(self, data: Any, source: str | None) -> None:
        self._data = data
        self._source = source
        self._definition: CommandDefinition | None = None

    def fail(self, where: str, message: str) -> DefinitionLoadError:
        return DefinitionLoadError(where, message, source=self._source)

    # ── Document ──────────────────────────────────────────────────────────────

    def load(self) -> CommandDefinition:
        data = self._mapping(self._data, "document", _TOP_LEVEL_KEYS)
        command_id = self._string(data.get("id"), "id")
        externals = data.get("externals") or []
        if not isinstance(externals, list) or not all(isinstance(e, str) for e in externals):
            raise self.fail("externals", "expected a list of symbol names")

        try:
            definition = CommandDefinition(
                command_id,
                description=self._optional_string(data.get("description"), "description") or "",
                externals=externals,
            )
        except ValueError as error:
            raise self.fail("externals", str(error)) from error
        self._definition = definition

        for index, rule in enumerate(self._list(data.get("rules"), "rules")):
            self._rule(rule, f"rules[{index}]")
        for index, guideline in enumerate(self._list(data.get("guidelines"), "guidelines")):
            self._guideline(guideline, f"guidelines[{index}]")

        logger.debug(
            "loaded %s from %s: %d rule(s), %d guideline(s)",
            definition.id,
            self._source or "<mapping>",
            len(definition.rules),
            len(definition.guidelines),
        )
        return definition

    def _rule(self, node: Any, where: str) -> None:
        rule_node = self._mapping(node, where, _RULE_KEYS)
        rule_id = self._string(rule_node.get("id"), f"{where}.id")
        handle = self._build(where, lambda: self._require().rule(rule_id))

        if "severity" in rule_node:
            severity = rule_node["severity"]
            try:
                handle.severity_level(Severity(str(severity).lower()))
            except ValueError:
                choices = ", ".join(s.value for s in Severity)
                raise self.fail(
                    f"{where}.severity", f"unknown severity {severity!r} (choose: {choices})"
                ) from None
        if "text" in rule_node:
            handle.text(self._text(rule_node["text"], f"{where}.text"))
        if "why" in rule_node:
            handle.why(self._text(rule_node["why"], f"{where}.why"))
        if "on_violation" in rule_node:
            handle.on_violation(self._text(rule_node["on_violation"], f"{where}.on_violation"))

    def _guideline(self, node: Any, where: str) -> None:
        guideline_node = self._mapping(node, where, _GUIDELINE_KEYS)
        guideline_id = self._string(guideline_node.get("id"), f"{where}.id")
        handle = self._build(where, lambda: self._require().guideline(guideline_id))

        if "title" in guideline_node:
            handle.titled(self._string(guideline_node["title"], f"{where}.title"))
        text = guideline_node.get("text")
        lines = text if isinstance(text, list) else ([] if text is None else [text])
        for number, line in enumerate(lines):
            handle.text(self._value(line, f"{where}.text[{number}]"))
        if "goal" in guideline_node:
            handle.goal(self._value(guideline_node["goal"], f"{where}.goal"))
        if guideline_node.get("example"):
            handle.example()

        for index, phase in enumerate(self._list(guideline_node.get("phases"), f"{where}.phases")):
            phase_where = f"{where}.phases[{index}]"
            if isinstance(phase, dict) and "key" in phase:
                keyed = self._mapping(phase, phase_where, _PHASE_KEYS)
                if keyed.get("value") is None:
                    raise self.fail(phase_where, "keyed phase needs a non-null 'value'")
                key = self._string(keyed["key"], f"{phase_where}.key")
                value = self._value(keyed["value"], f"{phase_where}.value")
                self._build(phase_where, lambda: handle.phase(key, value))
            else:
                value = self._value(phase, phase_where)
                self._build(phase_where, lambda: handle.phase(value))

    # ── Values ────────────────────────────────────────────────────────────────

    def _value(self, node: Any, where: str) -> Any:
        if node is None or isinstance(node, _SCALARS):
            return node
        if isinstance(node, list):
            return [self._value(item, f"{where}[{i}]") for i, item in enumerate(node)]
        if not isinstance(node, dict):
            raise self.fail(where, f"unsupported value of type {type(node).__name__}")

        tags = [key for key in node if key in _TAGS]
        if len(tags) != 1:
            known = ", ".join(_TAGS)
            found = ", ".join(map(str, node)) or "(empty)"
            raise self.fail(where, f"expected exactly one of: {known}; got keys {found}")
        tag = tags[0]
        self._mapping(node, where, _TAGS[tag])
        return self._tagged(tag, node, where)

    def _tagged(self, tag: str, node: dict[str, Any], where: str) -> Any:
        at = f"{where}.{tag}"
        definition = self._require()
        if tag == "store":
            name = self._string(node["store"], at)
            value = self._value(node.get("value"), f"{where}.value")
            return self._build(at, lambda: definition.store.declare(name, value))
        if tag == "get":
            name = self._string(node["get"], at)
            return self._build(at, lambda: definition.store.get(name))
        if tag == "if":
            if "then" not in node:
                raise self.fail(where, "'if' needs a 'then'")
            return operators.if_then_else(
                self._value(node["if"], at),
                self._value(node["then"], f"{where}.then"),
                self._value(node.get("else"), f"{where}.else"),
            )
        if tag == "validate":
            return operators.validate(
                self._value(node["validate"], at),
                self._value(node.get("fails"), f"{where}.fails"),
            )
        if tag == "sequence":
            return operators.sequence(*self._items(node["sequence"], at))
        if tag == "skip":
            return operators.skip(self._value(node["skip"], at))
        if tag == "task":
            return operators.task_ref(*self._items(node["task"], at))
        if tag == "foreach":
            if "do" not in node:
                raise self.fail(where, "'foreach' needs a 'do'")
            return operators.for_each(
                self._value(node["foreach"], at),
                self._value(node["do"], f"{where}.do"),
            )
        if tag == "note":
            return operators.note(self._value(node["note"], at))
        if tag == "abort":
            return operators.abort(self._value(node["abort"], at) or "")
        if tag in _DIRECTIVES:
            return _DIRECTIVES[tag](*self._items(node[tag], at))
        if tag == "parallel":
            tasks = node["parallel"]
            if isinstance(tasks, dict):
                tasks = {
                    str(label): self._value(task, f"{at}.{label}")
                    for label, task in tasks.items()
                }
            else:
                tasks = self._value(tasks, at)
            return self._build(at, lambda: operators.parallel(tasks))
        if tag == "return":
            return operators.return_(self._value(node["return"], at) or "")
        if tag in ("continue", "break"):
            if node[tag] is not None:
                raise self.fail(at, f"'{tag}' takes no value")
            return operators.continue_() if tag == "continue" else operators.break_()
        if tag == "agent":
            name = self._string(node["agent"], at)
            instruction = self._optional_string(node.get("instruction"), f"{where}.instruction")
            return self._build(at, lambda: tools.agent_call(name, instruction or ""))
        # mcp
        service = self._string(node["mcp"], at)
        method = self._string(node.get("method"), f"{where}.method")
        args = node.get("args")
        if args is not None and not isinstance(args, (str, dict)):
            raise self.fail(f"{where}.args", "expected a mapping or a template string")
        return self._build(at, lambda: tools.mcp_call(service, method, args))

    def _items(self, node: Any, where: str) -> list[Any]:
        values = self._value(node, where)
        return values if isinstance(values, list) else [values]

    # ── Node Helpers ──────────────────────────────────────────────────────────

    def _require(self) -> CommandDefinition:
        if self._definition is None:
            raise RuntimeError("definition not created yet")
        return self._definition

    def _build(self, where: str, step: Callable[[], Any]) -> Any:
        """Run a builder call; builder errors become located load errors."""
        try:
            return step()
        except (BrainCommandError, ValueError, TypeError) as error:
            raise self.fail(where, str(error)) from error

    def _mapping(self, node: Any, where: str, allowed: frozenset[str]) -> dict[str, Any]:
        if not isinstance(node, dict):
            raise self.fail(where, f"expected a mapping, got {type(node).__name__}")
        unknown = sorted(str(key) for key in node if key not in allowed)
        if unknown:
            raise self.fail(where, f"unknown key(s): {', '.join(unknown)}")
        return node

    def _list(self, node: Any, where: str) -> list[Any]:
        if node is None:
            return []
        if not isinstance(node, list):
            raise self.fail(where, f"expected a list, got {type(node).__name__}")
        return node

    def _string(self, node: Any, where: str) -> str:
        if not isinstance(node, str) or not node.strip():
            raise self.fail(where, "expected a non-empty string")
        return node

    def _optional_string(self, node: Any, where: str) -> str | None:
        if node is None:
            return None
        return self._string(node, where)

    def _text(self, node: Any, where: str) -> str | list[str]:
        if isinstance(node, list) and all(isinstance(item, str) for item in node):
            return node
        return self._string(node, where)


def load_definition(
    source: str | pathlib.Path | Mapping[str, Any],
) -> CommandDefinition:
    """Build a CommandDefinition from a YAML file or an already-parsed mapping.

    Returns a definition still in BUILDING; call compile() on it.

    Raises:
        DefinitionLoadError: unreadable file, invalid YAML, or a malformed node.
    """
    if isinstance(source, Mapping):
        return _Loader(dict(source), None).load()

    path = pathlib.Path(source)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as error:
        raise DefinitionLoadError("document", f"cannot read file: {error}", str(path)) from error
    except yaml.YAMLError as error:
        raise DefinitionLoadError("document", f"invalid YAML: {error}", str(path)) from error
    return _Loader(data, str(path)).load()
