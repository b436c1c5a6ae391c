"""Tool Reference Builder: inert "invoke external capability" descriptors.

A ToolReference names a target (an agent, or an MCP service method) and an
argument template. Nothing is invoked and targets are not validated; binding
a name to a real capability is the host runtime's job.

Serialized form is ``<target>: <payload>``:
    agent_call("explore", "Scan {DOMAIN}")
        → [DELEGATE] @agent-explore: 'Scan <resolved DOMAIN>'
    mcp_call("vector-memory", "search_memories", {"query": "{DOMAIN}", "limit": 3})
        → mcp__vector-memory__search_memories: {"query": "<resolved>", "limit": 3}

Symbol markers in the payload are substituted at render time. A mapping
payload keeps its structure until then: each string leaf is substituted on
its own and the result is JSON-encoded, so quotes, backslashes and newlines
in symbol values stay valid JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

from brain_command.store import ValueStore
from brain_command.types import ToolKind

_AGENT_PREFIX = "@agent-"


@dataclass(frozen=True)
class ArgumentMap:
    """Hashable, ordered stand-in for a JSON object in MCP arguments."""

    pairs: tuple[tuple[str, Any], ...]

    @classmethod
    def of(cls, mapping: Mapping[str, Any]) -> ArgumentMap:
        return cls(tuple((str(key), _freeze(item)) for key, item in mapping.items()))

    def resolve(self, store: ValueStore) -> dict[str, Any]:
        """Rebuild the mapping with every string leaf substituted."""
        return {key: _thaw(item, store) for key, item in self.pairs}


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return ArgumentMap.of(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any, store: ValueStore) -> Any:
    if isinstance(value, ArgumentMap):
        return value.resolve(store)
    if isinstance(value, tuple):
        return [_thaw(item, store) for item in value]
    if isinstance(value, (bool, int, float)) or value is None:
        return value
    return store.render_value(value)


@dataclass(frozen=True)
class ToolReference:
    kind: ToolKind
    target_name: str
    argument_template: str
    method_name: str | None = None
    arguments: ArgumentMap | None = None

    @property
    def target(self) -> str:
        if self.kind is ToolKind.AGENT:
            return f"[DELEGATE] {_AGENT_PREFIX}{self.target_name}"
        return f"mcp__{self.target_name}__{self.method_name}"

    def render(self, store: ValueStore) -> str:
        if self.arguments is not None:
            payload = json.dumps(self.arguments.resolve(store), ensure_ascii=False)
            return f"{self.target}: {payload}"
        if not self.argument_template:
            return self.target
        payload = store.interpolate(self.argument_template)
        if self.kind is ToolKind.AGENT:
            payload = f"'{payload}'"
        return f"{self.target}: {payload}"


def _collapse(template: str) -> str:
    # Multi-line templates are written indented in definitions; the document
    # wants them on one line.
    return " ".join(template.split())


def agent_call(target_name: str, instruction_text: str = "") -> ToolReference:
    """Reference a delegation to a named agent."""
    name = target_name.strip()
    if name.startswith(_AGENT_PREFIX):
        name = name[len(_AGENT_PREFIX):]
    if not name:
        raise ValueError("agent_call() requires a non-empty target name.")
    return ToolReference(
        kind=ToolKind.AGENT,
        target_name=name,
        argument_template=_collapse(instruction_text),
    )


def mcp_call(
    service_name: str,
    method_name: str,
    json_arg_template: str | Mapping[str, Any] | None = None,
) -> ToolReference:
    """Reference a call to an MCP service method.

    json_arg_template may be a template string or a mapping; a mapping is
    JSON-encoded in insertion order at render time so the output is stable.
    argument_template then holds the unsubstituted JSON for inspection.
    """
    if not service_name.strip() or not method_name.strip():
        raise ValueError("mcp_call() requires a service name and a method name.")
    arguments = None
    if json_arg_template is None:
        template = "{}"
    elif isinstance(json_arg_template, str):
        template = _collapse(json_arg_template)
    else:
        template = json.dumps(dict(json_arg_template), ensure_ascii=False, default=str)
        arguments = ArgumentMap.of(json_arg_template)
    return ToolReference(
        kind=ToolKind.MCP,
        target_name=service_name.strip(),
        argument_template=template,
        method_name=method_name.strip(),
        arguments=arguments,
    )
