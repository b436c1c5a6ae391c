"""Output renderers for a compiled CommandDocument.

    md   — Jinja2 template (templates/command.md.j2), StrictUndefined
    xml  — hand-laid XML, escaped with xml.sax.saxutils
    json — CommandDocument.to_dict(), 2-space indent
    yaml — CommandDocument.to_dict() through yaml.safe_dump, key order kept

Every renderer is pure; the same document always renders to the same text.
"""

from __future__ import annotations

import json
import pathlib
from typing import Callable
from xml.sax.saxutils import escape as xml_escape

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from brain_command.types import CommandDocument

_TEMPLATES_DIR = pathlib.Path(__file__).parent / "templates"
_QUOT = {'"': "&quot;"}


def _environment(template_dir: pathlib.Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_markdown(
    document: CommandDocument,
    *,
    template_dir: pathlib.Path | str | None = None,
) -> str:
    """Render the fixed-layout markdown document.

    Layout: heading, optional description, "Iron Rules" (severity + statement
    + why + on violation per rule), then "Guidelines" (title, text lines,
    GOAL, phases in order). Multi-line phase text is indented under its
    list item.

    Raises:
        jinja2.UndefinedError: If the template references a missing field.
    """
    directory = pathlib.Path(template_dir) if template_dir is not None else _TEMPLATES_DIR
    template = _environment(directory).get_template("command.md.j2")
    return template.render(document=document)


def render_xml(document: CommandDocument) -> str:
    """Render the document as XML for structured prompt injection.

    Format:
        <command id="...">
          <description>...</description>
          <iron_rules>
            <rule id="..." severity="...">
              <text/><why/><on_violation/>
            </rule>
          </iron_rules>
          <guidelines>
            <guideline id="..." title="..." example="true|false">
              <text/>... <goal/> <phase key="...">...</phase>...
            </guideline>
          </guidelines>
        </command>
    """
    lines: list[str] = [f'<command id="{xml_escape(document.command_id, entities=_QUOT)}">']
    if document.description:
        lines.append(f"  <description>{xml_escape(document.description)}</description>")

    lines.append("  <iron_rules>")
    for rule in document.rules:
        lines.append(
            f'    <rule id="{xml_escape(rule.id, entities=_QUOT)}" '
            f'severity="{rule.severity.value}">'
        )
        lines.append(f"      <text>{xml_escape(rule.statement)}</text>")
        lines.append(f"      <why>{xml_escape(rule.rationale)}</why>")
        lines.append(f"      <on_violation>{xml_escape(rule.violation_action)}</on_violation>")
        lines.append("    </rule>")
    lines.append("  </iron_rules>")

    lines.append("  <guidelines>")
    for guideline in document.guidelines:
        example = "true" if guideline.example else "false"
        lines.append(
            f'    <guideline id="{xml_escape(guideline.id, entities=_QUOT)}" '
            f'title="{xml_escape(guideline.title, entities=_QUOT)}" example="{example}">'
        )
        for text in guideline.text:
            lines.append(f"      <text>{xml_escape(text)}</text>")
        if guideline.goal is not None:
            lines.append(f"      <goal>{xml_escape(guideline.goal)}</goal>")
        for phase in guideline.phases:
            lines.append(
                f'      <phase key="{xml_escape(phase.key, entities=_QUOT)}">'
                f"{xml_escape(phase.text)}</phase>"
            )
        lines.append("    </guideline>")
    lines.append("  </guidelines>")
    lines.append("</command>")
    return "\n".join(lines) + "\n"


def render_json(document: CommandDocument) -> str:
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"


def render_yaml(document: CommandDocument) -> str:
    return yaml.safe_dump(
        document.to_dict(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


RENDERERS: dict[str, Callable[[CommandDocument], str]] = {
    "md": render_markdown,
    "xml": render_xml,
    "json": render_json,
    "yaml": render_yaml,
}


def render(document: CommandDocument, fmt: str = "md") -> str:
    """Render document in one of the RENDERERS formats.

    Raises:
        ValueError: Unknown format.
    """
    try:
        renderer = RENDERERS[fmt]
    except KeyError:
        raise ValueError(
            f"Unknown output format {fmt!r}. Choose one of: {', '.join(RENDERERS)}."
        ) from None
    return renderer(document)
