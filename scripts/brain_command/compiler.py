"""Compiler: assembles rules, guidelines and the store into a CommandDocument.

Pure and deterministic: the same declarations in the same order always yield
a byte-identical document. The compiler never stops at the first defect; every
IncompleteRuleError, EmptyGuidelineError, UnknownReferenceError and
CyclicReferenceError found in one pass is raised together as a
CompilationError, each naming the rule/guideline/phase it came from.

Algorithm:
    1. Build every rule; order by severity (stable, so declaration order holds
       within one severity).
    2. For each guideline in declaration order render text lines, goal and
       phases, substituting symbols through the store.
    3. Rules section first, Guidelines section second; markdown text via
       render.render_markdown().
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Sequence

from brain_command.errors import (
    BrainCommandError,
    CompilationError,
    EmptyGuidelineError,
    IncompleteRuleError,
    ResolutionError,
)
from brain_command.guidelines import GuidelineHandle
from brain_command.render import render_markdown
from brain_command.rules import RuleHandle
from brain_command.store import ValueStore
from brain_command.types import (
    CommandDocument,
    RenderedGuideline,
    RenderedPhase,
    RenderedRule,
)

logger = logging.getLogger(__name__)


def _render(
    store: ValueStore,
    value: Any,
    location: str,
    errors: list[BrainCommandError],
) -> str:
    text, found = store.render_checked(value)
    for error in found:
        errors.append(error.at(location) if isinstance(error, ResolutionError) else error)
    return text


def _compile_rules(
    rules: Sequence[RuleHandle],
    errors: list[BrainCommandError],
) -> tuple[RenderedRule, ...]:
    built: list[RenderedRule] = []
    for rule in rules:
        try:
            built.append(rule.build())
        except IncompleteRuleError as error:
            errors.append(error)
    return tuple(sorted(built, key=lambda r: r.severity.rank))


def _compile_guideline(
    guideline: GuidelineHandle,
    store: ValueStore,
    errors: list[BrainCommandError],
) -> RenderedGuideline:
    where = f"guideline {guideline.id!r}"
    text = tuple(
        _render(store, value, f"{where} text line {number}", errors)
        for number, value in enumerate(guideline.text_values, start=1)
    )
    goal = None
    if guideline.goal_value is not None:
        goal = _render(store, guideline.goal_value, f"{where} goal", errors)
    phases = tuple(
        RenderedPhase(
            key=phase.key,
            text=_render(store, phase.value, f"{where} phase {phase.key!r}", errors),
            explicit_key=phase.explicit_key,
        )
        for phase in guideline.phases
    )
    return RenderedGuideline(
        id=guideline.id,
        title=guideline.title,
        text=text,
        goal=goal,
        example=guideline.is_example,
        phases=phases,
    )


def compile_command(
    command_id: str,
    rules: Sequence[RuleHandle],
    guidelines: Sequence[GuidelineHandle],
    store: ValueStore,
    *,
    description: str = "",
) -> CommandDocument:
    """Compile one command definition.

    Args:
        command_id: Identifier shown in the document heading.
        rules: Rule handles in declaration order.
        guidelines: Guideline handles in declaration order.
        store: The definition's Value Store (read-only here).
        description: Optional one-paragraph purpose shown under the heading.

    Returns:
        The immutable CommandDocument, markdown text included.

    Raises:
        CompilationError: One or more defects; .errors lists all of them.
    """
    errors: list[BrainCommandError] = []

    rendered_rules = _compile_rules(rules, errors)

    rendered_guidelines: list[RenderedGuideline] = []
    for guideline in guidelines:
        if guideline.is_empty:
            errors.append(EmptyGuidelineError(guideline.id))
            continue
        rendered_guidelines.append(_compile_guideline(guideline, store, errors))

    if errors:
        logger.debug("compilation of %s failed: %d error(s)", command_id, len(errors))
        raise CompilationError(command_id, errors)

    document = CommandDocument(
        command_id=command_id,
        description=description,
        rules=rendered_rules,
        guidelines=tuple(rendered_guidelines),
    )
    document = dataclasses.replace(document, text=render_markdown(document))
    logger.info(
        "compiled %s: %d rule(s), %d guideline(s), %d phase(s)",
        command_id,
        len(document.rules),
        len(document.guidelines),
        sum(len(g.phases) for g in document.guidelines),
    )
    return document
