"""Tests for brain_command.guidelines — the Guideline Builder.

BDD Acceptance Criteria:
    AC-G1: Given phases added in order, when read back, then their order is
           the declaration order.
    AC-G2: Given phase keys [p1, p2, p1], when the second p1 is added, then
           DuplicatePhaseKeyError is raised; keys may repeat across guidelines.
    AC-G3: Given phase(value) without a key, when added, then the key is the
           1-based position and marked automatic.
    AC-G4: Given no explicit title, when read, then the title is the id with
           '-' and '_' shown as spaces.
"""

from __future__ import annotations

import pytest

from brain_command.errors import DuplicatePhaseKeyError
from brain_command.guidelines import GuidelineHandle, Phase, PhaseHandle
from brain_command.operators import skip


class TestPhaseOrder:
    """AC-G1"""

    def test_phases_keep_declaration_order(self) -> None:
        guideline = GuidelineHandle("workflow")
        guideline.phase("parse", "a").phase("research", "b").phase("create", "c")
        assert [p.key for p in guideline.phases] == ["parse", "research", "create"]
        assert [p.value for p in guideline.phases] == ["a", "b", "c"]

    def test_phase_returns_handle(self) -> None:
        guideline = GuidelineHandle("workflow")
        handle = guideline.phase("parse", "a")
        assert isinstance(handle, PhaseHandle)
        assert handle.guideline is guideline
        assert handle.key_name == "parse"
        assert handle.value == "a"

    def test_phase_value_may_be_descriptor(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("s", skip("nothing to do"))
        assert guideline.phases[0] == Phase("s", skip("nothing to do"), True)


class TestPhaseKeys:
    """AC-G2"""

    def test_duplicate_key_rejected(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("p1", "a")
        guideline.phase("p2", "b")
        with pytest.raises(DuplicatePhaseKeyError) as exc_info:
            guideline.phase("p1", "c")
        assert exc_info.value.guideline_id == "g"
        assert exc_info.value.key == "p1"
        assert len(guideline.phases) == 2

    def test_same_key_in_other_guideline_allowed(self) -> None:
        GuidelineHandle("a").phase("step", "x")
        GuidelineHandle("b").phase("step", "y")

    def test_rekey_via_handle(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("first").key("parse")
        assert guideline.phases[0].key == "parse"
        assert guideline.phases[0].explicit_key is True

    def test_rekey_collision_rejected(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("a", "1")
        handle = guideline.phase("b", "2")
        with pytest.raises(DuplicatePhaseKeyError):
            handle.key("a")

    def test_rekey_to_same_key_is_noop(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("a", "1").key("a")
        assert [p.key for p in guideline.phases] == ["a"]

    def test_non_string_key_rejected(self) -> None:
        with pytest.raises(TypeError):
            GuidelineHandle("g").phase(3, "x")


class TestAutomaticKeys:
    """AC-G3"""

    def test_single_argument_is_value(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("Read the input").phase("Write the output")
        assert [(p.key, p.value, p.explicit_key) for p in guideline.phases] == [
            ("1", "Read the input", False),
            ("2", "Write the output", False),
        ]

    def test_auto_key_counts_all_phases(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("named", "x")
        guideline.phase("y")
        assert guideline.phases[1].key == "2"

    def test_explicit_key_colliding_with_auto_key(self) -> None:
        guideline = GuidelineHandle("g")
        guideline.phase("x")
        with pytest.raises(DuplicatePhaseKeyError):
            guideline.phase("1", "y")

    def test_phase_without_arguments_rejected(self) -> None:
        with pytest.raises(ValueError):
            GuidelineHandle("g").phase()

    def test_explicit_key_with_none_value_rejected(self) -> None:
        """phase("parse", None) must not turn "parse" into the value."""
        guideline = GuidelineHandle("g")
        with pytest.raises(ValueError, match="'parse'"):
            guideline.phase("parse", None)
        assert guideline.phases == ()


class TestGuidelineFields:
    """AC-G4 and the remaining builder fields."""

    def test_default_title(self) -> None:
        assert GuidelineHandle("error-handling_flow").title == "error handling flow"

    def test_explicit_title(self) -> None:
        assert GuidelineHandle("g").titled("Workflow").title == "Workflow"

    def test_text_goal_example(self) -> None:
        guideline = GuidelineHandle("g").text("line one").text(["two", "words"]).goal("Do it").example()
        assert guideline.text_values == ("line one", "two words")
        assert guideline.goal_value == "Do it"
        assert guideline.is_example is True

    def test_empty_until_text_or_phase(self) -> None:
        guideline = GuidelineHandle("g").goal("only a goal")
        assert guideline.is_empty
        guideline.phase("x")
        assert not guideline.is_empty

    def test_guard_runs_on_every_mutation(self) -> None:
        calls: list[int] = []
        guideline = GuidelineHandle("g", guard=lambda: calls.append(1))
        guideline.text("t").goal("g").example().titled("T")
        guideline.phase("a", "1").key("b")
        assert len(calls) == 6
