"""Tests for brain_command.store — the Value Store.

BDD Acceptance Criteria:
    AC-S1: Given declare("X","5") and declare("Y","{X}-ok"), when resolve("Y")
           is called, then "5-ok" is returned (forward references included).
    AC-S2: Given a reference to an undeclared symbol, when it is resolved,
           then UnknownReferenceError names the symbol.
    AC-S3: Given A → B → A, when either is resolved, then CyclicReferenceError
           carries the loop.
    AC-S4: Given a chain deeper than MAX_RESOLVE_DEPTH, when resolved, then
           CyclicReferenceError is raised instead of recursing without bound.
    AC-S5: Given render_checked(), when the value has several defects, then all
           are returned and the markers are left verbatim.
    AC-S6: Given a Symbol used as a value, when rendered, then it is the
           STORE-AS($NAME = ...) instruction.
"""

from __future__ import annotations

import pytest

from brain_command.errors import CyclicReferenceError, ResolutionError, UnknownReferenceError
from brain_command.operators import if_then_else
from brain_command.store import (
    MAX_RESOLVE_DEPTH,
    Symbol,
    SymbolReference,
    ValueStore,
    normalize_name,
    var,
)

from conftest import _COMMAND_FIXTURE


# ─── AC-S1: Resolution ────────────────────────────────────────────────────────


class TestResolution:
    """AC-S1: resolved text substitutes every marker, recursively."""

    @pytest.mark.parametrize(
        "tc",
        [pytest.param(tc, id=tc.id) for tc in _COMMAND_FIXTURE.generate_resolution_cases()],
    )
    def test_resolution_case(self, tc) -> None:
        store = tc.build_store()
        assert store.resolve(tc.target) == tc.expected

    def test_reference_renders_resolved_text(self) -> None:
        store = ValueStore()
        store.declare("X", "5")
        assert store.render_value(store.get("X")) == "5"

    def test_reference_str_is_marker(self) -> None:
        assert str(SymbolReference("TASK_SCOPE")) == "{TASK_SCOPE}"

    def test_reference_inside_expression_list(self) -> None:
        store = ValueStore()
        store.declare("A", "left")
        store.declare("B", [store.get("A"), "right"])
        assert store.resolve("B") == "left + right"

    def test_descriptor_expression_is_rendered(self) -> None:
        store = ValueStore()
        store.declare("FLAG", "ready")
        store.declare("STEP", if_then_else("{FLAG}", "go"))
        assert store.resolve("STEP") == "IF(ready) → go"

    def test_scalars_render_in_pseudo_syntax(self) -> None:
        store = ValueStore()
        assert store.render_value(True) == "true"
        assert store.render_value(False) == "false"
        assert store.render_value(None) == "null"
        assert store.render_value(3) == "3"

    def test_mapping_renders_as_json(self) -> None:
        store = ValueStore()
        store.declare("FILTER", {"tag": "api", "limit": 3, "strict": True})
        assert store.resolve("FILTER") == '{"tag": "api", "limit": 3, "strict": true}'

    def test_reference_may_precede_declaration(self) -> None:
        store = ValueStore()
        ref = store.get("LATER")
        store.declare("LATER", "value")
        assert ref.render(store) == "value"


class TestNames:
    def test_normalize_strips_dollar_and_uppercases(self) -> None:
        assert normalize_name(" $task_scope ") == "TASK_SCOPE"

    def test_var_formats_runtime_marker(self) -> None:
        assert var("created_id") == "$CREATED_ID"

    @pytest.mark.parametrize("bad", ["", "1ABC", "HAS SPACE", "A-B", "$"])
    def test_invalid_names_rejected(self, bad: str) -> None:
        with pytest.raises(ValueError):
            normalize_name(bad)

    def test_contains_covers_bindings_and_externals(self, store: ValueStore) -> None:
        store.declare("X", "1")
        assert "x" in store
        assert "ARGUMENTS" in store
        assert "Y" not in store
        assert 42 not in store

    def test_names_in_declaration_order(self) -> None:
        store = ValueStore()
        store.declare("B", "1")
        store.declare("A", "2")
        store.declare("B", "3")
        assert store.names == ("B", "A")
        assert store.expression("b") == "3"

    def test_bind_external_after_construction(self) -> None:
        store = ValueStore()
        ref = store.bind_external("has_flag")
        assert store.externals == frozenset({"HAS_FLAG"})
        assert ref.render(store) == "$HAS_FLAG"


# ─── AC-S2 / AC-S3: Resolution errors ─────────────────────────────────────────


class TestResolutionErrors:
    """AC-S2, AC-S3: undeclared and cyclic references fail with named errors."""

    @pytest.mark.parametrize(
        "tc",
        [pytest.param(tc, id=tc.id) for tc in _COMMAND_FIXTURE.generate_error_cases()],
    )
    def test_error_case(self, tc) -> None:
        store = tc.build_store()
        if tc.error == "unknown":
            with pytest.raises(UnknownReferenceError) as exc_info:
                store.resolve(tc.target)
            assert exc_info.value.name == tc.symbol
            assert f"'{tc.symbol}'" in str(exc_info.value)
        else:
            with pytest.raises(CyclicReferenceError) as exc_info:
                store.resolve(tc.target)
            assert exc_info.value.chain == tc.chain

    def test_cycle_message_shows_loop(self) -> None:
        store = ValueStore()
        store.declare("A", "{B}")
        store.declare("B", "{A}")
        with pytest.raises(CyclicReferenceError, match="A -> B -> A"):
            store.resolve("A")

    def test_cycle_through_descriptor(self) -> None:
        store = ValueStore()
        store.declare("A", if_then_else("{B}", "x"))
        store.declare("B", "{A}")
        with pytest.raises(CyclicReferenceError):
            store.resolve("A")

    def test_store_usable_after_error(self) -> None:
        """A failed resolution leaves no stale chain behind."""
        store = ValueStore()
        store.declare("A", "{A}")
        store.declare("OK", "fine")
        with pytest.raises(CyclicReferenceError):
            store.resolve("A")
        assert store.resolve("OK") == "fine"


# ─── AC-S4: Depth guard ───────────────────────────────────────────────────────


class TestDepthGuard:
    """AC-S4: long acyclic chains beyond the guard are reported as cycles."""

    def _chain(self, length: int) -> ValueStore:
        store = ValueStore()
        for i in range(length):
            store.declare(f"S{i}", f"{{S{i + 1}}}")
        store.declare(f"S{length}", "end")
        return store

    def test_chain_within_limit_resolves(self) -> None:
        store = self._chain(MAX_RESOLVE_DEPTH - 1)
        assert store.resolve("S0") == "end"

    def test_chain_beyond_limit_fails(self) -> None:
        store = self._chain(MAX_RESOLVE_DEPTH + 2)
        with pytest.raises(CyclicReferenceError) as exc_info:
            store.resolve("S0")
        assert len(exc_info.value.chain) == MAX_RESOLVE_DEPTH + 1


# ─── AC-S5: Collected errors ──────────────────────────────────────────────────


class TestRenderChecked:
    """AC-S5: render_checked reports every defect without raising."""

    def test_all_unknowns_reported(self) -> None:
        store = ValueStore()
        text, errors = store.render_checked("Use {ONE} then {TWO}")
        assert text == "Use {ONE} then {TWO}"
        assert [e.name for e in errors] == ["ONE", "TWO"]

    def test_duplicate_errors_collapsed(self) -> None:
        store = ValueStore()
        _, errors = store.render_checked("{ONE} and {ONE}")
        assert len(errors) == 1

    def test_clean_value_has_no_errors(self) -> None:
        store = ValueStore()
        store.declare("X", "5")
        assert store.render_checked("{X}!") == ("5!", [])

    def test_check_returns_errors_only(self) -> None:
        store = ValueStore()
        store.declare("A", "{A}")
        errors = store.check(store.get("A"))
        assert len(errors) == 1
        assert isinstance(errors[0], CyclicReferenceError)

    def test_resolve_still_raises_outside_collection(self) -> None:
        store = ValueStore()
        store.render_checked("{MISSING}")
        with pytest.raises(UnknownReferenceError):
            store.resolve("MISSING")

    def test_runtime_markers_checked(self) -> None:
        store = ValueStore(externals=["ARGUMENTS"])
        store.declare("SCOPE")
        text, errors = store.render_checked(f"{var('scope')} from $ARGUMENTS via $TYPO")
        assert text == "$SCOPE from $ARGUMENTS via $TYPO"
        assert [e.name for e in errors] == ["TYPO"]

    def test_base_error_located_generically(self) -> None:
        error = ResolutionError("cannot resolve").at("guideline 'g' goal")
        assert isinstance(error, ResolutionError)
        assert error.location == "guideline 'g' goal"
        assert str(error) == "cannot resolve (in guideline 'g' goal)"


# ─── AC-S6: Symbol declarations ───────────────────────────────────────────────


class TestSymbolRendering:
    """AC-S6: declarations render as STORE-AS instructions."""

    def test_declaration_with_expression(self, store: ValueStore) -> None:
        symbol = store.declare("RAW_INPUT", "{ARGUMENTS}")
        assert symbol == Symbol("RAW_INPUT", "{ARGUMENTS}")
        assert store.render_value(symbol) == "STORE-AS($RAW_INPUT = $ARGUMENTS)"

    def test_declaration_without_expression(self, store: ValueStore) -> None:
        symbol = store.declare("created_id")
        assert store.render_value(symbol) == "STORE-AS($CREATED_ID)"

    def test_declaration_keeps_its_own_expression(self) -> None:
        store = ValueStore()
        first = store.declare("X", "one")
        store.declare("X", "two")
        assert store.render_value(first) == "STORE-AS($X = one)"
        assert store.resolve("X") == "two"

    def test_reference_from_symbol(self) -> None:
        assert Symbol("X", "1").reference() == SymbolReference("X")

    def test_guard_called_on_declare(self) -> None:
        calls: list[str] = []
        store = ValueStore(guard=lambda: calls.append("guard"))
        store.declare("X", "1")
        store.bind_external("Y")
        assert calls == ["guard", "guard"]
