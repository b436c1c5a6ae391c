"""YAML fixture loader for brain_command tests.

Loads resolution_cases.yaml and turns each entry into a frozen test-case
object suitable for pytest.param() parametrization with readable IDs; also
locates the YAML command definitions stored next to it.

Usage:
    from fixtures.fixture_loader import CommandFixture

    fixture = CommandFixture()

    @pytest.mark.parametrize(
        "tc",
        [pytest.param(tc, id=tc.id) for tc in fixture.generate_resolution_cases()],
    )
    def test_resolution(tc):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

from brain_command.store import ValueStore

FIXTURES_DIR = Path(__file__).parent


# ─── TestCase Dataclasses ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ResolutionTestCase:
    """Symbol bindings plus the expected text of one resolved symbol.

    Fields:
        id: Pytest-friendly identifier.
        bindings: (name, expression) pairs, declared in order.
        externals: Names registered as runtime inputs.
        target: Symbol to resolve.
        expected: Expected resolved text.
    """

    id: str
    bindings: tuple[tuple[str, Any], ...]
    externals: tuple[str, ...]
    target: str
    expected: str

    def build_store(self) -> ValueStore:
        return _build_store(self.bindings, self.externals)


@dataclass(frozen=True)
class ResolutionErrorTestCase:
    """Bindings whose resolution must fail.

    Fields:
        error: "unknown" or "cyclic".
        symbol: Undeclared name (unknown only).
        chain: Expected cycle chain (cyclic only).
    """

    id: str
    bindings: tuple[tuple[str, Any], ...]
    externals: tuple[str, ...]
    target: str
    error: str
    symbol: str | None
    chain: tuple[str, ...]

    def build_store(self) -> ValueStore:
        return _build_store(self.bindings, self.externals)


def _build_store(bindings: tuple[tuple[str, Any], ...], externals: tuple[str, ...]) -> ValueStore:
    store = ValueStore(externals=externals)
    for name, expression in bindings:
        store.declare(name, expression)
    return store


# ─── Fixture ──────────────────────────────────────────────────────────────────


class CommandFixture:
    """Access to the YAML fixtures in tests/fixtures/."""

    def __init__(self, fixture_path: str | Path | None = None) -> None:
        """Initialize from resolution_cases.yaml.

        Args:
            fixture_path: Path to the cases file. If None, uses the default
                file next to this module.
        """
        if fixture_path is None:
            fixture_path = FIXTURES_DIR / "resolution_cases.yaml"
        self._path = Path(fixture_path)
        with self._path.open(encoding="utf-8") as f:
            self._data: dict = yaml.safe_load(f)

    @staticmethod
    def definition_path(name: str) -> Path:
        """Path of a YAML command definition fixture, e.g. "release_check"."""
        return FIXTURES_DIR / f"{name}.yaml"

    def generate_resolution_cases(self) -> Iterator[ResolutionTestCase]:
        for entry in self._data["resolution_cases"]:
            yield ResolutionTestCase(
                id=entry["id"],
                bindings=tuple((name, expr) for name, expr in entry["bindings"]),
                externals=tuple(entry.get("externals", [])),
                target=entry["target"],
                expected=entry["expected"],
            )

    def generate_error_cases(self) -> Iterator[ResolutionErrorTestCase]:
        for entry in self._data["error_cases"]:
            yield ResolutionErrorTestCase(
                id=entry["id"],
                bindings=tuple((name, expr) for name, expr in entry["bindings"]),
                externals=tuple(entry.get("externals", [])),
                target=entry["target"],
                error=entry["error"],
                symbol=entry.get("symbol"),
                chain=tuple(entry.get("chain", [])),
            )
