"""Shared fixtures and helpers for tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from crate_probe.config import LoadCargoConfig, LoaderMethod
from crate_probe.core.introspect import IntrospectionFacade
from crate_probe.db import InMemoryProjectDatabase
from crate_probe.engine import TreeSitterRustEngine

_TESTS_ROOT = Path(__file__).parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_TESTS_ROOT)
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Workspace builders
# ---------------------------------------------------------------------------


def write_files(root: Path, files: dict[str, str]) -> Path:
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


TWO_CRATE_WORKSPACE = {
    "Cargo.toml": """
[package]
name = "alpha"
version = "0.1.0"
edition = "2021"

[features]
default = ["std"]
std = []
fast = []

[workspace]
members = ["beta"]
""",
    "src/lib.rs": "pub mod shared;\nmod util;\n",
    "src/shared.rs": "pub fn shared() -> u32 { 1 }\n",
    "src/util.rs": "pub fn helper() {}\n",
    "src/orphan.rs": "fn unused() {}\n",
    "beta/Cargo.toml": """
[package]
name = "beta"
version = "0.1.0"
edition = "2021"

[features]
default = ["simd"]
simd = []
""",
    "beta/src/lib.rs": '#[path = "../../src/shared.rs"]\nmod shared;\n',
}


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def rust_engine() -> TreeSitterRustEngine:
    return TreeSitterRustEngine()


@pytest.fixture
def facade(rust_engine: TreeSitterRustEngine) -> IntrospectionFacade:
    return IntrospectionFacade(rust_engine)


@pytest.fixture
def in_memory_db() -> InMemoryProjectDatabase:
    return InMemoryProjectDatabase()


@pytest.fixture
def scan_config() -> LoadCargoConfig:
    return LoadCargoConfig(method=LoaderMethod.SCAN)


@pytest.fixture
def two_crate_workspace(tmp_path: Path) -> Path:
    """Workspace where packages ``alpha`` and ``beta`` both include ``src/shared.rs``."""
    return write_files(tmp_path / "ws", TWO_CRATE_WORKSPACE)


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Return a factory writing ``{relative path: content}`` under a fresh directory."""
    counter = iter(range(1_000_000))

    def _make(files: dict[str, str]) -> Path:
        return write_files(tmp_path / f"ws{next(counter)}", files)

    return _make
