"""Fixtures for tests that drive a real cargo installation."""

import shutil

import pytest


@pytest.fixture(scope="session")
def cargo_binary() -> str:
    """Path to ``cargo``; skips the test when it is not installed."""
    cargo = shutil.which("cargo")
    if cargo is None:
        pytest.skip("cargo is not installed")
    return cargo
