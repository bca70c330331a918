"""Tests for the public package surface."""

import importlib

import pytest

import db_mapper


class TestTopLevelExports:
    """Everything in __all__ is importable from db_mapper."""

    @pytest.mark.parametrize("name", db_mapper.__all__)
    def test_exported(self, name: str) -> None:
        """Each exported name resolves."""
        assert getattr(db_mapper, name) is not None

    def test_version(self) -> None:
        """__version__ is set."""
        assert db_mapper.__version__ == "0.1.0"


class TestSubpackageExports:
    """Subpackage __all__ lists match their contents."""

    @pytest.mark.parametrize(
        "module",
        [
            "db_mapper.adapters",
            "db_mapper.config",
            "db_mapper.mapping",
            "db_mapper.orm",
            "db_mapper.schema",
            "db_mapper.utils",
        ],
    )
    def test_all_resolves(self, module: str) -> None:
        """Every name in __all__ exists."""
        mod = importlib.import_module(module)
        for name in mod.__all__:
            assert hasattr(mod, name), f"{module}.{name} missing"
