"""Tests for example scripts.

Verifies that all example scripts in the examples/ directory have valid syntax
and can be imported without errors.
"""

import ast
import importlib
import sys
from pathlib import Path

import pytest

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"

# All example scripts (keep in sync with examples/ directory)
ALL_EXAMPLES = sorted(p.stem for p in EXAMPLES_DIR.glob("*.py"))


class TestExampleSyntax:
    """Verify every example script has valid Python syntax."""

    @pytest.mark.parametrize("name", ALL_EXAMPLES)
    def test_syntax(self, name: str) -> None:
        source = (EXAMPLES_DIR / f"{name}.py").read_text()
        ast.parse(source, filename=f"{name}.py")

    @pytest.mark.parametrize("name", ALL_EXAMPLES)
    def test_has_module_docstring(self, name: str) -> None:
        source = (EXAMPLES_DIR / f"{name}.py").read_text()
        tree = ast.parse(source)
        docstring = ast.get_docstring(tree)
        assert docstring, f"{name}.py is missing a module docstring"

    @pytest.mark.parametrize("name", ALL_EXAMPLES)
    def test_has_main_guard(self, name: str) -> None:
        source = (EXAMPLES_DIR / f"{name}.py").read_text()
        assert 'if __name__ == "__main__"' in source, (
            f'{name}.py is missing \'if __name__ == "__main__" guard'
        )

    @pytest.mark.parametrize("name", ALL_EXAMPLES)
    def test_has_async_main(self, name: str) -> None:
        source = (EXAMPLES_DIR / f"{name}.py").read_text()
        tree = ast.parse(source)
        has_main = any(
            isinstance(node, ast.AsyncFunctionDef) and node.name == "main"
            for node in ast.walk(tree)
        )
        assert has_main, f"{name}.py is missing 'async def main()'"


class TestExampleImports:
    """Verify every example can be imported (dependencies resolve)."""

    @pytest.fixture(autouse=True)
    def _add_examples_to_path(self):
        """Temporarily add examples/ to sys.path for importlib."""
        examples_str = str(EXAMPLES_DIR)
        sys.path.insert(0, examples_str)
        yield
        sys.path.remove(examples_str)

    @pytest.mark.parametrize("name", ALL_EXAMPLES)
    def test_import_example(self, name: str) -> None:
        mod = importlib.import_module(name)
        assert hasattr(mod, "main"), f"{name} module has no main() function"
        # Clean up to avoid cross-test pollution
        del sys.modules[name]


class TestExampleCompleteness:
    def test_example_count(self) -> None:
        assert len(ALL_EXAMPLES) >= 3, f"Expected at least 3 examples, found {len(ALL_EXAMPLES)}"
