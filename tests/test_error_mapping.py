"""
Test error mapping and CLI exit code functionality.

Validates that exceptions are correctly mapped to exit codes and that
the run_and_exit wrapper handles errors appropriately for CLI commands.
"""
from __future__ import annotations

from unittest.mock import Mock

import pytest
import typer
from pydantic import BaseModel, ValidationError

from artifact_store.operations.mappers import EXIT_CODES, exit_code_for, run_and_exit
from artifact_store.storage.errors import ConversionFailed, ObjectNotFound, StorageFault


class TestExitCodeMapping:
    """Test exception to exit code mapping."""

    def test_store_errors_mapped(self):
        assert exit_code_for(ObjectNotFound("abc")) == 1
        assert exit_code_for(StorageFault("disk full")) == 3
        assert exit_code_for(ConversionFailed("bad input")) == 4

    def test_validation_errors_mapped(self):
        class Model(BaseModel):
            n: int

        with pytest.raises(ValidationError) as exc_info:
            Model(n="not a number")
        assert exit_code_for(exc_info.value) == 2
        assert exit_code_for(ValueError("bad")) == 2
        assert exit_code_for(typer.BadParameter("bad")) == 2

    def test_unknown_exception_maps_to_fallback(self):
        """Test that unknown exceptions map to fallback exit code."""
        unknown_error = Mock()
        unknown_error.__class__.__name__ = "SomeUnknownError"

        assert exit_code_for(unknown_error) == 3
        assert exit_code_for(RuntimeError("test")) == 3
        assert exit_code_for(PermissionError("test")) == 3

    def test_subclass_inherits_code(self):
        class QuotaExceeded(StorageFault):
            pass

        assert exit_code_for(QuotaExceeded("quota")) == 3
        assert exit_code_for(UnicodeDecodeError("utf-8", b"\xff", 0, 1, "bad")) == 2

    def test_exit_code_constants(self):
        assert EXIT_CODES["ObjectNotFound"] == 1
        assert EXIT_CODES["StorageFault"] == 3
        assert EXIT_CODES["ConversionFailed"] == 4


class TestRunAndExit:
    """Test the run_and_exit wrapper function."""

    def test_successful_function_returns_result(self):
        assert run_and_exit(lambda: "ok") == "ok"

    def test_exception_converted_to_exit(self, capsys):
        def failing():
            raise ObjectNotFound("abc")

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing)

        assert exc_info.value.exit_code == 1
        assert "Error: Object not found: abc" in capsys.readouterr().err

    def test_typer_exit_passes_through(self):
        def exiting():
            raise typer.Exit(code=7)

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(exiting)
        assert exc_info.value.exit_code == 7
