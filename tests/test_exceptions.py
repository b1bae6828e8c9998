"""Tests for repair exception classes."""

from pathlib import Path

import pytest

from winre_repair.storage.exceptions import (
    CleanupWarning,
    ElevationRequiredError,
    ExternalToolError,
    InvalidStateError,
    ParseError,
    WinREError,
)


class TestExceptionHierarchy:
    """Test exception inheritance hierarchy."""

    def test_winre_error_is_base_exception(self):
        error = WinREError("test error")
        assert isinstance(error, Exception)
        assert str(error) == "test error"

    @pytest.mark.parametrize(
        "error",
        [
            ElevationRequiredError(),
            ParseError("bad"),
            InvalidStateError("bad"),
            ExternalToolError(["diskpart"], 1),
        ],
    )
    def test_fatal_errors_inherit_from_winre_error(self, error):
        assert isinstance(error, WinREError)

    def test_elevation_error_is_permission_error(self):
        """Test ElevationRequiredError can be caught as the builtin PermissionError."""
        with pytest.raises(PermissionError):
            raise ElevationRequiredError()

    def test_cleanup_warning_is_not_an_error(self):
        warning = CleanupWarning(Path("x.txt"), OSError("busy"))
        assert isinstance(warning, UserWarning)
        assert not isinstance(warning, WinREError)


class TestErrorDetails:
    """Test structured attributes and messages."""

    def test_elevation_default_message(self):
        assert "Administrator" in str(ElevationRequiredError())

    def test_parse_error_keeps_raw_text(self):
        error = ParseError("no location", raw_text="Windows RE status: Enabled")
        assert error.raw_text == "Windows RE status: Enabled"
        assert str(error) == "no location"

    def test_invalid_state_reason(self):
        error = InvalidStateError("not last")
        assert error.reason == "not last"

    def test_external_tool_error_with_output(self):
        error = ExternalToolError(["reagentc", "/enable"], 2, output="  denied\n")
        assert error.command == ["reagentc", "/enable"]
        assert error.returncode == 2
        assert str(error) == "reagentc failed with exit code 2: denied"

    def test_external_tool_error_without_returncode(self):
        error = ExternalToolError(["diskpart"], None)
        assert str(error) == "diskpart did not complete"

    def test_external_tool_error_custom_message(self):
        error = ExternalToolError(["diskpart"], 0, output="VDS error", message="diskpart reported an error")
        assert str(error) == "diskpart reported an error: VDS error"

    def test_cleanup_warning_message(self):
        warning = CleanupWarning(Path("script.txt"), OSError("busy"))
        assert warning.path == Path("script.txt")
        assert "script.txt" in str(warning)
        assert "busy" in str(warning)
