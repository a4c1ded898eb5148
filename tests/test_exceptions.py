from __future__ import annotations

import pytest

from unipkg.exceptions import (
    ConfigError,
    FileOperationError,
    InvalidRangeFormat,
    InvalidVersionFormat,
    ManifestParseError,
    NetworkError,
    PackageLayoutNotFound,
    PackageNotFound,
    UniPkgError,
    UnrecognizedSource,
    VersionConflict,
)


@pytest.mark.unit
class TestUniPkgError:
    """Tests for the base exception."""

    def test_message_only(self) -> None:
        error = UniPkgError("something failed")

        assert str(error) == "something failed"
        assert error.details == {}

    def test_details_are_appended(self) -> None:
        error = UniPkgError("failed", {"package": "DepA", "source": "local"})

        assert str(error) == "failed (package=DepA, source=local)"

    def test_details_are_copied(self) -> None:
        details = {"a": 1}
        error = UniPkgError("failed", details)
        error.details["b"] = 2

        assert details == {"a": 1}

    def test_repr(self) -> None:
        assert repr(UniPkgError("x", {"k": "v"})) == "UniPkgError(message='x', details={'k': 'v'})"


@pytest.mark.unit
class TestSubclasses:
    """Tests for the structured subclasses."""

    @pytest.mark.parametrize(
        "error",
        [
            ManifestParseError("bad"),
            InvalidVersionFormat("bad"),
            InvalidRangeFormat("bad"),
            PackageNotFound("missing"),
            VersionConflict("DepA", "^2.0.0", "1.0.0"),
            UnrecognizedSource("unknown"),
            PackageLayoutNotFound("no layout"),
            NetworkError("down"),
            FileOperationError("io"),
            ConfigError("config"),
        ],
    )
    def test_all_derive_from_base(self, error: UniPkgError) -> None:
        assert isinstance(error, UniPkgError)

    def test_none_values_are_omitted(self) -> None:
        error = PackageNotFound("missing", package_id="DepA")

        assert error.details == {"package": "DepA"}
        assert error.requested is None

    def test_version_conflict_message(self) -> None:
        error = VersionConflict("DepA", "^2.0.0", "1.0.0")

        assert error.message == (
            "Cannot meet version requirement: DepA ^2.0.0 (but 1.0.0 is already resolved)"
        )
        assert error.package_id == "DepA"
        assert error.resolved == "1.0.0"

    def test_network_error_truncates_body(self) -> None:
        error = NetworkError("down", status_code=500, response_body="x" * 500)

        assert error.details["response"] == "x" * 200 + "..."
        assert error.response_body == "x" * 500
        assert error.status_code == 500

    def test_file_operation_error_records_original(self) -> None:
        original = PermissionError("denied")
        error = FileOperationError("io", file_path="a.txt", operation="delete", original_error=original)

        assert error.details == {"path": "a.txt", "operation": "delete", "original_error": "denied"}
        assert error.original_error is original
