from __future__ import annotations

import json
from pathlib import Path
from typing import Callable
from unittest.mock import patch

import pytest

from unipkg.models.manifest import Manifest
from unipkg.models.version import Version
from unipkg.core.sources import RegistryLayout, ResolvedPackage
from unipkg.core.extractor import extract_package, install_registry_package
from unipkg.exceptions import FileOperationError, ManifestParseError

PKG = "Assets/UnityPackages"


@pytest.mark.unit
class TestExtractPackage:
    """Tests for extract_package."""

    def test_copies_files_with_sidecars(
        self, tmp_path: Path, make_package: Callable[..., Path]
    ) -> None:
        archive = make_package(tmp_path / "repo", "DepA", "1.0.0", [f"{PKG}/DepA/FileA.txt"])
        out = tmp_path / "out"

        report = extract_package(archive, out, "DepA")

        target = out / PKG / "DepA" / "FileA.txt"
        assert target.read_text() == f"{PKG}/DepA/FileA.txt@1.0.0"
        assert Path(f"{target}.meta").is_file()
        assert (out / PKG / "DepA.unitypackage.json").is_file()
        assert (out / PKG / "DepA.unitypackage.json.meta").is_file()
        assert sorted(report.copied) == [f"{PKG}/DepA.unitypackage.json", f"{PKG}/DepA/FileA.txt"]
        assert report.skipped == []
        assert report.deleted == []

    def test_copies_folder_sidecars_for_ancestors(
        self, tmp_path: Path, make_package: Callable[..., Path]
    ) -> None:
        archive = make_package(tmp_path / "repo", "DepA", "1.0.0", [f"{PKG}/DepA/Sub/FileA.txt"])
        out = tmp_path / "out"

        extract_package(archive, out, "DepA")

        assert (out / "Assets.meta").read_text().endswith("folderAsset: yes\n")
        assert (out / PKG / "DepA.meta").is_file()
        assert (out / PKG / "DepA" / "Sub.meta").is_file()

    def test_pathname_uses_first_line(
        self, tmp_path: Path, make_archive: Callable[..., Path]
    ) -> None:
        # The builder writes "path\n00\n" into every pathname member.
        archive = make_archive(tmp_path / "a.unitypackage", {"Assets/A.txt": "a"})

        extract_package(archive, tmp_path / "out", "A")

        assert (tmp_path / "out" / "Assets" / "A.txt").read_text() == "a"

    def test_archive_without_manifest_copies_everything(
        self, tmp_path: Path, make_archive: Callable[..., Path]
    ) -> None:
        archive = make_archive(
            tmp_path / "a.unitypackage", {"Assets/A.txt": "a", "Assets/B.txt": "b"}
        )

        report = extract_package(archive, tmp_path / "out", "A")

        assert sorted(report.copied) == ["Assets/A.txt", "Assets/B.txt"]

    def test_missing_sidecar_is_tolerated(
        self, tmp_path: Path, make_archive: Callable[..., Path]
    ) -> None:
        archive = make_archive(
            tmp_path / "a.unitypackage",
            {"Assets/A.txt": "a"},
            without_meta=["Assets/A.txt"],
        )

        extract_package(archive, tmp_path / "out", "A")

        assert (tmp_path / "out" / "Assets" / "A.txt").is_file()
        assert not (tmp_path / "out" / "Assets" / "A.txt.meta").exists()

    @pytest.mark.parametrize(
        "include_extra, include_merged",
        [(False, False), (True, False), (False, True), (True, True)],
    )
    def test_flags_control_materialization(
        self,
        tmp_path: Path,
        make_package: Callable[..., Path],
        include_extra: bool,
        include_merged: bool,
    ) -> None:
        archive = make_package(
            tmp_path / "repo",
            "DepD",
            "1.0.0",
            [
                f"{PKG}/DepD/FileD.txt",
                {"target": f"{PKG}/DepD-Sample/FileD.txt", "extra": True},
                {"target": f"{PKG}/DepC/FileC.txt", "merged": True},
            ],
        )
        out = tmp_path / "out"

        report = extract_package(
            archive, out, "DepD", include_extra=include_extra, include_merged=include_merged
        )

        assert (out / PKG / "DepD" / "FileD.txt").is_file()
        assert (out / PKG / "DepD-Sample" / "FileD.txt").exists() is include_extra
        assert (out / PKG / "DepC" / "FileC.txt").exists() is include_merged
        assert len(report.skipped) == (not include_extra) + (not include_merged)

    def test_file_flagged_extra_and_merged_needs_both(
        self, tmp_path: Path, make_package: Callable[..., Path]
    ) -> None:
        archive = make_package(
            tmp_path / "repo",
            "DepD",
            "1.0.0",
            [{"target": f"{PKG}/DepC-Sample/FileC.txt", "extra": True, "merged": True}],
        )

        extract_package(archive, tmp_path / "out", "DepD", include_merged=True)

        assert not (tmp_path / "out" / PKG / "DepC-Sample").exists()

    def test_upgrade_deletes_files_absent_from_new_version(
        self, tmp_path: Path, make_package: Callable[..., Path]
    ) -> None:
        repo = tmp_path / "repo"
        old = make_package(repo, "DepA", "1.0.0", [f"{PKG}/DepA/Keep.txt", f"{PKG}/DepA/Old.txt"])
        new = make_package(repo, "DepA", "1.1.0", [f"{PKG}/DepA/Keep.txt", f"{PKG}/DepA/New.txt"])
        out = tmp_path / "out"

        extract_package(old, out, "DepA")
        report = extract_package(new, out, "DepA")

        base = out / PKG / "DepA"
        assert (base / "Keep.txt").read_text().endswith("@1.1.0")
        assert (base / "New.txt").is_file()
        assert not (base / "Old.txt").exists()
        assert not (base / "Old.txt.meta").exists()
        assert report.deleted == [f"{PKG}/DepA/Old.txt"]
        assert Manifest.load(out / PKG / "DepA.unitypackage.json").version == "1.1.0"

    def test_already_missing_stale_file_is_ignored(
        self, tmp_path: Path, make_package: Callable[..., Path]
    ) -> None:
        repo = tmp_path / "repo"
        old = make_package(repo, "DepA", "1.0.0", [f"{PKG}/DepA/Old.txt"])
        new = make_package(repo, "DepA", "1.1.0", [f"{PKG}/DepA/New.txt"])
        out = tmp_path / "out"
        extract_package(old, out, "DepA")
        (out / PKG / "DepA" / "Old.txt").unlink()

        report = extract_package(new, out, "DepA")

        assert report.deleted == []

    def test_duplicate_manifest_entries_last_wins(
        self, tmp_path: Path, make_package: Callable[..., Path]
    ) -> None:
        archive = make_package(
            tmp_path / "repo",
            "DepA",
            "1.0.0",
            [
                {"target": f"{PKG}/DepA/A.txt", "extra": True},
                f"{PKG}/DepA/A.txt",
            ],
        )

        extract_package(archive, tmp_path / "out", "DepA")

        assert (tmp_path / "out" / PKG / "DepA" / "A.txt").is_file()

    def test_path_escaping_output_is_rejected(
        self, tmp_path: Path, make_archive: Callable[..., Path]
    ) -> None:
        archive = make_archive(
            tmp_path / "evil.unitypackage", {"Assets/../../escape.txt": "x"}, with_folders=False
        )

        with pytest.raises(FileOperationError):
            extract_package(archive, tmp_path / "out", "Evil")

        assert not (tmp_path / "escape.txt").exists()

    def test_corrupt_archive(self, tmp_path: Path) -> None:
        archive = tmp_path / "bad.unitypackage"
        archive.write_bytes(b"not a tarball")

        with pytest.raises(FileOperationError) as exc_info:
            extract_package(archive, tmp_path / "out", "Bad")

        assert exc_info.value.operation == "extract"

    def test_invalid_embedded_manifest(
        self, tmp_path: Path, make_archive: Callable[..., Path]
    ) -> None:
        archive = make_archive(
            tmp_path / "a.unitypackage", {f"{PKG}/A.unitypackage.json": "{ broken"}
        )

        with pytest.raises(ManifestParseError):
            extract_package(archive, tmp_path / "out", "A")

    def test_scratch_directory_removed_on_failure(self, tmp_path: Path) -> None:
        archive = tmp_path / "bad.unitypackage"
        archive.write_bytes(b"not a tarball")
        scratch_root = tmp_path / "scratch"
        scratch_root.mkdir()

        with patch("tempfile.tempdir", str(scratch_root)):
            with pytest.raises(FileOperationError):
                extract_package(archive, tmp_path / "out", "Bad")

        assert list(scratch_root.iterdir()) == []


@pytest.mark.unit
class TestInstallRegistryPackage:
    """Tests for install_registry_package."""

    def _package(self, tmp_path: Path, layout: RegistryLayout) -> ResolvedPackage:
        layout_dir = tmp_path / "cache" / "Json.10.0.3" / "lib" / "net45"
        layout_dir.mkdir(parents=True)
        (layout_dir / "Json.dll").write_bytes(b"dll")
        (layout_dir / "Json.dll.mdb").write_bytes(b"mdb")
        (layout_dir / "Json.xml").write_text("<doc/>")
        return ResolvedPackage(
            package_id="Json",
            version=Version(10, 0, 3),
            path=tmp_path / "cache" / "Json.10.0.3",
            layout=layout,
            layout_dir=layout_dir,
        )

    def test_library_layout(self, tmp_path: Path) -> None:
        out = tmp_path / "out"

        target = install_registry_package(self._package(tmp_path, RegistryLayout.LIBRARY), "net45", out)

        assert target == (out / PKG / "Json").resolve()
        assert (target / "Json.dll").read_bytes() == b"dll"
        assert (target / "Json.dll.mdb").is_file()
        assert not (target / "Json.xml").exists()
        assert "PluginImporter" in (target / "Json.dll.meta").read_text()
        assert "folderAsset: yes" in Path(f"{target}.meta").read_text()

        manifest_file = out / PKG / "Json.unitypackage.json"
        data = json.loads(manifest_file.read_text())
        assert data["id"] == "Json"
        assert data["version"] == "10.0.3"
        assert data["description"] == "NuGet package (TFM:net45)"
        assert data["files"] == [f"{PKG}/Json/Json.dll", f"{PKG}/Json/Json.dll.mdb"]
        assert Path(f"{manifest_file}.meta").is_file()

    def test_analyzer_layout(self, tmp_path: Path) -> None:
        out = tmp_path / "out"

        target = install_registry_package(self._package(tmp_path, RegistryLayout.ANALYZER), "net45", out)

        assert target == (out / PKG / "Analyzers" / "Json").resolve()
        assert "RoslynAnalyzer" in (target / "Json.dll.meta").read_text()
        assert not (target / "Json.dll.mdb").exists()

    def test_rejects_archive_package(self, tmp_path: Path) -> None:
        package = ResolvedPackage("DepA", Version(1, 0, 0), tmp_path / "DepA.1.0.0.unitypackage")

        with pytest.raises(ValueError):
            install_registry_package(package, "net45", tmp_path / "out")
