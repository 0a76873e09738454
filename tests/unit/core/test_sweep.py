"""Unit tests for the folder sweep.

Tests for path deletion, leaf listing and FolderSweeper.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from psmodfix.core.sweep import DeletionResult, FolderSweeper, delete_path, leaf_entries
from psmodfix.models.selection import ENTRA, GRAPH, ModuleFamily, PackageSelection

GRAPH_ONLY = PackageSelection(families=(GRAPH,))


class TestDeletePath:
    """Tests for delete_path function."""

    def test_deletes_file(self, tmp_path: Path) -> None:
        """Files are unlinked."""
        target = tmp_path / "module.psm1"
        target.write_text("")

        result = delete_path(target)

        assert result.success is True
        assert result.error is None
        assert not target.exists()

    def test_deletes_directory_tree(self, tmp_path: Path) -> None:
        """Directories are removed recursively."""
        target = tmp_path / "2.25.0"
        (target / "bin").mkdir(parents=True)
        (target / "bin" / "lib.dll").write_bytes(b"\0")

        result = delete_path(target)

        assert result.success is True
        assert not target.exists()

    def test_deletes_symlink_not_target(self, tmp_path: Path) -> None:
        """A symlink to a directory is removed without touching the target."""
        real = tmp_path / "real"
        real.mkdir()
        (real / "keep.txt").write_text("")
        link = tmp_path / "link"
        link.symlink_to(real)

        result = delete_path(link)

        assert result.success is True
        assert not link.is_symlink()
        assert (real / "keep.txt").exists()

    def test_missing_path_fails(self, tmp_path: Path) -> None:
        """Deleting a missing path reports a failure."""
        result = delete_path(tmp_path / "missing")

        assert result.success is False
        assert result.error is not None
        assert "does not exist" in result.error

    def test_os_error_is_captured(self, tmp_path: Path) -> None:
        """OS errors become a failed result instead of raising."""
        target = tmp_path / "locked.dll"
        target.write_bytes(b"\0")

        with patch.object(Path, "unlink", side_effect=PermissionError("in use")):
            result = delete_path(target)

        assert result.success is False
        assert result.error == "in use"


class TestLeafEntries:
    """Tests for leaf_entries function."""

    def test_lists_files_and_empty_dirs(self, tmp_path: Path) -> None:
        """Files and empty directories are leaves; the folder itself is not."""
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "a" / "file.txt").write_text("")
        (tmp_path / "empty").mkdir()

        leaves = leaf_entries(tmp_path)

        assert leaves == sorted(
            [
                os.path.join(tmp_path, "a", "b"),
                os.path.join(tmp_path, "a", "file.txt"),
                os.path.join(tmp_path, "empty"),
            ]
        )

    def test_empty_folder_has_no_leaves(self, tmp_path: Path) -> None:
        """An empty folder yields nothing."""
        assert leaf_entries(tmp_path) == []


class TestFolderSweeper:
    """Tests for FolderSweeper class."""

    def test_matching_dirs(self, module_root: Path) -> None:
        """Only directories matching the selection are returned."""
        (module_root / "Microsoft.Graph").mkdir()
        (module_root / "Microsoft.Graph.Users").mkdir()
        (module_root / "Microsoft.Graph.Beta.Users").mkdir()
        (module_root / "Az.Accounts").mkdir()
        (module_root / "Microsoft.Graph.txt").write_text("")

        sweeper = FolderSweeper(roots=[module_root])

        names = [p.name for p in sweeper.matching_dirs(GRAPH_ONLY)]
        assert names == ["Microsoft.Graph", "Microsoft.Graph.Users"]

    def test_missing_root_is_skipped(self, tmp_path: Path) -> None:
        """Roots that don't exist are ignored."""
        sweeper = FolderSweeper(roots=[tmp_path / "missing"])

        assert sweeper.matching_dirs(GRAPH_ONLY) == []

    def test_roots_are_discovered_lazily(self, module_root: Path) -> None:
        """Without explicit roots, discovery runs once with the extra roots."""
        with patch(
            "psmodfix.core.sweep.get_module_roots", return_value=[module_root]
        ) as mock_roots:
            sweeper = FolderSweeper(extra_roots=["/opt/modules"])
            assert sweeper.roots == [module_root]
            assert sweeper.roots == [module_root]

        mock_roots.assert_called_once_with(["/opt/modules"])

    def test_sweep_removes_items_and_folder(self, module_root: Path) -> None:
        """Every item is deleted and the emptied folder removed."""
        folder = module_root / "Microsoft.Graph.Users"
        (folder / "2.9.0").mkdir(parents=True)
        (folder / "2.10.0").mkdir()
        (folder / "readme.txt").write_text("")

        result = FolderSweeper(roots=[module_root]).sweep(GRAPH_ONLY)

        assert result.removed == 3
        assert result.failed == 0
        assert not folder.exists()

    def test_sweep_leaves_other_families(self, module_root: Path) -> None:
        """Folders of unselected families are untouched."""
        other = module_root / "Microsoft.Entra"
        other.mkdir()
        (other / "Microsoft.Entra.psd1").write_text("")

        result = FolderSweeper(roots=[module_root]).sweep(GRAPH_ONLY)

        assert result.removed == 0
        assert (other / "Microsoft.Entra.psd1").exists()

    def test_sweep_records_failures(self, module_root: Path) -> None:
        """Failed items are counted with their error and the folder stays."""
        folder = module_root / "Microsoft.Graph"
        folder.mkdir()
        locked = folder / "Microsoft.Graph.psd1"
        locked.write_text("")

        with patch(
            "psmodfix.core.sweep.delete_path",
            return_value=DeletionResult(path=str(locked), success=False, error="in use"),
        ):
            result = FolderSweeper(roots=[module_root]).sweep(GRAPH_ONLY)

        assert result.removed == 0
        assert result.failed == 1
        assert result.errors == {str(locked): "in use"}
        assert folder.exists()

    @pytest.mark.parametrize("family", [GRAPH, ENTRA])
    def test_verify_clean(self, module_root: Path, family: ModuleFamily) -> None:
        """Verification of an empty root finds nothing."""
        selection = PackageSelection(families=(family,))

        assert FolderSweeper(roots=[module_root]).verify(selection) == []

    def test_verify_lists_residual_files(self, module_root: Path) -> None:
        """Files left in matching folders are reported by full path."""
        folder = module_root / "Microsoft.Graph.Users" / "2.9.0"
        folder.mkdir(parents=True)
        leftover = folder / "Microsoft.Graph.Users.dll"
        leftover.write_bytes(b"\0")

        residual = FolderSweeper(roots=[module_root]).verify(GRAPH_ONLY)

        assert residual == [str(leftover)]
