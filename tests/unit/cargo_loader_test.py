import logging
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from crate_probe.config import LoadCargoConfig, LoaderMethod
from crate_probe.core.resolve import crates_for_path, resolve_file_crates
from crate_probe.errors import LoaderError, UntrackedPathError
from crate_probe.models import CrateKind
from crate_probe.workspace import CargoWorkspaceLoader
from crate_probe.workspace.manifest import manifest_path_for, scan_workspace

MakeWorkspace = Callable[[dict[str, str]], Path]

BUILD_SCRIPT_PACKAGE = {
    "Cargo.toml": '[package]\nname = "gen"\nversion = "0.1.0"\nedition = "2021"\n',
    "build.rs": "fn main() {}\n",
    "src/lib.rs": 'include!(concat!(env!("OUT_DIR"), "/bindings.rs"));\n',
    "target/debug/build/gen-0123456789abcdef/out/bindings.rs": "pub const X: u8 = 1;\n",
    "target/debug/build/other-0123456789abcdef/out/stray.rs": "",
}


class TestSharedFile:
    def test_file_included_by_two_crates(self, two_crate_workspace: Path, scan_config: LoadCargoConfig) -> None:
        crates = resolve_file_crates(
            CargoWorkspaceLoader(scan_config),
            two_crate_workspace,
            Path("src/shared.rs"),
            config=scan_config,
            cwd=two_crate_workspace,
        )

        assert crates == [("alpha", frozenset({"default", "std"})), ("beta", frozenset({"default", "simd"}))]

    def test_single_owner(self, two_crate_workspace: Path, scan_config: LoadCargoConfig) -> None:
        crates = resolve_file_crates(
            CargoWorkspaceLoader(scan_config),
            two_crate_workspace,
            two_crate_workspace / "src" / "util.rs",
            config=scan_config,
        )

        assert crates == [("alpha", frozenset({"default", "std"}))]

    def test_orphan_file_has_no_crates(self, two_crate_workspace: Path, scan_config: LoadCargoConfig) -> None:
        crates = resolve_file_crates(
            CargoWorkspaceLoader(scan_config),
            two_crate_workspace,
            two_crate_workspace / "src" / "orphan.rs",
            config=scan_config,
        )

        assert crates == []

    def test_file_outside_workspace_is_untracked(
        self, two_crate_workspace: Path, scan_config: LoadCargoConfig, tmp_path: Path
    ) -> None:
        outside = tmp_path / "elsewhere.rs"
        outside.write_text("fn main() {}\n", encoding="utf-8")

        with pytest.raises(UntrackedPathError, match="Missing path in analysis"):
            resolve_file_crates(CargoWorkspaceLoader(scan_config), two_crate_workspace, outside, config=scan_config)

    def test_requested_features(self, two_crate_workspace: Path) -> None:
        config = LoadCargoConfig(method=LoaderMethod.SCAN, features=("alpha/fast",), no_default_features=True)

        crates = resolve_file_crates(
            CargoWorkspaceLoader(config), two_crate_workspace, two_crate_workspace / "src" / "shared.rs", config=config
        )

        assert crates == [("alpha", frozenset({"fast"})), ("beta", frozenset())]


class TestBuildDatabase:
    def test_file_ids_follow_sorted_paths(self, two_crate_workspace: Path, scan_config: LoadCargoConfig) -> None:
        _, vfs = CargoWorkspaceLoader(scan_config).build_database(two_crate_workspace, False, False)

        paths = [path for _, path in vfs]
        assert paths == sorted(paths)
        assert [file_id for file_id, _ in vfs] == list(range(len(paths)))

    def test_crate_details(self, two_crate_workspace: Path, scan_config: LoadCargoConfig) -> None:
        db, vfs = CargoWorkspaceLoader(scan_config).build_database(two_crate_workspace, False, False)

        alpha, beta = (db.crate(crate_id) for crate_id in db.crate_ids())
        assert (alpha.package, alpha.kind, alpha.edition) == ("alpha", CrateKind.LIB, "2021")
        assert alpha.root_file == vfs.lookup((two_crate_workspace / "src" / "lib.rs").resolve())
        assert beta.root_file == vfs.lookup((two_crate_workspace / "beta" / "src" / "lib.rs").resolve())

    def test_target_dir_is_not_tracked(self, make_workspace: MakeWorkspace, scan_config: LoadCargoConfig) -> None:
        root = make_workspace(BUILD_SCRIPT_PACKAGE)

        _, vfs = CargoWorkspaceLoader(scan_config).build_database(root, False, False)

        assert all("target" not in path.relative_to(root.resolve()).parts for _, path in vfs)

    def test_build_output_belongs_to_every_package_crate(
        self, make_workspace: MakeWorkspace, scan_config: LoadCargoConfig
    ) -> None:
        root = make_workspace(BUILD_SCRIPT_PACKAGE)
        generated = root / "target/debug/build/gen-0123456789abcdef/out/bindings.rs"

        db, vfs = CargoWorkspaceLoader(scan_config).build_database(root, True, False)

        crates = crates_for_path(db, vfs, generated)
        assert sorted((c.display_name, c.kind) for c in crates) == [
            ("build_script_build", CrateKind.CUSTOM_BUILD),
            ("gen", CrateKind.LIB),
        ]
        assert (root / "target/debug/build/other-0123456789abcdef/out/stray.rs").resolve() not in vfs

    def test_missing_target_root_is_skipped(
        self, make_workspace: MakeWorkspace, scan_config: LoadCargoConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        root = make_workspace(
            {
                "Cargo.toml": '[package]\nname = "solo"\nversion = "0.1.0"\n\n[[bin]]\nname = "ghost"\n',
                "src/lib.rs": "",
            }
        )

        with caplog.at_level(logging.WARNING, logger="crate_probe.workspace.cargo"):
            db, _ = CargoWorkspaceLoader(scan_config).build_database(root, False, False)

        assert [db.crate(crate_id).display_name for crate_id in db.crate_ids()] == ["solo"]
        assert "Skipping target ghost" in caplog.text


class TestLoaderMethod:
    def test_auto_falls_back_to_scanning(
        self, two_crate_workspace: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = LoadCargoConfig(cargo="definitely-not-cargo")

        with caplog.at_level(logging.WARNING, logger="crate_probe.workspace.cargo"):
            metadata = CargoWorkspaceLoader(config).load_metadata(two_crate_workspace)

        assert [p.name for p in metadata.workspace_packages()] == ["alpha", "beta"]
        assert "Falling back to scanning manifests" in caplog.text

    def test_crate_order_is_independent_of_member_order(
        self, two_crate_workspace: Path, scan_config: LoadCargoConfig
    ) -> None:
        scanned = scan_workspace(manifest_path_for(two_crate_workspace))
        from_cargo = scanned.model_copy(update={"workspace_members": list(reversed(scanned.workspace_members))})
        config = LoadCargoConfig(method=LoaderMethod.METADATA)

        with patch("crate_probe.workspace.cargo.run_cargo_metadata", return_value=from_cargo):
            db, _ = CargoWorkspaceLoader(config).build_database(two_crate_workspace, False, False)
        scan_db, _ = CargoWorkspaceLoader(scan_config).build_database(two_crate_workspace, False, False)

        assert [db.crate(c).display_name for c in db.crate_ids()] == ["alpha", "beta"]
        assert [scan_db.crate(c).display_name for c in scan_db.crate_ids()] == ["alpha", "beta"]

    def test_metadata_method_does_not_fall_back(self, two_crate_workspace: Path) -> None:
        config = LoadCargoConfig(method=LoaderMethod.METADATA, cargo="definitely-not-cargo")

        with pytest.raises(LoaderError, match="Cannot run definitely-not-cargo"):
            CargoWorkspaceLoader(config).load_metadata(two_crate_workspace)

    def test_missing_manifest(self, tmp_path: Path, scan_config: LoadCargoConfig) -> None:
        with pytest.raises(LoaderError):
            CargoWorkspaceLoader(scan_config).build_database(tmp_path, False, False)
