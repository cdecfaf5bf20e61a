import logging
import os
from dataclasses import dataclass
from pathlib import Path

from crate_probe.config import LoadCargoConfig, LoaderMethod
from crate_probe.core.ports.analysis import AnalysisEngine
from crate_probe.core.vfs import VirtualPathSpace
from crate_probe.db.memory import InMemoryProjectDatabase
from crate_probe.engine.rust import TreeSitterRustEngine
from crate_probe.errors import LoaderError
from crate_probe.models import CrateKind
from crate_probe.workspace.features import requested_for_package, resolve_features
from crate_probe.workspace.manifest import manifest_path_for, scan_workspace
from crate_probe.workspace.metadata import CargoMetadata, CargoPackage, run_cargo_metadata
from crate_probe.workspace.modules import collect_module_files

logger = logging.getLogger(__name__)

_SKIP_DIRS = frozenset({"target", "node_modules", "vendor"})
# Cargo suffixes build directories with a 16 hex digit metadata hash.
_HASH_GLOB = "?" * 16


@dataclass(frozen=True)
class _CratePlan:
    display_name: str
    package: CargoPackage
    kind: CrateKind
    edition: str | None
    features: frozenset[str]
    root_file: Path
    files: list[Path]


class CargoWorkspaceLoader:
    """Build a project database and virtual path space from a Cargo workspace.

    Implements the ``WorkspaceLoader`` protocol. Every target of every
    workspace member becomes one crate; a crate owns its root file and the
    module files reachable from it. All ``.rs`` files below a member's
    directory are tracked, whether or not a crate includes them.
    """

    def __init__(self, config: LoadCargoConfig | None = None, engine: AnalysisEngine | None = None) -> None:
        self._config = config or LoadCargoConfig()
        self._engine = engine or TreeSitterRustEngine()

    def load_metadata(self, manifest_root: Path) -> CargoMetadata:
        manifest_path = manifest_path_for(manifest_root)
        method = self._config.method
        if method in (LoaderMethod.AUTO, LoaderMethod.METADATA):
            try:
                return run_cargo_metadata(manifest_path, self._config.cargo)
            except LoaderError as exc:
                if method is LoaderMethod.METADATA:
                    raise
                logger.warning("Falling back to scanning manifests: %s", exc)
        return scan_workspace(manifest_path)

    def build_database(
        self,
        manifest_root: Path,
        include_build_output: bool,
        include_macro_expansion: bool,
    ) -> tuple[InMemoryProjectDatabase, VirtualPathSpace]:
        metadata = self.load_metadata(manifest_root)
        target_dir = metadata.target_dir

        tracked: set[Path] = set()
        plans: list[_CratePlan] = []
        for package in metadata.workspace_packages():
            tracked.update(_source_files(package.root, target_dir))
            features = resolve_features(
                package.features,
                requested_for_package(package.name, self._config.features),
                all_features=self._config.all_features,
                no_default_features=self._config.no_default_features,
            )
            out_files = _build_output_files(target_dir, package.name) if include_build_output else []
            tracked.update(out_files)

            for target in package.targets:
                root_file = Path(target.src_path).resolve()
                if not root_file.is_file():
                    logger.warning("Skipping target %s of %s: %s does not exist", target.name, package.name, root_file)
                    continue
                files = collect_module_files(root_file, self._engine, include_macro_expansion) + out_files
                tracked.update(files)
                plans.append(
                    _CratePlan(
                        display_name=target.name.replace("-", "_"),
                        package=package,
                        kind=target.crate_kind,
                        edition=target.edition or package.edition,
                        features=features,
                        root_file=root_file,
                        files=files,
                    )
                )

        vfs = VirtualPathSpace.from_paths(tracked)
        database = InMemoryProjectDatabase()
        for file_id, _ in vfs:
            database.add_file(file_id)
        for plan in plans:
            database.add_crate(
                plan.display_name,
                [vfs.lookup(path) for path in plan.files],
                plan.features,
                package=plan.package.name,
                kind=plan.kind,
                root_file=vfs.lookup(plan.root_file),
                edition=plan.edition,
            )

        logger.info(
            "Loaded %d crate(s) from %d package(s), tracking %d file(s)",
            len(plans),
            len(metadata.workspace_packages()),
            len(vfs),
        )
        return database, vfs


def _source_files(package_root: Path, target_dir: Path) -> list[Path]:
    found: list[Path] = []
    target_dir = target_dir.resolve()
    for dirpath, dirnames, filenames in os.walk(package_root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".") and d not in _SKIP_DIRS and (current / d).resolve() != target_dir
        )
        found.extend((current / name).resolve() for name in filenames if name.endswith(".rs"))
    return found


def _build_output_files(target_dir: Path, package_name: str) -> list[Path]:
    """``.rs`` files generated by the package's build script, for any profile."""
    found: list[Path] = []
    for out_dir in sorted(target_dir.glob(f"*/build/{package_name}-{_HASH_GLOB}/out")):
        found.extend(sorted(path.resolve() for path in out_dir.rglob("*.rs") if path.is_file()))
    return found
