"""The subset of ``cargo metadata`` output the loader relies on."""

import logging
import subprocess
from pathlib import Path

from pydantic import BaseModel, ValidationError

from crate_probe.errors import LoaderError
from crate_probe.models import CrateKind

logger = logging.getLogger(__name__)

_LIB_KINDS = frozenset({"lib", "rlib", "dylib", "cdylib", "staticlib"})


class CargoTarget(BaseModel):
    name: str
    kind: list[str]
    src_path: str
    edition: str | None = None

    @property
    def crate_kind(self) -> CrateKind:
        kinds = set(self.kind)
        if "custom-build" in kinds:
            return CrateKind.CUSTOM_BUILD
        if "proc-macro" in kinds:
            return CrateKind.PROC_MACRO
        if kinds & _LIB_KINDS:
            return CrateKind.LIB
        for kind in CrateKind:
            if kind.value in kinds:
                return kind
        return CrateKind.LIB


class CargoPackage(BaseModel):
    id: str
    name: str
    manifest_path: str
    targets: list[CargoTarget] = []
    features: dict[str, list[str]] = {}
    edition: str | None = None

    @property
    def root(self) -> Path:
        return Path(self.manifest_path).parent


class CargoMetadata(BaseModel):
    packages: list[CargoPackage]
    workspace_members: list[str]
    workspace_root: str
    target_directory: str | None = None

    def workspace_packages(self) -> list[CargoPackage]:
        """Workspace members ordered by package directory, so a root package comes first.

        Cargo and the manifest scan list members in different orders; crate ids
        follow this order whichever produced the metadata.
        """
        members = set(self.workspace_members)
        selected = [package for package in self.packages if package.id in members]
        return sorted(selected, key=lambda package: package.root.parts)

    @property
    def target_dir(self) -> Path:
        if self.target_directory:
            return Path(self.target_directory)
        return Path(self.workspace_root) / "target"


def run_cargo_metadata(manifest_path: Path, cargo: str = "cargo") -> CargoMetadata:
    cmd = [cargo, "metadata", "--format-version", "1", "--no-deps", "--manifest-path", str(manifest_path)]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, check=False, capture_output=True, text=True)
    except OSError as exc:
        raise LoaderError(f"Cannot run {cargo}: {exc}") from exc
    if result.returncode != 0:
        raise LoaderError(f"cargo metadata failed for {manifest_path}: {result.stderr.strip()}")
    try:
        return CargoMetadata.model_validate_json(result.stdout)
    except ValidationError as exc:
        raise LoaderError(f"Invalid cargo metadata output for {manifest_path}: {exc}") from exc
