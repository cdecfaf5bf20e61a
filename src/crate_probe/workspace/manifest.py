"""Build ``CargoMetadata`` by reading ``Cargo.toml`` files directly.

Used when cargo itself is unavailable. Targets follow Cargo's automatic
discovery rules plus any explicit ``[lib]``/``[[bin]]``/... tables.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from crate_probe.errors import LoaderError
from crate_probe.workspace.metadata import CargoMetadata, CargoPackage, CargoTarget

logger = logging.getLogger(__name__)

_DEFAULT_EDITION = "2015"

# (manifest table, target kind, auto-discovery directory, auto-discovery flag)
_TARGET_TABLES = (
    ("bin", "bin", "src/bin", "autobins"),
    ("example", "example", "examples", "autoexamples"),
    ("test", "test", "tests", "autotests"),
    ("bench", "bench", "benches", "autobenches"),
)


def manifest_path_for(manifest_root: Path) -> Path:
    """Accept either a workspace directory or a path to its ``Cargo.toml``."""
    candidate = manifest_root if manifest_root.name == "Cargo.toml" else manifest_root / "Cargo.toml"
    if not candidate.is_file():
        raise LoaderError(f"No Cargo.toml found at {manifest_root}")
    return candidate.resolve()


def read_manifest(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as exc:
        raise LoaderError(f"Cannot read {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise LoaderError(f"Invalid manifest {path}: {exc}") from exc


def scan_workspace(manifest_path: Path) -> CargoMetadata:
    root_manifest = read_manifest(manifest_path)
    root_dir = manifest_path.parent
    workspace = root_manifest.get("workspace")

    member_manifests: list[Path] = []
    if "package" in root_manifest:
        member_manifests.append(manifest_path)
    if isinstance(workspace, dict):
        member_manifests.extend(_expand_members(root_dir, workspace))
    if not member_manifests:
        raise LoaderError(f"{manifest_path} declares neither [package] nor [workspace] members")

    workspace_package = workspace.get("package", {}) if isinstance(workspace, dict) else {}
    packages: list[CargoPackage] = []
    for member in dict.fromkeys(member_manifests):
        data = root_manifest if member == manifest_path else read_manifest(member)
        packages.append(_package_from_manifest(member, data, workspace_package))

    logger.info("Scanned %d package(s) under %s", len(packages), root_dir)
    return CargoMetadata(
        packages=packages,
        workspace_members=[package.id for package in packages],
        workspace_root=str(root_dir),
        target_directory=str(root_dir / "target"),
    )


def _expand_members(root_dir: Path, workspace: dict[str, Any]) -> list[Path]:
    excluded = {(root_dir / entry).resolve() for entry in workspace.get("exclude", [])}
    manifests: list[Path] = []
    for pattern in workspace.get("members", []):
        matches = sorted(root_dir.glob(pattern)) if any(ch in pattern for ch in "*?[") else [root_dir / pattern]
        for match in matches:
            member_dir = match.resolve()
            if member_dir in excluded:
                continue
            manifest = member_dir / "Cargo.toml"
            if manifest.is_file():
                manifests.append(manifest)
            else:
                logger.warning("Workspace member %s has no Cargo.toml", member_dir)
    return manifests


def _inherited(value: Any, key: str, workspace_package: dict[str, Any]) -> Any:
    if isinstance(value, dict) and value.get("workspace") is True:
        return workspace_package.get(key)
    return value


def _package_from_manifest(
    manifest_path: Path, data: dict[str, Any], workspace_package: dict[str, Any]
) -> CargoPackage:
    package = data.get("package")
    if not isinstance(package, dict) or not isinstance(package.get("name"), str):
        raise LoaderError(f"{manifest_path} has no [package] name")
    name: str = package["name"]
    edition = _inherited(package.get("edition"), "edition", workspace_package) or _DEFAULT_EDITION

    return CargoPackage(
        id=str(manifest_path),
        name=name,
        manifest_path=str(manifest_path),
        targets=_discover_targets(manifest_path.parent, name, package, data, edition),
        features=declared_features(data),
        edition=edition,
    )


def declared_features(data: dict[str, Any]) -> dict[str, list[str]]:
    """``[features]`` plus the implicit feature of every optional dependency."""
    features: dict[str, list[str]] = {name: list(entries) for name, entries in data.get("features", {}).items()}
    explicit_deps = {
        entry[len("dep:") :] for entries in features.values() for entry in entries if entry.startswith("dep:")
    }
    for table in _dependency_tables(data):
        for dep_name, requirement in table.items():
            if isinstance(requirement, dict) and requirement.get("optional") and dep_name not in explicit_deps:
                features.setdefault(dep_name, [f"dep:{dep_name}"])
    return features


def _dependency_tables(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Dependency tables that may declare optional dependencies, including ``[target.'cfg'.*]``."""
    scopes = [data, *(platform for platform in data.get("target", {}).values() if isinstance(platform, dict))]
    return [scope.get(name, {}) for scope in scopes for name in ("dependencies", "build-dependencies")]


def _discover_targets(
    package_dir: Path,
    package_name: str,
    package: dict[str, Any],
    data: dict[str, Any],
    edition: str,
) -> list[CargoTarget]:
    targets: list[CargoTarget] = []

    lib = data.get("lib", {})
    lib_path = package_dir / lib.get("path", "src/lib.rs")
    if "lib" in data or lib_path.is_file():
        kind = "proc-macro" if lib.get("proc-macro") else "lib"
        targets.append(
            CargoTarget(
                name=lib.get("name", package_name.replace("-", "_")),
                kind=[kind],
                src_path=str(lib_path),
                edition=lib.get("edition", edition),
            )
        )

    for table, kind, auto_dir, auto_flag in _TARGET_TABLES:
        explicit = {entry["name"]: entry for entry in data.get(table, []) if "name" in entry}
        discovered: dict[str, Path] = {}
        if package.get(auto_flag, True) is not False:
            if table == "bin" and (package_dir / "src" / "main.rs").is_file():
                discovered[package_name] = package_dir / "src" / "main.rs"
            discovered.update(_auto_targets(package_dir / auto_dir))
        for name, entry in explicit.items():
            if "path" in entry:
                discovered[name] = package_dir / entry["path"]
            elif name not in discovered:
                default = package_dir / auto_dir / f"{name}.rs"
                if table == "bin" and name == package_name:
                    default = package_dir / "src" / "main.rs"
                discovered[name] = default
        for name, path in discovered.items():
            target_edition = explicit.get(name, {}).get("edition", edition)
            targets.append(CargoTarget(name=name, kind=[kind], src_path=str(path), edition=target_edition))

    build = package.get("build")
    build_path = package_dir / build if isinstance(build, str) else package_dir / "build.rs"
    if build is not False and build_path.is_file():
        targets.append(
            CargoTarget(name="build-script-build", kind=["custom-build"], src_path=str(build_path), edition=edition)
        )

    return targets


def _auto_targets(directory: Path) -> dict[str, Path]:
    found: dict[str, Path] = {}
    if not directory.is_dir():
        return found
    for entry in sorted(directory.iterdir()):
        if entry.is_file() and entry.suffix == ".rs":
            found[entry.stem] = entry
        elif entry.is_dir() and (entry / "main.rs").is_file():
            found[entry.name] = entry / "main.rs"
    return found
