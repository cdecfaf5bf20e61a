"""Error kinds surfaced to the command line."""

from pathlib import Path


class CrateProbeError(Exception):
    """Base class for every failure that terminates a crate-probe command."""


class IoError(CrateProbeError):
    """Reading standard input or a file failed."""


class PathResolutionError(CrateProbeError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot resolve path {path}: {reason}")
        self.path = path
        self.reason = reason


class UntrackedPathError(CrateProbeError):
    def __init__(self, path: Path | None, file_id: int | None = None) -> None:
        if path is not None:
            message = f"Missing path in analysis: {path}"
        else:
            message = f"Unknown file id in analysis: {file_id}"
        super().__init__(message)
        self.path = path
        self.file_id = file_id


class LoaderError(CrateProbeError):
    """The workspace could not be loaded (bad manifest, cargo failure, ...)."""
