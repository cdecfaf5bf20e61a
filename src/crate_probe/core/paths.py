from pathlib import Path

from crate_probe.errors import PathResolutionError


def normalize(cwd: Path, path: Path) -> Path:
    """Anchor *path* at *cwd* when relative and canonicalize it.

    The returned path is absolute with symlinks and ``.``/``..`` segments
    resolved. The target must exist.
    """
    joined = path if path.is_absolute() else cwd / path
    try:
        return joined.resolve(strict=True)
    except FileNotFoundError:
        raise PathResolutionError(joined, "no such file or directory") from None
    except (OSError, RuntimeError) as exc:
        # RuntimeError is raised for symlink loops on Python < 3.13
        raise PathResolutionError(joined, str(exc)) from exc
