from collections.abc import Iterator, Mapping
from pathlib import Path

from crate_probe.errors import UntrackedPathError
from crate_probe.models import FileId


class VirtualPathSpace:
    """Read-only bijection between canonical absolute paths and file ids.

    Populated once by the workspace loader; the core only looks paths up.
    """

    def __init__(self, entries: Mapping[Path, FileId]) -> None:
        by_path: dict[Path, FileId] = {}
        by_id: dict[FileId, Path] = {}
        for path, file_id in entries.items():
            if not path.is_absolute():
                raise ValueError(f"Virtual paths must be absolute: {path}")
            if file_id in by_id:
                raise ValueError(f"File id {file_id} assigned to both {by_id[file_id]} and {path}")
            by_path[path] = file_id
            by_id[file_id] = path
        self._by_path = by_path
        self._by_id = dict(sorted(by_id.items()))

    @classmethod
    def from_paths(cls, paths: list[Path] | set[Path], first_id: int = 0) -> "VirtualPathSpace":
        """Assign ids in sorted path order, starting at *first_id*."""
        ordered = sorted(set(paths))
        return cls({path: FileId(first_id + idx) for idx, path in enumerate(ordered)})

    def lookup(self, path: Path) -> FileId:
        file_id = self._by_path.get(path)
        if file_id is None:
            raise UntrackedPathError(path)
        return file_id

    def file_path(self, file_id: FileId) -> Path:
        path = self._by_id.get(file_id)
        if path is None:
            raise UntrackedPathError(None, file_id)
        return path

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Path):
            return item in self._by_path
        if isinstance(item, int):
            return item in self._by_id
        return False

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[tuple[FileId, Path]]:
        return iter(self._by_id.items())

    def __repr__(self) -> str:
        return f"VirtualPathSpace({len(self)} files)"
