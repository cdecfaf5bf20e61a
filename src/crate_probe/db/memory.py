from collections.abc import Iterable

from crate_probe.models import Crate, CrateId, CrateKind, FileId


class InMemoryProjectDatabase:
    """Crates, tracked files and the file -> crates index, built once by a loader."""

    def __init__(self) -> None:
        self.crates: dict[CrateId, Crate] = {}
        self.tracked_files: set[FileId] = set()
        self.crates_by_file: dict[FileId, list[CrateId]] = {}
        self._next_crate_id = 0

    def add_file(self, file_id: FileId) -> None:
        self.tracked_files.add(file_id)

    def add_crate(
        self,
        display_name: str | None,
        files: Iterable[FileId],
        feature_set: Iterable[str] = (),
        *,
        package: str | None = None,
        kind: CrateKind = CrateKind.LIB,
        root_file: FileId | None = None,
        edition: str | None = None,
    ) -> CrateId:
        crate_id = CrateId(self._next_crate_id)
        self._next_crate_id += 1
        self.crates[crate_id] = Crate(
            crate_id=crate_id,
            display_name=display_name,
            feature_set=frozenset(feature_set),
            package=package,
            kind=kind,
            root_file=root_file,
            edition=edition,
        )
        for file_id in dict.fromkeys(files):
            self.tracked_files.add(file_id)
            self.crates_by_file.setdefault(file_id, []).append(crate_id)
        return crate_id

    def crate_ids(self) -> list[CrateId]:
        return list(self.crates)

    def crate(self, crate_id: CrateId) -> Crate:
        try:
            return self.crates[crate_id]
        except KeyError:
            raise KeyError(f"Unknown crate id: {crate_id}") from None

    def is_tracked(self, file_id: FileId) -> bool:
        return file_id in self.tracked_files

    def crates_for_file(self, file_id: FileId) -> list[CrateId]:
        return list(self.crates_by_file.get(file_id, ()))
