from collections.abc import Sequence
from typing import Protocol

from crate_probe.models import Crate, CrateId, FileId


class ProjectDatabase(Protocol):
    def crate_ids(self) -> Sequence[CrateId]: ...

    def crate(self, crate_id: CrateId) -> Crate: ...

    def is_tracked(self, file_id: FileId) -> bool: ...

    def crates_for_file(self, file_id: FileId) -> Sequence[CrateId]: ...
