from pathlib import Path
from typing import Protocol

from crate_probe.core.ports.database import ProjectDatabase
from crate_probe.core.vfs import VirtualPathSpace


class WorkspaceLoader(Protocol):
    def build_database(
        self,
        manifest_root: Path,
        include_build_output: bool,
        include_macro_expansion: bool,
    ) -> tuple[ProjectDatabase, VirtualPathSpace]: ...
