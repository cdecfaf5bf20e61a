import logging
from pathlib import Path

from crate_probe.config import LoadCargoConfig
from crate_probe.core.metrics import MetricsMode, report_metric, stopwatch
from crate_probe.core.paths import normalize
from crate_probe.core.ports.database import ProjectDatabase
from crate_probe.core.ports.loader import WorkspaceLoader
from crate_probe.core.vfs import VirtualPathSpace
from crate_probe.errors import UntrackedPathError
from crate_probe.models import Crate, FileId

logger = logging.getLogger(__name__)


class CrateResolver:
    """Answer "which crates include this file" against a loaded database."""

    def __init__(self, database: ProjectDatabase) -> None:
        self._db = database

    def crates_for(self, file_id: FileId) -> list[Crate]:
        """Return every crate owning *file_id*, in database enumeration order.

        A tracked file that no crate includes yields an empty list; an id the
        database never assigned raises ``UntrackedPathError``.
        """
        if not self._db.is_tracked(file_id):
            raise UntrackedPathError(None, file_id)
        crate_ids = sorted(set(self._db.crates_for_file(file_id)))
        return [self._db.crate(crate_id) for crate_id in crate_ids]


def crates_for_path(
    database: ProjectDatabase,
    vfs: VirtualPathSpace,
    file_path: Path,
    cwd: Path | None = None,
) -> list[Crate]:
    abs_path = normalize(cwd or Path.cwd(), file_path)
    file_id = vfs.lookup(abs_path)
    crates = CrateResolver(database).crates_for(file_id)
    if not crates:
        logger.info("%s is tracked as file %d but no crate includes it", abs_path, file_id)
    return crates


def resolve_file_crates(
    loader: WorkspaceLoader,
    manifest_root: Path,
    file_path: Path,
    *,
    config: LoadCargoConfig | None = None,
    cwd: Path | None = None,
    metrics: MetricsMode = MetricsMode.DISABLED,
) -> list[tuple[str | None, frozenset[str]]]:
    """Load the workspace at *manifest_root* and list the crates owning *file_path*.

    Returns ``(display_name, feature_set)`` pairs, one per owning crate.
    """
    config = config or LoadCargoConfig()
    with stopwatch() as watch:
        database, vfs = loader.build_database(
            manifest_root,
            config.include_build_output,
            config.include_macro_expansion,
        )
    report_metric("database load time", watch.elapsed_ms, "ms", mode=metrics)

    crates = crates_for_path(database, vfs, file_path, cwd=cwd)
    report_metric("crates", len(crates), "#", mode=metrics)
    return [(krate.display_name, krate.feature_set) for krate in crates]
