from crate_probe.workspace.cargo import CargoWorkspaceLoader

__all__ = ["CargoWorkspaceLoader"]
