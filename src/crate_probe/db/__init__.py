from crate_probe.db.memory import InMemoryProjectDatabase

__all__ = ["InMemoryProjectDatabase"]
