from crate_probe.engine.rust import TreeSitterRustEngine

__all__ = ["TreeSitterRustEngine"]
