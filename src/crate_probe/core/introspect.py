from collections.abc import Iterator

from crate_probe.core.ports.analysis import AnalysisEngine
from crate_probe.models import COMMENT_KINDS, HighlightedRange, StructureNode, SyntaxNode, SyntaxTree


class Outline:
    """Lazily walks a parsed file for its structure, restarting on every iteration."""

    def __init__(self, engine: AnalysisEngine, tree: SyntaxTree) -> None:
        self._engine = engine
        self._tree = tree

    def __iter__(self) -> Iterator[StructureNode]:
        return self._engine.file_structure(self._tree)

    def top_level(self) -> list[StructureNode]:
        return [node for node in self if node.parent is None]


class IntrospectionFacade:
    """Stateless single-file queries over raw source text.

    None of these operations fail on malformed input: syntax errors show up
    as error nodes in the tree and the other queries do their best around
    them.
    """

    def __init__(self, engine: AnalysisEngine) -> None:
        self._engine = engine

    def parse(self, text: str) -> SyntaxTree:
        return self._engine.parse(text)

    def outline(self, text: str) -> Outline:
        return Outline(self._engine, self._engine.parse(text))

    def highlight_ranges(self, text: str) -> list[HighlightedRange]:
        return self._engine.highlight(text)

    def render_highlight(self, text: str, rainbow: bool = False) -> str:
        return self._engine.highlight_as_html(text, rainbow)

    def dump_parse(self, text: str) -> str:
        return dump_tree(self._engine.parse(text))


def top_level_items(tree: SyntaxTree) -> list[SyntaxNode]:
    """Children of the root that are neither comments nor anonymous tokens."""
    return [child for child in tree.root.children if child.is_named and child.kind not in COMMENT_KINDS]


def dump_tree(tree: SyntaxTree) -> str:
    lines: list[str] = []

    def visit(node: SyntaxNode, depth: int) -> None:
        line = f"{'  ' * depth}{node.kind}@{node.start_byte}..{node.end_byte}"
        if node.is_missing:
            line += " (missing)"
        if node.text is not None and not node.children:
            line += f" {node.text!r}"
        lines.append(line)
        for child in node.children:
            visit(child, depth + 1)

    visit(tree.root, 0)
    return "\n".join(lines)
