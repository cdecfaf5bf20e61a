from collections.abc import Iterator
from typing import Protocol

from crate_probe.models import HighlightedRange, StructureNode, SyntaxTree


class AnalysisEngine(Protocol):
    def parse(self, text: str) -> SyntaxTree: ...

    def file_structure(self, tree: SyntaxTree) -> Iterator[StructureNode]: ...

    def highlight(self, text: str) -> list[HighlightedRange]: ...

    def highlight_as_html(self, text: str, rainbow: bool) -> str: ...
