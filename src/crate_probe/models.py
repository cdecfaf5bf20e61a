from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, ConfigDict

FileId = NewType("FileId", int)
CrateId = NewType("CrateId", int)


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    column: int


class TextRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"

    def contains_range(self, other: "TextRange") -> bool:
        return self.start <= other.start and other.end <= self.end


# Grammar nodes for comments, which carry no structure.
COMMENT_KINDS = frozenset({"line_comment", "block_comment"})


class CrateKind(StrEnum):
    LIB = "lib"
    BIN = "bin"
    TEST = "test"
    EXAMPLE = "example"
    BENCH = "bench"
    CUSTOM_BUILD = "custom-build"
    PROC_MACRO = "proc-macro"


class Crate(BaseModel):
    """One compilation unit of the workspace, as recorded at load time."""

    model_config = ConfigDict(frozen=True)

    crate_id: CrateId
    display_name: str | None
    feature_set: frozenset[str] = frozenset()
    package: str | None = None
    kind: CrateKind = CrateKind.LIB
    root_file: FileId | None = None
    edition: str | None = None


class SyntaxNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    start_byte: int
    end_byte: int
    start_point: Position
    end_point: Position
    is_named: bool = True
    is_error: bool = False
    is_missing: bool = False
    field: str | None = None
    text: str | None = None
    children: tuple["SyntaxNode", ...] = ()

    @property
    def range(self) -> TextRange:
        return TextRange(start=self.start_byte, end=self.end_byte)

    def child_by_field(self, field: str) -> "SyntaxNode | None":
        for child in self.children:
            if child.field == field:
                return child
        return None


SyntaxNode.model_rebuild()  # necessary for recursive types


class SyntaxTree(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    root: SyntaxNode

    @property
    def has_errors(self) -> bool:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_error or node.is_missing:
                return True
            stack.extend(node.children)
        return False


class SymbolKind(StrEnum):
    FUNCTION = "function"
    STRUCT = "struct"
    ENUM = "enum"
    UNION = "union"
    TRAIT = "trait"
    IMPL = "impl"
    MODULE = "module"
    CONST = "const"
    STATIC = "static"
    TYPE_ALIAS = "type_alias"
    MACRO = "macro"
    FIELD = "field"
    VARIANT = "variant"


class StructureNode(BaseModel):
    """A named structural element of a source file.

    ``parent`` is the index of the enclosing element within the same outline,
    or ``None`` for top-level items.
    """

    model_config = ConfigDict(frozen=True)

    parent: int | None
    depth: int
    label: str
    navigation_range: TextRange
    node_range: TextRange
    kind: SymbolKind
    detail: str | None = None
    deprecated: bool = False

    def __str__(self) -> str:
        # impl labels already start with "impl".
        prefix = "" if self.kind is SymbolKind.IMPL else f"{self.kind.value} "
        line = f"{'  ' * self.depth}{prefix}{self.label} {self.node_range}"
        if self.detail:
            line += f" : {self.detail}"
        if self.deprecated:
            line += " (deprecated)"
        return line


class HighlightedRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    range: TextRange
    tag: str
    binding_hash: int | None = None
