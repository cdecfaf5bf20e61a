import hashlib
import itertools
import re
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import cast

from tree_sitter import Node, Parser, Query, QueryCursor
from tree_sitter_language_pack import SupportedLanguage, get_language, get_parser

from crate_probe.engine.html import render_html
from crate_probe.models import (
    COMMENT_KINDS,
    HighlightedRange,
    Position,
    StructureNode,
    SymbolKind,
    SyntaxNode,
    SyntaxTree,
    TextRange,
)

_SYMBOL_KINDS = {
    "function_item": SymbolKind.FUNCTION,
    "function_signature_item": SymbolKind.FUNCTION,
    "struct_item": SymbolKind.STRUCT,
    "enum_item": SymbolKind.ENUM,
    "union_item": SymbolKind.UNION,
    "trait_item": SymbolKind.TRAIT,
    "impl_item": SymbolKind.IMPL,
    "mod_item": SymbolKind.MODULE,
    "const_item": SymbolKind.CONST,
    "static_item": SymbolKind.STATIC,
    "type_item": SymbolKind.TYPE_ALIAS,
    "associated_type": SymbolKind.TYPE_ALIAS,
    "macro_definition": SymbolKind.MACRO,
    "field_declaration": SymbolKind.FIELD,
    "enum_variant": SymbolKind.VARIANT,
}

# Nodes highlighted as one span even though the grammar gives them children.
_ATOMIC_KINDS = frozenset(
    {
        "attribute_item",
        "block_comment",
        "boolean_literal",
        "inner_attribute_item",
        "lifetime",
        "line_comment",
        "raw_string_literal",
        "string_literal",
    }
)

_RAINBOW_TAGS = frozenset({"variable", "variable.parameter"})

_DEPRECATED_ATTR = re.compile(r"^#\[\s*deprecated\b")


def _load_query(language: str, query_type: str) -> Query:
    queries_dir = Path(__file__).parent.parent / "queries"
    query_path = queries_dir / f"{language}_{query_type}.scm"
    if not query_path.exists():
        raise FileNotFoundError(f"Query file not found: {query_path}")
    query_text = query_path.read_text(encoding="utf-8")
    return Query(get_language(cast(SupportedLanguage, language)), query_text)


def binding_hash(name: str) -> int:
    """Stable 64-bit hash of an identifier, used to colour bindings consistently."""
    return int.from_bytes(hashlib.sha256(name.encode("utf-8")).digest()[:8], "big")


def _slice(source: bytes, node: SyntaxNode) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _squash(text: str) -> str:
    return " ".join(text.split())


class TreeSitterRustEngine:
    """Single-file Rust analysis backed by tree-sitter.

    Implements the ``AnalysisEngine`` protocol. Every call builds a fresh
    parser, so one instance can be shared freely.
    """

    language = "rust"

    def _parser(self) -> Parser:
        return get_parser(cast(SupportedLanguage, self.language))

    # ------------------------------------------------------------------
    # Syntax tree
    # ------------------------------------------------------------------

    def parse(self, text: str) -> SyntaxTree:
        source_bytes = text.encode("utf-8")
        tree = self._parser().parse(source_bytes)

        def node_to_model(node: Node, field: str | None) -> SyntaxNode:
            children = tuple(
                node_to_model(child, node.field_name_for_child(idx)) for idx, child in enumerate(node.children)
            )
            leaf_text = None
            if not children and node.end_byte > node.start_byte:
                leaf_text = source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

            return SyntaxNode(
                kind=node.type,
                start_byte=node.start_byte,
                end_byte=node.end_byte,
                start_point=Position(row=node.start_point[0], column=node.start_point[1]),
                end_point=Position(row=node.end_point[0], column=node.end_point[1]),
                is_named=node.is_named,
                is_error=node.is_error,
                is_missing=node.is_missing,
                field=field,
                text=leaf_text,
                children=children,
            )

        return SyntaxTree(text=text, root=node_to_model(tree.root_node, None))

    # ------------------------------------------------------------------
    # Outline
    # ------------------------------------------------------------------

    def file_structure(self, tree: SyntaxTree) -> Iterator[StructureNode]:
        source = tree.text.encode("utf-8")
        counter = itertools.count()

        def walk(node: SyntaxNode, parent: int | None, depth: int) -> Iterator[StructureNode]:
            attributes: list[SyntaxNode] = []
            for child in node.children:
                if child.kind == "attribute_item":
                    attributes.append(child)
                    continue
                if child.kind in COMMENT_KINDS:
                    continue

                symbol = None
                kind = _SYMBOL_KINDS.get(child.kind)
                if kind is not None:
                    symbol = _structure_node(source, child, kind, attributes, parent, depth)
                attributes = []

                if symbol is None:
                    yield from walk(child, parent, depth)
                    continue
                index = next(counter)
                yield symbol
                yield from walk(child, index, depth + 1)

        return walk(tree.root, None, 0)

    # ------------------------------------------------------------------
    # Highlighting
    # ------------------------------------------------------------------

    def highlight(self, text: str) -> list[HighlightedRange]:
        source_bytes = text.encode("utf-8")
        tree = self._parser().parse(source_bytes)
        query = _load_query(self.language, "highlights")

        tags: dict[tuple[int, int, str], tuple[int, str]] = {}
        for pattern_index, captures in QueryCursor(query).matches(tree.root_node):
            for tag, nodes in captures.items():
                for node in nodes:
                    key = (node.start_byte, node.end_byte, node.type)
                    current = tags.get(key)
                    if current is None or pattern_index < current[0]:
                        tags[key] = (pattern_index, tag)

        ranges: list[HighlightedRange] = []

        def visit(node: Node) -> None:
            if node.child_count == 0 or node.type in _ATOMIC_KINDS:
                found = tags.get((node.start_byte, node.end_byte, node.type))
                if found is not None and node.end_byte > node.start_byte:
                    tag = found[1]
                    hashed = None
                    if tag in _RAINBOW_TAGS:
                        hashed = binding_hash(source_bytes[node.start_byte : node.end_byte].decode("utf-8", "replace"))
                    ranges.append(
                        HighlightedRange(
                            range=TextRange(start=node.start_byte, end=node.end_byte),
                            tag=tag,
                            binding_hash=hashed,
                        )
                    )
                return
            for child in node.children:
                visit(child)

        visit(tree.root_node)
        return ranges

    def highlight_as_html(self, text: str, rainbow: bool) -> str:
        return render_html(text, self.highlight(text), rainbow)


def _structure_node(
    source: bytes,
    node: SyntaxNode,
    kind: SymbolKind,
    attributes: Sequence[SyntaxNode],
    parent: int | None,
    depth: int,
) -> StructureNode | None:
    if kind is SymbolKind.IMPL:
        target = node.child_by_field("type")
        if target is None:
            return None
        label = f"impl {_squash(_slice(source, target))}"
        trait = node.child_by_field("trait")
        if trait is not None:
            label = f"impl {_squash(_slice(source, trait))} for {_squash(_slice(source, target))}"
        name_node = target
    else:
        name_node = node.child_by_field("name")
        if name_node is None or name_node.is_missing or name_node.end_byte == name_node.start_byte:
            return None
        label = _slice(source, name_node)

    return StructureNode(
        parent=parent,
        depth=depth,
        label=label,
        navigation_range=name_node.range,
        node_range=node.range,
        kind=kind,
        detail=_detail(source, node, kind),
        deprecated=any(_DEPRECATED_ATTR.match(_slice(source, attr)) for attr in attributes),
    )


def _detail(source: bytes, node: SyntaxNode, kind: SymbolKind) -> str | None:
    if kind is SymbolKind.FUNCTION:
        params = node.child_by_field("parameters")
        detail = "fn" + (_squash(_slice(source, params)) if params is not None else "()")
        ret = node.child_by_field("return_type")
        if ret is not None:
            detail += f" -> {_squash(_slice(source, ret))}"
        return detail
    if kind in (SymbolKind.FIELD, SymbolKind.CONST, SymbolKind.STATIC, SymbolKind.TYPE_ALIAS):
        type_node = node.child_by_field("type")
        if type_node is not None:
            return _squash(_slice(source, type_node))
    return None
