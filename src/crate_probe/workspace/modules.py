"""Follow ``mod`` declarations from a crate root to every file the crate includes."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from crate_probe.core.ports.analysis import AnalysisEngine
from crate_probe.models import COMMENT_KINDS, SyntaxNode

logger = logging.getLogger(__name__)

_PATH_ATTR = re.compile(r'^#\[\s*path\s*=\s*"([^"]+)"\s*\]$')
_INCLUDE_ARG = re.compile(r'^\(\s*"([^"]+)"\s*,?\s*\)$')


@dataclass(frozen=True)
class _Found:
    path: Path
    # None for files that are textually included rather than modules.
    child_dir: Path | None


@dataclass(frozen=True)
class _ModuleFile:
    path: Path
    # Directory that `mod foo;` declarations at the top of this file resolve against.
    child_dir: Path


def _child_dir(path: Path, is_root: bool, owns_directory: bool) -> Path:
    if is_root or owns_directory or path.name == "mod.rs":
        return path.parent
    return path.parent / path.stem


def collect_module_files(
    root_file: Path,
    engine: AnalysisEngine,
    include_macro_expansion: bool = False,
) -> list[Path]:
    """Return the crate root followed by every module file reachable from it.

    Declarations whose file does not exist are skipped. With
    *include_macro_expansion*, files pulled in through ``include!("...")``
    with a literal path are members too.
    """
    root_file = root_file.resolve()
    members: dict[Path, None] = {root_file: None}
    pending = [_ModuleFile(root_file, _child_dir(root_file, is_root=True, owns_directory=False))]

    while pending:
        module = pending.pop(0)
        try:
            text = module.path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Cannot read module file %s: %s", module.path, exc)
            continue
        tree = engine.parse(text)
        source = text.encode("utf-8")

        items = _scan_items(tree.root, source, module, module.child_dir, inline=False, include=include_macro_expansion)
        for found in items:
            resolved = found.path.resolve()
            if resolved in members:
                continue
            members[resolved] = None
            if found.child_dir is not None:
                pending.append(_ModuleFile(resolved, found.child_dir))

    return list(members)


def _text(source: bytes, node: SyntaxNode) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _scan_items(
    node: SyntaxNode,
    source: bytes,
    module: _ModuleFile,
    directory: Path,
    inline: bool,
    include: bool,
) -> list[_Found]:
    found: list[_Found] = []
    path_attr: str | None = None
    for child in node.children:
        if child.kind == "attribute_item":
            match = _PATH_ATTR.match(_text(source, child))
            if match:
                path_attr = match.group(1)
            continue
        if child.kind in COMMENT_KINDS:
            continue

        if child.kind == "mod_item":
            found.extend(_resolve_mod(child, source, module, directory, inline, include, path_attr))
        elif include and child.kind == "macro_invocation":
            included = _resolve_include(child, source, module)
            if included is not None:
                found.append(included)
        else:
            found.extend(_scan_items(child, source, module, directory, inline, include))
        path_attr = None
    return found


def _resolve_mod(
    node: SyntaxNode,
    source: bytes,
    module: _ModuleFile,
    directory: Path,
    inline: bool,
    include: bool,
    path_attr: str | None,
) -> list[_Found]:
    name_node = node.child_by_field("name")
    if name_node is None or name_node.is_missing:
        return []
    name = _text(source, name_node)
    body = node.child_by_field("body")

    if body is not None:
        inner_dir = directory / (path_attr or name)
        return _scan_items(body, source, module, inner_dir, inline=True, include=include)

    if path_attr is not None:
        base = directory if inline else module.path.parent
        target = base / path_attr
        if target.is_file():
            return [_Found(target, _child_dir(target, is_root=False, owns_directory=True))]
        logger.debug("Module %s in %s points at missing file %s", name, module.path, target)
        return []

    for candidate in (directory / f"{name}.rs", directory / name / "mod.rs"):
        if candidate.is_file():
            return [_Found(candidate, _child_dir(candidate, is_root=False, owns_directory=False))]
    logger.debug("No file for module %s declared in %s", name, module.path)
    return []


def _resolve_include(node: SyntaxNode, source: bytes, module: _ModuleFile) -> _Found | None:
    macro = node.child_by_field("macro")
    if macro is None or _text(source, macro) != "include":
        return None
    args = next((child for child in node.children if child.kind == "token_tree"), None)
    if args is None:
        return None
    match = _INCLUDE_ARG.match(_text(source, args))
    if not match:
        return None
    target = module.path.parent / match.group(1)
    if not target.is_file():
        logger.debug("include! in %s points at missing file %s", module.path, target)
        return None
    return _Found(target, None)
