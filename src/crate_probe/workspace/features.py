from collections.abc import Iterable, Mapping, Sequence


def resolve_features(
    declared: Mapping[str, Sequence[str]],
    requested: Iterable[str] = (),
    *,
    all_features: bool = False,
    no_default_features: bool = False,
) -> frozenset[str]:
    """Expand the enabled feature names of one package.

    Starts from ``default`` (unless disabled) plus *requested*, or from every
    declared feature with *all_features*, and follows the ``[features]``
    table transitively. ``dep:x`` entries enable a dependency, not a feature;
    ``x/y`` enables the feature ``x`` when the package declares one, while the
    weak form ``x?/y`` enables nothing locally. Unknown names are ignored.
    """
    if all_features:
        pending = list(declared)
    else:
        pending = list(requested)
        if not no_default_features:
            pending.append("default")

    enabled: set[str] = set()
    while pending:
        feature = pending.pop()
        if feature in enabled or feature not in declared:
            continue
        enabled.add(feature)
        for entry in declared[feature]:
            if entry.startswith("dep:"):
                continue
            if "/" in entry:
                dep, _, _ = entry.partition("/")
                if not dep.endswith("?"):
                    pending.append(dep)
                continue
            pending.append(entry)
    return frozenset(enabled)


def requested_for_package(package: str, requested: Iterable[str]) -> list[str]:
    """Select the ``--features`` entries that apply to *package*.

    Plain names apply to every package; ``pkg/feature`` only to ``pkg``.
    """
    selected: list[str] = []
    for entry in requested:
        for name in entry.replace(",", " ").split():
            owner, sep, feature = name.partition("/")
            if not sep:
                selected.append(name)
            elif owner == package:
                selected.append(feature)
    return selected
