# SPDX-License-Identifier: MIT
"""Extension kind classification.

Decides which extension hosts an extension can run in, from the manifest
alone. The first applicable rule wins:

1. an explicit ``extensionKind`` declaration (``"ui"`` implies workspace too)
2. ``main`` and ``browser`` entry points
3. ``main`` only
4. ``browser`` only
5. a non-empty extension pack or extension dependency list
6. every kind, narrowed by the contribution points the extension declares

A declared ``browser`` entry point adds ``web`` to an explicit declaration.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .models import EXTENSION_KIND_ORDER, ExtensionKind

logger = logging.getLogger(__name__)

_UI = ExtensionKind.UI
_WORKSPACE = ExtensionKind.WORKSPACE
_WEB = ExtensionKind.WEB

# Contribution points that only make sense in some extension hosts.
# Every entry contains WORKSPACE, so narrowing never empties the result.
CONTRIBUTION_EXTENSION_KINDS: dict[str, frozenset[ExtensionKind]] = {
    "jsonValidation": frozenset({_WORKSPACE, _WEB}),
    "localizations": frozenset({_UI, _WORKSPACE}),
    "debuggers": frozenset({_WORKSPACE}),
    "terminal": frozenset({_WORKSPACE}),
    "typescriptServerPlugins": frozenset({_WORKSPACE}),
    "markdown.previewStyles": frozenset({_WORKSPACE, _WEB}),
    "markdown.previewScripts": frozenset({_WORKSPACE, _WEB}),
    "markdown.markdownItPlugins": frozenset({_WORKSPACE, _WEB}),
    "html.customData": frozenset({_WORKSPACE, _WEB}),
    "css.customData": frozenset({_WORKSPACE, _WEB}),
}


def _ordered(kinds: Iterable[ExtensionKind]) -> list[ExtensionKind]:
    present = set(kinds)
    return [kind for kind in EXTENSION_KIND_ORDER if kind in present]


def _declared_kinds(value: Any) -> list[ExtensionKind]:
    """Parse an ``extensionKind`` declaration, skipping unknown values."""
    if isinstance(value, str):
        if value == _UI.value:
            return [_UI, _WORKSPACE]
        values = [value]
    elif isinstance(value, (list, tuple)):
        values = list(value)
    else:
        return []

    kinds: list[ExtensionKind] = []
    for item in values:
        try:
            kinds.append(ExtensionKind(item))
        except ValueError:
            logger.warning("Ignoring unknown extension kind %r", item)
    return kinds


def _is_non_empty_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


def _narrow_by_contributions(contributes: Any) -> set[ExtensionKind]:
    result = set(EXTENSION_KIND_ORDER)
    if not isinstance(contributes, Mapping):
        return result
    for contribution in contributes:
        allowed = CONTRIBUTION_EXTENSION_KINDS.get(contribution)
        if allowed is not None:
            result &= allowed
    return result


def get_extension_kinds(manifest: Mapping[str, Any]) -> list[ExtensionKind]:
    """Classify the extension hosts an extension supports.

    Args:
        manifest: Extension manifest (package.json contents)

    Returns:
        A non-empty list of kinds in canonical order (ui, workspace, web)
    """
    has_main = bool(manifest.get("main"))
    has_browser = bool(manifest.get("browser"))

    declared = _declared_kinds(manifest.get("extensionKind"))
    if declared:
        result = set(declared)
        if has_browser:
            result.add(_WEB)
        return _ordered(result)

    if has_main and has_browser:
        return [_WORKSPACE, _WEB]
    if has_main:
        return [_WORKSPACE]
    if has_browser:
        return [_WEB]

    if _is_non_empty_list(manifest.get("extensionPack")) or _is_non_empty_list(
        manifest.get("extensionDependencies")
    ):
        return [_WORKSPACE, _WEB]

    return _ordered(_narrow_by_contributions(manifest.get("contributes")))
