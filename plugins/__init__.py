"""Plugins that adjust how Notion pages become markdown.

Built-in plugins run for every page, in this order. Optional plugins are
enabled by name through ``plugins.enabled`` in the configuration and run
after the built-in ones.
"""

from typing import List, Optional, Sequence

from .plugin_types import (
    BlockModification,
    BlockTransform,
    LinkModifier,
    PageRenderContext,
    Plugin,
    RegexMarkdownModification,
)
from .heading_transformer import heading_transformer
from .column_list_transformer import column_list_transformer
from .internal_links import internal_link_conversion
from .external_links import external_link_conversion
from .embeds import gif_embed

BUILTIN_PLUGINS: List[Plugin] = [
    heading_transformer,
    column_list_transformer,
    internal_link_conversion,
    external_link_conversion,
]

OPTIONAL_PLUGINS = {
    gif_embed.name: gif_embed,
}


def build_plugin_list(enabled: Optional[Sequence[str]] = None) -> List[Plugin]:
    """
    Built-in plugins followed by the named optional plugins.

    Raises:
        ValueError: If a name does not refer to an optional plugin
    """
    plugins = list(BUILTIN_PLUGINS)
    for name in enabled or []:
        if name not in OPTIONAL_PLUGINS:
            raise ValueError(
                f"Unknown plugin '{name}'. Available plugins: {sorted(OPTIONAL_PLUGINS)}"
            )
        plugins.append(OPTIONAL_PLUGINS[name])
    return plugins


__all__ = [
    'BlockModification',
    'BlockTransform',
    'LinkModifier',
    'PageRenderContext',
    'Plugin',
    'RegexMarkdownModification',
    'BUILTIN_PLUGINS',
    'OPTIONAL_PLUGINS',
    'build_plugin_list',
]
