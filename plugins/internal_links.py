"""Link modifier for links between pages of the outline."""

from exporters.link_rewriter import INTERNAL_LINK_PATTERN, convert_internal_link
from plugins.plugin_types import LinkModifier, Plugin

internal_link_conversion = Plugin(
    name='InternalLinkPlugin',
    link_modifier=LinkModifier(match=INTERNAL_LINK_PATTERN, convert=convert_internal_link),
)

__all__ = ['internal_link_conversion']
