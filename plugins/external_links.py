"""Link modifier for links that leave the workspace."""

import logging
import re

from plugins.plugin_types import LinkModifier, PageRenderContext, Plugin

logger = logging.getLogger('notion_markdown_puller.plugins.external_links')

EXTERNAL_LINK_PATTERN = re.compile(r'\[([^\]]+)?\]\((http.*)\)')


def convert_external_link(context: PageRenderContext, markdown_link: str) -> str:
    """Bookmarks come through labelled "bookmark"; label them with their URL."""
    match = EXTERNAL_LINK_PATTERN.search(markdown_link)
    if match is None:
        logger.error(f"[ExternalLinkPlugin] Could not parse link {markdown_link}")
        return markdown_link

    label = match.group(1) or ''
    url = match.group(2)
    if label == 'bookmark':
        replacement = f"[{url}]({url})"
        logger.warning(
            f"[ExternalLinkPlugin] Found a Notion bookmark; replacing its label with the URL: {replacement}"
        )
        return replacement
    return f"[{label}]({url})"


external_link_conversion = Plugin(
    name='ExternalLinkPlugin',
    link_modifier=LinkModifier(match=re.compile(r'\[.*\]\(http.*\)'), convert=convert_external_link),
)

__all__ = ['external_link_conversion', 'convert_external_link']
