"""Heading rendering that makes headings linkable in Docusaurus.

Notion's heading_1 becomes ``##`` because Docusaurus reserves ``#`` for the
page title. The block id is appended as an explicit heading id so that
Notion links to a heading (``/<page>#<block id>``) keep working.
"""

import logging
import re
from typing import Any, Dict

from converters.block_converter import plain_text
from plugins.plugin_types import BlockModification, BlockTransform, PageRenderContext, Plugin

logger = logging.getLogger('notion_markdown_puller.plugins.headings')

HEADING_PREFIX = 'DN_'
HEADING_TYPES = ('heading_1', 'heading_2', 'heading_3')
EMPHASIS_MARKERS = re.compile(r'[*_]')


def sentence_case(text: str) -> str:
    """Strip emphasis markers, capitalize the first word and lowercase the rest."""
    words = EMPHASIS_MARKERS.sub('', text).split(' ')
    return ' '.join(
        word[:1].upper() + word[1:].lower() if index == 0 else word.lower()
        for index, word in enumerate(words)
    )


def mark_heading(block: Dict[str, Any]) -> None:
    """Rename heading types so the default heading rendering is bypassed."""
    block_type = block.get('type', '')
    if block_type in HEADING_TYPES:
        block['type'] = HEADING_PREFIX + block_type


def render_heading(context: PageRenderContext, block: Dict[str, Any]) -> str:
    block_type = block['type'][len(HEADING_PREFIX):] if block['type'].startswith(HEADING_PREFIX) else block['type']
    block['type'] = block_type

    level = int(block_type[-1]) + 1
    text = plain_text((block.get(block_type) or {}).get('rich_text', []))
    markdown = f"{'#' * level} {sentence_case(text)}"
    logger.debug(f"[headingTransformer] Parsed {markdown}")

    block_id = block.get('id', '').replace('-', '')
    return f"{markdown} {{#{block_id}}}"


heading_transformer = Plugin(
    name='standardHeadingTransformer',
    block_modifications=[BlockModification(modify=mark_heading)],
    block_transforms=[
        BlockTransform(block_type=HEADING_PREFIX + heading_type, render=render_heading)
        for heading_type in HEADING_TYPES
    ],
)


__all__ = ['heading_transformer', 'sentence_case', 'mark_heading', 'render_heading']
