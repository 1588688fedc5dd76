"""Renders Notion column lists as Docusaurus tabs.

Each column becomes a ``<TabItem>``. When a column starts with a heading_1
its text is used as the tab label.
"""

import copy
import logging
from typing import Any, Dict, Optional

from plugins.plugin_types import BlockTransform, PageRenderContext, Plugin

logger = logging.getLogger('notion_markdown_puller.plugins.tabs')

TABS_IMPORTS = [
    "import Tabs from '@theme/Tabs';",
    "import TabItem from '@theme/TabItem';",
]


def _column_label(column_children) -> str:
    if column_children and column_children[0].get('type') == 'heading_1':
        runs = column_children[0]['heading_1'].get('rich_text', [])
        if runs and runs[0].get('type') == 'text':
            return runs[0]['text']['content']
    return 'Tab'


def column_list_to_tabs(context: PageRenderContext, block: Dict[str, Any]) -> Optional[str]:
    if not block.get('has_children'):
        return ''
    if context.converter is None:
        return None

    tab_items = []
    for column in context.get_block_children(block['id']):
        column_children = copy.deepcopy(context.get_block_children(column['id']))
        label = _column_label(column_children)
        # Same block modifications as the page body, so tab headings get ids too.
        if context.modify_blocks is not None:
            context.modify_blocks(column_children)
        content = context.converter.blocks_to_markdown(column_children)
        tab_items.append(
            f'<TabItem value="{label.lower()}" label="{label}">\n\n{content}\n\n</TabItem>'
        )

    logger.debug(f"Rendered column list {block['id']} as {len(tab_items)} tab(s)")
    return "<Tabs>\n" + "\n".join(tab_items) + "</Tabs>"


column_list_transformer = Plugin(
    name='standardColumnListTransformer',
    block_transforms=[
        BlockTransform(block_type='column_list', render=column_list_to_tabs, imports=TABS_IMPORTS),
    ],
)


__all__ = ['column_list_transformer', 'column_list_to_tabs', 'TABS_IMPORTS']
