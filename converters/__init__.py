"""Converters package for turning Notion blocks into Docusaurus markdown.

The page-level pipeline lives in ``converters.transform_pipeline``; it is
imported from there directly because it depends on the plugins package,
which in turn uses the block converter exported here.
"""

from .block_converter import BlockMarkdownConverter, plain_text, rich_text_to_markdown

__all__ = [
    'BlockMarkdownConverter',
    'plain_text',
    'rich_text_to_markdown',
]
