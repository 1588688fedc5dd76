"""Output package for the generated docs tree.

Package Structure:
- markdown_writer: Filesystem sink that skips unchanged files
- layout_strategy: Decides output paths, sidebar levels and stale-file cleanup
- link_rewriter: Resolves links between pages against the discovered pages
"""

from .markdown_writer import MarkdownWriter
from .layout_strategy import HierarchicalNamedLayoutStrategy, LayoutStrategy, Level, sanitize_path_segment
from .link_rewriter import LinkRewriter, PROBLEM_LINK_PLACEHOLDER

__all__ = [
    'MarkdownWriter',
    'LayoutStrategy',
    'HierarchicalNamedLayoutStrategy',
    'Level',
    'sanitize_path_segment',
    'LinkRewriter',
    'PROBLEM_LINK_PLACEHOLDER',
]
