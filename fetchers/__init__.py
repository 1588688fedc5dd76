"""Fetchers package for discovering the pages of a Notion outline."""

from .page_registry import PageRegistry
from .outline_walker import NodeClass, OutlineWalker, WalkContext, classify_node

__all__ = [
    'PageRegistry',
    'OutlineWalker',
    'WalkContext',
    'NodeClass',
    'classify_node',
]
