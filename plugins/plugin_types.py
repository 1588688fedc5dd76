"""Hook kinds that plugins use to adjust how pages are rendered."""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern

from converters.block_converter import BlockMarkdownConverter
from exporters.link_rewriter import convert_internal_url
from exporters.layout_strategy import LayoutStrategy
from fetchers.page_registry import PageRegistry
from models import NotionPage, RunCounts

Block = Dict[str, Any]


@dataclass
class PageRenderContext:
    """Everything a plugin may consult while a page is rendered.

    One instance lives for the whole rendering stage. ``current_page``,
    ``directory_containing_markdown`` and ``imports`` change per page.
    """

    registry: PageRegistry
    layout: LayoutStrategy
    get_block_children: Callable[[str], List[Block]]
    converter: Optional[BlockMarkdownConverter] = None
    modify_blocks: Optional[Callable[[List[Block]], None]] = None
    counts: RunCounts = field(default_factory=RunCounts)
    options: Any = None
    current_page: Optional[NotionPage] = None
    directory_containing_markdown: str = ''
    imports: List[str] = field(default_factory=list)

    @property
    def pages(self) -> List[NotionPage]:
        return list(self.registry)

    def convert_notion_link_to_local_link(self, url: str) -> Optional[str]:
        return convert_internal_url(self, url)


@dataclass
class BlockModification:
    """Mutates a block in place before it is rendered."""

    modify: Callable[[Block], None]


@dataclass
class BlockTransform:
    """Renders one block type in place of the default rendering.

    ``render`` may return None to fall back to the default.
    """

    block_type: str
    render: Callable[[PageRenderContext, Block], Optional[str]]
    imports: List[str] = field(default_factory=list)


@dataclass
class RegexMarkdownModification:
    """Regex substitution applied to the rendered markdown.

    Either ``replacement_pattern`` (``$1`` is replaced with the first group)
    or ``get_replacement`` must be given. Fenced code blocks are left alone
    unless ``include_code_blocks`` is set.
    """

    regex: Pattern
    replacement_pattern: Optional[str] = None
    get_replacement: Optional[Callable[[PageRenderContext, re.Match], Optional[str]]] = None
    include_code_blocks: bool = False
    imports: List[str] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.regex, str):
            self.regex = re.compile(self.regex)
        if self.replacement_pattern is None and self.get_replacement is None:
            raise ValueError("RegexMarkdownModification needs replacement_pattern or get_replacement")


@dataclass
class LinkModifier:
    """Rewrites a single ``[label](href)`` link when ``match`` finds it."""

    match: Pattern
    convert: Callable[[PageRenderContext, str], str]

    def __post_init__(self):
        if isinstance(self.match, str):
            self.match = re.compile(self.match)


@dataclass
class Plugin:
    """A named bundle of hooks. Plugins run in registration order."""

    name: str
    block_modifications: List[BlockModification] = field(default_factory=list)
    block_transforms: List[BlockTransform] = field(default_factory=list)
    regex_modifications: List[RegexMarkdownModification] = field(default_factory=list)
    link_modifier: Optional[LinkModifier] = None


__all__ = [
    'PageRenderContext',
    'BlockModification',
    'BlockTransform',
    'RegexMarkdownModification',
    'LinkModifier',
    'Plugin',
]
