"""Recursive discovery and classification of pages in the outline."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from exporters.layout_strategy import LayoutStrategy
from fetchers.page_registry import PageRegistry
from models import ContentInfo, NotionPage, PageSubtype, RunCounts, get_content_info, parse_page_metadata
from notion_api_client import NotionApiClient

logger = logging.getLogger('notion_markdown_puller.walker')


class NodeClass(Enum):
    """Outcome of classifying one node of the outline."""
    ROOT = "root"
    CUSTOM = "custom"
    CATEGORY_INDEX = "category_index"
    CONTENT = "content"
    LEVEL = "level"
    EMPTY = "empty"


def classify_node(
    is_root_node: bool,
    is_top_level_custom: bool,
    has_content: bool,
    child_count: int,
    link_count: int,
    is_root_level: bool = False
) -> NodeClass:
    """
    Decide the structural role of a node. The first matching rule wins.

    Args:
        is_root_node: The node is the run's root page
        is_top_level_custom: The node sits directly under the root and is
            not the outline container
        has_content: The node has blocks other than child pages and links
        child_count: Number of nested child pages
        link_count: Number of link-only paragraphs
        is_root_level: The node was reached from the root call of the walk

    Returns:
        The NodeClass to apply
    """
    has_descendants = child_count > 0 or link_count > 0

    if is_root_node:
        return NodeClass.ROOT
    if is_top_level_custom:
        return NodeClass.CUSTOM
    if not is_root_level and has_content and has_descendants:
        return NodeClass.CATEGORY_INDEX
    if not is_root_level and has_content:
        return NodeClass.CONTENT
    if has_descendants:
        return NodeClass.LEVEL
    return NodeClass.EMPTY


@dataclass
class WalkContext:
    """State shared by every call of one walk."""

    registry: PageRegistry
    layout: LayoutStrategy
    root_page_id: str
    output_path: Union[str, Path]
    outline_title: str = 'Outline'
    counts: RunCounts = field(default_factory=RunCounts)


class OutlineWalker:
    """
    Walks the outline depth first, registering every page that will produce
    an output file.

    Siblings are visited one after another so that discovery order stays
    meaningful as the sidebar order.
    """

    def __init__(self, client: NotionApiClient):
        self.client = client

    def discover(self, context: WalkContext) -> PageRegistry:
        """
        Walk the whole outline from the root page and seal the registry.

        Returns:
            The populated, sealed registry
        """
        self.walk(context, '', context.root_page_id, context.root_page_id, 0, True)
        context.registry.seal()
        logger.info(f"Found {len(context.registry)} pages")
        return context.registry

    def _fetch_page(
        self,
        context: WalkContext,
        layout_context: str,
        parent_id: str,
        page_id: str,
        order: int,
        found_directly_in_outline: bool
    ) -> NotionPage:
        raw = self.client.retrieve_page(page_id)
        return NotionPage(
            page_id=page_id,
            parent_id=parent_id,
            order=order,
            layout_context=layout_context,
            found_directly_in_outline=found_directly_in_outline,
            metadata=parse_page_metadata(raw)
        )

    def _is_top_level_custom(self, context: WalkContext, page: NotionPage) -> bool:
        return (
            page.parent_id == context.root_page_id
            and page.page_id != context.root_page_id
            and page.name_or_title != context.outline_title
        )

    def walk(
        self,
        context: WalkContext,
        layout_context: str,
        parent_id: str,
        page_id: str,
        order: int,
        is_root: bool
    ) -> None:
        """
        Classify one node and recurse into its children and links.

        Args:
            context: Shared walk state
            layout_context: Layout context the node was found in
            parent_id: Page the node was found under (equal to page_id for the root)
            page_id: Node to classify
            order: Position of the node among its siblings
            is_root: True only for the first call of the walk
        """
        # A link earlier in the outline already placed this page; only its
        # sub-pages still need a place.
        linked_earlier = page_id != parent_id and page_id in context.registry
        if linked_earlier:
            logger.warning(
                f"Page {page_id} was already registered through a link; "
                f"only its sub-pages are placed here"
            )

        page = self._fetch_page(context, layout_context, parent_id, page_id, order, True)
        blocks = self.client.list_block_children(page_id)
        info = get_content_info(blocks)

        node_class = classify_node(
            is_root_node=page_id == parent_id,
            is_top_level_custom=self._is_top_level_custom(context, page),
            has_content=info.has_content,
            child_count=len(info.children),
            link_count=len(info.links),
            is_root_level=is_root
        )
        logger.debug(
            f"{layout_context or '/'} > '{page.name_or_title}': {node_class.value} "
            f"(children={len(info.children)}, links={len(info.links)}, content={info.has_content})"
        )

        if node_class == NodeClass.ROOT:
            logger.info(f"Root page is '{page.name_or_title}'. Scanning...")
            self._descend(context, layout_context, page, info)

        elif node_class == NodeClass.CUSTOM:
            if not linked_earlier:
                logger.info(
                    f"Page '{page.name_or_title}' is outside the {context.outline_title}; "
                    f"it will be stored with the custom pages"
                )
                self._register_custom(context, page)

        elif node_class == NodeClass.CATEGORY_INDEX:
            logger.info(f"Page '{page.name_or_title}' has content and sub-pages; it becomes a level with an index page")
            new_context = context.layout.new_level(context.output_path, page.order, layout_context, page.name_or_title)
            if not linked_earlier:
                page.assign_subtype(PageSubtype.CATEGORY_INDEX)
                page.layout_context = new_context
                context.registry.append(page)
            self._descend(context, new_context, page, info)

        elif node_class == NodeClass.CONTENT:
            if not linked_earlier:
                logger.info(f"Page '{page.name_or_title}' is a content page")
                page.assign_subtype(PageSubtype.CONTENT)
                context.registry.append(page)

        elif node_class == NodeClass.LEVEL:
            level_context = layout_context
            if is_root or page.name_or_title == context.outline_title:
                logger.info(f"Page '{page.name_or_title}' only has sub-pages; its children stay at the current level")
            else:
                logger.info(f"Page '{page.name_or_title}' only has sub-pages; it becomes a level without an index")
                level_context = context.layout.new_level(
                    context.output_path, page.order, layout_context, page.name_or_title
                )
            self._descend(context, level_context, page, info)

        elif not linked_earlier:
            logger.warning(
                f"The page '{page.name_or_title}' is in the outline but has no content, "
                f"links or child pages. It will be skipped."
            )
            context.counts.skipped_because_empty += 1

    def _descend(self, context: WalkContext, layout_context: str, page: NotionPage, info: ContentInfo) -> None:
        for child_id, child_order in info.children:
            self.walk(context, layout_context, page.page_id, child_id, child_order, False)
        for link_id, link_order in info.links:
            self._register_link(context, layout_context, page.page_id, link_id, link_order)

    def _register_link(
        self,
        context: WalkContext,
        layout_context: str,
        parent_id: str,
        page_id: str,
        order: int
    ) -> None:
        """Register the target of a link-only paragraph without walking into it."""
        if page_id in context.registry:
            logger.warning(
                f"Page {page_id} is linked from more than one place in the outline; "
                f"only its first position is used"
            )
            return

        page = self._fetch_page(context, layout_context, parent_id, page_id, order, False)
        if self._is_top_level_custom(context, page):
            logger.info(
                f"Page '{page.name_or_title}' is a link outside the {context.outline_title}; "
                f"it will be stored with the custom pages"
            )
            self._register_custom(context, page)
        else:
            logger.info(f"Page '{page.name_or_title}' is a link to a page")
            page.assign_subtype(PageSubtype.CONTENT)
            context.registry.append(page)

    def _register_custom(self, context: WalkContext, page: NotionPage) -> None:
        # Custom pages leave the sidebar, so they rank among themselves only.
        page.assign_subtype(PageSubtype.CUSTOM)
        page.layout_context = context.layout.custom_pages_context()
        context.registry.append(page)


__all__ = ['OutlineWalker', 'WalkContext', 'NodeClass', 'classify_node']
