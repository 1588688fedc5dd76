"""Ordered, append-only collection of pages discovered in the outline."""

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from models import NotionPage

logger = logging.getLogger('notion_markdown_puller.registry')


class PageRegistry:
    """
    Pages in discovery order.

    The registry only grows while the outline is walked. Once ``seal()`` is
    called it is read-only for the rest of the run.
    """

    def __init__(self):
        self._pages: List[NotionPage] = []
        self._by_id: Dict[str, NotionPage] = {}
        self._orders: Dict[str, Dict[int, str]] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, page: NotionPage) -> None:
        """
        Add a newly discovered page.

        Raises:
            RuntimeError: If the registry has been sealed
            ValueError: If a page with the same id is already registered, or
                another page already holds the same order in its sidebar
        """
        if self._sealed:
            raise RuntimeError(f"Cannot register page {page.page_id}: registry is sealed")
        if page.page_id in self._by_id:
            raise ValueError(f"Page {page.page_id} is already registered")

        orders = self._orders.setdefault(page.sidebar_context, {})
        if page.order in orders:
            raise ValueError(
                f"Order {page.order} is used twice in '{page.sidebar_context or '/'}' "
                f"(pages {orders[page.order]} and {page.page_id})"
            )
        orders[page.order] = page.page_id

        self._pages.append(page)
        self._by_id[page.page_id] = page
        logger.debug(f"Registered page {page.page_id} '{page.name_or_title}' as {page.subtype.value}")

    def seal(self) -> None:
        self._sealed = True

    def get(self, page_id: str) -> Optional[NotionPage]:
        return self._by_id.get(page_id)

    def find_by_link_id(self, link_id: str) -> Optional[NotionPage]:
        """Return the first page whose id matches link_id with or without dashes."""
        for page in self._pages:
            if page.matches_link_id(link_id):
                return page
        return None

    def pages_in_context(self, layout_context: str) -> List[NotionPage]:
        return [page for page in self._pages if page.layout_context == layout_context]

    def order_keys(self) -> List[Tuple[str, int]]:
        return [(page.sidebar_context, page.order) for page in self._pages]

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._by_id

    def __iter__(self) -> Iterator[NotionPage]:
        return iter(list(self._pages))

    def __len__(self) -> int:
        return len(self._pages)


__all__ = ['PageRegistry']
