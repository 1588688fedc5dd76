"""In-memory stand-ins for the Notion API used across the test suite."""

import copy
from typing import Any, Dict, List, Optional

from models import NotionPage, PageSubtype, parse_page_metadata
from notion_api_client import NotionApiError, number_numbered_list_items


def pid(n: int) -> str:
    """A well-formed dashed page id that is unique per n."""
    return f"{n:08x}-0000-4000-8000-{n:012x}"


def text_run(content: str, bold: bool = False, italic: bool = False, code: bool = False,
             strikethrough: bool = False, href: Optional[str] = None) -> Dict[str, Any]:
    return {
        'type': 'text',
        'plain_text': content,
        'text': {'content': content, 'link': {'url': href} if href else None},
        'annotations': {
            'bold': bold,
            'italic': italic,
            'strikethrough': strikethrough,
            'underline': False,
            'code': code,
        },
        'href': href,
    }


def mention_run(page_id: str, title: str = 'Linked page') -> Dict[str, Any]:
    return {
        'type': 'mention',
        'plain_text': title,
        'mention': {'type': 'page', 'page': {'id': page_id}},
        'annotations': {},
        'href': f"https://www.notion.so/{page_id.replace('-', '')}",
    }


def block(block_type: str, block_id: str = 'block', has_children: bool = False, **data) -> Dict[str, Any]:
    return {
        'object': 'block',
        'id': block_id,
        'type': block_type,
        'has_children': has_children,
        block_type: data,
    }


def paragraph(*runs, block_id: str = 'p', has_children: bool = False) -> Dict[str, Any]:
    rich_text = [text_run(run) if isinstance(run, str) else run for run in runs]
    return block('paragraph', block_id, has_children, rich_text=rich_text)


def child_page(page_id: str, title: str = '') -> Dict[str, Any]:
    return block('child_page', page_id, True, title=title)


def link_paragraph(target_id: str, block_id: str = 'link') -> Dict[str, Any]:
    return paragraph(mention_run(target_id), text_run(' '), block_id=block_id)


def heading(level: int, text: str, block_id: str = 'h') -> Dict[str, Any]:
    return block(f'heading_{level}', block_id, rich_text=[text_run(text)])


def raw_page(page_id: str, title: str, parent_id: Optional[str] = None, **properties) -> Dict[str, Any]:
    """Raw page object of a simple document."""
    parent = {'type': 'page_id', 'page_id': parent_id} if parent_id else {'type': 'workspace', 'workspace': True}
    props = {'title': {'type': 'title', 'title': [text_run(title)]}}
    props.update(_extra_properties(properties))
    return {'object': 'page', 'id': page_id, 'parent': parent, 'properties': props}


def raw_database_page(page_id: str, name: str, database_id: str = 'database', status: Optional[str] = 'Publish',
                      **properties) -> Dict[str, Any]:
    """Raw page object of a database entry with a Status select."""
    props = {
        'Name': {'type': 'title', 'title': [text_run(name)]},
        'Status': {'type': 'select', 'select': {'name': status} if status else None},
    }
    props.update(_extra_properties(properties))
    return {
        'object': 'page',
        'id': page_id,
        'parent': {'type': 'database_id', 'database_id': database_id},
        'properties': props,
    }


def _extra_properties(properties: Dict[str, Any]) -> Dict[str, Any]:
    extra = {}
    for name, value in properties.items():
        name = name.capitalize()
        extra[name] = {'type': 'rich_text', 'rich_text': [text_run(value)] if value else []}
    return extra


def make_page(page_id: str, title: str, layout_context: str = '', order: int = 0,
              subtype: Optional[PageSubtype] = None, parent_id: str = 'parent',
              found_directly_in_outline: bool = True, raw: Optional[Dict[str, Any]] = None,
              **properties) -> NotionPage:
    page = NotionPage(
        page_id=page_id,
        parent_id=parent_id,
        order=order,
        layout_context=layout_context,
        found_directly_in_outline=found_directly_in_outline,
        metadata=parse_page_metadata(raw or raw_page(page_id, title, parent_id, **properties))
    )
    if subtype is not None:
        page.assign_subtype(subtype)
    return page


class FakeNotionClient:
    """Serves pages and block lists from dictionaries, recording every call."""

    def __init__(self, pages: Optional[Dict[str, Dict[str, Any]]] = None,
                 blocks: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.pages = pages or {}
        self.blocks = blocks or {}
        self.calls: List[tuple] = []
        self.closed = False

    def add_page(self, raw: Dict[str, Any], blocks: Optional[List[Dict[str, Any]]] = None) -> None:
        self.pages[raw['id']] = raw
        self.blocks[raw['id']] = blocks or []

    def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        self.calls.append(('retrieve_page', page_id))
        if page_id not in self.pages:
            raise NotionApiError(404, 'object_not_found', f"Could not find page with ID: {page_id}")
        return copy.deepcopy(self.pages[page_id])

    def list_block_children(self, block_id: str) -> List[Dict[str, Any]]:
        self.calls.append(('list_block_children', block_id))
        results = copy.deepcopy(self.blocks.get(block_id, []))
        number_numbered_list_items(results)
        return results

    def execute_with_rate_limit_and_retries(self, label, fn):
        self.calls.append(('execute', label))
        return fn()

    def close(self) -> None:
        self.closed = True

    def retrieved(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == 'retrieve_page']
