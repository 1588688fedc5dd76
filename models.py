"""Data models for the Notion outline to markdown pipeline."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser

logger = logging.getLogger('notion_markdown_puller')

SLUG_SPECIAL_CHARS = re.compile(r'[\s?/#&%]')
REPEATED_DASHES = re.compile(r'-{2,}')


class PageKind(Enum):
    """How a page is stored in the remote workspace."""
    COLLECTION_ENTRY = "collection_entry"
    SIMPLE_DOCUMENT = "simple_document"


class PageSubtype(Enum):
    """Structural role assigned to a page while walking the outline."""
    CATEGORY_INDEX = "category_index"
    CUSTOM = "custom"
    CONTENT = "content"


class MissingPropertyError(KeyError):
    """Raised when a page lacks a property the caller requires."""

    def __init__(self, property_name: str, page_id: str):
        self.property_name = property_name
        self.page_id = page_id
        super().__init__(f"Page {page_id} is missing required property '{property_name}'")

    def __str__(self) -> str:
        return self.args[0]


@dataclass(frozen=True)
class DateRange:
    """A date property value; start and end are ISO 8601 strings."""

    start: Optional[str] = None
    end: Optional[str] = None
    time_zone: Optional[str] = None

    @property
    def start_datetime(self) -> Optional[datetime]:
        return date_parser.isoparse(self.start) if self.start else None

    @property
    def end_datetime(self) -> Optional[datetime]:
        return date_parser.isoparse(self.end) if self.end else None


@dataclass(frozen=True)
class PageMetadata:
    """Typed view of the raw page object returned by the remote API.

    Property values are split by shape so that callers never dig through
    the raw JSON. A property absent from a map was absent from the page.
    """

    id: str
    parent_type: str
    parent_id: Optional[str]
    plain_text: Dict[str, str] = field(default_factory=dict)
    selects: Dict[str, Optional[str]] = field(default_factory=dict)
    dates: Dict[str, DateRange] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


def parse_page_metadata(raw: Dict[str, Any]) -> PageMetadata:
    """
    Parse a raw page object into a PageMetadata record.

    Args:
        raw: Page object as returned by GET /v1/pages/{id}

    Returns:
        PageMetadata with plain text, select and date properties split out
    """
    parent = raw.get('parent') or {}
    parent_type = parent.get('type', '')
    parent_id = parent.get(parent_type) if parent_type else None
    if not isinstance(parent_id, str):
        parent_id = None

    plain_text: Dict[str, str] = {}
    selects: Dict[str, Optional[str]] = {}
    dates: Dict[str, DateRange] = {}

    for name, prop in (raw.get('properties') or {}).items():
        prop_type = prop.get('type')
        if prop_type in ('title', 'rich_text'):
            runs = prop.get(prop_type) or []
            plain_text[name] = ''.join(run.get('plain_text', '') for run in runs)
        elif prop_type == 'select':
            option = prop.get('select')
            selects[name] = option.get('name') if option else None
        elif prop_type == 'date':
            value = prop.get('date') or {}
            dates[name] = DateRange(
                start=value.get('start'),
                end=value.get('end'),
                time_zone=value.get('time_zone')
            )

    return PageMetadata(
        id=raw.get('id', ''),
        parent_type=parent_type,
        parent_id=parent_id,
        plain_text=plain_text,
        selects=selects,
        dates=dates,
        raw=raw
    )


def sanitize_slug(slug: str) -> str:
    """
    Turn a user-entered slug into a URL path that is safe to publish.

    Whitespace and the characters ``? / # & %`` become dashes and runs of
    dashes collapse to one. The result always starts with ``/``. The root
    slug ``/`` is returned unchanged.

    Args:
        slug: Raw slug value

    Returns:
        Sanitized slug
    """
    if slug == '/':
        return slug
    body = slug.lstrip('/')
    body = SLUG_SPECIAL_CHARS.sub('-', body)
    body = REPEATED_DASHES.sub('-', body)
    return '/' + body


def parse_link_id(full_link_id: str) -> Tuple[str, str]:
    """
    Split a link target into its base id and fragment.

    Returns:
        Tuple of (base, fragment) where fragment includes the leading '#'
        or is empty
    """
    index = full_link_id.find('#')
    if index >= 0:
        return full_link_id[:index], full_link_id[index:]
    return full_link_id, ''


@dataclass
class NotionPage:
    """A page discovered while walking the outline."""

    page_id: str
    parent_id: str
    order: int
    layout_context: str
    found_directly_in_outline: bool
    metadata: PageMetadata
    _subtype: Optional[PageSubtype] = field(default=None, repr=False)

    @property
    def kind(self) -> PageKind:
        if self.metadata.parent_type == 'database_id':
            return PageKind.COLLECTION_ENTRY
        return PageKind.SIMPLE_DOCUMENT

    @property
    def subtype(self) -> PageSubtype:
        return self._subtype or PageSubtype.CONTENT

    @property
    def subtype_assigned(self) -> bool:
        return self._subtype is not None

    def assign_subtype(self, subtype: PageSubtype) -> None:
        """
        Record the page's structural role.

        Raises:
            ValueError: If a subtype was already assigned to this page
        """
        if self._subtype is not None:
            raise ValueError(
                f"Subtype of page {self.page_id} already set to {self._subtype.value}"
            )
        self._subtype = subtype

    @property
    def title(self) -> str:
        return self.metadata.plain_text.get('title') or 'title missing'

    @property
    def name(self) -> str:
        return self.metadata.plain_text.get('Name') or 'name missing'

    @property
    def name_or_title(self) -> str:
        """Collection entries have a Name, simple documents have a title."""
        if self.kind == PageKind.COLLECTION_ENTRY:
            return self.name
        return self.title

    @property
    def explicit_slug(self) -> Optional[str]:
        value = self.metadata.plain_text.get('Slug', '')
        if not value:
            return None
        return sanitize_slug(value)

    @property
    def has_explicit_slug(self) -> bool:
        return self.explicit_slug is not None

    @property
    def slug(self) -> str:
        return self.explicit_slug or '/' + self.page_id

    @property
    def keywords(self) -> List[str]:
        value = self.metadata.plain_text.get('Keywords', '')
        return [word.strip() for word in value.split(',') if word.strip()]

    @property
    def status(self) -> Optional[str]:
        """
        Value of the Status select property.

        Raises:
            MissingPropertyError: If the page has no Status property
        """
        return self.get_select_property('Status')

    def get_select_property(self, name: str) -> Optional[str]:
        if name not in self.metadata.selects:
            raise MissingPropertyError(name, self.page_id)
        return self.metadata.selects[name]

    def get_date_property(self, name: str, default: str = '', start: bool = True) -> str:
        """Return the start (or end) of a date property, or default when unset."""
        date_range = self.metadata.dates.get(name)
        if date_range is None:
            return default
        value = date_range.start if start else date_range.end
        return value or default

    def name_for_file(self) -> str:
        """
        Base file name (no extension) for this page.

        Index pages always use "index". Otherwise an explicit slug wins, then
        the title of a simple document or the name of a collection entry.
        """
        if self.subtype == PageSubtype.CATEGORY_INDEX:
            return 'index'
        slug = self.explicit_slug
        if slug and slug != '/':
            return slug.lstrip('/')
        if self.kind == PageKind.SIMPLE_DOCUMENT:
            return self.title
        return self.name

    @property
    def sidebar_context(self) -> str:
        """
        Layout context whose sidebar this page's ``order`` ranks it in.

        An index page lives inside the level it opened, but its order is its
        position among the siblings of that level's parent.
        """
        if self.subtype == PageSubtype.CATEGORY_INDEX:
            return self.layout_context.rsplit('/', 1)[0]
        return self.layout_context

    def matches_link_id(self, link_id: str) -> bool:
        base, _ = parse_link_id(link_id)
        if not base:
            return False
        return base == self.page_id or base.replace('-', '') == self.page_id.replace('-', '')

    def to_dict(self) -> Dict[str, Any]:
        """Serialize page to dictionary."""
        return {
            'page_id': self.page_id,
            'parent_id': self.parent_id,
            'order': self.order,
            'layout_context': self.layout_context,
            'found_directly_in_outline': self.found_directly_in_outline,
            'kind': self.kind.value,
            'subtype': self.subtype.value,
            'title': self.name_or_title,
            'slug': self.slug,
        }


@dataclass
class ContentInfo:
    """Classification inputs derived from a page's child blocks."""

    children: List[Tuple[str, int]] = field(default_factory=list)
    links: List[Tuple[str, int]] = field(default_factory=list)
    has_content: bool = False


def _is_blank_text_run(run: Dict[str, Any]) -> bool:
    return run.get('type') == 'text' and not run.get('plain_text', '').strip()


def _is_page_mention(run: Dict[str, Any]) -> bool:
    return run.get('type') == 'mention' and (run.get('mention') or {}).get('type', 'page') == 'page'


def get_link_target(block: Dict[str, Any]) -> Optional[str]:
    """
    Return the mentioned page id when a block is a link-only paragraph.

    A link-only paragraph holds exactly one mention and nothing but
    whitespace text around it.
    """
    if block.get('type') != 'paragraph':
        return None
    runs = (block.get('paragraph') or {}).get('rich_text') or []
    mentions = [run for run in runs if run.get('type') == 'mention']
    if len(mentions) != 1 or not _is_page_mention(mentions[0]):
        return None
    if not all(run.get('type') == 'mention' or _is_blank_text_run(run) for run in runs):
        return None
    mention = mentions[0].get('mention') or {}
    page = mention.get('page') or {}
    return page.get('id')


def _is_filler_paragraph(block: Dict[str, Any]) -> bool:
    if block.get('type') != 'paragraph':
        return False
    runs = (block.get('paragraph') or {}).get('rich_text') or []
    return all(run.get('type') == 'mention' or _is_blank_text_run(run) for run in runs)


def get_content_info(blocks: List[Dict[str, Any]]) -> ContentInfo:
    """
    Work out which child blocks are nested pages, which are page links and
    whether anything else is left over.

    Args:
        blocks: Child blocks of a page, in document order

    Returns:
        ContentInfo where each (id, order) pair uses the block's index as order
    """
    info = ContentInfo()
    for order, block in enumerate(blocks):
        block_type = block.get('type')
        if block_type == 'child_page':
            info.children.append((block['id'], order))
            continue
        target = get_link_target(block)
        if target:
            info.links.append((target, order))
        if not _is_filler_paragraph(block):
            info.has_content = True
    return info


@dataclass
class RunCounts:
    """Counters reported at the end of a run."""

    output_normally: int = 0
    skipped_because_empty: int = 0
    skipped_because_status: int = 0
    custom_pages_moved: int = 0
    unresolved_links: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'output_normally': self.output_normally,
            'skipped_because_empty': self.skipped_because_empty,
            'skipped_because_status': self.skipped_because_status,
            'custom_pages_moved': self.custom_pages_moved,
            'unresolved_links': self.unresolved_links,
        }


@dataclass(frozen=True)
class PullOptions:
    """Settings for one pull run."""

    notion_token: str
    root_page: str
    markdown_output_path: str = './docs'
    status_tag: str = 'Publish'
    outline_title: str = 'Outline'
    custom_pages_path: str = 'src/pages'
    custom_staging_dir: str = 'tmp'
    overwrite_custom_pages: bool = False
    show_progress: bool = False

    @property
    def output_root(self) -> str:
        return self.markdown_output_path.rstrip('/') or '/'

    def for_logging(self) -> Dict[str, Any]:
        """Options with all but the start of the token hidden."""
        token = self.notion_token or ''
        return {
            'notion_token': token[:10] + '...' if token else 'Not Set',
            'root_page': self.root_page,
            'markdown_output_path': self.markdown_output_path,
            'status_tag': self.status_tag,
            'outline_title': self.outline_title,
            'custom_pages_path': self.custom_pages_path,
            'overwrite_custom_pages': self.overwrite_custom_pages,
        }


__all__ = [
    'PullOptions',
    'PageKind',
    'PageSubtype',
    'MissingPropertyError',
    'DateRange',
    'PageMetadata',
    'parse_page_metadata',
    'sanitize_slug',
    'parse_link_id',
    'NotionPage',
    'ContentInfo',
    'get_content_info',
    'get_link_target',
    'RunCounts',
]
