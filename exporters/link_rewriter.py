"""Resolves links between Notion pages to their local Docusaurus paths.

Links only become resolvable once the whole outline has been walked, so
this runs while pages are rendered, against the sealed registry.

Notion produces internal links in a few shapes:

- raw mentions, ``[mention](/4a6de8c0b90b444b8a7bd534d6ec71a4)``
- inline links, ``[some text](/4a6de8c0b90b444b8a7bd534d6ec71a4#heading)``
- full URLs, ``[text](https://www.notion.so/Page-Title-4a6de8c0b90b444b8a7bd534d6ec71a4)``
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from fetchers.page_registry import PageRegistry
from models import NotionPage, parse_link_id

logger = logging.getLogger('notion_markdown_puller.links')

MARKDOWN_LINK_PATTERN = re.compile(r'\[.*?\]\([^\)]*\)')
INTERNAL_LINK_PATTERN = re.compile(
    r'\[([^\]]+)?\]\((?!mailto:)(https://www\.notion\.so/[^)]+|/[^),]+)\)'
)
NOTION_URL_PATTERN = re.compile(r'https://www\.notion\.so/(?:[^/?#]+/)*([^/?#]+)')
PAGE_ID_PATTERN = re.compile(
    r'([0-9a-f]{8}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{12})$',
    re.IGNORECASE
)

PROBLEM_LINK_PLACEHOLDER = '**[Problem Internal Link]**'
IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif', '.svg')
MENTION_LABEL = 'mention'


def extract_link_id_candidates(href: str) -> List[str]:
    """
    List the ids a link target might refer to, most specific first.

    The last path segment is used. A trailing page id (dashed or not) is
    preferred, then the whole segment, then the text after its last dash.

    Args:
        href: Link target, possibly with a fragment or query string

    Returns:
        Candidate ids without fragments
    """
    base, _ = parse_link_id(href)
    base = base.split('?', 1)[0].rstrip('/')
    segment = base.rsplit('/', 1)[-1]

    candidates = []
    match = PAGE_ID_PATTERN.search(segment)
    if match:
        candidates.append(match.group(1).lower())
    candidates.append(segment)
    if '-' in segment:
        candidates.append(segment.rsplit('-', 1)[1])

    unique = []
    for candidate in candidates:
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def resolve_page_reference(registry: PageRegistry, href: str) -> Optional[NotionPage]:
    """Find the registered page a link target refers to, if any."""
    for candidate in extract_link_id_candidates(href):
        page = registry.find_by_link_id(candidate)
        if page is not None:
            return page
    return None


def convert_link_label(target: NotionPage, label: str) -> str:
    """Notion labels bare page links "mention"; show the page title instead."""
    if label != MENTION_LABEL:
        return label
    return target.name_or_title


def convert_link_href(context: Any, target: NotionPage, href: str) -> str:
    """Local link path of the target with the original fragment appended."""
    _, fragment = parse_link_id(href)
    if fragment:
        logger.debug(f"Parsed {href} and got fragment {fragment}")
    return context.layout.get_link_path_for_page(target) + fragment


def convert_internal_link(context: Any, markdown_link: str) -> str:
    """
    Rewrite a whole ``[label](href)`` link to a page in the outline.

    Unresolvable links are replaced with a visible placeholder and a
    warning; they never stop the run.

    Args:
        context: Page render context providing registry and layout
        markdown_link: Link markdown as produced by the converter

    Returns:
        Rewritten link markdown
    """
    match = INTERNAL_LINK_PATTERN.search(markdown_link)
    if match is None:
        logger.warning(f"[InternalLinkPlugin] Could not parse link {markdown_link}")
        return markdown_link

    label = match.group(1) or ''
    href = match.group(2)

    if href.lower().endswith(IMAGE_EXTENSIONS):
        logger.debug(f"[InternalLinkPlugin] {href} is an internal image link and will be skipped")
        return markdown_link

    target = resolve_page_reference(context.registry, href)
    if target is None:
        source = getattr(context, 'current_page', None)
        source_name = f" in '{source.name_or_title}'" if source is not None else ''
        logger.warning(
            f"[InternalLinkPlugin] Could not find a local target for {href}{source_name}. "
            f"Links to pages outside the outline are not supported."
        )
        counts = getattr(context, 'counts', None)
        if counts is not None:
            counts.unresolved_links += 1
        return PROBLEM_LINK_PLACEHOLDER

    return f"[{convert_link_label(target, label)}]({convert_link_href(context, target, href)})"


def convert_internal_url(context: Any, url: str) -> Optional[str]:
    """
    Convert a bare notion.so URL to the local link path of its page.

    Returns:
        Local link path, or None if the URL is not a Notion page URL or the
        page is not part of the outline
    """
    match = NOTION_URL_PATTERN.match(url)
    if match is None:
        logger.warning(f"[InternalLinkPlugin] Could not parse link {url} as a Notion URL")
        return None

    target = resolve_page_reference(context.registry, url)
    if target is None:
        logger.warning(f"[InternalLinkPlugin] Could not find the target of this link: {url}")
        return None
    return convert_link_href(context, target, url)


class LinkRewriter:
    """Runs plugin link modifiers over every markdown link of a page."""

    def __init__(self):
        self.stats: Dict[str, int] = {
            'links_checked': 0,
            'links_converted': 0,
        }

    def fix_links(self, context: Any, markdown: str, plugins: Sequence[Any]) -> str:
        """
        Rewrite links using the first plugin that matches and changes each one.

        Args:
            context: Page render context
            markdown: Rendered page markdown
            plugins: Plugins in registration order

        Returns:
            Markdown with links rewritten
        """
        pieces = []
        last_end = 0
        for match in MARKDOWN_LINK_PATTERN.finditer(markdown):
            pieces.append(markdown[last_end:match.start()])
            pieces.append(self._convert_link(context, match.group(0), plugins))
            last_end = match.end()
        pieces.append(markdown[last_end:])
        return ''.join(pieces)

    def _convert_link(self, context: Any, original: str, plugins: Sequence[Any]) -> str:
        self.stats['links_checked'] += 1
        logger.debug(f"Link parsing: checking {original}")

        for plugin in plugins:
            modifier = plugin.link_modifier
            if modifier is None:
                continue
            if modifier.match.search(original) is None:
                continue

            converted = modifier.convert(context, original)
            if converted != original:
                logger.debug(f"Link parsing: [{plugin.name}] converted {original} to {converted}")
                self.stats['links_converted'] += 1
                return converted
            logger.debug(f"Link parsing: [{plugin.name}] URL unchanged")

        return original


__all__ = [
    'LinkRewriter',
    'convert_internal_link',
    'convert_internal_url',
    'convert_link_label',
    'convert_link_href',
    'extract_link_id_candidates',
    'resolve_page_reference',
    'PROBLEM_LINK_PLACEHOLDER',
    'INTERNAL_LINK_PATTERN',
]
