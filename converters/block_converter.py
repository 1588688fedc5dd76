"""Converts Notion API block objects to Docusaurus-flavored markdown."""

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger('notion_markdown_puller.converters.blockconverter')

Block = Dict[str, Any]
BlockTransformer = Callable[[Block], Optional[str]]

LIST_BLOCK_TYPES = {'bulleted_list_item', 'numbered_list_item', 'to_do'}
FILE_BLOCK_TYPES = {'image', 'video', 'file', 'pdf', 'audio'}
SILENT_BLOCK_TYPES = {'child_page', 'child_database', 'table_of_contents', 'breadcrumb', 'unsupported'}

CODE_LANGUAGES = {
    'plain text': 'text',
    'shell': 'bash',
    'c++': 'cpp',
    'c#': 'csharp',
    'f#': 'fsharp',
    'objective-c': 'objectivec',
    'vb.net': 'vbnet',
}


def plain_text(rich_text: List[Dict[str, Any]]) -> str:
    return ''.join(run.get('plain_text', '') for run in rich_text or [])


def _annotate(text: str, annotations: Dict[str, Any]) -> str:
    """Wrap text in markdown emphasis markers, keeping surrounding spaces outside."""
    if not text.strip():
        return text
    stripped = text.strip()
    leading = text[:len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()):]

    if annotations.get('code'):
        stripped = f"`{stripped}`"
    if annotations.get('bold'):
        stripped = f"**{stripped}**"
    if annotations.get('italic'):
        stripped = f"_{stripped}_"
    if annotations.get('strikethrough'):
        stripped = f"~~{stripped}~~"
    return f"{leading}{stripped}{trailing}"


def rich_text_to_markdown(rich_text: List[Dict[str, Any]]) -> str:
    """
    Render Notion rich text runs as inline markdown.

    Page mentions become ``[mention](/<page id>)`` links which are resolved
    to local paths once every page is known.
    """
    parts = []
    for run in rich_text or []:
        run_type = run.get('type')
        annotations = run.get('annotations') or {}

        if run_type == 'mention':
            mention = run.get('mention') or {}
            if mention.get('type', 'page') == 'page' and mention.get('page'):
                page_id = mention['page'].get('id', '').replace('-', '')
                parts.append(f"[mention](/{page_id})")
            else:
                parts.append(_annotate(run.get('plain_text', ''), annotations))
            continue

        if run_type == 'equation':
            expression = (run.get('equation') or {}).get('expression', run.get('plain_text', ''))
            parts.append(f"${expression}$")
            continue

        text = run.get('plain_text')
        if text is None:
            text = (run.get('text') or {}).get('content', '')
        rendered = _annotate(text, annotations)

        href = run.get('href') or ((run.get('text') or {}).get('link') or {}).get('url')
        if href:
            rendered = f"[{rendered}]({href})"
        parts.append(rendered)
    return ''.join(parts)


def _indent(text: str, prefix: str = '    ') -> str:
    return '\n'.join(prefix + line if line else line for line in text.split('\n'))


def _file_url(data: Dict[str, Any]) -> str:
    source_type = data.get('type', 'external')
    return (data.get(source_type) or {}).get('url', '')


class BlockMarkdownConverter:
    """
    Block-by-block markdown renderer.

    Nested children are fetched with the injected ``get_block_children``
    callable. Individual block types can be overridden with
    ``set_custom_transformer``; a transformer returning None falls back to
    the default rendering.
    """

    def __init__(self, get_block_children: Callable[[str], List[Block]]):
        self.get_block_children = get_block_children
        self._custom_transformers: Dict[str, BlockTransformer] = {}

    def set_custom_transformer(self, block_type: str, transformer: BlockTransformer) -> None:
        self._custom_transformers[block_type] = transformer

    def clear_custom_transformers(self) -> None:
        self._custom_transformers.clear()

    def blocks_to_markdown(self, blocks: List[Block]) -> str:
        """
        Render a list of sibling blocks.

        Consecutive list items are separated by a single newline, every other
        pair of blocks by a blank line.
        """
        output = ''
        previous_type = None
        for block in blocks:
            rendered = self.block_to_markdown(block)
            block_type = block.get('type')
            if not rendered:
                continue
            if output:
                if previous_type in LIST_BLOCK_TYPES and block_type in LIST_BLOCK_TYPES:
                    output += '\n'
                else:
                    output += '\n\n'
            output += rendered
            previous_type = block_type
        return output

    def _children_markdown(self, block: Block, block_id: Optional[str] = None) -> str:
        if not block.get('has_children'):
            return ''
        children = self.get_block_children(block_id or block['id'])
        return self.blocks_to_markdown(children)

    def block_to_markdown(self, block: Block) -> str:
        block_type = block.get('type', '')

        transformer = self._custom_transformers.get(block_type)
        if transformer is not None:
            result = transformer(block)
            if result is not None:
                return result

        if block_type in SILENT_BLOCK_TYPES:
            return ''

        data = block.get(block_type) or {}
        text = rich_text_to_markdown(data.get('rich_text', []))

        if block_type == 'paragraph':
            children = self._children_markdown(block)
            return f"{text}\n\n{children}" if children else text

        if block_type in ('heading_1', 'heading_2', 'heading_3'):
            level = int(block_type[-1])
            heading = f"{'#' * level} {text}"
            if data.get('is_toggleable') and block.get('has_children'):
                return f"{heading}\n\n{self._children_markdown(block)}"
            return heading

        if block_type in LIST_BLOCK_TYPES:
            if block_type == 'bulleted_list_item':
                marker = '- '
            elif block_type == 'numbered_list_item':
                marker = f"{data.get('number', 1)}. "
            else:
                marker = '- [x] ' if data.get('checked') else '- [ ] '
            children = self._children_markdown(block)
            if children:
                return f"{marker}{text}\n{_indent(children)}"
            return f"{marker}{text}"

        if block_type == 'toggle':
            children = self._children_markdown(block)
            return f"<details>\n<summary>{text}</summary>\n\n{children}\n\n</details>"

        if block_type == 'quote':
            children = self._children_markdown(block)
            content = f"{text}\n\n{children}" if children else text
            return '\n'.join(f"> {line}" if line else '>' for line in content.split('\n'))

        if block_type == 'callout':
            icon = (data.get('icon') or {}).get('emoji', '')
            children = self._children_markdown(block)
            content = f"{icon} {text}".strip()
            if children:
                content = f"{content}\n\n{children}"
            return '\n'.join(f"> {line}" if line else '>' for line in content.split('\n'))

        if block_type == 'code':
            language = (data.get('language') or 'text').lower()
            language = CODE_LANGUAGES.get(language, language)
            code = plain_text(data.get('rich_text', []))
            return f"```{language}\n{code}\n```"

        if block_type == 'divider':
            return '---'

        if block_type == 'equation':
            return f"$$\n{data.get('expression', '')}\n$$"

        if block_type in FILE_BLOCK_TYPES:
            url = _file_url(data)
            caption = plain_text(data.get('caption', []))
            if block_type == 'image':
                return f"![{caption}]({url})"
            label = caption or data.get('name') or url
            return f"[{label}]({url})"

        if block_type in ('bookmark', 'embed', 'link_preview'):
            url = data.get('url', '')
            label = {'bookmark': 'bookmark', 'embed': 'embed'}.get(block_type, url)
            return f"[{label}]({url})"

        if block_type == 'link_to_page':
            if data.get('type') == 'page_id':
                return f"[mention](/{data['page_id']})"
            return ''

        if block_type == 'table':
            return self._table_to_markdown(block)

        if block_type == 'column_list':
            columns = self.get_block_children(block['id']) if block.get('has_children') else []
            return '\n\n'.join(
                rendered for rendered in (self._children_markdown(column) for column in columns) if rendered
            )

        if block_type == 'column':
            return self._children_markdown(block)

        if block_type == 'synced_block':
            synced_from = data.get('synced_from') or {}
            return self._children_markdown(block, synced_from.get('block_id'))

        logger.debug(f"No markdown rendering for block type '{block_type}' ({block.get('id')})")
        return ''

    def _table_to_markdown(self, block: Block) -> str:
        rows = self.get_block_children(block['id']) if block.get('has_children') else []
        lines = []
        for index, row in enumerate(rows):
            cells = (row.get('table_row') or {}).get('cells', [])
            rendered = [rich_text_to_markdown(cell).replace('|', '\\|') for cell in cells]
            lines.append('| ' + ' | '.join(rendered) + ' |')
            if index == 0:
                lines.append('|' + '|'.join(' --- ' for _ in rendered) + '|')
        return '\n'.join(lines)


__all__ = ['BlockMarkdownConverter', 'rich_text_to_markdown', 'plain_text']
