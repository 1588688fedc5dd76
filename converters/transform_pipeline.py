"""Turns one registered page into the final markdown file content."""

import copy
import logging
import re
from typing import Any, Dict, List, Sequence

import yaml

from converters.block_converter import BlockMarkdownConverter
from exporters.link_rewriter import LinkRewriter
from models import NotionPage, PageSubtype, get_link_target
from notion_api_client import NotionApiClient
from plugins.plugin_types import PageRenderContext, Plugin, RegexMarkdownModification

logger = logging.getLogger('notion_markdown_puller.converters.pipeline')

CODE_BLOCK_PATTERN = r'```.*\n[\s\S]*?\n```'


def filter_blocks(blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Drop blocks that only exist to shape the outline.

    Child pages and link-only paragraphs become pages of their own, so they
    are not rendered into the page that contains them.
    """
    return [
        block for block in blocks
        if block.get('type') != 'child_page' and get_link_target(block) is None
    ]


class TransformPipeline:
    """
    Renders pages through the plugin hooks.

    Steps, in order: block modifications, custom block transforms, block
    conversion, link fixes, regex modifications, imports and frontmatter.
    """

    def __init__(
        self,
        client: NotionApiClient,
        plugins: Sequence[Plugin],
        converter: BlockMarkdownConverter = None,
        link_rewriter: LinkRewriter = None
    ):
        self.client = client
        self.plugins = list(plugins)
        self.converter = converter or BlockMarkdownConverter(client.list_block_children)
        self.link_rewriter = link_rewriter or LinkRewriter()

    def render_page(self, context: PageRenderContext, page: NotionPage) -> str:
        """
        Build the complete markdown file for a page.

        Args:
            context: Render context for this run
            page: Page to render

        Returns:
            Frontmatter, imports and body
        """
        if page.has_explicit_slug:
            origin = page.slug
        elif page.found_directly_in_outline:
            origin = "descendant of the outline"
        else:
            origin = "no slug"
        logger.info(f"Reading & converting page {page.layout_context}/{page.name_or_title} ({origin})")

        context.current_page = page
        context.converter = self.converter
        context.modify_blocks = self.apply_block_modifications
        blocks = self.client.list_block_children(page.page_id)
        body = self.markdown_from_blocks(context, blocks)
        return f"{self.build_frontmatter(context, page)}\n{body}"

    def markdown_from_blocks(self, context: PageRenderContext, blocks: List[Dict[str, Any]]) -> str:
        filtered = filter_blocks(blocks)
        self.apply_block_modifications(filtered)
        self.register_custom_transforms(context)

        markdown = self.convert_blocks(filtered)
        markdown = self.link_rewriter.fix_links(context, markdown, self.plugins)
        body = self.apply_regex_modifications(context, markdown)

        imports = list(dict.fromkeys(context.imports))
        context.imports = []
        if imports:
            body = '\n'.join(imports) + '\n\n' + body
        return body if body.endswith('\n') else body + '\n'

    def apply_block_modifications(self, blocks: List[Dict[str, Any]]) -> None:
        for block in blocks:
            for plugin in self.plugins:
                for modification in plugin.block_modifications:
                    modification.modify(block)

    def register_custom_transforms(self, context: PageRenderContext) -> None:
        self.converter.clear_custom_transformers()
        for plugin in self.plugins:
            for transform in plugin.block_transforms:
                logger.debug(f"Registering custom transform {plugin.name} for {transform.block_type}")
                self.converter.set_custom_transformer(
                    transform.block_type,
                    self._bind_transform(context, plugin, transform)
                )

    @staticmethod
    def _bind_transform(context: PageRenderContext, plugin: Plugin, transform):
        def render(block: Dict[str, Any]):
            result = transform.render(context, block)
            if result:
                context.imports.extend(transform.imports)
            return result
        return render

    def convert_blocks(self, blocks: List[Dict[str, Any]]) -> str:
        """
        Convert blocks inside the client's retry wrapper.

        Rendering may modify the blocks it is given, so every attempt gets
        a fresh copy.
        """
        return self.client.execute_with_rate_limit_and_retries(
            "blocks_to_markdown",
            lambda: self.converter.blocks_to_markdown(copy.deepcopy(blocks))
        )

    def apply_regex_modifications(self, context: PageRenderContext, markdown: str) -> str:
        body = markdown
        for plugin in self.plugins:
            for modification in plugin.regex_modifications:
                body = self._apply_regex_modification(context, plugin, modification, body)
        return body

    def _apply_regex_modification(
        self,
        context: PageRenderContext,
        plugin: Plugin,
        modification: RegexMarkdownModification,
        body: str
    ) -> str:
        if modification.include_code_blocks:
            pattern = modification.regex
        else:
            pattern = re.compile(
                f"{CODE_BLOCK_PATTERN}|({modification.regex.pattern})",
                modification.regex.flags
            )

        def replace(match):
            original = match.group(0)
            if not modification.include_code_blocks and match.group(1) is None:
                return original

            plugin_match = modification.regex.search(original)
            if modification.get_replacement is not None:
                replacement = modification.get_replacement(context, plugin_match)
            else:
                group = plugin_match.group(1) if plugin_match.re.groups else ''
                replacement = modification.replacement_pattern.replace('$1', group or '')

            if replacement is None:
                return original
            logger.debug(f"[{plugin.name}] {original} --> {replacement}")
            context.imports.extend(modification.imports)
            return replacement

        return pattern.sub(replace, body)

    def build_frontmatter(self, context: PageRenderContext, page: NotionPage) -> str:
        frontmatter: Dict[str, Any] = {
            'title': page.name_or_title.replace(':', '-'),
            'sidebar_position': page.order,
        }
        if page.subtype != PageSubtype.CUSTOM:
            frontmatter['slug'] = context.layout.get_link_path_for_page(page)
        if page.keywords:
            frontmatter['keywords'] = page.keywords

        yaml_str = yaml.dump(
            frontmatter,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=1000
        )
        return f"---\n{yaml_str}---\n"


__all__ = ['TransformPipeline', 'filter_blocks']
