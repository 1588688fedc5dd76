"""
Pull orchestrator for coordinating a complete Notion to markdown run.

Stages:
  1. walk the outline and register every page
  2. render each registered page and write it
  3. delete output files that no page produced this run
  4. move custom pages to the site's pages directory
"""

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from converters.transform_pipeline import TransformPipeline
from exporters.layout_strategy import HierarchicalNamedLayoutStrategy, LayoutStrategy
from exporters.markdown_writer import MarkdownWriter
from fetchers.outline_walker import OutlineWalker, WalkContext
from fetchers.page_registry import PageRegistry
from logger import log_section
from models import NotionPage, PageKind, PageSubtype, PullOptions, RunCounts
from notion_api_client import NotionApiClient
from orchestrator.pull_report import PullReport
from plugins import BUILTIN_PLUGINS, PageRenderContext, Plugin

logger = logging.getLogger('notion_markdown_puller.orchestrator')


class RootPageUnavailableError(Exception):
    """The root page could not be retrieved with the given token."""


class PullOrchestrator:
    """Central coordinator sequencing the stages of a pull."""

    def __init__(
        self,
        options: PullOptions,
        client: NotionApiClient,
        plugins: Optional[Sequence[Plugin]] = None,
        writer: Optional[MarkdownWriter] = None,
        layout: Optional[LayoutStrategy] = None,
        confirm_overwrite: Optional[Callable[[Path], bool]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            options: Run settings
            client: Notion API client shared by every stage
            plugins: Plugins in registration order (built-in plugins by default)
            writer: Output sink
            layout: Layout strategy (hierarchical named layout by default)
            confirm_overwrite: Asked before an existing custom page is
                replaced; existing files are kept when it is not given
        """
        self.options = options
        self.client = client
        self.plugins = list(plugins) if plugins is not None else list(BUILTIN_PLUGINS)
        self.writer = writer or MarkdownWriter()
        self.layout = layout or HierarchicalNamedLayoutStrategy(
            self.writer, custom_staging_dir=options.custom_staging_dir
        )
        self.confirm_overwrite = confirm_overwrite
        self.pipeline = TransformPipeline(client, self.plugins)
        self.counts = RunCounts()
        self.report_generator = PullReport()

        logger.info(f"Active plugins: [{', '.join(plugin.name for plugin in self.plugins)}]")

    def run(self) -> Dict[str, Any]:
        """
        Run every stage and return the pull report.

        Raises:
            RootPageUnavailableError: If the root page cannot be retrieved
            Exception: Any fatal remote or integrity error from a stage
        """
        start_time = time.time()
        logger.debug(f"Options: {self.options.for_logging()}")

        self.check_connection()

        output_root = Path(self.options.output_root)
        self.layout.set_root_directory(output_root)
        self.writer.ensure_directory(output_root / self.options.custom_staging_dir)

        log_section("Stage 1: walk the outline")
        registry = self.discover_pages(output_root)

        log_section(f"Stage 2: convert {len(registry)} pages to markdown")
        self.output_pages(registry)

        log_section("Stage 3: clean up old files")
        deleted = self.layout.cleanup_old_files()

        log_section("Stage 4: move custom pages")
        self.move_custom_pages(registry)

        report = self.report_generator.generate_report(
            registry,
            self.counts,
            [str(path) for path in deleted],
            time.time() - start_time,
            self.writer.get_stats()
        )
        for line in self.report_generator.format_console_report(report).split("\n"):
            logger.info(line)
        return report

    def check_connection(self) -> None:
        """Retrieve the root page so a bad id or token gives a clear error."""
        logger.info("Connecting to Notion...")
        try:
            self.client.retrieve_page(self.options.root_page)
        except Exception as e:
            token_start = self.options.for_logging()['notion_token']
            raise RootPageUnavailableError(
                f"Could not retrieve the root page from Notion.\n"
                f"a) Check that the root page id really is \"{self.options.root_page}\".\n"
                f"b) Check that your Notion API token (the \"Integration Secret\") is correct. "
                f"It starts with \"{token_start}\".\n"
                f"c) Check that your root page includes your integration in its \"connections\".\n"
                f"This internal error message may help:\n    {e}"
            ) from e

    def discover_pages(self, output_root: Path) -> PageRegistry:
        context = WalkContext(
            registry=PageRegistry(),
            layout=self.layout,
            root_page_id=self.options.root_page,
            output_path=output_root,
            outline_title=self.options.outline_title,
            counts=self.counts
        )
        return OutlineWalker(self.client).discover(context)

    def should_skip_for_status(self, page: NotionPage) -> bool:
        """Collection entries are published only when their Status matches the status tag."""
        if page.kind != PageKind.COLLECTION_ENTRY or self.options.status_tag == '*':
            return False
        return page.status != self.options.status_tag

    def output_pages(self, registry: PageRegistry) -> None:
        context = PageRenderContext(
            registry=registry,
            layout=self.layout,
            get_block_children=self.client.list_block_children,
            counts=self.counts,
            options=self.options
        )

        pages: List[NotionPage] = list(registry)
        self.layout.assign_paths(pages)

        iterable = tqdm(pages, desc="Converting pages", unit="page") if self.options.show_progress else pages
        for page in iterable:
            self.layout.page_was_seen(page)
            md_path = self.layout.get_path_for_page(page, '.md')
            context.directory_containing_markdown = str(md_path.parent)

            if self.should_skip_for_status(page):
                logger.info(
                    f"Skipping page because status is not '{self.options.status_tag}': {page.name_or_title}"
                )
                self.counts.skipped_because_status += 1
                continue

            markdown = self.pipeline.render_page(context, page)
            logger.debug(f"Writing {md_path}")
            self.writer.write_file(md_path, markdown)
            self.counts.output_normally += 1

        logger.info(f"Finished processing {len(pages)} pages")
        logger.info(str(self.counts.to_dict()))

    def move_custom_pages(self, registry: PageRegistry) -> List[Path]:
        """
        Move staged custom pages into the custom pages directory.

        Returns:
            Destination paths of the pages that were moved
        """
        destination_dir = Path(self.options.custom_pages_path)
        moved: List[Path] = []

        for page in registry:
            if page.subtype != PageSubtype.CUSTOM:
                continue
            source = self.layout.get_path_for_page(page, '.md')
            if not source.exists():
                logger.debug(f"No staged file for custom page '{page.name_or_title}'")
                continue

            destination = destination_dir / source.name
            overwrite = self.options.overwrite_custom_pages
            if destination.exists() and not overwrite and self.confirm_overwrite is not None:
                overwrite = self.confirm_overwrite(destination)

            if self.writer.move_file(source, destination, overwrite=overwrite):
                self.counts.custom_pages_moved += 1
                moved.append(destination)

        staging_dir = Path(self.options.output_root) / self.options.custom_staging_dir
        if staging_dir.is_dir() and not any(staging_dir.iterdir()):
            staging_dir.rmdir()

        logger.info(f"Moved {len(moved)} custom page(s) to {destination_dir}")
        return moved


__all__ = ['PullOrchestrator', 'RootPageUnavailableError']
