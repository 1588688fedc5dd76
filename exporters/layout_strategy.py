"""Output path layout for the generated docs tree.

A layout context is a POSIX-style path relative to the markdown root, such
as ``/002-guides/001-setup``. The empty string is the root itself. Every
level directory gets a ``_category_.json`` so the sidebar keeps the order
the pages had in the outline.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from exporters.markdown_writer import MarkdownWriter
from models import NotionPage, PageSubtype

logger = logging.getLogger('notion_markdown_puller.layout')

CATEGORY_FILE = '_category_.json'
MANAGED_PATTERNS = ('*.md', '*.mdx', CATEGORY_FILE)


def sanitize_path_segment(name: str, max_length: int = 100) -> str:
    """
    Convert a page title to a filesystem-safe path segment.

    Args:
        name: Page title or slug

    Returns:
        Lowercase segment containing only word characters and hyphens
    """
    if not name:
        return "untitled"

    sanitized = name.strip().lower()
    sanitized = re.sub(r'[^\w\-]', '-', sanitized)
    sanitized = re.sub(r'-+', '-', sanitized)
    sanitized = sanitized.strip('-')

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip('-')

    return sanitized or "untitled"


class Level:
    """One directory level of the generated sidebar."""

    def __init__(self, context: str, order: int, label: str):
        self.context = context
        self.order = order
        self.label = label

    def __repr__(self) -> str:
        return f"Level({self.context!r}, order={self.order}, label={self.label!r})"


class LayoutStrategy(ABC):
    """Decides where pages are written and which old files get removed."""

    def __init__(self, writer: Optional[MarkdownWriter] = None):
        self.writer = writer or MarkdownWriter()
        self.root_directory: Optional[Path] = None
        self.levels: Dict[str, Level] = {}
        self._live_files: Set[Path] = set()

    def set_root_directory(self, path) -> None:
        self.root_directory = Path(path)
        self.writer.ensure_directory(self.root_directory)

    def _require_root(self) -> Path:
        if self.root_directory is None:
            raise RuntimeError("set_root_directory() must be called before computing paths")
        return self.root_directory

    @abstractmethod
    def new_level(self, base_path, order: int, parent_context: str, name: str) -> str:
        """Open a nested level and return its layout context."""

    @abstractmethod
    def get_path_for_page(self, page: NotionPage, extension: str) -> Path:
        """Filesystem path of a page's output file."""

    @abstractmethod
    def get_link_path_for_page(self, page: NotionPage) -> str:
        """URL path other pages use to link to this page."""

    @abstractmethod
    def custom_pages_context(self) -> str:
        """Layout context custom pages are registered in."""

    def assign_paths(self, pages: Iterable[NotionPage]) -> None:
        """
        Fix every page's output path in the given order.

        Called once with the sealed registry so that name collisions are
        settled by discovery order, not by whichever page is linked first.
        """
        for page in pages:
            self.get_path_for_page(page, '.md')

    def mark_live(self, path: Path) -> None:
        self._live_files.add(Path(path))

    def is_live(self, path: Path) -> bool:
        return Path(path) in self._live_files

    def page_was_seen(self, page: NotionPage) -> None:
        self.mark_live(self.get_path_for_page(page, '.md'))

    def cleanup_old_files(self) -> List[Path]:
        """
        Delete generated files left over from earlier runs.

        Any markdown or category file under the root that was not marked
        live during this run is removed, then empty directories are pruned.

        Returns:
            Paths of the deleted files
        """
        root = self._require_root()
        if not root.exists():
            return []

        deleted: List[Path] = []
        for pattern in MANAGED_PATTERNS:
            for path in sorted(root.rglob(pattern)):
                if path.is_file() and not self.is_live(path):
                    self.writer.delete_file(path)
                    deleted.append(path)

        directories = sorted((p for p in root.rglob('*') if p.is_dir()), key=lambda p: len(p.parts), reverse=True)
        for directory in directories:
            if not any(directory.iterdir()):
                directory.rmdir()
                logger.debug(f"Removed empty directory {directory}")

        logger.info(f"Cleanup removed {len(deleted)} old file(s)")
        return deleted


class HierarchicalNamedLayoutStrategy(LayoutStrategy):
    """
    Nested directories named ``NNN-title`` with pages named after their
    slug or title. Custom pages go to a staging directory under the root
    until they are moved to their final location.
    """

    def __init__(self, writer: Optional[MarkdownWriter] = None, custom_staging_dir: str = 'tmp'):
        super().__init__(writer)
        self.custom_staging_dir = custom_staging_dir
        self._page_names: Dict[str, str] = {}
        self._claimed: Dict[Path, str] = {}

    def new_level(self, base_path, order: int, parent_context: str, name: str) -> str:
        """
        Create a sidebar level under parent_context.

        Args:
            base_path: Markdown root the level directory lives under
            order: Position of the level among its siblings
            parent_context: Layout context of the parent level
            name: Label shown in the sidebar

        Returns:
            Layout context of the new level
        """
        context = f"{parent_context}/{order:03d}-{sanitize_path_segment(name)}"
        directory = Path(base_path) / context.lstrip('/')
        self.writer.ensure_directory(directory)

        category_file = directory / CATEGORY_FILE
        category = json.dumps({'position': order, 'label': name}, indent=2, ensure_ascii=False)
        self.writer.write_file(category_file, category + '\n')
        self.mark_live(category_file)

        self.levels[context] = Level(context, order, name)
        logger.debug(f"New level {context} for '{name}'")
        return context

    def custom_pages_context(self) -> str:
        return f"/{self.custom_staging_dir}"

    def _directory_for(self, page: NotionPage) -> Path:
        root = self._require_root()
        if page.subtype == PageSubtype.CUSTOM:
            return root / self.custom_staging_dir
        return root / page.layout_context.lstrip('/')

    def _name_for(self, page: NotionPage) -> str:
        cached = self._page_names.get(page.page_id)
        if cached is not None:
            return cached

        directory = self._directory_for(page)
        name = sanitize_path_segment(page.name_for_file())
        owner = self._claimed.get(directory / name)
        if owner is not None and owner != page.page_id:
            fallback = f"{name}-{page.page_id.replace('-', '')}"
            logger.warning(
                f"Page '{page.name_or_title}' ({page.page_id}) would overwrite the output of "
                f"page {owner}; writing it as '{fallback}' instead. Give one of them a unique Slug."
            )
            name = fallback

        self._claimed[directory / name] = page.page_id
        self._page_names[page.page_id] = name
        return name

    def get_path_for_page(self, page: NotionPage, extension: str) -> Path:
        return self._directory_for(page) / f"{self._name_for(page)}{extension}"

    def get_link_path_for_page(self, page: NotionPage) -> str:
        name = self._name_for(page)
        if page.subtype == PageSubtype.CUSTOM:
            return f"/{name}"
        if page.explicit_slug:
            return page.explicit_slug
        context = page.layout_context.strip('/')
        return f"/{context}/{name}" if context else f"/{name}"


__all__ = [
    'LayoutStrategy',
    'HierarchicalNamedLayoutStrategy',
    'Level',
    'sanitize_path_segment',
    'CATEGORY_FILE',
]
