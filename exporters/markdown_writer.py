"""Filesystem sink for generated markdown and sidebar metadata files."""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger('notion_markdown_puller.writer')

PathLike = Union[str, Path]


class MarkdownWriter:
    """Writes, deletes and moves output files, keeping simple statistics."""

    def __init__(self):
        self.stats: Dict[str, int] = {
            'files_written': 0,
            'files_unchanged': 0,
            'files_deleted': 0,
            'files_moved': 0,
        }

    def ensure_directory(self, path: PathLike) -> Path:
        directory = Path(path)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def write_file(self, path: PathLike, content: str) -> bool:
        """
        Overwrite a file with new content.

        The write is skipped when the file already holds exactly this
        content, so unchanged pages keep their modification time.

        Args:
            path: Destination file
            content: Full file content

        Returns:
            True if the file was written, False if it was already up to date
        """
        file_path = Path(path)
        if file_path.exists() and file_path.read_text(encoding='utf-8') == content:
            logger.debug(f"Unchanged: {file_path}")
            self.stats['files_unchanged'] += 1
            return False

        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding='utf-8')
        logger.debug(f"Wrote {file_path}")
        self.stats['files_written'] += 1
        return True

    def delete_file(self, path: PathLike) -> None:
        file_path = Path(path)
        file_path.unlink()
        logger.info(f"Removed old file {file_path}")
        self.stats['files_deleted'] += 1

    def move_file(self, source: PathLike, destination: PathLike, overwrite: bool = False) -> bool:
        """
        Move a file, refusing to replace an existing destination unless asked.

        Returns:
            True if the file was moved, False if the destination exists and
            overwrite is False
        """
        source_path = Path(source)
        destination_path = Path(destination)
        if destination_path.exists() and not overwrite:
            logger.warning(f"Not overwriting existing file {destination_path}")
            return False

        destination_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source_path), str(destination_path))
        logger.info(f"Moved {source_path} -> {destination_path}")
        self.stats['files_moved'] += 1
        return True

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)


__all__ = ['MarkdownWriter']
