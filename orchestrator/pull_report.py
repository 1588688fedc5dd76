"""
Pull report generator.

Collects the counters of a run into a report dictionary that can be shown
on the console or saved as JSON.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fetchers.page_registry import PageRegistry
from models import PageSubtype, RunCounts

logger = logging.getLogger('notion_markdown_puller.report')


class PullReport:
    """Builds and formats the end-of-run report."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('notion_markdown_puller.report')

    def generate_report(
        self,
        registry: PageRegistry,
        counts: RunCounts,
        deleted_files: List[str],
        duration: float,
        writer_stats: Optional[Dict[str, int]] = None
    ) -> Dict[str, Any]:
        """
        Generate the report for a finished run.

        Args:
            registry: Pages found in the outline
            counts: Run counters
            deleted_files: Files removed by cleanup
            duration: Run duration in seconds
            writer_stats: Statistics from the markdown writer

        Returns:
            Report dictionary
        """
        subtypes = {subtype.value: 0 for subtype in PageSubtype}
        for page in registry:
            subtypes[page.subtype.value] += 1

        return {
            'summary': {
                'generated_at': datetime.now().isoformat(timespec='seconds'),
                'duration': self._format_duration(duration),
                'pages_found': len(registry),
                **counts.to_dict(),
            },
            'pages_by_subtype': subtypes,
            'files': {
                **(writer_stats or {}),
                'deleted': list(deleted_files),
            },
            'pages': [page.to_dict() for page in registry],
        }

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            secs = int(seconds % 60)
            return f"{minutes}m {secs}s"
        else:
            hours = int(seconds // 3600)
            minutes = int((seconds % 3600) // 60)
            secs = int(seconds % 60)
            return f"{hours}h {minutes}m {secs}s"

    def format_console_report(self, report: Dict[str, Any]) -> str:
        summary = report['summary']
        sections = [
            "=" * 60,
            "PULL REPORT",
            "=" * 60,
            f"Pages found:              {summary['pages_found']}",
            f"Written:                  {summary['output_normally']}",
            f"Skipped (empty):          {summary['skipped_because_empty']}",
            f"Skipped (status):         {summary['skipped_because_status']}",
            f"Custom pages moved:       {summary['custom_pages_moved']}",
            f"Unresolved links:         {summary['unresolved_links']}",
            f"Old files removed:        {len(report['files'].get('deleted', []))}",
            f"Duration:                 {summary['duration']}",
            "=" * 60,
        ]
        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            report: Report dictionary
            filepath: Output file path
        """
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)
        self.logger.info(f"JSON report exported to {filepath}")


__all__ = ['PullReport']
