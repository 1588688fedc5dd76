"""
Orchestration package for coordinating the stages of a pull.

Stages run in order: Discover → Render → Clean up → Move custom pages → Report.
"""

from .pull_orchestrator import PullOrchestrator, RootPageUnavailableError
from .pull_report import PullReport

__all__ = [
    'PullOrchestrator',
    'PullReport',
    'RootPageUnavailableError',
]
