"""Shared fixtures for the test suite."""

import logging

import pytest

from exporters.layout_strategy import HierarchicalNamedLayoutStrategy
from exporters.markdown_writer import MarkdownWriter
from logger import LOGGER_NAME
from notion_fakes import FakeNotionClient


@pytest.fixture(autouse=True)
def reset_project_logger():
    """setup_logging() stops propagation; restore it so caplog keeps working."""
    yield
    project_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(project_logger.handlers):
        project_logger.removeHandler(handler)
        handler.close()
    project_logger.propagate = True
    project_logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_client():
    return FakeNotionClient()


@pytest.fixture
def writer():
    return MarkdownWriter()


@pytest.fixture
def docs_root(tmp_path):
    return tmp_path / 'docs'


@pytest.fixture
def layout(writer, docs_root):
    strategy = HierarchicalNamedLayoutStrategy(writer)
    strategy.set_root_directory(docs_root)
    return strategy
