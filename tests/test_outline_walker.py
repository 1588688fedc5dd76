"""Tests for outline discovery and node classification."""

import json
import logging

import pytest

from exporters.layout_strategy import CATEGORY_FILE
from fetchers.outline_walker import NodeClass, OutlineWalker, WalkContext, classify_node
from fetchers.page_registry import PageRegistry
from models import PageSubtype
from notion_fakes import FakeNotionClient, child_page, link_paragraph, paragraph, pid, raw_page

ROOT = pid(1)
OUTLINE = pid(2)


def build_workspace(outline_blocks, extra_root_blocks=()):
    """Root page holding the Outline page, plus optional other top-level pages."""
    client = FakeNotionClient()
    client.add_page(raw_page(ROOT, "Docs Root"), [child_page(OUTLINE, "Outline"), *extra_root_blocks])
    client.add_page(raw_page(OUTLINE, "Outline", parent_id=ROOT), outline_blocks)
    return client


def discover(client, layout, docs_root):
    context = WalkContext(
        registry=PageRegistry(),
        layout=layout,
        root_page_id=ROOT,
        output_path=docs_root
    )
    registry = OutlineWalker(client).discover(context)
    return registry, context


class TestClassifyNode:
    """Priority of the classification rules."""

    @pytest.mark.parametrize("kwargs, expected", [
        (dict(is_root_node=True, is_top_level_custom=True, has_content=True, child_count=1, link_count=1),
         NodeClass.ROOT),
        (dict(is_root_node=False, is_top_level_custom=True, has_content=True, child_count=2, link_count=0),
         NodeClass.CUSTOM),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=True, child_count=1, link_count=0),
         NodeClass.CATEGORY_INDEX),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=True, child_count=0, link_count=1),
         NodeClass.CATEGORY_INDEX),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=True, child_count=0, link_count=0),
         NodeClass.CONTENT),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=False, child_count=3, link_count=0),
         NodeClass.LEVEL),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=False, child_count=0, link_count=0),
         NodeClass.EMPTY),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=True, child_count=1, link_count=0,
              is_root_level=True),
         NodeClass.LEVEL),
        (dict(is_root_node=False, is_top_level_custom=False, has_content=True, child_count=0, link_count=0,
              is_root_level=True),
         NodeClass.EMPTY),
    ])
    def test_rules(self, kwargs, expected):
        assert classify_node(**kwargs) == expected

    def test_is_deterministic(self):
        args = dict(is_root_node=False, is_top_level_custom=False, has_content=True, child_count=2, link_count=1)
        assert len({classify_node(**args) for _ in range(20)}) == 1


class TestOutlineWalker:
    """Discovery of whole outlines through a fake client."""

    def test_content_leaf(self, layout, docs_root):
        client = build_workspace([child_page(pid(10), "Intro")])
        client.add_page(raw_page(pid(10), "Intro", parent_id=OUTLINE), [paragraph("Hello")])

        registry, _ = discover(client, layout, docs_root)

        pages = list(registry)
        assert [page.page_id for page in pages] == [pid(10)]
        assert pages[0].subtype == PageSubtype.CONTENT
        assert pages[0].layout_context == ''
        assert pages[0].found_directly_in_outline
        assert layout.get_path_for_page(pages[0], '.md') == docs_root / "intro.md"
        assert registry.sealed

    def test_level_without_index(self, layout, docs_root):
        client = build_workspace([paragraph(), child_page(pid(10), "Guides")])
        client.add_page(raw_page(pid(10), "Guides", parent_id=OUTLINE), [child_page(pid(11), "Setup")])
        client.add_page(raw_page(pid(11), "Setup", parent_id=pid(10)), [paragraph("Install it")])

        registry, _ = discover(client, layout, docs_root)

        pages = list(registry)
        assert [page.page_id for page in pages] == [pid(11)]
        assert pages[0].layout_context == '/001-guides'
        assert pages[0].order == 0
        category = json.loads((docs_root / "001-guides" / CATEGORY_FILE).read_text(encoding='utf-8'))
        assert category == {"position": 1, "label": "Guides"}

    def test_category_index_with_link(self, layout, docs_root):
        client = build_workspace([child_page(pid(10), "Guides")])
        client.add_page(raw_page(pid(10), "Guides", parent_id=OUTLINE), [
            paragraph("Overview of the guides"),
            child_page(pid(11), "Setup"),
            link_paragraph(pid(20)),
        ])
        client.add_page(raw_page(pid(11), "Setup", parent_id=pid(10)), [paragraph("Install it")])
        client.add_page(raw_page(pid(20), "FAQ", parent_id=pid(99)), [child_page(pid(21), "Never walked")])

        registry, _ = discover(client, layout, docs_root)

        index, setup, faq = list(registry)
        assert index.page_id == pid(10)
        assert index.subtype == PageSubtype.CATEGORY_INDEX
        assert index.layout_context == '/000-guides'
        assert layout.get_path_for_page(index, '.md') == docs_root / "000-guides" / "index.md"

        assert setup.subtype == PageSubtype.CONTENT
        assert setup.layout_context == '/000-guides'

        assert faq.subtype == PageSubtype.CONTENT
        assert faq.layout_context == '/000-guides'
        assert faq.order == 2
        assert not faq.found_directly_in_outline

        assert pid(21) not in client.retrieved()
        assert ('list_block_children', pid(20)) not in client.calls

    def test_children_before_links(self, layout, docs_root):
        client = build_workspace([link_paragraph(pid(20)), child_page(pid(10), "Child")])
        client.add_page(raw_page(pid(10), "Child", parent_id=OUTLINE), [paragraph("text")])
        client.add_page(raw_page(pid(20), "Linked", parent_id=pid(99)))

        registry, _ = discover(client, layout, docs_root)

        assert [page.page_id for page in registry] == [pid(10), pid(20)]

    def test_top_level_page_is_custom(self, layout, docs_root):
        client = build_workspace([child_page(pid(10), "Intro")], extra_root_blocks=[child_page(pid(30), "About")])
        client.add_page(raw_page(pid(10), "Intro", parent_id=OUTLINE), [paragraph("Hello")])
        client.add_page(raw_page(pid(30), "About", parent_id=ROOT), [
            paragraph("About us"),
            child_page(pid(31), "Team"),
        ])

        registry, _ = discover(client, layout, docs_root)

        about = registry.get(pid(30))
        assert about.subtype == PageSubtype.CUSTOM
        assert layout.get_path_for_page(about, '.md') == docs_root / "tmp" / "about.md"
        assert pid(31) not in registry
        assert pid(31) not in client.retrieved()

    def test_link_from_root_is_custom(self, layout, docs_root):
        client = build_workspace([], extra_root_blocks=[link_paragraph(pid(40))])
        client.blocks[OUTLINE] = [child_page(pid(10), "Intro")]
        client.add_page(raw_page(pid(10), "Intro", parent_id=OUTLINE), [paragraph("Hello")])
        client.add_page(raw_page(pid(40), "Contact", parent_id=pid(99)))

        registry, _ = discover(client, layout, docs_root)

        assert registry.get(pid(40)).subtype == PageSubtype.CUSTOM

    def test_empty_page_is_skipped(self, layout, docs_root, caplog):
        client = build_workspace([child_page(pid(10), "Empty"), child_page(pid(11), "Full")])
        client.add_page(raw_page(pid(10), "Empty", parent_id=OUTLINE), [paragraph()])
        client.add_page(raw_page(pid(11), "Full", parent_id=OUTLINE), [paragraph("text")])

        with caplog.at_level(logging.WARNING):
            registry, context = discover(client, layout, docs_root)

        assert context.counts.skipped_because_empty == 1
        assert pid(10) not in registry
        assert "will be skipped" in caplog.text

    def test_duplicate_link_is_registered_once(self, layout, docs_root, caplog):
        client = build_workspace([link_paragraph(pid(20), 'l1'), link_paragraph(pid(20), 'l2')])
        client.add_page(raw_page(pid(20), "Linked", parent_id=pid(99)))

        with caplog.at_level(logging.WARNING):
            registry, _ = discover(client, layout, docs_root)

        assert len(registry) == 1
        assert registry.get(pid(20)).order == 0
        assert "more than one place" in caplog.text

    def test_orders_are_distinct_per_context(self, layout, docs_root):
        client = build_workspace([
            child_page(pid(10), "A"),
            child_page(pid(11), "B"),
            link_paragraph(pid(12)),
        ])
        client.add_page(raw_page(pid(10), "A", parent_id=OUTLINE), [paragraph("a")])
        client.add_page(raw_page(pid(11), "B", parent_id=OUTLINE), [paragraph("b")])
        client.add_page(raw_page(pid(12), "C", parent_id=pid(99)))

        registry, _ = discover(client, layout, docs_root)

        keys = registry.order_keys()
        assert len(keys) == len(set(keys)) == 3

    def test_custom_pages_do_not_share_orders_with_outline_pages(self, layout, docs_root):
        client = build_workspace(
            [child_page(pid(10), "A"), child_page(pid(11), "B")],
            extra_root_blocks=[child_page(pid(30), "About")]
        )
        client.add_page(raw_page(pid(10), "A", parent_id=OUTLINE), [paragraph("a")])
        client.add_page(raw_page(pid(11), "B", parent_id=OUTLINE), [paragraph("b")])
        client.add_page(raw_page(pid(30), "About", parent_id=ROOT), [paragraph("About us")])

        registry, _ = discover(client, layout, docs_root)

        keys = registry.order_keys()
        assert len(keys) == len(set(keys)) == 3
        about = registry.get(pid(30))
        assert about.layout_context == '/tmp'
        assert about.order == 1
        assert registry.get(pid(11)).order == 1
        assert layout.get_path_for_page(about, '.md') == docs_root / "tmp" / "about.md"

    def test_linked_page_still_places_its_sub_pages(self, layout, docs_root, caplog):
        first, second = pid(10), pid(11)
        linked, nested = pid(20), pid(21)
        client = build_workspace([child_page(first, "S1"), child_page(second, "S2")])
        client.add_page(raw_page(first, "S1", parent_id=OUTLINE), [link_paragraph(linked)])
        client.add_page(raw_page(second, "S2", parent_id=OUTLINE), [child_page(linked, "X")])
        client.add_page(raw_page(linked, "X", parent_id=second), [
            paragraph("X body"),
            child_page(nested, "Y"),
        ])
        client.add_page(raw_page(nested, "Y", parent_id=linked), [paragraph("Y body")])

        with caplog.at_level(logging.WARNING):
            registry, _ = discover(client, layout, docs_root)

        assert [page.page_id for page in registry] == [linked, nested]
        assert registry.get(linked).layout_context == '/000-s1'
        assert registry.get(linked).subtype == PageSubtype.CONTENT
        assert registry.get(nested).layout_context == '/001-s2/000-x'
        assert "only its sub-pages are placed here" in caplog.text

    def test_missing_page_propagates(self, layout, docs_root):
        client = build_workspace([child_page(pid(10), "Gone")])

        with pytest.raises(Exception):
            discover(client, layout, docs_root)
