"""Tests for output paths, sidebar levels, stale-file cleanup and the writer."""

import json
import logging

import pytest

from exporters.layout_strategy import CATEGORY_FILE, HierarchicalNamedLayoutStrategy, sanitize_path_segment
from fetchers.page_registry import PageRegistry
from models import PageSubtype
from notion_fakes import make_page, pid


class TestSanitizePathSegment:

    def test_lowercases_and_dashes(self):
        assert sanitize_path_segment("Getting Started: Part 1") == "getting-started-part-1"

    def test_empty_name(self):
        assert sanitize_path_segment("") == "untitled"
        assert sanitize_path_segment("???") == "untitled"

    def test_truncates(self):
        assert len(sanitize_path_segment("a" * 300)) == 100


class TestNewLevel:
    """Sidebar levels and their category files."""

    def test_context_format(self, layout, docs_root):
        context = layout.new_level(docs_root, 2, '', "User Guides")
        assert context == "/002-user-guides"

        nested = layout.new_level(docs_root, 13, context, "Setup")
        assert nested == "/002-user-guides/013-setup"

    def test_writes_category_file(self, layout, docs_root):
        layout.new_level(docs_root, 1, '', "Guides")

        category_file = docs_root / "001-guides" / CATEGORY_FILE
        assert json.loads(category_file.read_text(encoding='utf-8')) == {"position": 1, "label": "Guides"}
        assert layout.is_live(category_file)

    def test_is_deterministic(self, writer, tmp_path):
        first = HierarchicalNamedLayoutStrategy(writer)
        second = HierarchicalNamedLayoutStrategy(writer)

        assert first.new_level(tmp_path, 4, '/001-a', "B") == second.new_level(tmp_path, 4, '/001-a', "B")

    def test_records_level(self, layout, docs_root):
        context = layout.new_level(docs_root, 0, '', "Guides")
        assert layout.levels[context].label == "Guides"
        assert layout.levels[context].order == 0


class TestPagePaths:
    """Where pages are written and how other pages link to them."""

    def test_content_page(self, layout, docs_root):
        page = make_page(pid(1), "Install Guide", layout_context='/001-guides', subtype=PageSubtype.CONTENT)

        assert layout.get_path_for_page(page, '.md') == docs_root / "001-guides" / "install-guide.md"
        assert layout.get_link_path_for_page(page) == "/001-guides/install-guide"

    def test_page_at_root(self, layout, docs_root):
        page = make_page(pid(1), "Intro", subtype=PageSubtype.CONTENT)

        assert layout.get_path_for_page(page, '.md') == docs_root / "intro.md"
        assert layout.get_link_path_for_page(page) == "/intro"

    def test_category_index(self, layout, docs_root):
        page = make_page(pid(1), "Guides", layout_context='/001-guides', subtype=PageSubtype.CATEGORY_INDEX)

        assert layout.get_path_for_page(page, '.md') == docs_root / "001-guides" / "index.md"

    def test_custom_page_is_staged(self, layout, docs_root):
        page = make_page(pid(1), "About Us", subtype=PageSubtype.CUSTOM)

        assert layout.get_path_for_page(page, '.md') == docs_root / "tmp" / "about-us.md"
        assert layout.get_link_path_for_page(page) == "/about-us"

    def test_explicit_slug(self, layout, docs_root):
        page = make_page(pid(1), "Install", layout_context='/001-guides', slug="setup",
                         subtype=PageSubtype.CONTENT)

        assert layout.get_path_for_page(page, '.md') == docs_root / "001-guides" / "setup.md"
        assert layout.get_link_path_for_page(page) == "/setup"

    def test_path_is_cached(self, layout):
        page = make_page(pid(1), "Intro", subtype=PageSubtype.CONTENT)
        assert layout.get_path_for_page(page, '.md') == layout.get_path_for_page(page, '.md')

    def test_collision_uses_page_id(self, layout, docs_root, caplog):
        first = make_page(pid(1), "Intro", subtype=PageSubtype.CONTENT)
        second = make_page(pid(2), "Intro", subtype=PageSubtype.CONTENT)

        with caplog.at_level(logging.WARNING):
            first_path = layout.get_path_for_page(first, '.md')
            second_path = layout.get_path_for_page(second, '.md')

        assert first_path == docs_root / "intro.md"
        assert second_path == docs_root / f"intro-{pid(2).replace('-', '')}.md"
        assert "would overwrite" in caplog.text

    def test_assigned_paths_follow_discovery_order(self, layout, docs_root):
        first = make_page(pid(1), "Intro", subtype=PageSubtype.CONTENT)
        second = make_page(pid(2), "Intro", order=1, subtype=PageSubtype.CONTENT)

        layout.assign_paths([first, second])

        assert layout.get_link_path_for_page(second) == f"/intro-{pid(2).replace('-', '')}"
        assert layout.get_path_for_page(first, '.md') == docs_root / "intro.md"

    def test_requires_root_directory(self, writer):
        strategy = HierarchicalNamedLayoutStrategy(writer)
        with pytest.raises(RuntimeError):
            strategy.get_path_for_page(make_page(pid(1), "Intro"), '.md')


class TestCleanup:
    """Removal of files no page produced during the run."""

    def test_deletes_only_files_not_seen(self, layout, docs_root):
        kept = make_page(pid(1), "Intro", subtype=PageSubtype.CONTENT)
        kept_path = layout.get_path_for_page(kept, '.md')
        kept_path.write_text("current", encoding='utf-8')
        layout.page_was_seen(kept)

        stale_dir = docs_root / "009-old"
        stale_dir.mkdir(parents=True)
        (stale_dir / "gone.md").write_text("old", encoding='utf-8')
        (stale_dir / CATEGORY_FILE).write_text("{}", encoding='utf-8')
        (docs_root / "old.mdx").write_text("old", encoding='utf-8')
        (docs_root / "image.png").write_bytes(b"png")

        deleted = layout.cleanup_old_files()

        assert kept_path.exists()
        assert (docs_root / "image.png").exists()
        assert not (docs_root / "old.mdx").exists()
        assert not stale_dir.exists()
        assert len(deleted) == 3
        assert layout.writer.get_stats()['files_deleted'] == 3

    def test_keeps_live_category_files(self, layout, docs_root):
        context = layout.new_level(docs_root, 0, '', "Guides")

        layout.cleanup_old_files()

        assert (docs_root / context.lstrip('/') / CATEGORY_FILE).exists()


class TestMarkdownWriter:

    def test_unchanged_content_is_not_rewritten(self, writer, tmp_path):
        path = tmp_path / "a" / "page.md"

        assert writer.write_file(path, "hello\n")
        assert not writer.write_file(path, "hello\n")
        assert writer.write_file(path, "changed\n")

        stats = writer.get_stats()
        assert stats['files_written'] == 2
        assert stats['files_unchanged'] == 1

    def test_move_refuses_to_overwrite(self, writer, tmp_path):
        source = tmp_path / "source.md"
        destination = tmp_path / "pages" / "dest.md"
        source.write_text("new", encoding='utf-8')
        destination.parent.mkdir()
        destination.write_text("old", encoding='utf-8')

        assert not writer.move_file(source, destination)
        assert destination.read_text(encoding='utf-8') == "old"

        assert writer.move_file(source, destination, overwrite=True)
        assert destination.read_text(encoding='utf-8') == "new"
        assert not source.exists()


class TestPageRegistry:
    """Append-only page collection."""

    def test_insertion_order(self):
        registry = PageRegistry()
        pages = [make_page(pid(n), f"P{n}", order=n) for n in (3, 1, 2)]
        for page in pages:
            registry.append(page)

        assert [page.page_id for page in registry] == [pid(3), pid(1), pid(2)]
        assert len(registry) == 3
        assert pid(1) in registry

    def test_duplicate_id_rejected(self):
        registry = PageRegistry()
        registry.append(make_page(pid(1), "A"))

        with pytest.raises(ValueError):
            registry.append(make_page(pid(1), "A again", order=1))

    def test_sealed_registry_rejects_pages(self):
        registry = PageRegistry()
        registry.seal()

        with pytest.raises(RuntimeError):
            registry.append(make_page(pid(1), "A"))

    def test_repeated_order_in_context_rejected(self):
        registry = PageRegistry()
        registry.append(make_page(pid(1), "A", layout_context='/001-x', order=0))
        registry.append(make_page(pid(3), "C", layout_context='/002-y', order=0))

        with pytest.raises(ValueError, match="used twice"):
            registry.append(make_page(pid(2), "B", layout_context='/001-x', order=0))
        assert pid(2) not in registry

    def test_index_page_order_does_not_clash_with_its_children(self):
        registry = PageRegistry()
        registry.append(make_page(pid(1), "Guides", layout_context='/001-guides', order=1,
                                  subtype=PageSubtype.CATEGORY_INDEX))
        registry.append(make_page(pid(2), "Setup", layout_context='/001-guides', order=1))

        assert registry.order_keys() == [('', 1), ('/001-guides', 1)]

    def test_find_by_link_id(self):
        registry = PageRegistry()
        registry.append(make_page(pid(1), "A"))
        registry.append(make_page(pid(2), "B", order=1))

        assert registry.find_by_link_id(pid(2).replace('-', '')).title == "B"
        assert registry.find_by_link_id(pid(1) + "#top").title == "A"
        assert registry.find_by_link_id(pid(9)) is None
