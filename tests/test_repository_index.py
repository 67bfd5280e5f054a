"""
Tests for the repository index — key flattening, collisions and caching.
"""

import json
import os
import time
from pathlib import Path

from nixup.adapters.mock import MockPackageSource
from nixup.core.models.config import NixupConfig
from nixup.core.services.repository_index import (
    RepositoryIndexer,
    flat_key,
    flatten_search_results,
)

PREFIX = "legacyPackages.x86_64-linux"


def _age(path: Path, seconds: int) -> None:
    """Backdate a file's mtime."""
    past = time.time() - seconds
    os.utime(path, (past, past))


class TestFlatKey:
    """Tests for attribute path → index key."""

    def test_top_level(self):
        assert flat_key(f"{PREFIX}.curl") == "curl"

    def test_nested_set_uses_basename(self):
        assert flat_key(f"{PREFIX}.haskellPackages.pandoc") == "pandoc"

    def test_versioned_namespaces_keep_parent(self):
        assert flat_key(f"{PREFIX}.qt5.qtbase") == "qt5.qtbase"
        assert flat_key(f"{PREFIX}.python312Packages.requests") == "python312Packages.requests"
        assert flat_key(f"{PREFIX}.lua54Packages.luafilesystem") == "lua54Packages.luafilesystem"
        assert flat_key(f"{PREFIX}.ruby_3_3.gems") == "ruby_3_3.gems"

    def test_short_paths_never_keep_parent(self):
        assert flat_key("qt5.qtbase") == "qtbase"


class TestFlattenSearchResults:
    """Tests for collapsing search output into the flat index."""

    def test_shallowest_wins(self):
        results = {
            f"{PREFIX}.haskellPackages.pandoc": {"version": "3.6"},
            f"{PREFIX}.pandoc": {"version": "3.5"},
        }
        assert flatten_search_results(results) == {"pandoc": "3.5"}

    def test_equal_depth_uses_smallest_path(self):
        results = {
            f"{PREFIX}.zsets.foo": {"version": "2.0"},
            f"{PREFIX}.asets.foo": {"version": "1.0"},
        }
        assert flatten_search_results(results) == {"foo": "1.0"}

    def test_order_independent(self):
        a = {f"{PREFIX}.x.foo": {"version": "1"}, f"{PREFIX}.foo": {"version": "2"}}
        b = dict(reversed(list(a.items())))
        assert flatten_search_results(a) == flatten_search_results(b) == {"foo": "2"}

    def test_versionless_entries_dropped(self):
        results = {
            f"{PREFIX}.foo": {"version": ""},
            f"{PREFIX}.bar": {"pname": "bar"},
            f"{PREFIX}.baz": "garbage",
            f"{PREFIX}.ok": {"version": "1.0"},
        }
        assert flatten_search_results(results) == {"ok": "1.0"}

    def test_versionless_winner_masks_deeper_entry(self):
        results = {
            f"{PREFIX}.foo": {"version": ""},
            f"{PREFIX}.nested.foo": {"version": "2.0"},
        }
        assert flatten_search_results(results) == {}

    def test_qt_variants_kept_apart(self):
        results = {
            f"{PREFIX}.qt6.qtbase": {"version": "6.8.1"},
            f"{PREFIX}.qt5.qtbase": {"version": "5.15.16"},
        }
        assert flatten_search_results(results) == {
            "qt5.qtbase": "5.15.16",
            "qt6.qtbase": "6.8.1",
        }


class TestRepositoryIndexer:
    """Tests for fetching and caching the index."""

    def _source(self) -> MockPackageSource:
        return MockPackageSource(packages={f"{PREFIX}.curl": "8.17.0", f"{PREFIX}.jq": "1.7.1"})

    def test_fetch_writes_cache(self, config: NixupConfig):
        source = self._source()
        index = RepositoryIndexer(config, source).get_index()

        assert index == {"curl": "8.17.0", "jq": "1.7.1"}
        assert json.loads(config.index_cache.read_text()) == index
        assert source.call_log == [("search", "test:nixpkgs")]

    def test_fresh_cache_is_reused(self, config: NixupConfig):
        source = self._source()
        indexer = RepositoryIndexer(config, source)
        indexer.get_index()
        indexer.get_index()
        assert source.calls("search") == 1

    def test_force_refresh(self, config: NixupConfig):
        source = self._source()
        indexer = RepositoryIndexer(config, source)
        indexer.get_index()
        indexer.get_index(force_refresh=True)
        assert source.calls("search") == 2

    def test_stale_cache_is_refetched(self, config: NixupConfig):
        source = self._source()
        indexer = RepositoryIndexer(config, source)
        indexer.get_index()
        _age(config.index_cache, config.cache_max_age + 10)
        indexer.get_index()
        assert source.calls("search") == 2

    def test_corrupt_cache_is_a_miss(self, config: NixupConfig):
        config.index_cache.write_text("{not json")
        source = self._source()
        assert RepositoryIndexer(config, source).get_index() == {"curl": "8.17.0", "jq": "1.7.1"}
        assert source.calls("search") == 1

    def test_failure_without_cache_is_empty_and_not_persisted(self, config: NixupConfig):
        source = self._source()
        source.set_failure("search", "evaluation error")
        assert RepositoryIndexer(config, source).get_index() == {}
        assert not config.index_cache.exists()

    def test_failure_falls_back_to_stale_cache(self, config: NixupConfig):
        config.index_cache.write_text(json.dumps({"curl": "8.0.0"}))
        _age(config.index_cache, config.cache_max_age + 10)

        source = self._source()
        source.set_failure("search")
        assert RepositoryIndexer(config, source).get_index() == {"curl": "8.0.0"}
        assert json.loads(config.index_cache.read_text()) == {"curl": "8.0.0"}

    def test_empty_result_not_persisted(self, config: NixupConfig):
        source = MockPackageSource(packages={})
        assert RepositoryIndexer(config, source).get_index() == {}
        assert not config.index_cache.exists()

    def test_writes_fetch_status(self, config: NixupConfig):
        indexer = RepositoryIndexer(config, self._source())
        indexer.fetch()
        status = json.loads(config.status_file.read_text())
        assert status["status"] == "busy"
        assert status["phase"] == "fetch_index"
