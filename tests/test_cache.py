"""
Tests for the Content Cache
"""

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from scangate.core.cache import CACHE_FILENAME, CACHE_VERSION, ContentCache
from scangate.core.finding import Finding


class TestContentCache:
    """Tests for cache lookup and persistence."""

    def test_get_hit_and_miss(self, temp_dir: Path, sample_findings: list[Finding]):
        """Test that lookups hit only for the stored content hash."""
        cache = ContentCache.for_root(temp_dir, "rules-a")
        cache.set("/repo/src/app.ts", "hash-1", sample_findings)

        assert cache.get("/repo/src/app.ts", "hash-1") == sample_findings
        assert cache.get("/repo/src/app.ts", "hash-2") is None
        assert cache.get("/repo/src/other.ts", "hash-1") is None
        assert cache.hits == 1
        assert cache.misses == 2

    def test_save_and_load(self, temp_dir: Path, sample_findings: list[Finding]):
        """Test that a saved cache loads back under the same rule hash."""
        cache = ContentCache.for_root(temp_dir, "rules-a")
        cache.set("/repo/src/app.ts", "hash-1", sample_findings)
        cache.save()

        document = json.loads((temp_dir / CACHE_FILENAME).read_text(encoding="utf-8"))
        assert document["version"] == CACHE_VERSION
        assert document["rulesHash"] == "rules-a"

        reloaded = ContentCache.for_root(temp_dir, "rules-a")
        assert reloaded.load()
        assert "/repo/src/app.ts" in reloaded
        assert reloaded.get("/repo/src/app.ts", "hash-1") == sample_findings

    def test_rule_change_invalidates(self, temp_dir: Path, sample_findings: list[Finding]):
        """Test that a different rule hash discards every entry."""
        cache = ContentCache.for_root(temp_dir, "rules-a")
        cache.set("/repo/src/app.ts", "hash-1", sample_findings)
        cache.save()

        reloaded = ContentCache.for_root(temp_dir, "rules-b")

        assert not reloaded.load()
        assert len(reloaded) == 0
        assert reloaded.get("/repo/src/app.ts", "hash-1") is None

    def test_corrupt_cache_recovers(self, temp_dir: Path):
        """Test that an unparsable cache file is treated as empty."""
        (temp_dir / CACHE_FILENAME).write_text("{not json", encoding="utf-8")

        cache = ContentCache.for_root(temp_dir, "rules-a")

        assert not cache.load()
        assert len(cache) == 0

        cache.set("/repo/a.ts", "h", [])
        cache.save()
        assert ContentCache.for_root(temp_dir, "rules-a").load()

    def test_wrong_structure_recovers(self, temp_dir: Path):
        """Test that a JSON document of the wrong shape is treated as empty."""
        (temp_dir / CACHE_FILENAME).write_text('{"files": []}', encoding="utf-8")

        assert not ContentCache.for_root(temp_dir, "rules-a").load()

    def test_malformed_entry_recovers(self, temp_dir: Path, sample_findings: list[Finding]):
        """Test that a document with a non-object entry is treated as empty."""
        cache = ContentCache.for_root(temp_dir, "rules-a")
        cache.set("/repo/src/app.ts", "hash-1", sample_findings)
        cache.save()
        document = json.loads((temp_dir / CACHE_FILENAME).read_text(encoding="utf-8"))
        document["files"]["/repo/src/app.ts"] = "garbage"
        (temp_dir / CACHE_FILENAME).write_text(json.dumps(document), encoding="utf-8")

        reloaded = ContentCache.for_root(temp_dir, "rules-a")

        assert not reloaded.load()
        assert len(reloaded) == 0
        assert reloaded.get("/repo/src/app.ts", "hash-1") is None

    def test_entry_without_findings_recovers(self, temp_dir: Path):
        """Test that an entry missing its findings list is treated as corrupt."""
        document = {"version": CACHE_VERSION, "rulesHash": "rules-a", "files": {"/repo/a.ts": {"hash": "h"}}}
        (temp_dir / CACHE_FILENAME).write_text(json.dumps(document), encoding="utf-8")

        cache = ContentCache.for_root(temp_dir, "rules-a")

        assert not cache.load()
        assert len(cache) == 0

    def test_missing_cache(self, temp_dir: Path):
        """Test that a missing cache file is not an error."""
        cache = ContentCache.for_root(temp_dir, "rules-a")

        assert not cache.load()
        assert cache.hit_ratio == 0.0

    def test_save_leaves_no_temp_files(self, temp_dir: Path):
        """Test that the atomic write cleans up after itself."""
        cache = ContentCache.for_root(temp_dir, "rules-a")
        cache.set("/repo/a.ts", "h", [])
        cache.save()

        assert [p.name for p in temp_dir.iterdir()] == [CACHE_FILENAME]


class TestConcurrentLookups:
    """Tests for cache counters under parallel scans."""

    def test_counters_match_lookups(self, temp_dir: Path, sample_findings: list[Finding]):
        """Test that hits and misses add up to every lookup made across threads."""
        cache = ContentCache.for_root(temp_dir, "rules-a")
        cache.set("/repo/src/app.ts", "hash-1", sample_findings)

        def lookup(index: int) -> None:
            cache.get("/repo/src/app.ts", "hash-1" if index % 2 else "hash-2")

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lookup, range(400)))

        assert cache.hits == 200
        assert cache.misses == 200
        assert cache.hits + cache.misses == 400
