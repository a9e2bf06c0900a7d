"""
JSON file cache store tests.
"""

import json

from promptpilot.adapters.cache.json_file_cache import JsonFileCacheStore
from promptpilot.domain.entities.prompt_group import PromptGroup
from promptpilot.domain.enums.version_status import VersionStatus


def _group_with_versions(count: int = 3) -> PromptGroup:
    group = PromptGroup.create("Support Bot", "You are helpful.", description="desk", tags=["cs"])
    for i in range(2, count + 1):
        group.add_version(f"text {i}")
    return group


def test_empty_store_loads_nothing(cache_store):
    assert cache_store.load() == []


def test_round_trip_preserves_groups_and_synced_set(cache_store):
    group = _group_with_versions()
    group.remote_id = "remote-1"
    group.versions[0].remote_id = "rv-1"
    group.synced_version_ids = {group.versions[2].id, group.versions[0].id}
    group.apply_status(group.versions[1], VersionStatus.PRODUCTION)

    assert cache_store.save([group]) is True
    loaded = cache_store.load()

    assert len(loaded) == 1
    restored = loaded[0]
    assert isinstance(restored.synced_version_ids, set)
    assert restored.synced_version_ids == group.synced_version_ids
    assert restored.remote_id == "remote-1"
    assert restored.versions[0].remote_id == "rv-1"
    assert restored.tags == ["cs"]
    assert restored.current_version_id == group.current_version_id
    assert restored.production_version_id == group.versions[1].id
    assert [v.version_number for v in restored.versions] == [1, 2, 3]
    assert restored.created_at == group.created_at


def test_synced_set_is_stored_as_sorted_list(cache_store):
    group = _group_with_versions()
    group.synced_version_ids = {v.id for v in group.versions}
    cache_store.save([group])

    raw = json.loads(cache_store.path.read_text(encoding="utf-8"))
    assert raw[0]["synced_version_ids"] == sorted(group.synced_version_ids)


def test_corrupt_payload_loads_as_empty(cache_store):
    cache_store.directory.mkdir(parents=True, exist_ok=True)

    cache_store.path.write_text("{not json", encoding="utf-8")
    assert cache_store.load() == []

    cache_store.path.write_text('{"a": 1}', encoding="utf-8")
    assert cache_store.load() == []

    cache_store.path.write_text('[{"id": "x"}]', encoding="utf-8")
    assert cache_store.load() == []


def test_save_leaves_no_temp_files(cache_store):
    cache_store.save([_group_with_versions()])
    cache_store.save([_group_with_versions()])
    assert [p.name for p in cache_store.directory.iterdir()] == [cache_store.path.name]


def test_usage_counts_every_namespace(tmp_path):
    store = JsonFileCacheStore(str(tmp_path), capacity_bytes=10_000)
    store.save([_group_with_versions()])
    own = store.usage().total_bytes

    (tmp_path / "other_namespace.json").write_text("x" * 500, encoding="utf-8")
    usage = store.usage()

    assert usage.total_bytes == own + 500 + len("other_namespace")
    assert usage.group_count == 1
    assert usage.version_count == 3
    assert usage.capacity_bytes == 10_000


def test_near_limit_threshold(tmp_path):
    store = JsonFileCacheStore(str(tmp_path), capacity_bytes=4000, near_limit_ratio=0.8)
    store.save([_group_with_versions(1)])
    assert store.usage().is_near_limit is False

    (tmp_path / "filler.json").write_text("x" * 3000, encoding="utf-8")
    usage = store.usage()
    assert usage.total_bytes > 3200
    assert usage.is_near_limit is True


def test_write_over_capacity_is_rejected(tmp_path):
    store = JsonFileCacheStore(str(tmp_path), capacity_bytes=3000)
    small = _group_with_versions(1)
    assert store.save([small]) is True

    big = _group_with_versions(2)
    big.add_version("y" * 5000)
    assert store.save([big]) is False

    loaded = store.load()
    assert [g.id for g in loaded] == [small.id]


def test_clear_removes_namespace(cache_store):
    cache_store.save([_group_with_versions()])
    assert cache_store.clear() is True
    assert cache_store.load() == []
    assert cache_store.clear() is True
