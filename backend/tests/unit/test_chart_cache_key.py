from datetime import datetime, timedelta, timezone

from app.domain.chart_cache import ChartCacheKey, is_graph_blob, is_variant_blob, to_unix_millis
from app.domain.enums import Theme

T0 = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def test_key_layout():
    key = ChartCacheKey.build("owner-1", "graph-1", Theme.DARK, T0)
    assert key.path == f"owner-1/graph-1-dark-{to_unix_millis(T0)}.png"
    assert key.folder == "owner-1"
    assert str(key) == key.path


def test_key_changes_with_updated_at():
    a = ChartCacheKey.build("o", "g", "light", T0)
    b = ChartCacheKey.build("o", "g", "light", T0 + timedelta(milliseconds=1))
    assert a.path != b.path


def test_themes_are_distinct_keys():
    assert ChartCacheKey.build("o", "g", "light", T0).path != ChartCacheKey.build("o", "g", "dark", T0).path


def test_naive_timestamps_are_treated_as_utc():
    assert to_unix_millis(T0.replace(tzinfo=None)) == to_unix_millis(T0)
    assert to_unix_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000


def test_variant_matching_is_per_theme():
    name = ChartCacheKey.build("o", "g", "dark", T0).file_name
    assert is_variant_blob(name, "g", "dark")
    assert not is_variant_blob(name, "g", "light")
    assert not is_variant_blob(name, "other", "dark")


def test_graph_blob_matches_both_themes_only_for_that_graph():
    assert is_graph_blob("g-dark-1.png", "g")
    assert is_graph_blob("g-light-2.png", "g")
    assert not is_graph_blob("gg-dark-1.png", "g")
    assert not is_graph_blob("g-dark-1.txt", "g")
