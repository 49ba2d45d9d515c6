import pytest

from app.adapters.local_chart_store import LocalChartStore
from app.errors import ValidationAppError


def test_upload_list_read_remove(tmp_path):
    store = LocalChartStore(tmp_path, base_url="http://app")
    store.upload("u1/g1-dark-1.png", b"png")
    store.upload("u1/g2-dark-1.png", b"png2")
    assert store.exists("u1/g1-dark-1.png")
    assert store.list("u1") == ["g1-dark-1.png", "g2-dark-1.png"]
    assert store.list("u1", search="g1") == ["g1-dark-1.png"]
    assert store.read("u1/g2-dark-1.png") == b"png2"
    store.remove(["u1/g1-dark-1.png", "u1/missing.png"])
    assert not store.exists("u1/g1-dark-1.png")
    assert store.public_url("u1/g2-dark-1.png") == "http://app/charts/u1/g2-dark-1.png"


def test_missing_folder_lists_empty(tmp_path):
    assert LocalChartStore(tmp_path).list("nobody") == []
    assert LocalChartStore(tmp_path).read("nobody/x.png") is None


def test_keys_cannot_escape_root(tmp_path):
    store = LocalChartStore(tmp_path / "bucket")
    with pytest.raises(ValidationAppError):
        store.read("../outside.png")
