from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Optional

from ..errors import UpstreamError, ValidationAppError
from ..ports.chart_store import ChartStore

logger = logging.getLogger(__name__)


class LocalChartStore(ChartStore):
    """Filesystem bucket; blobs are served back through ``GET /charts/{key}``."""

    def __init__(self, root: str | Path, base_url: str = ""):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValidationAppError("INVALID_CHART_KEY", "chart key escapes the store")
        return path

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def upload(self, key: str, data: bytes, content_type: str = "image/png") -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise UpstreamError("CHART_UPLOAD_FAILED", f"could not write {key}: {e}")

    def list(self, folder: str, search: str = "") -> List[str]:
        directory = self._path(folder) if folder else self.root
        if not directory.is_dir():
            return []
        return sorted(p.name for p in directory.iterdir() if p.is_file() and search in p.name)

    def remove(self, keys: List[str]) -> None:
        for key in keys:
            try:
                self._path(key).unlink(missing_ok=True)
            except OSError as e:
                raise UpstreamError("CHART_DELETE_FAILED", f"could not delete {key}: {e}")

    def read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/charts/{key}"
