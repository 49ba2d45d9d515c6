"""Supabase Storage bucket accessed through its REST API."""
from __future__ import annotations
import logging
from typing import List, Optional

import requests

from ..errors import UpstreamError
from ..ports.chart_store import ChartStore

logger = logging.getLogger(__name__)


class SupabaseChartStore(ChartStore):
    LIST_LIMIT = 100

    def __init__(self, supabase_url: str, service_key: str, bucket: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base = f"{supabase_url.rstrip('/')}/storage/v1"
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        })

    def _call(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            res = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise UpstreamError("STORAGE_UNAVAILABLE", f"storage request failed: {e}")
        if res.status_code >= 400:
            raise UpstreamError("STORAGE_ERROR", f"storage {method} {url} -> {res.status_code}: {res.text[:200]}")
        return res

    def exists(self, key: str) -> bool:
        folder, _, name = key.rpartition("/")
        return name in self.list(folder, search=name)

    def upload(self, key: str, data: bytes, content_type: str = "image/png") -> None:
        self._call(
            "POST",
            f"{self.base}/object/{self.bucket}/{key}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "true", "cache-control": "max-age=300"},
        )

    def list(self, folder: str, search: str = "") -> List[str]:
        names: List[str] = []
        offset = 0
        while True:
            res = self._call(
                "POST",
                f"{self.base}/object/list/{self.bucket}",
                json={"prefix": folder, "search": search, "limit": self.LIST_LIMIT, "offset": offset},
            )
            page = res.json() or []
            names.extend(item["name"] for item in page if item.get("name"))
            if len(page) < self.LIST_LIMIT:
                return names
            offset += len(page)

    def remove(self, keys: List[str]) -> None:
        if not keys:
            return
        self._call("DELETE", f"{self.base}/object/{self.bucket}", json={"prefixes": keys})

    def read(self, key: str) -> Optional[bytes]:
        try:
            res = self._call("GET", f"{self.base}/object/{self.bucket}/{key}")
        except UpstreamError:
            logger.info("chart blob %s not readable", key)
            return None
        return res.content

    def public_url(self, key: str) -> str:
        return f"{self.base}/object/public/{self.bucket}/{key}"
