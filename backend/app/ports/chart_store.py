from __future__ import annotations
from typing import Protocol, List, Optional


class ChartStore(Protocol):
    """Blob bucket holding rendered chart images, keyed ``{folder}/{file_name}``."""

    def exists(self, key: str) -> bool:
        ...

    def upload(self, key: str, data: bytes, content_type: str = "image/png") -> None:
        """Write (upsert) a blob. Raises UpstreamError on failure."""
        ...

    def list(self, folder: str, search: str = "") -> List[str]:
        """File names directly under ``folder`` containing ``search``."""
        ...

    def remove(self, keys: List[str]) -> None:
        ...

    def read(self, key: str) -> Optional[bytes]:
        ...

    def public_url(self, key: str) -> str:
        ...
