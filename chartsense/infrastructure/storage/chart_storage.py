"""
Chart Storage
Local object storage for uploaded chart screenshots

Objects are addressed by a relative key ("<owner>/<uuid>.<ext>"). Downloads
go through time-limited HMAC-signed URLs.
"""

import asyncio
import hashlib
import hmac
import logging
import uuid
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote, urlencode

from chartsense.utils.time import now_utc

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
}

DOWNLOAD_PREFIX = "/api/v1/charts"


class ChartStorage:
    """Filesystem-backed chart store"""

    def __init__(self, root_dir: Path, secret_key: str):
        self.root_dir = Path(root_dir)
        self._secret = secret_key.encode("utf-8")

    def _resolve(self, path: str) -> Path:
        """Map an object key to a file under root_dir"""
        key = PurePosixPath(path)
        if not path or key.is_absolute() or ".." in key.parts:
            raise ValueError(f"Invalid storage path: {path!r}")
        return self.root_dir.joinpath(*key.parts)

    async def save(self, data: bytes, mime_type: Optional[str], owner: Optional[str] = None) -> str:
        """
        Store an upload.

        Returns:
            Object key of the stored chart
        """
        extension = EXTENSIONS.get((mime_type or "").lower(), "png")
        path = f"{owner or 'anonymous'}/{uuid.uuid4()}.{extension}"
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info(f"Stored chart {path} ({len(data)} bytes)")
        return path

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        return await asyncio.to_thread(target.read_bytes)

    async def size(self, path: str) -> int:
        target = self._resolve(path)
        stat = await asyncio.to_thread(target.stat)
        return stat.st_size

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(target.unlink, missing_ok=True)
        logger.info(f"Removed chart {path}")

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except ValueError:
            return False

    def _sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def create_signed_url(self, path: str, expires_in: int, now: Optional[datetime] = None) -> str:
        """
        Download URL valid for `expires_in` seconds.
        """
        self._resolve(path)
        expires = int((now or now_utc()).timestamp()) + expires_in
        query = urlencode({"expires": expires, "signature": self._sign(path, expires)})
        return f"{DOWNLOAD_PREFIX}/{quote(path)}?{query}"

    def verify_signature(
        self,
        path: str,
        expires: int,
        signature: str,
        now: Optional[datetime] = None,
    ) -> bool:
        """True when the signature matches and has not expired"""
        if int((now or now_utc()).timestamp()) > expires:
            return False
        return hmac.compare_digest(self._sign(path, expires), signature)
