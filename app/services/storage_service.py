"""
Storage service: uploaded PDFs on the local filesystem under STORAGE_ROOT.

Locators are paths relative to STORAGE_ROOT (e.g. documents/<admin_id>/<name>.pdf).
Clients never see a locator directly; they get a signed, time-limited URL
served by /files/{token}.
"""
import logging
import os
import re
import time
import uuid
from functools import lru_cache

from config import PUBLIC_API_URL, SIGNED_URL_TTL_SECONDS, STORAGE_ROOT
from crypto import sign_locator, unsign_locator
from errors import ExternalProviderError

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "application/pdf": ".pdf",
}


def safe_segment(name: str) -> str:
    """Remove path separators and reserved chars so name is safe for filesystem."""
    safe = re.sub(r'[\\/:*?"<>|\s]+', "_", name)
    if len(safe) > 200:
        safe = safe[:200]
    return safe.strip(".") or "unnamed"


class LocalStorage:
    def __init__(self, root: str = STORAGE_ROOT, base_url: str = PUBLIC_API_URL):
        self.root = os.path.abspath(root)
        self.base_url = base_url

    def _path(self, locator: str) -> str:
        """Absolute path for locator; refuses anything resolving outside root."""
        path = os.path.abspath(os.path.join(self.root, locator))
        if os.path.commonpath([path, self.root]) != self.root:
            raise ValueError(f"Locator escapes storage root: {locator}")
        return path

    def put(self, data: bytes, content_type: str, owner_id: str, namespace: str = "documents") -> str:
        """Write data and return its locator. File names are unique per upload."""
        ext = CONTENT_TYPE_EXTENSIONS.get(content_type, "")
        name = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{ext}"
        locator = "/".join([namespace, safe_segment(owner_id), name])
        path = self._path(locator)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.exception("Storage write failed for %s", locator)
            raise ExternalProviderError(f"Storage write failed: {e}") from e
        logger.info("Stored %d bytes at %s", len(data), locator)
        return locator

    def delete(self, locator: str) -> None:
        """Remove the file; a missing file is not an error."""
        path = self._path(locator)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Delete of missing file %s", locator)
        except OSError as e:
            logger.exception("Storage delete failed for %s", locator)
            raise ExternalProviderError(f"Storage delete failed: {e}") from e

    def signed_url(self, locator: str, ttl: int = SIGNED_URL_TTL_SECONDS) -> str:
        """URL that serves the file for ttl seconds."""
        return f"{self.base_url}/files/{sign_locator(locator, ttl)}"

    def open_signed(self, token: str) -> str | None:
        """Absolute path for a valid, unexpired token whose file exists, else None."""
        locator = unsign_locator(token)
        if locator is None:
            return None
        try:
            path = self._path(locator)
        except ValueError:
            return None
        return path if os.path.isfile(path) else None


@lru_cache(maxsize=1)
def get_storage() -> LocalStorage:
    """FastAPI dependency: process-wide storage handle."""
    return LocalStorage()
