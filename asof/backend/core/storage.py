"""
Media Storage.

Local filesystem storage for uploaded media. Files are written below
the configured upload directory and served by the application under
the public URL prefix (both from config/settings/storage.yaml).

Disk I/O runs on the shared thread pool so request handlers never block
the event loop.

Usage:
    from asof.backend.core.storage import get_storage

    storage = get_storage()
    url = await storage.save("1718000000000-a1b2c3.png", data)
    await storage.delete("1718000000000-a1b2c3.png")
"""

from functools import lru_cache
from pathlib import Path

from asof.backend.core.concurrency import run_blocking
from asof.backend.core.logging import get_logger

logger = get_logger(__name__)


class LocalStorage:
    """Flat directory of stored files addressed by file name."""

    def __init__(self, root: Path, public_url_prefix: str) -> None:
        self.root = root
        self.public_url_prefix = public_url_prefix.rstrip("/")

    def path_for(self, file_name: str) -> Path:
        # Stored names are generated server-side; reject anything path-like
        if not file_name or Path(file_name).name != file_name:
            raise ValueError(f"Invalid storage file name: {file_name!r}")
        return self.root / file_name

    def url_for(self, file_name: str) -> str:
        return f"{self.public_url_prefix}/{file_name}"

    def name_from_url(self, url: str | None) -> str | None:
        """Inverse of url_for. Returns None for URLs this storage did not issue."""
        if not url or not url.startswith(self.public_url_prefix + "/"):
            return None
        return url[len(self.public_url_prefix) + 1:]

    async def save(self, file_name: str, data: bytes) -> str:
        """Write the file and return its public URL."""
        path = self.path_for(file_name)
        await run_blocking(self._write, path, data)
        logger.debug("Stored file", extra={"file_name": file_name, "size": len(data)})
        return self.url_for(file_name)

    async def delete(self, file_name: str) -> None:
        """Remove a stored file. Missing files are not an error."""
        path = self.path_for(file_name)
        await run_blocking(path.unlink, missing_ok=True)
        logger.debug("Deleted file", extra={"file_name": file_name})

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


@lru_cache
def get_storage() -> LocalStorage:
    """Get the configured storage. Overridden in tests with a tmp_path storage."""
    from asof.backend.core.config import find_project_root, get_app_config

    storage_config = get_app_config().storage
    root = Path(storage_config.upload_dir)
    if not root.is_absolute():
        root = find_project_root() / root
    return LocalStorage(root, storage_config.public_url_prefix)
