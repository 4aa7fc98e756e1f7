"""
File-based News.

News articles kept as Markdown files with YAML front matter in the
directory configured at content.news.directory:

    ---
    title: "Assembleia Geral Ordinária 2025"
    date: 2025-03-10
    category: "Eventos"
    excerpt: "Convocação para a assembleia anual."
    author: "Diretoria ASOF"
    image: "/static/img/assembleia.jpg"
    image_alt: "Auditório da sede"
    ---
    Corpo em **Markdown**.

The slug is the file name without extension. Parsed files are cached in
process for content.news.cache_ttl_seconds.
"""

import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from asof.backend.core.concurrency import run_blocking
from asof.backend.core.logging import get_logger
from asof.backend.core.utils import reading_time_minutes, slugify

logger = get_logger(__name__)

NEWS_EXTENSIONS = (".md", ".mdx")
FRONT_MATTER_DELIMITER = "---"


@dataclass
class NewsItem:
    slug: str
    title: str
    date: datetime
    content: str
    category: str | None = None
    excerpt: str | None = None
    author: str | None = None
    image: str | None = None
    image_alt: str | None = None
    reading_time: int = 1

    @property
    def category_slug(self) -> str | None:
        return slugify(self.category) if self.category else None


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """
    Split a document into its YAML front matter and body.

    Documents without front matter return an empty dict and the full text.

    Raises:
        yaml.YAMLError: If the front matter is not valid YAML
    """
    if not text.startswith(FRONT_MATTER_DELIMITER):
        return {}, text

    lines = text.splitlines(keepends=True)
    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONT_MATTER_DELIMITER:
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1:])
            metadata = yaml.safe_load(header) or {}
            if not isinstance(metadata, dict):
                raise yaml.YAMLError("front matter must be a mapping")
            return metadata, body.lstrip("\n")

    return {}, text


def _coerce_date(value: Any, fallback: datetime) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).replace(tzinfo=None)
        except ValueError:
            pass
    return fallback


def parse_news_file(path: Path, words_per_minute: int = 200) -> NewsItem:
    """
    Raises:
        OSError: If the file cannot be read
        yaml.YAMLError: If the front matter is invalid
        ValueError: If the title is missing
    """
    metadata, body = split_front_matter(path.read_text(encoding="utf-8"))

    title = str(metadata.get("title") or "").strip()
    if not title:
        raise ValueError(f"missing title in {path.name}")

    modified = datetime.fromtimestamp(path.stat().st_mtime, timezone.utc).replace(tzinfo=None)
    return NewsItem(
        slug=path.stem,
        title=title,
        date=_coerce_date(metadata.get("date"), modified),
        content=body,
        category=metadata.get("category"),
        excerpt=metadata.get("excerpt"),
        author=metadata.get("author"),
        image=metadata.get("image"),
        image_alt=metadata.get("image_alt") or metadata.get("imageAlt"),
        reading_time=reading_time_minutes(body, words_per_minute),
    )


class NewsStore:
    """
    Reads and caches the news directory.

    A missing directory is treated as "no news". Files that fail to
    parse are logged and skipped.
    """

    def __init__(self, directory: Path, ttl_seconds: int, words_per_minute: int = 200) -> None:
        self.directory = directory
        self.ttl_seconds = ttl_seconds
        self.words_per_minute = words_per_minute
        self._items: list[NewsItem] | None = None
        self._loaded_at = 0.0

    async def list_all(self) -> list[NewsItem]:
        """All news items, newest first."""
        now = time.monotonic()
        if self._items is None or now - self._loaded_at >= self.ttl_seconds:
            self._items = await run_blocking(self._load)
            self._loaded_at = now
        return self._items

    async def get_by_slug(self, slug: str) -> NewsItem | None:
        for item in await self.list_all():
            if item.slug == slug:
                return item
        return None

    def _load(self) -> list[NewsItem]:
        if not self.directory.is_dir():
            logger.debug("News directory not found", extra={"directory": str(self.directory)})
            return []

        items = []
        for path in sorted(self.directory.iterdir()):
            if path.suffix.lower() not in NEWS_EXTENSIONS or not path.is_file():
                continue
            try:
                items.append(parse_news_file(path, self.words_per_minute))
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning(
                    "Skipping unreadable news file",
                    extra={"file": path.name, "error": str(e)},
                )

        items.sort(key=lambda item: item.date, reverse=True)
        logger.info("News files loaded", extra={"count": len(items)})
        return items


@lru_cache
def get_news_store() -> NewsStore:
    """Get the configured news store. Overridden in tests with a tmp_path store."""
    from asof.backend.core.config import find_project_root, get_app_config

    content_config = get_app_config().content
    directory = Path(content_config.news.directory)
    if not directory.is_absolute():
        directory = find_project_root() / directory
    return NewsStore(
        directory,
        ttl_seconds=content_config.news.cache_ttl_seconds,
        words_per_minute=content_config.words_per_minute,
    )
