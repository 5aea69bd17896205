"""Flat-file post storage.

All posts live in memory, newest first, and the whole collection is
rewritten to a JSON file after every mutation.
"""

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional
from pathlib import Path

from models import Post, PostCreate, PostUpdate

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "Anonymous"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# PostStore.list shadows the builtin inside the class body
_list = list


class ValidationError(Exception):
    """Required post fields are missing or empty"""


class PostNotFound(Exception):
    """No stored post has the requested id"""


class StorageUnavailable(Exception):
    """The data directory or posts file cannot be created"""


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds"""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def make_post_id(created_at: datetime, taken: Iterable[str]) -> str:
    """Millisecond timestamp id, suffixed with a counter on collision"""
    base = str((created_at - EPOCH) // timedelta(milliseconds=1))
    taken = set(taken)
    if base not in taken:
        return base
    n = 1
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def dump_posts(posts: List[Post]) -> str:
    return json.dumps([post.to_dict() for post in posts], indent=2, ensure_ascii=False)


def parse_posts(raw: str) -> List[Post]:
    """Parse the posts file contents; an empty file is an empty blog"""
    data = json.loads(raw or "[]")
    if not isinstance(data, _list):
        raise ValueError(f"expected a JSON array of posts, got {type(data).__name__}")
    return [Post.from_dict(item) for item in data]


class PostStore:
    def __init__(
        self,
        path: Path,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[datetime, Iterable[str]], str] = make_post_id,
    ):
        self.path = Path(path)
        self._clock = clock
        self._id_factory = id_factory
        self._posts: List[Post] = []
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Create the data directory and an empty posts file if needed"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self.path.write_text("[]", encoding="utf-8")
        except OSError as e:
            raise StorageUnavailable(f"cannot prepare posts file {self.path}: {e}") from e

    def load(self) -> None:
        """Replace the in-memory posts with the file contents.

        Unreadable or corrupt files leave the blog empty instead of failing.
        """
        with self._lock:
            try:
                self._posts = parse_posts(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.error("Failed to load posts from %s: %s", self.path, e)
                self._posts = []

    def save(self) -> None:
        # Failures are logged only; memory keeps the mutation
        try:
            self.path.write_text(dump_posts(self._posts), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to save posts to %s: %s", self.path, e)

    def list(self) -> _list[Post]:
        return _list(self._posts)

    def _find(self, post_id: str) -> Optional[Post]:
        for post in self._posts:
            if post.id == post_id:
                return post
        return None

    def get(self, post_id: str) -> Post:
        post = self._find(post_id)
        if post is None:
            raise PostNotFound(post_id)
        return post

    def create(self, data: PostCreate) -> Post:
        if not data.title or not data.content:
            raise ValidationError("Title and Content are required")

        with self._lock:
            created_at = self._clock()
            post = Post(
                id=self._id_factory(created_at, (p.id for p in self._posts)),
                title=data.title,
                author=data.author or DEFAULT_AUTHOR,
                content=data.content,
                media=data.media if isinstance(data.media, _list) else [],
                created_at=created_at,
            )
            self._posts.insert(0, post)
            self.save()
        logger.info("Created post %s", post.id)
        return post

    def update(self, post_id: str, data: PostUpdate) -> Post:
        with self._lock:
            post = self.get(post_id)
            if data.title:
                post.title = data.title
            if data.author:
                post.author = data.author
            if data.content:
                post.content = data.content
            if isinstance(data.media, _list):
                post.media = data.media
            post.updated_at = self._clock()
            self.save()
        return post

    def delete(self, post_id: str) -> dict:
        with self._lock:
            remaining = [p for p in self._posts if p.id != post_id]
            if len(remaining) == len(self._posts):
                raise PostNotFound(post_id)
            self._posts = remaining
            self.save()
        logger.info("Deleted post %s", post_id)
        return {"message": "Post deleted"}
