from datetime import datetime, timezone
from typing import Optional, List, Any, Dict
from dataclasses import dataclass, field
from pydantic import BaseModel

FIELD_NAMES = ("id", "title", "author", "content", "media", "createdAt", "updatedAt")


def format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp as ISO-8601 with milliseconds and a Z suffix"""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    # Offset-less timestamps are UTC, never host-local
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Post:
    id: str
    title: str
    author: Optional[str]
    content: str
    created_at: datetime
    media: Any = field(default_factory=list)
    updated_at: Optional[datetime] = None
    # Keys this server does not manage, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize using the on-disk / wire field names"""
        data = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "content": self.content,
            "media": self.media,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.updated_at is not None:
            data["updatedAt"] = format_timestamp(self.updated_at)
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Post":
        """Rebuild a stored record as-is; defaults apply only at creation"""
        updated_at = data.get("updatedAt")
        return cls(
            id=str(data["id"]),
            title=data["title"],
            author=data.get("author"),
            content=data["content"],
            media=data.get("media", []),
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(updated_at) if updated_at else None,
            extra={k: v for k, v in data.items() if k not in FIELD_NAMES},
        )


class PostCreate(BaseModel):
    # All optional: missing fields are reported as a 400 by the store
    title: Optional[str] = None
    author: Optional[str] = None
    content: Optional[str] = None
    media: Any = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    content: Optional[str] = None
    media: Any = None


class MediaReference(BaseModel):
    url: str
    original: str
    mime: Optional[str] = None


class UploadResult(BaseModel):
    files: List[MediaReference]
