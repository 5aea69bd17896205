import logging
import time
import uuid
from pathlib import Path
from typing import Callable

import aiofiles
from fastapi import UploadFile

from models import MediaReference

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class UploadCapabilityMissing(Exception):
    """Uploads are disabled for this server"""


class UploadIOFailure(Exception):
    """Writing an uploaded file to disk failed"""


def random_tag() -> str:
    return uuid.uuid4().hex[:6]


class UploadNamer:
    """Generates stored filenames as <ms timestamp>-<random tag><original ext>"""

    def __init__(self, clock: Callable[[], float] = time.time, entropy: Callable[[], str] = random_tag):
        self._clock = clock
        self._entropy = entropy

    def name_for(self, original_filename: str) -> str:
        ext = Path(original_filename or "").suffix
        return f"{int(self._clock() * 1000)}-{self._entropy()}{ext}"


class Uploader:
    def __init__(self, directory: Path, namer: UploadNamer = None, url_prefix: str = "/uploads"):
        self.directory = Path(directory)
        self.namer = namer or UploadNamer()
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    async def save(self, file: UploadFile) -> MediaReference:
        """Write the upload under a fresh name and describe where it is served"""
        original = file.filename or ""
        stored_name = self.namer.name_for(original)
        file_path = self.directory / stored_name

        try:
            async with aiofiles.open(file_path, "wb") as f:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)
        except OSError as e:
            raise UploadIOFailure(str(e)) from e

        logger.info("Stored upload %r as %s", original, file_path)
        return MediaReference(
            url=f"{self.url_prefix}/{stored_name}",
            original=original,
            mime=file.content_type,
        )
