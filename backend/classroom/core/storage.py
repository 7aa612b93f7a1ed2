"""Narrow interface to the remote file store.

The rest of the code depends only on ``FileStore``: store a file, delete a
file, and sign a URL for temporary access. ``CloudinaryStore`` is the
production implementation.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re
import time
from typing import BinaryIO, Protocol

import cloudinary.uploader
import cloudinary.utils

from ..config import Settings

logger = logging.getLogger(__name__)

DELIVERY_TYPES = ("upload", "authenticated", "private")
RESOURCE_TYPES = ("image", "video", "raw")
_VERSION_RE = re.compile(r"^v\d+$")


@dataclass(frozen=True)
class StoredFile:
    url: str
    public_id: str
    resource_type: str = "raw"
    delivery_type: str = "upload"

    @classmethod
    def from_url(cls, url: str | None) -> StoredFile | None:
        """
        Recover the structured reference from a delivery URL such as
        https://res.cloudinary.com/<cloud>/raw/authenticated/s--sig--/v17/lms/notes.pdf

        Returns None for anything that is not a store URL.
        """
        if not url or "cloudinary.com" not in url:
            return None
        parts = url.split("?", 1)[0].split("/")
        type_index = next((i for i, p in enumerate(parts) if p in DELIVERY_TYPES), None)
        if type_index is None:
            logger.warning("could not find delivery type in url %s", url)
            return None

        resource_type = parts[type_index - 1] if parts[type_index - 1] in RESOURCE_TYPES else "raw"
        tail = [p for p in parts[type_index + 1:] if p and not p.startswith("s--")]
        if tail and _VERSION_RE.match(tail[0]):
            tail = tail[1:]
        if not tail:
            return None

        public_id = "/".join(tail)
        # raw assets keep their extension in the public id, images do not
        if resource_type == "image":
            public_id = re.sub(r"\.[^./]+$", "", public_id)
        return cls(url=url, public_id=public_id, resource_type=resource_type, delivery_type=parts[type_index])

    @property
    def extension(self) -> str:
        tail = self.url.split("?", 1)[0].rsplit("/", 1)[-1]
        return tail.rsplit(".", 1)[-1] if "." in tail else ""


class FileStore(Protocol):
    def store(self, fileobj: BinaryIO, filename: str, folder: str | None = None) -> StoredFile: ...

    def delete(self, ref: StoredFile) -> dict: ...

    def sign(self, ref: StoredFile | str, expires_in: int | None = None) -> str: ...


class CloudinaryStore:
    def __init__(self, settings: Settings) -> None:
        self._credentials = {
            "cloud_name": settings.cloudinary_cloud_name,
            "api_key": settings.cloudinary_api_key,
            "api_secret": settings.cloudinary_api_secret,
        }
        self.folder = settings.upload_folder
        self.default_ttl = settings.signed_url_ttl_seconds

    def store(self, fileobj: BinaryIO, filename: str, folder: str | None = None) -> StoredFile:
        result = cloudinary.uploader.upload(
            fileobj,
            folder=f"{self.folder}/{folder}" if folder else self.folder,
            resource_type="auto",
            type="authenticated",
            filename_override=filename,
            use_filename=True,
            unique_filename=True,
            **self._credentials,
        )
        logger.info("stored %s as %s", filename, result["public_id"])
        return StoredFile(
            url=result["secure_url"],
            public_id=result["public_id"],
            resource_type=result.get("resource_type", "raw"),
            delivery_type=result.get("type", "authenticated"),
        )

    def delete(self, ref: StoredFile) -> dict:
        logger.info(
            "deleting %s (resource_type=%s, type=%s)", ref.public_id, ref.resource_type, ref.delivery_type
        )
        return cloudinary.uploader.destroy(
            ref.public_id,
            resource_type=ref.resource_type,
            type=ref.delivery_type,
            invalidate=True,
            **self._credentials,
        )

    def sign(self, ref: StoredFile | str, expires_in: int | None = None) -> str:
        if isinstance(ref, str):
            parsed = StoredFile.from_url(ref)
            if parsed is None:
                return ref
            ref = parsed
        if ref.delivery_type == "upload":
            return ref.url

        expires_at = int(time.time()) + (expires_in or self.default_ttl)
        fmt = ref.extension if ref.resource_type != "raw" else ""
        return cloudinary.utils.private_download_url(
            ref.public_id,
            fmt,
            resource_type=ref.resource_type,
            type=ref.delivery_type,
            expires_at=expires_at,
            **self._credentials,
        )


def build_store(settings: Settings) -> FileStore:
    return CloudinaryStore(settings)
