# Object storage for uploaded gameplay files.
# Two backends with the same two calls: upload(key, data, content_type) and
# public_url(key). Backend failures surface as PersistenceError.
import logging
import os
from abc import ABC, abstractmethod
import re
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from google.api_core.exceptions import GoogleAPIError
from google.cloud import storage as gcs

from errors import PersistenceError

logger = logging.getLogger(__name__)


def _sanitize(s: str) -> str:
    # letters, digits, _ . - only
    return re.sub(r"[^A-Za-z0-9_.-]", "_", s or "")


def object_key(app_id: str, owner_id: str, file_name: str) -> str:
    """artifacts/<app>/users/<owner>/gameplay-files/<uuid>.<ext>"""
    ext = os.path.splitext(file_name or "")[1].lstrip(".")
    unique_name = uuid.uuid4().hex + (f".{_sanitize(ext)}" if ext else "")
    return f"artifacts/{_sanitize(app_id)}/users/{_sanitize(owner_id)}/gameplay-files/{unique_name}"


class ObjectStorage(ABC):
    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class LocalObjectStorage(ObjectStorage):
    """Files on local disk, served by the app under /files/<key>."""

    def __init__(self, root_dir: str, base_url: str):
        self.root = Path(root_dir).resolve()
        self.base_url = base_url.rstrip("/")

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise ValueError(f"key escapes storage root: {key}")
        return path

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        try:
            path = self.path_for(key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except (OSError, ValueError) as e:
            logger.error("Local upload failed for key=%s: %s", key, e)
            raise PersistenceError("Failed to upload file to storage.", details=str(e)) from e

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/files/{quote(key)}"


class GCSObjectStorage(ObjectStorage):
    def __init__(self, bucket_name: str, client: Optional[gcs.Client] = None):
        if not bucket_name:
            raise ValueError("STORAGE_BUCKET is required for the gcs storage backend")
        self.bucket_name = bucket_name
        self.client = client or gcs.Client()

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        try:
            bucket = self.client.bucket(self.bucket_name)
            blob = bucket.blob(key)
            blob.upload_from_string(data, content_type=content_type)
        except GoogleAPIError as e:
            logger.error("GCS upload failed for gs://%s/%s: %s", self.bucket_name, key, e)
            raise PersistenceError("Failed to upload file to storage.", details=str(e)) from e

    def public_url(self, key: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{quote(key)}"


def build_object_storage(settings) -> ObjectStorage:
    if settings.STORAGE_BACKEND == "gcs":
        return GCSObjectStorage(settings.STORAGE_BUCKET)
    if settings.STORAGE_BACKEND == "local":
        return LocalObjectStorage(settings.LOCAL_STORAGE_DIR, settings.PUBLIC_BASE_URL)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
