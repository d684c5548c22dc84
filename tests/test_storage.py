from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import ServiceUnavailable

from errors import PersistenceError
from storage import GCSObjectStorage, LocalObjectStorage, ObjectStorage, object_key


def test_object_key_layout():
    key = object_key("app-1", "player/1", "replay.dem")

    assert key.startswith("artifacts/app-1/users/player_1/gameplay-files/")
    assert key.endswith(".dem")
    assert object_key("app-1", "p", "replay.dem") != object_key("app-1", "p", "replay.dem")


def test_local_upload_and_url(tmp_path):
    storage = LocalObjectStorage(str(tmp_path), "http://files.local/")
    storage.upload("a/b/c.log", b"data", "text/plain")

    assert (tmp_path / "a" / "b" / "c.log").read_bytes() == b"data"
    assert storage.public_url("a/b/c.log") == "http://files.local/files/a/b/c.log"


def test_local_upload_cannot_escape_root(tmp_path):
    storage = LocalObjectStorage(str(tmp_path / "root"), "http://files.local")
    with pytest.raises(PersistenceError):
        storage.upload("../outside.log", b"data", "text/plain")


def test_gcs_upload_uses_bucket_blob():
    client = MagicMock()
    storage = GCSObjectStorage("my-bucket", client=client)

    storage.upload("k/file.log", b"data", "text/plain")

    client.bucket.assert_called_once_with("my-bucket")
    blob = client.bucket.return_value.blob
    blob.assert_called_once_with("k/file.log")
    blob.return_value.upload_from_string.assert_called_once_with(b"data", content_type="text/plain")
    assert storage.public_url("k/file.log") == "https://storage.googleapis.com/my-bucket/k/file.log"


def test_gcs_failure_is_persistence_error():
    client = MagicMock()
    client.bucket.return_value.blob.return_value.upload_from_string.side_effect = ServiceUnavailable("down")
    storage = GCSObjectStorage("my-bucket", client=client)

    with pytest.raises(PersistenceError):
        storage.upload("k/file.log", b"data", "text/plain")


def test_backend_missing_a_method_cannot_be_built():
    class UploadOnly(ObjectStorage):
        def upload(self, key, data, content_type):
            pass

    with pytest.raises(TypeError):
        UploadOnly()
