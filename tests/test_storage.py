import datetime as dt

import pytest
from botocore.exceptions import ClientError

from adcreative.config import StorageConfig
from adcreative.services.creative_storage import CreativeStorage, StorageError


def configured(**overrides) -> StorageConfig:
    values = {
        "bucket": "creatives",
        "endpoint": "https://r2.example.com",
        "access_key": "key",
        "secret_key": "secret",
    }
    values.update(overrides)
    return StorageConfig(**values)


class FakeS3:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    def put_object(self, *, Bucket, Key, Body, ContentType):
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.objects[Key] = Body
        self.content_types[Key] = ContentType

    def generate_presigned_url(self, *, ClientMethod, Params, ExpiresIn, HttpMethod):
        return f"https://signed.example.com/{Params['Bucket']}/{Params['Key']}?ttl={ExpiresIn}"


def test_disabled_without_credentials() -> None:
    assert CreativeStorage(StorageConfig(bucket="creatives")).enabled is False
    assert CreativeStorage(configured(store_renders=False)).enabled is False
    assert CreativeStorage(configured()).enabled is True

    with pytest.raises(StorageError):
        CreativeStorage(StorageConfig()).client


def test_key_layout_is_sanitised() -> None:
    storage = CreativeStorage(configured())
    key = storage.key_for("acme/summer sale", ".png", today=dt.date(2024, 3, 1))

    parts = key.split("/")
    assert parts[:3] == ["creatives", "acme_summer_sale", "20240301"]
    assert parts[-1] == "ad.png"


def test_upload_prefers_public_url() -> None:
    s3 = FakeS3()
    storage = CreativeStorage(configured(public_base="https://cdn.example.com/"), client_factory=lambda _: s3)

    stored = storage.upload(b"jpeg-bytes", project_id="proj-1")

    assert stored.url == f"https://cdn.example.com/{stored.key}"
    assert stored.content_type == "image/jpeg"
    assert s3.objects[stored.key] == b"jpeg-bytes"


def test_upload_falls_back_to_signed_url() -> None:
    s3 = FakeS3()
    storage = CreativeStorage(configured(signed_url_ttl=120), client_factory=lambda _: s3)

    stored = storage.upload(b"png", project_id="proj-1", ext="png")

    assert stored.url.startswith("https://signed.example.com/creatives/")
    assert stored.url.endswith("?ttl=120")
    assert s3.content_types[stored.key] == "image/png"


def test_upload_failure_raises() -> None:
    storage = CreativeStorage(configured(), client_factory=lambda _: FakeS3(fail=True))
    with pytest.raises(StorageError):
        storage.upload(b"data", project_id="proj-1")
