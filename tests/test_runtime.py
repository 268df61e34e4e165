from __future__ import annotations

import io
from pathlib import Path

import pytest
from sqlalchemy import text

from nuxfly.exceptions import NuxflyError
from nuxfly.runtime import (
    BucketSettings,
    RuntimeContext,
    RuntimeSettings,
    StorageClient,
    parse_fly_proxy_headers,
)
from nuxfly.runtime.context import create_s3_client, create_sqlite_engine, sqlalchemy_url

ENVIRON = {
    "NUXT_NUXFLY_DB_URL": "file:/data/db.sqlite",
    "NUXT_NUXFLY_PUBLIC_BUCKET_S3_ACCESS_KEY_ID": "tid_pub",
    "NUXT_NUXFLY_PUBLIC_BUCKET_S3_SECRET_ACCESS_KEY": "tsec_pub",
    "NUXT_NUXFLY_PUBLIC_BUCKET_S3_ENDPOINT": "https://fly.storage.tigris.dev",
    "NUXT_NUXFLY_PUBLIC_BUCKET_S3_BUCKET": "demo-public",
    "NUXT_PUBLIC_S3_PUBLIC_URL": "https://demo-public.t3.storageapi.dev/",
}


class FakeS3Client:
    """Records S3 calls; objects live in a dict."""

    def __init__(self, page_size: int = 2):
        self.objects: dict[str, bytes] = {}
        self.puts: list[dict] = []
        self.page_size = page_size

    def put_object(self, Bucket, Key, Body, **kwargs):
        self.puts.append({"Bucket": Bucket, "Key": Key, **kwargs})
        self.objects[Key] = Body

    def get_object(self, Bucket, Key):
        return {"Body": io.BytesIO(self.objects[Key])}

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def get_paginator(self, operation):
        assert operation == "list_objects_v2"
        client = self

        class Paginator:
            def paginate(self, Bucket, Prefix):
                keys = sorted(k for k in client.objects if k.startswith(Prefix))
                for start in range(0, len(keys), client.page_size):
                    yield {"Contents": [{"Key": k} for k in keys[start : start + client.page_size]]}
                if not keys:
                    yield {}

        return Paginator()


@pytest.mark.parametrize(
    ("db_url", "expected"),
    [
        ("file:.data/db.sqlite", "sqlite:///.data/db.sqlite"),
        ("file:/data/db.sqlite", "sqlite:////data/db.sqlite"),
        ("file:///data/db.sqlite", "sqlite:////data/db.sqlite"),
        ("sqlite:///x.db", "sqlite:///x.db"),
    ],
)
def test_sqlalchemy_url(db_url: str, expected: str) -> None:
    assert sqlalchemy_url(db_url) == expected


def test_settings_from_environment() -> None:
    settings = RuntimeSettings.from_environ(ENVIRON)

    assert settings.db_url == "file:/data/db.sqlite"
    assert settings.public_bucket.is_configured
    assert settings.public_bucket.region == "auto"
    assert not settings.private_bucket.is_configured
    assert "tsec_pub" not in repr(settings.public_bucket)


def test_settings_defaults() -> None:
    settings = RuntimeSettings.from_environ({})

    assert settings.db_url == "file:.data/db.sqlite"
    assert settings.public_url is None


def test_context_builds_only_configured_clients() -> None:
    built: list[BucketSettings] = []

    def client_factory(bucket_settings):
        built.append(bucket_settings)
        return FakeS3Client()

    context = RuntimeContext.from_environ(
        ENVIRON, engine_factory=lambda url: create_sqlite_engine("sqlite://"), client_factory=client_factory
    )

    assert [b.bucket for b in built] == ["demo-public"]
    assert context.storage("public").bucket == "demo-public"
    with pytest.raises(NuxflyError, match="Private storage is not configured"):
        context.storage("private")
    with pytest.raises(NuxflyError, match="Unknown storage kind"):
        context.storage("archive")
    context.close()


def test_sqlite_engine_uses_file_url(tmp_path: Path) -> None:
    engine = create_sqlite_engine(f"file:{tmp_path / 'db.sqlite'}")
    try:
        with engine.begin() as connection:
            connection.execute(text("CREATE TABLE fly (machine_version TEXT)"))
            connection.execute(text("INSERT INTO fly VALUES ('v1')"))
        with engine.connect() as connection:
            assert connection.execute(text("SELECT machine_version FROM fly")).scalar() == "v1"
    finally:
        engine.dispose()

    assert (tmp_path / "db.sqlite").is_file()


def test_storage_client_object_operations() -> None:
    s3 = FakeS3Client()
    storage = StorageClient(s3, "demo-private")

    storage.put_object("/avatars/1.png", b"png", content_type="image/png")
    storage.put_object("avatars/2.png", b"png2")
    storage.put_object("docs/a.txt", b"a")

    assert s3.puts[0] == {"Bucket": "demo-private", "Key": "avatars/1.png", "ContentType": "image/png"}
    assert "ContentType" not in s3.puts[1]
    assert storage.get_object("avatars/1.png") == b"png"
    assert list(storage.list_keys("avatars/")) == ["avatars/1.png", "avatars/2.png"]
    assert list(storage.list_keys()) == ["avatars/1.png", "avatars/2.png", "docs/a.txt"]

    storage.delete_object("/docs/a.txt")
    assert list(storage.list_keys("docs/")) == []


def test_public_url() -> None:
    storage = StorageClient(FakeS3Client(), "demo-public", "https://demo-public.t3.storageapi.dev/")

    assert storage.public_url("/img/logo.png") == "https://demo-public.t3.storageapi.dev/img/logo.png"
    with pytest.raises(NuxflyError):
        StorageClient(FakeS3Client(), "demo-private").public_url("x")


def test_s3_client_is_path_style_sigv4() -> None:
    client = create_s3_client(
        BucketSettings(
            access_key_id="tid",
            secret_access_key="tsec",
            endpoint="https://fly.storage.tigris.dev",
            bucket="demo-public",
        )
    )

    assert client.meta.endpoint_url == "https://fly.storage.tigris.dev"
    assert client.meta.config.signature_version == "s3v4"
    assert client.meta.config.s3["addressing_style"] == "path"


def test_proxy_headers_are_parsed_case_insensitively() -> None:
    info = parse_fly_proxy_headers(
        {
            "Fly-Client-IP": "203.0.113.9",
            "Fly-Region": "AMS",
            "X-Forwarded-For": "203.0.113.9, 10.0.0.1",
            "X-Forwarded-Proto": ["https", "http"],
            "Fly-Forwarded-Port": "443",
            "Via": None,
        }
    )

    assert info.client_ip == "203.0.113.9"
    assert info.is_ssl
    assert info.protocol == "https"
    assert info.port == "443"
    assert info.is_from_region("ams")
    assert info.forwarded_ips() == ["203.0.113.9", "10.0.0.1"]
    assert info.original_client_ip() == "203.0.113.9"
    assert info.headers.via is None


def test_proxy_headers_fallbacks() -> None:
    info = parse_fly_proxy_headers({"x-forwarded-for": "198.51.100.4", "x-forwarded-ssl": "on"})

    assert info.client_ip == "198.51.100.4"
    assert info.is_ssl
    assert info.region is None
    assert not info.is_from_region("ord")

    empty = parse_fly_proxy_headers({})
    assert empty.client_ip is None
    assert not empty.is_ssl
    assert empty.forwarded_ips() == []
    assert empty.original_client_ip() is None
