"""
Runtime context for a deployed app.

Settings come from the environment the image runs with (the secrets staged
by `nuxfly launch`/`nuxfly update`). Clients are built once per context and
handed to request code, so tests can construct a context around fakes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

import boto3
from botocore.config import Config
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from nuxfly.constants import (
    PRIVATE_BUCKET_SECRET_PREFIX,
    PUBLIC_BUCKET_SECRET_PREFIX,
    PUBLIC_URL_SECRET,
)
from nuxfly.exceptions import NuxflyError

logger = logging.getLogger(__name__)

DB_URL_ENV = "NUXT_NUXFLY_DB_URL"
DEFAULT_DB_URL = "file:.data/db.sqlite"
DEFAULT_BUCKET_REGION = "auto"


def sqlalchemy_url(db_url: str) -> str:
    """
    Map a libsql-style `file:` URL to a SQLAlchemy SQLite URL.

    `file:.data/db.sqlite` -> `sqlite:///.data/db.sqlite`
    `file:/data/db.sqlite` -> `sqlite:////data/db.sqlite`
    Anything else is returned unchanged.
    """
    if not db_url.startswith("file:"):
        return db_url
    path = db_url[len("file:"):]
    if path.startswith("//"):
        path = path[2:]
    return f"sqlite:///{path}"


@dataclass(frozen=True)
class BucketSettings:
    """Connection settings for one S3-compatible bucket."""

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint: Optional[str] = None
    bucket: Optional[str] = None
    region: str = DEFAULT_BUCKET_REGION

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], prefix: str) -> "BucketSettings":
        return cls(
            access_key_id=environ.get(f"{prefix}ACCESS_KEY_ID") or None,
            secret_access_key=environ.get(f"{prefix}SECRET_ACCESS_KEY") or None,
            endpoint=environ.get(f"{prefix}ENDPOINT") or None,
            bucket=environ.get(f"{prefix}BUCKET") or None,
            region=environ.get(f"{prefix}REGION") or DEFAULT_BUCKET_REGION,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.bucket)

    def __repr__(self) -> str:
        return f"BucketSettings(bucket={self.bucket}, endpoint={self.endpoint}, region={self.region})"


@dataclass(frozen=True)
class RuntimeSettings:
    """Everything the app needs to reach its database and buckets."""

    db_url: str = DEFAULT_DB_URL
    public_bucket: BucketSettings = field(default_factory=BucketSettings)
    private_bucket: BucketSettings = field(default_factory=BucketSettings)
    public_url: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "RuntimeSettings":
        return cls(
            db_url=environ.get(DB_URL_ENV) or DEFAULT_DB_URL,
            public_bucket=BucketSettings.from_environ(environ, PUBLIC_BUCKET_SECRET_PREFIX),
            private_bucket=BucketSettings.from_environ(environ, PRIVATE_BUCKET_SECRET_PREFIX),
            public_url=environ.get(PUBLIC_URL_SECRET) or None,
        )


def create_s3_client(settings: BucketSettings) -> Any:
    """boto3 S3 client with path-style addressing and SigV4 signing."""
    return boto3.client(
        service_name="s3",
        endpoint_url=settings.endpoint,
        region_name=settings.region,
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


def create_sqlite_engine(db_url: str) -> Engine:
    return create_engine(sqlalchemy_url(db_url))


class StorageClient:
    """Object operations on a single bucket."""

    def __init__(self, client: Any, bucket: str, public_base_url: Optional[str] = None):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url

    def put_object(self, key: str, body: bytes, content_type: Optional[str] = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        self.client.put_object(Bucket=self.bucket, Key=key.lstrip("/"), Body=body, **extra)
        logger.debug("stored %s in %s (%d bytes)", key, self.bucket, len(body))

    def get_object(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=key.lstrip("/"))
        return response["Body"].read()

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key.lstrip("/"))

    def list_keys(self, prefix: str = "") -> Iterator[str]:
        """Yield every key under a prefix, following pagination."""
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                yield item["Key"]

    def public_url(self, key: str) -> str:
        """
        Raises:
            NuxflyError: If the bucket has no public URL
        """
        if not self.public_base_url:
            raise NuxflyError(
                f"Bucket {self.bucket} has no public URL",
                f"Set {PUBLIC_URL_SECRET} or enable publicStorage",
            )
        return f"{self.public_base_url.rstrip('/')}/{key.lstrip('/')}"


class RuntimeContext:
    """
    Database engine and storage clients for one app process.

    Attributes:
        engine: SQLAlchemy engine for the SQLite database
        public_storage: Public bucket client, or None when not configured
        private_storage: Private bucket client, or None when not configured
    """

    def __init__(
        self,
        settings: RuntimeSettings,
        engine: Engine,
        public_storage: Optional[StorageClient] = None,
        private_storage: Optional[StorageClient] = None,
    ):
        self.settings = settings
        self.engine = engine
        self.public_storage = public_storage
        self.private_storage = private_storage

    @classmethod
    def create(
        cls,
        settings: RuntimeSettings,
        engine_factory: Callable[[str], Engine] = create_sqlite_engine,
        client_factory: Callable[[BucketSettings], Any] = create_s3_client,
    ) -> "RuntimeContext":
        """
        Build every client once.

        Args:
            settings: Runtime settings
            engine_factory: Builds the database engine from the db URL
            client_factory: Builds an S3 client from bucket settings
        """
        engine = engine_factory(settings.db_url)

        public_storage = None
        if settings.public_bucket.is_configured:
            public_storage = StorageClient(
                client_factory(settings.public_bucket),
                settings.public_bucket.bucket,
                public_base_url=settings.public_url,
            )
            logger.info("public storage ready: %s", settings.public_bucket.bucket)

        private_storage = None
        if settings.private_bucket.is_configured:
            private_storage = StorageClient(
                client_factory(settings.private_bucket),
                settings.private_bucket.bucket,
            )
            logger.info("private storage ready: %s", settings.private_bucket.bucket)

        return cls(settings, engine, public_storage, private_storage)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], **factories: Any) -> "RuntimeContext":
        return cls.create(RuntimeSettings.from_environ(environ), **factories)

    def storage(self, kind: str) -> StorageClient:
        """
        Return the client for 'public' or 'private'.

        Raises:
            NuxflyError: If that bucket is not configured
        """
        clients: Dict[str, Optional[StorageClient]] = {
            "public": self.public_storage,
            "private": self.private_storage,
        }
        if kind not in clients:
            raise NuxflyError(f"Unknown storage kind: {kind}")
        client = clients[kind]
        if client is None:
            raise NuxflyError(
                f"{kind.capitalize()} storage is not configured",
                f"Enable {kind}Storage in nuxt.config and run 'nuxfly update'",
            )
        return client

    def close(self) -> None:
        self.engine.dispose()
