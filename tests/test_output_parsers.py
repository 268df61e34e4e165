from __future__ import annotations

from nuxfly.core.output_parsers import (
    parse_bucket_list,
    parse_credentials,
    parse_owner,
    parse_secret_names,
    volume_listed,
)
from tests.fakes.project import STATUS_OUTPUT, storage_create_output

STORAGE_LIST_OUTPUT = """NAME                  ORG
demo-litestream       acme-corp
demo-public           acme-corp
other-app-private     acme-corp
demo-private          acme-corp
"""


def test_parse_credentials_reads_all_fields() -> None:
    credentials = parse_credentials(storage_create_output("demo-litestream"))

    assert credentials is not None
    assert credentials.access_key_id == "tid_key123"
    assert credentials.secret_access_key == "tsec_secret456"
    assert credentials.endpoint_url == "https://fly.storage.tigris.dev"
    assert credentials.region == "auto"
    assert credentials.bucket_name == "demo-litestream"


def test_parse_credentials_requires_every_field() -> None:
    partial = "AWS_ACCESS_KEY_ID: tid_key123\nBUCKET_NAME: demo-public\n"

    assert parse_credentials(partial) is None
    assert parse_credentials("") is None


def test_credentials_map_to_secret_names() -> None:
    credentials = parse_credentials(storage_create_output("demo-public"))

    assert credentials.to_secrets("LITESTREAM_S3_", litestream=True) == {
        "LITESTREAM_S3_ACCESS_KEY_ID": "tid_key123",
        "LITESTREAM_S3_SECRET_ACCESS_KEY": "tsec_secret456",
        "LITESTREAM_S3_ENDPOINT_URL": "https://fly.storage.tigris.dev",
        "LITESTREAM_S3_REGION": "auto",
        "LITESTREAM_S3_BUCKET_NAME": "demo-public",
    }
    assert set(credentials.to_secrets("NUXT_NUXFLY_PUBLIC_BUCKET_S3_")) == {
        "NUXT_NUXFLY_PUBLIC_BUCKET_S3_ACCESS_KEY_ID",
        "NUXT_NUXFLY_PUBLIC_BUCKET_S3_SECRET_ACCESS_KEY",
        "NUXT_NUXFLY_PUBLIC_BUCKET_S3_ENDPOINT",
        "NUXT_NUXFLY_PUBLIC_BUCKET_S3_BUCKET",
        "NUXT_NUXFLY_PUBLIC_BUCKET_S3_REGION",
    }


def test_credentials_repr_hides_secrets() -> None:
    credentials = parse_credentials(storage_create_output("demo-public"))

    assert "tsec_secret456" not in repr(credentials)


def test_parse_bucket_list_filters_by_app() -> None:
    assert parse_bucket_list(STORAGE_LIST_OUTPUT, "demo") == [
        "demo-litestream",
        "demo-public",
        "demo-private",
    ]
    assert parse_bucket_list(STORAGE_LIST_OUTPUT, "missing") == []


def test_parse_owner() -> None:
    assert parse_owner(STATUS_OUTPUT) == "acme-corp"
    assert parse_owner("App\n  Name = demo\n") is None


def test_parse_secret_names() -> None:
    text = '[{"Name": "A", "Digest": "x"}, {"name": "B"}, {"Digest": "y"}, "junk"]'

    assert parse_secret_names(text) == ["A", "B"]
    assert parse_secret_names("not json") == []
    assert parse_secret_names('{"Name": "A"}') == []
    assert parse_secret_names("") == []


def test_volume_listed_matches_whole_words() -> None:
    text = "ID        STATE    NAME          SIZE\nvol_123   created  sqlite_data   1GB\n"

    assert volume_listed(text, "sqlite_data")
    assert not volume_listed(text, "sqlite")


def test_parse_bucket_list_matches_whole_names_only() -> None:
    text = "myapp-public-archive  personal\nmyapp-private-old     personal\n"

    assert parse_bucket_list(text, "myapp") == []
    assert parse_bucket_list(text + "myapp-public  personal\n", "myapp") == ["myapp-public"]
