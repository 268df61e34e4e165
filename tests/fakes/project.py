"""Sample flyctl output and project file helpers."""

from __future__ import annotations

from pathlib import Path

STORAGE_CREATE_OUTPUT = """Your Tigris project (demo-litestream) is ready. See details and next steps with: https://fly.io/docs/reference/tigris/

Set one or more of the following secrets on your target app.
AWS_ACCESS_KEY_ID: tid_key123
AWS_ENDPOINT_URL_S3: https://fly.storage.tigris.dev
AWS_REGION: auto
AWS_SECRET_ACCESS_KEY: tsec_secret456
BUCKET_NAME: {bucket}
"""

STATUS_OUTPUT = """App
  Name     = demo
  Owner    = acme-corp
  Hostname = demo.fly.dev
  Image    = demo:deployment-01
"""

BASIC_DESCRIPTOR = """app = "demo"
primary_region = "ams"

[vm]
  memory = "1gb"
  cpu_kind = "shared"
  cpus = 2

[[mounts]]
  source = "sqlite_data"
  destination = "/data"
  initial_size = "3gb"
"""


def storage_create_output(bucket: str) -> str:
    return STORAGE_CREATE_OUTPUT.format(bucket=bucket)


def write_descriptor(project: Path, text: str = BASIC_DESCRIPTOR, name: str = "fly.toml") -> Path:
    path = project / name
    path.write_text(text)
    return path
