"""
Bucket Models

Credentials scraped from `flyctl storage create` and provisioning summaries.
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class BucketCredentials:
    """S3-compatible credentials for a single bucket. Never written to disk."""

    access_key_id: str
    secret_access_key: str
    endpoint_url: str
    region: str
    bucket_name: str

    def to_secrets(self, prefix: str, litestream: bool = False) -> Dict[str, str]:
        """
        Map credentials to deployment secret names.

        Litestream secrets use the ENDPOINT_URL/BUCKET_NAME suffixes its config
        file expects; app bucket secrets follow the Nuxt runtime config naming.

        Args:
            prefix: Secret name prefix (e.g. LITESTREAM_S3_)
            litestream: Use the Litestream suffix convention

        Returns:
            Dictionary of secret name to value
        """
        if litestream:
            return {
                f"{prefix}ACCESS_KEY_ID": self.access_key_id,
                f"{prefix}SECRET_ACCESS_KEY": self.secret_access_key,
                f"{prefix}ENDPOINT_URL": self.endpoint_url,
                f"{prefix}REGION": self.region,
                f"{prefix}BUCKET_NAME": self.bucket_name,
            }
        return {
            f"{prefix}ACCESS_KEY_ID": self.access_key_id,
            f"{prefix}SECRET_ACCESS_KEY": self.secret_access_key,
            f"{prefix}ENDPOINT": self.endpoint_url,
            f"{prefix}BUCKET": self.bucket_name,
            f"{prefix}REGION": self.region,
        }

    def __repr__(self) -> str:
        return f"BucketCredentials(bucket_name={self.bucket_name}, endpoint_url={self.endpoint_url})"


@dataclass
class BucketSummary:
    """Outcome of a bucket provisioning pass."""

    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return len(self.failed) > 0
