"""
Bucket Provisioning Service

Creates Tigris buckets through flyctl and stores their credentials as Fly
secrets under per-kind prefixes.
"""

import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from nuxfly.constants import (
    BUCKET_FEATURE_FLAGS,
    BUCKET_KINDS,
    BUCKET_SUFFIXES,
    LITESTREAM_SECRET_PREFIX,
    PRIVATE_BUCKET_SECRET_PREFIX,
    PUBLIC_BUCKET_SECRET_PREFIX,
)
from nuxfly.core.output_parsers import parse_bucket_list, parse_credentials
from nuxfly.exceptions import ExternalCommandError, NuxflyError
from nuxfly.flyctl_utils import FlyctlManager
from nuxfly.logger import DeployLogger
from nuxfly.models.buckets import BucketSummary

SECRET_PREFIXES = {
    "litestream": LITESTREAM_SECRET_PREFIX,
    "public": PUBLIC_BUCKET_SECRET_PREFIX,
    "private": PRIVATE_BUCKET_SECRET_PREFIX,
}


def bucket_name(app: str, kind: str) -> str:
    """Conventional bucket name for an app: <app>-litestream, <app>-public, <app>-private."""
    return f"{app}{BUCKET_SUFFIXES[kind]}"


def enabled_bucket_kinds(features: Mapping[str, Any]) -> list[str]:
    """Bucket kinds switched on by the nuxfly feature flags in the Nuxt config."""
    return [kind for kind in BUCKET_KINDS if features.get(BUCKET_FEATURE_FLAGS[kind])]


class BucketService:
    """
    Provisions object storage buckets for an app.

    Responsibilities:
    - List existing buckets (best-effort text scrape)
    - Create missing buckets from a scratch directory
    - Push scraped credentials as staged secrets
    """

    def __init__(self, flyctl: FlyctlManager, logger: Optional[DeployLogger] = None):
        self.flyctl = flyctl
        self.logger = logger

    def _warn(self, message: str) -> None:
        if self.logger:
            self.logger.warning(message)

    def _info(self, message: str) -> None:
        if self.logger:
            self.logger.info(message)

    def get_existing_buckets(self, app: str) -> list[str]:
        """
        List bucket names belonging to an app.

        A failed listing is treated as "no buckets" so provisioning can proceed.
        """
        try:
            output = self.flyctl.list_buckets()
        except ExternalCommandError as e:
            if e.is_cancelled:
                raise
            self._warn(f"Could not list existing buckets: {e.message}")
            return []
        return parse_bucket_list(output, app)

    def create_bucket(
        self,
        kind: str,
        app: str,
        org: Optional[str] = None,
        existing: Optional[Sequence[str]] = None,
    ) -> bool:
        """
        Create one bucket and store its credentials as secrets.

        Args:
            kind: litestream, public or private
            app: App that owns the bucket and receives the secrets
            org: Organization slug passed to flyctl
            existing: Snapshot of existing bucket names; a listed name is skipped

        Returns:
            True if a bucket was created, False if it already existed

        Raises:
            ExternalCommandError: If flyctl fails to create the bucket
        """
        if kind not in BUCKET_KINDS:
            raise NuxflyError(f"Unknown bucket kind: {kind}")

        name = bucket_name(app, kind)
        if existing is not None and name in existing:
            self._info(f"Bucket {name} already exists, skipping")
            return False

        # Run outside the project so flyctl does not attach the bucket to the app
        with tempfile.TemporaryDirectory(prefix="nuxfly-") as scratch_dir:
            result = self.flyctl.create_bucket(
                name, org=org, public=(kind == "public"), cwd=Path(scratch_dir)
            )

        credentials = parse_credentials(result.stdout)
        if credentials is None:
            self._warn(
                f"Created bucket {name} but could not read its credentials; secrets were not set"
            )
            return True

        self.flyctl.set_secrets(
            credentials.to_secrets(SECRET_PREFIXES[kind], litestream=(kind == "litestream")),
            app=app,
        )
        if self.logger:
            self.logger.success(f"Created bucket {name} and staged its secrets")
        return True

    def ensure_buckets(
        self, app: str, org: Optional[str], kinds: Sequence[str]
    ) -> BucketSummary:
        """
        Create every requested bucket kind that does not exist yet.

        Creation failures are recorded and reported, not raised, unless the
        user cancelled.
        """
        summary = BucketSummary()
        existing = list(self.get_existing_buckets(app))

        for kind in kinds:
            name = bucket_name(app, kind)
            try:
                created = self.create_bucket(kind, app, org=org, existing=existing)
            except ExternalCommandError as e:
                if e.is_cancelled:
                    raise
                self._warn(f"Failed to create bucket {name}: {e.message}")
                summary.failed.append(name)
                continue

            if created:
                summary.created.append(name)
                existing.append(name)
            else:
                summary.skipped.append(name)

        return summary
