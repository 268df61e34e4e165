"""
nuxfly Services Layer

Business logic shared by CLI commands.
"""

from .artifact_service import ArtifactService
from .bucket_service import BucketService
from .build_service import BuildService

__all__ = [
    "ArtifactService",
    "BucketService",
    "BuildService",
]
