"""
flyctl Output Parsers

flyctl prints most of what nuxfly needs as human-readable text. Every scrape
of that text lives here so a structured (JSON) source can replace any parser
without touching call sites.
"""

import json
import re
from typing import Dict, List, Optional

from nuxfly.constants import BUCKET_LIST_PATTERN, CREDENTIAL_PREFIXES
from nuxfly.models.buckets import BucketCredentials

_BUCKET_RE = re.compile(BUCKET_LIST_PATTERN)
_OWNER_RE = re.compile(r"Owner\s*=\s*(\S+)")


def parse_credentials(text: str) -> Optional[BucketCredentials]:
    """
    Scrape bucket credentials from `flyctl storage create` output.

    Lines look like `AWS_ACCESS_KEY_ID: tid_xxx`. Only the first colon splits
    key from value so endpoint URLs survive intact.

    Args:
        text: Command stdout

    Returns:
        BucketCredentials when all five fields are present, else None
    """
    found: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        for field_name, prefix in CREDENTIAL_PREFIXES.items():
            if line.startswith(prefix):
                value = line.split(":", 1)[1].strip()
                if value:
                    found[field_name] = value
                break

    if len(found) != len(CREDENTIAL_PREFIXES):
        return None
    return BucketCredentials(**found)


def parse_bucket_list(text: str, app_name: str) -> List[str]:
    """
    Extract nuxfly bucket names for an app from `flyctl storage list` output.

    Args:
        text: Command stdout
        app_name: App whose buckets to find

    Returns:
        Bucket names in output order, without duplicates
    """
    names: List[str] = []
    for line in text.splitlines():
        if app_name not in line:
            continue
        for name in _BUCKET_RE.findall(line):
            if name not in names:
                names.append(name)
    return names


def parse_owner(text: str) -> Optional[str]:
    """Extract the organization slug from `flyctl status` output."""
    match = _OWNER_RE.search(text)
    return match.group(1) if match else None


def parse_secret_names(text: str) -> List[str]:
    """
    Extract secret names from `flyctl secrets list --json` output.

    Returns:
        Secret names; empty when the output is not a JSON list
    """
    try:
        data = json.loads(text or "[]")
    except ValueError:
        return []
    if not isinstance(data, list):
        return []
    names = []
    for entry in data:
        if isinstance(entry, dict):
            name = entry.get("Name") or entry.get("name")
            if name:
                names.append(name)
    return names


def volume_listed(text: str, name: str) -> bool:
    """Check whether `flyctl volumes list` output mentions a volume name."""
    return any(name in line.split() for line in text.splitlines())
