from __future__ import annotations

from urllib.parse import quote


def build_url_base(bucket: str, endpoint: str) -> str:
    """Virtual-host style base URL, always ending in a slash."""
    return f"https://{bucket}.{endpoint}/"


def build_url_for_path(bucket: str, endpoint: str, remote_path: str) -> str:
    # leading slashes are dropped so "/a/b" and "a/b" name the same object
    return build_url_base(bucket, endpoint) + quote(remote_path.lstrip("/"), safe="/")
