from __future__ import annotations

import mimetypes
import posixpath

# Built-in table only, so results don't depend on the host's mime.types files.
_MIME_TYPES = mimetypes.MimeTypes()

# Types the built-in table lacks or maps differently across Python versions.
_EXTRA_TYPES: dict[str, str] = {
    ".avif": "image/avif",
    ".js": "text/javascript",
    ".json": "application/json",
    ".md": "text/markdown",
    ".mjs": "text/javascript",
    ".wasm": "application/wasm",
    ".webmanifest": "application/manifest+json",
    ".webp": "image/webp",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}


def resolve_content_type(path: str) -> str:
    """Return the MIME type for ``path``'s extension, or ``""`` if unknown."""
    ext = posixpath.splitext(path)[1].lower()
    if not ext:
        return ""
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]
    content_type, _ = _MIME_TYPES.guess_type(f"file{ext}", strict=False)
    return content_type or ""
