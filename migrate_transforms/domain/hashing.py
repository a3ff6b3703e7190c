"""Content hashing for change detection.

A content hash is a SHA-256 digest rendered as URL-safe base64 without
padding: 43 printable characters, stable across runs and platforms for
identical bytes. Records whose hash is unchanged between two migration runs
need no re-processing downstream.
"""

import base64
import hashlib
from typing import Union


def content_hash(content: Union[str, bytes]) -> str:
    """Compute the content hash of serialized content.

    Parameters:
        content: Content as string (UTF-8 encoded before hashing) or bytes

    Returns:
        str: URL-safe base64 SHA-256 digest without '=' padding
    """
    if isinstance(content, str):
        content_bytes = content.encode('utf-8')
    else:
        content_bytes = bytes(content)

    digest = hashlib.sha256(content_bytes).digest()
    return base64.urlsafe_b64encode(digest).decode('ascii').rstrip('=')
