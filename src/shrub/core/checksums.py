"""Content checksums used as alternate keys."""

import base64
import hashlib


def md5_base64(text: str) -> str:
    """
    MD5 digest of `text` as unpadded base64 (22 characters).

    Example:
        >>> md5_base64("")
        '1B2M2Y8AsgTpgAmY7PhCfg'
    """
    digest = hashlib.md5(text.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii").rstrip("=")
