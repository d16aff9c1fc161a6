#!/usr/bin/env python3
"""
Image ingestion. Queued images are held as self-describing data URLs
(data:<mime>;base64,<payload>) and decoded back to raw bytes at send time.
"""

import base64
import binascii
import mimetypes
import re
from pathlib import Path
from typing import Tuple, Union
from urllib.parse import unquote_to_bytes

DEFAULT_IMAGE_MIME = 'image/jpeg'

_DATA_URL = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*),(?P<payload>.*)$', re.S)


def _b64decode(payload: str) -> bytes:
    try:
        return base64.b64decode(''.join(payload.split()), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Malformed image data: {e}") from e


def encode_image_file(path: Union[str, Path]) -> str:
    """Read an image file and return it as a data URL"""
    path = Path(path).expanduser()
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith('image/'):
        raise ValueError(f"Not an image file: {path}")

    data = path.read_bytes()
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(value: str) -> Tuple[str, bytes]:
    """
    Split a held image into (mime_type, raw bytes).

    Accepts a full data URL or a bare base64 payload; the latter is
    assumed to be JPEG. Raises ValueError when the payload is not valid
    base64.
    """
    match = _DATA_URL.match(value.strip())
    if not match:
        return DEFAULT_IMAGE_MIME, _b64decode(value)

    mime = match.group('mime') or DEFAULT_IMAGE_MIME
    payload = match.group('payload')
    if ';base64' in (match.group('params') or ''):
        return mime, _b64decode(payload)

    return mime, unquote_to_bytes(payload)
