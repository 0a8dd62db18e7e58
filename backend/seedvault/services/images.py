"""Image reference handling for seeds and trays.

An image reference is one of: an inline ``data:image/...`` URI (fresh from a
camera capture or AI generation), an absolute ``http(s)`` URL, or a key in
the image bucket. Inline images are uploaded on save and replaced by their
storage key; keys are turned into signed URLs on read.
"""
import base64
import binascii
import logging
import mimetypes
import re
from typing import Iterable, List, Optional
from uuid import uuid4

from seedvault.storage import ImageStore

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>image/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


class InvalidImageError(ValueError):
    pass


def is_inline(ref: str) -> bool:
    return ref.startswith("data:image")


def is_remote(ref: str) -> bool:
    return ref.startswith("http://") or ref.startswith("https://")


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    match = _DATA_URI.match(uri)
    if not match or not match.group("b64"):
        raise InvalidImageError("Image data must be a base64 data URI")
    try:
        payload = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as exc:
        raise InvalidImageError("Image data is not valid base64") from exc
    return payload, match.group("mime") or "image/jpeg"


def encode_data_uri(payload: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(payload).decode('ascii')}"


def persist_images(store: ImageStore, key_prefix: str, refs: Iterable[str]) -> List[str]:
    """Upload inline images one at a time and return the rewritten list."""
    saved = []
    for ref in refs:
        if not is_inline(ref):
            saved.append(ref)
            continue
        payload, content_type = decode_data_uri(ref)
        extension = mimetypes.guess_extension(content_type) or ".jpg"
        key = f"{key_prefix}/{uuid4().hex}{extension}"
        store.upload_bytes(key, payload, content_type)
        logger.info("Uploaded image %s (%d bytes)", key, len(payload))
        saved.append(key)
    return saved


def resolve_image_url(store: ImageStore, ref: str) -> str:
    if is_inline(ref) or is_remote(ref):
        return ref
    return store.signed_url(ref)


def resolve_image_urls(store: ImageStore, refs: Optional[Iterable[str]]) -> List[str]:
    return [resolve_image_url(store, ref) for ref in refs or [] if ref]


def primary_image(images: Optional[List[str]], primary_index: Optional[int]) -> Optional[str]:
    if not images:
        return None
    index = primary_index or 0
    if index >= len(images):
        index = 0
    return images[index]


def remove_image(images: List[str], primary_index: int, index: int) -> tuple[List[str], int]:
    """Drop ``images[index]`` and keep the primary pointing at the same image.

    Removing the primary itself falls back to the first image.
    """
    if index < 0 or index >= len(images):
        raise IndexError(index)
    remaining = [img for i, img in enumerate(images) if i != index]
    if index == primary_index:
        new_primary = 0
    elif index < primary_index:
        new_primary = primary_index - 1
    else:
        new_primary = primary_index
    return remaining, new_primary
