# Fichier: caseprep/services/storage.py
"""Whiteboard image upload to Supabase Storage through its REST API."""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import time

import requests

from caseprep.core.config import settings
from caseprep.core.llm_backends import UpstreamUnavailable

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


class StorageNotConfigured(Exception):
    """Supabase URL or service key missing."""


def decode_data_url(image_data: str) -> bytes:
    """Decode a ``data:image/...;base64,`` URL (the prefix is optional)."""

    raw = _DATA_URL_PREFIX.sub("", image_data.strip(), count=1)
    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid base64 image data") from exc
    if not decoded:
        raise ValueError("empty image")
    return decoded


def _new_filename() -> str:
    return f"whiteboard-{int(time.time() * 1000)}-{secrets.token_hex(6)}.png"


def _storage_base_url() -> str:
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise StorageNotConfigured("Supabase storage is not configured")
    return str(settings.SUPABASE_URL).rstrip("/")


def public_url(filename: str, *, bucket: str | None = None) -> str:
    bucket = bucket or settings.SUPABASE_STORAGE_BUCKET
    return f"{_storage_base_url()}/storage/v1/object/public/{bucket}/{filename}"


def upload_whiteboard_image(image_data: str, *, timeout: float = 30) -> str:
    """Store the PNG and return its public URL."""

    content = decode_data_url(image_data)
    base_url = _storage_base_url()
    bucket = settings.SUPABASE_STORAGE_BUCKET
    filename = _new_filename()
    key = settings.SUPABASE_SERVICE_ROLE_KEY

    headers = {
        "apikey": key,
        "Authorization": f"Bearer {key}",
        "Content-Type": "image/png",
        "x-upsert": "false",
    }
    url = f"{base_url}/storage/v1/object/{bucket}/{filename}"

    try:
        response = requests.post(url, data=content, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Erreur de connexion à Supabase Storage: %s", exc)
        raise UpstreamUnavailable(str(exc)) from exc

    if response.status_code >= 400:
        logger.error("Échec de l'upload Supabase (%s): %s", response.status_code, response.text)
        raise UpstreamUnavailable(f"storage upload failed with status {response.status_code}")

    logger.info("Image du tableau blanc stockée: %s", filename)
    return public_url(filename, bucket=bucket)
