#!/usr/bin/env python3
from __future__ import annotations

from typing import Any

import requests

from chart_config import as_int

DEFAULT_UPLOAD_URL = "https://nostr.build/api/upload/ios.php"


class UploadError(RuntimeError):
    pass


def upload_image(png: bytes, upload_cfg: dict[str, Any], filename: str = "chart.png") -> str:
    """POST ``png`` as multipart form data and return the hosted image URL."""
    url = str(upload_cfg.get("url") or DEFAULT_UPLOAD_URL)
    field = str(upload_cfg.get("field") or "fileToUpload")
    timeout = max(5, as_int(upload_cfg.get("timeout_sec"), 60))

    resp = requests.post(
        url,
        files={field: (filename, png, "image/png")},
        timeout=timeout,
    )
    if resp.status_code != 200:
        detail = resp.text.strip() or resp.reason
        raise UploadError(f"upload failed: HTTP {resp.status_code}: {detail}")

    try:
        payload = resp.json()
    except ValueError as exc:
        raise UploadError(f"upload returned invalid JSON: {exc}") from exc

    # The endpoint answers with a bare JSON string.
    if not isinstance(payload, str) or not payload.strip():
        raise UploadError(f"upload returned unexpected payload: {payload!r}")
    return payload.strip()
