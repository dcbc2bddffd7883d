"""Manifest loading, structural validation and atomic persistence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from zkqsig.errors import ManifestFormatError
from zkqsig.models.constants import SUPPORTED_MANIFEST_VERSIONS
from zkqsig.models.entities import Manifest
from zkqsig.observability import get_logger
from zkqsig.utils.files import atomic_write_json

logger = get_logger(__name__)


def parse_manifest(data: Manifest | dict[str, Any] | str | bytes) -> Manifest:
    """Validate a manifest from a model, dict, or JSON text.

    Raises:
        ManifestFormatError: invalid JSON, missing/malformed fields, or unsupported version
    """
    if isinstance(data, Manifest):
        manifest = data
    else:
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise ManifestFormatError(f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ManifestFormatError(
                f"expected a JSON object, got {type(data).__name__}",
            )
        try:
            manifest = Manifest.model_validate(data)
        except ValidationError as exc:
            raise ManifestFormatError(
                f"{exc.error_count()} validation error(s)",
                details={
                    "errors": [
                        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                        for err in exc.errors()
                    ]
                },
            ) from exc

    if manifest.version not in SUPPORTED_MANIFEST_VERSIONS:
        raise ManifestFormatError(
            f"unsupported manifest version {manifest.version}",
            details={
                "version": manifest.version,
                "supported": sorted(SUPPORTED_MANIFEST_VERSIONS),
            },
        )
    return manifest


def load_manifest(path: str | Path) -> Manifest:
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise ManifestFormatError(f"manifest not found: {path}") from exc
    return parse_manifest(raw)


def write_manifest(manifest: Manifest, path: str | Path) -> Path:
    """Write atomically; an interrupted write never leaves a partial manifest."""
    written = atomic_write_json(path, manifest.to_json_dict())
    logger.info("zkqsig.manifest.written", path=str(written), doc_hash=manifest.doc_hash)
    return written
