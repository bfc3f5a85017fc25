"""Reads `package.json` and merges the metadata overrides given on the command line."""

import copy
import json
from pathlib import Path
from typing import Any

from pyvider.telemetry import logger

from ..exceptions import InvalidInputError

MANIFEST_FILENAME = "package.json"


def _find_manifest(folder: Path, fallback_dir: Path | None) -> Path:
    candidate = folder / MANIFEST_FILENAME
    if candidate.is_file():
        return candidate
    if fallback_dir is not None:
        candidate = fallback_dir / MANIFEST_FILENAME
        if candidate.is_file():
            logger.info("Using fallback manifest", path=str(candidate))
            return candidate
    raise InvalidInputError(
        f"'{MANIFEST_FILENAME}' not found in folder '{folder}' or repository root."
    )


def load_manifest(
    folder: Path | str, fallback_dir: Path | str | None = None
) -> dict[str, Any]:
    """Loads the package manifest; `name` and `version` must be non-empty strings."""
    manifest_path = _find_manifest(
        Path(folder), Path(fallback_dir) if fallback_dir is not None else None
    )
    try:
        metadata = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"'{manifest_path}' is not valid JSON: {e}") from e
    except OSError as e:
        raise InvalidInputError(f"Could not read '{manifest_path}': {e}") from e

    if not isinstance(metadata, dict):
        raise InvalidInputError(f"'{manifest_path}' must contain a JSON object.")
    for key in ("name", "version"):
        value = metadata.get(key)
        if not isinstance(value, str) or not value.strip():
            raise InvalidInputError(
                f"'{key}' field in {MANIFEST_FILENAME} is missing or invalid."
            )
    return metadata


def apply_overrides(
    metadata: dict[str, Any],
    version: str | None = None,
    email: str | None = None,
    name: str | None = None,
    url: str | None = None,
) -> dict[str, Any]:
    """
    Returns a copy of `metadata` with the given overrides applied. The `author`
    mapping is only created when at least one author field is overridden.
    """
    merged = copy.deepcopy(metadata)
    if version:
        merged["version"] = version
        logger.info("Package version is set", version=version)

    author_overrides = {"email": email, "name": name, "url": url}
    for key, value in author_overrides.items():
        if not value:
            continue
        author = merged.get("author")
        if not isinstance(author, dict):
            # npm also allows "Name <email> (url)" strings; overrides replace them.
            author = {}
            merged["author"] = author
        author[key] = value
        logger.info("Package author field is set", field=key, value=value)
    return merged
