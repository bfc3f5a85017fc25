"""Locates the optional readme/license/changelog shipped next to the package."""

from pathlib import Path

from pyvider.telemetry import logger

from ..exceptions import ArchiveIOError
from ..models import COMPANION_CONTENT_TYPE, CompanionDocument, CompanionDocuments

COMPANION_FILES: dict[str, str] = {
    "readme": "README.md",
    "license": "LICENSE.md",
    "changelog": "CHANGELOG.md",
}


def _load(source: Path, part_name: str, filename: str) -> CompanionDocument | None:
    path = source / filename
    if not path.is_file():
        return None
    try:
        content = path.read_bytes()
    except OSError as e:
        raise ArchiveIOError(f"Failed to read '{path}': {e}") from e
    logger.debug("Found companion document", part=part_name, size=len(content))
    return CompanionDocument(
        part_name=part_name,
        filename=filename,
        content=content,
        content_type=COMPANION_CONTENT_TYPE,
    )


def collect(source_tree: Path | str) -> CompanionDocuments:
    """Reads whichever companion documents exist directly under `source_tree`."""
    source = Path(source_tree)
    documents = {
        part_name: _load(source, part_name, filename)
        for part_name, filename in COMPANION_FILES.items()
    }
    return CompanionDocuments(**documents)
