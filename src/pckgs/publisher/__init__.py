# pckgs/src/pckgs/publisher/__init__.py
"""
This package contains the core logic for packaging a folder into a registry
archive and publishing it to the pckgs registry.
"""

from .crypto import checksum
from .models import (
    MAX_PACKAGE_SIZE,
    Archive,
    PublishResult,
    UploadSession,
)
from .packaging.archiver import build_archive
from .packaging.orchestrator import PublishOrchestrator, publish_package

__all__ = [
    "MAX_PACKAGE_SIZE",
    "Archive",
    "PublishOrchestrator",
    "PublishResult",
    "UploadSession",
    "build_archive",
    "checksum",
    "publish_package",
]
