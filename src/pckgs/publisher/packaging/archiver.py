"""
Builds the gzip-compressed tarball the registry expects: the source folder's
contents nested under a single top-level folder.
"""

import asyncio
from collections.abc import Awaitable, Iterator
import contextlib
import gzip
import os
from pathlib import Path
import shutil
import tarfile
import tempfile
from typing import TypeVar

from pyvider.telemetry import logger

from ..exceptions import ArchiveIOError, InvalidInputError
from ..models import DEFAULT_ROOT_FOLDER, Archive

STAGING_PREFIX = ".pckgs-"
_STAGED_ARCHIVE_NAME = "archive.tar.gz"

T = TypeVar("T")


@contextlib.contextmanager
def staging_directory(work_dir: Path | str | None = None) -> Iterator[Path]:
    """
    Yields a fresh, uniquely named staging directory and removes it on exit,
    whatever the outcome. A failed removal is logged and never raised.
    """
    staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=work_dir))
    logger.debug("Created staging directory", path=str(staging))
    try:
        yield staging
    finally:
        try:
            shutil.rmtree(staging)
        except OSError as e:
            logger.warning(
                "Failed to clean up staging directory", path=str(staging), error=str(e)
            )


def _copy_entry(src: Path, dest: Path) -> None:
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest, follow_symlinks=False)


def _normalize_tarinfo(tarinfo: tarfile.TarInfo) -> tarfile.TarInfo:
    """Strips host-specific ownership and timestamps so equal trees give equal bytes."""
    tarinfo.uid = 0
    tarinfo.gid = 0
    tarinfo.uname = ""
    tarinfo.gname = ""
    tarinfo.mtime = 0
    return tarinfo


def _compress(virtual_root: Path, arcname: str, archive_path: Path) -> None:
    with archive_path.open("wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                # tarfile walks directories in sorted order.
                tar.add(virtual_root, arcname=arcname, filter=_normalize_tarinfo)


def _validate_root_folder_name(root_folder_name: str) -> None:
    if (
        not root_folder_name
        or root_folder_name in (".", "..")
        or "/" in root_folder_name
        or "\\" in root_folder_name
    ):
        raise InvalidInputError(
            f"Root folder name must be a single path segment, got '{root_folder_name}'."
        )


async def _finish_in_thread(awaitable: Awaitable[T]) -> T:
    """
    Awaits worker-thread work. If the caller is cancelled, the work is still
    joined before the cancellation propagates: threads cannot be interrupted,
    and they must not write into a staging directory that is being removed.
    """
    job = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(job)
    except asyncio.CancelledError:
        await asyncio.wait([job])
        raise


def _list_children(source: Path, staging: Path) -> list[Path]:
    try:
        # realpath tolerates symlink loops where Path.resolve() raises.
        holds_staging = os.path.realpath(source) == os.path.realpath(staging.parent)
        return [
            child
            for child in sorted(source.iterdir())
            if not (holds_staging and child.name == staging.name)
        ]
    except (OSError, RuntimeError) as e:
        raise ArchiveIOError(f"Failed to list '{source}' for archiving: {e}") from e


async def _stage_children(source: Path, virtual_root: Path, staging: Path) -> None:
    children = _list_children(source, staging)
    results = await _finish_in_thread(
        asyncio.gather(
            *(
                asyncio.to_thread(_copy_entry, child, virtual_root / child.name)
                for child in children
            ),
            return_exceptions=True,
        )
    )
    # Every copy has finished here, failed or not.
    for child, result in zip(children, results):
        if isinstance(result, BaseException):
            raise ArchiveIOError(
                f"Failed to stage '{child}' for archiving: {result}"
            ) from result
    logger.debug("Staged source entries", count=len(children))


async def build_archive(
    source_tree: Path | str,
    archive_name: str,
    root_folder_name: str = DEFAULT_ROOT_FOLDER,
    work_dir: Path | str | None = None,
) -> Archive:
    """
    Copies every direct child of `source_tree` under `root_folder_name/` in a
    staging directory, compresses that folder and returns the archive bytes.
    The staging directory never outlives this call.
    """
    source = Path(source_tree)
    if not source.is_dir():
        raise InvalidInputError(f"Target folder '{source_tree}' not found.")
    if not archive_name:
        raise InvalidInputError("Archive name must not be empty.")
    _validate_root_folder_name(root_folder_name)

    logger.info("Building archive", source=str(source), archive=archive_name)
    with staging_directory(work_dir) as staging:
        virtual_root = staging / root_folder_name
        try:
            virtual_root.mkdir()
        except OSError as e:
            raise ArchiveIOError(f"Failed to create staging folder: {e}") from e
        await _stage_children(source, virtual_root, staging)

        archive_path = staging / _STAGED_ARCHIVE_NAME
        try:
            await _finish_in_thread(
                asyncio.to_thread(_compress, virtual_root, root_folder_name, archive_path)
            )
            data = await asyncio.to_thread(archive_path.read_bytes)
        except (OSError, tarfile.TarError) as e:
            raise ArchiveIOError(f"Failed to compress '{source}': {e}") from e

    archive = Archive(name=archive_name, data=data)
    logger.info("Archive built", archive=archive.name, size=archive.size)
    return archive


def write_archive(archive: Archive, destination: Path | str) -> Path:
    """Writes the archive to `destination`, or into it when it is a directory."""
    target = Path(destination)
    if target.is_dir():
        target = target / archive.name.replace("/", "_")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(archive.data)
    except OSError as e:
        raise ArchiveIOError(f"Failed to write archive to '{target}': {e}") from e
    return target
