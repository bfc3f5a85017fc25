"""Core logic for publishing an archive through the registry's three-phase handshake."""

import asyncio
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import httpx
from pyvider.telemetry import logger

from ..config import PublishConfig
from ..exceptions import PayloadTooLargeError, PublishTimeoutError
from ..models import (
    MAX_PACKAGE_SIZE,
    Archive,
    CompanionDocuments,
    PublishResult,
    PublishState,
    UploadSession,
    archive_name_for,
)
from ..registry.client import DEFAULT_HTTP_TIMEOUT, RegistryClient
from ..registry.form import complete_publish_fields, start_publish_fields
from .archiver import build_archive
from .manifest import apply_overrides, load_manifest
from .sidefiles import collect


class PublishOrchestrator:
    """
    Drives Validate -> StartPublish -> Transfer -> CompletePublish.
    Any failure moves the orchestrator to FAILED and aborts the remaining phases.
    """

    def __init__(
        self,
        client: RegistryClient,
        archive: Archive,
        metadata: Mapping[str, Any],
        is_public: bool,
        source_tree: Path | str,
        max_package_size: int = MAX_PACKAGE_SIZE,
        collect_documents: Callable[[Path | str], CompanionDocuments] = collect,
    ) -> None:
        self.client = client
        self.archive = archive
        self.metadata = metadata
        self.is_public = is_public
        self.source_tree = source_tree
        self.max_package_size = max_package_size
        self.collect_documents = collect_documents
        self.state = PublishState.VALIDATE
        self.history: list[PublishState] = []

    def _transition(self, state: PublishState) -> None:
        logger.debug("Publish state transition", previous=self.state.value, next=state.value)
        self.state = state
        self.history.append(state)

    def _validate(self) -> None:
        if self.archive.size > self.max_package_size:
            raise PayloadTooLargeError(
                f"Package '{self.archive.name}' is {self.archive.size} bytes, "
                f"which exceeds the {self.max_package_size} byte limit."
            )

    async def _start_publish(self, checksum: str) -> UploadSession:
        fields = start_publish_fields(
            checksum, self.archive.size, self.metadata, self.is_public
        )
        session = await self.client.start_publish(fields)
        logger.info("Publish session started", session_id=session.session_id)
        return session

    async def _transfer(self, session: UploadSession) -> None:
        await self.client.transfer(session, self.archive)
        logger.info("Archive uploaded", archive=self.archive.name, size=self.archive.size)

    async def _complete_publish(self, session: UploadSession) -> None:
        documents = await asyncio.to_thread(self.collect_documents, self.source_tree)
        fields = complete_publish_fields(session.session_id, documents)
        await self.client.complete_publish(fields)
        logger.info(
            "Publish completed",
            session_id=session.session_id,
            documents=[d.part_name for d in documents.present()],
        )

    async def run(self) -> PublishResult:
        try:
            self._transition(PublishState.VALIDATE)
            self._validate()
            checksum = self.archive.checksum

            self._transition(PublishState.START_PUBLISH)
            session = await self._start_publish(checksum)

            self._transition(PublishState.TRANSFER)
            await self._transfer(session)

            self._transition(PublishState.COMPLETE_PUBLISH)
            await self._complete_publish(session)
        except (Exception, asyncio.CancelledError):
            self._transition(PublishState.FAILED)
            raise

        self._transition(PublishState.COMPLETED)
        return PublishResult(
            archive_name=self.archive.name,
            package_size=self.archive.size,
            checksum=checksum,
            session_id=session.session_id,
            is_public=self.is_public,
        )


async def publish_package(
    config: PublishConfig,
    *,
    manifest_fallback_dir: Path | str | None = None,
    work_dir: Path | str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PublishResult:
    """Loads the manifest, builds the archive and publishes it under one deadline."""
    deadline = asyncio.timeout(config.timeout)
    try:
        async with deadline:
            metadata = load_manifest(config.package_folder, manifest_fallback_dir)
            metadata = apply_overrides(
                metadata,
                version=config.version,
                email=config.contributor_email,
                name=config.contributor_name,
                url=config.contributor_url,
            )
            archive = await build_archive(
                config.package_folder, archive_name_for(metadata), work_dir=work_dir
            )
            async with RegistryClient(
                config.access_token,
                config.registry_url,
                timeout=config.timeout or DEFAULT_HTTP_TIMEOUT,
                transport=transport,
            ) as client:
                orchestrator = PublishOrchestrator(
                    client=client,
                    archive=archive,
                    metadata=metadata,
                    is_public=config.is_public,
                    source_tree=config.package_folder,
                    max_package_size=config.max_package_size,
                )
                return await orchestrator.run()
    except TimeoutError as e:
        # An OS-level ETIMEDOUT from inside the run is not the deadline.
        if not deadline.expired():
            raise
        raise PublishTimeoutError(
            f"Publishing did not finish within {config.timeout} seconds."
        ) from e
