"""Async HTTP transport for the three registry publish endpoints."""

from collections.abc import Sequence
from types import TracebackType
from typing import Self

import httpx
from pyvider.telemetry import logger

from ..exceptions import InvalidInputError, RegistryRequestError, TransferError
from ..models import ARCHIVE_CONTENT_TYPE, DEFAULT_REGISTRY_URL, Archive, FormField, UploadSession
from .form import encode_multipart

START_PUBLISH_PATH = "/packages/start-publish"
COMPLETE_PUBLISH_PATH = "/packages/complete-publish"
DEFAULT_HTTP_TIMEOUT = 300.0


class RegistryClient:
    """Performs single-attempt requests; retrying is left to the caller."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_REGISTRY_URL,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise InvalidInputError("An access token is required to publish.")
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0), transport=transport
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _post_form(
        self, path: str, fields: Sequence[FormField], phase: str
    ) -> httpx.Response:
        body, content_type = encode_multipart(fields)
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": content_type,
        }
        logger.debug(f"Sending {phase} request", url=self.base_url + path, size=len(body))
        try:
            response = await self._client.post(
                self.base_url + path, content=body, headers=headers
            )
        except httpx.HTTPError as e:
            raise RegistryRequestError(f"{phase} request failed: {e}") from e

        if not response.is_success:
            raise RegistryRequestError(
                f"{phase} failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def start_publish(self, fields: Sequence[FormField]) -> UploadSession:
        response = await self._post_form(START_PUBLISH_PATH, fields, "start-publish")
        try:
            payload = response.json()
        except ValueError as e:
            raise RegistryRequestError(
                f"start-publish returned a non-JSON body: {response.text}",
                status_code=response.status_code,
                body=response.text,
            ) from e
        return UploadSession.from_response(payload)

    async def transfer(self, session: UploadSession, archive: Archive) -> None:
        # The destination is storage infrastructure, not the registry API,
        # so the bearer token stays off this request.
        headers = {
            "Content-Type": ARCHIVE_CONTENT_TYPE,
            "Content-Length": str(archive.size),
        }
        try:
            response = await self._client.put(
                session.url, content=archive.data, headers=headers
            )
        except httpx.HTTPError as e:
            raise TransferError(f"Upload of '{archive.name}' failed: {e}") from e

        if not response.is_success:
            raise TransferError(
                f"Upload of '{archive.name}' failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

    async def complete_publish(self, fields: Sequence[FormField]) -> None:
        await self._post_form(COMPLETE_PUBLISH_PATH, fields, "complete-publish")
