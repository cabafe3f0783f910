"""Clients for the remote speech-to-text endpoint."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import boto3
import httpx
from pydantic import ValidationError

from ..errors import LiveScribeError
from ..store.settings_store import ConnectionSettings
from .results import TranscriptionResult

LOGGER = logging.getLogger("livescribe.inference")

CONTENT_TYPE = "audio/wav"
ACCEPT_TYPE = "application/json"
DEFAULT_ENDPOINT_NAME = "asr-real-time-endpoint"
DEFAULT_REGION = "us-east-1"
DEFAULT_PROFILE = "default"


class InferenceError(LiveScribeError):
    pass


class Transcriber(Protocol):
    async def transcribe(self, payload: bytes) -> TranscriptionResult: ...

    async def close(self) -> None: ...


def parse_response(body: Optional[bytes], duration_ms: float) -> TranscriptionResult:
    if not body:
        raise InferenceError("No response body received from endpoint")
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise InferenceError(f"Invalid response: {exc}") from exc
    if not isinstance(data, dict):
        data = {"text": data}
    try:
        return TranscriptionResult.model_validate({**data, "duration": duration_ms})
    except ValidationError as exc:
        raise InferenceError(f"Unexpected response shape: {exc}") from exc


class _TimedTranscriber(ABC):
    """Base class for the backends: shared request timing and error wrapping.

    Subclasses implement ``_send`` and return the raw response body.
    """

    async def transcribe(self, payload: bytes) -> TranscriptionResult:
        started = time.perf_counter()
        LOGGER.info("Transcription request started at: %s", datetime.now(timezone.utc).isoformat())
        try:
            body = await self._send(payload)
            duration = _elapsed_ms(started)
            LOGGER.info("Transcription request completed in %d ms", duration)
            return parse_response(body, duration)
        except InferenceError as exc:
            LOGGER.error("Transcription failed after %d ms: %s", _elapsed_ms(started), exc)
            raise
        except Exception as exc:
            LOGGER.error("Transcription failed after %d ms: %s", _elapsed_ms(started), exc)
            raise InferenceError(str(exc)) from exc

    @abstractmethod
    async def _send(self, payload: bytes) -> Optional[bytes]: ...

    async def close(self) -> None:
        return None


class SageMakerTranscriber(_TimedTranscriber):
    """Invokes a SageMaker real-time endpoint with the WAV payload."""

    def __init__(
        self,
        *,
        endpoint_name: str = DEFAULT_ENDPOINT_NAME,
        region: str = DEFAULT_REGION,
        profile: str = DEFAULT_PROFILE,
        insecure_tls: bool = False,
        client: Any = None,
    ) -> None:
        self.endpoint_name = endpoint_name
        self.region = region
        self.profile = profile
        self.insecure_tls = insecure_tls
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            session = boto3.Session(profile_name=self.profile or None, region_name=self.region)
            self._client = session.client("sagemaker-runtime", verify=not self.insecure_tls)
        return self._client

    async def _send(self, payload: bytes) -> Optional[bytes]:
        return await asyncio.to_thread(self._invoke, payload)

    def _invoke(self, payload: bytes) -> Optional[bytes]:
        response = self._get_client().invoke_endpoint(
            EndpointName=self.endpoint_name,
            Body=payload,
            ContentType=CONTENT_TYPE,
            Accept=ACCEPT_TYPE,
        )
        body = response.get("Body")
        if body is None:
            return None
        return body.read()


class HttpTranscriber(_TimedTranscriber):
    """POSTs the WAV payload to an HTTP inference endpoint."""

    def __init__(
        self,
        url: str,
        *,
        api_key: str = "",
        timeout: float = 60.0,
        insecure_tls: bool = False,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not url:
            raise InferenceError("Server URL missing")
        self.url = url
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout, verify=not insecure_tls)

    def _headers(self) -> dict:
        headers = {"Content-Type": CONTENT_TYPE, "Accept": ACCEPT_TYPE}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def _send(self, payload: bytes) -> Optional[bytes]:
        resp = await self._client.post(self.url, content=payload, headers=self._headers())
        if resp.status_code == 401:
            raise InferenceError("Unauthorized: check API key")
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise InferenceError(f"Inference failed: {exc.response.status_code}") from exc
        return resp.content

    async def close(self) -> None:
        await self._client.aclose()


def build_transcriber(settings: ConnectionSettings) -> Transcriber:
    if settings.backend == "http":
        return HttpTranscriber(
            settings.server_url,
            api_key=settings.api_key,
            timeout=settings.timeout,
            insecure_tls=settings.insecure_tls,
        )
    if settings.backend == "sagemaker":
        return SageMakerTranscriber(
            endpoint_name=settings.endpoint_name,
            region=settings.region,
            profile=settings.profile,
            insecure_tls=settings.insecure_tls,
        )
    raise InferenceError(f"Unknown inference backend: {settings.backend!r}")


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = [
    "ACCEPT_TYPE",
    "CONTENT_TYPE",
    "DEFAULT_ENDPOINT_NAME",
    "HttpTranscriber",
    "InferenceError",
    "SageMakerTranscriber",
    "Transcriber",
    "build_transcriber",
    "parse_response",
]
