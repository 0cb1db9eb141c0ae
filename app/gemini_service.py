"""This module contains the classes that manage the Gemini communication"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .config import settings
from .encoder import encode, payload_of
from .errors import EmptyResult, RequestFailed
from .media import MediaFile
from .prompts import ANALYSIS_PROMPT
from .validator import file_extension

logger = logging.getLogger("analyzer.gemini_service")


@dataclass(frozen=True)
class AnalysisRequest:
    """The instruction text plus one inline video, ready to be posted once."""

    prompt: str
    mime_type: str
    data: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {"inline_data": {"mime_type": self.mime_type, "data": self.data}},
                    ]
                }
            ]
        }


def _remote_error_message(response: httpx.Response) -> Optional[str]:
    """Pull ``error.message`` out of an error body, if the remote sent one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return None


def extract_text(body: Any) -> str:
    """Read ``candidates[0].content.parts[0].text`` or fail with EmptyResult."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise EmptyResult()
    if not isinstance(text, str) or not text:
        raise EmptyResult()
    return text


class GeminiService:
    """Sends one video per call to the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.endpoint = endpoint or settings.gemini_endpoint
        self.client = client
        self.timeout = timeout if timeout is not None else settings.http_timeout

    async def build_request(self, file: MediaFile) -> AnalysisRequest:
        """Encode the file and wrap it with the coaching prompt."""
        data_url = await encode(file)
        ext = file_extension(file.name) or "mp4"
        return AnalysisRequest(
            prompt=ANALYSIS_PROMPT,
            mime_type=f"video/{ext}",
            data=payload_of(data_url),
        )

    async def analyze(self, file: MediaFile) -> str:
        """Run a single analysis attempt and return the model's text."""
        request = await self.build_request(file)
        logger.info(f"Submitting {file.name!r} ({file.size} bytes, {request.mime_type}) for analysis")

        client = self.client or httpx.AsyncClient(timeout=self.timeout)
        close_client = self.client is None
        t0 = time.perf_counter()
        try:
            response = await client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=request.to_payload(),
            )
        except httpx.HTTPError as exc:
            # str(exc) of a transport error may be empty
            logger.error(f"Gemini HTTP error: {type(exc).__name__}")
            raise RequestFailed(str(exc) or type(exc).__name__) from exc
        finally:
            if close_client:
                await client.aclose()

        duration = round((time.perf_counter() - t0) * 1000, 1)
        logger.info(f"Gemini response. Status: {response.status_code}, Duration: {duration}ms")

        if response.status_code >= 400:
            detail = _remote_error_message(response)
            logger.error(f"Gemini returned error status {response.status_code}: {detail}")
            raise RequestFailed(detail or f"Request failed with status code {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            logger.error("Gemini returned invalid JSON")
            raise EmptyResult()

        text = extract_text(body)
        logger.debug(f"Analysis text extracted: {text[:200]}...")
        return text
