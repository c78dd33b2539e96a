"""
HTTP client for the Sarvam AI speech and translation APIs.

Adds the subscription key header to every request and retries server-side
(5xx) failures a fixed number of times before giving up.
"""

import asyncio
import json
from typing import Any, Dict, Optional
import httpx
from loguru import logger

from .config import config
from .errors import ApiError


class SarvamClient:
    """
    Authenticated async client for the Sarvam AI REST endpoints.

    A client is cheap to build; each call opens its own ``httpx.AsyncClient``
    unless a transport is injected (used by tests).
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 max_retries: Optional[int] = None, retry_delay_ms: Optional[int] = None,
                 timeout_s: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the client.

        Args:
            api_key (Optional[str]): Subscription key. Defaults to ``config.sarvam_api_key``
            base_url (Optional[str]): API root. Defaults to ``config.sarvam_base_url``
            max_retries (Optional[int]): Retries for 5xx responses
            retry_delay_ms (Optional[int]): Delay between retries in milliseconds
            timeout_s (Optional[float]): Per-request timeout in seconds
            transport (Optional[httpx.AsyncBaseTransport]): Custom transport
        """
        self.api_key = api_key if api_key is not None else (config.sarvam_api_key or "")
        self.base_url = (base_url or config.sarvam_base_url).rstrip("/")
        self.max_retries = config.api_max_retries if max_retries is None else max_retries
        self.retry_delay_ms = config.api_retry_delay_ms if retry_delay_ms is None else retry_delay_ms
        self.timeout_s = timeout_s or config.api_timeout_s
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"api-subscription-key": self.api_key}

    async def request(self, endpoint: str, *, json_body: Optional[Dict[str, Any]] = None,
                      data: Optional[Dict[str, Any]] = None,
                      files: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST to an endpoint and return the decoded JSON body.

        Args:
            endpoint (str): Path such as ``/translate``
            json_body (Optional[Dict[str, Any]]): JSON payload
            data (Optional[Dict[str, Any]]): Multipart form fields
            files (Optional[Dict[str, Any]]): Multipart files

        Returns:
            Dict[str, Any]: Parsed response body

        Raises:
            ApiError: On a non-success status after retries
            httpx.HTTPError: On transport failures
        """
        url = f"{self.base_url}{endpoint}"
        retry_count = 0

        while True:
            suffix = f" (retry {retry_count})" if retry_count > 0 else ""
            logger.debug(f"Making request to {endpoint}{suffix}")

            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                response = await client.post(
                    url,
                    headers=self._headers(),
                    json=json_body,
                    data=data,
                    files=files,
                )

            logger.debug(f"Response status: {response.status_code} {response.reason_phrase}")

            if response.is_success:
                return response.json()

            details = self._error_details(response)
            logger.error(f"API error: {response.status_code} {response.reason_phrase}. Details: {details}")

            if response.status_code >= 500 and retry_count < self.max_retries:
                retry_count += 1
                logger.info(f"Retrying request to {endpoint} after {self.retry_delay_ms}ms...")
                await asyncio.sleep(self.retry_delay_ms / 1000)
                continue

            raise ApiError(response.status_code, details, endpoint)

    @staticmethod
    def _error_details(response: httpx.Response) -> str:
        try:
            return json.dumps(response.json())
        except ValueError:
            return response.text or f"Status: {response.status_code}"

    async def post_json(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a JSON request."""
        return await self.request(endpoint, json_body=payload)

    async def upload_file(self, endpoint: str, files: Dict[str, Any],
                          data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a multipart file upload; httpx sets the boundary header."""
        return await self.request(endpoint, data=data, files=files)
