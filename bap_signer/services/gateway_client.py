"""
Gateway Client - send signed Beckn requests to the gateway
"""
from typing import Any, Dict, Optional
import json
import logging

import httpx

from bap_signer.exceptions import GatewayError
from bap_signer.services.canonical import canonical_bytes
from bap_signer.services.signature import BecknSigner

logger = logging.getLogger(__name__)


class GatewayClient:
    """Posts Beckn payloads with Digest and Authorization headers attached"""

    def __init__(
        self,
        signer: BecknSigner,
        gateway_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        debug_mode: bool = False,
    ):
        self.signer = signer
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        # Debug mode: log request/response bodies
        self.debug_mode = debug_mode

    def build_request_headers(self, body: bytes) -> Dict[str, str]:
        """Sign *body* and return the full outbound header set"""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        headers.update(self.signer.sign_body(body).as_http_headers())
        return headers

    def _log_http_request(self, url: str, headers: Dict[str, str], body: bytes):
        if not self.debug_mode:
            return
        logger.debug(f"POST {url}")
        for key, value in headers.items():
            logger.debug(f"  {key}: {value}")
        logger.debug(f"Payload: {body.decode('utf-8')}")

    async def post(self, action: str, payload: Any) -> Dict[str, Any]:
        """
        POST a signed payload to <gateway_url>/<action>.

        The body sent is exactly the canonical bytes that were digested.
        Serialization or signing errors are raised before any request is made.
        """
        url = f"{self.gateway_url}/{action.lstrip('/')}"
        body = canonical_bytes(payload)
        headers = self.build_request_headers(body)
        self._log_http_request(url, headers, body)

        logger.info(f"Sending /{action} to Beckn gateway as {self.signer.subscriber_id}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(url, content=body, headers=headers)
                r.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gateway returned {e.response.status_code} for /{action}: {e.response.text}")
            raise GatewayError(
                f"Gateway rejected /{action}: {e.response.status_code}",
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach gateway for /{action}: {e}")
            raise GatewayError(f"Failed to send /{action} to gateway: {e}") from e

        logger.info(f"/{action} forwarded to gateway ({r.status_code})")
        if not r.content:
            return {}
        try:
            return r.json()
        except json.JSONDecodeError as e:
            raise GatewayError(
                f"Gateway returned non-JSON body for /{action}",
                status_code=r.status_code,
                body=r.text,
            ) from e
