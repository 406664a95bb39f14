"""
Base webhook provider interface.
Each inbound provider (Slack, GitHub, Stripe, ...) is one variant that knows
how to authenticate its requests, answer its handshakes and shape its
payloads, so the trigger pipeline never branches on provider names.
"""
import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from fastapi import Response
from fastapi.responses import JSONResponse


@dataclass
class InboundRequest:
    """The parts of an inbound HTTP request a provider may inspect."""

    method: str
    headers: Mapping[str, str]  # case-insensitive (starlette Headers)
    query_params: Mapping[str, str] = field(default_factory=dict)
    content_type: str = ""


def compute_hmac_sha256(key: bytes, message: bytes) -> bytes:
    return hmac.new(key, message, hashlib.sha256).digest()


def signatures_match(expected: str, received: Optional[str]) -> bool:
    """Constant-time comparison of two signature strings."""
    if not isinstance(received, str) or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


class WebhookProvider:
    """
    Base class for webhook providers.

    Subclasses override only the capabilities their provider needs; the
    defaults accept any request, never intercept a challenge and pass the
    parsed body through unchanged.
    """

    PROVIDER_NAME: str = None

    # Answer 200 when the user is over their rate limit. Providers that
    # retry aggressively on non-2xx responses would otherwise hammer the
    # endpoint and never give up.
    SOFT_RATE_LIMIT: bool = True

    def verify(
        self,
        provider_config: Dict[str, Any],
        request: InboundRequest,
        raw_body: bytes,
    ) -> bool:
        """
        Verify that the request was sent by the provider.

        Args:
            provider_config: The webhook's provider configuration
            request: The inbound request
            raw_body: The exact bytes received, never a re-serialized body

        Returns:
            True if the request is authentic, False otherwise
        """
        return True

    def parse_challenge(
        self,
        body: Dict[str, Any],
        request: InboundRequest,
        provider_config: Optional[Dict[str, Any]] = None,
    ) -> Optional[Response]:
        """
        Answer a provider handshake.

        Args:
            body: The parsed request body ({} for GET requests)
            request: The inbound request
            provider_config: Config of the webhook at the requested path, when
                the handshake needs it and one exists

        Returns:
            The handshake response, or None if the request is not a handshake
        """
        return None

    def needs_config_for_challenge(
        self, body: Dict[str, Any], request: InboundRequest
    ) -> bool:
        """Whether parse_challenge needs the webhook config to answer."""
        return False

    def parse_body(
        self, body: Dict[str, Any], request: InboundRequest
    ) -> Dict[str, Any]:
        """Shape the generically parsed body into the provider's input."""
        return body

    def acknowledge(self, message: str, status_code: int = 200, **extra) -> Response:
        """Build the response the provider expects for a handled request."""
        return JSONResponse({"message": message, **extra}, status_code=status_code)
