"""
HMAC request signing.

The exchange rebuilds the string ``VERB|<api prefix><path>|<canonical query>``
from the received parameters (minus ``signature``) and compares its own
HMAC-SHA256 digest against the ``signature`` parameter.
"""

import hashlib
import hmac
from typing import Any, Mapping, Optional

from ..data.models import Credential, SignedRequest
from .clock import ClockSkewTracker
from .params import ParameterSet, canonicalize

API_PREFIX = '/api/v2'

SIGNABLE_VERBS = ('GET', 'POST')


def build_payload(verb: str, path: str, canonical_query: str, api_prefix: str = API_PREFIX) -> str:
    """Assemble the exact string fed to the digest."""
    return f"{verb}|{api_prefix}{path}|{canonical_query}"


def digest(payload: str, secret: str) -> str:
    """Hex encoded HMAC-SHA256 of payload under secret."""
    return hmac.new(secret.encode('utf-8'), payload.encode('utf-8'), hashlib.sha256).hexdigest()


class RequestSigner:
    """Signs private requests with the client's credential."""

    def __init__(self, credential: Credential, clock: ClockSkewTracker, api_prefix: str = API_PREFIX):
        self.credential = credential
        self.clock = clock
        self.api_prefix = api_prefix

    def sign_request(self, verb: str, path: str, params: Optional[Mapping[str, Any]] = None,
                     tonce: Optional[int] = None) -> SignedRequest:
        """
        Inject access_key, tonce and signature into a copy of params.

        Args:
            verb: 'GET' or 'POST'
            path: Endpoint path relative to the API prefix (e.g. '/members/me')
            params: Caller parameters, left untouched
            tonce: Explicit nonce; defaults to the skew-corrected clock

        Returns:
            SignedRequest: Final query string plus the values that produced it
        """
        verb = verb.upper()
        if verb not in SIGNABLE_VERBS:
            raise ValueError(f"Unsupported HTTP method for signing: {verb}")

        if tonce is None:
            tonce = self.clock.now_millis()

        unsigned = ParameterSet(params).with_values(
            access_key=self.credential.access_key,
            tonce=tonce,
        )
        payload = build_payload(verb, path, canonicalize(unsigned), self.api_prefix)
        signature = digest(payload, self.credential.secret_key)
        query = canonicalize(unsigned.with_values(signature=signature))

        return SignedRequest(verb=verb, path=path, query=query, signature=signature, tonce=tonce)

    def sign(self, verb: str, path: str, params: Optional[Mapping[str, Any]] = None,
             tonce: Optional[int] = None) -> str:
        """Return the signed canonical query string for a request."""
        return self.sign_request(verb, path, params, tonce).query
