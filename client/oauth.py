"""
OAuth 1.0a HMAC-SHA1 request signing for the Magento REST API.

Signature base string (RFC 5849 §3.4.1):
  METHOD & enc(url) & enc(k1=v1&k2=v2...)
  signature = base64(HMAC-SHA1(enc(consumer_secret) & enc(token_secret), base))

Encoding is RFC 3986 with "~" left literal. Magento verifies with the Zend/Laminas
OAuth helper, which never escapes "~"; a "%7E" anywhere in the signed string
produces "The signature is invalid".
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union
from urllib.parse import quote

Scalar = Union[str, int, float, bool, None]
Value = Union[Scalar, Mapping[Any, "Value"], Sequence["Value"]]

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"
SIGNATURE_FIELD = "oauth_signature"

_UNRESERVED = "-._~"


def scalar_to_str(value: Scalar) -> str:
    """Render a scalar the way PHP's form decoder expects it (True -> "1")."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, str):
        return value
    return str(value)


def percent_encode(value: Scalar) -> str:
    """
    RFC 3986 percent-encoding over the unreserved set A-Za-z0-9-._~.

    Space becomes %20 (never "+"). Any "%7E" a library encoder emits is folded
    back to a literal "~".
    """
    encoded = quote(scalar_to_str(value), safe=_UNRESERVED)
    return encoded.replace("%7E", "~")


def _key_order(key: Any) -> tuple:
    # ints first in numeric order (list-like PHP arrays), then strings by code point
    if isinstance(key, int) and not isinstance(key, bool):
        return (0, key, "")
    return (1, 0, str(key))


def sort_params(params: Value) -> Value:
    """
    Return a copy of ``params`` with every mapping, at every depth, ordered by key.

    Sequences keep their element order; their elements are sorted recursively.
    Scalars are returned unchanged. The input is never mutated.
    """
    if isinstance(params, Mapping):
        return {
            key: sort_params(params[key])
            for key in sorted(params.keys(), key=_key_order)
        }
    if isinstance(params, (list, tuple)):
        return [sort_params(item) for item in params]
    return params


def flatten_params(params: Mapping[Any, Value], prefix: str = "") -> list[tuple[str, str]]:
    """
    Flatten nested params into bracketed form field names.

    {"searchCriteria": {"pageSize": 10}} -> [("searchCriteria[pageSize]", "10")]
    None values are dropped, matching PHP's http_build_query.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            pairs.extend(flatten_params(value, name))
        elif isinstance(value, (list, tuple)):
            pairs.extend(flatten_params(dict(enumerate(value)), name))
        else:
            pairs.append((name, scalar_to_str(value)))
    return pairs


def form_encode(params: Mapping[Any, Value]) -> str:
    """Serialize params as k=v pairs joined with "&", keys and values percent-encoded."""
    return "&".join(
        f"{percent_encode(name)}={percent_encode(value)}"
        for name, value in flatten_params(params)
    )


def signature_base_string(method: str, url: str, params: Mapping[Any, Value]) -> str:
    """
    Build the canonical string that gets signed.

    ``params`` is serialized in its own iteration order; callers pass it through
    sort_params first. Any oauth_signature entry is ignored.
    """
    unsigned = {k: v for k, v in params.items() if k != SIGNATURE_FIELD}
    return "&".join([
        method.upper(),
        percent_encode(url),
        percent_encode(form_encode(unsigned)),
    ])


def signing_key(consumer_secret: str, token_secret: str, encode: bool = True) -> str:
    """
    HMAC key: consumer_secret & token_secret.

    With ``encode`` each secret is percent-encoded first (RFC 5849 §3.4.2, and what
    Magento's Laminas verifier does). Without it the secrets are concatenated raw.
    The two only differ for secrets containing reserved characters.
    """
    if encode:
        return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"
    return f"{consumer_secret}&{token_secret}"


def hmac_sha1(key: str, message: str) -> str:
    """Base64 of the raw HMAC-SHA1 digest."""
    digest = hmac.new(
        key.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def make_nonce() -> str:
    """128-bit random hex nonce from the OS CSPRNG."""
    return secrets.token_hex(16)


def authorization_header(params: Mapping[Any, Value]) -> str:
    """
    Render the Authorization header value: "OAuth k=v,k=v".

    Only oauth_* protocol fields go in the header; request data travels in the
    query string or body.
    """
    fields = ",".join(
        f"{percent_encode(key)}={percent_encode(value)}"
        for key, value in params.items()
        if str(key).startswith("oauth_")
    )
    return f"OAuth {fields}"


@dataclass(frozen=True)
class OAuth1Signer:
    """Holds one set of OAuth 1.0a credentials and signs requests with them."""

    consumer_key: str
    consumer_secret: str
    access_token: str
    access_token_secret: str
    encode_signing_key: bool = True

    def __repr__(self) -> str:
        return f"OAuth1Signer(consumer_key={self.consumer_key!r}, access_token={self.access_token!r})"

    def protocol_params(self, nonce: str | None = None, timestamp: int | None = None) -> dict[str, str]:
        """
        Fixed OAuth protocol fields for one request.

        Args:
            nonce: Override the random nonce (tests only)
            timestamp: Unix seconds (auto-generated if None)
        """
        if nonce is None:
            nonce = make_nonce()
        if timestamp is None:
            timestamp = int(time.time())
        return {
            "oauth_consumer_key": self.consumer_key,
            "oauth_nonce": nonce,
            "oauth_signature_method": SIGNATURE_METHOD,
            "oauth_timestamp": str(timestamp),
            "oauth_token": self.access_token,
            "oauth_version": OAUTH_VERSION,
        }

    def sign(self, method: str, url: str, params: Mapping[Any, Value]) -> str:
        """Base64 HMAC-SHA1 signature of the request."""
        key = signing_key(
            self.consumer_secret,
            self.access_token_secret,
            encode=self.encode_signing_key,
        )
        return hmac_sha1(key, signature_base_string(method, url, params))

    def signed_params(self, method: str, url: str, params: Mapping[Any, Value]) -> dict[str, Value]:
        """
        Sort the parameter set, then append oauth_signature as the last field.

        The signature is computed over the sorted set without itself.
        """
        ordered = sort_params({k: v for k, v in params.items() if k != SIGNATURE_FIELD})
        ordered[SIGNATURE_FIELD] = self.sign(method, url, ordered)
        return ordered
