"""
Magento 2 REST API client. OAuth 1.0a signed requests for products, orders,
shipments and categories.

Magento REST docs: https://developer.adobe.com/commerce/webapi/rest/
Errors come back as a JSON body {"message": ..., "parameters": ...}; the HTTP
status is not consulted.

Troubleshooting "The signature is invalid": the server side check lives in
vendor/magento/framework/Oauth/Oauth.php on the Magento host.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from client.oauth import (
    OAuth1Signer,
    Value,
    authorization_header,
    form_encode,
    sort_params,
)
from config import Config

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_STORE_CODE = "all"
METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})
_BODY_PREVIEW_CHARS = 200


class MagentoError(Exception):
    """Base class for every failure raised by MagentoClient."""


class TransportError(MagentoError):
    """Request failed without a usable response (DNS, TLS, refused, timeout, corrupt encoding). Never retried."""


class ApiError(MagentoError):
    """
    The API answered with an error payload.

    str(err) is the message, followed by the JSON-encoded parameters when present,
    e.g. 'The "%1" product doesn't exist. ["sku"]'.
    """

    def __init__(
        self,
        message: str,
        parameters: Any = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.parameters = parameters
        self.status_code = status_code
        text = message
        if parameters is not None:
            text = f"{message} {json.dumps(parameters)}"
        super().__init__(text)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], status_code: int | None = None) -> ApiError:
        return cls(
            str(payload["message"]),
            parameters=payload.get("parameters"),
            status_code=status_code,
        )


class MagentoClient:
    """
    Magento REST client.

    call() does the signing and dispatch; everything else shapes arguments for it.
    The signer and origin are fixed at construction, so one instance can be shared
    across threads as long as the underlying httpx.Client is.
    """

    def __init__(
        self,
        signer: OAuth1Signer,
        origin: str,
        store_code: str = DEFAULT_STORE_CODE,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.Client | None = None,
    ) -> None:
        self._signer = signer
        self._origin = origin
        self._store_code = store_code
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=timeout)

    @classmethod
    def from_config(cls, cfg: Config) -> MagentoClient:
        signer = OAuth1Signer(
            consumer_key=cfg.magento_consumer_key,
            consumer_secret=cfg.magento_consumer_secret,
            access_token=cfg.magento_access_token,
            access_token_secret=cfg.magento_access_token_secret,
            encode_signing_key=cfg.magento_encode_signing_key,
        )
        return cls(
            signer,
            origin=cfg.magento_origin,
            store_code=cfg.magento_store_code,
            timeout=cfg.magento_timeout_sec,
        )

    @property
    def origin(self) -> str:
        return self._origin

    def close(self) -> None:
        """Close the underlying HTTP client if we created it."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> MagentoClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- Dispatch --

    def call(self, method: str, path: str, data: Value = None) -> Any:
        """
        Sign and send one request. Returns the decoded JSON body.

        GET data must be a mapping; it is sorted, signed and sent as the query
        string. For every other verb the data is left out of the signature and
        sent as a JSON body. The origin and path are handed to httpx unvalidated.

        Raises:
            ValueError: unsupported verb, non-mapping GET data, or a URL httpx rejects
            TransportError: the request failed before a usable response came back
            ApiError: the response body carried a "message" or was not JSON
        """
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        if method == "GET" and data is not None and not isinstance(data, Mapping):
            raise ValueError(f"GET data must be a mapping, got {type(data).__name__}")

        url = f"{self._origin}{path}"
        params: dict[str, Value] = dict(self._signer.protocol_params())

        request_url = url
        if method == "GET" and data:
            query = sort_params(data)
            params.update(query)
            query_string = form_encode(query)
            if query_string:
                request_url = f"{url}?{query_string}"

        # Sign over the base URL; the query string is already in params.
        signed = self._signer.signed_params(method, url, params)

        headers = {
            "Authorization": authorization_header(signed),
            "Accept": "application/json",
        }
        content: str | None = None
        if method in ("POST", "PUT") or (method == "DELETE" and data is not None):
            content = json.dumps(data)
            headers["Content-Type"] = "application/json"

        logger.debug("Magento %s %s", method, request_url)
        try:
            resp = self._http.request(method, request_url, headers=headers, content=content)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid request URL {url!r}: {e}") from e
        except httpx.RequestError as e:
            # Connection, timeout, redirect and body-decoding failures
            reason = str(e) or type(e).__name__
            logger.warning("Magento %s %s failed: %s", method, url, reason)
            raise TransportError(reason) from e

        return self._decode(method, url, resp)

    def _decode(self, method: str, url: str, resp: httpx.Response) -> Any:
        if not resp.content.strip():
            return None
        try:
            payload = resp.json()
        except ValueError as e:
            preview = resp.text[:_BODY_PREVIEW_CHARS]
            logger.warning(
                "Magento %s %s returned non-JSON body (HTTP %d)",
                method, url, resp.status_code,
            )
            raise ApiError(
                f"Invalid JSON response: {preview}",
                status_code=resp.status_code,
            ) from e

        if isinstance(payload, dict) and payload.get("message") is not None:
            err = ApiError.from_payload(payload, status_code=resp.status_code)
            logger.warning(
                "Magento API error on %s %s (HTTP %d): %s",
                method, url, resp.status_code, err,
            )
            raise err
        return payload

    def get(self, path: str, data: Value = None) -> Any:
        return self.call("GET", path, data)

    def post(self, path: str, data: Value) -> Any:
        return self.call("POST", path, data)

    def put(self, path: str, data: Value) -> Any:
        """PUT is idempotent on the Magento side."""
        return self.call("PUT", path, data)

    def delete(self, path: str, data: Value = None) -> Any:
        return self.call("DELETE", path, data)

    def _rest(self, path: str) -> str:
        return f"/rest/{self._store_code}/V1{path}"

    # -- Products --

    def get_product(self, sku: str) -> Any:
        return self.get(self._rest(f"/products/{sku}"))

    def get_products(
        self,
        filters: list[dict] | None = None,
        page_size: int = 100,
        current_page: int = 1,
    ) -> Any:
        """
        Search products. One page per call.

        Args:
            filters: Filter dicts, e.g. {"field": "sku", "value": "AB%", "condition_type": "like"}.
                All filters share one filter group, so Magento ORs them.
            page_size: searchCriteria[pageSize]
            current_page: searchCriteria[currentPage], 1-based
        """
        data = {
            "searchCriteria": {
                "currentPage": current_page,
                "pageSize": page_size,
                "filterGroups": [
                    {"filters": list(filters or [])},
                ],
            },
        }
        return self.get(self._rest("/products/"), data)

    def set_product(self, product: dict) -> Any:
        return self.post(self._rest("/products"), {"product": product})

    def get_product_media(self, sku: str) -> Any:
        return self.get(self._rest(f"/products/{sku}/media"))

    def set_product_media(self, sku: str, entry: dict) -> Any:
        return self.post(self._rest(f"/products/{sku}/media"), {"entry": entry})

    def remove_product_media(self, sku: str, media_id: int | str) -> Any:
        return self.delete(self._rest(f"/products/{sku}/media/{media_id}"))

    # -- Orders --

    def get_orders(self) -> Any:
        return self.get(self._rest("/orders"), {"searchCriteria": "all"})

    def get_order(self, order_id: int | str) -> Any:
        return self.get(self._rest(f"/orders/{order_id}"))

    def set_order(self, order: dict) -> Any:
        return self.put(self._rest("/orders/create"), {"entity": order})

    def set_order_status(self, entity_id: int, status: str, increment_id: str) -> Any:
        """
        Change an order's status.
        Status values: https://docs.magento.com/m2/ce/user_guide/sales/order-status.html
        """
        order = {
            "entity_id": entity_id,
            "status": status,
            "increment_id": increment_id,
        }
        return self.post(self._rest("/orders"), {"entity": order})

    # -- Shipments --

    def get_shipment(self, shipment_id: int | str) -> Any:
        return self.get(self._rest(f"/shipment/{shipment_id}"))

    def get_shipments(self) -> Any:
        return self.get(self._rest("/shipments"), {"searchCriteria": "all"})

    def set_order_shipment(self, entity_id: int | str, shipment: dict) -> Any:
        """Ship an order. ``shipment`` is the raw body (items, tracks, notify, ...)."""
        return self.post(self._rest(f"/order/{entity_id}/ship"), shipment)

    # -- Categories --

    def get_category(self, category_id: int | str) -> Any:
        return self.get(self._rest(f"/categories/{category_id}"))

    def set_category(self, category: dict) -> Any:
        return self.post(self._rest("/categories/"), {"category": category, "saveOptions": True})

    def move_category(self, category_id: int | str, parent_id: int) -> Any:
        return self.put(self._rest(f"/categories/{category_id}/move"), {"parentId": parent_id})
