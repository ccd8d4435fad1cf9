"""RPC proxy that forwards typed calls to the backend over HTTP."""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel

from .. import headers as hdr
from ..config import settings
from ..errors import RPCCodecError, RPCStatusError, RPCTransportError
from .codec import Codec, PydanticJsonCodec
from .namespace import NamespaceModRegistry, namespace_mods

logger = logging.getLogger(__name__)

LOCAL_SERVICE = "__local__"

# Pseudo-methods answered from the header map without touching the child.
LOCAL_METHODS: dict[str, str] = {
    "GetNamespace": hdr.CURRENT_NAMESPACE,
    "GetDefaultNamespace": hdr.DEFAULT_NAMESPACE,
}

# The child listens on loopback; proxies from the environment must not intercept it.
LOOPBACK_PATTERNS = ("all://127.0.0.1", "all://localhost", "all://[::1]")

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def loopback_mounts() -> dict[str, httpx.BaseTransport]:
    """Direct transports for loopback hosts, so proxy variables never apply to them."""
    return {pattern: httpx.HTTPTransport() for pattern in LOOPBACK_PATTERNS}


def normalize_address(address: str) -> str:
    """Return an http URL for an announced address, with no trailing slash."""
    if "://" not in address:
        address = f"http://{address}"
    return address.rstrip("/")


class RPCProxyClient:
    """Marshals a request, posts it to /call, and unmarshals the response.

    Errors are never retried: a failed call is a failed assertion about the
    backend under test.
    """

    def __init__(
        self,
        address: str,
        headers: httpx.Headers,
        *,
        codec: Codec | None = None,
        mods: NamespaceModRegistry | None = None,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.address = normalize_address(address)
        self._headers = headers
        self._codec = codec or PydanticJsonCodec()
        self._mods = mods if mods is not None else namespace_mods
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            trust_env=True,
            timeout=timeout or settings.rpc_timeout,
            mounts=loopback_mounts(),
        )

    def call(self, service: str, method: str, request: BaseModel, response: ResponseT) -> ResponseT:
        if service == LOCAL_SERVICE and method in LOCAL_METHODS:
            return self._call_local(method, response)

        namespace = self._headers.get(hdr.CURRENT_NAMESPACE)
        if namespace:
            mod = self._mods.get(service)
            if mod is not None:
                mod(request, namespace)

        try:
            body = self._codec.marshal(request)
        except (TypeError, ValueError) as exc:
            raise RPCCodecError(f"could not marshal {service}.{method} request: {exc}") from exc

        outgoing = httpx.Headers(self._headers)
        outgoing["Content-Type"] = self._codec.content_type
        try:
            result = self._http.post(
                f"{self.address}/call",
                params={"s": service, "m": method},
                content=body,
                headers=outgoing,
            )
        except httpx.HTTPError as exc:
            raise RPCTransportError(f"{service}.{method} failed: {exc}") from exc

        if result.status_code != 200:
            raise RPCStatusError(result.status_code, result.content)

        try:
            self._codec.unmarshal(result.content, response)
        except (TypeError, ValueError) as exc:
            raise RPCCodecError(f"could not unmarshal {service}.{method} response: {exc}") from exc
        return response

    def _call_local(self, method: str, response: ResponseT) -> ResponseT:
        value = self._headers.get(LOCAL_METHODS[method], "")
        setattr(response, "value", value)
        logger.debug("answered %s.%s locally", LOCAL_SERVICE, method)
        return response

    def close(self) -> None:
        if self._owns_client:
            self._http.close()
