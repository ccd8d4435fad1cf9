"""RPC proxy, wire codec, and namespace injection hooks."""

from .client import LOCAL_SERVICE, RPCProxyClient
from .codec import Codec, PydanticJsonCodec
from .namespace import NamespaceModRegistry, namespace_mods, set_name_space

__all__ = [
    "LOCAL_SERVICE",
    "Codec",
    "NamespaceModRegistry",
    "PydanticJsonCodec",
    "RPCProxyClient",
    "namespace_mods",
    "set_name_space",
]
