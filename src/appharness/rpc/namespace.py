"""Per-service hooks that inject the current namespace into outgoing requests."""

from __future__ import annotations

from collections.abc import Callable

from pydantic import BaseModel

NamespaceMod = Callable[[BaseModel, str], None]

NAMESPACE_FIELD = "name_space"


def set_name_space(message: BaseModel, namespace: str) -> None:
    """Fill the request's name_space field unless the caller already set one."""
    if NAMESPACE_FIELD not in type(message).model_fields:
        return
    if getattr(message, NAMESPACE_FIELD, None):
        return
    setattr(message, NAMESPACE_FIELD, namespace)


class NamespaceModRegistry:
    """Simple registry mapping service names to namespace hooks."""

    def __init__(self) -> None:
        self._mods: dict[str, NamespaceMod] = {}

    def register(self, service: str, mod: NamespaceMod) -> None:
        self._mods[service] = mod

    def unregister(self, service: str) -> None:
        self._mods.pop(service, None)

    def get(self, service: str) -> NamespaceMod | None:
        return self._mods.get(service)

    def __contains__(self, service: object) -> bool:
        return service in self._mods


namespace_mods = NamespaceModRegistry()


# Default registrations for the namespaced backend services
for _service in ("datastore_v3", "memcache", "taskqueue", "search"):
    namespace_mods.register(_service, set_name_space)
