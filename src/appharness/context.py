"""User-facing handle onto one running backend.

A Harness emulates the request-scoped identity and namespace state the
backend expects, proxies RPC calls to the child, and owns teardown. Use
new_harness to create one, and close it (or use it as a context manager)
when the test is done.
"""

from __future__ import annotations

import logging
import weakref
import zlib
from pathlib import Path
from typing import TypeVar

import httpx
from pydantic import BaseModel

from . import headers as hdr
from .errors import HarnessError
from .harness.admission import AdmissionPermit, admission_gate
from .harness.supervisor import ProcessSupervisor
from .logs import LogRouter
from .rpc.client import RPCProxyClient
from .schemas.endpoints import DEFAULT_COMPONENT, ComponentEndpoint
from .schemas.messages import User
from .schemas.options import HarnessConfig, LogLevel

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def _release(
    supervisor: ProcessSupervisor,
    permit: AdmissionPermit,
    rpc: RPCProxyClient,
    export_to: Path | None = None,
) -> Path | None:
    try:
        rpc.close()
        return supervisor.teardown(export_to)
    finally:
        permit.release()


def derive_user_id(email: str) -> str:
    """Stable id for an email, so repeated logins yield the same identity."""
    return str(zlib.crc32(email.encode("utf-8")))


class Harness:
    """Context facade over a running child process."""

    def __init__(
        self,
        config: HarnessConfig,
        supervisor: ProcessSupervisor,
        permit: AdmissionPermit,
        router: LogRouter | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.request_headers = httpx.Headers()
        self.endpoints: dict[str, ComponentEndpoint] = dict(supervisor.endpoints)
        self._supervisor = supervisor
        self._router = router or LogRouter(config.log_level, config.reporter)
        self._rpc = RPCProxyClient(
            self.endpoints[DEFAULT_COMPONENT].address or "",
            self.request_headers,
            http_client=http_client,
        )
        # Backstop only: runs teardown if the harness is collected without close().
        self._finalizer = weakref.finalize(self, _release, supervisor, permit, self._rpc)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def app_id(self) -> str:
        return self.config.resolved_app_id

    @property
    def fully_qualified_app_id(self) -> str:
        return f"dev~{self.app_id}"

    def login(
        self,
        email: str,
        admin: bool = False,
        user_id: str | None = None,
        federated_identity: str | None = None,
    ) -> User:
        """Emulate a signed-in user on every subsequent call."""
        user = User(
            email=email,
            user_id=user_id or derive_user_id(email),
            admin=admin,
            federated_identity=federated_identity if federated_identity is not None else email,
        )
        self.request_headers[hdr.USER_EMAIL] = user.email
        self.request_headers[hdr.USER_ID] = user.user_id
        self.request_headers[hdr.USER_FEDERATED_IDENTITY] = user.federated_identity
        self.request_headers[hdr.USER_IS_ADMIN] = "1" if admin else "0"
        return user

    def logout(self) -> None:
        for name in hdr.IDENTITY_HEADERS:
            if name in self.request_headers:
                del self.request_headers[name]

    def current_user(self) -> User | None:
        email = self.request_headers.get(hdr.USER_EMAIL)
        if not email:
            return None
        return User(
            email=email,
            user_id=self.request_headers.get(hdr.USER_ID, ""),
            admin=self.request_headers.get(hdr.USER_IS_ADMIN) == "1",
            federated_identity=self.request_headers.get(hdr.USER_FEDERATED_IDENTITY, ""),
        )

    # ------------------------------------------------------------------
    # Namespace
    # ------------------------------------------------------------------
    def current_namespace(self) -> str:
        return self.request_headers.get(hdr.CURRENT_NAMESPACE, "")

    def set_namespace(self, namespace: str) -> None:
        self.request_headers[hdr.CURRENT_NAMESPACE] = namespace

    def default_namespace(self) -> str:
        return self.request_headers.get(hdr.DEFAULT_NAMESPACE, "")

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def debug(self, message: str, *args: object) -> None:
        self._router.emit(LogLevel.DEBUG, message, *args)

    def info(self, message: str, *args: object) -> None:
        self._router.emit(LogLevel.INFO, message, *args)

    def warning(self, message: str, *args: object) -> None:
        self._router.emit(LogLevel.WARNING, message, *args)

    def error(self, message: str, *args: object) -> None:
        self._router.emit(LogLevel.ERROR, message, *args)

    def critical(self, message: str, *args: object) -> None:
        self._router.emit(LogLevel.CRITICAL, message, *args)

    # ------------------------------------------------------------------
    # Calls and components
    # ------------------------------------------------------------------
    def call(self, service: str, method: str, request: BaseModel, response: ResponseT) -> ResponseT:
        """Issue one RPC against the backend and fill response in place."""
        if self.closed:
            raise HarnessError("harness is closed")
        return self._rpc.call(service, method, request, response)

    def module_hostname(self, name: str = DEFAULT_COMPONENT) -> str:
        """Return the announced address of a component."""
        endpoint = self.endpoints.get(name)
        if endpoint is None or endpoint.address is None:
            raise KeyError(f"unknown component {name!r}")
        return endpoint.address

    @property
    def workspace(self) -> Path | None:
        return self._supervisor.workspace

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self, export_to: Path | None = None) -> Path | None:
        """Kill the child, remove the workspace, and release the admission permit.

        Safe to call more than once. When export_to is given the backend's
        datastore file is copied there before the workspace is removed.
        """
        detached = self._finalizer.detach()
        if detached is None:
            return None
        _, func, args, _ = detached
        return func(*args, export_to=export_to)

    def __enter__(self) -> Harness:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_harness(config: HarnessConfig | None = None) -> Harness:
    """Start a backend and return a Harness once every component is ready.

    Raises before anything is spawned for invalid configuration, and with
    AlreadyRunningError while another harness is live. On any setup failure
    the child is killed, the workspace removed, and the permit released.
    """
    config = config or HarnessConfig()
    config.validate_config()
    router = LogRouter(config.log_level, config.reporter)

    supervisor = ProcessSupervisor(config, router)
    permit = admission_gate().acquire()
    try:
        supervisor.spawn()
        harness = Harness(config, supervisor, permit, router)
    except BaseException:
        try:
            # No-op when spawn already cleaned up after itself.
            supervisor.teardown()
        finally:
            permit.release()
        raise
    logger.debug("harness ready: %s", {name: e.address for name, e in harness.endpoints.items()})
    return harness
