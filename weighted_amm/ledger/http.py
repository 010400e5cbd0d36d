"""Explicit request/response transport and an HTTP snapshot accessor."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
import json
from typing import Any, Optional

import requests
import structlog

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.pool import PoolSnapshot
from weighted_amm.ledger.document import snapshot_from_document
from weighted_amm.ledger.interfaces import PoolStateAccessor

logger = structlog.get_logger()


@dataclass(frozen=True)
class HttpRequest:
    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass(frozen=True)
class HttpResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class TransportError(Exception):
    """A request could not be completed or returned a non-2xx status."""

    def __init__(self, request: HttpRequest, message: str, status: Optional[int] = None):
        super().__init__(f"{request.method} {request.path}: {message}")
        self.request = request
        self.status = status


class Transport(ABC):
    """Sends one :class:`HttpRequest` and returns its :class:`HttpResponse`."""

    @abstractmethod
    def send(self, request: HttpRequest) -> HttpResponse:
        pass


class RequestsTransport(Transport):
    """Transport over ``requests`` rooted at ``base_url``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, request: HttpRequest) -> HttpResponse:
        url = self.base_url + "/" + request.path.lstrip("/")
        try:
            r = self.session.request(
                request.method,
                url,
                headers=request.headers,
                data=request.body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(request, str(e)) from e
        return HttpResponse(status=r.status_code, headers=dict(r.headers), body=r.content)


class HttpPoolStateAccessor(PoolStateAccessor):
    """Reads pool snapshots as JSON documents through a :class:`Transport`.

    ``GET {snapshot_path}`` must return the whole snapshot in one document,
    so all fields come from the same ledger point.
    """

    def __init__(
        self,
        transport: Transport,
        snapshot_path: str = "/pools/{pool_id}/snapshot",
        shares_path: Optional[str] = "/pools/{pool_id}/shares/{account}",
    ):
        self.transport = transport
        self.snapshot_path = snapshot_path
        self.shares_path = shares_path

    def _get_json(self, path: str) -> Any:
        request = HttpRequest("GET", path, {"Accept": "application/json"})
        response = self.transport.send(request)
        if not response.ok:
            raise TransportError(request, f"HTTP {response.status}", response.status)
        return response.json()

    def fetch_snapshot(self, pool_id: str) -> PoolSnapshot:
        data = self._get_json(self.snapshot_path.format(pool_id=pool_id))
        snapshot = snapshot_from_document(data, pool_id=pool_id)
        logger.debug("snapshot_fetched", pool=pool_id, tokens=len(snapshot.tokens))
        return snapshot

    def shares_balance(self, pool_id: str, account: str) -> Optional[Decimal]:
        if self.shares_path is None:
            return None
        data = self._get_json(self.shares_path.format(pool_id=pool_id, account=account))
        return fp.to_decimal(data["shares"])
