# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Connection layer: endpoint tracking and administrative commands."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Optional

from pymongo import MongoClient
from pymongo.errors import OperationFailure, PyMongoError
from pymongo.uri_parser import parse_uri

logger = logging.getLogger(__name__)

DEFAULT_PORT = 27017

# replSetGetStatus "myState" values
MEMBER_STATES = {
    0: "STARTUP",
    1: "PRIMARY",
    2: "SECONDARY",
    3: "RECOVERING",
    5: "STARTUP2",
    6: "UNKNOWN",
    7: "ARBITER",
    8: "DOWN",
    9: "ROLLBACK",
    10: "REMOVED",
}


@dataclass(frozen=True)
class Endpoint:
    """Normalized identity of a server address the session has used."""
    hosts: tuple[tuple[str, int], ...]
    database: str = ""

    @classmethod
    def from_uri(cls, uri: str) -> "Endpoint":
        parsed = parse_uri(uri, default_port=DEFAULT_PORT, validate=False)
        hosts = tuple(sorted((host.lower(), int(port)) for host, port in parsed["nodelist"]))
        return cls(hosts=hosts, database=parsed.get("database") or "")

    @property
    def uri(self) -> str:
        seeds = ",".join(
            f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
            for host, port in self.hosts
        )
        return f"mongodb://{seeds}/{self.database}"

    def __str__(self) -> str:
        return self.uri


@dataclass
class RunningOperation:
    """One entry of a server's in-progress operation list."""
    operation_id: Any
    client_identity: str
    description: str = ""

    @classmethod
    def from_current_op(cls, op: dict) -> "RunningOperation":
        return cls(
            operation_id=op.get("opid"),
            client_identity=op.get("appName") or "",
            description=str(op.get("op", "")) + " " + str(op.get("ns", "")),
        )


class EndpointRegistry:
    """Maps each endpoint to the client identities this session used on it.

    The connection layer adds entries as connections are opened; the kill
    coordinator only reads them.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._entries: dict[Endpoint, set[str]] = {}

    def register(self, endpoint: Endpoint, client_identity: str) -> None:
        with self._lock:
            self._entries.setdefault(endpoint, set()).add(client_identity)

    def snapshot(self) -> dict[Endpoint, frozenset[str]]:
        with self._lock:
            return {ep: frozenset(ids) for ep, ids in self._entries.items()}

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __bool__(self) -> bool:
        return len(self) > 0


class ConnectionLayer:
    """Opens clients and issues the admin commands the shell needs.

    Usage:
        layer = ConnectionLayer(registry, app_name="dbshell-1234")
        client = layer.connect("mongodb://localhost:27017/test")

        with layer.admin_connection(endpoint) as admin:
            for op in admin.running_operations():
                admin.kill_operation(op.operation_id)
    """

    # Identity used by the short-lived admin clients, never by user work
    ADMIN_SUFFIX = "-admin"

    def __init__(
        self,
        registry: EndpointRegistry,
        app_name: str,
        client_factory=MongoClient,
        **client_options,
    ):
        self.registry = registry
        self.app_name = app_name
        self._client_factory = client_factory
        self._client_options = client_options

    def connect(self, uri: str) -> MongoClient:
        """Open a client for ``uri`` and record the endpoint."""
        endpoint = Endpoint.from_uri(uri)
        client = self._client_factory(uri, appname=self.app_name, **self._client_options)
        self.registry.register(endpoint, self.app_name)
        logger.debug("Connected to %s as %s", endpoint, self.app_name)
        return client

    @contextmanager
    def admin_connection(self, endpoint: Endpoint) -> Iterator["AdminConnection"]:
        """Open one short-lived admin client for ``endpoint``, closed on exit."""
        client = self._client_factory(
            endpoint.uri,
            appname=self.app_name + self.ADMIN_SUFFIX,
            **self._client_options,
        )
        try:
            yield AdminConnection(endpoint, client)
        finally:
            client.close()


class AdminConnection:
    """currentOp and killOp over a single admin client."""

    def __init__(self, endpoint: Endpoint, client: MongoClient):
        self.endpoint = endpoint
        self.client = client

    def running_operations(self) -> list[RunningOperation]:
        """Return the operations currently in progress on the endpoint."""
        result = self.client.admin.command("currentOp")
        return [RunningOperation.from_current_op(op) for op in result.get("inprog", [])]

    def kill_operation(self, operation_id: Any) -> None:
        self.client.admin.command("killOp", op=operation_id)
        logger.debug("Killed op %s on %s", operation_id, self.endpoint)


def replica_set_state(client: Optional[MongoClient]) -> str:
    """Describe the member the client is talking to, for the prompt.

    Returns ``"<set>:<STATE>"`` for replica set members, a short server
    description such as ``mongos`` when the server explains why it is not
    one, and ``""`` otherwise.
    """
    if client is None:
        return ""
    try:
        info = client.admin.command({"replSetGetStatus": 1, "forShell": 1})
        state = MEMBER_STATES.get(info.get("myState"), "UNKNOWN")
        return f"{info['set']}:{state}"
    except OperationFailure as e:
        details = e.details or {}
        text = details.get("info") or ""
        if isinstance(text, str) and len(text) < 20:
            return text
    except PyMongoError as e:
        logger.debug("error in replica_set_state: %s", e)
    return ""
