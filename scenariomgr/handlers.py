"""Drive deploy, delete and check actions against the topology, network and compute services."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from scenariomgr.messages import (
    MessageError,
    build_compute_message,
    build_network_message,
    build_topology_message,
)
from scenariomgr.models import (
    ComputeConfig,
    EventName,
    NetworkConfig,
    Scenario,
    ServiceConfig,
    ServiceStatus,
    TopologyConfig,
    entity_from_dict,
    entity_to_dict,
)
from scenariomgr.store import NotFoundError, Store
from scenariomgr.utils import (
    KEY_PREFIX_COMPUTE,
    KEY_PREFIX_NETWORK,
    KEY_PREFIX_SERVICE,
    KEY_PREFIX_TOPOLOGY,
)

log = logging.getLogger("scenariomgr")

T = TypeVar("T")

Transport = Callable[[dict[str, Any]], Any]


class DeployError(RuntimeError):
    """Raised when an action on part of a scenario cannot be carried out."""


class ReturnCode(str, enum.Enum):
    """Outcome reported by a downstream service."""

    OK = "OK"
    FAILED = "FAILED"

    def __str__(self) -> str:
        return self.value


class ServiceClients:
    """Senders of requests to the topology, network and compute services.

    Each transport takes the request message and returns the service's reply,
    a mapping or an object with ``return_code`` and ``return_message``.
    """

    def __init__(
        self,
        topology: Transport | None = None,
        network: Transport | None = None,
        compute: Transport | None = None,
    ) -> None:
        self._transports: dict[str, Transport | None] = {
            "topology": topology,
            "network": network,
            "compute": compute,
        }

    def _send(self, name: str, message: dict[str, Any]) -> Any:
        transport = self._transports[name]
        if transport is None:
            raise DeployError(f"no client configured for the {name} service")
        return transport(message)

    def topology(self, message: dict[str, Any]) -> Any:
        """Send ``message`` to the topology service and return its reply."""
        return self._send("topology", message)

    def network(self, message: dict[str, Any]) -> Any:
        """Send ``message`` to the network service and return its reply."""
        return self._send("network", message)

    def compute(self, message: dict[str, Any]) -> Any:
        """Send ``message`` to the compute service and return its reply."""
        return self._send("compute", message)


def action_to_status(action: EventName | str) -> ServiceStatus:
    """Status an entity takes while ``action`` is in progress."""
    if action == EventName.DEPLOY:
        return ServiceStatus.DEPLOYING
    if action == EventName.DELETE:
        return ServiceStatus.DELETING
    if action == EventName.UPDATE:
        return ServiceStatus.UPDATING
    return ServiceStatus.FAILED


def _field(reply: Any, name: str, default: Any = None) -> Any:
    if reply is None:
        return default
    if isinstance(reply, Mapping):
        value = reply.get(name, default)
    else:
        value = getattr(reply, name, default)
    return default if value is None else value


def _load(store: Store, cls: type[T], entity_id: str, prefix: str, error: str) -> T:
    try:
        return entity_from_dict(cls, store.find(entity_id, prefix))
    except (NotFoundError, ValueError):
        raise DeployError(error) from None


def _save(store: Store, prefix: str, entity: Any) -> None:
    store.set(prefix + entity.id, entity_to_dict(entity))


def _check_state(label: str, entity: Any, action: EventName | str) -> None:
    if action == EventName.DEPLOY and entity.status != ServiceStatus.NONE:
        raise DeployError(f"{label} '{entity.id}' is '{entity.status}' now")
    if action == EventName.DELETE and entity.status not in (
        ServiceStatus.FAILED,
        ServiceStatus.READY,
    ):
        raise DeployError(f"{label} '{entity.id}' is '{entity.status}' now")


def _require_idle(
    store: Store, cls: type[Any], entity_id: str, prefix: str, label: str
) -> None:
    entity = _load(store, cls, entity_id, prefix, f"{label} '{entity_id}' not found")
    if entity.status != ServiceStatus.NONE:
        raise DeployError(f"{label} '{entity_id}' is '{entity.status}' now")


def _dispatch(
    store: Store,
    label: str,
    prefix: str,
    entity: Any,
    send: Transport,
    message: dict[str, Any],
    action: EventName | str,
) -> Any:
    changes = action != EventName.CHECK
    if changes:
        entity.status = action_to_status(action)
        _save(store, prefix, entity)

    error: str | None = None
    try:
        reply = send(message)
    except Exception as exc:  # any transport failure marks the action failed
        reply = None
        error = str(exc)
    if reply is None and error is None:
        error = "no reply"

    if error is not None or _field(reply, "return_code") == ReturnCode.FAILED:
        if changes:
            entity.status = ServiceStatus.FAILED
            _save(store, prefix, entity)
        if reply is not None:
            raise DeployError(
                f"deploy {label} failed, return = '{_field(reply, 'return_message', '')}'"
            )
        raise DeployError(f"deploy {label} failed, Error = '{error}'")

    log.info("response %s message: %s", label, reply)

    if action == EventName.DEPLOY:
        entity.status = ServiceStatus.READY
    elif action == EventName.DELETE:
        entity.status = ServiceStatus.NONE
    if changes:
        _save(store, prefix, entity)
    return reply


def handle_topology(
    store: Store, clients: ServiceClients, scenario: Scenario, action: EventName | str
) -> Any:
    """Carry out ``action`` on the scenario's topology and return the reply."""
    topology = _load(
        store,
        TopologyConfig,
        scenario.topology_id,
        KEY_PREFIX_TOPOLOGY,
        f"topology {scenario.topology_id} not found",
    )
    _check_state("topology", topology, action)

    if action != EventName.CHECK:
        _require_idle(
            store,
            NetworkConfig,
            scenario.network_config_id,
            KEY_PREFIX_NETWORK,
            "network config",
        )
        _require_idle(
            store,
            ComputeConfig,
            scenario.compute_config_id,
            KEY_PREFIX_COMPUTE,
            "compute config",
        )

    service = _load(
        store,
        ServiceConfig,
        scenario.service_config_id,
        KEY_PREFIX_SERVICE,
        f"service {scenario.service_config_id} config not found",
    )

    try:
        message = build_topology_message(topology, service, action)
    except MessageError:
        raise DeployError("topology protobuf message error") from None
    log.info("constructTopologyMessage: %s", message)

    return _dispatch(
        store, "topology", KEY_PREFIX_TOPOLOGY, topology, clients.topology, message, action
    )


def _ready_topology(store: Store, clients: ServiceClients, scenario: Scenario) -> Any:
    try:
        reply = handle_topology(store, clients, scenario, EventName.CHECK)
    except DeployError:
        raise DeployError(
            f"topology {scenario.topology_id} didn't return message"
        ) from None
    if _field(reply, "return_code") != ReturnCode.OK:
        raise DeployError(f"topology {scenario.topology_id} is not ready")
    return reply


def handle_network(
    store: Store, clients: ServiceClients, scenario: Scenario, action: EventName | str
) -> Any:
    """Carry out ``action`` on the scenario's network config and return the reply."""
    network = _load(
        store,
        NetworkConfig,
        scenario.network_config_id,
        KEY_PREFIX_NETWORK,
        f"network config {scenario.network_config_id} not found",
    )
    _check_state("network", network, action)

    if action == EventName.CHECK:
        service = None
        topology_reply = None
    else:
        _require_idle(
            store,
            ComputeConfig,
            scenario.compute_config_id,
            KEY_PREFIX_COMPUTE,
            "compute config",
        )
        service = _load(
            store,
            ServiceConfig,
            scenario.service_config_id,
            KEY_PREFIX_SERVICE,
            f"service {scenario.service_config_id} config not found",
        )
        topology_reply = _ready_topology(store, clients, scenario)

    try:
        message = build_network_message(network, service, topology_reply, action)
    except MessageError:
        raise DeployError("netconfig protobuf message error") from None
    log.info("constructNetConfMessage: %s", message)

    return _dispatch(
        store, "network", KEY_PREFIX_NETWORK, network, clients.network, message, action
    )


def handle_compute(
    store: Store, clients: ServiceClients, scenario: Scenario, action: EventName | str
) -> Any:
    """Carry out ``action`` on the scenario's compute config and return the reply."""
    compute = _load(
        store,
        ComputeConfig,
        scenario.compute_config_id,
        KEY_PREFIX_COMPUTE,
        f"compute config {scenario.compute_config_id} not found",
    )
    _check_state("compute", compute, action)

    if action == EventName.CHECK:
        service = None
        topology_reply = None
        network_reply = None
    else:
        service = _load(
            store,
            ServiceConfig,
            scenario.service_config_id,
            KEY_PREFIX_SERVICE,
            "service config not found",
        )
        topology_reply = _ready_topology(store, clients, scenario)
        try:
            network_reply = handle_network(store, clients, scenario, EventName.CHECK)
        except DeployError:
            raise DeployError(
                f"network {scenario.network_config_id} didn't return message"
            ) from None
        if _field(network_reply, "return_code") != ReturnCode.OK:
            raise DeployError(f"network {scenario.network_config_id} is not ready")

    try:
        message = build_compute_message(
            compute, service, topology_reply, network_reply, action
        )
    except MessageError as exc:
        raise DeployError(str(exc)) from None
    log.info("constructComputeMessage: %s", message)

    return _dispatch(
        store, "compute", KEY_PREFIX_COMPUTE, compute, clients.compute, message, action
    )