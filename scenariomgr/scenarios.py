"""Scenario endpoints: CRUD on scenarios and actions on their topology, network and compute."""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from scenariomgr.handlers import (
    DeployError,
    ReturnCode,
    ServiceClients,
    handle_compute,
    handle_network,
    handle_topology,
)
from scenariomgr.models import (
    EventName,
    Scenario,
    ScenarioAction,
    ServiceStatus,
    entity_from_dict,
    entity_to_dict,
)
from scenariomgr.resources import get_store
from scenariomgr.store import NotFoundError, Store
from scenariomgr.utils import (
    KEY_PREFIX_COMPUTE,
    KEY_PREFIX_NETWORK,
    KEY_PREFIX_SCENARIO,
    KEY_PREFIX_SERVICE,
    KEY_PREFIX_TEST,
    KEY_PREFIX_TOPOLOGY,
    entity_update_check,
    gen_uuid,
    response_message,
    update_checker,
)

log = logging.getLogger("scenariomgr")

CLIENTS_KEY = "scenariomgr.clients"

_AVAILABLE = (ServiceStatus.DONE, ServiceStatus.NONE, ServiceStatus.FAILED)

_RELATED = (
    (KEY_PREFIX_TOPOLOGY, "topology_id", "topology not found"),
    (KEY_PREFIX_SERVICE, "service_config_id", "service config not found"),
    (KEY_PREFIX_NETWORK, "network_config_id", "network config not found"),
    (KEY_PREFIX_COMPUTE, "compute_config_id", "compute config not found"),
    (KEY_PREFIX_TEST, "test_config_id", "test config not found"),
)

_STATUS_NAMES = ("DONE", "READY", "DEPLOYING", "DELETING", "ERROR")

# service name -> (handler, label in messages, field of the reply holding item statuses)
_HANDLERS = {
    "topology": (handle_topology, "Topology", "compute_nodes"),
    "network": (handle_network, "Network", None),
    "compute": (handle_compute, "Compute", "vms"),
}


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def _now() -> datetime:
    return datetime.now().astimezone()


def _save(store: Store, scenario: Scenario) -> None:
    store.set(KEY_PREFIX_SCENARIO + scenario.id, entity_to_dict(scenario))


def check_related_entities(store: Store, scenario: Scenario) -> None:
    """Raise ``NotFoundError`` unless every configuration the scenario names exists."""
    for prefix, attribute, message in _RELATED:
        try:
            store.find(getattr(scenario, attribute), prefix)
        except NotFoundError:
            raise NotFoundError(message) from None


def summarize_statuses(items: Iterable[Any], action: EventName | str, label: str) -> str:
    """Count the items by status and describe the counts in one line."""
    counts: Counter[str] = Counter()
    for item in items:
        status = _field(item, "status")
        name = getattr(status, "value", status)
        counts[name if name in _STATUS_NAMES else "Others"] += 1
    return (
        f"{action} on {label} got - DONE: {counts['DONE']}, READY: {counts['READY']}, "
        f"DEPLOYING: {counts['DEPLOYING']}, DELETING: {counts['DELETING']}, "
        f"ERROR: {counts['ERROR']}, Others: {counts['Others']}"
    )


def _encode(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if hasattr(value, "__dict__"):
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}
    raise TypeError(f"cannot encode value of type {type(value).__name__}")


def _reply_body(reply: Any) -> Any:
    try:
        return json.loads(json.dumps(reply, default=_encode))
    except (TypeError, ValueError) as exc:
        log.error("returnBody Error: %s", exc)
        return None


def run_scenario_action(
    store: Store, clients: ServiceClients, action: ScenarioAction
) -> tuple[int, dict[str, Any]]:
    """Carry out a scenario action; return the HTTP status and the response envelope."""
    try:
        scenario = entity_from_dict(
            Scenario, store.find(action.scenario_id, KEY_PREFIX_SCENARIO)
        )
    except (NotFoundError, ValueError):
        return 404, response_message("FAILED", "Scenario not found!", None)

    if scenario.status not in _AVAILABLE:
        return 400, response_message("FAILED", "Scenario is not availalbe now!", None)

    try:
        check_related_entities(store, scenario)
    except NotFoundError as exc:
        return 404, response_message("FAILED", str(exc), None)

    scenario.status = ServiceStatus.DEPLOYING
    _save(store, scenario)

    event = action.service.action
    kind = action.service.service_name.lower()
    if kind not in _HANDLERS:
        return 400, response_message(
            "FAILED", "Scenario Action Failed.", entity_to_dict(action)
        )
    handle, label, items_field = _HANDLERS[kind]

    body: Any = None
    message = ""
    error: str | None = None
    try:
        reply = handle(store, clients, scenario, event)
    except DeployError as exc:
        reply = None
        error = str(exc)
    else:
        if _field(reply, "return_code") == ReturnCode.FAILED:
            error = str(_field(reply, "return_message", ""))

    if error is not None:
        status = ServiceStatus.FAILED
        log.error("'%s' %s failed: %s", event, kind, error)
    else:
        if kind == "topology" and event == EventName.DELETE:
            status = ServiceStatus.NONE
        else:
            status = ServiceStatus.DONE
        log.info("'%s' %s done.", event, kind)
        log.info("return %s for action %s : %s", kind, event, reply)
        if items_field is None:
            message = f"{event} on {label} done"
        else:
            message = summarize_statuses(_field(reply, items_field, []), event, label)
        body = _reply_body(reply)

    scenario.status = status
    scenario.updated_at = _now()
    _save(store, scenario)

    if status == ServiceStatus.FAILED:
        return 500, response_message(
            "FAILED", "Scenario Action Failed.", entity_to_dict(action)
        )
    return 200, response_message("OK", "Action successfully - " + message, body)


def _get_clients() -> ServiceClients:
    clients = current_app.extensions.get(CLIENTS_KEY)
    return clients if clients is not None else ServiceClients()


def _reply(status: str, message: str, data: Any, code: int):
    return jsonify(response_message(status, message, data)), code


def _parse_body(cls: type) -> Any:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return entity_from_dict(cls, data)


def _find_scenario(store: Store, scenario_id: str) -> Scenario:
    return entity_from_dict(Scenario, store.find(scenario_id, KEY_PREFIX_SCENARIO))


def create_scenario_blueprint() -> Blueprint:
    """Build the blueprint serving ``/api/scenarios``."""
    bp = Blueprint("scenarios", __name__, url_prefix="/api/scenarios")

    @bp.route("/actions", methods=["POST"])
    def actions():
        try:
            action = _parse_body(ScenarioAction)
        except ValueError as exc:
            return _reply("FAILED", str(exc), None, 400)
        code, envelope = run_scenario_action(get_store(), _get_clients(), action)
        return jsonify(envelope), code

    @bp.route("/", methods=["POST"], strict_slashes=False)
    def create():
        try:
            scenario = _parse_body(Scenario)
        except ValueError as exc:
            return _reply("FAILED", str(exc), None, 400)
        store = get_store()
        scenario.id = gen_uuid()
        try:
            check_related_entities(store, scenario)
        except NotFoundError as exc:
            return _reply("FAILED", str(exc), None, 404)
        scenario.status = ServiceStatus.NONE
        scenario.created_at = _now()
        scenario.updated_at = _now()
        _save(store, scenario)
        return _reply(
            "OK",
            "Scenario Has been created successfully.",
            entity_to_dict(scenario),
            200,
        )

    @bp.route("/", methods=["GET"], strict_slashes=False)
    def list_all():
        values = get_store().values_with_prefix(KEY_PREFIX_SCENARIO)
        if not values:
            return _reply("FAILED", "scenario not present", None, 404)
        documents = []
        for key, value in values.items():
            try:
                documents.append(entity_to_dict(entity_from_dict(Scenario, value)))
            except ValueError as exc:
                log.error("stored scenario %s is invalid: %s", key, exc)
                documents.append(entity_to_dict(Scenario()))
        return _reply("OK", "OK", documents, 200)

    @bp.route("/<scenario_id>", methods=["GET"])
    def get_one(scenario_id: str):
        if not scenario_id:
            return _reply("FAILED", "Scenario id is missing!", None, 400)
        try:
            scenario = _find_scenario(get_store(), scenario_id)
        except (NotFoundError, ValueError):
            return _reply("FAILED", "Scenario not found!", None, 404)
        return _reply("OK", "OK", entity_to_dict(scenario), 200)

    @bp.route("/<scenario_id>", methods=["PUT"])
    def update(scenario_id: str):
        if not scenario_id:
            return _reply("FAILED", "Scenario id is missing!", None, 400)
        store = get_store()
        try:
            scenario = _find_scenario(store, scenario_id)
        except (NotFoundError, ValueError):
            return _reply("FAILED", "Scenario not found!", None, 404)
        try:
            changes = _parse_body(Scenario)
        except ValueError as exc:
            log.warning("ignoring invalid update of scenario %s: %s", scenario_id, exc)
            changes = Scenario()
        entity_update_check(update_checker, scenario, changes)
        scenario.updated_at = _now()
        try:
            check_related_entities(store, scenario)
        except NotFoundError as exc:
            return _reply("FAILED", str(exc), None, 404)
        store.set(KEY_PREFIX_SCENARIO + scenario_id, entity_to_dict(scenario))
        return _reply("OK", "OK", entity_to_dict(scenario), 200)

    @bp.route("/<scenario_id>", methods=["DELETE"])
    def delete(scenario_id: str):
        if not scenario_id:
            return _reply(
                "FAILED", "Scenario id is missing!", entity_to_dict(Scenario()), 400
            )
        store = get_store()
        try:
            _find_scenario(store, scenario_id)
        except (NotFoundError, ValueError):
            return _reply("FAILED", "Scenario not found!", None, 404)
        store.delete(KEY_PREFIX_SCENARIO + scenario_id)
        return _reply("OK", "Scenario has been deleted!", None, 200)

    return bp