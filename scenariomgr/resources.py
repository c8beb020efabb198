"""REST endpoints for creating, listing, reading, updating and deleting configurations."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from scenariomgr.models import (
    ComputeConfig,
    NetworkConfig,
    ServiceStatus,
    TopologyConfig,
    entity_from_dict,
    entity_to_dict,
)
from scenariomgr.store import NotFoundError, Store
from scenariomgr.utils import (
    KEY_PREFIX_COMPUTE,
    KEY_PREFIX_NETWORK,
    KEY_PREFIX_TOPOLOGY,
    entity_update_check,
    gen_uuid,
    response_message,
    update_checker,
)

log = logging.getLogger("scenariomgr")

STORE_KEY = "scenariomgr.store"


@dataclasses.dataclass(frozen=True)
class ResourceSpec:
    """Describes one kind of configuration exposed as a REST collection."""

    name: str
    url_prefix: str
    entity_cls: type
    key_prefix: str
    label: str
    created_message: str | None = None
    tracks_status: bool = True

    @property
    def creation_message(self) -> str:
        return self.created_message or f"{self.label} has been created successfully."

    @property
    def not_present_message(self) -> str:
        return f"{self.label.lower()} not present"

    @property
    def missing_id_message(self) -> str:
        return f"{self.label} id is missing!"

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found!"

    @property
    def deleted_message(self) -> str:
        return f"{self.label} has been deleted!"


TOPOLOGY_SPEC = ResourceSpec(
    name="topologies",
    url_prefix="/api/topologies",
    entity_cls=TopologyConfig,
    key_prefix=KEY_PREFIX_TOPOLOGY,
    label="Topology",
    created_message="Topology Has been created successfully.",
)

NETWORK_SPEC = ResourceSpec(
    name="network_configs",
    url_prefix="/api/network-config",
    entity_cls=NetworkConfig,
    key_prefix=KEY_PREFIX_NETWORK,
    label="Network config",
)

COMPUTE_SPEC = ResourceSpec(
    name="compute_configs",
    url_prefix="/api/compute-config",
    entity_cls=ComputeConfig,
    key_prefix=KEY_PREFIX_COMPUTE,
    label="Compute config",
)


def get_store() -> Store:
    """Return the store registered on the current Flask application."""
    store = current_app.extensions.get(STORE_KEY)
    if store is None:
        raise RuntimeError("no store registered on the application")
    return store


def _now() -> datetime:
    return datetime.now().astimezone()


def _reply(status: str, message: str, data: Any, code: int):
    return jsonify(response_message(status, message, data)), code


def _parse_body(cls: type) -> Any:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return entity_from_dict(cls, data)


def create_resource_blueprint(spec: ResourceSpec) -> Blueprint:
    """Build the blueprint serving the collection described by ``spec``."""
    bp = Blueprint(spec.name, __name__, url_prefix=spec.url_prefix)

    def _find(store: Store, entity_id: str) -> Any:
        return entity_from_dict(spec.entity_cls, store.find(entity_id, spec.key_prefix))

    @bp.route("/", methods=["POST"], strict_slashes=False)
    def create():
        try:
            entity = _parse_body(spec.entity_cls)
        except ValueError as exc:
            return _reply("FAILED", str(exc), None, 400)
        entity.id = gen_uuid()
        if spec.tracks_status:
            entity.status = ServiceStatus.NONE
        entity.created_at = _now()
        entity.updated_at = _now()
        document = entity_to_dict(entity)
        get_store().set(spec.key_prefix + entity.id, document)
        return _reply("OK", spec.creation_message, document, 200)

    @bp.route("/", methods=["GET"], strict_slashes=False)
    def list_all():
        values = get_store().values_with_prefix(spec.key_prefix)
        if not values:
            return _reply("FAILED", spec.not_present_message, None, 404)
        documents = []
        for key, value in values.items():
            try:
                documents.append(entity_to_dict(entity_from_dict(spec.entity_cls, value)))
            except ValueError as exc:
                log.error("stored entity %s is invalid: %s", key, exc)
                documents.append(entity_to_dict(spec.entity_cls()))
        return _reply("OK", "OK", documents, 200)

    @bp.route("/<entity_id>", methods=["GET"])
    def get_one(entity_id: str):
        if not entity_id:
            return _reply("FAILED", spec.missing_id_message, None, 400)
        try:
            entity = _find(get_store(), entity_id)
        except (NotFoundError, ValueError):
            return _reply("FAILED", spec.not_found_message, None, 404)
        return _reply("OK", "OK", entity_to_dict(entity), 200)

    @bp.route("/<entity_id>", methods=["PUT"])
    def update(entity_id: str):
        if not entity_id:
            return _reply("FAILED", spec.missing_id_message, None, 400)
        store = get_store()
        try:
            entity = _find(store, entity_id)
        except (NotFoundError, ValueError):
            return _reply("FAILED", spec.not_found_message, None, 404)
        try:
            changes = _parse_body(spec.entity_cls)
        except ValueError as exc:
            log.warning("ignoring invalid update of %s %s: %s", spec.label, entity_id, exc)
            changes = spec.entity_cls()
        entity_update_check(update_checker, entity, changes)
        entity.updated_at = _now()
        document = entity_to_dict(entity)
        store.set(spec.key_prefix + entity_id, document)
        return _reply("OK", "OK", document, 200)

    @bp.route("/<entity_id>", methods=["DELETE"])
    def delete(entity_id: str):
        if not entity_id:
            return _reply("FAILED", spec.missing_id_message, None, 400)
        store = get_store()
        try:
            _find(store, entity_id)
        except (NotFoundError, ValueError):
            return _reply("FAILED", spec.not_found_message, None, 404)
        store.delete(spec.key_prefix + entity_id)
        return _reply("OK", spec.deleted_message, None, 200)

    return bp