"""Entities kept by the scenario manager and their JSON form."""

import dataclasses
import enum
import re
import types
import typing
from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

T = TypeVar("T")


class EventName(str, enum.Enum):
    """Action requested on a part of a scenario."""

    DEPLOY = "DEPLOY"
    DELETE = "DELETE"
    UPDATE = "UPDATE"
    CHECK = "CHECK"

    def __str__(self) -> str:
        return self.value


class ServiceStatus(str, enum.Enum):
    """Lifecycle state of a scenario or configuration; ``UNSET`` means not given."""

    UNSET = ""
    NONE = "NONE"
    DEPLOYING = "DEPLOYING"
    READY = "READY"
    DELETING = "DELETING"
    UPDATING = "UPDATING"
    FAILED = "FAILED"
    DONE = "DONE"

    def __str__(self) -> str:
        return self.value


def _list_field() -> Any:
    return dataclasses.field(default_factory=list)


@dataclasses.dataclass
class Image:
    id: str = ""
    name: str = ""
    registry: str = ""
    cmd: list[str] = _list_field()
    args: list[str] = _list_field()


@dataclasses.dataclass
class Nic:
    name: str = ""
    ip: str = ""


@dataclasses.dataclass
class VNode:
    name: str = ""
    type: str = ""
    nics: list[Nic] = _list_field()


@dataclasses.dataclass
class VLink:
    name: str = ""
    from_: str = dataclasses.field(default="", metadata={"json": "from"})
    to: str = ""


@dataclasses.dataclass
class TopologyConfig:
    id: str = ""
    name: str = ""
    status: ServiceStatus = ServiceStatus.UNSET
    topo_type: str = ""
    number_of_vhosts: int = 0
    number_of_racks: int = 0
    vhosts_per_rack: int = 0
    ports_per_vswitch: int = 0
    data_plane_cidr: str = ""
    number_of_gateways: int = 0
    gateway_ips: list[str] = _list_field()
    images: list[Image] = _list_field()
    vnodes: list[VNode] = _list_field()
    vlinks: list[VLink] = _list_field()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclasses.dataclass
class SubnetInfo:
    subnet_id: str = ""
    subnet_cidr: str = ""
    subnet_gateway: str = ""
    number_of_vms: int = 0


@dataclasses.dataclass
class VPCInfo:
    vpc_id: str = ""
    tenant_id: str = ""
    project_id: str = ""
    vpc_cidr: str = ""
    number_of_subnets: int = 0
    subnet_info: list[SubnetInfo] = _list_field()


@dataclasses.dataclass
class Router:
    id: str = ""
    name: str = ""
    subnet_gateways: list[str] = _list_field()


@dataclasses.dataclass
class Gateway:
    id: str = ""
    name: str = ""
    ips: list[str] = _list_field()


@dataclasses.dataclass
class Rule:
    id: str = ""
    name: str = ""
    description: str = ""
    direction: str = ""
    ether_type: str = ""
    port_range: str = ""
    protocol: str = ""
    remote_group_id: str = ""
    remote_ip_prefix: str = ""


@dataclasses.dataclass
class SecurityGroup:
    id: str = ""
    name: str = ""
    tenant_id: str = ""
    project_id: str = ""
    rules: list[Rule] = _list_field()
    apply_to: list[str] = _list_field()


@dataclasses.dataclass
class NetworkConfig:
    id: str = ""
    name: str = ""
    status: ServiceStatus = ServiceStatus.UNSET
    number_of_vpcs: int = 0
    number_of_subnet_per_vpc: int = 0
    number_of_security_groups: int = 0
    vpcs: list[VPCInfo] = _list_field()
    routers: list[Router] = _list_field()
    gateways: list[Gateway] = _list_field()
    security_groups: list[SecurityGroup] = _list_field()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclasses.dataclass
class Service:
    id: str = ""
    name: str = ""
    cmd: str = ""
    url: str = ""
    parameters: list[str] = _list_field()
    return_code: list[int] = _list_field()
    return_string: list[str] = _list_field()
    when_to_run: str = ""
    where_to_run: str = ""


@dataclasses.dataclass
class ServiceConfig:
    id: str = ""
    name: str = ""
    services: list[Service] = _list_field()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclasses.dataclass
class ComputeConfig:
    id: str = ""
    name: str = ""
    status: ServiceStatus = ServiceStatus.UNSET
    number_of_compute_nodes: int = 0
    number_of_port_per_vm: int = 0
    number_of_vm_per_vpc: int = 0
    scheduler: str = ""
    vm_deploy_type: str = ""
    vpc_info: list[VPCInfo] = _list_field()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclasses.dataclass
class Test:
    __test__ = False  # not a pytest test class

    id: str = ""
    name: str = ""
    cmd: str = ""
    script: str = ""
    parameters: list[str] = _list_field()
    when_to_run: str = ""
    where_to_run: str = ""


@dataclasses.dataclass
class TestConfig:
    __test__ = False  # not a pytest test class

    id: str = ""
    name: str = ""
    status: ServiceStatus = ServiceStatus.UNSET
    tests: list[Test] = _list_field()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclasses.dataclass
class Scenario:
    id: str = ""
    name: str = ""
    project_id: str = ""
    status: ServiceStatus = ServiceStatus.UNSET
    topology_id: str = ""
    service_config_id: str = ""
    network_config_id: str = ""
    compute_config_id: str = ""
    test_config_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclasses.dataclass
class ServiceAction:
    action: EventName | str = ""
    service_name: str = ""


@dataclasses.dataclass
class ScenarioAction:
    scenario_id: str = ""
    service: ServiceAction = dataclasses.field(default_factory=ServiceAction)


def _json_key(field: dataclasses.Field) -> str:
    return field.metadata.get("json", field.name)


_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def _parse_datetime(value: Any, where: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"{where}: expected a timestamp string")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    text = _EXTRA_FRACTION.sub(r"\1", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"{where}: invalid timestamp '{value}'") from None


def _convert(tp: Any, value: Any, where: str) -> Any:
    origin = typing.get_origin(tp)
    if origin in (typing.Union, types.UnionType):
        if value is None:
            return None
        args = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        return _convert(args[0], value, where)
    if origin is list:
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"{where}: expected a list")
        (item_type,) = typing.get_args(tp)
        return [
            _convert(item_type, item, f"{where}[{index}]")
            for index, item in enumerate(value)
        ]
    if not isinstance(tp, type):
        return value
    if dataclasses.is_dataclass(tp):
        if not isinstance(value, Mapping):
            raise ValueError(f"{where}: expected an object")
        return entity_from_dict(tp, value)
    if issubclass(tp, enum.Enum):
        if not isinstance(value, str):
            raise ValueError(f"{where}: expected a string")
        try:
            return tp(value)
        except ValueError:
            return value
    if tp is datetime:
        return _parse_datetime(value, where)
    if tp is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{where}: expected a boolean")
        return value
    if tp is int:
        if isinstance(value, bool):
            raise ValueError(f"{where}: expected a number")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise ValueError(f"{where}: expected an integer")
    if tp is str:
        if not isinstance(value, str):
            raise ValueError(f"{where}: expected a string")
        return value
    return value


def entity_from_dict(cls: type[T], data: Mapping[str, Any]) -> T:
    """Build an entity of type ``cls`` from its JSON object.

    Missing or null keys keep their defaults, unknown keys are ignored and
    values of the wrong kind raise ``ValueError``.
    """
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls!r} is not an entity type")
    if not isinstance(data, Mapping):
        raise ValueError(f"{cls.__name__}: expected an object")
    values: dict[str, Any] = {}
    for field in dataclasses.fields(cls):
        key = _json_key(field)
        if key not in data or data[key] is None:
            continue
        values[field.name] = _convert(field.type, data[key], key)
    return cls(**values)


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return entity_to_dict(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    return value


def entity_to_dict(entity: Any) -> dict[str, Any]:
    """Return the JSON object of ``entity``."""
    if not dataclasses.is_dataclass(entity) or isinstance(entity, type):
        raise TypeError("entity must be a dataclass instance")
    return {
        _json_key(field): _plain(getattr(entity, field.name))
        for field in dataclasses.fields(entity)
    }