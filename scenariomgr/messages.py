"""Build the request messages sent to the topology, network and compute services."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

from scenariomgr.models import (
    ComputeConfig,
    EventName,
    NetworkConfig,
    Service,
    ServiceConfig,
    TopologyConfig,
)
from scenariomgr.utils import MERAK_AGENT, MERAK_COMPUTE, MERAK_NETWORK, gen_uuid

MESSAGE_TYPE_FULL = "FULL"
FORMAT_VERSION = 1
REVISION_NUMBER = 1


class MessageError(ValueError):
    """Raised when a message cannot be built from the given configuration."""


class _NamedEnum(str, enum.Enum):
    def __str__(self) -> str:
        return self.value


class OperationType(_NamedEnum):
    CREATE = "CREATE"
    DELETE = "DELETE"
    UPDATE = "UPDATE"
    INFO = "INFO"


class TopologyType(_NamedEnum):
    LINEAR = "LINEAR"
    SINGLE = "SINGLE"
    REVERSED = "REVERSED"
    MESH = "MESH"
    CUSTOM = "CUSTOM"
    TREE = "TREE"


class VNodeType(_NamedEnum):
    VSWITCH = "VSWITCH"
    VROUTER = "VROUTER"
    VGATEWAY = "VGATEWAY"
    VHOST = "VHOST"


class VMDeployType(_NamedEnum):
    ASSIGN = "ASSIGN"
    SKEW = "SKEW"
    RANDOM = "RANDOM"
    UNIFORM = "UNIFORM"


class VMScheduleType(_NamedEnum):
    SEQUENTIAL = "SEQUENTIAL"
    RPS = "RPS"
    RANDOM_SCHEDULE = "RANDOM_SCHEDULE"


def action_to_operation(action: EventName | str) -> OperationType:
    """Map a scenario action to the operation carried in messages."""
    if action == EventName.DEPLOY:
        return OperationType.CREATE
    if action == EventName.DELETE:
        return OperationType.DELETE
    if action == EventName.UPDATE:
        return OperationType.UPDATE
    return OperationType.INFO


_TOPOLOGY_TYPES = {
    "linear": TopologyType.LINEAR,
    "single": TopologyType.SINGLE,
    "reversed": TopologyType.REVERSED,
    "mesh": TopologyType.MESH,
    "custom": TopologyType.CUSTOM,
}

_VNODE_TYPES = {
    "vswitch": VNodeType.VSWITCH,
    "vrouter": VNodeType.VROUTER,
    "vgateway": VNodeType.VGATEWAY,
}

_DEPLOY_TYPES = {
    "assign": VMDeployType.ASSIGN,
    "skew": VMDeployType.SKEW,
    "random": VMDeployType.RANDOM,
}

_SCHEDULERS = {
    "sequential": VMScheduleType.SEQUENTIAL,
    "skew": VMScheduleType.RPS,
    "random": VMScheduleType.RANDOM_SCHEDULE,
}


def topology_type(name: str) -> TopologyType:
    """Topology type named ``name``, case-insensitively; TREE otherwise."""
    return _TOPOLOGY_TYPES.get(name.lower(), TopologyType.TREE)


def vnode_type(name: str) -> VNodeType:
    """Virtual node type named ``name``, case-insensitively; VHOST otherwise."""
    return _VNODE_TYPES.get(name.lower(), VNodeType.VHOST)


def vm_deploy_type(name: str) -> VMDeployType:
    """VM deploy type named ``name``, case-insensitively; UNIFORM otherwise."""
    return _DEPLOY_TYPES.get(name.lower(), VMDeployType.UNIFORM)


def vm_scheduler(name: str) -> VMScheduleType:
    """VM scheduler named ``name``, case-insensitively; SEQUENTIAL otherwise."""
    return _SCHEDULERS.get(name.lower(), VMScheduleType.SEQUENTIAL)


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def _service_message(service: Service, operation: OperationType) -> dict[str, Any]:
    return {
        "operation_type": operation,
        "id": service.id,
        "name": service.name,
        "cmd": service.cmd,
        "url": service.url,
        "parameters": list(service.parameters),
        "return_code": list(service.return_code),
        "return_string": list(service.return_string),
        "when_to_run": service.when_to_run,
        "where_to_run": service.where_to_run,
    }


def _services_for(
    service_config: ServiceConfig | None,
    places: tuple[str, ...],
    operation: OperationType,
) -> list[dict[str, Any]]:
    if service_config is None:
        return []
    return [
        _service_message(service, operation)
        for service in service_config.services
        if service.where_to_run.upper() in places
    ]


def _header(action: EventName | str) -> dict[str, Any]:
    return {
        "format_version": FORMAT_VERSION,
        "revision_number": REVISION_NUMBER,
        "request_id": gen_uuid(),
        "message_type": MESSAGE_TYPE_FULL,
    }


def build_topology_message(
    topology: TopologyConfig,
    service_config: ServiceConfig | None,
    action: EventName | str,
) -> dict[str, Any]:
    """Build the request for the topology service."""
    operation = action_to_operation(action)
    config = _header(action)
    config.update(
        {
            "topology_id": topology.id,
            "name": topology.name,
            "topology_type": topology_type(topology.topo_type),
            "number_of_vhosts": topology.number_of_vhosts,
            "number_of_racks": topology.number_of_racks,
            "vhost_per_rack": topology.vhosts_per_rack,
            "ports_per_vswitch": topology.ports_per_vswitch,
            "data_plane_cidr": topology.data_plane_cidr,
            "number_of_gateways": topology.number_of_gateways,
            "gateway_ips": list(topology.gateway_ips),
            "services": _services_for(service_config, (MERAK_AGENT,), operation),
            "images": [
                {
                    "operation_type": operation,
                    "id": image.id,
                    "name": image.name,
                    "cmd": list(image.cmd),
                    "args": list(image.args),
                    "registry": image.registry,
                }
                for image in topology.images
            ],
            "vnodes": [
                {
                    "operation_type": operation,
                    "name": vnode.name,
                    "type": vnode_type(vnode.type),
                    "vnics": [{"name": nic.name, "ip": nic.ip} for nic in vnode.nics],
                }
                for vnode in topology.vnodes
            ],
        }
    )
    return {"operation_type": operation, "config": config}


def build_network_message(
    network: NetworkConfig,
    service_config: ServiceConfig | None,
    topology_reply: Any,
    action: EventName | str,
) -> dict[str, Any]:
    """Build the request for the network service."""
    operation = action_to_operation(action)
    net = {
        "operation_type": operation,
        "id": network.id,
        "name": network.name,
        "number_of_vpcs": network.number_of_vpcs,
        "number_of_subnet_per_vpc": network.number_of_subnet_per_vpc,
        "number_of_security_groups": network.number_of_security_groups,
        "vpcs": [
            {
                "vpc_id": vpc.vpc_id,
                "tenant_id": vpc.tenant_id,
                "project_id": vpc.project_id,
                "vpc_cidr": vpc.vpc_cidr,
                "subnets": [
                    {
                        "subnet_id": subnet.subnet_id,
                        "subnet_cidr": subnet.subnet_cidr,
                        "subnet_gw": subnet.subnet_gateway,
                        "number_vms": subnet.number_of_vms,
                    }
                    for subnet in vpc.subnet_info
                ],
            }
            for vpc in network.vpcs
        ],
        "routers": [
            {
                "operation_type": operation,
                "id": router.id,
                "name": router.name,
                "subnets": list(router.subnet_gateways),
            }
            for router in network.routers
        ],
        "gateways": [
            {
                "operation_type": operation,
                "id": gateway.id,
                "name": gateway.name,
                "ips": list(gateway.ips),
            }
            for gateway in network.gateways
        ],
        "security_groups": [
            {
                "operation_type": operation,
                "id": group.id,
                "name": group.name,
                "apply_to": list(group.apply_to),
                "rules": [
                    {
                        "operation_type": operation,
                        "id": rule.id,
                        "name": rule.name,
                        "description": rule.description,
                        "ethertype": rule.ether_type,
                        "protocol": rule.protocol,
                        "port_range": rule.port_range,
                        "remote_group_id": rule.remote_group_id,
                        "remote_ip_prefix": rule.remote_ip_prefix,
                    }
                    for rule in group.rules
                ],
            }
            for group in network.security_groups
        ],
    }
    config = _header(action)
    config.update(
        {
            "netconfig_id": network.id,
            "services": _services_for(service_config, (MERAK_NETWORK,), operation),
            "network": net,
            "computes": list(_get(topology_reply, "compute_nodes", [])),
        }
    )
    return {"operation_type": operation, "config": config}


def _copy_vpc(vpc: Any) -> dict[str, Any]:
    return {
        "vpc_id": _get(vpc, "vpc_id", ""),
        "tenant_id": _get(vpc, "tenant_id", ""),
        "project_id": _get(vpc, "project_id", ""),
        "vpc_cidr": _get(vpc, "vpc_cidr", ""),
        "subnets": [
            {
                "subnet_id": _get(subnet, "subnet_id", ""),
                "subnet_cidr": _get(subnet, "subnet_cidr", ""),
                "subnet_gw": _get(subnet, "subnet_gw", ""),
                "number_vms": _get(subnet, "number_vms", 0),
            }
            for subnet in _get(vpc, "subnets", [])
        ],
    }


def _assigned_vpcs(compute: ComputeConfig) -> list[dict[str, Any]]:
    if not compute.vpc_info:
        raise MessageError(
            "construct compute message - please enter VPCInfo for creating VM"
        )
    vpcs = []
    for vpc in compute.vpc_info:
        if not vpc.subnet_info:
            raise MessageError(
                "construct compute message - please enter subnet_info and "
                "number of VMs to be deployed"
            )
        subnets = []
        for subnet in vpc.subnet_info:
            if compute.number_of_compute_nodes <= 0:
                raise MessageError(
                    "construct compute message - number of compute nodes is zero"
                )
            number_vms = subnet.number_of_vms // compute.number_of_compute_nodes
            if number_vms <= 0:
                raise MessageError(
                    "construt compute message - number of compute nodes larger "
                    "than number of VMs per vpc"
                )
            subnets.append(
                {
                    "subnet_id": "",
                    "subnet_cidr": subnet.subnet_cidr,
                    "subnet_gw": subnet.subnet_gateway,
                    "number_vms": number_vms,
                }
            )
        vpcs.append(
            {
                "vpc_id": "",
                "tenant_id": vpc.tenant_id,
                "project_id": vpc.project_id,
                "vpc_cidr": vpc.vpc_cidr,
                "subnets": subnets,
            }
        )
    return vpcs


def _network_vpcs(compute: ComputeConfig, network_reply: Any) -> list[dict[str, Any]]:
    vpcs = [_copy_vpc(vpc) for vpc in _get(network_reply, "vpcs", [])]
    nodes = compute.number_of_compute_nodes
    for vpc in vpcs:
        subnets = vpc["subnets"]
        for subnet in subnets:
            if nodes != 0 and subnets:
                subnet["number_vms"] = compute.number_of_vm_per_vpc // nodes // len(subnets)
            if subnet["number_vms"] <= 0:
                raise MessageError(
                    "construct compute message - number of VMs to be deployed "
                    "in a VPC are zero"
                )
    return vpcs


def build_compute_message(
    compute: ComputeConfig,
    service_config: ServiceConfig | None,
    topology_reply: Any,
    network_reply: Any,
    action: EventName | str,
) -> dict[str, Any]:
    """Build the request for the compute service."""
    operation = action_to_operation(action)
    vm_deploy: dict[str, Any] = {
        "operation_type": operation,
        "deploy_type": vm_deploy_type(compute.vm_deploy_type),
        "scheduler": vm_scheduler(compute.scheduler),
        "secgroups": [],
        "vpcs": [],
    }
    if action != EventName.CHECK:
        if network_reply is None:
            raise MessageError(
                "construct compute message - virtual network is not ready yet"
            )
        vm_deploy["secgroups"] = list(_get(network_reply, "security_group_ids", []))
        if vm_deploy["deploy_type"] is VMDeployType.ASSIGN:
            vm_deploy["vpcs"] = _assigned_vpcs(compute)
        else:
            vm_deploy["vpcs"] = _network_vpcs(compute, network_reply)

    config = _header(action)
    config.update(
        {
            "compute_config_id": compute.id,
            "pods": list(_get(topology_reply, "compute_nodes", [])),
            "vm_deploy": vm_deploy,
            "services": _services_for(
                service_config, (MERAK_COMPUTE, MERAK_AGENT), OperationType.CREATE
            ),
        }
    )
    return {"operation_type": operation, "config": config}