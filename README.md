# scenariomgr

A scenario manager for a cloud emulator. It runs a small Flask REST service
that keeps configurations in a key/value store and carries out deploy, check,
update and delete actions on them by sending request messages to topology,
network and compute services through clients you supply.

A *scenario* ties together one configuration of each kind:

- a topology (virtual hosts, racks, switches, images, vnodes and vlinks),
- a network configuration (VPCs, subnets, routers, gateways, security groups),
- a compute configuration (how many VMs go where, and how they are scheduled),
- a service configuration (commands to run at given stages and places),
- a test configuration.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running the service

```
scenariomgr --config ./merak-bin/config.yaml
```

`--config` (also accepted as `-config`) defaults to `./merak-bin/config.yaml`.
The path must exist and be a file, not a directory; otherwise the command exits
with `cannot find config.yaml: ...`. The file is YAML holding a mapping. The
keys `use_syslog`, `log_level` and `grpc_timeout` fill
`scenariomgr.config.AppConfig`; any other keys are kept in its `extra`
dictionary. `AppConfig.effective_grpc_timeout()` returns `grpc_timeout`, or 1
when it is zero or less.

The service listens on port 3000 on all interfaces.

Logs are written to standard output as JSON, one object per line with sorted
keys (`level`, `msg`, `time`, and `Service` set to `scenario-manager`). The
level comes from `log_level` (`debug`, `info`, `warn`/`warning`, `error`,
`fatal`; anything else means `info`). With `use_syslog: true` records go to
syslog instead.

## REST API

Every JSON response is an object of the form

```json
{"status": "OK", "message": "...", "data": ...}
```

with `status` set to `"FAILED"` on errors. Responses carry permissive CORS
headers.

`GET /` answers `OK`, and `GET /api` answers `Welcome to Merak - Cloud Emulator`.

Each configuration kind has the same five routes:

| Kind             | Base path              |
|------------------|------------------------|
| scenario         | `/api/scenarios`       |
| topology         | `/api/topologies`      |
| service config   | `/api/service-config`  |
| network config   | `/api/network-config`  |
| compute config   | `/api/compute-config`  |
| test config      | `/api/test-config`     |

- `POST <base>` creates an entry from a JSON object and returns it with a fresh
  32-hex-digit `id`, `created_at` and `updated_at`; every kind except service
  config gets `status` `"NONE"`. A body that is not a JSON object, or has values
  of the wrong kind, gives 400.
- `GET <base>` lists all entries (404 when there are none).
- `GET <base>/<id>` returns one entry (404 when it is unknown).
- `PUT <base>/<id>` updates an entry: only fields given with a non-empty string,
  a non-zero number or a non-empty list replace the stored ones.
- `DELETE <base>/<id>` removes an entry.

Creating or updating a scenario answers 404 unless its topology, service,
network, compute and test configurations all exist.

### Scenario actions

`POST /api/scenarios/actions` takes

```json
{"scenario_id": "<id>", "service": {"service_name": "topology", "action": "DEPLOY"}}
```

`service_name` is `topology`, `network` or `compute` (any other name gives 400);
`action` is `DEPLOY`, `CHECK`, `UPDATE` or `DELETE`. The scenario must be in
state `NONE`, `DONE` or `FAILED`, and its related configurations must exist.

Before sending a request, the checks in `scenariomgr.handlers` apply:

- `DEPLOY` needs the target configuration in state `NONE`; `DELETE` needs it
  `READY` or `FAILED`.
- A topology action other than `CHECK` needs the network and compute
  configurations to be in state `NONE`.
- A network action other than `CHECK` needs the compute configuration in state
  `NONE` and a topology `CHECK` that returns `OK`.
- A compute action other than `CHECK` needs both a topology and a network
  `CHECK` that return `OK`.

While an action other than `CHECK` runs, the configuration is marked
`DEPLOYING`, `DELETING` or `UPDATING`; afterwards it is `READY` (deploy), `NONE`
(delete) or `FAILED`. A failure answers 500. On success the topology and
compute messages summarise the states reported back, for example
`CHECK on Topology got - DONE: 0, READY: 5, DEPLOYING: 0, DELETING: 0, ERROR: 0, Others: 0`,
and `data` holds the service's reply.

## Using it as a library

`scenariomgr.app.create_app(config, store, clients)` builds the Flask
application; every argument is optional. `store` is a
`scenariomgr.store.Store`, and `clients` is a
`scenariomgr.handlers.ServiceClients` built from three callables:

```python
from scenariomgr.app import create_app
from scenariomgr.handlers import ServiceClients

def topology(message):
    return {"return_code": "OK", "return_message": "", "compute_nodes": []}

clients = ServiceClients(topology=topology, network=..., compute=...)
app = create_app(clients=clients)
```

Each callable receives the request message (a dictionary built by
`scenariomgr.messages`) and returns the reply, as a mapping or an object with
`return_code` and `return_message`, plus `compute_nodes`, `vpcs`,
`security_group_ids` or `vms` as the service provides them.

## What the package does not do

- It has no clients for real topology, network or compute services. Without
  transports given to `ServiceClients`, every scenario action fails with
  `no client configured for the ... service`.
- The store is in memory only: everything is lost when the process stops, and
  nothing is shared between processes.
- There is no API documentation page served by the application.

## Port benchmark

`ovs-bench` adds internal ports with random names to the `br-int` bridge by
running `ovs-vsctl` through `bash`, concurrently and at a limited rate, and logs
how many milliseconds it took:

```
ovs-bench <number-of-calls> <calls-per-second>
```

It needs `ovs-vsctl` and the rights to change the bridge. From Python,
`scenariomgr.ovsbench.run_benchmark(num_calls, rps, runner)` does the same and
returns the elapsed milliseconds; `runner` can replace the command execution.