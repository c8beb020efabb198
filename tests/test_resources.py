import pytest
from flask import Flask

from scenariomgr.resources import (
    COMPUTE_SPEC,
    NETWORK_SPEC,
    STORE_KEY,
    TOPOLOGY_SPEC,
    create_resource_blueprint,
)
from scenariomgr.store import Store
from scenariomgr.utils import KEY_PREFIX_COMPUTE, KEY_PREFIX_TOPOLOGY


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def client(store):
    app = Flask(__name__)
    app.extensions[STORE_KEY] = store
    for spec in (TOPOLOGY_SPEC, NETWORK_SPEC, COMPUTE_SPEC):
        app.register_blueprint(create_resource_blueprint(spec))
    return app.test_client()


def _create(client, route, body):
    res = client.post(route, json=body)
    assert res.status_code == 200
    return res.get_json()["data"]


def test_create_topology(client, store):
    res = client.post("/api/topologies", json={"name": "topology-test1"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "OK"
    assert body["message"] == "Topology Has been created successfully."
    data = body["data"]
    assert data["name"] == "topology-test1"
    assert data["status"] == "NONE"
    assert len(data["id"]) == 32
    assert store.get(KEY_PREFIX_TOPOLOGY + data["id"])["name"] == "topology-test1"


@pytest.mark.parametrize(
    "route,message",
    [
        ("/api/network-config", "Network config has been created successfully."),
        ("/api/compute-config", "Compute config has been created successfully."),
    ],
)
def test_create_messages(client, route, message):
    res = client.post(route, json={"name": "x"})
    assert res.status_code == 200
    assert res.get_json()["message"] == message


def test_create_rejects_non_json(client, store):
    res = client.post("/api/compute-config", data="nope", content_type="text/plain")
    assert res.status_code == 400
    assert res.get_json()["status"] == "FAILED"
    assert len(store) == 0


def test_create_rejects_wrong_field_type(client):
    res = client.post("/api/topologies", json={"number_of_vhosts": "many"})
    assert res.status_code == 400
    assert res.get_json()["data"] is None


def test_list_empty_is_not_found(client):
    res = client.get("/api/topologies")
    assert res.status_code == 404
    assert res.get_json()["message"] == "topology not present"
    res = client.get("/api/compute-config")
    assert res.get_json()["message"] == "compute config not present"


def test_list_returns_created(client):
    first = _create(client, "/api/network-config", {"name": "network-test1"})
    second = _create(client, "/api/network-config", {"name": "network-test2"})
    res = client.get("/api/network-config")
    assert res.status_code == 200
    ids = {item["id"] for item in res.get_json()["data"]}
    assert ids == {first["id"], second["id"]}


def test_list_is_scoped_by_prefix(client):
    _create(client, "/api/topologies", {"name": "t"})
    res = client.get("/api/compute-config")
    assert res.status_code == 404


def test_get_one_round_trip(client):
    created = _create(
        client,
        "/api/compute-config",
        {"name": "compute-test1", "number_of_compute_nodes": 5, "scheduler": "SEQUENTIAL"},
    )
    res = client.get(f"/api/compute-config/{created['id']}")
    assert res.status_code == 200
    assert res.get_json()["data"] == created


def test_get_unknown(client):
    res = client.get("/api/compute-config/missing")
    assert res.status_code == 404
    assert res.get_json()["message"] == "Compute config not found!"


def test_put_topology_merges(client, store):
    created = _create(
        client,
        "/api/topologies",
        {"name": "topology-test1", "number_of_racks": 2, "data_plane_cidr": "10.200.0.0/16"},
    )
    update = {
        "name": "topology-test-2",
        "status": "NONE",
        "number_of_vhosts": 10,
        "vhosts_per_rack": 5,
        "vnodes": [{"name": "p1", "type": "vhost", "nics": [{"name": "eth0", "ip": "10.0.0.1"}]}],
        "vlinks": [{"name": "v1", "from": "p1", "to": "p2"}],
    }
    res = client.put(f"/api/topologies/{created['id']}", json=update)
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["name"] == "topology-test-2"
    assert data["number_of_vhosts"] == 10
    assert data["number_of_racks"] == 2
    assert data["data_plane_cidr"] == "10.200.0.0/16"
    assert data["vlinks"] == [{"name": "v1", "from": "p1", "to": "p2"}]
    assert data["id"] == created["id"]
    assert data["created_at"] == created["created_at"]
    stored = store.get(KEY_PREFIX_TOPOLOGY + created["id"])
    assert stored["name"] == "topology-test-2"


def test_put_keeps_status_when_not_given(client):
    created = _create(client, "/api/compute-config", {"name": "c"})
    res = client.put(f"/api/compute-config/{created['id']}", json={"scheduler": "random"})
    data = res.get_json()["data"]
    assert data["status"] == "NONE"
    assert data["scheduler"] == "random"


def test_put_with_invalid_body_changes_nothing(client):
    created = _create(client, "/api/network-config", {"name": "n1", "number_of_vpcs": 3})
    res = client.put(
        f"/api/network-config/{created['id']}", data="bad", content_type="text/plain"
    )
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["name"] == "n1"
    assert data["number_of_vpcs"] == 3


def test_put_unknown(client):
    res = client.put("/api/topologies/missing", json={"name": "x"})
    assert res.status_code == 404
    assert res.get_json()["message"] == "Topology not found!"


def test_delete(client, store):
    created = _create(client, "/api/compute-config", {"name": "c"})
    res = client.delete(f"/api/compute-config/{created['id']}")
    assert res.status_code == 200
    assert res.get_json()["message"] == "Compute config has been deleted!"
    assert KEY_PREFIX_COMPUTE + created["id"] not in store
    again = client.delete(f"/api/compute-config/{created['id']}")
    assert again.status_code == 404


def test_delete_topology_message(client):
    created = _create(client, "/api/topologies", {"name": "t"})
    res = client.delete(f"/api/topologies/{created['id']}")
    assert res.get_json()["message"] == "Topology has been deleted!"


def test_network_not_found_uses_spec_message(client):
    res = client.get("/api/network-config/missing")
    assert res.status_code == 404
    message = res.get_json()["message"]
    assert message == "Network config not found!"
    assert message == NETWORK_SPEC.not_found_message


def test_missing_store_raises():
    app = Flask(__name__)
    app.register_blueprint(create_resource_blueprint(TOPOLOGY_SPEC))
    app.testing = True
    with pytest.raises(RuntimeError):
        app.test_client().get("/api/topologies")