import pytest
from flask import Flask

from scenariomgr.handlers import ServiceClients
from scenariomgr.models import (
    ComputeConfig,
    EventName,
    NetworkConfig,
    Scenario,
    ScenarioAction,
    ServiceAction,
    ServiceConfig,
    ServiceStatus,
    TestConfig,
    TopologyConfig,
    entity_to_dict,
)
from scenariomgr.resources import STORE_KEY
from scenariomgr.scenarios import (
    CLIENTS_KEY,
    check_related_entities,
    create_scenario_blueprint,
    run_scenario_action,
    summarize_statuses,
)
from scenariomgr.store import NotFoundError, Store
from scenariomgr.utils import (
    KEY_PREFIX_COMPUTE,
    KEY_PREFIX_NETWORK,
    KEY_PREFIX_SCENARIO,
    KEY_PREFIX_SERVICE,
    KEY_PREFIX_TEST,
    KEY_PREFIX_TOPOLOGY,
)

TOPOLOGY_REPLY = {
    "return_code": "OK",
    "return_message": "ok",
    "compute_nodes": [{"status": "READY"}, {"status": "DONE"}],
}


def _scenario(status=ServiceStatus.NONE, **kwargs):
    values = dict(
        id="scn-1",
        name="scenario-test-1",
        project_id="123456789",
        status=status,
        topology_id="topo-1",
        service_config_id="svc-1",
        network_config_id="net-1",
        compute_config_id="comp-1",
        test_config_id="test-1",
    )
    values.update(kwargs)
    return Scenario(**values)


def _seed(store, status=ServiceStatus.NONE):
    store.set(
        KEY_PREFIX_TOPOLOGY + "topo-1",
        entity_to_dict(
            TopologyConfig(
                id="topo-1",
                name="Top1",
                status=ServiceStatus.NONE,
                topo_type="FATTREE",
                number_of_vhosts=5,
            )
        ),
    )
    store.set(
        KEY_PREFIX_NETWORK + "net-1",
        entity_to_dict(NetworkConfig(id="net-1", status=ServiceStatus.NONE)),
    )
    store.set(
        KEY_PREFIX_COMPUTE + "comp-1",
        entity_to_dict(ComputeConfig(id="comp-1", status=ServiceStatus.NONE)),
    )
    store.set(KEY_PREFIX_SERVICE + "svc-1", entity_to_dict(ServiceConfig(id="svc-1")))
    store.set(
        KEY_PREFIX_TEST + "test-1",
        entity_to_dict(TestConfig(id="test-1", status=ServiceStatus.NONE)),
    )
    scenario = _scenario(status)
    store.set(KEY_PREFIX_SCENARIO + scenario.id, entity_to_dict(scenario))
    return scenario


def _clients(topology_reply=TOPOLOGY_REPLY, network_reply=None, compute_reply=None):
    return ServiceClients(
        topology=lambda message: topology_reply,
        network=lambda message: network_reply or {"return_code": "OK"},
        compute=lambda message: compute_reply or {"return_code": "OK", "vms": []},
    )


def _action(service_name, action):
    return ScenarioAction(
        scenario_id="scn-1",
        service=ServiceAction(action=action, service_name=service_name),
    )


@pytest.fixture
def store():
    s = Store()
    _seed(s)
    return s


def test_check_related_entities_accepts_complete_scenario(store):
    assert check_related_entities(store, _scenario()) is None


@pytest.mark.parametrize(
    "key, message",
    [
        (KEY_PREFIX_TOPOLOGY + "topo-1", "topology not found"),
        (KEY_PREFIX_SERVICE + "svc-1", "service config not found"),
        (KEY_PREFIX_NETWORK + "net-1", "network config not found"),
        (KEY_PREFIX_COMPUTE + "comp-1", "compute config not found"),
        (KEY_PREFIX_TEST + "test-1", "test config not found"),
    ],
)
def test_check_related_entities_reports_missing(store, key, message):
    store.delete(key)
    with pytest.raises(NotFoundError) as info:
        check_related_entities(store, _scenario())
    assert str(info.value) == message


def test_summarize_statuses_counts_each_kind():
    items = [{"status": "DONE"}, {"status": "READY"}, {"status": "ERROR"}, {"status": "X"}]
    assert summarize_statuses(items, EventName.DEPLOY, "Topology") == (
        "DEPLOY on Topology got - DONE: 1, READY: 1, DEPLOYING: 0, "
        "DELETING: 0, ERROR: 1, Others: 1"
    )


def test_summarize_statuses_empty_counts_are_zero():
    message = summarize_statuses([], "CHECK", "Compute")
    assert message.startswith("CHECK on Compute got - ")
    assert "Others: 0" in message


def test_topology_deploy_succeeds(store):
    code, envelope = run_scenario_action(store, _clients(), _action("topology", "DEPLOY"))
    assert code == 200
    assert envelope["status"] == "OK"
    assert envelope["message"].startswith("Action successfully - DEPLOY on Topology got")
    assert envelope["data"]["compute_nodes"] == TOPOLOGY_REPLY["compute_nodes"]
    assert store.get(KEY_PREFIX_SCENARIO + "scn-1")["status"] == "DONE"
    assert store.get(KEY_PREFIX_TOPOLOGY + "topo-1")["status"] == "READY"


def test_topology_delete_resets_scenario(store):
    run_scenario_action(store, _clients(), _action("topology", "DEPLOY"))
    code, _ = run_scenario_action(store, _clients(), _action("Topology", "DELETE"))
    assert code == 200
    assert store.get(KEY_PREFIX_SCENARIO + "scn-1")["status"] == "NONE"
    assert store.get(KEY_PREFIX_TOPOLOGY + "topo-1")["status"] == "NONE"


def test_failed_reply_marks_scenario_failed(store):
    clients = _clients(topology_reply={"return_code": "FAILED", "return_message": "boom"})
    action = _action("topology", "DEPLOY")
    code, envelope = run_scenario_action(store, clients, action)
    assert code == 500
    assert envelope["message"] == "Scenario Action Failed."
    assert envelope["data"] == entity_to_dict(action)
    assert store.get(KEY_PREFIX_SCENARIO + "scn-1")["status"] == "FAILED"
    assert store.get(KEY_PREFIX_TOPOLOGY + "topo-1")["status"] == "FAILED"


def test_network_check_reports_done(store):
    code, envelope = run_scenario_action(store, _clients(), _action("network", "CHECK"))
    assert code == 200
    assert envelope["message"] == "Action successfully - CHECK on Network done"


def test_compute_check_counts_vms(store):
    reply = {"return_code": "OK", "vms": [{"status": "READY"}, {"status": "READY"}]}
    code, envelope = run_scenario_action(
        store, _clients(compute_reply=reply), _action("compute", "CHECK")
    )
    assert code == 200
    assert "CHECK on Compute got" in envelope["message"]
    assert "READY: 2" in envelope["message"]
    assert envelope["data"] == reply


def test_unknown_scenario_is_not_found(store):
    action = ScenarioAction(scenario_id="nope", service=ServiceAction("CHECK", "topology"))
    code, envelope = run_scenario_action(store, _clients(), action)
    assert code == 404
    assert envelope["message"] == "Scenario not found!"


def test_busy_scenario_is_rejected():
    s = Store()
    _seed(s, status=ServiceStatus.DEPLOYING)
    code, envelope = run_scenario_action(s, _clients(), _action("topology", "CHECK"))
    assert code == 400
    assert envelope["message"] == "Scenario is not availalbe now!"


def test_missing_related_entity_in_action(store):
    store.delete(KEY_PREFIX_TEST + "test-1")
    code, envelope = run_scenario_action(store, _clients(), _action("topology", "CHECK"))
    assert code == 404
    assert envelope["message"] == "test config not found"


def test_unknown_service_is_bad_request(store):
    code, envelope = run_scenario_action(store, _clients(), _action("storage", "CHECK"))
    assert code == 400
    assert envelope["message"] == "Scenario Action Failed."
    assert store.get(KEY_PREFIX_SCENARIO + "scn-1")["status"] == "DEPLOYING"


@pytest.fixture
def client(store):
    app = Flask(__name__)
    app.register_blueprint(create_scenario_blueprint())
    app.extensions[STORE_KEY] = store
    app.extensions[CLIENTS_KEY] = _clients()
    return app.test_client()


def test_create_scenario_endpoint(client, store):
    body = entity_to_dict(_scenario(id=""))
    body.pop("status")
    response = client.post("/api/scenarios", json=body)
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["message"] == "Scenario Has been created successfully."
    assert len(payload["data"]["id"]) == 32
    assert payload["data"]["status"] == "NONE"
    stored = store.find(payload["data"]["id"], KEY_PREFIX_SCENARIO)
    assert stored["topology_id"] == "topo-1"


def test_create_scenario_with_missing_topology(client):
    response = client.post("/api/scenarios", json={"name": "s", "topology_id": "x"})
    assert response.status_code == 404
    assert response.get_json()["message"] == "topology not found"


def test_create_scenario_rejects_non_json(client):
    response = client.post("/api/scenarios", data="not json")
    assert response.status_code == 400
    assert response.get_json()["status"] == "FAILED"


def test_list_scenarios(client):
    response = client.get("/api/scenarios")
    assert response.status_code == 200
    assert [item["id"] for item in response.get_json()["data"]] == ["scn-1"]


def test_list_scenarios_empty():
    app = Flask(__name__)
    app.register_blueprint(create_scenario_blueprint())
    app.extensions[STORE_KEY] = Store()
    response = app.test_client().get("/api/scenarios")
    assert response.status_code == 404
    assert response.get_json()["message"] == "scenario not present"


def test_get_scenario(client):
    response = client.get("/api/scenarios/scn-1")
    assert response.status_code == 200
    assert response.get_json()["data"]["name"] == "scenario-test-1"


def test_update_scenario_keeps_unset_fields(client, store):
    response = client.put("/api/scenarios/scn-1", json={"name": "scenario-test-2"})
    assert response.status_code == 200
    stored = store.get(KEY_PREFIX_SCENARIO + "scn-1")
    assert stored["name"] == "scenario-test-2"
    assert stored["topology_id"] == "topo-1"
    assert stored["status"] == "NONE"


def test_update_scenario_with_missing_reference(client, store):
    response = client.put("/api/scenarios/scn-1", json={"topology_id": "missing"})
    assert response.status_code == 404
    assert response.get_json()["message"] == "topology not found"
    assert store.get(KEY_PREFIX_SCENARIO + "scn-1")["topology_id"] == "topo-1"


def test_delete_scenario(client):
    response = client.delete("/api/scenarios/scn-1")
    assert response.status_code == 200
    assert response.get_json()["message"] == "Scenario has been deleted!"
    again = client.get("/api/scenarios/scn-1")
    assert again.status_code == 404
    assert again.get_json()["message"] == "Scenario not found!"


def test_actions_endpoint(client, store):
    response = client.post(
        "/api/scenarios/actions",
        json={"scenario_id": "scn-1", "service": {"action": "DEPLOY", "service_name": "topology"}},
    )
    assert response.status_code == 200
    assert response.get_json()["status"] == "OK"
    assert store.get(KEY_PREFIX_SCENARIO + "scn-1")["status"] == "DONE"