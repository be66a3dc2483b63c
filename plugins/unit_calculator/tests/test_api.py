import pytest

from app import create_app
from plugins.unit_calculator import api as calculator_api


@pytest.fixture
def app():
    calculator_api._SESSIONS.clear()
    app = create_app("TestingConfig")
    app.config["PLUGIN_SETTINGS"]["unit_calculator"] = {
        "default_domain": "real",
        "unit_sets": ["common"],
        "max_expression_length": 200,
        "max_sessions": 4,
    }
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _create_session(client, **payload):
    response = client.post("/api/unit_calculator/sessions", json=payload)
    assert response.status_code == 201
    return response.get_json()["data"]["session_id"]


def _evaluate(client, expression, **extra):
    response = client.post("/api/unit_calculator/evaluate", json={"expression": expression, **extra})
    assert response.status_code == 200
    return response.get_json()


def test_domains_and_unit_sets(client):
    domains = client.get("/api/unit_calculator/domains").get_json()["data"]
    assert set(domains["domains"]) == {"real", "complex"}
    assert domains["default"] == "real"
    unit_sets = client.get("/api/unit_calculator/unit-sets").get_json()["data"]
    assert "electronics" in unit_sets["unit_sets"]
    assert unit_sets["default"] == ["common"]


def test_stateless_evaluation(client):
    body = _evaluate(client, "2 km in m")
    assert body["success"] is True
    data = body["data"]
    assert data["success"] is True
    assert data["value"] == 2000.0
    assert data["unit"] == "m"
    assert data["display"] == "2000 m"
    assert body["meta"] == {"domain": "real"}


def test_failed_evaluation_is_reported_in_the_result(client):
    data = _evaluate(client, "1 m + 1 s")["data"]
    assert data["success"] is False
    assert data["message"] == "Units do not match for addition."
    assert data["value"] == 0.0


def test_complex_evaluation(client):
    data = _evaluate(client, "sqrt(-4)", domain="complex")["data"]
    assert data["value"][1] == pytest.approx(2.0)


def test_invalid_payloads(client):
    response = client.post("/api/unit_calculator/evaluate", json={})
    assert response.status_code == 400
    error = response.get_json()["error"]
    assert error["code"] == "calc.invalid_request"
    assert error["details"]["errors"][0]["field"] == "expression"

    response = client.post("/api/unit_calculator/evaluate", json={"expression": "1", "bogus": True})
    assert response.status_code == 400

    response = client.post("/api/unit_calculator/evaluate", json={"expression": "1", "domain": "quaternion"})
    assert response.status_code == 400

    response = client.post("/api/unit_calculator/evaluate", json={"expression": "1", "unit_sets": ["astrology"]})
    assert response.status_code == 400
    assert "astrology" in response.get_json()["error"]["message"]


def test_expression_length_is_limited(client):
    response = client.post("/api/unit_calculator/evaluate", json={"expression": "1 + " * 60 + "1"})
    assert response.status_code == 400
    assert "200 characters" in response.get_json()["error"]["message"]


def test_session_keeps_variables_between_requests(client):
    session_id = _create_session(client)
    assert _evaluate(client, "x = 3 m", session_id=session_id)["data"]["display"] == "3 m"
    body = _evaluate(client, "x * 2", session_id=session_id)
    assert body["data"]["display"] == "6 m"
    assert body["meta"]["session_id"] == session_id
    assert _evaluate(client, "ans + 1 m", session_id=session_id)["data"]["display"] == "7 m"

    info = client.get(f"/api/unit_calculator/sessions/{session_id}").get_json()["data"]
    assert info["domain"] == "real"
    assert info["unit_sets"] == ["common"]
    assert info["variables"] >= 1

    listing = client.get(f"/api/unit_calculator/sessions/{session_id}/variables").get_json()["data"]
    names = {item["name"] for item in listing["variables"]}
    assert "x" in names
    assert any(item["name"] == "pi" for item in listing["constants"])


def test_session_domain_cannot_change(client):
    session_id = _create_session(client, domain="complex")
    assert _evaluate(client, "3 + 4i", session_id=session_id)["data"]["display"] == "3 + 4i"
    response = client.post(
        "/api/unit_calculator/evaluate",
        json={"expression": "1", "session_id": session_id, "domain": "real"},
    )
    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "calc.invalid_request"


def test_unit_definitions(client):
    session_id = _create_session(client)
    response = client.post(
        f"/api/unit_calculator/sessions/{session_id}/units/input",
        json={"name": "furlong", "expression": "201.168 m"},
    )
    assert response.status_code == 201
    assert response.get_json()["data"] == {"name": "furlong", "factor": 201.168, "base": "m"}

    response = client.post(
        f"/api/unit_calculator/sessions/{session_id}/units/output",
        json={"unit": "km", "expression": "1000 m"},
    )
    assert response.status_code == 201
    assert response.get_json()["data"] == {"unit": "km", "base": "m", "factor": 1000.0}

    data = _evaluate(client, "5 furlong", session_id=session_id)["data"]
    assert data["unit"] == "km"
    assert data["value"] == pytest.approx(1.00584)
    assert data["base"] == {"value": pytest.approx(1005.84), "unit": "m"}

    units = client.get(f"/api/unit_calculator/sessions/{session_id}/units").get_json()["data"]
    assert {"name": "furlong", "factor": 201.168, "base": "m"} in units["input_units"]
    assert {"unit": "km", "base": "m", "factor": 1000.0} in units["output_units"]


def test_bad_unit_definitions(client):
    session_id = _create_session(client)
    response = client.post(
        f"/api/unit_calculator/sessions/{session_id}/units/input",
        json={"name": "bad", "expression": "1 +"},
    )
    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "calc.syntax_error"

    response = client.post(
        f"/api/unit_calculator/sessions/{session_id}/units/input",
        json={"name": "worse", "expression": "1 m + 1 s"},
    )
    assert response.status_code == 422
    assert response.get_json()["error"]["code"] == "calc.evaluation_error"

    response = client.post(
        f"/api/unit_calculator/sessions/{session_id}/units/output",
        json={"unit": "pct", "expression": "0.01"},
    )
    assert response.status_code == 422


def test_functions_listing(client):
    session_id = _create_session(client)
    _evaluate(client, "f(x) = x + 1", session_id=session_id)
    data = client.get(f"/api/unit_calculator/sessions/{session_id}/functions").get_json()["data"]
    assert data["user_functions"][0]["name"] == "f"
    assert data["user_functions"][0]["parameters"] == ["x"]
    assert any(item["name"] == "sqrt" for item in data["builtin_functions"])


def test_export_and_import(client):
    session_id = _create_session(client)
    _evaluate(client, "distance = 42 km", session_id=session_id)
    _evaluate(client, "double(v) = 2 v", session_id=session_id)
    snapshot = client.get(f"/api/unit_calculator/sessions/{session_id}/export").get_json()["data"]["snapshot"]
    assert snapshot["scalar"] == "real"

    response = client.post("/api/unit_calculator/sessions/import", json={"snapshot": snapshot})
    assert response.status_code == 201
    imported = response.get_json()["data"]["session_id"]
    assert imported != session_id
    data = _evaluate(client, "double(distance)", session_id=imported)["data"]
    assert data["display"] == "84000 m"

    response = client.post("/api/unit_calculator/sessions/import", json={"snapshot": {"scalar": "real"}})
    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "calc.invalid_snapshot"


def test_unknown_and_deleted_sessions(client):
    response = client.get("/api/unit_calculator/sessions/missing")
    assert response.status_code == 404
    assert response.get_json()["error"]["code"] == "calc.session_not_found"
    response = client.post("/api/unit_calculator/evaluate", json={"expression": "1", "session_id": "missing"})
    assert response.status_code == 404

    session_id = _create_session(client)
    response = client.delete(f"/api/unit_calculator/sessions/{session_id}")
    assert response.get_json()["data"] == {"session_id": session_id, "deleted": True}
    assert client.delete(f"/api/unit_calculator/sessions/{session_id}").status_code == 404
    assert client.get(f"/api/unit_calculator/sessions/{session_id}/units").status_code == 404


def test_session_capacity_comes_from_settings(client):
    first = _create_session(client)
    for _ in range(4):
        _create_session(client)
    assert len(calculator_api._SESSIONS) == 4
    assert client.get(f"/api/unit_calculator/sessions/{first}").status_code == 404
