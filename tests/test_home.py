from app import create_app


def test_home_lists_plugins():
    app = create_app("TestingConfig")
    client = app.test_client()
    response = client.get("/")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["success"] is True
    titles = [item["title"] for item in payload["data"]["plugins"]]
    assert "Unit Calculator" in titles
    calculator = next(item for item in payload["data"]["plugins"] if item["title"] == "Unit Calculator")
    assert calculator["api"] == "/api/unit_calculator"
    assert response.headers.get("Content-Security-Policy")
    assert response.headers.get("X-Request-ID")


def test_healthz():
    client = create_app("TestingConfig").test_client()
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["data"] == {"status": "ok"}


def test_http_errors_use_the_json_envelope():
    client = create_app("TestingConfig").test_client()
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.get_json()["error"]["code"] == "http.404"

    response = client.get("/api/unit_calculator/evaluate")
    assert response.status_code == 405
    assert response.get_json()["success"] is False


def test_request_id_is_echoed():
    client = create_app("TestingConfig").test_client()
    response = client.get("/healthz", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
