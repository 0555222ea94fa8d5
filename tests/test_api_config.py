def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_read_empty_config(client):
    r = client.get("/api/config")
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["baseUrl"] == ""
    assert data["tokenPresent"] is False
    assert "NEXT_FIELD" in data["keybindings"]


def test_update_config_redacts_token(client):
    r = client.post(
        "/api/config",
        json={"baseUrl": "https://canvas.test/api/v1/", "courseId": 1, "accessToken": "abc"},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["baseUrl"] == "https://canvas.test/api/v1"
    assert data["tokenPresent"] is True
    assert "accessToken" not in data
    assert "abc" not in r.text


def test_partial_update_keeps_other_fields(client, config_store):
    client.post("/api/config", json={"courseId": 1, "assignmentId": 2, "accessToken": "abc"})

    r = client.post("/api/config", json={"assignmentId": None, "logLevel": "debug"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["courseId"] == 1
    assert data["assignmentId"] is None
    assert data["logLevel"] == "debug"
    assert data["tokenPresent"] is True
    assert config_store.load().access_token == "abc"


def test_invalid_log_level_rejected(client):
    r = client.post("/api/config", json={"logLevel": "verbose"})
    assert r.status_code == 422


def test_missing_configuration_is_400(client):
    for path in ("/api/submissions", "/api/assignments", "/api/assignment-details"):
        r = client.get(path)
        assert r.status_code == 400, path
        assert r.json()["detail"]["code"] == "missing_configuration"
