import pytest
from fastapi.testclient import TestClient

from segmentation_api.app.core.config import Settings
from segmentation_api.app.core.db import Database
from segmentation_api.app.core.exceptions import SchemaError
from segmentation_api.app.main import create_app


def delete_segment(client, slug):
    return client.request("DELETE", "/api/v1/segments", json={"slug": slug})


def test_segment_lifecycle(client):
    response = client.post("/api/v1/segments", json={"slug": "vip"})
    assert response.status_code == 201
    assert isinstance(response.json()["id"], int)

    response = client.patch("/api/v1/users", json={"id": 10, "append": [{"slug": "vip"}], "remove": []})
    assert response.status_code == 200
    assert response.json() == "OK"

    response = client.get("/api/v1/users/10")
    assert response.status_code == 200
    assert response.json() == [{"slug": "vip"}]

    response = delete_segment(client, "vip")
    assert response.status_code == 200

    assert client.get("/api/v1/users/10").json() == []


def test_duplicate_segment_is_a_server_error(client):
    assert client.post("/api/v1/segments", json={"slug": "vip"}).status_code == 201

    response = client.post("/api/v1/segments", json={"slug": "vip"})

    assert response.status_code == 500
    assert response.json()["detail"].startswith("error while adding segment vip to the database")


def test_deleting_unknown_segment_succeeds(client):
    assert delete_segment(client, "nothing").status_code == 200


def test_partial_modification_reports_failures(client):
    client.post("/api/v1/segments", json={"slug": "a"})
    client.post("/api/v1/segments", json={"slug": "c"})

    response = client.patch(
        "/api/v1/users",
        json={
            "id": 1,
            "append": [
                {"slug": "a", "expires": "2999-01-01T00:00:00Z"},
                {"slug": "b"},
                {"slug": "c", "expires": "0001-01-01T00:00:00Z"},
            ],
            "remove": [],
        },
    )

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["error"] == 'error while adding user 1 to the segment "b": segment "b" does not exist'
    assert detail["failures"] == [
        {"action": "append", "user_id": 1, "slug": "b", "message": detail["error"]},
    ]
    assert client.get("/api/v1/users/1").json() == [{"slug": "a"}, {"slug": "c"}]


def test_logs_list_membership_events(client):
    client.post("/api/v1/segments", json={"slug": "vip"})
    client.patch("/api/v1/users", json={"id": 2, "append": [{"slug": "vip"}]})
    client.patch("/api/v1/users", json={"id": 2, "remove": [{"slug": "vip"}]})

    response = client.get("/api/v1/logs", params={"user_id": 2})

    assert response.status_code == 200
    assert [(entry["slug"], entry["event_type"]) for entry in response.json()] == [
        ("vip", "append"),
        ("vip", "remove"),
    ]


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"slug": ""},
        {"slug": "vip", "unexpected": 1},
    ],
)
def test_invalid_segment_body_is_rejected(client, body):
    assert client.post("/api/v1/segments", json=body).status_code == 422


def test_non_integer_user_id_is_rejected(client):
    assert client.get("/api/v1/users/abc").status_code == 422


def test_startup_fails_on_incompatible_schema(tmp_path):
    path = tmp_path / "legacy.db"
    conn = Database(str(path)).connect()
    try:
        conn.executescript("CREATE TABLE segments (id INTEGER PRIMARY KEY, name TEXT);")
    finally:
        conn.close()
    app = create_app(Settings(database_url=str(path), create_tables=False, tidy_interval_seconds=3600))

    with pytest.raises(SchemaError):
        with TestClient(app):
            pass
