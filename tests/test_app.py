import io

import pytest

from app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def upload(client, url, data, filename):
    return client.post(url, data={"file": (io.BytesIO(data), filename)},
                       content_type="multipart/form-data")


def test_frequencies(client):
    response = upload(client, "/api/frequencies", b"aaaaabbbc", "sample.txt")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["frequencies"] == {"97": 5, "98": 3, "99": 1}
    assert body["total"] == 9


def test_frequencies_without_file(client):
    response = client.post("/api/frequencies", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_code_table(client):
    response = client.post("/api/code_table", json={"frequencies": {"97": 4, "98": 2, "99": 1}})
    assert response.status_code == 200
    body = response.get_json()
    assert body["code_table"] == {"97": "0", "98": "10", "99": "11"}
    assert body["root_frequency"] == 7
    assert body["weighted_path_length"] == 10


def test_code_table_empty(client):
    response = client.post("/api/code_table", json={"frequencies": {}})
    assert response.status_code == 200
    assert response.get_json()["code_table"] == {}
    assert response.get_json()["root_frequency"] == 0


@pytest.mark.parametrize("payload", [
    {},
    {"frequencies": []},
    {"frequencies": {"x": 1}},
    {"frequencies": {"300": 1}},
    {"frequencies": {"97": "five"}},
])
def test_code_table_bad_input(client, payload):
    response = client.post("/api/code_table", json=payload)
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_compress_then_decompress(client):
    data = b"Hello World " * 200
    response = upload(client, "/compress_file", data, "hello.txt")
    assert response.status_code == 200
    assert int(response.headers["X-Original-Size"]) == len(data)
    assert "hello.txt.huff" in response.headers["Content-Disposition"]

    restored = upload(client, "/decompress_file", response.data, "hello.txt.huff")
    assert restored.status_code == 200
    assert restored.data == data
    assert "hello.txt" in restored.headers["Content-Disposition"]


def test_decompress_rejects_wrong_extension(client):
    response = upload(client, "/decompress_file", b"\x01", "hello.txt")
    assert response.status_code == 400


def test_decompress_rejects_corrupt_file(client):
    response = upload(client, "/decompress_file", b"\x07garbage", "broken.huff")
    assert response.status_code == 400
    assert "Corrupt" in response.get_json()["error"]


def test_oversized_upload_gets_json_error(client, monkeypatch):
    monkeypatch.setitem(app.config, "MAX_CONTENT_LENGTH", 1024)
    response = upload(client, "/api/frequencies", b"x" * 4096, "big.bin")
    assert response.status_code == 413
    assert response.is_json
    assert response.get_json()["success"] is False
