"""
Integration tests: HTTP surface over a LocalJson directory
"""

import json
import os
import sys
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import ConstructionFailure
from metadata_server.local_json import LocalJson
from metadata_server.server import create_app, main

TOAST = {"name": "Toast", "description": "d", "external_url": "http://e/", "image": "http://i/"}
CONTRACT = {
    "name": "Toast",
    "description": "Toast",
    "image": {"image": "http://i/"},
    "external_link": "http://example.com/",
    "seller_fee_basis_points": 300,
    "fee_recipient": "0x" + "00" * 20,
}


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def client(data_dir):
    return TestClient(create_app(LocalJson(data_dir)))


def test_token_appears_after_file_is_written(client, data_dir):
    r = client.get("/0")
    assert r.status_code == 404
    assert r.text == "unknown token id"

    (data_dir / "0.json").write_text(json.dumps(TOAST))
    r = client.get("/0")
    assert r.status_code == 200
    assert '"name":"Toast"' in r.text
    assert r.headers["cache-control"] == "max-age=300, must-revalidate"


def test_token_served_after_file_removed(client, data_dir):
    (data_dir / "4.json").write_text(json.dumps(TOAST))
    first = client.get("/4")
    (data_dir / "4.json").unlink()
    second = client.get("/4")
    assert second.status_code == 200
    assert second.content == first.content


def test_corrupt_document_is_opaque_500(client, data_dir, tmp_path):
    (data_dir / "5.json").write_text("{not json")
    r = client.get("/5")
    assert r.status_code == 500
    assert "5.json" not in r.text
    assert str(tmp_path) not in r.text
    assert "json_invalid" not in r.text
    assert "line 1" not in r.text


def test_collection_lifecycle(client, data_dir):
    r = client.get("/")
    assert r.status_code == 404
    assert r.text == "no contract metadata"

    (data_dir / "contract.json").write_text(json.dumps(CONTRACT))
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["name"] == "Toast"

    (data_dir / "contract.json").unlink()
    assert client.get("/").status_code == 200


def test_resolver_refuses_regular_file(tmp_path):
    target = tmp_path / "data"
    target.write_text("not a directory")
    with pytest.raises(ConstructionFailure):
        LocalJson(target)


def test_server_never_starts_on_bad_root(tmp_path, monkeypatch):
    target = tmp_path / "data"
    target.write_text("not a directory")
    monkeypatch.setenv("METADATA_ROOT", "")
    monkeypatch.setenv("METADATA_CONFIG", "")
    with patch("metadata_server.server.setup_logging"), patch("metadata_server.server.uvicorn.run") as run:
        with pytest.raises(SystemExit) as exc:
            main(["--config", str(tmp_path / "absent.yaml"), "--root", str(target)])
    assert exc.value.code == 1
    run.assert_not_called()
