import base64
import json
import os

import pytest
from fastapi.testclient import TestClient

import config
from app import create_app

from conftest import build_zip, publish_target


@pytest.fixture
def client(pulzz_root):
    with TestClient(create_app()) as test_client:
        yield test_client


def _data(response):
    body = response.json()
    return body, json.loads(body["Data"])


def _upload(client, filename, content, platform="wxmini", **kwargs):
    return client.post(
        "/admin/upload",
        data={"platform": platform},
        files={"file": (filename, content, "application/zip")},
        **kwargs,
    )


def _read_state():
    with open(config.get_state_file_path(), encoding="utf-8") as f:
        return json.load(f)


def test_startup_creates_state_file(client):
    assert _read_state() == {"currentVersion": "", "versions": [], "history": []}


def test_upload_then_publish_end_to_end(client):
    upload = _upload(client, "100.zip", build_zip({"100/config.json": b'{"k":1}'}))
    body, data = _data(upload)
    assert upload.status_code == 200
    assert body["Code"] == 0
    assert body["Message"] == "uploaded"
    assert data == {"version": "100", "platform": "wxmini"}

    state = _read_state()
    assert state["currentVersion"] == ""
    assert state["versions"][0]["version"] == "100"
    assert state["versions"][0]["uploadedAt"]
    bundle = os.path.join(config.get_upload_root("wxmini"), "100", "config.json")
    with open(bundle) as f:
        assert f.read() == '{"k":1}'

    publish = client.post("/admin/publish", json={"platform": "wxmini", "version": "100"})
    body, _ = _data(publish)
    assert publish.status_code == 200
    assert body["Message"] == "published"

    state = _read_state()
    assert state["currentVersion"] == "100"
    assert state["versions"][0]["publishedAt"]
    assert [h["action"] for h in state["history"]] == ["upload", "publish"]
    with open(os.path.join(publish_target("100"), "config.json")) as f:
        assert f.read() == '{"k":1}'

    again = client.post("/admin/publish", json={"platform": "wxmini", "version": 100})
    assert again.json()["Message"] == "already_current"
    assert len(_read_state()["history"]) == 2


def test_reupload_reports_overwrite(client):
    archive = build_zip({"config.json": b"{}"})
    _upload(client, "7.zip", archive)
    response = _upload(client, "7.zip", archive)
    assert response.json()["Message"] == "uploaded_overwrite"


@pytest.mark.parametrize("filename", ["abc.zip", "100.tar", "100", "-1.zip"])
def test_upload_invalid_filename(client, filename):
    response = _upload(client, filename, build_zip({"x.txt": b"ok"}))
    assert response.status_code == 400
    assert response.json()["Code"] == 4001
    assert response.json()["Message"] == "invalid_version_filename"


@pytest.mark.parametrize("filename", ["１００.zip", "١٠٠.zip", "100\n.zip"])
def test_upload_rejects_non_ascii_version_filename(client, filename):
    response = _upload(client, filename, build_zip({"config.json": b"{}"}))
    assert response.status_code == 400
    assert response.json()["Code"] == 4001
    assert _read_state()["versions"] == []
    upload_root = config.get_upload_root("wxmini")
    assert not os.path.isdir(upload_root) or os.listdir(upload_root) == []


def test_upload_invalid_platform(client):
    response = _upload(client, "100.zip", build_zip({"x.txt": b"ok"}), platform="android")
    assert response.status_code == 400
    assert response.json()["Code"] == 4003


def test_upload_missing_file(client):
    response = client.post("/admin/upload", data={"platform": "wxmini"})
    assert response.status_code == 400
    assert response.json()["Code"] == 4005
    assert response.json()["Message"] == "missing_file"


def test_upload_mismatched_folder(client):
    response = _upload(client, "100.zip", build_zip({"99/config.json": b"{}"}))
    assert response.status_code == 400
    assert response.json()["Code"] == 4002
    assert _read_state()["versions"] == []


def test_upload_too_large(pulzz_root, monkeypatch):
    monkeypatch.setenv("UPLOAD_MAX_MB", "1")
    with TestClient(create_app()) as client:
        response = _upload(client, "100.zip", b"0" * (1024 * 1024 + 1))
    assert response.status_code == 413
    assert response.json()["Code"] == 4007


def test_publish_unknown_version(client):
    response = client.post("/admin/switch", json={"platform": "wxmini", "version": "404"})
    assert response.status_code == 400
    assert response.json()["Code"] == 4004


def test_publish_invalid_version(client):
    response = client.post("/admin/publish", json={"platform": "wxmini", "version": "1.0"})
    assert response.status_code == 400
    assert response.json()["Code"] == 4005


@pytest.mark.parametrize("version", [True, False, "１００", 1.5])
def test_publish_rejects_non_numeric_version_values(client, version):
    _upload(client, "1.zip", build_zip({"1/config.json": b"{}"}))

    response = client.post("/admin/publish", json={"platform": "wxmini", "version": version})

    assert response.status_code == 400
    assert response.json()["Code"] == 4005
    assert _read_state()["currentVersion"] == ""


def test_publish_boolean_version_reports_invalid_version(client):
    response = client.post("/admin/publish", json={"platform": "wxmini", "version": True})
    assert response.json()["Message"] == "invalid_version"


def test_publish_lock_busy(pulzz_root, monkeypatch):
    monkeypatch.setenv("PUBLISH_LOCK_RETRIES", "2")
    with TestClient(create_app()) as client:
        _upload(client, "100.zip", build_zip({"100/config.json": b"{}"}))
        with open(client.app.state.registry.lock_path, "w") as f:
            f.write("held")
        response = client.post("/admin/publish", json={"platform": "wxmini", "version": "100"})
    assert response.status_code == 409
    assert response.json()["Code"] == 4006


def test_versions_listing(client):
    _upload(client, "100.zip", build_zip({"100/config.json": b"{}"}))
    _upload(client, "200.zip", build_zip({"a/b.json": b"{}", "c/d.json": b"{}"}))
    client.post("/admin/switch", json={"platform": "wxmini", "version": "200"})

    response = client.get("/admin/versions", params={"platform": "wxmini"})
    _, data = _data(response)

    assert data["platform"] == "wxmini"
    assert data["currentVersion"] == "200"
    assert [v["version"] for v in data["versions"]] == ["100", "200"]
    assert [h["action"] for h in data["history"]] == ["upload", "upload", "switch"]

    bad = client.get("/admin/versions", params={"platform": "ios"})
    assert bad.json()["Code"] == 4003


def test_register_endpoint(client):
    os.makedirs(publish_target("300"))

    response = client.post("/admin/register", json={"platform": "wxmini", "version": "300"})
    assert response.json()["Message"] == "registered"

    missing = client.post("/admin/register", json={"platform": "wxmini", "version": "301"})
    assert missing.json()["Code"] == 4004


def test_cos_mock_upload_mirrors_both_prefixes(pulzz_root, monkeypatch, tmp_path):
    bucket = tmp_path / "bucket"
    monkeypatch.setenv("STORAGE_DRIVER", "cos")
    monkeypatch.setenv("PULZZ_COS_MOCK_ROOT", str(bucket))

    with TestClient(create_app()) as client:
        response = _upload(client, "100.zip", build_zip({"100/config.json": b'{"k":1}'}))
        assert response.json()["Code"] == 0
        publish = client.post("/admin/publish", json={"platform": "wxmini", "version": "100"})
        assert publish.json()["Message"] == "published"

    assert (bucket / "gameres" / "wxmini" / "100" / "config.json").read_bytes() == b'{"k":1}'
    legacy = bucket.joinpath(*config.get_legacy_relative_path().split("/"), "100", "config.json")
    assert legacy.read_bytes() == b'{"k":1}'


def test_cos_missing_config_is_internal_error(pulzz_root, monkeypatch):
    monkeypatch.setenv("STORAGE_DRIVER", "cos")
    with TestClient(create_app()) as client:
        response = _upload(client, "100.zip", build_zip({"100/config.json": b"{}"}))
    assert response.status_code == 500
    assert response.json() == {"Code": 5000, "Message": "cos_config_missing", "Data": "{}"}


def _basic(user, password):
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def test_admin_auth(pulzz_root, monkeypatch):
    monkeypatch.setenv("ADMIN_USERNAME", "ops")
    monkeypatch.setenv("ADMIN_PASSWORD", "secret")
    with TestClient(create_app()) as client:
        anonymous = client.get("/admin/versions", params={"platform": "wxmini"})
        wrong = client.get("/admin/versions", params={"platform": "wxmini"}, headers=_basic("ops", "nope"))
        ok = client.get("/admin/versions", params={"platform": "wxmini"}, headers=_basic("ops", "secret"))
        public = client.post("/api/GameAppVersion/GetVersion", json={})

    assert anonymous.status_code == 401
    assert anonymous.json()["Code"] == 401
    assert "Basic" in anonymous.headers["www-authenticate"]
    assert wrong.status_code == 401
    assert ok.status_code == 200
    assert public.status_code == 200


def test_client_app_version(client):
    response = client.post("/api/GameAppVersion/GetVersion", json={"AppVersion": "9.9.9"})
    body, data = _data(response)
    assert body["Code"] == 0
    assert data["AppVersion"] == "1.0.0"


def test_client_resource_version_follows_current(client):
    headers = {"x-forwarded-proto": "https", "x-forwarded-host": "api.example.com"}
    _, before = _data(client.post("/api/GameAssetPackageVersion/GetVersion", headers=headers))
    assert before["Version"] == "0"
    assert before["RootPath"] == "https://cdn.example.com/hotupdate"

    _upload(client, "100.zip", build_zip({"100/config.json": b"{}"}))
    client.post("/admin/publish", json={"platform": "wxmini", "version": "100"})

    _, after = _data(client.post("/api/GameAssetPackageVersion/GetVersion", headers=headers))
    assert after["Version"] == "100"
    assert after["CurrentVersion"] == "100"


def test_client_global_info_urls(client):
    response = client.post("/api/GameGlobalInfo/GetInfo", headers={"x-forwarded-host": "api.example.com, proxy"})
    _, data = _data(response)
    assert data["CheckAppVersionUrl"] == "https://api.example.com/api/GameAppVersion/GetVersion"
    assert data["AOTCodeList"] == "[]"
