from __future__ import annotations

import json

import httpx
import pytest

from depot.shared.core.configuration import BackendConfig
from depot.shared.infrastructure.backend.base import (
    CACHE_UNSUPPORTED,
    BackendInitError,
    BackendRequestError,
    OfflineCacheError,
)
from depot.shared.infrastructure.backend.bridge import BackendBridge
from depot.shared.infrastructure.backend.rest_sdk import (
    RestBackendSDK,
    decode_fields,
    encode_fields,
)


def test_field_encoding_matches_document_format():
    encoded = encode_fields({
        "barcode": "SKN-001",
        "count": 3,
        "weight": 1.5,
        "released": False,
        "notes": None,
        "locations": ["A", "B"],
        "owner": {"id": "u1"},
    })

    assert encoded["barcode"] == {"stringValue": "SKN-001"}
    assert encoded["count"] == {"integerValue": "3"}
    assert encoded["weight"] == {"doubleValue": 1.5}
    assert encoded["released"] == {"booleanValue": False}
    assert encoded["notes"] == {"nullValue": None}
    assert encoded["locations"] == {"arrayValue": {"values": [{"stringValue": "A"}, {"stringValue": "B"}]}}
    assert encoded["owner"] == {"mapValue": {"fields": {"id": {"stringValue": "u1"}}}}


def test_decode_handles_timestamps_and_empty_containers():
    decoded = decode_fields({
        "dateAdded": {"timestampValue": "2024-05-01T10:00:00Z"},
        "tags": {"arrayValue": {}},
        "meta": {"mapValue": {}},
        "count": {"integerValue": "12"},
    })

    assert decoded == {"dateAdded": "2024-05-01T10:00:00Z", "tags": [], "meta": {}, "count": 12}


def test_encode_rejects_unknown_types():
    with pytest.raises(TypeError):
        encode_fields({"blob": object()})


@pytest.fixture
def config() -> BackendConfig:
    return BackendConfig(api_key="k-123", project_id="depot-test", platform="web")


@pytest.mark.asyncio
async def test_document_service_round_trip(config):
    documents = {}
    seen_requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_requests.append(request)
        path = request.url.path.split("/documents/", 1)[1]
        if request.method == "PATCH":
            documents[path] = json.loads(request.content)["fields"]
            return httpx.Response(200, json={"name": path, "fields": documents[path]})
        if request.method == "GET":
            if path not in documents:
                return httpx.Response(404, json={"error": {"message": "NOT_FOUND"}})
            return httpx.Response(200, json={"name": path, "fields": documents[path]})
        if request.method == "DELETE":
            documents.pop(path, None)
            return httpx.Response(200, json={})
        return httpx.Response(405)

    sdk = RestBackendSDK(transport=httpx.MockTransport(handler))
    bridge = BackendBridge(sdk, config)
    await bridge.initialize()
    db = bridge.get_data_service()

    try:
        assert await db.get_document("users/u1") is None
        await db.set_document("users/u1", {"username": "ops", "isActive": True}, merge=True)
        assert await db.get_document("users/u1") == {"username": "ops", "isActive": True}
        await db.delete_document("users/u1")
        assert await db.get_document("users/u1") is None
    finally:
        await bridge.close()

    patch = next(r for r in seen_requests if r.method == "PATCH")
    assert patch.url.params["key"] == "k-123"
    assert patch.url.params.get_list("updateMask.fieldPaths") == ["username", "isActive"]
    assert "/projects/depot-test/databases/(default)/documents/users/u1" in patch.url.path


@pytest.mark.asyncio
async def test_identity_sign_in_attaches_token_to_document_calls(config):
    auth_headers = []

    def handler(request: httpx.Request) -> httpx.Response:
        if "accounts:signInWithPassword" in request.url.path:
            body = json.loads(request.content)
            assert body["returnSecureToken"] is True
            return httpx.Response(200, json={"idToken": "tok-1", "localId": "u1"})
        auth_headers.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={"fields": {}})

    sdk = RestBackendSDK(transport=httpx.MockTransport(handler))
    bridge = BackendBridge(sdk, config)
    try:
        identity = await bridge.ensure_identity_service()
        data = await bridge.ensure_data_service()

        result = await identity.sign_in_with_password("ops@example.com", "pw")
        await data.get_document("products/p1")
        identity.sign_out()
        await data.get_document("products/p1")
    finally:
        await bridge.close()

    assert result["localId"] == "u1"
    assert auth_headers == ["Bearer tok-1", None]


@pytest.mark.asyncio
async def test_error_status_raises_request_error(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "PERMISSION_DENIED"}})

    sdk = RestBackendSDK(transport=httpx.MockTransport(handler))
    app = await sdk.initialize_app(config)
    db = sdk.get_data_service(app)
    try:
        with pytest.raises(BackendRequestError) as excinfo:
            await db.get_document("products/p1")
    finally:
        await sdk.aclose()

    assert excinfo.value.status_code == 403
    assert "PERMISSION_DENIED" in str(excinfo.value)


@pytest.mark.asyncio
async def test_offline_cache_is_unsupported_over_rest(config):
    sdk = RestBackendSDK(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    app = await sdk.initialize_app(config)
    try:
        with pytest.raises(OfflineCacheError) as excinfo:
            await sdk.enable_offline_cache(sdk.get_data_service(app))
    finally:
        await sdk.aclose()

    assert excinfo.value.code == CACHE_UNSUPPORTED


@pytest.mark.asyncio
async def test_app_registry(config):
    sdk = RestBackendSDK(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    try:
        assert sdk.get_apps() == []
        with pytest.raises(BackendInitError):
            sdk.get_app()

        app = await sdk.initialize_app(config)
        assert sdk.get_apps() == [app]
        assert sdk.get_app() is app
        with pytest.raises(BackendInitError):
            await sdk.initialize_app(config)
    finally:
        await sdk.aclose()


@pytest.mark.asyncio
async def test_missing_project_id_fails_bridge_initialization():
    sdk = RestBackendSDK(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    bridge = BackendBridge(sdk, BackendConfig(api_key="k"))

    await bridge.initialize()

    assert not bridge.is_initialized
    assert sdk.get_apps() == []
