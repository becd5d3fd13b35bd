"""REST implementation of the backend SDK contract.

Talks to the hosted document database and identity service over their public
REST endpoints with a shared ``httpx.AsyncClient``. There is no local
persistence layer on this path, so the offline cache is reported as
unsupported and the bridge carries on without it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from depot.shared.core.configuration import BackendConfig
from depot.shared.infrastructure.backend.base import (
    CACHE_UNSUPPORTED,
    BackendInitError,
    BackendRequestError,
    OfflineCacheError,
)

logger = logging.getLogger(__name__)

DOCUMENTS_BASE_URL = "https://firestore.googleapis.com/v1"
IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"


# ============================================================================
# Typed-field encoding
# ============================================================================


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a Python value as a typed document field."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Unsupported field type: {type(value).__name__}")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(field: Dict[str, Any]) -> Any:
    """Decode a typed document field into a Python value."""
    if "nullValue" in field:
        return None
    if "booleanValue" in field:
        return bool(field["booleanValue"])
    if "integerValue" in field:
        return int(field["integerValue"])
    if "doubleValue" in field:
        return float(field["doubleValue"])
    if "mapValue" in field:
        return decode_fields(field["mapValue"].get("fields", {}))
    if "arrayValue" in field:
        return [decode_value(v) for v in field["arrayValue"].get("values", [])]
    # stringValue, timestampValue, referenceValue are all carried as text
    for key in ("stringValue", "timestampValue", "referenceValue"):
        if key in field:
            return field[key]
    raise ValueError(f"Unsupported field encoding: {sorted(field)}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


# ============================================================================
# App and services
# ============================================================================


class RestApp:
    """A registered backend application."""

    def __init__(self, name: str, config: BackendConfig, client: httpx.AsyncClient):
        self.name = name
        self.config = config
        self.client = client
        # Set by the identity service after a successful sign-in
        self.id_token: Optional[str] = None


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        message = response.json().get("error", {}).get("message", "")
    except ValueError:
        message = response.text
    raise BackendRequestError(response.status_code, message)


class DocumentService:
    """Document reads and writes against the hosted database."""

    def __init__(self, app: RestApp):
        self.app = app
        self.base_url = (
            f"{DOCUMENTS_BASE_URL}/projects/{app.config.project_id}/databases/(default)/documents"
        )

    def _headers(self) -> Dict[str, str]:
        if self.app.id_token:
            return {"Authorization": f"Bearer {self.app.id_token}"}
        return {}

    def _params(self) -> Dict[str, Any]:
        return {"key": self.app.config.api_key} if self.app.config.api_key else {}

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """Fetch a document; None if it does not exist."""
        response = await self.app.client.get(
            f"{self.base_url}/{path}", params=self._params(), headers=self._headers()
        )
        if response.status_code == 404:
            return None
        _raise_for_status(response)
        return decode_fields(response.json().get("fields", {}))

    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Create or overwrite a document; with ``merge`` only the given fields change."""
        params: Dict[str, Any] = self._params()
        if merge:
            params["updateMask.fieldPaths"] = list(data)
        response = await self.app.client.patch(
            f"{self.base_url}/{path}",
            params=params,
            headers=self._headers(),
            json={"fields": encode_fields(data)},
        )
        _raise_for_status(response)

    async def delete_document(self, path: str) -> None:
        response = await self.app.client.delete(
            f"{self.base_url}/{path}", params=self._params(), headers=self._headers()
        )
        _raise_for_status(response)


class IdentityService:
    """Password accounts on the hosted identity service."""

    def __init__(self, app: RestApp):
        self.app = app

    async def _post(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.app.client.post(
            f"{IDENTITY_BASE_URL}/accounts:{action}",
            params={"key": self.app.config.api_key},
            json=payload,
        )
        _raise_for_status(response)
        return response.json()

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        self.app.id_token = data.get("idToken")
        return data

    def sign_out(self) -> None:
        self.app.id_token = None


class RestBackendSDK:
    """Backend SDK over REST; one shared HTTP client for every app."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        self._transport = transport
        self._timeout = timeout
        self._apps: Dict[str, RestApp] = {}
        self._client: Optional[httpx.AsyncClient] = None

    def get_apps(self) -> List[RestApp]:
        return list(self._apps.values())

    def get_app(self, name: str = "[DEFAULT]") -> RestApp:
        try:
            return self._apps[name]
        except KeyError:
            raise BackendInitError(f"No backend app named '{name}'") from None

    async def initialize_app(self, config: BackendConfig) -> RestApp:
        if config.app_name in self._apps:
            raise BackendInitError(f"Backend app '{config.app_name}' already exists")
        if not config.project_id:
            raise BackendInitError("Backend config is missing project_id")

        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=config.request_timeout or self._timeout,
            )
        app = RestApp(config.app_name, config, self._client)
        self._apps[config.app_name] = app
        logger.debug(f"Registered backend app '{config.app_name}' for project {config.project_id}")
        return app

    def get_data_service(self, app: RestApp) -> DocumentService:
        return DocumentService(app)

    def get_identity_service(self, app: RestApp) -> IdentityService:
        return IdentityService(app)

    async def enable_offline_cache(self, data_service: DocumentService) -> None:
        raise OfflineCacheError(CACHE_UNSUPPORTED, "REST transport has no offline persistence")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
