"""HTTP client for the Azure Key Vault secrets data plane."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from vaultsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from vaultsync.config.keyvault import KeyVaultConfig, get_keyvault_config
from vaultsync.domain.ports import SecretStoreClient, SecretStoreError

from .schema import (
    KeyVaultErrorResponse,
    SecretBundle,
    SecretListResponse,
    SecretSetParameters,
)
from .translator import entry_from_bundle, parse_secret_bundle, parse_secret_item

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from vaultsync.domain.model import SecretEntry, SecretValue, StoreRef

log = getLogger(__name__)

KEYVAULT_DNS_SUFFIX = ".vault.azure.net"


def normalize_vault_uri(store_ref: StoreRef) -> str:
    """Return ``store_ref`` as an ``https://`` vault URI without a trailing slash.

    A bare vault name (``myvault``) expands to ``https://myvault.vault.azure.net``.
    """

    uri = store_ref.strip().rstrip("/")
    if not uri:
        raise ValueError("Vault URI must not be empty")
    if uri.startswith(("https://", "http://")):
        return uri
    if "." not in uri and ":" not in uri:
        uri = f"{uri}{KEYVAULT_DNS_SUFFIX}"
    return f"https://{uri}"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class KeyVaultAPIError(SecretStoreError):
    """Raised when Key Vault rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class KeyVaultClient:
    """:class:`SecretStoreClient` over the Key Vault REST API.

    One instance may talk to any number of vaults; the vault URI is the store
    reference passed to every call.
    """

    def __init__(
        self,
        config: KeyVaultConfig | None = None,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self.config = config or get_keyvault_config()
        headers = dict(self.config.resilience.default_headers or {})
        headers["Authorization"] = f"Bearer {self.config.access_token}"
        self._http = client_factory(replace(self.config.resilience, default_headers=headers))

    async def __aenter__(self) -> KeyVaultClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_entries(self, store_ref: StoreRef) -> list[SecretEntry]:
        vault = normalize_vault_uri(store_ref)
        url: str | None = f"{vault}/secrets"
        params: dict[str, str] | None = {"api-version": self.config.api_version}
        entries: list[SecretEntry] = []

        while url is not None:
            response = await self._request("GET", url, params=params)
            page = self._validate(SecretListResponse, response)
            entries.extend(parse_secret_item(item) for item in page.value)
            # nextLink already carries the api-version and skip token.
            url, params = page.next_link, None

        log.info("Listed %d secrets in %s", len(entries), vault)
        return entries

    async def get_value(
        self,
        store_ref: StoreRef,
        name: str,
        version: str | None = None,
    ) -> SecretValue | None:
        url = self._secret_url(store_ref, name)
        if version:
            url = f"{url}/{quote(version, safe='')}"
        response = await self._send("GET", url, params={"api-version": self.config.api_version})
        if response.status_code == httpx.codes.NOT_FOUND:
            log.debug("Secret %s not found in %s", name, store_ref)
            return None
        self._raise_for_error(response)
        return parse_secret_bundle(self._validate(SecretBundle, response))

    async def create_entry(self, store_ref: StoreRef, name: str, value: str) -> SecretEntry:
        entry = await self._set_secret(store_ref, name, value)
        log.info("Created secret %s in %s", name, store_ref)
        return entry

    async def update_entry(self, store_ref: StoreRef, name: str, value: str) -> SecretEntry:
        entry = await self._set_secret(store_ref, name, value)
        log.info("Updated secret %s in %s (new version)", name, store_ref)
        return entry

    async def _set_secret(self, store_ref: StoreRef, name: str, value: str) -> SecretEntry:
        body = SecretSetParameters(value=value).model_dump(by_alias=True, exclude_none=True)
        response = await self._request(
            "PUT",
            self._secret_url(store_ref, name),
            params={"api-version": self.config.api_version},
            json=body,
        )
        return entry_from_bundle(self._validate(SecretBundle, response))

    def _secret_url(self, store_ref: StoreRef, name: str) -> str:
        return f"{normalize_vault_uri(store_ref)}/secrets/{quote(name, safe='')}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
    ) -> httpx.Response:
        response = await self._send(method, url, params=params, json=json)
        self._raise_for_error(response)
        return response

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
    ) -> httpx.Response:
        try:
            if json is None:
                return await self._http.request(method, url, params=params)
            return await self._http.request(method, url, params=params, json=json)
        except httpx.HTTPError as exc:
            log.error("Key Vault request %s %s failed: %s", method, url, exc)  # noqa: TRY400
            raise KeyVaultAPIError(f"{method} {url} failed: {exc}") from exc

    @classmethod
    def _raise_for_error(cls, response: httpx.Response) -> None:
        if response.is_error:
            raise cls._error_from_response(response)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> KeyVaultAPIError:
        code: str | None = None
        message = response.reason_phrase or "request failed"
        try:
            detail = KeyVaultErrorResponse.model_validate_json(response.content).error
        except ValidationError:
            pass
        else:
            code = detail.code
            message = detail.message or message
        log.error("Key Vault API error %s (%s): %s", response.status_code, code, message)
        return KeyVaultAPIError(
            f"Key Vault returned {response.status_code}: {message}",
            status_code=response.status_code,
            code=code,
        )

    @staticmethod
    def _validate[M: (SecretBundle, SecretListResponse)](
        model: type[M], response: httpx.Response
    ) -> M:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise KeyVaultAPIError(
                "Unexpected Key Vault response payload",
                status_code=response.status_code,
            ) from exc


if TYPE_CHECKING:
    _client_check: SecretStoreClient = KeyVaultClient()
