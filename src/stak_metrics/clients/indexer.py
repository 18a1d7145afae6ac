"""Client for the Stak protocol GraphQL indexer."""

from __future__ import annotations

import logging
from typing import Any

import backoff
import requests

from ..domain.snapshots import OfferingSnapshot, VaultSnapshot
from ..errors import IndexerError
from ..logger import trace
from .queries import GET_FLYING_ICO, GET_FLYING_ICOS, GET_STAK_VAULT, GET_STAK_VAULTS

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _should_giveup(exc: Exception) -> bool:
    return (
        isinstance(exc, requests.exceptions.HTTPError)
        and exc.response is not None
        and exc.response.status_code not in RETRYABLE_STATUS_CODES
    )


def _on_backoff(details: Any) -> None:
    logger.warning(
        "Indexer request failed (attempt %d), retrying in %.1fs: %s",
        details["tries"],
        details.get("wait", 0.0),
        details.get("exception"),
    )


class IndexerClient:
    """Fetches Flying ICO and Stak Vault records from the subgraph."""

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        timeout: float = 15.0,
        max_retries: int = 5,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` payload.

        Raises:
            IndexerError: If the response carries GraphQL errors or no data
            requests.HTTPError: If the endpoint keeps failing after retries
        """

        @backoff.on_exception(
            backoff.expo,
            requests.exceptions.RequestException,
            max_tries=self.max_retries,
            giveup=_should_giveup,
            on_backoff=_on_backoff,
            jitter=backoff.full_jitter,
        )
        def _post() -> requests.Response:
            response = self.session.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response

        logger.debug("Querying indexer %s with %s", self.url, variables)
        payload = _post().json()
        trace(logger, "Indexer response: %s", payload)

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(error.get("message", error)) for error in errors)
            raise IndexerError(f"Indexer returned errors: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise IndexerError("Indexer response has no data")
        return data

    def _fetch_entity(self, query: str, key: str, address: str) -> dict[str, Any]:
        data = self.query(query, {"id": address.lower()})
        record = data.get(key)
        if record is None:
            raise IndexerError(f"{key} {address} not found")
        return record

    def fetch_offering(self, address: str) -> OfferingSnapshot:
        record = self._fetch_entity(GET_FLYING_ICO, "flyingICO", address)
        return OfferingSnapshot.from_record(record)

    def fetch_vault(self, address: str) -> VaultSnapshot:
        record = self._fetch_entity(GET_STAK_VAULT, "stakVault", address)
        return VaultSnapshot.from_record(record)

    def list_offerings(self) -> list[OfferingSnapshot]:
        records = self.query(GET_FLYING_ICOS).get("flyingICOs") or []
        return [OfferingSnapshot.from_record(record) for record in records]

    def list_vaults(self) -> list[VaultSnapshot]:
        records = self.query(GET_STAK_VAULTS).get("stakVaults") or []
        return [VaultSnapshot.from_record(record) for record in records]
