"""MyRentACar rental-fleet API adapter.

The API uses a cookie session obtained from ``Login/Login``. Sessions expire
silently; a 401 triggers one re-login and one retry of the same request.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from fleetsync.exceptions import SourceAuthError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://avi75427.hitech-mysolutions.com/myrentcar/api/MyRentcarServices"


class MyRentCarModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, coerce_numbers_to_str=True
    )


class CodedLabel(MyRentCarModel):
    """``{Code, ID, Intitule}`` reference used for types and categories."""

    id: int | None = Field(default=None, alias="ID")
    code: str | None = Field(default=None, alias="Code")
    intitule: str | None = Field(default=None, alias="Intitule")


class Fuel(MyRentCarModel):
    id: int | None = Field(default=None, alias="ID")
    intitule: str | None = Field(default=None, alias="Intitule")
    prix: float | None = Field(default=None, alias="Prix")


class VehicleSummary(MyRentCarModel):
    id: int = Field(alias="ID")
    numero: str | None = Field(default=None, alias="Numero")
    immatriculation: str | None = Field(default=None, alias="Immatriculation")


class VehicleDetail(MyRentCarModel):
    id: int = Field(alias="ID")
    numero: str | None = Field(default=None, alias="Numero")
    immat1: str | None = Field(default=None, alias="Immat1")
    marque_type: str | None = Field(default=None, alias="MarqueType")
    carburant: Fuel | None = Field(default=None, alias="Carburant")
    capacite_reservoir: float | None = Field(default=None, alias="CapaciteReservoir")
    type_vehicule: CodedLabel | None = Field(default=None, alias="TypeVehicule")
    categorie: CodedLabel | None = Field(default=None, alias="Categorie")
    dernier_km: float | None = Field(default=None, alias="DernierKm")
    date_dernier_km: str | None = Field(default=None, alias="DateDernierKm")
    date_mise_circulation: str | None = Field(default=None, alias="DateMiseCirculation")
    poids_vide: str | None = Field(default=None, alias="PoidsVide")
    poids_charge: str | None = Field(default=None, alias="PoidsCharge")
    prime_volume: float | None = Field(default=None, alias="PrimeVolume")
    agence_proprietaire: str | None = Field(default=None, alias="AgenceProprietaire")
    numero_serie: str | None = Field(default=None, alias="NumeroSerie")


class MyRentCarClient:
    """Cookie-session client for the MyRentACar vehicle endpoints.

    Without credentials the adapter is disabled and every fetch returns
    nothing.
    """

    def __init__(
        self,
        credentials: dict[str, str] | None,
        base_url: str = DEFAULT_BASE_URL,
        *,
        batch_size: int = 100,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self._batch_size = batch_size
        self._timeout = timeout
        self._transport = transport
        self._session_cookie: str | None = None
        if not self.enabled:
            logger.warning(
                "MYRENTCAR_LOGIN_CREDENTIALS is not configured; MyRentACar calls are disabled"
            )

    @property
    def enabled(self) -> bool:
        return bool(self._credentials)

    @property
    def session_cookie(self) -> str | None:
        return self._session_cookie

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def login(self, client: httpx.AsyncClient | None = None) -> str:
        """Authenticate and keep the first ``Set-Cookie`` pair as session.

        Raises SourceAuthError when credentials are missing, refused, or the
        response carries no cookie.
        """
        if not self._credentials:
            msg = "MyRentACar credentials are not configured"
            raise SourceAuthError(msg)

        if client is None:
            async with self._client() as own_client:
                return await self.login(own_client)

        response = await client.post(
            f"{self._base_url}/Login/Login",
            json=self._credentials,
            headers={"Content-Type": "application/json"},
        )
        if response.status_code in (401, 403):
            msg = f"MyRentACar login refused: HTTP {response.status_code}"
            raise SourceAuthError(msg)
        response.raise_for_status()

        cookies = response.headers.get_list("set-cookie")
        if not cookies:
            msg = "MyRentACar login response carries no session cookie"
            raise SourceAuthError(msg)
        self._session_cookie = cookies[0].split(";")[0].strip()
        logger.info("MyRentACar: authenticated")
        return self._session_cookie

    async def _request_with_auth(
        self,
        client: httpx.AsyncClient,
        path: str,
        *,
        params: Any = None,
    ) -> Any:
        if self._session_cookie is None:
            await self.login(client)

        response = await self._get(client, path, params)
        if response.status_code == 401:
            logger.warning("MyRentACar: session expired, re-authenticating")
            self._session_cookie = None
            await self.login(client)
            response = await self._get(client, path, params)
            if response.status_code == 401:
                msg = f"MyRentACar rejected the renewed session for {path}"
                raise SourceAuthError(msg)

        response.raise_for_status()
        return response.json()

    async def _get(
        self, client: httpx.AsyncClient, path: str, params: Any
    ) -> httpx.Response:
        return await client.get(
            f"{self._base_url}/{path}",
            params=params,
            headers={
                "Content-Type": "application/json",
                "Cookie": self._session_cookie or "",
            },
        )

    async def fetch_vehicle_ids(self) -> list[int]:
        if not self.enabled:
            return []
        async with self._client() as client:
            payload = await self._request_with_auth(client, "Vehicules/GetVehiculesWs")
        ids = [VehicleSummary.model_validate(item).id for item in payload or []]
        logger.info("MyRentACar: %d vehicles listed", len(ids))
        return ids

    async def fetch_vehicle_details(self, ids: list[int]) -> list[VehicleDetail]:
        """Fetch details for one batch of ids (repeated ``ids`` parameters)."""
        if not self.enabled or not ids:
            return []
        async with self._client() as client:
            payload = await self._request_with_auth(
                client,
                "Vehicules/GetVehiculesDetail",
                params=[("ids", str(vehicle_id)) for vehicle_id in ids],
            )
        return [VehicleDetail.model_validate(item) for item in payload or []]

    async def fetch_all_vehicle_details(self) -> list[VehicleDetail]:
        """List every vehicle id, then fetch details in sequential batches."""
        if not self.enabled:
            return []

        ids = await self.fetch_vehicle_ids()
        details: list[VehicleDetail] = []
        total_batches = (len(ids) + self._batch_size - 1) // self._batch_size
        for index, start in enumerate(range(0, len(ids), self._batch_size), start=1):
            logger.debug("MyRentACar: fetching detail batch %d/%d", index, total_batches)
            details.extend(
                await self.fetch_vehicle_details(ids[start : start + self._batch_size])
            )

        logger.info("MyRentACar: %d vehicle details fetched", len(details))
        return details

    async def fetch_vehicle(self, vehicle_id: int) -> VehicleDetail | None:
        details = await self.fetch_vehicle_details([vehicle_id])
        return details[0] if details else None
