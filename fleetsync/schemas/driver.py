"""Driver cache schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DriverStatus = Literal["disponible", "occupe", "indisponible"]


class DriverResponse(BaseModel):
    """A cached driver with its upstream and manual fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    factorial_id: int
    first_name: str
    last_name: str
    email: str | None = None
    login_email: str | None = None
    phone: str | None = None
    address: str | None = None
    address_line_2: str | None = None
    postal_code: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    birthday: str | None = None
    team_id: int | None = None
    team_name: str | None = None
    shift: str | None = None
    available_weekends: str | None = None
    forfait_weekend: str | None = None
    lieu_prise_poste: str | None = None
    numero_carte_as24: str | None = None
    date_remise_carte_as24: str | None = None
    date_restitution_as24: str | None = None
    permis_de_conduire: str | None = None
    fco: str | None = None
    adr: str | None = None
    habilitation: str | None = None
    formation_11239_11262: str | None = None
    visite_medicale: str | None = None
    matricule: str
    permits: list[Any]
    certifications: list[Any]
    agence: str | None = None
    zone: str | None = None
    amplitude: str | None = None
    decoucher: str | None = None
    status: str
    indisponibilite_raison: str | None = None
    synced_at: str | None = None
    created_at: str
    updated_at: str


class DriverListResponse(BaseModel):
    """Paginated driver list."""

    drivers: list[DriverResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class DriverUpdate(BaseModel):
    """Operator-owned fields; upstream fields are not writable."""

    model_config = ConfigDict(extra="forbid")

    matricule: str | None = None
    permits: list[Any] | None = None
    certifications: list[Any] | None = None
    agence: str | None = None
    zone: str | None = None
    amplitude: str | None = None
    decoucher: str | None = None
    status: DriverStatus | None = None
    indisponibilite_raison: str | None = Field(default=None, max_length=500)


class DriverStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_team: dict[str, int]
    last_synced_at: str | None = None
