"""Driver cache model."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fleetsync.models.base import Base

DRIVER_STATUS_AVAILABLE = "disponible"
DRIVER_STATUS_OCCUPIED = "occupe"
DRIVER_STATUS_UNAVAILABLE = "indisponible"
DRIVER_STATUSES = (DRIVER_STATUS_AVAILABLE, DRIVER_STATUS_OCCUPIED, DRIVER_STATUS_UNAVAILABLE)

# Columns overwritten on every Factorial sync.
DRIVER_UPSTREAM_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "login_email",
    "phone",
    "address",
    "address_line_2",
    "postal_code",
    "city",
    "state",
    "country",
    "birthday",
    "team_id",
    "team_name",
    "shift",
    "available_weekends",
    "forfait_weekend",
    "lieu_prise_poste",
    "numero_carte_as24",
    "date_remise_carte_as24",
    "date_restitution_as24",
    "permis_de_conduire",
    "fco",
    "adr",
    "habilitation",
    "formation_11239_11262",
    "visite_medicale",
)

# Columns only an operator may write.
DRIVER_MANUAL_FIELDS = (
    "matricule",
    "permits",
    "certifications",
    "agence",
    "zone",
    "amplitude",
    "decoucher",
    "status",
    "indisponibilite_raison",
)


class DriverCache(Base):
    """One cached driver per Factorial employee."""

    __tablename__ = "driver_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    factorial_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    # Factorial employee fields
    first_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    login_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    address_line_2: Mapped[str | None] = mapped_column(Text, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(Text, nullable=True)
    birthday: Mapped[str | None] = mapped_column(Text, nullable=True)
    team_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Factorial custom fields
    shift: Mapped[str | None] = mapped_column(Text, nullable=True)
    available_weekends: Mapped[str | None] = mapped_column(Text, nullable=True)
    forfait_weekend: Mapped[str | None] = mapped_column(Text, nullable=True)
    lieu_prise_poste: Mapped[str | None] = mapped_column(Text, nullable=True)
    numero_carte_as24: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_remise_carte_as24: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_restitution_as24: Mapped[str | None] = mapped_column(Text, nullable=True)
    permis_de_conduire: Mapped[str | None] = mapped_column(Text, nullable=True)
    fco: Mapped[str | None] = mapped_column(Text, nullable=True)
    adr: Mapped[str | None] = mapped_column(Text, nullable=True)
    habilitation: Mapped[str | None] = mapped_column(Text, nullable=True)
    formation_11239_11262: Mapped[str | None] = mapped_column(Text, nullable=True)
    visite_medicale: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Manual fields
    matricule: Mapped[str] = mapped_column(Text, nullable=False, default="")
    permits: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    certifications: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    agence: Mapped[str | None] = mapped_column(Text, nullable=True)
    zone: Mapped[str | None] = mapped_column(Text, nullable=True)
    amplitude: Mapped[str | None] = mapped_column(Text, nullable=True)
    decoucher: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=DRIVER_STATUS_AVAILABLE
    )
    indisponibilite_raison: Mapped[str | None] = mapped_column(Text, nullable=True)

    synced_at: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_driver_cache_status", "status"),
        Index("idx_driver_cache_name", "last_name", "first_name"),
    )
