"""Vehicle reconciliation: MyRentACar and Wincpl -> vehicle_cache.

Both sources map onto the same canonical columns through their own mapper
and are tagged with ``data_source``. MyRentACar rows are keyed by
``myrentcar_id`` and take part in orphan cleanup; Wincpl rows are keyed by
``wincpl_code`` and arrive as an incremental feed, so they are never cleaned
up.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from fleetsync.models.vehicle import (
    DATA_SOURCE_MYRENTCAR,
    DATA_SOURCE_WINCPL,
    VEHICLE_STATUS_AVAILABLE,
    VehicleCache,
)
from fleetsync.services.cleanup_service import delete_orphans
from fleetsync.services.datetime_service import now_stamp
from fleetsync.services.sync_counts import SyncCounts, UpsertOutcome
from fleetsync.sources.wincpl import (
    energy_label,
    format_wincpl_date,
    parse_many,
    parse_number,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy.ext.asyncio import AsyncSession

    from fleetsync.config import Settings
    from fleetsync.sources.myrentcar import MyRentCarClient, VehicleDetail
    from fleetsync.sources.wincpl import WincplAbsence, WincplVehicle

logger = logging.getLogger(__name__)

# (substrings, code), first match wins
_ENERGY_PATTERNS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("gasoil", "diesel", "gazole"), "GO"),
    (("gaz",), "GZ"),
    (("essence",), "ES"),
    (("electri", "électri"), "EL"),
    (("hybri",), "HY"),
    (("gpl",), "GP"),
    (("gnv", "gnc"), "GN"),
)


@dataclass
class WincplImportResult:
    files_processed: int = 0
    vehicles_imported: int = 0
    vehicles_updated: int = 0
    absences_imported: int = 0
    errors: list[str] = field(default_factory=list)


def energy_code(label: str | None) -> str | None:
    """Derive a Wincpl energy code from a free-text fuel label."""
    if not label:
        return None
    lowered = label.lower()
    for needles, code in _ENERGY_PATTERNS:
        if any(needle in lowered for needle in needles):
            return code
    return None


def map_myrentcar_vehicle(detail: VehicleDetail) -> dict[str, Any]:
    """Canonical vehicle columns for a MyRentACar detail payload."""
    fuel = detail.carburant
    vehicle_type = detail.type_vehicule
    category = detail.categorie
    fuel_label = fuel.intitule if fuel else None
    type_label = vehicle_type.intitule if vehicle_type else None
    category_code = category.code if category else None
    return {
        "data_source": DATA_SOURCE_MYRENTCAR,
        "myrentcar_id": detail.id,
        "numero": detail.numero,
        "immatriculation": detail.immat1,
        "type": type_label,
        "type_code": vehicle_type.code if vehicle_type else None,
        "marque_modele": detail.marque_type,
        "energie": fuel_label,
        "energie_id": fuel.id if fuel else None,
        "kilometrage": detail.dernier_km,
        "date_dernier_km": detail.date_dernier_km,
        "date_mise_circulation": detail.date_mise_circulation,
        "capacite_reservoir": detail.capacite_reservoir,
        "poids_vide": parse_number(detail.poids_vide),
        "poids_charge": parse_number(detail.poids_charge),
        "prime_volume": detail.prime_volume,
        "agence_proprietaire": detail.agence_proprietaire,
        "category_code": category_code,
        "numero_serie": detail.numero_serie,
        # Wincpl canonical columns
        "wincpl_code": detail.numero,
        "marque_vehicule": detail.marque_type,
        "categorie_vehicule": category_code,
        "energie_vehicule": energy_code(fuel_label),
        "contenance_reservoir": detail.capacite_reservoir,
        "km_compteur": detail.dernier_km,
        "type_carrosserie": type_label,
        "en_activite": True,
    }


# WincplVehicle attributes stored verbatim under the same column name
_WINCPL_COPIED_COLUMNS = (
    "categorie_vehicule",
    "marque_vehicule",
    "en_activite",
    "interne",
    "numero_serie",
    "numero_moteur",
    "numero_chassis",
    "numero_chassis_aux",
    "puissance_vehicule",
    "puissance_kw",
    "cylindree",
    "nb_cylindres",
    "nb_soupapes",
    "nb_vitesses",
    "code_moteur",
    "type_transmission",
    "type_injection",
    "turbo_compresseur",
    "propulsion",
    "vitesse_moteur",
    "longueur_totale",
    "largeur_totale",
    "hauteur_totale",
    "volume_vehicule",
    "volume_maxi",
    "charge_utile",
    "poids_total_roulant",
    "poids_maxi_marchandises",
    "ptac",
    "ptr",
    "nb_essieux",
    "poids_moyen_essieu",
    "type_carrosserie",
    "type_carrosserie_2",
    "genre_carrosserie",
    "carrosserie_cg",
    "genre_cg",
    "type_carte_grise",
    "nb_places_assises",
    "nb_places_debout",
    "nb_couchettes",
    "nb_portes",
    "metre_plancher",
    "pal_vehicule",
    "energie_vehicule",
    "contenance_reservoir",
    "contenance_reservoir_aux",
    "conso_utac",
    "conso_urbaine",
    "conso_extra_urbaine",
    "conso_mixte",
    "co2",
    "co2_urbain",
    "co2_extra_urbain",
    "emission_co2",
    "profil_co2",
    "norme_pollution",
    "filtre_a_particules",
    "adblue",
    "decibels_vehicule",
    "regime_decibels",
    "contenance_huile",
    "contenance_huile_aux",
    "contenance_huile_boite",
    "km_achat",
    "km_sortie",
    "km_fin_garantie_vehicule",
    "km_fin_garantie_moteur",
    "km_entree_groupe",
    "km_compteur",
    "immatriculation_precedente",
    "code_assureur",
    "assurance_num_contrat",
    "assurance_montant",
    "assurance_franchise",
    "assurance_devise",
    "type_transport",
    "sous_genre_vehicule",
    "nb_cuves",
    "code_type_semi",
    "porteur",
    "contraintes",
    "en_vente",
    "vendu",
    "visible_transport",
    "visible_garage",
    "tel_vehicule",
    "licence",
    "commentaire",
)

# YYYYMMDD attributes stored as YYYY-MM-DD
_WINCPL_DATE_COLUMNS = (
    "date_achat",
    "date_sortie",
    "date_mise_circulation",
    "date_carte_grise",
    "date_cg",
    "date_fin_garantie_vehicule",
    "date_fin_garantie_moteur",
    "date_entree_groupe",
    "assurance_date_echeance",
)


def map_wincpl_vehicle(vehicle: WincplVehicle) -> dict[str, Any]:
    """Canonical vehicle columns for a parsed Wincpl ``VEHICULE`` item."""
    columns: dict[str, Any] = {
        "data_source": DATA_SOURCE_WINCPL,
        "wincpl_code": vehicle.code_vehicule,
        "immatriculation": vehicle.immatriculation,
        "numero": vehicle.code_vehicule,
        "id_societe": _as_text(vehicle.id_societe),
        "id_agence": _as_text(vehicle.id_agence),
        "type_code": _as_text(vehicle.type_vehicule),
        "critair": _as_text(vehicle.critair),
        "poids_vide": vehicle.poids_a_vide,
        "poids_charge": vehicle.poids_en_charge,
        # Legacy columns shared with MyRentACar rows
        "marque_modele": vehicle.marque_vehicule,
        "type": vehicle.type_carrosserie,
        "energie": energy_label(vehicle.energie_vehicule),
        "capacite_reservoir": vehicle.contenance_reservoir,
        "kilometrage": vehicle.km_compteur,
        "raw_data": asdict(vehicle),
    }
    for name in _WINCPL_COPIED_COLUMNS:
        columns[name] = getattr(vehicle, name)
    for name in _WINCPL_DATE_COLUMNS:
        columns[name] = format_wincpl_date(getattr(vehicle, name))
    return columns


def _as_text(value: int | None) -> str | None:
    return None if value is None else str(value)


def _new_vehicle(columns: dict[str, Any], stamp: str) -> VehicleCache:
    return VehicleCache(
        **columns,
        status=VEHICLE_STATUS_AVAILABLE,
        semi_compatibles=[],
        equipements=[],
        absences=[],
        synced_at=stamp,
        created_at=stamp,
        updated_at=stamp,
    )


def _apply(vehicle: VehicleCache, columns: dict[str, Any], stamp: str) -> None:
    for name, value in columns.items():
        setattr(vehicle, name, value)
    vehicle.synced_at = stamp
    vehicle.updated_at = stamp


def _is_stale_myrentcar_row(vehicle: VehicleCache, live_ids: Collection[int] | None) -> bool:
    return (
        live_ids is not None
        and vehicle.data_source == DATA_SOURCE_MYRENTCAR
        and vehicle.myrentcar_id not in live_ids
    )


async def upsert_myrentcar_vehicle(
    session: AsyncSession,
    columns: dict[str, Any],
    live_ids: Collection[int] | None = None,
) -> UpsertOutcome:
    """Upsert by ``myrentcar_id``; manual columns survive updates.

    When no row carries the id yet, the row holding the same code is adopted
    if it came from Wincpl or belongs to a MyRentACar id absent from
    ``live_ids`` (a vehicle re-created upstream under a new id). A code held
    by another live row is left to that row and this one is stored without a
    code. A stale row keeping the code of an existing row gives it up.
    """
    stamp = now_stamp()
    existing = (
        await session.execute(
            select(VehicleCache).where(VehicleCache.myrentcar_id == columns["myrentcar_id"])
        )
    ).scalar_one_or_none()

    code = columns.get("wincpl_code")
    if code:
        holder = (
            await session.execute(select(VehicleCache).where(VehicleCache.wincpl_code == code))
        ).scalar_one_or_none()
        if holder is not None and holder is not existing:
            stale = _is_stale_myrentcar_row(holder, live_ids)
            if existing is None and (holder.myrentcar_id is None or stale):
                if stale:
                    logger.info(
                        "Vehicle %s moved from MyRentACar id %s to %s",
                        code,
                        holder.myrentcar_id,
                        columns["myrentcar_id"],
                    )
                existing = holder
            elif stale:
                holder.wincpl_code = None
                await session.flush()
            else:
                logger.warning(
                    "Code %s already belongs to vehicle row %d; MyRentACar id %s stored without it",
                    code,
                    holder.id,
                    columns["myrentcar_id"],
                )
                columns = {**columns, "wincpl_code": None}

    if existing is None:
        session.add(_new_vehicle(columns, stamp))
        await session.flush()
        return UpsertOutcome.CREATED

    _apply(existing, columns, stamp)
    await session.flush()
    return UpsertOutcome.UPDATED


async def upsert_wincpl_vehicle(
    session: AsyncSession, columns: dict[str, Any]
) -> UpsertOutcome:
    """Upsert by ``wincpl_code``; manual columns and absences survive updates."""
    if not columns.get("wincpl_code"):
        msg = "Wincpl vehicle has no CODE_VEHICULE"
        raise ValueError(msg)

    stamp = now_stamp()
    existing = (
        await session.execute(
            select(VehicleCache).where(VehicleCache.wincpl_code == columns["wincpl_code"])
        )
    ).scalar_one_or_none()
    if existing is None:
        session.add(_new_vehicle(columns, stamp))
        await session.flush()
        return UpsertOutcome.CREATED

    _apply(existing, columns, stamp)
    await session.flush()
    return UpsertOutcome.UPDATED


def absence_entry(absence: WincplAbsence) -> dict[str, Any]:
    return {
        "dateDebut": format_wincpl_date(absence.date_debut),
        "heureDebut": absence.heure_debut,
        "dateFin": format_wincpl_date(absence.date_fin),
        "heureFin": absence.heure_fin,
        "codeMotif": absence.code_motif,
        "numero": absence.numero,
        "status": absence.status,
    }


def merge_absence(
    absences: list[dict[str, Any]], absence: WincplAbsence
) -> list[dict[str, Any]]:
    """Return a new absence list with ``absence`` replacing any same-numero entry."""
    entry = absence_entry(absence)
    merged = list(absences)
    for index, existing in enumerate(merged):
        if existing.get("numero") == absence.numero:
            merged[index] = entry
            return merged
    merged.append(entry)
    return merged


async def upsert_absence(session: AsyncSession, absence: WincplAbsence) -> bool:
    """Attach an absence to the vehicle whose code is ``CODE_LIEN``.

    Returns False when no such vehicle is cached.
    """
    vehicle = (
        await session.execute(
            select(VehicleCache).where(VehicleCache.wincpl_code == absence.code_lien)
        )
    ).scalar_one_or_none()
    if vehicle is None:
        logger.warning("Wincpl absence for unknown vehicle %s", absence.code_lien)
        return False

    vehicle.absences = merge_absence(vehicle.absences or [], absence)
    vehicle.updated_at = now_stamp()
    await session.flush()
    return True


async def sync_vehicles(
    session: AsyncSession,
    myrentcar: MyRentCarClient,
    settings: Settings,
    *,
    counts: SyncCounts | None = None,
) -> SyncCounts:
    """Reconcile MyRentACar vehicles, then drop MyRentACar rows no longer listed."""
    counts = counts if counts is not None else SyncCounts()

    details = await myrentcar.fetch_all_vehicle_details()
    live_ids = {detail.id for detail in details}
    logger.info("MyRentACar: %d vehicles to synchronise", len(details))

    for detail in details:
        outcome = await upsert_myrentcar_vehicle(
            session, map_myrentcar_vehicle(detail), live_ids
        )
        await session.commit()
        counts.record(outcome)

    cleanup = await delete_orphans(
        session,
        VehicleCache.myrentcar_id,
        [detail.id for detail in details],
        batch_size=settings.cleanup_batch_size,
        where=VehicleCache.data_source == DATA_SOURCE_MYRENTCAR,
    )
    counts.deleted = cleanup.deleted

    logger.info(
        "Vehicle sync: %d synced, %d created, %d updated, %d deleted",
        counts.synced,
        counts.created,
        counts.updated,
        counts.deleted,
    )
    return counts


async def import_wincpl(
    session: AsyncSession, xml_contents: list[str] | list[bytes]
) -> WincplImportResult:
    """Import a batch of Wincpl files; per-item failures never stop the batch."""
    parsed = parse_many(xml_contents)
    result = WincplImportResult(
        files_processed=len(xml_contents), errors=list(parsed.errors)
    )

    for vehicle in parsed.vehicles:
        try:
            outcome = await upsert_wincpl_vehicle(session, map_wincpl_vehicle(vehicle))
            await session.commit()
        except (SQLAlchemyError, ValueError) as exc:
            await session.rollback()
            msg = f"Vehicle {vehicle.code_vehicule or '?'} import failed: {exc}"
            logger.error(msg)
            result.errors.append(msg)
            continue
        if outcome is UpsertOutcome.CREATED:
            result.vehicles_imported += 1
        else:
            result.vehicles_updated += 1

    for absence in parsed.absences:
        try:
            attached = await upsert_absence(session, absence)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            msg = f"Absence {absence.numero or '?'} for {absence.code_lien} import failed: {exc}"
            logger.error(msg)
            result.errors.append(msg)
            continue
        if attached:
            result.absences_imported += 1

    logger.info(
        "Wincpl import: %d files, %d created, %d updated, %d absences, %d errors",
        result.files_processed,
        result.vehicles_imported,
        result.vehicles_updated,
        result.absences_imported,
        len(result.errors),
    )
    return result
