"""Vehicle cache model."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fleetsync.models.base import Base

VEHICLE_STATUS_AVAILABLE = "disponible"
VEHICLE_STATUS_ON_ROUND = "en_tournee"
VEHICLE_STATUS_MAINTENANCE = "maintenance"
VEHICLE_STATUS_UNAVAILABLE = "indisponible"
VEHICLE_STATUSES = (
    VEHICLE_STATUS_AVAILABLE,
    VEHICLE_STATUS_ON_ROUND,
    VEHICLE_STATUS_MAINTENANCE,
    VEHICLE_STATUS_UNAVAILABLE,
)

DATA_SOURCE_MYRENTCAR = "myrentcar"
DATA_SOURCE_WINCPL = "wincpl"

# Columns only an operator may write; never touched by a sync.
VEHICLE_MANUAL_FIELDS = (
    "status",
    "semi_compatibles",
    "equipements",
    "localisation",
    "prochain_ct",
    "prochain_entretien",
    "titulaire_id",
    "maintenance_type",
    "maintenance_debut",
    "maintenance_fin",
    "maintenance_commentaire",
)


class VehicleCache(Base):
    """Cached vehicle keyed by its MyRentACar id or its Wincpl code."""

    __tablename__ = "vehicle_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    data_source: Mapped[str] = mapped_column(String, nullable=False)
    myrentcar_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    wincpl_code: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)

    # Canonical upstream columns
    immatriculation: Mapped[str | None] = mapped_column(Text, nullable=True)
    numero: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str | None] = mapped_column(Text, nullable=True)
    type_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    marque_vehicule: Mapped[str | None] = mapped_column(Text, nullable=True)
    marque_modele: Mapped[str | None] = mapped_column(Text, nullable=True)
    categorie_vehicule: Mapped[str | None] = mapped_column(Text, nullable=True)
    energie: Mapped[str | None] = mapped_column(Text, nullable=True)
    energie_vehicule: Mapped[str | None] = mapped_column(Text, nullable=True)
    energie_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    kilometrage: Mapped[float | None] = mapped_column(Float, nullable=True)
    km_compteur: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_dernier_km: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_mise_circulation: Mapped[str | None] = mapped_column(Text, nullable=True)
    capacite_reservoir: Mapped[float | None] = mapped_column(Float, nullable=True)
    contenance_reservoir: Mapped[float | None] = mapped_column(Float, nullable=True)
    poids_vide: Mapped[float | None] = mapped_column(Float, nullable=True)
    poids_charge: Mapped[float | None] = mapped_column(Float, nullable=True)
    charge_utile: Mapped[float | None] = mapped_column(Float, nullable=True)
    ptac: Mapped[float | None] = mapped_column(Float, nullable=True)
    ptr: Mapped[float | None] = mapped_column(Float, nullable=True)
    nb_essieux: Mapped[int | None] = mapped_column(Integer, nullable=True)
    numero_serie: Mapped[str | None] = mapped_column(Text, nullable=True)
    type_carrosserie: Mapped[str | None] = mapped_column(Text, nullable=True)
    norme_pollution: Mapped[str | None] = mapped_column(Text, nullable=True)
    critair: Mapped[str | None] = mapped_column(Text, nullable=True)
    en_activite: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    id_societe: Mapped[str | None] = mapped_column(Text, nullable=True)
    id_agence: Mapped[str | None] = mapped_column(Text, nullable=True)
    prime_volume: Mapped[float | None] = mapped_column(Float, nullable=True)
    agence_proprietaire: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_carte_grise: Mapped[str | None] = mapped_column(Text, nullable=True)
    assurance_date_echeance: Mapped[str | None] = mapped_column(Text, nullable=True)
    commentaire: Mapped[str | None] = mapped_column(Text, nullable=True)
    interne: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Serial numbers and engine
    numero_moteur: Mapped[str | None] = mapped_column(Text, nullable=True)
    numero_chassis: Mapped[str | None] = mapped_column(Text, nullable=True)
    numero_chassis_aux: Mapped[str | None] = mapped_column(Text, nullable=True)
    puissance_vehicule: Mapped[float | None] = mapped_column(Float, nullable=True)
    puissance_kw: Mapped[float | None] = mapped_column(Float, nullable=True)
    cylindree: Mapped[float | None] = mapped_column(Float, nullable=True)
    nb_cylindres: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nb_soupapes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nb_vitesses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    code_moteur: Mapped[str | None] = mapped_column(Text, nullable=True)
    type_transmission: Mapped[str | None] = mapped_column(Text, nullable=True)
    type_injection: Mapped[str | None] = mapped_column(Text, nullable=True)
    turbo_compresseur: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    propulsion: Mapped[str | None] = mapped_column(Text, nullable=True)
    vitesse_moteur: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Dimensions and weights
    longueur_totale: Mapped[float | None] = mapped_column(Float, nullable=True)
    largeur_totale: Mapped[float | None] = mapped_column(Float, nullable=True)
    hauteur_totale: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_vehicule: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_maxi: Mapped[float | None] = mapped_column(Float, nullable=True)
    poids_total_roulant: Mapped[float | None] = mapped_column(Float, nullable=True)
    poids_maxi_marchandises: Mapped[float | None] = mapped_column(Float, nullable=True)
    poids_moyen_essieu: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Body and capacity
    type_carrosserie_2: Mapped[str | None] = mapped_column(Text, nullable=True)
    genre_carrosserie: Mapped[str | None] = mapped_column(Text, nullable=True)
    carrosserie_cg: Mapped[str | None] = mapped_column(Text, nullable=True)
    genre_cg: Mapped[str | None] = mapped_column(Text, nullable=True)
    type_carte_grise: Mapped[str | None] = mapped_column(Text, nullable=True)
    nb_places_assises: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nb_places_debout: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nb_couchettes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nb_portes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    metre_plancher: Mapped[float | None] = mapped_column(Float, nullable=True)
    pal_vehicule: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Consumption and emissions
    contenance_reservoir_aux: Mapped[float | None] = mapped_column(Float, nullable=True)
    conso_utac: Mapped[float | None] = mapped_column(Float, nullable=True)
    conso_urbaine: Mapped[float | None] = mapped_column(Float, nullable=True)
    conso_extra_urbaine: Mapped[float | None] = mapped_column(Float, nullable=True)
    conso_mixte: Mapped[float | None] = mapped_column(Float, nullable=True)
    co2: Mapped[float | None] = mapped_column(Float, nullable=True)
    co2_urbain: Mapped[float | None] = mapped_column(Float, nullable=True)
    co2_extra_urbain: Mapped[float | None] = mapped_column(Float, nullable=True)
    emission_co2: Mapped[float | None] = mapped_column(Float, nullable=True)
    profil_co2: Mapped[str | None] = mapped_column(Text, nullable=True)
    filtre_a_particules: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    adblue: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    decibels_vehicule: Mapped[float | None] = mapped_column(Float, nullable=True)
    regime_decibels: Mapped[float | None] = mapped_column(Float, nullable=True)
    contenance_huile: Mapped[float | None] = mapped_column(Float, nullable=True)
    contenance_huile_aux: Mapped[float | None] = mapped_column(Float, nullable=True)
    contenance_huile_boite: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Lifecycle dates (YYYY-MM-DD) and odometer readings
    date_achat: Mapped[str | None] = mapped_column(Text, nullable=True)
    km_achat: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_sortie: Mapped[str | None] = mapped_column(Text, nullable=True)
    km_sortie: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_cg: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_fin_garantie_vehicule: Mapped[str | None] = mapped_column(Text, nullable=True)
    km_fin_garantie_vehicule: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_fin_garantie_moteur: Mapped[str | None] = mapped_column(Text, nullable=True)
    km_fin_garantie_moteur: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_entree_groupe: Mapped[str | None] = mapped_column(Text, nullable=True)
    km_entree_groupe: Mapped[float | None] = mapped_column(Float, nullable=True)
    immatriculation_precedente: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Insurance
    code_assureur: Mapped[str | None] = mapped_column(Text, nullable=True)
    assurance_num_contrat: Mapped[str | None] = mapped_column(Text, nullable=True)
    assurance_montant: Mapped[float | None] = mapped_column(Float, nullable=True)
    assurance_franchise: Mapped[float | None] = mapped_column(Float, nullable=True)
    assurance_devise: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Transport use, sale and visibility
    type_transport: Mapped[str | None] = mapped_column(Text, nullable=True)
    sous_genre_vehicule: Mapped[str | None] = mapped_column(Text, nullable=True)
    nb_cuves: Mapped[int | None] = mapped_column(Integer, nullable=True)
    code_type_semi: Mapped[str | None] = mapped_column(Text, nullable=True)
    porteur: Mapped[str | None] = mapped_column(Text, nullable=True)
    contraintes: Mapped[str | None] = mapped_column(Text, nullable=True)
    en_vente: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    vendu: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    visible_transport: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    visible_garage: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    tel_vehicule: Mapped[str | None] = mapped_column(Text, nullable=True)
    licence: Mapped[str | None] = mapped_column(Text, nullable=True)

    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    absences: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Manual fields
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=VEHICLE_STATUS_AVAILABLE
    )
    semi_compatibles: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    equipements: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    localisation: Mapped[str | None] = mapped_column(Text, nullable=True)
    prochain_ct: Mapped[str | None] = mapped_column(Text, nullable=True)
    prochain_entretien: Mapped[str | None] = mapped_column(Text, nullable=True)
    titulaire_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    maintenance_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    maintenance_debut: Mapped[str | None] = mapped_column(Text, nullable=True)
    maintenance_fin: Mapped[str | None] = mapped_column(Text, nullable=True)
    maintenance_commentaire: Mapped[str | None] = mapped_column(Text, nullable=True)

    synced_at: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_vehicle_cache_status", "status"),
        Index("idx_vehicle_cache_source", "data_source"),
        Index("idx_vehicle_cache_immatriculation", "immatriculation"),
    )
