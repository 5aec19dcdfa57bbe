"""Vehicle cache and Wincpl import schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

VehicleStatus = Literal["disponible", "en_tournee", "maintenance", "indisponible"]


class VehicleResponse(BaseModel):
    """A cached vehicle from either source."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    data_source: str
    myrentcar_id: int | None = None
    wincpl_code: str | None = None
    immatriculation: str | None = None
    numero: str | None = None
    type: str | None = None
    type_code: str | None = None
    marque_vehicule: str | None = None
    marque_modele: str | None = None
    categorie_vehicule: str | None = None
    energie: str | None = None
    energie_vehicule: str | None = None
    energie_id: int | None = None
    kilometrage: float | None = None
    km_compteur: float | None = None
    date_dernier_km: str | None = None
    date_mise_circulation: str | None = None
    capacite_reservoir: float | None = None
    contenance_reservoir: float | None = None
    poids_vide: float | None = None
    poids_charge: float | None = None
    charge_utile: float | None = None
    ptac: float | None = None
    ptr: float | None = None
    nb_essieux: int | None = None
    numero_serie: str | None = None
    type_carrosserie: str | None = None
    norme_pollution: str | None = None
    critair: str | None = None
    en_activite: bool | None = None
    id_societe: str | None = None
    id_agence: str | None = None
    prime_volume: float | None = None
    agence_proprietaire: str | None = None
    category_code: str | None = None
    date_carte_grise: str | None = None
    assurance_date_echeance: str | None = None
    commentaire: str | None = None
    interne: str | None = None
    numero_moteur: str | None = None
    numero_chassis: str | None = None
    numero_chassis_aux: str | None = None
    puissance_vehicule: float | None = None
    puissance_kw: float | None = None
    cylindree: float | None = None
    nb_cylindres: int | None = None
    nb_soupapes: int | None = None
    nb_vitesses: int | None = None
    code_moteur: str | None = None
    type_transmission: str | None = None
    type_injection: str | None = None
    turbo_compresseur: bool | None = None
    propulsion: str | None = None
    vitesse_moteur: float | None = None
    longueur_totale: float | None = None
    largeur_totale: float | None = None
    hauteur_totale: float | None = None
    volume_vehicule: float | None = None
    volume_maxi: float | None = None
    poids_total_roulant: float | None = None
    poids_maxi_marchandises: float | None = None
    poids_moyen_essieu: float | None = None
    type_carrosserie_2: str | None = None
    genre_carrosserie: str | None = None
    carrosserie_cg: str | None = None
    genre_cg: str | None = None
    type_carte_grise: str | None = None
    nb_places_assises: int | None = None
    nb_places_debout: int | None = None
    nb_couchettes: int | None = None
    nb_portes: int | None = None
    metre_plancher: float | None = None
    pal_vehicule: int | None = None
    contenance_reservoir_aux: float | None = None
    conso_utac: float | None = None
    conso_urbaine: float | None = None
    conso_extra_urbaine: float | None = None
    conso_mixte: float | None = None
    co2: float | None = None
    co2_urbain: float | None = None
    co2_extra_urbain: float | None = None
    emission_co2: float | None = None
    profil_co2: str | None = None
    filtre_a_particules: bool | None = None
    adblue: bool | None = None
    decibels_vehicule: float | None = None
    regime_decibels: float | None = None
    contenance_huile: float | None = None
    contenance_huile_aux: float | None = None
    contenance_huile_boite: float | None = None
    date_achat: str | None = None
    km_achat: float | None = None
    date_sortie: str | None = None
    km_sortie: float | None = None
    date_cg: str | None = None
    date_fin_garantie_vehicule: str | None = None
    km_fin_garantie_vehicule: float | None = None
    date_fin_garantie_moteur: str | None = None
    km_fin_garantie_moteur: float | None = None
    date_entree_groupe: str | None = None
    km_entree_groupe: float | None = None
    immatriculation_precedente: str | None = None
    code_assureur: str | None = None
    assurance_num_contrat: str | None = None
    assurance_montant: float | None = None
    assurance_franchise: float | None = None
    assurance_devise: str | None = None
    type_transport: str | None = None
    sous_genre_vehicule: str | None = None
    nb_cuves: int | None = None
    code_type_semi: str | None = None
    porteur: str | None = None
    contraintes: str | None = None
    en_vente: bool | None = None
    vendu: bool | None = None
    visible_transport: bool | None = None
    visible_garage: bool | None = None
    tel_vehicule: str | None = None
    licence: str | None = None
    absences: list[dict[str, Any]]
    status: str
    semi_compatibles: list[Any]
    equipements: list[Any]
    localisation: str | None = None
    prochain_ct: str | None = None
    prochain_entretien: str | None = None
    titulaire_id: int | None = None
    maintenance_type: str | None = None
    maintenance_debut: str | None = None
    maintenance_fin: str | None = None
    maintenance_commentaire: str | None = None
    synced_at: str | None = None
    created_at: str
    updated_at: str


class VehicleListResponse(BaseModel):
    """Paginated vehicle list."""

    vehicles: list[VehicleResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class VehicleUpdate(BaseModel):
    """Operator-owned fields; upstream fields are not writable."""

    model_config = ConfigDict(extra="forbid")

    status: VehicleStatus | None = None
    semi_compatibles: list[Any] | None = None
    equipements: list[Any] | None = None
    localisation: str | None = None
    prochain_ct: str | None = None
    prochain_entretien: str | None = None
    titulaire_id: int | None = None
    maintenance_type: str | None = None
    maintenance_debut: str | None = None
    maintenance_fin: str | None = None
    maintenance_commentaire: str | None = None


class VehicleStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_source: dict[str, int]
    last_synced_at: str | None = None


class WincplInlineImport(BaseModel):
    """Inline Wincpl batch: one XML document per entry."""

    xml_contents: list[str] = Field(default_factory=list)


class WincplImportResponse(BaseModel):
    files_processed: int
    vehicles_imported: int
    vehicles_updated: int
    absences_imported: int
    errors: list[str]
