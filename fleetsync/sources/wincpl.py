"""Wincpl legacy XML feed parser.

Each file holds a single ``<ITEM Type="..." Action="..." Date="..." Heure="...">``
whose children are flat ``<TAG>value</TAG>`` fields. Two item types are
understood: ``VEHICULE`` and ``ABSENCE``. Parsing never raises; problems are
reported as error strings on the result.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    _Reader = Callable[[dict[str, str], str], object]

logger = logging.getLogger(__name__)

ITEM_VEHICLE = "VEHICULE"
ITEM_ABSENCE = "ABSENCE"
ITEM_UNKNOWN = "UNKNOWN"

WINCPL_ENCODING = "iso-8859-1"

ENERGY_LABELS = {
    "GO": "Gasoil",
    "GZ": "Gaz",
    "ES": "Essence",
    "EL": "Électrique",
    "HY": "Hybride",
    "GP": "GPL",
    "GN": "GNV",
}

_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")
_NON_DIGIT_RE = re.compile(r"\D")


@dataclass
class WincplKmReading:
    date: str
    km: float


@dataclass
class WincplVehicle:
    """One ``VEHICULE`` item. ``code_vehicule`` is the unique key."""

    code_vehicule: str
    immatriculation: str
    action: str | None = None
    date: str | None = None
    heure: str | None = None
    id_societe: int | None = None
    id_agence: int | None = None
    categorie_vehicule: str | None = None
    type_vehicule: int | None = None
    marque_vehicule: str | None = None
    en_activite: bool | None = None
    interne: str | None = None

    # Serial numbers
    numero_serie: str | None = None
    numero_moteur: str | None = None
    numero_chassis: str | None = None
    numero_chassis_aux: str | None = None

    # Engine
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

    # Dimensions
    longueur_totale: float | None = None
    largeur_totale: float | None = None
    hauteur_totale: float | None = None
    volume_vehicule: float | None = None
    volume_maxi: float | None = None

    # Weights
    poids_a_vide: float | None = None
    poids_en_charge: float | None = None
    charge_utile: float | None = None
    poids_total_roulant: float | None = None
    poids_maxi_marchandises: float | None = None
    ptac: float | None = None
    ptr: float | None = None
    nb_essieux: int | None = None
    poids_moyen_essieu: float | None = None

    # Body
    type_carrosserie: str | None = None
    type_carrosserie_2: str | None = None
    genre_carrosserie: str | None = None
    carrosserie_cg: str | None = None
    genre_cg: str | None = None
    type_carte_grise: str | None = None

    # Capacity
    nb_places_assises: int | None = None
    nb_places_debout: int | None = None
    nb_couchettes: int | None = None
    nb_portes: int | None = None
    metre_plancher: float | None = None
    pal_vehicule: int | None = None

    # Energy and consumption
    energie_vehicule: str | None = None
    contenance_reservoir: float | None = None
    contenance_reservoir_aux: float | None = None
    conso_utac: float | None = None
    conso_urbaine: float | None = None
    conso_extra_urbaine: float | None = None
    conso_mixte: float | None = None

    # Emissions
    co2: float | None = None
    co2_urbain: float | None = None
    co2_extra_urbain: float | None = None
    emission_co2: float | None = None
    profil_co2: str | None = None
    norme_pollution: str | None = None
    critair: int | None = None
    filtre_a_particules: bool | None = None
    adblue: bool | None = None
    decibels_vehicule: float | None = None
    regime_decibels: float | None = None

    # Oil capacities
    contenance_huile: float | None = None
    contenance_huile_aux: float | None = None
    contenance_huile_boite: float | None = None

    # Dates and odometer (dates as raw YYYYMMDD)
    date_achat: str | None = None
    km_achat: float | None = None
    date_sortie: str | None = None
    km_sortie: float | None = None
    date_mise_circulation: str | None = None
    date_carte_grise: str | None = None
    date_cg: str | None = None
    date_fin_garantie_vehicule: str | None = None
    km_fin_garantie_vehicule: float | None = None
    date_fin_garantie_moteur: str | None = None
    km_fin_garantie_moteur: float | None = None
    date_entree_groupe: str | None = None
    km_entree_groupe: float | None = None
    km_compteur: float | None = None
    immatriculation_precedente: str | None = None

    # Insurance
    code_assureur: str | None = None
    assurance_num_contrat: str | None = None
    assurance_date_echeance: str | None = None
    assurance_montant: float | None = None
    assurance_franchise: float | None = None
    assurance_devise: str | None = None

    # Transport use
    type_transport: str | None = None
    sous_genre_vehicule: str | None = None
    vitesse_commerciale_moyenne: float | None = None
    nb_cuves: int | None = None
    code_type_semi: str | None = None
    contraintes: str | None = None
    porteur: str | None = None
    liste_usages: str | None = None

    # Sale and visibility
    en_vente: bool | None = None
    vendu: bool | None = None
    visible_transport: bool | None = None
    visible_garage: bool | None = None

    # Registration certificate
    type_vin_cg: str | None = None
    version_cg: str | None = None
    mentions_cg: str | None = None
    licence: str | None = None
    n_serie: str | None = None

    # Integration codes
    code_ie: str | None = None
    libelle_ie: str | None = None
    code_ie2: str | None = None
    libelle_ie2: str | None = None
    code_eliotime: str | None = None
    envoi_mission: str | None = None

    tel_vehicule: str | None = None
    compte_analytique: str | None = None
    site_web_constructeur: str | None = None
    commentaire: str | None = None
    km_readings: list[WincplKmReading] = field(default_factory=list)
    raw: dict[str, str] = field(default_factory=dict)


@dataclass
class WincplAbsence:
    """One ``ABSENCE`` item: an unavailability period for a vehicle."""

    type_lien: str
    code_lien: str
    date_debut: str
    date_fin: str
    code_motif: str
    action: str | None = None
    date: str | None = None
    heure: str | None = None
    id_societe: int | None = None
    id_agence: int | None = None
    heure_debut: str | None = None
    heure_fin: str | None = None
    type_numero: str | None = None
    numero: str | None = None
    status: int | None = None
    texte_affiche: str | None = None


@dataclass
class WincplParseResult:
    type: str = ITEM_UNKNOWN
    vehicles: list[WincplVehicle] = field(default_factory=list)
    absences: list[WincplAbsence] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def format_wincpl_date(value: str | None) -> str | None:
    """Convert a ``YYYYMMDD`` value to ``YYYY-MM-DD``.

    Non-digits are stripped first; fewer than eight digits yields None.
    """
    if not value:
        return None
    digits = _NON_DIGIT_RE.sub("", value)
    if len(digits) < 8:
        return None
    return f"{digits[0:4]}-{digits[4:6]}-{digits[6:8]}"


def energy_label(code: str | None) -> str | None:
    """Display label for a Wincpl energy code; unknown codes pass through."""
    if not code:
        return None
    return ENERGY_LABELS.get(code.upper(), code)


def _text(fields: dict[str, str], key: str) -> str | None:
    value = fields.get(key)
    return value if value else None


def parse_number(value: str | float | None) -> float | None:
    """Lenient decimal parsing: comma decimals and spaced thousands accepted.

    ``"7 500,5"`` (plain, no-break or narrow no-break spaces) reads as 7500.5;
    anything unparseable or non-finite is None.
    """
    if value is None:
        return None
    if isinstance(value, int | float):
        return float(value)
    compact = "".join(value.split()).replace(",", ".")
    if not compact:
        return None
    try:
        number = float(compact)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _number(fields: dict[str, str], key: str) -> float | None:
    return parse_number(fields.get(key))


def _integer(fields: dict[str, str], key: str) -> int | None:
    number = _number(fields, key)
    if number is None:
        return None
    return int(number)


def _flag(fields: dict[str, str], key: str) -> bool | None:
    value = fields.get(key)
    if not value:
        return None
    return value.strip().lower() in ("1", "true")


# (XML tag, WincplVehicle attribute, reader)
_VEHICLE_FIELDS: tuple[tuple[str, str, _Reader], ...] = (
    ("IDSOCIETE", "id_societe", _integer),
    ("IDAGENCE", "id_agence", _integer),
    ("CATEGORIE_VEHICULE", "categorie_vehicule", _text),
    ("TYPE_VEHICULE", "type_vehicule", _integer),
    ("MARQUE_VEHICULE", "marque_vehicule", _text),
    ("EN_ACTIVITE", "en_activite", _flag),
    ("INTERNE", "interne", _text),
    ("NUMERO_SERIE", "numero_serie", _text),
    ("NUMERO_MOTEUR", "numero_moteur", _text),
    ("NUMERO_CHASSIS", "numero_chassis", _text),
    ("NUMERO_CHASSIS_AUX", "numero_chassis_aux", _text),
    ("PUISSANCE_VEHICULE", "puissance_vehicule", _number),
    ("PUISSANCE_KW", "puissance_kw", _number),
    ("CYLINDREE", "cylindree", _number),
    ("NB_CYLINDRES", "nb_cylindres", _integer),
    ("NB_SOUPAPES", "nb_soupapes", _integer),
    ("NB_VITESSES", "nb_vitesses", _integer),
    ("CODE_MOTEUR", "code_moteur", _text),
    ("TYPE_TRANSMISSION", "type_transmission", _text),
    ("TYPE_INJECTION", "type_injection", _text),
    ("TURBO_COMPR", "turbo_compresseur", _flag),
    ("PROPULSION", "propulsion", _text),
    ("VITESSE_MOTEUR", "vitesse_moteur", _number),
    ("LONGUEUR_TOTALE", "longueur_totale", _number),
    ("LARGEUR_TOTALE", "largeur_totale", _number),
    ("HAUTEUR_TOTALE", "hauteur_totale", _number),
    ("VOLUME_VEHICULE", "volume_vehicule", _number),
    ("VOLUME_MAXI", "volume_maxi", _number),
    ("POIDS_A_VIDE", "poids_a_vide", _number),
    ("POIDS_EN_CHARGE", "poids_en_charge", _number),
    ("CHARGE_UTILE", "charge_utile", _number),
    ("POIDS_TOTAL_ROULANT", "poids_total_roulant", _number),
    ("POIDS_MAXI_MARCHANDISES", "poids_maxi_marchandises", _number),
    ("PTAC", "ptac", _number),
    ("PTR", "ptr", _number),
    ("NB_ESSIEUX", "nb_essieux", _integer),
    ("POIDS_MOYEN_ESSIEU", "poids_moyen_essieu", _number),
    ("TYPE_CARROSSERIE", "type_carrosserie", _text),
    ("TYPE_CARROSSERIE_2", "type_carrosserie_2", _text),
    ("GENRE_CARROSSERIE", "genre_carrosserie", _text),
    ("CARROSSERIE_CG", "carrosserie_cg", _text),
    ("GENRE_CG", "genre_cg", _text),
    ("TYPE_CARTE_GRISE", "type_carte_grise", _text),
    ("NB_PLACES_ASSISES", "nb_places_assises", _integer),
    ("NB_PLACES_DEBOUT", "nb_places_debout", _integer),
    ("NB_COUCHETTES", "nb_couchettes", _integer),
    ("NB_PORTES", "nb_portes", _integer),
    ("METRE_PLANCHER", "metre_plancher", _number),
    ("PAL_VEHICULE", "pal_vehicule", _integer),
    ("ENERGIE_VEHICULE", "energie_vehicule", _text),
    ("CONT_RES", "contenance_reservoir", _number),
    ("CONT_RES_AUX", "contenance_reservoir_aux", _number),
    ("CONSO_UTAC", "conso_utac", _number),
    ("CONSO_URBAINE", "conso_urbaine", _number),
    ("CONSO_EXTRAURBAINE", "conso_extra_urbaine", _number),
    ("CONSO_MIXTE", "conso_mixte", _number),
    ("CO2", "co2", _number),
    ("CO2_URBAIN", "co2_urbain", _number),
    ("CO2_EXTRAURBAIN", "co2_extra_urbain", _number),
    ("EMISSION_CO2", "emission_co2", _number),
    ("PROFIL_CO2", "profil_co2", _text),
    ("NORME_POLLUTION", "norme_pollution", _text),
    ("CRITAIR", "critair", _integer),
    ("FILTRE_A_PARTICULES", "filtre_a_particules", _flag),
    ("ADBLUE", "adblue", _flag),
    ("DECIBELS_VEHICULE", "decibels_vehicule", _number),
    ("REGIME_DECIBELS", "regime_decibels", _number),
    ("CONT_HUILE", "contenance_huile", _number),
    ("CONT_HUILE_AUX", "contenance_huile_aux", _number),
    ("CONT_HUILE_BOITE", "contenance_huile_boite", _number),
    ("DATE_ACHAT", "date_achat", _text),
    ("KM_ACHAT", "km_achat", _number),
    ("DATE_SORTIE", "date_sortie", _text),
    ("KM_SORTIE", "km_sortie", _number),
    ("DATE_MISE_CIRCUL", "date_mise_circulation", _text),
    ("DATE_CARTEGRISE", "date_carte_grise", _text),
    ("DATE_CG", "date_cg", _text),
    ("DATE_FIN_GARANTIE_VEH", "date_fin_garantie_vehicule", _text),
    ("KM_FIN_GARANTIE_VEH", "km_fin_garantie_vehicule", _number),
    ("DATE_FIN_GARANTIE_MOT", "date_fin_garantie_moteur", _text),
    ("KM_FIN_GARANTIE_MOT", "km_fin_garantie_moteur", _number),
    ("DATE_ENTREE_GROUPE", "date_entree_groupe", _text),
    ("KM_ENTREE_GROUPE", "km_entree_groupe", _number),
    ("KM_COMPTEUR", "km_compteur", _number),
    ("IMMATRICUL_PRECEDENTE", "immatriculation_precedente", _text),
    ("CODE_ASSUREUR", "code_assureur", _text),
    ("ASSUR_NUM_CONTRAT", "assurance_num_contrat", _text),
    ("ASSUR_DATE_ECHEANCE", "assurance_date_echeance", _text),
    ("ASSUR_MONTANT_ASSURANCE", "assurance_montant", _number),
    ("ASSUR_MONTANT_FRANCHISE", "assurance_franchise", _number),
    ("ASSUR_CODE_DEVISE", "assurance_devise", _text),
    ("TYPE_TRANSPORT", "type_transport", _text),
    ("SOUSGENRE_VEHICULE", "sous_genre_vehicule", _text),
    ("VITESSE_CIALE_MOYENNE", "vitesse_commerciale_moyenne", _number),
    ("NB_CUVES", "nb_cuves", _integer),
    ("CODE_TYPE_SEMI", "code_type_semi", _text),
    ("CONTRAINTES", "contraintes", _text),
    ("PORTEUR", "porteur", _text),
    ("LISTE_USAGES", "liste_usages", _text),
    ("EN_VENTE", "en_vente", _flag),
    ("VENDU", "vendu", _flag),
    ("VISIBLE_TRANSP", "visible_transport", _flag),
    ("VISIBLE_GARAGE", "visible_garage", _flag),
    ("TYPE_VIN_CG", "type_vin_cg", _text),
    ("VERSION_CG", "version_cg", _text),
    ("MENTIONS_CG", "mentions_cg", _text),
    ("LICENCE", "licence", _text),
    ("N_SERIE", "n_serie", _text),
    ("CODE_IE", "code_ie", _text),
    ("LIBELLE_IE", "libelle_ie", _text),
    ("CODE_IE2", "code_ie2", _text),
    ("LIBELLE_IE2", "libelle_ie2", _text),
    ("CODE_ELIOTIME", "code_eliotime", _text),
    ("ENVOI_MISSION", "envoi_mission", _text),
    ("TEL_VEHICULE", "tel_vehicule", _text),
    ("COMPTE_ANALYTIQUE", "compte_analytique", _text),
    ("SITE_WEB_CONSTRUCTEUR", "site_web_constructeur", _text),
    ("COMMENTAIRE", "commentaire", _text),
)


def _read_item(data: str | bytes) -> ET.Element:
    """Pull-parse one document and return its root element.

    Raises ET.ParseError on malformed input.
    """
    if isinstance(data, bytes) and not data.lstrip().startswith(b"<?xml"):
        data = data.decode(WINCPL_ENCODING)
    if isinstance(data, str):
        # A str is already decoded; its declared encoding no longer applies.
        data = _XML_DECLARATION_RE.sub("", data, count=1)

    parser = ET.XMLPullParser(events=("start",))
    parser.feed(data)
    parser.close()
    root: ET.Element | None = None
    for _event, element in parser.read_events():
        root = element
        break
    if root is None:
        msg = "empty document"
        raise ET.ParseError(msg)
    return root


def _child_fields(item: ET.Element) -> dict[str, str]:
    """Map every leaf child tag of ``item`` to its stripped text."""
    return {
        child.tag: (child.text or "").strip()
        for child in item
        if len(child) == 0
    }


def _km_readings(item: ET.Element) -> list[WincplKmReading]:
    readings: list[WincplKmReading] = []
    for section in item.findall("VEHICULE_KM"):
        for entry in section.findall("KM"):
            fields = _child_fields(entry)
            km = _number(fields, "KM")
            date = _text(fields, "DATE")
            if date and km is not None:
                readings.append(WincplKmReading(date=date, km=km))
    return readings


def _parse_vehicle(item: ET.Element) -> WincplVehicle:
    fields = _child_fields(item)
    return WincplVehicle(
        code_vehicule=fields.get("CODE_VEHICULE", ""),
        immatriculation=fields.get("IMMATRICULATION", ""),
        action=item.get("Action"),
        date=item.get("Date"),
        heure=item.get("Heure"),
        km_readings=_km_readings(item),
        raw=fields,
        **{name: read(fields, tag) for tag, name, read in _VEHICLE_FIELDS},
    )


def _parse_absence(item: ET.Element) -> WincplAbsence:
    fields = _child_fields(item)
    return WincplAbsence(
        type_lien=fields.get("TYPE_LIEN", ""),
        code_lien=fields.get("CODE_LIEN", ""),
        date_debut=fields.get("DATE_DEBUT", ""),
        date_fin=fields.get("DATE_FIN", ""),
        code_motif=fields.get("CODE_MOTIF", ""),
        action=item.get("Action"),
        date=item.get("Date"),
        heure=item.get("Heure"),
        id_societe=_integer(fields, "IDSOCIETE"),
        id_agence=_integer(fields, "IDAGENCE"),
        heure_debut=_text(fields, "HEURE_DEBUT"),
        heure_fin=_text(fields, "HEURE_FIN"),
        type_numero=_text(fields, "TYPENUMERO"),
        numero=_text(fields, "NUMERO"),
        status=_integer(fields, "STATUS"),
        texte_affiche=_text(fields, "TEXTE_AFFICHE"),
    )


def parse_document(data: str | bytes) -> WincplParseResult:
    """Parse one Wincpl file (``str``, or ISO-8859-1 ``bytes``)."""
    result = WincplParseResult()
    try:
        item = _read_item(data)
    except ET.ParseError as exc:
        result.errors.append(f"XML parse error: {exc}")
        return result

    if item.tag != "ITEM":
        result.errors.append("No <ITEM> root element found")
        return result

    item_type = item.get("Type")
    if item_type == ITEM_VEHICLE:
        result.type = ITEM_VEHICLE
        result.vehicles.append(_parse_vehicle(item))
    elif item_type == ITEM_ABSENCE:
        result.type = ITEM_ABSENCE
        result.absences.append(_parse_absence(item))
    else:
        result.errors.append(f"Unknown ITEM Type: {item_type}")
    return result


def parse_many(xml_contents: list[str] | list[bytes]) -> WincplParseResult:
    """Parse a batch of files, aggregating items and per-file errors."""
    result = WincplParseResult()
    for content in xml_contents:
        parsed = parse_document(content)
        result.vehicles.extend(parsed.vehicles)
        result.absences.extend(parsed.absences)
        result.errors.extend(parsed.errors)
        if parsed.type != ITEM_UNKNOWN:
            result.type = parsed.type
    logger.info(
        "Wincpl: parsed %d files (%d vehicles, %d absences, %d errors)",
        len(xml_contents),
        len(result.vehicles),
        len(result.absences),
        len(result.errors),
    )
    return result
