"""Resolve Factorial custom-field values onto driver cache columns.

Factorial custom fields are identified inconsistently across API versions
and tenants: sometimes by ``slug``, sometimes only by ``name`` or a free-text
label, and in the worst case only by their numeric id. Resolution builds a
``slug -> field definition`` map once per run, then reads each employee's
values through it.

Values may be attached to the employee directly or to an intermediate owner
(a contract version or a custom-resource row); owner resolution maps them
back to the employee id.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from fleetsync.sources.factorial import (
        ContractVersion,
        CustomField,
        CustomFieldOption,
        CustomFieldValue,
        CustomResourceValue,
    )

logger = logging.getLogger(__name__)

# slug -> driver_cache column
CUSTOM_FIELD_COLUMNS: dict[str, str] = {
    "lieu_de_prise_de_poste": "lieu_prise_poste",
    "date_remise_carte_as_24": "date_remise_carte_as24",
    "numeros_cartes_as_24": "numero_carte_as24",
    "date_de_restitution_as_24": "date_restitution_as24",
    "shift": "shift",
    "forfait_weekend": "forfait_weekend",
    "permis_de_conduire": "permis_de_conduire",
    "fco": "fco",
    "adr": "adr",
    "habilitation": "habilitation",
    "formation_11239_et_11262": "formation_11239_11262",
    "visite_medicale": "visite_medicale",
}

# Last-resort identification for tenants whose fields carry no usable slug,
# name or label.
KNOWN_FIELD_IDS: dict[int, str] = {
    4340133: "lieu_de_prise_de_poste",
    4644223: "date_remise_carte_as_24",
    5443632: "numeros_cartes_as_24",
    5443630: "date_de_restitution_as_24",
    6170303: "shift",
    6040452: "forfait_weekend",
    6248949: "permis_de_conduire",
    6248951: "fco",
    6248952: "adr",
    6249315: "habilitation",
    6248955: "formation_11239_et_11262",
    6248971: "visite_medicale",
}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_ACCENTED_WORD_RE = re.compile(r"[^a-z0-9_àâäéèêëïîôùûüÿçœæ]")


@dataclass(frozen=True)
class FieldResolutionConfig:
    """Lookup tables driving custom-field resolution."""

    slug_columns: Mapping[str, str] = field(
        default_factory=lambda: dict(CUSTOM_FIELD_COLUMNS)
    )
    known_field_ids: Mapping[int, str] = field(
        default_factory=lambda: dict(KNOWN_FIELD_IDS)
    )


DEFAULT_FIELD_CONFIG = FieldResolutionConfig()


@dataclass
class FieldResolution:
    """Outcome of ``build_field_map``."""

    fields: dict[str, CustomField] = field(default_factory=dict)
    unresolved: list[str] = field(default_factory=list)


@dataclass
class OwnerMaps:
    """Intermediate owner id -> employee id lookups."""

    contract_versions: dict[int, int] = field(default_factory=dict)
    custom_resource_values: dict[int, int] = field(default_factory=dict)


class OwnerKind(StrEnum):
    EMPLOYEE = "Employee"
    CONTRACT_VERSION = "Contracts::ContractVersion"
    CUSTOM_RESOURCE_VALUE = "CustomResources::Value"
    DOCUMENT = "Document"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: str | None) -> OwnerKind:
        """Classify a ``valuable_type`` tag; a missing tag means the employee."""
        if not tag:
            return cls.EMPLOYEE
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


def normalize_label(label: str, strip_accents: bool = True) -> str:
    """Turn a free-text label into a slug candidate.

    With ``strip_accents`` the label is decomposed, combining marks dropped,
    and every run of non-alphanumerics becomes one underscore. Without it,
    accented letters are kept and only whitespace is collapsed.
    """
    lowered = label.strip().lower()
    if strip_accents:
        decomposed = unicodedata.normalize("NFD", lowered)
        ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
        return _NON_ALNUM_RE.sub("_", ascii_only).strip("_")
    underscored = _WHITESPACE_RE.sub("_", lowered)
    return _NON_ACCENTED_WORD_RE.sub("", underscored)


def build_field_map(
    fields: Iterable[CustomField],
    config: FieldResolutionConfig = DEFAULT_FIELD_CONFIG,
) -> FieldResolution:
    """Match each target slug to at most one field definition.

    Strategies run in order over all definitions: ``slug``, ``name``,
    normalized label (accent-stripped, then accent-kept), then known ids.
    A slug matched by an earlier strategy is never reassigned.
    """
    definitions = list(fields)
    targets = config.slug_columns
    resolved: dict[str, CustomField] = {}

    def claim(candidate: str | None, definition: CustomField) -> None:
        if candidate and candidate in targets and candidate not in resolved:
            resolved[candidate] = definition

    for definition in definitions:
        claim(definition.slug, definition)
    for definition in definitions:
        claim(definition.name, definition)
    for definition in definitions:
        label = definition.label or definition.label_text
        if label:
            claim(normalize_label(label), definition)
            claim(normalize_label(label, strip_accents=False), definition)
    for definition in definitions:
        claim(config.known_field_ids.get(definition.id), definition)

    unresolved = sorted(slug for slug in targets if slug not in resolved)
    logger.info(
        "Custom fields: %d/%d target slugs resolved", len(resolved), len(targets)
    )
    if unresolved:
        logger.warning("Unresolved custom-field slugs: %s", ", ".join(unresolved))
    return FieldResolution(fields=resolved, unresolved=unresolved)


def build_option_labels(options: Iterable[CustomFieldOption]) -> dict[int, str]:
    """Map choice-option ids to their display label."""
    labels: dict[int, str] = {}
    for option in options:
        label = option.label or option.value
        if label:
            labels[option.id] = label
    return labels


def build_owner_maps(
    contract_versions: Iterable[ContractVersion],
    custom_resource_values: Iterable[CustomResourceValue],
) -> OwnerMaps:
    maps = OwnerMaps()
    for version in contract_versions:
        if version.employee_id is not None:
            maps.contract_versions[version.id] = version.employee_id
    for resource_value in custom_resource_values:
        if resource_value.attachable_id is not None:
            maps.custom_resource_values[resource_value.id] = resource_value.attachable_id
    return maps


def resolve_owner(value: CustomFieldValue, owner_maps: OwnerMaps) -> int | None:
    """Return the employee id owning ``value``, or None when it has none."""
    owner_id = value.valuable_id if value.valuable_id is not None else value.employee_id
    if owner_id is None:
        return None

    kind = OwnerKind.from_tag(value.valuable_type)
    if kind is OwnerKind.EMPLOYEE:
        return owner_id
    if kind is OwnerKind.CONTRACT_VERSION:
        return owner_maps.contract_versions.get(owner_id)
    if kind is OwnerKind.CUSTOM_RESOURCE_VALUE:
        return owner_maps.custom_resource_values.get(owner_id)
    if kind is OwnerKind.DOCUMENT:
        return None
    return owner_id


def index_values_by_owner(
    values: Iterable[CustomFieldValue], owner_maps: OwnerMaps
) -> dict[int, list[CustomFieldValue]]:
    """Group values under the employee that owns them."""
    grouped: dict[int, list[CustomFieldValue]] = defaultdict(list)
    for value in values:
        owner = resolve_owner(value, owner_maps)
        if owner is not None:
            grouped[owner].append(value)
    return dict(grouped)


def extract_value(
    value: CustomFieldValue,
    definition: CustomField,
    option_labels: Mapping[int, str],
) -> str | None:
    """Read the display value of ``value`` according to its field type."""
    field_type = definition.field_type
    if field_type == "single_choice":
        extracted = value.single_choice_value
        if not extracted:
            if value.option_id is not None:
                extracted = option_labels.get(value.option_id) or value.value
            else:
                extracted = value.value
    elif field_type == "date":
        extracted = value.date_value or value.value
    else:
        extracted = value.long_text_value or value.value
    return extracted or None


def _value_field_id(value: CustomFieldValue) -> int | None:
    return value.field_id if value.field_id is not None else value.custom_field_id


def resolve_custom_fields(
    employee_id: int,
    resolution: FieldResolution,
    values_by_owner: Mapping[int, list[CustomFieldValue]],
    option_labels: Mapping[int, str],
    config: FieldResolutionConfig = DEFAULT_FIELD_CONFIG,
) -> dict[str, str | None]:
    """Return ``column -> value`` for one employee.

    Every configured column is present; columns without a resolved field or
    without a value are None. When several values exist for one field the
    most recent (highest id) wins.
    """
    result: dict[str, str | None] = dict.fromkeys(config.slug_columns.values())
    employee_values = values_by_owner.get(employee_id, [])

    for slug, definition in resolution.fields.items():
        candidates = [v for v in employee_values if _value_field_id(v) == definition.id]
        if not candidates:
            continue
        latest = max(candidates, key=lambda v: v.id)
        result[config.slug_columns[slug]] = extract_value(latest, definition, option_labels)
    return result
