"""Utilities for transforming raw Seoul Open API rows into canonical records."""

import logging
from typing import Dict, Mapping, Optional, Tuple

from toilet_registry.models import CanonicalRecord

logger = logging.getLogger(__name__)

# Upstream batches disagree on column names; each canonical field probes its
# aliases in order and takes the first non-blank value.
FIELD_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "id": ("OBJECTID", "ID", "POI_ID", "TOILET_ID", "MGIS_ID"),
    "name": ("CONTS_NAME", "FNAME", "TOILET_NM", "NAME", "NM"),
    "address": ("ADDR_NEW", "ADDR_OLD", "ADR", "ADDR", "ADDRESS"),
    "latitude": ("COORD_Y", "Y_WGS84", "LAT", "Y"),
    "longitude": ("COORD_X", "X_WGS84", "LNG", "X"),
    "area": ("GU_NAME",),
    "phone": ("TEL_NO",),
    "open_type": ("VALUE_01",),
    "open_time": ("VALUE_02",),
    "gender_policy": ("VALUE_04",),
    "safety_info": ("VALUE_07",),
    "place_type": ("VALUE_08",),
    "manager": ("VALUE_09",),
}


def _index_row(raw_row: Mapping[str, Optional[str]]) -> Dict[str, str]:
    index: Dict[str, str] = {}
    for key, value in raw_row.items():
        if value is None:
            continue
        text = str(value).strip()
        if text:
            index.setdefault(str(key).upper(), text)
    return index


def pick(index: Mapping[str, str], aliases: Tuple[str, ...]) -> str:
    for alias in aliases:
        value = index.get(alias.upper())
        if value:
            return value
    return ""


def normalize(raw_row: Mapping[str, Optional[str]]) -> CanonicalRecord:
    index = _index_row(raw_row)
    return CanonicalRecord(**{field: pick(index, aliases) for field, aliases in FIELD_ALIASES.items()})
