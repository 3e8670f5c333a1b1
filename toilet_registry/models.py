"""Core data models shared by the toilet registry pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """Normalized snapshot of one public toilet, independent of the upstream schema."""

    id: str = ""
    name: str = ""
    address: str = ""
    latitude: str = ""
    longitude: str = ""
    area: str = ""
    phone: str = ""
    open_type: str = ""
    open_time: str = ""
    gender_policy: str = ""
    safety_info: str = ""
    place_type: str = ""
    manager: str = ""

    def is_acceptable(self) -> bool:
        return all((self.id, self.name, self.address, self.latitude, self.longitude))

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "area": self.area,
            "phone": self.phone,
            "openType": self.open_type,
            "openTime": self.open_time,
            "genderPolicy": self.gender_policy,
            "safetyInfo": self.safety_info,
            "placeType": self.place_type,
            "manager": self.manager,
        }


@dataclass(slots=True)
class Page:
    """One bounded-range batch of raw upstream rows (1-based, inclusive indices)."""

    start_index: int
    end_index: int
    rows: List[Mapping[str, str]] = field(default_factory=list)
    total_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.start_index < 1 or self.end_index < self.start_index:
            raise ValueError(f"invalid page range {self.start_index}-{self.end_index}")
