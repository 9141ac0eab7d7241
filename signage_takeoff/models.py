from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Provenance(str, Enum):
    FROM_TABLE = "Schedule"
    FROM_VISUAL_SCAN = "Visual"
    FROM_RULE = "Rule"

    @classmethod
    def from_wire(cls, value) -> "Provenance":
        # absent or unknown tags count as a visual find
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.FROM_VISUAL_SCAN


class KeyPageCategory(str, Enum):
    GENERAL = "General"
    SCHEDULE = "Schedule"
    LEGEND = "Legend"
    FLOOR_PLAN = "Floor Plan"
    DETAIL = "Detail"

    @classmethod
    def from_wire(cls, value) -> "KeyPageCategory":
        if isinstance(value, str):
            key = value.strip().lower().replace("_", " ")
            for member in cls:
                if member.value.lower() == key:
                    return member
        return cls.GENERAL


@dataclass
class SourceImage:
    data: bytes
    mime_type: str = "image/jpeg"


@dataclass
class InventoryItem:
    sheet: str
    room_number: str
    room_name: str
    sign_type: str
    is_ada: bool = False
    quantity: int = 1
    dimensions: str = ""
    color: str = ""
    material: str = ""
    notes: str = ""
    provenance: Provenance = Provenance.FROM_VISUAL_SCAN
    page_number: Optional[int] = None  # 1-based
    bounding_box: Optional[List[float]] = None  # [ymin, xmin, ymax, xmax] 0-1000
    design_image: Optional[bytes] = None


@dataclass
class TypeDefinition:
    type_code: str
    category: str = ""
    description: str = ""
    dimensions: Optional[str] = None
    mounting: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    bounding_box: Optional[List[float]] = None
    image_index: Optional[int] = None
    design_image: Optional[bytes] = None


@dataclass
class ExtractionResult:
    takeoff: List[InventoryItem] = field(default_factory=list)
    catalog: List[TypeDefinition] = field(default_factory=list)


@dataclass
class KeyPage:
    sheet_number: str
    description: str
    category: KeyPageCategory
    page_index: Optional[int] = None  # 0-based; None when only listed in the index


@dataclass
class ProjectSettings:
    auto_strategy: bool = True
    symbol_fallback: bool = True
    key_pages: List[KeyPage] = field(default_factory=list)
