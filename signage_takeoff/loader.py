from __future__ import annotations

import base64
import math
from typing import Any, Dict, List, Optional

from .models import (
    ExtractionResult,
    InventoryItem,
    KeyPage,
    KeyPageCategory,
    Provenance,
    TypeDefinition,
)

TAKEOFF_KEYS = ("takeoff", "inventory", "items")
CATALOG_KEYS = ("catalog", "signTypes", "sign_types")


def _pick(item: Dict[str, Any], *keys):
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def _number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _quantity(value) -> int:
    number = _number(value)
    if number is None:
        return 1
    return max(0, int(round(number)))


def _positive_int(value) -> Optional[int]:
    number = _number(value)
    if number is None or number < 1:
        return None
    return int(number)


def _index(value) -> Optional[int]:
    number = _number(value)
    if number is None or number < 0:
        return None
    return int(number)


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "y", "1")
    return bool(value)


def load_bounding_box(value) -> Optional[List[float]]:
    """Coerce a model box to [ymin, xmin, ymax, xmax] inside 0-1000, or None."""
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    coords = [_number(v) for v in value]
    if any(c is None for c in coords):
        return None
    ymin, xmin, ymax, xmax = [min(1000.0, max(0.0, c)) for c in coords]
    return [min(ymin, ymax), min(xmin, xmax), max(ymin, ymax), max(xmin, xmax)]


def load_item(item: Dict[str, Any]) -> InventoryItem:
    return InventoryItem(
        sheet=_text(_pick(item, "sheet", "sheetNumber", "sheet_number")),
        page_number=_positive_int(_pick(item, "pageNumber", "page_number")),
        room_number=_text(_pick(item, "roomNumber", "room_number")),
        room_name=_text(_pick(item, "roomName", "room_name")),
        sign_type=_text(_pick(item, "signType", "sign_type", "typeCode", "type_code")),
        is_ada=_flag(_pick(item, "isADA", "isAda", "is_ada")),
        quantity=_quantity(_pick(item, "quantity", "qty")),
        dimensions=_text(_pick(item, "dimensions")),
        color=_text(_pick(item, "color")),
        material=_text(_pick(item, "material")),
        notes=_text(_pick(item, "notes")),
        bounding_box=load_bounding_box(_pick(item, "boundingBox", "bounding_box")),
        provenance=Provenance.from_wire(_pick(item, "dataSource", "data_source")),
    )


def load_type_definition(item: Dict[str, Any]) -> TypeDefinition:
    return TypeDefinition(
        type_code=_text(_pick(item, "typeCode", "type_code", "signType", "sign_type")),
        category=_text(_pick(item, "category")),
        description=_text(_pick(item, "description")),
        dimensions=_optional_text(_pick(item, "dimensions")),
        mounting=_optional_text(_pick(item, "mounting")),
        color=_optional_text(_pick(item, "color")),
        material=_optional_text(_pick(item, "material")),
        bounding_box=load_bounding_box(_pick(item, "boundingBox", "bounding_box")),
        image_index=_index(_pick(item, "imageIndex", "image_index")),
    )


def _records(payload: Dict[str, Any], keys) -> List[Dict[str, Any]]:
    value = _pick(payload, *keys)
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def load_result(payload) -> ExtractionResult:
    if not isinstance(payload, dict):
        return ExtractionResult()
    return ExtractionResult(
        takeoff=[load_item(entry) for entry in _records(payload, TAKEOFF_KEYS)],
        catalog=[load_type_definition(entry) for entry in _records(payload, CATALOG_KEYS)],
    )


def load_key_page_candidates(payload) -> List[KeyPage]:
    if isinstance(payload, dict):
        entries = _records(payload, ("keyPages", "key_pages", "pages"))
    elif isinstance(payload, list):
        entries = [entry for entry in payload if isinstance(entry, dict)]
    else:
        entries = []
    out = []
    for entry in entries:
        sheet = _text(_pick(entry, "sheetNumber", "sheet_number", "sheet"))
        if not sheet:
            continue
        out.append(
            KeyPage(
                sheet_number=sheet,
                description=_text(_pick(entry, "description")),
                category=KeyPageCategory.from_wire(_pick(entry, "category")),
            )
        )
    return out


def image_to_data_url(data: Optional[bytes], mime_type: str = "image/jpeg") -> Optional[str]:
    if not data:
        return None
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _drop_empty(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if v is not None}


def item_to_dict(item: InventoryItem) -> Dict[str, Any]:
    return _drop_empty({
        "sheet": item.sheet,
        "pageNumber": item.page_number,
        "roomNumber": item.room_number,
        "roomName": item.room_name,
        "signType": item.sign_type,
        "isADA": item.is_ada,
        "quantity": item.quantity,
        "dimensions": item.dimensions,
        "color": item.color,
        "material": item.material,
        "notes": item.notes,
        "boundingBox": item.bounding_box,
        "designImage": image_to_data_url(item.design_image),
        "dataSource": item.provenance.value,
    })


def type_definition_to_dict(definition: TypeDefinition) -> Dict[str, Any]:
    return _drop_empty({
        "typeCode": definition.type_code,
        "category": definition.category,
        "description": definition.description,
        "dimensions": definition.dimensions,
        "mounting": definition.mounting,
        "color": definition.color,
        "material": definition.material,
        "boundingBox": definition.bounding_box,
        "imageIndex": definition.image_index,
        "designImage": image_to_data_url(definition.design_image),
    })


def result_to_dict(result: ExtractionResult) -> Dict[str, Any]:
    return {
        "takeoff": [item_to_dict(item) for item in result.takeoff],
        "catalog": [type_definition_to_dict(c) for c in result.catalog],
    }


def key_page_to_dict(page: KeyPage) -> Dict[str, Any]:
    return {
        "sheetNumber": page.sheet_number,
        "description": page.description,
        "category": page.category.value,
        "pageIndex": page.page_index,
    }
