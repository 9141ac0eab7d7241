from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from PIL import Image

from .geometry import crop_image
from .models import ExtractionResult, InventoryItem, ProjectSettings, TypeDefinition

logger = logging.getLogger(__name__)

MANUAL_CATEGORY = "Manual"


def merge_catalogs(existing: Sequence[TypeDefinition], incoming: Sequence[TypeDefinition]) -> List[TypeDefinition]:
    """Case-insensitive upsert; later text wins, an existing image survives a missing one."""
    merged: Dict[str, TypeDefinition] = {}
    for definition in existing:
        merged[definition.type_code.lower()] = definition
    for definition in incoming:
        key = definition.type_code.lower()
        current = merged.get(key)
        if current is not None and current.design_image and not definition.design_image:
            definition = replace(definition, design_image=current.design_image)
        merged[key] = definition
    return list(merged.values())


def overlay_catalog(current: Sequence[TypeDefinition], master: Sequence[TypeDefinition]) -> List[TypeDefinition]:
    """Catalog for a fresh result, completed from the cumulative catalog."""
    combined = list(current)
    positions = {c.type_code.lower(): i for i, c in enumerate(combined)}
    for definition in master:
        key = definition.type_code.lower()
        if key not in positions:
            combined.append(definition)
            continue
        index = positions[key]
        if not combined[index].design_image and definition.design_image:
            combined[index] = replace(combined[index], design_image=definition.design_image)
    return combined


def _assign_type_image(catalog: List[TypeDefinition], type_code: str, image: bytes, bbox=None, image_index=None):
    key = type_code.lower()
    for i, definition in enumerate(catalog):
        if definition.type_code.lower() == key:
            catalog[i] = replace(definition, design_image=image)
            return
    catalog.append(
        TypeDefinition(
            type_code=type_code,
            category=MANUAL_CATEGORY,
            description="Manual Extraction",
            bounding_box=list(bbox) if bbox is not None else None,
            image_index=image_index,
            design_image=image,
        )
    )


def _assign_item_images(items: List[InventoryItem], type_code: str, image: bytes):
    key = type_code.lower()
    for i, item in enumerate(items):
        if item.sign_type.lower() == key:
            items[i] = replace(item, design_image=image)


@dataclass
class ProjectState:
    """Cumulative takeoff and catalog across analysed sheets."""

    takeoff: List[InventoryItem] = field(default_factory=list)
    catalog: List[TypeDefinition] = field(default_factory=list)
    settings: ProjectSettings = field(default_factory=ProjectSettings)

    def add_result(self, result: ExtractionResult):
        # re-analysing a sheet replaces its rows
        sheets = {item.sheet for item in result.takeoff}
        kept = [item for item in self.takeoff if item.sheet not in sheets]
        self.takeoff = kept + list(result.takeoff)
        self.catalog = merge_catalogs(self.catalog, result.catalog)
        logger.info("Project now holds %s rows and %s sign types", len(self.takeoff), len(self.catalog))

    def displayed_catalog(self, result: Optional[ExtractionResult] = None) -> List[TypeDefinition]:
        if result is None:
            return list(self.catalog)
        return overlay_catalog(result.catalog, self.catalog)

    def clear(self):
        self.takeoff = []
        self.catalog = []
        self.settings = ProjectSettings()


def assign_manual_crop(
    image: Image.Image,
    bbox: Sequence[float],
    type_code: str,
    result: Optional[ExtractionResult] = None,
    state: Optional[ProjectState] = None,
    image_index: Optional[int] = None,
) -> Optional[bytes]:
    """
    Crop a user-selected region (no padding) and use it as the design image
    of `type_code` in the current result and the cumulative project.
    Returns the crop, or None if the selection was empty.
    """
    crop = crop_image(image, bbox, 0.0)
    if crop is None:
        return None

    if result is not None:
        _assign_type_image(result.catalog, type_code, crop, bbox, image_index)
        _assign_item_images(result.takeoff, type_code, crop)
    if state is not None:
        _assign_type_image(state.catalog, type_code, crop)
        _assign_item_images(state.takeoff, type_code, crop)
    return crop
