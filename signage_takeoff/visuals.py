"""
Visual linking: crop catalog detail images and attach them to takeoff rows.

1. Crop each catalog definition from its source image.
2. Build exact and normalized lookups keyed by type code.
3. Link each takeoff row by exact, normalized, then partial key match, and
   optionally fall back to cropping the row's own symbol from the plan.
"""
import asyncio
import logging
import re
from typing import Dict, List, Optional, Sequence

from PIL import Image

from .config import CATALOG_CROP_PADDING, SYMBOL_CROP_PADDING
from .geometry import crop_image, decode_image
from .models import ExtractionResult, InventoryItem, SourceImage, TypeDefinition

logger = logging.getLogger(__name__)

_NOISE = re.compile(r"sign|type|[\s\-.]")


def normalize_type_key(value: str) -> str:
    """'Type A1', 'Sign-A1' and 'a1' all normalize to 'a1'."""
    return _NOISE.sub("", (value or "").lower())


def resolve_image_index(image_index: Optional[int], image_count: int) -> int:
    """Missing or out-of-range indices point at the last (target) image."""
    if image_index is not None and 0 <= image_index < image_count:
        return image_index
    return image_count - 1


async def _load_images(images: Sequence[SourceImage]) -> List[Optional[Image.Image]]:
    async def load(source):
        try:
            return await asyncio.to_thread(decode_image, source.data)
        except Exception as e:
            logger.warning("Error loading source image: %s", e)
            return None

    return await asyncio.gather(*(load(img) for img in images))


async def _crop_definition(definition: TypeDefinition, loaded):
    if definition.bounding_box is None or not loaded:
        return
    index = resolve_image_index(definition.image_index, len(loaded))
    image = loaded[index]
    if image is None:
        return
    crop = await asyncio.to_thread(crop_image, image, definition.bounding_box, CATALOG_CROP_PADDING)
    if crop:
        definition.design_image = crop
    else:
        logger.debug("Empty crop for catalog type %s", definition.type_code)


def build_design_lookups(catalog: Sequence[TypeDefinition]):
    """Return (exact, fuzzy) maps; exact keys are lowercased codes and descriptions."""
    exact: Dict[str, bytes] = {}
    fuzzy: Dict[str, bytes] = {}
    for definition in catalog:
        if not definition.design_image:
            continue
        if definition.type_code:
            exact.setdefault(definition.type_code.lower(), definition.design_image)
            key = normalize_type_key(definition.type_code)
            if key:
                fuzzy.setdefault(key, definition.design_image)
        if definition.description:
            exact.setdefault(definition.description.lower(), definition.design_image)
    return exact, fuzzy


def match_design_image(sign_type: str, exact: Dict[str, bytes], fuzzy: Dict[str, bytes]) -> Optional[bytes]:
    key = (sign_type or "").lower()
    if key and key in exact:
        return exact[key]

    norm_key = normalize_type_key(sign_type)
    if not norm_key:
        return None
    if norm_key in fuzzy:
        return fuzzy[norm_key]

    # partial match either way, first catalog entry wins
    for fuzzy_key, image in fuzzy.items():
        if norm_key in fuzzy_key or fuzzy_key in norm_key:
            return image
    return None


async def _link_item(item: InventoryItem, exact, fuzzy, target: Optional[Image.Image], symbol_fallback: bool):
    image = match_design_image(item.sign_type, exact, fuzzy)
    if image:
        item.design_image = image
        return
    if symbol_fallback and item.bounding_box is not None and target is not None:
        # plan symbols need more surrounding context than spec details
        crop = await asyncio.to_thread(crop_image, target, item.bounding_box, SYMBOL_CROP_PADDING)
        if crop:
            item.design_image = crop


async def process_visuals(
    result: ExtractionResult,
    images: Sequence[SourceImage],
    symbol_fallback: bool = True,
) -> ExtractionResult:
    """Attach cropped design images to catalog entries and takeoff rows in place."""
    if not images:
        return result

    loaded = await _load_images(images)
    target = loaded[-1]

    await asyncio.gather(*(_crop_definition(definition, loaded) for definition in result.catalog))

    exact, fuzzy = build_design_lookups(result.catalog)
    await asyncio.gather(*(_link_item(item, exact, fuzzy, target, symbol_fallback) for item in result.takeoff))

    linked = sum(1 for item in result.takeoff if item.design_image)
    logger.info("Linked design images to %s/%s takeoff rows", linked, len(result.takeoff))
    return result
