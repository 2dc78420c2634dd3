import json
import math
import re
from typing import Dict, List, Optional, Tuple

DEFAULT_PRODUCT_IMAGE = "/img/products/default-product.jpg"
TITLE_LENGTH = (3, 100)
DESCRIPTION_LENGTH = (10, 1000)

color_name_regex = re.compile(r"^[a-zA-Z\s]+$")
hex_color_regex = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


def parse_json_list(value) -> List:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [item for item in value]
    if isinstance(value, (bytes, bytearray)):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            value = ""
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return []
        try:
            parsed = json.loads(candidate)
            if isinstance(parsed, list):
                return parsed
        except (json.JSONDecodeError, ValueError):
            pass
        if "," in candidate:
            return [item.strip() for item in candidate.split(",") if item and item.strip()]
        return [candidate]
    return []


def is_valid_color(value: str) -> bool:
    return bool(color_name_regex.match(value) or hex_color_regex.match(value))


def normalize_colors(raw_value) -> Tuple[List[str], Optional[str]]:
    colors: List[str] = []
    for entry in parse_json_list(raw_value):
        color = str(entry or "").strip().lower()
        if not color:
            continue
        if not is_valid_color(color):
            return [], "Please provide a valid color name or hex code"
        if color not in colors:
            colors.append(color)
    return colors, None


def normalize_images(raw_value) -> List[str]:
    images: List[str] = []
    for entry in parse_json_list(raw_value):
        image = str(entry or "").strip()
        if image and image not in images:
            images.append(image)
    return images


def ensure_default_image(images: List[str]) -> List[str]:
    return list(images) if images else [DEFAULT_PRODUCT_IMAGE]


def parse_boolean(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    lowered = str(value or "").strip().lower()
    if lowered in {"true", "1", "yes"}:
        return True
    if lowered in {"false", "0", "no", ""}:
        return False
    return None


def validate_product_payload(payload: Dict, partial: bool = False) -> Tuple[Dict, Optional[str]]:
    """Collect validated product fields; with ``partial`` only supplied keys."""
    fields: Dict[str, object] = {}

    if not partial or "title" in payload:
        title = str(payload.get("title") or "").strip()
        if not title:
            return {}, "Please provide a product title"
        if not TITLE_LENGTH[0] <= len(title) <= TITLE_LENGTH[1]:
            return {}, "Product title must be between 3 and 100 characters"
        fields["title"] = title

    if not partial or "description" in payload:
        description = str(payload.get("description") or "").strip()
        if not description:
            return {}, "Please provide a product description"
        if not DESCRIPTION_LENGTH[0] <= len(description) <= DESCRIPTION_LENGTH[1]:
            return {}, "Product description must be between 10 and 1000 characters"
        fields["description"] = description

    if not partial or "price" in payload:
        raw_price = payload.get("price")
        if raw_price is None or str(raw_price).strip() == "":
            return {}, "Please provide a product price"
        try:
            price_value = round(float(raw_price), 2)
        except (TypeError, ValueError):
            return {}, "Price must be a valid number."
        if not math.isfinite(price_value) or price_value < 0:
            return {}, "Price must be a positive number"
        fields["price"] = price_value

    if "colors" in payload:
        colors, color_error = normalize_colors(payload.get("colors"))
        if color_error:
            return {}, color_error
        fields["colors"] = colors
    elif not partial:
        fields["colors"] = []

    if "images" in payload:
        fields["images"] = normalize_images(payload.get("images"))

    if "isMainProduct" in payload:
        is_main = parse_boolean(payload.get("isMainProduct"))
        if is_main is None:
            return {}, "isMainProduct must be true or false."
        fields["isMainProduct"] = is_main
    elif not partial:
        fields["isMainProduct"] = False

    return fields, None


def add_color(colors: List[str], color: str) -> List[str]:
    normalized = str(color or "").strip().lower()
    updated = list(colors or [])
    if normalized and normalized not in updated:
        updated.append(normalized)
    return updated


def remove_color(colors: List[str], color: str) -> List[str]:
    normalized = str(color or "").strip().lower()
    return [entry for entry in colors or [] if entry != normalized]


def add_images(images: List[str], new_images: List[str]) -> List[str]:
    updated = [image for image in images or [] if image != DEFAULT_PRODUCT_IMAGE]
    for image in new_images:
        if image and image not in updated:
            updated.append(image)
    return ensure_default_image(updated)


def remove_image(images: List[str], image: str) -> List[str]:
    return ensure_default_image([entry for entry in images or [] if entry != image])


def product_price_stats(collection) -> Dict[str, object]:
    pipeline = [
        {
            "$group": {
                "_id": None,
                "numProducts": {"$sum": 1},
                "avgPrice": {"$avg": "$price"},
                "minPrice": {"$min": "$price"},
                "maxPrice": {"$max": "$price"},
            }
        }
    ]
    results = list(collection.aggregate(pipeline))
    if not results:
        return {"numProducts": 0, "avgPrice": None, "minPrice": None, "maxPrice": None}
    stats = results[0]
    avg_price = stats.get("avgPrice")
    return {
        "numProducts": stats.get("numProducts", 0),
        "avgPrice": round(avg_price, 2) if avg_price is not None else None,
        "minPrice": stats.get("minPrice"),
        "maxPrice": stats.get("maxPrice"),
    }
