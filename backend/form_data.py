"""Turn flat multipart form keys into the nested order payload."""
import re
from typing import Dict, List, Optional

ORDER_GROUPS = ("personalInfo", "cardDesign", "deliveryInfo")
BOOLEAN_FIELDS = {
    "cardDesign": ("includePrintedLogo",),
    "deliveryInfo": ("useSameContact",),
}
COLOR_ALIASES = {
    "#000": "black",
    "#000000": "black",
    "black": "black",
    "#fff": "white",
    "#ffffff": "white",
    "white": "white",
}

# personalInfo[name] or personalInfo[phoneNumbers][0]
_BRACKET_KEY = re.compile(
    r"^(?P<group>personalInfo|cardDesign|deliveryInfo)"
    r"\[(?P<field>[A-Za-z_][A-Za-z0-9_]*)\]"
    r"(?:\[(?P<index>\d+)\])?$"
)


def coerce_form_boolean(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return value


def normalize_color(value):
    if not isinstance(value, str):
        return value
    return COLOR_ALIASES.get(value.strip().lower(), value)


def _place_indexed(target: Dict, field: str, index: int, value) -> None:
    current = target.get(field)
    if not isinstance(current, list):
        current = []
    sparse: List[Optional[object]] = list(current)
    if len(sparse) <= index:
        sparse.extend([None] * (index + 1 - len(sparse)))
    sparse[index] = value
    target[field] = sparse


def normalize_order_form(form) -> Dict:
    """Build a new payload with bracket keys folded into their groups.

    Groups are only set when at least one bracket key targets them. Keys that
    do not parse are passed through untouched.
    """
    if not form:
        return {}

    normalized: Dict = {}
    grouped: Dict[str, Dict] = {}

    for key, value in form.items():
        match = _BRACKET_KEY.match(str(key))
        if not match:
            normalized[key] = value
            continue

        group = grouped.setdefault(match.group("group"), {})
        field = match.group("field")
        index = match.group("index")
        if index is None:
            group[field] = value
        else:
            _place_indexed(group, field, int(index), value)

    for group_name in ORDER_GROUPS:
        existing = normalized.get(group_name)
        bracket_values = grouped.get(group_name)
        if not bracket_values:
            if isinstance(existing, dict):
                normalized[group_name] = dict(existing)
            continue
        merged = dict(existing) if isinstance(existing, dict) else {}
        merged.update(bracket_values)
        normalized[group_name] = merged

    for group_name, fields in BOOLEAN_FIELDS.items():
        group = normalized.get(group_name)
        if not isinstance(group, dict):
            continue
        for field in fields:
            if field in group:
                group[field] = coerce_form_boolean(group[field])

    card_design = normalized.get("cardDesign")
    if isinstance(card_design, dict) and card_design.get("color"):
        card_design["color"] = normalize_color(card_design["color"])

    return normalized
