"""Query-string driven listing plus the get/delete helpers shared by routes."""
import re
from typing import Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING

from responses import ApiError

RESERVED_QUERY_KEYS = {"page", "sort", "limit", "fields"}
COMPARISON_OPERATORS = {"gte", "gt", "lte", "lt"}
DEFAULT_SORT = "-createdAt"
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100

_OPERATOR_KEY = re.compile(r"^(?P<field>[A-Za-z0-9_.]+)\[(?P<operator>[a-z]+)\]$")
_FIELD_NAME = re.compile(r"^[A-Za-z0-9_.]+$")


def parse_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def coerce_query_value(value):
    if not isinstance(value, str):
        return value
    candidate = value.strip()
    if re.fullmatch(r"[0-9a-fA-F]{24}", candidate):
        return ObjectId(candidate)
    if re.fullmatch(r"-?\d+", candidate):
        return int(candidate)
    if re.fullmatch(r"-?\d+\.\d+", candidate):
        return float(candidate)
    if candidate.lower() in {"true", "false"}:
        return candidate.lower() == "true"
    return candidate


def build_query(args: Mapping, base_filter: Optional[Dict] = None) -> Dict:
    query: Dict = dict(base_filter or {})
    for key, value in args.items():
        if key in RESERVED_QUERY_KEYS:
            continue
        operator_match = _OPERATOR_KEY.match(key)
        if operator_match:
            operator = operator_match.group("operator")
            if operator not in COMPARISON_OPERATORS:
                continue
            field = operator_match.group("field")
            if field in (base_filter or {}):
                continue
            existing = query.get(field)
            condition = dict(existing) if isinstance(existing, dict) else {}
            condition[f"${operator}"] = coerce_query_value(value)
            query[field] = condition
            continue
        if not _FIELD_NAME.match(key) or key in query:
            continue
        query[key] = coerce_query_value(value)
    return query


def build_sort(raw_sort: Optional[str]) -> List[Tuple[str, int]]:
    sort_spec: List[Tuple[str, int]] = []
    for entry in (raw_sort or DEFAULT_SORT).split(","):
        name = entry.strip()
        if not name:
            continue
        direction = ASCENDING
        if name.startswith("-"):
            direction = DESCENDING
            name = name[1:]
        if _FIELD_NAME.match(name):
            sort_spec.append((name, direction))
    if not any(name == "_id" for name, _ in sort_spec):
        sort_spec.append(("_id", DESCENDING))
    return sort_spec


def build_projection(raw_fields: Optional[str]) -> Optional[Dict[str, int]]:
    if not raw_fields:
        return None
    projection = {}
    for entry in raw_fields.split(","):
        name = entry.strip()
        if name and _FIELD_NAME.match(name):
            projection[name] = 1
    return projection or None


def build_pagination(args: Mapping) -> Tuple[int, int]:
    try:
        page = max(1, int(args.get("page", 1)))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(args.get("limit", DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    limit = min(max(1, limit), MAX_PAGE_SIZE)
    return (page - 1) * limit, limit


def list_documents(collection, args: Mapping, base_filter: Optional[Dict] = None) -> List[Dict]:
    query = build_query(args, base_filter)
    skip, limit = build_pagination(args)
    cursor = (
        collection.find(query, build_projection(args.get("fields")))
        .sort(build_sort(args.get("sort")))
        .skip(skip)
        .limit(limit)
    )
    return list(cursor)


def get_document(
    collection, document_id, label: str = "document"
) -> Tuple[Optional[Dict], Optional[ApiError]]:
    object_id = parse_object_id(document_id)
    if not object_id:
        return None, ApiError(f"Invalid {label} identifier.", 400)
    document = collection.find_one({"_id": object_id})
    if not document:
        return None, ApiError(f"No {label} found with that ID", 404)
    return document, None


def delete_document(
    collection, document_id, label: str = "document"
) -> Tuple[Optional[Dict], Optional[ApiError]]:
    document, load_error = get_document(collection, document_id, label)
    if load_error:
        return None, load_error
    collection.delete_one({"_id": document["_id"]})
    return document, None
