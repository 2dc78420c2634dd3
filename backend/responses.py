from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from bson import ObjectId
from flask import jsonify


def serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return (
            value.isoformat()
            if value.tzinfo is not None
            else f"{value.isoformat()}Z"
        )
    if isinstance(value, bytes):
        return None
    if isinstance(value, dict):
        return serialize_document(value)
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(document: Optional[Dict]) -> Optional[Dict]:
    if document is None:
        return None
    serialized = {key: serialize_value(value) for key, value in document.items()}
    if "_id" in serialized:
        serialized["id"] = serialized.pop("_id")
    return serialized


def format_order_response(order: Dict, message: str, summary: Optional[Dict] = None) -> Dict:
    data: Dict[str, object] = {"order": serialize_document(order)}
    if summary is not None:
        data["summary"] = serialize_document(summary)
    return {"status": "success", "data": data, "message": message}


def format_list_response(key: str, documents: List[Dict]) -> Dict:
    return {
        "status": "success",
        "results": len(documents),
        "data": {key: [serialize_document(document) for document in documents]},
    }


def error_body(message: str, status_code: int) -> Dict:
    return {
        "status": "fail" if 400 <= status_code < 500 else "error",
        "message": message,
    }


def error_response(message: str, status_code: int = 400):
    return jsonify(error_body(message, status_code)), status_code


class ApiError(NamedTuple):
    message: str
    status_code: int = 400
