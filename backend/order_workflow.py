"""Order creation, partial updates, status changes and role-scoped listing.

Every operation takes the Mongo database handle plus the acting user
document and returns a ``(result, error)`` pair; ``error`` is an
:class:`~responses.ApiError` or ``None``. Nothing here writes files: the
routes store uploads first and hand the stored files in.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Tuple

from api_features import list_documents, parse_object_id
from file_uploads import resolve_order_files
from order_pricing import LOGO_SURCHARGE, calculate_order_total
from order_schemas import order_input_to_document, parse_order_input, parse_status_input
from order_status import (
    DEFAULT_ORDER_STATUS,
    ORDER_STATUSES,
    can_transition,
    is_known_status,
    status_message,
    status_timestamp_field,
)
from order_validation import (
    validate_company_logo,
    validate_delivery_info,
    validate_required_fields,
)
from responses import ApiError

logger = logging.getLogger(__name__)

ESTIMATED_DELIVERY_DAYS = 7
ORDER_GROUPS = ("personalInfo", "cardDesign", "deliveryInfo")
ORDER_NOT_FOUND = "No order found with that ID"
PRODUCT_NOT_FOUND = "Product not found"


def _user_summary(user_document: Optional[Dict]) -> Optional[Dict]:
    if not user_document:
        return None
    return {
        "_id": user_document.get("_id"),
        "name": user_document.get("name", "") or "",
        "email": user_document.get("email", "") or "",
    }


def _product_summary(product_document: Optional[Dict]) -> Optional[Dict]:
    if not product_document:
        return None
    return {
        "_id": product_document.get("_id"),
        "title": product_document.get("title", "") or "",
        "price": product_document.get("price", 0),
        "images": list(product_document.get("images") or []),
        "colors": list(product_document.get("colors") or []),
    }


def expand_order_references(db, order_document: Optional[Dict]) -> Optional[Dict]:
    """Replace customer, creator and product ids with short summaries."""
    if not order_document:
        return order_document

    expanded = dict(order_document)
    user_cache: Dict[object, Optional[Dict]] = {}

    for field in ("customer", "createdBy"):
        reference = expanded.get(field)
        if reference is None:
            continue
        if reference not in user_cache:
            user_cache[reference] = _user_summary(db.users.find_one({"_id": reference}))
        if user_cache[reference]:
            expanded[field] = user_cache[reference]

    product_reference = expanded.get("product")
    if product_reference is not None:
        summary = _product_summary(db.products.find_one({"_id": product_reference}))
        if summary:
            expanded["product"] = summary

    return expanded


def build_order_summary(order_document: Mapping) -> Dict:
    product = order_document.get("product")
    card_design = order_document.get("cardDesign") or {}
    delivery_info = order_document.get("deliveryInfo") or {}
    return {
        "orderId": order_document.get("_id"),
        "status": order_document.get("status"),
        "productTitle": product.get("title") if isinstance(product, dict) else None,
        "productPrice": order_document.get("productPrice"),
        "logoSurcharge": order_document.get("logoSurcharge"),
        "total": order_document.get("total"),
        "includePrintedLogo": bool(card_design.get("includePrintedLogo")),
        "deliveryCountry": delivery_info.get("country"),
        "deliveryCity": delivery_info.get("city"),
        "estimatedDelivery": order_document.get("estimatedDelivery"),
    }


def _fetch_order(db, order_id) -> Tuple[Optional[Dict], Optional[ApiError]]:
    object_id = parse_object_id(order_id)
    if not object_id:
        return None, ApiError("Invalid order identifier.", 400)
    order_document = db.orders.find_one({"_id": object_id})
    if not order_document:
        return None, ApiError(ORDER_NOT_FOUND, 404)
    return order_document, None


def _fetch_product(db, product_id) -> Tuple[Optional[Dict], Optional[ApiError]]:
    object_id = parse_object_id(product_id)
    if not object_id:
        return None, ApiError("Invalid product identifier.", 400)
    product_document = db.products.find_one({"_id": object_id})
    if not product_document:
        return None, ApiError(PRODUCT_NOT_FOUND, 404)
    return product_document, None


def can_manage_order(order_document: Mapping, user_document: Mapping, is_admin: bool) -> bool:
    if is_admin:
        return True
    if not order_document or not user_document:
        return False
    user_id = user_document.get("_id")
    return user_id is not None and user_id in (
        order_document.get("customer"),
        order_document.get("createdBy"),
    )


def set_order_defaults(
    document: Dict, acting_user: Mapping, now: datetime, estimated_delivery_days: int
) -> Dict:
    with_defaults = dict(document)
    with_defaults["status"] = DEFAULT_ORDER_STATUS
    with_defaults["createdBy"] = acting_user["_id"]
    with_defaults.setdefault("customer", acting_user["_id"])
    with_defaults["createdAt"] = now
    with_defaults["updatedAt"] = now
    with_defaults["estimatedDelivery"] = now + timedelta(days=estimated_delivery_days)
    return with_defaults


def create_order(
    db,
    payload: Mapping,
    acting_user: Mapping,
    *,
    is_admin: bool = False,
    uploads=None,
    logo_surcharge: float = LOGO_SURCHARGE,
    estimated_delivery_days: int = ESTIMATED_DELIVERY_DAYS,
    now: Optional[datetime] = None,
) -> Tuple[Optional[Dict], Optional[ApiError]]:
    order_input, schema_error = parse_order_input(payload)
    if schema_error:
        return None, ApiError(schema_error, 400)

    document = order_input_to_document(order_input)
    requested_customer = document.pop("customer", None)
    if requested_customer:
        customer_id = parse_object_id(requested_customer)
        if not customer_id:
            return None, ApiError("Invalid customer identifier.", 400)
        if customer_id != acting_user["_id"] and not is_admin:
            return None, ApiError("You can only place orders for your own account", 403)
        document["customer"] = customer_id

    document = set_order_defaults(
        document, acting_user, now or datetime.utcnow(), estimated_delivery_days
    )

    required_error = validate_required_fields(document)
    if required_error:
        return None, ApiError(required_error, 400)

    product_document, product_error = _fetch_product(db, document["product"])
    if product_error:
        return None, product_error
    document["product"] = product_document["_id"]

    card_design = resolve_order_files(uploads, document["cardDesign"])
    card_design.setdefault("includePrintedLogo", False)
    document["cardDesign"] = card_design

    product_price = float(product_document.get("price", 0) or 0)
    pricing = calculate_order_total(
        product_price, card_design["includePrintedLogo"], logo_surcharge
    )
    document["productPrice"] = product_price
    document["logoSurcharge"] = pricing.logo_surcharge
    document["total"] = pricing.total

    logo_error = validate_company_logo(card_design, uploads)
    if logo_error:
        return None, ApiError(logo_error, 400)

    delivery_error = validate_delivery_info(document["deliveryInfo"])
    if delivery_error:
        return None, ApiError(delivery_error, 400)

    insert_result = db.orders.insert_one(document)
    created_order = db.orders.find_one({"_id": insert_result.inserted_id})
    logger.info(
        "Created order %s for product %s (total %.2f)",
        insert_result.inserted_id,
        product_document["_id"],
        pricing.total,
    )
    return expand_order_references(db, created_order), None


def creation_message(order_document: Mapping) -> str:
    estimated_delivery = order_document.get("estimatedDelivery")
    estimated_label = (
        estimated_delivery.strftime("%Y-%m-%d")
        if isinstance(estimated_delivery, datetime)
        else "to be confirmed"
    )
    return (
        f"NFC Card order {order_document.get('_id')} created successfully! "
        f"Estimated delivery: {estimated_label}"
    )


def build_order_update(document: Mapping) -> Dict:
    """Flatten explicitly supplied fields into dotted ``$set`` paths."""
    updates: Dict[str, object] = {}
    for group in ORDER_GROUPS:
        values = document.get(group)
        if not isinstance(values, dict):
            continue
        for field, value in values.items():
            updates[f"{group}.{field}"] = value
    for field in ("notes", "product", "customer"):
        if field in document:
            updates[field] = document[field]
    return updates


def update_order(
    db,
    order_id,
    payload: Mapping,
    acting_user: Mapping,
    *,
    is_admin: bool = False,
    uploads=None,
    logo_surcharge: float = LOGO_SURCHARGE,
    now: Optional[datetime] = None,
) -> Tuple[Optional[Dict], Optional[ApiError]]:
    existing_order, load_error = _fetch_order(db, order_id)
    if load_error:
        return None, load_error

    if not can_manage_order(existing_order, acting_user, is_admin):
        return None, ApiError("You do not have permission to modify this order.", 403)

    order_input, schema_error = parse_order_input(payload)
    if schema_error:
        return None, ApiError(schema_error, 400)
    document = order_input_to_document(order_input)

    card_design = resolve_order_files(uploads, document.get("cardDesign"))
    if card_design is not None:
        document["cardDesign"] = card_design

    logo_error = validate_company_logo(card_design, uploads, existing_order)
    if logo_error:
        return None, ApiError(logo_error, 400)

    delivery_error = validate_delivery_info(document.get("deliveryInfo"), existing_order)
    if delivery_error:
        return None, ApiError(delivery_error, 400)

    updates = build_order_update(document)
    if not updates:
        return None, ApiError("No valid fields provided for update", 400)

    if "customer" in updates:
        if not is_admin:
            return None, ApiError("Only administrators can reassign an order.", 403)
        customer_id = parse_object_id(updates["customer"])
        if not customer_id:
            return None, ApiError("Invalid customer identifier.", 400)
        updates["customer"] = customer_id

    product_price = existing_order.get("productPrice", 0)
    if "product" in updates:
        product_document, product_error = _fetch_product(db, updates["product"])
        if product_error:
            return None, product_error
        updates["product"] = product_document["_id"]
        product_price = float(product_document.get("price", 0) or 0)

    if "product" in updates or "cardDesign.includePrintedLogo" in updates:
        include_printed_logo = updates.get(
            "cardDesign.includePrintedLogo",
            (existing_order.get("cardDesign") or {}).get("includePrintedLogo", False),
        )
        pricing = calculate_order_total(product_price, include_printed_logo, logo_surcharge)
        updates["productPrice"] = product_price
        updates["logoSurcharge"] = pricing.logo_surcharge
        updates["total"] = pricing.total

    updates["updatedAt"] = now or datetime.utcnow()

    db.orders.update_one({"_id": existing_order["_id"]}, {"$set": updates})
    updated_order = db.orders.find_one({"_id": existing_order["_id"]})
    return expand_order_references(db, updated_order), None


def change_order_status(
    db, order_id, payload: Mapping, *, now: Optional[datetime] = None
) -> Tuple[Optional[Tuple[Dict, Dict, str]], Optional[ApiError]]:
    status_input, schema_error = parse_status_input(payload)
    if schema_error:
        return None, ApiError(schema_error, 400)

    requested_status = (status_input.status or "").strip()
    if not requested_status:
        return None, ApiError("Please provide a status", 400)
    if not is_known_status(requested_status):
        return None, ApiError(
            f"Invalid status '{requested_status}'. "
            f"Allowed statuses are: {', '.join(ORDER_STATUSES)}",
            400,
        )

    order_document, load_error = _fetch_order(db, order_id)
    if load_error:
        return None, load_error

    current_status = order_document.get("status") or DEFAULT_ORDER_STATUS
    if not can_transition(current_status, requested_status):
        return None, ApiError(
            f"Cannot change order status from '{current_status}' to '{requested_status}'",
            400,
        )

    timestamp = now or datetime.utcnow()
    updates: Dict[str, object] = {
        "status": requested_status,
        status_timestamp_field(requested_status): timestamp,
        "updatedAt": timestamp,
    }
    if status_input.notes:
        updates["notes"] = status_input.notes

    db.orders.update_one({"_id": order_document["_id"]}, {"$set": updates})
    logger.info(
        "Order %s moved from %s to %s", order_document["_id"], current_status, requested_status
    )

    updated_order = expand_order_references(
        db, db.orders.find_one({"_id": order_document["_id"]})
    )
    return (
        updated_order,
        build_order_summary(updated_order),
        status_message(requested_status),
    ), None


def get_order_for_user(
    db, order_id, acting_user: Mapping, *, is_admin: bool = False
) -> Tuple[Optional[Dict], Optional[ApiError]]:
    order_document, load_error = _fetch_order(db, order_id)
    if load_error:
        return None, load_error
    if not can_manage_order(order_document, acting_user, is_admin):
        return None, ApiError("You can only access your own orders", 403)
    return expand_order_references(db, order_document), None


def get_customer_orders(
    db, customer_id: str, acting_user: Mapping, *, is_admin: bool = False
) -> Tuple[Optional[List[Dict]], Optional[ApiError]]:
    if not is_admin and str(acting_user.get("_id")) != str(customer_id):
        return None, ApiError("You can only access your own orders", 403)

    customer_object_id = parse_object_id(customer_id)
    if not customer_object_id:
        return None, ApiError("Invalid customer identifier.", 400)

    cursor = db.orders.find({"customer": customer_object_id}).sort(
        [("createdAt", -1), ("_id", -1)]
    )
    return [expand_order_references(db, document) for document in cursor], None


def get_my_orders(db, acting_user: Mapping, args: Mapping) -> List[Dict]:
    documents = list_documents(db.orders, args, {"customer": acting_user["_id"]})
    return [expand_order_references(db, document) for document in documents]
