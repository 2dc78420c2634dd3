from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError


class OrderInputModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PersonalInfoInput(OrderInputModel):
    name: Optional[str] = Field(default=None, max_length=120)
    email: Optional[str] = Field(default=None, max_length=254)
    phoneNumbers: Optional[List[Optional[str]]] = None
    jobTitle: Optional[str] = Field(default=None, max_length=120)
    companyName: Optional[str] = Field(default=None, max_length=120)
    website: Optional[str] = Field(default=None, max_length=255)


class CardDesignInput(OrderInputModel):
    color: Optional[str] = None
    includePrintedLogo: StrictBool = False
    companyLogo: Optional[str] = None


class DeliveryInfoInput(OrderInputModel):
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=40)
    useSameContact: StrictBool = False


class OrderInput(OrderInputModel):
    product: Optional[str] = None
    customer: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    personalInfo: Optional[PersonalInfoInput] = None
    cardDesign: Optional[CardDesignInput] = None
    deliveryInfo: Optional[DeliveryInfoInput] = None


class OrderStatusInput(OrderInputModel):
    status: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


def describe_validation_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if first.get("type") == "extra_forbidden":
        return f"Unrecognized field '{location}'"
    if location:
        return f"Invalid value for '{location}': {first.get('msg')}"
    return first.get("msg") or "Invalid request body."


def parse_order_input(payload: Dict) -> Tuple[Optional[OrderInput], Optional[str]]:
    try:
        return OrderInput.model_validate(payload or {}), None
    except ValidationError as exc:
        return None, describe_validation_error(exc)


def parse_status_input(
    payload: Dict,
) -> Tuple[Optional[OrderStatusInput], Optional[str]]:
    try:
        return OrderStatusInput.model_validate(payload or {}), None
    except ValidationError as exc:
        return None, describe_validation_error(exc)


def order_input_to_document(order_input: OrderInput) -> Dict:
    """Only the keys the client actually sent, nested groups included."""
    return order_input.model_dump(exclude_unset=True)
