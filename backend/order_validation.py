from typing import Dict, List, Mapping, Optional

COUNTRY_CITY_MAP: Dict[str, List[str]] = {
    "JO": ["Amman", "Irbid", "Zarqa", "Aqaba", "Salt"],
    "UK": ["London", "Manchester", "Birmingham", "Liverpool", "Bristol"],
}

REQUIRED_ORDER_FIELDS = (
    ("personalInfo", "Personal information is required"),
    ("cardDesign", "Card design information is required"),
    ("deliveryInfo", "Delivery information is required"),
    ("product", "Product ID is required"),
)

COMPANY_LOGO_REQUIRED_MESSAGE = "Company logo is required when printed logo is selected"


def get_valid_cities(country: Optional[str]) -> List[str]:
    return list(COUNTRY_CITY_MAP.get(country or "", []))


def get_valid_countries() -> List[str]:
    return list(COUNTRY_CITY_MAP)


def validate_required_fields(order_data: Mapping) -> Optional[str]:
    for field, message in REQUIRED_ORDER_FIELDS:
        if not order_data.get(field):
            return message
    return None


def validate_company_logo(
    card_design: Optional[Mapping],
    uploaded_files: Optional[Mapping] = None,
    existing_order: Optional[Mapping] = None,
) -> Optional[str]:
    if not card_design or not card_design.get("includePrintedLogo"):
        return None

    has_uploaded_logo = bool(card_design.get("companyLogo")) or bool(
        (uploaded_files or {}).get("companyLogo")
    )
    existing_design = (existing_order or {}).get("cardDesign") or {}
    has_existing_logo = bool(existing_design.get("companyLogo"))

    if not has_uploaded_logo and not has_existing_logo:
        return COMPANY_LOGO_REQUIRED_MESSAGE
    return None


def validate_country_city(country: Optional[str], city: Optional[str]) -> Optional[str]:
    if not country or not city:
        return None

    valid_cities = COUNTRY_CITY_MAP.get(country)
    if not valid_cities:
        available_countries = ", ".join(COUNTRY_CITY_MAP)
        return f"Invalid country '{country}'. Available countries are: {available_countries}"

    if city not in valid_cities:
        return (
            f"Invalid city '{city}' for country '{country}'. "
            f"Valid cities are: {', '.join(valid_cities)}"
        )
    return None


def validate_delivery_info(
    delivery_info: Optional[Mapping], existing_order: Optional[Mapping] = None
) -> Optional[str]:
    if not delivery_info:
        return None

    existing_delivery = (existing_order or {}).get("deliveryInfo") or {}
    country = delivery_info.get("country") or existing_delivery.get("country")
    city = delivery_info.get("city") or existing_delivery.get("city")
    return validate_country_city(country, city)
