import pytest

from order_validation import (
    COMPANY_LOGO_REQUIRED_MESSAGE,
    COUNTRY_CITY_MAP,
    get_valid_cities,
    get_valid_countries,
    validate_company_logo,
    validate_country_city,
    validate_delivery_info,
    validate_required_fields,
)


def test_required_fields_report_first_missing():
    assert validate_required_fields({}) == "Personal information is required"
    assert (
        validate_required_fields({"personalInfo": {"name": "a"}, "cardDesign": {"color": "b"}})
        == "Delivery information is required"
    )
    assert (
        validate_required_fields(
            {
                "personalInfo": {"name": "a"},
                "cardDesign": {"color": "b"},
                "deliveryInfo": {"city": "Amman"},
            }
        )
        == "Product ID is required"
    )


def test_logo_not_required_without_printed_logo():
    assert validate_company_logo({"includePrintedLogo": False}) is None
    assert validate_company_logo(None) is None


def test_printed_logo_without_any_source_fails():
    assert validate_company_logo({"includePrintedLogo": True}) == COMPANY_LOGO_REQUIRED_MESSAGE


@pytest.mark.parametrize(
    "card_design, uploads, existing_order",
    [
        ({"includePrintedLogo": True, "companyLogo": "/uploads/companyLogo/a.png"}, None, None),
        ({"includePrintedLogo": True}, {"companyLogo": ["stored"]}, None),
        (
            {"includePrintedLogo": True},
            None,
            {"cardDesign": {"companyLogo": "/uploads/companyLogo/old.png"}},
        ),
    ],
)
def test_any_logo_source_clears_the_error(card_design, uploads, existing_order):
    assert validate_company_logo(card_design, uploads, existing_order) is None


def test_country_city_whitelist():
    for country, cities in COUNTRY_CITY_MAP.items():
        for city in cities:
            assert validate_country_city(country, city) is None

    assert validate_country_city("JO", "London") == (
        "Invalid city 'London' for country 'JO'. "
        "Valid cities are: Amman, Irbid, Zarqa, Aqaba, Salt"
    )
    assert validate_country_city("FR", "Paris") == (
        "Invalid country 'FR'. Available countries are: JO, UK"
    )


def test_country_city_skipped_when_either_missing():
    assert validate_country_city(None, "Amman") is None
    assert validate_country_city("JO", "") is None


def test_delivery_info_falls_back_to_existing_order():
    existing_order = {"deliveryInfo": {"country": "UK", "city": "London"}}

    assert validate_delivery_info({"city": "Bristol"}, existing_order) is None
    assert validate_delivery_info({"city": "Amman"}, existing_order).startswith(
        "Invalid city 'Amman' for country 'UK'"
    )
    assert validate_delivery_info(None, existing_order) is None


def test_lookup_helpers():
    assert get_valid_countries() == ["JO", "UK"]
    assert "Irbid" in get_valid_cities("JO")
    assert get_valid_cities("FR") == []
