from typing import NamedTuple

LOGO_SURCHARGE = 5.0


class OrderTotal(NamedTuple):
    total: float
    logo_surcharge: float


def calculate_order_total(
    product_price: float, include_printed_logo: bool, surcharge: float = LOGO_SURCHARGE
) -> OrderTotal:
    logo_surcharge = round(float(surcharge), 2) if include_printed_logo else 0.0
    total = round(float(product_price) + logo_surcharge, 2)
    return OrderTotal(total=total, logo_surcharge=logo_surcharge)
