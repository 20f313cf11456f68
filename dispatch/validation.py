#Purpose: Input gates for the inbound collaborators (order intake, operator).
#Turns loosely-shaped payloads (dicts from a JSON body, or the model objects
#themselves) into validated domain objects.
#Output: OrderLine / Customer / DeliveryDetails / courier fields, or a DispatchError.
#
#Prices are taken from the lines as supplied. There is no catalog lookup here,
#so the amount is only as trustworthy as the client that sent the lines.

from __future__ import annotations

import math
from numbers import Real
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from orders.models import Address, Customer, DeliveryDetails, FulfillmentMode, OrderLine
from .errors import InvalidCourier, InvalidOrder, MissingDestination

LineInput = Union[OrderLine, Mapping[str, Any]]


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _coerce_number(value: Any, field_name: str, line_id: Any) -> float:
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise InvalidOrder(f"line {line_id}: {field_name} is not a number: {value!r}")
        if math.isfinite(number):
            return number
    raise InvalidOrder(f"line {line_id}: {field_name} is not a number: {value!r}")


def parse_line(raw: LineInput) -> OrderLine:
    if isinstance(raw, OrderLine):
        price, qty, line_id, name = raw.price, raw.qty, raw.id, raw.name
    elif isinstance(raw, Mapping):
        line_id = raw.get("id")
        name = raw.get("name") or ""
        price = raw.get("price", 0)
        # missing qty means one of it
        qty = raw.get("qty", 1)
    else:
        raise InvalidOrder(f"unsupported line item: {raw!r}")

    price = _coerce_number(0 if price is None else price, "price", line_id)
    qty_number = _coerce_number(1 if qty is None else qty, "qty", line_id)

    if qty_number != int(qty_number):
        raise InvalidOrder(f"line {line_id}: qty must be a whole number, got {qty_number}")
    if qty_number < 1:
        raise InvalidOrder(f"line {line_id}: qty must be >= 1, got {int(qty_number)}")
    if price < 0:
        raise InvalidOrder(f"line {line_id}: price must be >= 0, got {price}")

    return OrderLine(id=str(line_id) if line_id is not None else "", name=str(name), price=price, qty=int(qty_number))


def parse_lines(lines: Optional[Sequence[LineInput]]) -> List[OrderLine]:
    if not lines or isinstance(lines, (str, bytes, Mapping)):
        raise InvalidOrder("lines required")
    return [parse_line(raw) for raw in lines]


def parse_customer(customer: Union[Customer, Mapping[str, Any], None]) -> Customer:
    if customer is None:
        return Customer()
    if isinstance(customer, Customer):
        return customer
    if isinstance(customer, Mapping):
        return Customer(name=customer.get("name") or "Guest", phone=customer.get("phone"))
    raise InvalidOrder(f"unsupported customer: {customer!r}")


def _parse_address(raw: Union[Address, Mapping[str, Any], None]) -> Optional[Address]:
    if raw is None or isinstance(raw, Address):
        return raw
    if not isinstance(raw, Mapping):
        return None

    lat, lng = raw.get("lat"), raw.get("lng")
    if not (_is_number(lat) and _is_number(lng)):
        return None
    return Address(lat=float(lat), lng=float(lng), label=raw.get("label"))


def parse_delivery(delivery: Union[DeliveryDetails, Mapping[str, Any], None]) -> DeliveryDetails:
    """
    Collect is the default. Delivery mode must arrive with a resolved lat/lng,
    otherwise MissingDestination.
    """
    if delivery is None:
        return DeliveryDetails()

    if isinstance(delivery, DeliveryDetails):
        mode, address = delivery.mode, delivery.address
    elif isinstance(delivery, Mapping):
        try:
            mode = FulfillmentMode(str(delivery.get("mode") or FulfillmentMode.COLLECT.value).lower())
        except ValueError:
            raise InvalidOrder(f"unknown fulfillment mode: {delivery.get('mode')!r}")
        address = _parse_address(delivery.get("address"))
    else:
        raise InvalidOrder(f"unsupported delivery details: {delivery!r}")

    if mode == FulfillmentMode.DELIVERY and address is None:
        raise MissingDestination("delivery orders need a resolved destination coordinate")

    return DeliveryDetails(mode=mode, address=address)


def parse_courier_fields(name: Any, phone: Any) -> Tuple[str, str]:
    name = name.strip() if isinstance(name, str) else ""
    phone = phone.strip() if isinstance(phone, str) else ""
    if not name or not phone:
        raise InvalidCourier("name and phone required")
    return name, phone


def parse_location(lat: Any, lng: Any) -> Tuple[float, float]:
    if not (_is_number(lat) and _is_number(lng)):
        raise InvalidCourier("lat/lng required")
    return float(lat), float(lng)
