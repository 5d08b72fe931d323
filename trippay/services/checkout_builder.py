"""
TripPay Backend - Hosted Checkout Request Builder
Builds INITIATE_CHECKOUT bodies for the ARC Pay session API
"""

import re
import time
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, List, Tuple
from urllib.parse import urlencode

from trippay.config import settings


# ARC Pay certification: airline data must use carrier "XD" (or 889)
AIRLINE_DATA_CARRIER = "XD"
TICKET_NUMBER_PREFIX = "889"
PREMIUM_CABIN_MARKERS = ("PREMIUM", "BUSINESS", "FIRST")


def format_amount(amount) -> str:
    """Gateway amounts are strings with exactly two decimals"""
    return str(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def split_customer_name(full_name: Optional[str]) -> Tuple[str, str]:
    """'Jane Q Public' -> ('Jane', 'Q Public'); missing parts default to Guest / User"""
    parts = (full_name or "").split()
    first_name = parts[0] if parts else "Guest"
    last_name = " ".join(parts[1:]) or "User"
    return first_name, last_name


def clean_phone(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def default_return_url(order_id: str, booking_type: str) -> str:
    query = urlencode({"orderId": order_id, "bookingType": booking_type})
    return f"{settings.frontend_url.rstrip('/')}/payment/callback?{query}"


def default_cancel_url(booking_type: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/{booking_type}-payment?cancelled=true"


def default_description(booking_type: str, order_id: str) -> str:
    return f"{booking_type.capitalize()} Booking - {order_id}"


# ============================================================
# Airline data helpers
# ============================================================

def parse_iso_date(value: Any) -> str:
    """
    Normalise a date to YYYY-MM-DD.
    Accepts "2026-02-03" and "2026-02-03T18:10:00"; anything else becomes today.
    """
    if isinstance(value, str):
        candidate = value.split("T")[0]
        try:
            return date.fromisoformat(candidate).isoformat()
        except ValueError:
            pass
    return date.today().isoformat()


def extract_time(iso_string: Optional[str]) -> str:
    """'2026-02-03T18:10:00' -> '18:10'"""
    if not iso_string or "T" not in iso_string:
        return "00:00"
    return iso_string.split("T")[1][:5] or "00:00"


def map_cabin_class(cabin: Optional[str]) -> str:
    """Premium cabins report as W, everything else as Y"""
    if not cabin:
        return "Y"
    cabin_upper = cabin.upper()
    if cabin_upper == "W" or any(marker in cabin_upper for marker in PREMIUM_CABIN_MARKERS):
        return "W"
    return "Y"


def sanitize_passenger_name(name: Optional[str], fallback: str) -> str:
    cleaned = re.sub(r"[^A-Z\s]", "", (name or "").upper())[:20]
    return cleaned or fallback


def _passenger_list(passengers: List[Dict[str, Any]], first_name: str, last_name: str) -> List[Dict[str, str]]:
    if not passengers:
        return [{
            "firstName": sanitize_passenger_name(first_name, "GUEST"),
            "lastName": sanitize_passenger_name(last_name, "PASSENGER"),
        }]

    result = []
    for passenger in passengers:
        name = passenger.get("name") if isinstance(passenger.get("name"), dict) else {}
        result.append({
            "firstName": sanitize_passenger_name(passenger.get("firstName") or name.get("firstName"), "GUEST"),
            "lastName": sanitize_passenger_name(passenger.get("lastName") or name.get("lastName"), "PASSENGER"),
        })
    return result


def _flight_legs(flight: Dict[str, Any], booking_data: Dict[str, Any]) -> List[Dict[str, str]]:
    itineraries = flight.get("itineraries") or []
    itinerary = itineraries[0] if itineraries else (flight.get("itinerary") or {})
    segments = itinerary.get("segments") or flight.get("segments") or []

    origin = (flight.get("origin") or booking_data.get("origin") or "XXX")[:3]
    destination = (flight.get("destination") or booking_data.get("destination") or "XXX")[:3]

    if not segments:
        return [{
            "carrierCode": AIRLINE_DATA_CARRIER,
            "classOfService": "Y",
            "departureAirport": origin,
            "departureDate": date.today().isoformat(),
            "departureTime": "00:00",
            "destinationAirport": destination,
            "flightNumber": "001",
        }]

    legs = []
    for index, segment in enumerate(segments):
        departure = segment.get("departure") or {}
        arrival = segment.get("arrival") or {}
        cabin = segment.get("cabin") or flight.get("cabin") or booking_data.get("cabinClass")
        flight_number = segment.get("number") or segment.get("flightNumber") or index + 1
        legs.append({
            "carrierCode": AIRLINE_DATA_CARRIER,
            "classOfService": map_cabin_class(cabin),
            "departureAirport": (departure.get("iataCode") or origin)[:3],
            "departureDate": parse_iso_date(departure.get("at")),
            "departureTime": extract_time(departure.get("at")),
            "destinationAirport": (arrival.get("iataCode") or destination)[:3],
            "flightNumber": str(flight_number)[:6],
        })
    return legs


def build_airline_data(
    amount,
    order_id: str,
    customer_name: Optional[str],
    flight_data: Optional[Dict[str, Any]] = None,
    booking_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Airline itinerary/ticket block required for card brand interchange"""
    booking_data = booking_data or {}
    flight = flight_data or booking_data.get("selectedFlight") or booking_data.get("flightData") or {}
    first_name, last_name = split_customer_name(customer_name)

    legs = _flight_legs(flight, booking_data)
    passengers = _passenger_list(
        booking_data.get("passengerData") or booking_data.get("travelers") or [],
        first_name,
        last_name,
    )

    ticket_number = f"{TICKET_NUMBER_PREFIX}{str(int(time.time() * 1000))[-10:]}"[:13]
    booking_reference = str(flight.get("pnr") or flight.get("bookingReference") or order_id or "")[:6].upper() or "TRPPAY"
    agent_name = re.sub(r"[^A-Z0-9\s]", "", settings.arc_travel_agent_name.upper())[:25]

    return {
        "bookingReference": booking_reference,
        "documentType": "MCO",
        "itinerary": {"leg": legs, "numberInParty": str(len(passengers))},
        "passenger": passengers,
        "ticket": {
            "issue": {
                "carrierCode": legs[0]["carrierCode"],
                "carrierName": agent_name,
                "city": "ONLINE",
                "country": "USA",
                "date": date.today().isoformat(),
                "travelAgentCode": settings.arc_travel_agent_code,
                "travelAgentName": agent_name,
            },
            "ticketNumber": ticket_number,
            "totalFare": format_amount(amount),
            "totalFees": "0.00",
            "totalTaxes": "0.00",
        },
    }


# ============================================================
# INITIATE_CHECKOUT body
# ============================================================

def build_checkout_request(
    order_id: str,
    amount,
    currency: str = "USD",
    booking_type: str = "flight",
    operation: str = "PURCHASE",
    description: Optional[str] = None,
    return_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    require_3ds: bool = False,
    airline_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the session request for a hosted checkout.

    Args:
        order_id: Merchant order id, also used as the order reference
        amount: Order total (formatted to two decimals)
        operation: PURCHASE (capture immediately) or AUTHORIZE
        require_3ds: Force a 3-D Secure challenge
        airline_data: Optional block from build_airline_data()

    Returns:
        JSON body for POST /merchant/{id}/session
    """
    body: Dict[str, Any] = {
        "apiOperation": "INITIATE_CHECKOUT",
        "interaction": {
            "operation": operation,
            "returnUrl": return_url or default_return_url(order_id, booking_type),
            "cancelUrl": cancel_url or default_cancel_url(booking_type),
            "merchant": {"name": settings.arc_pay_merchant_name},
            # Billing address and email are required for 3DS2
            "displayControl": {
                "billingAddress": "MANDATORY",
                "customerEmail": "MANDATORY",
            },
            "timeout": settings.arc_pay_checkout_timeout,
        },
        "order": {
            "id": order_id,
            "reference": order_id,
            "amount": format_amount(amount),
            "currency": currency.upper(),
            "description": description or default_description(booking_type, order_id),
        },
    }

    if require_3ds:
        body["interaction"]["action"] = {"3DSecure": "MANDATORY"}
        body["authentication"] = {"challengePreference": "CHALLENGE_MANDATED"}

    if customer_email:
        first_name, last_name = split_customer_name(customer_name)
        customer = {"email": customer_email, "firstName": first_name, "lastName": last_name}
        phone = clean_phone(customer_phone)
        if phone:
            customer["mobilePhone"] = phone
        body["customer"] = customer

    if airline_data:
        body["airline"] = airline_data

    return body
