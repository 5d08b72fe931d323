"""
TripPay Backend - Checkout Request Builder Tests
INITIATE_CHECKOUT body and airline data
"""

from datetime import date
from decimal import Decimal

from trippay.services.checkout_builder import (
    build_checkout_request,
    build_airline_data,
    format_amount,
    split_customer_name,
    parse_iso_date,
    extract_time,
    map_cabin_class,
    sanitize_passenger_name,
    AIRLINE_DATA_CARRIER,
)


class TestFormatting:
    """Amount and name helpers."""

    def test_amount_has_two_decimals(self):
        assert format_amount(100) == "100.00"
        assert format_amount("99.5") == "99.50"
        assert format_amount(Decimal("10.005")) == "10.01"

    def test_float_amount_does_not_leak_binary_noise(self):
        assert format_amount(0.1 + 0.2) == "0.30"

    def test_split_customer_name(self):
        assert split_customer_name("Jane Q Public") == ("Jane", "Q Public")
        assert split_customer_name("Cher") == ("Cher", "User")
        assert split_customer_name(None) == ("Guest", "User")

    def test_parse_iso_date(self):
        assert parse_iso_date("2026-02-03T18:10:00") == "2026-02-03"
        assert parse_iso_date("2026-02-03") == "2026-02-03"
        assert parse_iso_date("next tuesday") == date.today().isoformat()
        assert parse_iso_date(None) == date.today().isoformat()

    def test_extract_time(self):
        assert extract_time("2026-02-03T18:10:00") == "18:10"
        assert extract_time("2026-02-03") == "00:00"

    def test_cabin_class_mapping(self):
        assert map_cabin_class("BUSINESS") == "W"
        assert map_cabin_class("premium_economy") == "W"
        assert map_cabin_class("ECONOMY") == "Y"
        assert map_cabin_class(None) == "Y"

    def test_passenger_name_is_uppercase_letters_only(self):
        assert sanitize_passenger_name("O'Brien-Smith", "GUEST") == "OBRIENSMITH"
        assert sanitize_passenger_name("123", "GUEST") == "GUEST"
        assert len(sanitize_passenger_name("A" * 40, "GUEST")) == 20


class TestCheckoutRequest:
    """INITIATE_CHECKOUT body."""

    def test_minimal_body(self):
        body = build_checkout_request(order_id="ORD123", amount=250)

        assert body["apiOperation"] == "INITIATE_CHECKOUT"
        assert body["interaction"]["operation"] == "PURCHASE"
        assert body["interaction"]["displayControl"]["billingAddress"] == "MANDATORY"
        assert body["order"] == {
            "id": "ORD123",
            "reference": "ORD123",
            "amount": "250.00",
            "currency": "USD",
            "description": "Flight Booking - ORD123",
        }
        assert "customer" not in body
        assert "airline" not in body
        assert "authentication" not in body

    def test_default_urls_point_at_frontend(self):
        body = build_checkout_request(order_id="ORD123", amount=10, booking_type="cruise")

        assert body["interaction"]["returnUrl"] == (
            "https://trippay.example/payment/callback?orderId=ORD123&bookingType=cruise"
        )
        assert body["interaction"]["cancelUrl"] == "https://trippay.example/cruise-payment?cancelled=true"

    def test_explicit_urls_and_currency(self):
        body = build_checkout_request(
            order_id="ORD1",
            amount="12.3",
            currency="eur",
            return_url="https://shop.example/back",
            cancel_url="https://shop.example/cancel",
        )
        assert body["interaction"]["returnUrl"] == "https://shop.example/back"
        assert body["interaction"]["cancelUrl"] == "https://shop.example/cancel"
        assert body["order"]["currency"] == "EUR"
        assert body["order"]["amount"] == "12.30"

    def test_customer_block(self):
        body = build_checkout_request(
            order_id="ORD1",
            amount=10,
            customer_email="jane@example.com",
            customer_name="Jane Public",
            customer_phone="+1 (555) 010-9999",
        )
        assert body["customer"] == {
            "email": "jane@example.com",
            "firstName": "Jane",
            "lastName": "Public",
            "mobilePhone": "15550109999",
        }

    def test_three_d_secure_enforced(self):
        body = build_checkout_request(order_id="Q1", amount=10, require_3ds=True)
        assert body["interaction"]["action"] == {"3DSecure": "MANDATORY"}
        assert body["authentication"] == {"challengePreference": "CHALLENGE_MANDATED"}

    def test_authorize_operation(self):
        body = build_checkout_request(order_id="ORD1", amount=10, operation="AUTHORIZE")
        assert body["interaction"]["operation"] == "AUTHORIZE"


class TestAirlineData:
    """Airline block for flight bookings."""

    def test_segments_become_legs(self):
        flight = {
            "pnr": "abc123",
            "itineraries": [{
                "segments": [
                    {
                        "departure": {"iataCode": "JFK", "at": "2026-02-03T18:10:00"},
                        "arrival": {"iataCode": "LHR", "at": "2026-02-04T06:20:00"},
                        "number": "100",
                        "cabin": "BUSINESS",
                    },
                    {
                        "departure": {"iataCode": "LHR", "at": "2026-02-04T09:00:00"},
                        "arrival": {"iataCode": "CDG", "at": "2026-02-04T11:15:00"},
                        "number": "305",
                    },
                ]
            }],
        }
        booking_data = {"passengerData": [
            {"firstName": "Jane", "lastName": "Public"},
            {"name": {"firstName": "John", "lastName": "Public"}},
        ]}

        data = build_airline_data(450, "ORD1", "Jane Public", flight, booking_data)

        legs = data["itinerary"]["leg"]
        assert len(legs) == 2
        assert legs[0]["carrierCode"] == AIRLINE_DATA_CARRIER
        assert legs[0]["departureAirport"] == "JFK"
        assert legs[0]["departureDate"] == "2026-02-03"
        assert legs[0]["departureTime"] == "18:10"
        assert legs[0]["classOfService"] == "W"
        assert legs[1]["classOfService"] == "Y"
        assert legs[1]["destinationAirport"] == "CDG"
        assert data["itinerary"]["numberInParty"] == "2"
        assert data["passenger"][1] == {"firstName": "JOHN", "lastName": "PUBLIC"}
        assert data["bookingReference"] == "ABC123"
        assert data["ticket"]["totalFare"] == "450.00"
        assert data["ticket"]["ticketNumber"].startswith("889")
        assert len(data["ticket"]["ticketNumber"]) == 13

    def test_missing_flight_data_falls_back_to_single_leg(self):
        data = build_airline_data(100, "ORDER42", "Jane Public", None, {"origin": "SFO", "destination": "LAX"})

        legs = data["itinerary"]["leg"]
        assert len(legs) == 1
        assert legs[0]["departureAirport"] == "SFO"
        assert legs[0]["destinationAirport"] == "LAX"
        assert data["passenger"] == [{"firstName": "JANE", "lastName": "PUBLIC"}]
        assert data["bookingReference"] == "ORDER4"
