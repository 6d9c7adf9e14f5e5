"""
Tests for the offer and form PDF documents.
"""

from datetime import date
from decimal import Decimal

from homesapp.services.pdf import (
    format_money,
    generate_offer_pdf,
    generate_owner_form_pdf,
    generate_rental_form_pdf,
)

PROPERTY = {
    "id": "9b2f6a8e-0000-0000-0000-000000000001",
    "title": "Departamento con alberca",
    "display_title": "Quinto Sol - 204",
    "location": "Aldea Zama, Tulum",
    "price": Decimal("28000.00"),
    "currency": "MXN",
    "bedrooms": 2,
    "bathrooms": Decimal("2.5"),
    "area": Decimal("96"),
}


def test_format_money():
    assert format_money(Decimal("25000"), "MXN") == "$25,000.00 MXN"
    assert format_money("1234.5") == "$1,234.50"
    assert format_money(None) is None
    assert format_money("") is None


def test_offer_pdf():
    offer = {
        "id": "offer-1",
        "applicant_full_name": "Ana <b>Paz</b>",
        "applicant_email": "ana@example.com",
        "offer_amount": Decimal("26000"),
        "currency": "MXN",
        "move_in_date": date(2024, 6, 1),
        "contract_months": 12,
        "status": "pending",
        "notes": "Con mascota & bicicleta",
    }
    content = generate_offer_pdf(offer, PROPERTY)
    assert content.startswith(b"%PDF")


def test_offer_pdf_with_sparse_data():
    content = generate_offer_pdf({"offer_amount": Decimal("1")}, {})
    assert content.startswith(b"%PDF")


def test_rental_form_pdf():
    tenant = {
        "full_name": "Luis Ruiz",
        "email": "luis@example.com",
        "monthly_income": Decimal("60000"),
        "birth_date": date(1990, 2, 3),
        "references": [
            {"name": "Carla", "phone": "9841112222", "relationship": "Jefa"},
            {"name": "", "phone": "", "relationship": ""},
        ],
        "has_pets": True,
        "has_vehicle": False,
    }
    assert generate_rental_form_pdf(tenant, PROPERTY).startswith(b"%PDF")


def test_owner_form_pdf():
    owner = {
        "full_name": "Olivia Mar",
        "bank_name": "Banco Caribe",
        "clabe": "012345678901234567",
        "preferred_rent_amount": Decimal("30000"),
        "minimum_contract_months": 6,
        "accepts_pets": None,
    }
    assert generate_owner_form_pdf(owner, PROPERTY).startswith(b"%PDF")
