"""
Tests for the checkout and promo preview endpoints.
"""

import pytest
from httpx import AsyncClient


def checkout_payload(event_id: int, *lines, promo_code=None) -> dict:
    payload = {
        "event_id": event_id,
        "lines": [{"ticket_category_id": cid, "quantity": qty} for cid, qty in lines],
    }
    if promo_code is not None:
        payload["promo_code"] = promo_code
    return payload


@pytest.mark.asyncio
async def test_checkout(client: AsyncClient, auth_headers, catalog):
    """Successful checkout returns the receipt and decrements stock."""
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.general_id, 3)),
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["booking_reference"].startswith("BK")
    assert data["ticket_count"] == 3
    assert data["total_amount"] == "60.00"
    assert data["discount_amount"] == "0.00"
    assert data["final_amount"] == "60.00"

    event_response = await client.get(f"/api/v1/events/{catalog.event_id}")
    general = next(
        c for c in event_response.json()["ticket_categories"] if c["id"] == catalog.general_id
    )
    assert general["available_quantity"] == 97


@pytest.mark.asyncio
async def test_checkout_with_promo_code(client: AsyncClient, auth_headers, catalog, promotions):
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.general_id, 3), promo_code="SAVE10"),
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["discount_amount"] == "6.00"
    assert response.json()["final_amount"] == "54.00"


@pytest.mark.asyncio
async def test_checkout_unauthenticated(client: AsyncClient, catalog):
    """Unauthenticated checkout returns 401."""
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.general_id, 1)),
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_checkout_invalid_token(client: AsyncClient, catalog):
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.general_id, 1)),
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_checkout_requires_customer_role(client: AsyncClient, organizer_headers, catalog):
    """Organizers cannot buy tickets."""
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.general_id, 1)),
        headers=organizer_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_checkout_insufficient_stock(client: AsyncClient, auth_headers, catalog):
    """Sold-out category returns 409 with what is left."""
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.balcony_id, 3)),
        headers=auth_headers,
    )
    assert response.status_code == 409
    data = response.json()
    assert data["error_kind"] == "INSUFFICIENT_STOCK"
    assert data["ticket_category_id"] == catalog.balcony_id
    assert data["available"] == 2
    assert data["message"] == "Only 2 tickets available for Balcony."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "lines, status_code, error_kind",
    [
        ([], 422, "NO_LINES_SELECTED"),
        ([("general", 0)], 422, "NO_LINES_SELECTED"),
        ([("general", 11)], 422, "INVALID_QUANTITY"),
        ([("general", -2)], 422, "INVALID_QUANTITY"),
        ([("general", 1), ("other", 1)], 422, "CATEGORY_NOT_FOUND"),
        ([("retired", 1)], 422, "CATEGORY_NOT_FOUND"),
    ],
)
async def test_checkout_rejected_carts(
    client: AsyncClient, auth_headers, catalog, lines, status_code, error_kind
):
    ids = {
        "general": catalog.general_id,
        "other": catalog.other_event_category_id,
        "retired": catalog.retired_id,
    }
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, *[(ids[name], qty) for name, qty in lines]),
        headers=auth_headers,
    )
    assert response.status_code == status_code
    assert response.json()["error_kind"] == error_kind


@pytest.mark.asyncio
async def test_checkout_unknown_event(client: AsyncClient, auth_headers, catalog):
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(99999, (catalog.general_id, 1)),
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["error_kind"] == "EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_checkout_past_event(client: AsyncClient, auth_headers, catalog):
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.past_event_id, (catalog.general_id, 1)),
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["error_kind"] == "EVENT_NOT_BOOKABLE"


@pytest.mark.asyncio
async def test_checkout_overlong_promo_code(client: AsyncClient, auth_headers, catalog):
    response = await client.post(
        "/api/v1/checkout",
        json=checkout_payload(catalog.event_id, (catalog.general_id, 1), promo_code="X" * 60),
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["error_kind"] == "INVALID_PROMOTION_INPUT"


@pytest.mark.asyncio
async def test_promo_preview(client: AsyncClient, auth_headers, catalog, promotions):
    response = await client.post(
        "/api/v1/checkout/promo-preview",
        json={"promo_code": "SAVE10", "total_amount": "60.00", "event_id": catalog.event_id},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["discount_amount"] == "6.00"
    assert data["final_amount"] == "54.00"
    assert data["message"] == "Promo code applied! You save $6.00"


@pytest.mark.asyncio
async def test_promo_preview_invalid_code(client: AsyncClient, auth_headers, catalog, promotions):
    response = await client.post(
        "/api/v1/checkout/promo-preview",
        json={"promo_code": "OLDNEWS", "total_amount": "60.00"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["final_amount"] == "60.00"
    assert data["message"] == "Invalid or expired promo code."


@pytest.mark.asyncio
async def test_promo_preview_negative_total(client: AsyncClient, auth_headers, catalog):
    response = await client.post(
        "/api/v1/checkout/promo-preview",
        json={"promo_code": "SAVE10", "total_amount": "-5.00"},
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["error_kind"] == "INVALID_PROMOTION_INPUT"


@pytest.mark.asyncio
async def test_error_bodies_are_documented(client: AsyncClient):
    response = await client.get("/openapi.json")
    assert response.status_code == 200
    spec = response.json()

    error_ref = "#/components/schemas/ErrorResponse"
    checkout = spec["paths"]["/api/v1/checkout"]["post"]["responses"]
    for code in ("404", "409", "422", "503"):
        assert checkout[code]["content"]["application/json"]["schema"]["$ref"] == error_ref

    cancel = spec["paths"]["/api/v1/bookings/{booking_id}/cancel"]["post"]["responses"]
    assert cancel["409"]["content"]["application/json"]["schema"]["$ref"] == error_ref
    assert set(spec["components"]["schemas"]["ErrorResponse"]["required"]) == {"error_kind", "message"}
