from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from twilio.base.exceptions import TwilioRestException

from cocktail_menu.main import create_app
from tests.conftest import (
    TWILIO_SETTINGS,
    FakeTwilioClient,
    cocktail_id_by_name,
    create_cocktail,
    login,
    make_settings,
    query,
)


def redirect_params(response) -> dict[str, str]:
    location = urlparse(response.headers["location"])
    return {k: v[0] for k, v in parse_qs(location.query).items()}


def redirect_path(response) -> str:
    return urlparse(response.headers["location"]).path


def seed_menu(client: TestClient, *names: str) -> None:
    login(client)
    for name in names:
        assert create_cocktail(client, name=name).status_code == 303
    client.post("/admin/logout")


# =============================================================================
# MENU
# =============================================================================

def test_empty_menu_renders(client):
    response = client.get("/menu")
    assert response.status_code == 200
    assert "The menu is empty" in response.text


def test_menu_is_sorted_by_name(client):
    seed_menu(client, "Negroni", "Aperol Spritz", "Mojito")

    text = client.get("/menu").text
    assert text.index("Aperol Spritz") < text.index("Mojito") < text.index("Negroni")


def test_menu_restores_selection_and_shows_error(client):
    seed_menu(client, "Mojito")
    cocktail_id = cocktail_id_by_name(client, "Mojito")

    response = client.get(f"/menu?cocktail_id={cocktail_id}&order_error=Oops")
    assert f'value="{cocktail_id}" selected' in response.text
    assert "Oops" in response.text


def test_root_shows_menu_url(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "http://testserver/menu" in response.text


def test_qr_png(client):
    response = client.get("/qr.png")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "no-store"
    assert response.content.startswith(b"\x89PNG")


def test_public_base_url_overrides_request_host(tmp_path):
    app = create_app(make_settings(tmp_path, public_base_url="bar.example.com/"))
    with TestClient(app) as client:
        assert "https://bar.example.com/menu" in client.get("/").text


# =============================================================================
# PLACE ORDER
# =============================================================================

def test_order_with_empty_name_is_rejected(client):
    seed_menu(client, "Mojito")
    cocktail_id = cocktail_id_by_name(client, "Mojito")

    response = client.post(
        "/order",
        data={"customer_name": "   ", "cocktail_id": str(cocktail_id)},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert redirect_path(response) == "/menu"
    params = redirect_params(response)
    assert params["order_error"]
    assert params["cocktail_id"] == str(cocktail_id)
    assert query(client, "SELECT * FROM orders") == []


@pytest.mark.parametrize("cocktail_id", ["", "abc", "9999", "9" * 25, "1_000", "١٢"])
def test_order_with_bad_cocktail_is_rejected(client, cocktail_id):
    seed_menu(client, "Mojito")

    response = client.post(
        "/order",
        data={"customer_name": "Ana", "cocktail_id": cocktail_id},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert redirect_path(response) == "/menu"
    assert "order_error" in redirect_params(response)
    assert query(client, "SELECT * FROM orders") == []


def test_order_without_delivery_config_goes_to_neutral_success(client):
    seed_menu(client, "Mojito")
    cocktail_id = cocktail_id_by_name(client, "Mojito")

    response = client.post(
        "/order",
        data={"customer_name": "  Ana ", "cocktail_id": str(cocktail_id), "note": " no ice "},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert redirect_path(response) == "/order/success"
    params = redirect_params(response)
    assert set(params) == {"order_id"}

    orders = query(client, "SELECT * FROM orders")
    assert len(orders) == 1
    assert orders[0]["customer_name"] == "Ana"
    assert orders[0]["cocktail_name"] == "Mojito"
    assert orders[0]["note"] == "no ice"
    assert str(orders[0]["id"]) == params["order_id"]

    page = client.get(response.headers["location"])
    assert page.status_code == 200
    assert "Mojito" in page.text
    assert "Send on WhatsApp" not in page.text


def test_blank_note_is_stored_as_null(client):
    seed_menu(client, "Mojito")
    cocktail_id = cocktail_id_by_name(client, "Mojito")

    client.post("/order", data={"customer_name": "Ana", "cocktail_id": str(cocktail_id), "note": "  "})

    assert query(client, "SELECT note FROM orders")[0]["note"] is None


def test_order_with_manual_link(tmp_path):
    app = create_app(make_settings(tmp_path, whatsapp_number="+40 712 345 678"))
    with TestClient(app) as client:
        seed_menu(client, "Mojito")
        cocktail_id = cocktail_id_by_name(client, "Mojito")

        response = client.post(
            "/order",
            data={"customer_name": "Ana", "cocktail_id": str(cocktail_id)},
            follow_redirects=False,
        )

        params = redirect_params(response)
        assert params["whatsapp_url"].startswith("https://wa.me/40712345678?text=")
        assert "fallback" not in params

        page = client.get(response.headers["location"])
        assert "Send on WhatsApp" in page.text
        assert "could not notify" not in page.text


def test_order_delivered_directly(tmp_path):
    fake = FakeTwilioClient(sid="SM42")
    app = create_app(
        make_settings(tmp_path, whatsapp_number="40712345678", **TWILIO_SETTINGS),
        messaging_client=fake,
    )
    with TestClient(app) as client:
        seed_menu(client, "Mojito")
        cocktail_id = cocktail_id_by_name(client, "Mojito")

        response = client.post(
            "/order",
            data={"customer_name": "Ana", "cocktail_id": str(cocktail_id), "note": "no ice"},
            follow_redirects=False,
        )

        assert set(redirect_params(response)) == {"order_id"}
        assert fake.messages.sent[0]["body"].endswith("Details: no ice")


def test_direct_failure_falls_back_to_manual_link(tmp_path):
    fake = FakeTwilioClient(error=TwilioRestException(status=500, uri="/Messages.json", msg="boom"))
    app = create_app(
        make_settings(tmp_path, whatsapp_number="40712345678", **TWILIO_SETTINGS),
        messaging_client=fake,
    )
    with TestClient(app) as client:
        seed_menu(client, "Mojito")
        cocktail_id = cocktail_id_by_name(client, "Mojito")

        response = client.post(
            "/order",
            data={"customer_name": "Ana", "cocktail_id": str(cocktail_id)},
            follow_redirects=False,
        )

        assert redirect_path(response) == "/order/success"
        params = redirect_params(response)
        assert params["fallback"] == "1"
        assert params["whatsapp_url"].startswith("https://wa.me/40712345678")
        assert len(query(client, "SELECT * FROM orders")) == 1

        page = client.get(response.headers["location"])
        assert "could not notify" in page.text
        assert "Send on WhatsApp" in page.text


def test_direct_failure_without_manual_number_still_succeeds(tmp_path):
    fake = FakeTwilioClient(error=ConnectionError("unreachable"))
    app = create_app(make_settings(tmp_path, **TWILIO_SETTINGS), messaging_client=fake)
    with TestClient(app) as client:
        seed_menu(client, "Mojito")
        cocktail_id = cocktail_id_by_name(client, "Mojito")

        response = client.post(
            "/order",
            data={"customer_name": "Ana", "cocktail_id": str(cocktail_id)},
            follow_redirects=False,
        )

        assert redirect_path(response) == "/order/success"
        assert set(redirect_params(response)) == {"order_id"}
        assert len(query(client, "SELECT * FROM orders")) == 1


def test_order_snapshot_survives_rename(client):
    seed_menu(client, "Mojito")
    cocktail_id = cocktail_id_by_name(client, "Mojito")
    client.post("/order", data={"customer_name": "Ana", "cocktail_id": str(cocktail_id)})

    login(client)
    client.post(
        f"/admin/cocktails/{cocktail_id}/update",
        data={"name": "Virgin Mojito", "ingredients": "mint, lime, soda"},
    )

    assert query(client, "SELECT cocktail_name FROM orders")[0]["cocktail_name"] == "Mojito"


# =============================================================================
# CONFIRMATION AND DETAIL PAGES
# =============================================================================

@pytest.mark.parametrize("url", [
    "/order/success",
    "/order/success?order_id=abc",
    "/order/success?order_id=999",
    "/order/success?order_id=" + "9" * 25,
])
def test_success_page_requires_existing_order(client, url):
    response = client.get(url, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/menu"


def test_success_page_ignores_foreign_links(client):
    seed_menu(client, "Mojito")
    cocktail_id = cocktail_id_by_name(client, "Mojito")
    response = client.post(
        "/order",
        data={"customer_name": "Ana", "cocktail_id": str(cocktail_id)},
        follow_redirects=False,
    )
    order_id = redirect_params(response)["order_id"]

    page = client.get(
        "/order/success",
        params={"order_id": order_id, "whatsapp_url": "https://evil.example/x", "fallback": "1"},
    )
    assert page.status_code == 200
    assert "evil.example" not in page.text
    assert "Send on WhatsApp" not in page.text


def test_cocktail_detail(client):
    login(client)
    create_cocktail(client, name="Negroni", ingredients="gin, campari", garnish="orange peel", tags="bitter, stirred")
    cocktail_id = cocktail_id_by_name(client, "Negroni")

    response = client.get(f"/cocktail/{cocktail_id}")
    assert response.status_code == 200
    assert "orange peel" in response.text
    assert "bitter, stirred" in response.text


@pytest.mark.parametrize("path", ["/cocktail/999", "/cocktail/abc", "/cocktail/" + "9" * 25])
def test_unknown_cocktail_is_404(client, path):
    response = client.get(path)
    assert response.status_code == 404
    assert "Page not found" in response.text


def test_unmatched_route_is_404(client):
    response = client.get("/definitely/not/here")
    assert response.status_code == 404
    assert "Page not found" in response.text


# =============================================================================
# ERROR HANDLING
# =============================================================================

def test_unhandled_error_on_public_path_returns_plain_500(settings, monkeypatch):
    app = create_app(settings)

    async def broken():
        raise RuntimeError("database exploded")

    monkeypatch.setattr(app.state.ordering, "list_menu", broken)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/menu")

    assert response.status_code == 500
    assert response.text == "database exploded"


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"
