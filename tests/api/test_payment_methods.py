from __future__ import annotations

from fastapi.testclient import TestClient

from sharedplan.core.config import SETTINGS
from tests.conftest import auth, mint_token


def test_methods_require_auth(client: TestClient) -> None:
    assert client.get("/v1/payment-methods").status_code == 401


def test_list_methods(client: TestClient) -> None:
    r = client.get("/v1/payment-methods", headers=auth(mint_token()))
    assert r.status_code == 200
    assert [m["name"] for m in r.json()] == ["Nequi", "Daviplata", "Rappi"]
    assert all(m["payeeNumber"] == SETTINGS.payment_phone for m in r.json())


def test_get_method_is_case_insensitive(client: TestClient) -> None:
    r = client.get("/v1/payment-methods/nequi", headers=auth(mint_token()))
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "Nequi"
    assert body["steps"][0] == "Abre tu app Nequi"
    assert body["receiptUrl"] == SETTINGS.support_chat_url


def test_unknown_method_is_404(client: TestClient) -> None:
    r = client.get("/v1/payment-methods/paypal", headers=auth(mint_token()))
    assert r.status_code == 404
    assert "paypal" in r.json()["detail"]["message"]
