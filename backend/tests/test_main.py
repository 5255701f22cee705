from fastapi.testclient import TestClient


def test_health_check(client: TestClient, settings):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert settings.razorpay_webhook_secret not in response.text


def test_webhook_only_accepts_post(client: TestClient):
    assert client.get("/payment-webhook").status_code == 405
