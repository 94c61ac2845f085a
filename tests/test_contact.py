from dataclasses import replace

from civicpulse.routers import contact as contact_router
from civicpulse.services.email import EmailSendError

PAYLOAD = {
    "name": "Asha",
    "email": "asha@example.com",
    "subject": "Broken light\non MG Road",
    "message": "The light near the bus stop has been out for a week.",
}


def test_contact_relays_message(client, monkeypatch):
    sent = []

    def fake_send_email(to_email, subject, body, reply_to=None):
        sent.append((to_email, subject, body, reply_to))

    monkeypatch.setattr(contact_router, "send_email", fake_send_email)

    response = client.post("/api/contact", json=PAYLOAD)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    to_email, subject, body, reply_to = sent[0]
    assert to_email == "inbox@example.test"
    assert subject == "[CivicPulse Contact] Broken light on MG Road"
    assert body.startswith("Name: Asha\nEmail: asha@example.com\n\n")
    assert reply_to == "asha@example.com"


def test_contact_transport_failure(client, monkeypatch):
    def failing_send_email(*args, **kwargs):
        raise EmailSendError("Failed to reach mail server")

    monkeypatch.setattr(contact_router, "send_email", failing_send_email)

    response = client.post("/api/contact", json=PAYLOAD)

    assert response.status_code == 502
    assert response.json() == {"detail": "Failed to reach mail server"}


def test_contact_without_recipient(client, monkeypatch):
    monkeypatch.setattr(
        contact_router, "settings", replace(contact_router.settings, contact_recipient="")
    )
    assert client.post("/api/contact", json=PAYLOAD).status_code == 503


def test_contact_validates_email(client):
    response = client.post("/api/contact", json={**PAYLOAD, "email": "not-an-email"})
    assert response.status_code == 422
