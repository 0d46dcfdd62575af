import re

import pytest

from spendwise.services.otp import OtpDeliveryError, get_mail_sender


class OutboxMailer:
    def __init__(self):
        self.outbox = []
        self.fail = False

    def send(self, recipient, subject, body):
        if self.fail:
            raise OtpDeliveryError("smtp down")
        self.outbox.append({"to": recipient, "subject": subject, "body": body})

    def last_code(self):
        return re.search(r"\b(\d{6})\b", self.outbox[-1]["body"]).group(1)


@pytest.fixture
def mailer(client):
    from spendwise.main import app

    outbox = OutboxMailer()
    app.dependency_overrides[get_mail_sender] = lambda: outbox
    return outbox


def test_send_and_verify(client, mailer):
    response = client.post("/api/otp/send", json={"email": "new@example.com"})
    assert response.status_code == 200
    assert response.json() == {"message": "OTP sent successfully"}
    assert mailer.outbox[0]["subject"] == "Your SpendWise Verification Code"

    code = mailer.last_code()
    verified = client.post("/api/otp/verify", json={"email": "new@example.com", "otp": code})
    assert verified.status_code == 200

    reused = client.post("/api/otp/verify", json={"email": "new@example.com", "otp": code})
    assert reused.status_code == 400
    assert reused.json()["detail"] == "Invalid or expired OTP"


def test_verify_wrong_code(client, mailer):
    client.post("/api/otp/send", json={"email": "new@example.com"})
    wrong = "000000" if mailer.last_code() != "000000" else "111111"
    response = client.post("/api/otp/verify", json={"email": "new@example.com", "otp": wrong})
    assert response.status_code == 400


def test_resend_replaces_code(client, mailer):
    client.post("/api/otp/send", json={"email": "new@example.com"})
    first = mailer.last_code()
    response = client.post("/api/otp/resend", json={"email": "new@example.com"})
    assert response.status_code == 200
    second = mailer.last_code()

    if first != second:
        assert client.post("/api/otp/verify", json={"email": "new@example.com", "otp": first}).status_code == 400
    assert client.post("/api/otp/verify", json={"email": "new@example.com", "otp": second}).status_code == 200


def test_otp_request_validation(client, mailer):
    assert client.post("/api/otp/send", json={"email": "not-an-email"}).status_code == 400
    assert client.post("/api/otp/verify", json={"email": "a@example.com", "otp": "12ab"}).status_code == 400


def test_delivery_failure(client, mailer):
    mailer.fail = True
    response = client.post("/api/otp/send", json={"email": "new@example.com"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to send OTP"


def test_confirm_email_page(client):
    response = client.get("/confirm_email")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Email Confirmed!" in response.text
