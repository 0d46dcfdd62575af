import pytest
from pydantic import ValidationError

from spendwise.config import Settings

BASE = {
    "SUPABASE_URL": "https://project.supabase.co/",
    "SUPABASE_KEY": "anon",
    "DATABASE_URL": "sqlite://",
}


def test_supabase_url_trailing_slash_is_removed():
    settings = Settings.model_validate(BASE)
    assert settings.SUPABASE_URL == "https://project.supabase.co"


def test_supabase_url_must_be_http():
    with pytest.raises(ValidationError):
        Settings.model_validate({**BASE, "SUPABASE_URL": "project.supabase.co"})


def test_backfill_must_be_positive():
    with pytest.raises(ValidationError):
        Settings.model_validate({**BASE, "RECURRING_MAX_BACKFILL": 0})


def test_cors_and_environment_helpers():
    settings = Settings.model_validate({
        **BASE,
        "CORS_ORIGINS": "http://localhost:5173, https://app.example.com,",
        "ENVIRONMENT": "Development",
    })
    assert settings.cors_origins_list == ["http://localhost:5173", "https://app.example.com"]
    assert settings.is_development is True


def test_mail_sender_falls_back_to_smtp_user():
    settings = Settings.model_validate({**BASE, "SMTP_USER": "robot@example.com"})
    assert settings.mail_sender == "robot@example.com"
    settings = Settings.model_validate({**BASE, "SMTP_USER": "robot@example.com", "MAIL_FROM": "SpendWise <no-reply@example.com>"})
    assert settings.mail_sender == "SpendWise <no-reply@example.com>"
