from payhook.core.config import Settings


def test_password_is_injected_into_store_url():
    settings = Settings(
        database_url="postgresql://payhook@db.internal:5432/payhook",
        database_password="s3cr3t",
        razorpay_webhook_secret="rzp",
    )
    assert settings.store_url.password == "s3cr3t"
    assert settings.store_url.host == "db.internal"


def test_store_url_without_password():
    settings = Settings(database_url="sqlite://", razorpay_webhook_secret="rzp")
    assert settings.store_url.password is None
    assert settings.webhook_secret_bytes == b"rzp"
    assert settings.activate_untyped_events is True
    assert settings.entitlement_provider == "razorpay"
