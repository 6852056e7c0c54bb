"""Tests for the payment, profile and webhook repositories (SQLite)."""

from decimal import Decimal

from scaleturbo_api.db.models import Payment
from scaleturbo_api.db.repo_payments import PaymentRepository
from scaleturbo_api.db.repo_profiles import ProfileRepository
from scaleturbo_api.db.repo_webhooks import WebhookLogRepository, WebhookSettingRepository


def test_payment_upsert_is_keyed_by_payment_id(db_session):
    repo = PaymentRepository(db_session)

    repo.upsert(payment_id="123", email="a@x.com", status="pending", amount=Decimal("37.90"), payment_method="pix")
    payment = repo.upsert(
        payment_id="123", email="a@x.com", status="approved", amount=Decimal("37.90"), payment_method="pix"
    )

    assert repo.count("123") == 1
    assert payment.status == "approved"
    assert payment.amount == Decimal("37.90")


def test_payment_upsert_last_write_wins(db_session):
    """An older status arriving late overwrites a newer one."""
    repo = PaymentRepository(db_session)

    repo.upsert(payment_id="7", email=None, status="approved", amount=None, payment_method=None)
    repo.upsert(payment_id="7", email=None, status="pending", amount=None, payment_method=None)

    assert repo.get("7").status == "pending"
    assert db_session.query(Payment).count() == 1


def test_grant_premium_creates_missing_profile(db_session):
    repo = ProfileRepository(db_session)

    profile = repo.grant_premium("u-1", "a@x.com")

    assert profile.is_premium is True
    assert repo.get("u-1").email == "a@x.com"


def test_grant_premium_is_idempotent(db_session):
    repo = ProfileRepository(db_session)

    repo.grant_premium("u-1")
    repo.grant_premium("u-1")

    assert repo.get("u-1").is_premium is True


def test_subscription_save_replaces_existing(db_session):
    repo = WebhookSettingRepository(db_session)

    repo.save(user_id="u-1", webhook_url="https://old.example.com/hook")
    saved = repo.save(user_id="u-1", webhook_url="https://new.example.com/hook", is_active=False)

    assert saved.webhook_url == "https://new.example.com/hook"
    assert saved.is_active is False
    assert repo.get_active("u-1") is None
    assert repo.get("u-1") is not None


def test_log_list_recent_is_scoped_and_newest_first(db_session):
    repo = WebhookLogRepository(db_session)
    for i in range(3):
        repo.append(
            user_id="u-1",
            webhook_url="https://ex.com/hook",
            event_type="payment_pending",
            payload={"n": i},
            response_status=200,
            response_body="ok",
            success=True,
            source="webhook_delivery",
        )
    repo.append(
        user_id="u-2",
        webhook_url="https://other.example.com/hook",
        event_type="test",
        payload={"n": 99},
        response_status=None,
        response_body="boom",
        success=False,
        source="manual_test",
    )

    recent = repo.list_recent("u-1", limit=2)

    assert [entry.payload["n"] for entry in recent] == [2, 1]
    assert repo.count_for_user("u-1") == 3
    assert repo.count_for_user("u-2") == 1
