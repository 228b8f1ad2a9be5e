"""Tests for the periodic cleanup jobs."""

import logging
from datetime import timedelta
from unittest.mock import MagicMock

from lumenpulse import scheduler
from lumenpulse.models.password_reset_token import PasswordResetToken
from lumenpulse.models.refresh_token import RefreshToken
from lumenpulse.services.challenge_store import Challenge, InMemoryChallengeStore
from lumenpulse.services.password_reset_service import issue_reset_token
from lumenpulse.services.refresh_token_service import issue_refresh_token, revoke_refresh_token
from lumenpulse.services.user_service import create_user
from tests.test_utils import utcnow


def make_challenge(expires_at):
    return Challenge(
        nonce="00" * 32,
        created_at=expires_at - timedelta(minutes=5),
        expires_at=expires_at,
        payload="AAAA",
        transaction_hash=b"\x00" * 32,
    )


class TestSweepChallengesJob:
    def test_evicts_expired_only(self):
        store = InMemoryChallengeStore()
        now = utcnow()
        store.set("GEXPIRED", make_challenge(now - timedelta(seconds=1)))
        store.set("GLIVE", make_challenge(now + timedelta(minutes=5)))

        scheduler.sweep_challenges_job(store)

        assert store.get("GEXPIRED") is None
        assert store.get("GLIVE") is not None

    def test_store_errors_are_logged(self, caplog):
        store = MagicMock()
        store.sweep_expired.side_effect = RuntimeError("store unavailable")

        with caplog.at_level(logging.ERROR, logger="lumenpulse.scheduler"):
            scheduler.sweep_challenges_job(store)

        assert "store unavailable" in caplog.text


class TestCleanupTokensJob:
    def test_deletes_stale_tokens(self, db_session, monkeypatch):
        monkeypatch.setattr(scheduler, "SessionLocal", lambda: db_session)
        # The job closes its session; keep the test session usable afterwards
        monkeypatch.setattr(db_session, "close", lambda: None)

        user = create_user(db_session, "kim@example.com", "kim-password")
        issue_reset_token(db_session, user.id)
        reset_token = db_session.query(PasswordResetToken).one()
        reset_token.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        live = issue_refresh_token(db_session, user)
        revoke_refresh_token(db_session, issue_refresh_token(db_session, user))

        scheduler.cleanup_tokens_job()

        assert db_session.query(PasswordResetToken).count() == 0
        assert db_session.query(RefreshToken).count() == 1
        assert revoke_refresh_token(db_session, live) is True

    def test_errors_are_logged(self, monkeypatch, caplog):
        session = MagicMock()
        monkeypatch.setattr(scheduler, "SessionLocal", lambda: session)

        def fail(db):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(scheduler, "delete_stale_reset_tokens", fail)

        with caplog.at_level(logging.ERROR, logger="lumenpulse.scheduler"):
            scheduler.cleanup_tokens_job()

        assert "database is locked" in caplog.text
        session.close.assert_called_once()


def test_start_and_shutdown_scheduler():
    store = InMemoryChallengeStore()

    running = scheduler.start_scheduler(store)
    try:
        job_ids = {job.id for job in running.get_jobs()}
        assert job_ids == {"sweep_expired_challenges", "cleanup_stale_tokens"}
    finally:
        scheduler.shutdown_scheduler(running)

    assert not running.running
