"""Tests for the redemption coordinator.

Covers the commit sequence, partition resolution, the double-redemption
guard and rollback on storage failures.
"""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from app.database.base import Base
from app.models.activation_code import ActivationCode
from app.models.activation_log import ActivationLog
from app.models.profile import Profile
from app.schemas.activation import RedemptionRequest
from app.schemas.subscription import SubscriptionDetails
from app.services import redemption_service as redemption_module
from app.services.code_validator import validate_code
from app.services.redemption_service import RedemptionService


@pytest.fixture
def service():
    return RedemptionService()


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _request(code, user_id=None, **overrides):
    values = {
        "user_id": user_id,
        "email": "student@example.com",
        "code_id": str(code.id),
    }
    values.update(overrides)
    return RedemptionRequest(**values)


class TestConfirmRedemption:
    def test_general_code_grants_platform_wide_subscription(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(type="general_yearly")

        result = service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        assert result.success is True
        assert result.activated_plan_name == "اشتراك سنوي عام"
        assert result.subscription_end_date == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert "١ فبراير ٢٠٢٤" in result.message

        profile = db_session.get(Profile, uuid.UUID(user_id))
        sub = profile.active_subscription
        assert sub["plan_id"] == "general_yearly"
        assert sub["status"] == "active"
        assert sub["subject_id"] is None
        assert sub["activation_code_id"] == str(code.id)

    def test_code_row_is_marked_used(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(subject_id="bio", subject_name="Biology")

        service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        db_session.expire_all()
        row = db_session.get(ActivationCode, code.id)
        assert row.is_used is True
        assert row.is_active is False
        assert row.used_by_user_id == uuid.UUID(user_id)
        assert row.used_for_subject_id == "bio"
        assert row.used_at == mid_window

    def test_prebound_partition_is_used_without_choice(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(subject_id="subj-p", subject_name="Chemistry")

        result = service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        assert result.activated_plan_name == "اشتراك لمادة Chemistry"
        sub = db_session.get(Profile, uuid.UUID(user_id)).active_subscription
        assert sub["subject_id"] == "subj-p"
        assert sub["subject_name"] == "Chemistry"

    def test_chosen_partition_overrides_prebound(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(
            type="choose_single_subject_monthly",
            subject_id="subj-p",
            subject_name="Chemistry",
        )

        result = service.confirm_redemption(
            db_session,
            _request(code, user_id, chosen_subject_id="subj-q", chosen_subject_name="History"),
            mid_window,
        )

        assert result.success is True
        sub = db_session.get(Profile, uuid.UUID(user_id)).active_subscription
        assert sub["subject_id"] == "subj-q"
        assert sub["subject_name"] == "History"

    def test_choose_single_subject_physics_scenario(self, db_session, make_code, service, user_id):
        physics_id = str(uuid.uuid4())
        code = make_code(
            type="choose_single_subject_monthly",
            valid_from=datetime(2024, 1, 1, tzinfo=timezone.utc),
            valid_until=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )

        result = service.confirm_redemption(
            db_session,
            _request(code, user_id, chosen_subject_id=physics_id, chosen_subject_name="physics"),
            datetime(2024, 1, 10, tzinfo=timezone.utc),
        )

        assert result.success is True
        sub = db_session.get(Profile, uuid.UUID(user_id)).active_subscription
        assert "physics" in sub["plan_name"]
        assert SubscriptionDetails.model_validate(sub).end_date == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert sub["subject_id"] == physics_id

    def test_missing_partition_choice(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(type="choose_single_subject_yearly")

        result = service.confirm_redemption(
            db_session, _request(code, user_id, chosen_subject_id="subj-q"), mid_window,
        )

        assert result.success is False
        assert result.reason == "missing_partition_choice"
        db_session.expire_all()
        assert db_session.get(ActivationCode, code.id).is_used is False

    def test_bare_choose_type_redeems_without_choice(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(type="choose_single_subject")

        result = service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        assert result.success is True
        sub = db_session.get(Profile, uuid.UUID(user_id)).active_subscription
        assert sub["subject_id"] is None

    @pytest.mark.parametrize("missing", ["user_id", "email", "code_id"])
    def test_missing_identity(self, db_session, make_code, service, user_id, mid_window, missing):
        code = make_code()
        fields = {"user_id": user_id, missing: None}

        result = service.confirm_redemption(db_session, _request(code, **fields), mid_window)

        assert result.success is False
        assert result.reason == "missing_user_identity"
        db_session.expire_all()
        assert db_session.get(ActivationCode, code.id).is_used is False

    def test_unknown_code_id(self, db_session, service, user_id, mid_window):
        request = RedemptionRequest(user_id=user_id, email="a@b.c", code_id=str(uuid.uuid4()))
        result = service.confirm_redemption(db_session, request, mid_window)
        assert result.reason == "code_not_found"

    def test_malformed_code_id(self, db_session, service, user_id, mid_window):
        request = RedemptionRequest(user_id=user_id, email="a@b.c", code_id="not-a-uuid")
        result = service.confirm_redemption(db_session, request, mid_window)
        assert result.reason == "code_not_found"

    def test_revalidates_expiry_at_commit_time(self, db_session, make_code, service, user_id):
        code = make_code()
        late = datetime(2024, 2, 1, tzinfo=timezone.utc) + timedelta(seconds=1)

        result = service.confirm_redemption(db_session, _request(code, user_id), late)

        assert result.reason == "code_expired"
        assert db_session.query(ActivationLog).count() == 0

    def test_client_echoed_fields_are_not_trusted(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(type="general_monthly")

        service.confirm_redemption(
            db_session,
            _request(
                code,
                user_id,
                code_type="general_yearly",
                code_valid_until=datetime(2030, 1, 1, tzinfo=timezone.utc),
            ),
            mid_window,
        )

        sub = db_session.get(Profile, uuid.UUID(user_id)).active_subscription
        assert sub["plan_id"] == "general_monthly"
        assert SubscriptionDetails.model_validate(sub).end_date == datetime(2024, 2, 1, tzinfo=timezone.utc)

    def test_activation_log_entry_is_appended(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(subject_id="bio", subject_name="Biology")

        service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        entries = db_session.query(ActivationLog).all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.user_id == uuid.UUID(user_id)
        assert entry.code_id == code.id
        assert entry.subject_id == "bio"
        assert entry.code_type == "general_monthly"
        assert entry.plan_name == "اشتراك لمادة Biology"
        assert entry.activated_at == mid_window

    def test_later_redemption_overwrites_snapshot(self, db_session, make_code, service, user_id, mid_window):
        first = make_code(subject_id="bio", subject_name="Biology")
        second = make_code(type="general_yearly")

        service.confirm_redemption(db_session, _request(first, user_id), mid_window)
        service.confirm_redemption(db_session, _request(second, user_id), mid_window)

        sub = db_session.get(Profile, uuid.UUID(user_id)).active_subscription
        assert sub["activation_code_id"] == str(second.id)
        assert sub["subject_id"] is None
        assert db_session.query(ActivationLog).count() == 2

    def test_subsequent_validation_reports_already_used(self, db_session, make_code, service, user_id, mid_window):
        code = make_code(encoded_value="ONCE-ONLY")
        service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        for _ in range(3):
            result = validate_code(db_session, "ONCE-ONLY", mid_window)
            assert result.reason == "code_already_used"

    def test_double_submit_by_same_user(self, db_session, make_code, service, user_id, mid_window):
        code = make_code()

        first = service.confirm_redemption(db_session, _request(code, user_id), mid_window)
        second = service.confirm_redemption(db_session, _request(code, user_id), mid_window)

        assert first.success is True
        assert second.success is False
        assert second.reason == "code_already_used"
        assert db_session.query(ActivationLog).count() == 1


class TestDoubleRedemptionGuard:
    def test_conditional_update_loser_reports_already_used(
        self, db_session, make_code, service, user_id, mid_window, monkeypatch,
    ):
        code = make_code()
        winner = service.confirm_redemption(db_session, _request(code, user_id), mid_window)
        assert winner.success is True

        # Simulate a loser whose re-validation read the row before the winner committed.
        monkeypatch.setattr(redemption_module, "check_code", lambda code, now: None)
        other_user = str(uuid.uuid4())
        loser = service.confirm_redemption(db_session, _request(code, other_user), mid_window)

        assert loser.success is False
        assert loser.reason == "code_already_used"
        assert db_session.get(Profile, uuid.UUID(other_user)) is None
        assert db_session.query(ActivationLog).count() == 1
        db_session.expire_all()
        assert db_session.get(ActivationCode, code.id).used_by_user_id == uuid.UUID(user_id)

    @pytest.mark.parametrize("skip_revalidation", [True, False], ids=["all-reach-update", "live-revalidation"])
    def test_concurrent_redemptions_of_one_code(
        self, file_session_factory, service, mid_window, monkeypatch, skip_revalidation,
    ):
        if skip_revalidation:
            # Every contender gets past validation, so losers are stopped by the conditional update.
            monkeypatch.setattr(redemption_module, "check_code", lambda code, now: None)

        seed = file_session_factory()
        try:
            code = ActivationCode(
                encoded_value="RACE-1",
                name="Race",
                type="general_monthly",
                is_active=True,
                is_used=False,
                valid_from=datetime(2024, 1, 1, tzinfo=timezone.utc),
                valid_until=datetime(2024, 2, 1, tzinfo=timezone.utc),
            )
            seed.add(code)
            seed.commit()
            code_id = str(code.id)
        finally:
            seed.close()

        attempts = 8
        barrier = threading.Barrier(attempts)

        def attempt(_):
            session = file_session_factory()
            try:
                request = RedemptionRequest(
                    user_id=str(uuid.uuid4()), email="racer@example.com", code_id=code_id,
                )
                barrier.wait(timeout=10)
                return service.confirm_redemption(session, request, mid_window)
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            results = list(pool.map(attempt, range(attempts)))

        successes = [r for r in results if r.success]
        assert len(successes) == 1
        assert [r.reason for r in results if not r.success] == ["code_already_used"] * (attempts - 1)

        check = file_session_factory()
        try:
            assert check.query(ActivationLog).count() == 1
            subscribed = [p for p in check.query(Profile).all() if p.active_subscription]
            assert len(subscribed) == 1
            row = check.get(ActivationCode, uuid.UUID(code_id))
            assert row.is_used is True
            assert row.used_by_user_id == subscribed[0].id
        finally:
            check.close()


class TestCommitFailure:
    def test_storage_failure_rolls_back_and_reports_commit_error(
        self, db_session, make_code, service, user_id, mid_window, monkeypatch,
    ):
        code = make_code()

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        result = service.confirm_redemption(db_session, _request(code, user_id), mid_window)
        monkeypatch.undo()

        assert result.success is False
        assert result.reason == "commit_failed"
        assert "disk I/O error" not in result.message

        db_session.expire_all()
        row = db_session.get(ActivationCode, code.id)
        assert row.is_used is False
        assert row.is_active is True
        assert db_session.get(Profile, uuid.UUID(user_id)) is None
        assert db_session.query(ActivationLog).count() == 0
