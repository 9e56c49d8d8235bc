"""
MindSync Backend — User Service Tests
=======================================

What:  Tests for registration, lookup and the aggregate increment.
How:   Real SQLite for the happy paths; mock_db_session for retry behavior.
"""

import warnings
from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from mindsync.exceptions import NotFoundError, StorageError, ValidationError
from mindsync.config import settings
from mindsync.services.user_service import UserService, aggregate_retry_wait

AT = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def operational_error():
    return OperationalError("UPDATE users", {}, Exception("database is locked"))


class TestCreateUser:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_create_user_success(self, db_session):
        user = await self.service.create_user(
            db_session, name="  Meera ", email="Meera@Example.COM", bio="Morning sitter",
        )

        assert user.id is not None
        assert user.name == "Meera"
        assert user.email == "meera@example.com"
        assert user.bio == "Morning sitter"
        assert user.completed_sessions == 0
        assert user.total_meditation_minutes == 0

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, db_session, user):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_user(db_session, name="Other", email="ASHA@example.com")
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name, email, field",
        [
            ("", "a@example.com", "name"),
            ("x" * 101, "a@example.com", "name"),
            ("Meera", "not-an-email", "email"),
            ("Meera", "   ", "email"),
        ],
    )
    async def test_invalid_input(self, db_session, name, email, field):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_user(db_session, name=name, email=email)
        assert exc_info.value.field == field

    @pytest.mark.asyncio
    async def test_integrity_race_maps_to_validation(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(
            scalar_one_or_none=MagicMock(return_value=None)
        )
        mock_db_session.commit.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

        with pytest.raises(ValidationError):
            await self.service.create_user(mock_db_session, name="Meera", email="m@example.com")

        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_storage_failure_wrapped(self, mock_db_session):
        mock_db_session.execute.side_effect = operational_error()

        with pytest.raises(StorageError):
            await self.service.create_user(mock_db_session, name="Meera", email="m@example.com")


class TestGetUser:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_get_existing(self, db_session, user):
        fetched = await self.service.get_user(db_session, user.id)
        assert fetched.email == "asha@example.com"

    @pytest.mark.asyncio
    async def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_user(db_session, uuid4())


class TestIncrementMeditationTotals:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_increment_adds_and_tracks_longest(self, db_session, user):
        assert await self.service.increment_meditation_totals(
            db_session, user.id, minutes=15, streak=4, at=AT,
        )
        assert await self.service.increment_meditation_totals(
            db_session, user.id, minutes=10, streak=1, at=AT,
        )

        await db_session.refresh(user)
        assert user.total_meditation_minutes == 25
        assert user.completed_sessions == 2
        assert user.current_streak == 1
        assert user.longest_streak == 4
        assert user.last_active is not None

    @pytest.mark.asyncio
    async def test_unknown_user_returns_false(self, db_session):
        assert await self.service.increment_meditation_totals(
            db_session, uuid4(), minutes=5, streak=1, at=AT,
        ) is False

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, mock_db_session):
        mock_db_session.execute.side_effect = [operational_error(), MagicMock(rowcount=1)]

        updated = await self.service.increment_meditation_totals(
            mock_db_session, uuid4(), minutes=5, streak=1, at=AT,
        )

        assert updated is True
        assert mock_db_session.execute.await_count == 2
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, mock_db_session):
        mock_db_session.execute.side_effect = operational_error()

        with pytest.raises(OperationalError):
            await self.service.increment_meditation_totals(
                mock_db_session, uuid4(), minutes=5, streak=1, at=AT,
            )

        assert mock_db_session.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_integrity_error_not_retried(self, mock_db_session):
        mock_db_session.execute.side_effect = IntegrityError("UPDATE", {}, Exception("check"))

        with pytest.raises(IntegrityError):
            await self.service.increment_meditation_totals(
                mock_db_session, uuid4(), minutes=5, streak=1, at=AT,
            )

        assert mock_db_session.execute.await_count == 1


class TestAggregateRetryWait:

    def test_builds_without_deprecation_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            aggregate_retry_wait()

    @pytest.mark.parametrize("attempt", [1, 2, 3, 6])
    def test_exponential_with_bounded_jitter(self, attempt):
        wait = aggregate_retry_wait()
        base = min(
            settings.aggregate_retry_min_wait * 2 ** (attempt - 1),
            settings.aggregate_retry_max_wait,
        )

        for _ in range(20):
            delay = wait(MagicMock(attempt_number=attempt))
            assert base <= delay <= base + settings.aggregate_retry_min_wait
