# training_service/db/result_store.py

import logging
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from training_service.core.exceptions import NotFoundError, ServerError, translate_integrity_error
from training_service.models.test import TestResultCreate, TestResultUpdate
from training_service.services.sync_service import SyncQueue, profile_payload, sync_test_result_to_user_profile
from training_service.services.user_service_client import UserServiceClient
from .models import TestResult

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


def calculate_comparison(previous: Optional[float], new: float) -> Optional[float]:
    """
    Percentage change from ``previous`` to ``new``, rounded to 2 decimals.

    ``None`` when there is nothing to compare against or the previous value
    is zero.
    """
    if previous is None:
        return None
    previous = float(previous)
    if previous == 0:
        return None
    return round(((float(new) - previous) / previous) * 100, 2)


def _latest_key(row: TestResult):
    return (row.test_date, _as_utc(row.created_at), row.id or 0)


def _as_utc(value: Optional[datetime]) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def pick_representative(rows: Iterable[TestResult], as_of: Optional[date] = None) -> Optional[TestResult]:
    """
    Choose the one result that represents a user in team statistics.

    Without ``as_of``: the latest ``test_date``, then the latest ``created_at``.
    With ``as_of``: the smallest distance in days to ``as_of``; ties go to the
    later ``test_date``, then the later ``created_at``.
    """
    rows = list(rows)
    if not rows:
        return None
    if as_of is None:
        return max(rows, key=_latest_key)

    def nearest_key(row: TestResult):
        distance = abs((row.test_date - as_of).days)
        return (-distance,) + _latest_key(row)

    return max(rows, key=nearest_key)


class ResultStore:
    """Persistence and aggregation of test results."""

    def __init__(
        self,
        db: Session,
        sync_queue: Optional[SyncQueue] = None,
        user_service: Optional[UserServiceClient] = None,
    ):
        self.db = db
        self.sync_queue = sync_queue
        self.user_service = user_service

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _query(self):
        return self.db.query(TestResult).options(joinedload(TestResult.test))

    def get(self, result_id: int) -> TestResult:
        row = self._query().filter(TestResult.id == result_id).first()
        if not row:
            raise NotFoundError("Test result not found")
        return row

    def list(
        self,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
        test_id: Optional[int] = None,
        test_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TestResult]:
        query = self._query()
        if user_id is not None:
            query = query.filter(TestResult.user_id == user_id)
        if team_id is not None:
            query = query.filter(TestResult.team_id == team_id)
        if test_id is not None:
            query = query.filter(TestResult.test_id == test_id)
        if test_type is not None:
            query = query.filter(TestResult.test_type == test_type)
        if start_date is not None:
            query = query.filter(TestResult.test_date >= start_date)
        if end_date is not None:
            query = query.filter(TestResult.test_date <= end_date)
        return query.order_by(TestResult.test_date.desc(), TestResult.created_at.desc(), TestResult.id.desc()).all()

    def previous_result(self, user_id: int, test_id: int, exclude_id: Optional[int] = None) -> Optional[TestResult]:
        """The most recent result for the pair, optionally ignoring one record."""
        query = self.db.query(TestResult).filter(
            TestResult.user_id == user_id,
            TestResult.test_id == test_id,
        )
        if exclude_id is not None:
            query = query.filter(TestResult.id != exclude_id)
        return query.order_by(
            TestResult.test_date.desc(),
            TestResult.created_at.desc(),
            TestResult.id.desc(),
        ).first()

    def comparison_for(self, user_id: int, test_id: int, new_value: float, exclude_id: Optional[int] = None) -> Optional[float]:
        previous = self.previous_result(user_id, test_id, exclude_id=exclude_id)
        return calculate_comparison(previous.result if previous else None, new_value)

    def user_history(
        self,
        user_id: int,
        test_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> List[TestResult]:
        # Ascending sort then LIMIT: the earliest `limit` results in range, not the latest.
        query = self._query().filter(TestResult.user_id == user_id, TestResult.test_id == test_id)
        if start_date is not None:
            query = query.filter(TestResult.test_date >= start_date)
        if end_date is not None:
            query = query.filter(TestResult.test_date <= end_date)
        return query.order_by(TestResult.test_date.asc(), TestResult.created_at.asc(), TestResult.id.asc()).limit(limit).all()

    def team_statistics(self, team_id: int, test_id: int, as_of: Optional[date] = None) -> List[TestResult]:
        rows = self._query().filter(TestResult.team_id == team_id, TestResult.test_id == test_id).all()

        by_user = {}
        for row in rows:
            by_user.setdefault(row.user_id, []).append(row)

        picked = [pick_representative(user_rows, as_of) for user_rows in by_user.values()]
        # Higher is treated as better for every test type
        return sorted(picked, key=lambda r: (-r.result, r.user_id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: TestResultCreate, created_by: int, token: Optional[str] = None) -> TestResult:
        comparison = self.comparison_for(data.user_id, data.test_id, data.result)

        row = TestResult(
            test_id                = data.test_id,
            user_id                = data.user_id,
            team_id                = data.team_id,
            test_date              = data.test_date,
            result                 = data.result,
            unit                   = data.unit,
            test_type              = data.test_type,
            notes                  = data.notes,
            comparison_to_previous = comparison,
            created_by             = created_by,
            updated_by             = created_by,
        )
        self._commit(row, "creating")
        logger.info(f"Created test result {row.id} for user {row.user_id}, test {row.test_id} (change: {comparison})")

        self._enqueue_sync(row, token)
        return self.get(row.id)

    def update(self, result_id: int, changes: TestResultUpdate, updated_by: int, token: Optional[str] = None) -> TestResult:
        row = self.get(result_id)
        fields = changes.changes()

        # Compared against the stored pair, before a user_id/test_id reassignment lands
        if "result" in fields and fields["result"] != row.result:
            fields["comparison_to_previous"] = self.comparison_for(
                row.user_id, row.test_id, fields["result"], exclude_id=row.id
            )

        for key, value in fields.items():
            setattr(row, key, value)
        row.updated_by = updated_by
        row.updated_at = datetime.now(timezone.utc)

        self._commit(row, "updating")
        if "test_id" in fields:
            self.db.expire(row, ["test"])
        logger.info(f"Updated test result {row.id}: {sorted(fields)}")

        self._enqueue_sync(row, token)
        return self.get(row.id)

    def delete(self, result_id: int) -> None:
        row = self.get(result_id)
        try:
            self.db.delete(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise translate_integrity_error(e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting test result {result_id}: {e}")
            raise ServerError("A database error occurred") from e
        logger.info(f"Deleted test result {result_id}")

    # ------------------------------------------------------------------

    def _commit(self, row: TestResult, verb: str) -> None:
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error {verb} test result: {e.orig}")
            raise translate_integrity_error(e, related="test") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error {verb} test result: {e}")
            raise ServerError("A database error occurred") from e

    def _enqueue_sync(self, row: TestResult, token: Optional[str]) -> None:
        if not token or self.sync_queue is None or self.user_service is None:
            return
        self.sync_queue.add_task(
            sync_test_result_to_user_profile,
            self.user_service,
            row.user_id,
            profile_payload(row),
            token,
        )
