from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from training_service.core.exceptions import (
    BadRequestError,
    ConflictError,
    ServerError,
    translate_integrity_error,
)


class FakePgError(Exception):
    def __init__(self, pgcode, detail="", column_name=None):
        super().__init__("raw driver text with internals")
        self.pgcode = pgcode
        self.diag = SimpleNamespace(message_detail=detail, column_name=column_name)


def integrity(orig):
    return IntegrityError("INSERT ...", {}, orig)


def test_pg_unique_violation():
    err = translate_integrity_error(integrity(FakePgError("23505", "Key (name)=(Beep Test) already exists.")))

    assert isinstance(err, ConflictError)
    assert err.status_code == 409
    assert err.message == "Name 'Beep Test' already exists."


def test_pg_missing_reference():
    detail = 'Key (test_id)=(99) is not present in table "tests".'
    err = translate_integrity_error(integrity(FakePgError("23503", detail)))

    assert isinstance(err, ConflictError)
    assert err.status_code == 400
    assert err.message == "Referenced test does not exist."


def test_pg_still_referenced():
    detail = 'Key (id)=(1) is still referenced from table "test_results".'
    err = translate_integrity_error(integrity(FakePgError("23503", detail)))

    assert err.status_code == 400
    assert err.message == "Cannot delete the record because it is used by test result."


def test_pg_not_null():
    err = translate_integrity_error(integrity(FakePgError("23502", column_name="user_id")))

    assert isinstance(err, BadRequestError)
    assert err.message == "User ID is required."


def test_pg_check_violation():
    err = translate_integrity_error(integrity(FakePgError("23514")))

    assert isinstance(err, BadRequestError)
    assert err.message.startswith("Invalid data")


def test_unknown_code_is_server_error():
    err = translate_integrity_error(integrity(FakePgError("23P01")))

    assert isinstance(err, ServerError)
    assert err.status_code == 500


@pytest.mark.parametrize(
    "text, status, message",
    [
        ("UNIQUE constraint failed: tests.name", 409, "Name already exists."),
        ("FOREIGN KEY constraint failed", 400, "Referenced test does not exist."),
        ("NOT NULL constraint failed: test_results.result", 400, "Result is required."),
        ("CHECK constraint failed: ck_test_results_unit", 400, "Invalid data: one or more constraints were not satisfied."),
    ],
)
def test_sqlite_messages(text, status, message):
    err = translate_integrity_error(integrity(Exception(text)), related="test")

    assert err.status_code == status
    assert err.message == message


def test_raw_driver_text_never_leaks():
    for code in ("23505", "23503", "23502", "23514", "99999"):
        err = translate_integrity_error(integrity(FakePgError(code)))
        assert "internals" not in err.message
