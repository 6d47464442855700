import sqlite3

import pytest

import sqlhandle
from sqlhandle import errors as e
from sqlhandle import Batch


class NoCursorConnection(sqlite3.Connection):
    fail_cursor = False

    def cursor(self, *args):
        if self.fail_cursor:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        return super().cursor(*args)


def test_execute(handle):
    batch = handle.batch()
    assert isinstance(batch, Batch)
    rv = (
        batch.add("create table test_batch (id integer primary key)")
        .add("insert into test_batch values (1), (2)")
        .add("delete from test_batch where id = 1")
        .execute()
    )
    assert rv == [-1, 2, 1]
    assert len(batch) == 0
    assert handle.query("select id from test_batch").fetchall() == [(2,)]


def test_empty(handle):
    assert handle.batch().execute() == []


def test_len_repr(handle):
    batch = handle.batch().add("select 1").add("select 2")
    assert len(batch) == 2
    assert "(2 statements)" in repr(batch)


def test_percent_untouched(handle):
    assert handle.batch().add("select 10 % 3").execute() == [-1]


def test_execution_failure(handle):
    batch = (
        handle.batch()
        .add("create table test_batch (id integer primary key)")
        .add("insert into test_batch values (1)")
        .add("insert into test_batch values (1)")
        .add("insert into test_batch values (2)")
    )
    with pytest.raises(e.StatementExecutionError) as excinfo:
        batch.execute()

    exc = excinfo.value
    assert str(exc) == "Unable to execute statement."
    assert isinstance(exc.cause, sqlite3.IntegrityError)
    assert exc.statement == "insert into test_batch values (1)"
    assert exc.context.handle is handle

    # The statements before the failure were executed, the batch is kept
    assert handle.query("select id from test_batch").fetchall() == [(1,)]
    assert len(batch) == 4


def test_syntax_error(handle):
    # Batch statements are not prepared
    with pytest.raises(e.StatementExecutionError) as excinfo:
        handle.batch().add("SHOULDFAIL").execute()
    assert isinstance(excinfo.value.cause, sqlite3.OperationalError)


def test_attributes(handle):
    handle.define("origin", "batch")
    with pytest.raises(e.StatementExecutionError) as excinfo:
        handle.batch().add("SHOULDFAIL").execute()
    assert excinfo.value.context.attributes["origin"] == "batch"


def test_creation_failure(db_path):
    db = sqlhandle.Database.connect(db_path, factory=NoCursorConnection)
    with db.open() as h:
        h.connection.fail_cursor = True
        with pytest.raises(e.StatementCreationError) as excinfo:
            h.batch().add("select 1").add("select 2").execute()

    exc = excinfo.value
    assert isinstance(exc.cause, sqlite3.ProgrammingError)
    assert exc.statement == "select 1;\nselect 2"


def test_custom_policy(handle):
    class BatchPolicy(sqlhandle.ExceptionPolicy):
        def statement_execution_failure(self, reason, cause, context):
            raise e.StatementExecutionError(
                f"batch failed at {context.sql!r}", cause, context
            )

    handle.exception_policy = BatchPolicy()
    with pytest.raises(e.StatementExecutionError, match="batch failed at 'wat'"):
        handle.batch().add("select 1").add("wat").execute()
