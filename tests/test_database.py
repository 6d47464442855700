import sqlite3

import pytest

import sqlhandle
from sqlhandle import errors as e
from sqlhandle import Database, ExceptionPolicy


class CustomPolicy(ExceptionPolicy):
    def statement_creation_failure(self, reason, cause, context):
        raise e.StatementCreationError("Custom reason", cause, context)


class ExecutePolicy(ExceptionPolicy):
    def statement_execution_failure(self, reason, cause, context):
        raise e.StatementExecutionError("Execute statement", cause, context)


def test_connect(db):
    with db.open() as h:
        assert isinstance(h, sqlhandle.Handle)
        assert h.database is db
        assert h.autocommit
        assert not h.closed
    assert h.closed


def test_connect_alias(db_path):
    db = sqlhandle.connect(db_path)
    assert isinstance(db, Database)
    assert db.with_handle(lambda h: h.query("select 1").one()) == (1,)


def test_repr(db):
    assert repr(db).startswith("<sqlhandle.Database at 0x")


def test_default_policy(db):
    with pytest.raises(e.StatementCreationError) as excinfo:
        db.with_handle(lambda h: h.execute("SHOULDFAIL"))

    exc = excinfo.value
    assert str(exc) == "Unable to create statement."
    assert isinstance(exc.cause, sqlite3.OperationalError)
    assert exc.context is not None
    assert exc.statement == "SHOULDFAIL"


def test_set_policy(db):
    policy = CustomPolicy()
    db.exception_policy = policy
    assert db.exception_policy is policy

    with pytest.raises(e.StatementCreationError, match="Custom reason") as excinfo:
        db.with_handle(lambda h: h.execute("SHOULDFAIL"))
    assert isinstance(excinfo.value.cause, sqlite3.OperationalError)


def test_reset_policy(db):
    policy = CustomPolicy()
    db.exception_policy = policy
    db.exception_policy = None
    assert db.exception_policy is not policy
    assert type(db.exception_policy) is ExceptionPolicy

    with pytest.raises(e.StatementCreationError) as excinfo:
        db.with_handle(lambda h: h.execute("SHOULDFAIL"))
    assert str(excinfo.value) == "Unable to create statement."


def test_set_bad_policy(db):
    policy = db.exception_policy
    with pytest.raises(TypeError):
        db.exception_policy = "wat"  # type: ignore[assignment]
    assert db.exception_policy is policy


def test_policy_in_constructor(db_path):
    policy = CustomPolicy()
    db = Database.connect(db_path, exception_policy=policy)
    assert db.exception_policy is policy


def test_execute_policy_batch(db):
    db.exception_policy = ExecutePolicy()

    def work(h):
        h.execute("create table test_batch (name text unique)")
        (
            h.batch()
            .add("insert into test_batch values ('a')")
            .add("insert into test_batch values ('a')")
            .execute()
        )

    with pytest.raises(e.StatementExecutionError) as excinfo:
        db.with_handle(work)

    exc = excinfo.value
    assert str(exc) == "Execute statement"
    assert isinstance(exc.cause, sqlite3.IntegrityError)
    assert exc.statement == "insert into test_batch values ('a')"


def test_policy_captured_on_open(db):
    p1 = ExceptionPolicy()
    db.exception_policy = p1
    with db.open() as h1:
        p2 = CustomPolicy()
        db.exception_policy = p2
        assert h1.exception_policy is p1

        with db.open() as h2:
            assert h2.exception_policy is p2

        with pytest.raises(e.StatementCreationError) as excinfo:
            h1.execute("SHOULDFAIL")
        assert str(excinfo.value) == "Unable to create statement."


def test_handle_policy_independent(db):
    with db.open() as h:
        h.exception_policy = CustomPolicy()
        assert type(db.exception_policy) is ExceptionPolicy

        with pytest.raises(e.StatementCreationError, match="Custom reason"):
            h.execute("SHOULDFAIL")

    with pytest.raises(e.StatementCreationError) as excinfo:
        db.with_handle(lambda h: h.execute("SHOULDFAIL"))
    assert str(excinfo.value) == "Unable to create statement."


def test_connection_failure():
    cause = sqlite3.OperationalError("unable to open database file")

    def factory():
        raise cause

    db = Database(factory)
    with pytest.raises(e.ConnectionFailure) as excinfo:
        db.open()

    assert excinfo.value.cause is cause
    assert str(excinfo.value) == "Unable to acquire a connection."


def test_connection_failure_bad_path(tmp_path):
    db = Database.connect(str(tmp_path / "nosuchdir" / "test.db"))
    with pytest.raises(e.ConnectionFailure) as excinfo:
        db.open()
    assert isinstance(excinfo.value.cause, sqlite3.OperationalError)


def test_connection_failure_custom():
    class ConnPolicy(ExceptionPolicy):
        def connection_failure(self, cause):
            raise ConnectionRefusedError("nope") from cause

    def factory():
        raise sqlite3.OperationalError("unable to open database file")

    db = Database(factory, exception_policy=ConnPolicy())
    with pytest.raises(ConnectionRefusedError):
        db.open()


def test_connection_failure_returning():
    class ConnPolicy(ExceptionPolicy):
        def connection_failure(self, cause):
            return None

    def factory():
        raise sqlite3.OperationalError("unable to open database file")

    db = Database(factory, exception_policy=ConnPolicy())
    with pytest.raises(TypeError, match="connection_failure"):
        db.open()


def test_with_handle(db):
    def work(h):
        h.execute("create table test_wh (id integer)")
        h.execute("insert into test_wh values (%s), (%s)", (1, 2))
        return h

    h = db.with_handle(work)
    assert h.closed
    rv = db.with_handle(lambda h: h.query("select count(*) from test_wh").one())
    assert rv == (2,)


def test_with_handle_error(db):
    handles = []

    def work(h):
        handles.append(h)
        raise ZeroDivisionError

    with pytest.raises(ZeroDivisionError):
        db.with_handle(work)
    assert handles[0].closed


def test_in_transaction_commit(db, svchandle):
    svchandle.execute("create table test_tx (id integer)")

    def work(h):
        assert h.in_transaction
        return h.execute("insert into test_tx values (1)")

    assert db.in_transaction(work) == 1
    assert svchandle.query("select id from test_tx").fetchall() == [(1,)]


def test_in_transaction_rollback(db, svchandle):
    svchandle.execute("create table test_tx (id integer)")

    def work(h):
        h.execute("insert into test_tx values (1)")
        raise ZeroDivisionError

    with pytest.raises(ZeroDivisionError):
        db.in_transaction(work)
    assert svchandle.query("select id from test_tx").fetchall() == []


def test_in_transaction_isolation_level(db):
    def work(h):
        return h.isolation_level

    level = sqlhandle.IsolationLevel.READ_UNCOMMITTED
    assert db.in_transaction(work, isolation_level=level) == level


def test_attributes(db):
    db.define("origin", "test").define("app", "sqlhandle")
    with db.open() as h:
        h.define("local", 1)
        with pytest.raises(e.StatementCreationError) as excinfo:
            h.execute("SHOULDFAIL")

    attrs = excinfo.value.context.attributes
    assert attrs == {"origin": "test", "app": "sqlhandle", "local": 1}
    assert "local" not in db.attributes


def test_row_factory(db):
    db.row_factory = sqlhandle.rows.dict_row
    assert db.with_handle(lambda h: h.query("select 1 as x").one()) == {"x": 1}


def test_factory_autocommit(db_path):
    db = Database(lambda: sqlite3.connect(db_path))
    with db.open() as h:
        assert h.connection.isolation_level is None
        assert h.autocommit
