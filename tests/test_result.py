import sqlite3

import pytest

import sqlhandle
from sqlhandle import errors as e
from sqlhandle import ExceptionPolicy, Result


class FailingCursor(sqlite3.Cursor):
    def close(self):
        super().close()
        raise sqlite3.ProgrammingError("cannot close the cursor")


@pytest.fixture
def numbers(handle):
    handle.execute("create table test_numbers (n integer, name text)")
    handle.execute(
        "insert into test_numbers values (1, 'one'), (2, 'two'), (3, 'three')"
    )
    return handle


def boom_on(target):
    def boom(x):
        if x == target:
            raise ValueError("boom")
        return x

    return boom


def test_iter(numbers):
    res = numbers.query("select n from test_numbers order by n")
    assert isinstance(res, Result)
    assert list(res) == [(1,), (2,), (3,)]
    assert list(res) == []


def test_fetch(numbers):
    res = numbers.query("select n from test_numbers order by n")
    assert res.fetchone() == (1,)
    assert res.fetchmany(1) == [(2,)]
    assert res.fetchall() == [(3,)]
    assert res.fetchone() is None
    assert res.fetchmany() == []
    assert res.fetchall() == []


def test_params(numbers):
    res = numbers.query("select name from test_numbers where n = %(n)s", {"n": 2})
    assert res.one() == ("two",)


def test_one(numbers):
    res = numbers.query("select name from test_numbers where n = 1")
    assert res.one() == ("one",)


def test_one_no_results(numbers):
    res = numbers.query("select n from test_numbers where n > 10")
    with pytest.raises(e.NoResultsError) as excinfo:
        res.one()

    exc = excinfo.value
    assert exc.kind is sqlhandle.ErrorKind.NO_RESULTS
    assert str(exc) == "Statement returned no results"
    assert exc.cause is None
    assert exc.context is res.context


def test_one_too_many(numbers):
    res = numbers.query("select n from test_numbers")
    with pytest.raises(e.ResultSetError) as excinfo:
        res.one()

    assert "more" in str(excinfo.value)
    assert excinfo.value.statement == "select n from test_numbers"


def test_first(numbers):
    res = numbers.query("select n from test_numbers order by n")
    assert res.first() == (1,)
    assert res.first() == (2,)


def test_first_no_results(numbers):
    res = numbers.query("select n from test_numbers where n > 10")
    with pytest.raises(e.NoResultsError):
        res.first()


def test_no_results_custom_policy(numbers):
    class EmptyPolicy(ExceptionPolicy):
        def no_results_failure(self, reason, cause, context):
            raise LookupError(context.sql)

    numbers.exception_policy = EmptyPolicy()
    res = numbers.query("select n from test_numbers where n > 10")
    with pytest.raises(LookupError, match="where n > 10"):
        res.one()


def test_properties(numbers):
    res = numbers.query("select n, name from test_numbers")
    assert [d[0] for d in res.description] == ["n", "name"]
    assert res.rowcount == -1
    assert res.context.sql == "select n, name from test_numbers"
    assert res.context.handle is numbers


def test_close(numbers):
    res = numbers.query("select n from test_numbers")
    assert not res.closed
    res.close()
    assert res.closed
    res.close()
    assert res.closed

    with pytest.raises(sqlhandle.InterfaceError):
        res.fetchone()
    with pytest.raises(sqlhandle.InterfaceError):
        res.one()


def test_context_manager(numbers):
    with numbers.query("select n from test_numbers") as res:
        assert res.fetchone()
    assert res.closed


def test_repr(numbers):
    res = numbers.query("select n from test_numbers")
    assert "[open]" in repr(res)
    assert "select n from test_numbers" in repr(res)
    res.close()
    assert "[closed]" in repr(res)


def test_fetch_failure(numbers):
    numbers.connection.create_function("boom", 1, boom_on(3))
    res = numbers.query("select boom(n) from test_numbers")
    with pytest.raises(e.ResultSetError) as excinfo:
        res.fetchall()

    exc = excinfo.value
    assert str(exc) == "Unable to fetch rows"
    assert isinstance(exc.cause, sqlite3.OperationalError)
    assert exc.context is res.context


def test_fetch_failure_first_row(numbers):
    # The first row is computed on execution
    numbers.connection.create_function("boom", 1, boom_on(1))
    with pytest.raises(e.StatementExecutionError):
        numbers.query("select boom(n) from test_numbers")


def test_row_maker_failure(numbers):
    def bad_maker(cursor):
        def bad_maker_(values):
            if values[0] == 2:
                raise ValueError("can't make row")
            return values[0]

        return bad_maker_

    res = numbers.query("select n from test_numbers order by n", row_factory=bad_maker)
    assert res.fetchone() == 1
    with pytest.raises(e.ResultProductionError) as excinfo:
        res.fetchone()

    exc = excinfo.value
    assert str(exc) == "Unable to produce result."
    assert isinstance(exc.cause, ValueError)
    assert exc.context is res.context


def test_row_factory_failure(numbers):
    def bad_factory(cursor):
        raise TypeError("can't inspect cursor")

    with pytest.raises(e.ResultProductionError) as excinfo:
        numbers.query("select n from test_numbers", row_factory=bad_factory)

    assert isinstance(excinfo.value.cause, TypeError)
    assert excinfo.value.statement == "select n from test_numbers"


def test_row_production_custom_policy(numbers):
    class RowPolicy(ExceptionPolicy):
        def result_production_failure(self, reason, cause, context):
            raise e.ResultProductionError(f"bad row: {cause}", cause, context)

    numbers.exception_policy = RowPolicy()
    with pytest.raises(e.ResultProductionError, match="bad row: .*unexpected keyword"):
        numbers.query(
            "select n from test_numbers",
            row_factory=sqlhandle.rows.kwargs_row(lambda: None),
        ).fetchone()


def test_close_failure(numbers, monkeypatch):
    res = numbers.query("select n from test_numbers")
    bad = numbers.connection.cursor(FailingCursor)
    bad.execute("select 1")
    monkeypatch.setattr(res, "_cur", bad)

    with pytest.raises(e.CloseError) as excinfo:
        res.close()
    assert str(excinfo.value) == "Unable to close the result set"
    assert isinstance(excinfo.value.cause, sqlite3.ProgrammingError)
    assert res.closed
