from contextlib import contextmanager

import pytest
import yaml
from psycopg import RawCursor

import pgtk.pool as pool_module
from pgtk.core import PgsqlTask
from pgtk.errors import PoolError
from pgtk.models import InstanceConfig
from pgtk.pool import Pool


def test_exec_before_start_raises():
    with pytest.raises(PoolError, match="not started"):
        Pool(port=15432, dbname="test", user="hello").exec("SELECT 1")


def test_start_rejects_non_positive_size():
    with pytest.raises(PoolError, match="must be positive"):
        Pool().start(0)


class FakeCursor:
    def __init__(self, fail):
        self.fail = fail
        self.description = None
        self.executed = []

    def execute(self, query, params):
        self.executed.append((query, params))
        if self.fail:
            raise RuntimeError("syntax error")
        self.description = [("id",)]

    def fetchall(self):
        return [{"id": 7}]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeConnectionPool:
    instances = []

    def __init__(self, conninfo, min_size, max_size, kwargs, open):
        self.conninfo = conninfo
        self.sizes = (min_size, max_size)
        self.kwargs = kwargs
        self.borrowed = 0
        self.returned = 0
        self.closed = False
        self.fail = False
        self.cursor_obj = None
        FakeConnectionPool.instances.append(self)

    def open(self, wait=False):
        self.opened = wait

    @contextmanager
    def connection(self):
        self.borrowed += 1
        self.cursor_obj = FakeCursor(self.fail)
        try:
            yield self
        finally:
            self.returned += 1

    def cursor(self):
        return self.cursor_obj

    def close(self):
        self.closed = True


@pytest.fixture
def fake_pool(monkeypatch):
    FakeConnectionPool.instances = []
    monkeypatch.setattr(pool_module, "ConnectionPool", FakeConnectionPool)
    return FakeConnectionPool


def test_exec_borrows_and_returns_a_connection(fake_pool):
    pool = Pool(port=15432, dbname="test", user="hello", password="A B C ! & | !").start(2)
    backend = fake_pool.instances[0]

    rows = pool.exec("INSERT INTO book (title) VALUES ($1) RETURNING id", ["Elegant Objects"])

    assert rows == [{"id": 7}]
    assert backend.sizes == (2, 2)
    assert backend.kwargs["autocommit"] is True
    assert backend.kwargs["cursor_factory"] is RawCursor
    assert backend.cursor_obj.executed == [
        ("INSERT INTO book (title) VALUES ($1) RETURNING id", ["Elegant Objects"])
    ]
    assert backend.borrowed == backend.returned == 1


def test_exec_sends_dollar_quoted_bodies_unchanged(fake_pool):
    pool = Pool(port=15432, dbname="test", user="hello").start(1)
    backend = fake_pool.instances[0]
    statement = (
        "CREATE FUNCTION inc(integer) RETURNS integer "
        "AS $$ SELECT $1 + 1 $$ LANGUAGE SQL"
    )

    pool.exec(statement)

    assert backend.cursor_obj.executed == [(statement, None)]


def test_exec_returns_connection_when_statement_fails(fake_pool):
    pool = Pool(port=15432, dbname="test", user="hello").start(1)
    backend = fake_pool.instances[0]
    backend.fail = True

    with pytest.raises(RuntimeError, match="syntax error"):
        pool.exec("SELEC 1")

    assert backend.borrowed == backend.returned == 1


def test_stop_closes_pool_and_context_manager_stops(fake_pool):
    with Pool(port=15432, dbname="test", user="hello").start(1) as pool:
        assert pool.started
    assert fake_pool.instances[0].closed
    assert not pool.started


def test_from_yaml_reads_published_credentials(tmp_path):
    target = tmp_path / "cfg.yml"
    target.write_text(
        yaml.safe_dump(
            {
                "pgsql": {
                    "host": "localhost",
                    "port": 15432,
                    "dbname": "test",
                    "user": "hello",
                    "password": "secret",
                    "url": "ignored",
                }
            }
        ),
        encoding="utf-8",
    )

    pool = Pool.from_yaml(str(target))

    assert (pool.host, pool.port, pool.dbname, pool.user, pool.password) == (
        "localhost",
        15432,
        "test",
        "hello",
        "secret",
    )


def test_end_to_end_insert_through_pool(tmp_path, real_pg_bin_dir):
    config = InstanceConfig(
        directory=str(tmp_path / "pgsql"),
        user="hello",
        password="A B C привет ! & | !",
        dbname="test",
        yaml_path=str(tmp_path / "cfg.yml"),
        quiet=True,
        bin_dir=real_pg_bin_dir,
    )

    with PgsqlTask(config) as task:
        task.start()
        document = yaml.safe_load((tmp_path / "cfg.yml").read_text(encoding="utf-8"))
        port = document["pgsql"]["port"]
        assert isinstance(port, int)
        assert port > 1023

        with Pool.from_yaml(str(tmp_path / "cfg.yml")).start(1) as pool:
            assert pool.exec("SELECT 1 AS one") == [{"one": 1}]
            pool.exec("CREATE TABLE book (id SERIAL PRIMARY KEY, title TEXT NOT NULL)")
            book_id = int(
                pool.exec(
                    "INSERT INTO book (title) VALUES ($1) RETURNING id",
                    ["Elegant Objects"],
                )[0]["id"]
            )
            pool.exec(
                "CREATE FUNCTION inc(integer) RETURNS integer "
                "AS $$ SELECT $1 + 1 $$ LANGUAGE SQL"
            )
            assert pool.exec("SELECT inc($1) AS value", [41]) == [{"value": 42}]

    assert book_id > 0
