import asyncio

import pytest

from common.interfaces import DatabaseAdapter
from dal.errors import DalError, ExecutionError, NotInitializedError
from dal.execution_policy import StatementErrorPolicy
from dal.sqlite import SqliteAdapter


async def _open(path=":memory:", **kwargs) -> SqliteAdapter:
    adapter = SqliteAdapter(path, **kwargs)
    await adapter.init()
    return adapter


def test_adapter_satisfies_protocol():
    """SqliteAdapter implements the DatabaseAdapter protocol."""
    adapter = SqliteAdapter(":memory:")
    assert isinstance(adapter, DatabaseAdapter)
    assert adapter.provider == "sqlite"
    assert adapter.statement_error_policy is StatementErrorPolicy.ABORT
    assert adapter.binding_fallback is False


def test_file_prefix_is_stripped(tmp_path):
    """Connection strings may use the file: prefix."""
    path = tmp_path / "app.db"
    assert SqliteAdapter(f"file:{path}").db_path == str(path)
    assert SqliteAdapter("").db_path == ":memory:"


@pytest.mark.asyncio
async def test_named_parameter_select():
    """A bound named parameter comes back as the row value."""
    adapter = await _open()
    try:
        assert await adapter.execute_query("SELECT :x AS v", {"x": 42}) == [{"v": 42}]
        assert await adapter.execute_query("SELECT $x AS v", {"x": "a"}) == [{"v": "a"}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_file_database_is_created(tmp_path):
    """Opening a missing file creates it."""
    path = tmp_path / "fresh.db"
    adapter = await _open(str(path))
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")
    finally:
        await adapter.close()
    assert path.exists()


@pytest.mark.asyncio
async def test_multi_statement_batch_then_select():
    """Batches run statement by statement on the same connection."""
    adapter = await _open()
    try:
        rows = await adapter.execute_query("CREATE TABLE t(id INT); INSERT INTO t VALUES (1);")
        assert rows == []
        assert await adapter.execute_query("SELECT * FROM t") == [{"id": 1}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_batch_rows_are_concatenated():
    """Every statement's rows are returned in order."""
    adapter = await _open()
    try:
        rows = await adapter.execute_query("SELECT 1 AS n; SELECT 2 AS n; SELECT :x AS n", {"x": 3})
        assert rows == [{"n": 1}, {"n": 2}, {"n": 3}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_trigger_bodies_are_not_split():
    """Semicolons inside a trigger body stay within the CREATE TRIGGER statement."""
    adapter = await _open()
    try:
        await adapter.execute_query(
            """
            CREATE TABLE a (x INTEGER);
            CREATE TABLE log (x INTEGER);
            CREATE TRIGGER trg AFTER INSERT ON a BEGIN
                INSERT INTO log VALUES (new.x);
            END;
            INSERT INTO a VALUES (5);
            """
        )
        assert await adapter.execute_query("SELECT x FROM log") == [{"x": 5}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_abort_policy_stops_batch():
    """With the default abort policy later statements do not run."""
    adapter = await _open()
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")
        with pytest.raises(ExecutionError, match="no such table"):
            await adapter.execute_query(
                "INSERT INTO t VALUES (1); INSERT INTO missing VALUES (1); INSERT INTO t VALUES (2)"
            )
        assert await adapter.execute_query("SELECT id FROM t") == [{"id": 1}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_continue_policy_skips_failed_statement():
    """With the continue policy the failing statement is logged and skipped."""
    adapter = await _open(statement_error_policy="continue")
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")
        await adapter.execute_query(
            "INSERT INTO t VALUES (1); INSERT INTO missing VALUES (1); INSERT INTO t VALUES (2)"
        )
        assert await adapter.execute_query("SELECT id FROM t ORDER BY id") == [
            {"id": 1},
            {"id": 2},
        ]
    finally:
        await adapter.close()


def test_statement_error_policy_from_env(monkeypatch):
    """SQL_STATEMENT_ERROR_POLICY overrides the provider default."""
    monkeypatch.setenv("SQL_STATEMENT_ERROR_POLICY", "continue")
    assert SqliteAdapter(":memory:").statement_error_policy is StatementErrorPolicy.CONTINUE


@pytest.mark.asyncio
async def test_binding_error_raises_without_fallback():
    """Unbindable values fail loudly by default."""
    adapter = await _open()
    try:
        with pytest.raises(ExecutionError, match="Parameter binding failed"):
            await adapter.execute_query("SELECT :x AS v", {"x": object()})
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_binding_fallback_reexecutes_unbound():
    """With the fallback enabled the statement re-runs with NULL parameters."""
    adapter = await _open(binding_fallback=True)
    try:
        rows = await adapter.execute_query("SELECT :x AS v", {"x": object()})
        assert rows == [{"v": None}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_syntax_error_surfaces_backend_message():
    """Backend errors keep the driver message and chain the cause."""
    adapter = await _open()
    try:
        with pytest.raises(ExecutionError) as exc_info:
            await adapter.execute_query("SELEC 1")
        assert "syntax error" in exc_info.value.message
        assert exc_info.value.provider == "sqlite"
        assert exc_info.value.__cause__ is not None
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_not_initialized_before_init_and_after_close():
    """Using an adapter outside its lifecycle raises NotInitializedError."""
    adapter = SqliteAdapter(":memory:")
    with pytest.raises(NotInitializedError):
        await adapter.execute_query("SELECT 1")

    await adapter.init()
    assert adapter.is_initialized
    await adapter.close()
    assert not adapter.is_initialized
    with pytest.raises(NotInitializedError):
        await adapter.execute_query("SELECT 1")


@pytest.mark.asyncio
async def test_empty_sql_returns_no_rows():
    """Blank or comment-only SQL executes nothing."""
    adapter = await _open()
    try:
        assert await adapter.execute_query("  -- nothing here\n") == []
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_transaction_commits_on_success():
    """Work that returns normally is committed."""
    adapter = await _open()
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")

        async def work(tx):
            await tx.execute_query("INSERT INTO t VALUES (:id)", {"id": 1})
            await tx.execute_query("INSERT INTO t VALUES (:id)", {"id": 2})
            return "done"

        assert await adapter.transaction(work) == "done"
        assert len(await adapter.execute_query("SELECT id FROM t")) == 2
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error():
    """Work that raises leaves no partial writes behind."""
    adapter = await _open()
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")

        async def work(tx):
            await tx.execute_query("INSERT INTO t VALUES (1)")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await adapter.transaction(work)
        assert await adapter.execute_query("SELECT id FROM t") == []
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_nested_transaction_is_rejected():
    """Nested transactions raise and roll back the outer one."""
    adapter = await _open()
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")

        async def inner(tx):
            return None

        async def outer(tx):
            await tx.execute_query("INSERT INTO t VALUES (1)")
            await tx.transaction(inner)

        with pytest.raises(DalError, match="Nested transactions"):
            await adapter.transaction(outer)
        assert await adapter.execute_query("SELECT id FROM t") == []
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_concurrent_write_waits_for_transaction():
    """A write from another task is not swept into a transaction that rolls back."""
    adapter = await _open()
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")
        started = asyncio.Event()
        writer = None

        async def other_caller():
            await started.wait()
            return await adapter.execute_query("INSERT INTO t VALUES (2) RETURNING id")

        async def work(tx):
            await tx.execute_query("INSERT INTO t VALUES (1)")
            started.set()
            for _ in range(10):
                await asyncio.sleep(0)
            assert not writer.done()
            raise RuntimeError("boom")

        writer = asyncio.create_task(other_caller())
        with pytest.raises(RuntimeError, match="boom"):
            await adapter.transaction(work)

        assert await writer == [{"id": 2}]
        assert await adapter.execute_query("SELECT id FROM t") == [{"id": 2}]
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_trailing_line_comment_before_separator():
    """A statement ending in a -- comment is still its own statement."""
    adapter = await _open()
    try:
        await adapter.execute_query(
            "CREATE TABLE a (id INT) -- first table\n;\nCREATE TABLE b (id INT);"
        )
        rows = await adapter.execute_query(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
    finally:
        await adapter.close()

    assert rows == [{"name": "a"}, {"name": "b"}]


@pytest.mark.asyncio
async def test_execute_single_statement_on_adapter_and_transaction():
    """Single statements take canonical markers and a mapping, also inside a transaction."""
    adapter = await _open()
    try:
        await adapter.execute_query("CREATE TABLE t (id INTEGER)")
        assert await adapter.execute_single_statement("SELECT $x AS x", {"x": 5}) == [{"x": 5}]

        async def work(tx):
            await tx.execute_single_statement("INSERT INTO t VALUES (:id)", {"id": 7})
            return await tx.execute_single_statement("SELECT id FROM t", None)

        assert await adapter.transaction(work) == [{"id": 7}]
    finally:
        await adapter.close()
