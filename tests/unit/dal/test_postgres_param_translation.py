from dal.postgres.param_translation import translate_named_params_to_postgres


def test_translate_named_to_positional():
    """Distinct names get slots in order of first appearance."""
    sql, args = translate_named_params_to_postgres(
        "SELECT * FROM users WHERE email = :email AND name = $name",
        {"name": "Ada", "email": "ada@example.com"},
    )
    assert sql == "SELECT * FROM users WHERE email = $1 AND name = $2"
    assert args == ["ada@example.com", "Ada"]


def test_repeated_name_reuses_slot():
    """The same name maps to the same slot every time."""
    sql, args = translate_named_params_to_postgres(
        "SELECT * FROM t WHERE (:q IS NULL OR name = :q) AND id > :min", {"q": "x", "min": 1}
    )
    assert sql == "SELECT * FROM t WHERE ($1 IS NULL OR name = $1) AND id > $2::bigint"
    assert args == ["x", 1]


def test_numeric_and_boolean_values_are_cast():
    """Non-text scalars are pinned so untyped slots do not default to text."""
    sql, args = translate_named_params_to_postgres(
        "SELECT :x AS v, :f AS f, :b AS b", {"x": 42, "f": 1.5, "b": True}
    )
    assert sql == "SELECT $1::bigint AS v, $2::double precision AS f, $3::boolean AS b"
    assert args == [42, 1.5, True]


def test_missing_names_bind_null_without_cast():
    """Absent names bind None and keep the server-inferred type."""
    sql, args = translate_named_params_to_postgres("SELECT :missing", {})
    assert sql == "SELECT $1"
    assert args == [None]


def test_existing_casts_and_literals_are_preserved():
    """Casts, literals and comments pass through unchanged."""
    sql, args = translate_named_params_to_postgres(
        "SELECT created_at::date, ':x' FROM t -- :y\nWHERE id = :id", {"id": "7"}
    )
    assert sql == "SELECT created_at::date, ':x' FROM t -- :y\nWHERE id = $1"
    assert args == ["7"]


def test_sql_without_markers_has_no_args():
    """Supplied parameters are ignored when nothing references them."""
    sql, args = translate_named_params_to_postgres("SELECT 1", {"x": 1})
    assert sql == "SELECT 1"
    assert args == []
