from typing import Any, Dict, Mapping, Optional, Tuple

from common.sql.statements import referenced_names, rewrite_markers
from dal.params import normalize_params


def translate_named_params_to_sqlite(
    sql: str, params: Optional[Mapping[str, Any]]
) -> Tuple[str, Dict[str, Any]]:
    """Translate canonical :name/$name markers to SQLite :name binding.

    SQLite binds named parameters natively, so the SQL only needs its
    ``$name`` markers normalized to ``:name``. The returned mapping holds
    exactly the referenced names; a name without a value binds NULL, which
    is what SQLite does for any unbound parameter.
    """
    names = referenced_names(sql)
    if not names:
        return sql, {}

    values = normalize_params(params)
    sqlite_sql = rewrite_markers(sql, lambda name: f":{name}")
    return sqlite_sql, {name: values.get(name) for name in names}
