from typing import Any, List, Mapping, Optional, Tuple

from common.sql.statements import referenced_names, rewrite_markers
from dal.params import normalize_params


def translate_named_params_to_postgres(
    sql: str, params: Optional[Mapping[str, Any]]
) -> Tuple[str, List[Any]]:
    """Translate canonical :name/$name markers into Postgres $N positional markers.

    Each distinct name gets one slot, numbered in order of first appearance;
    repeated occurrences reuse it. Names not referenced in the SQL are
    dropped. Missing names bind NULL.
    """
    names = referenced_names(sql)
    if not names:
        return sql, []

    values = normalize_params(params)
    slots = {name: index for index, name in enumerate(names, start=1)}
    ordered = [values.get(name) for name in names]

    def _replace(name: str) -> str:
        slot = slots[name]
        return f"${slot}{_infer_cast(ordered[slot - 1])}"

    return rewrite_markers(sql, _replace), ordered


def _infer_cast(value: Any) -> str:
    # Untyped parameters default to text in Postgres; pin non-text scalars.
    if isinstance(value, bool):
        return "::boolean"
    if isinstance(value, int):
        return "::bigint"
    if isinstance(value, float):
        return "::double precision"
    return ""
