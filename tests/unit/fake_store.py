"""In-memory evaluator for typed pipeline stages.

Supports exactly what the portfolio pipeline emits, with MongoDB semantics
where they matter to the tests: outer unwind keeps empty rows (a null array
stays null, a missing or empty one is dropped), $push omits
missing sub-fields, $first keeps the first row's value, sorts are stable.
Filters support plain equality only.
"""

import copy
from typing import Any

_MISSING = object()


def _get(doc: Any, path: str) -> Any:
    value = doc
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _filter(stage, rows, collections):
    return [
        row for row in rows
        if all(_get(row, key) == value for key, value in stage.criteria.items())
    ]


def _join(stage, rows, collections):
    foreign = collections.get(stage.from_collection, [])
    out = []
    for row in rows:
        local = _get(row, stage.local_field)
        matches = []
        if local is not _MISSING:
            for doc in foreign:
                if _get(doc, stage.foreign_field) == local:
                    doc = copy.deepcopy(doc)
                    if stage.fields:
                        doc = {f: doc[f] for f in stage.fields if f in doc}
                    matches.append(doc)
        row = dict(row)
        row[stage.as_field] = matches
        out.append(row)
    return out


def _count(stage, rows, collections):
    out = []
    for row in rows:
        row = dict(row)
        row[stage.target_field] = len(row[stage.source_field])
        out.append(row)
    return out


def _expand(stage, rows, collections):
    out = []
    for row in rows:
        value = row.get(stage.path, _MISSING)
        if isinstance(value, list) and value:
            for element in value:
                expanded = dict(row)
                expanded[stage.path] = element
                out.append(expanded)
        elif value is None:
            if stage.preserve_empty:
                out.append(row)
        elif value is _MISSING or value == []:
            if stage.preserve_empty:
                kept = dict(row)
                kept.pop(stage.path, None)
                out.append(kept)
        else:
            out.append(row)
    return out


def _group(stage, rows, collections):
    groups: dict[Any, list[dict]] = {}
    for row in rows:
        groups.setdefault(row[stage.key], []).append(row)

    out = []
    for key, members in groups.items():
        grouped: dict[str, Any] = {"_id": key}
        first = members[0]
        for name in stage.first_fields:
            value = _get(first, name)
            if value is not _MISSING:
                grouped[name] = value
        for name, shape in stage.push_fields.items():
            pushed = []
            for member in members:
                entry = {}
                for field, source in shape.items():
                    value = _get(member, source)
                    if value is not _MISSING:
                        entry[field] = value
                pushed.append(entry)
            grouped[name] = pushed
        out.append(grouped)
    return out


def _project(stage, rows, collections):
    out = []
    for row in rows:
        projected = {name: row[name] for name in stage.include if name in row}
        for name, source in stage.renamed.items():
            value = _get(row, source)
            if value is not _MISSING:
                projected[name] = value
        out.append(projected)
    return out


def _sort(stage, rows, collections):
    rows = list(rows)
    for name, direction in reversed(stage.keys):
        rows.sort(key=lambda row: row[name], reverse=direction < 0)
    return rows


def _skip(stage, rows, collections):
    return rows[stage.count:]


def _limit(stage, rows, collections):
    return rows[: stage.count]


_HANDLERS = {
    "filter": _filter,
    "join": _join,
    "count": _count,
    "expand": _expand,
    "group": _group,
    "project": _project,
    "sort": _sort,
    "skip": _skip,
    "limit": _limit,
}


def run_pipeline(stages, collections: dict[str, list[dict]], source: str = "portfolios") -> list[dict]:
    """Run stages over collections[source] and return the resulting rows."""
    rows = [copy.deepcopy(doc) for doc in collections.get(source, [])]
    for stage in stages:
        rows = _HANDLERS[stage.kind](stage, rows, collections)
    return rows
