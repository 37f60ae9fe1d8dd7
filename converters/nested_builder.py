"""
Dot-notation keys → nested objects.

Transforms flat records like:
    {'user.name': 'Ann', 'tags.0': 'a', 'tags.1': 'b', 'id': 7}
Into:
    {'user': {'name': 'Ann'}, 'tags': ['a', 'b'], 'id': 7}

Functions:
    unflatten_record: Rebuild one record
    build_nested: Rebuild every record of a sheet
"""

import re

_INDEX_RE = re.compile(r'^[0-9]+$')


def _is_index(segment):
    return bool(_INDEX_RE.match(segment))


def _promote(items):
    """Turn a list into a dict keyed by index strings, skipping holes."""
    return {str(i): item for i, item in enumerate(items) if item is not None}


def _assign(container, segment, value):
    """Store value under segment; returns the container actually written to."""
    if isinstance(container, list):
        if _is_index(segment):
            index = int(segment)
            if index >= len(container):
                container.extend([None] * (index + 1 - len(container)))
            container[index] = value
            return container
        container = _promote(container)
    container[segment] = value
    return container


def _lookup(container, segment):
    if isinstance(container, list):
        if _is_index(segment) and int(segment) < len(container):
            return container[int(segment)]
        return None
    return container.get(segment)


def _set_path(root, path, value):
    """
    Write value at path inside root, creating containers on the way.

    Containers are rebuilt bottom-up so that a list promoted to a dict (a
    named segment meeting an array) is re-attached to its parent.
    """
    if len(path) == 1:
        return _assign(root, path[0], value)

    segment, next_segment = path[0], path[1]
    child = _lookup(root, segment)
    if not isinstance(child, (dict, list)):
        child = [] if _is_index(next_segment) else {}

    child = _set_path(child, path[1:], value)
    return _assign(root, segment, child)


def unflatten_record(record):
    """
    Convert dot-delimited flat keys into a nested structure.

    A segment becomes a list when the segment after it is numeric, otherwise
    a dict. Scalars sitting where a container is needed are replaced.

    Args:
        record: Flat dict

    Returns:
        dict: New nested dict (record is not modified)

    Examples:
        >>> unflatten_record({'a.b': 1, 'c': 2})
        {'a': {'b': 1}, 'c': 2}
        >>> unflatten_record({'items.0.sku': 'X', 'items.1.sku': 'Y'})
        {'items': [{'sku': 'X'}, {'sku': 'Y'}]}
    """
    nested = {}
    for key, value in record.items():
        if isinstance(key, str) and '.' in key:
            nested = _set_path(nested, key.split('.'), value)
        else:
            nested[key] = value
    return nested


def build_nested(rows):
    """
    Rebuild nested objects for every row.

    No-op (returns the rows unchanged) when the first row has no dotted key.

    Examples:
        >>> build_nested([{'a.b': 1}, {'a.b': 2}])
        [{'a': {'b': 1}}, {'a': {'b': 2}}]
        >>> build_nested([{'a': 1}])
        [{'a': 1}]
    """
    if not rows:
        return rows

    first = rows[0]
    if not any(isinstance(key, str) and '.' in key for key in first):
        return rows

    return [unflatten_record(row) for row in rows]
