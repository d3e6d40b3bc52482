"""
Metadata Query Parser

Parses the small query language accepted by ``Session.query_meta``:
conditions of the form ``attribute <op> value`` joined by ``and``, e.g.

    project = alpha and size >= 10 and name like 'run_%'
"""

import re
from typing import List, Tuple

from ..core.constants import ErrorMessages, MetadataConstants
from ..core.exceptions import InvalidQuery

# Quoted spans are consumed whole so an "and" inside a value never splits a clause
_CLAUSE_PART = re.compile(r"""'[^']*'|"[^"]*"|(?P<sep>\s+and\s+)|.""", re.IGNORECASE | re.DOTALL)


def _condition_pattern() -> re.Pattern:
    symbols = []
    for symbol in MetadataConstants.QueryOperator.get_symbols():
        if symbol.isalpha():
            symbols.append(rf"\s+{symbol}\s+")
        else:
            symbols.append(re.escape(symbol))
    return re.compile(rf"^\s*(?P<attr>[^\s=<>]+?)\s*(?P<op>{'|'.join(symbols)})\s*(?P<value>.+?)\s*$",
                      re.IGNORECASE)


_CONDITION = _condition_pattern()


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _split_clauses(query: str) -> List[str]:
    clauses = []
    start = 0
    for match in _CLAUSE_PART.finditer(query):
        if match.group('sep'):
            clauses.append(query[start:match.start()])
            start = match.end()
    clauses.append(query[start:])
    return clauses


def parse_meta_query(query: str) -> List[Tuple[str, str, str]]:
    """
    Split a metadata query into (attribute, operator, value) conditions

    Args:
        query: Query text

    Returns:
        List of conditions; operators are QueryOperator values

    Raises:
        InvalidQuery: If the query is empty or a condition cannot be parsed
    """
    if not query or not query.strip():
        raise InvalidQuery(str(ErrorMessages.QueryError.INVALID_QUERY).format(query=query),
                           operation="query_meta")

    conditions = []
    for clause in _split_clauses(query.strip()):
        match = _CONDITION.match(clause)
        if match is None:
            raise InvalidQuery(str(ErrorMessages.QueryError.INVALID_QUERY).format(query=clause),
                               operation="query_meta")

        operator = match.group('op').strip().lower()
        conditions.append((match.group('attr'), operator, _unquote(match.group('value'))))

    return conditions
