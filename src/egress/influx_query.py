#!/usr/bin/env python3

import re
import logging

logger = logging.getLogger(__name__)

# Literal value of the group and fill options that drops the clause
OMIT = "-"

PROBES = {
    "1a": "device-02-6a",
    "3a": "device-02-6d",
    "5a": "device-02-6e",
    "1b": "device-03-b2",
    "3b": "device-02-6c",
    "5b": "device-03-b3",
}

BARE_NAME = re.compile(r"[a-zA-Z0-9_-]+")
DAYS_PATTERN = re.compile(r"0|[1-9][0-9]*")


class QueryExpansionError(ValueError):
    pass


def resolve_probe(alias: str) -> str:
    """Map a short probe alias such as 5a to its device id"""
    if alias not in PROBES:
        raise ValueError(f"not a valid probe name: {alias}")
    return PROBES[alias]


def parse_days(value: str) -> int:
    if not DAYS_PATTERN.fullmatch(value):
        raise ValueError(f"not a valid number of days: {value}")
    return int(value)


def where_clause(probe: str, days: int) -> str:
    return f"\"deviceid\" = '{probe}' AND time > now() - {days}d"


def expand_query_vars(query_vars: str) -> str:
    """Turn bare column names into mean() selectors, leave expressions alone"""
    if not isinstance(query_vars, str):
        raise QueryExpansionError(f"cannot expand query variables: {query_vars!r}")

    expanded = []
    for token in query_vars.split(","):
        if BARE_NAME.fullmatch(token):
            token = f'mean("{token}") as "{token}"'
        expanded.append(token)

    logger.debug(f"Expanded query variables: {expanded}")
    return ",".join(expanded)


def build_query_string(
        query_vars: str,
        series: str,
        where: str,
        group: str,
        fill: str,
        timezone: str) -> str:

    query = [f'SELECT {expand_query_vars(query_vars)} from "{series}" where {where}']
    if group != OMIT:
        query.append(f" GROUP BY {group}")
    if fill != OMIT:
        query.append(f" fill({fill})")
    query.append(f" {timezone}")

    return "".join(query)
