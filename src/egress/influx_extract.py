#!/usr/bin/env python3
import getpass
import logging
import sys
import requests
from os import path
from requests.auth import HTTPBasicAuth
from influx_options import QueryConfig, parse_config, resolve_log_level
from influx_query import QueryExpansionError, build_query_string

logger = logging.getLogger(__name__)

def query_url(server: str) -> str:
    return f"https://{server}/influxdb:8086/query"

def query_params(database: str, query: str, pretty: bool = True) -> list[tuple[str, str]]:
    return [
        ("pretty", "true" if pretty else "false"),
        ("db", database),
        ("q", query),
    ]

def describe_request(server: str, database: str, user: str, query: str, pretty: bool = True) -> str:
    """One line form of the request, with the query left unencoded"""
    return f"GET {query_url(server)}?pretty={'true' if pretty else 'false'} --user {user} db={database} q={query}"

def query_influxdb(
        server: str,
        database: str,
        user: str,
        password: str,
        query: str,
        pretty: bool = True) -> requests.Response:

    params = query_params(database, query, pretty)
    response = requests.get(url=query_url(server), params=params, auth=HTTPBasicAuth(user, password))

    match response.status_code:
        case 200:
            logger.debug(f"Query on {database}@{server} succesful")
        case 401:
            logger.error(f"Authentication failed for user {user} at {server}")
        case 404:
            logger.error(f"No InfluxDB instance at {query_url(server)}")
        case _:
            logger.warning(f"Request warning: {response.status_code}")

    return response

def config_query_string(config: QueryConfig) -> str:
    return build_query_string(
        config.query_vars,
        config.series,
        config.where,
        config.group,
        config.fill,
        config.timezone)

def main(argv: list[str] | None = None):
    prog = path.basename(sys.argv[0])
    logging.basicConfig(level=logging.WARNING, format=f"{prog}: %(message)s")

    config, log = parse_config(argv, prog)

    numeric_level = resolve_log_level(log)
    if config.verbose:
        numeric_level = min(numeric_level, logging.INFO)
    if config.debug:
        numeric_level = min(numeric_level, logging.DEBUG)
    logging.getLogger().setLevel(numeric_level)

    try:
        query = config_query_string(config)
    except QueryExpansionError as e:
        logger.error(f"Fatal: {e}")
        sys.exit(1)

    logger.info(describe_request(config.server, config.database, config.user, query, config.pretty))

    try:
        password = getpass.getpass(f"Enter host password for user '{config.user}': ")
    except (EOFError, KeyboardInterrupt):
        logger.error("Fatal: no password entered")
        sys.exit(1)

    try:
        response = query_influxdb(config.server, config.database, config.user, password, query, config.pretty)
    except requests.exceptions.RequestException as e:
        logger.error(f"Request to {config.server} failed: {e}")
        sys.exit(1)

    sys.stdout.buffer.write(response.content)
    sys.stdout.flush()


if __name__ == "__main__":
    main()
