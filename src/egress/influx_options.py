#!/usr/bin/env python3

import argparse
import logging
import sys
from dataclasses import dataclass
from enum import Enum
from influx_query import PROBES, resolve_probe, parse_days, where_clause

logger = logging.getLogger(__name__)

INFLUXDB_SERVER_DFLT = "analytics.weradiate.com"
INFLUXDB_DB_DFLT = "thermosense"
INFLUXDB_SERIES_DFLT = "compost"
INFLUXDB_USER_DFLT = "ezra"
INFLUXDB_QUERY_VARS_DFLT = 'mean("tWater")*9/5+32 as "tWater"'
INFLUXDB_QUERY_GROUP_DFLT = "time(1ms)"
INFLUXDB_QUERY_FILL_DFLT = "none"
TIMEZONE_DFLT = "tz('America/New_York')"
PROBE_NAME_DFLT = "device-02-6a"
DAYS_DFLT = 1
LOG_DFLT = "warning"

EXAMPLES = f"""
Operation:
  A query is constructed and sent to the server, and data is returned as json.
  The password for the login is asked for on the terminal.

Examples:
  To fetch the last 36 days from the default source and series
  (-v shows the request):

    %(prog)s -v -t36 > data.json

  To get water temperature, pressure and battery data for sensor probe 5a
  for the last 7 days:

    %(prog)s -q 'mean("tWater")*9/5+32 as "tWater",p,vBat' -r 5a -v -t7 > data.json

  Bare names in -q are expanded, so p becomes mean("p") as "p".
  -t recomputes the where clause from the probe given so far, so put -r first.
  The default where clause is "deviceid" = '{PROBE_NAME_DFLT}' AND time > now() - {DAYS_DFLT}d
  A value that starts with - must be attached to its option: -z-x or --timezone=-x.
  A lone - can still be given separately, as in -f - or -g -.
"""


class NextBool(Enum):
    SET_TRUE = True
    SET_FALSE = False


@dataclass(frozen=True)
class QueryConfig:
    server: str
    database: str
    series: str
    user: str
    query_vars: str
    where: str
    group: str
    fill: str
    timezone: str
    probe: str
    days: int
    pretty: bool
    verbose: bool
    debug: bool


class ScanAction(argparse.Action):
    """Applies one option in command line order and consumes a pending -n"""

    def __call__(self, parser, namespace, values, option_string=None):
        if namespace.debug:
            logger.debug(f"Scanning option {option_string}")

        sense = namespace.next_bool
        namespace.next_bool = NextBool.SET_TRUE
        self.apply(namespace, values, sense.value)

    def apply(self, namespace, values, sense: bool):
        setattr(namespace, self.dest, values)


class NegateAction(ScanAction):
    def __init__(self, option_strings, dest, **kwargs):
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def apply(self, namespace, values, sense):
        namespace.next_bool = NextBool.SET_FALSE


class ToggleAction(ScanAction):
    def __init__(self, option_strings, dest, **kwargs):
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def apply(self, namespace, values, sense):
        setattr(namespace, self.dest, sense)


class DebugAction(ToggleAction):
    def apply(self, namespace, values, sense):
        super().apply(namespace, values, sense)
        logging.getLogger().setLevel(logging.DEBUG if sense else resolve_log_level(namespace.log))


class LogAction(ScanAction):
    def apply(self, namespace, values, sense):
        try:
            resolve_log_level(values)
        except ValueError as e:
            raise argparse.ArgumentError(self, str(e))
        namespace.log = values


class ProbeAction(ScanAction):
    def apply(self, namespace, values, sense):
        try:
            namespace.probe = resolve_probe(values)
        except ValueError as e:
            raise argparse.ArgumentError(self, str(e))


class DaysAction(ScanAction):
    def apply(self, namespace, values, sense):
        try:
            namespace.days = parse_days(values)
        except ValueError as e:
            raise argparse.ArgumentError(self, str(e))
        namespace.where = where_clause(namespace.probe, namespace.days)
        logger.debug(f"Where clause is now: {namespace.where}")


class QueryArgumentParser(argparse.ArgumentParser):
    """Sends help to stderr and exits 1 on bad usage"""

    def print_help(self, file=None):
        super().print_help(file if file else sys.stderr)

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def resolve_log_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError('Invalid log level: %s' % level)
    return numeric_level


def build_parser(prog: str | None = None) -> QueryArgumentParser:
    parser = QueryArgumentParser(
        prog=prog,
        description="Get raw influxdb data from the QBG server, as json, to stdout",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.set_defaults(
        next_bool=NextBool.SET_TRUE,
        server=INFLUXDB_SERVER_DFLT,
        database=INFLUXDB_DB_DFLT,
        series=INFLUXDB_SERIES_DFLT,
        user=INFLUXDB_USER_DFLT,
        query_vars=INFLUXDB_QUERY_VARS_DFLT,
        where=None,
        group=INFLUXDB_QUERY_GROUP_DFLT,
        fill=INFLUXDB_QUERY_FILL_DFLT,
        timezone=TIMEZONE_DFLT,
        probe=PROBE_NAME_DFLT,
        days=DAYS_DFLT,
        pretty=True,
        verbose=False,
        debug=False,
        log=LOG_DFLT,
    )
    parser.add_argument("-n", dest="next_bool", action=NegateAction, help="negate the next boolean option, e.g. -nv or -np")
    parser.add_argument("-v", "--verbose", action=ToggleAction, help="talk about what we're doing")
    parser.add_argument("-D", "--debug", action=DebugAction, help="operate in debug mode")
    parser.add_argument("-p", "--pretty", action=ToggleAction, help="pretty-print the output; -np minifies it (default: on)")
    parser.add_argument("-l", "--log", action=LogAction, metavar="LEVEL", help=f"Loglevel (default: {LOG_DFLT})")
    parser.add_argument("-d", "--database", action=ScanAction, help=f"the database within the server (default: {INFLUXDB_DB_DFLT})")
    parser.add_argument("-f", "--fill", action=ScanAction, help=f"the fill value, -f- means no fill clause (default: {INFLUXDB_QUERY_FILL_DFLT})")
    parser.add_argument("-g", "--group", action=ScanAction, help=f"the group clause, -g- means no group clause (default: {INFLUXDB_QUERY_GROUP_DFLT})")
    parser.add_argument("-q", "--query", dest="query_vars", action=ScanAction, metavar="VARS", help=f"the variables to query (default: {INFLUXDB_QUERY_VARS_DFLT})")
    parser.add_argument("-r", "--probe", action=ProbeAction, metavar="PROBE", help=f"probe name, one of {', '.join(PROBES)} (default: {PROBE_NAME_DFLT})")
    parser.add_argument("-S", "--server", action=ScanAction, metavar="FQDN", help=f"domain name of server (default: {INFLUXDB_SERVER_DFLT})")
    parser.add_argument("-s", "--series", action=ScanAction, help=f"data series name (default: {INFLUXDB_SERIES_DFLT})")
    parser.add_argument("-t", "--days", action=DaysAction, help=f"how many days to look back, recomputes the where clause (default: {DAYS_DFLT})")
    parser.add_argument("-u", "--user", action=ScanAction, metavar="USERID", help=f"the login to be used for the query (default: {INFLUXDB_USER_DFLT})")
    parser.add_argument("-w", "--where", action=ScanAction, help="the where clause (default: derived from -r and -t)")
    parser.add_argument("-z", "--timezone", action=ScanAction, help=f"the time zone clause (default: {TIMEZONE_DFLT})")
    return parser


def to_config(args: argparse.Namespace) -> QueryConfig:
    where = args.where
    if where is None:
        where = where_clause(args.probe, args.days)

    return QueryConfig(
        server=args.server,
        database=args.database,
        series=args.series,
        user=args.user,
        query_vars=args.query_vars,
        where=where,
        group=args.group,
        fill=args.fill,
        timezone=args.timezone,
        probe=args.probe,
        days=args.days,
        pretty=args.pretty,
        verbose=args.verbose,
        debug=args.debug,
    )


def parse_config(argv: list[str] | None = None, prog: str | None = None) -> tuple[QueryConfig, str]:
    """Scan the command line left to right and freeze the result.

    Returns the configuration together with the requested log level name.
    Exits 0 after -h and 1 on any usage or validation error.
    """
    args = build_parser(prog).parse_args(argv)
    return to_config(args), args.log
