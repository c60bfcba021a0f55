"""
Index Advisor — command line entry point

Reviews index usage and fragmentation for one SQL Server database and prints
(or exports) four result sets:
  1. Full index usage and fragmentation overview
  2. Candidate unused indexes (writes but no reads)
  3. Fragmented indexes with a REBUILD or REORGANIZE recommendation
  4. Generated ALTER INDEX statements (review before executing; never run here)

Usage:
  python main.py --database SalesDB --user advisor          # password from INDEX_ADVISOR_SQLSERVER_PASSWORD
  python main.py --database SalesDB --trusted-connection --format json
  python main.py --database SalesDB --mock --report maintenance_commands
  python main.py --database SalesDB --format csv --output-dir ./reports
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from agents.advisor import IndexAdvisorAgent
from config.settings import REPORT_VIEWS, load_settings
from framework.agent_framework import AgentFramework, EventType, TaskStatus
from framework.errors import InvalidConfiguration, SourceUnavailable
from utils.report_writer import ReportWriter
from utils.sqlserver_client import SqlServerClient

logger = logging.getLogger("index_advisor.main")

EXIT_OK = 0
EXIT_SOURCE_UNAVAILABLE = 1
EXIT_INVALID_CONFIGURATION = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Read-only index usage and maintenance advisor for SQL Server",
    )
    parser.add_argument("--database", help="Target database (INDEX_ADVISOR_TARGET_DATABASE)")
    parser.add_argument("--server", help="SQL Server host (INDEX_ADVISOR_SQLSERVER_HOST)")
    parser.add_argument("--port", type=int, help="SQL Server port (INDEX_ADVISOR_SQLSERVER_PORT)")
    parser.add_argument("--user", dest="username", help="SQL login (INDEX_ADVISOR_SQLSERVER_USER)")
    parser.add_argument("--driver", dest="odbc_driver", help="ODBC driver name")
    parser.add_argument("--trusted-connection", action="store_const", const=True, default=None,
                        help="Use integrated authentication")

    thresholds = parser.add_argument_group("thresholds")
    thresholds.add_argument("--low-frag", dest="low_frag_threshold", type=float,
                            help="Fragmentation %% at which REORGANIZE starts (default 5.0)")
    thresholds.add_argument("--high-frag", dest="high_frag_threshold", type=float,
                            help="Fragmentation %% at which REBUILD starts (default 30.0)")
    thresholds.add_argument("--min-pages", dest="min_page_count", type=int,
                            help="Ignore indexes smaller than this many pages (default 1000)")
    thresholds.add_argument("--min-updates", dest="min_update_count", type=int,
                            help="Minimum writes for an unused-index candidate (default 100)")

    parser.add_argument("--query-timeout", dest="query_timeout_seconds", type=int,
                        help="Per-query timeout in seconds")
    parser.add_argument("--report", choices=["all", *REPORT_VIEWS], default="all",
                        help="Which result set to output")
    parser.add_argument("--format", choices=["table", "json", "csv"], default="table")
    parser.add_argument("--output-dir", help="Write JSON/CSV files here instead of stdout")
    parser.add_argument("--mock", dest="mock_mode", action="store_const", const=True, default=None,
                        help="Use the built-in sample snapshot instead of a live server")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _subscribe_event_logging(framework: AgentFramework) -> None:
    def on_maintenance_recommended(event):
        logger.info(f"[EVENT] {event.data.get('rebuild', 0)} REBUILD / "
                    f"{event.data.get('reorganize', 0)} REORGANIZE recommendations in "
                    f"{event.data.get('database_name')} -> review the generated commands")

    def on_unused_detected(event):
        logger.info(f"[EVENT] {event.data.get('candidates', 0)} unused-index candidates in "
                    f"{event.data.get('database_name')}")

    framework.subscribe(EventType.INDEX_MAINTENANCE_RECOMMENDED, on_maintenance_recommended)
    framework.subscribe(EventType.UNUSED_INDEX_DETECTED, on_unused_detected)


def emit(document: dict, args: argparse.Namespace, writer: ReportWriter) -> None:
    views = list(REPORT_VIEWS) if args.report == "all" else [args.report]

    if args.format == "table":
        writer.print_tables(document, views)
    elif args.format == "json":
        if args.report != "all":
            document = {
                "database_name": document["database_name"],
                "usage_stats_since": document["usage_stats_since"],
                "thresholds": document["thresholds"],
                args.report: document[args.report],
            }
        if args.output_dir:
            writer.write_json(document)
        else:
            writer.print_json(document)
    else:
        if args.output_dir:
            writer.write_csv(document, views)
        else:
            for view in views:
                writer.print_csv(document[view])


async def run(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(
            target_database=args.database,
            server=args.server,
            port=args.port,
            username=args.username,
            odbc_driver=args.odbc_driver,
            trusted_connection=args.trusted_connection,
            query_timeout_seconds=args.query_timeout_seconds,
            mock_mode=args.mock_mode,
            low_frag_threshold=args.low_frag_threshold,
            high_frag_threshold=args.high_frag_threshold,
            min_page_count=args.min_page_count,
            min_update_count=args.min_update_count,
        )
    except InvalidConfiguration as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_INVALID_CONFIGURATION

    framework = AgentFramework()
    agent = IndexAdvisorAgent(SqlServerClient(settings), settings)
    framework.register_agent(agent)
    _subscribe_event_logging(framework)

    [result] = await agent.run_cycle({"databases": [settings.target_database]})
    if result.status != TaskStatus.SUCCESS:
        if isinstance(result.error, InvalidConfiguration):
            return EXIT_INVALID_CONFIGURATION
        if not isinstance(result.error, SourceUnavailable):
            logger.error("Unexpected failure; no reports produced", exc_info=result.error)
        return EXIT_SOURCE_UNAVAILABLE

    emit(result.data.to_dict(), args, ReportWriter(output_dir=args.output_dir))
    return EXIT_OK


def main(argv: list[str] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
