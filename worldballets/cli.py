import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from worldballets import __version__
import worldballets.config as cfg_module
import worldballets.db as db_module
import worldballets.pipeline as pipeline
from worldballets.errors import UnknownCompanyError
from worldballets.pipeline import CompanyReport
from worldballets.scrapers import ADAPTERS


def _print_report(report: CompanyReport) -> None:
    if report.error:
        print(f"{report.company_id}: FAILED ({report.error})")
        return
    source = f"fallback v{report.fallback_version}" if report.fallback_used else "live"
    if report.kept_last_known_good:
        print(f"{report.company_id}: {report.reason}; kept stored performances.")
    else:
        print(
            f"{report.company_id}: {report.fetched} performances ({source}), "
            f"{report.inserted} new, {report.updated} updated."
        )


def _unknown_company(company_id: str) -> None:
    print(f"Error: no adapter registered for company '{company_id}'.", file=sys.stderr)
    print(f"Available companies: {', '.join(sorted(ADAPTERS))}", file=sys.stderr)
    sys.exit(1)


def _scrape(args, cfg, conn):
    if args.company:
        try:
            report = pipeline.scrape_one(conn, cfg, args.company)
        except UnknownCompanyError:
            _unknown_company(args.company)
        except Exception as exc:
            logging.getLogger(__name__).debug("scrape failed", exc_info=True)
            print(f"{args.company}: FAILED ({exc})", file=sys.stderr)
            sys.exit(1)
        _print_report(report)
        return

    if not cfg_module.get_companies(cfg):
        print("No enabled companies found. Check your config.toml [companies] section.")
        return

    reports = pipeline.scrape_all(conn, cfg)
    for report in reports:
        _print_report(report)
    failed = [r.company_id for r in reports if not r.ok]
    if failed:
        print(f"{len(failed)} of {len(reports)} companies failed: {', '.join(failed)}")


def _clear(args, cfg, conn):
    if args.company not in ADAPTERS:
        _unknown_company(args.company)
    removed = pipeline.clear_company(conn, args.company)
    print(f"Removed {removed} performances for '{args.company}'.")


def _flags(args, cfg, conn):
    if args.company:
        if args.company not in ADAPTERS:
            _unknown_company(args.company)
        company_ids = [args.company]
    else:
        company_ids = [c.company_id for c in db_module.get_all_companies(conn)]
    pipeline.refresh_flags(conn, company_ids)
    print(f"Flags recomputed for {len(company_ids)} companies.")


def _serve(args, cfg):
    import uvicorn

    from worldballets.api import create_app

    app = create_app(cfg_module.get_database_path(cfg))
    uvicorn.run(app, host=args.host, port=args.port)


def main():
    parser = argparse.ArgumentParser(
        prog="wb",
        description="World Ballets performance aggregator",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", default="config.toml", metavar="PATH",
        help="Path to config.toml (default: config.toml)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # scrape
    sp_scrape = subparsers.add_parser("scrape", help="Scrape companies and update the database")
    sp_scrape.add_argument(
        "--company", metavar="ID",
        help="Only scrape this company (by its id in config.toml)",
    )

    # clear
    sp_clear = subparsers.add_parser("clear", help="Delete all stored performances of one company")
    sp_clear.add_argument("--company", metavar="ID", required=True)

    # flags
    sp_flags = subparsers.add_parser("flags", help="Recompute current/next/past flags without scraping")
    sp_flags.add_argument("--company", metavar="ID", help="Only this company")

    # serve
    sp_serve = subparsers.add_parser("serve", help="Run the read API")
    sp_serve.add_argument("--host", default="127.0.0.1")
    sp_serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        cfg = cfg_module.load(Path(args.config))
    except FileNotFoundError:
        print(f"Error: config file '{args.config}' not found.", file=sys.stderr)
        sys.exit(1)
    except ValueError as exc:
        print(f"Error: invalid config ({exc}).", file=sys.stderr)
        sys.exit(1)

    if args.command == "serve":
        _serve(args, cfg)
        return

    try:
        conn = db_module.connect(cfg_module.get_database_path(cfg))
    except sqlite3.Error as exc:
        print(f"Error: cannot open database ({exc}).", file=sys.stderr)
        sys.exit(1)

    if args.command == "scrape":
        _scrape(args, cfg, conn)
    elif args.command == "clear":
        _clear(args, cfg, conn)
    elif args.command == "flags":
        _flags(args, cfg, conn)


if __name__ == "__main__":
    main()
