from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from quarry_intake.api.client import BackendClient, BackendError
from quarry_intake.config.loader import ConfigError, IntakeConfig, load_config
from quarry_intake.excel.reader import SheetParseError, UnsupportedFileError, check_extension, parse_workbook
from quarry_intake.logging.error_log import ErrorLogBuffer
from quarry_intake.logging.init import log_summary, setup_logging
from quarry_intake.models.period import Period, PeriodError
from quarry_intake.models.session_state import SessionState
from quarry_intake.schemas.domains import DOMAINS, UnknownDomainError, get_schema
from quarry_intake.services.coordinator import CommitCoordinator
from quarry_intake.services.summary import render_summary_line
from quarry_intake.services.workbook import RunResult, run_domain, run_workbook

"""CLI entrypoint.

Sub-commands:
- preview DOMAIN FILE            parse a sheet and print the staged rows
- check DOMAIN PERIOD            ask the backend whether the period has data
- submit DOMAIN PERIOD FILE      full preview -> validate -> commit cycle
- import-workbook PERIOD FILE    every domain sheet of a template workbook
- committed DOMAIN               print the committed-data view

Exit codes: 0 success, 2 partial failure / rejected, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG = Path("config/intake.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; values in the file win over the process env."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _id_list(text: str) -> list[int]:
    try:
        return [int(part) for part in text.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated row ids, got {text!r}") from None


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="quarry-intake", description="Monthly spreadsheet import for the quarry dashboard")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="Config file (default: %(default)s)")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("preview", help="Parse a sheet and print the staged rows")
    s.add_argument("domain", choices=list(DOMAINS))
    s.add_argument("file", type=Path)

    s = sub.add_parser("check", help="Check whether data exists for a period")
    s.add_argument("domain", choices=list(DOMAINS))
    s.add_argument("period", help="MM/YYYY")

    s = sub.add_parser("submit", help="Preview, validate and commit one domain")
    s.add_argument("domain", choices=list(DOMAINS))
    s.add_argument("period", help="MM/YYYY")
    s.add_argument("file", type=Path)
    s.add_argument("--select", type=_id_list, default=None, help="Row ids to submit (default: all)")
    s.add_argument("--delete", type=_id_list, default=None, help="Row ids to drop before submitting")

    s = sub.add_parser("import-workbook", help="Import every domain sheet of a template workbook")
    s.add_argument("period", help="MM/YYYY")
    s.add_argument("file", type=Path)
    s.add_argument("--domain", action="append", choices=list(DOMAINS), dest="domains",
                   help="Limit to a domain (repeatable)")

    s = sub.add_parser("committed", help="Print the committed-data view")
    s.add_argument("domain", choices=list(DOMAINS))
    return p.parse_args(argv)


def _print_json(record: dict[str, Any]) -> None:
    print(json.dumps(record, ensure_ascii=False, default=str))


def _flush_errors(buffer: ErrorLogBuffer, logger) -> None:
    path = buffer.flush()
    if path is not None:
        logger.info(f"rejections written to {path}")


def _finish(result: RunResult) -> int:
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS_ALL if result.all_committed else EXIT_PARTIAL_FAILURE


def _cmd_preview(args: argparse.Namespace, cfg: IntakeConfig, logger) -> int:
    schema = get_schema(args.domain, cfg.domains)
    try:
        check_extension(args.file, cfg.file_extensions)
        rows = parse_workbook(args.file, schema)
    except (UnsupportedFileError, SheetParseError) as e:
        logger.error(f"{args.file}: {e}")
        return EXIT_FATAL
    for row in rows:
        _print_json({"id": row.id, "sourceRow": row.source_row, **row.values})
    logger.info(f"{schema.domain}: {len(rows)} row(s) staged from {args.file.name}")
    return EXIT_SUCCESS_ALL


def _cmd_check(args: argparse.Namespace, cfg: IntakeConfig, client: BackendClient, logger) -> int:
    schema = get_schema(args.domain, cfg.domains)
    period = Period.parse(args.period)
    try:
        found = client.exists(schema, period)
    except BackendError as e:
        logger.error(f"{schema.domain}: {e}")
        return EXIT_PARTIAL_FAILURE
    _print_json({"domain": schema.domain, "period": str(period), "exists": found})
    return EXIT_SUCCESS_ALL


def _cmd_committed(args: argparse.Namespace, cfg: IntakeConfig, client: BackendClient, logger) -> int:
    schema = get_schema(args.domain, cfg.domains)
    try:
        records = client.fetch_committed(schema)
    except BackendError as e:
        logger.error(f"{schema.domain}: {e}")
        return EXIT_PARTIAL_FAILURE
    for i, record in enumerate(records, start=1):
        _print_json(schema.from_committed(record, i))
    return EXIT_SUCCESS_ALL


def _cmd_submit(args: argparse.Namespace, cfg: IntakeConfig, client: BackendClient, logger) -> int:
    schema = get_schema(args.domain, cfg.domains)
    period = Period.parse(args.period)
    payload = args.file.read_bytes()
    buffer = ErrorLogBuffer()
    coordinator = CommitCoordinator(
        schema,
        client,
        lock_policy=cfg.lock_check.on_failure,
        extensions=cfg.file_extensions,
        error_log=buffer,
    )
    outcome = run_domain(coordinator, args.file, payload, period, delete=args.delete, select=args.select)
    _flush_errors(buffer, logger)
    code = _finish(RunResult([outcome]))
    if outcome.state in (SessionState.IDLE, SessionState.FILE_SELECTED):
        # rejected extension or unreadable sheet
        return EXIT_FATAL
    return code


def _cmd_import_workbook(args: argparse.Namespace, cfg: IntakeConfig, client: BackendClient, logger) -> int:
    period = Period.parse(args.period)
    buffer = ErrorLogBuffer()
    try:
        result = run_workbook(args.file, period, args.domains, client, cfg, error_log=buffer)
    except SheetParseError as e:
        logger.error(f"{args.file}: {e}")
        return EXIT_FATAL
    finally:
        _flush_errors(buffer, logger)
    return _finish(result)


def main(argv: list[str] | None = None) -> int:
    # None (not []) means "read sys.argv"; tests call main([...]) directly
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "preview":
        return _cmd_preview(args, cfg, logger)

    client = BackendClient.from_config(cfg.api)
    try:
        if args.command == "check":
            return _cmd_check(args, cfg, client, logger)
        if args.command == "committed":
            return _cmd_committed(args, cfg, client, logger)
        if args.command == "submit":
            return _cmd_submit(args, cfg, client, logger)
        return _cmd_import_workbook(args, cfg, client, logger)
    except (PeriodError, UnknownDomainError) as e:
        logger.error(str(e))
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL
    finally:
        client.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
