from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from table_admin.api.client import TableApiClient
from table_admin.api.errors import ApiError
from table_admin.config.loader import DEFAULT_CONFIG_PATH, AdminConfig, ConfigError, load_config
from table_admin.logging.error_log import ErrorLogBuffer
from table_admin.logging.init import log_summary, setup_logging
from table_admin.models.processing_result import RunResult
from table_admin.models.table_data import table_columns
from table_admin.services.auto_fix import infer_column_types
from table_admin.services.orchestrator import ProcessingError, run_import, run_update
from table_admin.services.summary import render_summary_line

"""CLI entrypoint.

Commands:
- tables                 list table names
- show TABLE             print one page of rows (pandas rendering)
- import TABLE FILE...   stage files as new rows, auto-fix, insert
- update TABLE FILE      apply file rows by primary key, diff, update
- ask QUESTION           send a question to the assistant webhook

import / update end with a SUMMARY line. Exit codes: 0 success, 1 fatal
(config / API / IO), 2 validation failure (auto-fix, missing primary key,
an import file that could not be staged).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_VALIDATION = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書き (API URL を最優先化)。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="table-admin", description="Table admin API client")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML (default: config/admin.yml)"
    )
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("tables", help="List table names")

    show = sub.add_parser("show", help="Print rows of a table")
    show.add_argument("table")
    show.add_argument("--limit", type=int, default=None, help="Rows per page (default: page_limit)")
    show.add_argument("--offset", type=int, default=0)
    show.add_argument("--types", action="store_true", help="Print inferred column types")

    imp = sub.add_parser("import", help="Insert rows from CSV / TSV / xlsx files")
    imp.add_argument("table")
    imp.add_argument("files", nargs="+", type=Path)
    imp.add_argument(
        "--paste", action="store_true", help="Treat files as headerless pasted text (address merge applies)"
    )
    imp.add_argument("--dry-run", action="store_true", help="Validate and preview without inserting")

    upd = sub.add_parser("update", help="Update rows matched by primary key from a file")
    upd.add_argument("table")
    upd.add_argument("file", type=Path)
    upd.add_argument("--pk", default=None, help="Primary key column (default: config / first column)")
    upd.add_argument("--dry-run", action="store_true", help="Validate and preview without updating")

    ask = sub.add_parser("ask", help="Ask the assistant webhook a question")
    ask.add_argument("question")
    return p.parse_args(argv)


def _show(cfg: AdminConfig, client: TableApiClient, args: argparse.Namespace) -> None:
    limit = args.limit or cfg.page_limit
    response = client.fetch_table_data(args.table, limit, args.offset)
    rows = response.data
    print(f"table={args.table} rows={len(rows)} total_count={response.total_count} offset={args.offset}")
    if rows:
        df = pd.DataFrame(rows, columns=table_columns(rows))
        print(df.to_string(index=False))
    if args.types:
        for col, col_type in infer_column_types(rows, cfg.type_sample_size).items():
            print(f"  {col}: {col_type.value}")


def _run_command(
    cfg: AdminConfig, client: TableApiClient, args: argparse.Namespace, error_log: ErrorLogBuffer
) -> RunResult | None:
    """Run one sub command. import / update return the RunResult for the SUMMARY line."""
    logger = setup_logging()

    if args.command == "tables":
        for name in client.list_tables():
            print(name)
        return None
    if args.command == "show":
        _show(cfg, client, args)
        return None
    if args.command == "ask":
        print(client.ask(args.question))
        return None

    if args.command == "import":
        result = run_import(
            cfg,
            client,
            args.table,
            list(args.files),
            paste_mode=args.paste,
            dry_run=args.dry_run,
            error_log=error_log,
        )
    else:
        result = run_update(
            cfg,
            client,
            args.table,
            args.file,
            pk_column=args.pk,
            dry_run=args.dry_run,
            error_log=error_log,
        )

    if args.dry_run:
        logger.info("dry-run: nothing was submitted")
    return result


def main(argv: list[str] | None = None) -> int:
    # None のときのみ sys.argv を読む (テストで main([...]) 呼び出し)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    result: RunResult | None = None
    code = EXIT_SUCCESS
    try:
        with TableApiClient(cfg.api_base_url, cfg.webhook_url) as client:
            result = _run_command(cfg, client, args, error_log)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        code = EXIT_FATAL
    except ApiError as e:
        logger.error(f"api: {e}")
        code = EXIT_FATAL
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")

    if result is not None:
        summary_line = render_summary_line(result)
        # log_summary が "SUMMARY " を付けるため先頭を除去
        log_summary(summary_line[len("SUMMARY "):])
        if result.error_count > 0:
            code = EXIT_VALIDATION
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
