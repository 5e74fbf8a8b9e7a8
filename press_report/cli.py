from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from press_report import __version__ as TOOL_VERSION
from press_report.config import ReportConfig, default_config_text, load_config
from press_report.contracts import TOOL_NAME, build_payload, build_run_summary
from press_report.errors import ConfigError, SourceError, TemplateError, WorkbookError
from press_report.frames import issues_frame, write_issues_csv
from press_report.pipeline import PipelineResult, run_report
from press_report.workbook import rebuild_aggregate

DEFAULT_CONFIG_PATH = "press-report.json"

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_ISSUES = 3
EXIT_WORKBOOK_FAILED = 6


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class PressReportArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def safe_output_path(path: Path, *, force: bool = False) -> Path:
    if not force and path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, ConfigError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (SourceError, ImportError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    if isinstance(exc, (TemplateError, WorkbookError)):
        return EXIT_WORKBOOK_FAILED
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    return EXIT_COMMAND_ERROR


def read_input(path_text: str | None, label: str) -> bytes | None:
    if not path_text:
        return None
    path = Path(path_text)
    if not path.exists():
        raise CliError(f"{label} not found: {path}", EXIT_COMMAND_ERROR)
    return path.read_bytes()


def load_cli_config(args: argparse.Namespace) -> ReportConfig:
    return load_config(getattr(args, "config", None))


# ═══════════════════════════════════════════════════════════════════════════════
# RENDERING
# ═══════════════════════════════════════════════════════════════════════════════

def render_issue_lines(result: PipelineResult, limit: int = 20) -> list[str]:
    issues = [("primary", issue) for issue in result.primary.issues]
    issues += [("secondary", issue) for issue in result.secondary_issues]
    lines = []
    for source, issue in sorted(issues, key=lambda item: (item[0], item[1].row))[:limit]:
        lines.append(f"  - {source} row {issue.row}: {issue.message}")
    if len(issues) > limit:
        lines.append(f"  ... {len(issues) - limit} more")
    return lines


def render_pipeline_text(result: PipelineResult) -> str:
    lines = [
        f"{TOOL_NAME} extract",
        f"Primary rows: {len(result.primary.rows)}",
        f"Secondary rows: {len(result.secondary.rows) if result.secondary else 0}",
        f"Merged rows: {result.merged.merged_count}",
        f"Report rows: {len(result.merged.rows)}",
        f"Issues: {result.issue_count}",
    ]
    if result.primary.unmapped_headers:
        lines.append("Ignored columns: " + ", ".join(result.primary.unmapped_headers))
    warnings = result.merged.style_warnings
    if warnings:
        lines.append(f"Flagged cells: {len(warnings.red_cells)}, flagged rows: {len(warnings.red_rows)}")
    lines.extend(render_issue_lines(result))
    return "\n".join(lines)


def issue_messages(result: PipelineResult) -> list[str]:
    messages = [f"primary row {issue.row}: {issue.message}" for issue in result.primary.issues]
    messages += [f"secondary row {issue.row}: {issue.message}" for issue in result.secondary_issues]
    return messages


def export_issues(path_text: str | None, result: PipelineResult, *, quiet: bool) -> None:
    if not path_text:
        return
    path = write_issues_csv(
        Path(path_text),
        [
            issues_frame(result.primary.issues, "primary"),
            issues_frame(result.secondary_issues, "secondary"),
        ],
    )
    emit_human(f"Issues written: {path}", quiet=quiet)


# ═══════════════════════════════════════════════════════════════════════════════
# PARSER
# ═══════════════════════════════════════════════════════════════════════════════

def add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("primary", help="Primary delimited-text export (.csv/.tsv/.txt)")
    parser.add_argument("--secondary", help="Optional secondary spreadsheet export (.xlsx/.xls)")
    parser.add_argument("--config", help="JSON config path")
    parser.add_argument("--issues-csv", dest="issues_csv", help="Write extraction issues to this CSV path")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = PressReportArgumentParser(prog=TOOL_NAME, description="Build media coverage report workbooks.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract and reconcile sources without writing a workbook.")
    add_source_arguments(extract)

    build = subparsers.add_parser("build", help="Build a report sheet from the sources.")
    add_source_arguments(build)
    build.add_argument("--baseline", help="Existing workbook to append the new sheet to")
    build.add_argument("--sheet", dest="sheet_name", help="Target sheet name (default: numeric prefix of the primary file name)")
    build.add_argument("-o", "--output", help="Output workbook path")
    build.add_argument("--template", help="Template workbook path or http(s) URL")
    build.add_argument("--no-totals", dest="no_totals", action="store_true", help="Skip the SUM totals row")
    build.add_argument("--no-autofit", dest="no_autofit", action="store_true", help="Keep template column widths")
    build.add_argument("--force", action="store_true", help="Overwrite an existing output file")

    aggregate = subparsers.add_parser("aggregate", help="Rebuild the aggregate sheet from numbered sheets.")
    aggregate.add_argument("workbook", help="Workbook containing numbered report sheets")
    aggregate.add_argument("--sheet", dest="sheet_name", help="Aggregate sheet name (default: LIST)")
    aggregate.add_argument("-o", "--output", help="Output workbook path (default: overwrite requires --force)")
    aggregate.add_argument("--config", help="JSON config path")
    aggregate.add_argument("--force", action="store_true", help="Overwrite an existing output file")
    aggregate.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    aggregate.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_PATH, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

def run_sources(args: argparse.Namespace, config: ReportConfig, *, build: bool, **kwargs: Any) -> PipelineResult:
    primary = read_input(args.primary, "Primary source")
    secondary = read_input(args.secondary, "Secondary source")
    return run_report(
        primary,
        primary_name=Path(args.primary).name,
        secondary=secondary,
        secondary_name=Path(args.secondary).name if args.secondary else None,
        config=config,
        build=build,
        **kwargs,
    )


def run_extract(args: argparse.Namespace) -> int:
    try:
        config = load_cli_config(args)
        result = run_sources(args, config, build=False)
        export_issues(args.issues_csv, result, quiet=args.quiet)
        payload = build_payload(
            "press_report.extract",
            result.to_dict(),
            build_run_summary(
                command="extract",
                sources={"primary": args.primary, "secondary": args.secondary},
                rows=len(result.merged.rows),
                merged=result.merged.merged_count,
                issues=issue_messages(result),
            ),
            rows=[row.to_dict() for row in result.merged.rows],
        )
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_pipeline_text(result), quiet=args.quiet)
        return EXIT_ISSUES if result.issue_count else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_build(args: argparse.Namespace) -> int:
    try:
        config = load_cli_config(args)
        if args.template:
            config.template = args.template
        if args.no_totals:
            config.write_totals = False
        if args.no_autofit:
            config.autofit = False

        baseline = read_input(args.baseline, "Baseline workbook")
        output_name = Path(args.output).name if args.output else None
        result = run_sources(
            args,
            config,
            build=True,
            baseline=baseline,
            baseline_name=Path(args.baseline).name if args.baseline else None,
            sheet_name=args.sheet_name,
            output_filename=output_name,
        )
        report = result.report
        if args.output:
            output_path = Path(args.output).with_name(report.filename)
        else:
            output_path = Path.cwd() / report.filename
        safe_output_path(output_path, force=args.force)
        ensure_parent(output_path)
        report.save(output_path)
        export_issues(args.issues_csv, result, quiet=args.quiet)

        payload = build_payload(
            "press_report.build",
            result.to_dict(),
            build_run_summary(
                command="build",
                sources={"primary": args.primary, "secondary": args.secondary, "baseline": args.baseline},
                rows=report.row_count,
                merged=result.merged.merged_count,
                issues=issue_messages(result),
                output_path=output_path,
                sheet_name=report.sheet_name,
            ),
        )
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_pipeline_text(result).replace(f"{TOOL_NAME} extract", f"{TOOL_NAME} build", 1), quiet=args.quiet)
            emit_human(f"Sheet '{report.sheet_name}' written: {output_path}", quiet=args.quiet)
        return EXIT_ISSUES if result.issue_count else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_aggregate(args: argparse.Namespace) -> int:
    try:
        config = load_cli_config(args)
        input_path = Path(args.workbook)
        document = read_input(args.workbook, "Workbook")
        sheet_name = args.sheet_name or config.aggregate_sheet_name
        result = rebuild_aggregate(
            document,
            sheet_name=sheet_name,
            data_start_row=config.data_start_row,
            options=config.build_options(),
            filename=input_path.name,
        )
        output_path = Path(args.output) if args.output else input_path
        safe_output_path(output_path, force=args.force)
        ensure_parent(output_path)
        result.report.save(output_path)

        payload = build_payload(
            "press_report.aggregate",
            result.to_dict(),
            build_run_summary(
                command="aggregate",
                sources={"workbook": input_path},
                rows=result.aggregated_row_count,
                output_path=output_path,
                sheet_name=result.report.sheet_name,
                source_sheets=result.source_sheet_count,
            ),
        )
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(
                f"{TOOL_NAME} aggregate\n"
                f"Source sheets: {result.source_sheet_count}\n"
                f"Aggregated rows: {result.aggregated_row_count}\n"
                f"Sheet '{result.report.sheet_name}' written: {output_path}",
                quiet=args.quiet,
            )
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, default_config_text())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "extract":
            return run_extract(args)
        if args.command == "build":
            return run_build(args)
        if args.command == "aggregate":
            return run_aggregate(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
