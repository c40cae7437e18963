#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import argparse
import json
import os
from pathlib import Path
from typing import List, Optional

from dc_aggregate import DiagnosticAggregator
from dc_arguments import ArgumentKind, ArgumentStore, Identifier
from dc_catalog import DiagnosticCatalog, UnknownGroupError
from dc_consumer import StoringDiagnosticConsumer
from dc_context import DiagnosticContext, LogLevel
from dc_engine import DiagnosticsEngine
from dc_format import format_diagnostic
from dc_internal_error import InternalCompilerError
from dc_logger import log_error, log_info, log_stage
from dc_severity import Flavor
from dc_stringify import QuotingStringifier

_ARG_PREFIXES = {
    "str": ArgumentKind.STD_STRING,
    "cstr": ArgumentKind.C_STRING,
    "int": ArgumentKind.SINT,
    "uint": ArgumentKind.UINT,
    "ident": ArgumentKind.IDENTIFIER,
    "type": ArgumentKind.TYPE,
}


def build_diagnostic_context(args: argparse.Namespace) -> DiagnosticContext:
    """Build a DiagnosticContext from command-line arguments."""
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.ERROR

    return DiagnosticContext(
        log_rich_format=getattr(args, 'log', False),
        log_level=log_level,
        error_limit=getattr(args, 'error_limit', 0),
        print_template_tree=getattr(args, 'print_tree', False),
        warnings_as_errors=getattr(args, 'werror', False),
        errors_as_fatal=getattr(args, 'wfatal_errors', False),
        ignore_all_warnings=getattr(args, 'no_warnings', False),
        enable_all_warnings=getattr(args, 'weverything', False),
    )


def load_catalog(context: DiagnosticContext, args: argparse.Namespace) -> Optional[DiagnosticCatalog]:
    path = args.catalog or os.getenv("DCC_CATALOG")
    if not path:
        return None
    log_stage(context, "Loading catalog", path)
    return DiagnosticCatalog.load(path)


def parse_argument(text: str, store: ArgumentStore) -> None:
    """Attach one 'kind:value' command-line argument; bare values are ints or strings."""
    prefix, sep, value = text.partition(":")
    kind = _ARG_PREFIXES.get(prefix) if sep else None
    if kind is None:
        if text.lstrip("-").isdigit():
            store.add_sint(int(text))
        else:
            store.add_string(text)
        return
    if kind is ArgumentKind.SINT:
        store.add_sint(int(value))
    elif kind is ArgumentKind.UINT:
        store.add_uint(int(value))
    elif kind is ArgumentKind.IDENTIFIER:
        store.add_identifier(Identifier(value))
    else:
        store.add(kind, value)


def cmd_format(args: argparse.Namespace) -> int:
    """Render a template, or report a catalog diagnostic through an engine."""
    context = build_diagnostic_context(args)
    try:
        if args.diag:
            return _report_catalog_diagnostic(context, args)
        store = ArgumentStore()
        for text in args.args:
            parse_argument(text, store)
        print(format_diagnostic(
            args.template,
            store,
            stringifier=QuotingStringifier(),
            print_template_tree=context.print_template_tree,
        ))
        return 0
    except InternalCompilerError as e:
        log_error(context, e.format())
        return 1
    except (OSError, ValueError, KeyError) as e:
        log_error(context, f"error: {e}")
        return 1


def _report_catalog_diagnostic(context: DiagnosticContext, args: argparse.Namespace) -> int:
    catalog = load_catalog(context, args)
    if catalog is None:
        log_error(context, "error: --diag needs a catalog (--catalog or $DCC_CATALOG)")
        return 1

    consumer = StoringDiagnosticConsumer()
    engine = DiagnosticsEngine(catalog, consumer, stringifier=QuotingStringifier(), context=context)
    for group in args.error_group:
        if not engine.set_diagnostic_group_warning_as_error(group, True):
            log_error(context, f"error: unknown warning group '{group}'")
            return 1
    for group in args.no_error_group:
        if not engine.set_diagnostic_group_warning_as_error(group, False):
            log_error(context, f"error: unknown warning group '{group}'")
            return 1

    diag = engine.report(catalog.id_of(args.template))
    try:
        for text in args.args:
            parse_argument(text, engine.args)
    except (InternalCompilerError, ValueError):
        diag.abandon()
        raise
    if not diag.emit():
        log_info(context, f"Diagnostic '{args.template}' was not emitted")
    for d in consumer.diagnostics:
        print(d.format())
    return 1 if engine.error_occurred else 0


def cmd_aggregate(args: argparse.Namespace) -> int:
    """Merge per-run JSON-lines diagnostic files into one report."""
    context = build_diagnostic_context(args)
    aggregator = DiagnosticAggregator()
    labels: List[str] = list(args.label)
    for idx, path_text in enumerate(args.runs):
        path = Path(path_text)
        label = labels[idx] if idx < len(labels) else path.stem
        log_stage(context, "Reading run", f"{path} as {label}")
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            log_error(context, f"error: cannot read {path}: {e}")
            return 1
        for line_no, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                aggregator.record(
                    label,
                    record.get("file", ""),
                    int(record.get("line", 0)),
                    int(record.get("column", 0)),
                    record["message"],
                )
            except (ValueError, KeyError, TypeError) as e:
                log_error(context, f"error: {path}:{line_no}: malformed diagnostic record: {e}")
                return 1
    print(aggregator.render(), end="")
    return 0


def cmd_groups(args: argparse.Namespace) -> int:
    """List warning groups and their members."""
    context = build_diagnostic_context(args)
    try:
        catalog = load_catalog(context, args)
    except (OSError, ValueError, KeyError, InternalCompilerError) as e:
        message = e.format() if isinstance(e, InternalCompilerError) else f"error: {e}"
        log_error(context, message)
        return 1
    if catalog is None:
        log_error(context, "error: no catalog given (--catalog or $DCC_CATALOG)")
        return 1

    for group in catalog.group_names():
        try:
            members = catalog.group_members(Flavor.WARNING_OR_ERROR, group)
        except UnknownGroupError:
            members = set()
        names = sorted(catalog.entry(d).name for d in members)
        line = f"{group}: {', '.join(names) if names else '<none>'}"
        subgroups = catalog.subgroups(group)
        if subgroups:
            line += f" (includes {', '.join(subgroups)})"
        print(line)
    return 0


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="dcc", description="Diagnostic catalog and formatting tool")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")
    parser.add_argument("-c", "--catalog",
                        default=None,
                        help="Diagnostic catalog JSON file (default: $DCC_CATALOG)")
    parser.add_argument("--werror", action="store_true", help="Treat warnings as errors")
    parser.add_argument("--wfatal-errors", action="store_true", help="Treat errors as fatal")
    parser.add_argument("-w", dest="no_warnings", action="store_true", help="Suppress all warnings")
    parser.add_argument("--weverything", action="store_true", help="Enable all warnings")
    parser.add_argument("--error-limit", type=int, default=0,
                        help="Stop after this many errors (default: 0, no limit)")
    parser.add_argument("--print-tree", action="store_true", help="Print type diffs as a tree")

    ###########################
    # format command
    ###########################
    p_format = subparsers.add_parser("format", help="Render a diagnostic template", aliases=["fmt"])
    p_format.add_argument("--diag", action="store_true",
                          help="Treat TEMPLATE as a catalog diagnostic name and report it")
    p_format.add_argument("--error-group", action="append", default=[],
                          help="Treat warnings of this group as errors (with --diag)")
    p_format.add_argument("--no-error-group", action="append", default=[],
                          help="Do not promote warnings of this group (with --diag)")
    p_format.add_argument("template", help="Template text, or diagnostic name with --diag")
    p_format.add_argument("args", nargs="*",
                          help="Arguments as KIND:VALUE (str, cstr, int, uint, ident, type) or bare values")
    p_format.set_defaults(func=cmd_format)

    ###########################
    # aggregate command
    ###########################
    p_agg = subparsers.add_parser("aggregate", help="Merge diagnostics of several runs")
    p_agg.add_argument("--label", action="append", default=[],
                       help="Label of the next run (default: file stem); repeat per run")
    p_agg.add_argument("runs", nargs="+", help="JSON-lines files, one per run")
    p_agg.set_defaults(func=cmd_aggregate)

    ###########################
    # groups command
    ###########################
    p_groups = subparsers.add_parser("groups", help="List warning groups")
    p_groups.set_defaults(func=cmd_groups)

    args = parser.parse_args(argv)

    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
