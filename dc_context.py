"""
Diagnostic context for cross-cutting options.

This module defines the DiagnosticContext dataclass which holds options that
affect several parts of diagnostic handling (logging, severity policy,
message formatting).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Hierarchical logging levels for the diagnostics engine."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages
    INFO = 10       # General progress messages (-v)
    DEBUG = 30      # Detailed diagnostic information (-vvv)


@dataclass
class DiagnosticContext:
    """
    Holds cross-cutting options for a DiagnosticsEngine.

    Attributes:
        log_rich_format:        If True, emit logs in rich format: may include log level, timestamps, etc.
        log_level:              Current logging level.
        error_limit:            Stop with a fatal error once this many errors were emitted (0 = no limit).
        suppress_after_fatal:   If True, drop every diagnostic reported after a fatal error.
        suppress_all:           If True, drop every diagnostic.
        print_template_tree:    If True, %diff renders a type tree (at most one per message).
        elide_type:             Passed through to the rich-value stringifier for type diffs.
        show_colors:            Passed through to the rich-value stringifier for type diffs.
        warnings_as_errors:     Initial -Werror toggle.
        errors_as_fatal:        Initial -Wfatal-errors toggle.
        ignore_all_warnings:    Initial -w toggle.
        enable_all_warnings:    Initial -Weverything toggle.
    """
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING

    error_limit: int = 0
    suppress_after_fatal: bool = True
    suppress_all: bool = False

    print_template_tree: bool = False
    elide_type: bool = True
    show_colors: bool = False

    warnings_as_errors: bool = False
    errors_as_fatal: bool = False
    ignore_all_warnings: bool = False
    enable_all_warnings: bool = False

    @staticmethod
    def default() -> 'DiagnosticContext':
        """Create a DiagnosticContext with default settings."""
        return DiagnosticContext(log_level=LogLevel.WARNING)
