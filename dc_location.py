#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from dc_internal_error import ice

FileID = int


@dataclass(frozen=True, order=True)
class SourceLocation:
    """Opaque source position: a file and a byte offset into it."""
    file_id: FileID
    offset: int


class LocationResolver:
    """
    Location service consumed by the severity state map and text consumers.

    decompose(loc)                  -> (file_id, offset)
    decompose_include_point(file)   -> (parent_file_id, offset_in_parent);
                                       parent is None for top-level files
    spelling(loc)                   -> (filename, line, column), 1-based
    """

    def decompose(self, loc: SourceLocation) -> Tuple[FileID, int]:
        raise NotImplementedError

    def decompose_include_point(self, file_id: FileID) -> Tuple[Optional[FileID], int]:
        raise NotImplementedError

    def spelling(self, loc: SourceLocation) -> Tuple[str, int, int]:
        raise NotImplementedError


@dataclass
class SourceFile:
    file_id: FileID
    name: str
    text: str = ""
    include_loc: Optional[SourceLocation] = None
    line_starts: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.line_starts = [0]
        for i, ch in enumerate(self.text):
            if ch == "\n":
                self.line_starts.append(i + 1)

    def line_column(self, offset: int) -> Tuple[int, int]:
        line_idx = bisect.bisect_right(self.line_starts, offset) - 1
        return line_idx + 1, offset - self.line_starts[line_idx] + 1


class SourceFileTable(LocationResolver):
    """
    In-memory location service: files, their include points, offsets.

    Usage:

        table = SourceFileTable()
        main = table.add_file("main.c", text)
        hdr = table.add_file("a.h", hdr_text, include_loc=table.location(main, 40))
        table.spelling(table.location(hdr, 3))   # ("a.h", 1, 4)
    """

    def __init__(self) -> None:
        self.files: Dict[FileID, SourceFile] = {}
        self._next_id: FileID = 1

    def add_file(self, name: str, text: str = "", include_loc: Optional[SourceLocation] = None) -> FileID:
        if include_loc is not None:
            self._get(include_loc.file_id)
        file_id = self._next_id
        self._next_id += 1
        self.files[file_id] = SourceFile(file_id=file_id, name=name, text=text, include_loc=include_loc)
        return file_id

    def location(self, file_id: FileID, offset: int) -> SourceLocation:
        self._get(file_id)
        if offset < 0:
            ice(f"[ICE-4001] negative source offset {offset}")
        return SourceLocation(file_id, offset)

    def location_at(self, file_id: FileID, line: int, column: int) -> SourceLocation:
        f = self._get(file_id)
        if not 1 <= line <= len(f.line_starts):
            ice(f"[ICE-4002] line {line} out of range for {f.name}")
        return SourceLocation(file_id, f.line_starts[line - 1] + column - 1)

    def filename(self, file_id: FileID) -> str:
        return self._get(file_id).name

    # --- LocationResolver ---

    def decompose(self, loc: SourceLocation) -> Tuple[FileID, int]:
        self._get(loc.file_id)
        return loc.file_id, loc.offset

    def decompose_include_point(self, file_id: FileID) -> Tuple[Optional[FileID], int]:
        f = self._get(file_id)
        if f.include_loc is None:
            return None, 0
        return f.include_loc.file_id, f.include_loc.offset

    def spelling(self, loc: SourceLocation) -> Tuple[str, int, int]:
        f = self._get(loc.file_id)
        line, column = f.line_column(loc.offset)
        return f.name, line, column

    def _get(self, file_id: FileID) -> SourceFile:
        f = self.files.get(file_id)
        if f is None:
            ice(f"[ICE-4000] unknown file id {file_id}")
        return f
