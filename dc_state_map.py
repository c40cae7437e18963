#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dc_internal_error import ice
from dc_location import FileID, LocationResolver, SourceLocation
from dc_severity import DiagState


@dataclass
class DiagStatePoint:
    """A transition: `state` is in effect from `offset` on."""
    state: DiagState
    offset: int


@dataclass
class DiagStateFile:
    """
    Transitions of one file, sorted by offset.

    The first point (offset 0) is the state inherited from the parent at the
    include point; the root pseudo-file starts from the initial state.
    """
    parent: Optional[DiagStateFile] = None
    parent_offset: int = 0
    transitions: List[DiagStatePoint] = field(default_factory=list)

    def lookup(self, offset: int) -> DiagState:
        idx = bisect.bisect_right(self.transitions, offset, key=lambda p: p.offset)
        if idx == 0:
            ice("[ICE-4020] missing initial diagnostic state")
        return self.transitions[idx - 1].state


class DiagStateMap:
    """
    Severity states indexed by source location.

    Public API:

        sm = DiagStateMap()
        sm.append_first(initial_state)
        sm.append(locations, loc, state)     # state takes effect at loc
        sm.lookup(locations, loc)            # state in effect at loc

    Files are discovered lazily: the first time a file is seen, its include
    point is decomposed and the parent's state there becomes the file's
    initial state. Top-level files hang off a root pseudo-file (key None)
    whose only point is the initial state.

    Transitions are recorded in the file holding the location only; an
    included file's changes never rewrite its parent's sequence.
    """

    def __init__(self) -> None:
        self.files: Dict[Optional[FileID], DiagStateFile] = {}
        self.first_state: Optional[DiagState] = None
        self.cur_state: Optional[DiagState] = None
        self.cur_loc: Optional[SourceLocation] = None

    def clear(self) -> None:
        self.files.clear()
        self.first_state = None
        self.cur_state = None
        self.cur_loc = None

    def append_first(self, state: DiagState) -> None:
        if self.files or self.first_state is not None:
            ice("[ICE-4011] initial diagnostic state appended twice")
        state.retain()
        self.first_state = self.cur_state = state
        self.cur_loc = None

    def append(self, locations: LocationResolver, loc: SourceLocation, state: DiagState) -> None:
        self.cur_state = state
        self.cur_loc = loc

        file_id, offset = locations.decompose(loc)
        f = self.get_file(locations, file_id)
        last = f.transitions[-1]
        if last.offset > offset:
            ice(f"[ICE-4010] state transitions added out of order "
                f"(offset {offset} after {last.offset} in file {file_id})")

        if last.offset == offset:
            if last.state is state:
                return
            last.state.release()
            last.state = state
        else:
            f.transitions.append(DiagStatePoint(state, offset))
        state.retain()

    def replace_current(self, state: DiagState) -> None:
        """
        Make `state` current without recording a transition.

        Before any file has been seen the current state is also the initial
        state, so it is replaced there too.
        """
        if not self.files and self.first_state is not state:
            state.retain()
            if self.first_state is not None:
                self.first_state.release()
            self.first_state = state
        self.cur_state = state

    def lookup(self, locations: LocationResolver, loc: SourceLocation) -> DiagState:
        # Common case: no in-source directive seen yet.
        if not self.files:
            return self.first_state
        file_id, offset = locations.decompose(loc)
        return self.get_file(locations, file_id).lookup(offset)

    def get_file(self, locations: LocationResolver, file_id: Optional[FileID]) -> DiagStateFile:
        f = self.files.get(file_id)
        if f is not None:
            return f

        f = DiagStateFile()
        self.files[file_id] = f
        if file_id is not None:
            parent_id, parent_offset = locations.decompose_include_point(file_id)
            f.parent = self.get_file(locations, parent_id)
            f.parent_offset = parent_offset
            inherited = f.parent.lookup(parent_offset)
        else:
            inherited = self.first_state
        inherited.retain()
        f.transitions.append(DiagStatePoint(inherited, 0))
        return f

    def dump(self) -> str:
        numbers: Dict[int, int] = {}

        def number(state: DiagState) -> int:
            return numbers.setdefault(id(state), len(numbers))

        if self.first_state is not None:
            number(self.first_state)
        lines: List[str] = []
        for file_id, f in self.files.items():
            if file_id is None:
                lines.append("<root>:")
            else:
                lines.append(f"file {file_id}:")
                if f.parent is not None:
                    lines.append(f"  included at offset {f.parent_offset}")
            for p in f.transitions:
                lines.append(
                    f"  offset {p.offset}: state #{number(p.state)} "
                    f"({len(p.state.mappings)} mapping(s))"
                )
        return "\n".join(lines)
