#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
Diagnostic catalog: what every diagnostic ID means.

Each entry has a template, a class (error, warning, extension, note, remark),
a default severity and the warning groups it belongs to. Groups may contain
subgroups ("all" -> "unused" -> ...); membership is transitive.

The catalog can be built in code or loaded from JSON:

    {
      "groups": {"all": ["unused"], "unused": []},
      "diagnostics": [
        {"name": "warn_unused_var", "class": "warning",
         "template": "unused variable %0", "groups": ["unused"]}
      ]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from dc_internal_error import ice
from dc_severity import DiagnosticMapping, Flavor, Severity


class DiagnosticClass(Enum):
    ERROR = "error"
    WARNING = "warning"
    EXTENSION = "extension"
    NOTE = "note"
    REMARK = "remark"


_DEFAULT_SEVERITY = {
    DiagnosticClass.ERROR: Severity.ERROR,
    DiagnosticClass.WARNING: Severity.WARNING,
    DiagnosticClass.EXTENSION: Severity.IGNORED,
    DiagnosticClass.NOTE: Severity.NOTE,
    DiagnosticClass.REMARK: Severity.IGNORED,
}

TOO_MANY_ERRORS = "fatal_too_many_errors"


class UnknownGroupError(KeyError):
    """Raised when a warning group name is not in the catalog."""
    pass


@dataclass(frozen=True)
class CatalogEntry:
    diag_id: int
    name: str
    template: str
    diag_class: DiagnosticClass
    default_severity: Severity
    groups: FrozenSet[str] = field(default_factory=frozenset)


class DiagnosticCatalog:
    """
    Registry of diagnostic IDs, templates and warning groups.

    Always contains the builtin 'fatal_too_many_errors' entry, used when an
    engine's error limit is exceeded.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, CatalogEntry] = {}
        self._by_name: Dict[str, int] = {}
        self._subgroups: Dict[str, List[str]] = {}
        self._direct_members: Dict[str, Set[int]] = {}
        self.too_many_errors_id = self.add(
            TOO_MANY_ERRORS,
            "too many errors emitted, stopping now",
            DiagnosticClass.ERROR,
            Severity.FATAL,
        )

    # --- building ---

    def add_group(self, name: str, subgroups: Iterable[str] = ()) -> None:
        subs = self._subgroups.setdefault(name, [])
        self._direct_members.setdefault(name, set())
        for sub in subgroups:
            if sub not in subs:
                subs.append(sub)
            self._subgroups.setdefault(sub, [])
            self._direct_members.setdefault(sub, set())

    def add(
            self,
            name: str,
            template: str,
            diag_class: DiagnosticClass = DiagnosticClass.ERROR,
            default_severity: Severity | None = None,
            groups: Iterable[str] = (),
    ) -> int:
        if name in self._by_name:
            ice(f"[ICE-5031] duplicate diagnostic name '{name}' in catalog")
        if default_severity is None:
            default_severity = _DEFAULT_SEVERITY[diag_class]
        diag_id = len(self._entries) + 1
        groups = frozenset(groups)
        self._entries[diag_id] = CatalogEntry(
            diag_id=diag_id,
            name=name,
            template=template,
            diag_class=diag_class,
            default_severity=default_severity,
            groups=groups,
        )
        self._by_name[name] = diag_id
        for group in groups:
            self.add_group(group)
            self._direct_members[group].add(diag_id)
        return diag_id

    @classmethod
    def from_dict(cls, data: dict) -> DiagnosticCatalog:
        catalog = cls()
        for group, subgroups in data.get("groups", {}).items():
            catalog.add_group(group, subgroups)
        for item in data.get("diagnostics", []):
            severity = item.get("severity")
            catalog.add(
                item["name"],
                item["template"],
                DiagnosticClass(item.get("class", "error")),
                Severity[severity.upper()] if severity else None,
                item.get("groups", ()),
            )
        return catalog

    @classmethod
    def load(cls, path: str | Path) -> DiagnosticCatalog:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"diagnostic catalog not found: {path}")
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    # --- queries ---

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, diag_id: int) -> bool:
        return diag_id in self._entries

    def entry(self, diag_id: int) -> CatalogEntry:
        e = self._entries.get(diag_id)
        if e is None:
            ice(f"[ICE-5030] unknown diagnostic id {diag_id}")
        return e

    def id_of(self, name: str) -> int:
        diag_id = self._by_name.get(name)
        if diag_id is None:
            ice(f"[ICE-5030] unknown diagnostic name '{name}'")
        return diag_id

    def template(self, diag_id: int) -> str:
        return self.entry(diag_id).template

    def default_severity(self, diag_id: int) -> Severity:
        return self.entry(diag_id).default_severity

    def default_mapping(self, diag_id: int) -> DiagnosticMapping:
        return DiagnosticMapping(severity=self.default_severity(diag_id))

    def group_names(self) -> List[str]:
        return sorted(self._subgroups)

    def subgroups(self, group: str) -> List[str]:
        if group not in self._subgroups:
            raise UnknownGroupError(group)
        return list(self._subgroups[group])

    def group_members(self, flavor: Flavor, group: str) -> Set[int]:
        """
        All diagnostics of `flavor` in `group` and its subgroups.

        Raises UnknownGroupError if the group does not exist or holds no
        diagnostic of that flavor.
        """
        if group not in self._subgroups:
            raise UnknownGroupError(group)
        found: Set[int] = set()
        visited: Set[str] = set()
        pending = [group]
        while pending:
            g = pending.pop()
            if g in visited:
                continue
            visited.add(g)
            found.update(d for d in self._direct_members[g] if self._matches(d, flavor))
            pending.extend(self._subgroups[g])
        if not found:
            raise UnknownGroupError(f"{group} (no {flavor.name.lower()} diagnostics)")
        return found

    def all_ids(self, flavor: Flavor) -> Set[int]:
        return {d for d in self._entries if self._matches(d, flavor)}

    def _matches(self, diag_id: int, flavor: Flavor) -> bool:
        is_remark = self._entries[diag_id].diag_class is DiagnosticClass.REMARK
        return is_remark if flavor is Flavor.REMARK else not is_remark

    def is_builtin_warning_or_extension(self, diag_id: int) -> bool:
        return self.entry(diag_id).diag_class not in (DiagnosticClass.ERROR, DiagnosticClass.NOTE)

    def is_note(self, diag_id: int) -> bool:
        return self.entry(diag_id).diag_class is DiagnosticClass.NOTE

    def is_remark(self, diag_id: int) -> bool:
        return self.entry(diag_id).diag_class is DiagnosticClass.REMARK

    def is_extension(self, diag_id: int) -> Tuple[bool, bool]:
        """Returns (is_extension, enabled_by_default)."""
        e = self.entry(diag_id)
        if e.diag_class is not DiagnosticClass.EXTENSION:
            return False, False
        return True, e.default_severity != Severity.IGNORED

    def is_unrecoverable(self, diag_id: int) -> bool:
        # Only genuine errors; warnings promoted by -Werror stay recoverable.
        return self.entry(diag_id).diag_class is DiagnosticClass.ERROR
