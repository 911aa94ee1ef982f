"""
Module/submodule permission resolution.

Permission records arrive from the clinic API with loosely typed action
flags (``True``, ``"true"``, ``"FALSE"``...).  They are normalized into
frozen dataclasses as soon as they are fetched; resolution itself only
ever deals with ``True``/``False``/``None``.

Resolution order for one action, first applicable rule wins:

1. explicit value on the matched submodule
2. ``all`` on the matched submodule
3. explicit value on the module
4. ``all`` on the module
5. deny

A missing module denies every action.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

ACTIONS = ('create', 'read', 'update', 'delete')
EXTRA_ACTIONS = ('approve', 'print', 'export')
ALL_ACTIONS = ACTIONS + EXTRA_ACTIONS

MODULE_PREFIXES = ('admin_', 'clinic_', 'doctor_')

STAFF_MANAGEMENT_MODULE = 'staff_management'

# Submodules of staff management gating the staff pages
SUB_EOD_TASK = 'Add EOD Task'
SUB_EOD_REPORT = 'View EOD Report'
SUB_ADD_EXPENSE = 'Add Expense'
SUB_TRACK_EXPENSES = 'Track Expenses'


def parse_flag(value: Any) -> Optional[bool]:
    """Strict boolean for an action flag; None when no explicit value is set."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v == 'true':
            return True
        if v == 'false':
            return False
    return None


@dataclass(frozen=True)
class ActionSet:
    flags: tuple = ()
    all: Optional[bool] = None

    @classmethod
    def from_raw(cls, raw: Any) -> 'ActionSet':
        raw = raw if isinstance(raw, dict) else {}
        flags = []
        for name in ALL_ACTIONS:
            value = parse_flag(raw.get(name))
            if value is not None:
                flags.append((name, value))
        return cls(flags=tuple(flags), all=parse_flag(raw.get('all')))

    def explicit(self, action: str) -> Optional[bool]:
        for name, value in self.flags:
            if name == action:
                return value
        return None

    def any_granted(self) -> bool:
        return bool(self.all) or any(value for _, value in self.flags)

    def as_dict(self) -> dict:
        data = dict(self.flags)
        if self.all is not None:
            data['all'] = self.all
        return data


@dataclass(frozen=True)
class SubModulePermission:
    name: str
    path: str = ''
    actions: ActionSet = field(default_factory=ActionSet)


@dataclass(frozen=True)
class PermissionRecord:
    module: str
    actions: ActionSet = field(default_factory=ActionSet)
    sub_modules: tuple = ()

    @property
    def canonical_module(self) -> str:
        return canonical_module_key(self.module)


def normalize_permissions(raw: Iterable[Any]) -> list[PermissionRecord]:
    """Build permission records from the API payload; malformed entries are skipped."""
    records = []
    for entry in raw or ():
        if not isinstance(entry, dict) or not entry.get('module'):
            continue
        subs = tuple(
            SubModulePermission(
                name=str(sub.get('name') or ''),
                path=str(sub.get('path') or ''),
                actions=ActionSet.from_raw(sub.get('actions')),
            )
            for sub in entry.get('subModules') or ()
            if isinstance(sub, dict)
        )
        records.append(PermissionRecord(
            module=str(entry['module']),
            actions=ActionSet.from_raw(entry.get('actions')),
            sub_modules=subs,
        ))
    return records


def canonical_module_key(key: str) -> str:
    key = (key or '').strip()
    for prefix in MODULE_PREFIXES:
        if key.startswith(prefix):
            return key[len(prefix):]
    return key


def module_aliases(key: str) -> tuple:
    """The key itself, its canonical form and every prefixed variant."""
    base = canonical_module_key(key)
    aliases = [key, base] + [f'{prefix}{base}' for prefix in MODULE_PREFIXES]
    seen = []
    for alias in aliases:
        if alias and alias not in seen:
            seen.append(alias)
    return tuple(seen)


def find_module(permissions: Iterable[PermissionRecord], module_key: str) -> Optional[PermissionRecord]:
    aliases = module_aliases(module_key)
    wanted = canonical_module_key(module_key)
    for record in permissions:
        if record.module in aliases or record.canonical_module == wanted:
            return record
    return None


SubModuleMatcher = Callable[[SubModulePermission], bool]


def submodule_matcher(name: Optional[str] = None, path: Optional[str] = None) -> SubModuleMatcher:
    """Match a submodule whose name or path contains the given target."""
    name = (name or '').strip()
    path = (path or '').strip()

    def match(sub: SubModulePermission) -> bool:
        if name and sub.name and name in sub.name:
            return True
        if path and sub.path and path in sub.path:
            return True
        return False

    return match


def find_submodule(record: PermissionRecord, matcher: Optional[SubModuleMatcher]) -> Optional[SubModulePermission]:
    if matcher is None:
        return None
    for sub in record.sub_modules:
        if matcher(sub):
            return sub
    return None


def resolve_action(record: Optional[PermissionRecord], sub: Optional[SubModulePermission], action: str) -> bool:
    if record is None:
        return False
    if sub is not None:
        explicit = sub.actions.explicit(action)
        if explicit is not None:
            return explicit
        if sub.actions.all:
            return True
    explicit = record.actions.explicit(action)
    if explicit is not None:
        return explicit
    return bool(record.actions.all)


def resolve_permission(
    permissions: Iterable[PermissionRecord],
    module_key: str,
    sub_module_matcher: Optional[SubModuleMatcher],
    action: str,
) -> bool:
    record = find_module(permissions, module_key)
    if record is None:
        return False
    return resolve_action(record, find_submodule(record, sub_module_matcher), action)


@dataclass(frozen=True)
class AccessGate:
    create: bool = False
    read: bool = False
    update: bool = False
    delete: bool = False

    @classmethod
    def denied(cls) -> 'AccessGate':
        return cls()

    def allows(self, action: str) -> bool:
        return bool(getattr(self, action, False)) if action in ACTIONS else False

    def as_dict(self) -> dict:
        return {
            'canCreate': self.create,
            'canRead': self.read,
            'canUpdate': self.update,
            'canDelete': self.delete,
        }


def resolve_gate(
    permissions: Iterable[PermissionRecord],
    module_key: str,
    sub_module_matcher: Optional[SubModuleMatcher] = None,
) -> AccessGate:
    permissions = list(permissions)
    record = find_module(permissions, module_key)
    if record is None:
        return AccessGate.denied()
    sub = find_submodule(record, sub_module_matcher)
    return AccessGate(**{action: resolve_action(record, sub, action) for action in ACTIONS})
