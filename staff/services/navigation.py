"""
Sidebar navigation filtered by the staff member's read permissions.

Loading is a two-stage pipeline: the permission snapshot is resolved
first (a failed fetch yields an empty snapshot, which denies everything),
and only then is the navigation fetched and filtered.  Unfiltered items
never leave this module.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from staff.exceptions import BackendError
from staff.services.access import (
    PermissionRecord,
    normalize_permissions,
    resolve_permission,
    submodule_matcher,
)

logger = logging.getLogger(__name__)


def _order(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class NavigationSubModule:
    name: str
    path: str = ''
    icon: str = ''
    order: int = 0

    def as_dict(self) -> dict:
        return {'name': self.name, 'path': self.path, 'icon': self.icon, 'order': self.order}


@dataclass(frozen=True)
class NavigationItem:
    id: str
    label: str
    path: str
    module_key: str
    icon: str = ''
    description: Optional[str] = None
    sub_modules: tuple = ()

    @classmethod
    def from_raw(cls, raw: dict) -> 'NavigationItem':
        return cls(
            id=str(raw.get('_id') or ''),
            label=raw.get('label') or '',
            path=raw.get('path') or '',
            module_key=raw.get('moduleKey') or '',
            icon=raw.get('icon') or '',
            description=raw.get('description'),
            sub_modules=tuple(
                NavigationSubModule(
                    name=sub.get('name') or '',
                    path=sub.get('path') or '',
                    icon=sub.get('icon') or '',
                    order=_order(sub.get('order')),
                )
                for sub in raw.get('subModules') or ()
                if isinstance(sub, dict)
            ),
        )

    def as_dict(self) -> dict:
        return {
            '_id': self.id,
            'label': self.label,
            'path': self.path,
            'icon': self.icon,
            'description': self.description,
            'moduleKey': self.module_key,
            'subModules': [s.as_dict() for s in self.sub_modules],
        }


@dataclass
class PermissionSnapshot:
    permissions: list = field(default_factory=list)
    loaded: bool = False
    error: Optional[str] = None


def parse_navigation(raw: Iterable[dict]) -> list[NavigationItem]:
    return [NavigationItem.from_raw(item) for item in raw or () if isinstance(item, dict)]


def filter_navigation(items: Iterable[NavigationItem], permissions: list[PermissionRecord]) -> list[NavigationItem]:
    """Drop submodules and items the staff member cannot read; order is kept."""
    visible = []
    for item in items:
        subs = tuple(
            sub for sub in item.sub_modules
            if resolve_permission(permissions, item.module_key, submodule_matcher(sub.name, sub.path), 'read')
        )
        module_read = resolve_permission(permissions, item.module_key, None, 'read')
        if not module_read and not subs:
            continue
        visible.append(NavigationItem(
            id=item.id,
            label=item.label,
            path=item.path,
            module_key=item.module_key,
            icon=item.icon,
            description=item.description,
            sub_modules=subs,
        ))
    return visible


def load_permissions(client, token: str) -> PermissionSnapshot:
    """Fetch and normalize permissions; any failure denies everything."""
    if not token:
        return PermissionSnapshot(loaded=True, error='missing token')
    try:
        raw = client.fetch_permissions(token)
    except BackendError as e:
        logger.warning('permission fetch failed, denying all actions: %s', e)
        return PermissionSnapshot(loaded=True, error=str(e))
    return PermissionSnapshot(permissions=normalize_permissions(raw), loaded=True)


def load_sidebar(client, token: str) -> tuple[PermissionSnapshot, list[NavigationItem]]:
    snapshot = load_permissions(client, token)
    if not snapshot.permissions:
        return snapshot, []
    items = parse_navigation(client.fetch_navigation(token))
    return snapshot, filter_navigation(items, snapshot.permissions)
