"""
Permission classes for role and module based access control.
"""
from rest_framework.permissions import BasePermission

from staff.services import backend
from staff.services.access import submodule_matcher, resolve_permission
from staff.services.navigation import load_permissions

DEFAULT_ACTIONS = {
    'GET': 'read',
    'HEAD': 'read',
    'OPTIONS': 'read',
    'POST': 'create',
    'PUT': 'update',
    'PATCH': 'update',
    'DELETE': 'delete',
}


def bearer_token(request) -> str:
    """Token the request was authenticated with."""
    user = getattr(request, 'user', None)
    return getattr(user, 'token', '') or (request.auth if isinstance(request.auth, str) else '') or ''


def permission_snapshot(request):
    """Permission snapshot for this request; fetched once, empty on failure."""
    snapshot = getattr(request, '_staff_permissions', None)
    if snapshot is None:
        snapshot = load_permissions(backend.get_client(), bearer_token(request))
        request._staff_permissions = snapshot
    return snapshot


class IsStaffRole(BasePermission):
    """Allow staff and doctor staff."""
    message = 'Access Denied'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        return bool(user and user.is_authenticated and getattr(user, 'role', None) in {'staff', 'doctorStaff'})


class IsDoctorStaff(BasePermission):
    """Only doctor staff."""
    message = 'Access Denied'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        return bool(user and user.is_authenticated and getattr(user, 'role', None) == 'doctorStaff')


class ModuleActionPermission(BasePermission):
    """Resolve the request method to an action on ``module_key``/``sub_module``.

    Subclasses (usually built with :func:`requires_module`) set the module,
    the optional submodule name and the method to action map.
    """
    message = 'Access Denied'
    module_key = ''
    sub_module = None
    actions = DEFAULT_ACTIONS

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        action = self.actions.get(request.method)
        if not action or not self.module_key:
            return False
        matcher = submodule_matcher(self.sub_module) if self.sub_module else None
        return resolve_permission(permission_snapshot(request).permissions, self.module_key, matcher, action)


def requires_module(module_key: str, sub_module: str = None, actions: dict = None):
    return type('RequiresModule', (ModuleActionPermission,), {
        'module_key': module_key,
        'sub_module': sub_module,
        'actions': {**DEFAULT_ACTIONS, **(actions or {})},
    })
