from __future__ import annotations


class BackendError(Exception):
    """The clinic API could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransferError(ValueError):
    """A membership transfer violates the remaining-balance bound."""


def api_exception_handler(exc, context):
    # rest_framework.views resolves DEFAULT_AUTHENTICATION_CLASSES on import,
    # and staff.authentication imports this module
    from rest_framework import status
    from rest_framework.response import Response
    from rest_framework.views import exception_handler as drf_exception_handler

    if isinstance(exc, BackendError):
        code = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else status.HTTP_502_BAD_GATEWAY
        return Response({'ok': False, 'error': {'code': 'backend_error', 'message': exc.message}}, status=code)
    if isinstance(exc, TransferError):
        return Response({'ok': False, 'error': {'code': 'transfer_error', 'message': str(exc)}}, status=400)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    code = 'access_denied' if resp.status_code == 403 else 'api_error'
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code)
