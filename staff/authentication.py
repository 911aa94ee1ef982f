"""
Bearer token authentication against the clinic API.

The staff desk never issues tokens.  A token presented as
``Authorization: Bearer <token>`` is verified with the clinic API and the
resulting profile is cached for ``STAFF_TOKEN_CACHE_SECONDS`` so that a
page load fanning out into several requests verifies once.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from rest_framework import authentication, exceptions

from staff.exceptions import BackendError
from staff.services import backend

logger = logging.getLogger(__name__)

STAFF_ROLES = {'staff', 'doctorStaff'}


@dataclass(frozen=True)
class StaffUser:
    id: str
    name: str
    role: str
    token: str = ''
    is_authenticated: bool = True

    @property
    def pk(self) -> str:
        return self.id


def _cache_key(token: str) -> str:
    return 'staff-token:' + hashlib.sha256(token.encode('utf-8')).hexdigest()


class StaffTokenAuthentication(authentication.BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header.')
        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid token header.')
        return self.authenticate_credentials(token), token

    def authenticate_credentials(self, token: str) -> StaffUser:
        key = _cache_key(token)
        profile = cache.get(key)
        if profile is None:
            try:
                profile = backend.get_client().verify_token(token)
            except BackendError as e:
                logger.info('token verification failed: %s', e)
                raise exceptions.AuthenticationFailed('Invalid or expired token.')
            cache.set(key, profile, settings.STAFF_TOKEN_CACHE_SECONDS)
        role = profile.get('role') or ''
        if role not in STAFF_ROLES:
            raise exceptions.AuthenticationFailed('Staff access only.')
        return StaffUser(
            id=str(profile.get('_id') or profile.get('id') or ''),
            name=profile.get('name') or '',
            role=role,
            token=token,
        )

    def authenticate_header(self, request):
        return self.keyword
