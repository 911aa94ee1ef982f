"""
Thin client for the clinic REST API.

The staff desk owns no data: patients, invoices, memberships, notes and
petty cash records all live behind the clinic API.  Every call takes the
caller's bearer token explicitly.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from django.conf import settings

from staff.exceptions import BackendError

logger = logging.getLogger(__name__)


class ClinicAPI:
    def __init__(self, base_url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> 'ClinicAPI':
        return cls(settings.CLINIC_API_URL, timeout=settings.CLINIC_API_TIMEOUT)

    # -----------------------------------------------------------------
    # transport
    # -----------------------------------------------------------------
    def _request(self, method: str, path: str, token: str, *, params=None, json=None) -> dict:
        url = f'{self.base_url}{path}'
        headers = {'Authorization': f'Bearer {token}'} if token else {}
        try:
            r = self.session.request(method, url, params=params, json=json,
                                     headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning('clinic api %s %s failed: %s', method, path, e)
            raise BackendError(f'clinic API unreachable: {e}') from e
        try:
            data = r.json()
        except ValueError:
            data = None
        if r.status_code >= 400:
            message = (data or {}).get('message') if isinstance(data, dict) else None
            logger.warning('clinic api %s %s returned %s', method, path, r.status_code)
            raise BackendError(message or f'clinic API error {r.status_code}', status_code=r.status_code)
        if not isinstance(data, dict):
            raise BackendError('clinic API returned an invalid response')
        if data.get('success') is False:
            raise BackendError(data.get('message') or 'clinic API request failed', status_code=400)
        return data

    def _get(self, path: str, token: str, **params) -> dict:
        return self._request('GET', path, token, params={k: v for k, v in params.items() if v not in (None, '')})

    def _post(self, path: str, token: str, body: dict) -> dict:
        return self._request('POST', path, token, json=body)

    def _put(self, path: str, token: str, body: dict) -> dict:
        return self._request('PUT', path, token, json=body)

    def _patch(self, path: str, token: str, body: dict) -> dict:
        return self._request('PATCH', path, token, json=body)

    def _delete(self, path: str, token: str, **params) -> dict:
        return self._request('DELETE', path, token, params=params)

    # -----------------------------------------------------------------
    # auth & access
    # -----------------------------------------------------------------
    def verify_token(self, token: str) -> dict:
        """Return the staff profile the token belongs to."""
        data = self._get('/api/staff/verify-token', token)
        return data.get('user') or data.get('data') or {}

    def fetch_permissions(self, token: str) -> list:
        data = self._get('/api/clinic/permissions', token)
        return ((data.get('data') or {}).get('permissions')) or []

    def fetch_navigation(self, token: str) -> list:
        data = self._get('/api/staff/sidebar-permissions', token)
        return data.get('navigationItems') or []

    # -----------------------------------------------------------------
    # patient registration / invoices
    # -----------------------------------------------------------------
    def get_patient_by_emr(self, token: str, emr_number: str) -> Optional[dict]:
        try:
            data = self._get(f'/api/staff/patient-registration/{emr_number}', token)
        except BackendError as e:
            if e.status_code == 404:
                return None
            raise
        return data.get('data')

    def get_invoice(self, token: str, invoice_id: str) -> dict:
        return self._get(f'/api/staff/get-patient-data/{invoice_id}', token).get('data') or {}

    def create_invoice(self, token: str, payload: dict) -> dict:
        return self._post('/api/staff/patient-registration', token, payload).get('data') or {}

    def update_invoice(self, token: str, invoice_id: str, payload: dict) -> dict:
        return self._put(f'/api/staff/get-patient-data/{invoice_id}', token, payload).get('data') or {}

    # -----------------------------------------------------------------
    # memberships
    # -----------------------------------------------------------------
    def list_memberships(self, token: str, emr_number: Optional[str] = None) -> list:
        return self._get('/api/staff/members', token, emrNumber=emr_number).get('data') or []

    def get_membership(self, token: str, membership_id: str) -> dict:
        data = self._get('/api/staff/members', token, id=membership_id).get('data')
        if isinstance(data, list):
            data = next((m for m in data if str(m.get('_id')) == str(membership_id)), None)
        if not data:
            raise BackendError('membership not found', status_code=404)
        return data

    def create_membership(self, token: str, payload: dict) -> dict:
        return self._post('/api/staff/members', token, payload).get('data') or {}

    def update_membership(self, token: str, payload: dict) -> dict:
        return self._put('/api/staff/members', token, payload).get('data') or {}

    def transfer_membership(self, token: str, payload: dict) -> dict:
        return self._patch('/api/staff/members', token, payload).get('data') or {}

    # -----------------------------------------------------------------
    # EOD notes, petty cash, contracts, claims
    # -----------------------------------------------------------------
    def list_eod_notes(self, token: str, date: Optional[str] = None) -> list:
        data = self._get('/api/staff/getEodNotes', token, date=date)
        return data.get('eodNotes') or data.get('data') or []

    def add_eod_note(self, token: str, note: str) -> dict:
        data = self._post('/api/staff/addEodNote', token, {'note': note})
        return data.get('eodNote') or data.get('data') or {}

    def list_petty_cash(self, token: str, search: Optional[str] = None) -> list:
        data = self._get('/api/pettycash/getpettyCash', token, search=search)
        return data.get('data') or data.get('pettyCashList') or []

    def add_expense(self, token: str, payload: dict) -> dict:
        return self._post('/api/pettycash/add-expense', token, payload).get('data') or {}

    def list_contracts(self, token: str) -> list:
        return self._get('/api/contracts/getByStaff', token).get('data') or []

    def list_cancelled_claims(self, token: str) -> list:
        return self._get('/api/staff/cancelled-claims', token).get('data') or []

    def update_claim(self, token: str, invoice_id: str, payload: dict) -> dict:
        return self._put(f'/api/doctor/update-patient/{invoice_id}', token, payload).get('data') or {}

    # -----------------------------------------------------------------
    # treatment / service catalog
    # -----------------------------------------------------------------
    def list_treatments(self, token: str) -> list:
        data = self._get('/api/admin/staff-treatments', token)
        return data.get('data') or data.get('treatments') or []

    def save_treatment(self, token: str, payload: dict) -> dict:
        if payload.get('id'):
            return self._put('/api/admin/staff-treatments', token, payload).get('data') or {}
        return self._post('/api/admin/staff-treatments', token, payload).get('data') or {}

    def delete_treatment(self, token: str, treatment_id: str) -> None:
        self._delete('/api/admin/staff-treatments', token, id=treatment_id)


def get_client() -> ClinicAPI:
    """Client configured from settings; tests monkeypatch this."""
    return ClinicAPI.from_settings()
