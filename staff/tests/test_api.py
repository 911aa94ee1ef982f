"""
Integration tests for the staff desk API.

The clinic API is replaced with an in-memory fake; users are force
authenticated so these tests exercise routing, gating, validation and
the payloads forwarded upstream.

To run the tests:

```
pytest -q staff/tests
```
"""
from unittest import mock

from django.core.cache import cache
from rest_framework.test import APISimpleTestCase, APIClient

from staff.authentication import StaffUser
from staff.services import backend
from staff.tests.fakes import FakeClinic


class StaffAPITestCase(APISimpleTestCase):
    role = 'staff'

    def setUp(self) -> None:
        cache.clear()
        self.clinic = FakeClinic()
        patcher = mock.patch.object(backend, 'get_client', return_value=self.clinic)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.user = StaffUser(id='s1', name='Priya', role=self.role, token='tok')
        self.client = APIClient()
        self.client.force_authenticate(user=self.user, token='tok')


class FinanceAPITests(StaffAPITestCase):
    def test_overpayment(self):
        r = self.client.post('/api/finance/invoice/derive', {'amount': 500, 'paid': 700}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['advance'], '200.00')
        self.assertEqual(r.data['data']['pending'], '0.00')

    def test_insurance_advance(self):
        r = self.client.post('/api/finance/invoice/derive', {
            'amount': '5000', 'insurance': 'Yes', 'insuranceType': 'Advance',
            'advanceGivenAmount': '1000', 'coPayPercent': '20',
        }, format='json')
        self.assertEqual(r.data['data']['needToPay'], '800.00')
        self.assertEqual(r.data['data']['amount'], '800.00')

    def test_garbage_input_degrades_to_zero(self):
        r = self.client.post('/api/finance/invoice/derive', {'amount': 'abc', 'paid': None}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['pending'], '0.00')

    def test_payment_preview(self):
        r = self.client.post('/api/finance/payment/preview', {'amount': 1000, 'paid': 400, 'paying': 700}, format='json')
        self.assertEqual(r.data['data'], {'totalPaid': '1100.00', 'advance': '100.00', 'pending': '0.00'})

    def test_membership_balance_preview(self):
        r = self.client.post('/api/finance/membership/balance', {
            'packageAmount': 1000,
            'treatments': [{'unitCount': 2, 'unitPrice': 300}],
            'addedTreatments': [{'unitCount': 1, 'unitPrice': 500}],
        }, format='json')
        data = r.data['data']
        self.assertEqual(data['remainingBalance'], '400.00')
        self.assertEqual(data['remainingAfter'], '0.00')
        self.assertEqual(data['overdrawAfter'], '100.00')

    def test_unauthenticated_is_rejected(self):
        r = APIClient().post('/api/finance/invoice/derive', {}, format='json')
        self.assertEqual(r.status_code, 401)
        self.assertFalse(r.data['ok'])


class AccessAPITests(StaffAPITestCase):
    def test_submodule_gate(self):
        r = self.client.get('/api/staff/permissions', {'moduleKey': 'staff_management', 'subModule': 'Add EOD Task'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data'], {'canCreate': True, 'canRead': True, 'canUpdate': True, 'canDelete': False})

    def test_unknown_module_is_denied(self):
        r = self.client.get('/api/staff/permissions', {'moduleKey': 'payroll'})
        self.assertEqual(r.data['data'], {'canCreate': False, 'canRead': False, 'canUpdate': False, 'canDelete': False})

    def test_module_key_required(self):
        r = self.client.get('/api/staff/permissions')
        self.assertEqual(r.status_code, 400)

    def test_permission_fetch_failure_denies(self):
        self.clinic.fail_permissions = True
        r = self.client.get('/api/staff/permissions', {'moduleKey': 'staff_management'})
        self.assertEqual(r.status_code, 200)
        self.assertFalse(any(r.data['data'].values()))
        self.assertTrue(r.data['loaded'])

    def test_sidebar_is_filtered(self):
        r = self.client.get('/api/staff/sidebar')
        self.assertEqual(r.status_code, 200)
        self.assertEqual([i['_id'] for i in r.data['data']], ['n1'])
        self.assertEqual([s['name'] for s in r.data['data'][0]['subModules']], ['Add EOD Task', 'Add Expense'])

    def test_sidebar_without_permissions_is_empty(self):
        self.clinic.fail_permissions = True
        r = self.client.get('/api/staff/sidebar')
        self.assertEqual(r.data['data'], [])
        self.assertEqual(self.clinic.called('fetch_navigation'), [])


class GatedPagesTests(StaffAPITestCase):
    def test_eod_note_allowed(self):
        r = self.client.post('/api/staff/eod-notes', {'note': 'Closed <b>till</b>'}, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(self.clinic.called('add_eod_note'), [('add_eod_note', 'Closed till')])

    def test_eod_list_with_date(self):
        r = self.client.get('/api/staff/eod-notes', {'date': '2026-02-01'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.clinic.called('list_eod_notes'), [('list_eod_notes', '2026-02-01')])

    def test_eod_denied_without_module(self):
        self.clinic.permissions = []
        r = self.client.post('/api/staff/eod-notes', {'note': 'x'}, format='json')
        self.assertEqual(r.status_code, 403)
        self.assertEqual(r.data['error']['message'], 'Access Denied')
        self.assertEqual(self.clinic.called('add_eod_note'), [])

    def test_expense_create_explicitly_denied(self):
        r = self.client.post('/api/staff/petty-cash/expenses', {'description': 'Cab', 'spentAmount': '120'}, format='json')
        self.assertEqual(r.status_code, 403)
        self.assertEqual(self.clinic.called('add_expense'), [])

    def test_expense_validation(self):
        self.clinic.permissions[0]['subModules'][1]['actions']['create'] = True
        r = self.client.post('/api/staff/petty-cash/expenses', {'description': 'Cab', 'spentAmount': '0'}, format='json')
        self.assertEqual(r.status_code, 400)
        r = self.client.post('/api/staff/petty-cash/expenses', {'description': 'Cab', 'spentAmount': '120.5'}, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(self.clinic.called('add_expense')[0][1]['spentAmount'], '120.50')

    def test_petty_cash_totals(self):
        r = self.client.get('/api/staff/petty-cash')
        self.assertEqual(r.data['data'][0]['totalAmount'], '380.00')
        self.assertEqual(r.data['globalAmounts']['globalRemainingAmount'], '380.00')


REGISTRATION = {
    'emrNumber': 'EMR-100', 'firstName': 'Anita', 'lastName': 'Shah', 'email': 'anita@example.com',
    'mobileNumber': '9876543210', 'gender': 'Female', 'patientType': 'New',
    'amount': '1500', 'paid': '500',
}


class RegistrationAPITests(StaffAPITestCase):
    def test_register_rederives_figures(self):
        r = self.client.post('/api/staff/patient-registration', {**REGISTRATION, 'pending': '0', 'needToPay': '0'}, format='json')
        self.assertEqual(r.status_code, 201)
        payload = self.clinic.called('create_invoice')[0][1]
        self.assertEqual(payload['pending'], '1000.00')
        self.assertEqual(payload['needToPay'], '1000.00')
        self.assertEqual(payload['invoicedBy'], 'Priya')
        self.assertRegex(payload['invoiceNumber'], r'^INV-\d{8}-\d{3}$')
        self.assertNotIn('advanceClaimStatus', payload)

    def test_register_insurance_advance(self):
        r = self.client.post('/api/staff/patient-registration', {
            **REGISTRATION, 'insurance': 'Yes', 'insuranceType': 'Advance',
            'advanceGivenAmount': '1000', 'coPayPercent': '20', 'paid': '0',
        }, format='json')
        self.assertEqual(r.status_code, 201)
        payload = self.clinic.called('create_invoice')[0][1]
        self.assertEqual(payload['amount'], '800.00')
        self.assertEqual(payload['advanceClaimStatus'], 'Pending')
        self.assertTrue(r.data['derived']['amountOverridden'])

    def test_register_validation(self):
        cases = [
            {'mobileNumber': '12345'},
            {'email': 'not-an-email'},
            {'insurance': 'Yes', 'insuranceType': 'Advance', 'coPayPercent': '120'},
            {'insurance': 'Yes', 'insuranceType': 'Advance', 'coPayPercent': ''},
            {'insurance': 'Yes', 'insuranceType': 'Advance', 'coPayPercent': '-20'},
            {'membership': 'Yes', 'membershipStartDate': '2026-05-01', 'membershipEndDate': '2026-04-01'},
            {'membership': 'Yes'},
        ]
        for extra in cases:
            r = self.client.post('/api/staff/patient-registration', {**REGISTRATION, **extra}, format='json')
            self.assertEqual(r.status_code, 400, extra)
        self.assertEqual(self.clinic.called('create_invoice'), [])

    def test_patient_lookup(self):
        r = self.client.get('/api/staff/patient-registration/EMR-7')
        self.assertEqual(r.data['advanceBase'], '300.00')
        r = self.client.get('/api/staff/patient-registration/EMR-404')
        self.assertEqual(r.status_code, 404)

    def test_record_payment(self):
        r = self.client.post('/api/staff/patient-registration/inv1/payment', {'paying': '700'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.clinic.called('update_invoice')[0][2], {'paid': '1100.00', 'advance': '100.00', 'pending': '0.00'})

    def test_upstream_failure_is_bad_gateway(self):
        r = self.client.post('/api/staff/patient-registration/missing/payment', {'paying': '1'}, format='json')
        self.assertEqual(r.status_code, 404)
        with mock.patch.object(self.clinic, 'list_contracts', side_effect=backend.BackendError('down')):
            r = self.client.get('/api/staff/contracts')
        self.assertEqual(r.status_code, 502)
        self.assertEqual(r.data['error']['code'], 'backend_error')


class MembershipAPITests(StaffAPITestCase):
    def test_list(self):
        r = self.client.get('/api/staff/memberships', {'emrNumber': 'EMR-1'})
        self.assertEqual(r.data['data'][0]['remainingBalance'], '600.00')

    def test_create(self):
        r = self.client.post('/api/staff/memberships', {
            'emrNumber': 'EMR-5', 'packageName': 'Silver', 'packageAmount': '500',
            'packageStartDate': '2026-01-01', 'packageEndDate': '2026-12-31',
            'treatments': [{'treatmentName': 'Facial', 'unitCount': 1, 'unitPrice': '100'}],
        }, format='json')
        self.assertEqual(r.status_code, 201)
        body = self.clinic.called('create_membership')[0][1]
        self.assertEqual(body['remainingBalance'], '400.00')
        self.assertNotIn('_id', body)

    def test_add_treatments(self):
        r = self.client.post('/api/staff/memberships/m1/treatments', {
            'treatments': [{'treatmentName': 'Peel', 'unitCount': 2, 'unitPrice': '400'}],
            'paidAmount': '200',
        }, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['pendingAmount'], '200.00')
        self.assertEqual(r.data['data']['paidAmount'], '200.00')

    def test_transfer_over_remaining_is_rejected(self):
        r = self.client.post('/api/staff/memberships/m1/transfer', {'toEmr': 'EMR-2', 'amount': '600.01'}, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error']['code'], 'transfer_error')
        self.assertEqual(self.clinic.called('transfer_membership'), [])

    def test_full_transfer(self):
        r = self.client.post('/api/staff/memberships/m1/transfer', {'toEmr': 'EMR-2', 'amount': '600'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['emrNumber'], 'EMR-2')
        self.assertEqual(self.clinic.called('transfer_membership')[0][1]['transferAmount'], '600.00')


class CatalogAPITests(StaffAPITestCase):
    def test_save_and_delete(self):
        r = self.client.post('/api/staff/treatments', {'package': 'Gold', 'packagePrice': '1000'}, format='json')
        self.assertEqual(r.status_code, 201)
        r = self.client.post('/api/staff/treatments', {'id': 't1', 'treatment': 'Peel', 'treatmentPrice': '250'}, format='json')
        self.assertEqual(r.status_code, 200)
        r = self.client.post('/api/staff/treatments', {'packagePrice': '1'}, format='json')
        self.assertEqual(r.status_code, 400)
        r = self.client.delete('/api/staff/treatments/t1')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.clinic.called('delete_treatment'), [('delete_treatment', 't1')])


class ClaimsForStaffTests(StaffAPITestCase):
    def test_staff_cannot_review_claims(self):
        r = self.client.get('/api/staff/cancelled-claims')
        self.assertEqual(r.status_code, 403)


class ClaimsForDoctorStaffTests(StaffAPITestCase):
    role = 'doctorStaff'

    def test_cancelled_claims(self):
        r = self.client.get('/api/staff/cancelled-claims')
        self.assertEqual(r.data['count'], 1)

    def test_release_claim(self):
        r = self.client.post('/api/staff/claims/inv1/status', {'status': 'Released'}, format='json')
        self.assertEqual(r.status_code, 200)
        body = self.clinic.called('update_claim')[0][2]
        self.assertEqual(body['advanceClaimReleasedBy'], 'Priya')
        self.assertIsNotNone(body['advanceClaimReleaseDate'])

    def test_cancel_requires_remark(self):
        r = self.client.post('/api/staff/claims/inv1/status', {'status': 'Cancelled'}, format='json')
        self.assertEqual(r.status_code, 400)


class NonStaffRoleTests(StaffAPITestCase):
    role = 'patient'

    def test_staff_pages_denied(self):
        r = self.client.get('/api/staff/contracts')
        self.assertEqual(r.status_code, 403)
        self.assertEqual(r.data['error']['code'], 'access_denied')
        self.assertEqual(r.data['error']['message'], 'Access Denied')
        self.assertEqual(self.clinic.called('list_contracts'), [])
