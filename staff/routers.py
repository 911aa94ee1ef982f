"""
URL mappings for the staff desk API.

Trailing slashes are omitted to match the paths the staff UI calls.
"""
from django.urls import path, include

from .views import access, catalog, claims, contracts, eod_notes, finance, health, memberships, petty_cash, registration

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Finance
    path('api/finance/invoice/derive', finance.invoice_derive, name='invoice_derive'),
    path('api/finance/payment/preview', finance.payment_preview, name='payment_preview'),
    path('api/finance/membership/balance', finance.membership_balance, name='membership_balance'),
    # Access
    path('api/staff/permissions', access.module_permissions, name='module_permissions'),
    path('api/staff/sidebar', access.sidebar, name='sidebar'),
    # Registration / invoices
    path('api/staff/patient-registration', registration.register_patient, name='register_patient'),
    path('api/staff/patient-registration/<str:emr_number>', registration.patient_by_emr, name='patient_by_emr'),
    path('api/staff/patient-registration/<str:invoice_id>/payment', registration.record_payment, name='record_payment'),
    # Memberships
    path('api/staff/memberships', memberships.memberships, name='memberships'),
    path('api/staff/memberships/<str:membership_id>/treatments', memberships.membership_treatments, name='membership_treatments'),
    path('api/staff/memberships/<str:membership_id>/transfer', memberships.membership_transfer, name='membership_transfer'),
    # EOD notes / petty cash
    path('api/staff/eod-notes', eod_notes.eod_notes, name='eod_notes'),
    path('api/staff/petty-cash', petty_cash.petty_cash, name='petty_cash'),
    path('api/staff/petty-cash/expenses', petty_cash.add_expense, name='add_expense'),
    # Catalog
    path('api/staff/treatments', catalog.treatments, name='treatments'),
    path('api/staff/treatments/<str:treatment_id>', catalog.treatment_detail, name='treatment_detail'),
    # Contracts / claims
    path('api/staff/contracts', contracts.contracts, name='contracts'),
    path('api/staff/cancelled-claims', claims.cancelled_claims, name='cancelled_claims'),
    path('api/staff/claims/<str:invoice_id>/status', claims.claim_status, name='claim_status'),
]
