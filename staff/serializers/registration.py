import secrets

import bleach
from django.utils import timezone
from rest_framework import serializers

from staff.services.finance import is_insurance_advance, parse_number

MONEY = dict(required=False, allow_blank=True, allow_null=True, max_length=32)


def generate_invoice_number(today=None, seq=None) -> str:
    """``INV-YYYYMMDD-NNN``."""
    today = today or timezone.localdate()
    seq = secrets.randbelow(1000) if seq is None else seq
    return f'INV-{today:%Y%m%d}-{seq:03d}'


def clean_text(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class InvoiceCreateSerializer(serializers.Serializer):
    invoiceNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)
    emrNumber = serializers.CharField(max_length=64)
    firstName = serializers.CharField(max_length=64)
    lastName = serializers.CharField(max_length=64)
    email = serializers.EmailField(max_length=128)
    mobileNumber = serializers.RegexField(r'^[0-9]{10}$', error_messages={'invalid': 'Enter valid 10-digit number'})
    gender = serializers.ChoiceField(choices=['Male', 'Female', 'Other'])
    patientType = serializers.ChoiceField(choices=['New', 'Old'])
    referredBy = serializers.CharField(max_length=128, required=False, allow_blank=True)
    insurance = serializers.ChoiceField(choices=['Yes', 'No'], default='No')
    insuranceType = serializers.ChoiceField(choices=['Paid', 'Advance'], default='Paid')
    advanceGivenAmount = serializers.CharField(**MONEY)
    coPayPercent = serializers.CharField(**MONEY)
    membership = serializers.ChoiceField(choices=['Yes', 'No'], default='No')
    membershipStartDate = serializers.DateField(required=False, allow_null=True)
    membershipEndDate = serializers.DateField(required=False, allow_null=True)
    amount = serializers.CharField(**MONEY)
    paid = serializers.CharField(**MONEY)
    advance = serializers.CharField(**MONEY)
    manualAdvance = serializers.BooleanField(default=False)
    advanceBase = serializers.CharField(**MONEY)

    def validate_emrNumber(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Required')
        return v

    def validate_firstName(self, v):
        return clean_text(v)

    def validate_lastName(self, v):
        return clean_text(v)

    def validate_referredBy(self, v):
        return clean_text(v)

    def validate(self, attrs):
        errors = {}
        if attrs.get('insurance') == 'Yes' and attrs.get('insuranceType') == 'Advance':
            co_pay = parse_number(attrs.get('coPayPercent'))
            if co_pay is None or not 0 <= co_pay <= 100:
                errors['coPayPercent'] = '0-100 required'
        if attrs.get('membership') == 'Yes':
            start, end = attrs.get('membershipStartDate'), attrs.get('membershipEndDate')
            if not start:
                errors['membershipStartDate'] = 'Required'
            if not end:
                errors['membershipEndDate'] = 'Required'
            if start and end and start >= end:
                errors['membershipEndDate'] = 'End date must be after start date'
        if errors:
            raise serializers.ValidationError(errors)
        if not (attrs.get('invoiceNumber') or '').strip():
            attrs['invoiceNumber'] = generate_invoice_number()
        attrs['insuranceAdvance'] = is_insurance_advance(
            attrs.get('insurance'), attrs.get('insuranceType'), attrs.get('coPayPercent'))
        return attrs


class PaymentSerializer(serializers.Serializer):
    paying = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    paymentMethod = serializers.CharField(max_length=32, required=False, allow_blank=True)
