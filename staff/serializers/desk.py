import bleach
from rest_framework import serializers

from staff.services.claims import STATUSES
from staff.services.pettycash import validate_expense


class EodNoteSerializer(serializers.Serializer):
    note = serializers.CharField(max_length=2000)

    def validate_note(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('Note cannot be empty')
        return v


class EodNoteQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class ExpenseSerializer(serializers.Serializer):
    pettyCashId = serializers.CharField(max_length=64, required=False, allow_blank=True)
    description = serializers.CharField(max_length=500)
    spentAmount = serializers.DecimalField(max_digits=12, decimal_places=2)
    vendorName = serializers.CharField(max_length=128, required=False, allow_blank=True)

    def validate_description(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)

    def validate(self, attrs):
        errors = validate_expense(attrs.get('description'), attrs.get('spentAmount'))
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class ClaimStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=list(STATUSES))
    remark = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['status'] == 'Cancelled' and not (attrs.get('remark') or '').strip():
            raise serializers.ValidationError({'remark': 'A cancellation remark is required'})
        attrs['remark'] = bleach.clean((attrs.get('remark') or '').strip(), tags=set(), strip=True)
        return attrs


class CatalogEntrySerializer(serializers.Serializer):
    id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    package = serializers.CharField(max_length=128, required=False, allow_blank=True)
    treatment = serializers.CharField(max_length=128, required=False, allow_blank=True)
    packagePrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)
    treatmentPrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)

    def validate(self, attrs):
        if not (attrs.get('package') or attrs.get('treatment')):
            raise serializers.ValidationError('A package or a treatment name is required')
        return attrs
