import bleach
from rest_framework import serializers


class TreatmentLineSerializer(serializers.Serializer):
    treatmentName = serializers.CharField(max_length=128)
    unitCount = serializers.IntegerField(min_value=1, default=1)
    unitPrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)

    def validate_treatmentName(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('Required')
        return v


class MembershipCreateSerializer(serializers.Serializer):
    emrNumber = serializers.CharField(max_length=64)
    packageName = serializers.CharField(max_length=128)
    packageAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    paidAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    paymentMethod = serializers.CharField(max_length=32, required=False, allow_blank=True)
    packageStartDate = serializers.DateField(required=False, allow_null=True)
    packageEndDate = serializers.DateField(required=False, allow_null=True)
    treatments = TreatmentLineSerializer(many=True, required=False)

    def validate(self, attrs):
        start, end = attrs.get('packageStartDate'), attrs.get('packageEndDate')
        if start and end and start >= end:
            raise serializers.ValidationError({'packageEndDate': 'End date must be after start date'})
        return attrs


class AddTreatmentsSerializer(serializers.Serializer):
    treatments = TreatmentLineSerializer(many=True)
    paidAmount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    paymentMethod = serializers.CharField(max_length=32, required=False, allow_blank=True)


class TransferSerializer(serializers.Serializer):
    toEmr = serializers.CharField(max_length=64)
    toName = serializers.CharField(max_length=128, required=False, allow_blank=True)
    # 0 means transfer everything that is left
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    note = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate_note(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)
