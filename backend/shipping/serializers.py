from __future__ import annotations

from rest_framework import serializers

from companies.models import Company

from .models import Rate


class CompanyScopedSerializer(serializers.Serializer):
    company_id = serializers.IntegerField()

    def validate_company_id(self, value: int):
        if not Company.objects.filter(id=value).exists():
            raise serializers.ValidationError("Invalid company ID.")
        return value


class RateImportSerializer(CompanyScopedSerializer):
    csv_file = serializers.FileField(required=False, allow_null=True, allow_empty_file=True)
    apply_corrections = serializers.BooleanField(required=False, default=False)


class RateListQuerySerializer(CompanyScopedSerializer):
    MAX_LIMIT = 2000

    shipping_option_id = serializers.IntegerField(required=False)
    country = serializers.CharField(required=False, allow_blank=True)
    limit = serializers.IntegerField(required=False, default=1000, min_value=0)
    offset = serializers.IntegerField(required=False, default=0, min_value=0)

    def validate_limit(self, value: int) -> int:
        return min(value, self.MAX_LIMIT)

    def validate_country(self, value: str) -> str:
        return (value or "").strip().upper()


class RateSerializer(serializers.ModelSerializer):
    shipping_option_name = serializers.CharField(source="shipping_option.name", read_only=True)
    weight_range = serializers.CharField(read_only=True)

    class Meta:
        model = Rate
        fields = (
            "id",
            "shipping_option_id",
            "shipping_option_name",
            "country",
            "region",
            "min_range_lbs",
            "max_range_lbs",
            "flat_rate",
            "min_charge",
            "weight_range",
        )


class SortPositionSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    position = serializers.IntegerField(min_value=0)


class SortOrderSerializer(CompanyScopedSerializer):
    country_code = serializers.CharField(max_length=2)
    positions = SortPositionSerializer(many=True)

    def validate_country_code(self, value: str) -> str:
        return value.strip().upper()
