from rest_framework import serializers

from ..courses.serializers import CourseSummarySerializer
from .models import CoursePurchase


class CoursePurchaseSerializer(serializers.ModelSerializer):
    course = CourseSummarySerializer(read_only=True)
    buyer = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = CoursePurchase
        fields = [
            "id",
            "course",
            "buyer",
            "amount",
            "currency",
            "status",
            "payment_reference",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
