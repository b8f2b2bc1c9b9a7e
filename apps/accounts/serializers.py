from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Basic user serializer for profile display."""

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'display_name',
            'created_at',
            'last_login',
        ]
        read_only_fields = ['id', 'email', 'created_at', 'last_login']


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation embedded in household payloads."""

    display_name = serializers.CharField(source='get_display_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields
