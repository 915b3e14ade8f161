"""
Core App Serializers - Users & Notifications
"""

from decimal import Decimal
from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

from .models import Notification, UserRole

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (read operations)."""

    full_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'role', 'is_online', 'is_approved', 'payout_preference',
            'is_active', 'date_joined'
        ]
        read_only_fields = ['id', 'email', 'role', 'is_approved', 'date_joined']


class UserCreateSerializer(serializers.ModelSerializer):
    """Serializer for customer and driver registration."""

    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password]
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'first_name', 'last_name', 'phone', 'role']
        read_only_fields = ['id']

    def validate_role(self, value):
        if value == UserRole.ADMIN:
            raise serializers.ValidationError("Admin accounts cannot self-register.")
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class CustomerListSerializer(serializers.ModelSerializer):
    """Admin customer list row with order aggregates."""

    full_name = serializers.ReadOnlyField()
    order_count = serializers.IntegerField(read_only=True)
    total_spent = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'is_active', 'date_joined', 'order_count', 'total_spent'
        ]

    def get_total_spent(self, obj):
        return str(obj.total_spent or Decimal('0.00'))


class DriverListSerializer(serializers.ModelSerializer):
    """Admin driver list row."""

    full_name = serializers.ReadOnlyField()
    completed_orders = serializers.IntegerField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'is_online', 'is_approved', 'payout_preference', 'date_joined',
            'completed_orders'
        ]


class NotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'is_read', 'order', 'created_at']
        read_only_fields = fields
