"""
CORE App - Custom User Model for ReturnIt

Handles: Users (Customers, Drivers, Admins) and in-app Notifications
"""

import uuid
import logging
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models, transaction
from django.core.validators import RegexValidator

logger = logging.getLogger(__name__)


class UserRole(models.TextChoices):
    """User role enumeration."""
    ADMIN = 'ADMIN', 'Administrator'
    CUSTOMER = 'CUSTOMER', 'Customer'
    DRIVER = 'DRIVER', 'Driver'


class PayoutPreference(models.TextChoices):
    INSTANT = 'instant', 'Instant'
    WEEKLY = 'weekly', 'Weekly'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as primary identifier.

    Drivers carry availability and approval flags; only approved drivers
    can be assigned to orders.
    """

    phone_regex = RegexValidator(
        regex=r'^\+?1?[0-9]{10,15}$',
        message="Format: +1XXXXXXXXXX"
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, verbose_name="Email")

    # Profile
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=20, blank=True, validators=[phone_regex])
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        verbose_name="Role"
    )

    # Driver fields
    is_online = models.BooleanField(default=False)
    is_approved = models.BooleanField(
        default=False,
        help_text="Drivers must be approved before they can be assigned"
    )
    payout_preference = models.CharField(
        max_length=10,
        choices=PayoutPreference.choices,
        default=PayoutPreference.WEEKLY
    )

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.full_name or self.email} ({self.role})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# ===========================================
# NOTIFICATIONS
# ===========================================

class NotificationType(models.TextChoices):
    ORDER_UPDATE = 'order_update', 'Order update'
    DRIVER_ASSIGNED = 'driver_assigned', 'Driver assigned'
    PICKUP_COMPLETE = 'pickup_complete', 'Pickup complete'
    REFUND_PROCESSED = 'refund_processed', 'Refund processed'
    GENERAL = 'general', 'General'


class Notification(models.Model):
    """In-app notification shown in the customer notification center."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(
        max_length=30,
        choices=NotificationType.choices,
        default=NotificationType.GENERAL
    )
    title = models.CharField(max_length=200)
    message = models.TextField()
    order = models.ForeignKey(
        'booking.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.type} → {self.user.email}: {self.title}"


class NotificationService:
    """Creates notifications without ever failing the caller."""

    @staticmethod
    def notify(user, title, message, notification_type=NotificationType.GENERAL, order=None):
        try:
            # Savepoint keeps an enclosing transaction usable on failure
            with transaction.atomic():
                return Notification.objects.create(
                    user=user,
                    type=notification_type,
                    title=title,
                    message=message,
                    order=order,
                )
        except Exception as e:
            logger.error(f"Failed to create notification for {user}: {e}")
            return None
