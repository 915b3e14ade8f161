from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import uuid


def money(verbose_name):
    return models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, verbose_name=verbose_name)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tracking_number', models.CharField(editable=False, max_length=16, unique=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('assigned', 'Driver assigned'), ('picked_up', 'Picked up'), ('in_transit', 'In transit'), ('delivered', 'Delivered to store'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20)),
                ('booking_type', models.CharField(choices=[('return', 'Return'), ('exchange', 'Exchange'), ('donation', 'Donation')], default='return', max_length=20)),
                ('service_tier', models.CharField(choices=[('standard', 'Standard'), ('priority', 'Priority'), ('instant', 'Instant')], default='standard', max_length=20)),
                ('pickup_street_address', models.CharField(max_length=255)),
                ('pickup_city', models.CharField(max_length=100)),
                ('pickup_state', models.CharField(max_length=2, validators=[django.core.validators.RegexValidator(message='State must be 2 letters', regex='^[A-Z]{2}$')])),
                ('pickup_zip_code', models.CharField(max_length=5, validators=[django.core.validators.RegexValidator(message='ZIP must be 5 digits', regex='^\\d{5}$')])),
                ('pickup_instructions', models.TextField(blank=True)),
                ('retailer', models.CharField(blank=True, max_length=150)),
                ('store_zip_code', models.CharField(blank=True, max_length=5, validators=[django.core.validators.RegexValidator(message='ZIP must be 5 digits', regex='^\\d{5}$')])),
                ('box_count', models.PositiveIntegerField(default=0)),
                ('bag_count', models.PositiveIntegerField(default=0)),
                ('tip', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('distance_miles', models.FloatField(default=0.0)),
                ('base_price', money('Tier price')),
                ('size_upcharge', money('Size upcharges')),
                ('multi_package_fee', money('Multi-package fee')),
                ('subtotal', money('Subtotal')),
                ('fuel_fee', money('Fuel fee')),
                ('tax', money('Sales tax')),
                ('service_fee', money('Service fee')),
                ('total', money('Total')),
                ('driver_payout', money('Driver payout')),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('refunded', 'Refunded'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('picked_up_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to=settings.AUTH_USER_MODEL)),
                ('driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('description', models.CharField(blank=True, max_length=255)),
                ('size', models.CharField(choices=[('S', 'Small'), ('M', 'Medium'), ('L', 'Large'), ('XL', 'Extra large')], default='S', max_length=2)),
                ('value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='booking.order')),
            ],
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['status', 'created_at'], name='booking_ord_status_3c4f1a_idx'),
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['driver', 'status'], name='booking_ord_driver__8e2b7d_idx'),
        ),
    ]
