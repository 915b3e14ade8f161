"""
Pricing Engine for ReturnIt

Calculates booking prices from the service tier, package mix and the
pickup → store distance (static ZIP lookup + Haversine).
"""

import math
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional
from django.conf import settings

from .zip_codes import lookup_zip

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0')

EARTH_RADIUS_MILES = 3959
AVERAGE_SPEED_MPH = 25
PICKUP_DROPOFF_BUFFER_MIN = 10
TIME_CAP_BUFFER_MIN = 10


class PricingError(ValueError):
    """Raised when booking inputs cannot be priced."""


@dataclass(frozen=True)
class TierRate:
    price: Decimal
    driver_payout: Decimal


SERVICE_TIERS = {
    'standard': TierRate(Decimal('6.99'), Decimal('5.00')),
    'priority': TierRate(Decimal('9.99'), Decimal('8.00')),
    'instant': TierRate(Decimal('12.99'), Decimal('10.00')),
}

SIZE_UPCHARGES = {
    'S': Decimal('0.00'),
    'M': Decimal('0.00'),
    'L': Decimal('2.00'),
    'XL': Decimal('4.00'),
}

# (minimum declared value, size), checked top-down
VALUE_SIZE_THRESHOLDS = (
    (Decimal('300'), 'XL'),
    (Decimal('100'), 'L'),
    (Decimal('25'), 'M'),
)


def _to_decimal(value, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value if value is not None else 0))
    except ArithmeticError:
        raise PricingError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise PricingError(f"{field_name} must be a finite number")
    return amount


def size_from_value(value: Decimal) -> str:
    """Infer a package size from the declared item value."""
    for threshold, size in VALUE_SIZE_THRESHOLDS:
        if value >= threshold:
            return size
    return 'S'


@dataclass
class BookingItem:
    """One item in a booking. Size is optional; value decides it when absent."""

    value: Decimal = ZERO
    size: Optional[str] = None
    description: str = ''

    def resolved_size(self) -> str:
        if self.size:
            size = self.size.upper()
            if size not in SIZE_UPCHARGES:
                raise PricingError(f"Unknown item size: {self.size}")
            return size
        return size_from_value(_to_decimal(self.value, 'value'))


@dataclass
class RouteEstimate:
    distance_miles: float
    estimated_minutes: int
    time_cap_minutes: int
    distance_estimated: bool = False


@dataclass
class PriceBreakdown:
    """
    Price of a booking, component by component.

    Invariants (exact on unrounded values):
        total = subtotal + fuel_fee + tax + tip + service_fee
        service_fee = total * service_fee_rate
    """

    service_tier: str
    is_donation: bool
    distance_miles: float
    base_price: Decimal = ZERO
    size_upcharge: Decimal = ZERO
    multi_package_fee: Decimal = ZERO
    subtotal: Decimal = ZERO
    fuel_fee: Decimal = ZERO
    tax: Decimal = ZERO
    tip: Decimal = ZERO
    service_fee: Decimal = ZERO
    total: Decimal = ZERO
    driver_payout: Decimal = ZERO
    item_sizes: list = field(default_factory=list)

    @property
    def platform_revenue(self) -> Decimal:
        return self.total - self.driver_payout - self.tax

    def rounded(self) -> 'PriceBreakdown':
        """
        Round every component to cents.

        The total is re-summed from the rounded parts so the stored record
        still satisfies the additive invariant.
        """
        def cents(value: Decimal) -> Decimal:
            return value.quantize(CENT, rounding=ROUND_HALF_UP)

        base_price = cents(self.base_price)
        size_upcharge = cents(self.size_upcharge)
        multi_package_fee = cents(self.multi_package_fee)
        subtotal = base_price + size_upcharge + multi_package_fee
        fuel_fee = cents(self.fuel_fee)
        tax = cents(self.tax)
        tip = cents(self.tip)
        service_fee = cents(self.service_fee)

        return replace(
            self,
            base_price=base_price,
            size_upcharge=size_upcharge,
            multi_package_fee=multi_package_fee,
            subtotal=subtotal,
            fuel_fee=fuel_fee,
            tax=tax,
            tip=tip,
            service_fee=service_fee,
            total=subtotal + fuel_fee + tax + tip + service_fee,
            driver_payout=cents(self.driver_payout),
        )

    def as_dict(self) -> dict:
        return {
            'service_tier': self.service_tier,
            'is_donation': self.is_donation,
            'distance_miles': self.distance_miles,
            'base_price': self.base_price,
            'size_upcharge': self.size_upcharge,
            'multi_package_fee': self.multi_package_fee,
            'subtotal': self.subtotal,
            'fuel_fee': self.fuel_fee,
            'tax': self.tax,
            'tip': self.tip,
            'service_fee': self.service_fee,
            'total': self.total,
            'driver_payout': self.driver_payout,
            'platform_revenue': self.platform_revenue,
            'item_sizes': list(self.item_sizes),
        }


class PricingEngine:
    """
    Booking price calculation.

    Formula:
        subtotal    = TierPrice + SizeUpcharges + MultiPackageFee
        fuel_fee    = Max(FuelMinimum, Distance * FuelRatePerMile)
        tax         = (subtotal + fuel_fee) * SalesTaxRate
        service_fee = (subtotal + fuel_fee + tax + tip) * r / (1 - r)
        total       = subtotal + fuel_fee + tax + tip + service_fee

    Donations waive every fee: total = tip.
    """

    def __init__(self):
        self.service_fee_rate = Decimal(str(settings.PRICING_SERVICE_FEE_RATE))
        self.fuel_fee_minimum = Decimal(str(settings.PRICING_FUEL_FEE_MINIMUM))
        self.fuel_rate_per_mile = Decimal(str(settings.PRICING_FUEL_RATE_PER_MILE))
        self.multi_package_fee_rate = Decimal(str(settings.PRICING_MULTI_PACKAGE_FEE))
        self.sales_tax_rate = Decimal(str(settings.PRICING_SALES_TAX_RATE))
        self.road_factor = float(settings.PRICING_ROAD_FACTOR)

    # ==========================================
    # Distance
    # ==========================================

    def get_haversine_distance(self, lat1: float, lng1: float, lat2: float, lng2: float) -> float:
        """
        Straight-line (great-circle) distance in miles.
        """
        lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
        dlat = math.radians(lat2 - lat1)
        dlng = math.radians(lng2 - lng1)

        a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_MILES * c

    def estimate_route(self, pickup_zip: str, store_zip: str) -> RouteEstimate:
        """
        Estimate road distance and drive time between two ZIP centroids.

        Road distance is the straight line times the road factor, rounded to
        a tenth of a mile. Drive time assumes 25 mph city speed plus a
        10 minute pickup/drop-off buffer.
        """
        pickup_lat, pickup_lng, pickup_found = lookup_zip(pickup_zip)
        store_lat, store_lng, store_found = lookup_zip(store_zip)

        crow_miles = self.get_haversine_distance(pickup_lat, pickup_lng, store_lat, store_lng)
        road_miles = crow_miles * self.road_factor

        driving_minutes = (road_miles / AVERAGE_SPEED_MPH) * 60
        estimated_minutes = int(math.ceil(driving_minutes + PICKUP_DROPOFF_BUFFER_MIN))

        return RouteEstimate(
            distance_miles=round(road_miles, 1),
            estimated_minutes=estimated_minutes,
            time_cap_minutes=estimated_minutes + TIME_CAP_BUFFER_MIN,
            distance_estimated=not (pickup_found and store_found),
        )

    # ==========================================
    # Fee components
    # ==========================================

    def get_tier(self, service_tier: str) -> TierRate:
        try:
            return SERVICE_TIERS[service_tier]
        except KeyError:
            raise PricingError(f"Unknown service tier: {service_tier}")

    def calculate_multi_package_fee(self, box_count: int, bag_count: int) -> Decimal:
        """$3.00 for every package after the first."""
        packages = box_count + bag_count
        if packages > 1:
            return (packages - 1) * self.multi_package_fee_rate
        return ZERO

    def calculate_fuel_fee(self, distance_miles: float) -> Decimal:
        """Per-mile fuel charge with a floor."""
        per_mile = Decimal(str(distance_miles)) * self.fuel_rate_per_mile
        return max(self.fuel_fee_minimum, per_mile)

    def calculate_service_fee(self, pre_fee_amount: Decimal) -> Decimal:
        """
        Reverse-solve the service fee so it is exactly service_fee_rate of
        the final total, not of the pre-fee amount.
        """
        rate = self.service_fee_rate
        return pre_fee_amount * rate / (1 - rate)

    # ==========================================
    # Price calculation
    # ==========================================

    def calculate_price(
        self,
        service_tier: str = 'standard',
        items: Iterable[BookingItem] = (),
        box_count: int = 0,
        bag_count: int = 0,
        tip=ZERO,
        pickup_zip: str = '',
        store_zip: str = '',
        is_donation: bool = False,
        distance_miles: Optional[float] = None,
    ) -> PriceBreakdown:
        """
        Calculate the full price breakdown for a booking.

        Args:
            service_tier: 'standard', 'priority' or 'instant'
            items: BookingItem list (size upcharges)
            box_count, bag_count: Package counts
            tip: Optional driver tip
            pickup_zip, store_zip: Used for distance when distance_miles is None
            is_donation: Waive every fee except the tip
            distance_miles: Pre-computed road distance

        Returns:
            Unrounded PriceBreakdown (call .rounded() before persisting)

        Raises:
            PricingError: On negative amounts, unknown tier or size
        """
        tip = _to_decimal(tip, 'tip')
        if tip < 0:
            raise PricingError("Tip cannot be negative")
        if box_count < 0 or bag_count < 0:
            raise PricingError("Package counts cannot be negative")

        items = list(items)
        for item in items:
            if _to_decimal(item.value, 'value') < 0:
                raise PricingError("Item value cannot be negative")

        tier = self.get_tier(service_tier)
        item_sizes = [item.resolved_size() for item in items]

        if distance_miles is None:
            distance_miles = self.estimate_route(pickup_zip, store_zip).distance_miles

        if is_donation:
            return PriceBreakdown(
                service_tier=service_tier,
                is_donation=True,
                distance_miles=distance_miles,
                tip=tip,
                total=tip,
                driver_payout=tip,
                item_sizes=item_sizes,
            )

        size_upcharge = sum((SIZE_UPCHARGES[size] for size in item_sizes), ZERO)
        multi_package_fee = self.calculate_multi_package_fee(box_count, bag_count)
        subtotal = tier.price + size_upcharge + multi_package_fee

        fuel_fee = self.calculate_fuel_fee(distance_miles)
        tax = (subtotal + fuel_fee) * self.sales_tax_rate

        pre_fee_amount = subtotal + fuel_fee + tax + tip
        service_fee = self.calculate_service_fee(pre_fee_amount)

        return PriceBreakdown(
            service_tier=service_tier,
            is_donation=False,
            distance_miles=distance_miles,
            base_price=tier.price,
            size_upcharge=size_upcharge,
            multi_package_fee=multi_package_fee,
            subtotal=subtotal,
            fuel_fee=fuel_fee,
            tax=tax,
            tip=tip,
            service_fee=service_fee,
            total=pre_fee_amount + service_fee,
            driver_payout=tier.driver_payout + tip,
            item_sizes=item_sizes,
        )


# Singleton instance
pricing_engine = PricingEngine()
