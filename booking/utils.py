"""
Booking utilities
"""

import secrets

# No 0/O or 1/I, which read alike on labels
TRACKING_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
TRACKING_PREFIX = 'RTN-'


def generate_tracking_number(length: int = 8) -> str:
    """
    Generate a customer-facing tracking number, e.g. RTN-7KQ2M9XH.
    """
    suffix = ''.join(secrets.choice(TRACKING_ALPHABET) for _ in range(length))
    return f"{TRACKING_PREFIX}{suffix}"
