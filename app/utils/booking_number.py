"""Payment reference generation."""

import random
import string
import time


def generate_payment_reference(prefix: str = "BKG") -> str:
    """Generate a payment reference like 'BKG-1718000000000-K9M2A7Q'.

    Millisecond timestamp plus 7 random characters; the unique index on
    ``bookings.payment_reference`` rejects the rare collision.
    """
    timestamp = int(time.time() * 1000)
    chars = string.ascii_uppercase + string.digits
    random_part = "".join(random.choices(chars, k=7))
    return f"{prefix}-{timestamp}-{random_part}"
