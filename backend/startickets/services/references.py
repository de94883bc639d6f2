"""
Customer-facing identifiers for bookings and tickets.

Pure functions: nothing here touches the database. Uniqueness of booking
references is enforced by a unique constraint and retried by the assembler.
"""

import random
from datetime import datetime, timezone
from typing import Optional


def generate_booking_reference(now: Optional[datetime] = None) -> str:
    """BK + UTC timestamp to the second + 4-digit random suffix."""
    now = now or datetime.now(timezone.utc)
    return f"BK{now:%Y%m%d%H%M%S}{random.randint(1000, 9999)}"


def generate_ticket_number(booking_id: int, booking_detail_id: int, sequence: int) -> str:
    """Fixed-width, zero-padded so ticket numbers sort by booking, line, seat."""
    return f"TK{booking_id:08d}{booking_detail_id:08d}{sequence:03d}"


def generate_qr_payload(booking_reference: str, line_number: int, sequence: int) -> str:
    # The line number keeps payloads unique across lines of one booking
    return f"{booking_reference}-{line_number:02d}-{sequence:02d}"
