"""Guest access tokens for a single booking.

A token is HMAC-SHA256 over ``"{booking_id}:{guest email}"`` (email lower
cased), hex encoded. It lets a guest read, move or cancel that booking
without an account, and nothing else.
"""

import hashlib
import hmac
import secrets

from meetwhen.core.config import BOOKING_TOKEN_SECRET

# Without a configured secret, tokens only verify in this process
_secret = (BOOKING_TOKEN_SECRET or secrets.token_hex(32)).encode()


def generate_booking_token(booking_id, email: str) -> str:
    message = f"{booking_id}:{email.strip().lower()}".encode()
    return hmac.new(_secret, message, hashlib.sha256).hexdigest()


def verify_booking_token(token: str, booking_id, email: str) -> bool:
    if not token:
        return False
    expected = generate_booking_token(booking_id, email)
    return hmac.compare_digest(token.encode(), expected.encode())
