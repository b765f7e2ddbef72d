"""Guest session identifiers.

Guest carts are keyed by an opaque session id issued to the browser. Issuing
the id is the storefront's job; here we only check that a presented id is a
well-formed UUID v4 and that it has not outlived the configured session age.
"""

import re
from datetime import UTC, datetime
from uuid import uuid4

from protean.exceptions import ValidationError

from ordering import settings

_UUID_V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


def generate_session_id() -> str:
    return str(uuid4())


def is_valid_session_id(session_id) -> bool:
    return isinstance(session_id, str) and bool(_UUID_V4.match(session_id))


def validate_guest_session(session_id, issued_at: datetime | None = None, now: datetime | None = None) -> str:
    """Return the normalized session id, or raise ValidationError.

    ``issued_at`` is optional; when given, the session must be younger than
    ``GUEST_SESSION_MAX_AGE_DAYS``. Naive datetimes are taken to be UTC.
    """
    if not is_valid_session_id(session_id):
        raise ValidationError({"session_id": ["Session id is malformed"]})

    if issued_at is not None:
        now = now or datetime.now(UTC)
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=UTC)
        if issued_at > now:
            raise ValidationError({"session_id": ["Session was issued in the future"]})
        if now - issued_at > settings.guest_session_max_age():
            raise ValidationError({"session_id": ["Session has expired"]})

    return session_id.lower()
