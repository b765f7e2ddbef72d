"""Who is checking out.

A checkout is made either by an authenticated account or by a guest holding
an anonymous session. The two are handled differently all the way through
the pipeline, so they are separate types rather than one type with optional
fields.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class GuestContact:
    email: str
    first_name: str
    last_name: str
    phone: str | None = None

    def as_dict(self) -> dict:
        return {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class Authenticated:
    account_id: str


@dataclass(frozen=True)
class Guest:
    session_id: str
    contact: GuestContact | None = None
    session_issued_at: datetime | None = None


Caller = Authenticated | Guest
