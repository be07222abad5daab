"""Event identifier generation."""

import uuid
from typing import Optional


def generate_event_id(company_id: Optional[str] = None, contact_id: Optional[str] = None) -> str:
    """Return ``<company><contact><uuid4>``.

    Every call yields a new identifier, including for identical inputs.
    Uniqueness rests on the random UUID; the store is not consulted.
    """
    return f"{company_id or ''}{contact_id or ''}{uuid.uuid4()}"
