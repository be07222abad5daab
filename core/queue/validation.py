"""Header validation for sync requests.

Inbound requests identify the ERP sync target through headers. Each field
accepts a fixed, ordered list of header-name aliases; header names are
compared case-insensitively and the first non-empty alias wins.
"""

from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as ModelValidationError

from core.models.work_item import SyncParameters


# Canonical name -> accepted aliases, in lookup order.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "COMPANY_ID": ("company_id", "company-id"),
    "CONTACT_ID": ("contact_id", "contact-id"),
    "TABLE_NAME": ("table_name", "table-name"),
    "STATUS": ("status",),
}


def _lowercase_view(fields: Mapping) -> Dict[str, Any]:
    """Lower-case the keys; when two keys collide the first one seen is kept."""
    view: Dict[str, Any] = {}
    for key, value in fields.items():
        if not isinstance(key, str):
            continue
        view.setdefault(key.lower(), value)
    return view


def _first_present(view: Dict[str, Any], aliases: Tuple[str, ...]) -> Optional[str]:
    for alias in aliases:
        value = view.get(alias)
        if value:
            return value
    return None


def extract_fields(fields: Mapping) -> Dict[str, Optional[str]]:
    """Resolve every recognized field from a header mapping.

    Unrecognized headers are dropped. Missing or empty fields resolve to None.
    """
    view = _lowercase_view(fields)
    return {
        canonical: _first_present(view, aliases)
        for canonical, aliases in FIELD_ALIASES.items()
    }


def validate_parameters(fields: Any) -> Optional[SyncParameters]:
    """Validate sync request headers.

    Args:
        fields: Header mapping (plain dict, Starlette Headers, ...)

    Returns:
        SyncParameters with canonical keys, or None when the input is absent,
        not a mapping, lacks a company id or table name, or carries a
        non-string value for a recognized field.
    """
    if fields is None or not isinstance(fields, Mapping):
        return None

    resolved = extract_fields(fields)
    company_id = resolved["COMPANY_ID"]
    contact_id = resolved["CONTACT_ID"]
    table_name = resolved["TABLE_NAME"]

    # Contact presence never changes the outcome; the rule is kept as written.
    if not ((company_id and contact_id) or (company_id and not contact_id)) or not table_name:
        return None

    try:
        return SyncParameters(
            company_id=company_id,
            contact_id=contact_id,
            table_name=table_name,
            status=resolved["STATUS"],
        )
    except ModelValidationError:
        # Present but not a string (e.g. a hand-built dict with numbers)
        return None
