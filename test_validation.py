"""
Request Validation and Identity Tests

Covers header validation (aliases, casing, required fields, dropped keys)
and eventID generation.
"""

import re

import pytest

from core.queue.identity import generate_event_id
from core.queue.validation import extract_fields, validate_parameters

UUID4_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"


class TestValidateParameters:
    """Header validation rules."""

    def test_minimal_valid_headers(self):
        params = validate_parameters({"company_id": "C1", "table_name": "orders"})

        assert params is not None
        assert params.to_dict() == {"COMPANY_ID": "C1", "TABLE_NAME": "orders"}

    def test_all_fields_with_dash_variants(self):
        params = validate_parameters({
            "COMPANY-ID": "C1",
            "CONTACT-ID": "K9",
            "TABLE-NAME": "orders",
            "STATUS": "open",
        })

        assert params.to_dict() == {
            "COMPANY_ID": "C1",
            "CONTACT_ID": "K9",
            "TABLE_NAME": "orders",
            "STATUS": "open",
        }

    def test_unrecognized_headers_are_dropped(self):
        params = validate_parameters({
            "company_id": "C1",
            "table_name": "orders",
            "authorization": "Bearer x",
            "x-extra": "ignored",
        })

        assert set(params.to_dict()) == {"COMPANY_ID", "TABLE_NAME"}

    def test_header_names_are_case_insensitive(self):
        params = validate_parameters({"Company_Id": "C1", "Table-Name": "orders", "Status": "s"})

        assert params.company_id == "C1"
        assert params.table_name == "orders"
        assert params.status == "s"

    def test_first_alias_wins(self):
        params = validate_parameters({
            "company_id": "FIRST",
            "COMPANY-ID": "SECOND",
            "table_name": "orders",
        })

        assert params.company_id == "FIRST"

    def test_empty_value_falls_through_to_next_alias(self):
        params = validate_parameters({
            "company_id": "",
            "COMPANY-ID": "C2",
            "table_name": "orders",
        })

        assert params.company_id == "C2"

    def test_values_are_kept_verbatim(self):
        params = validate_parameters({"company_id": " C1 ", "table_name": "Orders"})

        assert params.company_id == " C1 "
        assert params.table_name == "Orders"

    @pytest.mark.parametrize("headers", [
        {"table_name": "orders"},
        {"contact_id": "K1", "table_name": "orders"},
        {"company_id": "C1"},
        {"company_id": "C1", "contact_id": "K1"},
        {"company_id": "", "table_name": "orders"},
        {"company_id": "C1", "table_name": ""},
        {},
    ])
    def test_missing_company_or_table_is_invalid(self, headers):
        assert validate_parameters(headers) is None

    @pytest.mark.parametrize("value", [None, "company_id=C1", ["company_id", "C1"], 42])
    def test_non_mapping_input_is_invalid(self, value):
        assert validate_parameters(value) is None

    @pytest.mark.parametrize("fields", [
        {"company_id": 5, "table_name": "orders"},
        {"company_id": "C1", "table_name": 7},
        {"company_id": "C1", "table_name": ["orders"]},
        {"company_id": "C1", "contact_id": {"id": 1}, "table_name": "orders"},
        {"company_id": "C1", "table_name": "orders", "status": True},
    ])
    def test_non_string_values_are_invalid(self, fields):
        assert validate_parameters(fields) is None

    def test_contact_presence_does_not_change_outcome(self):
        with_contact = validate_parameters({"company_id": "C1", "contact_id": "K1", "table_name": "t"})
        without_contact = validate_parameters({"company_id": "C1", "table_name": "t"})

        assert with_contact is not None
        assert without_contact is not None
        assert without_contact.contact_id is None
        assert "CONTACT_ID" not in without_contact.to_dict()

    def test_starlette_headers_are_accepted(self):
        from starlette.datastructures import Headers

        headers = Headers(headers={"COMPANY-ID": "C1", "TABLE-NAME": "orders", "host": "x"})
        params = validate_parameters(headers)

        assert params.to_dict() == {"COMPANY_ID": "C1", "TABLE_NAME": "orders"}

    def test_extract_fields_reports_missing_as_none(self):
        resolved = extract_fields({"status": "open"})

        assert resolved == {
            "COMPANY_ID": None,
            "CONTACT_ID": None,
            "TABLE_NAME": None,
            "STATUS": "open",
        }


class TestGenerateEventId:
    """eventID format and uniqueness."""

    def test_prefix_is_company_then_contact(self):
        event_id = generate_event_id("C1", "K7")

        assert re.fullmatch(f"C1K7{UUID4_RE}", event_id)

    def test_missing_parts_become_empty(self):
        assert re.fullmatch(f"C1{UUID4_RE}", generate_event_id("C1", None))
        assert re.fullmatch(UUID4_RE, generate_event_id())

    def test_identical_inputs_yield_distinct_ids(self):
        ids = {generate_event_id("C1", "K1") for _ in range(10_000)}

        assert len(ids) == 10_000
