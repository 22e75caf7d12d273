"""Tests for field-name normalization and task list handling."""

import re

import pytest

from agentwizard.normalize import (
    normalize_extraction_fields,
    normalize_field_name,
    parse_tasks_string,
    strip_task_number,
    tasks_to_string,
    to_snake_key,
)
from agentwizard.state import ExtractionField


class TestNormalizeFieldName:

    def test_phone_number_label(self) -> None:
        assert normalize_field_name(" Phone #1 ") == "phone_1"

    def test_display_name_to_key(self) -> None:
        assert normalize_field_name("Email Address") == "email_address"

    @pytest.mark.parametrize(
        "name",
        ["Preferred   Contact\tTime", "Budget ($)", "  Mixed-Case Name! ", "a  b   c"],
    )
    def test_only_safe_characters_survive(self, name: str) -> None:
        key = normalize_field_name(name)
        assert re.fullmatch(r"[a-z0-9_]+", key)
        assert "__" not in key

    def test_variable_names_are_snake_cased(self) -> None:
        assert to_snake_key("Customer Name") == "customer_name"


class TestNormalizeExtractionFields:

    def test_drops_blank_names_and_trims(self) -> None:
        fields = [
            ExtractionField("  Email Address ", "  their email  "),
            ExtractionField("   ", "orphan description"),
            ExtractionField("", ""),
        ]

        assert normalize_extraction_fields(fields) == [
            {"name": "email_address", "description": "their email"},
        ]

    def test_drops_names_that_normalize_to_nothing(self) -> None:
        fields = [ExtractionField("###", ""), ExtractionField("Budget", "")]

        assert normalize_extraction_fields(fields) == [
            {"name": "budget", "description": ""},
        ]


class TestTasks:

    def test_parse_strips_header_and_blank_lines(self) -> None:
        tasks = "##Tasks\n1. Greet the caller\n\n2. Qualify the lead\n"

        assert parse_tasks_string(tasks) == ["1. Greet the caller", "2. Qualify the lead"]

    def test_parse_header_is_case_insensitive(self) -> None:
        assert parse_tasks_string("## task\nOnly one") == ["Only one"]

    def test_strip_task_number(self) -> None:
        assert strip_task_number("12. Book a demo") == "Book a demo"
        assert strip_task_number("Book a demo") == "Book a demo"

    def test_serialize_adds_header_once(self) -> None:
        assert tasks_to_string(["1. Greet", "2. Qualify"]) == "##Tasks\n1. Greet\n2. Qualify"
        assert tasks_to_string(["##Tasks", "1. Greet"]) == "##Tasks\n1. Greet"
        assert tasks_to_string([]) == ""
