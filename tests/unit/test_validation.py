"""Tests for entry payload validation."""

from __future__ import annotations

import math

import pytest

from daybook.core.errors import ValidationError
from daybook.core.validation import RESERVED_FIELDS, validate_entry_payload


class TestValidPayloads:
    def test_nested_metrics(self):
        payload = validate_entry_payload({"name": "apple", "metrics": {"calories": 95}})

        assert payload.name == "apple"
        assert payload.metrics == {"calories": 95}
        assert payload.media_ref is None
        assert payload.attributes == {}

    def test_top_level_numeric_fields_become_metrics(self):
        """Numeric top-level fields are folded into metrics."""
        payload = validate_entry_payload({"name": "banana", "calories": 105, "protein": 1.3})

        assert payload.metrics == {"calories": 105, "protein": 1.3}

    def test_descriptive_fields_become_attributes(self):
        payload = validate_entry_payload(
            {"name": "oatmeal", "calories": 150, "meal": "breakfast", "media_ref": "img-42"}
        )

        assert payload.attributes == {"meal": "breakfast"}
        assert payload.media_ref == "img-42"

    def test_name_is_stripped(self):
        assert validate_entry_payload({"name": "  tea  ", "calories": 0}).name == "tea"

    def test_zero_metric_allowed(self):
        assert validate_entry_payload({"name": "water", "calories": 0}).metrics == {"calories": 0}

    def test_booleans_are_not_metrics(self):
        payload = validate_entry_payload({"name": "soup", "calories": 80, "homemade": True})

        assert payload.metrics == {"calories": 80}
        assert payload.attributes == {"homemade": True}


class TestInvalidPayloads:
    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            validate_entry_payload(["apple", 95])

    def test_missing_name(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_entry_payload({"calories": 95})

        assert any("name" in error for error in exc_info.value.errors)

    @pytest.mark.parametrize("name", ["", "   ", 42, None])
    def test_bad_name(self, name):
        with pytest.raises(ValidationError):
            validate_entry_payload({"name": name, "calories": 95})

    def test_no_metrics(self):
        with pytest.raises(ValidationError, match="numeric metric"):
            validate_entry_payload({"name": "apple", "meal": "lunch"})

    def test_negative_top_level_metric(self):
        with pytest.raises(ValidationError, match="minimum"):
            validate_entry_payload({"name": "apple", "calories": -5})

    def test_negative_nested_metric(self):
        with pytest.raises(ValidationError):
            validate_entry_payload({"name": "apple", "metrics": {"calories": -1}})

    def test_non_numeric_nested_metric(self):
        with pytest.raises(ValidationError):
            validate_entry_payload({"name": "apple", "metrics": {"calories": "lots"}})

    @pytest.mark.parametrize("value", [math.inf, math.nan, 10**400])
    def test_non_finite_metric(self, value):
        with pytest.raises(ValidationError, match="finite"):
            validate_entry_payload({"name": "apple", "calories": value})

    def test_nested_metric_beyond_float_range(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_entry_payload({"name": "apple", "metrics": {"calories": 10**400}})

        assert exc_info.value.errors == ["[metrics -> calories] must be a finite number"]

    @pytest.mark.parametrize("field", sorted(RESERVED_FIELDS))
    def test_reserved_fields_rejected(self, field):
        with pytest.raises(ValidationError, match="reserved"):
            validate_entry_payload({"name": "apple", "calories": 95, field: "x"})

    def test_all_errors_collected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_entry_payload({"id": "x", "calories": -1})

        assert len(exc_info.value.errors) >= 3
