"""
Tests for observation models: value classification, formatting and sorting.
"""

from datetime import datetime, timezone

from smart_vitals.models.observation import (
    ComponentValue,
    ObservationEntry,
    QuantityValue,
    StringValue,
    UnknownValue,
    format_value,
    parse_effective,
    parse_value,
    sort_entries,
)


class TestParseValue:
    """Tests for parse_value."""

    def test_blood_pressure_components(self, blood_pressure_observation):
        """Should classify systolic/diastolic components."""
        value = parse_value(blood_pressure_observation)
        assert isinstance(value, ComponentValue)
        assert value.systolic.value == 120
        assert value.diastolic.value == 80

    def test_quantity(self):
        """Should classify valueQuantity."""
        value = parse_value({"valueQuantity": {"value": 36.6, "unit": "degC"}})
        assert value == QuantityValue(value=36.6, unit="degC")

    def test_string(self):
        """Should classify valueString."""
        assert parse_value({"valueString": "Normal"}) == StringValue(text="Normal")

    def test_unknown(self):
        """Should classify a resource without any value as unknown."""
        assert isinstance(parse_value({}), UnknownValue)

    def test_quantity_without_value_is_unknown(self):
        """A valueQuantity without a number carries no quantity."""
        assert isinstance(parse_value({"valueQuantity": {"unit": "degC"}}), UnknownValue)

    def test_incomplete_components_fall_back_to_quantity(self):
        """Only systolic present: components are ignored in favour of valueQuantity."""
        resource = {
            "component": [
                {
                    "code": {"coding": [{"code": "8480-6"}]},
                    "valueQuantity": {"value": 120, "unit": "mmHg"},
                }
            ],
            "valueQuantity": {"value": 72, "unit": "/min"},
        }
        assert parse_value(resource) == QuantityValue(value=72, unit="/min")


class TestFormatValue:
    """Tests for value formatting."""

    def test_blood_pressure(self, blood_pressure_observation):
        """Should render systolic/diastolic with unit."""
        assert format_value(parse_value(blood_pressure_observation)) == "120/80 mmHg"

    def test_blood_pressure_default_unit(self):
        """Should default the blood pressure unit to mmHg."""
        resource = {
            "component": [
                {"code": {"coding": [{"code": "8480-6"}]}, "valueQuantity": {"value": 118}},
                {"code": {"coding": [{"code": "8462-4"}]}, "valueQuantity": {"value": 76}},
            ]
        }
        assert format_value(parse_value(resource)) == "118/76 mmHg"

    def test_quantity(self):
        """Should render value and unit."""
        assert format_value(parse_value({"valueQuantity": {"value": 36.6, "unit": "degC"}})) == "36.6 degC"

    def test_quantity_without_unit(self):
        """Should render the bare value when no unit is given."""
        assert format_value(QuantityValue(value=98)) == "98"

    def test_integral_float_rendered_without_fraction(self):
        """Should render 37.0 as 37."""
        assert format_value(QuantityValue(value=37.0, unit="degC")) == "37 degC"

    def test_string(self):
        """Should render the raw string."""
        assert format_value(StringValue(text="Elevated")) == "Elevated"

    def test_not_available(self):
        """Should report missing values as not available."""
        assert format_value(parse_value({"code": {"text": "Pulse"}})) == "Not available"


class TestParseEffective:
    """Tests for effectiveDateTime parsing."""

    def test_zulu_instant(self):
        """Should parse a Z-suffixed instant as UTC."""
        parsed = parse_effective("2024-01-15T10:30:00Z")
        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_offset_instant(self):
        """Should keep explicit offsets."""
        parsed = parse_effective("2024-01-15T10:30:00+02:00")
        assert parsed.utcoffset().total_seconds() == 7200

    def test_date_only(self):
        """Should treat a date as midnight UTC."""
        assert parse_effective("2024-01-15") == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_year_month(self):
        """A year-month value is the first instant of that month."""
        assert parse_effective("2024-05") == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_year_only(self):
        """A bare year is the first instant of that year."""
        assert parse_effective("2024") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_invalid_month(self):
        assert parse_effective("2024-13") is None

    def test_reduced_precision_entry_sorts_by_date(self, make_observation):
        """A reduced-precision reading keeps its date and sorts above older readings."""
        recent = ObservationEntry.from_resource(make_observation("recent", "2024-05"))
        old = ObservationEntry.from_resource(make_observation("old", "2014-01-01T00:00:00Z"))

        assert recent.display_date == "2024-05-01 00:00"
        assert [e.id for e in sort_entries([old, recent])] == ["recent", "old"]

    def test_unparseable(self):
        """Should return None for garbage or missing values."""
        assert parse_effective("yesterday") is None
        assert parse_effective(None) is None
        assert parse_effective("") is None


class TestObservationEntry:
    """Tests for ObservationEntry."""

    def test_from_resource(self, make_observation):
        """Should pick up id, name, date and value."""
        entry = ObservationEntry.from_resource(make_observation("obs-1", "2024-01-15T10:30:00Z"))
        assert entry.id == "obs-1"
        assert entry.display_name == "Temperature Oral"
        assert entry.formatted_value == "36.6 degC"
        assert entry.display_date == "2024-01-15 10:30"

    def test_missing_fields_degrade(self):
        """Should fall back to placeholders instead of failing."""
        entry = ObservationEntry.from_resource({"resourceType": "Observation"})
        assert entry.id is None
        assert entry.display_name == "Unknown observation"
        assert entry.display_date == "Unknown date"
        assert entry.formatted_value == "Not available"

    def test_to_view(self, make_observation):
        """Should produce the presentation model."""
        view = ObservationEntry.from_resource(make_observation("obs-1", "2024-01-15T10:30:00Z")).to_view()
        assert view.id == "obs-1"
        assert view.name == "Temperature Oral"
        assert view.value == "36.6 degC"
        assert view.effective == "2024-01-15T10:30:00+00:00"


class TestSortEntries:
    """Tests for descending sort by effective time."""

    def _entries(self, make_observation, *specs):
        return [ObservationEntry.from_resource(make_observation(i, d)) for i, d in specs]

    def test_descending(self, make_observation):
        """Should order newest first."""
        entries = self._entries(
            make_observation,
            ("a", "2024-01-01T00:00:00Z"),
            ("b", "2024-03-01T00:00:00Z"),
            ("c", "2024-02-01T00:00:00Z"),
        )
        assert [e.id for e in sort_entries(entries)] == ["b", "c", "a"]

    def test_missing_date_sorts_last(self, make_observation):
        """Undated entries compare as the earliest instant."""
        entries = self._entries(
            make_observation,
            ("undated", None),
            ("old", "1990-01-01T00:00:00Z"),
            ("new", "2024-01-01T00:00:00Z"),
        )
        assert [e.id for e in sort_entries(entries)] == ["new", "old", "undated"]

    def test_merge_of_sorted_batches(self, make_observation):
        """Merging two descending batches yields a descending result."""
        first = self._entries(
            make_observation,
            ("a", "2024-05-01T00:00:00Z"),
            ("b", "2024-03-01T00:00:00Z"),
            ("c", None),
        )
        second = self._entries(
            make_observation,
            ("d", "2024-04-01T00:00:00Z"),
            ("e", "2024-01-01T00:00:00Z"),
        )
        merged = sort_entries([*first, *second])
        keys = [entry.sort_key for entry in merged]
        assert keys == sorted(keys, reverse=True)
        assert [e.id for e in merged] == ["a", "d", "b", "e", "c"]

    def test_mixed_offsets_compare_by_instant(self, make_observation):
        """Offsets are normalised when comparing."""
        entries = self._entries(
            make_observation,
            ("utc", "2024-01-01T10:00:00Z"),
            ("plus2", "2024-01-01T11:00:00+02:00"),  # 09:00 UTC
        )
        assert [e.id for e in sort_entries(entries)] == ["utc", "plus2"]
