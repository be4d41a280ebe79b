import datetime
import ipaddress
import uuid
from enum import Enum
from pathlib import Path
from typing import List, Optional

import pytest
from bdd_runner.core.exceptions import (
    CoercionError, InvalidBooleanLiteralError, InvalidEnumValueError, InvalidFormatError,
    UnknownParameterTypeError
)
from bdd_runner.executor.coercion import ArgumentCoercer, ParamType, kind_for_annotation
from bdd_runner.executor.custom_types import CustomTypeRegistry
from bdd_runner.executor.utils.formats import SemanticVersion


class Level(Enum):
    LOW = 1
    HIGH = 3


class Color(Enum):
    RED = "red"
    GREEN = "green"


@pytest.fixture
def custom_types():
    registry = CustomTypeRegistry()
    registry.register_custom_type("priority", "int", {"low": "1", "medium": "2", "high": "3"})
    registry.register_custom_type("Answer", "bool", {"aye": "true", "nay": "false"})
    return registry


@pytest.fixture
def coercer(custom_types):
    return ArgumentCoercer(custom_types)


class TestPrimitiveCoercion:
    """Test text, boolean and numeric kinds"""

    @pytest.mark.parametrize("text,expected", [
        ("true", True), ("FALSE", False), ("yes", True), ("No", False),
        ("on", True), ("off", False), ("enabled", True), ("Disabled", False),
        ("1", True), ("0", False), ("t", True), ("F", False),
    ])
    def test_bool_synonyms(self, coercer, text, expected):
        assert coercer.coerce(text, ParamType("bool")) is expected

    def test_invalid_bool(self, coercer):
        with pytest.raises(InvalidBooleanLiteralError) as exc_info:
            coercer.coerce("maybe", ParamType("bool"))

        assert exc_info.value.kind == "bool"
        assert exc_info.value.value == "maybe"
        assert "maybe" in str(exc_info.value)

    def test_integers(self, coercer):
        assert coercer.coerce("42", ParamType("int")) == 42
        assert coercer.coerce("-7", ParamType("int8")) == -7
        assert coercer.coerce("255", ParamType("uint8")) == 255

    @pytest.mark.parametrize("kind,text", [
        ("int8", "128"),
        ("int8", "-129"),
        ("uint8", "256"),
        ("uint", "-1"),
        ("int", "4.5"),
        ("int", "twelve"),
    ])
    def test_integer_errors(self, coercer, kind, text):
        with pytest.raises(CoercionError) as exc_info:
            coercer.coerce(text, ParamType(kind))

        assert exc_info.value.kind == kind

    def test_floats(self, coercer):
        assert coercer.coerce("3.25", ParamType("float")) == 3.25
        assert coercer.coerce("-.5", ParamType("float64")) == -0.5
        with pytest.raises(CoercionError):
            coercer.coerce("abc", ParamType("float"))

    def test_text_kinds(self, coercer):
        assert coercer.coerce("hello world", ParamType("string")) == "hello world"
        assert coercer.coerce("word", ParamType("word")) == "word"
        assert coercer.coerce("'quoted'", ParamType("quoted")) == "quoted"
        assert coercer.coerce('"double"', ParamType("quoted")) == "double"

    def test_non_participating_group_is_none(self, coercer):
        assert coercer.coerce(None, ParamType("int")) is None

    def test_unknown_kind(self, coercer):
        with pytest.raises(UnknownParameterTypeError):
            coercer.coerce("x", ParamType("nonsense"))

    def test_coerce_all_defaults_to_string(self, coercer):
        values = coercer.coerce_all(("1", "2", "three"), (ParamType("int"), ParamType("float")))
        assert values == [1, 2.0, "three"]


class TestTemporalAndFormatCoercion:
    """Test kinds backed by sub-parsers"""

    def test_time_follows_annotation(self, coercer):
        as_datetime = coercer.coerce("14:30", ParamType("time"))
        as_time = coercer.coerce("14:30", ParamType("time", datetime.time))

        assert as_datetime == datetime.datetime(1, 1, 1, 14, 30)
        assert as_time == datetime.time(14, 30)

    def test_date_follows_annotation(self, coercer):
        assert coercer.coerce("15/01/2024", ParamType("date")) == datetime.datetime(2024, 1, 15)
        assert coercer.coerce("15/01/2024", ParamType("date", datetime.date)) == datetime.date(2024, 1, 15)

    def test_duration_and_timezone(self, coercer):
        assert coercer.coerce("1h30m", ParamType("duration")) == datetime.timedelta(hours=1, minutes=30)
        assert coercer.coerce("Z", ParamType("timezone")) == datetime.timezone.utc

    def test_structured_kinds(self, coercer):
        assert coercer.coerce("0xff", ParamType("hex")) == 255
        assert coercer.coerce("1.2.3", ParamType("semver")) == SemanticVersion(1, 2, 3)
        assert coercer.coerce("a, b", ParamType("csv")) == ["a", "b"]
        assert coercer.coerce('{"a": [1]}', ParamType("json")) == {"a": [1]}
        assert coercer.coerce("10.0.0.1", ParamType("ip")) == ipaddress.ip_address("10.0.0.1")

    def test_invalid_format(self, coercer):
        with pytest.raises(InvalidFormatError) as exc_info:
            coercer.coerce("not-an-email", ParamType("email"))

        assert exc_info.value.kind == "email"


class TestCustomTypeCoercion:
    """Test value-table and enum types"""

    @pytest.mark.parametrize("text", ["high", "HIGH", "High", "3"])
    def test_names_and_values_are_case_insensitive(self, coercer, text):
        assert coercer.coerce(text, ParamType("priority")) == 3

    def test_kind_lookup_is_case_insensitive(self, coercer):
        assert coercer.coerce("aye", ParamType("answer")) is True
        assert coercer.coerce("NAY", ParamType("ANSWER")) is False

    def test_unknown_value(self, coercer):
        with pytest.raises(InvalidEnumValueError) as exc_info:
            coercer.coerce("urgent", ParamType("priority"))

        assert exc_info.value.type_name == "priority"
        assert exc_info.value.allowed == ["1", "2", "3"]

    def test_enum_members(self, custom_types, coercer):
        custom_types.register_enum(Level)
        custom_types.register_enum(Color)

        assert coercer.coerce("high", ParamType("Level")) is Level.HIGH
        assert coercer.coerce("1", ParamType("level")) is Level.LOW
        assert coercer.coerce("GREEN", ParamType("color")) is Color.GREEN


class TestKindForAnnotation:
    """Test mapping handler annotations onto kinds"""

    @pytest.mark.parametrize("annotation,kind", [
        (bool, "bool"),
        (int, "int"),
        (float, "float"),
        (str, "string"),
        (datetime.datetime, "datetime"),
        (datetime.date, "date"),
        (datetime.time, "time"),
        (datetime.timedelta, "duration"),
        (uuid.UUID, "uuid"),
        (Path, "path"),
        (list, "csv"),
        (List[str], "csv"),
        (dict, "json"),
        (Optional[int], "int"),
        (SemanticVersion, "semver"),
    ])
    def test_builtin_annotations(self, custom_types, annotation, kind):
        assert kind_for_annotation(annotation, custom_types) == kind

    def test_unmapped_annotations(self, custom_types):
        assert kind_for_annotation(object, custom_types) is None
        assert kind_for_annotation(None, custom_types) is None

    def test_enum_is_registered_on_first_use(self, custom_types):
        assert "Color" not in custom_types

        assert kind_for_annotation(Color, custom_types) == "Color"
        assert "color" in custom_types
        assert kind_for_annotation(Color, custom_types) == "Color"
        assert len(custom_types.names()) == 3
