"""Unit tests for the builtins available to capability bodies."""

import pytest

from hivelang_runtime.engine.builtins import (
    BUILTINS,
    HiveDate,
    atob,
    bind_method,
    btoa,
    call_value,
    encode_uri_component,
    hive_range,
    json_parse,
    parse_float,
    parse_int,
    to_number,
    to_plain,
    to_text,
    type_name,
)
from hivelang_runtime.engine.errors import EvaluationError
from hivelang_runtime.sandbox import HttpOutcome


class TestConversions:
    """Text and number conversions."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (3.0, "3"),
            (2.5, "2.5"),
            ("x", "x"),
            ([1, "a"], '[1,"a"]'),
            ({"a": None}, '{"a":null}'),
        ],
    )
    def test_to_text(self, value, expected):
        assert to_text(value) == expected

    def test_to_number(self):
        assert to_number("42") == 42
        assert to_number(" 1.5 ") == 1.5
        assert to_number("") == 0
        assert to_number(None) == 0
        assert to_number(True) == 1
        assert to_number("abc") is None

    def test_parse_int(self):
        assert parse_int("2h") == 2
        assert parse_int("  -17px") == -17
        assert parse_int("ff", 16) == 255
        assert parse_int(9.7) == 9
        assert parse_int("h2") is None

    @pytest.mark.parametrize("radix", [1, 37, -2])
    def test_parse_int_invalid_radix(self, radix):
        assert parse_int("12", radix) is None

    def test_parse_int_default_radix(self):
        assert parse_int("12", 0) == 12
        assert parse_int("12", "x") == 12
        assert parse_int(float("nan")) is None

    def test_parse_float(self):
        assert parse_float("3.25rem") == 3.25
        assert parse_float(".5") == 0.5
        assert parse_float("x") is None

    def test_base64_round_trip_is_utf8(self):
        assert btoa("user:pass") == "dXNlcjpwYXNz"
        assert atob(btoa("héllo")) == "héllo"

    def test_atob_rejects_invalid_input(self):
        with pytest.raises(EvaluationError, match="invalid base64"):
            atob("***")

    def test_encode_uri_component(self):
        assert encode_uri_component("a b&c/d") == "a%20b%26c%2Fd"

    def test_type_name(self):
        assert type_name(None) == "null"
        assert type_name(True) == "boolean"
        assert type_name(1.5) == "number"
        assert type_name({}) == "object"

    def test_to_plain(self):
        outcome = HttpOutcome(status=200, ok=True, data={"a": 1})
        plain = to_plain({"outcome": outcome, "items": (1, 2), "fn": BUILTINS["len"]})
        assert plain["outcome"]["data"] == {"a": 1}
        assert plain["items"] == [1, 2]
        assert plain["fn"] is None


class TestRange:
    def test_range(self):
        assert hive_range(3) == [0, 1, 2]
        assert hive_range(1, 7, 2) == [1, 3, 5]

    def test_range_limit(self):
        with pytest.raises(EvaluationError, match="exceeds the limit"):
            hive_range(10_000_000)


class TestJson:
    def test_parse_error_is_an_evaluation_error(self):
        with pytest.raises(EvaluationError, match="JSON.parse"):
            json_parse("{oops")

    @pytest.mark.asyncio
    async def test_stringify_is_compact(self):
        stringify = BUILTINS["JSON"].member("stringify")
        assert await stringify.call([{"a": [1, 2]}]) == '{"a":[1,2]}'
        assert await stringify.call([{"a": 1}, None, 2]) == '{\n  "a": 1\n}'


class TestDates:
    def test_iso_string(self):
        assert HiveDate.create(0).to_iso_string() == "1970-01-01T00:00:00.000Z"

    def test_parse_iso_with_zulu(self):
        date = HiveDate.create("2024-05-01T12:30:00.250Z")
        assert date.get_time() == 1714566600250

    def test_invalid_date(self):
        with pytest.raises(EvaluationError, match="invalid date"):
            HiveDate.create("tomorrow-ish")

    @pytest.mark.asyncio
    async def test_date_namespace_constructs(self):
        date = await BUILTINS["Date"].construct.call([86_400_000])
        assert date.to_iso_string() == "1970-01-02T00:00:00.000Z"


class TestMethods:
    """Methods looked up on strings, lists, dicts and numbers."""

    @pytest.mark.asyncio
    async def test_string_methods(self):
        assert await bind_method("a,b", "split").call([","]) == ["a", "b"]
        assert await bind_method("aXbX", "replace").call(["X", "-"]) == "a-bX"
        assert await bind_method("aXbX", "replaceAll").call(["X", "-"]) == "a-b-"
        assert await bind_method("hello", "slice").call([1, -1]) == "ell"
        assert await bind_method("hello", "substring").call([3, 1]) == "el"
        assert await bind_method("abc", "indexOf").call(["z"]) == -1

    @pytest.mark.asyncio
    async def test_list_methods(self):
        items = [1]
        assert await bind_method(items, "push").call([2, 3]) == 3
        assert items == [1, 2, 3]
        assert await bind_method(items, "join").call(["-"]) == "1-2-3"
        assert await bind_method(items, "join").call([]) == "1,2,3"
        assert await bind_method(items, "concat").call([[4], 5]) == [1, 2, 3, 4, 5]
        assert await bind_method([], "pop").call([]) is None

    @pytest.mark.asyncio
    async def test_list_callbacks_accept_builtins(self):
        # map passes (item, index), so parseInt sees radix 0 then the invalid radix 1
        assert await bind_method(["1", "2"], "map").call([BUILTINS["parseInt"]]) == [1, None]

    @pytest.mark.asyncio
    async def test_dict_methods(self):
        assert await bind_method({"a": 1}, "get").call(["b", 0]) == 0
        assert await bind_method({"a": 1}, "items").call([]) == [["a", 1]]

    @pytest.mark.asyncio
    async def test_number_methods(self):
        assert await bind_method(3.14159, "toFixed").call([2]) == "3.14"

    def test_unknown_method(self):
        assert bind_method("x", "nope") is None
        assert bind_method(None, "length") is None

    @pytest.mark.asyncio
    async def test_bad_arguments_become_evaluation_errors(self):
        with pytest.raises(EvaluationError, match="bad arguments for split"):
            await bind_method("x", "split").call([",", 1, 2, 3])


@pytest.mark.asyncio
async def test_call_value_rejects_non_callables():
    with pytest.raises(EvaluationError, match="is not a function"):
        await call_value("text", [])


@pytest.mark.asyncio
async def test_math_round_is_half_up():
    round_ = BUILTINS["Math"].member("round")
    assert await round_.call([2.5]) == 3
    assert await round_.call([-2.5]) == -2
