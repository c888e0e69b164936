"""Unit tests for the async tree-walking interpreter."""

import pytest

from hivelang_runtime.engine.builtins import Builtin
from hivelang_runtime.engine.errors import EvaluationError
from hivelang_runtime.engine.interpreter import Interpreter, get_index, get_member
from hivelang_runtime.language.parser import parse
from hivelang_runtime.language.transpiler import rewrite
from hivelang_runtime.sandbox import HttpOutcome, HttpSandbox


async def run(body, **env):
    return await Interpreter("test").run(rewrite(parse(body)), env)


class TestStatements:
    @pytest.mark.asyncio
    async def test_return_value(self):
        assert await run("return 1 + 2") == 3

    @pytest.mark.asyncio
    async def test_no_return_gives_null(self):
        assert await run("x = 1") is None

    @pytest.mark.asyncio
    async def test_return_inside_loop_stops_everything(self):
        body = "for i in range(10) {\n if i == 3 {\n return i\n }\n}\nreturn -1"
        assert await run(body) == 3

    @pytest.mark.asyncio
    async def test_if_elif_else(self):
        body = 'if n > 10 {\n return "big"\n} elif n > 5 {\n return "mid"\n} else {\n return "small"\n}'
        assert [await run(body, n=n) for n in (11, 6, 1)] == ["big", "mid", "small"]

    @pytest.mark.asyncio
    async def test_for_over_dict_iterates_keys(self):
        assert await run("out = []\nfor k in d {\n out.push(k)\n}\nreturn out", d={"a": 1, "b": 2}) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_for_over_non_iterable(self):
        with pytest.raises(EvaluationError, match="is not iterable"):
            await run("for x in 5 {\n}")

    @pytest.mark.asyncio
    async def test_compound_assignment(self):
        assert await run("t = 1\nt += 4\nt -= 2\nreturn t") == 3
        assert await run('s = "a"\ns += 1\nreturn s') == "a1"

    @pytest.mark.asyncio
    async def test_member_and_index_assignment(self):
        body = 'o = {}\no.a = 1\no["b"] = 2\nxs = [0]\nxs[0] = 5\nxs[1] = 6\nreturn [o, xs]'
        assert await run(body) == [{"a": 1, "b": 2}, [5, 6]]

    @pytest.mark.asyncio
    async def test_list_index_out_of_range_on_write(self):
        with pytest.raises(EvaluationError, match="out of range"):
            await run("xs = []\nxs[3] = 1")


class TestExpressions:
    @pytest.mark.asyncio
    async def test_logical_operators_return_operands(self):
        assert await run('return null || "fallback"') == "fallback"
        assert await run("return 0 && boom()") == 0
        assert await run('return a or "x"', a="") == "x"

    @pytest.mark.asyncio
    async def test_truthiness_follows_python(self):
        assert await run("return !list", list=[]) is True
        assert await run("return !d", d={}) is True

    @pytest.mark.asyncio
    async def test_string_concatenation_converts(self):
        assert await run('return "n=" + 1 + " " + null + " " + true') == "n=1 null true"

    @pytest.mark.asyncio
    async def test_numeric_errors(self):
        with pytest.raises(EvaluationError, match="division by zero"):
            await run("return 1 / 0")
        with pytest.raises(EvaluationError, match="unsupported operands"):
            await run("return [] - 1")

    @pytest.mark.asyncio
    async def test_comparisons(self):
        assert await run('return "b" in {"a": 1, "b": 2}') is True
        assert await run('return "ell" in "hello"') is True
        assert await run("return 2 >= 2 && 1 != 2") is True
        with pytest.raises(EvaluationError, match="cannot compare"):
            await run('return 1 < "a"')

    @pytest.mark.asyncio
    async def test_template(self):
        assert await run("return `${a} + ${b} = ${a + b}`", a=1, b=2) == "1 + 2 = 3"

    @pytest.mark.asyncio
    async def test_arrow_closures_capture_scope(self):
        assert await run("k = 10\nreturn [1, 2].map(x => x * k)") == [10, 20]

    @pytest.mark.asyncio
    async def test_arrow_with_index_argument(self):
        assert await run('return ["a", "b"].map((v, i) => v + i)') == ["a0", "b1"]

    @pytest.mark.asyncio
    async def test_comprehension_after_rewrite(self):
        assert await run("return [x * 2 for x in xs if x > 1]", xs=[1, 2, 3]) == [4, 6]

    @pytest.mark.asyncio
    async def test_new_date(self):
        assert await run("return new Date(0).toISOString()") == "1970-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_new_on_non_constructor(self):
        with pytest.raises(EvaluationError, match="is not a constructor"):
            await run("return new JSON()")

    @pytest.mark.asyncio
    async def test_undefined_name(self):
        with pytest.raises(EvaluationError, match="missing is not defined"):
            await run("return missing")

    @pytest.mark.asyncio
    async def test_calling_missing_method(self):
        with pytest.raises(EvaluationError, match="nope is not a function"):
            await run("return d.nope()", d={})

    @pytest.mark.asyncio
    async def test_awaits_async_builtins(self):
        async def fetch(value):
            return value * 2

        assert await run("return fetch(21)", fetch=Builtin(fetch)) == 42


class TestMemberAccess:
    """Sandboxing rules of ``get_member`` and ``get_index``."""

    def test_dict_missing_key_is_null(self):
        assert get_member({"a": 1}, "b") is None

    def test_dict_key_shadows_method(self):
        assert get_member({"keys": 5}, "keys") == 5

    def test_length(self):
        assert get_member("abc", "length") == 3
        assert get_member([1, 2], "length") == 2

    def test_private_names_are_unreachable(self):
        with pytest.raises(EvaluationError, match="not allowed"):
            get_member({"_x": 1}, "_x")

    def test_null_member(self):
        with pytest.raises(EvaluationError, match="of null"):
            get_member(None, "message")

    def test_unknown_string_member(self):
        with pytest.raises(EvaluationError, match="has no member"):
            get_member("abc", "missing")

    def test_model_fields_only(self):
        outcome = HttpOutcome(status=404, ok=False)
        assert get_member(outcome, "status") == 404
        with pytest.raises(EvaluationError):
            get_member(outcome, "model_dump")

    def test_sandbox_exposes_only_verbs(self):
        sandbox = HttpSandbox()
        assert isinstance(get_member(sandbox, "get"), Builtin)
        with pytest.raises(EvaluationError):
            get_member(sandbox, "request")
        with pytest.raises(EvaluationError):
            get_member(sandbox, "aclose")

    def test_plain_objects_are_opaque(self):
        with pytest.raises(EvaluationError):
            get_member(object(), "__class__")
        with pytest.raises(EvaluationError):
            get_member(Exception("x"), "args")

    def test_index(self):
        assert get_index([1, 2, 3], -1) == 3
        assert get_index([1, 2, 3], 5) is None
        assert get_index({"1": "a"}, 1) == "a"
        assert get_index("abc", "length") == 3
        with pytest.raises(EvaluationError, match="must be an integer"):
            get_index([1], 0.5)
