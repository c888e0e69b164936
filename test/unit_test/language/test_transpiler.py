"""Unit tests for the rewrite passes, code generation and ``transpile``."""

import pytest

from hivelang_runtime.language import nodes
from hivelang_runtime.language.codegen import render, render_expression
from hivelang_runtime.language.errors import HiveSyntaxError
from hivelang_runtime.language.extractor import extract
from hivelang_runtime.language.parser import parse, parse_expression
from hivelang_runtime.language.transpiler import (
    AwaitRewriter,
    ComprehensionRewriter,
    CredentialRewriter,
    InterpolationRewriter,
    KeywordArgumentRewriter,
    LogicalOperatorRewriter,
    bound_names,
    passes_for,
    rewrite,
    transpile,
)


def apply(rewriter, text):
    return render_expression(rewriter.visit(parse_expression(text)))


class TestRewritePasses:
    """Each pass on its own."""

    def test_interpolation(self):
        assert apply(InterpolationRewriter(), 'f"Hi {name}!"') == "`Hi ${name}!`"

    def test_interpolation_escapes_backticks(self):
        assert apply(InterpolationRewriter(), 'f"a`b {c}"') == "`a\\`b ${c}`"

    def test_keyword_arguments_fold_into_options(self):
        result = apply(KeywordArgumentRewriter(), 'http.post(url, headers = {"A": "1"}, body = {"n": {"m": 1}})')
        assert result == 'http.post(url, {headers: {"A": "1"}, body: {"n": {"m": 1}}})'

    def test_keyword_arguments_without_keywords_is_unchanged(self):
        node = parse_expression("f(a, b)")
        assert KeywordArgumentRewriter().visit(node) is node

    def test_credentials(self):
        assert apply(CredentialRewriter(), "user.api_key") == "context.user.api_key"

    def test_credentials_skip_arrow_with_user_parameter(self):
        assert apply(CredentialRewriter(), "users.map(user => user.id)") == "users.map(user => user.id)"

    def test_credentials_skip_comprehension_over_user(self):
        result = apply(CredentialRewriter(), "[user.id for user in user.friends]")
        assert result == "[user.id for user in context.user.friends]"

    def test_await_wraps_http_calls_once(self):
        assert apply(AwaitRewriter(), "http.get(u).data") == "(await http.get(u)).data"
        assert apply(AwaitRewriter(), "await http.get(u)") == "await http.get(u)"

    def test_await_ignores_other_calls(self):
        assert apply(AwaitRewriter(), "client.get(u)") == "client.get(u)"
        assert apply(AwaitRewriter(), "http.head(u)") == "http.head(u)"

    def test_logical_operators(self):
        assert apply(LogicalOperatorRewriter(), "not a and b or c") == "!a && b || c"

    def test_comprehension(self):
        assert apply(ComprehensionRewriter(), "[x.id for x in xs]") == "xs.map(x => x.id)"
        assert apply(ComprehensionRewriter(), "[x.id for x in xs if x.ok]") == "xs.filter(x => x.ok).map(x => x.id)"

    def test_passes_are_order_independent(self):
        text = 'r = http.get(f"https://x/{user.id}", params: {"q": [i for i in ids if not i.skip]})'
        block = parse(text)
        forward = block
        for rewriter in passes_for((), block):
            forward = rewriter.visit(forward)
        backward = block
        for rewriter in reversed(passes_for((), block)):
            backward = rewriter.visit(backward)
        assert render(forward) == render(backward)


class TestCredentialRouting:
    """``user`` is rewritten unless it is a declared parameter; binding it locally is rejected."""

    def test_user_parameter_is_not_rewritten(self):
        assert transpile("return user.name", ("user",)) == "return user.name"

    @pytest.mark.parametrize(
        "body",
        [
            "user = lookup()\nreturn user.name",
            "k = user.api_key\nif k {\n    user = {\"api_key\": \"x\"}\n}\nreturn k",
            "for user in members {\n    log(user.id)\n}",
        ],
    )
    def test_binding_user_is_rejected(self, body):
        with pytest.raises(HiveSyntaxError, match="cannot bind 'user'"):
            transpile(body)

    def test_user_read_before_a_later_assignment_never_compiles(self):
        with pytest.raises(HiveSyntaxError):
            rewrite(parse("k = user.api_key\nuser = {}\nreturn k"))

    def test_user_parameter_may_be_reassigned(self):
        assert transpile("user = user.profile\nreturn user.name", ("user",)) == "user = user.profile\nreturn user.name"

    def test_scoped_user_names_are_allowed(self):
        assert transpile("return users.map(user => user.id)") == "return users.map(user => user.id)"

    def test_bound_names(self):
        block = parse("a = 1\nfor b in xs {\n if c {\n d = 2\n }\n}\ne.f = 3")
        assert bound_names(block) == {"a", "b", "d"}


class TestCodegen:
    """Rendering details."""

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("(a + b) * c", "(a + b) * c"),
            ("a - (b - c)", "a - (b - c)"),
            ("a - b - c", "a - b - c"),
            ("-(a + b)", "-(a + b)"),
            ("!(a && b)", "!(a && b)"),
            ("(a || b) && c", "(a || b) && c"),
            ("{'k': 'v', x: 1}", '{"k": "v", x: 1}'),
            ('{"not-an-identifier": 1}', '{"not-an-identifier": 1}'),
            ("new (a.b())(1)", "new (a.b())(1)"),
            ("xs.map((a, b) => a + b)", "xs.map((a, b) => a + b)"),
            ("'caf\\u00e9'", '"café"'),
            ("1.5", "1.5"),
        ],
    )
    def test_render_expression(self, source, expected):
        assert render_expression(parse_expression(source)) == expected

    def test_render_blocks(self):
        text = "if a {\nx = 1\n} elif b {\nfor i in xs {\ny = i\n}\n} else {\nreturn\n}"
        assert render(parse(text)) == (
            "if (a) {\n"
            "    x = 1\n"
            "} else if (b) {\n"
            "    for i in xs {\n"
            "        y = i\n"
            "    }\n"
            "} else {\n"
            "    return\n"
            "}"
        )

    def test_render_template_escapes(self):
        node = nodes.Template(("line\n${not}`", nodes.Name("x")))
        assert render_expression(node) == "`line\\n\\${not}\\`${x}`"


class TestTranspile:
    """End-to-end ``transpile``."""

    def test_authorization_header(self):
        body = 'response = http.post(url, headers: {"Authorization": f"Bearer {user.api_key}"})'
        assert transpile(body) == (
            'response = await http.post(url, {headers: {"Authorization": `Bearer ${context.user.api_key}`}})'
        )

    def test_if_not_condition(self):
        body = 'if not response.ok {\n    error(f"failed: {response.error}")\n}'
        assert transpile(body) == 'if (!response.ok) {\n    error(`failed: ${response.error}`)\n}'

    def test_comprehension_with_filter(self):
        assert transpile("return [x.name for x in items if x.active]") == (
            "return items.filter(x => x.active).map(x => x.name)"
        )

    def test_deterministic(self):
        body = 'r = http.get(f"https://a/{id}")\nreturn r.data'
        assert transpile(body) == transpile(body)

    def test_malformed_body(self):
        with pytest.raises(HiveSyntaxError) as exc_info:
            transpile("x = (1 +\ny = 2")
        assert exc_info.value.line >= 1

    def test_idempotent_on_bundled_integrations(self, integration_sources):
        assert integration_sources
        for name, source in integration_sources.items():
            for unit in extract(source):
                once = transpile(unit.raw_body, unit.parameters)
                assert transpile(once, unit.parameters) == once, f"{name}.{unit.name}"
