"""Tests for config value encoding."""

from __future__ import annotations

import pytest

from synthkit.core.expressions.nodes import Variable
from synthkit.core.expressions.refs import BoolRef, IntRef, ObjectRef, StringRef
from synthkit.core.workflow.models import SwitchCase, SwitchConfig
from synthkit.core.workflow.tasks import for_each, http_call, set_task
from synthkit.errors import ConflictingVariableError, UnencodableConfigError
from synthkit.synth.values import ValueEncoder, iter_refs


@pytest.fixture
def variables() -> dict[str, Variable]:
    return {}


@pytest.fixture
def encoder(variables: dict[str, Variable]) -> ValueEncoder:
    return ValueEncoder(variables, workflow="wf", task_path="tasks[0]:t")


class TestIterRefs:
    def test_walks_models_mappings_and_lists(self) -> None:
        a, b, c = StringRef("a", "1"), IntRef("b", 2), BoolRef("c", True)
        config = SwitchConfig(cases=[SwitchCase(when=c, then="x")])
        found = list(iter_refs({"x": [a, {"y": b}], "z": config}))
        assert found == [a, b, c]

    def test_stops_at_nested_tasks(self) -> None:
        inner_ref = StringRef("inner", "x")
        loop = for_each("loop", "${ .items }", [set_task("body", v=inner_ref)])
        assert list(iter_refs(loop.config)) == []


class TestValueSites:
    def test_plain_values_pass_through(self, encoder: ValueEncoder) -> None:
        value = {"s": "x", "n": 1, "f": 1.5, "b": False, "none": None, "list": [1, (2, 3)]}
        assert encoder.value(value, "body") == {
            "s": "x",
            "n": 1,
            "f": 1.5,
            "b": False,
            "none": None,
            "list": [1, [2, 3]],
        }

    def test_known_ref_becomes_literal(self, encoder: ValueEncoder, variables: dict[str, Variable]) -> None:
        base = StringRef("base", "https://x")
        assert encoder.value(base.concat("/a"), "endpoint.uri") == "https://x/a"
        assert encoder.value(ObjectRef("o", {"k": [1]}), "body") == {"k": [1]}
        assert variables == {}

    def test_unknown_ref_becomes_expression(self, encoder: ValueEncoder, variables: dict[str, Variable]) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        base = StringRef("base", "https://x")
        encoded = encoder.value({"url": base.concat("/", fetch.field_as_string("id"))}, "body")
        assert encoded == {"url": '${ $context.base + "/" + $context.fetch.id }'}
        assert list(variables) == ["base"]

    def test_same_binding_recorded_once(self, encoder: ValueEncoder, variables: dict[str, Variable]) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        base = StringRef("base", "one")
        encoder.value(base.concat(fetch.field_as_string("a")), "a")
        encoder.value(StringRef("base", "one").concat(fetch.field_as_string("b")), "b")
        assert list(variables) == ["base"]
        assert variables["base"].value == "one"

    def test_rebound_variable_rejected(self, encoder: ValueEncoder) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        first = StringRef("base", "one")
        second = StringRef("base", "two")
        encoder.value(first.concat(fetch.field_as_string("a")), "a")
        with pytest.raises(ConflictingVariableError) as exc_info:
            encoder.value({"url": second.concat(fetch.field_as_string("b"))}, "body")
        err = exc_info.value
        assert err.name == "base"
        assert err.first_site == "tasks[0]:t a"
        assert err.site == "tasks[0]:t body.url"
        assert "bound to different values" in str(err)

    def test_rebinding_within_one_expression_rejected(self, encoder: ValueEncoder) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        joined = StringRef("base", "one").concat(fetch.field_as_string("a"), StringRef("base", "two"))
        with pytest.raises(ConflictingVariableError):
            encoder.value(joined, "a")

    def test_type_change_rejected(self, encoder: ValueEncoder) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        encoder.value(IntRef("flag", 1).add(fetch.field_as_int("n")), "a")
        with pytest.raises(ConflictingVariableError):
            encoder.value(BoolRef("flag", True).and_(fetch.field_as_bool("ok")), "b")

    def test_sites_shared_across_encoders(self, variables: dict[str, Variable]) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        sites: dict[str, str] = {}
        first = ValueEncoder(variables, sites=sites, workflow="wf", task_path="tasks[1]:a")
        second = ValueEncoder(variables, sites=sites, workflow="wf", task_path="tasks[2]:b")
        first.value(StringRef("x", "a").concat(fetch.field_as_string("id")), "variables.s1")
        with pytest.raises(ConflictingVariableError) as exc_info:
            second.value(StringRef("x", "b").concat(fetch.field_as_string("id")), "variables.s2")
        assert exc_info.value.first_site == "tasks[1]:a variables.s1"
        assert exc_info.value.task_path == "tasks[2]:b"

    @pytest.mark.parametrize(
        ("value", "type_name", "path"),
        [
            ({"ratio": float("nan")}, "float", "body.ratio"),
            ({"ratio": float("inf")}, "float", "body.ratio"),
            ({"big": 2**70}, "int", "body.big"),
            ({"tags": {"a", "b"}}, "set", "body.tags"),
            ({"raw": b"bytes"}, "bytes", "body.raw"),
            ({"m": {1: "x"}}, "int", "body.m[1]"),
            ({"items": [1, object()]}, "object", "body.items[1]"),
        ],
    )
    def test_unencodable(self, encoder: ValueEncoder, value: object, type_name: str, path: str) -> None:
        with pytest.raises(UnencodableConfigError) as exc_info:
            encoder.value(value, "body")
        assert exc_info.value.value_type == type_name
        assert exc_info.value.field_path == path
        assert exc_info.value.workflow == "wf"
        assert exc_info.value.task_path == "tasks[0]:t"


class TestExpressionSites:
    def test_text_passes_through(self, encoder: ValueEncoder) -> None:
        assert encoder.expression("${ .ok }", "when") == "${ .ok }"
        assert encoder.expression("", "when") == ""

    def test_known_ref_is_wrapped(self, encoder: ValueEncoder) -> None:
        assert encoder.expression(BoolRef("flag", True), "when") == "${ true }"
        assert encoder.expression(ObjectRef("o", {"items": [1, 2]}).field("items"), "in") == "${ [1, 2] }"

    def test_unknown_ref_renders(self, encoder: ValueEncoder) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        assert encoder.expression(fetch.field_as_int("status").equals(200), "when") == (
            "${ $context.fetch.status == 200 }"
        )

    def test_non_text_rejected(self, encoder: ValueEncoder) -> None:
        with pytest.raises(UnencodableConfigError, match="cannot encode int at in"):
            encoder.expression(3, "in")
