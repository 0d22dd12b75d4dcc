"""Tests for task and workflow conversion."""

from __future__ import annotations

import pytest

from synthkit.core.agent.models import EnvironmentVariable
from synthkit.core.expressions.refs import BoolRef, ObjectRef, StringRef
from synthkit.core.workflow.models import SetConfig, Task, TaskKind
from synthkit.core.workflow.tasks import (
    call_activity,
    catch_block,
    for_each,
    fork,
    grpc_call,
    http_call,
    listen,
    raise_error,
    run_workflow,
    set_task,
    switch,
    try_catch,
    wait,
)
from synthkit.core.workflow.workflow import Workflow
from synthkit.errors import InvalidTaskConfigError, UnencodableConfigError, UnknownTaskKindError
from synthkit.synth.converter import INIT_TASK_NAME, WorkflowConverter, convert_workflow
from synthkit.synth.manifest import WorkflowRecord
from synthkit.synth.resolver import resolve


def _workflow(*tasks: Task, **fields) -> Workflow:
    return Workflow(namespace=fields.pop("namespace", "demo"), name=fields.pop("name", "wf"), tasks=list(tasks), **fields)


def _convert(*tasks: Task, **fields) -> WorkflowRecord:
    wf = _workflow(*tasks, **fields)
    return convert_workflow(wf, resolve([wf]))


def _config(task: Task) -> dict:
    return _convert(task).tasks[0].task_config


class TestDocument:
    def test_document_fields(self) -> None:
        record = _convert(name="orders", version="1.2.0", description="Order flow", org="acme")
        assert record.document.name == "orders"
        assert record.document.namespace == "demo"
        assert record.document.version == "1.2.0"
        assert record.document.dsl == "1.0.0"
        assert record.document.description == "Order flow"
        assert record.org == "acme"
        assert record.tasks == []

    def test_environment_variables(self) -> None:
        wf = _workflow().add_environment_variable(EnvironmentVariable(name="API_KEY", secret=True))
        record = convert_workflow(wf, resolve([wf]))
        assert record.environment_variables[0].name == "API_KEY"
        assert record.environment_variables[0].secret is True

    def test_task_order_is_kept(self) -> None:
        record = _convert(set_task("c"), set_task("a"), set_task("b"))
        assert [t.name for t in record.tasks] == ["c", "a", "b"]


class TestLeafKinds:
    def test_set(self) -> None:
        assert _config(set_task("s", a=1, b=[True, None])) == {"variables": {"a": 1, "b": [True, None]}}

    def test_http_call(self) -> None:
        base = StringRef("base", "https://api.x.com")
        task = http_call(
            "h",
            "POST",
            base.concat("/orders"),
            headers={"Content-Type": "application/json"},
            body={"qty": 2},
            timeout_seconds=10,
        )
        assert _config(task) == {
            "method": "POST",
            "endpoint": {"uri": "https://api.x.com/orders"},
            "headers": {"Content-Type": "application/json"},
            "body": {"qty": 2},
            "timeout_seconds": 10,
        }

    def test_grpc_call(self) -> None:
        assert _config(grpc_call("g", "users.Users", "Get", body={"id": 1})) == {
            "service": "users.Users",
            "method": "Get",
            "body": {"id": 1},
        }

    def test_listen_and_wait(self) -> None:
        assert _config(listen("l", "order.created")) == {"event": "order.created"}
        assert _config(wait("w", StringRef("delay", "5s"))) == {"duration": "5s"}

    def test_call_activity(self) -> None:
        assert _config(call_activity("c", "charge", {"amount": 10})) == {"activity": "charge", "input": {"amount": 10}}

    def test_raise(self) -> None:
        assert _config(raise_error("r", "NotFound", "missing", data={"id": 1})) == {
            "error": "NotFound",
            "message": "missing",
            "data": {"id": 1},
        }

    def test_run(self) -> None:
        assert _config(run_workflow("sub", "child", {"x": 1})) == {"workflow": "child", "input": {"x": 1}}


class TestSwitch:
    def test_cases_named_in_order_with_synthetic_default(self) -> None:
        task = switch("route", [("${ .a }", "a"), ("${ .b }", "b")], default="fallback")
        assert _config(task)["cases"] == [
            {"name": "case1", "when": "${ .a }", "then": "a"},
            {"name": "case2", "when": "${ .b }", "then": "b"},
            {"name": "default", "when": "", "then": "fallback"},
        ]

    def test_existing_catch_all_suppresses_default(self) -> None:
        task = switch("route", [("${ .a }", "a"), ("", "b")], default="fallback")
        cases = _config(task)["cases"]
        assert [c["name"] for c in cases] == ["case1", "case2"]

    def test_bool_ref_conditions(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        task = switch(
            "route",
            [(BoolRef("always", True), "a"), (fetch.field_as_int("status").greater_or_equal(500), "retry")],
        )
        record = _convert(fetch, task)
        cases = record.tasks[1].task_config["cases"]
        assert cases[0]["when"] == "${ true }"
        assert cases[1]["when"] == "${ $context.fetch.status >= 500 }"
        assert record.tasks[1].flow.depends_on == ["fetch"]


class TestNestedKinds:
    def test_for(self) -> None:
        task = for_each("loop", "${ .items }", [set_task("body", v=1)], each="entry")
        assert _config(task) == {
            "each": "entry",
            "in": "${ .items }",
            "do": [{"name": "body", "kind": "SET", "task_config": {"variables": {"v": 1}}}],
        }

    def test_for_over_known_object(self) -> None:
        items = ObjectRef("cfg", {"regions": ["eu", "us"]}).field("regions")
        assert _config(for_each("loop", items, []))["in"] == '${ ["eu", "us"] }'

    def test_fork(self) -> None:
        task = fork("fan", {"left": [wait("l", "1s")], "right": []}, compete=True)
        assert _config(task) == {
            "branches": [
                {"name": "left", "do": [{"name": "l", "kind": "WAIT", "task_config": {"duration": "1s"}}]},
                {"name": "right", "do": []},
            ],
            "compete": True,
        }

    def test_try_emits_every_catch_block(self) -> None:
        task = try_catch(
            "guarded",
            [set_task("attempt")],
            catch_block([set_task("timeout")], errors=["Timeout"], as_="err"),
            catch_block([set_task("other")]),
        )
        config = _config(task)
        assert [t["name"] for t in config["try"]] == ["attempt"]
        assert config["catch"] == [
            {"errors": ["Timeout"], "as": "err", "do": [{"name": "timeout", "kind": "SET", "task_config": {"variables": {}}}]},
            {"errors": [], "as": "error", "do": [{"name": "other", "kind": "SET", "task_config": {"variables": {}}}]},
        ]

    def test_three_levels_deep(self) -> None:
        guarded = try_catch(
            "guarded",
            [set_task("attempt", value=1)],
            catch_block([set_task("recover", handled=True)], errors=["HttpError"], as_="err"),
        )
        fan = fork("fan", {"left": [guarded], "right": [wait("pause", "1s")]})
        loop = for_each("loop", "${ .items }", [fan])

        loop_record = _convert(loop).tasks[0]
        assert loop_record.kind == "FOR"
        fan_value = loop_record.task_config["do"][0]
        assert fan_value["kind"] == "FORK"
        guarded_value = fan_value["task_config"]["branches"][0]["do"][0]
        assert guarded_value["kind"] == "TRY"
        assert guarded_value["task_config"]["try"] == [
            {"name": "attempt", "kind": "SET", "task_config": {"variables": {"value": 1}}}
        ]
        catch = guarded_value["task_config"]["catch"][0]
        assert catch["errors"] == ["HttpError"]
        assert catch["as"] == "err"
        assert catch["do"][0]["task_config"] == {"variables": {"handled": True}}
        assert fan_value["task_config"]["branches"][1]["do"][0]["name"] == "pause"


class TestExportsAndFlow:
    def test_export_and_depends_on(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        use = set_task("use", title=fetch.field("title"))
        fetch_record, use_record = _convert(fetch, use).tasks
        assert fetch_record.export.as_ == "${.}"
        assert fetch_record.flow is None
        assert use_record.export is None
        assert use_record.flow.depends_on == ["fetch"]
        assert use_record.flow.then is None

    def test_explicit_then(self) -> None:
        first = set_task("first").then("second")
        second = set_task("second").end()
        records = _convert(first, second).tasks
        assert records[0].flow.then == "second"
        assert records[0].flow.depends_on is None
        assert records[1].flow.then == "end"

    def test_nested_records_carry_export_and_flow(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        loop = for_each("loop", "${ .items }", [set_task("inner", v=fetch.field("v"))])
        inner = _convert(fetch, loop).tasks[1].task_config["do"][0]
        assert inner["flow"] == {"depends_on": ["fetch"]}


class TestInitTask:
    def test_emitted_for_variables_in_deferred_expressions(self) -> None:
        base = StringRef("apiBase", "https://x")
        fetch = http_call("fetch", "GET", base.concat("/posts"))
        store = set_task("store", url=base.concat("/p/", fetch.field_as_string("id")))
        records = _convert(fetch, store).tasks
        assert [t.name for t in records] == [INIT_TASK_NAME, "fetch", "store"]
        init = records[0]
        assert init.kind == "SET"
        assert init.task_config == {"variables": {"apiBase": "https://x"}}
        assert init.export.as_ == "${.}"
        assert records[1].task_config["endpoint"]["uri"] == "https://x/posts"
        assert records[2].task_config["variables"]["url"] == '${ $context.apiBase + "/p/" + $context.fetch.id }'

    def test_not_emitted_when_everything_folds(self) -> None:
        base = StringRef("apiBase", "https://x")
        records = _convert(http_call("fetch", "GET", base.concat("/posts"))).tasks
        assert [t.name for t in records] == ["fetch"]

    def test_variables_in_first_reference_order(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        a, b = StringRef("a", "1"), StringRef("b", "2")
        first = set_task("first", v=b.concat(fetch.field_as_string("x")))
        second = set_task("second", v=a.concat(b, fetch.field_as_string("y")))
        init = _convert(fetch, first, second).tasks[0]
        assert list(init.task_config["variables"]) == ["b", "a"]

    def test_variables_from_nested_tasks(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        prefix = StringRef("prefix", "item-")
        loop = for_each("loop", "${ .items }", [set_task("inner", v=prefix.concat(fetch.field_as_string("id")))])
        init = _convert(fetch, loop).tasks[0]
        assert init.task_config == {"variables": {"prefix": "item-"}}

    def test_object_variable_value(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        cfg = ObjectRef("cfg", {"limits": {"max": 5}})
        check = switch("check", [(fetch.field_as_int("n").less_than(cfg.field_as_int("limits", "max")), "ok")])
        records = _convert(fetch, check).tasks
        assert records[0].task_config == {"variables": {"cfg": {"limits": {"max": 5}}}}
        assert records[2].task_config["cases"][0]["when"] == "${ $context.fetch.n < $context.cfg.limits.max }"


class TestConversionErrors:
    def test_mismatched_config(self) -> None:
        bad = Task(name="bad", kind=TaskKind.WAIT, config=SetConfig())
        with pytest.raises(InvalidTaskConfigError) as exc_info:
            _convert(set_task("ok"), bad, name="orders")
        err = exc_info.value
        assert err.workflow == "orders"
        assert err.task_path == "tasks[1]:bad"
        assert "workflow 'orders' tasks[1]:bad" in str(err)

    def test_config_subclass_rejected_like_config_as(self) -> None:
        class TaggedSetConfig(SetConfig):
            pass

        tagged = Task(name="tagged", kind=TaskKind.SET, config=TaggedSetConfig())
        with pytest.raises(InvalidTaskConfigError):
            tagged.config_as(SetConfig)
        with pytest.raises(InvalidTaskConfigError) as exc_info:
            _convert(tagged)
        assert exc_info.value.config_type == "TaggedSetConfig"
        assert exc_info.value.task_path == "tasks[0]:tagged"
        assert isinstance(exc_info.value.__cause__, InvalidTaskConfigError)

    def test_nested_error_path(self) -> None:
        bad = Task(name="bad", kind=TaskKind.WAIT, config=SetConfig())
        loop = for_each("loop", "${ .items }", [fork("fan", {"a": [set_task("x")], "b": [bad]})])
        with pytest.raises(InvalidTaskConfigError) as exc_info:
            _convert(loop)
        assert exc_info.value.task_path == "tasks[0]:loop/do[0]:fan/branches[1].do[0]:bad"

    def test_unknown_kind(self) -> None:
        odd = Task.model_construct(name="odd", kind="TELEPORT", config=SetConfig())
        wf = _workflow()
        wf.tasks.append(odd)
        with pytest.raises(UnknownTaskKindError, match="unknown task kind: TELEPORT"):
            WorkflowConverter(wf, resolve([wf])).convert()

    def test_unencodable_value_path(self) -> None:
        with pytest.raises(UnencodableConfigError) as exc_info:
            _convert(set_task("s", ratio=float("nan")))
        assert exc_info.value.field_path == "variables.ratio"
        assert exc_info.value.task_path == "tasks[0]:s"
