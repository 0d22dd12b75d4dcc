"""Tests for the reference resolution pass."""

from __future__ import annotations

import logging

import pytest

from synthkit.core.workflow.models import EXPORT_ALL
from synthkit.core.workflow.tasks import catch_block, for_each, fork, http_call, set_task, switch, try_catch
from synthkit.core.workflow.workflow import Workflow
from synthkit.synth.resolver import iter_tasks, resolve


def _workflow(*tasks) -> Workflow:
    return Workflow(namespace="demo", name="wf", tasks=list(tasks))


class TestIterTasks:
    def test_depth_first_order(self) -> None:
        inner = set_task("inner")
        guarded = try_catch("guarded", [inner], catch_block([set_task("recover")]))
        loop = for_each("loop", "${ .items }", [guarded])
        tail = set_task("tail")
        assert [t.name for t in iter_tasks([loop, tail])] == ["loop", "guarded", "inner", "recover", "tail"]


class TestResolve:
    def test_referenced_task_is_auto_exported(self, caplog: pytest.LogCaptureFixture) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        use = set_task("use", title=fetch.field("title"))
        with caplog.at_level(logging.DEBUG, logger="synthkit.synth.resolver"):
            resolution = resolve([_workflow(fetch, use)])
        assert resolution.export_for(fetch) == EXPORT_ALL
        assert resolution.export_for(use) is None
        assert resolution.depends_on_for(use) == ["fetch"]
        assert "Auto-exporting output of task fetch" in caplog.text

    def test_tasks_are_not_mutated(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        use = set_task("use", title=fetch.field("title"))
        resolve([_workflow(fetch, use)])
        assert fetch.export_as is None
        assert use.flow_then is None

    def test_author_export_is_kept(self) -> None:
        fetch = http_call("fetch", "GET", "https://x").export_field("body")
        use = set_task("use", title=fetch.field("title"))
        assert resolve([_workflow(fetch, use)]).export_for(fetch) == "${.body}"

    def test_dependencies_deduplicated_in_first_reference_order(self) -> None:
        a = http_call("a", "GET", "https://a")
        b = http_call("b", "GET", "https://b")
        use = set_task("use", x=b.field("x"), y=a.field("y"), z=b.field_as_string("z").upper())
        assert resolve([_workflow(a, b, use)]).depends_on_for(use) == ["b", "a"]

    def test_multiple_fields_of_one_task(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        use = set_task("use", a=fetch.field("a"), b=fetch.field("b"))
        resolution = resolve([_workflow(fetch, use)])
        assert resolution.export_for(fetch) == EXPORT_ALL
        assert resolution.depends_on_for(use) == ["fetch"]

    def test_references_inside_headers_and_conditions(self) -> None:
        auth = http_call("auth", "POST", "https://x/token")
        call = http_call("call", "GET", "https://x/data", headers={"Authorization": auth.field_as_string("token")})
        route = switch("route", [(call.field_as_int("status").equals(200), "done")])
        resolution = resolve([_workflow(auth, call, route)])
        assert resolution.depends_on_for(call) == ["auth"]
        assert resolution.depends_on_for(route) == ["call"]

    def test_nested_consumer(self) -> None:
        fetch = http_call("fetch", "GET", "https://x")
        inner = set_task("inner", v=fetch.field("v"))
        loop = for_each("loop", fetch.field("items"), [fork("fan", {"a": [inner]})])
        resolution = resolve([_workflow(fetch, loop)])
        assert resolution.depends_on_for(loop) == ["fetch"]
        assert resolution.depends_on_for(inner) == ["fetch"]

    def test_self_reference_is_not_a_dependency(self) -> None:
        poll = http_call("poll", "GET", "https://x")
        poll.config.headers["X-Last"] = poll.field_as_string("etag")
        resolution = resolve([_workflow(poll)])
        assert resolution.depends_on_for(poll) == []
        assert resolution.export_for(poll) == EXPORT_ALL

    def test_unreferenced_task_has_no_facts(self) -> None:
        lone = set_task("lone", a=1)
        resolution = resolve([_workflow(lone)])
        assert resolution.export_for(lone) is None
        assert resolution.depends_on_for(lone) == []
