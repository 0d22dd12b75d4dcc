"""Tests for the resource registry."""

from __future__ import annotations

import threading

from synthkit.core.agent.models import Agent
from synthkit.core.context.registry import Registry
from synthkit.core.workflow.workflow import Workflow


def _workflow(name: str) -> Workflow:
    return Workflow(namespace="demo", name=name)


class TestRegistry:
    def test_starts_empty(self) -> None:
        registry = Registry()
        assert registry.is_empty()
        assert registry.workflows() == []
        assert registry.agents() == []

    def test_registration_order_is_kept(self) -> None:
        registry = Registry()
        first, second = _workflow("a"), _workflow("b")
        registry.register_workflow(first)
        registry.register_workflow(second)
        assert registry.workflows() == [first, second]
        assert not registry.is_empty()

    def test_reads_return_copies(self) -> None:
        registry = Registry()
        registry.register_agent(Agent(name="a", instructions="Answer questions politely."))
        snapshot = registry.agents()
        snapshot.clear()
        assert len(registry.agents()) == 1

    def test_clear(self) -> None:
        registry = Registry()
        registry.register_workflow(_workflow("a"))
        registry.clear()
        assert registry.is_empty()

    def test_concurrent_registration(self) -> None:
        registry = Registry()

        def register(worker: int) -> None:
            for i in range(50):
                registry.register_workflow(_workflow(f"wf-{worker}-{i}"))

        threads = [threading.Thread(target=register, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        names = [wf.name for wf in registry.workflows()]
        assert len(names) == 400
        assert len(set(names)) == 400
