"""
Tests for the Workflow Engine core components.
"""

import pytest
import asyncio
import logging
import time
from typing import Any, Dict, List

from nodeflow.config import settings
from nodeflow.engine.errors import (
    FlowConfigurationError,
    InvalidOperationError,
    SuccessorOverwriteError,
    UnmatchedActionError,
)
from nodeflow.engine.node import BaseNode, Node, BatchNode
from nodeflow.engine.flow import Flow, BatchFlow
from nodeflow.engine.graph import describe_flow, to_mermaid


# ============================================================
# Test Nodes
# ============================================================

class Recorder(Node):
    """Appends its name and params to shared["log"] and returns a fixed action."""

    def __init__(self, name: str, action: Any = None, **kwargs):
        super().__init__(name=name, **kwargs)
        self.action = action

    async def prep(self, shared):
        shared.setdefault("log", []).append(self.name)
        shared.setdefault("params", {})[self.name] = dict(self.params)

    async def post(self, shared, prep_res, exec_res):
        return self.action


class Flaky(Node):
    """Fails the first ``fail_times`` exec calls."""

    def __init__(self, fail_times: int, **kwargs):
        super().__init__(**kwargs)
        self.fail_times = fail_times
        self.calls = 0

    async def exec(self, prep_res):
        self.calls += 1
        if self.calls <= self.fail_times:
            raise ValueError(f"failure {self.calls}")
        return "ok"

    async def post(self, shared, prep_res, exec_res):
        return exec_res


class Counter(Node):
    """Loops on "continue" until shared["count"] reaches shared["limit"]."""

    async def prep(self, shared):
        shared["count"] = shared.get("count", 0) + 1
        return shared["count"]

    async def post(self, shared, prep_res, exec_res):
        return "end" if prep_res >= shared["limit"] else "continue"


def warnings_in(caplog) -> List[str]:
    return [r.getMessage() for r in caplog.records if r.levelno >= logging.WARNING]


# ============================================================
# BaseNode Tests
# ============================================================

class TestBaseNode:
    """Tests for BaseNode."""

    @pytest.mark.asyncio
    async def test_lifecycle_order(self):
        """Test prep, exec and post run in order and post's value is returned."""
        calls = []

        class Traced(BaseNode):
            async def prep(self, shared):
                calls.append(("prep", shared["input"]))
                return shared["input"] * 2

            async def exec(self, prep_res):
                calls.append(("exec", prep_res))
                return prep_res + 1

            async def post(self, shared, prep_res, exec_res):
                calls.append(("post", prep_res, exec_res))
                shared["output"] = exec_res
                return "done"

        shared = {"input": 5}
        result = await Traced().run(shared)

        assert result == "done"
        assert shared["output"] == 11
        assert calls == [("prep", 5), ("exec", 10), ("post", 10, 11)]

    @pytest.mark.asyncio
    async def test_default_hooks(self):
        """Test the default hooks do nothing and return None."""
        shared = {"untouched": True}
        assert await BaseNode().run(shared) is None
        assert shared == {"untouched": True}

    @pytest.mark.asyncio
    async def test_sync_hooks(self):
        """Test plain (non-async) hook overrides are supported."""
        class SyncNode(BaseNode):
            def prep(self, shared):
                return shared["value"]

            def exec(self, prep_res):
                return prep_res * 3

            def post(self, shared, prep_res, exec_res):
                shared["value"] = exec_res
                return "next"

        shared = {"value": 2}
        assert await SyncNode().run(shared) == "next"
        assert shared["value"] == 6

    def test_set_params_replaces(self):
        """Test set_params replaces the parameter bag wholesale."""
        n = BaseNode()
        n.set_params({"a": 1})
        n.set_params({"b": 2})
        assert n.params == {"b": 2}

    def test_default_name(self):
        """Test the node name defaults to the class name."""
        assert BaseNode().name == "BaseNode"
        assert Recorder("custom").name == "custom"

    def test_add_successor_chaining(self):
        """Test add_successor returns the successor for chaining."""
        a, b, c = BaseNode(), BaseNode(), BaseNode()
        a.add_successor(b).add_successor(c, "next")

        assert a.successors == {"default": b}
        assert b.successors == {"next": c}

    def test_connect_and_transition(self):
        """Test connect and the fluent transition helper."""
        a, b, c = BaseNode(), BaseNode(), BaseNode()
        assert a.connect(b) is b
        assert a.transition("retry").to(c) is c

        assert a.successors["default"] is b
        assert a.successors["retry"] is c

    def test_invalid_successor(self):
        """Test wiring errors are caught at registration time."""
        a = BaseNode()

        with pytest.raises(TypeError, match="must be a string"):
            a.add_successor(BaseNode(), 1)

        with pytest.raises(ValueError, match="cannot be empty"):
            a.add_successor(BaseNode(), "")

        with pytest.raises(TypeError, match="must be a BaseNode"):
            a.add_successor("not a node")

        assert a.successors == {}

    def test_overwrite_warns(self, caplog):
        """Test overwriting a successor logs a warning and replaces it."""
        a, b, c = BaseNode(), BaseNode(), BaseNode()
        a.connect(b)

        with caplog.at_level(logging.WARNING):
            a.connect(c)

        assert a.successors["default"] is c
        assert any("Overwriting successor for action 'default'" in m for m in warnings_in(caplog))

    def test_overwrite_error_policy(self, monkeypatch):
        """Test the overwrite diagnostic can be made fatal."""
        monkeypatch.setattr(settings, "SUCCESSOR_OVERWRITE", "error")
        a, b, c = BaseNode(), BaseNode(), BaseNode()
        a.connect(b, "next")

        with pytest.raises(SuccessorOverwriteError) as exc_info:
            a.connect(c, "next")

        assert exc_info.value.action == "next"
        assert a.successors["next"] is b

    def test_overwrite_ignore_policy(self, monkeypatch, caplog):
        """Test the overwrite diagnostic can be silenced."""
        monkeypatch.setattr(settings, "SUCCESSOR_OVERWRITE", "ignore")
        a = BaseNode()
        a.connect(BaseNode())

        with caplog.at_level(logging.WARNING):
            a.connect(BaseNode())

        assert warnings_in(caplog) == []

    @pytest.mark.asyncio
    async def test_run_with_successors_runs_only_self(self, caplog):
        """Test run() on a wired node warns and does not traverse."""
        a = Recorder("a")
        a.connect(Recorder("b"))
        shared: Dict[str, Any] = {}

        with caplog.at_level(logging.WARNING):
            await a.run(shared)

        assert shared["log"] == ["a"]
        assert any("use a Flow" in m for m in warnings_in(caplog))


# ============================================================
# Node (retry) Tests
# ============================================================

class TestNode:
    """Tests for the retrying Node."""

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self):
        """Test exec is retried until it succeeds."""
        n = Flaky(fail_times=2, max_retries=3)
        assert await n.run({}) == "ok"
        assert n.calls == 3

    @pytest.mark.asyncio
    async def test_stops_after_first_success(self):
        """Test no further attempts are made after a success."""
        n = Flaky(fail_times=0, max_retries=5)
        assert await n.run({}) == "ok"
        assert n.calls == 1

    @pytest.mark.asyncio
    async def test_default_fallback_propagates(self):
        """Test the default fallback re-raises the last error."""
        n = Flaky(fail_times=10, max_retries=1)
        with pytest.raises(ValueError, match="failure 1"):
            await n.run({})
        assert n.calls == 1

    @pytest.mark.asyncio
    async def test_fallback_after_exhausting_retries(self):
        """Test exec_fallback supplies the result after the last attempt."""
        class Recovering(Flaky):
            async def exec_fallback(self, prep_res, exc):
                return f"recovered from {exc}"

        n = Recovering(fail_times=10, max_retries=3)
        assert await n.run({}) == "recovered from failure 3"
        assert n.calls == 3

    @pytest.mark.asyncio
    async def test_fallback_can_raise(self):
        """Test an error raised by exec_fallback propagates."""
        class Giving(Flaky):
            async def exec_fallback(self, prep_res, exc):
                raise RuntimeError("gave up")

        with pytest.raises(RuntimeError, match="gave up"):
            await Giving(fail_times=10, max_retries=2).run({})

    def test_invalid_retry_config(self):
        """Test retry settings are validated."""
        with pytest.raises(ValueError, match="max_retries"):
            Node(max_retries=0)
        with pytest.raises(ValueError, match="wait"):
            Node(wait=-1)

    @pytest.mark.asyncio
    async def test_wait_between_attempts(self):
        """Test the node pauses between attempts but not after the last one."""
        n = Flaky(fail_times=2, max_retries=3, wait=0.02)
        started = time.monotonic()
        assert await n.run({}) == "ok"
        assert time.monotonic() - started >= 0.035

    @pytest.mark.asyncio
    async def test_wait_does_not_stall_other_tasks(self):
        """Test the retry pause only suspends the retrying node."""
        events = []

        class Slow(Node):
            async def exec(self, prep_res):
                events.append("exec")
                if events.count("exec") == 1:
                    raise ValueError("first attempt")

        async def ticker():
            for _ in range(3):
                await asyncio.sleep(0.005)
                events.append("tick")

        await asyncio.gather(Slow(max_retries=2, wait=0.1).run({}), ticker())

        assert events[0] == "exec"
        assert events[-1] == "exec"
        assert events.count("tick") == 3

    @pytest.mark.asyncio
    async def test_prep_and_post_errors_not_retried(self):
        """Test only exec is retried."""
        class BadPrep(Flaky):
            async def prep(self, shared):
                raise KeyError("missing")

        class BadPost(Flaky):
            async def post(self, shared, prep_res, exec_res):
                raise KeyError("broken")

        bad_prep = BadPrep(fail_times=0, max_retries=3)
        with pytest.raises(KeyError):
            await bad_prep.run({})
        assert bad_prep.calls == 0

        bad_post = BadPost(fail_times=0, max_retries=3)
        with pytest.raises(KeyError):
            await bad_post.run({})
        assert bad_post.calls == 1


# ============================================================
# BatchNode Tests
# ============================================================

class Multiplier(BatchNode):
    """Multiplies each item by ten, failing the first try on items in ``flaky``."""

    def __init__(self, flaky=(), broken=(), **kwargs):
        super().__init__(**kwargs)
        self.flaky = set(flaky)
        self.broken = set(broken)
        self.attempts: Dict[int, int] = {}

    async def prep(self, shared):
        return shared.get("items")

    async def exec(self, item):
        self.attempts[item] = self.attempts.get(item, 0) + 1
        if item in self.broken or (item in self.flaky and self.attempts[item] == 1):
            raise ValueError(f"bad item {item}")
        return item * 10

    async def post(self, shared, prep_res, exec_res):
        shared["results"] = exec_res


class TestBatchNode:
    """Tests for BatchNode."""

    @pytest.mark.asyncio
    async def test_preserves_order_with_retries(self):
        """Test results keep input order even when some items are retried."""
        n = Multiplier(flaky={2}, max_retries=2)
        shared = {"items": [1, 2, 3]}
        await n.run(shared)

        assert shared["results"] == [10, 20, 30]
        assert n.attempts == {1: 1, 2: 2, 3: 1}

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        """Test no items yields an empty result list."""
        shared: Dict[str, Any] = {"items": None}
        await Multiplier().run(shared)
        assert shared["results"] == []

    @pytest.mark.asyncio
    async def test_fallback_per_item(self):
        """Test the fallback replaces only the failing item's result."""
        class Tolerant(Multiplier):
            async def exec_fallback(self, item, exc):
                return -1

        shared = {"items": [1, 2, 3]}
        await Tolerant(broken={2}, max_retries=2).run(shared)
        assert shared["results"] == [10, -1, 30]

    @pytest.mark.asyncio
    async def test_failing_item_aborts_batch(self):
        """Test an unrecovered item stops the batch."""
        n = Multiplier(broken={2}, max_retries=2)
        shared = {"items": [1, 2, 3]}

        with pytest.raises(ValueError, match="bad item 2"):
            await n.run(shared)

        assert n.attempts == {1: 1, 2: 2}
        assert "results" not in shared


# ============================================================
# Flow Tests
# ============================================================

class TestFlow:
    """Tests for Flow."""

    @pytest.mark.asyncio
    async def test_linear_traversal(self, caplog):
        """Test A --default--> B runs each node once, silently."""
        a, b = Recorder("a"), Recorder("b")
        a.connect(b)
        shared: Dict[str, Any] = {}

        with caplog.at_level(logging.WARNING):
            await Flow(start=a).run(shared)

        assert shared["log"] == ["a", "b"]
        assert warnings_in(caplog) == []

    @pytest.mark.asyncio
    async def test_result_comes_from_flow_post(self):
        """Test the flow returns its own post value, not the terminal node's."""
        class Finishing(Flow):
            async def post(self, shared, prep_res, exec_res):
                assert exec_res is None
                return ("finished", prep_res)

            async def prep(self, shared):
                return "prepared"

        a = Recorder("a", action="terminal-action")
        assert await Flow(start=a).run({}) is None
        assert await Finishing(start=a).run({}) == ("finished", "prepared")

    @pytest.mark.asyncio
    async def test_flow_prep_runs_before_nodes(self):
        """Test the flow's prep and post wrap the walk."""
        class Wrapped(Flow):
            async def prep(self, shared):
                shared.setdefault("log", []).append("flow.prep")

            async def post(self, shared, prep_res, exec_res):
                shared["log"].append("flow.post")

        shared: Dict[str, Any] = {}
        await Wrapped(start=Recorder("a")).run(shared)
        assert shared["log"] == ["flow.prep", "a", "flow.post"]

    @pytest.mark.asyncio
    async def test_branching(self):
        """Test the returned action selects the successor."""
        for route in ("high", "low"):
            check = Recorder("check", action=route)
            check.transition("high").to(Recorder("high"))
            check.transition("low").to(Recorder("low"))

            shared: Dict[str, Any] = {}
            await Flow(start=check).run(shared)
            assert shared["log"] == ["check", route]

    @pytest.mark.asyncio
    async def test_falsy_action_means_default(self):
        """Test an empty action follows the default successor."""
        a = Recorder("a", action="")
        a.connect(Recorder("b"))
        shared: Dict[str, Any] = {}
        await Flow(start=a).run(shared)
        assert shared["log"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unmatched_action_warns(self, caplog):
        """Test an unmatched action ends the flow with a warning."""
        a = Recorder("a", action="x")
        a.connect(Recorder("b"))
        shared: Dict[str, Any] = {}

        with caplog.at_level(logging.WARNING):
            await Flow(start=a).run(shared)

        assert shared["log"] == ["a"]
        messages = warnings_in(caplog)
        assert len(messages) == 1
        assert "'x' not found" in messages[0]

    @pytest.mark.asyncio
    async def test_dead_end_is_silent(self, caplog):
        """Test a node without successors ends the flow silently."""
        shared: Dict[str, Any] = {}
        with caplog.at_level(logging.WARNING):
            await Flow(start=Recorder("a", action="x")).run(shared)

        assert shared["log"] == ["a"]
        assert warnings_in(caplog) == []

    @pytest.mark.asyncio
    async def test_unmatched_action_error_policy(self, monkeypatch):
        """Test the unmatched action diagnostic can be made fatal."""
        monkeypatch.setattr(settings, "UNMATCHED_ACTION", "error")
        a = Recorder("a", action="x")
        a.connect(Recorder("b"))

        with pytest.raises(UnmatchedActionError) as exc_info:
            await Flow(start=a).run({})

        assert exc_info.value.action == "x"
        assert exc_info.value.available == ["default"]

    @pytest.mark.asyncio
    async def test_self_loop(self):
        """Test a self-loop runs until the node routes elsewhere."""
        counter = Counter()
        counter.transition("continue").to(counter)
        counter.transition("end").to(Recorder("sink"))

        shared: Dict[str, Any] = {"limit": 3}
        await Flow(start=counter).run(shared)

        assert shared["count"] == 3
        assert shared["log"] == ["sink"]

    @pytest.mark.asyncio
    async def test_params_reach_nodes(self):
        """Test nodes get the flow params merged with per-call overrides."""
        a, b = Recorder("a"), Recorder("b")
        a.connect(b)
        flow = Flow(start=a)
        flow.set_params({"x": 1, "y": 2})

        shared: Dict[str, Any] = {}
        await flow.run(shared, params={"y": 3})

        assert shared["params"]["a"] == {"x": 1, "y": 3}
        assert shared["params"]["b"] == {"x": 1, "y": 3}
        assert flow.params == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_node_error_aborts_flow(self):
        """Test an unrecovered error stops the walk and propagates."""
        failing = Flaky(fail_times=10, max_retries=2)
        a = Recorder("a")
        a.connect(failing).connect(Recorder("c"))
        shared: Dict[str, Any] = {}

        with pytest.raises(ValueError):
            await Flow(start=a).run(shared)

        assert shared["log"] == ["a"]
        assert failing.calls == 2

    def test_exec_on_flow_fails(self):
        """Test calling exec on a flow fails immediately."""
        flow = Flow(start=BaseNode())
        with pytest.raises(InvalidOperationError, match="cannot exec"):
            flow.exec(None)
        assert issubclass(InvalidOperationError, RuntimeError)

    @pytest.mark.asyncio
    async def test_flow_without_start(self):
        """Test running an unwired flow raises."""
        with pytest.raises(FlowConfigurationError, match="no start node"):
            await Flow().run({})


# ============================================================
# Nested Flow Tests
# ============================================================

class TestNestedFlow:
    """Tests for flows used as nodes of other flows."""

    @pytest.mark.asyncio
    async def test_inner_flow_runs_as_one_step(self):
        """Test reaching a flow node runs its whole graph."""
        inner_a, inner_b = Recorder("inner_a"), Recorder("inner_b")
        inner_a.connect(inner_b)
        inner = Flow(start=inner_a)

        first = Recorder("first")
        first.connect(inner).connect(Recorder("last"))

        shared: Dict[str, Any] = {}
        await Flow(start=first).run(shared)
        assert shared["log"] == ["first", "inner_a", "inner_b", "last"]

    @pytest.mark.asyncio
    async def test_inner_flow_post_routes(self):
        """Test the inner flow's post picks the outer successor."""
        class Deciding(Flow):
            async def post(self, shared, prep_res, exec_res):
                return "done"

        inner = Deciding(start=Recorder("inner", action="ignored"))
        inner.transition("done").to(Recorder("after"))

        shared: Dict[str, Any] = {}
        await Flow(start=inner).run(shared)
        assert shared["log"] == ["inner", "after"]

    @pytest.mark.asyncio
    async def test_outer_params_reach_inner_nodes(self):
        """Test params flow down into nested graphs."""
        inner = Flow(start=Recorder("leaf"))
        inner.set_params({"ignored": True})
        outer = Flow(start=inner)
        outer.set_params({"x": 1})

        shared: Dict[str, Any] = {}
        await outer.run(shared, params={"y": 2})
        assert shared["params"]["leaf"] == {"x": 1, "y": 2}


# ============================================================
# BatchFlow Tests
# ============================================================

class Step(Node):
    """Logs (name, x) around a yield to the event loop."""

    async def prep(self, shared):
        shared["log"].append((self.name, "start", self.params["x"]))
        await asyncio.sleep(0)
        shared["log"].append((self.name, "end", self.params["x"]))


class TestBatchFlow:
    """Tests for BatchFlow."""

    @pytest.mark.asyncio
    async def test_one_pass_per_params(self):
        """Test passes run sequentially, one per parameter set."""
        class PerX(BatchFlow):
            async def prep(self, shared):
                return [{"x": 1}, {"x": 2}]

        a = Step(name="a")
        a.connect(Step(name="b"))
        shared: Dict[str, Any] = {"log": []}
        await PerX(start=a).run(shared)

        assert shared["log"] == [
            ("a", "start", 1), ("a", "end", 1),
            ("b", "start", 1), ("b", "end", 1),
            ("a", "start", 2), ("a", "end", 2),
            ("b", "start", 2), ("b", "end", 2),
        ]

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        """Test an empty parameter list runs no passes but still posts."""
        class Empty(BatchFlow):
            async def post(self, shared, prep_res, exec_res):
                shared["post"] = (prep_res, exec_res)

        shared: Dict[str, Any] = {}
        await Empty(start=Recorder("a")).run(shared)

        assert "log" not in shared
        assert shared["post"] == ([], None)

    @pytest.mark.asyncio
    async def test_param_precedence(self):
        """Test own params < pass params < per-call overrides."""
        class Batched(BatchFlow):
            async def prep(self, shared):
                return [{"x": 1, "y": 1}]

        flow = Batched(start=Recorder("leaf"))
        flow.set_params({"x": 0, "y": 0, "z": 0})

        shared: Dict[str, Any] = {}
        await flow.run(shared, params={"y": 9})
        assert shared["params"]["leaf"] == {"x": 1, "y": 9, "z": 0}

    @pytest.mark.asyncio
    async def test_post_receives_param_list(self):
        """Test post gets the parameter sets and returns the result."""
        class Batched(BatchFlow):
            async def prep(self, shared):
                return ({"x": x} for x in range(3))

            async def post(self, shared, prep_res, exec_res):
                return prep_res

        result = await Batched(start=Recorder("leaf")).run({})
        assert result == [{"x": 0}, {"x": 1}, {"x": 2}]


# ============================================================
# Graph Description Tests
# ============================================================

class TestGraphDescription:
    """Tests for describe_flow and to_mermaid."""

    def test_describe_linear_flow(self):
        """Test nodes and labelled edges are described."""
        a, b = Recorder("a"), BatchNode(name="b")
        a.connect(b)
        description = describe_flow(Flow(start=a, name="linear"))

        assert description["name"] == "linear"
        assert description["start"] == "n0"
        assert [n["name"] for n in description["nodes"]] == ["a", "b"]
        assert [n["kind"] for n in description["nodes"]] == ["node", "batch_node"]
        assert description["edges"] == [{"source": "n0", "target": "n1", "action": "default"}]

    def test_describe_self_loop(self):
        """Test cycles are visited once."""
        counter = Counter(name="counter")
        counter.transition("continue").to(counter)
        counter.transition("end").to(BaseNode(name="sink"))

        description = describe_flow(Flow(start=counter))
        assert [n["name"] for n in description["nodes"]] == ["counter", "sink"]
        assert len(description["edges"]) == 2

    def test_describe_nested_flow(self):
        """Test nested flows carry their own graph."""
        inner = BatchFlow(start=BaseNode(name="leaf"), name="inner")
        description = describe_flow(Flow(start=inner))

        node = description["nodes"][0]
        assert node["kind"] == "batch_flow"
        assert node["graph"]["nodes"][0]["name"] == "leaf"

    def test_describe_unwired_flow(self):
        """Test a flow without a start node is described as empty."""
        description = describe_flow(Flow(name="empty"))
        assert description["start"] is None
        assert description["nodes"] == []

    def test_mermaid_generation(self):
        """Test Mermaid diagram generation."""
        inner = Flow(start=BaseNode(name="leaf"), name="inner")
        check = BaseNode(name="check")
        check.transition("retry").to(check)
        check.connect(inner)

        mermaid = to_mermaid(Flow(start=check))

        assert mermaid.startswith("graph TD")
        assert '["check"]' in mermaid
        assert "-->|retry|" in mermaid
        assert "subgraph" in mermaid
        assert '["leaf"]' in mermaid


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
