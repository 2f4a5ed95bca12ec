"""
Tests for topological sorting and level scheduling.
"""

import random

import pytest

from prompt_canvas.core.dependencies import dependency_resolver
from prompt_canvas.core.errors import CycleDetectedError
from prompt_canvas.core.graph import Edge, GraphSnapshot, Node, NodeKind
from prompt_canvas.core.levels import compute_levels, group_by_level, plan_execution
from prompt_canvas.core.toposort import topological_sort


def gen(node_id):
    return Node(id=node_id, kind=NodeKind.GENERATOR)


def deps_from(mapping):
    return lambda node_id: set(mapping.get(node_id, ()))


def ids(nodes):
    return [node.id for node in nodes]


def assert_closed_chain(chain, mapping):
    """Each id depends on the next one, and the chain ends where it started."""
    assert chain[0] == chain[-1]
    for dependent, dependency in zip(chain, chain[1:]):
        assert dependency in mapping[dependent]


class TestTopologicalSort:

    def test_chain(self):
        mapping = {"b": {"a"}, "c": {"b"}}
        order = topological_sort([gen("c"), gen("b"), gen("a")], deps_from(mapping))
        assert ids(order) == ["a", "b", "c"]

    def test_independent_nodes_keep_input_order(self):
        order = topological_sort([gen("x"), gen("y"), gen("z")], deps_from({}))
        assert ids(order) == ["x", "y", "z"]

    def test_dependencies_precede_dependents(self):
        rng = random.Random(7)
        names = [f"n{i}" for i in range(40)]
        mapping = {
            name: {names[j] for j in range(i) if rng.random() < 0.15}
            for i, name in enumerate(names)
        }
        shuffled = names[:]
        rng.shuffle(shuffled)

        order = ids(topological_sort([gen(n) for n in shuffled], deps_from(mapping)))

        position = {name: i for i, name in enumerate(order)}
        assert sorted(order) == sorted(names)
        for dependent, deps in mapping.items():
            for dep in deps:
                assert position[dep] < position[dependent]

    def test_missing_dependencies_ignored(self):
        order = topological_sort([gen("b")], deps_from({"b": {"ghost"}}))
        assert ids(order) == ["b"]

    def test_cycle_reports_closed_chain(self):
        mapping = {"a": {"c"}, "b": {"a"}, "c": {"b"}}
        with pytest.raises(CycleDetectedError) as exc_info:
            topological_sort([gen("a"), gen("b"), gen("c")], deps_from(mapping))

        chain = exc_info.value.cycle_node_ids
        assert len(chain) == 4
        assert set(chain) == {"a", "b", "c"}
        assert_closed_chain(chain, mapping)
        assert "→" in str(exc_info.value)

    def test_cycle_below_acyclic_prefix(self):
        mapping = {"top": {"x"}, "x": {"y"}, "y": {"x"}}
        with pytest.raises(CycleDetectedError) as exc_info:
            topological_sort([gen("top"), gen("x"), gen("y")], deps_from(mapping))

        chain = exc_info.value.cycle_node_ids
        assert "top" not in chain
        assert_closed_chain(chain, mapping)

    def test_self_dependency_is_a_cycle(self):
        with pytest.raises(CycleDetectedError) as exc_info:
            topological_sort([gen("a")], deps_from({"a": {"a"}}))
        assert exc_info.value.cycle_node_ids == ["a", "a"]

    def test_deep_chain_does_not_recurse(self):
        count = 5000
        names = [f"n{i}" for i in range(count)]
        mapping = {names[i]: {names[i - 1]} for i in range(1, count)}
        nodes = [gen(n) for n in reversed(names)]

        order = topological_sort(nodes, deps_from(mapping))
        assert ids(order) == names

        levels = compute_levels(order, deps_from(mapping))
        assert levels[names[-1]] == count - 1


class TestLevels:

    def test_chain_levels(self):
        mapping = {"b": {"a"}, "c": {"b"}}
        order = topological_sort([gen("a"), gen("b"), gen("c")], deps_from(mapping))
        assert compute_levels(order, deps_from(mapping)) == {"a": 0, "b": 1, "c": 2}

    def test_level_is_one_more_than_deepest_dependency(self):
        mapping = {"b": {"a"}, "c": {"a", "b"}, "d": {"a"}}
        nodes = [gen(n) for n in "abcd"]
        levels = compute_levels(topological_sort(nodes, deps_from(mapping)), deps_from(mapping))
        assert levels == {"a": 0, "b": 1, "c": 2, "d": 1}

    def test_dependent_nodes_never_share_a_level(self):
        rng = random.Random(11)
        names = [f"n{i}" for i in range(30)]
        mapping = {
            name: {names[j] for j in range(i) if rng.random() < 0.2}
            for i, name in enumerate(names)
        }
        order = topological_sort([gen(n) for n in names], deps_from(mapping))
        levels = compute_levels(order, deps_from(mapping))
        for dependent, deps in mapping.items():
            for dep in deps:
                assert levels[dependent] > levels[dep]

    def test_idempotent(self):
        mapping = {"b": {"a"}, "c": {"a"}, "d": {"b", "c"}}
        order = topological_sort([gen(n) for n in "abcd"], deps_from(mapping))
        first = compute_levels(order, deps_from(mapping))
        second = compute_levels(order, deps_from(mapping))
        assert first == second

    def test_shared_dependency_computed_once(self):
        calls = {}
        mapping = {f"leaf{i}": {"root"} for i in range(50)}

        def deps_of(node_id):
            calls[node_id] = calls.get(node_id, 0) + 1
            return mapping.get(node_id, set())

        nodes = [gen("root")] + [gen(f"leaf{i}") for i in range(50)]
        levels = compute_levels(nodes, deps_of)

        assert calls["root"] == 1
        assert all(levels[f"leaf{i}"] == 1 for i in range(50))

    def test_absent_dependencies_do_not_raise_level(self):
        levels = compute_levels([gen("b")], deps_from({"b": {"ghost"}}))
        assert levels == {"b": 0}

    def test_group_by_level(self):
        mapping = {"f": {"d", "e"}}
        order = topological_sort([gen("d"), gen("e"), gen("f")], deps_from(mapping))
        groups = group_by_level(order, compute_levels(order, deps_from(mapping)))
        assert [(g.level, g.node_ids) for g in groups] == [(0, ["d", "e"]), (1, ["f"])]


class TestPlanExecution:

    def test_plan_uses_generators_only(self):
        nodes = (
            gen("a"),
            Node(id="i", kind=NodeKind.PASS_THROUGH_IMAGE),
            gen("b"),
            Node(id="note", kind=NodeKind.ANNOTATION),
        )
        snapshot = GraphSnapshot(nodes=nodes, edges=(Edge("a", "i"), Edge("i", "b")))
        plan = plan_execution(snapshot, dependency_resolver(snapshot))

        assert plan.as_ids() == [["a"], ["b"]]
        assert plan.total == 2
        assert plan.level_of == {"a": 0, "b": 1}

    def test_empty_plan(self):
        plan = plan_execution(GraphSnapshot(nodes=(), edges=()), deps_from({}))
        assert plan.total == 0
        assert plan.levels == ()
