"""Tests for delegation and node dependency graphs."""

import pytest

from hivekit.agents.agent import AgentDefinition
from hivekit.agents.errors import AgentNotFoundError, CircularDependencyError
from hivekit.agents.graph import DependencyGraph


def agents(**edges):
    return {
        name: AgentDefinition(name=name, description=f"{name} agent", delegates_to=targets)
        for name, targets in edges.items()
    }


def test_acyclic_graph_builds():
    graph = DependencyGraph.for_agents(agents(lead=["backend", "frontend"], backend=["db"], frontend=["db"], db=[]))

    assert graph.targets("lead") == ["backend", "frontend"]
    assert sorted(graph.sources("db")) == ["backend", "frontend"]
    assert graph.roots() == ["lead"]
    assert graph.leaves() == ["db"]
    assert graph.reachable_from("backend") == {"backend", "db"}


def test_cycle_reports_exact_path():
    with pytest.raises(CircularDependencyError) as exc:
        DependencyGraph.for_agents(agents(lead=["a"], a=["b"], b=["c"], c=["a"]))

    assert exc.value.cycle == ["a", "b", "c", "a"]
    assert "Circular delegation detected: a -> b -> c -> a" in str(exc.value)


def test_cycle_path_excludes_vertices_before_the_cycle():
    with pytest.raises(CircularDependencyError) as exc:
        DependencyGraph({"x": ["y"], "y": ["z"], "z": ["y"]})

    cycle = exc.value.cycle
    assert cycle[0] == cycle[-1]
    assert "x" not in cycle
    assert set(cycle) == {"y", "z"}


def test_self_delegation_is_a_cycle():
    with pytest.raises(CircularDependencyError) as exc:
        DependencyGraph.for_agents(agents(solo=["solo"]))

    assert exc.value.cycle == ["solo", "solo"]


def test_unknown_delegate_is_fatal():
    with pytest.raises(AgentNotFoundError, match="Agent 'lead' references unknown agent 'ghost'"):
        DependencyGraph.for_agents(agents(lead=["ghost"]))


def test_topological_levels_place_dependencies_first():
    graph = DependencyGraph({"a": [], "b": ["a"], "c": ["a"], "d": ["b", "c"]})

    levels = graph.topological_levels()

    assert levels == [["a"], ["b", "c"], ["d"]]
    assert "Level 3" in graph.visualize()


def test_diamond_is_not_a_cycle():
    graph = DependencyGraph({"top": ["l", "r"], "l": ["bottom"], "r": ["bottom"], "bottom": []})
    assert graph.roots() == ["top"]
