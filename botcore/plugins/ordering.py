"""Dependency ordering of plugins."""

from typing import Iterable, List, Mapping

import networkx as nx

from botcore.errors import DependencyError
from botcore.plugins.manifest import PluginDescriptor


def build_dependency_graph(
    plugin_ids: Iterable[str],
    descriptors: Mapping[str, PluginDescriptor],
) -> nx.DiGraph:
    """Graph of ``plugin_ids`` and everything they depend on.

    Edges point from a dependency to its dependent.

    Raises:
        DependencyError: If a plugin depends on one that was not discovered
    """
    graph = nx.DiGraph()
    pending = list(plugin_ids)

    while pending:
        plugin_id = pending.pop()
        if plugin_id in graph:
            continue
        graph.add_node(plugin_id)

        for dep in descriptors[plugin_id].depends:
            if dep not in descriptors:
                raise DependencyError(f"Plugin '{plugin_id}' depends on missing plugin '{dep}'")
            graph.add_edge(dep, plugin_id)
            pending.append(dep)

    return graph


def resolve_load_order(
    plugin_ids: Iterable[str],
    descriptors: Mapping[str, PluginDescriptor],
) -> List[str]:
    """Order ``plugin_ids`` (and their dependencies) so dependencies come first.

    Raises:
        DependencyError: On a missing dependency or a dependency cycle
    """
    graph = build_dependency_graph(plugin_ids, descriptors)

    try:
        cycle = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return list(nx.lexicographical_topological_sort(graph))

    cycle_str = " -> ".join([u for u, _ in cycle] + [cycle[0][0]])
    raise DependencyError(f"Circular plugin dependency: {cycle_str}")
