"""agent-relay - Delegation permission model"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from agent_relay.agents.models import AgentDefinition, DelegationPolicy, PolicyKind, RelayConfiguration

PolicyLike = Union[DelegationPolicy, Mapping[str, Any], None]
AgentLike = Union[AgentDefinition, Mapping[str, Any]]


def _policy_parts(policy: PolicyLike) -> Tuple[Optional[str], List[str]]:
    """Return (kind, targets) for a typed or raw delegation policy."""
    if policy is None:
        return None, []
    if isinstance(policy, DelegationPolicy):
        return policy.type.value, list(policy.agents)
    kind = policy.get("type")
    if isinstance(kind, PolicyKind):
        kind = kind.value
    targets = policy.get("agents") or []
    if not isinstance(targets, (list, tuple)):
        targets = []
    return kind, [t for t in targets if isinstance(t, str)]


def is_delegation_allowed(from_policy: PolicyLike, from_name: str, to_name: str) -> bool:
    """Check whether from_name may delegate to to_name.

    Args:
        from_policy: Delegation policy of the source agent
        from_name: Source agent name
        to_name: Target agent name

    Returns:
        None policy: always False
        All policy: True unless to_name == from_name
        Specific policy: True if to_name is listed and differs from from_name
    """
    kind, targets = _policy_parts(from_policy)
    if kind == PolicyKind.ALL.value:
        return to_name != from_name
    if kind == PolicyKind.SPECIFIC.value:
        return to_name in targets and to_name != from_name
    return False


def _agent_parts(agent: AgentLike) -> Tuple[Optional[str], PolicyLike]:
    if isinstance(agent, AgentDefinition):
        return agent.name, agent.delegation_permissions
    name = agent.get("name")
    policy = agent.get("delegation_permissions")
    return (name if isinstance(name, str) and name else None), (
        policy if isinstance(policy, (Mapping, DelegationPolicy)) else None
    )


def build_delegation_graph(agents: Iterable[AgentLike]) -> Dict[str, List[str]]:
    """Build the directed delegation graph.

    An edge A -> B exists when A's policy permits delegating to B and B is a
    configured agent. Node and neighbor order follow configuration order so
    results are deterministic.
    """
    parts = [_agent_parts(agent) for agent in agents]
    names = [name for name, _ in parts if name is not None]
    known = set(names)

    graph: Dict[str, List[str]] = {}
    for name, policy in parts:
        if name is None or name in graph:
            continue
        kind, targets = _policy_parts(policy)
        candidates = names if kind == PolicyKind.ALL.value else targets
        neighbors: List[str] = []
        for target in candidates:
            if target in known and target not in neighbors and is_delegation_allowed(
                policy, name, target
            ):
                neighbors.append(target)
        graph[name] = neighbors
    return graph


def _canonical(cycle: Sequence[str]) -> Tuple[str, ...]:
    """Rotate a cycle so it starts at its smallest name (for deduplication)."""
    pivot = min(range(len(cycle)), key=lambda i: cycle[i])
    return tuple(cycle[pivot:]) + tuple(cycle[:pivot])


def find_cycles(graph: Mapping[str, Sequence[str]]) -> List[List[str]]:
    """Find delegation cycles with an iterative depth-first search.

    Every unvisited node starts a DFS that keeps an explicit recursion stack.
    Reaching a node that is still on the stack records the path slice from
    that node's first occurrence to the current node as one cycle. Search
    continues until every node is visited, so all back-edge cycles are
    collected, not only the first. Runs in O(nodes + edges).
    """
    visited: set = set()
    cycles: List[List[str]] = []
    seen: set = set()

    for root in graph:
        if root in visited:
            continue

        path: List[str] = [root]
        on_stack: Dict[str, int] = {root: 0}
        frames: List[Iterator[str]] = [iter(graph.get(root, ()))]
        visited.add(root)

        while frames:
            neighbor = next(frames[-1], None)
            if neighbor is None:
                frames.pop()
                on_stack.pop(path.pop())
                continue

            if neighbor in on_stack:
                cycle = path[on_stack[neighbor]:]
                key = _canonical(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(list(cycle))
                continue

            if neighbor in visited:
                continue

            visited.add(neighbor)
            on_stack[neighbor] = len(path)
            path.append(neighbor)
            frames.append(iter(graph.get(neighbor, ())))

    return cycles


def detect_cycles(source: Union[RelayConfiguration, Iterable[AgentLike]]) -> List[List[str]]:
    """Detect static delegation cycles in a configuration or agent list."""
    agents = source.agents if isinstance(source, RelayConfiguration) else source
    return find_cycles(build_delegation_graph(agents))


def format_cycle(cycle: Sequence[str]) -> str:
    """Render a cycle as 'a -> b -> a'."""
    if not cycle:
        return ""
    return " -> ".join(list(cycle) + [cycle[0]])


class PermissionEvaluator:
    """Delegation permission evaluation against a configuration snapshot"""

    @staticmethod
    def evaluate(configuration: RelayConfiguration, from_agent: str, to_agent: str) -> bool:
        """Evaluate whether from_agent may delegate to to_agent

        Args:
            configuration: Configuration snapshot
            from_agent: Source agent name
            to_agent: Target agent name

        Returns:
            False when either agent is missing or the policy forbids the edge
        """
        source = configuration.get_agent(from_agent)
        if source is None or configuration.get_agent(to_agent) is None:
            return False
        return is_delegation_allowed(source.delegation_permissions, from_agent, to_agent)

    @staticmethod
    def delegation_targets(configuration: RelayConfiguration, from_agent: str) -> List[str]:
        """List every agent from_agent may delegate to, in configuration order"""
        return build_delegation_graph(configuration.agents).get(from_agent, [])
