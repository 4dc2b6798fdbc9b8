from __future__ import annotations
from itertools import product
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .errors import ValidationError

Causes = Dict[str, FrozenSet[str]]
GraphQuery = Callable[[Causes, str, str], FrozenSet[str]]
PairwiseResult = Union[FrozenSet[str], Dict[Tuple[str, str], FrozenSet[str]]]

def normalize_causes(causes: Mapping[str, Iterable[str]]) -> Causes:
    out: Causes = {}
    for k, v in causes.items():
        if isinstance(v, str):
            v = [v]
        out[k] = frozenset(v)
    return out

def parents(causes: Mapping[str, FrozenSet[str]], x: str) -> FrozenSet[str]:
    return frozenset(causes.get(x, ()))

def children(causes: Mapping[str, FrozenSet[str]], x: str) -> FrozenSet[str]:
    return frozenset(z for z, pa in causes.items() if x in pa)

def confounders(causes: Mapping[str, FrozenSet[str]], x: str, y: str) -> FrozenSet[str]:
    """Variables that cause both x and y."""
    return parents(causes, x) & parents(causes, y)

def mediators(causes: Mapping[str, FrozenSet[str]], x: str, y: str) -> FrozenSet[str]:
    """Variables caused by x that also cause y."""
    return children(causes, x) & parents(causes, y)

def instruments(causes: Mapping[str, FrozenSet[str]], x: str, y: str) -> FrozenSet[str]:
    """Variables linked to x (as parent or child) that are neither y nor a parent of y."""
    linked = parents(causes, x) | children(causes, x)
    return linked - parents(causes, y) - {y}

def topological_order(causes: Mapping[str, FrozenSet[str]]) -> List[str]:
    """Peel nodes whose dependencies are all resolved until none remain.

    Every parent that is not itself a key is treated as a root.
    Raises ValidationError if some nodes can never be peeled (a cycle).
    """
    pending: Dict[str, Set[str]] = {k: set(v) for k, v in causes.items()}
    for pa in causes.values():
        for p in pa:
            pending.setdefault(p, set())
    order: List[str] = []
    ready = sorted(k for k, deps in pending.items() if not deps)
    while ready:
        node = ready.pop()
        order.append(node)
        del pending[node]
        for k, deps in pending.items():
            if node in deps:
                deps.discard(node)
                if not deps and k not in ready:
                    ready.append(k)
    if pending:
        raise ValidationError(f"Causes map is cyclic; unresolved variables: {sorted(pending)}")
    return order

def is_acyclic(causes: Mapping[str, FrozenSet[str]]) -> bool:
    try:
        topological_order(causes)
    except ValidationError:
        return False
    return True

def default_causes(variables: Iterable[str], treatment: Sequence[str], response: Sequence[str]) -> Causes:
    """Every unlabeled variable is a common cause of every treatment and response."""
    labeled = set(treatment) | set(response)
    others = frozenset(v for v in variables if v not in labeled)
    return {v: others for v in list(treatment) + list(response)}

def validate_causes(causes: Mapping[str, FrozenSet[str]], treatment: Sequence[str], response: Sequence[str]) -> None:
    overlap = set(treatment) & set(response)
    if overlap:
        raise ValidationError(f"Treatment and response labels must be disjoint; both contain {sorted(overlap)}")
    missing = [v for v in list(treatment) + list(response) if v not in causes]
    if missing:
        raise ValidationError(f"Causes map has no entry for labeled variables {missing}")
    for t in treatment:
        bad = set(causes[t]) & set(response)
        if bad:
            raise ValidationError(f"Treatment `{t}` cannot be caused by response {sorted(bad)}")
    topological_order(causes)

def pairwise(
    query: GraphQuery,
    causes: Mapping[str, FrozenSet[str]],
    treatment: Sequence[str],
    response: Sequence[str],
) -> PairwiseResult:
    """Apply `query` to every (treatment, response) pair.

    Returns a single set when every pair agrees, otherwise a dict keyed by pair.
    """
    results = {(t, r): query(causes, t, r) for t, r in product(treatment, response)}
    if not results:
        return frozenset()
    distinct = set(results.values())
    if len(distinct) == 1:
        return distinct.pop()
    return results
