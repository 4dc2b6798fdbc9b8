from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Union
import numpy as np
from scipy import sparse

Array = np.ndarray
Seed = Union[int, np.random.Generator, None]

def rng(seed: Seed = None) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)

def as_names(names: Union[str, Iterable[str], None]) -> List[str]:
    """Normalise a single label or a sequence of labels into a list of names."""
    if names is None:
        return []
    if isinstance(names, str):
        return [names]
    return list(names)

def expand_columns(name: str, value: Any) -> Dict[str, Array]:
    """Split a 2-D value into columns `name1..namek`; 1-D values keep their name."""
    arr = np.asarray(value)
    if arr.ndim == 1:
        return {name: arr}
    if arr.ndim == 2:
        if arr.shape[1] == 1:
            return {name: arr[:, 0]}
        return {f"{name}{j + 1}": arr[:, j] for j in range(arr.shape[1])}
    raise ValueError(f"`{name}` has {arr.ndim} dimensions; only vectors and matrices can be stored as columns.")

def collect_columns(source: Dict[str, Any], name: str) -> Optional[Any]:
    """Inverse of `expand_columns`: look up `name`, or stack `name1, name2, ...` if it was split."""
    if name in source:
        return source[name]
    cols = []
    j = 1
    while f"{name}{j}" in source:
        cols.append(np.asarray(source[f"{name}{j}"]))
        j += 1
    if not cols:
        return None
    return np.column_stack(cols)

def adjacency_array(m: Any) -> Array:
    """Dense 2-D view of an adjacency structure (numpy or scipy.sparse)."""
    if sparse.issparse(m):
        m = m.toarray()
    m = np.asarray(m)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ValueError(f"Adjacency matrix must be square, got shape {m.shape}.")
    return m

def is_row_indexed(value: Any, n: int) -> bool:
    """True if every dimension of `value` has length n (vectors and n x n matrices)."""
    shape = getattr(value, "shape", None)
    if shape is None or len(shape) == 0:
        return False
    return all(s == n for s in shape)
