from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import numpy as np

from .errors import ValidationError
from .utils import Seed, rng

Array = np.ndarray

@dataclass
class RandomGraphConfig:
    edge_prob: float = 0.1
    directed: bool = False
    self_loops: bool = False
    weight_scale: Optional[float] = None

    def __post_init__(self):
        if not (0.0 <= self.edge_prob <= 1.0):
            raise ValidationError("edge_prob must be in [0,1].")
        if self.weight_scale is not None and self.weight_scale <= 0:
            raise ValidationError("weight_scale must be > 0.")

def random_graph(n: int, cfg: Optional[RandomGraphConfig] = None, seed: Seed = None) -> Array:
    """Erdos-Renyi random graph over n units.

    Returns:
        adj: (n,n) with adj[i,j]=1 if i and j are connected (int8), or with
             |N(0, weight_scale)| edge weights when `cfg.weight_scale` is set.
    """
    if cfg is None:
        cfg = RandomGraphConfig()
    if n < 0:
        raise ValidationError("n must be >= 0.")
    r = rng(seed)

    mask = r.random((n, n)) < cfg.edge_prob
    if not cfg.directed:
        # mirror the upper triangle so the graph is symmetric
        mask = np.triu(mask, k=1)
        mask = mask | mask.T
    if not cfg.self_loops:
        np.fill_diagonal(mask, False)

    if cfg.weight_scale is None:
        return mask.astype(np.int8)

    weights = np.abs(r.normal(0, cfg.weight_scale, size=(n, n)))
    if not cfg.directed:
        weights = np.triu(weights) + np.triu(weights, k=1).T
    return np.where(mask, weights, 0.0)

def erdos_renyi(n: int, edge_prob: float, seed: Seed = None) -> Array:
    return random_graph(n, RandomGraphConfig(edge_prob=edge_prob), seed=seed)
