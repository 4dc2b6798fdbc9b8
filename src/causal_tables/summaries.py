"""Network summaries: variables that aggregate a target over each unit's neighbours.

A summary is a small descriptor naming the target column and the adjacency
array in the environment. It can be evaluated (`summarize`) against any
mapping holding both, so the same descriptor is used when sampling, when
re-summarizing a CausalTable after an intervention, and when recovering a
closed-form conditional distribution.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional
import numpy as np

from .distributions import convolve
from .errors import ShapeError, UnsupportedOperationError
from .utils import adjacency_array

Array = np.ndarray


class NetworkSummary(ABC):
    """Base class of all network summaries."""

    target: Optional[str]
    matrix: str

    @abstractmethod
    def summarize(self, env: Mapping[str, Any]) -> Array:
        ...

    @property
    def closed_form(self) -> bool:
        """True if `conditional_distribution` is implemented for this summary."""
        return False

    def conditional_distribution(self, marginals: List[Any], matrix: Array) -> List[Any]:
        """Per-unit distribution of the summary given each unit's own marginal of the target."""
        raise UnsupportedOperationError(
            f"No closed-form conditional distribution is implemented for {type(self).__name__} summaries."
        )

    def _inputs(self, env: Mapping[str, Any]):
        m = adjacency_array(env[self.matrix])
        x = np.asarray(env[self.target], dtype=float)
        if x.ndim != 1 or x.shape[0] != m.shape[0]:
            raise ShapeError(
                f"Target `{self.target}` has shape {x.shape} but matrix `{self.matrix}` has shape {m.shape}."
            )
        return m, x

    def _weighted(self, env: Mapping[str, Any], x: Array) -> Array:
        weights = getattr(self, "weights", None)
        if weights is None:
            return x
        return x * np.asarray(env[weights], dtype=float)


@dataclass(frozen=True)
class Sum(NetworkSummary):
    """Sum of the target over each unit's neighbours in `matrix`."""
    target: str
    matrix: str
    weights: Optional[str] = None

    def summarize(self, env: Mapping[str, Any]) -> Array:
        m, x = self._inputs(env)
        return m @ self._weighted(env, x)

    @property
    def closed_form(self) -> bool:
        return self.weights is None

    def conditional_distribution(self, marginals: List[Any], matrix: Array) -> List[Any]:
        if not self.closed_form:
            return super().conditional_distribution(marginals, matrix)
        # any nonzero entry means "neighbour"; edge weights are ignored
        nbrs = adjacency_array(matrix) != 0
        return [convolve([marginals[j] for j in np.flatnonzero(row)]) for row in nbrs]


@dataclass(frozen=True)
class Mean(NetworkSummary):
    """Average of the target over neighbours; units without neighbours get 0."""
    target: str
    matrix: str
    weights: Optional[str] = None

    def summarize(self, env: Mapping[str, Any]) -> Array:
        m, x = self._inputs(env)
        deg = m.sum(axis=1)
        total = m @ self._weighted(env, x)
        return np.divide(total, deg, out=np.zeros_like(total, dtype=float), where=deg != 0)


@dataclass(frozen=True)
class Product(NetworkSummary):
    """Product of the target over neighbours; units without neighbours get 1."""
    target: str
    matrix: str

    def summarize(self, env: Mapping[str, Any]) -> Array:
        m, x = self._inputs(env)
        return np.prod(np.where(m != 0, x[None, :], 1.0), axis=1)


@dataclass(frozen=True)
class OrderStatistics(NetworkSummary):
    """All order statistics of the neighbours' values, largest first.

    Returns an (n, max_degree) matrix padded with NaN.
    """
    target: str
    matrix: str

    def summarize(self, env: Mapping[str, Any]) -> Array:
        m, x = self._inputs(env)
        nbrs = m != 0
        max_k = int(nbrs.sum(axis=1).max()) if nbrs.size else 0
        out = np.full((x.shape[0], max_k), np.nan)
        for i, row in enumerate(nbrs):
            vals = np.sort(x[row])[::-1]
            out[i, : len(vals)] = vals
        return out


@dataclass(frozen=True)
class Friends(NetworkSummary):
    """Number of neighbours ("friends") of each unit, counting edge weights."""
    matrix: str
    target: Optional[str] = None

    def summarize(self, env: Mapping[str, Any]) -> Array:
        m = adjacency_array(env[self.matrix])
        return m @ np.ones(m.shape[0])
