from __future__ import annotations
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
import numpy as np
from scipy import sparse

from . import graph
from .errors import ShapeError, ValidationError
from .summaries import NetworkSummary
from .utils import adjacency_array, as_names, expand_columns, is_row_indexed

Array = np.ndarray
logger = logging.getLogger(__name__)

@dataclass(frozen=True, eq=False)
class CausalTable:
    """Row-aligned data annotated with causal labels.

    Fields:
        data: column name -> 1-D array, all of the same length n
        treatment, response: ordered labels (a single name is accepted)
        causes: variable -> parents. If None, every unlabeled variable is taken
            to be a common cause of every treatment and response.
        arrays: auxiliary values that are not row-aligned (adjacency matrices, graphs, scalars)
        summaries: output name -> NetworkSummary describing how that column is computed

    Tables are never mutated; every operation returns a new table.
    """
    data: Mapping[str, Any]
    treatment: Union[str, Sequence[str]] = ()
    response: Union[str, Sequence[str]] = ()
    causes: Optional[Mapping[str, Iterable[str]]] = None
    arrays: Mapping[str, Any] = field(default_factory=dict)
    summaries: Mapping[str, NetworkSummary] = field(default_factory=dict)

    def __post_init__(self):
        data = {}
        for name, col in dict(self.data).items():
            arr = np.array(col)
            if arr.ndim != 1:
                raise ShapeError(f"Column `{name}` must be one-dimensional, got shape {arr.shape}.")
            data[name] = arr
        lengths = {name: len(col) for name, col in data.items()}
        if len(set(lengths.values())) > 1:
            raise ShapeError(f"All columns must have the same length, got {lengths}.")

        summaries = dict(self.summaries)
        for name, s in summaries.items():
            if not isinstance(s, NetworkSummary):
                raise ValidationError(f"Summary `{name}` is not a NetworkSummary: {s!r}")

        arrays = {k: (v.copy() if isinstance(v, np.ndarray) or sparse.issparse(v) else v) for k, v in dict(self.arrays).items()}

        treatment = tuple(as_names(self.treatment))
        response = tuple(as_names(self.response))
        if self.causes is None:
            causes = graph.default_causes(list(data) + [s for s in summaries if s not in data], treatment, response)
        else:
            causes = graph.normalize_causes(self.causes)
        graph.validate_causes(causes, treatment, response)

        object.__setattr__(self, "data", data)
        object.__setattr__(self, "treatment", treatment)
        object.__setattr__(self, "response", response)
        object.__setattr__(self, "causes", causes)
        object.__setattr__(self, "arrays", arrays)
        object.__setattr__(self, "summaries", summaries)

    # ---- tabular access ----

    @property
    def nrow(self) -> int:
        for col in self.data.values():
            return len(col)
        for a in self.arrays.values():
            shape = getattr(a, "shape", ())
            if len(shape) == 2 and shape[0] == shape[1]:
                return shape[0]
        return 0

    @property
    def ncol(self) -> int:
        return len(self.data)

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self.data)

    def __len__(self) -> int:
        return self.nrow

    def __contains__(self, name: str) -> bool:
        return name in self.data

    def __getitem__(self, name: str) -> Array:
        return self.data[name]

    def rows(self) -> Iterator[Dict[str, Any]]:
        for i in range(self.nrow):
            yield {k: v[i] for k, v in self.data.items()}

    def environment(self) -> Dict[str, Any]:
        """Arrays overlaid with data, so that summarized or intervened columns win."""
        env = dict(self.arrays)
        env.update(self.data)
        return env

    def __repr__(self) -> str:
        return (
            f"CausalTable(nrow={self.nrow}, columns={list(self.columns)}, treatment={list(self.treatment)}, "
            f"response={list(self.response)}, arrays={list(self.arrays)}, summaries={list(self.summaries)})"
        )

    # ---- functional updates ----

    def replace(self, **fields) -> "CausalTable":
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(fields) - known
        if unknown:
            raise ValidationError(f"CausalTable has no fields {sorted(unknown)}")
        return dataclasses.replace(self, **fields)

    def _check_names(self, columns: Iterable[str]) -> List[str]:
        columns = as_names(columns)
        unknown = [c for c in columns if c not in self.data and c not in self.summaries]
        if unknown:
            raise ValidationError(f"Columns {unknown} are not in the table.")
        return columns

    def select(self, columns: Union[str, Iterable[str]]) -> "CausalTable":
        """Keep only `columns`, along with the summaries that describe them (or have no target)."""
        keep = self._check_names(columns)
        data = {c: self.data[c] for c in keep if c in self.data}
        summaries = {k: s for k, s in self.summaries.items() if k in keep or s.target is None}
        return self.replace(data=data, summaries=summaries)

    def reject(self, columns: Union[str, Iterable[str]]) -> "CausalTable":
        """Drop `columns` and the summaries that describe them."""
        drop = set(self._check_names(columns))
        data = {c: v for c, v in self.data.items() if c not in drop}
        summaries = {k: s for k, s in self.summaries.items() if k not in drop}
        return self.replace(data=data, summaries=summaries)

    def subset(self, indices: Any) -> "CausalTable":
        """Rows `indices` (integers or a boolean mask) of the data and of every n x n array."""
        n = self.nrow
        indices = np.asarray(indices)
        if indices.size == 0:
            indices = indices.astype(int)
        try:
            idx = np.arange(n)[indices]
        except IndexError as e:
            raise ShapeError(f"Invalid row indices for a table with {n} rows: {e}") from e
        idx = np.atleast_1d(idx)

        square = [k for k, a in self.arrays.items() if is_row_indexed(a, n) and len(a.shape) == 2]
        if square and len(np.unique(idx)) != len(idx):
            raise ShapeError(f"Duplicate row indices cannot be used with adjacency arrays {square}.")

        data = {k: v[idx] for k, v in self.data.items()}
        arrays = {}
        for k, a in self.arrays.items():
            if not is_row_indexed(a, n):
                arrays[k] = a
            elif sparse.issparse(a):
                arrays[k] = a.tocsr()[idx][:, idx]
            else:
                arrays[k] = np.asarray(a)[np.ix_(*([idx] * np.ndim(a)))]
        return self.replace(data=data, arrays=arrays)

    # ---- network structure ----

    def adjacency_matrix(self) -> Array:
        """Boolean OR of every array used by a summary; the identity if there are none."""
        names = []
        for s in self.summaries.values():
            if s.matrix not in names:
                names.append(s.matrix)
        n = self.nrow
        if not names:
            return np.eye(n, dtype=bool)
        missing = [m for m in names if m not in self.arrays]
        if missing:
            raise ValidationError(f"Summaries refer to arrays {missing} that are not in the table.")
        adj = np.zeros((n, n), dtype=bool)
        for m in names:
            a = adjacency_array(self.arrays[m])
            if a.shape != (n, n):
                raise ShapeError(f"Array `{m}` has shape {a.shape}, expected {(n, n)}.")
            adj |= a != 0
        return adj

    def dependency_matrix(self) -> Array:
        """Units are dependent if equal, neighbours, or sharing a neighbour."""
        adj = self.adjacency_matrix()
        a = adj.astype(np.int64)
        two_hop = (a @ a) > 0
        return adj | two_hop | np.eye(self.nrow, dtype=bool)

    # ---- causal structure ----

    def _pairwise(self, query: graph.GraphQuery) -> graph.PairwiseResult:
        return graph.pairwise(query, self.causes, self.treatment, self.response)

    def _materialize(self, names: graph.PairwiseResult):
        if isinstance(names, dict):
            return {pair: self.select(self._present(v)) for pair, v in names.items()}
        return self.select(self._present(names))

    def _present(self, names: Iterable[str]) -> List[str]:
        # keep a stable column order; labels may name variables without data
        ordered = list(self.data) + [s for s in self.summaries if s not in self.data]
        return [c for c in ordered if c in names]

    def confounder_names(self) -> graph.PairwiseResult:
        return self._pairwise(graph.confounders)

    def mediator_names(self) -> graph.PairwiseResult:
        return self._pairwise(graph.mediators)

    def instrument_names(self) -> graph.PairwiseResult:
        return self._pairwise(graph.instruments)

    def confounders(self):
        return self._materialize(self.confounder_names())

    def mediators(self):
        return self._materialize(self.mediator_names())

    def instruments(self):
        return self._materialize(self.instrument_names())

    def parents(self, name: str) -> "CausalTable":
        return self.select(self._present(graph.parents(self.causes, name)))

    def _parents_of(self, names: Sequence[str]):
        per = {x: graph.parents(self.causes, x) for x in names}
        distinct = set(per.values())
        if len(distinct) <= 1:
            return self.select(self._present(distinct.pop() if distinct else frozenset()))
        return {x: self.select(self._present(v)) for x, v in per.items()}

    def treatment_parents(self):
        return self._parents_of(self.treatment)

    def response_parents(self):
        return self._parents_of(self.response)

    def select_treatment(self) -> "CausalTable":
        return self.select(self._present(self.treatment))

    def select_response(self) -> "CausalTable":
        return self.select(self._present(self.response))

    # ---- summaries ----

    def summarize(self) -> "CausalTable":
        """Compute every summary into `data`, propagating causal labels to the new columns."""
        env = self.environment()
        data = dict(self.data)
        treatment = list(self.treatment)
        response = list(self.response)
        causes = {k: set(v) for k, v in self.causes.items()}

        for name, s in self.summaries.items():
            value = s.summarize(env)
            cols = expand_columns(name, value)
            env[name] = value
            env.update(cols)
            data.update(cols)
            logger.debug(f"Summarized `{name}` into columns {list(cols)}")

            target = s.target
            if target is None:
                continue
            new = [c for c in cols if c != target]
            if target in self.treatment:
                treatment += [c for c in new if c not in treatment]
            elif target in self.response:
                response += [c for c in new if c not in response]
            # a summary inherits its target's parents, minus itself
            for c in new:
                if c not in causes and target in causes:
                    causes[c] = set(causes[target]) - set(new)
            for k, pa in causes.items():
                if target in pa and k not in new and k != target:
                    pa.update(new)

        return CausalTable(data, treatment, response, causes, self.arrays, self.summaries)
