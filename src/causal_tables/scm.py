from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from . import density, graph
from .dgp import DataGeneratingProcess, Environment, StepKind, StepLike, realize
from .errors import GeneratorError, ValidationError
from .table import CausalTable
from .utils import Seed, as_names, collect_columns, expand_columns

logger = logging.getLogger(__name__)

class StructuralCausalModel:
    """A DataGeneratingProcess labeled with treatment, response and causes.

    Each step of the DGP is realised in order:
        value_i = draw( generator_i(values_1..i-1) )
    and `causes` records which earlier steps each labeled variable depends on.
    If `causes` is None, every unlabeled variable is assumed to be a common
    cause of every treatment and response.

    `arraynames` lists steps that are auxiliary rather than tabular (typically
    adjacency matrices); distribution steps named there are stored in `arrays`.
    """

    def __init__(
        self,
        dgp: Union[DataGeneratingProcess, Iterable[StepLike]],
        treatment: Union[str, Sequence[str]],
        response: Union[str, Sequence[str]],
        causes: Optional[Mapping[str, Iterable[str]]] = None,
        arraynames: Union[str, Sequence[str]] = (),
    ):
        if not isinstance(dgp, DataGeneratingProcess):
            dgp = DataGeneratingProcess(dgp)
        self.dgp = dgp
        self.treatment = tuple(as_names(treatment))
        self.response = tuple(as_names(response))
        self.arraynames = tuple(as_names(arraynames))

        self._check_declared("treatment", self.treatment)
        self._check_declared("response", self.response)
        self._check_declared("arraynames", self.arraynames)

        if causes is None:
            self.causes = None
            tabular = [s for s in dgp.names if s not in self.arraynames]
            graph.validate_causes(graph.default_causes(tabular, self.treatment, self.response), self.treatment, self.response)
        else:
            self.causes = graph.normalize_causes(causes)
            referenced = set(self.causes)
            for pa in self.causes.values():
                referenced |= pa
            self._check_declared("causes", sorted(referenced))
            graph.validate_causes(self.causes, self.treatment, self.response)

    def _check_declared(self, label: str, names: Sequence[str]) -> None:
        missing = [x for x in names if x not in self.dgp]
        if missing:
            raise ValidationError(f"{label} {missing} are not steps of the DataGeneratingProcess {self.dgp.names}.")

    def __len__(self) -> int:
        return len(self.dgp)

    def __repr__(self) -> str:
        return f"StructuralCausalModel(dgp={self.dgp!r}, treatment={list(self.treatment)}, response={list(self.response)})"

    def rand(self, n: int, seed: Seed = None) -> CausalTable:
        """Sample n rows and return them as a CausalTable."""
        path = self.dgp.rand(n, seed=seed)

        data: Dict[str, Any] = {}
        arrays: Dict[str, Any] = {}
        for s in self.dgp:
            value = path.values[s.name]
            if s.kind is StepKind.DISTRIBUTION and s.name not in self.arraynames:
                data.update(expand_columns(s.name, value))
            else:
                arrays[s.name] = value

        return CausalTable(
            data=data,
            treatment=self.treatment,
            response=self.response,
            causes=self.causes,
            arrays=arrays,
            summaries=path.summaries,
        )

    def update_arrays(self, table: CausalTable) -> CausalTable:
        """Recompute transform and summary steps from the table's data.

        Use after replacing columns (e.g. an intervention on treatment) so that
        derived arrays reflect the new values. Opaque random steps cannot be
        recomputed and keep their stored value.
        """
        source = table.environment()
        env = Environment(table.nrow)
        arrays: Dict[str, Any] = {}
        data = dict(table.data)
        for s in self.dgp:
            if s.kind is StepKind.DISTRIBUTION:
                value = collect_columns(source, s.name)
                if s.name in table.arrays:
                    arrays[s.name] = table.arrays[s.name]
            elif s.kind is StepKind.OPAQUE_RANDOM:
                value = table.arrays.get(s.name)
                if value is not None:
                    arrays[s.name] = value
            else:
                try:
                    value = realize(s, s.generator(env), env)
                except GeneratorError:
                    raise
                except Exception as e:
                    raise GeneratorError(s.name, f"{type(e).__name__}: {e}") from e
                arrays[s.name] = value
                # columns added by `summarize` would otherwise shadow the new value
                if s.name in table.data or f"{s.name}1" in table.data:
                    data.update(expand_columns(s.name, value))
            if value is not None:
                env.bind(s.name, value)
        logger.debug(f"Updated arrays {list(arrays)}")
        return table.replace(arrays=arrays, data=data)

    # ---- ground truth ----

    def condensity(self, table: CausalTable, name: str):
        return density.condensity(self, table, name)

    def conmean(self, table: CausalTable, name: str):
        return density.conmean(self, table, name)

    def convar(self, table: CausalTable, name: str):
        return density.convar(self, table, name)

    def propensity(self, table: CausalTable, name: str):
        return density.propensity(self, table, name)


def rand(scm: StructuralCausalModel, n: int, seed: Seed = None) -> CausalTable:
    return scm.rand(n, seed=seed)
