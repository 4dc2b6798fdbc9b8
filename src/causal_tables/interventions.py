from __future__ import annotations
from typing import Any, Callable, Dict, Mapping
import numpy as np

from .errors import ShapeError
from .table import CausalTable

Intervention = Callable[[CausalTable], Mapping[str, Any]]

def intervene(table: CausalTable, intervention: Intervention) -> CausalTable:
    """Replace the treatment columns of `table` with `intervention(table)`.

    The intervention must return exactly one column of length nrow for every
    treatment variable. Summaries computed from the old treatment values are
    not refreshed here; call `summarize()` (or `scm.update_arrays`) afterwards.
    """
    new = dict(intervention(table))
    if len(new) != len(table.treatment):
        raise ShapeError(
            f"Intervention returned {len(new)} columns but the table has {len(table.treatment)} treatment variables."
        )
    unknown = [k for k in new if k not in table.treatment]
    if unknown:
        raise ShapeError(f"Intervention replaced {unknown}, which are not treatment variables {list(table.treatment)}.")
    data = dict(table.data)
    for k, v in new.items():
        v = np.asarray(v)
        if v.shape != (table.nrow,):
            raise ShapeError(f"Intervened column `{k}` has shape {v.shape}, expected {(table.nrow,)}.")
        data[k] = v
    return table.replace(data=data)

def treat_all(table: CausalTable) -> Dict[str, Any]:
    return {t: np.ones(table.nrow) for t in table.treatment}

def treat_none(table: CausalTable) -> Dict[str, Any]:
    return {t: np.zeros(table.nrow) for t in table.treatment}
