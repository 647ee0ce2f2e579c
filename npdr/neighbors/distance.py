"""
Sample-by-sample distance matrices.

The distance matrix drives the neighbor search only; attributes excluded
from it are still scored afterwards.

Example:
    >>> import pandas as pd
    >>> from npdr.neighbors.distance import compute_distances
    >>>
    >>> data = pd.DataFrame({"a": [0.0, 1.0, 3.0], "b": [0.0, 1.0, 0.0]})
    >>> compute_distances(data, metric="manhattan")
    array([[0., 2., 3.],
           [2., 0., 3.],
           [3., 3., 0.]])
"""

from typing import Iterable, Mapping, Optional, Union
import logging

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from ..config import METRICS
from ..data.attributes import validate_attributes
from ..data.preprocessing import (
    check_genotypes,
    check_numeric,
    drop_attributes,
    encode_categories,
    range_scale,
)
from ..exceptions import InputError
from ..stats.diff import AttributeType, resolve_attr_types

# Configure module logger
logger = logging.getLogger(__name__)


def _mixed_distances(
    data: pd.DataFrame,
    attr_types: Mapping[str, AttributeType]
) -> np.ndarray:
    """Sum of per-attribute projected differences, numeric ones range-scaled."""
    n_samples = data.shape[0]
    distances = np.zeros((n_samples, n_samples))

    for name in data.columns:
        tag = attr_types[name]
        values = data[name].to_numpy()
        if tag in (AttributeType.NUMERIC_ABS, AttributeType.NUMERIC_SQR):
            values = values.astype(float)
            value_range = values.max() - values.min()
            if value_range > 0:
                values = values / value_range
        distances += tag.rule(values[:, np.newaxis], values[np.newaxis, :])

    return distances


def compute_distances(
    data: Union[pd.DataFrame, np.ndarray],
    metric: str = "manhattan",
    attr_types: Optional[Union[str, Mapping[str, str]]] = None,
    exclude: Optional[Iterable[str]] = None
) -> np.ndarray:
    """
    Compute the symmetric distance matrix between samples.

    Args:
        data: Attribute matrix (samples x attributes).
        metric: One of:
               - 'manhattan', 'euclidean': numeric attributes as given
               - 'relief-scaled-manhattan', 'relief-scaled-euclidean':
                 each attribute divided by its range first
               - 'allele-sharing-manhattan': genotype codes halved, then
                 Manhattan
               - 'allele-sharing': mean allele-sharing distance over
                 attributes (genotype codes only)
               - 'hamming': number of mismatching attributes, any dtype
               - 'mixed': sum of each attribute's own projected
                 difference, numeric attributes range-scaled
        attr_types: Attribute type tags, used by the 'mixed' metric.
        exclude: Attribute names left out of the distance computation.

    Returns:
        Array of shape (n_samples, n_samples), symmetric, non-negative,
        zero on the diagonal.

    Raises:
        InputError: Fewer than 2 samples, unknown metric, or attribute
            values the metric cannot handle.
    """
    data = validate_attributes(data)
    if metric not in METRICS:
        raise InputError(f"Unknown metric '{metric}'. Valid metrics are: {list(METRICS)}")

    data = drop_attributes(data, exclude)

    if metric in ("manhattan", "euclidean"):
        check_numeric(data, metric)
        condensed = pdist(data.to_numpy(dtype=float),
                          "cityblock" if metric == "manhattan" else "euclidean")

    elif metric.startswith("relief-scaled"):
        check_numeric(data, metric)
        scaled = range_scale(data.astype(float)).to_numpy()
        condensed = pdist(scaled,
                          "cityblock" if metric.endswith("manhattan") else "euclidean")

    elif metric == "allele-sharing-manhattan":
        check_genotypes(data, metric)
        condensed = pdist(data.to_numpy(dtype=float) / 2.0, "cityblock")

    elif metric == "allele-sharing":
        check_genotypes(data, metric)
        condensed = pdist(data.to_numpy(dtype=float) / 2.0, "cityblock") / data.shape[1]

    elif metric == "hamming":
        codes = encode_categories(data).to_numpy()
        condensed = pdist(codes, "hamming") * data.shape[1]

    else:
        tags = resolve_attr_types(data, _subset_types(attr_types, data.columns))
        distances = _mixed_distances(data, tags)
        logger.info("Computed %s distances for %d samples over %d attributes",
                    metric, data.shape[0], data.shape[1])
        return distances

    logger.info("Computed %s distances for %d samples over %d attributes",
                metric, data.shape[0], data.shape[1])

    return squareform(condensed)


def _subset_types(attr_types, columns):
    """Restrict a per-attribute type mapping to the remaining columns."""
    if attr_types is None or isinstance(attr_types, (str, AttributeType)):
        return attr_types
    return {name: value for name, value in attr_types.items() if name in columns}
