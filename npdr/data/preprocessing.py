"""
Attribute preparation ahead of the distance computation.
"""

import numpy as np
import pandas as pd
from typing import Iterable, Optional
import logging

from ..exceptions import InputError

logger = logging.getLogger(__name__)


def range_scale(data: pd.DataFrame) -> pd.DataFrame:
    """
    Divide every attribute by its range (max - min).

    Parameters:
    -----------
    data : pd.DataFrame
        Numeric attribute matrix

    Returns:
    --------
    pd.DataFrame
        Scaled attribute matrix; zero-range attributes are left as they are
    """
    value_range = data.max() - data.min()
    n_constant = int((value_range == 0).sum())
    if n_constant > 0:
        logger.debug("%d zero-range attributes left unscaled", n_constant)
    value_range = value_range.where(value_range != 0, 1.0)
    return data / value_range


def encode_categories(data: pd.DataFrame) -> pd.DataFrame:
    """
    Replace every column by integer category codes.

    Parameters:
    -----------
    data : pd.DataFrame
        Attribute matrix of any dtype

    Returns:
    --------
    pd.DataFrame
        Integer codes, equal values sharing a code within a column
    """
    return data.apply(lambda column: pd.Series(
        pd.factorize(column)[0], index=column.index
    ))


def drop_attributes(
    data: pd.DataFrame,
    exclude: Optional[Iterable[str]] = None
) -> pd.DataFrame:
    """
    Remove attributes from the matrix used for distances.

    Parameters:
    -----------
    data : pd.DataFrame
        Attribute matrix
    exclude : Iterable[str], optional
        Attribute names to leave out

    Returns:
    --------
    pd.DataFrame
        Remaining attributes
    """
    exclude = list(exclude or [])
    if not exclude:
        return data

    unknown = set(exclude) - set(data.columns)
    if unknown:
        raise InputError(f"Cannot exclude unknown attributes: {sorted(unknown)}")

    remaining = data.drop(columns=exclude)
    if remaining.shape[1] == 0:
        raise InputError("Every attribute was excluded from the distance computation")

    logger.info("Excluded %d attributes from the distance computation", len(exclude))
    return remaining


def check_numeric(data: pd.DataFrame, metric: str) -> None:
    """Raise InputError if any attribute is not numeric."""
    non_numeric = [
        name for name in data.columns
        if not pd.api.types.is_numeric_dtype(data[name])
        or pd.api.types.is_bool_dtype(data[name])
    ]
    if non_numeric:
        raise InputError(
            f"Metric '{metric}' needs numeric attributes; "
            f"non-numeric: {non_numeric[:10]}"
        )


def check_genotypes(data: pd.DataFrame, metric: str) -> None:
    """Raise InputError unless every value is a 0/1/2 genotype code."""
    check_numeric(data, metric)
    if not np.isin(data.to_numpy(), [0, 1, 2]).all():
        raise InputError(
            f"Metric '{metric}' needs genotype codes 0/1/2"
        )
