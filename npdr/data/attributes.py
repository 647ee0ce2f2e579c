"""
Input validation and alignment for attribute matrices and outcomes.
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple, Union
import logging

from ..exceptions import InputError

logger = logging.getLogger(__name__)


def validate_attributes(
    data: Union[pd.DataFrame, np.ndarray],
    name_prefix: str = "attr"
) -> pd.DataFrame:
    """
    Check an attribute matrix and return it as a DataFrame.

    Parameters:
    -----------
    data : pd.DataFrame or np.ndarray
        Samples as rows, attributes as columns
    name_prefix : str
        Prefix for generated column names when ``data`` is an array

    Returns:
    --------
    pd.DataFrame
        The attribute matrix (a new frame for array input, otherwise the
        caller's frame, never modified)
    """
    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise InputError(f"Attribute matrix must be 2-D, got {data.ndim}-D")
        data = pd.DataFrame(
            data, columns=[f"{name_prefix}_{i}" for i in range(data.shape[1])]
        )
    elif not isinstance(data, pd.DataFrame):
        raise InputError("Attribute matrix must be a pandas DataFrame or numpy array")

    if data.shape[0] < 2:
        raise InputError(f"At least 2 samples are required, got {data.shape[0]}")
    if data.shape[1] == 0:
        raise InputError("Attribute matrix has no attributes")
    if data.columns.duplicated().any():
        dupes = data.columns[data.columns.duplicated()].unique().tolist()
        raise InputError(f"Duplicate attribute names: {dupes}")
    if data.isnull().any().any():
        missing = data.columns[data.isnull().any()].tolist()
        raise InputError(f"Attribute matrix has missing values in: {missing}")

    return data


def infer_outcome_type(outcome) -> str:
    """
    Guess the outcome type.

    Two-column input (time, event) is survival; numeric input with more
    than two distinct values is continuous; anything else is categorical.

    Integer-coded labels with three or more classes (e.g. 0/1/2) are
    numeric and therefore inferred as continuous; pass
    ``outcome_type="categorical"`` for them.
    """
    if isinstance(outcome, pd.DataFrame) or np.ndim(outcome) == 2:
        return "survival"
    values = pd.Series(np.asarray(outcome))
    if pd.api.types.is_numeric_dtype(values) and \
            not pd.api.types.is_bool_dtype(values) and values.nunique() > 2:
        if pd.api.types.is_integer_dtype(values) and values.nunique() <= 10:
            logger.warning("Integer outcome with %d levels treated as continuous; "
                           "pass outcome_type='categorical' for class labels",
                           values.nunique())
        return "continuous"
    return "categorical"


def _align(other, data: pd.DataFrame, what: str):
    """Reorder a pandas object to the sample order of ``data``."""
    if isinstance(other, (pd.Series, pd.DataFrame)) and \
            not other.index.equals(data.index):
        if set(other.index) != set(data.index) or \
                len(other.index) != len(data.index):
            raise InputError(
                f"{what} samples do not match the attribute matrix samples"
            )
        logger.debug("Aligning %s to attribute matrix sample order", what)
        other = other.loc[data.index]
    if len(other) != len(data):
        raise InputError(
            f"{what} length ({len(other)}) does not match "
            f"number of samples ({len(data)})"
        )
    return other


def validate_outcome(
    outcome,
    data: pd.DataFrame,
    outcome_type: Optional[str] = None
) -> Tuple[np.ndarray, str]:
    """
    Check an outcome against the attribute matrix.

    Parameters:
    -----------
    outcome : pd.Series, np.ndarray, pd.DataFrame or tuple
        One value per sample; survival outcomes are a (time, event) pair
        of vectors or a two-column frame
    data : pd.DataFrame
        Validated attribute matrix
    outcome_type : str, optional
        'continuous', 'categorical' or 'survival'; inferred when None

    Returns:
    --------
    Tuple[np.ndarray, str]
        Outcome values in sample order and the outcome type
    """
    if isinstance(outcome, tuple):
        if len(outcome) != 2:
            raise InputError("Survival outcome tuple must be (time, event)")
        outcome = np.column_stack([np.asarray(outcome[0]), np.asarray(outcome[1])])

    if outcome_type is None:
        outcome_type = infer_outcome_type(outcome)
        logger.info("Inferred %s outcome", outcome_type)

    outcome = _align(outcome, data, "Outcome")

    if outcome_type == "survival":
        values = np.asarray(outcome, dtype=float)
        if values.ndim != 2 or values.shape[1] != 2:
            raise InputError("Survival outcome needs two columns: time and event")
        if np.isnan(values).any():
            raise InputError("Survival outcome has missing values")
        if not np.isin(values[:, 1], [0, 1]).all():
            raise InputError("Survival event indicator must be 0 or 1")
        return values, outcome_type

    values = np.asarray(outcome)
    if values.ndim != 1:
        raise InputError(f"{outcome_type} outcome must be one-dimensional")
    if pd.isnull(values).any():
        raise InputError("Outcome has missing values")

    if outcome_type == "continuous":
        if not pd.api.types.is_numeric_dtype(values):
            raise InputError("Continuous outcome must be numeric")
        values = values.astype(float)
    elif len(np.unique(values)) < 2:
        raise InputError("Categorical outcome needs at least 2 classes")

    return values, outcome_type


def validate_covariates(
    covariates: Union[pd.DataFrame, pd.Series, np.ndarray],
    data: pd.DataFrame
) -> pd.DataFrame:
    """
    Check covariates and return them as a DataFrame in sample order.

    Covariate names must not collide with attribute names.
    """
    if isinstance(covariates, pd.Series):
        covariates = covariates.to_frame(name=covariates.name or "covariate")
    elif isinstance(covariates, np.ndarray):
        covariates = pd.DataFrame(
            covariates.reshape(len(covariates), -1), index=data.index
        )
        covariates.columns = [f"covar_{i}" for i in range(covariates.shape[1])]

    covariates = _align(covariates, data, "Covariate")
    if covariates.isnull().any().any():
        raise InputError("Covariates have missing values")
    clash = set(covariates.columns) & set(data.columns)
    if clash:
        raise InputError(f"Covariate names clash with attributes: {sorted(clash)}")
    return covariates
