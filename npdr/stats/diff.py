"""
Projected differences between paired samples.

Each attribute is tagged once with an AttributeType; the tag carries the
comparison rule applied to every neighbor pair of that attribute. The
outcome gets its own rule from the outcome type.

Example:
    >>> import numpy as np
    >>> from npdr.stats.diff import AttributeType, diff
    >>>
    >>> diff(np.array([0, 2]), np.array([2, 2]), AttributeType.ALLELE_SHARING)
    array([1., 0.])
    >>> diff("A", "B", "match-mismatch")
    1.0
"""

from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple, Union
import logging

import numpy as np
import pandas as pd

from ..exceptions import InputError

# Configure module logger
logger = logging.getLogger(__name__)


def _numeric_abs(a, b):
    return np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))


def _numeric_sqr(a, b):
    return (np.asarray(a, dtype=float) - np.asarray(b, dtype=float)) ** 2


def _mismatch(a, b):
    # 1 = different values, 0 = same value
    return (np.asarray(a) != np.asarray(b)).astype(float)


def _allele_sharing(a, b):
    # genotypes 0/1/2: fraction of the two alleles not shared
    return np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)) / 2.0


class AttributeType(Enum):
    """Type tag of an attribute, selecting its projected-difference rule."""

    NUMERIC_ABS = "numeric-abs"
    NUMERIC_SQR = "numeric-sqr"
    CATEGORICAL_MATCH = "match-mismatch"
    ALLELE_SHARING = "allele-sharing"

    @property
    def rule(self) -> Callable:
        return _RULES[self]

    @property
    def is_numeric(self) -> bool:
        return self is not AttributeType.CATEGORICAL_MATCH

    @classmethod
    def parse(cls, value: Union[str, "AttributeType"]) -> "AttributeType":
        """Accept a member, its value, or a common alias."""
        if isinstance(value, cls):
            return value
        key = str(value).lower()
        key = _TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            valid = [member.value for member in cls]
            raise InputError(
                f"Unknown attribute type '{value}'. Valid types are: {valid}"
            ) from None


_RULES = {
    AttributeType.NUMERIC_ABS: _numeric_abs,
    AttributeType.NUMERIC_SQR: _numeric_sqr,
    AttributeType.CATEGORICAL_MATCH: _mismatch,
    AttributeType.ALLELE_SHARING: _allele_sharing,
}

_TYPE_ALIASES = {
    "numeric": "numeric-abs",
    "categorical": "match-mismatch",
    "match": "match-mismatch",
    "mismatch": "match-mismatch",
    "allele": "allele-sharing",
    "genotype": "allele-sharing",
}

# Rule applied to the outcome, per outcome type
OUTCOME_DIFF_TYPES = {
    "continuous": AttributeType.NUMERIC_ABS,
    "categorical": AttributeType.CATEGORICAL_MATCH,
}


def diff(a, b, attr_type: Union[str, AttributeType]):
    """
    Projected difference of two values (or element-wise over two arrays).

    Args:
        a: First value or array.
        b: Second value or array.
        attr_type: Attribute type tag or its name.

    Returns:
        Float scalar for scalar input, float array otherwise.
    """
    result = AttributeType.parse(attr_type).rule(a, b)
    if np.ndim(result) == 0:
        return float(result)
    return result


def projected_differences(
    values,
    pairs: np.ndarray,
    attr_type: Union[str, AttributeType]
) -> np.ndarray:
    """
    Projected difference vector of one attribute over a pair set.

    Args:
        values: Attribute values, one per sample.
        pairs: Integer array of shape (n_pairs, 2).
        attr_type: Attribute type tag.

    Returns:
        Array of length n_pairs.
    """
    rule = AttributeType.parse(attr_type).rule
    values = np.asarray(values)
    pairs = np.asarray(pairs, dtype=int).reshape(-1, 2)
    return rule(values[pairs[:, 0]], values[pairs[:, 1]])


def difference_matrix(
    data: pd.DataFrame,
    pairs: np.ndarray,
    attr_types: Mapping[str, AttributeType]
) -> pd.DataFrame:
    """
    Projected differences for every attribute, one column per attribute.

    Args:
        data: Attribute matrix (samples x attributes).
        pairs: Integer array of shape (n_pairs, 2).
        attr_types: Resolved type tag per column of ``data``.

    Returns:
        DataFrame of shape (n_pairs, n_attributes).
    """
    columns = {
        name: projected_differences(data[name].to_numpy(), pairs, attr_types[name])
        for name in data.columns
    }
    diffs = pd.DataFrame(columns, columns=data.columns)
    logger.debug("Built %d x %d projected-difference matrix",
                 diffs.shape[0], diffs.shape[1])
    return diffs


def outcome_differences(
    outcome,
    pairs: np.ndarray,
    outcome_type: str
) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
    """
    Projected differences of the outcome over a pair set.

    Continuous outcomes use the absolute difference and categorical outcomes
    the mismatch indicator (1 = the pair straddles two classes). Survival
    outcomes, given as an (n, 2) array of time and event indicator, return a
    ``(durations, status)`` tuple: the absolute time difference and whether
    both events were observed.
    """
    pairs = np.asarray(pairs, dtype=int).reshape(-1, 2)
    if outcome_type == "survival":
        outcome = np.asarray(outcome, dtype=float)
        times, events = outcome[:, 0], outcome[:, 1]
        durations = _numeric_abs(times[pairs[:, 0]], times[pairs[:, 1]])
        status = (events[pairs[:, 0]] > 0) & (events[pairs[:, 1]] > 0)
        return durations, status.astype(float)

    if outcome_type not in OUTCOME_DIFF_TYPES:
        raise InputError(f"Unknown outcome type '{outcome_type}'")
    return projected_differences(outcome, pairs, OUTCOME_DIFF_TYPES[outcome_type])


def resolve_attr_types(
    data: pd.DataFrame,
    attr_types: Optional[Union[str, AttributeType, Mapping[str, str]]] = None
) -> Dict[str, AttributeType]:
    """
    Resolve the type tag of every attribute once, up front.

    Numeric columns default to 'numeric-abs' and everything else to
    'match-mismatch'. A single type applies to every column; a mapping
    overrides the defaults for the attributes it names.
    """
    resolved = {
        name: (AttributeType.NUMERIC_ABS
               if pd.api.types.is_numeric_dtype(data[name])
               and not pd.api.types.is_bool_dtype(data[name])
               else AttributeType.CATEGORICAL_MATCH)
        for name in data.columns
    }

    if attr_types is None:
        pass
    elif isinstance(attr_types, (str, AttributeType)):
        tag = AttributeType.parse(attr_types)
        resolved = {name: tag for name in data.columns}
    else:
        unknown = set(attr_types) - set(data.columns)
        if unknown:
            raise InputError(f"attr_types names unknown attributes: {sorted(unknown)}")
        for name, value in attr_types.items():
            resolved[name] = AttributeType.parse(value)

    for name, tag in resolved.items():
        if tag.is_numeric and not pd.api.types.is_numeric_dtype(data[name]):
            raise InputError(
                f"Attribute '{name}' is declared {tag.value} but is not numeric"
            )
        if tag is AttributeType.ALLELE_SHARING and \
                not data[name].isin([0, 1, 2]).all():
            raise InputError(
                f"Attribute '{name}' is declared allele-sharing but holds "
                "values outside the 0/1/2 genotype coding"
            )

    return resolved
