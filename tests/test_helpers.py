"""Tests for result-table helpers."""
import numpy as np
import pandas as pd
import pytest
from npdr.utils import join_scores, rank_agreement, rank_statistics, selection_set


@pytest.fixture
def stats_table():
    return pd.DataFrame(
        {
            "beta_z": [5.0, 1.0, np.nan, 3.0],
            "pval": [1e-6, 0.2, np.nan, 1e-3],
            "pval_adj": [4e-6, 0.8, np.nan, 4e-3],
            "status": ["computed", "computed", "degenerate", "computed"],
        },
        index=pd.Index(["a", "b", "c", "d"], name="attribute"),
    )


class TestSelection:
    """Tests for selection and ranking."""

    def test_selection_set(self, stats_table):
        assert selection_set(stats_table, 0.05) == ["a", "d"]

    def test_raw_pvalues(self, stats_table):
        assert selection_set(stats_table, 0.5, column="pval") == ["a", "d", "b"]

    def test_degenerate_never_selected(self, stats_table):
        assert "c" not in selection_set(stats_table, 1.1)

    def test_rank_puts_nan_last(self, stats_table):
        assert rank_statistics(stats_table).index.tolist() == ["a", "d", "b", "c"]

    def test_unknown_column(self, stats_table):
        with pytest.raises(ValueError):
            selection_set(stats_table, 0.05, column="qval")


class TestJoinScores:
    """Tests for joining with an external evaluator."""

    def test_outer_join(self, stats_table):
        joined = join_scores(stats_table["beta_z"], {"a": 0.9, "d": 0.4, "e": 0.1})
        assert list(joined.columns) == ["npdr", "relief"]
        assert set(joined.index) == {"a", "b", "c", "d", "e"}
        assert np.isnan(joined.loc["e", "npdr"])
        assert joined.loc["a", "relief"] == pytest.approx(0.9)

    def test_rank_agreement(self, stats_table):
        joined = join_scores(stats_table["beta_z"], {"a": 0.9, "b": 0.1, "d": 0.4})
        assert rank_agreement(joined) == pytest.approx(1.0)

    def test_rank_agreement_too_few(self, stats_table):
        joined = join_scores(stats_table["beta_z"], {"a": 0.9})
        assert np.isnan(rank_agreement(joined))
