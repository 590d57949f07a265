"""
Tests for the FAA length and angle filters.
"""

import numpy as np

from solver.historical_stuff import FAAHistoricalStuff
from utils.filtering import angle_filtering, combine_filter_masks, length_filtering


def make_state(G_k):
    HS = FAAHistoricalStuff(G_k.shape[0])
    HS.G_k = np.array(G_k, dtype=float)
    # tag every X_k column with its original index to follow the pruning
    HS.X_k = np.tile(np.arange(G_k.shape[1], dtype=float), (G_k.shape[0], 1))
    return HS


def test_length_filtering_drops_long_columns():
    e1 = np.array([1.0, 0.0, 0.0])
    e2 = np.array([0.0, 1.0, 0.0])
    HS = make_state(np.column_stack([e1, 5.0 * e2, 1e3 * e1, 0.5 * e2]))

    mask = length_filtering(HS, cs=0.1, kappabar=100.0)

    np.testing.assert_array_equal(mask, [True, True, False, True])
    assert HS.G_k.shape == (3, 3)
    np.testing.assert_array_equal(HS.X_k[0], [0.0, 1.0, 3.0])


def test_length_filtering_keeps_zero_newest_column():
    HS = make_state(np.column_stack([np.zeros(2), np.ones(2), 2.0 * np.ones(2)]))
    mask = length_filtering(HS, cs=0.5, kappabar=10.0)
    np.testing.assert_array_equal(mask, [True, False, False])
    assert HS.G_k.shape == (2, 1)
    assert HS.X_k.shape == (2, 1)


def test_angle_filtering_drops_nearly_parallel_columns():
    e1 = np.array([1.0, 0.0, 0.0])
    e2 = np.array([0.0, 1.0, 0.0])
    e3 = np.array([0.0, 0.0, 1.0])
    HS = make_state(np.column_stack([e1, e1 + 1e-3 * e2, e2 + e3, e1 + e3]))

    mask = angle_filtering(HS, cs=0.1)

    # e1 + e3 has a sine of 1/2 to span(e1, e2 + e3)
    np.testing.assert_array_equal(mask, [True, False, True, True])
    np.testing.assert_array_equal(HS.X_k[0], [0.0, 2.0, 3.0])


def test_angle_filtering_all_parallel_keeps_newest():
    v = np.array([1.0, 2.0])
    HS = make_state(np.column_stack([v, -2.0 * v, 0.5 * v]))
    mask = angle_filtering(HS, cs=0.1)
    np.testing.assert_array_equal(mask, [True, False, False])
    np.testing.assert_array_equal(HS.G_k[:, 0], v)


def test_combined_mask_one_entry_per_original_column():
    length_mask = np.array([True, False, True, True, False])
    angle_mask = np.array([True, False, True])
    filtered = combine_filter_masks(length_mask, angle_mask)
    np.testing.assert_array_equal(filtered, [True, False, False, True, False])
    assert filtered.shape == length_mask.shape
    # inputs are left untouched
    np.testing.assert_array_equal(length_mask, [True, False, True, True, False])


def test_filters_in_sequence_never_reject_everything():
    rng = np.random.default_rng(3)
    newest = rng.standard_normal(4)
    HS = make_state(np.column_stack([newest, 1e6 * newest, newest * (1 + 1e-12)]))
    length_mask = length_filtering(HS, cs=0.1, kappabar=100.0)
    angle_mask = angle_filtering(HS, cs=0.1)
    np.testing.assert_array_equal(length_mask, [True, False, True])
    np.testing.assert_array_equal(angle_mask, [True, False])
    filtered = combine_filter_masks(length_mask, angle_mask)
    assert filtered.shape == (3,)
    assert filtered[0]
    np.testing.assert_array_equal(filtered, [True, False, False])
    assert HS.G_k.shape[1] == HS.X_k.shape[1] == 1
