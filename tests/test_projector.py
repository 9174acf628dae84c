import numpy as np

from Projector import (EMPTY, ID_STAGE, STAGE_COUNT, bubbles_before,
                       occupancy_grid, plan_bubbles, stage_for, stage_name)


def test_stage_for_plain_schedule():
    assert stage_for(0, 1) == 0
    assert stage_for(0, 5) == 4
    assert stage_for(0, 6) is None
    assert stage_for(2, 2) is None
    assert stage_for(2, 4) == ID_STAGE


def test_bubbles_shift_the_schedule():
    assert stage_for(1, 3) == ID_STAGE
    assert stage_for(1, 3, bubbles=1) == 0
    assert stage_for(1, 4, bubbles=1) == ID_STAGE
    assert stage_for(1, 7, bubbles=1) == 4
    assert stage_for(1, 8, bubbles=1) is None


def test_stage_name():
    assert stage_name(0) == "IF"
    assert stage_name(3) == "MEM"
    assert stage_name(None) is None


def test_bubbles_before_counts_earlier_and_own_stalls():
    consumed = {1: 1, 3: 1}
    assert bubbles_before(0, consumed) == 0
    assert bubbles_before(1, consumed) == 1
    assert bubbles_before(2, consumed) == 1
    assert bubbles_before(5, consumed) == 2


def test_plan_bubbles():
    assert plan_bubbles(set()) == {}
    assert plan_bubbles({1}) == {1: 3}
    assert plan_bubbles({3, 1}) == {1: 3, 3: 6}


def test_grid_without_bubbles_is_a_staircase():
    grid = occupancy_grid(3, 7)
    assert grid.shape == (3, 7)
    assert grid.tolist() == [
        [0, 1, 2, 3, 4, EMPTY, EMPTY],
        [EMPTY, 0, 1, 2, 3, 4, EMPTY],
        [EMPTY, EMPTY, 0, 1, 2, 3, 4],
    ]
    # every instruction visits every stage exactly once
    for row in grid:
        assert sorted(row[row != EMPTY].tolist()) == list(range(STAGE_COUNT))


def test_grid_repeats_if_for_stalled_instruction():
    grid = occupancy_grid(2, 7, {1: 3})
    assert grid.tolist() == [
        [0, 1, 2, 3, 4, EMPTY, EMPTY],
        [EMPTY, 0, 0, 1, 2, 3, 4],
    ]


def test_empty_grid():
    assert occupancy_grid(0, 0).shape == (0, 0)
    assert np.all(occupancy_grid(1, 0) == EMPTY)
