import numpy as np

STAGE_NAMES = ("IF", "ID", "EX", "MEM", "WB")
STAGE_COUNT = len(STAGE_NAMES)
ID_STAGE = STAGE_NAMES.index("ID")

EMPTY = -1


def stage_for(index, cycle, bubbles=0, stage_count=STAGE_COUNT):
    """Stage occupied by instruction `index` at `cycle` (1-based), or None
    when it has not been fetched yet or has already retired."""
    expected = cycle - index - 1 - bubbles
    if 0 <= expected < stage_count:
        return expected
    return None


def stage_name(stage):
    if stage is None:
        return None
    return STAGE_NAMES[stage]


def bubbles_before(index, consumed):
    # a bubble injected for instruction k delays k and everything behind it
    return sum(count for k, count in consumed.items() if k <= index)


def plan_bubbles(stall_at):
    """Cycle in which each stall bubble gets injected during a run.

    Stall k is injected when instruction k would first reach ID, which is
    cycle k + 2 pushed back by every earlier bubble.
    """
    planned = {}
    for n, k in enumerate(sorted(stall_at)):
        planned[k] = k + 2 + n
    return planned


def occupancy_grid(instruction_count, cycles, bubble_cycles=None,
                   stage_count=STAGE_COUNT):
    """Stage index for every (instruction, cycle) cell, EMPTY when absent.

    Column c holds cycle c + 1. bubble_cycles maps a stalled instruction to
    the cycle its bubble was injected, so cells before that cycle are not
    shifted.
    """
    cycle = np.arange(1, cycles + 1)[np.newaxis, :]
    index = np.arange(instruction_count)[:, np.newaxis]
    expected = cycle - index - 1

    for k, at in (bubble_cycles or {}).items():
        expected = expected - ((index >= k) & (cycle >= at)).astype(int)

    present = (expected >= 0) & (expected < stage_count)
    return np.where(present, expected, EMPTY)
