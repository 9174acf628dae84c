from enum import Enum

from Decoder import decode_program
from Hazards import HazardReport, analyze
from Projector import (ID_STAGE, STAGE_COUNT, STAGE_NAMES, bubbles_before,
                       occupancy_grid, plan_bubbles, stage_for)


class ClockState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class InvalidTransition(Exception):
    def __init__(self, transition, state):
        self.transition = transition
        self.state = state
        super().__init__(f"cannot {transition} while {state.value}")


class SimulationState:
    def __init__(self, instructions=(), decoded=(), hazards=None,
                 stage_count=STAGE_COUNT):
        self.instructions = list(instructions)
        self.decoded = list(decoded)
        self.hazards = hazards if hazards is not None else HazardReport()
        self.stage_count = stage_count

        self.current_cycle = 0
        self.stage_per_instruction = {}
        self.is_running = False
        self.is_finished = False

        # stalled instruction index -> bubbles injected / cycle of injection
        self.stall_bubbles_consumed = {}
        self.bubble_cycles = {}

    @property
    def bubbles_injected(self):
        return sum(self.stall_bubbles_consumed.values())

    @property
    def max_cycles(self):
        if not self.instructions:
            return 0
        return len(self.instructions) + self.stage_count - 1 + self.bubbles_injected


class PipelineClock:
    """Single active simulation, advanced one cycle per tick()."""

    def __init__(self, verbose=True, max_ticks=10000):
        self.verbose = verbose
        self.max_ticks = max_ticks
        self.sim = SimulationState()

    @property
    def state(self):
        sim = self.sim
        if sim.is_finished:
            return ClockState.FINISHED
        if sim.is_running:
            return ClockState.RUNNING
        if sim.current_cycle > 0:
            return ClockState.PAUSED
        return ClockState.IDLE

    @property
    def current_cycle(self):
        return self.sim.current_cycle

    @property
    def max_cycles(self):
        return self.sim.max_cycles

    @property
    def stall_count(self):
        return self.sim.bubbles_injected

    def _log(self, *args):
        if self.verbose:
            print(*args)

    def _require(self, transition, *allowed):
        state = self.state
        if state not in allowed:
            raise InvalidTransition(transition, state)
        return state

    def _project(self, cycle):
        sim = self.sim
        sim.stage_per_instruction = {
            i: stage_for(i, cycle,
                         bubbles_before(i, sim.stall_bubbles_consumed),
                         sim.stage_count)
            for i in range(len(sim.instructions))
        }

    # --- Transitions ---
    def start(self, instructions):
        if not instructions:
            raise InvalidTransition("start with no instructions", self.state)
        self._require("start", ClockState.IDLE, ClockState.FINISHED)

        decoded = decode_program(instructions)
        hazards = analyze(decoded, verbose=self.verbose)

        sim = SimulationState(instructions, decoded, hazards)
        sim.current_cycle = 1
        sim.is_running = True
        self.sim = sim
        self._project(sim.current_cycle)

        self._log(f"Starting simulation with {len(sim.instructions)} instructions, "
                  f"{len(hazards.forwards)} forwarding, {len(hazards.stalls)} stalls")

    def tick(self):
        """Advance one cycle. Returns False when paused or finished."""
        state = self._require("tick", ClockState.RUNNING, ClockState.PAUSED,
                              ClockState.FINISHED)
        if state is not ClockState.RUNNING:
            return False

        sim = self.sim
        next_cycle = sim.current_cycle + 1

        # a dependent instruction about to enter ID waits one cycle for its load
        for k in sorted(sim.hazards.stall_at):
            if sim.stall_bubbles_consumed.get(k):
                continue
            bubbles = bubbles_before(k, sim.stall_bubbles_consumed)
            if stage_for(k, next_cycle, bubbles, sim.stage_count) == ID_STAGE:
                sim.stall_bubbles_consumed[k] = 1
                sim.bubble_cycles[k] = next_cycle
                self._log(f"Stalling in ID due to load-use hazard for instruction {k} "
                          f"at cycle {next_cycle}")

        completion = sim.max_cycles
        if next_cycle > completion:
            sim.current_cycle = completion
            sim.is_running = False
            sim.is_finished = True
            self._log(f"clock cycles: {completion}")
        else:
            sim.current_cycle = next_cycle

        # projected at next_cycle so a finished run shows every instruction retired
        self._project(next_cycle)
        return True

    def pause(self):
        self._require("pause", ClockState.RUNNING)
        self.sim.is_running = False

    def resume(self):
        self._require("resume", ClockState.PAUSED)
        self.sim.is_running = True

    def reset(self):
        self.sim = SimulationState()

    def run_to_completion(self):
        ticks = 0
        while self.state is ClockState.RUNNING:
            self.tick()
            ticks += 1
            if ticks >= self.max_ticks:
                print("Warning: Maximum cycle count reached. Stopping simulation.")
                break
        return ticks

    # --- Reporting ---
    def get_ipc(self):
        cycles = self.sim.max_cycles
        if cycles == 0:
            return 0.0
        return len(self.sim.instructions) / cycles

    def schedule(self):
        """Full occupancy grid for the loaded program, bubbles included."""
        sim = self.sim
        bubble_cycles = plan_bubbles(sim.hazards.stall_at)
        cycles = len(sim.instructions) + sim.stage_count - 1 + len(bubble_cycles) \
            if sim.instructions else 0
        return occupancy_grid(len(sim.instructions), cycles, bubble_cycles,
                              sim.stage_count)

    def snapshot(self):
        sim = self.sim
        snap = {
            "state": self.state.value,
            "currentCycle": sim.current_cycle,
            "maxCycles": sim.max_cycles,
            "isRunning": sim.is_running,
            "isFinished": sim.is_finished,
            "stageCount": sim.stage_count,
            "stageNames": list(STAGE_NAMES),
            "instructions": list(sim.instructions),
            "decoded": [inst.text for inst in sim.decoded],
            "instructionStages": dict(sim.stage_per_instruction),
            "stallCount": self.stall_count,
        }
        snap.update(sim.hazards.to_dict())
        return snap
