import os
import re
import threading

import matplotlib.pyplot as plt
import numpy as np
import yaml
from flask import Flask, jsonify, request
from flask_cors import CORS

#class imports
from Decoder import decode_program
from PipelineClock import InvalidTransition, PipelineClock
from Projector import EMPTY, STAGE_NAMES


# Define test programs
# no hazards
program_independent = '''
20080005
2009000a
00000000
'''

# add -> sub on $2, handled by forwarding
program_forwarding = '''
00211020
00411822
'''

# lw -> add on $2, needs one bubble
program_load_use = '''
8c220000
00441820
'''

# two load-use stalls with a forward in between
program_mixed = '''
8c220000
00441820
8c650000
00a53020
'''

HEX_REGEX = re.compile(r"^[0-9a-fA-F]{8}$")


class InvalidProgram(ValueError):
    pass


CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml")

DEFAULT_CONFIG = {
    "pipeline_config": {"verbose": True, "max_ticks": 10000},
    "server_config": {"port": 5000, "debug": False, "tick_interval_ms": 1000},
}


def load_config(config_path=CONFIG_PATH):
    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    try:
        with open(config_path, 'r') as file:
            loaded = yaml.safe_load(file) or {}
    except FileNotFoundError:
        print(f"Warning: {config_path} not found, using defaults")
        return config

    for section, values in loaded.items():
        config.setdefault(section, {}).update(values or {})
    return config


def preprocess(program):
    if isinstance(program, str):
        lines = program.strip().split("\n")
    elif isinstance(program, (list, tuple)):
        lines = program
    else:
        raise InvalidProgram("Program must be a string or a list of hexadecimal instructions.")
    instructions = [str(line).strip() for line in lines if str(line).strip()]

    if not instructions:
        raise InvalidProgram("Please enter at least one MIPS instruction in hexadecimal format.")

    invalid = [inst for inst in instructions if not HEX_REGEX.match(inst)]
    if invalid:
        raise InvalidProgram(f"Invalid instruction format found: {', '.join(invalid)}. "
                             "Each instruction must be 8 hexadecimal characters.")
    return instructions


def display(clock, path=None):
    grid = clock.schedule()
    labels = [inst.text for inst in clock.sim.decoded]
    rows, cols = grid.shape

    plt.figure(figsize=(max(6, cols), max(2, rows)))
    data = np.ma.masked_equal(grid, EMPTY)
    plt.imshow(data, cmap="Blues", aspect='auto', vmin=-1, vmax=len(STAGE_NAMES))

    stall_at = clock.sim.hazards.stall_at
    for i in range(rows):
        for c in range(cols):
            if grid[i, c] != EMPTY:
                color = 'red' if i in stall_at else 'black'
                plt.text(c, i, STAGE_NAMES[grid[i, c]],
                         ha='center', va='center', color=color)

    plt.xticks(range(cols), [str(c + 1) for c in range(cols)])
    plt.yticks(range(rows), labels)
    plt.xlabel("Cycle")
    plt.title("MIPS instruction pipeline")
    plt.tight_layout()

    if path:
        plt.savefig(path)
        plt.close()
    else:
        plt.show()


def main(program, plot=False, verbose=True):
    instructions = preprocess(program)
    clock = PipelineClock(verbose=verbose)
    clock.start(instructions)
    clock.run_to_completion()

    for i, inst in enumerate(clock.sim.decoded):
        print(f"{i}: {inst.hex}  {inst.text}")
    print(f"number of clock cycles: {clock.max_cycles}")
    print(f"Stall count: {clock.stall_count}")
    print(f"IPC: {clock.get_ipc():.2f}")

    if plot:
        display(clock)

    return clock


### Server ###
config = load_config()

app = Flask(__name__)
CORS(app)

clock = PipelineClock(**config["pipeline_config"])
# flask serves requests on several threads; one request touches the clock at a time
clock_lock = threading.Lock()


@app.errorhandler(InvalidTransition)
def invalid_transition(e):
    return jsonify({
        'error': str(e),
        'transition': e.transition,
        'state': e.state.value,
    }), 409


@app.errorhandler(InvalidProgram)
def invalid_program(e):
    return jsonify({'error': str(e)}), 400


def request_data():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return data


@app.route('/start', methods=['POST'])
def start():
    data = request_data()
    program = data.get('instructions')
    if program is None:
        program = data.get('program', '')
    instructions = preprocess(program)
    with clock_lock:
        clock.start(instructions)
        return jsonify(clock.snapshot())


@app.route('/tick', methods=['POST'])
def tick():
    with clock_lock:
        advanced = clock.tick()
        snapshot = clock.snapshot()
    snapshot['advanced'] = advanced
    return jsonify(snapshot)


@app.route('/pause', methods=['POST'])
def pause():
    with clock_lock:
        clock.pause()
        return jsonify(clock.snapshot())


@app.route('/resume', methods=['POST'])
def resume():
    with clock_lock:
        clock.resume()
        return jsonify(clock.snapshot())


@app.route('/reset', methods=['POST'])
def reset():
    with clock_lock:
        clock.reset()
        return jsonify(clock.snapshot())


@app.route('/state', methods=['GET'])
def state():
    with clock_lock:
        return jsonify(clock.snapshot())


@app.route('/schedule', methods=['GET'])
def schedule():
    with clock_lock:
        grid = clock.schedule()
    return jsonify({
        'stageNames': list(STAGE_NAMES),
        'cycles': int(grid.shape[1]),
        'grid': grid.tolist(),
    })


@app.route('/decode', methods=['POST'])
def decode():
    instructions = preprocess(request_data().get('program', ''))
    return jsonify({
        'instructions': instructions,
        'decoded': [inst.text for inst in decode_program(instructions)],
    })


@app.route('/config', methods=['GET'])
def get_config():
    return jsonify({
        'tickIntervalMs': config["server_config"]["tick_interval_ms"],
        'stageNames': list(STAGE_NAMES),
    })


if __name__ == "__main__":
    server = config["server_config"]
    app.run(port=server["port"], debug=server["debug"])
