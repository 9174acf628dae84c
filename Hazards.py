import collections

FORWARD = "forward"
LOAD_USE_STALL = "stall"

# Only lw counts as a load for the hazard unit.
LOAD = "lw"


class HazardEdge(collections.namedtuple(
        "HazardEdge", ["from_index", "to_index", "register", "kind"])):
    __slots__ = ()

    @property
    def register_name(self):
        return f"${self.register}"

    def to_dict(self):
        return {
            "fromIndex": self.from_index,
            "toIndex": self.to_index,
            "register": self.register_name,
        }


class HazardReport:
    """Hazards for one run, computed once at start and read-only afterwards."""

    def __init__(self, edges=()):
        self.edges = tuple(edges)
        self.forwards = tuple(e for e in self.edges if e.kind == FORWARD)
        self.stalls = tuple(e for e in self.edges if e.kind == LOAD_USE_STALL)

        # dependent instructions that need one bubble before their ID stage
        self.stall_at = frozenset(e.to_index for e in self.stalls)
        self.forward_from = frozenset(e.from_index for e in self.forwards)
        self.forward_to = frozenset(e.to_index for e in self.forwards)

    def stall_for(self, index):
        for edge in self.stalls:
            if edge.to_index == index:
                return edge
        return None

    def forwards_for(self, index):
        return [e for e in self.forwards if index in (e.from_index, e.to_index)]

    def to_dict(self):
        return {
            "forwarding": [e.to_dict() for e in self.forwards],
            "stalls": [e.to_dict() for e in self.stalls],
        }

    def __len__(self):
        return len(self.edges)

    def __repr__(self):
        return f"HazardReport(forwards={len(self.forwards)}, stalls={len(self.stalls)})"


def classify(prev, curr):
    """Return the hazard kind between two adjacent instructions, or None."""
    # an absent destination or $0 never takes part in a hazard
    dest = prev.dest
    if not dest:
        return None
    if dest not in (curr.src1, curr.src2):
        return None

    if prev.mnemonic == LOAD:
        if curr.mnemonic != LOAD:
            return LOAD_USE_STALL
        return None
    return FORWARD


def analyze(instructions, verbose=True):
    """Scan adjacent pairs (i-1, i) of decoded instructions for RAW hazards."""
    edges = []
    for i in range(1, len(instructions)):
        prev, curr = instructions[i - 1], instructions[i]
        kind = classify(prev, curr)
        if kind is None:
            continue

        edge = HazardEdge(i - 1, i, prev.dest, kind)
        edges.append(edge)
        if verbose:
            if kind == LOAD_USE_STALL:
                print(f"Stall needed between instruction {i - 1} and {i}: {edge.register_name}")
            else:
                print(f"Forwarding needed between instruction {i - 1} and {i}: {edge.register_name}")

    return HazardReport(edges)
