import collections

# R-type instructions are selected by funct (bits 5-0) when opcode is 000000.
R_TYPE_FUNCTS = {
    0x20: "add",
    0x21: "addu",
    0x22: "sub",
    0x23: "subu",
    0x24: "and",
    0x25: "or",
    0x2A: "slt",
    0x2B: "sltu",
    0x00: "sll",
    0x02: "srl",
    0x08: "jr",
}

OPCODES = {
    0x08: "addi",
    0x09: "addiu",
    0x0C: "andi",
    0x0D: "ori",
    0x0A: "slti",
    0x0B: "sltiu",
    0x23: "lw",
    0x2B: "sw",
    0x20: "lb",
    0x28: "sb",
    0x04: "beq",
    0x05: "bne",
    0x02: "j",
    0x03: "jal",
}

FUNCT_FOR = {name: funct for funct, name in R_TYPE_FUNCTS.items()}
OPCODE_FOR = {name: op for op, name in OPCODES.items()}

R_ALU = ("add", "addu", "sub", "subu", "and", "or", "slt", "sltu")
SHIFTS = ("sll", "srl")
I_ARITH = ("addi", "addiu", "slti", "sltiu")
I_LOGIC = ("andi", "ori")  # zero-extended immediate
LOADS = ("lw", "lb")
STORES = ("sw", "sb")
BRANCHES = ("beq", "bne")
JUMPS = ("j", "jal")

UNKNOWN = "unknown"


def sign_extend(value, bits=16):
    if value & (1 << (bits - 1)):
        return value - (1 << bits)
    return value


class DecodedInstruction(collections.namedtuple(
        "DecodedInstruction",
        ["mnemonic", "dest", "src1", "src2", "imm", "address", "raw"])):
    """One decoded MIPS word.

    dest is only set for instructions that write a register. src1/src2 are
    the registers read, in the order the hazard unit compares them.
    """
    __slots__ = ()

    @property
    def hex(self):
        return f"{self.raw:08x}"

    @property
    def is_unknown(self):
        return self.mnemonic == UNKNOWN

    @property
    def text(self):
        op = self.mnemonic
        if op in R_ALU:
            return f"{op} ${self.dest}, ${self.src1}, ${self.src2}"
        if op in SHIFTS:
            return f"{op} ${self.dest}, ${self.src1}, {self.imm}"
        if op == "jr":
            return f"jr ${self.src1}"
        if op in I_ARITH or op in I_LOGIC:
            return f"{op} ${self.dest}, ${self.src1}, {self.imm}"
        if op in LOADS:
            return f"{op} ${self.dest}, {self.imm}(${self.src1})"
        if op in STORES:
            return f"{op} ${self.src2}, {self.imm}(${self.src1})"
        if op in BRANCHES:
            return f"{op} ${self.src1}, ${self.src2}, {self.imm}"
        if op in JUMPS:
            return f"{op} {self.address}"
        opcode = (self.raw >> 26) & 0x3F
        if opcode == 0:
            return f"unknown R-type funct: {self.raw & 0x3F:06b}"
        return f"unknown opcode: {opcode:06b}"

    def __str__(self):
        return self.text


def _unknown(raw):
    return DecodedInstruction(UNKNOWN, None, None, None, None, None, raw)


def decode(hex_word):
    """Decode an 8 character hex string. Never fails: unsupported encodings
    come back with mnemonic "unknown" and no operands."""
    raw = int(hex_word, 16) & 0xFFFFFFFF

    opcode = (raw >> 26) & 0x3F
    rs = (raw >> 21) & 0x1F
    rt = (raw >> 16) & 0x1F
    rd = (raw >> 11) & 0x1F
    shamt = (raw >> 6) & 0x1F
    funct = raw & 0x3F
    imm = raw & 0xFFFF
    address = raw & 0x03FFFFFF

    if opcode == 0:
        op = R_TYPE_FUNCTS.get(funct)
        if op is None:
            return _unknown(raw)
        if op in SHIFTS:
            return DecodedInstruction(op, rd, rt, None, shamt, None, raw)
        if op == "jr":
            return DecodedInstruction(op, None, rs, None, None, None, raw)
        return DecodedInstruction(op, rd, rs, rt, None, None, raw)

    op = OPCODES.get(opcode)
    if op is None:
        return _unknown(raw)

    if op in I_LOGIC:
        return DecodedInstruction(op, rt, rs, None, imm, None, raw)
    if op in I_ARITH or op in LOADS:
        return DecodedInstruction(op, rt, rs, None, sign_extend(imm), None, raw)
    if op in STORES or op in BRANCHES:
        # rs is the base/first comparand, rt the stored value/second comparand
        return DecodedInstruction(op, None, rs, rt, sign_extend(imm), None, raw)
    return DecodedInstruction(op, None, None, None, None, address, raw)


def decode_program(hex_lines):
    return [decode(line) for line in hex_lines]


def encode(inst):
    """Rebuild the 32-bit word for a decoded instruction."""
    op = inst.mnemonic
    if op in FUNCT_FOR:
        rs = rt = rd = shamt = 0
        if op in SHIFTS:
            rd, rt, shamt = inst.dest, inst.src1, inst.imm
        elif op == "jr":
            rs = inst.src1
        else:
            rd, rs, rt = inst.dest, inst.src1, inst.src2
        return (rs << 21) | (rt << 16) | (rd << 11) | (shamt << 6) | FUNCT_FOR[op]

    if op not in OPCODE_FOR:
        raise ValueError(f"cannot encode instruction: {op}")

    opcode = OPCODE_FOR[op] << 26
    if op in JUMPS:
        return opcode | (inst.address & 0x03FFFFFF)
    if op in STORES or op in BRANCHES:
        rs, rt = inst.src1, inst.src2
    else:
        rs, rt = inst.src1, inst.dest
    return opcode | (rs << 21) | (rt << 16) | (inst.imm & 0xFFFF)
