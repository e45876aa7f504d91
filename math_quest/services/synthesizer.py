import random
from ..models import Difficulty, Fact, Operation

# Ceiling for addition/subtraction operands per tier.
TIER_CAPS = {
    Difficulty.EASY: 20,
    Difficulty.MODERATE: 50,
    Difficulty.ADVANCED: 99,
}

# Multiplication/division stay inside friendly times tables and ignore the caller's bound.
TABLE_BOUNDS = {
    Difficulty.EASY: 5,
    Difficulty.MODERATE: 10,
    Difficulty.ADVANCED: 12,
}

def effective_cap(difficulty: Difficulty, max_bound: int) -> int:
    return min(max_bound, TIER_CAPS[difficulty])

def synthesize(op: Operation, difficulty: Difficulty, max_bound: int, rng: random.Random) -> Fact:
    """Build one arithmetic fact whose answer is a non-negative whole number.

    add: the second operand is drawn from what is left below the cap, which skews
    toward smaller sums; when nothing is left it is drawn from the full cap.
    sub: the second operand never exceeds the first.
    mul/div: both use the tier's table bound. Division is built from divisor and
    quotient so it is always exact.
    """
    cap = effective_cap(difficulty, max_bound)
    if op == Operation.ADD:
        a = rng.randint(0, cap)
        b = rng.randint(0, cap - a if cap - a > 0 else cap)
        return Fact(operation=op, operand_a=a, operand_b=b, answer=a + b)
    if op == Operation.SUB:
        a = rng.randint(0, cap)
        b = rng.randint(0, a)
        return Fact(operation=op, operand_a=a, operand_b=b, answer=a - b)
    hi = TABLE_BOUNDS[difficulty]
    if op == Operation.MUL:
        a = rng.randint(0, hi)
        b = rng.randint(0, hi)
        return Fact(operation=op, operand_a=a, operand_b=b, answer=a * b)
    divisor = rng.randint(1, hi)
    quotient = rng.randint(1, hi)
    return Fact(operation=Operation.DIV, operand_a=divisor * quotient, operand_b=divisor, answer=quotient)
