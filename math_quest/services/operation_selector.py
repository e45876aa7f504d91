import random
from typing import Iterable, List, Optional
from ..models import Difficulty, Operation

OPERATION_POOLS = {
    Difficulty.EASY: [Operation.ADD, Operation.SUB],
    Difficulty.MODERATE: [Operation.ADD, Operation.SUB, Operation.MUL],
    Difficulty.ADVANCED: [Operation.ADD, Operation.SUB, Operation.MUL, Operation.DIV],
}

def operation_pool(difficulty: Difficulty, allowed: Optional[Iterable[Operation]] = None) -> List[Operation]:
    chosen = list(dict.fromkeys(allowed or []))
    if chosen:
        return chosen
    return list(OPERATION_POOLS[difficulty])

def select_operation(difficulty: Difficulty, rng: random.Random, allowed: Optional[Iterable[Operation]] = None) -> Operation:
    pool = operation_pool(difficulty, allowed)
    return pool[rng.randint(0, len(pool) - 1)]
