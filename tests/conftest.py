import random

import pytest
from fastapi.testclient import TestClient

from math_quest.main import app, get_narrator, get_rng
from math_quest.services.gemini_client import NarrationError


class FakeNarrator:
    def __init__(self):
        self.calls = []

    def narrate(self, op, operand_a, operand_b, difficulty):
        self.calls.append((op, operand_a, operand_b, difficulty))
        return f"Sam has {operand_a} marbles and finds {operand_b} more. How many marbles now?"


class FailingNarrator:
    def __init__(self):
        self.calls = 0

    def narrate(self, op, operand_a, operand_b, difficulty):
        self.calls += 1
        raise NarrationError("call_failed")


@pytest.fixture
def fake_narrator():
    return FakeNarrator()


@pytest.fixture
def failing_narrator():
    return FailingNarrator()


@pytest.fixture
def make_client():
    def _make(narrator, seed=7):
        app.dependency_overrides[get_narrator] = lambda: narrator
        app.dependency_overrides[get_rng] = lambda: random.Random(seed)
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
