from math_quest.models import Difficulty, Operation
from math_quest.services.prompt_builder import PromptBuilder


def test_user_instruction_embeds_fact():
    system, user = PromptBuilder().build(Operation.SUB, 14, 6, Difficulty.MODERATE)
    assert "subtraction" in user
    assert "14 and 6" in user
    assert "moderate" in user
    assert "Do NOT include the equation or the answer" in user


def test_system_instruction_constrains_output():
    system, _ = PromptBuilder().build(Operation.ADD, 1, 2, Difficulty.EASY)
    assert "No equations" in system
    assert "One clear final question" in system
