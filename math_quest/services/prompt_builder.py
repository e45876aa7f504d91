from typing import Tuple
from ..models import Difficulty, Operation, OPERATION_WORDS

SYSTEM_INSTRUCTION = (
	"You write very short, kid-friendly WORD PROBLEMS for 2nd-3rd graders. "
	"Use only the numbers and operation provided. 1-2 short sentences. "
	"No equations in the text; no variables; no extra numbers. One clear final question."
)

class PromptBuilder:
	def build(self, op: Operation, operand_a: int, operand_b: int, difficulty: Difficulty) -> Tuple[str, str]:
		operation_word = OPERATION_WORDS[op]
		user = (
			f"Create a {operation_word} word problem using ONLY these numbers: {operand_a} and {operand_b}.\n"
			f"- Difficulty: {difficulty.value}\n"
			"- Requirements:\n"
			"  - Use the numbers exactly as provided (no new numbers).\n"
			"  - Make the story wholesome and concrete (stickers, apples, books, coins, marbles, etc.).\n"
			"  - End with a single question that implies a whole-number answer.\n"
			"  - Do NOT include the equation or the answer.\n"
			"Examples of tone: \"Kiki has 7 stickers and gets 5 more. How many does she have now?\""
		)
		return SYSTEM_INSTRUCTION, user
