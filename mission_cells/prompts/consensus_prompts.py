"""Prompts for consensus responders and the consensus judge."""

HYBRID_MEMORY_PROMPT = "Answer using both your knowledge and this memory:\n{memory}\n"

MEMORY_ONLY_INSTRUCTION = (
    "(You MUST ignore your own knowledge and only use the provided memory.)"
)

HYBRID_INSTRUCTION = (
    "(You should combine the provided memory with your own knowledge. "
    "Agent #{agent_number} may use a different reasoning path.)"
)

MODEL_ONLY_INSTRUCTION = "(You may use your own knowledge and reasoning.)"

DIVERSITY_HINTS = (
    "Be concise.",
    "Be detailed.",
    "Cite the memory if you use it.",
    "If unsure, explain your reasoning.",
    "Prioritize accuracy over creativity.",
)

JUDGE_SYSTEM_PROMPT = (
    "You are a consensus judge agent. Output ONLY the answer, not any "
    "explanation, not any mention of consensus, and not any process."
)

_REDUCTION_RULES = (
    "Do NOT mention consensus, do NOT explain, do NOT mention the process."
)

# Keyed by ConsensusType value
REDUCTION_PROMPTS = {
    "Word": (
        "Given ONLY the following answers, output the single word that is the answer. "
        f"{_REDUCTION_RULES} Output ONLY the answer word, nothing else:\n{{answers}}"
    ),
    "Number": (
        "Given ONLY the following answers, output the number that is the answer. "
        f"{_REDUCTION_RULES} Output ONLY the answer number, nothing else:\n{{answers}}"
    ),
    "Bool": (
        "Given ONLY the following answers, output either 'True' or 'False' as the answer. "
        f"{_REDUCTION_RULES} Output ONLY 'True' or 'False', nothing else:\n{{answers}}"
    ),
    "Knowledge": (
        "Given ONLY the following answers, output the answer as a single sentence. "
        f"{_REDUCTION_RULES} Output ONLY the answer sentence, nothing else:\n{{answers}}"
    ),
}
