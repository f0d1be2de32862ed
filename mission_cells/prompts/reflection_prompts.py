"""Prompts for the reflection concert that may revise the mission."""

REFLECTION_PROMPT = """Mission: {mission}
Memory Slice for Agent {agent_number}:
{memory}
Reflect on the mission and memory. If you see ways to expand, clarify, or improve the mission, propose an improved version by adding detail, clarifying goals, or extending its scope.
If no meaningful improvement is possible, reply 'No change needed.'"""

NO_CHANGE_MARKER = "no change"

DEBATE_PROMPT = """Proposal: {proposal}
Current: {mission}
Is the proposal a meaningful improvement over the current mission?
Reply 'Accept: <reason>' or 'Reject: <reason>'."""

CHAOS_INSTRUCTION = (
    "Invent a completely new, unexpected, actionable, and non-meta mission for the "
    "agentic system. It must not be a summary, reflection, or meta-task. It should be "
    "creative, surprising, and not similar to previous missions."
)

CHAOS_PROMPT = """{instruction}
Current mission: {mission}
Recent memory: {memory}"""

EXPLAINER_PROMPT = "Mission changed from '{old}' to '{new}'"

BOOTSTRAP_SYSTEM_PROMPT = "You are a bootstrap agent."

BOOTSTRAP_PROMPT = "What should an intelligent agent do when it knows nothing?"
