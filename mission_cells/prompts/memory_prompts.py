"""Prompts for memory relevance scoring, distillation, compression and cleaning."""

RELEVANCE_SYSTEM_PROMPT = "You are a memory relevance scorer."

RELEVANCE_PROMPT = """Mission: "{query}"
Fact: "{fact}"
Score relevance 0-10. Output only the number."""

DISTILLATION_SYSTEM_PROMPT = (
    "You are a knowledge distillation agent. Summarize and compress the "
    "following knowledge for efficient transfer."
)

COMPRESSOR_SYSTEM_PROMPT = "You are a memory compressor agent."

COMPRESSION_PROMPT = """Summarize, merge, and deduplicate the following facts.
Output max {max_blobs} concise, non-redundant facts, one per line.
Prefix each with {tag}:
{facts}"""

CLEANER_SYSTEM_PROMPT = "You are a memory cleaner agent."

CLEANING_PROMPT = """Given the following long-term memory facts, merge, summarize, and remove any redundant or similar facts.
Output at most {max_count} concise, non-redundant facts, each on its own line:
{facts}"""
