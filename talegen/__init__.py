"""talegen: validated LLM content generation for Endless Tales.

Skill trees, character profiles, action difficulty and crafting outcomes
are requested from an LLM, checked against a contract, and retried within a
fixed budget until a candidate is accepted.
"""

__version__ = "0.1.0"
