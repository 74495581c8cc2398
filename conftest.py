"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- Sample candidates for every generation flow
- Global test configuration
"""

from __future__ import annotations

import copy
from typing import Any

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Sample Candidates
# =============================================================================

WARRIOR_TREE: dict[str, Any] = {
    "className": "Warrior",
    "stages": [
        {"stage": 0, "stageName": "Potential", "skills": []},
        {
            "stage": 1,
            "stageName": "Squire",
            "skills": [
                {
                    "name": "Shield Bash",
                    "description": "Slam your shield into a foe, staggering them.",
                    "type": "Learned",
                    "staminaCost": 5,
                },
            ],
        },
        {
            "stage": 2,
            "stageName": "Man-at-Arms",
            "skills": [
                {
                    "name": "Cleave",
                    "description": "A wide swing that strikes every adjacent enemy.",
                    "staminaCost": 10,
                },
                {
                    "name": "Battle Cry",
                    "description": "Rally nearby allies, steeling their resolve.",
                    "manaCost": 0,
                },
                {
                    "name": "Second Wind",
                    "description": "Catch your breath mid-fight and recover.",
                },
            ],
        },
        {
            "stage": 3,
            "stageName": "Knight",
            "skills": [
                {
                    "name": "Unbreakable",
                    "description": "Shrug off a blow that would have felled you.",
                    "staminaCost": 25,
                },
                {
                    "name": "Challenge",
                    "description": "Force an enemy to face you alone.",
                    "staminaCost": 8,
                },
            ],
        },
        {
            "stage": 4,
            "stageName": "Warlord",
            "skills": [
                {
                    "name": "Army of One",
                    "description": "For a moment, no blade can touch you.",
                    "staminaCost": 50,
                    "manaCost": 10,
                },
            ],
        },
    ],
}

SCHOLAR_PROFILE: dict[str, Any] = {
    "detailedDescription": (
        "A soft-spoken archivist with ink-stained fingers who left the "
        "monastery library to see the ruins described in its oldest scrolls."
    ),
    "inferredClass": "Scholar",
    "inferredTraits": ["Curious", "Patient"],
    "inferredKnowledge": ["Ancient History", "Old Script"],
    "inferredBackground": "Raised by monks in a mountain monastery.",
}

LOCKPICK_ASSESSMENT: dict[str, Any] = {
    "difficulty": "Hard",
    "reasoning": "The lock is old but well made, and the character has no tools.",
    "suggestedDice": "d20",
}

DAGGER_CRAFT: dict[str, Any] = {
    "success": True,
    "message": "You hammer the iron into a crude but serviceable blade.",
    "craftedItem": {
        "name": "Crude Dagger",
        "description": "A short iron blade wrapped in leather.",
        "quality": "Common",
        "weight": 0.5,
        "durability": 40,
    },
    "consumedItems": ["Iron Ingot", "Leather Strip"],
}

RANGER_NARRATION: dict[str, Any] = {
    "narration": (
        "The tracks lead you past a fallen oak to a cold campfire. Someone "
        "left in a hurry, and not long ago."
    ),
    "updatedGameState": "Whisperwood, north trail, night. Found an abandoned camp.",
}

ADVENTURE_SUMMARY: dict[str, Any] = {
    "summary": (
        "A wary ranger tracked bandits through the Whisperwood, spared their "
        "leader and earned the village's trust."
    ),
}

DUNE_SUGGESTIONS: dict[str, Any] = {
    "suggestions": ["Paul Atreides", "Chani", "Duncan Idaho", "Gurney Halleck"],
}


@pytest.fixture
def valid_skill_tree() -> dict[str, Any]:
    """A raw skill tree candidate that passes every rule.

    Returns:
        Deep copy, safe to mutate per test.
    """
    return copy.deepcopy(WARRIOR_TREE)


@pytest.fixture
def valid_character_profile() -> dict[str, Any]:
    return copy.deepcopy(SCHOLAR_PROFILE)


@pytest.fixture
def valid_difficulty() -> dict[str, Any]:
    return copy.deepcopy(LOCKPICK_ASSESSMENT)


@pytest.fixture
def valid_crafting_outcome() -> dict[str, Any]:
    return copy.deepcopy(DAGGER_CRAFT)


@pytest.fixture
def valid_narration() -> dict[str, Any]:
    return copy.deepcopy(RANGER_NARRATION)


@pytest.fixture
def valid_summary() -> dict[str, Any]:
    return copy.deepcopy(ADVENTURE_SUMMARY)


@pytest.fixture
def valid_suggestions() -> dict[str, Any]:
    return copy.deepcopy(DUNE_SUGGESTIONS)
