"""Integration tests against a real Gemini backend.

Skipped unless GOOGLE_API_KEY is set.
"""

import os

import pytest

from talegen.llm import RetryConfig, SkillTreeGenerator, create_llm_backend
from talegen.schema import STAGE_COUNT

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("GOOGLE_API_KEY"),
        reason="GOOGLE_API_KEY not set",
    ),
]


@pytest.fixture(scope="module")
def generator() -> SkillTreeGenerator:
    backend = create_llm_backend("gemini-2.0-flash")
    return SkillTreeGenerator(backend=backend, retry_config=RetryConfig())


@pytest.mark.parametrize("class_name", ["Necromancer", "Bard"])
def test_generate_skill_tree(generator, class_name):
    output = generator.generate_with_stats(class_name)
    tree = output.value

    assert len(tree.stages) == STAGE_COUNT
    assert [stage.stage for stage in tree.stages] == [0, 1, 2, 3, 4]
    assert tree.get_stage(0).skills == ()
    assert all(1 <= len(tree.get_stage(n).skills) <= 3 for n in range(1, 5))
    assert output.stats.attempts <= 3
    assert output.stats.total_tokens > 0
