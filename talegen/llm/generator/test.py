"""Tests for LLM generator module.

Covers:
- RetryCoordinator: attempt budget, backoff and cancellation
- GenerationPipeline: orchestration with a scripted adapter
"""

import json
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from talegen.core.errors import GenerationCancelledError, RetryableError
from talegen.contract import SKILL_TREE_CONTRACT, StructuralError
from talegen.prompt import Flow

from ..adapter import GenerationRequest, LLMAdapter
from ..backend import InvalidResponseError, ProviderTimeoutError
from ..backend.openai import OpenAIBackend
from .lib import GenerationPipeline, PipelineState
from .retry import ExhaustedRetriesError, RetryConfig, RetryCoordinator

NO_BACKOFF = RetryConfig(backoff_unit=0)

WARRIOR_REQUEST = GenerationRequest(
    flow=Flow.SKILL_TREE,
    subject="Warrior",
    params={"class_name": "Warrior"},
)


def _flaky(failures: int, error: Exception | None = None):
    """Operation that fails ``failures`` times, then returns its attempt number."""
    calls: list[int] = []

    def operation(attempt: int) -> int:
        calls.append(attempt)
        if len(calls) <= failures:
            raise error or RetryableError(f"failure {len(calls)}")
        return attempt

    return operation, calls


# =============================================================================
# RetryConfig Tests
# =============================================================================


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    @pytest.mark.unit
    def test_default_config(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.backoff_unit == 0.5
        assert config.call_timeout == 60.0

    @pytest.mark.unit
    def test_linear_backoff(self):
        config = RetryConfig()
        assert config.delay_for(1) == 0.5
        assert config.delay_for(2) == 1.0
        assert config.delay_for(1) < config.delay_for(2)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kwargs",
        [{"max_attempts": 0}, {"backoff_unit": -1.0}, {"call_timeout": 0}],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("GENERATION_BACKOFF_UNIT", "0.25")
        config = RetryConfig.from_environment(call_timeout=10.0)
        assert config.max_attempts == 5
        assert config.backoff_unit == 0.25
        assert config.call_timeout == 10.0


# =============================================================================
# RetryCoordinator Tests
# =============================================================================


class TestRetryCoordinator:
    """Tests for RetryCoordinator.run."""

    @pytest.fixture
    def sleeps(self) -> list[float]:
        return []

    @pytest.fixture
    def coordinator(self, sleeps) -> RetryCoordinator:
        return RetryCoordinator(RetryConfig(), sleep=sleeps.append)

    @pytest.mark.unit
    def test_first_attempt_succeeds(self, coordinator, sleeps):
        operation, calls = _flaky(0)
        outcome = coordinator.run(operation, subject="Mage")
        assert outcome.value == 1
        assert outcome.attempts == 1
        assert outcome.delays == []
        assert calls == [1]
        assert sleeps == []

    @pytest.mark.unit
    def test_retries_until_success(self, coordinator, sleeps):
        operation, calls = _flaky(2)
        outcome = coordinator.run(operation, subject="Mage")
        assert outcome.value == 3
        assert calls == [1, 2, 3]
        assert len(outcome.errors) == 2
        assert outcome.delays == [0.5, 1.0]
        assert sleeps == [0.5, 1.0]

    @pytest.mark.unit
    def test_budget_exhausted(self, coordinator, sleeps):
        operation, calls = _flaky(10)
        with pytest.raises(ExhaustedRetriesError) as exc_info:
            coordinator.run(operation, subject="Mage")

        error = exc_info.value
        assert calls == [1, 2, 3]
        assert error.subject == "Mage"
        assert error.attempts == 3
        assert str(error.last_error) == "failure 3"
        assert error.__cause__ is error.last_error
        assert "'Mage'" in str(error)
        assert "3 attempt" in str(error)
        assert "failure 3" in str(error)
        # No backoff after the final attempt
        assert sleeps == [0.5, 1.0]

    @pytest.mark.unit
    def test_backoff_strictly_increases(self, sleeps):
        coordinator = RetryCoordinator(
            RetryConfig(max_attempts=5, backoff_unit=0.1), sleep=sleeps.append
        )
        operation, _ = _flaky(10)
        with pytest.raises(ExhaustedRetriesError):
            coordinator.run(operation, subject="Mage")
        assert len(sleeps) == 4
        assert all(a < b for a, b in zip(sleeps, sleeps[1:]))

    @pytest.mark.unit
    def test_non_retryable_propagates(self, coordinator):
        operation, calls = _flaky(10, error=KeyError("stages"))
        with pytest.raises(KeyError):
            coordinator.run(operation, subject="Mage")
        assert calls == [1]

    @pytest.mark.unit
    def test_zero_backoff_does_not_sleep(self, sleeps):
        coordinator = RetryCoordinator(NO_BACKOFF, sleep=sleeps.append)
        operation, _ = _flaky(1)
        assert coordinator.run(operation, subject="Mage").attempts == 2
        assert sleeps == []

    @pytest.mark.unit
    def test_on_failure_callback(self, coordinator):
        seen: list[int] = []
        operation, _ = _flaky(2)
        coordinator.run(
            operation, subject="Mage", on_failure=lambda n, e: seen.append(n)
        )
        assert seen == [1, 2]

    @pytest.mark.unit
    def test_cancel_before_first_attempt(self, coordinator):
        cancel = threading.Event()
        cancel.set()
        operation, calls = _flaky(0)
        with pytest.raises(GenerationCancelledError):
            coordinator.run(operation, subject="Mage", cancel=cancel)
        assert calls == []

    @pytest.mark.unit
    def test_cancel_during_backoff(self):
        # Long backoff: only the cancel signal can end the wait quickly.
        coordinator = RetryCoordinator(RetryConfig(backoff_unit=30.0))
        cancel = threading.Event()
        calls: list[int] = []

        def operation(attempt: int) -> int:
            calls.append(attempt)
            cancel.set()
            raise RetryableError("bad candidate")

        with pytest.raises(GenerationCancelledError, match="backoff"):
            coordinator.run(operation, subject="Mage", cancel=cancel)
        assert calls == [1]


# =============================================================================
# GenerationPipeline Tests (Scripted Adapter)
# =============================================================================


def _four_stages(tree: dict) -> dict:
    return {**tree, "stages": tree["stages"][:4]}


def _crowded_stage_zero(tree: dict) -> dict:
    stages = [dict(stage) for stage in tree["stages"]]
    stages[0]["skills"] = [
        {"name": "Focus", "description": "Steady your breathing."},
        {"name": "Grit", "description": "Refuse to fall."},
    ]
    return {**tree, "stages": stages}


def _bad_mana_cost(tree: dict) -> dict:
    stages = [dict(stage) for stage in tree["stages"]]
    skill = dict(stages[1]["skills"][0])
    skill["manaCost"] = "ten"
    stages[1]["skills"] = [skill]
    return {**tree, "stages": stages}


class TestGenerationPipeline:
    """Tests for GenerationPipeline.run."""

    @pytest.mark.unit
    def test_accepts_first_candidate(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(valid_skill_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        output = pipeline.run(WARRIOR_REQUEST)

        assert output.value.class_name == "Warrior"
        assert output.stats.attempts == 1
        assert output.stats.total_tokens == 100
        assert output.stats.final_model == "scripted-model"
        assert output.stats.states == [
            PipelineState.IDLE,
            PipelineState.REQUESTING,
            PipelineState.VALIDATING,
            PipelineState.ACCEPTED,
        ]
        assert json.loads(output.raw_response) == valid_skill_tree

    @pytest.mark.unit
    def test_structural_violation_is_retried(self, scripted_adapter, valid_skill_tree):
        """Four stages fail structurally on attempt 1; attempt 2 is accepted."""
        adapter = scripted_adapter(_four_stages(valid_skill_tree), valid_skill_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        output = pipeline.run(WARRIOR_REQUEST)

        assert output.stats.attempts == 2
        assert output.stats.validation_retries == 1
        assert adapter.requests[0].feedback is None
        assert "exactly 5 stages, got 4" in adapter.requests[1].feedback
        assert output.stats.states == [
            PipelineState.IDLE,
            PipelineState.REQUESTING,
            PipelineState.VALIDATING,
            PipelineState.RETRYING,
            PipelineState.REQUESTING,
            PipelineState.VALIDATING,
            PipelineState.ACCEPTED,
        ]

    @pytest.mark.unit
    def test_semantic_violation_is_retried(self, scripted_adapter, valid_skill_tree):
        """Stage 0 with two skills fails semantically and is retried."""
        adapter = scripted_adapter(_crowded_stage_zero(valid_skill_tree), valid_skill_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        output = pipeline.run(WARRIOR_REQUEST)

        assert output.stats.attempts == 2
        assert "stage 0 must have no skills, got 2" in adapter.requests[1].feedback

    @pytest.mark.unit
    def test_second_attempt_tree_is_returned(self, scripted_adapter, valid_skill_tree):
        """A non-numeric manaCost is rejected; the attempt-2 tree is returned."""
        retry_tree = {**valid_skill_tree, "className": "Warrior of the North"}
        adapter = scripted_adapter(_bad_mana_cost(valid_skill_tree), retry_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        output = pipeline.run(WARRIOR_REQUEST)

        assert output.value.class_name == "Warrior of the North"
        assert output.stats.attempts == 2
        assert "manaCost" in adapter.requests[1].feedback

    @pytest.mark.unit
    def test_provider_timeouts_exhaust_budget(self, scripted_adapter):
        """Every attempt times out: exhausted after 3, citing the last timeout."""
        adapter = scripted_adapter(
            ProviderTimeoutError("gemini did not respond within 60s", provider="gemini")
        )
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        with pytest.raises(ExhaustedRetriesError) as exc_info:
            pipeline.run(WARRIOR_REQUEST)

        error = exc_info.value
        assert adapter.attempts == 3
        assert error.attempts == 3
        assert isinstance(error.last_error, ProviderTimeoutError)
        assert "'Warrior'" in str(error)
        assert "did not respond within 60s" in str(error)
        assert error.stats.provider_errors == 3
        assert error.stats.state == PipelineState.EXHAUSTED

    @pytest.mark.unit
    def test_always_invalid_uses_whole_budget(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(_four_stages(valid_skill_tree))
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        with pytest.raises(ExhaustedRetriesError) as exc_info:
            pipeline.run(WARRIOR_REQUEST)

        assert adapter.attempts == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, StructuralError)
        assert exc_info.value.stats.validation_retries == 3

    @pytest.mark.unit
    def test_accepted_tree_matches_candidate(self, scripted_adapter, valid_skill_tree):
        """Three distinct stage-2 skills with a staminaCost pass unchanged."""
        adapter = scripted_adapter(valid_skill_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        tree = pipeline.run(WARRIOR_REQUEST).value

        stage_two = tree.get_stage(2)
        assert len(stage_two.skills) == 3
        assert stage_two.skills[0].stamina_cost == 10
        dumped = tree.model_dump(mode="json", by_alias=True, exclude_none=True)
        assert dumped == valid_skill_tree

    @pytest.mark.unit
    def test_feedback_disabled(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(_four_stages(valid_skill_tree), valid_skill_tree)
        pipeline = GenerationPipeline(
            adapter, SKILL_TREE_CONTRACT, NO_BACKOFF, feedback=False
        )
        pipeline.run(WARRIOR_REQUEST)
        assert adapter.requests[1].feedback is None

    @pytest.mark.unit
    def test_non_retryable_error_propagates(self, scripted_adapter):
        adapter = scripted_adapter(ValueError("skill_tree prompt requires 'class_name'"))
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)
        with pytest.raises(ValueError):
            pipeline.run(WARRIOR_REQUEST)
        assert adapter.attempts == 1

    @pytest.mark.unit
    def test_cancelled_before_request(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(valid_skill_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(GenerationCancelledError) as exc_info:
            pipeline.run(WARRIOR_REQUEST, cancel=cancel)

        assert adapter.attempts == 0
        assert exc_info.value.stats.state == PipelineState.CANCELLED

    @pytest.mark.unit
    def test_invocations_are_independent(self, scripted_adapter, valid_skill_tree):
        adapter = scripted_adapter(_four_stages(valid_skill_tree), valid_skill_tree)
        pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)

        first = pipeline.run(WARRIOR_REQUEST)
        second = pipeline.run(WARRIOR_REQUEST)

        assert first.stats.attempts == 2
        assert second.stats.attempts == 1
        assert adapter.requests[2].feedback is None


class TestPipelineWithLLMAdapter:
    """GenerationPipeline over a real LLMAdapter and a scripted backend."""

    @pytest.mark.unit
    def test_repair_and_retry(self, scripted_backend, valid_skill_tree):
        backend = scripted_backend(
            "```json\n" + json.dumps(_four_stages(valid_skill_tree)) + "\n```",
            "I'd rather not.",
            json.dumps(valid_skill_tree),
        )
        with LLMAdapter(backend) as adapter:
            pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)
            output = pipeline.run(WARRIOR_REQUEST)

        assert output.value.class_name == "Warrior"
        assert output.stats.attempts == 3
        assert output.stats.json_repairs == 1
        assert output.stats.validation_retries == 1
        assert output.stats.provider_errors == 1
        assert output.stats.total_tokens == 200
        # Feedback from attempt 1 is still the latest violation on attempt 3
        assert "got 4" in backend.calls[2]["prompt"]

    @pytest.mark.unit
    def test_empty_provider_reply_uses_budget(self):
        """A reply with no choices is retried, then exhausts the budget."""
        backend = OpenAIBackend(api_key="k")
        backend._client = MagicMock()
        create = backend._client.chat.completions.create
        create.return_value = SimpleNamespace(choices=[], usage=None, model="gpt-4.1-mini")

        with LLMAdapter(backend) as adapter:
            pipeline = GenerationPipeline(adapter, SKILL_TREE_CONTRACT, NO_BACKOFF)
            with pytest.raises(ExhaustedRetriesError) as exc_info:
                pipeline.run(WARRIOR_REQUEST)

        assert create.call_count == 3
        assert isinstance(exc_info.value.last_error, InvalidResponseError)
        assert exc_info.value.stats.provider_errors == 3
