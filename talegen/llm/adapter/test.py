"""Tests for the LLM adapter and JSON recovery."""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from talegen.core.errors import GenerationCancelledError, RetryableError
from talegen.prompt import Flow
from talegen.schema import SkillTree, export_json_schema

from ..backend import InvalidResponseError, ProviderTimeoutError, RateLimitError
from .lib import AdapterConfig, GenerationRequest, LLMAdapter
from .repair import parse_json_object, repair_json

DRUID_REQUEST = GenerationRequest(
    flow=Flow.SKILL_TREE,
    subject="Druid",
    params={"class_name": "Druid"},
)


# =============================================================================
# JSON Recovery
# =============================================================================


class TestRepairJson:
    """Tests for repair_json."""

    @pytest.mark.unit
    def test_markdown_fences(self):
        assert repair_json('```json\n{"className": "Mage"}\n```') == {"className": "Mage"}

    @pytest.mark.unit
    def test_trailing_commas(self):
        content = '{"stages": [{"stage": 0,}, {"stage": 1},],}'
        assert repair_json(content) == {"stages": [{"stage": 0}, {"stage": 1}]}

    @pytest.mark.unit
    def test_prose_prefix(self):
        assert repair_json('Here is the JSON:\n{"className": "Bard"}') == {
            "className": "Bard"
        }

    @pytest.mark.unit
    def test_object_inside_prose(self):
        content = 'Sure! {"name": "Cleave", "description": "Hits {all} foes"} Enjoy.'
        assert repair_json(content) == {"name": "Cleave", "description": "Hits {all} foes"}

    @pytest.mark.unit
    def test_unquoted_keys(self):
        assert repair_json('{className: "Rogue"}') == {"className": "Rogue"}

    @pytest.mark.unit
    def test_unquoted_key_rewrite_leaves_strings_alone(self):
        content = '```json\n{"description": "Strike, then: retreat"}\n```'
        assert repair_json(content) == {"description": "Strike, then: retreat"}

    @pytest.mark.unit
    def test_unquoted_key_next_to_colon_in_string(self):
        content = '{"description": "Deals damage, range: 10", manaCost: 3}'
        assert repair_json(content) == {
            "description": "Deals damage, range: 10",
            "manaCost": 3,
        }

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "content, expected",
        [
            (
                '{"description": "Deals damage, range: 10",}',
                {"description": "Deals damage, range: 10"},
            ),
            ('{"effects": ["Burn,]", "Stun"],}', {"effects": ["Burn,]", "Stun"]}),
            ('{"note": "a \\"quoted, b: c\\" aside",}', {"note": 'a "quoted, b: c" aside'}),
        ],
    )
    def test_rewrites_skip_string_values(self, content, expected):
        assert repair_json(content) == expected

    @pytest.mark.unit
    def test_irreparable(self):
        assert repair_json("I cannot help with that.") is None


class TestParseJsonObject:
    """Tests for parse_json_object."""

    @pytest.mark.unit
    def test_strict_parse(self):
        assert parse_json_object('{"a": 1}') == ({"a": 1}, False)

    @pytest.mark.unit
    def test_non_object_passes_through(self):
        # Shape is the contract's concern.
        assert parse_json_object("[1, 2]") == ([1, 2], False)

    @pytest.mark.unit
    def test_repaired_flag(self):
        assert parse_json_object('{"a": 1,}') == ({"a": 1}, True)

    @pytest.mark.unit
    def test_repair_disabled(self):
        with pytest.raises(ValueError, match="Cannot parse"):
            parse_json_object('{"a": 1,}', repair=False)


# =============================================================================
# GenerationRequest / AdapterConfig
# =============================================================================


class TestGenerationRequest:
    """Tests for GenerationRequest."""

    @pytest.mark.unit
    def test_with_feedback_returns_copy(self):
        retry = DRUID_REQUEST.with_feedback("[stage_count] got 4")
        assert retry.feedback == "[stage_count] got 4"
        assert retry.subject == "Druid"
        assert DRUID_REQUEST.feedback is None


class TestAdapterConfig:
    """Tests for AdapterConfig."""

    @pytest.mark.unit
    def test_defaults(self):
        config = AdapterConfig()
        assert config.call_timeout == 60.0
        assert config.temperature == 0.7
        assert config.repair_json is True

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("GENERATION_CALL_TIMEOUT", "12.5")
        monkeypatch.setenv("GENERATION_TEMPERATURE", "0.2")
        config = AdapterConfig.from_environment(max_tokens=1024)
        assert config.call_timeout == 12.5
        assert config.temperature == 0.2
        assert config.max_tokens == 1024


# =============================================================================
# LLMAdapter
# =============================================================================


class TestLLMAdapter:
    """Tests for LLMAdapter.invoke with scripted backends."""

    @pytest.mark.unit
    def test_invoke_returns_candidate(self, scripted_backend, valid_skill_tree):
        backend = scripted_backend(json.dumps(valid_skill_tree))
        with LLMAdapter(backend) as adapter:
            candidate = adapter.invoke(DRUID_REQUEST)

        assert candidate.data == valid_skill_tree
        assert candidate.model == "scripted-model"
        assert candidate.total_tokens == 100
        assert not candidate.repaired

    @pytest.mark.unit
    def test_backend_receives_flow_prompt(self, scripted_backend):
        backend = scripted_backend("{}")
        request = GenerationRequest(
            flow=Flow.SKILL_TREE,
            subject="Druid",
            params={"class_name": "Druid"},
            schema=export_json_schema(SkillTree),
            feedback="[stage_count] skill tree must have exactly 5 stages, got 4",
        )
        with LLMAdapter(backend, AdapterConfig(temperature=0.3)) as adapter:
            adapter.invoke(request)

        call = backend.calls[0]
        assert "Endless Tales" in call["system_prompt"]
        assert "Druid" in call["prompt"]
        assert '"className"' in call["prompt"]
        assert "got 4" in call["prompt"]
        assert call["config"].json_mode is True
        assert call["config"].temperature == 0.3

    @pytest.mark.unit
    def test_repaired_reply(self, scripted_backend):
        backend = scripted_backend('```json\n{"className": "Druid",}\n```')
        with LLMAdapter(backend) as adapter:
            candidate = adapter.invoke(DRUID_REQUEST)
        assert candidate.data == {"className": "Druid"}
        assert candidate.repaired

    @pytest.mark.unit
    def test_unparseable_reply(self, scripted_backend):
        backend = scripted_backend("The druid is a nature mage.")
        with LLMAdapter(backend) as adapter:
            with pytest.raises(InvalidResponseError) as exc_info:
                adapter.invoke(DRUID_REQUEST)
        assert exc_info.value.provider == "scripted"
        assert isinstance(exc_info.value, RetryableError)

    @pytest.mark.unit
    def test_repair_can_be_disabled(self, scripted_backend):
        backend = scripted_backend('{"className": "Druid",}')
        with LLMAdapter(backend, AdapterConfig(repair_json=False)) as adapter:
            with pytest.raises(InvalidResponseError):
                adapter.invoke(DRUID_REQUEST)

    @pytest.mark.unit
    def test_provider_error_propagates(self, scripted_backend):
        backend = scripted_backend(RateLimitError("slow down", retry_after=2.0))
        with LLMAdapter(backend) as adapter:
            with pytest.raises(RateLimitError) as exc_info:
                adapter.invoke(DRUID_REQUEST)
        assert exc_info.value.retry_after == 2.0

    @pytest.mark.unit
    def test_missing_prompt_param(self, scripted_backend):
        request = GenerationRequest(flow=Flow.SKILL_TREE, subject="?", params={})
        with LLMAdapter(scripted_backend("{}")) as adapter:
            with pytest.raises(ValueError, match="class_name"):
                adapter.invoke(request)

    @pytest.mark.unit
    def test_call_timeout(self, blocking_backend):
        with LLMAdapter(blocking_backend, AdapterConfig(call_timeout=0.05)) as adapter:
            with pytest.raises(ProviderTimeoutError, match="Druid"):
                adapter.invoke(DRUID_REQUEST)

    @pytest.mark.unit
    def test_cancel_while_waiting(self, blocking_backend):
        cancel = threading.Event()
        cancel.set()
        with LLMAdapter(blocking_backend, AdapterConfig(call_timeout=5.0)) as adapter:
            with pytest.raises(GenerationCancelledError):
                adapter.invoke(DRUID_REQUEST, cancel=cancel)

    @pytest.mark.unit
    def test_cancel_not_set_completes(self, scripted_backend):
        cancel = threading.Event()
        with LLMAdapter(scripted_backend('{"ok": true}')) as adapter:
            candidate = adapter.invoke(DRUID_REQUEST, cancel=cancel)
        assert candidate.data == {"ok": True}

    @pytest.mark.unit
    def test_concurrent_invocations(self, scripted_backend):
        backend = scripted_backend('{"className": "Druid"}')
        with LLMAdapter(backend) as adapter:
            with ThreadPoolExecutor(max_workers=4) as pool:
                results = list(
                    pool.map(lambda _: adapter.invoke(DRUID_REQUEST), range(8))
                )
        assert all(c.data == {"className": "Druid"} for c in results)
        assert len(backend.calls) == 8

    @pytest.mark.unit
    def test_many_concurrent_slow_calls_each_get_full_timeout(self, slow_backend):
        """24 overlapping 0.2s calls all finish inside a 1s per-call timeout."""
        backend = slow_backend('{"className": "Druid"}', delay=0.2)
        config = AdapterConfig(call_timeout=1.0)
        with LLMAdapter(backend, config) as adapter:
            with ThreadPoolExecutor(max_workers=24) as pool:
                results = list(
                    pool.map(lambda _: adapter.invoke(DRUID_REQUEST), range(24))
                )
        assert len(results) == 24
        assert all(c.data == {"className": "Druid"} for c in results)

    @pytest.mark.unit
    def test_timed_out_call_leaves_adapter_usable(self, blocking_backend):
        with LLMAdapter(blocking_backend, AdapterConfig(call_timeout=0.05)) as adapter:
            for _ in range(6):
                with pytest.raises(ProviderTimeoutError):
                    adapter.invoke(DRUID_REQUEST)
            blocking_backend.release.set()
            candidate = adapter.invoke(DRUID_REQUEST)
        assert candidate.data == {}

    @pytest.mark.unit
    def test_closed_adapter_refuses_calls(self, scripted_backend):
        adapter = LLMAdapter(scripted_backend("{}"))
        with adapter:
            adapter.invoke(DRUID_REQUEST)
        with pytest.raises(RuntimeError, match="closed"):
            adapter.invoke(DRUID_REQUEST)
