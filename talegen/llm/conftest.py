"""Fakes for exercising adapters and pipelines without a provider."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

import pytest

from talegen.llm.adapter import Candidate
from talegen.llm.backend import GenerationResult, LLMBackend

if TYPE_CHECKING:
    from talegen.llm.adapter import GenerationRequest
    from talegen.llm.backend import GenerationConfig


class ScriptedBackend(LLMBackend):
    """Backend that replays a fixed list of replies.

    Each reply is either response text or an exception to raise. The last
    reply repeats once the script runs out, so an always-failing backend is
    a one-item script.
    """

    def __init__(self, replies: Sequence[str | Exception], model: str = "scripted-model"):
        self._replies = list(replies)
        self._model = model
        self._lock = threading.Lock()
        self.calls: list[dict[str, Any]] = []

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider(self) -> str:
        return "scripted"

    @property
    def supports_json_mode(self) -> bool:
        return True

    @property
    def context_window(self) -> int:
        return 8192

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        with self._lock:
            index = min(len(self.calls), len(self._replies) - 1)
            self.calls.append(
                {"prompt": prompt, "system_prompt": system_prompt, "config": config}
            )
        reply = self._replies[index]
        if isinstance(reply, Exception):
            raise reply
        return GenerationResult(
            content=reply,
            finish_reason="stop",
            usage={"prompt_tokens": 40, "completion_tokens": 60, "total_tokens": 100},
            model=self._model,
        )


class BlockingBackend(ScriptedBackend):
    """Backend whose calls block until ``release`` is set."""

    def __init__(self, reply: str = "{}"):
        super().__init__([reply], model="blocking-model")
        self.release = threading.Event()
        self.started = threading.Event()

    def generate(self, prompt: str, **kwargs: Any) -> GenerationResult:
        self.started.set()
        self.release.wait(timeout=5)
        return super().generate(prompt, **kwargs)


class SlowBackend(ScriptedBackend):
    """Backend whose every call takes ``delay`` seconds."""

    def __init__(self, reply: str = "{}", delay: float = 0.2):
        super().__init__([reply], model="slow-model")
        self.delay = delay

    def generate(self, prompt: str, **kwargs: Any) -> GenerationResult:
        time.sleep(self.delay)
        return super().generate(prompt, **kwargs)


class ScriptedAdapter:
    """GenerativeAdapter that replays candidates without building prompts.

    Each item is either a candidate value (returned as ``Candidate.data``) or
    an exception to raise. The last item repeats once the script runs out.
    """

    def __init__(self, items: Sequence[Any], model: str = "scripted-model"):
        self._items = list(items)
        self._model = model
        self.requests: list[GenerationRequest] = []

    @property
    def attempts(self) -> int:
        return len(self.requests)

    def invoke(
        self,
        request: GenerationRequest,
        *,
        cancel: threading.Event | None = None,
    ) -> Candidate:
        index = min(len(self.requests), len(self._items) - 1)
        self.requests.append(request)
        item = self._items[index]
        if isinstance(item, Exception):
            raise item
        return Candidate(
            data=item,
            raw_content=json.dumps(item),
            model=self._model,
            usage={"total_tokens": 100},
        )


@pytest.fixture
def scripted_backend() -> Callable[..., ScriptedBackend]:
    """Factory for ScriptedBackend instances.

    Returns:
        Callable taking the replies in order.
    """

    def make(*replies: str | Exception, model: str = "scripted-model") -> ScriptedBackend:
        return ScriptedBackend(replies, model=model)

    return make


@pytest.fixture
def scripted_adapter() -> Callable[..., ScriptedAdapter]:
    """Factory for ScriptedAdapter instances.

    Returns:
        Callable taking the candidates (or exceptions) in order.
    """

    def make(*items: Any) -> ScriptedAdapter:
        return ScriptedAdapter(items)

    return make


@pytest.fixture
def blocking_backend() -> Iterator[BlockingBackend]:
    backend = BlockingBackend()
    yield backend
    backend.release.set()



@pytest.fixture
def slow_backend() -> Callable[..., SlowBackend]:
    def make(reply: str = "{}", delay: float = 0.2) -> SlowBackend:
        return SlowBackend(reply, delay=delay)

    return make
