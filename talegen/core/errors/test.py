"""Unit tests for the error hierarchy."""

import pytest

from talegen.contract import SemanticError, StructuralError
from talegen.llm.backend import ProviderError, ProviderTimeoutError
from talegen.llm.generator import ExhaustedRetriesError

from .lib import GenerationCancelledError, GenerationError, RetryableError


class TestErrorHierarchy:
    """Retryable and terminal errors share one base."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error_cls", [ProviderError, ProviderTimeoutError, StructuralError, SemanticError]
    )
    def test_attempt_failures_are_retryable(self, error_cls):
        assert issubclass(error_cls, RetryableError)
        assert issubclass(error_cls, GenerationError)

    @pytest.mark.unit
    @pytest.mark.parametrize("error_cls", [ExhaustedRetriesError, GenerationCancelledError])
    def test_terminal_errors_are_not_retryable(self, error_cls):
        assert issubclass(error_cls, GenerationError)
        assert not issubclass(error_cls, RetryableError)

    @pytest.mark.unit
    def test_stats_default_to_none(self):
        assert GenerationCancelledError("stop").stats is None
