"""Tests for prompt assembly helpers."""

import pytest

from upload_extractor.config import TRUNCATION_MARKER
from upload_extractor.detector import Sentinels
from upload_extractor.exceptions import EmptyCompletionError
from upload_extractor.prompt import (
    SYSTEM_PROMPT,
    build_context,
    build_messages,
    require_completion,
)


class TestBuildContext:
    def test_placeholder_gives_empty_context(self):
        assert build_context(Sentinels.FAILED_PDF) == ""

    def test_none(self):
        assert build_context(None) == ""

    def test_capped(self):
        context = build_context("x" * 12_000)

        assert len(context) == 10_000
        assert context.endswith(TRUNCATION_MARKER)

    def test_custom_cap(self):
        assert len(build_context("x" * 500, max_chars=100)) == 100


class TestBuildMessages:
    def test_structure(self):
        messages = build_messages(
            "How do I ask to swap weekends?",
            tone="friendly",
            recipient="Co-parent",
            context_prompt="We share custody 50/50.",
            context="Weekends alternate.",
        )

        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[0]["content"] == SYSTEM_PROMPT
        user = messages[1]["content"]
        assert user.startswith("We share custody 50/50.")
        assert "Recipient: Co-parent" in user
        assert 'Question: "How do I ask to swap weekends?"' in user
        assert "Relevant document context:\nWeekends alternate." in user
        assert "helpful, friendly response" in user

    def test_without_context(self):
        user = build_messages("Can I move?")[1]["content"]

        assert "Relevant document context" not in user
        assert "Recipient" not in user
        assert "helpful, calm response" in user

    def test_blank_question(self):
        with pytest.raises(ValueError):
            build_messages("   ")


class TestRequireCompletion:
    def test_returns_stripped(self):
        assert require_completion("  Try proposing a swap.  ") == "Try proposing a swap."

    @pytest.mark.parametrize("completion", [None, "", "   "])
    def test_empty(self, completion):
        with pytest.raises(EmptyCompletionError):
            require_completion(completion)
