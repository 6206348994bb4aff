"""Tests for prompt building, model invocation and model output parsing."""

import asyncio
import json

import httpx
import openai
import pytest
from langchain_core.runnables import RunnableLambda

from app.core.errors import AnalysisError, CredentialError
from app.schemas import ModelConfig
from app.services import ai_service, providers
from app.services.ai_service import (
    ModelBackedStrategy,
    build_prompt,
    estimate_tokens,
    invoke_model,
    is_credential_rejection,
    parse_model_response,
    role_fit_for,
)
from conftest import model_answer


def _failing_provider(monkeypatch, exc):
    def _raise(_):
        raise exc

    spec = providers.ProviderSpec("openai", "OpenAI (GPT Models)", "gpt-4o-mini", lambda k, m: RunnableLambda(_raise))
    monkeypatch.setitem(providers.PROVIDERS, "openai", spec)


class _StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class TestBuildPrompt:
    def test_contains_inputs_and_schema(self):
        prompt = build_prompt("Senior React engineer wanted", "Five years of React")
        assert "Senior React engineer wanted" in prompt
        assert "Five years of React" in prompt
        for field in ("score", "skillsMatch", "missingSkills", "rewrittenCV", "biasCheck", "tokenUsage"):
            assert field in prompt

    def test_truncates_long_texts(self):
        prompt = build_prompt("j" * 5000, "c" * 4000)
        assert "j" * 3000 in prompt
        assert "j" * 3001 not in prompt
        assert "c" * 3000 in prompt
        assert "c" * 3001 not in prompt


class TestRoleFit:
    def test_boundaries(self):
        assert role_fit_for(70) == "Moderate"
        assert role_fit_for(71) == "High"
        assert role_fit_for(0) == "Moderate"


class TestEstimateTokens:
    def test_ceil_of_quarter_length(self):
        assert estimate_tokens("a" * 10, "b" * 7) == 5
        assert estimate_tokens("a" * 4, "b" * 4) == 2
        assert estimate_tokens("", "") == 0


class TestParseModelResponse:
    def test_parses_fenced_json(self):
        result = parse_model_response(model_answer(), "a" * 10, "b" * 7, "openai", "gpt-4o-mini")
        assert result.score == 82
        assert result.role_fit == "High"
        assert result.matched_skills == ["React", "TypeScript"]
        assert result.missing_skills == ["AWS"]
        assert result.rewritten_summary.startswith("# Frontend Engineer")
        assert result.ethical_insights.bias_note == "No biased wording found."
        assert result.ethical_insights.estimated_tokens == 5
        assert result.provider == "openai"
        assert result.model == "gpt-4o-mini"

    def test_keeps_reported_token_usage(self):
        raw = model_answer(ethicalInsights={"biasCheck": "", "tokenUsage": 1234})
        result = parse_model_response(raw, "job", "cv")
        assert result.ethical_insights.estimated_tokens == 1234

    def test_missing_ethical_insights_are_backfilled(self):
        raw = json.dumps({"score": 50})
        result = parse_model_response(raw, "a" * 8, "")
        assert result.ethical_insights.estimated_tokens == 2
        assert result.ethical_insights.bias_note == ""
        assert result.matched_skills == []
        assert result.role_fit == "Moderate"

    def test_null_token_usage_is_backfilled(self):
        raw = json.dumps({"score": 80, "ethicalInsights": {"biasCheck": "none", "tokenUsage": None}})
        result = parse_model_response(raw, "a" * 10, "b" * 7)
        assert result.ethical_insights.estimated_tokens == 5
        assert result.ethical_insights.bias_note == "none"

    def test_null_optional_fields_use_defaults(self):
        raw = json.dumps({
            "score": 80,
            "skillsMatch": None,
            "missingSkills": None,
            "rewrittenCV": None,
            "ethicalInsights": None,
        })
        result = parse_model_response(raw, "a" * 8, "")
        assert result.matched_skills == []
        assert result.missing_skills == []
        assert result.rewritten_summary == ""
        assert result.ethical_insights.bias_note == ""
        assert result.ethical_insights.estimated_tokens == 2

    def test_null_score_is_rejected(self):
        with pytest.raises(AnalysisError):
            parse_model_response(json.dumps({"score": None}), "j", "c")

    def test_role_fit_boundaries(self):
        assert parse_model_response(json.dumps({"score": 70}), "j", "c").role_fit == "Moderate"
        assert parse_model_response(json.dumps({"score": 71}), "j", "c").role_fit == "High"

    def test_ignores_surrounding_prose(self):
        raw = 'Here is the analysis:\n{"score": 64, "skillsMatch": ["Go"]}\nHope it helps.'
        result = parse_model_response(raw, "j", "c")
        assert result.score == 64
        assert result.matched_skills == ["Go"]

    def test_dedupes_and_keeps_lists_disjoint(self):
        raw = json.dumps({
            "score": 90,
            "skillsMatch": ["React", "React", "Node"] + [f"Skill{i}" for i in range(10)],
            "missingSkills": ["Node", "AWS", "AWS", "GCP", "Azure", "Rust", "Zig", "Nim"],
        })
        result = parse_model_response(raw, "j", "c")
        assert result.matched_skills[:2] == ["React", "Node"]
        assert len(result.matched_skills) == 8
        assert result.missing_skills == ["AWS", "GCP", "Azure", "Rust", "Zig"]

    def test_not_json_raises(self):
        with pytest.raises(AnalysisError):
            parse_model_response("I cannot help with that.", "j", "c")

    def test_schema_violation_raises(self):
        with pytest.raises(AnalysisError):
            parse_model_response(json.dumps({"skillsMatch": ["React"]}), "j", "c")
        with pytest.raises(AnalysisError):
            parse_model_response(json.dumps({"score": 150}), "j", "c")
        with pytest.raises(AnalysisError):
            parse_model_response(json.dumps({"score": "high"}), "j", "c")


class TestIsCredentialRejection:
    def test_openai_authentication_error(self):
        response = httpx.Response(401, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
        exc = openai.AuthenticationError("Incorrect API key provided", response=response, body=None)
        assert is_credential_rejection(exc)

    def test_status_code_attribute(self):
        assert is_credential_rejection(_StatusError(401))
        assert not is_credential_rejection(_StatusError(500))

    def test_permission_denied_is_not_a_key_rejection(self):
        response = httpx.Response(403, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
        exc = openai.PermissionDeniedError("Country, region, or territory not supported", response=response, body=None)
        assert not is_credential_rejection(exc)
        assert not is_credential_rejection(_StatusError(403))

    def test_google_invalid_key_message(self):
        assert is_credential_rejection(ValueError("400 API key not valid. Please pass a valid API key."))

    def test_wrapped_cause(self):
        try:
            try:
                raise _StatusError(401)
            except _StatusError as inner:
                raise RuntimeError("provider call failed") from inner
        except RuntimeError as outer:
            assert is_credential_rejection(outer)

    def test_generic_error(self):
        assert not is_credential_rejection(RuntimeError("connection reset"))


class TestInvokeModel:
    def test_returns_model_text(self, fake_provider):
        fake_provider["responses"] = ["plain answer"]
        config = ModelConfig(provider="openai", api_key="sk-test-1234", model_name="gpt-4o")
        assert asyncio.run(invoke_model(config, "prompt")) == "plain answer"
        assert fake_provider["factory"] == [("sk-test-1234", "gpt-4o")]

    def test_uses_default_model(self, fake_provider):
        config = ModelConfig(provider="openai", api_key="sk-test-1234")
        asyncio.run(invoke_model(config, "prompt"))
        assert fake_provider["factory"] == [("sk-test-1234", "gpt-4o-mini")]

    def test_rejected_key_raises_credential_error(self, monkeypatch):
        _failing_provider(monkeypatch, _StatusError(401))
        config = ModelConfig(provider="openai", api_key="sk-bad-key")
        with pytest.raises(CredentialError):
            asyncio.run(invoke_model(config, "prompt"))

    def test_other_failure_raises_analysis_error(self, monkeypatch):
        _failing_provider(monkeypatch, RuntimeError("upstream timeout"))
        config = ModelConfig(provider="openai", api_key="sk-test-1234")
        with pytest.raises(AnalysisError):
            asyncio.run(invoke_model(config, "prompt"))


class TestModelBackedStrategy:
    def test_analyze(self, fake_provider):
        config = ModelConfig(provider="openai", api_key="sk-test-1234")
        result = asyncio.run(ModelBackedStrategy(config).analyze("React job", "React CV"))
        assert result.score == 82
        assert result.provider == "openai"
        assert result.model == "gpt-4o-mini"
        assert result.ethical_insights.estimated_tokens == estimate_tokens("React job", "React CV")

    def test_redacts_contact_details(self, monkeypatch):
        seen = {}

        async def fake_invoke(config, prompt):
            seen["prompt"] = prompt
            return model_answer()

        monkeypatch.setattr(ai_service, "invoke_model", fake_invoke)
        config = ModelConfig(provider="openai", api_key="sk-test-1234")
        asyncio.run(ModelBackedStrategy(config).analyze("React job", "jane.doe@example.com, React"))
        assert "jane.doe@example.com" not in seen["prompt"]
        assert "[EMAIL_REDACTED]" in seen["prompt"]
