import math
import time
from typing import Optional

import openai
import yaml
from langchain_core.output_parsers import PydanticOutputParser
from langchain_core.prompts import PromptTemplate
from pydantic import ValidationError

from app.core.config import settings, logger
from app.core.errors import AnalysisError, CredentialError
from app.schemas import AnalysisResult, EthicalInsights, ModelAnalysis, ModelConfig
from app.services import providers
from app.services.strategy import ScoringStrategy, MATCHED_SKILLS_LIMIT, MISSING_SKILLS_LIMIT
from app.utils import parsers

# Model mode only has two labels; see scoring.py for the heuristic's three.
MODEL_HIGH_FIT_THRESHOLD = 70

# Rough characters-per-token ratio used when the model reports no usage
CHARS_PER_TOKEN = 4

CREDENTIAL_REJECTION_STATUS = (401,)
CREDENTIAL_REJECTION_MARKERS = (
    "API_KEY_INVALID",
    "API key not valid",
    "Incorrect API key",
    "invalid_api_key",
    "Unauthorized",
)

# --- GLOBAL STATE ---
PROMPTS = {}
output_parser = PydanticOutputParser(pydantic_object=ModelAnalysis)

def load_prompts():
    """Loads prompts from app/prompts.yaml"""
    global PROMPTS
    prompt_path = settings.PROMPTS_PATH

    try:
        with open(prompt_path, "r", encoding="utf-8") as f:
            PROMPTS = yaml.safe_load(f) or {}
        logger.info(f"✅ {len(PROMPTS)} prompt(s) loaded from YAML.")
    except FileNotFoundError:
        logger.warning(f"⚠️ prompts.yaml not found at {prompt_path}")
        PROMPTS = {}
    except yaml.YAMLError as e:
        logger.error(f"❌ Failed to load prompts.yaml: {e}")
        PROMPTS = {}

def get_prompt(prompt_name: str) -> PromptTemplate:
    """Retrieves a prompt template from the loaded YAML."""
    if not PROMPTS:
        load_prompts()
    raw_text = PROMPTS.get(prompt_name, "")
    if not raw_text:
        logger.error(f"Prompt '{prompt_name}' not found!")
        raise AnalysisError(f"Prompt '{prompt_name}' is not configured.")
    return PromptTemplate.from_template(raw_text)

def build_prompt(job_text: str, cv_text: str) -> str:
    """Renders the analysis prompt. Both texts are cut to TEXT_CHAR_LIMIT characters."""
    return get_prompt("analyze_prompt").format(
        job_description=parsers.truncate(job_text, settings.TEXT_CHAR_LIMIT),
        cv_text=parsers.truncate(cv_text, settings.TEXT_CHAR_LIMIT),
        format_instructions=output_parser.get_format_instructions(),
    )

def estimate_tokens(job_text: str, cv_text: str) -> int:
    return math.ceil((len(job_text) + len(cv_text)) / CHARS_PER_TOKEN)

def role_fit_for(score: int) -> str:
    return "High" if score > MODEL_HIGH_FIT_THRESHOLD else "Moderate"

def is_credential_rejection(exc: BaseException) -> bool:
    """True if the backend refused the API key. Follows wrapped causes."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, openai.AuthenticationError):
            return True
        status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
        if status in CREDENTIAL_REJECTION_STATUS:
            return True
        message = str(exc)
        if any(marker in message for marker in CREDENTIAL_REJECTION_MARKERS):
            return True
        exc = exc.__cause__ or exc.__context__
    return False

def _message_text(content) -> str:
    # Gemini may answer with a list of content parts
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    return content or ""

async def invoke_model(config: ModelConfig, prompt: str) -> str:
    """
    Sends the prompt to the configured backend once and returns the raw text.
    No retry, no fallback provider, no streaming.
    """
    spec = providers.get_provider(config.provider)
    model_name = config.model_name or spec.default_model

    logger.info(
        f"🤖 Invoking {spec.id}:{model_name} (key {providers.mask_key(config.api_key)}), "
        f"prompt {len(prompt)} chars"
    )
    start_time = time.time()

    try:
        llm = spec.factory(config.api_key, model_name)
        response = await llm.ainvoke(prompt)
    except Exception as e:
        if is_credential_rejection(e):
            logger.warning(f"🔑 {spec.id} rejected the API key: {e}")
            raise CredentialError(f"The {spec.label} API key was rejected. Check your settings.") from e
        logger.error(f"❌ {spec.id} invocation failed: {e}", exc_info=True)
        raise AnalysisError("The AI provider failed to analyze the CV. Please try again.") from e

    duration = time.time() - start_time
    content = _message_text(response.content)
    logger.info(f"📥 [{spec.id}:{model_name}] RECEIVED ({duration:.2f}s): {len(content)} chars")

    usage = getattr(response, "usage_metadata", None)
    if usage:
        logger.info(
            f"💰 TOKEN USAGE ({spec.id}:{model_name}): "
            f"In={usage.get('input_tokens', 0)}, Out={usage.get('output_tokens', 0)}, "
            f"Total={usage.get('total_tokens', 0)}"
        )

    return content

def _dedupe(items) -> list:
    seen = set()
    result = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result

def parse_model_response(
    raw_text: str,
    job_text: str,
    cv_text: str,
    provider: str = "",
    model_name: Optional[str] = None,
) -> AnalysisResult:
    """
    Validates the model's raw answer against ModelAnalysis and shapes it into
    an AnalysisResult. roleFit is derived from the score, never taken from the model.
    """
    data = parsers.extract_clean_json(raw_text)
    if data is None:
        logger.debug(f"Raw AI Output: {raw_text!r:.500}")
        raise AnalysisError("The AI response did not contain a valid JSON object.")

    try:
        analysis = ModelAnalysis.model_validate(data)
    except ValidationError as e:
        logger.error(f"AI response failed schema validation: {e}")
        raise AnalysisError("The AI response did not match the expected format.") from e

    score = int(math.floor(analysis.score + 0.5))
    matched = _dedupe(analysis.skills_match)
    matched_set = set(matched)
    missing = [s for s in _dedupe(analysis.missing_skills) if s not in matched_set]

    token_usage = analysis.ethical_insights.token_usage
    if not token_usage or token_usage <= 0:
        token_usage = estimate_tokens(job_text, cv_text)

    return AnalysisResult(
        score=score,
        matched_skills=matched[:MATCHED_SKILLS_LIMIT],
        missing_skills=missing[:MISSING_SKILLS_LIMIT],
        role_fit=role_fit_for(score),
        rewritten_summary=analysis.rewritten_cv,
        ethical_insights=EthicalInsights(
            bias_note=analysis.ethical_insights.bias_check,
            estimated_tokens=token_usage,
        ),
        provider=provider,
        model=model_name,
    )

class ModelBackedStrategy(ScoringStrategy):
    """Delegates scoring and rewriting to a hosted language model."""

    def __init__(self, config: ModelConfig):
        self.config = config
        self.name = config.provider

    async def analyze(self, job_text: str, cv_text: str) -> AnalysisResult:
        job_text = parsers.truncate(job_text, settings.TEXT_CHAR_LIMIT)
        cv_text = parsers.truncate(cv_text, settings.TEXT_CHAR_LIMIT)
        if settings.REDACT_PII:
            cv_text = parsers.redact_pii(cv_text)

        prompt = build_prompt(job_text, cv_text)
        raw = await invoke_model(self.config, prompt)

        model_name = self.config.model_name or providers.get_provider(self.config.provider).default_model
        return parse_model_response(raw, job_text, cv_text, self.config.provider, model_name)
