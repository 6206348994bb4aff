from typing import Optional

from app.core.config import settings, logger
from app.core.errors import CredentialError, InputValidationError
from app.schemas import AnalysisResult, ModelConfig
from app.services import providers
from app.services.ai_service import ModelBackedStrategy
from app.services.scoring import HeuristicStrategy
from app.services.strategy import ScoringStrategy

def build_model_config(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
) -> ModelConfig:
    """Normalizes raw header values. Nothing is validated here."""
    return ModelConfig(
        provider=(provider or settings.DEFAULT_PROVIDER).strip().lower(),
        api_key=(api_key or "").strip() or None,
        model_name=(model_name or "").strip() or None,
    )

def select_strategy(config: ModelConfig) -> ScoringStrategy:
    """
    Picks the scoring strategy for a request.
    Unknown provider -> InputValidationError, hosted provider without key -> CredentialError.
    """
    if config.provider == providers.LOCAL_PROVIDER:
        return HeuristicStrategy()

    try:
        spec = providers.get_provider(config.provider)
    except KeyError:
        raise InputValidationError(f"Unknown AI provider '{config.provider}'.") from None

    if not config.api_key:
        raise CredentialError(f"An API key is required for {spec.label}. Add it in the settings.")

    return ModelBackedStrategy(config)

async def analyze(strategy: ScoringStrategy, job_text: str, cv_text: str) -> AnalysisResult:
    logger.info(f"🔍 Running '{strategy.name}' analysis (job {len(job_text)} chars, CV {len(cv_text)} chars)")
    result = await strategy.analyze(job_text, cv_text)
    logger.info(f"✅ Analysis complete: score={result.score}, roleFit={result.role_fit}")
    return result
