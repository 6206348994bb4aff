import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile

from app.core.config import settings
from app.core.errors import AnalysisError, AnalyzeError, InputValidationError, UploadTooLargeError
from app.schemas import AnalysisResult, ErrorResponse, ModelConfig, ProviderInfo
from app.services import analysis, providers
from app.utils import parsers

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

def get_model_config(
    x_ai_provider: Optional[str] = Header(None),
    x_ai_key: Optional[str] = Header(None),
    x_ai_model: Optional[str] = Header(None),
) -> ModelConfig:
    """Backend choice sent by the client. Keys are per request and never stored."""
    return analysis.build_model_config(x_ai_provider, x_ai_key, x_ai_model)

@router.post(
    "/analyze",
    response_model=AnalysisResult,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def analyze_cv(
    jdText: Optional[str] = Form(None),
    cvFile: Optional[UploadFile] = File(None),
    config: ModelConfig = Depends(get_model_config),
):
    """
    Scores an uploaded CV against a job description.
    """
    # --- 1. Fail fast, before touching the file or any model ---
    if not jdText or not jdText.strip() or cvFile is None or not cvFile.filename:
        raise InputValidationError("Missing Job Description or CV file")

    strategy = analysis.select_strategy(config)

    logger.info(f"📂 Received CV upload: {cvFile.filename} (provider: {config.provider})")

    try:
        content = await cvFile.read()
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise UploadTooLargeError(
                f"File too large. Max size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB."
            )

        # --- 2. Extract once, off the event loop ---
        loop = asyncio.get_running_loop()
        cv_text = await loop.run_in_executor(
            None, parsers.extract_text_from_document, content, cvFile.filename
        )

        # --- 3. Score ---
        return await analysis.analyze(strategy, jdText, cv_text)

    except AnalyzeError:
        raise

    except Exception as e:
        logger.error(f"❌ Unexpected analysis failure: {e}", exc_info=True)
        raise AnalysisError("Internal Server Error") from e

@router.get("/providers", response_model=List[ProviderInfo])
def get_providers():
    """Backends the client settings panel can offer."""
    items = [ProviderInfo(id=providers.LOCAL_PROVIDER, label="Local keyword matching", requires_key=False)]
    for spec in providers.list_providers():
        items.append(
            ProviderInfo(id=spec.id, label=spec.label, default_model=spec.default_model, requires_key=True)
        )
    return items
