from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List

class EthicalInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bias_note: str = Field("", alias="biasNote")
    estimated_tokens: int = Field(0, alias="estimatedTokens")

class AnalysisResult(BaseModel):
    """The single response value of /api/analyze."""
    model_config = ConfigDict(populate_by_name=True)

    score: int = Field(ge=0, le=100)
    matched_skills: List[str] = Field(default_factory=list, alias="matchedSkills")
    missing_skills: List[str] = Field(default_factory=list, alias="missingSkills")
    role_fit: str = Field(alias="roleFit")
    rewritten_summary: str = Field("", alias="rewrittenSummary")
    ethical_insights: Optional[EthicalInsights] = Field(None, alias="ethicalInsights")
    provider: str = "local"
    model: Optional[str] = None

# --- Model output contract ---
# Field descriptions end up in the prompt's format instructions.

class ModelEthicalInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bias_check: str = Field(
        "",
        alias="biasCheck",
        description="One or two sentences on possible bias in the job description or in this assessment.",
    )
    token_usage: int = Field(
        0,
        alias="tokenUsage",
        description="Estimated number of tokens processed for this analysis.",
    )

    # Models send null for fields they skip; null means "use the default"
    @field_validator("bias_check", mode="before")
    @classmethod
    def _null_bias_check(cls, value):
        return "" if value is None else value

    @field_validator("token_usage", mode="before")
    @classmethod
    def _null_token_usage(cls, value):
        return 0 if value is None else value

class ModelAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: float = Field(ge=0, le=100, description="Overall fit of the CV for the job, 0 to 100.")
    skills_match: List[str] = Field(
        default_factory=list,
        alias="skillsMatch",
        description="Skills required by the job that the CV demonstrates.",
    )
    missing_skills: List[str] = Field(
        default_factory=list,
        alias="missingSkills",
        description="Skills required by the job that the CV does not show.",
    )
    rewritten_cv: str = Field(
        "",
        alias="rewrittenCV",
        description="Markdown CV summary rewritten for this job, using only facts present in the CV.",
    )
    ethical_insights: ModelEthicalInsights = Field(
        default_factory=ModelEthicalInsights, alias="ethicalInsights"
    )

    @field_validator("skills_match", "missing_skills", mode="before")
    @classmethod
    def _null_skill_list(cls, value):
        return [] if value is None else value

    @field_validator("rewritten_cv", mode="before")
    @classmethod
    def _null_rewritten_cv(cls, value):
        return "" if value is None else value

    @field_validator("ethical_insights", mode="before")
    @classmethod
    def _null_ethical_insights(cls, value):
        return {} if value is None else value

# --- Request side ---

class ModelConfig(BaseModel):
    """Per-request backend selection, read from request headers."""
    provider: str = "local"
    api_key: Optional[str] = None
    model_name: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())

class ProviderInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    default_model: Optional[str] = Field(None, alias="defaultModel")
    requires_key: bool = Field(alias="requiresKey")

class ErrorResponse(BaseModel):
    detail: str
    kind: str
