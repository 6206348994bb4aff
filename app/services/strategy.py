from abc import ABC, abstractmethod

from app.schemas import AnalysisResult

# Display caps shared by every strategy
MATCHED_SKILLS_LIMIT = 8
MISSING_SKILLS_LIMIT = 5

class ScoringStrategy(ABC):
    """Turns a job description and extracted CV text into an AnalysisResult."""

    name = "base"

    @abstractmethod
    async def analyze(self, job_text: str, cv_text: str) -> AnalysisResult:
        ...
