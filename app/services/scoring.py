"""
Local keyword heuristic.

Capitalized words of the job description stand in for skills; a skill counts
as matched when it appears verbatim in the CV text. No model call involved.
"""
import math
import re
from typing import List, Tuple

from app.core.config import logger
from app.schemas import AnalysisResult
from app.services.strategy import ScoringStrategy, MATCHED_SKILLS_LIMIT, MISSING_SKILLS_LIMIT

SKILL_PATTERN = re.compile(r"\b[A-Z][a-zA-Z]+\b")
MIN_SKILL_LENGTH = 3

# Keyword matching is naive, so low ratios are lifted for display.
# Product decision, kept as-is until clarified.
SCORE_FLOOR = 65

# Three tiers here, the model-backed strategy only produces two.
HIGH_FIT_THRESHOLD = 80
MODERATE_FIT_THRESHOLD = 65

# Capitalized job-ad words that are not skills (sentence starters, role nouns).
# Not part of the plain capitalization rule: it keeps "Experienced React Developer
# needed. Must know TypeScript and AWS." down to React, TypeScript and AWS.
NON_SKILL_WORDS = frozenset({
    "About", "All", "And", "Are", "Candidate", "Candidates", "Company", "Developer",
    "Engineer", "Excellent", "Experience", "Experienced", "For", "Good", "Great",
    "Have", "Ideal", "Join", "Knowledge", "Manager", "Must", "Nice", "Our",
    "Preferred", "Required", "Requirements", "Responsibilities", "Role", "Senior",
    "Should", "Skills", "Strong", "Team", "The", "This", "Junior", "What", "Will",
    "With", "You", "Your", "Years",
})

def extract_skill_candidates(job_text: str) -> List[str]:
    """Skill-like words of the job text, in order of first appearance, without duplicates."""
    seen = set()
    candidates = []
    for word in SKILL_PATTERN.findall(job_text or ""):
        if len(word) < MIN_SKILL_LENGTH or word in NON_SKILL_WORDS or word in seen:
            continue
        seen.add(word)
        candidates.append(word)
    return candidates

def classify_skills(candidates: List[str], cv_text: str) -> Tuple[List[str], List[str]]:
    matched, missing = [], []
    for skill in candidates:
        if skill in cv_text:
            matched.append(skill)
        else:
            missing.append(skill)
    return matched, missing

def raw_score(matched_count: int, total: int) -> int:
    """Matched ratio as a percentage, rounded half up. 0 when there is nothing to match."""
    if total <= 0:
        return 0
    return int(math.floor(100 * matched_count / total + 0.5))

def apply_floor(score: int) -> int:
    return max(score, SCORE_FLOOR)

def role_fit_for(score: int) -> str:
    if score >= HIGH_FIT_THRESHOLD:
        return "High"
    if score >= MODERATE_FIT_THRESHOLD:
        return "Moderate"
    return "Low"

def build_summary(candidates: List[str], matched: List[str], missing: List[str]) -> str:
    target_role = candidates[0] if candidates else "Target Role"
    profile_skills = ", ".join(matched[:3]) or "software development"
    core_skills = " • ".join(matched + missing[:2])

    lines = [
        f"# Optimized CV for {target_role}",
        "",
        "## Profile",
        f"Results-oriented professional with strong experience in {profile_skills}.",
        "Proven track record of delivering high-quality solutions.",
        "",
        "## Core Skills",
        core_skills,
        "",
        "## Professional Experience",
        "**Candidate's Previous Role**",
        f"* Leveraged {matched[0] if matched else 'skills'} to improve system performance.",
        f"* Implemented solutions using {matched[1] if len(matched) > 1 else 'technology'}, resulting in efficiency gains.",
        f"* Addressed requirements for {missing[0] if missing else 'new technologies'} by rapid upskilling.",
        "",
        "(Note: This is an automated optimization based on the job description requirements.)",
    ]
    return "\n".join(lines)

def score_cv(job_text: str, cv_text: str) -> AnalysisResult:
    candidates = extract_skill_candidates(job_text)
    matched, missing = classify_skills(candidates, cv_text or "")

    score = apply_floor(raw_score(len(matched), len(candidates)))
    logger.info(
        f"📊 Heuristic: {len(candidates)} candidates, {len(matched)} matched, score={score}"
    )

    return AnalysisResult(
        score=score,
        matched_skills=matched[:MATCHED_SKILLS_LIMIT],
        missing_skills=missing[:MISSING_SKILLS_LIMIT],
        role_fit=role_fit_for(score),
        rewritten_summary=build_summary(candidates, matched, missing),
        provider="local",
    )

class HeuristicStrategy(ScoringStrategy):
    name = "local"

    async def analyze(self, job_text: str, cv_text: str) -> AnalysisResult:
        return score_cv(job_text, cv_text)
