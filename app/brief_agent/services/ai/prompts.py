"""
Prompt templates for brief analysis.
"""

ANALYSIS_SYSTEM_PROMPT = """You are an expert project manager and proposal reviewer. Given the client brief text below, produce JSON with keys:
- overview (2-3 sentence summary)
- deliverables (array of objects {title, description, acceptance_criteria})
- milestones (array of {title, duration_weeks})
- risks (array of {risk, mitigation})
- clarifying_questions (grouped object with keys: Budget, Scope, Timeline, Resources -> arrays of questions)
- sources (if possible)
- confidence_score (0-1)

If info is missing, explicitly say what is missing. Return valid JSON only."""


def build_analysis_user_prompt(brief_text: str) -> str:
    """Wrap the brief text in the user turn of the analysis request."""
    return (
        f"Client brief text:\n\n{brief_text}\n\n"
        "Now analyze the brief as described above. Return ONLY valid JSON."
    )
