"""Shared prompt templates for agents."""

JSON_OUTPUT = """Your response must be valid JSON that can be parsed directly.
Do not include any markdown formatting or code blocks.
Ensure all strings are properly escaped."""

# Scoring guidelines
SCORING_GUIDELINES = """Scoring scale (0-100):
- 90-100: Exceptional match, highly recommended
- 80-89: Strong match, recommended
- 70-79: Good match, consider carefully
- 60-69: Moderate match, has potential but gaps exist
- 50-59: Weak match, significant gaps
- Below 50: Poor match, not recommended"""

FAIRNESS = """Judge only job-relevant qualifications. Never let name, gender, age,
nationality, religion or other protected characteristics influence a score."""
