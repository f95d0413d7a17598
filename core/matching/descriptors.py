"""Serializable views of jobs and candidates handed to the scoring oracle."""

from typing import Any, Optional

from database.models.candidates import Candidate
from database.models.companies import Company
from database.models.jobs import Job
from database.models.users import User


def describe_job(job: Job, company: Optional[Company] = None) -> dict[str, Any]:
    requirements = job.requirements or {}
    return {
        "jobId": job.id,
        "jobCode": job.job_code,
        "title": job.title,
        "company": company.name if company else None,
        "description": job.description,
        "location": job.location,
        "type": job.employment_type,
        "salaryRange": job.salary_range,
        "requirements": {
            "skills": job.skills or [],
            "experience": requirements.get("experience"),
            "education": requirements.get("education"),
            "languages": requirements.get("languages", []),
            "certifications": requirements.get("certifications", []),
        },
        "urgency": job.urgency.value if job.urgency else None,
        "numberOfOpenings": job.number_of_openings,
    }


def describe_candidate(candidate: Candidate, user: Optional[User] = None) -> dict[str, Any]:
    # Contact details stay out of the oracle payload
    return {
        "candidateId": candidate.id,
        "name": user.full_name if user else None,
        "summary": candidate.summary,
        "location": candidate.location,
        "skills": candidate.skills or [],
        "experience": candidate.experience or [],
        "education": candidate.education or [],
        "certifications": candidate.certifications or [],
        "projects": candidate.projects or [],
        "preferredSalaryRange": candidate.preferred_salary_range,
        "availability": candidate.availability,
        "totalExperience": candidate.total_experience,
    }
