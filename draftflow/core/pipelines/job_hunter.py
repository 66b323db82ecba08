"""Resume tailoring for one job description.

The draft topic is the job description itself; the master resume, job
title and company travel in the draft context.
"""

from typing import Any, Dict

from ...models.sections import TailoredAssets
from ..parser import FieldSpec, RecordSchema, parse_record
from .base import PipelineConfig, is_quota_error

JOB_HUNTER_PROMPT_TEMPLATE = """### SYSTEM ROLE
You are an Elite Technical Recruiter and Forensic Resume Analyst. Your goal is to re-engineer a Candidate's Base Resume to align with a specific Job Description (JD).

### THE PRIME DIRECTIVE
Make the Candidate look like the specific solution to the company's problems, BUT strictly adhere to the truth.
1. NO HALLUCINATIONS: Do not invent skills, job titles, or companies.
2. NO NEW DATES: You cannot change employment dates to hide gaps.
3. STRATEGIC REFRAMING: You may rename generic titles to functional titles IF the experience supports it.

### STYLE & TONE RULES
- VOCABULARY BAN LIST: Do not use "Delve," "Tapestry," "Landscape," "Fostered," "Spearheaded," "Honed," "Passionate," "Crucial," "Meticulous."
- POWER VERBS: "Architected," "Deployed," "Engineered," "Reduced," "Accelerated," "Orchestrated," "Revamped."
- TONE: Professional, authoritative, and result-oriented.

### JOB DESCRIPTION (TARGET):
{job_description}

### CANDIDATE'S BASE RESUME:
{master_resume}

### REQUIRED OUTPUT FORMAT (JSON ONLY)
{{
  "matchScore": <Integer 0-100 based on alignment>,
  "gapAnalysis": "<Detailed analysis of what's missing and key changes made>",
  "missingSkills": ["skill1", "skill2", "skill3"],
  "tailoredSummary": "<3 sentences: Identity + specific relevant win + how I solve your pain point>",
  "tailoredResume": "<Full markdown resume: header, skills, experience with Action + Context + Result bullets>",
  "dmDraft": "<Max 280 chars. 'I saw you need [Skill]. I just built [Project] using [Skill] that handled [Metric]. Let's chat.'>",
  "coverLetter": "<3 paragraphs. Peer-to-peer expert tone.>"
}}

OUTPUT ONLY VALID JSON. NO MARKDOWN OUTSIDE STRINGS."""

TAILORED_SCHEMA = RecordSchema(
    fields={
        "match_score": FieldSpec(default=50, type=int, aliases=("matchScore",)),
        "gap_analysis": FieldSpec(default="Analysis pending", aliases=("gapAnalysis",)),
        "missing_skills": FieldSpec(default=[], type=list, aliases=("missingSkills",)),
        "tailored_summary": FieldSpec(default="", aliases=("tailoredSummary",)),
        "tailored_resume": FieldSpec(default="", aliases=("tailoredResume",)),
        "dm_draft": FieldSpec(default="", aliases=("dmDraft",)),
        "cover_letter": FieldSpec(default="", aliases=("coverLetter",)),
    }
)

FALLBACK_DM = (
    "Hi! I noticed your posting and believe my background aligns well with what "
    "you're looking for. I'd love to connect and discuss how I can contribute to "
    "your team. Looking forward to hearing from you!"
)

FALLBACK_COVER_LETTER = """Dear Hiring Manager,

I am writing to express my strong interest in this position. After reviewing the job requirements, I am confident that my skills and experience make me an excellent candidate.

{resume_excerpt}...

I am excited about the opportunity to contribute to your team and would welcome the chance to discuss my qualifications further.

Thank you for considering my application.

Best regards"""


def build_prompt(topic: str, context: Dict[str, Any]) -> str:
    return JOB_HUNTER_PROMPT_TEMPLATE.format(
        job_description=topic, master_resume=context["master_resume"]
    )


def parse(raw: str, topic: str, context: Dict[str, Any]) -> Dict[str, Any]:
    record = parse_record(raw, TAILORED_SCHEMA)
    record["match_score"] = max(0, min(100, record["match_score"]))
    if not record["tailored_resume"]:
        record["tailored_resume"] = context["master_resume"]
    return {"assets": TailoredAssets(**record)}


def fallback(topic: str, context: Dict[str, Any], error: Exception) -> Dict[str, Any]:
    master_resume = context.get("master_resume", "")
    reason = "rate limit" if is_quota_error(error) else "error"
    assets = TailoredAssets(
        match_score=75,
        gap_analysis=(
            f"AI analysis temporarily unavailable ({reason}). Based on your resume, "
            "you appear to be a strong candidate. Review the tailored materials "
            "below and customize as needed."
        ),
        missing_skills=["Review job posting for specific requirements"],
        tailored_summary=(
            "Experienced professional with relevant skills matching this "
            "opportunity. Review and customize the generated materials for best results."
        ),
        tailored_resume=master_resume or "No master resume provided.",
        dm_draft=FALLBACK_DM,
        cover_letter=FALLBACK_COVER_LETTER.format(resume_excerpt=master_resume[:500]),
    )
    return {"assets": assets}


JOB_HUNTER = PipelineConfig(
    name="job_hunter",
    description="Tailored resume, DM and cover letter for a job description",
    sections=["assets"],
    placeholders={"assets": "⏳ Analyzing job match..."},
    build_prompt=build_prompt,
    parse=parse,
    fallback=fallback,
    required_context=["master_resume"],
    temperature=0.7,
    max_output_tokens=4096,
    response_format="json",
)
