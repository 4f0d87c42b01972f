"""
ExecBoard - AI Prompt Templates

Prompt templates for the AI-assisted recruiting features. Each feature has a
system prompt that fixes the persona and a user template filled with
str.format(); literal braces in the templates are doubled.

All prompts ask for a single JSON object, which the service requests in
JSON mode and then runs through extract_json_object.
"""

RECRUITER_SYSTEM = (
    "You are an expert healthcare executive recruiter with 20+ years of experience. "
    "Always return valid JSON."
)


# -----------------------------------------------------------------------------
# Job Description Generation
# -----------------------------------------------------------------------------
JOB_DESCRIPTION_SYSTEM = (
    "You are an expert healthcare executive recruiter with 20+ years of experience. "
    "Create compelling, professional job descriptions that attract top-tier healthcare "
    "leadership talent. Always return valid JSON."
)

JOB_DESCRIPTION_PROMPT = """Create a comprehensive job description for a healthcare executive position with the following details:

Position: {title}
Level: {level}
Location: {location}
Remote Work: {remote}
Organization: {org_name}
Organization Type: {org_type}
Key Points: {key_points}

Please provide:
1. A detailed, engaging job description (500-700 words)
2. 6-8 key responsibilities
3. A personalized outreach message for potential candidates
4. A brief skills analysis
5. Market insights for this role

Format as JSON with keys: jobDescription, keyResponsibilities, outreachSnippet, skillsAnalysis, marketInsights"""


# -----------------------------------------------------------------------------
# Candidate / Job Matching
# -----------------------------------------------------------------------------
MATCH_SYSTEM = (
    "You are an expert healthcare executive recruiter. Analyze candidate-job matches "
    "with precision and provide actionable insights. Always return valid JSON."
)

MATCH_PROMPT = """Analyze the match between this candidate and this job:

JOB REQUIREMENTS:
- Title: {job_title}
- Level: {job_level}
- Organization Type: {org_type}
- Required Experience: {required_experience} years
- Location: {job_location}
- Remote Allowed: {remote}
- Compensation: {compensation}
- Description: {description}

CANDIDATE PROFILE:
- Current Title: {current_title}
- Current Organization: {current_org}
- Target Levels: {target_levels}
- Preferred Settings: {preferred_settings}
- Service Lines: {service_lines}
- Budget Managed: {budget_managed}
- Team Size: {team_size}
- Location: {candidate_location}
- Willing to Relocate: {relocate}
- Summary: {summary}

Provide analysis as JSON with:
- matchScore (0-100)
- matchingFactors (array of strings)
- missingRequirements (array of strings)
- recommendation (string)

Focus on: role alignment, experience level, skills match, location compatibility, and growth potential."""


# -----------------------------------------------------------------------------
# Resume Analysis
# -----------------------------------------------------------------------------
RESUME_ANALYSIS_SYSTEM = (
    "You are an expert healthcare executive recruiter and resume analyst. Provide thorough, "
    "accurate analysis of healthcare leadership experience. Always return valid JSON."
)

RESUME_ANALYSIS_PROMPT = """Analyze this healthcare executive resume and provide comprehensive insights:

RESUME TEXT:
{resume_text}

Please provide detailed analysis as JSON with:
- extractedSkills (array of technical and leadership skills)
- experienceLevel (Junior/Mid/Senior/Executive/C-Suite)
- industryFocus (primary healthcare sectors)
- certifications (array of relevant certifications)
- leadershipExperience (description of leadership background)
- careerTrajectory (analysis of career progression)
- aiSummary (comprehensive 2-3 sentence summary)
- suggestedJobLevels (array of appropriate job levels)
- recommendedServiceLines (array of healthcare service lines)

Focus on healthcare leadership experience, management capabilities, and executive potential."""


# -----------------------------------------------------------------------------
# Interview Questions
# -----------------------------------------------------------------------------
INTERVIEW_QUESTIONS_SYSTEM = (
    "You are an expert healthcare executive recruiter and interviewer. Create insightful, "
    "strategic questions that reveal leadership capabilities and cultural fit. "
    "Always return valid JSON."
)

INTERVIEW_QUESTIONS_PROMPT = """Create interview questions for this healthcare executive position:

JOB DETAILS:
- Title: {job_title}
- Level: {job_level}
- Organization: {org_name}
- Organization Type: {org_type}
- Key Responsibilities: {responsibilities}

CANDIDATE BACKGROUND:
- Current Role: {current_title}
- Current Organization: {current_org}
- Service Lines: {service_lines}
- Background: {summary}

Create {question_count} strategic interview questions as JSON with:
- questions (array of {{question, type, focus, followUp}})
- evaluationCriteria (array of what to look for)
- redFlags (array of warning signs)

Question types: behavioral, technical, situational, experience
Focus areas: leadership, healthcare expertise, strategic thinking, cultural fit"""


# -----------------------------------------------------------------------------
# Application Screening
# -----------------------------------------------------------------------------
SCREENING_SYSTEM = (
    "You are an expert healthcare executive recruiter screening applications. Provide fair, "
    "detailed, and actionable screening assessments. Always return valid JSON."
)

SCREENING_PROMPT = """Screen this job application for fit and potential:

CANDIDATE PROFILE:
- Name: {full_name}
- Current Title: {current_title}
- Current Org: {current_org}
- Target Levels: {target_levels}
- Experience: {summary}

JOB DETAILS:
- Title: {job_title}
- Level: {job_level}
- Required Experience: {required_experience} years
- Organization: {org_name} ({org_type})

APPLICATION NOTE:
{application_text}

Provide screening analysis as JSON with:
- fitScore (0-100)
- strengths (array of candidate strengths)
- concerns (array of potential concerns)
- recommendation (STRONG_HIRE/HIRE/MAYBE/PASS)
- keyReasons (array of main reasons for recommendation)
- suggestedInterviewFocus (array of areas to explore in interview)

Be objective and thorough in evaluation."""


# -----------------------------------------------------------------------------
# Market Insights
# -----------------------------------------------------------------------------
MARKET_INSIGHTS_SYSTEM = (
    "You are a healthcare market analyst with expertise in executive recruitment trends "
    "and compensation data. Always return valid JSON."
)

MARKET_INSIGHTS_PROMPT = """Provide healthcare executive market insights for:

Organization Type: {org_type}
Job Level: {job_level}
Location: {location}

Current Date: {today}

Provide insights as JSON with:
- salaryRange (min, max, currency)
- marketTrends (array of current trends)
- inDemandSkills (array of hot skills)
- competitionLevel (Low/Medium/High)
- hiringTips (array of actionable tips)"""
