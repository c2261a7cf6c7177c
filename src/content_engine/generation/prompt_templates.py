"""All prompt templates for the content engine."""

from dataclasses import dataclass

ENTITY_EXTRACTION_PROMPT = """Analyze the following {content_label} and extract structured entities. Return ONLY a JSON object with the following structure:

{{
  "stakeholders": [
    {{
      "name": "Person or team name",
      "email": "Email address (if mentioned)",
      "title": "Job title (if mentioned)",
      "department": "Department (if mentioned)",
      "company": "Organization (if mentioned)",
      "confidence": 0.95,
      "context": "How they are mentioned in the content"
    }}
  ],
  "workstreams": [
    {{
      "name": "Project or workstream name",
      "description": "Short description (if available)",
      "confidence": 0.90,
      "context": "How the workstream is referenced"
    }}
  ],
  "releases": [
    {{
      "name": "Release name",
      "version": "Version number (if mentioned)",
      "target_date": "YYYY-MM-DD (if mentioned)",
      "confidence": 0.85,
      "context": "How the release is mentioned"
    }}
  ],
  "action_items": [
    {{
      "text": "What needs to be done",
      "assignee": "Person responsible (if mentioned)",
      "priority": "high|medium|low",
      "due_date": "YYYY-MM-DD (if mentioned)",
      "confidence": 0.90,
      "context": "Context around the action item"
    }}
  ],
  "meetings": [
    {{
      "title": "Meeting subject",
      "date": "YYYY-MM-DD (if mentioned)",
      "attendees": ["Names of attendees"],
      "confidence": 0.80,
      "context": "How the meeting is referenced"
    }}
  ],
  "decisions": [
    {{
      "text": "What was decided",
      "made_by": "Who decided (if mentioned)",
      "confidence": 0.80,
      "context": "Context around the decision"
    }}
  ],
  "summary": "Brief summary of the main points"
}}

Use only information present in the content. Omit fields that are not mentioned instead of guessing.
Confidence values must be between 0.0 and 1.0.

Content to analyze:
{content}"""

CONTENT_LABELS = {
    "brain_dump": "brain dump",
    "email": "email",
    "slack": "Slack conversation",
    "document": "document",
    "meeting_notes": "meeting notes",
    "teams": "Teams conversation",
    "file": "file contents",
}

EXEMPLAR_PREAMBLE = """You are an assistant for Product Managers.
Learn from these high-quality examples where users provided positive feedback:"""

EXEMPLAR_CLOSING = """Now generate a high-quality response for this new input:
Input: {input}

Respond with a JSON object containing your output:"""


def build_extraction_prompt(content: str, content_type: str) -> str:
    return ENTITY_EXTRACTION_PROMPT.format(
        content_label=CONTENT_LABELS.get(content_type, "content"),
        content=content,
    )


SUMMARY_PROMPT = """Please provide a concise summary of the following {content_label} in approximately {max_length} characters. Focus on the key points and actionable information:

{content}"""

ACTION_ITEMS_PROMPT = """Extract actionable tasks and follow-up items from the following {content_label}. Format as a JSON array with each item having "task", "priority" (high/medium/low), "assignee" (if mentioned), and "deadline" (if mentioned):

{content}"""

CHECKLIST_PROMPT = """Turn the following {content_label} into a checklist a Product Manager can work through. Return one markdown checkbox line ("- [ ] ...") per concrete step, in the order they should happen. Leave out anything that is not actionable.

{content}"""

EMAIL_DRAFT_PROMPT = """Draft a short follow-up email based on the following {content_label}. Open with the purpose, list decisions and owners, and close with the next steps and dates that were mentioned. Return the subject line first, then the body.

{content}"""

REPORT_PROMPT = """Generate professional release notes for a {audience} audience. {audience_guidance}

Format as markdown with clear sections for New Features, Improvements, Bug Fixes, and Breaking Changes if applicable.

Source content:
{content}"""

AUDIENCE_GUIDANCE = {
    "technical": "Focus on technical details, API changes, and implementation specifics.",
    "business": "Focus on user benefits, business impact, and feature descriptions.",
    "executive": "Focus on strategic value, metrics, and high-level outcomes.",
}


@dataclass(frozen=True)
class GenerationTask:
    template: str
    max_tokens: int
    temperature: float
    complexity: str


GENERATION_TASKS: dict[str, GenerationTask] = {
    "summary": GenerationTask(SUMMARY_PROMPT, max_tokens=400, temperature=0.3, complexity="low"),
    "action_items": GenerationTask(ACTION_ITEMS_PROMPT, max_tokens=1000, temperature=0.2, complexity="low"),
    "checklist": GenerationTask(CHECKLIST_PROMPT, max_tokens=800, temperature=0.3, complexity="low"),
    "email_draft": GenerationTask(EMAIL_DRAFT_PROMPT, max_tokens=1000, temperature=0.5, complexity="medium"),
    "report": GenerationTask(REPORT_PROMPT, max_tokens=1500, temperature=0.6, complexity="high"),
}


def build_generation_prompt(
    output_type: str,
    content: str,
    content_type: str,
    max_length: int = 200,
    audience: str = "technical",
) -> str:
    return GENERATION_TASKS[output_type].template.format(
        content_label=CONTENT_LABELS.get(content_type, "content"),
        content=content,
        max_length=max_length,
        audience=audience,
        audience_guidance=AUDIENCE_GUIDANCE.get(
            audience, "Balance technical and business perspectives."
        ),
    )
