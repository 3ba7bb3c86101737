"""Keyword extraction and highlighting for Applicant Tracking Systems

The extractor is lexical: every category owns a vocabulary-anchored regular
expression. Matches are title-cased so that differently cased mentions of the
same term collapse into one entry.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

logger = logging.getLogger(__name__)

HIGHLIGHT_WINDOW = 50
MIN_TECHNOLOGY_LENGTH = 3
MIN_SKILL_LENGTH = 5
HIGHLIGHT_MARKER = "**"
SUMMARY_MARKER = "<!-- ats-summary -->"
CONFLICT_TOKENS = ("[", "```", "`", "@")

MD_LINK_PATTERN = re.compile(r"\[(.*?)\]\((.*?)\)")
URL_PATTERN = re.compile(r"https?://[^\s]+|www\.[^\s]+")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
BOLD_PATTERN = re.compile(r"(\*\*|__)(.+?)\1")
ITALIC_PATTERN = re.compile(r"(?<![\w*])([*_])(?!\s)(.+?)(?<!\s)\1(?![\w*])")
BULLET_PATTERN = re.compile(r"^\s*[-*+•]\s+(.*)$", re.MULTILINE)
STRONG_UNDERSCORE_PATTERN = re.compile(r"(?<!\w)__|__(?!\w)")
EM_UNDERSCORE_PATTERN = re.compile(r"(?<![\w_])_|_(?![\w_])")


def _vocabulary_pattern(terms: Iterable[str]) -> re.Pattern:
    """Build a case-insensitive alternation anchored on word edges

    Lookarounds are used instead of \\b so that terms such as 'C++' or '.NET'
    still match on their edges.
    """
    ordered = sorted(terms, key=len, reverse=True)
    alternation = "|".join(
        term if _is_regex(term) else re.escape(term) for term in ordered
    )
    return re.compile(rf"(?<![\w.])(?:{alternation})(?![\w+#])", re.IGNORECASE)


def _is_regex(term: str) -> bool:
    return term.startswith("(?:")


TECHNOLOGY_TERMS = [
    "Python",
    "Java",
    "JavaScript",
    "TypeScript",
    "C++",
    "C#",
    ".NET",
    "Golang",
    "Rust",
    "Ruby",
    "PHP",
    "Kotlin",
    "Swift",
    "Scala",
    "SQL",
    "NoSQL",
    "PostgreSQL",
    "MySQL",
    "MongoDB",
    "Redis",
    "Elasticsearch",
    "Kafka",
    "RabbitMQ",
    "Docker",
    "Kubernetes",
    "Terraform",
    "Ansible",
    "Jenkins",
    "Git",
    "GitHub Actions",
    "GitLab",
    "AWS",
    "Azure",
    "GCP",
    "Google Cloud",
    "React",
    "Angular",
    "Vue.js",
    "Node.js",
    "Django",
    "Flask",
    "FastAPI",
    "Spring Boot",
    "GraphQL",
    "REST APIs",
    "REST",
    "Linux",
    "HTML",
    "CSS",
    "Pandas",
    "NumPy",
    "TensorFlow",
    "PyTorch",
    "Spark",
    "Hadoop",
    "Airflow",
    "Snowflake",
    "Tableau",
    "Power BI",
    "Jira",
]

SKILL_TERMS = [
    "Machine Learning",
    "Deep Learning",
    "Natural Language Processing",
    "Computer Vision",
    "Data Analysis",
    "Data Engineering",
    "Data Science",
    "Project Management",
    "Stakeholder Management",
    "Agile",
    "Scrum",
    "DevOps",
    "CI/CD",
    "Microservices",
    "Cloud Architecture",
    "Software Architecture",
    "Solution Architecture",
    "Architecture",
    "System Design",
    "API Design",
    "Software Engineering",
    "Distributed Systems",
    "Cloud Migration",
    "Test Automation",
    "Performance Optimization",
    "Team Leadership",
    "Leadership",
    "Mentoring",
    "Communication",
    "Problem Solving",
]

_SENIORITY = r"(?:(?:senior|junior|lead|principal|staff|chief)\s+)?"
_DISCIPLINE = (
    r"(?:software|data|devops|cloud|backend|back-end|frontend|front-end"
    r"|full[- ]stack|machine learning|site reliability|solutions?|systems?|qa|test)"
)
_ROLE = r"(?:engineer|developer|architect|scientist|analyst)"

JOB_TITLE_TERMS = [
    rf"(?:{_SENIORITY}{_DISCIPLINE}\s+{_ROLE})",
    rf"(?:{_SENIORITY}(?:engineering|product|project|program|delivery)\s+manager)",
    r"(?:(?:director|vp|vice president)\s+of\s+engineering)",
    r"(?:(?:technical|tech|team)\s+lead)",
    r"(?:scrum\s+master)",
    "CTO",
    "CIO",
    "Consultant",
]

_DEGREE = (
    r"(?:bachelor(?:'s)?|master(?:'s)?|associate(?:'s)?|doctor(?:ate)?"
    r"|b\.?sc?\.?|m\.?sc?\.?|b\.?a\.?|m\.?a\.?|ph\.?d\.?)"
)
_FIELD = (
    r"(?:computer science|computer engineering|software engineering"
    r"|information technology|information systems|electrical engineering"
    r"|mechanical engineering|data science|business administration"
    r"|mathematics|physics|economics|science|arts|engineering)"
)

EDUCATION_TERMS = [
    rf"(?:{_DEGREE}(?:\s+degree)?\s+(?:of|in)\s+{_FIELD}(?:\s+in\s+{_FIELD})?)",
    "MBA",
]

# Terms looked for in bullet points only
BULLET_TECHNICAL_TERMS = [
    "Event-Driven Architecture",
    "Domain-Driven Design",
    "Test-Driven Development",
    "Infrastructure as Code",
    "Site Reliability Engineering",
    "Platform Engineering",
    "Database Migration",
    "Serverless",
    "OAuth",
    "gRPC",
    "WebSockets",
    "Prometheus",
    "Grafana",
    "Helm",
    "Istio",
    "Observability",
    "Load Balancing",
    "Caching",
    "Message Queues",
]
SKILL_KEYWORDS = ("Architecture", "Design", "Engineering", "Migration")


class EntityCategory(Enum):
    """Entity buckets, in summary order

    Properties:
        label (str): Label used in the summary block
        pattern (re.Pattern): Vocabulary-anchored matcher for the category
    """

    TECHNOLOGIES = ("Technologies", tuple(TECHNOLOGY_TERMS))
    SKILLS = ("Skills", tuple(SKILL_TERMS))
    JOB_TITLES = ("Roles", tuple(JOB_TITLE_TERMS))
    EDUCATION = ("Education", tuple(EDUCATION_TERMS))

    def __init__(self, label: str, terms: tuple[str, ...]):
        self.label = label
        self.pattern = _vocabulary_pattern(terms)


SUMMARY_BLOCK_PATTERN = re.compile(
    r"\A(?:\*\*(?:"
    + "|".join(re.escape(category.label) for category in EntityCategory)
    + r"):\*\* [^\n]*\n)+\n"
    + re.escape(SUMMARY_MARKER)
    + r"\n\n"
)


def normalize_entity(text: str) -> str:
    """Title-case an entity so differently cased mentions collapse

    Only the first letter of each whitespace separated word is uppercased;
    punctuation inside a word does not start a new word ('Node.js').
    """
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())


@dataclass(frozen=True)
class ExtractedEntities:
    """Entities found in a document, one set per category"""

    technologies: frozenset[str] = frozenset()
    skills: frozenset[str] = frozenset()
    job_titles: frozenset[str] = frozenset()
    education: frozenset[str] = frozenset()

    def get(self, category: EntityCategory) -> frozenset[str]:
        return getattr(self, category.name.lower())

    def sorted_values(self, category: EntityCategory) -> list[str]:
        return sorted(self.get(category))

    def merge(self, other: "ExtractedEntities") -> "ExtractedEntities":
        """Return a new value holding the union of both"""
        return ExtractedEntities(
            **{
                category.name.lower(): self.get(category) | other.get(category)
                for category in EntityCategory
            }
        )

    def is_empty(self) -> bool:
        return not any(self.get(category) for category in EntityCategory)

    @classmethod
    def of(cls, category: EntityCategory, values: Iterable[str]) -> "ExtractedEntities":
        return cls(**{category.name.lower(): frozenset(values)})


##############################
# Entity Extractor
##############################
def sanitize_markdown(markdown_text: str) -> str:
    """Strip emphasis markers, URLs and e-mail addresses

    Markdown links keep their text and lose their target.

    Args:
        markdown_text (str): Markdown text

    Returns:
        str: Text for entity detection only, never for output
    """
    text = markdown_text
    # Repeat so nested markers ('***x***') are fully removed
    previous = None
    while previous != text:
        previous = text
        text = BOLD_PATTERN.sub(r"\2", text)
        text = ITALIC_PATTERN.sub(r"\2", text)

    text = MD_LINK_PATTERN.sub(r"\1", text)
    text = EMAIL_PATTERN.sub(" ", text)
    text = URL_PATTERN.sub(" ", text)
    return text


def match_category(text: str, category: EntityCategory) -> ExtractedEntities:
    """Collect normalized matches of one category's pattern"""
    found = {
        normalize_entity(match.group(0)) for match in category.pattern.finditer(text)
    }
    return ExtractedEntities.of(category, found)


def scan_bullet_points(text: str) -> ExtractedEntities:
    """Look for technical terms in bullet point lines

    Terms naming an architecture, design, engineering or migration practice
    are skills, the others technologies.
    """
    skills = set()
    technologies = set()

    for bullet in BULLET_PATTERN.findall(text):
        for term in BULLET_TECHNICAL_TERMS:
            if not re.search(rf"(?<!\w){re.escape(term)}(?!\w)", bullet, re.IGNORECASE):
                continue
            if any(keyword in term for keyword in SKILL_KEYWORDS):
                skills.add(normalize_entity(term))
            else:
                technologies.add(normalize_entity(term))

    return ExtractedEntities(
        technologies=frozenset(technologies), skills=frozenset(skills)
    )


def extract_entities(markdown_text: str) -> ExtractedEntities:
    """Extract technologies, skills, job titles and education from markdown

    Args:
        markdown_text (str): Markdown text, emphasis and links allowed

    Returns:
        ExtractedEntities: One set of normalized strings per category
    """
    text = sanitize_markdown(markdown_text)

    entities = ExtractedEntities()
    for category in EntityCategory:
        entities = entities.merge(match_category(text, category))

    entities = entities.merge(scan_bullet_points(text))

    logger.debug(
        "Extracted entities: "
        + ", ".join(
            f"{category.label}={len(entities.get(category))}"
            for category in EntityCategory
        )
    )
    return entities


##############################
# Highlighter
##############################
@dataclass
class HighlightState:
    """Literals already wrapped during one highlighting pass (lowercased)"""

    highlighted: set[str] = field(default_factory=set)

    def seen(self, literal: str) -> bool:
        return literal.lower() in self.highlighted

    def add(self, literal: str) -> None:
        self.highlighted.add(literal.lower())


def highlight_candidates(
    entities: ExtractedEntities,
    min_technology_length: int = MIN_TECHNOLOGY_LENGTH,
    min_skill_length: int = MIN_SKILL_LENGTH,
) -> list[str]:
    """Technologies and skills worth highlighting, longest first"""
    candidates = {t for t in entities.technologies if len(t) > min_technology_length}
    candidates |= {s for s in entities.skills if len(s) > min_skill_length}
    return sorted(candidates, key=lambda c: (-len(c), c))


def _has_conflict(text: str, start: int, end: int, window: int) -> bool:
    """Check the window around a match for links, code or e-mail context"""
    context = text[max(0, start - window) : end + window]
    return any(token in context for token in CONFLICT_TOKENS)


def _inside_emphasis(text: str, start: int) -> bool:
    """Check if a position sits inside emphasis on its line

    Both delimiter styles count ('**', '__', '*', '_'). Underscores inside a
    word, as in 'snake_case', are not delimiters.
    """
    line_start = text.rfind("\n", 0, start) + 1
    before = text[line_start:start]

    if before.count(HIGHLIGHT_MARKER) % 2:
        return True
    before = before.replace(HIGHLIGHT_MARKER, "")

    if len(STRONG_UNDERSCORE_PATTERN.findall(before)) % 2:
        return True
    before = STRONG_UNDERSCORE_PATTERN.sub("", before)

    before = re.sub(r"^\s*\*\s", "", before)
    if before.count("*") % 2:
        return True
    return len(EM_UNDERSCORE_PATTERN.findall(before)) % 2 == 1


def highlight_entities(
    markdown_text: str,
    entities: ExtractedEntities,
    window: int = HIGHLIGHT_WINDOW,
    min_technology_length: int = MIN_TECHNOLOGY_LENGTH,
    min_skill_length: int = MIN_SKILL_LENGTH,
) -> str:
    """Wrap the first eligible occurrence of each candidate in bold markers

    Args:
        markdown_text (str): Original markdown text
        entities (ExtractedEntities): Entities from extract_entities
        window (int): Characters checked on each side of a match for
            link, code and e-mail markers
        min_technology_length (int): Technologies must be longer than this
        min_skill_length (int): Skills must be longer than this

    Returns:
        str: The markdown with highlights, without a summary block
    """
    state = HighlightState()
    text = markdown_text

    for candidate in highlight_candidates(
        entities, min_technology_length, min_skill_length
    ):
        pattern = re.compile(
            rf"(?<![\w.]){re.escape(candidate)}(?![\w+#])", re.IGNORECASE
        )

        # Wrapped by a previous pass
        wrapped = re.search(
            rf"\*\*{re.escape(candidate)}\*\*(?!\*)", text, re.IGNORECASE
        )
        if wrapped:
            state.add(wrapped.group(0).strip("*"))

        for match in pattern.finditer(text):
            literal = match.group(0)
            if state.seen(literal):
                break
            if _has_conflict(text, match.start(), match.end(), window):
                continue
            if _inside_emphasis(text, match.start()):
                continue

            text = (
                text[: match.start()]
                + f"{HIGHLIGHT_MARKER}{literal}{HIGHLIGHT_MARKER}"
                + text[match.end() :]
            )
            state.add(literal)
            logger.debug(f"Highlighted: {literal}")
            break

    return text


def build_summary(entities: ExtractedEntities) -> str:
    """Summary lines for non-empty categories

    The lines are followed by a blank line and the SUMMARY_MARKER comment,
    which renders as nothing in HTML and tells strip_summary that the block
    was generated.
    """
    lines = [
        f"**{category.label}:** {', '.join(entities.sorted_values(category))}"
        for category in EntityCategory
        if entities.get(category)
    ]
    if not lines:
        return ""
    return "\n".join(lines) + f"\n\n{SUMMARY_MARKER}\n\n"


def strip_summary(markdown_text: str) -> str:
    """Remove a summary block left by a previous optimization

    Only a leading block closed by SUMMARY_MARKER is removed; category-style
    lines written by hand are kept.
    """
    return SUMMARY_BLOCK_PATTERN.sub("", markdown_text, count=1)


def optimize_for_ats(
    markdown_text: str,
    window: int = HIGHLIGHT_WINDOW,
    min_technology_length: int = MIN_TECHNOLOGY_LENGTH,
    min_skill_length: int = MIN_SKILL_LENGTH,
) -> str:
    """Highlight ATS keywords and prepend a categorized summary

    Args:
        markdown_text (str): Markdown text
        window (int): Conflict window around each match
        min_technology_length (int): Minimum technology length to highlight
        min_skill_length (int): Minimum skill length to highlight

    Returns:
        str: Optimized markdown, or the input unchanged if nothing was found
    """
    entities = extract_entities(markdown_text)
    if entities.is_empty():
        logger.info("No entities detected, markdown left unchanged")
        return markdown_text

    body = strip_summary(markdown_text)
    body = highlight_entities(
        body,
        entities,
        window=window,
        min_technology_length=min_technology_length,
        min_skill_length=min_skill_length,
    )

    candidates = highlight_candidates(
        entities, min_technology_length, min_skill_length
    )
    logger.info(f"Optimized markdown for ATS, {len(candidates)} highlight candidates")
    return build_summary(entities) + body


__all__ = [
    "EntityCategory",
    "ExtractedEntities",
    "HighlightState",
    "SUMMARY_MARKER",
    "build_summary",
    "extract_entities",
    "highlight_candidates",
    "highlight_entities",
    "normalize_entity",
    "optimize_for_ats",
    "sanitize_markdown",
    "scan_bullet_points",
    "strip_summary",
]
