"""Workflow classification and coarse requirement extraction.

The parser is a deterministic keyword classifier: it never calls a model and
never fails. Input that matches no vocabulary is classified as ``general``.
"""

import logging
import re

from prompt_enhancer.models import ParsedPrompt, RawPromptInput, WorkflowType

logger = logging.getLogger(__name__)

# ========== Classification Vocabulary ==========

# Order is the last tie-break when two workflows score the same.
WORKFLOW_VOCABULARY: dict[WorkflowType, tuple[str, ...]] = {
    WorkflowType.bug: (
        r"bugs?",
        r"fix(?:es|ed)?",
        r"errors?",
        r"issues?",
        r"broken",
        r"crash(?:es|ed|ing)?",
        r"fail(?:s|ed|ing|ure|ures)?",
        r"can't",
        r"cannot",
        r"can not",
        r"doesn't work",
        r"not working",
        r"regressions?",
        r"exceptions?",
        r"incorrect(?:ly)?",
        r"unable",
        r"wrong",
    ),
    WorkflowType.feature: (
        r"add",
        r"create",
        r"implement",
        r"build",
        r"new",
        r"features?",
        r"support",
        r"introduce",
        r"enable",
        r"allow",
        r"develop",
    ),
    WorkflowType.refactor: (
        r"refactor(?:ing)?",
        r"restructure",
        r"reorganize",
        r"clean ?up",
        r"simplify",
        r"extract",
        r"rename",
        r"decouple",
        r"deduplicate",
        r"modularize",
    ),
    WorkflowType.documentation: (
        r"document(?:ation)?",
        r"docs",
        r"readme",
        r"docstrings?",
        r"comments?",
        r"guide",
        r"tutorial",
        r"changelog",
    ),
    WorkflowType.research: (
        r"research",
        r"investigate",
        r"explore",
        r"analy[sz]e",
        r"compare",
        r"evaluate",
        r"benchmark",
        r"spike",
        r"assess",
    ),
    WorkflowType.pr_review: (
        r"pr",
        r"pull request",
        r"code review",
        r"review",
        r"merge request",
    ),
}

_WORKFLOW_PATTERNS: dict[WorkflowType, list[re.Pattern[str]]] = {
    workflow: [re.compile(rf"\b{term}\b") for term in terms]
    for workflow, terms in WORKFLOW_VOCABULARY.items()
}

# Technology keywords surfaced as tags
TECH_KEYWORDS = (
    "api",
    "auth",
    "aws",
    "celery",
    "css",
    "django",
    "docker",
    "fastapi",
    "flask",
    "graphql",
    "html",
    "javascript",
    "kubernetes",
    "lambda",
    "node",
    "postgres",
    "pydantic",
    "pytest",
    "python",
    "react",
    "redis",
    "rest",
    "sql",
    "sqlite",
    "typescript",
    "ui",
    "vue",
)

_TECH_PATTERN = re.compile(r"\b(" + "|".join(TECH_KEYWORDS) + r")\b")
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+)$")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_OBLIGATION_RE = re.compile(r"\b(must|should|needs?|required|requires|ensure|shall)\b", re.I)
_FILE_RE = re.compile(
    r"\b[\w./-]+\.(?:py|pyi|ts|tsx|js|jsx|json|ya?ml|toml|md|go|rs|java|rb|css|html|sql|cfg|ini)\b"
)
_BACKTICK_RE = re.compile(r"`([^`\n]+)`")
_CAMEL_RE = re.compile(r"\b[A-Z][a-z0-9]+(?:[A-Z][a-z0-9]+)+\b")
_SNAKE_RE = re.compile(r"\b[a-z][a-z0-9]*(?:_[a-z0-9]+)+\b")


def normalize_text(content: str) -> str:
    """Lower-case and normalize typographic apostrophes."""
    return content.replace("’", "'").replace("‘", "'").lower()


def detect_workflow(content: str) -> WorkflowType:
    """Classify content by distinct vocabulary hits per workflow.

    A tie goes to the workflow whose vocabulary opens the text ("Add ...",
    "Fix ..."), then to vocabulary order. Returns ``general`` when nothing
    matches.
    """
    lowered = normalize_text(content)
    hits = {
        workflow: sum(1 for pattern in patterns if pattern.search(lowered))
        for workflow, patterns in _WORKFLOW_PATTERNS.items()
    }
    best_hits = max(hits.values(), default=0)
    if best_hits == 0:
        return WorkflowType.general

    tied = [workflow for workflow, count in hits.items() if count == best_hits]
    if len(tied) > 1:
        opening = lowered.lstrip()
        for workflow in tied:
            if any(pattern.match(opening) for pattern in _WORKFLOW_PATTERNS[workflow]):
                return workflow
    return tied[0]


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


class PromptParser:
    """Classify a raw prompt and extract requirements, tags and components."""

    def parse(self, raw: RawPromptInput) -> ParsedPrompt:
        content = raw.content
        if raw.type is not None:
            workflow = raw.type
            logger.debug(f"Using explicit workflow hint: {workflow.value}")
        else:
            workflow = detect_workflow(content)
            logger.debug(f"Detected workflow: {workflow.value}")

        return ParsedPrompt(
            raw=raw,
            workflow=workflow,
            requirements=self.extract_requirements(content),
            tags=self.extract_tags(content, workflow, raw.metadata.tags),
            components=self.extract_components(content),
        )

    def extract_requirements(self, content: str) -> list[str]:
        """Bullet items plus sentences that carry obligation words."""
        requirements: list[str] = []
        prose: list[str] = []
        for line in content.splitlines():
            match = _BULLET_RE.match(line)
            if match:
                requirements.append(match.group(1).strip())
            elif line.strip():
                prose.append(line.strip())

        for sentence in _SENTENCE_SPLIT_RE.split(" ".join(prose)):
            sentence = sentence.strip()
            if sentence and _OBLIGATION_RE.search(sentence):
                requirements.append(sentence)

        return _unique(requirements)

    def extract_tags(
        self, content: str, workflow: WorkflowType, caller_tags: list[str]
    ) -> list[str]:
        tech = _TECH_PATTERN.findall(normalize_text(content))
        return _unique([workflow.value, *tech, *caller_tags])

    def extract_components(self, content: str) -> list[str]:
        """File names and code identifiers mentioned in the text."""
        found: list[str] = []
        found.extend(_FILE_RE.findall(content))
        found.extend(span.strip() for span in _BACKTICK_RE.findall(content))
        found.extend(_CAMEL_RE.findall(content))
        found.extend(_SNAKE_RE.findall(content))
        return _unique(found)
