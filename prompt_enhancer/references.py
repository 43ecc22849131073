"""Discovery of URLs, libraries and packages mentioned in a raw prompt."""

import logging
import re

from prompt_enhancer.models import DiscoveredReference

logger = logging.getLogger(__name__)

_URL_RE = re.compile(
    r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"(?:[-a-zA-Z0-9()@:%_+.~#?&=/]*)"
)
_SCOPED_PACKAGE_RE = re.compile(r"(?<![\w.])@[\w-]+/[\w-]+")
_AT_REFERENCE_RE = re.compile(r"(?<![\w.])@[\w-]+(?:/[\w-]+)*(?:\.\w+)?")
_WORD_STRIP_RE = re.compile(r"[^\w@/.-]")

# Libraries recognized even when the project does not declare them
COMMON_LIBRARY_PATTERNS = (
    re.compile(r"\b(react|vue|angular|svelte|next\.js|nextjs|express|fastify)\b", re.I),
    re.compile(r"\b(typescript|node\.js|deno|bun)\b", re.I),
    re.compile(r"\b(django|flask|fastapi|starlette|pydantic|sqlalchemy|celery)\b", re.I),
    re.compile(r"\b(prisma|mongoose|sequelize|typeorm)\b", re.I),
    re.compile(r"\b(tailwind|bootstrap|material-ui|chakra)\b", re.I),
    re.compile(r"\b(pytest|jest|vitest|mocha|cypress|playwright)\b", re.I),
    re.compile(r"\b(numpy|pandas|polars|pytorch|tensorflow|scikit-learn)\b", re.I),
    re.compile(r"\b(webpack|vite|rollup|esbuild)\b", re.I),
)


class ReferenceDiscovery:
    """Extract references from prompt text.

    Args:
        dependencies: Declared project dependencies; words of the prompt that
            name one of them are reported as libraries.
    """

    def __init__(self, dependencies: list[str] | None = None):
        self.dependencies: set[str] = set()
        for dependency in dependencies or []:
            name = dependency.lower()
            self.dependencies.add(name)
            if name.startswith("@") and "/" in name:
                self.dependencies.add(name.split("/", 1)[1])

    def discover(self, text: str) -> list[DiscoveredReference]:
        """All references in order of discovery, de-duplicated by (type, value)."""
        references: list[DiscoveredReference] = []

        urls = list(dict.fromkeys(_URL_RE.findall(text)))
        references.extend(
            DiscoveredReference(type="url", value=url, context="Found in prompt text")
            for url in urls
        )

        references.extend(self._libraries(text))

        # @-references that are not scoped packages usually name files or services
        for match in dict.fromkeys(_AT_REFERENCE_RE.findall(text)):
            if "/" in match or any(match in url for url in urls):
                continue
            references.append(
                DiscoveredReference(type="package", value=match, context="@-reference in prompt")
            )

        unique = _unique_references(references)
        if unique:
            logger.debug(f"Discovered {len(unique)} references")
        return unique

    def _libraries(self, text: str) -> list[DiscoveredReference]:
        found: list[DiscoveredReference] = []

        if self.dependencies:
            for word in text.lower().split():
                cleaned = _WORD_STRIP_RE.sub("", word).strip(".")
                if cleaned in self.dependencies:
                    found.append(
                        DiscoveredReference(
                            type="library", value=cleaned, context="Found in project dependencies"
                        )
                    )

        found.extend(
            DiscoveredReference(type="library", value=match, context="Scoped package pattern")
            for match in _SCOPED_PACKAGE_RE.findall(text)
        )

        for pattern in COMMON_LIBRARY_PATTERNS:
            found.extend(
                DiscoveredReference(
                    type="library", value=match.lower(), context="Common library pattern"
                )
                for match in pattern.findall(text)
            )
        return found


def _unique_references(references: list[DiscoveredReference]) -> list[DiscoveredReference]:
    seen: set[tuple[str, str]] = set()
    unique = []
    for reference in references:
        key = (reference.type, reference.value)
        if key not in seen:
            seen.add(key)
            unique.append(reference)
    return unique
