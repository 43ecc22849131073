"""Codebase context analysis for prompt enhancement.

This module scans a project tree and ranks files by lexical relevance to the
raw request, detects declared dependencies and the technical stack from
manifests, and assembles a PromptContext that fits a token budget.

The analyzer is read-only and never raises for filesystem problems: an
unreadable file is skipped, a missing manifest yields empty sets, and an
inaccessible project root yields an empty context.
"""

import hashlib
import json
import logging
import os
import re
import threading
import tomllib
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path

from prompt_enhancer.config import (
    CHARS_PER_TOKEN,
    CONTEXT_CACHE_SIZE,
    FILE_HEAD_BYTES,
    FILE_SUMMARY_CHARS,
    MAX_CONTEXT_FILES,
    PROJECT_OVERVIEW_CHARS,
    TOKENS_CONTEXT_DEFAULT,
)
from prompt_enhancer.models import FileContext, PromptContext

logger = logging.getLogger(__name__)

# ========== Scan Rules ==========

IGNORED_DIRS = {
    ".git",
    ".hg",
    ".idea",
    ".mypy_cache",
    ".next",
    ".prompt-enhancer",
    ".pytest_cache",
    ".ruff_cache",
    ".tox",
    ".turbo",
    ".venv",
    ".vscode",
    "__pycache__",
    "build",
    "coverage",
    "dist",
    "node_modules",
    "site-packages",
    "venv",
}

SOURCE_EXTENSIONS = {
    ".c",
    ".cfg",
    ".cpp",
    ".cs",
    ".css",
    ".go",
    ".h",
    ".html",
    ".ini",
    ".java",
    ".js",
    ".json",
    ".jsx",
    ".kt",
    ".md",
    ".php",
    ".py",
    ".pyi",
    ".rb",
    ".rs",
    ".rst",
    ".scss",
    ".sh",
    ".sql",
    ".swift",
    ".toml",
    ".ts",
    ".tsx",
    ".txt",
    ".vue",
    ".yaml",
    ".yml",
}

STOP_WORDS = {
    "about",
    "after",
    "all",
    "also",
    "and",
    "any",
    "are",
    "been",
    "but",
    "can",
    "can't",
    "could",
    "does",
    "for",
    "from",
    "has",
    "have",
    "into",
    "its",
    "make",
    "more",
    "must",
    "need",
    "not",
    "now",
    "our",
    "please",
    "should",
    "some",
    "that",
    "the",
    "their",
    "them",
    "then",
    "there",
    "this",
    "use",
    "using",
    "want",
    "was",
    "were",
    "what",
    "when",
    "where",
    "which",
    "while",
    "will",
    "with",
    "would",
    "you",
    "your",
}

README_NAMES = ("README.md", "README.rst", "README.txt", "README")

# Language implied by the presence of a manifest
MANIFEST_LANGUAGES = {
    "pyproject.toml": "Python",
    "requirements.txt": "Python",
    "package.json": "JavaScript",
    "tsconfig.json": "TypeScript",
    "Cargo.toml": "Rust",
    "go.mod": "Go",
}

# Dependency name -> technology tag
FRAMEWORK_MARKERS = {
    "celery": "Celery",
    "django": "Django",
    "express": "Express",
    "fastapi": "FastAPI",
    "flask": "Flask",
    "lancedb": "LanceDB",
    "next": "Next.js",
    "numpy": "NumPy",
    "pandas": "pandas",
    "prisma": "Prisma",
    "pydantic": "Pydantic",
    "pytest": "pytest",
    "react": "React",
    "sqlalchemy": "SQLAlchemy",
    "strands-agents": "Strands",
    "tokio": "Tokio",
    "typescript": "TypeScript",
    "vue": "Vue",
}

_WORD_RE = re.compile(r"[a-z0-9]+")
_PATH_SPLIT_RE = re.compile(r"[\\/._\-\s]+")
_CAMEL_SPLIT_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+")
_REQUIREMENT_NAME_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")
_GO_REQUIRE_RE = re.compile(r"^\s*(?:require\s+)?([\w.\-]+/[\w.\-/]+)\s+v[\w.\-+]+")
_COMMENT_PREFIX_RE = re.compile(r"^(?:#+|//+|/\*+|\*+|\"\"\"|'''|<!--)\s*")
_CODE_LINE_PREFIXES = ("import ", "from ", "package ", "use ", "#!", "{", "}", "[", "---")


def stem(word: str) -> str:
    """Crude plural folding so 'users' and 'user' compare equal."""
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def extract_salient_terms(text: str) -> list[str]:
    """Lower-cased, stemmed, de-duplicated terms worth matching against paths."""
    lowered = text.replace("’", "'").lower()
    terms = []
    for word in _WORD_RE.findall(lowered):
        if len(word) < 3 or word in STOP_WORDS or word.isdigit():
            continue
        terms.append(stem(word))
    return list(dict.fromkeys(terms))


def path_tokens(relative_path: str) -> set[str]:
    """Stemmed tokens of a path, split on separators, punctuation and camelCase."""
    tokens: set[str] = set()
    for part in _PATH_SPLIT_RE.split(relative_path):
        if not part:
            continue
        tokens.add(stem(part.lower()))
        for piece in _CAMEL_SPLIT_RE.findall(part):
            tokens.add(stem(piece.lower()))
    return tokens


def normalize_dependency(name: str) -> str:
    return name.strip().lower().replace("_", "-")


def tree_fingerprint(paths: list[Path]) -> str:
    """Digest of path, size and mtime for each file; changes when the tree does."""
    hasher = hashlib.sha256()
    for path in paths:
        try:
            stat = path.stat()
        except OSError:
            continue
        hasher.update(f"{path}\0{stat.st_size}\0{stat.st_mtime_ns}\n".encode())
    return hasher.hexdigest()


@dataclass
class ManifestInfo:
    """What the analyzer learned from declared-dependency manifests."""

    dependencies: set[str] = field(default_factory=set)
    technical_stack: set[str] = field(default_factory=set)
    description: str = ""
    found: list[str] = field(default_factory=list)
    digest: str = ""


@dataclass(frozen=True)
class _RankedFile:
    relevance: int
    depth: int
    relative_path: str
    matched_terms: tuple[str, ...]
    absolute_path: Path

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (-self.relevance, self.depth, self.relative_path)


class ContextAnalyzer:
    """Builds a PromptContext for a project root and a raw request.

    Results are cached by (root, manifest digest, file tree fingerprint,
    salient terms, limits) and the least recently used entries are evicted
    past ``cache_size``. The cache is an optimization only; clear_cache()
    never changes results.
    """

    def __init__(
        self,
        max_files: int = MAX_CONTEXT_FILES,
        max_tokens: int = TOKENS_CONTEXT_DEFAULT,
        cache_size: int = CONTEXT_CACHE_SIZE,
    ):
        self.max_files = max_files
        self.max_tokens = max_tokens
        self.cache_size = cache_size
        self._cache: OrderedDict[tuple, PromptContext] = OrderedDict()
        self._lock = threading.Lock()

    def analyze(
        self,
        project_root: str | Path,
        raw_text: str,
        *,
        max_files: int | None = None,
        max_tokens: int | None = None,
    ) -> PromptContext:
        """Scan ``project_root`` and rank files against ``raw_text``.

        Args:
            project_root: Directory to scan
            raw_text: The raw request the files are ranked against
            max_files: Max entries in relevant_files (default: analyzer setting)
            max_tokens: Approximate token budget of the whole context

        Returns:
            PromptContext; empty when the root is missing or inaccessible
        """
        if max_files is None:
            max_files = self.max_files
        if max_tokens is None:
            max_tokens = self.max_tokens
        root = Path(project_root).expanduser()

        if not root.is_dir():
            logger.warning(f"Project root not accessible, using empty context: {root}")
            return PromptContext.empty()

        root = root.resolve()
        manifests = self.read_manifests(root)
        terms = extract_salient_terms(raw_text)
        candidates = list(self.iter_candidate_files(root))

        cache_key = (
            str(root),
            manifests.digest,
            tree_fingerprint(candidates),
            tuple(sorted(terms)),
            max_files,
            max_tokens,
        )
        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                self._cache.move_to_end(cache_key)
        if cached is not None:
            logger.debug(f"Returning cached context for {root}")
            return cached

        ranked = self._rank_files(root, candidates, terms)
        scanned = len(candidates)
        relevant_files = self._summarize(ranked, max_files)

        current_state = f"Scanned {scanned} files; {len(ranked)} matched the request"
        if manifests.found:
            current_state += f"; manifests: {', '.join(manifests.found)}"

        overview = manifests.description or self._read_readme_overview(root)
        context = self._fit_to_budget(
            PromptContext(
                project_overview=overview[:PROJECT_OVERVIEW_CHARS],
                relevant_files=relevant_files,
                dependencies=sorted(manifests.dependencies),
                technical_stack=sorted(manifests.technical_stack),
                current_state=current_state,
            ),
            max_tokens,
        )

        logger.info(
            f"Context analyzed for {root}: {scanned} files scanned, "
            f"{len(ranked)} relevant, {len(context.relevant_files)} kept, "
            f"{len(context.dependencies)} dependencies"
        )

        with self._lock:
            self._cache[cache_key] = context
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        return context

    def clear_cache(self) -> None:
        """Drop all cached contexts."""
        with self._lock:
            removed = len(self._cache)
            self._cache.clear()
        logger.info(f"Context cache cleared ({removed} entries removed)")

    # ------------------------------------------------------------------
    # File ranking
    # ------------------------------------------------------------------

    def iter_candidate_files(self, root: Path):
        """Yield source/doc files under root, skipping ignored directories."""

        def on_error(error: OSError) -> None:
            logger.warning(f"Skipping unreadable path {error.filename}: {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(
                d for d in dirnames if d not in IGNORED_DIRS and not d.endswith(".egg-info")
            )
            for name in sorted(filenames):
                if Path(name).suffix.lower() in SOURCE_EXTENSIONS:
                    yield Path(dirpath) / name

    def _rank_files(
        self, root: Path, candidates: list[Path], terms: list[str]
    ) -> list[_RankedFile]:
        term_set = set(terms)
        ranked: list[_RankedFile] = []
        if not term_set:
            return ranked

        for path in candidates:
            relative = path.relative_to(root).as_posix()
            tokens = path_tokens(relative)
            matched = tuple(term for term in terms if term in tokens)
            if not matched:
                continue
            relevance = len(matched)
            if stem(path.stem.lower()) in term_set:
                relevance += 1
            ranked.append(
                _RankedFile(
                    relevance=relevance,
                    depth=relative.count("/"),
                    relative_path=relative,
                    matched_terms=matched,
                    absolute_path=path,
                )
            )

        ranked.sort(key=lambda item: item.sort_key)
        return ranked

    def _summarize(self, ranked: list[_RankedFile], max_files: int) -> list[FileContext]:
        files: list[FileContext] = []
        for item in ranked:
            if len(files) >= max_files:
                break
            try:
                description = self._describe_file(item.absolute_path)
            except OSError as e:
                logger.warning(f"Skipping unreadable file {item.relative_path}: {e}")
                continue

            summary = f"Matches {', '.join(item.matched_terms)}"
            if description:
                summary = f"{summary}: {description}"
            files.append(
                FileContext(
                    path=item.relative_path,
                    summary=summary[:FILE_SUMMARY_CHARS],
                    relevance=item.relevance,
                )
            )
        return files

    def _describe_file(self, path: Path) -> str:
        """First comment, docstring or heading line of a file head."""
        with path.open("rb") as handle:
            head = handle.read(FILE_HEAD_BYTES).decode("utf-8", errors="replace")

        for line in head.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith(_CODE_LINE_PREFIXES):
                continue
            text = _COMMENT_PREFIX_RE.sub("", stripped).strip(" \"'*/")
            if text:
                return text
        return ""

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------

    def read_manifests(self, root: Path) -> ManifestInfo:
        """Collect dependencies, stack and description from known manifests."""
        info = ManifestInfo()
        hasher = hashlib.sha256()

        candidates = [root / name for name in ("pyproject.toml", "package.json", "Cargo.toml")]
        candidates.append(root / "go.mod")
        candidates.append(root / "tsconfig.json")
        candidates.extend(sorted(root.glob("requirements*.txt")))

        for path in candidates:
            if not path.is_file():
                continue
            try:
                raw = path.read_bytes()
                text = raw.decode("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable manifest {path.name}: {e}")
                continue

            hasher.update(path.name.encode("utf-8"))
            hasher.update(raw)

            try:
                self._parse_manifest(path.name, text, info)
            except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping malformed manifest {path.name}: {e}")
                continue

            info.found.append(path.name)
            language_key = "requirements.txt" if path.name.startswith("requirements") else path.name
            language = MANIFEST_LANGUAGES.get(language_key)
            if language:
                info.technical_stack.add(language)

        for dependency in info.dependencies:
            marker = FRAMEWORK_MARKERS.get(dependency)
            if marker:
                info.technical_stack.add(marker)

        info.digest = hasher.hexdigest()
        return info

    def _parse_manifest(self, name: str, text: str, info: ManifestInfo) -> None:
        if name == "pyproject.toml":
            data = tomllib.loads(text)
            project = data.get("project", {})
            requirements = list(project.get("dependencies", []))
            for extra in project.get("optional-dependencies", {}).values():
                requirements.extend(extra)
            info.dependencies.update(_requirement_names(requirements))
            poetry = data.get("tool", {}).get("poetry", {})
            info.dependencies.update(
                normalize_dependency(dep)
                for dep in poetry.get("dependencies", {})
                if dep.lower() != "python"
            )
            info.description = info.description or project.get("description") or poetry.get(
                "description", ""
            )
        elif name == "package.json":
            data = json.loads(text)
            for section in ("dependencies", "devDependencies"):
                info.dependencies.update(
                    normalize_dependency(dep) for dep in data.get(section, {}) or {}
                )
            info.description = info.description or data.get("description", "")
        elif name == "Cargo.toml":
            data = tomllib.loads(text)
            info.dependencies.update(
                normalize_dependency(dep) for dep in data.get("dependencies", {})
            )
            info.description = info.description or data.get("package", {}).get(
                "description", ""
            )
        elif name == "go.mod":
            for line in text.splitlines():
                match = _GO_REQUIRE_RE.match(line)
                if match:
                    info.dependencies.add(match.group(1).lower())
        elif name.startswith("requirements"):
            lines = [
                line
                for line in text.splitlines()
                if line.strip() and not line.lstrip().startswith(("#", "-"))
            ]
            info.dependencies.update(_requirement_names(lines))

    def _read_readme_overview(self, root: Path) -> str:
        for name in README_NAMES:
            path = root / name
            if not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Skipping unreadable README {name}: {e}")
                continue
            return _first_paragraph(text)
        return ""

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def _fit_to_budget(self, context: PromptContext, max_tokens: int) -> PromptContext:
        """Drop lowest-ranked files until the payload fits the token budget."""
        budget_chars = max_tokens * CHARS_PER_TOKEN
        overview = context.project_overview
        base_chars = (
            len(overview)
            + len(context.current_state)
            + sum(len(dep) + 2 for dep in context.dependencies)
            + sum(len(tech) + 2 for tech in context.technical_stack)
        )
        if base_chars > budget_chars:
            overflow = base_chars - budget_chars
            overview = overview[: max(0, len(overview) - overflow)]
            base_chars -= len(context.project_overview) - len(overview)

        files = list(context.relevant_files)
        total = base_chars + sum(_file_chars(f) for f in files)
        dropped = 0
        while files and total > budget_chars:
            total -= _file_chars(files.pop())
            dropped += 1

        if dropped:
            logger.info(f"Dropped {dropped} lowest-ranked files to fit {max_tokens} tokens")

        if dropped or overview != context.project_overview:
            return context.model_copy(
                update={"project_overview": overview, "relevant_files": files}
            )
        return context


def _file_chars(file: FileContext) -> int:
    return len(file.path) + len(file.summary) + 4


def _requirement_names(requirements: list[str]) -> set[str]:
    names = set()
    for requirement in requirements:
        match = _REQUIREMENT_NAME_RE.match(requirement)
        if match:
            names.add(normalize_dependency(match.group(1)))
    return names


def _first_paragraph(text: str) -> str:
    """First prose paragraph of a README, skipping headings and badges."""
    heading = ""
    paragraph: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            if paragraph:
                break
            continue
        if stripped.startswith("#"):
            if paragraph:
                break
            heading = heading or stripped.lstrip("#").strip()
            continue
        if stripped.startswith(("[!", "![", "<", "===", "---")):
            continue
        paragraph.append(stripped)
    return " ".join(paragraph) or heading
