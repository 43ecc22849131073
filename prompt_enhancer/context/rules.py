"""Project rules read from the ``.ruler`` directory of the target project.

Rule files (``*.md`` and ``*.json``) hold coding standards the enhanced
prompt must carry. They are loaded in file-name order, trimmed, and rendered
as one text block for the model request. A missing directory means no rules.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from prompt_enhancer.config import RULES_CACHE_TTL, RULES_DIR

logger = logging.getLogger(__name__)

RULE_EXTENSIONS = (".md", ".json")

RULES_HEADING = "### PROJECT RULES AND STANDARDS (MUST BE FOLLOWED)"


@dataclass(frozen=True)
class ProjectRule:
    """One rule file, named by its stem."""

    source: str
    name: str
    content: str


def format_rules(rules: list[ProjectRule]) -> str:
    """Render rules as the text block added to the model request."""
    if not rules:
        return ""

    lines = [RULES_HEADING, ""]
    for rule in rules:
        lines.extend(["---", f"#### Source: {rule.source}", "---", rule.content, ""])
    return "\n".join(lines)


class RuleLoader:
    """Load project rules with a short-lived per-project cache.

    Args:
        rules_dir: Directory name under the project root
        ttl: Seconds a loaded rule set is reused before the directory is read again
        clock: Monotonic time source
    """

    def __init__(
        self,
        rules_dir: str = RULES_DIR,
        ttl: float = RULES_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rules_dir = rules_dir
        self.ttl = ttl
        self.clock = clock
        self._cache: dict[Path, tuple[float, list[ProjectRule]]] = {}
        self._lock = threading.Lock()

    def load(self, project_root: str | Path, force_reload: bool = False) -> list[ProjectRule]:
        """Rules of ``project_root``; empty when the directory is missing."""
        root = Path(project_root).expanduser().resolve()
        now = self.clock()

        if not force_reload:
            with self._lock:
                cached = self._cache.get(root)
            if cached is not None and now - cached[0] < self.ttl:
                return cached[1]

        rules = self._read_rules(root)
        with self._lock:
            self._cache[root] = (now, rules)
        return rules

    def _read_rules(self, root: Path) -> list[ProjectRule]:
        rules_path = root / self.rules_dir
        if not rules_path.is_dir():
            logger.debug(f"No {self.rules_dir} directory at {root}")
            return []

        try:
            files = sorted(
                path
                for path in rules_path.iterdir()
                if path.is_file() and path.suffix in RULE_EXTENSIONS
            )
        except OSError as e:
            logger.warning(f"Could not list rules in {rules_path}: {e}")
            return []

        rules: list[ProjectRule] = []
        for path in files:
            try:
                content = path.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable rule file {path.name}: {e}")
                continue
            rules.append(
                ProjectRule(source=f"{self.rules_dir}/{path.name}", name=path.stem, content=content)
            )

        logger.info(f"Loaded {len(rules)} project rules from {rules_path}")
        return rules

    def rules_text(self, project_root: str | Path) -> str:
        return format_rules(self.load(project_root))

    def get_rule(self, project_root: str | Path, name: str) -> ProjectRule | None:
        return next((rule for rule in self.load(project_root) if rule.name == name), None)

    def has_rules(self, project_root: str | Path) -> bool:
        return bool(self.load(project_root))

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
