"""Persistent prompt store.

Uses LanceDB for storing structured prompts keyed by id, with the
filterable fields projected into columns and the full record kept as a JSON
payload.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import lancedb
import pyarrow as pa
from pydantic import BaseModel

from prompt_enhancer.errors import NotFoundError, StaleValidationError
from prompt_enhancer.models import (
    PromptMetadata,
    SearchQuery,
    StructuredPrompt,
    ValidationResult,
    as_utc,
    scoring_fingerprint,
    utc_now,
)
from prompt_enhancer.storage.schema import PROMPTS_SCHEMA, TABLE_NAME
from prompt_enhancer.validation import PromptValidator

logger = logging.getLogger(__name__)

# Upper bound for full-table reads
_SCAN_LIMIT = 100_000


def _quote(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def searchable_text(prompt: StructuredPrompt) -> str:
    """Lower-cased prose of a record, matched by free-text search."""
    parts = [
        prompt.instruction,
        *prompt.success_criteria,
        *prompt.constraints,
        *prompt.order_of_steps,
        *prompt.clarifying_questions,
        *prompt.metadata.tags,
    ]
    for example in prompt.examples:
        parts.extend([example.input, example.output, example.explanation or ""])
    return "\n".join(parts).lower()


class PromptStore:
    """LanceDB-backed store of StructuredPrompt records.

    Every write is a single ``merge_insert`` keyed by id, so a record is
    either fully written or not at all. Writes through one instance are
    serialized with a lock, and update() holds it across the whole
    read-merge-validate-write cycle so concurrent updates of one id never
    drop each other's changes.
    """

    def __init__(self, db_path: str | Path, validator: PromptValidator | None = None):
        """Initialize the prompt store.

        Args:
            db_path: Path to the LanceDB database directory
            validator: Validator used to check scores on save() and re-score on update()
        """
        self.db_path = Path(db_path)
        self.db_path.mkdir(parents=True, exist_ok=True)
        self.validator = validator or PromptValidator()
        self._lock = threading.RLock()

        self.db = lancedb.connect(str(self.db_path))
        if TABLE_NAME in self.db.table_names():
            self.table = self.db.open_table(TABLE_NAME)
            logger.info(f"Opened existing table {TABLE_NAME}")
        else:
            self.table = self.db.create_table(TABLE_NAME, schema=PROMPTS_SCHEMA)
            logger.info(f"Created table {TABLE_NAME}")

        logger.info(f"PromptStore initialized at {self.db_path}")

    # ==========================================================================
    # Record conversion
    # ==========================================================================

    def _prompt_to_record(self, prompt: StructuredPrompt) -> dict[str, Any]:
        metadata = prompt.metadata
        return {
            "id": prompt.id,
            "workflow": prompt.workflow.value,
            "score": prompt.validation.score,
            "is_valid": prompt.validation.is_valid,
            "tags": list(metadata.tags),
            "author": metadata.author or "",
            "generated_by": metadata.generated_by.value if metadata.generated_by else "",
            "created_at": metadata.created_at.isoformat(),
            "updated_at": metadata.updated_at.isoformat(),
            "payload": prompt.model_dump_json(),
        }

    def _record_to_prompt(self, record: dict) -> StructuredPrompt:
        return StructuredPrompt.model_validate_json(record["payload"])

    # ==========================================================================
    # Write Operations
    # ==========================================================================

    def save(self, prompt: StructuredPrompt) -> str:
        """Insert or replace a prompt.

        Returns:
            The id of the saved prompt

        Raises:
            StaleValidationError: If the validation was not computed for the
                record's current fields, or its score does not match them
        """
        if not prompt.validation_is_current():
            detail = (
                "never validated" if prompt.validation.fingerprint is None else "fields changed"
            )
            raise StaleValidationError(prompt.id, detail)

        rescored = self.validator.validate(prompt)
        if (rescored.score, rescored.is_valid, rescored.issues) != (
            prompt.validation.score,
            prompt.validation.is_valid,
            prompt.validation.issues,
        ):
            raise StaleValidationError(
                prompt.id,
                f"score {prompt.validation.score} does not match fields (expected {rescored.score})",
            )

        self._write(prompt)
        logger.info(f"Saved prompt: {prompt.id}")
        return prompt.id

    def _write(self, prompt: StructuredPrompt) -> None:
        data = pa.Table.from_pylist([self._prompt_to_record(prompt)], schema=PROMPTS_SCHEMA)
        with self._lock:
            (
                self.table.merge_insert("id")
                .when_matched_update_all()
                .when_not_matched_insert_all()
                .execute(data)
            )

    def update(self, prompt_id: str, changes: dict[str, Any]) -> StructuredPrompt:
        """Apply a partial update, re-validate and commit.

        ``metadata`` changes are merged into the stored metadata; other fields
        are replaced. The stored context is kept as is unless supplied.

        Raises:
            NotFoundError: If no prompt has this id
            StaleValidationError: If a supplied validation does not match the
                updated fields
            ValueError: If the update changes the id or names unknown fields
        """
        with self._lock:
            current = self.retrieve(prompt_id)
            changes = dict(changes)

            new_id = changes.pop("id", prompt_id)
            if new_id != prompt_id:
                raise ValueError(f"Prompt id cannot change ({prompt_id} -> {new_id})")

            supplied_validation = changes.pop("validation", None)
            metadata_changes = changes.pop("metadata", None)
            unknown = set(changes) - set(StructuredPrompt.model_fields)
            if unknown:
                raise ValueError(f"Unknown prompt fields: {', '.join(sorted(unknown))}")

            metadata = current.metadata.model_dump()
            if metadata_changes is not None:
                if isinstance(metadata_changes, BaseModel):
                    metadata_changes = metadata_changes.model_dump(exclude_unset=True)
                metadata.update(metadata_changes)
            metadata["created_at"] = current.metadata.created_at
            metadata["updated_at"] = max(utc_now(), current.metadata.updated_at)

            data = current.model_dump()
            data.update(changes)
            data["metadata"] = PromptMetadata.model_validate(metadata)
            updated = StructuredPrompt.model_validate(data)

            if supplied_validation is not None:
                validation = ValidationResult.model_validate(supplied_validation)
                if validation.fingerprint != scoring_fingerprint(updated):
                    raise StaleValidationError(
                        prompt_id, "supplied validation does not match update"
                    )

            updated = updated.model_copy(update={"validation": self.validator.validate(updated)})
            self._write(updated)
        logger.info(f"Updated prompt: {prompt_id} (score {updated.validation.score})")
        return updated

    def delete(self, prompt_id: str) -> bool:
        """Delete a prompt by id.

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            if not self.exists(prompt_id):
                return False
            self.table.delete(f"id = {_quote(prompt_id)}")
        logger.info(f"Deleted prompt: {prompt_id}")
        return True

    # ==========================================================================
    # Read Operations
    # ==========================================================================

    def _find_records(self, where: str | None, limit: int = _SCAN_LIMIT) -> list[dict]:
        query = self.table.search()
        if where:
            query = query.where(where)
        return query.limit(limit).to_list()

    def retrieve(self, prompt_id: str) -> StructuredPrompt:
        """Get a prompt by id.

        Raises:
            NotFoundError: If no prompt has this id
        """
        records = self._find_records(f"id = {_quote(prompt_id)}", limit=1)
        if not records:
            raise NotFoundError(prompt_id)
        return self._record_to_prompt(records[0])

    def exists(self, prompt_id: str) -> bool:
        return bool(self._find_records(f"id = {_quote(prompt_id)}", limit=1))

    def search(self, query: SearchQuery | None = None) -> list[StructuredPrompt]:
        """Prompts matching every provided filter.

        ``text`` matches case-insensitively anywhere in the record's prose
        (instruction, criteria, constraints, steps, questions, examples, tags).
        Ordered by descending score, ties broken by most recent update.
        """
        query = query or SearchQuery()

        filters = []
        if query.workflow is not None:
            filters.append(f"workflow = {_quote(query.workflow.value)}")
        if query.min_score is not None:
            filters.append(f"score >= {int(query.min_score)}")
        if query.author is not None:
            filters.append(f"author = {_quote(query.author)}")
        where_clause = " AND ".join(filters) if filters else None

        required_tags = set(query.tags)
        needle = query.text.strip().lower() if query.text else ""
        matches = []
        for record in self._find_records(where_clause):
            if required_tags and not required_tags.issubset(record.get("tags") or []):
                continue
            created_at = as_utc(datetime.fromisoformat(record["created_at"]))
            if query.created_after is not None and created_at < query.created_after:
                continue
            if query.created_before is not None and created_at > query.created_before:
                continue
            prompt = self._record_to_prompt(record)
            if needle and needle not in searchable_text(prompt):
                continue
            matches.append((record, prompt))

        matches.sort(
            key=lambda match: (
                match[0]["score"],
                as_utc(datetime.fromisoformat(match[0]["updated_at"])),
            ),
            reverse=True,
        )
        logger.debug(f"Search matched {len(matches)} prompts")
        return [prompt for _, prompt in matches]

    def count(self) -> int:
        return self.table.count_rows()
