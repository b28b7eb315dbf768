"""Reindex service.

Pushes a list of seed documents through the public API: optionally deletes
each id first (clean mode), then indexes every document. Each document
succeeds or fails on its own; one failure never stops the batch.
"""

import asyncio
import json
from pathlib import Path

from pydantic import BaseModel

from services.reindex.SearchApiClient import SearchApiClient
from shared.helper.HelperConfig import HelperConfig


class ReindexSummary(BaseModel):
    """Outcome counters of one reindex run."""

    indexed: int = 0
    failed: int = 0
    deleted: int = 0
    delete_skipped: int = 0
    delete_failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0


def load_seed_documents(path: Path) -> list[dict]:
    """Read the seed file: a JSON array of {"id", "text", "metadata"?} objects.

    Raises:
        ValueError: If the file is missing, not valid JSON, or not an array of objects.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ValueError(f"Seed data file not found: {path}")
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse {path}: JSON syntax error: {exc}")

    if not isinstance(data, list) or not all(isinstance(doc, dict) for doc in data):
        raise ValueError("Seed data must be an array of documents")
    return data


class ReindexService:
    """Runs a reindex against one SearchApiClient."""

    def __init__(self, helper_config: HelperConfig, api_client: SearchApiClient, concurrency: int = 1) -> None:
        self.logging = helper_config.get_logger()
        self._api = api_client
        self._concurrency = max(1, concurrency)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_reindex(self, documents: list[dict], clean: bool = False) -> ReindexSummary:
        """Index all documents, deleting them first in clean mode.

        Args:
            documents (list[dict]): Seed documents.
            clean (bool): Delete every seed id before indexing.

        Returns:
            ReindexSummary: Per-document tallies. Delete failures do not count as failures.
        """
        summary = ReindexSummary()
        sem = asyncio.Semaphore(self._concurrency)

        if clean:
            self.logging.info("Deleting %d existing document(s)...", len(documents))
            outcomes = await asyncio.gather(*[self._delete_document(doc, sem) for doc in documents])
            summary.deleted = outcomes.count("deleted")
            summary.delete_skipped = outcomes.count("skipped")
            summary.delete_failed = outcomes.count("failed")

        self.logging.info("Indexing %d document(s)...", len(documents))
        results = await asyncio.gather(*[self._index_document(doc, sem) for doc in documents])
        summary.indexed = sum(1 for ok in results if ok)
        summary.failed = sum(1 for ok in results if not ok)

        self.logging.info(
            "Done: %d indexed, %d failed", summary.indexed, summary.failed,
            color="green" if summary.ok else "red",
        )
        return summary

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _delete_document(self, doc: dict, sem: asyncio.Semaphore) -> str:
        doc_id = str(doc.get("id", ""))
        async with sem:
            try:
                res = await self._api.do_delete_document(doc_id)
            except Exception as exc:
                self.logging.error("Network error deleting %s: %s", doc_id, exc)
                return "failed"

        if res.is_success:
            self.logging.info("  ✓ Deleted: %s", doc_id)
            return "deleted"
        if res.status_code == 404:
            self.logging.info("  - Not found (skip): %s", doc_id)
            return "skipped"
        self.logging.error("  ✗ Failed to delete %s: %d %s", doc_id, res.status_code, res.text[:200])
        return "failed"

    async def _index_document(self, doc: dict, sem: asyncio.Semaphore) -> bool:
        doc_id = doc.get("id")
        async with sem:
            try:
                res = await self._api.do_index_document(doc)
            except Exception as exc:
                self.logging.error("  ✗ Network error indexing %s: %s", doc_id, exc)
                return False

        if res.is_success:
            self.logging.info("  ✓ Indexed: %s", doc_id)
            return True
        self.logging.error("  ✗ Failed to index %s: %d %s", doc_id, res.status_code, res.text[:200])
        return False
