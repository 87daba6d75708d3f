from __future__ import annotations

import contextlib
import logging
import threading
import weakref
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import ContextManager

from . import documents
from .chat.llm import OllamaChatClient
from .config import Settings
from .db import open_db
from .graph.extract import ChatClient, extract_concepts
from .graph.merge import MergeResult, merge_candidates
from .ingest.text import extract_text


logger = logging.getLogger(__name__)


def make_llm(settings: Settings, *, model: str | None = None, base_url: str | None = None, timeout_s: float | None = None) -> OllamaChatClient:
    return OllamaChatClient(
        base_url=(base_url or settings.ollama_base_url),
        model=(model or settings.ollama_model),
        timeout_s=float(timeout_s if timeout_s is not None else settings.extract_timeout_s),
        options={"temperature": float(settings.ollama_temperature)},
        response_format="json",
    )


def process_document(
    file_path: str | Path,
    user_id: str,
    document_id: int,
    *,
    db_path: str,
    llm: ChatClient,
    settings: Settings | None = None,
    lock: ContextManager | None = None,
    atomic: bool = False,
) -> MergeResult:
    """Run one batch: extract text, extract concepts, merge into the user's graph.

    The document record moves pending -> processing -> done/failed. Failures
    are recorded on the record and re-raised. ``lock`` is held only around the
    snapshot + merge step; extraction runs outside it.
    """
    settings = settings or Settings()
    conn = open_db(db_path)
    try:
        documents.set_status(conn, document_id, documents.STATUS_PROCESSING)
        logger.info("Processing document %s for user %s: %s", document_id, user_id, file_path)
        try:
            text = extract_text(file_path)
            candidates = extract_concepts(text, llm=llm, max_chars=settings.max_text_chars)
            with lock or contextlib.nullcontext():
                result = merge_candidates(
                    conn=conn,
                    user_id=user_id,
                    candidates=candidates,
                    document_id=document_id,
                    max_distance=settings.match_distance,
                    atomic=atomic,
                )
        except Exception as e:
            documents.set_status(conn, document_id, documents.STATUS_FAILED, error=str(e))
            raise

        stats = result.stats()
        documents.set_status(conn, document_id, documents.STATUS_DONE, stats=stats)
        logger.info("Processed document %s for user %s: %s", document_id, user_id, stats)
        return result
    finally:
        conn.close()


class DocumentProcessor:
    """Runs batches in the background, one at a time per user.

    Batches for different users run in parallel on the pool. Two batches for
    the same user never merge at the same time, so the second one always sees
    the nodes the first one created.
    """

    def __init__(self, *, db_path: str, settings: Settings | None = None, llm: ChatClient | None = None, workers: int | None = None):
        self.settings = settings or Settings()
        self.db_path = db_path
        self.llm = llm if llm is not None else make_llm(self.settings)
        self._executor = ThreadPoolExecutor(
            max_workers=int(workers or self.settings.workers),
            thread_name_prefix="conceptmap-batch",
        )
        # An entry lives only while some batch for that user holds its lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(str(user_id))
            if lock is None:
                lock = self._locks[str(user_id)] = threading.Lock()
            return lock

    def submit(self, file_path: str | Path, user_id: str, document_id: int) -> Future:
        """Queue a batch; the returned future resolves to a MergeResult or None on failure."""
        return self._executor.submit(self._run, file_path, str(user_id), int(document_id))

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, file_path: str | Path, user_id: str, document_id: int) -> MergeResult | None:
        lock = self.lock_for(user_id)
        try:
            return process_document(
                file_path,
                user_id,
                document_id,
                db_path=self.db_path,
                llm=self.llm,
                settings=self.settings,
                lock=lock,
            )
        except Exception:
            # Nobody is waiting on this batch; the failure lives in the log and on the record.
            logger.exception("Failed to process document %s for user %s", document_id, user_id)
            return None
