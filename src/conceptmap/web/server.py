import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import sqlite3


logger = logging.getLogger(__name__)


def create_app(*, default_db_path: str | None = None, processor=None, upload_dir: str | None = None):
    # Lazy import so core CLI works without web deps.
    from fastapi import BackgroundTasks, FastAPI, File, UploadFile
    from fastapi.responses import JSONResponse

    from .. import documents
    from ..chat.llm import LLMError
    from ..config import Settings
    from ..db import open_db
    from ..graph.query import get_map
    from ..pipeline import DocumentProcessor, make_llm

    settings = Settings()
    db_path = default_db_path or settings.db_path
    upload_root = Path(upload_dir or settings.upload_dir).resolve()

    owns_processor = processor is None
    if processor is None:
        processor = DocumentProcessor(db_path=db_path, settings=settings)

    @asynccontextmanager
    async def lifespan(app_):
        # Create tables before the first request.
        conn = open_db(db_path)
        conn.close()
        yield
        if owns_processor:
            processor.shutdown(wait=False)

    app = FastAPI(title="ConceptMap", version="0.1.0", lifespan=lifespan)

    def _open_db() -> sqlite3.Connection:
        return open_db(db_path)

    @app.get("/api/health")
    def health():
        out: dict[str, Any] = {"status": "OK", "timestamp": int(time.time()), "database": "Connected"}
        try:
            conn = _open_db()
            try:
                conn.execute("SELECT 1").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            return JSONResponse(
                {"status": "ERROR", "timestamp": int(time.time()), "database": "Disconnected", "error": str(e)},
                status_code=500,
            )

        try:
            out["models"] = make_llm(settings).list_models()
            out["ollama_ok"] = True
        except LLMError as e:
            out["ollama_ok"] = False
            out["ollama_error"] = str(e)
        return out

    @app.post("/api/upload-file/{user_id}")
    async def upload_file(user_id: str, background_tasks: BackgroundTasks, file: UploadFile | None = File(default=None)):
        if file is None or not file.filename:
            return JSONResponse({"message": "No file uploaded"}, status_code=400)

        name = Path(file.filename).name
        dest_dir = upload_root / uuid.uuid4().hex
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / name
        dest.write_bytes(await file.read())

        conn = _open_db()
        try:
            doc = documents.create_document(
                conn,
                user_id=user_id,
                file_name=name,
                file_type=file.content_type or "application/octet-stream",
                path=str(dest),
            )
        finally:
            conn.close()

        # The response never waits for (or reports on) the batch.
        background_tasks.add_task(processor.submit, str(dest), user_id, doc.doc_id)
        logger.info("Queued document %s (%s) for user %s", doc.doc_id, name, user_id)

        return {"message": "File uploaded successfully", "fileInfo": doc.to_dict()}

    @app.get("/api/get-map/{user_id}")
    def map_(user_id: str):
        conn = _open_db()
        try:
            return get_map(conn=conn, user_id=user_id)
        finally:
            conn.close()

    @app.get("/api/get-files/{user_id}")
    def files(user_id: str):
        conn = _open_db()
        try:
            docs = documents.list_documents(conn, user_id)
        finally:
            conn.close()
        return {"message": "Files fetched successfully", "files": [d.to_dict() for d in docs]}

    @app.delete("/api/delete-file/{doc_id}")
    def delete_file(doc_id: int):
        conn = _open_db()
        try:
            deleted = documents.delete_document(conn, doc_id)
        finally:
            conn.close()
        if not deleted:
            return JSONResponse({"message": "File not found"}, status_code=404)
        return {"message": "File deleted successfully"}

    return app
