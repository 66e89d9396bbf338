"""File-based persistence for schedule documents and exports."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from ..config import settings


class FileStorage:
    """Thin wrapper around the data root for storing JSON documents and CSV outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.documents_root = self.root / "documents"
        self.output_root = self.root / "outputs"
        self.documents_root.mkdir(parents=True, exist_ok=True)
        self.output_root.mkdir(parents=True, exist_ok=True)

    def _document_path(self, collection: str, document_id: str) -> Path:
        safe_id = document_id.replace("/", "_").replace("\\", "_")
        return self.documents_root / collection / f"{safe_id}.json"

    def make_run_directory(self, prefix: str = "schedule") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        path = self.output_root / f"{prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        os.replace(tmp_path, path)

    def read_json(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            handle.write(content)

    def write_bytes(self, path: Path, payload: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            handle.write(payload)

    def save_document(self, collection: str, document_id: str, data: dict) -> None:
        self.write_json(self._document_path(collection, document_id), data)

    def load_document(self, collection: str, document_id: str) -> dict | None:
        path = self._document_path(collection, document_id)
        if not path.is_file():
            return None
        return self.read_json(path)

    def delete_document(self, collection: str, document_id: str) -> bool:
        path = self._document_path(collection, document_id)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def iter_documents(self, collection: str) -> Iterator[dict]:
        folder = self.documents_root / collection
        if not folder.is_dir():
            return
        for path in sorted(folder.glob("*.json")):
            yield self.read_json(path)
