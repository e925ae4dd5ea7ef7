"""
Local document storage.

Folders are directories under the configured output directory, addressed by
their path relative to it. Documents are .xlsx files indexed in SQLite so a
document keeps its id when it is moved or rewritten.
"""

import logging
import os
import shutil
import sqlite3
import tempfile
import uuid
from pathlib import Path

from openpyxl import Workbook, load_workbook

from core.config import TRASH_DIR_NAME, Settings
from models.events import Document, Folder

logger = logging.getLogger(__name__)

XLSX_SUFFIX = ".xlsx"


class FileListing:
    """
    Lazy, restartable listing of the documents in a folder.

    Each iteration scans the folder again, so a listing can be reused after
    documents are added or removed.
    """

    def __init__(self, store: "DocumentStore", folder: Folder):
        self.store = store
        self.folder = folder

    def __iter__(self):
        with os.scandir(self.folder.path) as entries:
            for entry in entries:
                if not entry.is_file() or not entry.name.endswith(XLSX_SUFFIX):
                    continue
                document = self.store.get_document_by_path(Path(entry.path))
                if document is not None:
                    yield document


class DocumentStore:
    """Spreadsheet documents stored under `settings.output_dir`."""

    def __init__(self, settings: Settings, conn: sqlite3.Connection):
        self.root = Path(settings.output_dir).resolve()
        self.conn = conn
        self.root.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Folders
    # -------------------------------------------------------------------------

    def root_folder(self) -> Folder:
        return Folder(id="", path=self.root)

    def resolve_folder(self, folder_id: str | None) -> Folder | None:
        """Folder for `folder_id`, or None if it is unset or does not exist."""
        if not folder_id:
            return None
        path = (self.root / folder_id).resolve()
        if not path.is_relative_to(self.root) or not path.is_dir():
            return None
        if TRASH_DIR_NAME in path.relative_to(self.root).parts:
            return None
        return Folder(id=path.relative_to(self.root).as_posix(), path=path)

    def get_target_folder(self, folder_id: str | None) -> Folder:
        """Configured folder, falling back to the storage root."""
        folder = self.resolve_folder(folder_id)
        if folder is None:
            if folder_id:
                logger.warning("Folder id %r not found, using default", folder_id)
            return self.root_folder()
        return folder

    def list_files(self, folder: Folder) -> FileListing:
        return FileListing(self, folder)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def _row_to_document(self, row) -> Document:
        return Document(id=row["id"], name=row["name"], path=Path(row["path"]))

    def _free_path(self, folder: Path, name: str) -> Path:
        path = folder / f"{name}{XLSX_SUFFIX}"
        counter = 2
        while path.exists():
            path = folder / f"{name} ({counter}){XLSX_SUFFIX}"
            counter += 1
        return path

    def create_document(self, name: str) -> Document:
        """Create an empty spreadsheet document in the root folder."""
        document = Document(id=uuid.uuid4().hex, name=name, path=self._free_path(self.root, name))
        Workbook().save(document.path)
        self.conn.execute(
            "INSERT INTO documents (id, name, path) VALUES (?, ?, ?)",
            (document.id, document.name, str(document.path)),
        )
        self.conn.commit()
        return document

    def move_document(self, document: Document, folder: Folder) -> Document:
        """Move a document into `folder`, keeping its id."""
        if document.path.parent == folder.path:
            return document
        target = self._free_path(folder.path, document.name)
        shutil.move(str(document.path), str(target))
        self.conn.execute("UPDATE documents SET path = ? WHERE id = ?", (str(target), document.id))
        self.conn.commit()
        return Document(id=document.id, name=document.name, path=target)

    def rename_document(self, document: Document, name: str) -> Document:
        """Rename a document in its folder, keeping its id."""
        target = self._free_path(document.path.parent, name)
        shutil.move(str(document.path), str(target))
        self.conn.execute(
            "UPDATE documents SET name = ?, path = ? WHERE id = ?",
            (name, str(target), document.id),
        )
        self.conn.commit()
        return Document(id=document.id, name=name, path=target)

    def get_document(self, document_id: str) -> Document | None:
        """Live (not trashed) document by id."""
        row = self.conn.execute(
            "SELECT id, name, path FROM documents WHERE id = ? AND trashed = 0",
            (document_id,),
        ).fetchone()
        return self._row_to_document(row) if row else None

    def get_document_by_path(self, path: Path) -> Document | None:
        row = self.conn.execute(
            "SELECT id, name, path FROM documents WHERE path = ? AND trashed = 0",
            (str(path.resolve()),),
        ).fetchone()
        return self._row_to_document(row) if row else None

    def file_exists(self, document_id: str | None) -> bool:
        """True if the document is indexed, not trashed, and still on disk."""
        if not document_id:
            return False
        document = self.get_document(document_id)
        return document is not None and document.path.is_file()

    def trash_document(self, document_id: str):
        """Move a document into the trash folder and mark it trashed."""
        document = self.get_document(document_id)
        if document is None:
            return
        if document.path.exists():
            trash = self.root / TRASH_DIR_NAME
            trash.mkdir(exist_ok=True)
            shutil.move(str(document.path), str(trash / f"{document.id}{XLSX_SUFFIX}"))
        self.conn.execute("UPDATE documents SET trashed = 1 WHERE id = ?", (document_id,))
        self.conn.commit()
        logger.info("Trashed document %s (%s)", document.name, document.id)

    # -------------------------------------------------------------------------
    # Workbook I/O
    # -------------------------------------------------------------------------

    def load_workbook(self, document: Document):
        return load_workbook(document.path)

    def save_workbook(self, document: Document, workbook: Workbook):
        """Write the workbook next to the document, then swap it in."""
        fd, tmp_name = tempfile.mkstemp(suffix=XLSX_SUFFIX, dir=document.path.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            workbook.save(tmp_path)
            os.replace(tmp_path, document.path)
        finally:
            tmp_path.unlink(missing_ok=True)
