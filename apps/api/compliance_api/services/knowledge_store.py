"""
File-backed store for the compliance knowledge base

The store owns both representations of the knowledge base: the in-memory
state used to answer queries and the two JSON snapshot files on disk. All
writes go through merge(), which rewrites both files and only then swaps the
in-memory state. A failed write restores the previous files and never leaves
memory and disk out of step.
"""
import asyncio
import json
import logging
import os
import shutil
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from pydantic import ValidationError

from ..core.config import settings
from ..core.exceptions import KnowledgeStoreError
from ..schemas.knowledge import Chunk, HSCodeEntry, MergeStats


logger = logging.getLogger(__name__)


class KnowledgeStore:
    """In-memory knowledge base mirrored to a snapshot file and a phrase index file"""
    
    def __init__(self, snapshot_path: Union[str, Path], phrase_index_path: Union[str, Path]):
        self.snapshot_path = Path(snapshot_path)
        self.phrase_index_path = Path(phrase_index_path)
        
        self._chunks: Tuple[Chunk, ...] = ()
        self._hs_codes: Dict[str, HSCodeEntry] = {}
        self._phrase_index: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._loaded = False
    
    @property
    def loaded(self) -> bool:
        return self._loaded
    
    @property
    def chunks(self) -> Tuple[Chunk, ...]:
        return self._chunks
    
    @property
    def hs_codes(self) -> Mapping[str, HSCodeEntry]:
        return MappingProxyType(self._hs_codes)
    
    @property
    def phrase_index(self) -> Mapping[str, str]:
        return MappingProxyType(self._phrase_index)
    
    def stats(self) -> Dict[str, int]:
        """Current size of the knowledge base"""
        return {
            "total_hs_codes": len(self._hs_codes),
            "total_item_mappings": len(self._phrase_index),
            "total_chunks": len(self._chunks),
        }
    
    def load(self) -> None:
        """
        Load both snapshot files into memory
        
        Missing files leave the corresponding part of the knowledge base empty.
        
        Raises:
            KnowledgeStoreError: If a file exists but cannot be parsed
        """
        snapshot = self._read_json(self.snapshot_path)
        phrase_index = self._read_json(self.phrase_index_path)
        
        try:
            chunks = tuple(Chunk(**chunk) for chunk in snapshot.get("chunks", []))
            hs_codes = {
                code: HSCodeEntry(code=code, **entry)
                for code, entry in snapshot.get("hsCodesData", {}).items()
            }
        except (TypeError, AttributeError, ValidationError) as e:
            raise KnowledgeStoreError(f"Invalid knowledge base snapshot {self.snapshot_path}: {str(e)}") from e
        
        if not all(isinstance(code, str) for code in phrase_index.values()):
            raise KnowledgeStoreError(f"Invalid phrase index {self.phrase_index_path}")
        
        self._chunks = chunks
        self._hs_codes = hs_codes
        self._phrase_index = dict(phrase_index)
        self._loaded = True
        
        logger.info(f"Knowledge base loaded: {len(self._hs_codes)} HS codes, "
                    f"{len(self._phrase_index)} item mappings, {len(self._chunks)} chunks")
    
    async def merge(
        self,
        hs_codes: Mapping[str, HSCodeEntry],
        phrase_index: Mapping[str, str],
        chunks: Sequence[Chunk]
    ) -> MergeStats:
        """
        Merge newly ingested data and persist the combined knowledge base
        
        Chunks are appended after the existing ones and their ids are offset
        by the existing chunk count. Codes and phrases overwrite existing keys.
        
        Args:
            hs_codes: New code table entries
            phrase_index: New phrase -> code entries
            chunks: Embedded chunks whose ids are their index in the document
            
        Returns:
            MergeStats for the ingestion
            
        Raises:
            KnowledgeStoreError: If the snapshot files cannot be written
        """
        async with self._lock:
            offset = len(self._chunks)
            new_chunks = tuple(chunk.model_copy(update={"id": chunk.id + offset}) for chunk in chunks)
            
            merged_chunks = self._chunks + new_chunks
            merged_hs_codes = {**self._hs_codes, **hs_codes}
            merged_phrase_index = {**self._phrase_index, **phrase_index}
            
            await asyncio.to_thread(self._write_files, merged_chunks, merged_hs_codes, merged_phrase_index)
            
            self._chunks = merged_chunks
            self._hs_codes = merged_hs_codes
            self._phrase_index = merged_phrase_index
            self._loaded = True
            
            logger.info(f"Knowledge base merged: +{len(hs_codes)} HS codes, +{len(phrase_index)} item mappings, "
                        f"+{len(new_chunks)} chunks (total chunks: {len(merged_chunks)})")
            
            return MergeStats(
                new_hs_codes_added=len(hs_codes),
                new_item_mappings_added=len(phrase_index),
                new_text_chunks_processed=len(new_chunks),
                total_hs_codes=len(merged_hs_codes),
                total_chunks=len(merged_chunks),
            )
    
    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.warning(f"Knowledge base file {path} not found, starting empty")
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise KnowledgeStoreError(f"Failed to read {path}: {str(e)}") from e
        if not isinstance(data, dict):
            raise KnowledgeStoreError(f"Failed to read {path}: expected a JSON object")
        return data
    
    def _write_files(
        self,
        chunks: Sequence[Chunk],
        hs_codes: Mapping[str, HSCodeEntry],
        phrase_index: Mapping[str, str]
    ) -> None:
        """
        Stage both files next to their targets, then rename them into place

        The current files are copied aside first. If any rename fails, the
        files already replaced are restored from those copies, so a failed
        write leaves the previous files on disk.
        """
        snapshot = {
            "chunks": [chunk.model_dump() for chunk in chunks],
            "hsCodesData": {
                code: entry.model_dump(exclude={"code"})
                for code, entry in hs_codes.items()
            },
        }
        staged: List[Tuple[Path, Path]] = []
        backups: Dict[Path, Path] = {}
        replaced: List[Path] = []
        unrestored: List[Path] = []
        try:
            for path, data in ((self.snapshot_path, snapshot), (self.phrase_index_path, dict(phrase_index))):
                path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = path.with_name(f".{path.name}.tmp")
                staged.append((tmp_path, path))
                with tmp_path.open("w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
            
            for _, path in staged:
                if path.exists():
                    backup_path = path.with_name(f".{path.name}.bak")
                    shutil.copy2(path, backup_path)
                    backups[path] = backup_path
            
            for tmp_path, path in staged:
                os.replace(tmp_path, path)
                replaced.append(path)
        except (OSError, TypeError, ValueError) as e:
            unrestored = self._restore_files(replaced, backups)
            for tmp_path, _ in staged:
                tmp_path.unlink(missing_ok=True)
            raise KnowledgeStoreError(f"Failed to write knowledge base: {str(e)}") from e
        finally:
            for path, backup_path in backups.items():
                if path not in unrestored:
                    backup_path.unlink(missing_ok=True)
    
    def _restore_files(self, replaced: Sequence[Path], backups: Mapping[Path, Path]) -> List[Path]:
        """Put back the previous version of each file already renamed into place, returning failures"""
        unrestored: List[Path] = []
        for path in replaced:
            backup_path = backups.get(path)
            try:
                if backup_path is None:
                    path.unlink(missing_ok=True)
                else:
                    shutil.copy2(backup_path, path)
            except OSError as e:
                logger.error(f"Failed to restore {path} after a failed write: {str(e)}")
                unrestored.append(path)
        return unrestored


# Create singleton instance
knowledge_store = KnowledgeStore(settings.embeddings_path, settings.item_to_hs_path)
