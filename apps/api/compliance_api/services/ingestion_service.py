"""
Rules document ingestion pipeline

Upload -> text extraction -> HS code table + chunking -> embeddings ->
merge into the knowledge store. Only PDF uploads are processed; anything
else is accepted and skipped.
"""
import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from fastapi import UploadFile

from ..core.config import settings
from ..core.exceptions import IngestionError
from ..schemas.compliance import IngestionResponse
from ..schemas.knowledge import MergeStats
from .cache_service import get_cache_service
from .chunking import chunk_text
from .embedding_index import EmbeddingIndex, embedding_index
from .hs_extraction import extract_hs_codes
from .text_extraction import ExtractedText, extract_pdf_text, is_pdf


logger = logging.getLogger(__name__)


class IngestionService:
    """Turns uploaded rules documents into knowledge base entries"""
    
    NON_PDF_MESSAGE = "File uploaded successfully. Note: Processing is only applied to PDF files."
    SUCCESS_MESSAGE = "PDF processed and merged successfully"
    
    def __init__(
        self,
        embedding_index: EmbeddingIndex,
        upload_dir: Optional[Union[str, Path]] = None,
        chunk_size: Optional[int] = None,
        max_upload_size: Optional[int] = None,
        text_extractor: Callable[[bytes], ExtractedText] = extract_pdf_text,
        cache_getter: Callable[[], Awaitable] = get_cache_service
    ):
        self.embedding_index = embedding_index
        self.upload_dir = Path(upload_dir) if upload_dir else settings.upload_path
        self.chunk_size = chunk_size or settings.CHUNK_SIZE
        self.max_upload_size = max_upload_size or settings.UPLOAD_MAX_SIZE
        self.text_extractor = text_extractor
        self._cache_getter = cache_getter
    
    async def ingest_upload(self, file: Optional[UploadFile]) -> IngestionResponse:
        """
        Ingest an uploaded rules document
        
        Args:
            file: Uploaded file, None when the request carried no file
            
        Returns:
            IngestionResponse with merge statistics for PDFs
            
        Raises:
            ValueError: If no file, an empty file or an oversized file was uploaded
            IngestionError: If processing the PDF failed
        """
        if file is None or not file.filename:
            raise ValueError("No file uploaded")
        
        content = await file.read(self.max_upload_size + 1)
        if not content:
            raise ValueError("No file uploaded")
        if len(content) > self.max_upload_size:
            raise ValueError(f"File exceeds maximum size of {self.max_upload_size // (1024 * 1024)}MB")
        
        if not is_pdf(file.content_type):
            logger.info(f"Skipping non-PDF upload {file.filename} ({file.content_type})")
            return IngestionResponse(status=True, message=self.NON_PDF_MESSAGE)
        
        upload_path = self._save_upload(file.filename, content)
        logger.info(f"Processing uploaded PDF: {upload_path.name}")
        start_time = time.time()
        
        try:
            stats = await self.ingest_document(upload_path)
        except Exception as e:
            logger.error(f"Error processing uploaded PDF {file.filename}: {str(e)}")
            raise IngestionError(str(e)) from e
        finally:
            self._remove_upload(upload_path)
        
        await self._clear_explanation_cache()
        
        logger.info(f"Ingested {file.filename} in {(time.time() - start_time) * 1000:.0f}ms: "
                    f"{stats.new_hs_codes_added} HS codes, {stats.new_text_chunks_processed} chunks")
        return IngestionResponse(status=True, message=self.SUCCESS_MESSAGE, stats=stats)
    
    async def ingest_document(self, path: Path) -> MergeStats:
        """Run the extraction, chunking and embedding pipeline for a saved PDF"""
        extracted = await asyncio.to_thread(self._extract_text, path)
        logger.info(f"Extracted PDF text length: {extracted.length}")
        
        extraction = extract_hs_codes(extracted.text)
        chunks = chunk_text(extracted.text, self.chunk_size)
        logger.info(f"Found {len(extraction.hs_codes)} HS codes and {len(chunks)} text chunks")
        
        return await self.embedding_index.ingest(chunks, extraction.hs_codes, extraction.phrase_index)
    
    async def _clear_explanation_cache(self) -> None:
        """Drop cached explanations, which may describe rules the new document replaced"""
        try:
            cache_service = await self._cache_getter()
            cleared = await cache_service.clear_all_cache()
        except Exception as e:
            logger.warning(f"Failed to clear explanation cache after ingestion: {str(e)}")
            return
        if cleared:
            logger.info(f"Cleared {cleared} cached explanations after ingestion")
    
    def _extract_text(self, path: Path) -> ExtractedText:
        return self.text_extractor(path.read_bytes())
    
    def _save_upload(self, filename: str, content: bytes) -> Path:
        """Write the upload to the upload directory under a unique name"""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        safe_name = Path(filename).name or "upload.pdf"
        upload_path = self.upload_dir / f"{uuid.uuid4()}-{safe_name}"
        try:
            upload_path.write_bytes(content)
        except OSError as e:
            upload_path.unlink(missing_ok=True)
            raise IngestionError(f"Failed to store upload: {str(e)}") from e
        return upload_path
    
    def _remove_upload(self, upload_path: Path) -> None:
        try:
            upload_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove upload {upload_path}: {str(e)}")


# Create singleton instance
ingestion_service = IngestionService(embedding_index)
