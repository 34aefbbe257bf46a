"""
Embedding index over rules document chunks

Generates embeddings for new chunks with bounded parallelism, merges them
into the knowledge store, and answers semantic "relevant content" queries.
"""
import asyncio
import logging
from typing import List, Mapping, Optional, Sequence

from ..core.exceptions import OracleError
from ..core.config import settings
from ..core.oracles import EmbeddingOracle, embedding_oracle
from ..schemas.knowledge import Chunk, HSCodeEntry, MergeStats
from .knowledge_store import KnowledgeStore, knowledge_store
from .similarity import DEFAULT_TOP_K, top_k_content


logger = logging.getLogger(__name__)


class EmbeddingIndex:
    """Chunk embeddings stored in a KnowledgeStore"""
    
    DEFAULT_MAX_CONCURRENCY = 8
    PROGRESS_LOG_INTERVAL = 5
    
    def __init__(
        self,
        store: KnowledgeStore,
        embedding_oracle: EmbeddingOracle,
        max_concurrency: Optional[int] = None
    ):
        self.store = store
        self.embedding_oracle = embedding_oracle
        self.max_concurrency = max_concurrency or self.DEFAULT_MAX_CONCURRENCY
    
    async def embed_chunks(self, texts: Sequence[str]) -> List[Chunk]:
        """
        Embed chunk texts concurrently
        
        A chunk whose embedding fails is logged and dropped; the others are
        unaffected. Returned chunks keep document order and carry their
        document index as id.
        
        Args:
            texts: Chunk texts in document order
            
        Returns:
            Successfully embedded chunks
        """
        total = len(texts)
        if total == 0:
            return []
        
        logger.info(f"Generating embeddings for {total} chunks with {self.max_concurrency} concurrent workers")
        
        semaphore = asyncio.Semaphore(self.max_concurrency)
        completed = 0
        
        async def embed_with_semaphore(index: int, text: str) -> Chunk:
            nonlocal completed
            async with semaphore:
                embedding = await self.embedding_oracle.embed(text)
            completed += 1
            if completed % self.PROGRESS_LOG_INTERVAL == 0:
                logger.info(f"Processed {completed} out of {total} chunks")
            return Chunk(id=index, content=text, embedding=embedding)
        
        results = await asyncio.gather(
            *[embed_with_semaphore(index, text) for index, text in enumerate(texts)],
            return_exceptions=True
        )
        
        chunks: List[Chunk] = []
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.error(f"Error generating embedding for chunk {index}: {str(result)}")
                continue
            chunks.append(result)
        
        if len(chunks) < total:
            logger.warning(f"Dropped {total - len(chunks)} of {total} chunks after embedding failures")
        return chunks
    
    async def ingest(
        self,
        texts: Sequence[str],
        hs_codes: Mapping[str, HSCodeEntry],
        phrase_index: Mapping[str, str]
    ) -> MergeStats:
        """Embed new chunks and merge them, with the new code tables, into the store"""
        chunks = await self.embed_chunks(texts)
        return await self.store.merge(hs_codes, phrase_index, chunks)
    
    async def find_relevant_content(self, query: str, k: int = DEFAULT_TOP_K) -> str:
        """
        Find the stored chunks most similar to a query
        
        Returns:
            Top k chunk contents joined by blank lines, empty when nothing is stored
            
        Raises:
            OracleError: If the query cannot be embedded
        """
        chunks = self.store.chunks
        if not chunks:
            return ""
        
        try:
            query_vector = await self.embedding_oracle.embed(query)
        except OracleError:
            logger.error(f"Error embedding relevant content query: {query[:50]}...")
            raise
        except Exception as e:
            logger.error(f"Error embedding relevant content query: {str(e)}")
            raise OracleError(f"Failed to embed query: {str(e)}") from e
        
        return top_k_content(query_vector, chunks, k)


# Create singleton instance
embedding_index = EmbeddingIndex(knowledge_store, embedding_oracle, settings.EMBEDDING_MAX_CONCURRENCY)
