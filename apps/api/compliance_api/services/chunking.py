"""
Splits extracted rules document text into bounded-size chunks for embedding
"""
import re
from typing import List


DEFAULT_CHUNK_SIZE = 1000

PARAGRAPH_BREAK = re.compile(r"\n[ \t\r\f\v]*\n")
PARAGRAPH_SEPARATOR = "\n\n"


def chunk_text(text: str, max_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split text into chunks along paragraph and word boundaries
    
    Paragraphs are accumulated in reading order until the next one would push
    the chunk past max_size. A paragraph that is too long on its own is cut
    into word runs; its last partial run seeds the following chunk. Words are
    never split, so a single word longer than max_size becomes its own chunk.
    
    Args:
        text: Raw document text
        max_size: Maximum chunk length in characters
        
    Returns:
        Non-empty, trimmed chunks in document order
    """
    if max_size < 1:
        raise ValueError("max_size must be at least 1")
    
    chunks: List[str] = []
    buffer = ""
    
    for paragraph in PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        
        candidate = f"{buffer}{PARAGRAPH_SEPARATOR}{paragraph}" if buffer else paragraph
        if len(candidate) <= max_size:
            buffer = candidate
            continue
        
        if buffer:
            chunks.append(buffer)
            buffer = ""
        
        if len(paragraph) <= max_size:
            buffer = paragraph
        else:
            buffer = _split_long_paragraph(paragraph, max_size, chunks)
    
    if buffer:
        chunks.append(buffer)
    
    return chunks


def _split_long_paragraph(paragraph: str, max_size: int, chunks: List[str]) -> str:
    """Append full word runs to chunks and return the trailing partial run"""
    run = ""
    for word in paragraph.split():
        candidate = f"{run} {word}" if run else word
        if len(candidate) > max_size and run:
            chunks.append(run)
            run = word
        else:
            run = candidate
    return run
