"""
Extracts the HS code policy table from rules document text

Rules documents list one tariff line per row: an 8-digit HS code, the item
description, and the export policy. Everything that does not look like such
a row is ignored.
"""
import logging
import re
from typing import Dict, NamedTuple

from ..schemas.knowledge import HSCodeEntry


logger = logging.getLogger(__name__)

HS_CODE_ROW_PATTERN = re.compile(
    r"\b(\d{8})\b\s+(.*?)\s+(Free|Restricted|Prohibited|Not Permitted)\b",
    re.IGNORECASE
)
PHRASE_SEPARATORS = re.compile(r"[,;/]")
MIN_PHRASE_LENGTH = 4


class HSExtractionResult(NamedTuple):
    hs_codes: Dict[str, HSCodeEntry]
    phrase_index: Dict[str, str]


def normalize_phrase(text: str) -> str:
    """Normalize an item phrase for lexical lookups"""
    return text.lower().strip()


def build_phrase_index(hs_code: str, description: str) -> Dict[str, str]:
    """
    Build item phrase -> HS code entries for one description
    
    Each comma, semicolon or slash separated part longer than three characters
    becomes a phrase, followed by the whole description.
    """
    phrases: Dict[str, str] = {}
    for part in PHRASE_SEPARATORS.split(description):
        phrase = normalize_phrase(part)
        if len(phrase) >= MIN_PHRASE_LENGTH:
            phrases[phrase] = hs_code
    phrases[normalize_phrase(description)] = hs_code
    return phrases


def extract_hs_codes(text: str) -> HSExtractionResult:
    """
    Scan document text for HS code rows
    
    Later rows for the same code replace earlier ones. Never raises on
    malformed text; it simply finds fewer rows.
    
    Args:
        text: Raw text extracted from a rules document
        
    Returns:
        HSExtractionResult with the code table and the phrase index
    """
    hs_codes: Dict[str, HSCodeEntry] = {}
    phrase_index: Dict[str, str] = {}
    
    for match in HS_CODE_ROW_PATTERN.finditer(text):
        hs_code = match.group(1)
        description = match.group(2).strip()
        policy = match.group(3)
        
        if not description:
            continue
        
        hs_codes[hs_code] = HSCodeEntry(code=hs_code, description=description, policy=policy)
        phrase_index.update(build_phrase_index(hs_code, description))
    
    logger.debug(f"Extracted {len(hs_codes)} HS codes and {len(phrase_index)} item phrases")
    return HSExtractionResult(hs_codes=hs_codes, phrase_index=phrase_index)
