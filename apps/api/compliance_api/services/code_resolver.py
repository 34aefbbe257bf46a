"""
Resolves item names and free-text descriptions to HS codes

Matching is purely lexical and tiered. Within a tier the first hit in the
index's insertion order wins; there is no scoring by specificity.
"""
from enum import Enum
from typing import Mapping, NamedTuple, Optional

from ..schemas.knowledge import HSCodeEntry
from .hs_extraction import normalize_phrase


# Indexed phrases must be longer than this to match inside an item name
MIN_CONTAINED_PHRASE_LENGTH = 5


class MatchType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    CONTAINED = "contained"
    PARTIAL = "partial"


class CodeMatch(NamedTuple):
    hs_code: str
    match_type: MatchType


def find_hs_code_by_item_name(item_name: str, phrase_index: Mapping[str, str]) -> Optional[CodeMatch]:
    """
    Resolve an item name through the phrase index
    
    Tiers:
        1. exact phrase match
        2. first phrase containing the item name
        3. first phrase longer than five characters contained in the item name
    """
    name = normalize_phrase(item_name or "")
    if not name:
        return None
    
    if name in phrase_index:
        return CodeMatch(phrase_index[name], MatchType.EXACT)
    
    for phrase, hs_code in phrase_index.items():
        if name in phrase:
            return CodeMatch(hs_code, MatchType.CONTAINS)
    
    for phrase, hs_code in phrase_index.items():
        if len(phrase) > MIN_CONTAINED_PHRASE_LENGTH and phrase in name:
            return CodeMatch(hs_code, MatchType.CONTAINED)
    
    return None


def find_hs_code_by_description(description: str, hs_codes: Mapping[str, HSCodeEntry]) -> Optional[CodeMatch]:
    """
    Resolve a description against the canonical HS code descriptions
    
    Tiers:
        1. case-insensitive exact description match
        2. first description containing, or contained in, the query
    """
    query = normalize_phrase(description or "")
    if not query:
        return None
    
    for hs_code, entry in hs_codes.items():
        if entry.description.lower() == query:
            return CodeMatch(hs_code, MatchType.EXACT)
    
    for hs_code, entry in hs_codes.items():
        code_description = entry.description.lower()
        if query in code_description or code_description in query:
            return CodeMatch(hs_code, MatchType.PARTIAL)
    
    return None
