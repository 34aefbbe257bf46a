"""
Export compliance decisions for HS codes, item names and descriptions

Resolves the queried item to an HS code through the code resolver, decides
from the policy table, and asks the explanation oracle for a rationale when
an item is unknown or restricted. Oracle and cache failures always degrade
to static text; they never fail a compliance check.
"""

import logging
from typing import Awaitable, Callable, Optional

from ..core.config import settings
from ..core.oracles import ExplanationOracle, explanation_oracle
from ..schemas.compliance import (
    ComplianceCheckRequest,
    ComplianceCheckResponse,
    FindByDescriptionResponse
)
from ..schemas.knowledge import ComplianceResult
from .cache_service import get_cache_service
from .code_resolver import MatchType, find_hs_code_by_description, find_hs_code_by_item_name
from .hs_extraction import normalize_phrase
from .knowledge_store import KnowledgeStore, knowledge_store


logger = logging.getLogger(__name__)


class ComplianceService:
    """Decision engine over the knowledge store's HS code policy table"""
    
    STANDARD_CONDITIONS = "Standard export conditions apply"
    MIN_CHAPTER_CODE_LENGTH = 4
    
    def __init__(
        self,
        store: KnowledgeStore,
        explanation_oracle: ExplanationOracle,
        cache_getter: Callable[[], Awaitable] = get_cache_service,
        max_tokens: Optional[int] = None
    ):
        self.store = store
        self.explanation_oracle = explanation_oracle
        self._cache_getter = cache_getter
        self.max_tokens = max_tokens or settings.EXPLANATION_MAX_TOKENS
    
    async def _explain(self, prompt: str, fallback: str) -> str:
        """Get an oracle explanation, served from cache when possible, or the fallback text"""
        cache_service = None
        try:
            cache_service = await self._cache_getter()
            cached = await cache_service.get_cached_explanation(prompt)
            if cached:
                return cached
        except Exception as e:
            logger.warning(f"Explanation cache unavailable: {str(e)}")
        
        try:
            explanation = await self.explanation_oracle.explain(prompt, max_tokens=self.max_tokens)
        except Exception as e:
            logger.error(f"Error generating explanation: {str(e)}")
            return fallback
        
        if not explanation or not explanation.strip():
            logger.warning("Explanation oracle returned empty text, using fallback")
            return fallback
        
        if cache_service is not None:
            try:
                await cache_service.cache_explanation(prompt, explanation)
            except Exception as e:
                logger.warning(f"Failed to cache explanation: {str(e)}")
        
        return explanation
    
    async def check_hs_code_compliance(self, hs_code: str) -> ComplianceResult:
        """
        Decide whether an HS code may be exported
        
        An exact table entry decides directly. Otherwise all codes sharing the
        4-digit or 2-digit prefix are pooled: any Free entry allows the code,
        else the first pooled entry's policy applies. With no structural match
        at all, the explanation oracle supplies the reason.
        
        Args:
            hs_code: Code to check
            
        Returns:
            ComplianceResult; never raises for oracle failures
        """
        hs_codes = self.store.hs_codes
        
        entry = hs_codes.get(hs_code)
        if entry is not None:
            return ComplianceResult(
                exists=True,
                allowed=entry.is_free,
                policy=entry.policy,
                description=entry.description
            )
        
        if len(hs_code) >= self.MIN_CHAPTER_CODE_LENGTH:
            chapter = hs_code[:4]
            two_digit_chapter = hs_code[:2]
            matching_entries = [
                entry for code, entry in hs_codes.items()
                if code.startswith(chapter) or code.startswith(two_digit_chapter)
            ]
            
            if matching_entries:
                if any(entry.is_free for entry in matching_entries):
                    return ComplianceResult(
                        exists=True,
                        allowed=True,
                        policy="Free",
                        description=f"Falls under chapter {chapter} which has some free categories"
                    )
                return ComplianceResult(
                    exists=True,
                    allowed=False,
                    policy=matching_entries[0].policy,
                    description=f"Falls under chapter {chapter} which has no free categories"
                )
        
        reason = await self._explain(
            prompt=(f"Given HS code {hs_code} that wasn't found in our database, provide a reason why "
                    f"this code might not be recognized. Limit your response to one short paragraph."),
            fallback=(f"The HS Code {hs_code} was not found in the export compliance regulations. "
                      f"Please verify the code and try again.")
        )
        return ComplianceResult(exists=False, allowed=False, reason=reason)
    
    async def check_export_compliance(self, request: ComplianceCheckRequest) -> ComplianceCheckResponse:
        """
        Check export compliance for an HS code, item name or item description
        
        The first present field among hs_code, item_name and item_description
        is used to determine the code to check.
        
        Raises:
            ValueError: If none of the three fields is provided
        """
        hs_code = (request.hs_code or "").strip() or None
        item_name = (request.item_name or "").strip() or None
        item_description = (request.item_description or "").strip() or None
        
        if not (hs_code or item_name or item_description):
            raise ValueError("Missing required fields. Please provide either hsCode, itemName, or itemDescription")
        
        code_to_check = hs_code
        
        if code_to_check is None and item_name:
            match = find_hs_code_by_item_name(item_name, self.store.phrase_index)
            if match is None:
                logger.info(f"No HS code found for item name: {item_name[:50]}")
                return ComplianceCheckResponse(
                    status=False,
                    allowed=False,
                    reason=f"Could not find an HS code matching item name: {item_name}. Please provide a valid HS code.",
                    queried_item_name=item_name
                )
            logger.debug(f"Item name '{item_name[:50]}' resolved to {match.hs_code} ({match.match_type.value} match)")
            code_to_check = match.hs_code
        
        elif code_to_check is None:
            normalized_description = normalize_phrase(item_description)
            match = find_hs_code_by_description(normalized_description, self.store.hs_codes)
            if match is None:
                logger.info(f"No HS code found for description: {normalized_description[:50]}")
                reason = await self._explain(
                    prompt=(f'Given the description "{normalized_description}" not found in the export compliance '
                            f'regulations, provide a short reason why this item is restricted for export.'),
                    fallback=(f'No matching HS code found for description "{normalized_description}". '
                              f'Unable to determine a specific reason due to an AI processing error.')
                )
                return ComplianceCheckResponse(
                    status=False,
                    allowed=False,
                    reason=reason,
                    queried_description=normalized_description
                )
            code_to_check = match.hs_code
        
        compliance = await self.check_hs_code_compliance(code_to_check)
        
        if not compliance.exists:
            return ComplianceCheckResponse(
                status=False,
                allowed=False,
                reason=compliance.reason,
                queried_hs_code=code_to_check,
                queried_item_name=item_name
            )
        
        if compliance.allowed:
            return ComplianceCheckResponse(
                status=True,
                allowed=True,
                hs_code=code_to_check,
                policy=compliance.policy,
                description=compliance.description,
                conditions=self.STANDARD_CONDITIONS,
                queried_item_name=item_name
            )
        
        reason = await self._explain(
            prompt=(f"Given the HS code {code_to_check} is not allowed for export, "
                    f"provide a short reason why this item is restricted."),
            fallback=(f"Export not allowed for HS Code {code_to_check} with policy {compliance.policy}. "
                      f"Unable to determine a reason due to an AI processing error.")
        )
        return ComplianceCheckResponse(
            status=False,
            allowed=False,
            hs_code=code_to_check,
            policy=compliance.policy,
            description=compliance.description,
            reason=reason,
            queried_item_name=item_name
        )
    
    def find_by_description(self, description: Optional[str]) -> FindByDescriptionResponse:
        """
        Look up an HS code by description only
        
        Raises:
            ValueError: If the description is missing or blank
        """
        if not description or not description.strip():
            raise ValueError("Missing required field: description")
        
        match = find_hs_code_by_description(description, self.store.hs_codes)
        if match is None:
            return FindByDescriptionResponse(status=False, error="No matching HS code found for this description")
        if match.match_type == MatchType.EXACT:
            return FindByDescriptionResponse(hs_code=match.hs_code)
        return FindByDescriptionResponse(status=True, hs_code=match.hs_code, note="Found via partial match")


# Create singleton instance
compliance_service = ComplianceService(knowledge_store, explanation_oracle)
