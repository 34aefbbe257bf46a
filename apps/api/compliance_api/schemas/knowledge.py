"""
Pydantic models for the compliance knowledge base
"""
import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import CamelModel


HS_CODE_PATTERN = re.compile(r"^\d{8}$")
POLICIES = ("Free", "Restricted", "Prohibited", "Not Permitted")


class HSCodeEntry(BaseModel):
    """One row of the tariff policy table"""
    code: str = Field(..., description="8-digit HS code")
    description: str = Field(..., min_length=1, description="Description as printed in the rules document")
    policy: str = Field(..., description="Export policy, casing preserved from the source document")
    
    @field_validator("code")
    def validate_code(cls, v):
        if not HS_CODE_PATTERN.match(v):
            raise ValueError("HS code must be exactly 8 digits")
        return v
    
    @field_validator("policy")
    def validate_policy(cls, v):
        if v.lower() not in [policy.lower() for policy in POLICIES]:
            raise ValueError(f"Policy must be one of: {', '.join(POLICIES)}")
        return v
    
    @property
    def is_free(self) -> bool:
        return self.policy.lower() == "free"


class Chunk(BaseModel):
    """A slice of rules document text with its embedding"""
    id: int
    content: str
    embedding: List[float] = Field(default_factory=list)


class ComplianceResult(BaseModel):
    """Outcome of checking a single HS code against the policy table"""
    exists: bool
    allowed: bool
    policy: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None


class MergeStats(CamelModel):
    """Counters reported after a rules document has been merged"""
    new_hs_codes_added: int = Field(0, alias="newHSCodesAdded")
    new_item_mappings_added: int = 0
    new_text_chunks_processed: int = 0
    total_hs_codes: int = Field(0, alias="totalHSCodes")
    total_chunks: int = 0
