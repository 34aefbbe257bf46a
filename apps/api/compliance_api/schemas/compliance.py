"""
Pydantic schemas for compliance API endpoints
"""
from typing import List, Optional, Union

from pydantic import Field

from .base import CamelModel
from .knowledge import MergeStats


class ComplianceCheckRequest(CamelModel):
    """Export compliance check for one item"""
    hs_code: Optional[str] = Field(None, description="Known HS code, used as-is when present", examples=["85171200"])
    item_name: Optional[str] = Field(None, description="Trade name of the item", examples=["telephone sets"])
    item_description: Optional[str] = Field(None, description="Free-text description of the item")
    item_weight: Optional[Union[float, str]] = Field(None, description="Informational only")
    material: Optional[str] = Field(None, description="Informational only")
    item_manufacturer: Optional[str] = Field(None, description="Informational only")


class ComplianceCheckResponse(CamelModel):
    """Export compliance decision"""
    status: bool
    allowed: bool
    hs_code: Optional[str] = None
    policy: Optional[str] = None
    description: Optional[str] = None
    conditions: Optional[str] = None
    reason: Optional[str] = None
    queried_hs_code: Optional[str] = None
    queried_item_name: Optional[str] = None
    queried_description: Optional[str] = None


class FindByDescriptionRequest(CamelModel):
    """HS code lookup by description"""
    description: Optional[str] = Field(None, description="Item description to resolve", examples=["Telephone sets"])


class FindByDescriptionResponse(CamelModel):
    """HS code lookup result"""
    status: Optional[bool] = None
    hs_code: Optional[str] = None
    note: Optional[str] = None
    error: Optional[str] = None


class IngestionResponse(CamelModel):
    """Result of uploading a rules document"""
    status: bool
    message: str
    stats: Optional[MergeStats] = None


class RelevantContentRequest(CamelModel):
    """Semantic search over the ingested rules text"""
    query: str = Field(..., min_length=1, max_length=2000, description="Question or item description")
    top_k: Optional[int] = Field(None, ge=1, le=20, description="Number of chunks to return, server default when omitted")


class RelevantContentResponse(CamelModel):
    """Top ranked rules text, joined with blank lines"""
    status: bool
    query: str
    content: str


class KnowledgeBaseStatsResponse(CamelModel):
    """Size of the loaded knowledge base"""
    total_hs_codes: int = Field(..., alias="totalHSCodes")
    total_item_mappings: int
    total_chunks: int


# Shipment compliance schemas

class ShipmentItem(CamelModel):
    """One line item inside a box"""
    item_name: Optional[str] = None
    hs_code: Optional[str] = None
    item_manufacturer: Optional[str] = None
    material: Optional[str] = None
    item_weight: Optional[Union[float, str]] = None


class ShipmentBox(CamelModel):
    items: List[ShipmentItem] = Field(default_factory=list)


class ShipmentAddress(CamelModel):
    country: Optional[str] = None


class ShipmentComplianceRequest(CamelModel):
    """A full shipment, checked item by item"""
    organization_name: Optional[str] = None
    source_address: Optional[ShipmentAddress] = None
    destination_address: Optional[ShipmentAddress] = None
    shipment_date: Optional[str] = None
    boxes: List[ShipmentBox] = Field(..., min_length=1)


class ShipmentItemReport(CamelModel):
    """Per-item outcome of a shipment check"""
    item_name: str = "Not specified"
    item_manufacturer: str = "Not specified"
    material: str = "Not specified"
    item_weight: Union[float, str] = "Not specified"
    hs_code: Optional[str] = None
    hs_code_note: Optional[str] = None
    status: bool = False
    export_status: bool = False
    export_policy: Optional[str] = None
    export_description: Optional[str] = None
    export_conditions: Optional[str] = None
    export_reason: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None


class ShipmentSummary(CamelModel):
    organization_name: Optional[str] = None
    source_country: str = "Not specified"
    destination_country: str = "Not specified"
    shipment_date: Optional[str] = None
    total_items: int
    approved_items: int
    rejected_items: int


class ShipmentComplianceResponse(CamelModel):
    """Shipment-level compliance report"""
    status: bool
    summary: ShipmentSummary
    report: List[ShipmentItemReport]
