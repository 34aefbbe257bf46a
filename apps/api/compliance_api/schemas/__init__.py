"""
Pydantic schemas for the knowledge base and request/response validation
"""
from .knowledge import HSCodeEntry, Chunk, ComplianceResult, MergeStats
from .compliance import (
    ComplianceCheckRequest,
    ComplianceCheckResponse,
    FindByDescriptionRequest,
    FindByDescriptionResponse,
    IngestionResponse,
    RelevantContentRequest,
    RelevantContentResponse,
    KnowledgeBaseStatsResponse,
    ShipmentComplianceRequest,
    ShipmentComplianceResponse
)

__all__ = [
    "HSCodeEntry",
    "Chunk",
    "ComplianceResult",
    "MergeStats",
    "ComplianceCheckRequest",
    "ComplianceCheckResponse",
    "FindByDescriptionRequest",
    "FindByDescriptionResponse",
    "IngestionResponse",
    "RelevantContentRequest",
    "RelevantContentResponse",
    "KnowledgeBaseStatsResponse",
    "ShipmentComplianceRequest",
    "ShipmentComplianceResponse"
]
