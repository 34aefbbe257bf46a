"""
Export compliance API endpoints
"""
import logging
import time
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status

from ...core.config import settings
from ...core.exceptions import IngestionError, OracleError
from ...middleware.rate_limit import limiter, RATE_LIMITS
from ...schemas.compliance import (
    ComplianceCheckRequest,
    ComplianceCheckResponse,
    FindByDescriptionRequest,
    FindByDescriptionResponse,
    IngestionResponse,
    KnowledgeBaseStatsResponse,
    RelevantContentRequest,
    RelevantContentResponse,
    ShipmentComplianceRequest,
    ShipmentComplianceResponse
)
from ...services.compliance_service import compliance_service
from ...services.embedding_index import embedding_index
from ...services.ingestion_service import ingestion_service
from ...services.knowledge_store import knowledge_store
from ...services.shipment_service import shipment_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload-rules-pdf", response_model=IngestionResponse, response_model_exclude_none=True)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_rules_pdf(
    request: Request,
    file: Optional[UploadFile] = File(None, description="Rules document; only PDFs are processed")
):
    """
    Upload a rules document and merge its HS codes and text into the knowledge base.
    
    Non-PDF uploads are accepted but not processed.
    """
    try:
        return await ingestion_service.ingest_upload(file)
    
    except ValueError as e:
        logger.warning(f"Invalid upload: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    
    except IngestionError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "status": False,
                "error": "An error occurred while processing the uploaded PDF",
                "message": str(e)
            }
        )


@router.post("/check-export-compliance", response_model=ComplianceCheckResponse, response_model_exclude_none=True)
@limiter.limit(RATE_LIMITS["check"])
async def check_export_compliance(request: Request, check_request: ComplianceCheckRequest):
    """
    Check export compliance by HS code, item name or item description.
    
    Exactly one of hsCode, itemName or itemDescription is used, in that order
    of precedence.
    """
    start_time = time.time()
    
    try:
        result = await compliance_service.check_export_compliance(check_request)
        logger.info(f"Compliance check completed in {(time.time() - start_time) * 1000:.0f}ms: "
                    f"hsCode={result.hs_code or result.queried_hs_code}, allowed={result.allowed}")
        return result
    
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    
    except Exception as e:
        logger.error(f"Error checking export compliance: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while checking export compliance"
        )


@router.post("/find-by-description", response_model=FindByDescriptionResponse, response_model_exclude_none=True)
@limiter.limit(RATE_LIMITS["check"])
async def find_by_description(request: Request, lookup_request: FindByDescriptionRequest):
    """Find an HS code from an item description."""
    try:
        return compliance_service.find_by_description(lookup_request.description)
    
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post("/check-shipment-compliance", response_model=ShipmentComplianceResponse, response_model_exclude_none=True)
@limiter.limit(RATE_LIMITS["check"])
async def check_shipment_compliance(request: Request, shipment_request: ShipmentComplianceRequest):
    """Check every item of a shipment and return a per-item report with a summary."""
    try:
        return await shipment_service.check_shipment_compliance(shipment_request)
    
    except Exception as e:
        logger.error(f"Error processing shipment compliance: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while processing compliance check"
        )


@router.post("/relevant-content", response_model=RelevantContentResponse)
@limiter.limit(RATE_LIMITS["search"])
async def find_relevant_content(request: Request, content_request: RelevantContentRequest):
    """Return the rules text most similar to a query."""
    top_k = content_request.top_k or settings.RELEVANT_CONTENT_TOP_K
    
    try:
        content = await embedding_index.find_relevant_content(content_request.query, top_k)
    except OracleError as e:
        logger.error(f"Error finding relevant content: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Embedding service unavailable. Please try again later."
        )
    
    return RelevantContentResponse(status=True, query=content_request.query, content=content)


@router.get("/knowledge-base/stats", response_model=KnowledgeBaseStatsResponse)
async def get_knowledge_base_stats():
    """Size of the loaded knowledge base."""
    return KnowledgeBaseStatsResponse(**knowledge_store.stats())
