"""
Shipment-level export compliance report
"""
import logging
from typing import List

from ..schemas.compliance import (
    ComplianceCheckRequest,
    ShipmentComplianceRequest,
    ShipmentComplianceResponse,
    ShipmentItem,
    ShipmentItemReport,
    ShipmentSummary
)
from .compliance_service import ComplianceService, compliance_service


logger = logging.getLogger(__name__)


class ShipmentService:
    """Checks every item of a shipment and summarizes the outcome"""
    
    NOT_SPECIFIED = "Not specified"
    
    def __init__(self, compliance_service: ComplianceService):
        self.compliance_service = compliance_service
    
    async def check_shipment_compliance(self, request: ShipmentComplianceRequest) -> ShipmentComplianceResponse:
        """
        Check export compliance for all items in all boxes
        
        The shipment is approved only when every item is approved.
        """
        report: List[ShipmentItemReport] = []
        for box in request.boxes:
            for item in box.items:
                report.append(await self._check_item(item))
        
        approved_items = sum(1 for item_report in report if item_report.status)
        summary = ShipmentSummary(
            organization_name=request.organization_name,
            source_country=(request.source_address.country if request.source_address else None) or self.NOT_SPECIFIED,
            destination_country=(request.destination_address.country if request.destination_address else None) or self.NOT_SPECIFIED,
            shipment_date=request.shipment_date,
            total_items=len(report),
            approved_items=approved_items,
            rejected_items=len(report) - approved_items
        )
        
        logger.info(f"Shipment check for {request.organization_name or 'unknown organization'}: "
                    f"{approved_items}/{len(report)} items approved")
        
        return ShipmentComplianceResponse(
            status=approved_items == len(report),
            summary=summary,
            report=report
        )
    
    async def _check_item(self, item: ShipmentItem) -> ShipmentItemReport:
        item_report = ShipmentItemReport(
            item_name=item.item_name or self.NOT_SPECIFIED,
            item_manufacturer=item.item_manufacturer or self.NOT_SPECIFIED,
            material=item.material or self.NOT_SPECIFIED,
            item_weight=item.item_weight if item.item_weight is not None else self.NOT_SPECIFIED
        )
        
        # Step 1: Get or resolve the HS code
        hs_code = (item.hs_code or "").strip()
        if not hs_code:
            try:
                lookup = self.compliance_service.find_by_description(item.item_name)
            except ValueError as e:
                item_report.reason = f"HS Code could not be determined: {str(e)}"
                return item_report
            
            if not lookup.hs_code:
                item_report.reason = lookup.error or "HS Code could not be determined"
                return item_report
            
            hs_code = lookup.hs_code
            item_report.hs_code_note = lookup.note or "Generated from item name"
        item_report.hs_code = hs_code
        
        # Step 2: Check export compliance for the code
        try:
            decision = await self.compliance_service.check_export_compliance(
                ComplianceCheckRequest(
                    hs_code=hs_code,
                    item_name=item.item_name,
                    item_description=item.item_name,
                    item_weight=item.item_weight,
                    material=item.material,
                    item_manufacturer=item.item_manufacturer
                )
            )
        except Exception as e:
            logger.error(f"Error checking export compliance for {(item.item_name or hs_code)[:50]}: {str(e)}")
            item_report.export_reason = "Error checking export compliance"
            return item_report
        
        item_report.export_status = decision.allowed
        if not decision.allowed:
            item_report.export_reason = decision.reason or "Not eligible for export"
            return item_report
        
        item_report.export_policy = decision.policy
        item_report.export_description = decision.description
        item_report.export_conditions = decision.conditions
        item_report.status = True
        item_report.message = "Eligible for export"
        return item_report


# Create singleton instance
shipment_service = ShipmentService(compliance_service)
