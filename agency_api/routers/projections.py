"""
Projection simulator router. Pure calculations, no storage access.
"""

from fastapi import APIRouter

from agency_api.engine.projections import project_revenue, required_investment, viability_limits
from agency_api.models.projections import (
    InvestmentPlanRequest,
    RevenueProjectionRequest,
    ViabilityRequest,
)

router = APIRouter()


@router.post("/revenue")
async def projection_revenue(request: RevenueProjectionRequest):
    projection = project_revenue(
        investment=request.investment,
        cpl=request.cpl,
        close_rate=request.close_rate,
        average_ticket=request.average_ticket,
    )
    return {"success": True, "data": projection.model_dump()}


@router.post("/investment")
async def projection_investment(request: InvestmentPlanRequest):
    plan = required_investment(
        target_revenue=request.target_revenue,
        average_ticket=request.average_ticket,
        close_rate=request.close_rate,
        cpl=request.cpl,
    )
    return {"success": True, "data": plan.model_dump()}


@router.post("/viability")
async def projection_viability(request: ViabilityRequest):
    limits = viability_limits(
        average_ticket=request.average_ticket,
        margin_percent=request.margin_percent,
        target_roi=request.target_roi,
        close_rate=request.close_rate,
    )
    return {"success": True, "data": limits.model_dump()}
