from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from leadcapture.api.modules.leads.schema import SubmitResponse
from leadcapture.api.modules.leads.service import LeadSubmissionService

router = APIRouter(route_class=DishkaRoute)


@router.post(
    "/submit",
    response_model=SubmitResponse,
    response_model_exclude_none=True,
    status_code=200,
)
async def submit_lead(
    request: Request,
    service: FromDishka[LeadSubmissionService],
) -> JSONResponse:
    return await service.submit_request(request=request)
