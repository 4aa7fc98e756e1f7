"""
Contact API Endpoint.
"""

from fastapi import APIRouter

from asof.backend.core.dependencies import ClientIp, Mailer, RequestId
from asof.backend.schemas.base import ApiResponse, ResponseMetadata
from asof.backend.schemas.contact import ContactRequest, ContactResult
from asof.backend.services.contact import ContactService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[ContactResult],
    summary="Send a contact message",
    description="Validates the form and forwards it to the association's inbox.",
)
async def send_contact(
    data: ContactRequest,
    mailer: Mailer,
    request_id: RequestId,
    client_ip: ClientIp,
) -> ApiResponse[ContactResult]:
    result = await ContactService(mailer).send(data, ip_address=client_ip)
    return ApiResponse(data=result, metadata=ResponseMetadata(request_id=request_id))
