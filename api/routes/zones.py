"""
api/routes/zones.py -- Zone routes for the Connected Office REST API.

Routes:
  GET    /zones/get-all            -- list all zones
  GET    /zones/get-by-id/{id}     -- one zone
  POST   /zones/create             -- create (caller-supplied id)
  PUT    /zones/update/{id}        -- overwrite name/description
  PATCH  /zones/update/{id}        -- same as PUT
  DELETE /zones/delete/{id}        -- refused while devices are placed in it
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from auth.dependencies import require_roles
from auth.models import ROLE_ADMIN
from core.results import unwrap
from office.dtos import ZoneDto
from office.services import ZoneService

router = APIRouter(prefix="/zones", dependencies=[Depends(require_roles(ROLE_ADMIN))])


def _service(request: Request) -> ZoneService:
    return request.app.state.zone_service


@router.get("/get-all", response_model=list[ZoneDto])
def get_all(request: Request) -> list[ZoneDto]:
    return unwrap(_service(request).get_all())


@router.get("/get-by-id/{id}", response_model=ZoneDto)
def get_by_id(request: Request, id: UUID) -> ZoneDto:
    return unwrap(_service(request).get_by_id(id))


@router.post("/create", response_model=ZoneDto, status_code=201)
def create(request: Request, body: ZoneDto) -> ZoneDto:
    return unwrap(_service(request).create(body))


@router.api_route("/update/{id}", methods=["PUT", "PATCH"], response_model=ZoneDto, status_code=202)
def update(request: Request, id: UUID, body: ZoneDto) -> ZoneDto:
    return unwrap(_service(request).update(id, body))


@router.delete("/delete/{id}", status_code=204)
def delete(request: Request, id: UUID) -> Response:
    unwrap(_service(request).delete(id))
    return Response(status_code=204)
