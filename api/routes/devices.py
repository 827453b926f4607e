"""
api/routes/devices.py -- Device routes for the Connected Office REST API.

Routes (static segments first so get-all-by-* is never captured by get-by-id):
  GET    /devices/get-all                               -- list all devices
  GET    /devices/get-all-by-zone/{zone_id}             -- devices placed in a zone
  GET    /devices/get-all-by-category/{category_id}     -- devices of a category
  GET    /devices/get-by-id/{id}                        -- one device
  POST   /devices/create                                -- create (caller-supplied id)
  PUT    /devices/update/{id}                           -- overwrite mutable fields
  PATCH  /devices/update/{id}                           -- same as PUT
  DELETE /devices/delete/{id}                           -- never blocked

category_id and zone_id are not checked against existing rows: a device may
reference a category or zone that does not (yet) exist.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from auth.dependencies import require_roles
from auth.models import ROLE_ADMIN
from core.results import unwrap
from office.dtos import DeviceDto
from office.services import DeviceService

router = APIRouter(prefix="/devices", dependencies=[Depends(require_roles(ROLE_ADMIN))])


def _service(request: Request) -> DeviceService:
    return request.app.state.device_service


@router.get("/get-all", response_model=list[DeviceDto])
def get_all(request: Request) -> list[DeviceDto]:
    return unwrap(_service(request).get_all())


@router.get("/get-all-by-zone/{zone_id}", response_model=list[DeviceDto])
def get_all_by_zone(request: Request, zone_id: UUID) -> list[DeviceDto]:
    return unwrap(_service(request).get_all_by_zone(zone_id))


@router.get("/get-all-by-category/{category_id}", response_model=list[DeviceDto])
def get_all_by_category(request: Request, category_id: UUID) -> list[DeviceDto]:
    return unwrap(_service(request).get_all_by_category(category_id))


@router.get("/get-by-id/{id}", response_model=DeviceDto)
def get_by_id(request: Request, id: UUID) -> DeviceDto:
    return unwrap(_service(request).get_by_id(id))


@router.post("/create", response_model=DeviceDto, status_code=201)
def create(request: Request, body: DeviceDto) -> DeviceDto:
    return unwrap(_service(request).create(body))


@router.api_route("/update/{id}", methods=["PUT", "PATCH"], response_model=DeviceDto, status_code=202)
def update(request: Request, id: UUID, body: DeviceDto) -> DeviceDto:
    return unwrap(_service(request).update(id, body))


@router.delete("/delete/{id}", status_code=204)
def delete(request: Request, id: UUID) -> Response:
    unwrap(_service(request).delete(id))
    return Response(status_code=204)
