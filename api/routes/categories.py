"""
api/routes/categories.py -- Category routes for the Connected Office REST API.

Routes:
  GET    /categories/get-all                              -- list all categories
  GET    /categories/get-by-id/{id}                       -- one category
  GET    /categories/get-num-of-zones-by-category/{id}    -- distinct zones holding its devices
  POST   /categories/create                               -- create (caller-supplied id)
  PUT    /categories/update/{id}                          -- overwrite name/description
  PATCH  /categories/update/{id}                          -- same as PUT
  DELETE /categories/delete/{id}                          -- refused while devices reference it

Handlers are thin: call the service, unwrap() the Result. A failed Result
becomes WebApiError and the handler in api/main.py renders it as plain text.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from auth.dependencies import require_roles
from auth.models import ROLE_ADMIN
from core.results import unwrap
from office.dtos import CategoryDto
from office.services import CategoryService

# Every category route is admin-only.
router = APIRouter(prefix="/categories", dependencies=[Depends(require_roles(ROLE_ADMIN))])


def _service(request: Request) -> CategoryService:
    return request.app.state.category_service


@router.get("/get-all", response_model=list[CategoryDto])
def get_all(request: Request) -> list[CategoryDto]:
    return unwrap(_service(request).get_all())


@router.get("/get-by-id/{id}", response_model=CategoryDto)
def get_by_id(request: Request, id: UUID) -> CategoryDto:
    return unwrap(_service(request).get_by_id(id))


@router.get("/get-num-of-zones-by-category/{id}", response_model=int)
def get_num_of_zones_by_category(request: Request, id: UUID) -> int:
    """Return how many distinct zones hold at least one device of this category."""
    return unwrap(_service(request).count_zones(id))


@router.post("/create", response_model=CategoryDto, status_code=201)
def create(request: Request, body: CategoryDto) -> CategoryDto:
    return unwrap(_service(request).create(body))


@router.api_route("/update/{id}", methods=["PUT", "PATCH"], response_model=CategoryDto, status_code=202)
def update(request: Request, id: UUID, body: CategoryDto) -> CategoryDto:
    return unwrap(_service(request).update(id, body))


@router.delete("/delete/{id}", status_code=204)
def delete(request: Request, id: UUID) -> Response:
    unwrap(_service(request).delete(id))
    return Response(status_code=204)
