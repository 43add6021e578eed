import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List

import uvicorn
from fastapi import Depends, FastAPI, Path, Query, Request, Response
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session
from starlette import status

from app.core.db import get_db, init_db, storage_scope
from app.core.errors import SegmentServiceError
from app.core.logging import configure_logging
from app.core.settings import config_settings
from app.models.schemas.assignment import (
    UserSegmentsUpdateModel,
    UserSegmentsUpdateResponseModel,
)
from app.models.schemas.history import ReportLinkModel
from app.models.schemas.segment import SegmentCreateModel, SegmentModel, SegmentUpdateModel
from app.models.schemas.user import (
    UserCreateModel,
    UserModel,
    UserUpdateModel,
    UserWithSegmentsModel,
)
from app.repositories.sql_gateway import SqlStorageGateway
from app.services.assignment_service import AssignmentService
from app.services.expiration_sweeper import ExpirationSweeper
from app.services.report_service import ReportService
from app.services.segment_service import SegmentService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()

    sweeper = None
    if config_settings.SWEEPER_ENABLED:
        sweeper = ExpirationSweeper(storage_scope, interval_seconds=config_settings.SWEEP_INTERVAL_SECONDS)
        sweeper.start()
    app.state.sweeper = sweeper

    yield

    if sweeper is not None:
        # stop() joins the thread; keep the event loop free while a sweep finishes
        await asyncio.to_thread(sweeper.stop)


app = FastAPI(
    title="User segmentation service",
    description="Assigns users to segments with optional TTL and reports the history of changes.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(SegmentServiceError)
async def handle_service_error(request: Request, exc: SegmentServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)

    content = {"detail": exc.message}
    if getattr(exc, "missing_slugs", None):
        content["missing_slugs"] = exc.missing_slugs
    return JSONResponse(status_code=exc.status_code, content=content)


# --- Dependencies: one storage gateway per request session ---


def get_storage(db: Session = Depends(get_db)) -> SqlStorageGateway:
    return SqlStorageGateway(db)


def get_assignment_service(storage: SqlStorageGateway = Depends(get_storage)) -> AssignmentService:
    return AssignmentService(storage, atomic_batches=config_settings.ATOMIC_BATCHES)


def get_report_service(
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> ReportService:
    return ReportService(
        assignment_service,
        reports_dir=config_settings.REPORTS_DIR,
        base_url=config_settings.PUBLIC_BASE_URL,
    )


# --- Users ---


@app.get(
    "/users",
    response_model=List[UserWithSegmentsModel],
    status_code=status.HTTP_200_OK,
    summary="List users with their live segments",
)
def list_users(service: AssignmentService = Depends(get_assignment_service)):
    return service.list_users_with_segments()


@app.get(
    "/users/{user_id}",
    response_model=UserWithSegmentsModel,
    status_code=status.HTTP_200_OK,
    summary="Get one user with its live segments",
)
def get_user(
    user_id: str = Path(..., description="The ID of the user."),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.fetch_user_with_segments(user_id)


@app.post("/users", response_model=UserModel, status_code=status.HTTP_201_CREATED)
def post_users(user_data: UserCreateModel, storage: SqlStorageGateway = Depends(get_storage)):
    return UserService(storage).create_user(user_data)


@app.put("/users/{user_id}", response_model=UserModel, status_code=status.HTTP_200_OK)
def put_user(
    user_data: UserUpdateModel,
    user_id: str = Path(..., description="The ID of the user."),
    storage: SqlStorageGateway = Depends(get_storage),
):
    return UserService(storage).update_user(user_id, user_data)


@app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str = Path(..., description="The ID of the user."),
    storage: SqlStorageGateway = Depends(get_storage),
):
    UserService(storage).delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Segments ---


@app.get("/segments", response_model=List[SegmentModel], status_code=status.HTTP_200_OK)
def list_segments(storage: SqlStorageGateway = Depends(get_storage)):
    return SegmentService(storage).list_segments()


@app.post(
    "/segments",
    response_model=SegmentModel,
    status_code=status.HTTP_201_CREATED,
    summary="Create a segment with a unique slug",
)
def post_segments(segment_data: SegmentCreateModel, storage: SqlStorageGateway = Depends(get_storage)):
    return SegmentService(storage).create_segment(segment_data)


@app.put("/segments/{slug}", response_model=SegmentModel, status_code=status.HTTP_200_OK)
def put_segment(
    segment_data: SegmentUpdateModel,
    slug: str = Path(..., description="Current slug of the segment."),
    storage: SqlStorageGateway = Depends(get_storage),
):
    return SegmentService(storage).update_segment(slug, segment_data)


@app.delete("/segments/{slug}", status_code=status.HTTP_204_NO_CONTENT)
def delete_segment(
    slug: str = Path(..., description="Slug of the segment."),
    storage: SqlStorageGateway = Depends(get_storage),
):
    SegmentService(storage).delete_segment(slug)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Memberships ---


@app.post(
    "/user_segments",
    response_model=UserSegmentsUpdateResponseModel,
    status_code=status.HTTP_200_OK,
    summary="Remove and add segments of a user",
)
def post_user_segments(
    request_data: UserSegmentsUpdateModel,
    service: AssignmentService = Depends(get_assignment_service),
):
    """
    Removes ``segments_to_delete`` and then adds ``segments_to_add`` (slug -> TTL
    in hours). An unknown slug aborts the rest of the batch and is reported in
    ``missing_slugs``.
    """
    return service.update_user_segments(request_data)


# --- Reports ---


@app.get("/reports", response_model=ReportLinkModel, status_code=status.HTTP_200_OK)
def get_report(
    year: int = Query(..., ge=1, le=9998),
    month: int = Query(..., ge=1, le=12),
    service: ReportService = Depends(get_report_service),
):
    return service.generate_report(year, month)


@app.get("/reports/{filename}", response_class=FileResponse)
def download_report(
    filename: str = Path(..., description="File name returned in the download link."),
    service: ReportService = Depends(get_report_service),
):
    path = service.get_report_path(filename)
    return FileResponse(path, media_type="text/csv", filename=filename)


@app.get("/health")
def healthcheck():
    return {"status": "ok"}


# Optional: Entry point for running the application directly (useful for local development)
if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
