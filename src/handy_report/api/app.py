"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from handy_report.api.models import (
    AnnotateRequest,
    FrameCapture,
    NotesUpdate,
    PhotoImport,
    PreviewPhotoModel,
    PreviewResponse,
    RefineRequest,
    RefineResponse,
    ReorderRequest,
)
from handy_report.app_logging import configure_logging
from handy_report.containers import AppContainer
from handy_report.domain.stages import ReportPreview, Stage
from handy_report.errors import (
    CollaboratorError,
    ConflictError,
    HandyReportError,
    NotFoundError,
    StageError,
    ValidationError,
)
from handy_report.services.capture import (
    decode_upload,
    photo_from_frame,
    photos_from_files,
)
from handy_report.services.stages import StageController


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(HandyReportError)
    async def handle_report_error(
        request: Request, exc: HandyReportError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:  # noqa: PLR2004
            logger.warning("Collaborator failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    def controller(request: Request) -> StageController:
        state_container: AppContainer = request.app.state.container
        return state_container.controller

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session(request: Request) -> dict[str, object]:
        """Return the full session state."""
        return controller(request).snapshot()

    @app.post("/session/reset")
    async def reset(request: Request) -> dict[str, object]:
        """Discard everything and return to capture."""
        state = controller(request)
        state.reset()
        return state.snapshot()

    @app.put("/notes")
    async def update_notes(payload: NotesUpdate, request: Request) -> dict[str, object]:
        """Replace the job notes."""
        state = controller(request)
        state.set_notes(payload.text)
        return state.snapshot()

    @app.post("/photos")
    async def import_photos(
        payload: PhotoImport, request: Request
    ) -> dict[str, object]:
        """Import files, one photo per image, keeping their order."""
        state = controller(request)
        files = [decode_upload(value) for value in payload.images]
        state.capture_photos(photos_from_files(files))
        return state.snapshot()

    @app.post("/photos/frame")
    async def capture_frame(
        payload: FrameCapture, request: Request
    ) -> dict[str, object]:
        """Add a single camera frame."""
        state = controller(request)
        state.capture_photos([photo_from_frame(decode_upload(payload.image))])
        return state.snapshot()

    @app.post("/photos/reorder")
    async def reorder_photos(
        payload: ReorderRequest, request: Request
    ) -> dict[str, object]:
        """Move a photo to the drop target's position."""
        state = controller(request)
        state.gallery().reorder(payload.dragged_id, payload.drop_id)
        return state.snapshot()

    @app.post("/photos/{photo_id}/toggle")
    async def toggle_photo(photo_id: str, request: Request) -> dict[str, object]:
        """Include or exclude a photo from the report."""
        state = controller(request)
        state.gallery().toggle_select(photo_id)
        return state.snapshot()

    @app.delete("/photos/{photo_id}")
    async def delete_photo(photo_id: str, request: Request) -> dict[str, object]:
        """Remove a photo; allowed in every gallery mode."""
        state = controller(request)
        state.gallery().delete(photo_id)
        return state.snapshot()

    @app.post("/photos/{photo_id}/annotation")
    async def open_annotation(photo_id: str, request: Request) -> dict[str, object]:
        """Open the annotation dialog for a photo."""
        state = controller(request)
        await state.open_annotation(photo_id)
        return state.snapshot()

    @app.post("/annotation/annotate")
    async def annotate(payload: AnnotateRequest, request: Request) -> dict[str, object]:
        """Request an overlay for the open dialog."""
        state = controller(request)
        await state.annotate(payload.prompt)
        return state.snapshot()

    @app.post("/annotation/commit")
    async def commit_annotation(request: Request) -> dict[str, object]:
        """Use the current overlay and close the dialog."""
        state = controller(request)
        state.commit_annotation()
        return state.snapshot()

    @app.delete("/annotation")
    async def close_annotation(request: Request) -> dict[str, object]:
        """Close the dialog without saving."""
        state = controller(request)
        state.close_annotation()
        return state.snapshot()

    @app.post("/suggestions/dismiss")
    async def dismiss_suggestion(request: Request) -> dict[str, object]:
        """Hide the post-annotation suggestion."""
        state = controller(request)
        state.dismiss_suggestion()
        return state.snapshot()

    @app.post("/report/generate")
    async def generate(request: Request) -> dict[str, object]:
        """Generate the first draft from the selected photos and notes."""
        state = controller(request)
        await state.generate()
        return state.snapshot()

    @app.post("/report/refine")
    async def refine(payload: RefineRequest, request: Request) -> RefineResponse:
        """Apply an instruction to the current draft."""
        result = await controller(request).refine(payload.instruction)
        return RefineResponse(
            draft=result.draft,
            succeeded=result.succeeded,
            new_sentence=result.new_sentence,
        )

    @app.post("/report/preview")
    async def enter_preview(request: Request) -> PreviewResponse:
        """Switch to the client-facing preview."""
        return _preview_response(controller(request).enter_preview())

    @app.get("/report/preview")
    async def get_preview(request: Request) -> PreviewResponse:
        """Return the preview while in the preview stage."""
        state = controller(request)
        if state.stage is not Stage.PREVIEW:
            raise StageError(f"Cannot preview during {state.stage.value}")
        return _preview_response(state.preview())

    @app.post("/report/editor")
    async def back_to_editor(request: Request) -> dict[str, object]:
        """Leave the preview and keep refining."""
        state = controller(request)
        state.return_to_refine()
        return state.snapshot()

    return app


def _status_for(exc: HandyReportError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, StageError | ConflictError):
        return 409
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, CollaboratorError):
        return 502
    return 400


def _preview_response(preview: ReportPreview) -> PreviewResponse:
    return PreviewResponse(
        report_markdown=preview.report_markdown,
        report_date=preview.report_date.isoformat(),
        photos=[
            PreviewPhotoModel(id=photo.id, src=photo.src) for photo in preview.photos
        ],
    )
