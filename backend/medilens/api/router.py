"""
Scan Router - Admission Controller Endpoints

Thin HTTP front over the admission controller. The controller lives on
``app.state.controller``; every endpoint is async so that all controller
transitions happen on the event loop.
"""

from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import ValidationError

from .schemas import (
    ActionResponse,
    AdmissionStateResponse,
    ResultResponse,
    SubmitRequest,
)
from ..application.admission import AdmissionController
from ..cross_cutting.error_handling import ErrorHandler, error_payload, status_code_for
from ..cross_cutting.validation import load_base64_image, load_image
from ..domain.exceptions import DomainException
from ..domain.value_objects.image_data import ImageData


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["Scan"])


def get_controller(request: Request) -> AdmissionController:
    return request.app.state.controller


def _snapshot(controller: AdmissionController) -> AdmissionStateResponse:
    return AdmissionStateResponse(**controller.current_state().to_dict())


def _action(controller: AdmissionController, accepted: bool, response: Response) -> ActionResponse:
    if not accepted:
        response.status_code = status.HTTP_409_CONFLICT
    return ActionResponse(accepted=accepted, snapshot=_snapshot(controller))


async def _read_images(request: Request) -> List[ImageData]:
    """Decode multipart ``files`` or a JSON ``{"images": [...]}`` body."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        uploads = form.getlist("files")
        if not uploads:
            raise HTTPException(status_code=400, detail="No files uploaded")
        images = []
        for upload in uploads:
            data = await upload.read()
            images.append(load_image(data, source=upload.filename))
        return images

    try:
        body = SubmitRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid submit body: {e}")

    return [
        load_base64_image(payload, source=f"images[{index}]")
        for index, payload in enumerate(body.images)
    ]


@router.post("/start", response_model=ActionResponse)
async def start_scan(response: Response, controller: AdmissionController = Depends(get_controller)):
    """Open the scanner; rejected while a run or cooldown is active."""
    return _action(controller, controller.start_scan(), response)


@router.post("/submit", response_model=ActionResponse)
async def submit(
    request: Request,
    response: Response,
    controller: AdmissionController = Depends(get_controller)
):
    """
    Enqueue one or more photographs.

    Accepts multipart uploads under ``files`` or JSON with base64 images.
    Images are validated before anything is queued, so a bad image
    rejects the whole batch.
    """
    try:
        with ErrorHandler(logger, "submit"):
            images = await _read_images(request)
    except DomainException as e:
        raise HTTPException(status_code=status_code_for(e), detail=error_payload(e))

    return _action(controller, controller.submit(images), response)


@router.post("/advance", response_model=ActionResponse)
async def advance(response: Response, controller: AdmissionController = Depends(get_controller)):
    """Dismiss the results view and start the cooldown countdown."""
    return _action(controller, controller.advance(), response)


@router.post("/restart", response_model=ActionResponse)
async def restart(response: Response, controller: AdmissionController = Depends(get_controller)):
    """Clear the queue and the cooldown; rejected while a run executes."""
    return _action(controller, controller.restart(), response)


@router.get("/state", response_model=AdmissionStateResponse)
async def current_state(controller: AdmissionController = Depends(get_controller)):
    return _snapshot(controller)


@router.get("/result", response_model=ResultResponse)
async def latest_result(controller: AdmissionController = Depends(get_controller)):
    result = controller.latest_result()
    return ResultResponse.model_validate({"result": result.to_dict() if result else None})
