"""Vehicle cache endpoints and Wincpl import."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from fleetsync.api.deps import get_orchestrator, get_session, get_settings, require_api_token
from fleetsync.config import Settings
from fleetsync.schemas.vehicle import (
    VehicleListResponse,
    VehicleResponse,
    VehicleStats,
    VehicleStatus,
    VehicleUpdate,
    WincplImportResponse,
    WincplInlineImport,
)
from fleetsync.services.sync_service import SyncOrchestrator
from fleetsync.services.vehicle_service import (
    get_vehicle,
    get_vehicle_stats,
    list_vehicles,
    update_vehicle,
)
from fleetsync.sources.wincpl import WINCPL_ENCODING

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/vehicles", tags=["vehicles"], dependencies=[Depends(require_api_token)]
)

_MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5 MB per XML file


@router.get("", response_model=VehicleListResponse)
async def list_vehicles_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=500)] = 50,
    status: VehicleStatus | None = None,
    type: str | None = None,
    energie: str | None = None,
    data_source: str | None = None,
    categorie: str | None = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
) -> VehicleListResponse:
    return await list_vehicles(
        session,
        page=page,
        per_page=per_page,
        status=status,
        vehicle_type=type,
        energie=energie,
        data_source=data_source,
        categorie=categorie,
        search=search,
    )


@router.get("/stats", response_model=VehicleStats)
async def vehicle_stats_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> VehicleStats:
    return await get_vehicle_stats(session)


def _decode_inline(raw: str | None) -> list[str]:
    """Parse the optional ``xml_contents`` form field (a JSON list of strings)."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid xml_contents JSON: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise HTTPException(status_code=400, detail="xml_contents must be a list of strings")
    return data


@router.post("/import/wincpl", response_model=WincplImportResponse)
async def import_wincpl_upload(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[Settings, Depends(get_settings)],
    files: list[UploadFile] | None = File(default=None),
    xml_contents: Annotated[str | None, Form()] = None,
) -> WincplImportResponse:
    """Import Wincpl XML files (multipart ``files``) and/or inline XML strings.

    Non-``.xml`` uploads are skipped. Files are decoded as ISO-8859-1.
    """
    uploads = files or []
    if len(uploads) > settings.max_upload_files:
        raise HTTPException(
            status_code=413,
            detail=f"Too many files: at most {settings.max_upload_files} per import",
        )

    contents: list[str] = []
    for upload in uploads:
        filename = upload.filename or ""
        if not filename.lower().endswith(".xml"):
            logger.warning("Skipping non-XML upload %r", filename)
            continue
        raw = await upload.read()
        if len(raw) > _MAX_UPLOAD_SIZE:
            raise HTTPException(status_code=413, detail=f"File too large: {filename}")
        contents.append(raw.decode(WINCPL_ENCODING))
        logger.info("Loaded Wincpl file %s (%d bytes)", filename, len(raw))

    contents.extend(_decode_inline(xml_contents))
    if not contents:
        raise HTTPException(status_code=400, detail="No XML file or content provided")

    result = await orchestrator.import_wincpl(contents)
    return WincplImportResponse(**asdict(result))


@router.post("/import/wincpl/inline", response_model=WincplImportResponse)
async def import_wincpl_inline(
    body: WincplInlineImport,
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
) -> WincplImportResponse:
    """Import Wincpl XML documents passed as a JSON list of strings."""
    if not body.xml_contents:
        raise HTTPException(
            status_code=400, detail='JSON body required: {"xml_contents": ["<ITEM ...>"]}'
        )
    result = await orchestrator.import_wincpl(body.xml_contents)
    return WincplImportResponse(**asdict(result))


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle_endpoint(
    vehicle_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> VehicleResponse:
    return VehicleResponse.model_validate(await get_vehicle(session, vehicle_id))


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle_endpoint(
    vehicle_id: int,
    body: VehicleUpdate,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> VehicleResponse:
    """Update operator-owned fields of a cached vehicle."""
    return VehicleResponse.model_validate(await update_vehicle(session, vehicle_id, body))
