from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, Query, status

from brainflow.actions import (
    FlowActionName,
    SessionActionName,
    create_session,
    dispatch_flow_action,
    dispatch_session_action,
    start_session_from_flow,
)
from brainflow.api.deps import get_content_catalog, get_redis, get_settings
from brainflow.api.models import (
    ContentValidateResponse,
    FlowCreateRequest,
    FlowSessionRequest,
    FlowView,
    GameListResponse,
    ReadinessRequest,
    ResponseRequest,
    SelectionToggleRequest,
    SessionCreateRequest,
    SessionInputRequest,
    SessionResult,
    SessionView,
    TimeoutRequest,
)
from brainflow.api.views import flow_view, game_view, session_view
from brainflow.assets.registry import ContentCatalog
from brainflow.config import Settings
from brainflow.content.validation import validate_content
from brainflow.errors import ContentValidationError, RecordNotFound
from brainflow.flow_store import create_flow, get_flow, sequencer_for
from brainflow.games import daily_workout, localize_games
from brainflow.session.engine import SessionEngine
from brainflow.session_store import get_session, list_session_results

router = APIRouter()


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, RecordNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ContentValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.as_dict())
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/content/validate", response_model=ContentValidateResponse)
async def validate_content_route(payload: dict) -> ContentValidateResponse:
    try:
        content = validate_content(payload)
    except ContentValidationError as e:
        return ContentValidateResponse(valid=False, error=e.as_dict())
    return ContentValidateResponse(valid=True, content=content.to_wire())


# --- flows -----------------------------------------------------------------------


@router.post("/flows", response_model=FlowView, status_code=status.HTTP_201_CREATED)
async def create_flow_route(
    payload: FlowCreateRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    try:
        record = create_flow(
            r=r,
            catalog=catalog,
            user_id=payload.user_id,
            flow_name=payload.flow_name,
            locale=payload.locale or settings.default_locale,
        )
    except ValueError as e:
        raise _http_error(e) from e

    seq = sequencer_for(record=record, catalog=catalog, strict=settings.strict_flows)
    return flow_view(record=record, seq=seq, catalog=catalog)


@router.get("/flows/{flow_id}", response_model=FlowView)
async def get_flow_route(
    flow_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
) -> FlowView:
    record = get_flow(r=r, flow_id=flow_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flow not found")
    seq = sequencer_for(record=record, catalog=catalog, strict=False)
    return flow_view(record=record, seq=seq, catalog=catalog)


def _flow_action(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    settings: Settings,
    flow_id: UUID,
    action: FlowActionName,
    payload: dict | None = None,
) -> FlowView:
    try:
        result = dispatch_flow_action(
            r=r,
            catalog=catalog,
            settings=settings,
            flow_id=flow_id,
            action=action,
            payload=payload,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return flow_view(record=result.record, seq=result.sequencer, catalog=catalog)


@router.post("/flows/{flow_id}/advance", response_model=FlowView)
async def advance_route(
    flow_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(r=r, catalog=catalog, settings=settings, flow_id=flow_id, action="advance")


@router.post("/flows/{flow_id}/retreat", response_model=FlowView)
async def retreat_route(
    flow_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(r=r, catalog=catalog, settings=settings, flow_id=flow_id, action="retreat")


@router.post("/flows/{flow_id}/finish", response_model=FlowView)
async def finish_route(
    flow_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(r=r, catalog=catalog, settings=settings, flow_id=flow_id, action="finish")


@router.post("/flows/{flow_id}/abandon", response_model=FlowView)
async def abandon_flow_route(
    flow_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(r=r, catalog=catalog, settings=settings, flow_id=flow_id, action="abandon")


@router.post("/flows/{flow_id}/readiness", response_model=FlowView)
async def readiness_route(
    flow_id: UUID,
    payload: ReadinessRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(
        r=r,
        catalog=catalog,
        settings=settings,
        flow_id=flow_id,
        action="set_readiness",
        payload={"index": payload.index, "ready": payload.ready},
    )


@router.post("/flows/{flow_id}/selection", response_model=FlowView)
async def selection_route(
    flow_id: UUID,
    payload: SelectionToggleRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(
        r=r,
        catalog=catalog,
        settings=settings,
        flow_id=flow_id,
        action="toggle_selection",
        payload={"value": payload.value},
    )


@router.post("/flows/{flow_id}/responses", response_model=FlowView)
async def response_route(
    flow_id: UUID,
    payload: ResponseRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> FlowView:
    return _flow_action(
        r=r,
        catalog=catalog,
        settings=settings,
        flow_id=flow_id,
        action="set_response",
        payload={"key": payload.key, "value": payload.value},
    )


@router.post("/flows/{flow_id}/session", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def flow_session_route(
    flow_id: UUID,
    payload: FlowSessionRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
) -> SessionView:
    try:
        record = start_session_from_flow(
            r=r,
            catalog=catalog,
            flow_id=flow_id,
            seed=payload.seed,
            difficulty=payload.difficulty,
            time_limit_ms=payload.time_limit_ms,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return session_view(record=record, engine=SessionEngine.restore(record.state))


# --- sessions --------------------------------------------------------------------


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
) -> SessionView:
    try:
        record = create_session(
            r=r,
            catalog=catalog,
            user_id=payload.user_id,
            game_id=payload.game_id,
            content=payload.content,
            seed=payload.seed,
            difficulty=payload.difficulty,
            time_limit_ms=payload.time_limit_ms,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return session_view(record=record, engine=SessionEngine.restore(record.state))


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session_route(session_id: UUID, r: redis.Redis = Depends(get_redis)) -> SessionView:
    record = get_session(r=r, session_id=session_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session_view(record=record, engine=SessionEngine.restore(record.state))


def _session_action(
    *,
    r: redis.Redis,
    catalog: ContentCatalog,
    settings: Settings,
    session_id: UUID,
    action: SessionActionName,
    payload: dict | None = None,
) -> SessionView:
    try:
        result = dispatch_session_action(
            r=r,
            catalog=catalog,
            settings=settings,
            session_id=session_id,
            action=action,
            payload=payload,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return session_view(record=result.record, engine=result.engine)


@router.post("/sessions/{session_id}/start", response_model=SessionView)
async def start_session_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    return _session_action(r=r, catalog=catalog, settings=settings, session_id=session_id, action="start")


@router.post("/sessions/{session_id}/inputs", response_model=SessionView)
async def session_input_route(
    session_id: UUID,
    payload: SessionInputRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    return _session_action(
        r=r,
        catalog=catalog,
        settings=settings,
        session_id=session_id,
        action="input",
        payload={"value": payload.value, "at_ms": payload.at_ms},
    )


@router.post("/sessions/{session_id}/timeout", response_model=SessionView)
async def session_timeout_route(
    session_id: UUID,
    payload: TimeoutRequest,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    return _session_action(
        r=r,
        catalog=catalog,
        settings=settings,
        session_id=session_id,
        action="timeout",
        payload={"at_ms": payload.at_ms},
    )


@router.post("/sessions/{session_id}/complete", response_model=SessionView)
async def complete_session_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    return _session_action(r=r, catalog=catalog, settings=settings, session_id=session_id, action="complete")


@router.post("/sessions/{session_id}/abandon", response_model=SessionView)
async def abandon_session_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    return _session_action(r=r, catalog=catalog, settings=settings, session_id=session_id, action="abandon")


@router.get("/users/{user_id}/sessions", response_model=list[SessionResult])
async def session_history_route(user_id: str, r: redis.Redis = Depends(get_redis)) -> list[SessionResult]:
    return list_session_results(r=r, user_id=user_id)


# --- games -----------------------------------------------------------------------


@router.get("/games", response_model=GameListResponse)
async def list_games_route(
    locale: str | None = None,
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> GameListResponse:
    games = localize_games(catalog.active_games, source=catalog.translations, locale=locale or settings.default_locale)
    return GameListResponse(games=[game_view(g) for g in games])


@router.get("/games/daily", response_model=GameListResponse)
async def daily_workout_route(
    user_id: str,
    count: int = Query(default=3, ge=0, le=20),
    locale: str | None = None,
    catalog: ContentCatalog = Depends(get_content_catalog),
    settings: Settings = Depends(get_settings),
) -> GameListResponse:
    picked = daily_workout(catalog.active_games, user_id=user_id, day=datetime.now(tz=UTC).date(), count=count)
    games = localize_games(picked, source=catalog.translations, locale=locale or settings.default_locale)
    return GameListResponse(games=[game_view(g) for g in games])
