from __future__ import annotations

import fakeredis
import pytest

from brainflow.actions import dispatch_flow_action
from brainflow.assets.singleton import get_catalog
from brainflow.config import Settings
from brainflow.errors import FlowStateError, RecordNotFound
from brainflow.flow.fsm import FlowPhase
from brainflow.flow_store import create_flow, get_flow, is_flow_complete, list_flows, mark_flow_complete, require_flow


def _settings(*, strict: bool = False) -> Settings:
    return Settings(
        redis_url="redis://unused",
        strict_flows=strict,
        default_locale="en",
        log_level="INFO",
        assets_root=None,
        lock_ttl_ms=5000,
    )


def test_create_and_load_flow() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    record = create_flow(r=r, catalog=get_catalog(), user_id="u1", flow_name="onboarding", locale="es-MX")

    loaded = get_flow(r=r, flow_id=record.flow_id)
    assert loaded is not None
    assert loaded.locale == "es"
    assert loaded.snapshot.current_index == 0
    assert [f.flow_id for f in list_flows(r=r, user_id="u1")] == [record.flow_id]


def test_unknown_flow_name() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    with pytest.raises(ValueError):
        create_flow(r=r, catalog=get_catalog(), user_id="u1", flow_name="missing", locale=None)


def test_require_missing_flow() -> None:
    import uuid

    r = fakeredis.FakeRedis(decode_responses=True)
    with pytest.raises(RecordNotFound):
        require_flow(r=r, flow_id=uuid.uuid4())


def test_completion_marker_is_set_once() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    assert mark_flow_complete(r=r, user_id="u1", flow_name="intro") is True
    assert mark_flow_complete(r=r, user_id="u1", flow_name="intro") is False
    assert is_flow_complete(r=r, user_id="u1", flow_name="intro") is True
    assert is_flow_complete(r=r, user_id="u2", flow_name="intro") is False


def test_finishing_persists_completion_and_emits_event() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    catalog = get_catalog()
    settings = _settings()
    record = create_flow(r=r, catalog=catalog, user_id="u1", flow_name="intro", locale=None)

    res = dispatch_flow_action(r=r, catalog=catalog, settings=settings, flow_id=record.flow_id, action="advance")
    assert res.sequencer.current_index == 1
    res = dispatch_flow_action(r=r, catalog=catalog, settings=settings, flow_id=record.flow_id, action="advance")
    assert res.sequencer.phase == FlowPhase.finished
    assert is_flow_complete(r=r, user_id="u1", flow_name="intro")

    # A second finish is a no-op and writes nothing new.
    res = dispatch_flow_action(r=r, catalog=catalog, settings=settings, flow_id=record.flow_id, action="finish")
    assert res.transition.ok is True
    assert res.event_ids == []

    events = r.xrange("events:u1")
    types = [fields["type"] for _, fields in events]
    assert types == ["flow_step_advanced", "flow_finished"]


def test_abandoned_flow_is_not_marked_complete() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    catalog = get_catalog()
    settings = _settings()
    record = create_flow(r=r, catalog=catalog, user_id="u1", flow_name="intro", locale=None)

    dispatch_flow_action(r=r, catalog=catalog, settings=settings, flow_id=record.flow_id, action="abandon")
    res = dispatch_flow_action(r=r, catalog=catalog, settings=settings, flow_id=record.flow_id, action="finish")

    assert res.transition.ok is False
    assert res.record.last_error == "flow_already_closed"
    assert is_flow_complete(r=r, user_id="u1", flow_name="intro") is False
    assert require_flow(r=r, flow_id=record.flow_id).snapshot.phase == FlowPhase.abandoned


def test_strict_settings_raise_violations() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    catalog = get_catalog()
    record = create_flow(r=r, catalog=catalog, user_id="u1", flow_name="intro", locale=None)

    with pytest.raises(FlowStateError):
        dispatch_flow_action(r=r, catalog=catalog, settings=_settings(strict=True), flow_id=record.flow_id, action="retreat")

    # The lock is released after a failed action.
    assert r.get(f"lock:flow:{record.flow_id}") is None


def test_busy_flow_is_rejected() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    catalog = get_catalog()
    record = create_flow(r=r, catalog=catalog, user_id="u1", flow_name="intro", locale=None)
    r.set(f"lock:flow:{record.flow_id}", "1")

    with pytest.raises(ValueError) as e:
        dispatch_flow_action(r=r, catalog=catalog, settings=_settings(), flow_id=record.flow_id, action="advance")
    assert "busy" in str(e.value)


def test_early_finish_is_refused_and_not_persisted() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    catalog = get_catalog()
    record = create_flow(r=r, catalog=catalog, user_id="u1", flow_name="onboarding", locale=None)

    res = dispatch_flow_action(r=r, catalog=catalog, settings=_settings(), flow_id=record.flow_id, action="finish")

    assert res.transition.ok is False
    assert res.record.last_error == "invalid_transition"
    assert res.event_ids == []
    assert is_flow_complete(r=r, user_id="u1", flow_name="onboarding") is False
    stored = require_flow(r=r, flow_id=record.flow_id).snapshot
    assert stored.phase == FlowPhase.in_progress
    assert stored.current_index == 0
    assert r.xlen("events:u1") == 0
