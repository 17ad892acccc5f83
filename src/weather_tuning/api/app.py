"""FastAPI app exposing the tuning workflow over HTTP."""

from __future__ import annotations

import json
import os
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, model_validator

from weather_tuning.contracts import (
    CONDITION_GROUPS,
    CONDITION_LABELS,
    WEATHER_CONDITIONS,
    FullParameterSet,
    ParamGroup,
    WeatherCondition,
    parse_condition,
)
from weather_tuning.export.serializer import ExportFormat, export, export_filename
from weather_tuning.state.blob_store import InMemoryBlobStore, SQLiteBlobStore
from weather_tuning.state.tuning_store import BlobTuningStore, TuningStore
from weather_tuning.time.checkpoints import TIME_CHECKPOINT_ORDER, Checkpoint, parse_checkpoint
from weather_tuning.tuning.codec import StateImportError
from weather_tuning.tuning.session import TuningSession
from weather_tuning.tuning.state import ContinuousTime, TimeQuery, TuningState

_VERSION = "0.1.0"


def _condition(value: str) -> WeatherCondition:
    condition = parse_condition(value)
    if condition is None:
        raise ValueError(f"unknown weather condition: {value}")
    return condition


def _checkpoint(value: str) -> Checkpoint:
    checkpoint = parse_checkpoint(value)
    if checkpoint is None:
        raise ValueError(f"unknown checkpoint: {value}")
    return checkpoint


def _group(value: str) -> ParamGroup:
    try:
        return ParamGroup(value)
    except ValueError as exc:
        raise ValueError(f"unknown parameter group: {value}") from exc


class BulkUpdateRequest(BaseModel):
    """Propagate one field value across conditions and checkpoints."""

    conditions: list[str] = Field(min_length=1)
    checkpoints: list[str] = Field(default_factory=lambda: [cp.value for cp in TIME_CHECKPOINT_ORDER], min_length=1)
    group: str
    field: str
    value: float | bool

    @model_validator(mode="after")
    def validate_names(self) -> "BulkUpdateRequest":
        """Reject unknown conditions, checkpoints and groups."""
        for condition in self.conditions:
            _condition(condition)
        for checkpoint in self.checkpoints:
            _checkpoint(checkpoint)
        _group(self.group)
        return self


class ParamsUpdateRequest(BaseModel):
    """Full parameter set in camelCase wire form."""

    params: dict[str, dict[str, Any]]


class CheckpointRequest(BaseModel):
    checkpoint: str
    condition: str | None = None

    @model_validator(mode="after")
    def validate_names(self) -> "CheckpointRequest":
        _checkpoint(self.checkpoint)
        if self.condition is not None:
            _condition(self.condition)
        return self


class ScrubRequest(BaseModel):
    time_of_day: float = Field(ge=0.0, le=1.0)


class CopyLayerRequest(BaseModel):
    """Copy one group from the path condition; all other conditions when `target` is omitted."""

    group: str
    target: str | None = None

    @model_validator(mode="after")
    def validate_names(self) -> "CopyLayerRequest":
        _group(self.group)
        if self.target is not None:
            _condition(self.target)
        return self


class CopyCheckpointRequest(BaseModel):
    """Copy one checkpoint's look; all other checkpoints when `targets` is omitted."""

    source: str
    targets: list[str] | None = None

    @model_validator(mode="after")
    def validate_names(self) -> "CopyCheckpointRequest":
        _checkpoint(self.source)
        for target in self.targets or []:
            _checkpoint(target)
        return self


class CursorResponse(BaseModel):
    """Time cursor and selection after a workflow action."""

    global_time_of_day: float
    active_checkpoint: str
    previewing: bool
    active_condition: str


class ConditionStatus(BaseModel):
    condition: str
    label: str
    override_count: int
    review: dict[str, str]
    signed_off: bool


class ConditionGroupResponse(BaseModel):
    name: str
    conditions: list[ConditionStatus]


def _cursor(state: TuningState) -> CursorResponse:
    return CursorResponse(
        global_time_of_day=state.global_time_of_day,
        active_checkpoint=state.active_checkpoint.value,
        previewing=state.previewing,
        active_condition=state.active_condition.value,
    )


def _status(session: TuningSession, condition: WeatherCondition) -> ConditionStatus:
    return ConditionStatus(
        condition=condition.value,
        label=CONDITION_LABELS[condition],
        override_count=session.override_count(condition),
        review={checkpoint.value: status.value for checkpoint, status in session.review_status(condition).items()},
        signed_off=session.is_signed_off(condition),
    )


def _build_store() -> TuningStore:
    """Build the persistence store from environment configuration."""
    store_path = os.getenv("WEATHER_TUNING_STORE_PATH")
    blobs = SQLiteBlobStore(store_path) if store_path else InMemoryBlobStore()
    return BlobTuningStore(blobs)


def create_app(store: TuningStore | None = None) -> FastAPI:
    """Create and configure the FastAPI app."""
    app = FastAPI(title="Weather Tuning API", version=_VERSION)

    default_condition = parse_condition(os.getenv("WEATHER_TUNING_DEFAULT_CONDITION", WeatherCondition.CLEAR.value))
    if default_condition is None:
        raise ValueError("WEATHER_TUNING_DEFAULT_CONDITION must be a weather condition")

    resolved_store = store if store is not None else _build_store()
    restored = resolved_store.load()
    session = TuningSession(resolved_store, initial=restored or TuningState(active_condition=default_condition))
    app.state.session = session

    @app.get("/conditions", response_model=list[ConditionGroupResponse])
    def get_conditions() -> list[ConditionGroupResponse]:
        """List conditions by navigation group with their tuning status."""
        return [
            ConditionGroupResponse(
                name=group.name,
                conditions=[_status(session, condition) for condition in group.conditions],
            )
            for group in CONDITION_GROUPS
        ]

    @app.get("/params/{condition}")
    def get_params(
        condition: str,
        time: float | None = Query(default=None, ge=0.0, le=1.0),
        checkpoint: str | None = None,
    ) -> dict[str, dict[str, Any]]:
        """Full parameters at a continuous time, a checkpoint, or the global cursor."""
        if time is not None and checkpoint is not None:
            raise HTTPException(status_code=422, detail="pass either time or checkpoint, not both")
        try:
            resolved = _condition(condition)
            query: TimeQuery | None = None
            if checkpoint is not None:
                query = _checkpoint(checkpoint)
            elif time is not None:
                query = ContinuousTime(time)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return session.full_params(resolved, query).to_dict()

    @app.get("/base/{condition}")
    def get_base(condition: str, checkpoint: str | None = None) -> dict[str, dict[str, Any]]:
        """Base parameters without user overrides."""
        try:
            resolved = _condition(condition)
            resolved_checkpoint = _checkpoint(checkpoint) if checkpoint is not None else None
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return session.base_params(resolved, resolved_checkpoint).to_dict()

    @app.put("/params/{condition}", response_model=ConditionStatus)
    def put_params(condition: str, payload: ParamsUpdateRequest) -> ConditionStatus:
        """Store an edited full parameter set as overrides at the active checkpoint."""
        try:
            resolved = _condition(condition)
            params = FullParameterSet.from_dict(payload.params)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        session.update_params(resolved, params)
        return _status(session, resolved)

    @app.post("/bulk-update", response_model=list[ConditionStatus])
    def post_bulk_update(payload: BulkUpdateRequest) -> list[ConditionStatus]:
        """Set one field across several conditions and checkpoints."""
        conditions = [_condition(value) for value in payload.conditions]
        try:
            session.bulk_update(
                conditions,
                [_checkpoint(value) for value in payload.checkpoints],
                payload.group,
                payload.field,
                payload.value,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return [_status(session, condition) for condition in conditions]

    @app.post("/checkpoint", response_model=CursorResponse)
    def post_checkpoint(payload: CheckpointRequest) -> CursorResponse:
        """Jump to a checkpoint, marking it reviewed for the condition."""
        condition = _condition(payload.condition) if payload.condition is not None else None
        return _cursor(session.go_to_checkpoint(_checkpoint(payload.checkpoint), condition))

    @app.post("/scrub", response_model=CursorResponse)
    def post_scrub(payload: ScrubRequest) -> CursorResponse:
        return _cursor(session.scrub_time(payload.time_of_day))

    @app.post("/exit-preview", response_model=CursorResponse)
    def post_exit_preview() -> CursorResponse:
        return _cursor(session.exit_preview())

    @app.post("/conditions/{condition}/reset", response_model=ConditionStatus)
    def post_reset(condition: str) -> ConditionStatus:
        try:
            resolved = _condition(condition)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        session.reset_condition(resolved)
        return _status(session, resolved)

    @app.post("/conditions/{condition}/sign-off", response_model=ConditionStatus)
    def post_sign_off(condition: str) -> ConditionStatus:
        """Toggle sign-off; refused (409) until every checkpoint is reviewed."""
        try:
            resolved = _condition(condition)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        before = session.state
        if session.toggle_sign_off(resolved) is before:
            raise HTTPException(status_code=409, detail="every checkpoint must be reviewed before sign-off")
        return _status(session, resolved)

    @app.post("/conditions/{condition}/copy-layer", response_model=list[ConditionStatus])
    def post_copy_layer(condition: str, payload: CopyLayerRequest) -> list[ConditionStatus]:
        try:
            source = _condition(condition)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        target = _condition(payload.target) if payload.target is not None else None
        session.copy_layer(source, target, _group(payload.group))
        targets = [target] if target is not None else [c for c in WEATHER_CONDITIONS if c != source]
        return [_status(session, c) for c in targets]

    @app.post("/conditions/{condition}/copy-checkpoint", response_model=ConditionStatus)
    def post_copy_checkpoint(condition: str, payload: CopyCheckpointRequest) -> ConditionStatus:
        try:
            resolved = _condition(condition)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        source = _checkpoint(payload.source)
        if payload.targets is None:
            targets = [cp for cp in TIME_CHECKPOINT_ORDER if cp != source]
        else:
            targets = [_checkpoint(value) for value in payload.targets]
        session.copy_checkpoint(resolved, source, targets)
        return _status(session, resolved)

    @app.get("/export", response_class=PlainTextResponse)
    def get_export(
        format: str = ExportFormat.JSON_OVERRIDES.value,
        include_metadata: bool = False,
    ) -> PlainTextResponse:
        """Serialize every tuned condition in the requested format."""
        try:
            resolved = ExportFormat(format)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=f"unknown export format: {format}") from exc
        state = session.state
        content = export(
            resolved,
            state.overrides_by_condition,
            state.signed_off,
            include_metadata=include_metadata,
        )
        return PlainTextResponse(
            content,
            headers={"Content-Disposition": f'attachment; filename="{export_filename(resolved)}"'},
        )

    @app.post("/import", response_model=list[ConditionStatus])
    def post_import(payload: dict[str, Any] = Body(...)) -> list[ConditionStatus]:
        """Replace overrides from an exported or persisted snapshot."""
        try:
            state = session.import_json(json.dumps(payload))
        except StateImportError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return [_status(session, c) for c in WEATHER_CONDITIONS if c in state.overrides_by_condition]

    return app


app = create_app()
