"""FastAPI application factory for the local HTTP bridge."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response

from body_tracker.api.models import (
    EntryCreateRequest,
    EntryUpdateRequest,
    SettingsUpdateRequest,
)
from body_tracker.app_logging import configure_logging
from body_tracker.containers import AppContainer
from body_tracker.domain.entries import (
    entry_to_record,
    image_to_record,
    parse_skinfolds,
    settings_to_record,
)
from body_tracker.domain.errors import (
    EntryNotFound,
    InvalidImportFormat,
    PersistenceFailure,
    ValidationFailure,
)
from body_tracker.domain.stats import HistoryPage, StatisticsSummary, StatsRange
from body_tracker.services.demo import seed_demo_data
from body_tracker.services.validation import (
    validate_body_fat,
    validate_caliper,
    validate_draft,
    validate_weight,
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.repository.init()
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ValidationFailure)
    async def validation_failure(_: Request, exc: ValidationFailure) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.reason},
        )

    @app.exception_handler(EntryNotFound)
    async def entry_not_found(_: Request, exc: EntryNotFound) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(InvalidImportFormat)
    async def invalid_import(_: Request, exc: InvalidImportFormat) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
        )

    @app.exception_handler(PersistenceFailure)
    async def persistence_failure(_: Request, exc: PersistenceFailure) -> JSONResponse:
        logger.error("Persistence failure: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/entries")
    async def list_entries(  # noqa: PLR0913
        request: Request,
        q: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        per_page: int = 10,
    ) -> dict[str, object]:
        """Return a filtered page of the entry history."""
        state_container: AppContainer = request.app.state.container
        history = state_container.repository.list_history(
            query=q,
            date_from=date_from,
            date_to=date_to,
            page=page,
            per_page=per_page,
        )
        return _history_payload(history)

    @app.post("/entries", status_code=status.HTTP_201_CREATED)
    async def create_entry(
        payload: EntryCreateRequest, request: Request
    ) -> dict[str, object]:
        """Validate and store a new measurement."""
        state_container: AppContainer = request.app.state.container
        draft = payload.to_draft()
        validate_draft(draft, use_caliper=payload.use_caliper)
        entry = await state_container.repository.add_entry(draft)
        if payload.use_caliper:
            state_container.repository.save_settings(
                {"default_gender": payload.gender, "default_age": payload.age}
            )
        return entry_to_record(entry)

    @app.get("/entries/{entry_id}")
    async def get_entry(entry_id: str, request: Request) -> dict[str, object]:
        """Return a single measurement."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.repository.get_entry_by_id(entry_id)
        if entry is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return entry_to_record(entry)

    @app.patch("/entries/{entry_id}")
    async def update_entry(
        entry_id: str, payload: EntryUpdateRequest, request: Request
    ) -> dict[str, object]:
        """Apply partial changes to a measurement."""
        state_container: AppContainer = request.app.state.container
        repository = state_container.repository
        current = repository.get_entry_by_id(entry_id)
        if current is None:
            raise EntryNotFound(entry_id)
        changes = payload.to_changes()
        if "weight" in changes:
            validate_weight(changes["weight"])
        if changes.get("body_fat") is not None:
            validate_body_fat(changes["body_fat"])
        if changes.get("skinfolds") is not None:
            gender = changes.get("gender", current.gender)
            age = changes.get("age", current.age)
            validate_caliper(gender, age, parse_skinfolds(gender, changes["skinfolds"]))
        entry = await repository.update_entry(entry_id, changes)
        return entry_to_record(entry)

    @app.delete("/entries/{entry_id}")
    async def delete_entry(entry_id: str, request: Request) -> dict[str, object]:
        """Delete a measurement and its images."""
        state_container: AppContainer = request.app.state.container
        orphaned = await state_container.repository.delete_entry(entry_id)
        return {"status": "ok", "orphanedImages": orphaned}

    @app.get("/images/{image_id}")
    async def get_image(image_id: str, request: Request) -> dict[str, object]:
        """Return a stored image payload."""
        state_container: AppContainer = request.app.state.container
        image = state_container.repository.get_image(image_id)
        if image is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return image_to_record(image)

    @app.get("/settings")
    async def get_settings(request: Request) -> dict[str, object]:
        """Return the current settings."""
        state_container: AppContainer = request.app.state.container
        return settings_to_record(state_container.repository.get_settings())

    @app.patch("/settings")
    async def update_settings(
        payload: SettingsUpdateRequest, request: Request
    ) -> dict[str, object]:
        """Merge partial settings changes."""
        state_container: AppContainer = request.app.state.container
        updated = state_container.repository.save_settings(payload.to_changes())
        return settings_to_record(updated)

    @app.get("/statistics")
    async def get_statistics(
        request: Request,
        range_: StatsRange = Query(default=StatsRange.MONTH, alias="range"),
    ) -> dict[str, object]:
        """Return summary statistics for a time window."""
        state_container: AppContainer = request.app.state.container
        summary = state_container.stats_service.get_statistics(range_)
        return {"range": range_.value, "statistics": _summary_payload(summary)}

    @app.get("/export/json")
    async def export_json(request: Request) -> dict[str, object]:
        """Return the full export document."""
        state_container: AppContainer = request.app.state.container
        return state_container.transfer_service.export_data()

    @app.get("/export/csv")
    async def export_csv(request: Request) -> Response:
        """Return the CSV export with a byte-order mark."""
        state_container: AppContainer = request.app.state.container
        filename = f"bodytracker-export-{datetime.now(tz=UTC).date().isoformat()}.csv"
        return Response(
            content=state_container.transfer_service.export_csv_bytes(),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/import")
    async def import_data(
        request: Request, document: Any = Body(...)
    ) -> dict[str, object]:
        """Replace all data with an export document."""
        state_container: AppContainer = request.app.state.container
        imported = await state_container.transfer_service.import_data(document)
        return {"status": "ok", "imported": imported}

    @app.delete("/data")
    async def clear_data(request: Request) -> dict[str, str]:
        """Remove every entry, image and setting."""
        state_container: AppContainer = request.app.state.container
        await state_container.repository.clear_all_data()
        return {"status": "ok"}

    @app.post("/demo", status_code=status.HTTP_201_CREATED)
    async def load_demo(request: Request) -> dict[str, object]:
        """Add the sample measurement series."""
        state_container: AppContainer = request.app.state.container
        created = await seed_demo_data(state_container.repository)
        return {"status": "ok", "created": created}

    return app


def _history_payload(history: HistoryPage) -> dict[str, object]:
    return {
        "entries": [entry_to_record(entry) for entry in history.entries],
        "page": history.page,
        "totalPages": history.total_pages,
        "totalEntries": history.total_entries,
    }


def _summary_payload(summary: StatisticsSummary | None) -> dict[str, object] | None:
    if summary is None:
        return None
    return {
        "currentWeight": summary.current_weight,
        "currentBodyFat": summary.current_body_fat,
        "weightChange": summary.weight_change,
        "bodyFatChange": summary.body_fat_change,
        "minWeight": summary.min_weight,
        "maxWeight": summary.max_weight,
        "avgWeight": summary.avg_weight,
        "minBodyFat": summary.min_body_fat,
        "maxBodyFat": summary.max_body_fat,
        "avgBodyFat": summary.avg_body_fat,
        "totalEntries": summary.total_entries,
        "lastEntryDate": summary.last_entry_date.isoformat(),
        "entries": [entry_to_record(entry) for entry in summary.entries],
    }
