"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from body_tracker.adapters.file_entry_store import FileEntryStore
from body_tracker.adapters.local_entry_store import LocalEntryStore
from body_tracker.config import LOCAL_BACKEND, Settings, parse_storage_backend
from body_tracker.services.entries import EntryStore, MeasurementRepository
from body_tracker.services.images import JpegImageEncoder
from body_tracker.services.stats import StatisticsService
from body_tracker.services.transfer import TransferService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: EntryStore
    repository: MeasurementRepository
    stats_service: StatisticsService
    transfer_service: TransferService
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> EntryStore:
    """Create the configured persistence backend."""
    if parse_storage_backend(settings.storage_backend) == LOCAL_BACKEND:
        return LocalEntryStore(settings.local_store_path)
    return FileEntryStore(settings.data_dir)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = build_store(resolved_settings)
    repository = MeasurementRepository(
        store=store,
        image_encoder=JpegImageEncoder(),
    )

    async def close_resources() -> None:
        store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        repository=repository,
        stats_service=StatisticsService(repository),
        transfer_service=TransferService(repository),
        close_resources=close_resources,
    )
