"""Shared test fixtures."""

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from body_tracker.config import Settings
from body_tracker.containers import AppContainer
from body_tracker.domain.entries import EntryDraft, ImageAsset, ImageUpload
from body_tracker.domain.errors import PersistenceFailure
from body_tracker.services.entries import EntryStore, MeasurementRepository
from body_tracker.services.images import ImageEncoder
from body_tracker.services.stats import StatisticsService
from body_tracker.services.transfer import TransferService


@dataclass
class InMemoryEntryStore(EntryStore):
    """In-memory entry store for tests."""

    entries: list[dict[str, object]] = field(default_factory=list)
    settings: dict[str, object] = field(default_factory=dict)
    images: dict[str, dict[str, object]] = field(default_factory=dict)
    opened: bool = False
    closed: bool = False
    saves: int = 0
    failing_image_ids: set[str] = field(default_factory=set)
    fail_image_saves: bool = False

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def get_entries(self) -> list[dict[str, object]]:
        return copy.deepcopy(self.entries)

    def save_entries(self, entries: list[dict[str, object]]) -> None:
        self.saves += 1
        self.entries = copy.deepcopy(entries)

    def get_settings(self) -> dict[str, object]:
        return dict(self.settings)

    def save_settings(self, settings: dict[str, object]) -> None:
        self.settings = dict(settings)

    def save_image(self, image_id: str, payload: dict[str, object]) -> None:
        if self.fail_image_saves:
            raise PersistenceFailure(f"Cannot save image {image_id}")
        self.images[image_id] = dict(payload)

    def get_image(self, image_id: str) -> dict[str, object] | None:
        image = self.images.get(image_id)
        return dict(image) if image is not None else None

    def delete_image(self, image_id: str) -> None:
        if image_id in self.failing_image_ids:
            raise PersistenceFailure(f"Cannot delete image {image_id}")
        self.images.pop(image_id, None)

    def clear_all(self) -> None:
        self.entries = []
        self.settings = {}
        self.images = {}


@dataclass
class FakeImageEncoder(ImageEncoder):
    """Image encoder that tags payloads with the upload name."""

    encoded: list[str] = field(default_factory=list)

    def encode(self, upload: ImageUpload) -> ImageAsset:
        self.encoded.append(upload.name)
        return ImageAsset(
            full=f"full:{upload.content.decode()}",
            thumbnail=f"thumb:{upload.content.decode()}",
            original_name=upload.name,
        )


def make_draft(days_ago: float = 0, **overrides: object) -> EntryDraft:
    """Build a draft dated relative to now."""
    values: dict[str, object] = {
        "date": datetime.now().astimezone() - timedelta(days=days_ago),
        "weight": 80.0,
    }
    values.update(overrides)
    return EntryDraft(**values)


def add(repository: MeasurementRepository, draft: EntryDraft):
    """Run add_entry synchronously."""
    return asyncio.run(repository.add_entry(draft))


@pytest.fixture
def store() -> InMemoryEntryStore:
    return InMemoryEntryStore()


@pytest.fixture
def image_encoder() -> FakeImageEncoder:
    return FakeImageEncoder()


@pytest.fixture
def repository(
    store: InMemoryEntryStore, image_encoder: FakeImageEncoder
) -> MeasurementRepository:
    repo = MeasurementRepository(store=store, image_encoder=image_encoder)
    repo.init()
    return repo


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        storage_backend="file",
        data_dir=tmp_path / "data",
        local_store_path=tmp_path / "bodytracker.db",
    )


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryEntryStore,
    repository: MeasurementRepository,
) -> AppContainer:
    async def close_resources() -> None:
        store.close()

    return AppContainer(
        settings=settings,
        store=store,
        repository=repository,
        stats_service=StatisticsService(repository),
        transfer_service=TransferService(repository),
        close_resources=close_resources,
    )
