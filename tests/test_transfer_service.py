"""Tests for JSON/CSV import and export."""

import asyncio
from datetime import datetime

import pytest

from body_tracker.domain.entries import FemaleSkinfolds, ImageUpload, MaleSkinfolds
from body_tracker.domain.errors import InvalidImportFormat
from body_tracker.services.entries import MeasurementRepository
from body_tracker.services.transfer import CSV_BOM, CSV_HEADERS, TransferService
from tests.conftest import InMemoryEntryStore, add, make_draft

HEADER_LINE = (
    "Datum;Gewicht (kg);Körperfett (%);Geschlecht;Alter;Brust (mm);Bauch (mm);"
    "Trizeps (mm);Hüfte (mm);Oberschenkel (mm);Notizen"
)


def _populate(repository: MeasurementRepository) -> None:
    add(
        repository,
        make_draft(
            days_ago=2,
            weight=82.4,
            gender="male",
            age=35,
            skinfolds=MaleSkinfolds(chest=15, abdomen=25, thigh=18),
            notes="fasted",
            image_files=(ImageUpload(name="front.jpg", content=b"front"),),
        ),
    )
    add(repository, make_draft(days_ago=1, weight=81.9, body_fat=17.5))
    repository.save_settings({"goal_weight": 75.0, "theme": "dark"})


def test_export_inlines_images(repository: MeasurementRepository) -> None:
    _populate(repository)

    document = TransferService(repository).export_data()

    assert document["version"] == "1.0.0"
    assert "exportDate" in document
    assert document["settings"]["goalWeight"] == 75.0
    with_images = [entry for entry in document["entries"] if entry["images"]]
    assert len(with_images) == 1
    assert with_images[0]["imageData"] == [
        {"full": "full:front", "thumbnail": "thumb:front", "originalName": "front.jpg"}
    ]


def test_round_trip_reproduces_entries_and_settings(
    repository: MeasurementRepository, store: InMemoryEntryStore
) -> None:
    _populate(repository)
    service = TransferService(repository)
    before = repository.get_entries()
    settings_before = repository.get_settings()
    document = service.export_data()

    imported = asyncio.run(service.import_data(document))

    after = repository.get_entries()
    assert imported == 2
    assert repository.get_settings() == settings_before
    assert [entry.id for entry in after] == [entry.id for entry in before]
    for old, new in zip(before, after, strict=True):
        assert new.date == old.date
        assert new.weight == old.weight
        assert new.body_fat == old.body_fat
        assert new.skinfolds == old.skinfolds
        assert new.notes == old.notes
        assert len(new.images) == len(old.images)
    new_image_ids = [image_id for entry in after for image_id in entry.images]
    old_image_ids = [image_id for entry in before for image_id in entry.images]
    assert set(new_image_ids).isdisjoint(old_image_ids)
    assert set(store.images) == set(new_image_ids)
    image = repository.get_image(new_image_ids[0])
    assert image is not None
    assert image.original_name == "front.jpg"


def test_import_rejects_missing_entries_before_clearing(
    repository: MeasurementRepository,
) -> None:
    _populate(repository)
    service = TransferService(repository)

    with pytest.raises(InvalidImportFormat):
        asyncio.run(service.import_data({"entries": "nope"}))
    with pytest.raises(InvalidImportFormat):
        asyncio.run(service.import_data(["not", "a", "document"]))

    assert len(repository.get_entries()) == 2


def test_import_rejects_malformed_entry_before_clearing(
    repository: MeasurementRepository,
) -> None:
    _populate(repository)

    with pytest.raises(InvalidImportFormat):
        asyncio.run(
            TransferService(repository).import_data(
                {"entries": [{"id": "x", "weight": 80}]}
            )
        )

    assert len(repository.get_entries()) == 2


def test_import_accepts_file_export_image_map(
    repository: MeasurementRepository,
) -> None:
    document = {
        "version": "1.0",
        "exportDate": "2024-03-01T10:00:00Z",
        "entries": [
            {
                "id": "kept-id",
                "date": "2024-02-20T07:30",
                "weight": 70.2,
                "bodyFat": 24.1,
                "gender": "female",
                "age": 30,
                "skinfolds": {"triceps": "15", "suprailiac": "20", "thigh": "25"},
                "notes": "",
                "images": ["old-image"],
                "createdAt": "2024-02-20T07:31:00Z",
            },
            {"date": "2024-02-21T07:30:00Z", "weight": 70.0},
        ],
        "settings": {"goalBodyFat": 22, "defaultGender": "female"},
        "images": {
            "old-image": {"full": "F", "thumbnail": "T", "originalName": "side.png"}
        },
    }

    asyncio.run(TransferService(repository).import_data(document))

    entries = repository.get_entries()
    assert len(entries) == 2
    kept = repository.get_entry_by_id("kept-id")
    assert kept is not None
    assert kept.skinfolds == FemaleSkinfolds(triceps=15, suprailiac=20, thigh=25)
    assert len(kept.images) == 1
    assert kept.images[0] != "old-image"
    image = repository.get_image(kept.images[0])
    assert image is not None
    assert image.full == "F"
    generated = [entry for entry in entries if entry.id != "kept-id"]
    assert generated[0].id
    settings = repository.get_settings()
    assert settings.goal_body_fat == 22.0
    assert settings.default_gender == "female"
    assert settings.theme == "light"


def test_import_replaces_existing_data(
    repository: MeasurementRepository, store: InMemoryEntryStore
) -> None:
    _populate(repository)

    asyncio.run(TransferService(repository).import_data({"entries": []}))

    assert repository.get_entries() == []
    assert store.images == {}
    assert repository.get_settings().goal_weight is None


def test_export_csv_layout(repository: MeasurementRepository) -> None:
    add(
        repository,
        make_draft(
            date=datetime(2024, 1, 15, 7, 30).astimezone(),
            weight=82.5,
            gender="male",
            age=35,
            skinfolds=MaleSkinfolds(chest=15, abdomen=25.5, thigh=18),
            notes='said "hi"; ok',
        ),
    )
    add(
        repository,
        make_draft(
            date=datetime(2024, 1, 16, 8, 5, 9).astimezone(),
            weight=80,
        ),
    )

    lines = TransferService(repository).export_csv().split("\n")

    assert lines[0] == HEADER_LINE
    assert lines[0].split(";") == list(CSV_HEADERS)
    assert lines[1] == '16.1.2024, 08:05:09;80;;;;;;;;;;""'
    assert lines[2] == (
        '15.1.2024, 07:30:00;82.5;18.1;Männlich;35;15;25.5;;;18;"said ""hi""; ok"'
    )


def test_export_csv_bytes_has_bom(repository: MeasurementRepository) -> None:
    payload = TransferService(repository).export_csv_bytes()

    assert payload.startswith(CSV_BOM.encode("utf-8"))
    assert payload.decode("utf-8-sig") == HEADER_LINE


def test_import_gives_repeated_ids_fresh_ones(
    repository: MeasurementRepository,
) -> None:
    document = {
        "entries": [
            {"id": "x", "date": "2024-02-20T07:30:00Z", "weight": 80, "notes": "a"},
            {"id": "x", "date": "2024-02-21T07:30:00Z", "weight": 81, "notes": "b"},
        ]
    }

    asyncio.run(TransferService(repository).import_data(document))

    entries = repository.get_entries()
    assert len({entry.id for entry in entries}) == 2
    assert repository.get_entry_by_id("x").weight == 80.0
    asyncio.run(repository.update_entry("x", {"notes": "edited"}))
    edited = sorted((entry.weight, entry.notes) for entry in repository.get_entries())
    assert edited == [(80.0, "edited"), (81.0, "b")]


def test_import_ignores_overflowing_numbers(repository: MeasurementRepository) -> None:
    document = {
        "entries": [
            {
                "date": "2024-02-20T07:30:00Z",
                "weight": 80,
                "age": "1e999",
                "bodyFat": "inf",
            }
        ]
    }

    asyncio.run(TransferService(repository).import_data(document))

    entry = repository.get_entries()[0]
    assert entry.age is None
    assert entry.body_fat is None


def test_import_rejects_non_finite_weight_before_clearing(
    repository: MeasurementRepository,
) -> None:
    _populate(repository)
    document = {"entries": [{"date": "2024-02-20T07:30:00Z", "weight": "NaN"}]}

    with pytest.raises(InvalidImportFormat):
        asyncio.run(TransferService(repository).import_data(document))

    assert len(repository.get_entries()) == 2
