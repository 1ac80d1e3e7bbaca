"""Tests for batch coordination."""

import pytest

from conftest import FakeProbe
from media_optimizer.errors import ExtractionReadFailure, ExtractionTimeout
from media_optimizer.services.batch_service import (
    BatchCoordinator, BatchEntry, FailedEntry, BatchRegistry,
)
from media_optimizer.services.metadata_extractor import MetadataExtractor, HeuristicStrategy
from media_optimizer.utils.media_file import InMemoryMediaFile


def _file(name: str, size: int) -> InMemoryMediaFile:
    file = InMemoryMediaFile(name, b"")
    file.size = size
    return file


@pytest.fixture
def probe():
    return FakeProbe(failures={
        "broken.mp4": ExtractionReadFailure("broken.mp4", "unable to read the video"),
        "slow.mkv": ExtractionTimeout("slow.mkv", 10),
    })


@pytest.fixture
def coordinator(probe):
    return BatchCoordinator("balanced", extractor_factory=lambda: MetadataExtractor(HeuristicStrategy(probe)))


@pytest.mark.asyncio
async def test_add_files_keeps_order_and_isolates_failures(coordinator):
    files = [_file("a.mp4", 1_000_000_000), _file("broken.mp4", 5), _file("c.mkv", 3_000_000_000)]
    entries = await coordinator.add_files(files)

    assert [e.filename for e in entries] == ["a.mp4", "broken.mp4", "c.mkv"]
    assert isinstance(entries[0], BatchEntry)
    assert isinstance(entries[1], FailedEntry)
    assert entries[1].reason == "unable to read the video"
    assert isinstance(entries[2], BatchEntry)
    assert coordinator.files == tuple(files)


@pytest.mark.asyncio
async def test_aggregate_stats(coordinator):
    await coordinator.add_files([
        _file("a.mp4", 1_000_000_000), _file("slow.mkv", 1), _file("c.mkv", 3_000_000_000),
    ])
    stats = coordinator.aggregate_stats()
    assert stats.count == 2
    assert stats.failed_count == 1
    assert stats.total_original == 4_000_000_000
    assert stats.total_optimized == 2_000_000_000
    assert stats.total_saved == 2_000_000_000
    assert stats.percentage == 50


def test_empty_batch_stats():
    stats = BatchCoordinator().aggregate_stats()
    assert stats.count == 0
    assert stats.total_original == 0
    assert stats.total_saved == 0
    assert stats.percentage is None


@pytest.mark.asyncio
async def test_bounded_concurrency(probe):
    coordinator = BatchCoordinator(
        extractor_factory=lambda: MetadataExtractor(HeuristicStrategy(probe)), concurrency=2,
    )
    names = [f"f{i}.mp4" for i in range(5)]
    entries = await coordinator.add_files([_file(n, 1000) for n in names])
    assert [e.filename for e in entries] == names


@pytest.mark.asyncio
async def test_change_profile_rebinds_from_cached_metadata(coordinator, probe):
    await coordinator.add_files([_file("a.mp4", 1_000_000_000), _file("broken.mp4", 5)])
    before = coordinator.entries
    probed = list(probe.probed)

    after = coordinator.change_profile("compression", is_profile=True)

    assert probe.probed == probed
    assert coordinator.profile_id == "compression"
    assert coordinator.is_profile is True
    assert after is coordinator.entries
    assert after[0].estimate.optimized == 300_000_000
    assert after[0].metadata is before[0].metadata
    assert after[1] is before[1]
    # Earlier snapshot is untouched
    assert before[0].estimate.optimized == 500_000_000
    assert before[0].engine.profile_id == "balanced"


@pytest.mark.asyncio
async def test_to_response(coordinator):
    await coordinator.add_files([_file("a.mp4", 1000), _file("broken.mp4", 5)])
    response = coordinator.to_response("abc")
    assert response.batch_id == "abc"
    assert [e.status for e in response.entries] == ["ok", "failed"]
    assert response.entries[0].command.startswith('ffmpeg -i "a.mp4"')
    assert response.entries[1].error == "unable to read the video"
    assert response.stats.count == 1


def test_registry():
    registry = BatchRegistry()
    batch = BatchCoordinator()
    batch_id = registry.create(batch)
    assert registry.get(batch_id) is batch
    assert len(registry) == 1
    assert registry.remove(batch_id) is True
    assert registry.remove(batch_id) is False
    assert registry.get(batch_id) is None


@pytest.mark.asyncio
async def test_stats_equal_sum_of_entries(coordinator):
    await coordinator.add_files([_file(f"f{i}.mp4", 123_456_789 * (i + 1)) for i in range(4)])
    coordinator.change_profile("nas")
    stats = coordinator.aggregate_stats()
    entries = coordinator.successful_entries
    assert stats.total_original == sum(e.estimate.original for e in entries)
    assert stats.total_optimized == sum(e.estimate.optimized for e in entries)
    assert stats.total_saved == sum(e.estimate.saved for e in entries)
