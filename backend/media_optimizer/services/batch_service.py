import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict, Tuple, Union, Callable, Sequence

from media_optimizer.config import settings
from media_optimizer.errors import ExtractionError
from media_optimizer.schemas.batch import BatchStats, BatchEntryResponse, BatchResponse
from media_optimizer.schemas.media import MediaMetadata
from media_optimizer.schemas.recommendation import SizeEstimate
from media_optimizer.services.metadata_extractor import MetadataExtractor
from media_optimizer.services.recommendation_service import RecommendationEngine
from media_optimizer.utils.media_file import MediaFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchEntry:
    file: MediaFile
    metadata: MediaMetadata
    engine: RecommendationEngine
    estimate: SizeEstimate

    @property
    def filename(self) -> str:
        return self.file.name


@dataclass(frozen=True)
class FailedEntry:
    file: MediaFile
    reason: str

    @property
    def filename(self) -> str:
        return self.file.name


BatchItem = Union[BatchEntry, FailedEntry]


def build_entry(file: MediaFile, metadata: MediaMetadata, profile_id: str, is_profile: bool) -> BatchEntry:
    engine = RecommendationEngine(metadata, profile_id, is_profile)
    return BatchEntry(file=file, metadata=metadata, engine=engine, estimate=engine.estimate_output_size())


class BatchCoordinator:
    """Runs extraction and recommendation over a set of files.

    ``entries`` is replaced as a whole on every change, so readers never see
    entries bound to two different profiles at once.
    """

    def __init__(self, profile_id: Optional[str] = None, is_profile: bool = False,
                 extractor_factory: Callable[[], MetadataExtractor] = MetadataExtractor,
                 concurrency: Optional[int] = None):
        self.profile_id = profile_id or settings.DEFAULT_PROFILE
        self.is_profile = is_profile
        self.extractor_factory = extractor_factory
        self.concurrency = max(1, concurrency or settings.BATCH_CONCURRENCY)
        self.files: Tuple[MediaFile, ...] = ()
        self.entries: Tuple[BatchItem, ...] = ()

    @property
    def successful_entries(self) -> List[BatchEntry]:
        return [e for e in self.entries if isinstance(e, BatchEntry)]

    @property
    def failed_entries(self) -> List[FailedEntry]:
        return [e for e in self.entries if isinstance(e, FailedEntry)]

    async def _analyze(self, file: MediaFile, profile_id: str, is_profile: bool,
                       semaphore: asyncio.Semaphore) -> BatchItem:
        async with semaphore:
            extractor = self.extractor_factory()
            try:
                metadata = await extractor.analyze(file)
            except ExtractionError as e:
                logger.warning(f"Batch: skipping {file.name}: {e.reason}")
                return FailedEntry(file=file, reason=e.reason)
        return build_entry(file, metadata, profile_id, is_profile)

    async def add_files(self, files: Sequence[MediaFile]) -> Tuple[BatchItem, ...]:
        """Replace the working set and analyze every file, keeping input order."""
        files = tuple(files)
        profile_id, is_profile = self.profile_id, self.is_profile
        semaphore = asyncio.Semaphore(self.concurrency)

        logger.info(f"Batch: analyzing {len(files)} file(s) with profile {profile_id}")
        results = await asyncio.gather(
            *(self._analyze(f, profile_id, is_profile, semaphore) for f in files)
        )

        self.files = files
        self.entries = tuple(results)
        return self.entries

    def change_profile(self, profile_id: str, is_profile: bool = False) -> Tuple[BatchItem, ...]:
        """Rebind every entry to a new profile from its cached metadata."""
        new_entries = tuple(
            build_entry(e.file, e.metadata, profile_id, is_profile) if isinstance(e, BatchEntry) else e
            for e in self.entries
        )
        self.profile_id = profile_id
        self.is_profile = is_profile
        self.entries = new_entries
        logger.info(f"Batch: switched {len(new_entries)} entries to profile {profile_id}")
        return self.entries

    def aggregate_stats(self) -> BatchStats:
        entries = self.successful_entries
        total_original = sum(e.estimate.original for e in entries)
        total_optimized = sum(e.estimate.optimized for e in entries)
        total_saved = total_original - total_optimized
        percentage = round(total_saved / total_original * 100) if total_original else None

        return BatchStats(
            count=len(entries),
            failed_count=len(self.entries) - len(entries),
            total_original=total_original,
            total_optimized=total_optimized,
            total_saved=total_saved,
            percentage=percentage,
        )

    def to_response(self, batch_id: str) -> BatchResponse:
        items = []
        for entry in self.entries:
            if isinstance(entry, BatchEntry):
                items.append(BatchEntryResponse(
                    filename=entry.filename,
                    status="ok",
                    metadata=entry.metadata,
                    estimate=entry.estimate,
                    command=entry.engine.generate_command(),
                ))
            else:
                items.append(BatchEntryResponse(filename=entry.filename, status="failed", error=entry.reason))
        return BatchResponse(
            batch_id=batch_id,
            profile_id=self.profile_id,
            is_profile=self.is_profile,
            entries=items,
            stats=self.aggregate_stats(),
        )


class BatchRegistry:
    """Batches created through the API, keyed by id."""

    def __init__(self):
        self._batches: Dict[str, BatchCoordinator] = {}

    def create(self, coordinator: BatchCoordinator) -> str:
        batch_id = uuid.uuid4().hex
        self._batches[batch_id] = coordinator
        return batch_id

    def get(self, batch_id: str) -> Optional[BatchCoordinator]:
        return self._batches.get(batch_id)

    def remove(self, batch_id: str) -> bool:
        return self._batches.pop(batch_id, None) is not None

    def __len__(self) -> int:
        return len(self._batches)
