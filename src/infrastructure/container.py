"""Service container.

Builds the moderation pipeline's long-lived components from settings and
owns their startup and shutdown order.
"""

from typing import Callable, List, Optional

import structlog

from src.application.services.analyzer_selection import AnalyzerSelector
from src.application.workflows.moderation_job import ModerationJobOrchestrator
from src.domain.interfaces.video_analyzer import VideoAnalyzer
from src.domain.repositories.account_repository import AccountRepository
from src.domain.repositories.video_job_repository import VideoJobRepository
from src.domain.services.quota_governor import AnalyzerQuotaGovernor
from src.infrastructure.analyzers.cloud.gcs_staging import GcsStagingStore
from src.infrastructure.analyzers.cloud.video_intelligence import CloudVideoAnalyzer
from src.infrastructure.analyzers.hybrid import HybridVideoAnalyzer
from src.infrastructure.analyzers.local.analyzer import LocalMultiStrategyAnalyzer
from src.infrastructure.analyzers.local.models import (
    TransformersSceneClassifier,
    YoloObjectDetector,
)
from src.infrastructure.broadcasting.progress_broadcaster import ProgressBroadcaster
from src.infrastructure.broadcasting.redis_publisher import RedisEventPublisher
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.database.connection import DatabaseManager
from src.infrastructure.media.ffmpeg_integration import FFmpegProcessor
from src.infrastructure.media.frame_sampler import FrameSampler
from src.infrastructure.media.thumbnail_generator import ThumbnailGenerator
from src.infrastructure.persistence.repositories import (
    AccountSqlRepository,
    InMemoryAccountRepository,
    InMemoryVideoJobRepository,
    VideoJobSqlRepository,
)

logger = structlog.get_logger(__name__)


class ServiceContainer:
    """Wires repositories, analyzers, broadcaster and orchestrator.

    Any component passed to the constructor is used as-is instead of being
    built from settings.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        jobs: Optional[VideoJobRepository] = None,
        accounts: Optional[AccountRepository] = None,
        local_analyzer: Optional[VideoAnalyzer] = None,
        cloud_analyzer: Optional[VideoAnalyzer] = None,
        ffmpeg: Optional[FFmpegProcessor] = None,
        thumbnails: Optional[ThumbnailGenerator] = None,
    ):
        self.settings = settings or get_settings()
        self.jobs = jobs
        self.accounts = accounts
        self.local_analyzer = local_analyzer
        self.cloud_analyzer = cloud_analyzer
        self.ffmpeg = ffmpeg
        self.thumbnails = thumbnails

        self.database: Optional[DatabaseManager] = None
        self.broadcaster: Optional[ProgressBroadcaster] = None
        self.redis_publisher: Optional[RedisEventPublisher] = None
        self.hybrid_analyzer: Optional[HybridVideoAnalyzer] = None
        self.governor: Optional[AnalyzerQuotaGovernor] = None
        self.selector: Optional[AnalyzerSelector] = None
        self.orchestrator: Optional[ModerationJobOrchestrator] = None

        self._unsubscribers: List[Callable[[], None]] = []
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return

        await self._init_repositories()
        await self._init_broadcasting()
        self._init_media()
        await self._init_analyzers()

        self.governor = AnalyzerQuotaGovernor(
            self.accounts, capacity=self.settings.analysis.cloud_quota_capacity
        )
        self.selector = AnalyzerSelector(
            self.governor,
            local=self.local_analyzer,
            hybrid=self.hybrid_analyzer,
            cloud=self.cloud_analyzer,
        )
        self.orchestrator = ModerationJobOrchestrator(
            jobs=self.jobs,
            accounts=self.accounts,
            selector=self.selector,
            broadcaster=self.broadcaster,
            ffmpeg=self.ffmpeg,
            thumbnails=self.thumbnails,
        )

        self._initialized = True
        logger.info(
            "Service container initialized",
            database=self.database is not None,
            redis_events=self.redis_publisher is not None,
            cloud_analyzer=self.cloud_analyzer is not None,
        )

    async def _init_repositories(self) -> None:
        if self.jobs is not None and self.accounts is not None:
            return

        if self.settings.database.enabled:
            self.database = DatabaseManager(self.settings.database)
            await self.database.init_db()
            session_factory = self.database.async_sessionmaker
            self.jobs = self.jobs or VideoJobSqlRepository(session_factory)
            self.accounts = self.accounts or AccountSqlRepository(session_factory)
        else:
            self.jobs = self.jobs or InMemoryVideoJobRepository()
            self.accounts = self.accounts or InMemoryAccountRepository()

    async def _init_broadcasting(self) -> None:
        self.broadcaster = ProgressBroadcaster(
            throttle_ms=self.settings.analysis.progress_throttle_ms
        )

        if self.settings.redis.events_enabled:
            publisher = RedisEventPublisher(
                url=self.settings.redis.url,
                channel_prefix=self.settings.redis.events_channel_prefix,
            )
            await publisher.connect()
            self._unsubscribers.append(self.broadcaster.subscribe_all(publisher))
            self.redis_publisher = publisher

    def _init_media(self) -> None:
        media = self.settings.media
        self.ffmpeg = self.ffmpeg or FFmpegProcessor(
            ffmpeg_binary=media.ffmpeg_binary, ffprobe_binary=media.ffprobe_binary
        )
        self.thumbnails = self.thumbnails or ThumbnailGenerator(
            ffmpeg_processor=self.ffmpeg, output_dir=media.thumbnail_dir
        )

    async def _init_analyzers(self) -> None:
        analysis = self.settings.analysis

        if self.local_analyzer is None:
            self.local_analyzer = LocalMultiStrategyAnalyzer(
                frame_sampler=FrameSampler(
                    ffmpeg_processor=self.ffmpeg,
                    scratch_dir=self.settings.media.scratch_dir,
                    sampling_rate_hz=analysis.frame_sampling_rate_hz,
                    jpeg_quality=analysis.frame_jpeg_quality,
                ),
                object_detector=YoloObjectDetector(
                    weights=analysis.object_model,
                    confidence_threshold=analysis.object_min_confidence,
                    device=analysis.device,
                ),
                scene_classifier=TransformersSceneClassifier(
                    model_name=analysis.scene_model,
                    top_k=analysis.scene_top_k,
                    device=analysis.device,
                ),
            )
        await self.local_analyzer.initialize()

        if self.cloud_analyzer is None and self.settings.gcp.enabled:
            gcp = self.settings.gcp
            self.cloud_analyzer = CloudVideoAnalyzer(
                staging=GcsStagingStore(
                    bucket=gcp.staging_bucket,
                    prefix=gcp.staging_prefix,
                    content_type=gcp.staging_content_type,
                ),
                timeout=gcp.annotate_timeout_seconds,
            )

        if self.cloud_analyzer is not None:
            try:
                await self.cloud_analyzer.initialize()
            except Exception as e:
                # Cloud requests are served locally while the backend is missing
                logger.error(
                    "Cloud analyzer unavailable",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self.cloud_analyzer = None

        self.hybrid_analyzer = HybridVideoAnalyzer(self.local_analyzer)

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        if self.orchestrator is not None:
            await self.orchestrator.cancel_all()

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        if self.redis_publisher is not None:
            await self.redis_publisher.disconnect()

        if self.cloud_analyzer is not None:
            await self.cloud_analyzer.shutdown()
        await self.local_analyzer.shutdown()

        if self.database is not None:
            await self.database.close()

        self._initialized = False
        logger.info("Service container shut down")
