"""Wiring of stores, clients and workflows from settings."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from .clients.canva import CanvaClient
from .clients.gemini import GeminiClient
from .clients.trends import GoogleTrendsClient, TrendScanner
from .core.approval import ApprovalGate
from .core.images import ImageStudio
from .core.orchestrator import DraftOrchestrator
from .core.retry import RetryPolicy
from .core.store import CanvaTokenStore, DraftStore, ImageStore, ProfileStore, TrendStore
from .core.topics import TopicDiscovery
from .errors import UnknownDestination
from .models.settings import Settings
from .publishers import CanvaConnection, CanvaPublisher, PdfPublisher, Publisher

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the HTTP API and CLI operate on."""

    settings: Settings
    drafts: DraftStore
    trends: TrendStore
    images: ImageStore
    tokens: CanvaTokenStore
    profiles: ProfileStore
    orchestrator: DraftOrchestrator
    gate: ApprovalGate
    scanner: TrendScanner
    topics: TopicDiscovery
    studio: ImageStudio
    canva: CanvaConnection
    publishers: Dict[str, Publisher]

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[GeminiClient] = None
    ) -> "Services":
        db_path = settings.database_path
        drafts = DraftStore(db_path)
        trends = TrendStore(db_path)
        images = ImageStore(db_path)
        tokens = CanvaTokenStore(db_path)
        profiles = ProfileStore(db_path)

        client = client or GeminiClient.from_settings(settings)
        retry_policy = RetryPolicy.from_settings(settings)
        canva_client = CanvaClient.from_settings(settings)

        orchestrator = DraftOrchestrator(
            store=drafts,
            client=client,
            retry_policy=retry_policy,
            model_chain=settings.model_chain,
            trend_store=trends,
            profile_store=profiles,
            stale_after=timedelta(minutes=settings.stale_pending_minutes),
        )

        publishers: Dict[str, Publisher] = {}
        for publisher in (
            CanvaPublisher(canva_client, tokens, images),
            PdfPublisher(settings.export_dir),
        ):
            publishers[publisher.destination] = publisher

        return cls(
            settings=settings,
            drafts=drafts,
            trends=trends,
            images=images,
            tokens=tokens,
            profiles=profiles,
            orchestrator=orchestrator,
            gate=ApprovalGate(drafts),
            scanner=TrendScanner.from_settings(settings),
            topics=TopicDiscovery(
                client=client,
                google_trends=GoogleTrendsClient(timeout=settings.trend_feed_timeout),
                retry_policy=retry_policy,
                model_chain=settings.model_chain,
                trend_store=trends,
            ),
            studio=ImageStudio(client, images),
            canva=CanvaConnection(canva_client, tokens),
            publishers=publishers,
        )

    def publisher(self, destination: str) -> Publisher:
        if destination not in self.publishers:
            raise UnknownDestination(destination, self.publishers.keys())
        return self.publishers[destination]
