"""Wiring of the data-access and notification components for the HTTP layer."""
from dataclasses import dataclass
from typing import Optional

from hotel_api.cache import CacheController, CacheStore
from hotel_api.check_upstream import UpstreamStatusChecker
from hotel_api.config import Settings, settings as default_settings
from hotel_api.data_loader import DataLoader
from hotel_api.data_sources import JsonSnapshotStore, RequestsDatasetFetcher
from hotel_api.notifications import (
    ErrorDeduplicationCache,
    ErrorReporter,
    MailgunChannel,
    NotificationDispatcher,
    TelegramChannel,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="services")


@dataclass
class Services:
    """One process-wide set of collaborating components."""
    settings: Settings
    cache_store: CacheStore
    cache_controller: CacheController
    data_loader: DataLoader
    error_cache: ErrorDeduplicationCache
    dispatcher: NotificationDispatcher
    reporter: ErrorReporter
    upstream_status: UpstreamStatusChecker


def build_services(settings: Optional[Settings] = None) -> Services:
    """Construct every component from settings, injecting shared state explicitly."""
    settings = settings or default_settings

    channel_kwargs = {"debug": settings.debug, "timeout": settings.notify_timeout_seconds}
    channels = [
        MailgunChannel(
            settings.mailgun_api_key,
            settings.mailgun_domain,
            settings.admin_email,
            sender_email=settings.sender_email,
            enabled=settings.mailgun_enabled,
            critical_only=settings.mailgun_critical_only,
            **channel_kwargs,
        ),
        TelegramChannel(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            enabled=settings.telegram_enabled,
            critical_only=settings.telegram_critical_only,
            **channel_kwargs,
        ),
    ]
    error_cache = ErrorDeduplicationCache(
        ttl_seconds=settings.error_dedup_ttl_seconds,
        max_entries=settings.error_cache_max_entries,
    )
    dispatcher = NotificationDispatcher(
        channels,
        error_cache,
        max_retries=settings.notify_max_retries,
        backoff_base=settings.notify_backoff_base_seconds,
    )
    reporter = ErrorReporter(dispatcher)

    store = CacheStore()
    controller = CacheController(store)
    snapshots = JsonSnapshotStore(settings.data_dir, read_only=settings.snapshots_read_only)
    loader = DataLoader(
        store,
        controller,
        RequestsDatasetFetcher(),
        snapshots,
        settings.upstream_url,
        freshness_seconds=settings.cache_freshness_seconds,
        fetch_timeout=settings.fetch_timeout_seconds,
        reporter=reporter,
    )
    logger.debug(
        f"Services built: data_dir={settings.data_dir}, snapshots_read_only={settings.snapshots_read_only}"
    )
    return Services(
        settings=settings,
        cache_store=store,
        cache_controller=controller,
        data_loader=loader,
        error_cache=error_cache,
        dispatcher=dispatcher,
        reporter=reporter,
        upstream_status=UpstreamStatusChecker(settings),
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """Return the process-wide Services, building them on first use."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def use_services_for_tests(services: Optional[Services] = None, settings: Optional[Settings] = None) -> Services:
    """Replace the process-wide Services for test isolation."""
    global _services
    _services = services or build_services(settings)
    return _services
