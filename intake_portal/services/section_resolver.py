"""Aggregation of one client's content from every known document location."""

import asyncio
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Tuple

from ..core.exceptions import (
    ClientNotFoundError, ConnectivityError, NoContentError,
    PermissionDeniedError, ResolveCancelledError, StoreError
)
from ..core.models.bundle import ClientDataBundle
from ..core.models.common import FetchStatus
from ..infrastructure.logging import get_logger, action_logger
from ..infrastructure.store import DocumentStore, document_path
from .connection_state import ConnectionMonitor, connection_monitor
from .image_locator import extract_image_urls


logger = get_logger("resolver")


SETTINGS_SECTIONS = [
    "websiteIdentity", "websiteDesign", "home", "about", "services", "contact",
    "blog", "landingPages", "discoveryCall", "leadGenerator", "faq", "promoBar", "images",
]

PAGE_SECTIONS = [
    "home", "about", "services", "contact", "blog",
    "landingPages", "discoveryCall", "leadGenerator", "faq",
]

# (content key, path template) for legacy and global locations
SPECIAL_LOCATIONS = [
    ("blog", "users/{uid}/blog/posts"),
    ("landingPages", "pages/landingPages"),
    ("discoveryCall", "elements/discoveryCall"),
    ("images", "users/{uid}/uploads/images"),
]

# Lookup order applied to every section id
LOOKUP_ORDER = ("settings", "pages", "content")

# Section-specific fallbacks consulted after LOOKUP_ORDER, carried over from
# migrated schema versions. Preserve as-is.
SECTION_FALLBACKS: Dict[str, Tuple[str, ...]] = {
    "home": ("pages", "settings"),
    "about": ("pages", "settings"),
    "services": ("pages", "settings"),
    "contact": ("pages", "settings"),
    "faq": ("pages", "settings"),
    "blog": ("content", "pages"),
    "landingPages": ("content", "pages"),
}


async def gather_settled(awaitables: Iterable[Awaitable[Any]]) -> List[Any]:
    """
    Await every awaitable regardless of individual outcome.

    Returns results in input order; a failed awaitable contributes its
    exception instead of a value.
    """
    return await asyncio.gather(*awaitables, return_exceptions=True)


def get_section_data(bundle: Optional[ClientDataBundle], section_id: str) -> Any:
    """Authoritative data for a section, or None."""
    if bundle is None:
        return None

    for mapping in LOOKUP_ORDER:
        value = getattr(bundle, mapping).get(section_id)
        if value:
            return value

    for mapping in SECTION_FALLBACKS.get(section_id, ()):
        value = getattr(bundle, mapping).get(section_id)
        if value:
            return value

    if section_id == "images":
        images: Dict[str, None] = {}
        for mapping in LOOKUP_ORDER:
            for data in getattr(bundle, mapping).values():
                for url in extract_image_urls(data):
                    images.setdefault(url, None)
        return {"images": list(images)} if images else None

    return None


class SectionResolver:
    """Builds a ``ClientDataBundle`` with best-effort concurrent fetches."""

    def __init__(self, store: DocumentStore, monitor: Optional[ConnectionMonitor] = None):
        self.store = store
        self.monitor = monitor or connection_monitor

    def _fetch_plan(self, client_id: str) -> List[Tuple[str, str, str]]:
        """``(mapping, section id, document path)`` for every fetch issued per client."""
        plan = [
            ("settings", section_id, document_path("users", client_id, "settings", section_id))
            for section_id in SETTINGS_SECTIONS
        ]
        plan += [
            ("pages", section_id, document_path("users", client_id, "pages", section_id))
            for section_id in PAGE_SECTIONS
        ]
        plan += [
            ("content", key, template.format(uid=client_id))
            for key, template in SPECIAL_LOCATIONS
        ]
        return plan

    def _translate(self, error: StoreError, client_id: str) -> Exception:
        if error.is_permission_failure:
            return PermissionDeniedError(context={"client_id": client_id}, cause=error)
        if error.is_connectivity_failure:
            self.monitor.mark_disconnected(str(error))
            return ConnectivityError(context={"client_id": client_id}, cause=error)
        return error

    async def _settle_or_cancel(
        self,
        client_id: str,
        awaitables: List[Awaitable[Any]],
        cancel_event: Optional[asyncio.Event]
    ) -> List[Any]:
        gather_task = asyncio.ensure_future(gather_settled(awaitables))
        if cancel_event is None:
            return await gather_task

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({gather_task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            gather_task.cancel()
            raise
        finally:
            waiter.cancel()

        if cancel_event.is_set():
            gather_task.cancel()
            raise ResolveCancelledError(client_id)
        return gather_task.result()

    async def resolve(self, client_id: str, cancel_event: Optional[asyncio.Event] = None) -> ClientDataBundle:
        """
        Resolve every section location for ``client_id``.

        Individual fetch failures are recorded in ``fetch_results`` and leave the
        section absent. Raises ``ClientNotFoundError`` when the user document is
        missing, ``NoContentError`` when nothing resolved, ``PermissionDeniedError``
        or ``ConnectivityError`` for store-wide failures, and
        ``ResolveCancelledError`` when ``cancel_event`` fires first.
        """
        logger.info(f"Fetching data for client: {client_id}")

        try:
            user = await self.store.get_document(document_path("users", client_id))
        except StoreError as e:
            raise self._translate(e, client_id) from e

        if user is None:
            raise ClientNotFoundError(client_id)

        if cancel_event is not None and cancel_event.is_set():
            raise ResolveCancelledError(client_id)

        plan = self._fetch_plan(client_id)
        outcomes = await self._settle_or_cancel(
            client_id, [self.store.get_document(path) for _, _, path in plan], cancel_event
        )

        bundle = ClientDataBundle(client_id=client_id, user=user)
        failures: List[BaseException] = []

        for (mapping, section_id, path), outcome in zip(plan, outcomes):
            key = f"{mapping}.{section_id}"
            if isinstance(outcome, BaseException):
                failures.append(outcome)
                bundle.fetch_results[key] = f"{FetchStatus.ERROR.value}: {outcome}"
                logger.warning(f"Error fetching {path}: {outcome}")
            elif outcome is None:
                bundle.fetch_results[key] = FetchStatus.NOT_FOUND.value
            else:
                getattr(bundle, mapping)[section_id] = outcome
                bundle.fetch_results[key] = FetchStatus.FOUND.value

        logger.debug(
            f"Fetch results for {client_id}: settings={sorted(bundle.settings)} "
            f"pages={sorted(bundle.pages)} content={sorted(bundle.content)} failures={len(failures)}"
        )

        if bundle.is_empty():
            store_failures = [f for f in failures if isinstance(f, StoreError)]
            for failure in store_failures:
                if failure.is_connectivity_failure:
                    raise self._translate(failure, client_id) from failure
            for failure in store_failures:
                if failure.is_permission_failure:
                    raise self._translate(failure, client_id) from failure
            action_logger.log_action(client_id, "resolver", "resolve", "empty")
            raise NoContentError(context={"client_id": client_id})

        action_logger.log_action(
            client_id, "resolver", "resolve", "success",
            details={"sections": sorted(bundle.section_ids()), "failures": len(failures)}
        )
        return bundle
