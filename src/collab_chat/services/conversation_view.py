"""The mounted conversation view of one client session."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from collab_chat.application.exceptions import ChannelError, HistoryFetchError, NotFoundError
from collab_chat.application.ports.message_store import DurableMessageStore
from collab_chat.application.ports.profiles import ProfileLookup
from collab_chat.application.ports.ui import Composer
from collab_chat.domain.entities.message import ConfirmedMessage, Message
from collab_chat.domain.entities.profile import Profile
from collab_chat.domain.entities.target import ConversationTarget, DirectTarget
from collab_chat.domain.value_objects.enums import DeliveryOutcome, ViewState
from collab_chat.domain.value_objects.keys import ConversationKey
from collab_chat.services.conversation_store import ConversationStore
from collab_chat.services.deduplicator import DeliveryDeduplicator
from collab_chat.services.send_coordinator import OptimisticSendCoordinator, SendResult
from collab_chat.services.subscription_manager import OnMessage, SubscriptionManager

logger = logging.getLogger(__name__)

OnViewChange = Callable[["ConversationView"], None]


class ConversationView:
    """Opens, switches and closes the conversation a session is looking at.

    Each ``open`` bumps a generation counter; history that resolves for an
    older generation is dropped. When the push channel cannot be opened or
    drops, the view keeps working by re-fetching every ``poll_interval``
    seconds until it is closed or re-opened.
    """

    def __init__(
        self,
        *,
        user_id: str,
        store: ConversationStore,
        deduplicator: DeliveryDeduplicator,
        coordinator: OptimisticSendCoordinator,
        subscriptions: SubscriptionManager,
        message_store: DurableMessageStore,
        profiles: ProfileLookup | None = None,
        poll_interval: float = 30.0,
        on_change: OnViewChange | None = None,
        on_message: OnMessage | None = None,
    ) -> None:
        self._user_id = user_id
        self._store = store
        self._deduplicator = deduplicator
        self._coordinator = coordinator
        self._subscriptions = subscriptions
        self._message_store = message_store
        self._profiles = profiles
        self._poll_interval = poll_interval
        self._on_change = on_change
        self._on_message = on_message

        self._target: ConversationTarget | None = None
        self._generation = 0
        self._poll_task: asyncio.Task[None] | None = None
        self._lookups: set[asyncio.Task[None]] = set()

        self.state = ViewState.IDLE
        self.degraded = False
        self.error: str | None = None
        self.profiles: dict[str, Profile] = {}

    @property
    def target(self) -> ConversationTarget | None:
        return self._target

    @property
    def active_key(self) -> ConversationKey | None:
        return self._target.key if self._target is not None else None

    def messages(self) -> list[Message]:
        key = self.active_key
        return self._store.get_messages(key) if key is not None else []

    def profile_for(self, user_id: str) -> Profile:
        return self.profiles.get(user_id) or Profile.unknown(user_id)

    # -- lifecycle ----------------------------------------------------------

    async def open(self, target: ConversationTarget) -> ViewState:
        await self._teardown()
        self._generation += 1
        generation = self._generation
        self._target = target
        self._set_state(ViewState.LOADING)

        try:
            await self._subscriptions.subscribe(target, self._on_push, self._on_drop)
        except ChannelError as exc:
            logger.warning(
                "Push channel unavailable for %s, falling back to polling: %s",
                target.key, exc.detail,
            )
            if generation == self._generation:
                self._degrade()

        if generation != self._generation:
            return self.state

        if isinstance(target, DirectTarget):
            await self._load_profiles(generation, [target.user_id, target.peer_id])
        await self._load(generation)
        return self.state

    async def retry(self) -> ViewState:
        if self._target is None:
            raise NotFoundError("No conversation is open")
        self._set_state(ViewState.LOADING)
        await self._load(self._generation)
        return self.state

    async def refresh(self) -> None:
        if self._target is not None:
            await self._load(self._generation)

    async def close(self) -> None:
        await self._teardown()
        self._generation += 1
        self._target = None
        self._set_state(ViewState.IDLE)

    async def send(self, content: str, composer: Composer) -> SendResult:
        if self._target is None:
            raise NotFoundError("No conversation is open")
        return await self._coordinator.send(self._target, self._user_id, content, composer)

    # -- internals ----------------------------------------------------------

    async def _load(self, generation: int) -> None:
        target = self._target
        if target is None:
            return
        try:
            history = await self._message_store.query(target)
        except HistoryFetchError as exc:
            if generation != self._generation:
                return
            logger.warning("History fetch for %s failed: %s", target.key, exc.detail)
            self.error = exc.detail or "Could not load messages"
            self._set_state(ViewState.ERROR)
            return
        except Exception:
            if generation != self._generation:
                return
            logger.exception("History fetch for %s failed", target.key)
            self.error = "Could not load messages"
            self._set_state(ViewState.ERROR)
            return

        if generation != self._generation:
            logger.debug("Discarding stale history for %s", target.key)
            return

        self._store.ensure(target.key)
        for message in history:
            if message.sender is not None:
                self.profiles.setdefault(message.sender_id, message.sender)
            self._deduplicator.deliver(message)
        self.error = None
        self._set_state(ViewState.READY)

    async def _load_profiles(self, generation: int, user_ids: list[str]) -> None:
        if self._profiles is None:
            return
        try:
            found = await self._profiles.get_profiles(user_ids)
        except Exception:
            logger.exception("Profile lookup for %s failed", user_ids)
            return
        if generation == self._generation:
            self.profiles.update(found)

    def _on_push(self, outcome: DeliveryOutcome, message: ConfirmedMessage) -> None:
        if outcome != DeliveryOutcome.DUPLICATE and message.sender_id not in self.profiles:
            self._lookup_sender(message.sender_id)
        if self._on_message is not None:
            self._on_message(outcome, message)

    def _lookup_sender(self, user_id: str) -> None:
        if self._profiles is None:
            return
        task = asyncio.create_task(self._fetch_profile(user_id, self._generation))
        self._lookups.add(task)
        task.add_done_callback(self._lookups.discard)

    async def _fetch_profile(self, user_id: str, generation: int) -> None:
        try:
            profile = await self._profiles.get_profile(user_id)  # type: ignore[union-attr]
        except Exception:
            logger.exception("Profile lookup for %s failed", user_id)
            return
        if profile is not None and generation == self._generation:
            self.profiles[user_id] = profile
            self._notify()

    def _on_drop(self) -> None:
        logger.warning("Push channel for %s dropped, falling back to polling", self.active_key)
        self._degrade()

    def _degrade(self) -> None:
        self.degraded = True
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(
                self._poll(self._generation), name=f"poll-{self.active_key}",
            )
        self._notify()

    async def _poll(self, generation: int) -> None:
        """Re-fetch until the push channel can be opened again."""
        while generation == self._generation:
            await asyncio.sleep(self._poll_interval)
            if generation != self._generation:
                return
            await self.refresh()
            if await self._resubscribe(generation):
                return

    async def _resubscribe(self, generation: int) -> bool:
        target = self._target
        if target is None or generation != self._generation:
            return False
        try:
            await self._subscriptions.subscribe(target, self._on_push, self._on_drop)
        except ChannelError:
            return False
        if generation != self._generation:
            return False
        logger.info("Push channel for %s restored", target.key)
        self.degraded = False
        self._notify()
        # rows inserted between the last poll and the new subscription
        await self.refresh()
        return True

    async def _teardown(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        for task in list(self._lookups):
            task.cancel()
        await self._subscriptions.close()
        self.degraded = False
        self.error = None

    def _set_state(self, state: ViewState) -> None:
        self.state = state
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
