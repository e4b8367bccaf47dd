import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from functools import partial
from typing import Awaitable, Callable, Iterable, Optional

from papelaria.logging_config import LoggerAdapter, get_logger
from papelaria.models import InboundEvent, SessionState, TimerHandle
from papelaria.services import messages
from papelaria.services.alert_service import OperatorAlerts
from papelaria.services.catalog import Catalog, CatalogEntry
from papelaria.services.gate_service import GateChain, RejectionReason
from papelaria.services.gateway_service import Transport
from papelaria.services.intent_service import ClassifiedIntent, Intent, classify
from papelaria.services.media_service import IntakeResult, IntakeStatus, MediaIntake
from papelaria.services.session_store import SessionStore
from papelaria.services.state_machine import (
    ContactState,
    await_upload,
    clear_follow_ups,
    complete_upload,
    drop_follow_up,
    end_handoff,
    start_handoff,
    state_of,
)
from papelaria.services.timer_service import Clock, TimerService

logger = get_logger("session_engine")


@dataclass
class Step:
    """One transition: next session plus replies; notices run after the lock is released."""

    session: SessionState
    replies: list[str] = field(default_factory=list)
    action: str = "noop"
    notices: list[Callable[[], Awaitable[bool]]] = field(default_factory=list)


@dataclass(frozen=True)
class EngineOutcome:
    contact_id: str
    admitted: bool
    state: Optional[ContactState] = None
    rejection: Optional[RejectionReason] = None
    intent: Optional[Intent] = None
    action: str = ""
    replies: tuple[str, ...] = ()


class SessionEngine:
    """Per-contact conversation engine.

    Every inbound event and every fired timer for a contact runs under that
    contact's store lock, so transitions and replies never interleave.
    """

    def __init__(
        self,
        *,
        catalog: Catalog,
        store: SessionStore,
        gates: GateChain,
        transport: Transport,
        intake: MediaIntake,
        clock: Clock,
        timers: TimerService,
        alerts: OperatorAlerts,
        pix_key: str,
        handoff_delay: timedelta = timedelta(minutes=15),
        pickup_delay: timedelta = timedelta(minutes=5),
        feedback_delay: timedelta = timedelta(minutes=6),
    ):
        self.catalog = catalog
        self.store = store
        self.gates = gates
        self.transport = transport
        self.intake = intake
        self.clock = clock
        self.timers = timers
        self.alerts = alerts
        self.pix_key = pix_key
        self.handoff_delay = handoff_delay
        self.pickup_delay = pickup_delay
        self.feedback_delay = feedback_delay

    async def handle_event(self, event: InboundEvent) -> EngineOutcome:
        admission = await self.gates.admit(event)
        if not admission.admitted:
            return await self._reject(event, admission.reason)

        intent = classify(event.text, event.has_attachment, self.catalog)
        log = LoggerAdapter(logger, {"contact_id": event.contact_id, "message_id": event.message_id})

        async with self.store.lock(event.contact_id):
            session = self.store.get_or_create(event.contact_id, self.clock.now())
            step = await self._dispatch(session, event, intent)
            updated = dataclasses.replace(step.session, last_activity=self.clock.now())
            stored = self.store.replace(session, updated)
            log.info(
                "Event handled",
                context={"intent": intent.kind.value, "action": step.action, "state": state_of(stored).value},
            )
            await self._send_all(event.contact_id, step.replies)

        for notify in step.notices:
            await notify()

        return EngineOutcome(
            contact_id=event.contact_id,
            admitted=True,
            state=state_of(stored),
            intent=intent.kind,
            action=step.action,
            replies=tuple(step.replies),
        )

    async def _reject(self, event: InboundEvent, reason: RejectionReason) -> EngineOutcome:
        """Drop a rejected event; only outside-hours events get a reply.

        The hours notice is not sent to a contact in human support: the rule that
        nothing but the handoff-ended notice reaches such a contact takes
        precedence over the one-notice-per-event rule for closed hours.
        """
        replies: list[str] = []
        session = self.store.get(event.contact_id)

        if reason is RejectionReason.OUTSIDE_HOURS:
            async with self.store.lock(event.contact_id):
                session = self.store.get(event.contact_id)
                if session is not None and session.handoff_active:
                    logger.info(
                        "Outside-hours notice suppressed: contact is in human support",
                        extra={"context": {"contact_id": event.contact_id}},
                    )
                else:
                    replies.append(messages.MSG_OUTSIDE_HOURS)
                    await self._send_all(event.contact_id, replies)

        return EngineOutcome(
            contact_id=event.contact_id,
            admitted=False,
            state=state_of(session) if session is not None else None,
            rejection=reason,
            action="rejected",
            replies=tuple(replies),
        )

    async def _dispatch(self, session: SessionState, event: InboundEvent, intent: ClassifiedIntent) -> Step:
        current = state_of(session)
        if current is ContactState.HANDOFF_ACTIVE:
            return self._on_handoff(session, event, intent)
        if current is ContactState.AWAITING_UPLOAD:
            return await self._on_awaiting_upload(session, event, intent)
        return await self._on_idle(session, event, intent)

    def _on_handoff(self, session: SessionState, event: InboundEvent, intent: ClassifiedIntent) -> Step:
        if intent.kind is Intent.MENU_CHOICE and intent.value == self.catalog.handoff_option:
            return Step(self._arm_handoff(session), action="handoff_rearmed")

        logger.info(
            "Message received during human support",
            extra={"context": {"contact_id": event.contact_id, "intent": intent.kind.value}},
        )
        return Step(session, action="dropped_during_handoff")

    async def _on_awaiting_upload(self, session: SessionState, event: InboundEvent, intent: ClassifiedIntent) -> Step:
        # Greetings and menu picks do not reset a pending request.
        if intent.kind is not Intent.MEDIA_UPLOAD:
            return Step(session, [messages.MSG_INVALID_OPTION], "invalid_option")

        entry = self.catalog.entry_for_kind(session.awaiting_upload)
        allowed = entry.allowed_types if entry else self.catalog.default_allowed_types
        return await self._on_upload(session, event, allowed, entry)

    async def _on_idle(self, session: SessionState, event: InboundEvent, intent: ClassifiedIntent) -> Step:
        if intent.kind is Intent.GREETING:
            session = self._reset_follow_ups(session)
            replies = [messages.greeting(event.sender_name, self.clock.now()), self.catalog.render_menu()]
            return Step(session, replies, "greeting")

        if intent.kind is Intent.SERVICE_KEYWORD:
            return Step(session, [self._service_answer(str(intent.value))], "service_answer")

        if intent.kind is Intent.MENU_CHOICE:
            return self._on_menu_choice(session, event, int(intent.value))

        if intent.kind is Intent.MEDIA_UPLOAD:
            return await self._on_upload(session, event, self.catalog.default_allowed_types, None)

        if intent.kind is Intent.FEEDBACK:
            logger.info("Feedback received", extra={"context": {"contact_id": event.contact_id, "value": intent.value}})
            return Step(session, [messages.feedback_thanks(str(intent.value))], "feedback")

        return Step(session, [messages.MSG_UNRECOGNIZED], "unrecognized")

    def _on_menu_choice(self, session: SessionState, event: InboundEvent, number: int) -> Step:
        session = self._reset_follow_ups(session)

        if number == self.catalog.handoff_option:
            minutes = f"{self.handoff_delay.total_seconds() / 60:g}"
            step = Step(self._arm_handoff(session), [messages.MSG_HANDOFF_STARTED.format(minutes=minutes)], "handoff_started")
            step.notices.append(partial(self.alerts.handoff_requested, event.contact_id, event.sender_name))
            return step

        if number == self.catalog.close_option:
            return Step(session, [messages.MSG_CLOSED], "closed")

        entry = self.catalog.entry(number)
        if entry is None:
            return Step(session, [messages.MSG_UNRECOGNIZED], "unrecognized")
        if entry.requires_upload:
            return Step(await_upload(session, entry.kind), [entry.reply], "awaiting_upload")
        return Step(session, [entry.reply], "menu_info")

    async def _on_upload(
        self,
        session: SessionState,
        event: InboundEvent,
        allowed_types: Iterable[str],
        entry: Optional[CatalogEntry],
    ) -> Step:
        allowed_types = list(allowed_types)
        result = await self._run_intake(event, allowed_types)

        if result.accepted:
            session = self._reset_follow_ups(session)
            session = complete_upload(session, self._schedule_follow_ups(event.contact_id))
            replies = [messages.MSG_FILE_RECEIVED]
            if entry is not None:
                if entry.confirm_on_upload:
                    replies.append(messages.MSG_FILE_PROCESSED)
                replies.append(messages.MSG_PAYMENT.format(pix_key=self.pix_key))
            return Step(session, replies, "upload_accepted")

        step = Step(session, [self._rejection_text(result, allowed_types)], f"upload_{result.status.value}")
        if result.status is IntakeStatus.STORAGE_FAILURE:
            step.notices.append(partial(self.alerts.upload_failed, event.contact_id, result.error))
        return step

    async def _run_intake(self, event: InboundEvent, allowed_types: list[str]) -> IntakeResult:
        attachment = event.attachment
        if attachment is None:
            fetched = await self.transport.fetch_attachment(event.message_id)
            if not fetched.ok:
                logger.warning(
                    "Attachment download failed",
                    extra={"context": {"contact_id": event.contact_id, **fetched.as_context()}},
                )
                return IntakeResult(IntakeStatus.UNPARSEABLE, error=fetched.error)
            attachment = fetched.value
        return self.intake.intake(attachment, allowed_types, event.message_id)

    def _rejection_text(self, result: IntakeResult, allowed_types: list[str]) -> str:
        types = messages.describe_types(allowed_types)
        if result.status is IntakeStatus.AUDIO:
            return messages.MSG_AUDIO_REJECTED.format(types=types)
        if result.status is IntakeStatus.UNSUPPORTED:
            return messages.MSG_INVALID_FORMAT.format(types=types)
        if result.status is IntakeStatus.UNPARSEABLE:
            return messages.MSG_UNREADABLE_FILE
        return messages.MSG_PROCESSING_FAILED

    def _service_answer(self, key: str) -> str:
        for service in self.catalog.services:
            if service.key == key:
                return service.answer
        return messages.MSG_UNRECOGNIZED

    # --- timers ---

    def _arm_handoff(self, session: SessionState) -> SessionState:
        if session.handoff_timer is not None:
            self.timers.cancel(session.handoff_timer)
        session = self._reset_follow_ups(session)
        handle = self.timers.schedule_once(
            self.handoff_delay, partial(self._on_handoff_expired, session.contact_id), label="handoff"
        )
        return start_handoff(session, handle)

    def _schedule_follow_ups(self, contact_id: str) -> frozenset[TimerHandle]:
        shop_name = self.catalog.shop_name
        pickup = self.timers.schedule_once(
            self.pickup_delay,
            partial(self._on_follow_up, contact_id, messages.MSG_PICKUP_READY.format(shop_name=shop_name)),
            label="pickup_notice",
        )
        feedback = self.timers.schedule_once(
            self.feedback_delay,
            partial(self._on_follow_up, contact_id, messages.MSG_FEEDBACK_REQUEST.format(shop_name=shop_name)),
            label="feedback_request",
        )
        return frozenset({pickup, feedback})

    def _reset_follow_ups(self, session: SessionState) -> SessionState:
        if not session.pending_follow_ups:
            return session
        for handle in session.pending_follow_ups:
            self.timers.cancel(handle)
        return clear_follow_ups(session)

    async def _on_handoff_expired(self, contact_id: str, handle: TimerHandle) -> None:
        async with self.store.lock(contact_id):
            session = self.store.get(contact_id)
            if session is None or not session.handoff_active or session.handoff_timer != handle:
                logger.debug("Stale handoff timer ignored", extra={"context": {"contact_id": contact_id}})
                return
            self.store.replace(session, end_handoff(session))
            logger.info("Human support ended", extra={"context": {"contact_id": contact_id}})
            await self._send_all(contact_id, [messages.MSG_HANDOFF_ENDED])

    async def _on_follow_up(self, contact_id: str, text: str, handle: TimerHandle) -> None:
        async with self.store.lock(contact_id):
            session = self.store.get(contact_id)
            if session is None or handle not in session.pending_follow_ups or session.handoff_active:
                logger.debug("Stale follow-up ignored", extra={"context": {"contact_id": contact_id}})
                return
            self.store.replace(session, drop_follow_up(session, handle))
            await self._send_all(contact_id, [text])

    async def _send_all(self, contact_id: str, replies: list[str]) -> None:
        for text in replies:
            result = await self.transport.send_reply(contact_id, text)
            if not result.ok:
                logger.warning(
                    "Reply not delivered",
                    extra={"context": {"contact_id": contact_id, **result.as_context()}},
                )

    def shutdown(self) -> int:
        """Cancel every pending timer; returns how many were still running."""
        canceled = self.timers.cancel_all()
        logger.info("Engine stopped", extra={"context": {"timers_canceled": canceled, "sessions": len(self.store)}})
        return canceled
