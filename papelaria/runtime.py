"""Wiring of the engine and its collaborators for the running app."""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from papelaria.config import Settings, settings
from papelaria.services.alert_service import OperatorAlerts
from papelaria.services.catalog import load_catalog
from papelaria.services.gate_service import build_gate_chain
from papelaria.services.gateway_service import Transport, WhatsAppGateway
from papelaria.services.media_service import LocalFileStorage, MediaIntake, StorageSink
from papelaria.services.session_engine import SessionEngine
from papelaria.services.session_store import SessionStore
from papelaria.services.timer_service import AsyncioTimerService, Clock, TimerService, ZoneClock


def build_engine(
    config: Settings,
    *,
    transport: Optional[Transport] = None,
    storage: Optional[StorageSink] = None,
    clock: Optional[Clock] = None,
    timers: Optional[TimerService] = None,
    alerts: Optional[OperatorAlerts] = None,
) -> SessionEngine:
    clock = clock or ZoneClock(config.timezone)
    transport = transport or WhatsAppGateway(
        config.gateway_base_url,
        config.gateway_token,
        config.gateway_instance_id,
        timeout_seconds=config.gateway_timeout_seconds,
    )
    return SessionEngine(
        catalog=load_catalog(config),
        store=SessionStore(),
        gates=build_gate_chain(config, clock, transport),
        transport=transport,
        intake=MediaIntake(storage or LocalFileStorage(config.upload_dir), clock),
        clock=clock,
        timers=timers or AsyncioTimerService(clock),
        alerts=alerts or OperatorAlerts(config.alert_bot_token, config.alert_chat_id),
        pix_key=config.pix_key,
        handoff_delay=timedelta(minutes=config.handoff_minutes),
        pickup_delay=timedelta(minutes=config.pickup_notice_delay_minutes),
        feedback_delay=timedelta(minutes=config.feedback_request_delay_minutes),
    )


@lru_cache(maxsize=1)
def get_engine() -> SessionEngine:
    """Process-wide engine; overridden in tests via ``app.dependency_overrides``."""
    return build_engine(settings)
