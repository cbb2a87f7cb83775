"""LittleWatch console monitor.

Run locally:
    python -m littlewatch.main

Uses the session stored at ``LITTLEWATCH_SESSION_STORE_PATH`` and logs the
rendered vitals after every update until interrupted.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from littlewatch.api.auth import UnauthorizedHandler
from littlewatch.api.client import LittleWatchClient
from littlewatch.config import Settings, get_settings
from littlewatch.dashboard import VitalsDashboard
from littlewatch.realtime.channel import RealtimeChannel
from littlewatch.session.store import SessionStore
from littlewatch.vitals.projection import VitalsSnapshot, VitalsView

logger = logging.getLogger("littlewatch")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def format_view(view: VitalsView) -> str:
    parts = [
        f"HR {view.heart_rate.display} {view.heart_rate.unit} ({view.heart_rate.label})",
        f"Temp {view.temperature.display} {view.temperature.unit} ({view.temperature.label})",
        f"SpO2 {view.oxygen_saturation.display}{view.oxygen_saturation.unit} "
        f"({view.oxygen_saturation.label})",
        f"movement={view.movement}",
        f"battery={view.battery}",
        "connected" if view.device_connected else "offline",
    ]
    if view.has_alerts:
        parts.append("ALERT")
    return " | ".join(parts)


async def run(settings: Settings) -> int:
    store = SessionStore(settings.session_store_path)
    session = store.get()
    if session is None:
        logger.error("No session stored at %s; log in first", store.path)
        return 1
    if session.is_expired():
        logger.error("Stored session expired at %s; log in again", session.token_expires_at)
        store.clear()
        return 1

    stopped = asyncio.Event()

    def on_logout(reason: str) -> None:
        logger.error("Session ended (%s); log in again", reason)
        stopped.set()

    handler = UnauthorizedHandler(store, on_logout=on_logout)
    async with LittleWatchClient(settings, session=session, unauthorized=handler) as api:
        dashboard = VitalsDashboard(api, RealtimeChannel(settings), store, settings=settings)

        def on_change(_: VitalsSnapshot) -> None:
            logger.info(format_view(dashboard.projection.render()))

        remove_listener = dashboard.projection.add_listener(on_change)
        try:
            await dashboard.load()
            if handler.logged_out:
                return 1
            if dashboard.error:
                logger.error(dashboard.error)
                return 1
            if dashboard.device_serial is None:
                logger.warning("No band linked to this account")
                return 0
            await stopped.wait()
        finally:
            remove_listener()
            await dashboard.close()
    return 1 if handler.logged_out else 0


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    try:
        code = asyncio.run(run(settings))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
