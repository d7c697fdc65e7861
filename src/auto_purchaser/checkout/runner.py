"""Run one purchase attempt inside a managed automation session."""

from __future__ import annotations

import logging
from typing import Optional

from ..browser.session import AutomationSession
from ..config import PurchaserConfig
from ..models import PurchaseResult
from ..notifications.base import Notifier
from .orchestrator import CheckoutOrchestrator

LOGGER = logging.getLogger(__name__)


async def run_purchase(
    config: PurchaserConfig,
    notifier: Notifier,
    session: Optional[AutomationSession] = None,
) -> PurchaseResult:
    """Open the session, run the checkout and always tear the session down."""

    session = session or AutomationSession(config.driver)
    async with session as page:
        orchestrator = CheckoutOrchestrator(
            page,
            request=config.request,
            shipping=config.shipping,
            payment=config.payment,
            notifier=notifier,
            site=config.site,
            timing=config.timing,
        )
        result = await orchestrator.run()
    LOGGER.info("Purchase run finished with outcome %s", result.outcome.value)
    return result
