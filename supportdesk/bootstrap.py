"""
Service Wiring
==============

Creates and wires every service of the support desk.

The FastAPI lifespan builds one ``SupportDeskServices`` at startup and
stores it on ``app.state``; tests build their own around an in-memory
store and a fixed clock.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from supportdesk.assignment.application import AgentService, CapacityTracker
from supportdesk.assignment.domain import AgentSelector
from supportdesk.config import Settings, settings as default_settings
from supportdesk.infrastructure.memory import InMemoryStore
from supportdesk.infrastructure.unit_of_work import in_memory_uow_factory, sqlalchemy_uow_factory
from supportdesk.lifecycle.application import EventDispatcher, ITicketNotifier, TicketLifecycleService
from supportdesk.lifecycle.infrastructure import LoggingNotifier, WebhookNotifier
from supportdesk.shared.application import UnitOfWorkFactory
from supportdesk.shared.infrastructure.locks import KeyedLock
from supportdesk.shared.infrastructure.logging import get_logger
from supportdesk.sla.application import SLAMonitorService
from supportdesk.sla.domain import SLAPolicy
from supportdesk.sla.infrastructure import SLAScheduler
from supportdesk.triage.application import AIUpdateGateway, ITicketClassifier, TicketIntakeService
from supportdesk.triage.infrastructure import KeywordTicketClassifier, LLMTicketClassifier

logger = get_logger(__name__)


@dataclass
class SupportDeskServices:
    """Everything the HTTP layer and the background jobs talk to."""
    settings: Settings
    uow_factory: UnitOfWorkFactory
    notifier: ITicketNotifier
    dispatcher: EventDispatcher
    capacity: CapacityTracker
    lifecycle: TicketLifecycleService
    agents: AgentService
    classifier: ITicketClassifier
    intake: TicketIntakeService
    ai_gateway: AIUpdateGateway
    sla_monitor: SLAMonitorService
    scheduler: SLAScheduler

    async def shutdown(self, drain_timeout: float = 5.0) -> None:
        """Stop the sweep, flush pending notifications and close clients."""
        await self.scheduler.stop()
        await self.dispatcher.drain(timeout=drain_timeout)
        if isinstance(self.notifier, WebhookNotifier):
            await self.notifier.close()


def create_classifier(config: Settings) -> ITicketClassifier:
    """Pick the classifier named by ``classifier_backend``."""
    if config.classifier_backend == "llm":
        from supportdesk.infrastructure.llm import OpenAILLMClient

        llm_client = OpenAILLMClient(
            api_key=config.openai_api_key,
            model=config.llm_model,
            base_url=config.llm_base_url,
            timeout_seconds=config.classifier_timeout_seconds
        )
        logger.info("Using LLM classifier", extra={"model": config.llm_model})
        return LLMTicketClassifier(llm_client)
    return KeywordTicketClassifier()


def create_notifier(config: Settings) -> ITicketNotifier:
    """Webhook delivery when a URL is configured, the log otherwise."""
    if config.webhook_url:
        return WebhookNotifier(
            url=config.webhook_url,
            timeout_seconds=config.webhook_timeout_seconds,
            max_retries=config.webhook_max_retries
        )
    return LoggingNotifier()


def build_services(
    config: Optional[Settings] = None,
    uow_factory: Optional[UnitOfWorkFactory] = None,
    store: Optional[InMemoryStore] = None,
    classifier: Optional[ITicketClassifier] = None,
    notifier: Optional[ITicketNotifier] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> SupportDeskServices:
    """
    Wire the services together.

    Args:
        config: Settings to build from (defaults to the process settings)
        uow_factory: Overrides the unit of work chosen from the settings
        store: In-memory store to share, when running without a database
        classifier: Overrides the configured classifier
        notifier: Overrides the configured notifier
        clock: Source of "now" for every service
    """
    config = config or default_settings

    if uow_factory is None:
        if config.use_in_memory_store or store is not None:
            uow_factory = in_memory_uow_factory(store)
        else:
            uow_factory = sqlalchemy_uow_factory()

    notifier = notifier or create_notifier(config)
    classifier = classifier or create_classifier(config)
    policy = SLAPolicy.from_settings(config)

    dispatcher = EventDispatcher(notifier)
    capacity = CapacityTracker(uow_factory, KeyedLock("agent"))
    lifecycle = TicketLifecycleService(
        uow_factory,
        capacity,
        dispatcher,
        selector=AgentSelector(),
        policy=policy,
        ticket_locks=KeyedLock("ticket"),
        clock=clock
    )

    return SupportDeskServices(
        settings=config,
        uow_factory=uow_factory,
        notifier=notifier,
        dispatcher=dispatcher,
        capacity=capacity,
        lifecycle=lifecycle,
        agents=AgentService(uow_factory, capacity, config.default_agent_max_load, clock=clock),
        classifier=classifier,
        intake=TicketIntakeService(
            lifecycle,
            classifier,
            timeout_seconds=config.classifier_timeout_seconds,
            confidence_threshold=config.classification_confidence_threshold
        ),
        ai_gateway=AIUpdateGateway(lifecycle),
        sla_monitor=SLAMonitorService(lifecycle, policy, clock=clock),
        scheduler=SLAScheduler(interval_seconds=config.sla_sweep_interval_seconds)
    )
