"""Wires the default collaborators into a ready-to-use runtime.

Used by the CLI and by the FastAPI lifespan. Tests build their own
components from fakes instead.
"""

import logging
from typing import Optional

from tether.callbacks import LoggingCallback
from tether.config import TetherConfig, config as default_config
from tether.execution import DirectStrategy, LoopStrategy, SelfHealingExecutor, StepRunner
from tether.interfaces import KeyedStore
from tether.llm.client import LLMClient
from tether.orchestrator import CallOrchestrator
from tether.store import MemoryStore, RedisStore
from tether.synthesis import LLMConfigSynthesizer
from tether.transform import TransformFacade
from tether.transport import HttpTransport
from tether.validation import LLMResponseValidator
from tether.webhook import HttpWebhookNotifier

logger = logging.getLogger(__name__)


class Runtime:
    """The wired components. Attributes mirror the constructor arguments."""

    def __init__(
        self,
        store: KeyedStore,
        executor: SelfHealingExecutor,
        steps: StepRunner,
        orchestrator: CallOrchestrator,
    ):
        self.store = store
        self.executor = executor
        self.steps = steps
        self.orchestrator = orchestrator


def build_store(cfg: TetherConfig) -> KeyedStore:
    if cfg.store_backend == "redis":
        return RedisStore(config=cfg)
    if cfg.store_backend != "memory":
        logger.warning(f"[Runtime] Unknown store_backend '{cfg.store_backend}', using memory")
    return MemoryStore()


def build_runtime(cfg: Optional[TetherConfig] = None, store: Optional[KeyedStore] = None) -> Runtime:
    """Build executor, strategies and orchestrator around the default collaborators."""
    cfg = cfg or default_config
    store = store or build_store(cfg)
    callbacks = [LoggingCallback()]

    llm = LLMClient(config=cfg)
    transform = TransformFacade()
    synthesizer = LLMConfigSynthesizer(llm_client=llm, config=cfg)
    executor = SelfHealingExecutor(
        transport=HttpTransport(config=cfg, transform=transform),
        synthesizer=synthesizer,
        validator=LLMResponseValidator(llm_client=llm, config=cfg),
        callbacks=callbacks,
        config=cfg,
    )
    steps = StepRunner(
        direct=DirectStrategy(executor, transform, callbacks=callbacks, config=cfg),
        loop=LoopStrategy(executor, transform, synthesizer, callbacks=callbacks, config=cfg),
    )
    orchestrator = CallOrchestrator(
        store,
        executor,
        transform=transform,
        synthesizer=synthesizer,
        webhook=HttpWebhookNotifier(config=cfg),
        callbacks=callbacks,
        config=cfg,
    )
    logger.info(f"[Runtime] Built with store={type(store).__name__}, model={cfg.default_llm_model}")
    return Runtime(store=store, executor=executor, steps=steps, orchestrator=orchestrator)
