"""
DeskPilot Application - Single entry point for the remote-device assistant.

Usage:
    from deskpilot import DeskPilot

    app = DeskPilot("config.yaml")
    turn = await app.chat("default", "what's the battery level")
    print(turn.message)
"""

import logging
import os
import re
from typing import Any, Dict, Optional, Union

from .constants import (
    BRIDGE_TIMEOUT_SECONDS,
    DEFAULT_AGENT_NAME,
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW_SECONDS,
    DEFAULT_SENSITIVE_TOOLS,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS_DIR = "~/.deskpilot/sessions"
DEFAULT_SCHEDULES_PATH = "~/.deskpilot/schedules.json"


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    import yaml

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    return yaml.safe_load(resolved) or {}


def _validate_config(cfg: Any) -> None:
    if not isinstance(cfg, dict):
        raise ConfigError("Config must be a mapping")
    llm_cfg = cfg.get("llm") or {}
    if not llm_cfg.get("provider") or not llm_cfg.get("model"):
        raise ConfigError("Missing required config fields: 'llm.provider' and 'llm.model'")
    if not (cfg.get("bridge") or {}).get("url"):
        raise ConfigError("Missing required config field: 'bridge.url'")
    if not cfg.get("api_secret"):
        raise ConfigError("Missing required config field: 'api_secret'")


class DeskPilot:
    """
    DeskPilot application entry point.

    Sync constructor reads and validates config; async initialization is
    deferred to the first call that needs the orchestrator.

    Args:
        config: Path to a YAML configuration file, or an already-loaded dict.
        llm_client: Optional pre-built LLM client (skips litellm setup).
        bridge_client: Optional pre-built BridgeClient.

    Example:
        app = DeskPilot("config.yaml")
        await app.start()
        turn = await app.chat("default", "lock the screen")
        await app.shutdown()
    """

    def __init__(
        self,
        config: Union[str, Dict[str, Any]],
        llm_client=None,
        bridge_client=None,
    ):
        self._config = _load_config(config) if isinstance(config, str) else dict(config)
        _validate_config(self._config)
        self._initialized = False
        self._started = False

        self._llm_client = llm_client
        self._bridge = bridge_client
        self._scheduler = None
        self._pool = None
        self._hub = None
        self._orchestrator = None

    @property
    def config(self) -> dict:
        """Return a copy of the raw configuration dict."""
        return dict(self._config)

    @property
    def api_secret(self) -> str:
        return str(self._config["api_secret"])

    @property
    def agent_name(self) -> str:
        return self._config.get("agent_name") or DEFAULT_AGENT_NAME

    async def _ensure_initialized(self) -> None:
        """Lazy initialization, runs once on first use."""
        if self._initialized:
            return

        cfg = self._config
        llm_cfg = cfg["llm"]
        provider = llm_cfg["provider"]
        model = llm_cfg["model"]

        # 1. LLM client
        if self._llm_client is None:
            from .llm.base import LLMConfig
            from .llm.litellm_client import LiteLLMClient
            llm_config = LLMConfig(
                model=model,
                api_key=llm_cfg.get("api_key"),
                base_url=llm_cfg.get("base_url"),
            )
            self._llm_client = LiteLLMClient(config=llm_config, provider_name=provider)
        logger.info(f"LLM client: provider={provider}, model={model}")

        from .llm.completion import CompletionClient
        completion = CompletionClient(self._llm_client)

        # 2. Bridge
        bridge_cfg = cfg["bridge"]
        if self._bridge is None:
            from .bridge.client import BridgeClient
            self._bridge = BridgeClient(
                bridge_cfg["url"],
                auth_token=bridge_cfg.get("auth_token") or "",
                timeout=float(bridge_cfg.get("timeout") or BRIDGE_TIMEOUT_SECONDS),
            )
        logger.info(f"Bridge: {bridge_cfg['url']}")

        # 3. Storage
        storage_cfg = cfg.get("storage") or {}
        from .orchestrator.pool import FileSessionBackend, MemorySessionBackend, SessionPool
        from .triggers.store import TriggerStore
        if storage_cfg.get("memory"):
            backend = MemorySessionBackend()
            trigger_store = TriggerStore(store_path=None)
        else:
            backend = FileSessionBackend(storage_cfg.get("sessions_dir") or DEFAULT_SESSIONS_DIR)
            trigger_store = TriggerStore(storage_cfg.get("schedules_path") or DEFAULT_SCHEDULES_PATH)
        self._pool = SessionPool(backend)

        # 4. Scheduler, fan-out, orchestrator
        from .orchestrator.models import OrchestratorConfig
        from .orchestrator.orchestrator import SessionOrchestrator
        from .streaming.hub import FanOutHub
        from .triggers.service import Scheduler

        self._scheduler = Scheduler(trigger_store)
        self._hub = FanOutHub()

        rate_cfg = cfg.get("rate_limit") or {}
        sensitive = cfg.get("sensitive_tools")
        orchestrator_config = OrchestratorConfig(
            agent_name=self.agent_name,
            sensitive_tools=frozenset(sensitive) if sensitive is not None else DEFAULT_SENSITIVE_TOOLS,
            vision=bool(llm_cfg.get("vision", True)),
            rate_limit_max_requests=int(rate_cfg.get("max_requests", DEFAULT_RATE_LIMIT)),
            rate_limit_window_seconds=float(rate_cfg.get("window_seconds", DEFAULT_RATE_WINDOW_SECONDS)),
        )
        self._orchestrator = SessionOrchestrator(
            completion=completion,
            bridge=self._bridge,
            scheduler=self._scheduler,
            pool=self._pool,
            hub=self._hub,
            config=orchestrator_config,
        )

        self._initialized = True
        logger.info("DeskPilot initialized")

    @property
    def orchestrator(self):
        return self._orchestrator

    async def get_orchestrator(self):
        await self._ensure_initialized()
        return self._orchestrator

    async def start(self) -> None:
        """Initialize and start the scheduler's timer loop."""
        await self._ensure_initialized()
        if not self._started:
            await self._scheduler.start()
            self._started = True

    async def shutdown(self) -> None:
        """Shut down the application, closing all connections."""
        if not self._initialized:
            return
        try:
            if self._scheduler:
                await self._scheduler.stop()
            if self._pool:
                await self._pool.close()
            if self._bridge:
                await self._bridge.close()
            if self._llm_client:
                await self._llm_client.close()
        except Exception as e:
            logger.warning(f"Error during shutdown: {e}")
        finally:
            self._initialized = False
            self._started = False
            self._llm_client = None
            self._bridge = None
            self._scheduler = None
            self._pool = None
            self._hub = None
            self._orchestrator = None
            logger.info("DeskPilot shut down")

    # ── Public API methods ──

    async def chat(self, session_id: str, message: str):
        await self._ensure_initialized()
        return await self._orchestrator.chat(session_id, message)

    async def execute(self, session_id: str, tool: str, args: Optional[Dict[str, Any]] = None):
        await self._ensure_initialized()
        return await self._orchestrator.execute_tool(session_id, tool, args)

    async def reset(self, session_id: str) -> int:
        await self._ensure_initialized()
        return await self._orchestrator.reset(session_id)
