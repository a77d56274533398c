"""
Dispatcher - top-level entry point of the protocol.

Flow:
1. Build a Message (fresh id, merged options)
2. Parse "domain.operation"
3. Resolve capability and operation via the registry
4. Run the operation through timeout + retry
5. Normalize success / failure into an envelope

dispatch() never raises, except NotInitializedError when called before init().
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional

from csop.capabilities import create_default_capabilities
from csop.core.capability import Capability
from csop.core.capability_registry import CapabilityRegistry
from csop.core.config import PROTOCOL_VERSION, Settings, load_settings
from csop.core.envelope import error_from_exception, error_response, ok_response
from csop.core.errors import ErrorCode, NotInitializedError
from csop.core.message import Message, MessageOptions, parse_action
from csop.core.observability import get_logger, reset_message_context, set_message_context
from csop.core.timeout_policy import SleepFn, TimingCallback, run_with_retries
from csop.core.validation import validate_config

logger = get_logger("dispatcher")


class Dispatcher:

    def __init__(
        self,
        registry: Optional[CapabilityRegistry] = None,
        settings: Optional[Settings] = None,
        sleep: SleepFn = asyncio.sleep,
        timing_cb: Optional[TimingCallback] = None,
        cancel_on_timeout: bool = False,
    ):
        self.version = PROTOCOL_VERSION
        self.registry = registry or CapabilityRegistry()
        self.settings = settings or load_settings()
        self.initialized = False
        self._sleep = sleep
        self._timing_cb = timing_cb
        self._cancel_on_timeout = cancel_on_timeout
        self._default_options = MessageOptions(
            timeout_ms=self.settings.default_timeout_ms,
            max_retries=self.settings.default_max_retries,
        )

    async def init(
        self,
        config: Optional[Dict[str, Any]] = None,
        capabilities: Optional[Mapping[str, Capability]] = None,
    ) -> None:
        """
        Initialize built-in and extra capabilities, then register them.

        Each capability receives config[<domain>] in its init(). Extra
        capabilities replace built-ins with the same domain.
        """
        if self.initialized:
            logger.warning("Dispatcher already initialized")
            return

        config = validate_config(config)
        logger.info("CSOP v%s initializing...", self.version)

        to_install: Dict[str, Capability] = create_default_capabilities()
        to_install.update(capabilities or {})

        storage_cfg = dict(config.get("storage") or {})
        storage_cfg.setdefault("db_path", str(self.settings.local_db_path))
        config = {**config, "storage": storage_cfg}

        for domain, capability in to_install.items():
            await capability.init(config.get(domain))
            self.register(domain, capability)

        self.initialized = True
        logger.info("CSOP ready: %s", ", ".join(self.registry.domains()))

    def register(self, domain: str, capability: Capability) -> None:
        self.registry.register(domain, capability)

    def get_capability(self, domain: str) -> Optional[Capability]:
        return self.registry.lookup(domain)

    def info(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "initialized": self.initialized,
            "capabilities": self.registry.domains(),
        }

    async def dispatch(
        self,
        action: str,
        payload: Optional[Dict[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Route an action to its capability operation.

        Args:
            action: "domain.operation"
            payload: operation payload
            options: {"timeout_ms", "max_retries"} overriding defaults

        Returns:
            Success or error envelope.

        Raises:
            NotInitializedError: if init() has not completed.
        """
        if not self.initialized:
            raise NotInitializedError("Dispatcher not initialized. Call init() first.")

        payload = payload if payload is not None else {}
        options_error = None
        try:
            merged = self._default_options.merge(options)
        except ValueError as exc:
            merged = self._default_options
            options_error = str(exc)
        message = Message(action=action, payload=payload, options=merged)

        token = set_message_context(message.id)
        try:
            return await self._route(message, options_error)
        finally:
            reset_message_context(token)

    async def _route(self, message: Message, options_error: Optional[str] = None) -> Dict[str, Any]:
        logger.debug("Dispatching: %s", message.action)

        parsed = parse_action(message.action)
        if parsed is None:
            return error_response(
                message.id, ErrorCode.INVALID_ACTION.value,
                f'Action must be in format "domain.operation", got "{message.action}"',
            )
        domain, operation = parsed

        capability = self.registry.lookup(domain)
        if capability is None:
            return error_response(
                message.id, ErrorCode.CAPABILITY_NOT_FOUND.value,
                f'No capability registered for domain "{domain}"',
            )

        handler = capability.get_operation(operation)
        if handler is None:
            return error_response(
                message.id, ErrorCode.OPERATION_NOT_FOUND.value,
                f'Operation "{operation}" not found in capability "{domain}"',
            )

        # Structural errors above take precedence over bad options.
        if options_error is not None:
            return error_response(message.id, ErrorCode.VALIDATION_ERROR.value, options_error)

        try:
            result, duration_ms = await run_with_retries(
                handler,
                message.payload,
                timeout_ms=message.options.timeout_ms,
                max_retries=message.options.max_retries,
                label=message.action,
                sleep=self._sleep,
                timing_cb=self._timing_cb,
                cancel_on_timeout=self._cancel_on_timeout,
            )
        except Exception as exc:
            logger.error("Failed: %s (%s)", message.action, exc)
            return error_from_exception(message.id, exc)

        logger.info("Success: %s (%dms)", message.action, duration_ms)
        return ok_response(message.id, result, duration_ms)
