"""
DeskPilot Orchestrator - per-session actor turning chat into device actions

One chat turn:
    1. Rate-limit check (rejected turns touch nothing else)
    2. Pending action: confirm / cancel / fill, or fall through
    3. Completion call with the live tool catalog and recent history
    4. Directives: preference, schedule, actions (sensitive ones are staged
       for confirmation, contact lookups start the message flow)
    5. Optional vision description of returned screenshots
    6. History update

Every operation that touches a session runs inside ``SessionPool.session``
and therefore holds that session's lock; events are fanned out only after
the lock is released.

Example:
    orchestrator = SessionOrchestrator(
        completion=CompletionClient(llm_client),
        bridge=BridgeClient("http://localhost:3000", auth_token="secret"),
        scheduler=scheduler,
    )
    turn = await orchestrator.chat("default", "what's the battery level")
    print(turn.message)
"""

import logging
from typing import Any, Dict, List, Optional

from ..bridge.client import BridgeClient
from ..bridge.models import BridgeStatus, ToolResult
from ..constants import TOOL_SEND_MESSAGE
from ..llm.completion import CompletionClient
from ..streaming.hub import FanOutHub
from ..streaming.models import EventType, RealtimeEvent, notification_event
from ..triggers.models import ScheduledTrigger, TriggerPayload
from ..triggers.schedule import now_ms
from ..triggers.service import Scheduler
from ..triggers.when import describe_when, is_recurring, parse_when
from . import flows
from .models import ActionOutcome, ChatTurn, OrchestratorConfig, ScheduledReport
from .pending import PendingDecision, resolve_reply
from .pool import SessionPool
from .prompts import build_system_prompt
from .rate_limit import RateLimitDecision, RateLimiter
from .response_parser import EMPTY_REPLY, ScheduleDirective, parse_response
from .state import ROLE_ASSISTANT, ROLE_USER, PendingAction, ScheduleRecord, SessionState

logger = logging.getLogger(__name__)

CANCELLED_REPLY = "Cancelled."
SENT_REPLY = "Sent!"
LLM_FAILURE_REPLY = "Sorry, I couldn't reach the language model: {error}"


class SessionOrchestrator:
    """
    Central coordinator for chat turns, scheduled firings and direct tool calls.

    Args:
        completion: Completion client used for chat turns, drafts and vision.
        bridge: Tool catalog client for the execution agent.
        scheduler: Durable trigger service; its handler is set to
            ``run_scheduled``.
        pool: Session state owner (in-memory when omitted).
        hub: Real-time fan-out (a private hub when omitted).
        config: Orchestrator tuning.
    """

    def __init__(
        self,
        completion: CompletionClient,
        bridge: BridgeClient,
        scheduler: Scheduler,
        pool: Optional[SessionPool] = None,
        hub: Optional[FanOutHub] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.config = config or OrchestratorConfig()
        self._completion = completion
        self._bridge = bridge
        self._scheduler = scheduler
        self._pool = pool or SessionPool()
        self._hub = hub or FanOutHub()
        self._rate_limiter = RateLimiter(
            max_requests=self.config.rate_limit_max_requests,
            window_seconds=self.config.rate_limit_window_seconds,
        )
        self._scheduler.set_handler(self.run_scheduled)

    @property
    def pool(self) -> SessionPool:
        return self._pool

    @property
    def hub(self) -> FanOutHub:
        return self._hub

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(self, session_id: str, message: str) -> ChatTurn:
        """Handle one chat message for a session."""
        async with self._pool.session(session_id) as state:
            decision = self._rate_limiter.check(state, now_ms())
            if not decision.allowed:
                return ChatTurn.rate_limited(decision)

            turn = await self._handle_pending(state, message)
            if turn is not None:
                return turn

            return await self._run_turn(session_id, state, message)

    async def _handle_pending(self, state: SessionState, message: str) -> Optional[ChatTurn]:
        pending = state.pending_action
        if pending is None:
            return None

        decision = resolve_reply(pending, message)

        if decision == PendingDecision.EXECUTE:
            state.clear_pending()
            result = await self._bridge.invoke(pending.tool, pending.args)
            if result.success:
                reply = SENT_REPLY if pending.tool == TOOL_SEND_MESSAGE else (result.result or EMPTY_REPLY)
            else:
                reply = f"Failed: {result.error}"
            state.append_exchange(message, reply)
            logger.info(f"Confirmed pending {pending.tool} (success={result.success})")
            return ChatTurn(
                message=reply,
                actions=[ActionOutcome.from_result(pending.tool, pending.args, result)],
            )

        if decision == PendingDecision.CANCEL:
            state.clear_pending()
            state.append_exchange(message, CANCELLED_REPLY)
            logger.info(f"Cancelled pending {pending.tool}")
            return ChatTurn(message=CANCELLED_REPLY)

        if decision == PendingDecision.FILL:
            filled = state.fill_pending(message.strip())
            reply = flows.refill_prompt(filled)
            state.append_exchange(message, reply)
            return ChatTurn(message=reply)

        state.clear_pending()
        return None

    async def _run_turn(self, session_id: str, state: SessionState, message: str) -> ChatTurn:
        tools = await self._bridge.list_tools()
        system = build_system_prompt(
            tools,
            preferences=state.preferences,
            agent_name=self.config.agent_name,
            hidden_tools=self.config.hidden_tools,
        )
        messages = [m.to_dict() for m in state.recent_history(self.config.prompt_history_limit)]
        messages.append({"role": ROLE_USER, "content": message})

        try:
            raw = await self._completion.complete(system, messages)
        except Exception as e:
            logger.warning(f"Completion failed for session {session_id}: {e}")
            reply = LLM_FAILURE_REPLY.format(error=e)
            state.append_exchange(message, reply)
            return ChatTurn(message=reply, success=False)

        parsed = parse_response(raw)

        if parsed.preference:
            state.set_preference(parsed.preference.key, parsed.preference.value)
            logger.debug(f"Stored preference {parsed.preference.key!r}")

        scheduled = None
        if parsed.schedule:
            scheduled = await self._register_schedule(session_id, state, parsed.schedule)

        outcomes: List[ActionOutcome] = []
        staged: List[str] = []
        for action in parsed.actions:
            if action.tool in self.config.sensitive_tools:
                self._stage_pending(state, PendingAction(
                    tool=action.tool,
                    args=action.args,
                    context=parsed.text,
                    original_request=message,
                ))
                staged.append(action.tool)
                continue

            result = await self._bridge.invoke(action.tool, action.args)
            outcomes.append(ActionOutcome.from_result(action.tool, action.args, result))

            match = flows.match_contact_result(
                action.tool, action.args, result.success, result.result or "", message
            )
            if match is not None:
                return await self._start_message_flow(state, message, match, outcomes, scheduled)

        text = parsed.text
        if staged:
            prompt = f"Run {', '.join(staged)}? *(yes/no)*"
            text = prompt if text == EMPTY_REPLY else f"{text}\n\n{prompt}"

        description = await self._describe_images(outcomes, message)
        if description:
            text = description if text == EMPTY_REPLY else f"{text}\n\n{description}"

        state.append_exchange(message, text)
        return ChatTurn(message=text, actions=outcomes, scheduled=scheduled)

    def _stage_pending(self, state: SessionState, pending: PendingAction) -> None:
        replaced = state.set_pending(pending)
        if replaced is not None:
            logger.info(f"Pending {replaced.tool} superseded by {pending.tool}")

    async def _start_message_flow(
        self,
        state: SessionState,
        message: str,
        match: flows.ContactMatch,
        outcomes: List[ActionOutcome],
        scheduled: Optional[ScheduledReport],
    ) -> ChatTurn:
        body = match.message
        drafted = False
        if flows.wants_drafted_message(message):
            try:
                draft = await self._completion.draft_message(message)
            except Exception as e:
                logger.warning(f"Message draft failed: {e}")
                draft = ""
            if draft:
                body, drafted = draft, True

        pending = flows.build_send_pending(match, message, body)
        self._stage_pending(state, pending)

        if pending.missing_field:
            reply = flows.clarification_prompt(match)
        else:
            reply = flows.confirmation_prompt(match, body, drafted=drafted)
        state.append_exchange(message, reply)
        return ChatTurn(message=reply, actions=outcomes, scheduled=scheduled)

    async def _describe_images(self, outcomes: List[ActionOutcome], message: str) -> str:
        if not self.config.vision:
            return ""
        descriptions = []
        for outcome in outcomes:
            if not outcome.image:
                continue
            try:
                descriptions.append(await self._completion.describe_image(outcome.image, message))
            except Exception as e:
                logger.warning(f"Image description failed for {outcome.tool}: {e}")
        return "\n\n".join(d for d in descriptions if d)

    async def _register_schedule(
        self, session_id: str, state: SessionState, directive: ScheduleDirective
    ) -> Optional[ScheduledReport]:
        when = parse_when(directive.when)
        try:
            trigger = await self._scheduler.schedule(
                session_id,
                when,
                TriggerPayload(tool=directive.tool, args=directive.args, description=directive.description),
            )
        except Exception as e:
            logger.error(f"Could not register schedule {directive.when!r}: {e}")
            return None

        state.add_schedule(ScheduleRecord(
            id=trigger.id,
            when=describe_when(when) if is_recurring(when) else directive.when,
            tool=directive.tool,
            args=directive.args,
            description=directive.description,
            created_at=trigger.created_at_ms,
            type=trigger.schedule_type,
        ))
        return ScheduledReport(id=trigger.id, when=directive.when, description=directive.description)

    # ------------------------------------------------------------------
    # Scheduled firing
    # ------------------------------------------------------------------

    async def run_scheduled(self, trigger: ScheduledTrigger) -> None:
        """Scheduler handler: run the payload and report to the session."""
        payload = trigger.payload
        async with self._pool.session(trigger.session_id) as state:
            result = await self._bridge.invoke(payload.tool, payload.args)
            label = payload.description or payload.tool
            state.append_entry(ROLE_ASSISTANT, f"[Scheduled: {label}]\n{result.text}")
            if trigger.is_one_time:
                state.remove_schedule(trigger.id)

        logger.info(f"Scheduled {payload.tool} ran for session {trigger.session_id} (success={result.success})")
        await self._hub.send(trigger.session_id, RealtimeEvent(EventType.SCHEDULED_RESULT, {
            "description": payload.description,
            "tool": payload.tool,
            "args": payload.args,
            "result": result.text,
            "success": result.success,
            "image": result.image,
        }))

    # ------------------------------------------------------------------
    # Other session operations
    # ------------------------------------------------------------------

    async def check_rate_limit(self, session_id: str) -> RateLimitDecision:
        async with self._pool.session(session_id) as state:
            return self._rate_limiter.check(state, now_ms())

    async def execute_tool(self, session_id: str, tool: str, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Invoke a tool directly, bypassing the model and confirmation."""
        if not tool or not tool.strip():
            raise ValueError("Tool name is required")
        async with self._pool.session(session_id):
            return await self._bridge.invoke(tool.strip(), args or {})

    async def reset(self, session_id: str) -> int:
        """Clear history, pending action and schedules; keep preferences.

        Returns the number of schedules cancelled. Idempotent.
        """
        async with self._pool.session(session_id) as state:
            removed = state.reset()
            trigger_ids = {r.id for r in removed}
            trigger_ids.update(t.id for t in self._scheduler.list_triggers(session_id))
            for trigger_id in trigger_ids:
                await self._scheduler.cancel(trigger_id)
        logger.info(f"Reset session {session_id} ({len(trigger_ids)} schedules cancelled)")
        return len(trigger_ids)

    async def clear_history(self, session_id: str) -> None:
        async with self._pool.session(session_id) as state:
            state.clear_history()

    async def get_state(self, session_id: str) -> Dict[str, Any]:
        state = await self._pool.snapshot(session_id)
        return state.summary()

    async def get_history(self, session_id: str) -> Dict[str, Any]:
        state = await self._pool.snapshot(session_id)
        return {"history": [m.to_dict() for m in state.history], "lastActive": state.last_active}

    async def list_schedules(self, session_id: str) -> List[Dict[str, Any]]:
        state = await self._pool.snapshot(session_id)
        return [r.to_listing() for r in state.schedule_registry]

    async def cancel_schedule(self, session_id: str, schedule_id: str) -> bool:
        """Cancel one schedule. Unknown ids are a no-op and return False."""
        async with self._pool.session(session_id) as state:
            record = state.remove_schedule(schedule_id)
            trigger = self._scheduler.get_trigger(schedule_id)
            cancelled = False
            if trigger is not None and trigger.session_id == session_id:
                cancelled = await self._scheduler.cancel(schedule_id)
        return record is not None or cancelled

    def schedule_count(self) -> int:
        return len(self._scheduler.list_triggers())

    async def notify(self, session_id: str, title: str, message: str) -> int:
        """Fan out an external notification. Returns listeners reached."""
        return await self._hub.send(session_id, notification_event(title, message))

    async def bridge_status(self, session_id: str) -> BridgeStatus:
        status = await self._bridge.health()
        await self._hub.send(session_id, RealtimeEvent(EventType.BRIDGE_STATUS, status.to_dict()))
        return status
