"""Batch dispatcher: the top-level entry point for confirmed voice actions.

Hard contract: `execute_actions` returns exactly one `ActionResult` per input action, in input
order, and never raises because of a single action. Actions run sequentially because a later action
may reference an entity created by an earlier one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.voice.errors import classify_exception
from src.voice.routing import OperationRouter
from src.voice.schema import ActingUser, ActionResult, ValidationFailure, VoiceAction
from src.voice.validation import ValidationOrchestrator

logger = logging.getLogger(__name__)


def _intent_hint(item: Any) -> str | None:
    if isinstance(item, VoiceAction):
        return item.intent
    raw = item.get("intent") if isinstance(item, Mapping) else None
    return raw if isinstance(raw, str) else None


def _failure_result(intent: str | None, failure: ValidationFailure) -> ActionResult:
    return ActionResult(
        success=False,
        intent=intent,
        error=failure.first_message,
        errors=failure.errors,
    )


class BatchDispatcher:
    """Run each action through validation and routing with per-action failure isolation."""

    def __init__(self, orchestrator: ValidationOrchestrator, router: OperationRouter) -> None:
        self._orchestrator = orchestrator
        self._router = router

    async def execute_actions(
            self,
            actions: Iterable[VoiceAction | Mapping[str, Any]],
            acting_user: ActingUser | Mapping[str, Any],
    ) -> list[ActionResult]:
        """Validate and dispatch every action in order; one result per action.

        `acting_user` may be an `ActingUser` or its `{id, role}` mapping. An invalid acting user is
        a caller error and raises before any action runs.
        """

        user = (
            acting_user
            if isinstance(acting_user, ActingUser)
            else ActingUser.model_validate(acting_user)
        )
        results = [await self._execute_one(item, user) for item in actions]

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            "batch handled user=%s actions=%d succeeded=%d failed=%d",
            user.id,
            len(results),
            succeeded,
            len(results) - succeeded,
        )
        return results

    async def _execute_one(
            self,
            item: VoiceAction | Mapping[str, Any],
            acting_user: ActingUser,
    ) -> ActionResult:
        intent = _intent_hint(item)

        # noinspection PyBroadException
        try:
            action = item if isinstance(item, VoiceAction) else VoiceAction.model_validate(item)
            intent = action.intent

            outcome = await self._orchestrator.validate(
                action.intent, acting_user.role, action.data, acting_user
            )
            if isinstance(outcome.result, ValidationFailure):
                return _failure_result(action.intent, outcome.result)

            return await self._router.dispatch(
                action.intent, outcome.result, acting_user, outcome.config
            )
        except PydanticValidationError as exc:
            logger.info("malformed action rejected error_count=%d", exc.error_count())
            error = classify_exception(exc)
            return ActionResult(
                success=False,
                intent=intent,
                error=f"Malformed voice action: {error.message}",
                errors=(error,),
            )
        except Exception as exc:
            # Handler boundary: a crash in one action must not affect its siblings.
            logger.exception("action crashed intent=%s", intent)
            error = classify_exception(exc)
            return ActionResult(success=False, intent=intent, error=error.message, errors=(error,))
