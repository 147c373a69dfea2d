"""Bounded generate-validate-repair loop, shared by every generation-backed operation.

The loop is an explicit state machine:

    GENERATING -> VALIDATING -> ACCEPTED
                     |
                     v
                 REPAIRING -> GENERATING      (attempts remain)
                           -> BEST_EFFORT     (a fallback was retained)
                           -> FAILED

A transient generation failure moves straight to REPAIRING and spends one
attempt. Any other generation failure propagates to the caller.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

DraftT = TypeVar("DraftT")
ValueT = TypeVar("ValueT")


class RepairState(Enum):
    GENERATING = "generating"
    VALIDATING = "validating"
    REPAIRING = "repairing"
    ACCEPTED = "accepted"
    BEST_EFFORT = "best_effort"
    FAILED = "failed"


TERMINAL_STATES = {RepairState.ACCEPTED, RepairState.BEST_EFFORT, RepairState.FAILED}


@dataclass(frozen=True)
class Verdict(Generic[ValueT]):
    """Outcome of validating one draft.

    A rejected draft carries the feedback for the next attempt, optionally
    the text to show the generator as its previous draft, and optionally a
    fallback value with a score (lower is better) to keep as best effort.
    """

    accepted: bool
    value: ValueT | None = None
    feedback: str = ""
    previous: Any = None
    fallback: ValueT | None = None
    score: float | None = None

    @classmethod
    def accept(cls, value: ValueT) -> "Verdict[ValueT]":
        return cls(accepted=True, value=value)

    @classmethod
    def repair(
        cls,
        feedback: str,
        previous: Any = None,
        fallback: ValueT | None = None,
        score: float | None = None,
    ) -> "Verdict[ValueT]":
        return cls(
            accepted=False,
            feedback=feedback,
            previous=previous,
            fallback=fallback,
            score=score,
        )


@dataclass(frozen=True)
class RepairAttempt:
    """What the generator needs to know about the attempt it is producing."""

    number: int
    feedback: str = ""
    previous: Any = None


@dataclass
class RepairResult(Generic[ValueT]):
    state: RepairState
    value: ValueT | None = None
    attempts: int = 0
    selected_attempt: int | None = None
    transient_failure: bool = False
    last_error: Exception | None = None
    feedback: str = ""
    transitions: list[RepairState] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.state == RepairState.ACCEPTED


class BoundedRepairLoop(Generic[DraftT, ValueT]):
    """Drive up to ``max_attempts`` generations until one validates.

    Args:
        generate: Produces a draft for an attempt; may raise.
        validate: Judges a draft, returning a Verdict.
        max_attempts: Upper bound on generation calls.
        is_transient: Decides whether a generation failure is worth a retry.
        name: Label used in log lines.
    """

    def __init__(
        self,
        generate: Callable[[RepairAttempt], DraftT],
        validate: Callable[[DraftT, int], Verdict[ValueT]],
        max_attempts: int,
        is_transient: Callable[[BaseException], bool],
        name: str = "repair",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.generate = generate
        self.validate = validate
        self.max_attempts = max_attempts
        self.is_transient = is_transient
        self.name = name

    def run(self) -> RepairResult[ValueT]:
        result: RepairResult[ValueT] = RepairResult(state=RepairState.GENERATING)
        state = RepairState.GENERATING
        draft: DraftT | None = None
        previous: Any = None
        best: ValueT | None = None
        best_score: float | None = None
        best_attempt: int | None = None

        while state not in TERMINAL_STATES:
            result.transitions.append(state)

            if state == RepairState.GENERATING:
                result.attempts += 1
                attempt = RepairAttempt(result.attempts, result.feedback, previous)
                try:
                    draft = self.generate(attempt)
                except Exception as error:
                    if not self.is_transient(error):
                        raise
                    logger.warning(
                        "%s attempt %d/%d hit a transient failure: %s",
                        self.name, result.attempts, self.max_attempts, error,
                    )
                    result.transient_failure = True
                    result.last_error = error
                    state = RepairState.REPAIRING
                    continue
                result.transient_failure = False
                state = RepairState.VALIDATING

            elif state == RepairState.VALIDATING:
                verdict = self.validate(draft, result.attempts)
                if verdict.accepted:
                    result.value = verdict.value
                    result.selected_attempt = result.attempts
                    state = RepairState.ACCEPTED
                    continue

                logger.debug(
                    "%s attempt %d rejected: %s", self.name, result.attempts, verdict.feedback
                )
                result.feedback = verdict.feedback
                previous = verdict.previous
                if verdict.fallback is not None and (
                    best_score is None
                    or (verdict.score is not None and verdict.score < best_score)
                ):
                    best = verdict.fallback
                    best_score = verdict.score if verdict.score is not None else float("inf")
                    best_attempt = result.attempts
                state = RepairState.REPAIRING

            elif state == RepairState.REPAIRING:
                if result.attempts < self.max_attempts:
                    state = RepairState.GENERATING
                elif best is not None:
                    result.value = best
                    result.selected_attempt = best_attempt
                    state = RepairState.BEST_EFFORT
                else:
                    state = RepairState.FAILED

        result.state = state
        result.transitions.append(state)
        if state != RepairState.ACCEPTED:
            logger.info(
                "%s finished as %s after %d attempts", self.name, state.value, result.attempts
            )
        return result
