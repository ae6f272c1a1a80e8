"""Call-and-response pacing: which target note comes next and when it plays."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .audio.interfaces import ITargetPlayer, SilentTargetPlayer
from .constants import (
    ATTEMPT_COUNT,
    DEFAULT_TARGET_DURATION_MS,
    DEFAULT_TEMPO_BPM,
    REPLAY_DELAY_MS,
    TARGET_NOTE_GAP_MS,
)
from .detection.segmenter import Expectation
from .logging_config import get_logger
from .metronome import Metronome, create_metronome
from .note_types import Sequence
from .note_utils import frequency_for_label
from .sequences import DEFAULT_MODE, get_sequence
from .utterance import CurveVerdict, DiscreteVerdict, EvaluationVerdict

logger = get_logger(__name__)


class RetryPolicy(Enum):
    """How a failed attempt is handled.

    COUNTDOWN: replay the same note, counting attempts down; when they run
        out the decision is RESET and the attempts refill.
    REPLAY: replay the same note on every failure, no countdown.
    """

    COUNTDOWN = "countdown"
    REPLAY = "replay"


class Action(Enum):
    ADVANCE = "advance"
    RETRY = "retry"
    RESET = "reset"  # retry after the attempts ran out


@dataclass(frozen=True)
class DirectorDecision:
    action: Action
    index: int  # target index that will play next
    label: str
    attempts_left: Optional[int]


@dataclass
class SchedulingContext:
    """Baseline the next utterance's expected start time is derived from."""

    metronome: Metronome
    target_play_time: Optional[int] = None
    target_duration_ms: int = DEFAULT_TARGET_DURATION_MS
    gap_ms: int = TARGET_NOTE_GAP_MS

    def expected_start_time(self, now: int) -> int:
        """Target play time + its duration + gap, or ``now`` if nothing played yet."""
        if self.target_play_time is None:
            return now
        return self.target_play_time + self.target_duration_ms + self.gap_ms


def verdict_passed(verdict: EvaluationVerdict) -> bool:
    """Pass criterion for either scoring mode."""
    if isinstance(verdict, CurveVerdict):
        return verdict.passed
    if isinstance(verdict, DiscreteVerdict):
        return verdict.passed
    raise TypeError(f"Unknown verdict type: {type(verdict).__name__}")


class SequenceDirector:
    """Decides advance or retry from verdicts and schedules the target notes.

    The tick loop drives it: ``poll`` plays a target note once its scheduled
    time has come. Scheduling replaces any pending note (the last schedule
    wins) and a new utterance cancels it.
    """

    def __init__(
        self,
        mode: str = DEFAULT_MODE,
        tonic: float = 261.63,
        policy: RetryPolicy = RetryPolicy.COUNTDOWN,
        attempt_count: int = ATTEMPT_COUNT,
        player: Optional[ITargetPlayer] = None,
        tempo_bpm: float = DEFAULT_TEMPO_BPM,
        replay_delay_ms: int = REPLAY_DELAY_MS,
        gap_ms: int = TARGET_NOTE_GAP_MS,
        default_target_duration_ms: int = DEFAULT_TARGET_DURATION_MS,
        sequence: Optional[Sequence] = None,
    ) -> None:
        if attempt_count < 1:
            raise ValueError("attempt_count must be at least 1")
        # An explicit sequence overrides the mode lookup
        self.sequence: Sequence = sequence if sequence is not None else get_sequence(mode)
        self.mode = mode
        self.tonic = tonic
        self.policy = RetryPolicy(policy)
        self.attempt_count = attempt_count
        self.player = player if player is not None else SilentTargetPlayer()
        self.tempo_bpm = tempo_bpm
        self.replay_delay_ms = replay_delay_ms
        self.gap_ms = gap_ms
        self.default_target_duration_ms = default_target_duration_ms

        self.index = 0
        self.attempts_left = attempt_count
        self.active = False
        self.context = SchedulingContext(
            metronome=create_metronome(0, tempo_bpm),
            target_duration_ms=default_target_duration_ms,
            gap_ms=gap_ms,
        )
        self.play_counts: Dict[str, int] = {}
        self._pending_at: Optional[int] = None
        self._pending_index: Optional[int] = None

    @property
    def current_label(self) -> str:
        return self.sequence.labels[self.index]

    @property
    def current_duration_ms(self) -> int:
        return self.sequence.durations_ms[self.index]

    @property
    def pending(self) -> Optional[int]:
        """Time the pending target note is due, if one is scheduled."""
        return self._pending_at

    def expectation(self, now: int) -> Expectation:
        """Expectation for an utterance opening at ``now``."""
        return Expectation(
            expected_note=self.current_label,
            expected_start_time=self.context.expected_start_time(now),
            expected_duration=self.current_duration_ms,
        )

    def set_mode(self, mode: str) -> None:
        self.sequence = get_sequence(mode)
        self.mode = mode
        self.index = 0
        self.reset_attempts()
        self.cancel_pending()
        logger.info(f"Mode set to '{mode}': {self.sequence.describe()}")

    def reset_attempts(self) -> None:
        self.attempts_left = self.attempt_count

    def start(self, now: int) -> None:
        """Begin call and response: play the current target immediately."""
        self.active = True
        self.reset_attempts()
        self.rearm(now)
        self.schedule(now, self.index)
        self.poll(now)

    def stop(self) -> None:
        self.active = False
        self.cancel_pending()
        self.context.target_play_time = None
        self.player.stop()

    def rearm(self, now: int) -> None:
        """Fresh scheduling context (new expected start baseline)."""
        self.context = SchedulingContext(
            metronome=self.context.metronome.reset(now),
            target_duration_ms=self.default_target_duration_ms,
            gap_ms=self.gap_ms,
        )

    def schedule(self, at: int, index: int) -> None:
        """Schedule a target note, replacing any pending one."""
        if self._pending_at is not None:
            logger.debug(f"Replacing pending target at {self._pending_at}ms")
        self._pending_at = int(at)
        self._pending_index = index

    def cancel_pending(self) -> None:
        if self._pending_at is not None:
            logger.debug(f"Cancelled pending target at {self._pending_at}ms")
        self._pending_at = None
        self._pending_index = None

    def poll(self, now: int) -> Optional[str]:
        """Play the pending target note if it is due.

        Returns:
            The label that started playing, or None
        """
        if self._pending_at is None or now < self._pending_at:
            return None
        index = self._pending_index if self._pending_index is not None else self.index
        self.cancel_pending()
        return self.play_target(index, now)

    def play_target(self, index: int, now: int) -> Optional[str]:
        label = self.sequence.labels[index]
        frequency = frequency_for_label(self.tonic, label)
        if frequency is None:
            logger.error(f"Cannot play invalid label '{label}'")
            return None

        duration = self.player.play(label, frequency, now)
        self.context.target_play_time = int(now)
        self.context.target_duration_ms = int(duration) if duration else self.default_target_duration_ms
        self.play_counts[label] = self.play_counts.get(label, 0) + 1
        logger.info(f"Playing target {label} ({frequency:.1f}Hz) at {now}ms")
        return label

    def decide(self, verdict: EvaluationVerdict, now: int) -> DirectorDecision:
        """Advance on a pass, otherwise retry according to the policy.

        Every decision re-arms the scheduling context and schedules the next
        target note.
        """
        if verdict_passed(verdict):
            self.index = (self.index + 1) % len(self.sequence)
            self.reset_attempts()
            action = Action.ADVANCE
        elif self.policy is RetryPolicy.REPLAY:
            action = Action.RETRY
        else:
            self.attempts_left = max(0, self.attempts_left - 1)
            if self.attempts_left > 0:
                action = Action.RETRY
            else:
                self.reset_attempts()
                action = Action.RESET

        self.rearm(now)
        self.schedule(now + self.replay_delay_ms, self.index)
        decision = DirectorDecision(
            action=action,
            index=self.index,
            label=self.current_label,
            attempts_left=self.attempts_left if self.policy is RetryPolicy.COUNTDOWN else None,
        )
        logger.info(f"Decision: {action.value} -> {decision.label} (attempts left: {decision.attempts_left})")
        return decision
