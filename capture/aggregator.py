from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional, Tuple

from face.policy import (
    DEFAULT_THRESHOLDS,
    PhotoStandardThresholds,
    classify_bounds,
    classify_pose,
    classify_quality,
)
from schemas import (
    Action,
    BoundsState,
    CancelGraceTimer,
    CloseSession,
    DebugToggled,
    Effect,
    FaceDetectedState,
    GeometryObservation,
    GeometryObserved,
    GracePeriodElapsed,
    NoFaceDetected,
    Observation,
    QualityObserved,
    Rect,
    ReleaseShutter,
    ReportObservationError,
    SmileObserved,
    StartGraceTimer,
    ValidationState,
    ViewportResized,
    initial_state,
)

logger = logging.getLogger(__name__)

GRACE_PERIOD_SEC = 2.0


@dataclass(frozen=True)
class Transition:
    """Result of one reduction: the next state plus effects to run, in order."""
    state: ValidationState
    effects: Tuple[Effect, ...] = field(default_factory=tuple)


def is_valid_face(state: ValidationState) -> bool:
    """AND of all five per-axis inputs. No partial credit."""
    return (
        state.bounds_state is BoundsState.APPROPRIATE
        and state.acceptable_roll
        and state.acceptable_pitch
        and state.acceptable_yaw
        and state.acceptable_quality
    )


def reduce(
    state: ValidationState,
    action: Action,
    thresholds: PhotoStandardThresholds = DEFAULT_THRESHOLDS,
    grace_period_sec: float = GRACE_PERIOD_SEC,
) -> Transition:
    """
    Pure state transition: (state, action) -> (state', effects).

    Level A (geometry / quality / no-face) updates per-axis flags, then
    `has_valid_face` is recomputed. A false->true flip asks for a grace
    timer, a true->false flip cancels it and withdraws smile permission in
    the same update.

    Level B (grace timer fired / smile observed) gates the smile. A timer
    fire is honoured only if its token still names the pending timer and
    the face is still valid; anything else is a stale fire and is dropped.

    After a session is closed every action is a no-op.
    """
    if state.closed:
        return Transition(state)

    effects: List[Effect] = []

    if isinstance(action, CloseSession):
        if state.grace_timer_active:
            effects.append(CancelGraceTimer(state.grace_token))
        return Transition(
            replace(state, closed=True, grace_timer_active=False),
            tuple(effects),
        )

    if isinstance(action, ViewportResized):
        guide = state.layout_guide.centered_in(action.viewport)
        return Transition(replace(state, layout_guide=guide))

    if isinstance(action, DebugToggled):
        return Transition(replace(state, debug_enabled=not state.debug_enabled))

    if isinstance(action, NoFaceDetected):
        candidate = _apply_geometry(state, Observation.not_found(), thresholds)
        candidate = replace(candidate, face_detected_state=FaceDetectedState.NO_FACE_DETECTED)
    elif isinstance(action, GeometryObserved):
        candidate = _apply_geometry(state, action.observation, thresholds)
        candidate = replace(
            candidate,
            face_detected_state=_detected_state_for(action.observation),
        )
        _collect_error(effects, "geometry", action.observation)
    elif isinstance(action, QualityObserved):
        candidate = _apply_quality(state, action.observation, thresholds)
        candidate = replace(
            candidate,
            face_detected_state=_detected_state_for(action.observation),
        )
        _collect_error(effects, "quality", action.observation)
    elif isinstance(action, SmileObserved):
        _collect_error(effects, "smile", action.observation)
        if not state.has_valid_face:
            # stale signal while the face is not valid
            return Transition(state, tuple(effects))
        obs = action.observation
        smiling = bool(obs.is_found and obs.value is not None and obs.value.smile_detected)
        candidate = replace(state, smile_detected=smiling, last_smile=obs)
        if obs.is_found:
            candidate = replace(candidate, face_detected_state=FaceDetectedState.FACE_DETECTED)
    elif isinstance(action, GracePeriodElapsed):
        if not (
            state.grace_timer_active
            and action.token == state.grace_token
            and state.has_valid_face
        ):
            return Transition(state)
        candidate = replace(state, smile_permitted=True, grace_timer_active=False)
    else:
        raise TypeError(f"Unknown action: {action!r}")

    next_state = _settle(state, candidate, grace_period_sec, effects)
    return Transition(next_state, tuple(effects))


def _apply_geometry(
    state: ValidationState,
    obs: Observation[GeometryObservation],
    thresholds: PhotoStandardThresholds,
) -> ValidationState:
    if not obs.is_found or obs.value is None:
        return replace(
            state,
            acceptable_roll=False,
            acceptable_pitch=False,
            acceptable_yaw=False,
            bounds_state=BoundsState.UNKNOWN,
            last_geometry=obs,
        )

    geo = obs.value
    pose = classify_pose(geo.roll, geo.pitch, geo.yaw, thresholds)
    bounds = classify_bounds(geo.bounding_box, state.layout_guide, thresholds)
    return replace(
        state,
        acceptable_roll=pose.roll_ok,
        acceptable_pitch=pose.pitch_ok,
        acceptable_yaw=pose.yaw_ok,
        bounds_state=bounds,
        last_geometry=obs,
    )


def _apply_quality(
    state: ValidationState,
    obs: Observation,
    thresholds: PhotoStandardThresholds,
) -> ValidationState:
    if not obs.is_found or obs.value is None:
        return replace(state, acceptable_quality=False, last_quality=obs)
    return replace(
        state,
        acceptable_quality=classify_quality(obs.value.quality, thresholds),
        last_quality=obs,
    )


def _detected_state_for(obs: Observation) -> FaceDetectedState:
    if obs.is_found:
        return FaceDetectedState.FACE_DETECTED
    if obs.is_errored:
        return FaceDetectedState.FACE_DETECTION_ERRORED
    return FaceDetectedState.NO_FACE_DETECTED


def _collect_error(effects: List[Effect], kind: str, obs: Observation) -> None:
    if obs.is_errored:
        effects.append(ReportObservationError(kind=kind, reason=obs.reason or "unknown error"))


def _settle(
    previous: ValidationState,
    state: ValidationState,
    grace_period_sec: float,
    effects: List[Effect],
) -> ValidationState:
    """Recompute derived fields and emit timer / shutter effects."""
    valid = is_valid_face(state)
    state = replace(state, has_valid_face=valid)

    if valid and not previous.has_valid_face:
        if not state.grace_timer_active:
            token = state.grace_token + 1
            state = replace(state, grace_timer_active=True, grace_token=token, smile_permitted=False)
            effects.append(StartGraceTimer(token=token, delay_sec=grace_period_sec))
    elif not valid and previous.has_valid_face:
        if state.grace_timer_active:
            effects.append(CancelGraceTimer(token=state.grace_token))
        # smile_detected is cleared along with smile_permitted: a smile seen
        # during the lost attempt must not complete the next one
        state = replace(
            state,
            grace_timer_active=False,
            smile_permitted=False,
            smile_detected=False,
        )

    success = state.has_valid_face and state.smile_permitted and state.smile_detected
    state = replace(state, success=success)

    if success and not previous.success:
        effects.append(ReleaseShutter(state=state))

    return state


class ValidityAggregator:
    """
    Owner of the session's ValidationState.

    Wraps the pure reducer with the session's thresholds and grace period,
    keeps the current state and logs the transitions that matter
    (validity gained / lost, smile permitted, success).

    Not thread-safe on its own: it is meant to be driven by exactly one
    writer, the EventDispatcher.
    """

    def __init__(
        self,
        thresholds: Optional[PhotoStandardThresholds] = None,
        grace_period_sec: float = GRACE_PERIOD_SEC,
        debug_enabled: bool = False,
        layout_guide: Optional[Rect] = None,
    ) -> None:
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.grace_period_sec = float(grace_period_sec)
        self._state = initial_state(debug_enabled=debug_enabled, layout_guide=layout_guide)

        logger.info(
            "ValidityAggregator initialised | grace=%.2fs | roll=(%.2f, %.2f) "
            "pitch<%.2f yaw<%.2f quality>=%.2f | guide=%s",
            self.grace_period_sec,
            self.thresholds.roll_min,
            self.thresholds.roll_max,
            self.thresholds.pitch_max,
            self.thresholds.yaw_max,
            self.thresholds.quality_min,
            self._state.layout_guide,
        )

    @classmethod
    def from_config(cls, cfg: Any) -> "ValidityAggregator":
        """Build from a core.config.Config (thresholds + session sections)."""
        session = cfg.session
        return cls(
            thresholds=cfg.thresholds.to_policy(),
            grace_period_sec=session.grace_period_sec,
            debug_enabled=session.debug_enabled,
            layout_guide=Rect(
                width=float(session.layout_guide_width),
                height=float(session.layout_guide_height),
            ),
        )

    @property
    def state(self) -> ValidationState:
        return self._state

    def apply(self, action: Action) -> Transition:
        previous = self._state
        transition = reduce(previous, action, self.thresholds, self.grace_period_sec)
        self._state = transition.state
        self._log_transition(previous, transition.state)
        return transition

    def _log_transition(self, before: ValidationState, after: ValidationState) -> None:
        if before.has_valid_face != after.has_valid_face:
            if after.has_valid_face:
                logger.info("Valid face acquired; grace period %.2fs started", self.grace_period_sec)
            else:
                logger.info(
                    "Valid face lost | bounds=%s roll=%s pitch=%s yaw=%s quality=%s",
                    after.bounds_state.value,
                    after.acceptable_roll,
                    after.acceptable_pitch,
                    after.acceptable_yaw,
                    after.acceptable_quality,
                )
        if after.smile_permitted and not before.smile_permitted:
            logger.info("Grace period elapsed; smile permitted")
        if after.success != before.success:
            logger.info("Success=%s", after.success)
        if after.closed and not before.closed:
            logger.info("Validation session closed")
