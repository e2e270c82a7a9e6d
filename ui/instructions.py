"""
ui/instructions.py

User-facing prompt for the current validation snapshot.

Checks run in a fixed priority order so the user always gets the single
most useful instruction: detector status first, then progress toward the
shot, then the first failing photo-standard check.
"""

from __future__ import annotations

from schemas import BoundsState, FaceDetectedState, ValidationState

MSG_DETECTION_ERROR = "Face detection error"
MSG_LOOK_AT_CAMERA = "Please look at the camera"
MSG_SUCCESS = "Success!"
MSG_SMILE = "Please smile"
MSG_HOLD_STILL = "Face detected, stay inside the frame..."
MSG_MOVE_CLOSER = "Please move your face closer to the camera"
MSG_MOVE_AWAY = "Please hold the camera further from your face"
MSG_CENTRE_FACE = "Please keep your face in the centre of the frame"
MSG_LOOK_STRAIGHT = "Please look straight at the camera"
MSG_LOW_QUALITY = "Image quality is too low"


def instruction_for(state: ValidationState) -> str:
    if state.face_detected_state is FaceDetectedState.FACE_DETECTION_ERRORED:
        return MSG_DETECTION_ERROR
    if state.face_detected_state is FaceDetectedState.NO_FACE_DETECTED:
        return MSG_LOOK_AT_CAMERA

    if state.has_valid_face and state.smile_permitted and state.success:
        return MSG_SUCCESS
    if state.has_valid_face and state.smile_permitted:
        return MSG_SMILE
    if state.has_valid_face:
        return MSG_HOLD_STILL

    if state.bounds_state is BoundsState.TOO_SMALL:
        return MSG_MOVE_CLOSER
    if state.bounds_state is BoundsState.TOO_LARGE:
        return MSG_MOVE_AWAY
    if state.bounds_state is BoundsState.OFF_CENTRE:
        return MSG_CENTRE_FACE
    if not state.acceptable_pose:
        return MSG_LOOK_STRAIGHT
    if not state.acceptable_quality:
        return MSG_LOW_QUALITY

    return MSG_DETECTION_ERROR
