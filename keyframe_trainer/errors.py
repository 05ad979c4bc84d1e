"""Exceptions raised by the recording, marker and training-config code."""


class KeyframeTrainerError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInputError(KeyframeTrainerError, ValueError):
    """Operator input rejected (empty file name, bad key posture count …)."""


class RecordingParseError(KeyframeTrainerError, ValueError):
    """A skeleton / key frame file could not be parsed."""


class GestureNotFoundError(KeyframeTrainerError, LookupError):
    def __init__(self, gesture_name: str):
        super().__init__(
            f'Gesture {gesture_name} not found in the train config file!')
        self.gesture_name = gesture_name


class UnknownJointError(KeyframeTrainerError, ValueError):
    def __init__(self, token: str):
        super().__init__(f'The joint name {token} is unknown!')
        self.token = token


class UnknownAlgorithmError(KeyframeTrainerError, ValueError):
    def __init__(self, token: str):
        super().__init__(f'The algorithm {token} is unknown!')
        self.token = token
