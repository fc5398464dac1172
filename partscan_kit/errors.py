from __future__ import annotations


class DetectionError(Exception):
    """
    Base class for failures raised by the detection pipeline.
    """


class DecodeError(DetectionError):
    """
    Image bytes could not be decoded into pixels, or the pixels could not be resized.
    """


class ShapeMismatchError(DetectionError):
    """
    A tensor handed to or returned by the model does not have the expected size.

    Usually means the loaded model does not match the configured constants.
    """

    def __init__(self, what: str, expected, got):
        self.what = what
        self.expected = expected
        self.got = got
        super().__init__(f"{what}: expected {expected}, got {got}")


class InferenceError(DetectionError):
    """
    The inference engine failed to load or to run.
    """
