from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from .constants import INPUT_HEIGHT, INPUT_WIDTH
from .errors import DecodeError


@dataclass(frozen=True)
class PreparedInput:
    # float32 (1, 3, H, W); its C-order ravel is the planar R..G..B layout.
    tensor: np.ndarray
    orig_size: Tuple[int, int]

    @property
    def flat(self) -> np.ndarray:
        return self.tensor.reshape(-1)


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode JPEG/PNG/GIF bytes into a BGR (H, W, 3) array.

    16-bit PNGs keep their depth (uint16); `prepare_input` scales them down.
    Grayscale is expanded to three channels and alpha is dropped.
    """

    if not data:
        raise DecodeError("Empty image payload.")

    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc
    if img is None:
        raise DecodeError("Could not decode image (unsupported or corrupt data).")

    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    elif img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)

    if img.ndim != 3 or img.shape[2] != 3:
        raise DecodeError(f"Unsupported decoded image shape {img.shape}")
    return img


def prepare_input(
    image_bgr: np.ndarray,
    input_size: Tuple[int, int] = (INPUT_WIDTH, INPUT_HEIGHT),
) -> PreparedInput:
    """
    Stretch-resize a BGR image to `input_size` (width, height) and build the model input blob.

    No letterboxing: the aspect ratio is not preserved, so boxes scale back with
    a plain per-axis factor. Resampling uses Lanczos.

    Args:
        image_bgr: decoded image, uint8 or uint16, shape (H, W, 3). Not modified.
        input_size: model input (width, height).
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise DecodeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise DecodeError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    orig_h, orig_w = image_bgr.shape[:2]
    if orig_w <= 0 or orig_h <= 0:
        raise DecodeError(f"Image has no pixels: {image_bgr.shape}")

    new_w, new_h = input_size
    try:
        resized = cv2.resize(image_bgr, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)
    except cv2.error as exc:
        raise DecodeError(f"Could not resize image: {exc}") from exc

    # BGR -> RGB, bring to 8-bit range
    rgb = resized[:, :, ::-1]
    if rgb.dtype == np.uint16:
        rgb = rgb // 257
    elif rgb.dtype != np.uint8:
        raise DecodeError(f"Unsupported pixel type {rgb.dtype}")

    # normalize, HWC -> CHW, add batch
    blob = rgb.astype(np.float32) / np.float32(255.0)
    blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

    return PreparedInput(tensor=blob, orig_size=(int(orig_w), int(orig_h)))
