from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Protocol, Sequence, Tuple

import numpy as np

from .constants import INPUT_SHAPE
from .errors import InferenceError, ShapeMismatchError


LOGGER = logging.getLogger(__name__)


class InferenceBackend(Protocol):
    def infer(self, blob: np.ndarray) -> np.ndarray: ...


class ModelSession:
    """
    Owned handle around one loaded inference backend, shared across requests.

    The backend is created lazily by `factory` at most once: concurrent callers
    arriving before the first load finishes wait for it instead of loading
    again. A failed load is not remembered, so the next call retries it.
    Calls into the backend are serialised because one ORT session must not be
    driven from several threads at once.
    """

    def __init__(
        self,
        factory: Callable[[], InferenceBackend],
        *,
        input_shape: Optional[Tuple[int, ...]] = INPUT_SHAPE,
    ):
        self._factory = factory
        self._input_shape = input_shape
        self._backend: Optional[InferenceBackend] = None
        self._init_lock = threading.Lock()
        self._run_lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._backend is not None

    @property
    def providers(self) -> Sequence[str]:
        backend = self._backend
        return tuple(getattr(backend, "providers_in_use", ())) if backend is not None else ()

    def ensure_loaded(self) -> InferenceBackend:
        backend = self._backend
        if backend is not None:
            return backend

        with self._init_lock:
            if self._backend is None:
                start = time.perf_counter()
                try:
                    self._backend = self._factory()
                except InferenceError:
                    raise
                except Exception as exc:
                    raise InferenceError(f"Model initialisation failed: {exc}") from exc
                LOGGER.info("model session initialised in %.1f ms", (time.perf_counter() - start) * 1000.0)
            return self._backend

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if self._input_shape is not None and tuple(blob.shape) != tuple(self._input_shape):
            raise ShapeMismatchError("model input shape", tuple(self._input_shape), tuple(blob.shape))

        backend = self.ensure_loaded()
        with self._run_lock:
            return backend.infer(blob)

    def close(self) -> None:
        with self._init_lock:
            self._backend = None
