"""
Process-wide engine state.

The engine must be initialized once before any group operation. Repeated
initialization is a no-op. Every operation that touches the curve obtains
its parameters through :func:`require_engine`, which raises
``EngineNotInitializedError`` before :func:`initialize_engine` ran.
"""

import logging
import threading
from typing import Optional

from .config import validate_config
from .exceptions import EngineNotInitializedError
from .pedersen.commitments import CurveParameters, setup_curve

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_params: Optional[CurveParameters] = None


def initialize_engine() -> CurveParameters:
    """Initialize the engine (idempotent) and return the curve parameters."""
    global _params
    with _lock:
        if _params is None:
            validate_config()
            _params = setup_curve()
            logger.debug("engine initialized on %s via %s", _params.curve, _params.library)
        return _params


def is_engine_initialized() -> bool:
    return _params is not None


def require_engine() -> CurveParameters:
    """Return curve parameters, failing fast if the engine is not ready."""
    params = _params
    if params is None:
        raise EngineNotInitializedError(
            "Engine is not initialized; call initialize_engine() first"
        )
    return params


def reset_engine() -> None:
    """Forget engine state. Intended for tests of the readiness gate."""
    global _params
    with _lock:
        _params = None
