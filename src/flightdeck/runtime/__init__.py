"""Step runtime: import project step scripts and invoke them."""

from flightdeck.runtime.modules import load_module
from flightdeck.runtime.steps import StepRuntime, encode_payload, normalize_result

__all__ = [
    "StepRuntime",
    "encode_payload",
    "load_module",
    "normalize_result",
]
