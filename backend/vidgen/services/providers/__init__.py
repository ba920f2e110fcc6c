"""Video provider implementations.

Two shapes behind one ``generate(prompt, duration, ratio)`` contract:
  nekolabs     create task → poll status → upstream-hosted URL
  huggingface  one blocking text-to-video call → bytes saved under videos dir
"""

from vidgen.services.providers.base import VideoProvider
from vidgen.services.providers.huggingface_video import (
    HuggingFaceModelConfig,
    HuggingFaceVideoProvider,
)
from vidgen.services.providers.nekolabs_video import NekolabsVideoProvider

__all__ = [
    "HuggingFaceModelConfig",
    "HuggingFaceVideoProvider",
    "NekolabsVideoProvider",
    "VideoProvider",
]
