from .compositor import Compositor
from .progress_hub import progress_hub

__all__ = ["Compositor", "progress_hub"]
