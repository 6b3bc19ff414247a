# Core: capture, tensor extraction, ranking, frame loop, bootstrap

from core.bootstrap import Bootstrapper
from core.capture import VideoCaptureSource
from core.frame_loop import FrameLoop
from core.ranking import top_k
from core.tensor import TensorExtractor

__all__ = ["Bootstrapper", "VideoCaptureSource", "FrameLoop", "top_k", "TensorExtractor"]
