"""切分流程的异常体系，调用方只需捕获 SegmentationError 即可统一处理。"""

from __future__ import annotations


class SegmentationError(RuntimeError):
    """所有切分失败的基类。"""


class DurationUnknownError(SegmentationError):
    """视频时长不可用或非有限值，任何抽帧之前即终止。"""


class DecodeError(SegmentationError):
    """单帧 seek/解码失败；整次切分作废，不返回部分结果。"""


class EmptyResultError(SegmentationError):
    """没有采到任何帧（近零时长输入），与解码失败区分上报。"""


class SegmentationCancelled(SegmentationError):
    """外部请求停止，在两帧之间生效。"""
