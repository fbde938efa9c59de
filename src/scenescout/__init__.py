"""SceneScout：视频场景切分与逐场景标注。"""

__version__ = "0.1.0"
