"""SceneScout Typer CLI，便于在命令行触发切分与标注流程。"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

import typer

from scenescout.annotate import (
    AnnotationError,
    AnnotationResult,
    GeminiAnnotator,
    annotate_scenes,
    select_timelapse_frames,
)
from scenescout.core import PipelineConfig, Scene, SegmentConfig, SegmentationError, load_config, setup_logging
from scenescout.segment import SegmentResult, segment_video

app = typer.Typer(help="SceneScout 开发 CLI")


@app.callback()
def main() -> None:
    """SceneScout 顶层 CLI，占位以展示子命令列表。"""

    return None


def _resolve_config(config_path: Optional[Path]) -> PipelineConfig:
    return load_config(config_path) if config_path else load_config()


def _apply_segment_overrides(
    cfg: PipelineConfig,
    *,
    interval: Optional[float],
    threshold: Optional[float],
    fixed_seconds: Optional[float],
    max_dimension: Optional[int],
) -> PipelineConfig:
    updates = {}
    if interval is not None:
        updates["sample_interval_seconds"] = interval
    if threshold is not None:
        updates["diff_threshold"] = threshold
    if fixed_seconds is not None:
        # 0 表示自适应检测
        updates["fixed_segment_seconds"] = fixed_seconds or None
    if max_dimension is not None:
        updates["max_dimension"] = max_dimension
    if not updates:
        return cfg
    segment = SegmentConfig.model_validate({**cfg.segment.model_dump(), **updates})
    return cfg.model_copy(update={"segment": segment})


def _load_scenes_from_file(path: Path) -> List[Scene]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("scenes", [])
    if not isinstance(payload, list):
        raise ValueError("Scene JSON 需为数组或包含 scenes 字段的对象")
    return [Scene.from_dict(entry) for entry in payload]


def _load_previous_annotations(path: Path) -> Dict[int, AnnotationResult]:
    """读取上次的标注输出，文件不存在时返回空。"""

    if not path.exists():
        return {}
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"标注文件 {path} 需为数组")
    results = [AnnotationResult.from_dict(entry) for entry in payload]
    return {item.scene_id: item for item in results}


def _write_thumbnails(scenes: List[Scene], directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for scene in scenes:
        (directory / f"scene_{scene.id:04d}.jpg").write_bytes(scene.thumbnail)


@app.command("segment-video")
def segment_video_cmd(
    video: Path = typer.Argument(..., exists=True, resolve_path=True, help="待切分视频路径"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Scene JSON 输出路径"),
    thumbnails_dir: Optional[Path] = typer.Option(None, "--thumbnails-dir", help="额外导出 JPEG 缩略图的目录"),
    interval: Optional[float] = typer.Option(None, "--interval", help="采样间隔（秒）"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="帧差阈值（0-255 亮度）"),
    fixed_seconds: Optional[float] = typer.Option(None, "--fixed-seconds", help="定长切分时长，0 表示自适应"),
    max_dimension: Optional[int] = typer.Option(None, "--max-dimension", help="抽帧最长边"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="自定义配置文件"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="日志级别，缺省读取 SCENESCOUT_LOG_LEVEL"),
) -> None:
    """切分单个视频并导出 JSON 场景清单。"""

    setup_logging(log_level)
    cfg = _resolve_config(config_path)
    cfg = _apply_segment_overrides(
        cfg,
        interval=interval,
        threshold=threshold,
        fixed_seconds=fixed_seconds,
        max_dimension=max_dimension,
    )

    try:
        result: SegmentResult = segment_video(video, cfg)
    except SegmentationError as exc:
        typer.echo(f"切分失败：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    output = output or Path(f"scenes_{video.stem}.json")
    output.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "duration": result.duration,
        "strategy": result.strategy,
        "scenes": [scene.to_dict() for scene in result.scenes],
        "diffs": [diff.to_dict() for diff in result.diffs],
    }
    output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    if thumbnails_dir is not None:
        _write_thumbnails(result.scenes, thumbnails_dir)
    typer.echo(f"生成 {len(result.scenes)} 个场景（{result.strategy}），输出到 {output}")


@app.command("annotate-scenes")
def annotate_scenes_cmd(
    scenes_path: Path = typer.Argument(..., exists=True, resolve_path=True, help="segment-video 产出的 JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="标注结果输出路径"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="自定义配置文件"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="日志级别，缺省读取 SCENESCOUT_LOG_LEVEL"),
) -> None:
    """逐个场景调用标注服务，失败的场景记录错误但不中断批处理。"""

    setup_logging(log_level)
    cfg = _resolve_config(config_path)
    scenes = _load_scenes_from_file(scenes_path)
    try:
        annotator = GeminiAnnotator(cfg.annotate)
    except AnnotationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    def _report(result: AnnotationResult) -> None:
        status = "ok" if result.ok else result.error
        typer.echo(f" - scene#{result.scene_id}: {status}")

    output = output or scenes_path.with_name(f"{scenes_path.stem}_annotations.json")
    previous = _load_previous_annotations(output)
    existing = {scene_id: item.analysis for scene_id, item in previous.items() if item.ok and item.analysis}
    if existing:
        typer.echo(f"跳过 {len(existing)} 个已标注场景")

    results = annotate_scenes(
        scenes,
        annotator,
        existing=existing,
        delay_range=(cfg.annotate.delay_min_seconds, cfg.annotate.delay_max_seconds),
        poll_interval=cfg.annotate.poll_interval_seconds,
        on_result=_report,
    )
    merged = {**previous, **{item.scene_id: item for item in results}}
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps([merged[key].to_dict() for key in sorted(merged)], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    succeeded = sum(1 for item in results if item.ok)
    typer.echo(f"{succeeded} / {len(results)} 个场景标注成功，输出到 {output}")


@app.command("timelapse-prompt")
def timelapse_prompt_cmd(
    scenes_path: Path = typer.Argument(..., exists=True, resolve_path=True, help="segment-video 产出的 JSON"),
    first_id: int = typer.Argument(..., help="起始场景 id"),
    second_id: int = typer.Argument(..., help="结束场景 id"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="自定义配置文件"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="日志级别，缺省读取 SCENESCOUT_LOG_LEVEL"),
) -> None:
    """根据两个场景之间的缩略图序列生成延时过渡提示词。"""

    setup_logging(log_level)
    cfg = _resolve_config(config_path)
    scenes = _load_scenes_from_file(scenes_path)
    frames = select_timelapse_frames(scenes, first_id, second_id, cfg.annotate.timelapse_max_frames)
    if not frames:
        raise typer.BadParameter(f"没有 id 介于 {first_id} 与 {second_id} 之间的场景")
    try:
        prompt = GeminiAnnotator(cfg.annotate).timelapse_prompt(frames)
    except AnnotationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(prompt)


if __name__ == "__main__":  # pragma: no cover
    app()
