"""GUI 与算法之间的桥梁：负责加载配置、管理分析会话及调用核心合成流程。"""
from __future__ import annotations

import asyncio
import io
import json
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import numpy as np
from PIL import Image

from core.analysis import discard, run_batch, select_image
from core.models import ANALYSIS_MODES, AnalysisMode, BatchResult, DisplayHandleProvider, InputFile, validate_mode

MAX_FILE_SIZE_BYTES = 2 * 1024 * 1024 * 1024
DEFAULT_IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".gif", ".webp")


class AnalysisError(RuntimeError):
    """分析运行失败（内部错误），调用方可直接重新运行。"""


class AnalysisBusyError(AnalysisError):
    """上一次分析尚未结束时又发起了新的分析。"""


class EmptySelectionError(AnalysisError, ValueError):
    """没有可供分析的文件。"""


@dataclass
class SessionConfig:
    """会话参数：模拟处理耗时与默认分析模式。"""

    processing_delay_s: float = 2.0
    default_mode: AnalysisMode = "proposed"


@dataclass
class UploadConfig:
    """上传校验参数：单文件大小上限与可识别的图像后缀。"""

    max_file_size_bytes: int = MAX_FILE_SIZE_BYTES
    image_suffixes: tuple[str, ...] = DEFAULT_IMAGE_SUFFIXES


@dataclass
class UIConfig:
    preview_limit: int = 5


@dataclass
class AppConfig:
    session: SessionConfig = field(default_factory=SessionConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def load_config_from_file(path: Path) -> AppConfig:
    """读取 JSON 配置文件，组装 AppConfig 对象。"""

    data = json.loads(Path(path).read_text())
    upload = dict(data.get("upload", {}))
    if "image_suffixes" in upload:
        upload["image_suffixes"] = tuple(s.lower() for s in upload["image_suffixes"])
    config = AppConfig(
        session=SessionConfig(**data.get("session", {})),
        upload=UploadConfig(**upload),
        ui=UIConfig(**data.get("ui", {})),
    )
    if config.session.processing_delay_s < 0:
        raise ValueError("processing_delay_s must be >= 0 in configuration.")
    if config.session.default_mode not in ANALYSIS_MODES:
        raise ValueError(f"default_mode must be one of {ANALYSIS_MODES} in configuration.")
    if config.upload.max_file_size_bytes <= 0:
        raise ValueError("max_file_size_bytes must be > 0 in configuration.")
    if config.ui.preview_limit < 0:
        raise ValueError("preview_limit must be >= 0 in configuration.")
    return config


class PillowHandleProvider:
    """把图像字节解码为 PIL.Image 作为显示句柄；release 关闭图像。"""

    def __init__(self) -> None:
        self.live_handles = 0

    def acquire(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except Exception as exc:
            raise ValueError("Unable to decode image bytes") from exc
        self.live_handles += 1
        return img

    def release(self, handle: Image.Image) -> None:
        handle.close()
        self.live_handles -= 1


class AnalysisSession:
    """封装一次 GUI 会话的可变状态：忙碌标记、当前结果与分析模式。

    同一时刻只允许一个分析运行；新结果整体替换旧结果，
    旧结果持有的显示句柄在替换时释放。
    """

    def __init__(
        self,
        handle_provider: Optional[DisplayHandleProvider] = None,
        config: Optional[AppConfig] = None,
    ):
        self._config = config or AppConfig()
        self._handles = handle_provider
        self._mode = validate_mode(self._config.session.default_mode)
        self._result: Optional[BatchResult] = None
        self._busy = False

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def is_analyzing(self) -> bool:
        return self._busy

    @property
    def result(self) -> Optional[BatchResult]:
        return self._result

    @property
    def mode(self) -> AnalysisMode:
        return self._mode

    @mode.setter
    def mode(self, value: str) -> None:
        self._mode = validate_mode(value)

    def with_config(self, config: AppConfig) -> "AnalysisSession":
        """替换配置对象，方便界面重新加载配置。"""

        self._config = config
        return self

    async def run_analysis(
        self,
        files: Sequence[InputFile],
        mode: Optional[AnalysisMode] = None,
        progress_cb: Callable[[str], None] | None = None,
    ) -> BatchResult:
        """模拟耗时后合成整批结果，并整体替换当前结果。"""

        if self._busy:
            raise AnalysisBusyError("An analysis is already running.")
        if not files:
            raise EmptySelectionError("No files selected for analysis.")
        mode = validate_mode(mode or self._mode)

        self._busy = True
        try:
            if progress_cb:
                progress_cb("分析中...")
            await asyncio.sleep(self._config.session.processing_delay_s)
            try:
                result = run_batch(files, mode, self._handles, progress_cb=progress_cb)
            except Exception as exc:
                print(f"[session] analysis failed: {exc!r}")
                raise AnalysisError(f"Analysis failed: {exc}") from exc
            self.reset()
            self._mode = mode
            self._result = result
            print(f"[session] analysis finished: {result.summary_dict()}")
            return result
        finally:
            self._busy = False

    async def analyze_image(
        self, file: InputFile, mode: Optional[AnalysisMode] = None, progress_cb: Callable[[str], None] | None = None
    ) -> BatchResult:
        """单张图像分析，等价于只含一个文件的批量分析。"""

        return await self.run_analysis([file], mode, progress_cb)

    def select_image(self, index: int) -> Optional[BatchResult]:
        """切换当前图像；分析进行中不替换结果，避免与新结果的安装交错。"""

        if self._result is not None and not self._busy:
            self._result = select_image(self._result, index)
        return self._result

    def reset(self) -> None:
        """丢弃当前结果并释放其显示句柄。"""

        if self._result is None:
            return
        released = discard(self._result, self._handles)
        print(f"[session] released {released} display handles")
        self._result = None

    @staticmethod
    def read_input_file(path: Path) -> InputFile:
        """统一的读文件接口，若读取失败则抛出 FileNotFoundError。"""

        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise exc
        except Exception as exc:
            raise FileNotFoundError(f"Unable to read file: {path}") from exc
        return InputFile(name=path.name, size=len(data), data=data, content_type=_guess_content_type(path))


def _guess_content_type(path: Path) -> Optional[str]:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type


def handle_to_array(handle: Any) -> Optional[np.ndarray]:
    """把 PIL 句柄转成 numpy 数组，供 Qt 预览使用。"""

    if handle is None:
        return None
    return np.array(handle.convert("RGB"))
