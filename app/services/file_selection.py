"""上传文件筛选：只保留图像、剔除超过大小上限的文件，并给出提示信息。"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from app.services.analysis_service import AnalysisSession, EmptySelectionError, UploadConfig
from core.models import InputFile


@dataclass
class FileSelection:
    """筛选结果：可分析的文件、被忽略文件的提示以及需要预览的前几张。"""

    files: List[InputFile] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def previews(self, limit: int) -> List[InputFile]:
        return self.files[:limit]


def is_image_file(file: InputFile, config: UploadConfig) -> bool:
    if file.content_type:
        return file.content_type.startswith("image/")
    return Path(file.name).suffix.lower() in config.image_suffixes


def filter_image_files(files: Sequence[InputFile], config: Optional[UploadConfig] = None) -> FileSelection:
    """按类型与大小筛选上传文件。

    非图像文件和超过 `max_file_size_bytes` 的文件被忽略并记录一条警告；
    若最终没有可用文件，抛出 EmptySelectionError。
    """

    config = config or UploadConfig()
    if not files:
        raise EmptySelectionError("No files selected.")

    images = [f for f in files if is_image_file(f, config)]
    if not images:
        raise EmptySelectionError("Please select valid image files")

    warnings: List[str] = []
    if len(images) != len(files):
        warnings.append(f"{len(files) - len(images)} non-image files were ignored")

    valid = [f for f in images if f.size <= config.max_file_size_bytes]
    oversized = len(images) - len(valid)
    if oversized:
        limit_gb = config.max_file_size_bytes / (1024 ** 3)
        warnings.append(f"{oversized} files exceed the {limit_gb:g}GB size limit and were ignored")
    if not valid:
        raise EmptySelectionError("All selected image files exceed the size limit")

    return FileSelection(files=valid, warnings=warnings)


def collect_image_paths(folder: Path, config: Optional[UploadConfig] = None) -> List[Path]:
    """列出文件夹内（不递归）后缀可识别的图像，按文件名排序。"""

    config = config or UploadConfig()
    folder = Path(folder)
    if not folder.is_dir():
        raise FileNotFoundError(f"Not a directory: {folder}")
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in config.image_suffixes)


def load_input_files(paths: Iterable[Path], config: Optional[UploadConfig] = None) -> FileSelection:
    """从磁盘读取文件并筛选，超过大小上限的文件不读入内存。"""

    config = config or UploadConfig()
    loaded: List[InputFile] = []
    for path in paths:
        path = Path(path)
        size = path.stat().st_size
        if size > config.max_file_size_bytes:
            loaded.append(InputFile(name=path.name, size=size))
            continue
        loaded.append(AnalysisSession.read_input_file(path))
    return filter_image_files(loaded, config)
