"""PySide6 GUI (modern dark theme) wired to AnalysisSession and the core synthesis engine.

Features:
- Dark, flattened UI with clear separation of controls, image preview, stats, charts and logs.
- Upload single images or a whole folder; choose proposed/existing mode; run and reset.
- Whole-slide patch grid: highlight a patch by number, hover for its percentages and ratios.
- Background thread drives the async session so the UI stays responsive during the delay.
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg
from matplotlib.figure import Figure
from PySide6.QtCore import Qt, Signal, QThread
from PySide6.QtGui import QColor, QImage, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFileDialog,
    QFrame,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QPlainTextEdit,
    QScrollArea,
    QSizePolicy,
    QSplitter,
    QTableWidget,
    QTableWidgetItem,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import charts
from app.services.analysis_service import (
    AnalysisError,
    AnalysisSession,
    PillowHandleProvider,
    handle_to_array,
    load_config_from_file,
)
from app.services.file_selection import collect_image_paths, load_input_files
from core.models import ANALYSIS_MODES, CELL_LABELS, CELL_TYPES, BatchResult, ImageAnalysisResult, InputFile, PatchRecord
from core.patches import patch_detail, patch_index_from_number, patch_layout
from core.prognosis import RATIO_LABELS, RatioInterpretation, prognosis_from_counts


DARK_QSS = """
QMainWindow { background-color: #1e1e1e; color: #f0f0f0; }
QWidget { font-family: "Segoe UI", "Microsoft YaHei", sans-serif; font-size: 13px; color: #e0e0e0; }
QGroupBox { border: 1px solid #333; border-radius: 6px; margin-top: 10px; padding: 8px; }
QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; color: #aaaaaa; }
QComboBox { background: #2b2b2b; border: 1px solid #3d3d3d; border-radius: 4px; padding: 6px; color: #f5f5f5; }
QPushButton { background-color: #007acc; color: #ffffff; border: none; border-radius: 4px; padding: 8px 12px; font-weight: 600; }
QPushButton:hover { background-color: #0b84d6; }
QPushButton:disabled { background-color: #3d3d3d; color: #777; }
QPushButton#Secondary { background: #2f2f2f; border: 1px solid #444; }
QTableWidget { background: #222; border: 1px solid #333; gridline-color: #333; alternate-background-color: #262626; }
QHeaderView::section { background: #2c2c2c; padding: 4px; border: 1px solid #3a3a3a; }
QTabWidget::pane { border: 1px solid #333; }
QTabBar::tab { background: #2c2c2c; padding: 6px 12px; }
QTabBar::tab:selected { background: #007acc; }
QPlainTextEdit { background: #151515; border: 1px solid #333; color: #9ef79e; font-family: Consolas, monospace; }
QLabel#Title { font-size: 16px; font-weight: 600; color: #ffffff; }
QLabel#MetricValue { font-size: 22px; font-weight: 700; color: #4cd137; }
QLabel#MetricLabel { color: #bbbbbb; }
QFrame#line { background: #333; max-height: 1px; min-height: 1px; }
"""

PROGNOSIS_COLORS = {"Good": "#4cd137", "Moderate": "#fbc531", "Less": "#ff6b6b"}


class ImageCanvas(QWidget):
    """Centered image preview scaled to the widget."""

    def __init__(self) -> None:
        super().__init__()
        self.setAutoFillBackground(True)
        self.setStyleSheet("background-color: #111;")
        self._raw_pixmap: Optional[QPixmap] = None
        self._label = QLabel("Upload tissue images to begin")
        self._label.setAlignment(Qt.AlignCenter)
        self._label.setStyleSheet("color: #555; font-size: 14px;")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._update_scaled_pixmap()

    def set_image(self, image: Optional[np.ndarray]) -> None:
        if image is None:
            self.clear()
            return
        self._raw_pixmap = QPixmap.fromImage(self._to_qimage(image))
        self._update_scaled_pixmap()

    def clear(self) -> None:
        self._raw_pixmap = None
        self._label.setPixmap(QPixmap())
        self._label.setText("Upload tissue images to begin")

    def _to_qimage(self, image: np.ndarray) -> QImage:
        """Normalize numpy image to QImage (grayscale or RGB)."""

        if image.ndim == 2:
            arr_c = np.ascontiguousarray(image.astype(np.uint8))
            h, w = arr_c.shape
            # keep buffer alive
            self._buffer = arr_c
            return QImage(self._buffer.data, w, h, w, QImage.Format_Grayscale8)
        arr = image[..., :3]
        if arr.dtype != np.uint8:
            arr_f = arr.astype(np.float32)
            arr = (255 * (arr_f - arr_f.min()) / max((arr_f.max() - arr_f.min()), 1e-6)).astype(np.uint8)
        arr_c = np.ascontiguousarray(arr)
        h, w, ch = arr_c.shape
        self._buffer = arr_c
        return QImage(self._buffer.data, w, h, ch * w, QImage.Format_RGB888)

    def _update_scaled_pixmap(self) -> None:
        if not self._raw_pixmap:
            return
        scaled = self._raw_pixmap.scaled(self.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        self._label.setPixmap(scaled)


class ControlPanel(QWidget):
    """Left-side controls: upload, mode, run/reset, log."""

    open_images_clicked = Signal()
    open_folder_clicked = Signal()
    load_config_clicked = Signal()
    run_clicked = Signal(str)
    reset_clicked = Signal()

    def __init__(self, default_mode: str) -> None:
        super().__init__()
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        title = QLabel("Ovarian Cancer Tissue Analysis")
        title.setObjectName("Title")
        layout.addWidget(title)

        self.selection_info = QLabel("No images selected")
        self.selection_info.setStyleSheet("color:#aaa;")
        self.selection_info.setWordWrap(True)
        layout.addWidget(self.selection_info)

        mode_box = QGroupBox("Analysis method")
        mode_layout = QVBoxLayout()
        self.mode_combo = QComboBox()
        self.mode_combo.addItems(list(ANALYSIS_MODES))
        self.mode_combo.setCurrentText(default_mode)
        mode_layout.addWidget(self.mode_combo)
        mode_box.setLayout(mode_layout)

        btn_row = QHBoxLayout()
        self.btn_images = QPushButton("Images…")
        self.btn_images.setObjectName("Secondary")
        self.btn_folder = QPushButton("Folder…")
        self.btn_folder.setObjectName("Secondary")
        self.btn_config = QPushButton("Config…")
        self.btn_config.setObjectName("Secondary")
        btn_row.addWidget(self.btn_images)
        btn_row.addWidget(self.btn_folder)
        btn_row.addWidget(self.btn_config)

        self.btn_run = QPushButton("Analyze")
        self.btn_run.setEnabled(False)
        self.btn_reset = QPushButton("Reset")
        self.btn_reset.setObjectName("Secondary")
        self.btn_reset.setEnabled(False)

        layout.addWidget(mode_box)
        layout.addLayout(btn_row)
        layout.addWidget(self.btn_run)
        layout.addWidget(self.btn_reset)
        self.log_widget = QPlainTextEdit()
        self.log_widget.setReadOnly(True)
        self.log_widget.setMaximumHeight(200)
        layout.addWidget(self.log_widget)
        layout.addStretch()

        self.btn_images.clicked.connect(self.open_images_clicked)
        self.btn_folder.clicked.connect(self.open_folder_clicked)
        self.btn_config.clicked.connect(self.load_config_clicked)
        self.btn_run.clicked.connect(lambda: self.run_clicked.emit(self.mode_combo.currentText()))
        self.btn_reset.clicked.connect(self.reset_clicked)

    def set_selection_info(self, text: str) -> None:
        self.selection_info.setText(text)

    def set_busy(self, busy: bool, has_files: bool, has_result: bool) -> None:
        self.btn_run.setEnabled(not busy and has_files)
        self.btn_reset.setEnabled(not busy and has_result)
        for btn in (self.btn_images, self.btn_folder, self.btn_config):
            btn.setEnabled(not busy)
        self.mode_combo.setEnabled(not busy)
        self.btn_run.setText("Analyzing…" if busy else "Analyze")

    def append_log(self, text: str) -> None:
        self.log_widget.appendPlainText(text)
        self.log_widget.verticalScrollBar().setValue(self.log_widget.verticalScrollBar().maximum())


class StatsPanel(QWidget):
    """Survival, prognosis and averaged evaluation metrics."""

    def __init__(self) -> None:
        super().__init__()
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self.lbl_survival = self._metric("Survival rate", "--")
        self.lbl_prognosis = self._metric("Prognosis", "--")
        self.lbl_precision = self._metric("Precision", "--")
        self.lbl_recall = self._metric("Recall", "--")
        self.lbl_f1 = self._metric("F1 score", "--")
        self.lbl_r2 = self._metric("R²", "--")
        self.lbl_image = QLabel("Image: --")
        self.lbl_image.setStyleSheet("color:#888;")

        for w in [
            self.lbl_image,
            self.lbl_survival,
            self.lbl_prognosis,
            self.lbl_precision,
            self.lbl_recall,
            self.lbl_f1,
            self.lbl_r2,
        ]:
            layout.addWidget(w)

    def _metric(self, label: str, value: str) -> QWidget:
        box = QWidget()
        h = QHBoxLayout(box)
        h.setContentsMargins(0, 0, 0, 0)
        lbl = QLabel(label)
        lbl.setObjectName("MetricLabel")
        val = QLabel(value)
        val.setObjectName("MetricValue")
        h.addWidget(lbl)
        h.addStretch()
        h.addWidget(val)
        box._value_label = val  # type: ignore[attr-defined]
        return box

    def update_from_result(self, result: BatchResult) -> None:
        image = result.current_image
        tier = prognosis_from_counts(image.counts)
        metrics = result.overall_metrics
        self.lbl_image.setText(f"Image {result.current_image_index + 1}/{result.image_count}: {image.file_name}")
        self.lbl_survival._value_label.setText(f"{image.survival_rate:.1f}%")  # type: ignore[attr-defined]
        prognosis = self.lbl_prognosis._value_label  # type: ignore[attr-defined]
        prognosis.setText(f"{tier.label} ({tier.percentage})")
        prognosis.setStyleSheet(f"color: {PROGNOSIS_COLORS[tier.label]};")
        self.lbl_precision._value_label.setText(f"{metrics.final_precision:.3f}")  # type: ignore[attr-defined]
        self.lbl_recall._value_label.setText(f"{metrics.final_recall:.3f}")  # type: ignore[attr-defined]
        self.lbl_f1._value_label.setText(f"{metrics.final_f1_score:.3f}")  # type: ignore[attr-defined]
        self.lbl_r2._value_label.setText(f"{metrics.final_r_squared:.3f}")  # type: ignore[attr-defined]

    def clear(self) -> None:
        self.lbl_image.setText("Image: --")
        for box in [self.lbl_survival, self.lbl_prognosis, self.lbl_precision, self.lbl_recall, self.lbl_f1, self.lbl_r2]:
            box._value_label.setText("--")  # type: ignore[attr-defined]


class CountsTable(QTableWidget):
    """Per-cell-type counts and percentages of the current image."""

    def __init__(self) -> None:
        super().__init__(0, 3)
        self.setHorizontalHeaderLabels(["Cell type", "Count", "Percentage"])
        self.setAlternatingRowColors(True)
        self.verticalHeader().setVisible(False)
        self.horizontalHeader().setStretchLastSection(True)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)

    def update_rows(self, image: ImageAnalysisResult) -> None:
        self.setRowCount(len(CELL_TYPES) + 1)
        for i, name in enumerate(CELL_TYPES):
            self.setItem(i, 0, QTableWidgetItem(CELL_LABELS[name]))
            self.setItem(i, 1, QTableWidgetItem(f"{getattr(image.counts, name):,}"))
            self.setItem(i, 2, QTableWidgetItem(f"{getattr(image.percentages, name):.2f}%"))
        self.setItem(len(CELL_TYPES), 0, QTableWidgetItem("Total"))
        self.setItem(len(CELL_TYPES), 1, QTableWidgetItem(f"{image.counts.total:,}"))
        self.setItem(len(CELL_TYPES), 2, QTableWidgetItem("100%"))


class RatioTable(QTableWidget):
    """Clinical ratios with their interpretation."""

    def __init__(self) -> None:
        super().__init__(0, 3)
        self.setHorizontalHeaderLabels(["Ratio", "Value", "Result"])
        self.setAlternatingRowColors(True)
        self.verticalHeader().setVisible(False)
        self.horizontalHeader().setStretchLastSection(True)

    def update_rows(self, rows: List[Tuple[str, float, RatioInterpretation]]) -> None:
        self.setRowCount(len(rows))
        for i, (kind, value, analysis) in enumerate(rows):
            self.setItem(i, 0, QTableWidgetItem(RATIO_LABELS[kind]))
            self.setItem(i, 1, QTableWidgetItem(f"{value:.2f}"))
            status = QTableWidgetItem(analysis.result)
            status.setToolTip(analysis.interpretation)
            status.setForeground(QColor("#4cd137") if analysis.is_positive else QColor("#ff6b6b"))
            self.setItem(i, 2, status)


class ChartTabs(QTabWidget):
    """Matplotlib figures embedded as tabs."""

    def __init__(self) -> None:
        super().__init__()
        self._canvases: dict[str, FigureCanvasQTAgg] = {}
        for key, title in [
            ("composition", "Composition"),
            ("counts", "Counts"),
            ("patches", "Patch history"),
            ("training", "Training metrics"),
            ("confusion", "Confusion matrix"),
        ]:
            canvas = FigureCanvasQTAgg(Figure(tight_layout=True))
            self._canvases[key] = canvas
            self.addTab(canvas, title)

    def update_from_result(self, result: BatchResult) -> None:
        image = result.current_image
        charts.composition_pie(image, self._canvases["composition"].figure)
        charts.counts_bar(image, self._canvases["counts"].figure)
        charts.patch_history_lines(result, self._canvases["patches"].figure)
        charts.metrics_history_lines(result.overall_metrics, self._canvases["training"].figure)
        charts.confusion_matrix_heatmap(result.overall_metrics, self._canvases["confusion"].figure)
        for canvas in self._canvases.values():
            canvas.draw_idle()

    def clear(self) -> None:
        for canvas in self._canvases.values():
            canvas.figure.clear()
            canvas.draw_idle()


class PatchGridPanel(QWidget):
    """Whole-slide view: one tile per input image, highlight by patch number, hover for percentages."""

    TILE_SIZE = 80

    def __init__(self) -> None:
        super().__init__()
        self._tiles: List[QLabel] = []
        self._patches: List[PatchRecord] = []
        self._highlighted: Optional[int] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)

        row = QHBoxLayout()
        row.addWidget(QLabel("Patch number:"))
        self.number_edit = QLineEdit()
        self.number_edit.setMaximumWidth(80)
        self.btn_highlight = QPushButton("Highlight")
        self.total_label = QLabel("Total patches: 0")
        self.total_label.setStyleSheet("color:#aaa;")
        row.addWidget(self.number_edit)
        row.addWidget(self.btn_highlight)
        row.addWidget(self.total_label)
        row.addStretch()
        layout.addLayout(row)

        body = QHBoxLayout()
        self._grid_host = QWidget()
        self._grid = QGridLayout(self._grid_host)
        self._grid.setSpacing(1)
        self._grid.setContentsMargins(0, 0, 0, 0)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self._grid_host)
        body.addWidget(scroll, 3)

        detail = QWidget()
        detail_layout = QVBoxLayout(detail)
        detail_layout.setContentsMargins(0, 0, 0, 0)
        self.detail_label = QLabel("No patch highlighted")
        self.detail_label.setWordWrap(True)
        self.detail_ratios = RatioTable()
        detail_layout.addWidget(self.detail_label)
        detail_layout.addWidget(self.detail_ratios)
        body.addWidget(detail, 2)
        layout.addLayout(body)

        self.btn_highlight.clicked.connect(self._highlight_from_text)
        self.number_edit.returnPressed.connect(self._highlight_from_text)

    def set_patches(self, patches: List[PatchRecord]) -> None:
        self.clear()
        self._patches = list(patches)
        self.total_label.setText(f"Total patches: {len(self._patches)} (1 patch per input image)")
        self.number_edit.setPlaceholderText(f"1-{len(self._patches)}")
        for row, col, patch in patch_layout(self._patches):
            tile = QLabel()
            tile.setFixedSize(self.TILE_SIZE, self.TILE_SIZE)
            tile.setAlignment(Qt.AlignCenter)
            if patch.image_handle is not None:
                tile.setPixmap(_thumbnail(handle_to_array(patch.image_handle), self.TILE_SIZE))
            detail = patch_detail(patch)
            tile.setToolTip(f"{detail.tooltip}\n{patch.file_name or 'Unknown'}")
            self._grid.addWidget(tile, row, col)
            self._tiles.append(tile)
        self._paint_tiles()

    def clear(self) -> None:
        for tile in self._tiles:
            self._grid.removeWidget(tile)
            tile.deleteLater()
        self._tiles = []
        self._patches = []
        self._highlighted = None
        self.total_label.setText("Total patches: 0")
        self.detail_label.setText("No patch highlighted")
        self.detail_ratios.setRowCount(0)

    def _highlight_from_text(self) -> None:
        self._highlighted = patch_index_from_number(self.number_edit.text(), len(self._patches))
        self._paint_tiles()
        if self._highlighted is None:
            self.detail_label.setText("No patch highlighted")
            self.detail_ratios.setRowCount(0)
            return
        patch = self._patches[self._highlighted]
        detail = patch_detail(patch)
        values = "  ".join(f"{label} {value}" for label, value in detail.percentages)
        self.detail_label.setText(f"Patch {detail.patch_id} ({patch.file_name or 'Unknown'}): {values}")
        self.detail_ratios.update_rows(detail.ratios)

    def _paint_tiles(self) -> None:
        for i, tile in enumerate(self._tiles):
            if i == self._highlighted:
                tile.setStyleSheet("border: 3px solid #ff4d4f;")
            else:
                tile.setStyleSheet("border: 1px solid #555;")


def _thumbnail(image: np.ndarray, size: int) -> QPixmap:
    arr = np.ascontiguousarray(image[..., :3] if image.ndim == 3 else image, dtype=np.uint8)
    h, w = arr.shape[:2]
    if arr.ndim == 2:
        qimage = QImage(arr.data, w, h, w, QImage.Format_Grayscale8)
    else:
        qimage = QImage(arr.data, w, h, 3 * w, QImage.Format_RGB888)
    # copy() detaches from the numpy buffer
    return QPixmap.fromImage(qimage.copy()).scaled(size, size, Qt.KeepAspectRatioByExpanding, Qt.SmoothTransformation)


class AnalysisWorker(QThread):
    """Run the async session off the UI thread."""

    finished_with_result = Signal(object)
    failed = Signal(str)
    progress = Signal(str)

    def __init__(self, session: AnalysisSession, files: List[InputFile], mode: str) -> None:
        super().__init__()
        self._session = session
        self._files = files
        self._mode = mode

    def run(self) -> None:  # type: ignore[override]
        try:
            result = asyncio.run(self._session.run_analysis(self._files, self._mode, progress_cb=self.progress.emit))
            self.finished_with_result.emit(result)
        except AnalysisError as exc:  # pragma: no cover - UI path
            self.failed.emit(str(exc))


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Ovarian Cancer Tissue Analysis")
        self.resize(1400, 860)

        config_path = PROJECT_ROOT / "config" / "default_config.json"
        self.session = AnalysisSession(PillowHandleProvider(), load_config_from_file(config_path))
        self.selected_files: List[InputFile] = []
        self.worker: Optional[AnalysisWorker] = None

        self._build_ui()
        self._connect_signals()

    def _build_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(0, 0, 0, 0)

        self.controls = ControlPanel(self.session.mode)
        self.controls.setMinimumWidth(220)
        self.image_view = ImageCanvas()
        self.image_view.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)

        nav_row = QHBoxLayout()
        self.btn_prev = QPushButton("◀ Previous")
        self.btn_prev.setObjectName("Secondary")
        self.btn_next = QPushButton("Next ▶")
        self.btn_next.setObjectName("Secondary")
        nav_row.addWidget(self.btn_prev)
        nav_row.addStretch()
        nav_row.addWidget(self.btn_next)

        viewer = QWidget()
        viewer_layout = QVBoxLayout(viewer)
        viewer_layout.setContentsMargins(0, 0, 0, 0)
        viewer_layout.addWidget(self.image_view)
        viewer_layout.addLayout(nav_row)

        self.stats = StatsPanel()
        self.counts_table = CountsTable()
        self.ratio_table = RatioTable()
        self.chart_tabs = ChartTabs()
        self.patch_panel = PatchGridPanel()
        self.chart_tabs.addTab(self.patch_panel, "Patches")
        line = QFrame()
        line.setObjectName("line")

        tables = QWidget()
        tables_layout = QVBoxLayout(tables)
        tables_layout.setContentsMargins(0, 0, 0, 0)
        tables_layout.setSpacing(6)
        tables_layout.addWidget(self.stats)
        tables_layout.addWidget(line)
        tables_layout.addWidget(self.counts_table)
        tables_layout.addWidget(self.ratio_table)

        top = QSplitter(Qt.Horizontal)
        top.addWidget(viewer)
        top.addWidget(tables)
        top.setStretchFactor(0, 3)
        top.setStretchFactor(1, 2)

        splitter = QSplitter(Qt.Vertical)
        splitter.addWidget(top)
        splitter.addWidget(self.chart_tabs)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        splitter.setHandleWidth(6)

        right_panel = QWidget()
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(10, 10, 10, 10)
        right_layout.addWidget(splitter)

        main_splitter = QSplitter(Qt.Horizontal)
        main_splitter.addWidget(self.controls)
        main_splitter.addWidget(right_panel)
        main_splitter.setHandleWidth(6)
        main_splitter.setStretchFactor(0, 0)
        main_splitter.setStretchFactor(1, 1)

        main_layout.addWidget(main_splitter)
        self._refresh_buttons()

    def _connect_signals(self) -> None:
        self.controls.open_images_clicked.connect(self._open_images_dialog)
        self.controls.open_folder_clicked.connect(self._open_folder_dialog)
        self.controls.load_config_clicked.connect(self._load_config_dialog)
        self.controls.run_clicked.connect(self._run_analysis)
        self.controls.reset_clicked.connect(self._reset)
        self.btn_prev.clicked.connect(lambda: self._step_image(-1))
        self.btn_next.clicked.connect(lambda: self._step_image(1))

    def _open_images_dialog(self) -> None:
        filenames, _ = QFileDialog.getOpenFileNames(
            self,
            "Select tissue images",
            str(PROJECT_ROOT),
            "Images (*.png *.jpg *.jpeg *.tif *.tiff *.bmp *.gif *.webp);;All files (*)",
        )
        if filenames:
            self._load_paths([Path(f) for f in filenames])

    def _open_folder_dialog(self) -> None:
        folder = QFileDialog.getExistingDirectory(self, "Select image folder", str(PROJECT_ROOT))
        if not folder:
            return
        try:
            paths = collect_image_paths(Path(folder), self.session.config.upload)
        except FileNotFoundError as exc:  # pragma: no cover - UI only
            QMessageBox.warning(self, "Read failed", str(exc))
            return
        self._load_paths(paths)

    def _load_paths(self, paths: List[Path]) -> None:
        try:
            selection = load_input_files(paths, self.session.config.upload)
        except (FileNotFoundError, ValueError) as exc:  # pragma: no cover - UI only
            QMessageBox.warning(self, "Invalid selection", str(exc))
            return
        for warning in selection.warnings:
            self._log(warning)
        self.selected_files = selection.files
        names = ", ".join(f.name for f in selection.previews(self.session.config.ui.preview_limit))
        more = len(selection.files) - self.session.config.ui.preview_limit
        suffix = f" (+{more} more)" if more > 0 else ""
        self.controls.set_selection_info(f"{len(selection.files)} images: {names}{suffix}")
        self._log(f"Selected {len(selection.files)} images")
        self._refresh_buttons()

    def _load_config_dialog(self) -> None:
        filename, _ = QFileDialog.getOpenFileName(
            self,
            "Select configuration JSON",
            str(PROJECT_ROOT / "config"),
            "JSON (*.json)",
        )
        if not filename:
            return
        try:
            cfg = load_config_from_file(Path(filename))
        except Exception as exc:  # pragma: no cover - UI only
            QMessageBox.critical(self, "Configuration error", str(exc))
            return
        self.session.with_config(cfg)
        self._log(f"Loaded configuration: {filename}")

    def _run_analysis(self, mode: str) -> None:
        if not self.selected_files:
            QMessageBox.information(self, "No images", "Please select images first.")
            return
        if self.session.is_analyzing:
            return
        self._log(f"Starting analysis of {len(self.selected_files)} images ({mode})...")
        self.controls.set_busy(True, True, False)
        self.btn_prev.setEnabled(False)
        self.btn_next.setEnabled(False)
        self.worker = AnalysisWorker(self.session, list(self.selected_files), mode)
        self.worker.finished_with_result.connect(self._on_result)
        self.worker.failed.connect(self._on_error)
        self.worker.progress.connect(self._log)
        self.worker.finished.connect(self._refresh_buttons)
        self.worker.finished.connect(self.worker.deleteLater)
        self.worker.start()

    def _on_result(self, result: BatchResult) -> None:
        self._log(f"Analysis complete: {result.image_count} images, good-survival patches {sorted(result.good_survival_indices)}")
        self.patch_panel.set_patches(result.patch_history)
        self._show_result(result)

    def _on_error(self, msg: str) -> None:
        self._log(f"Analysis failed: {msg}")
        QMessageBox.critical(self, "Analysis error", msg)

    def _step_image(self, delta: int) -> None:
        result = self.session.result
        if result is None or self.session.is_analyzing:
            return
        updated = self.session.select_image(result.current_image_index + delta)
        if updated is not None:
            self._show_result(updated)

    def _show_result(self, result: BatchResult) -> None:
        image = result.current_image
        self.image_view.set_image(handle_to_array(image.image_handle))
        self.stats.update_from_result(result)
        self.counts_table.update_rows(image)
        self.ratio_table.update_rows(patch_detail(result.patch_history[result.current_image_index]).ratios)
        self.chart_tabs.update_from_result(result)
        self._refresh_buttons()

    def _reset(self) -> None:
        self.session.reset()
        self.selected_files = []
        self.image_view.clear()
        self.stats.clear()
        self.counts_table.setRowCount(0)
        self.ratio_table.setRowCount(0)
        self.chart_tabs.clear()
        self.patch_panel.clear()
        self.controls.set_selection_info("No images selected")
        self._log("Session reset")
        self._refresh_buttons()

    def _refresh_buttons(self) -> None:
        result = self.session.result
        busy = self.session.is_analyzing
        self.controls.set_busy(busy, bool(self.selected_files), result is not None)
        self.btn_prev.setEnabled(not busy and result is not None and result.current_image_index > 0)
        self.btn_next.setEnabled(not busy and result is not None and result.current_image_index < result.image_count - 1)

    def _log(self, text: str) -> None:
        from time import strftime

        self.controls.append_log(f"[{strftime('%H:%M:%S')}] {text}")


def main() -> None:
    app = QApplication(sys.argv)
    app.setStyleSheet(DARK_QSS)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
