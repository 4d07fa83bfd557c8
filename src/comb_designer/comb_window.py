from typing import Optional

from PyQt5 import QtCore, QtGui, QtWidgets

from comb_designer.comb_session import CombContext, CombSession
from comb_designer.tooth_emitter import ToothLine, tooth_lines

BACKGROUND_COLOR = (20, 20, 25)
TOOTH_COLOR = (0, 255, 200)
TOOTH_HALF_HEIGHT = 60.0
TOOTH_PEN_WIDTH = 1.2
SOURCE_FILTER = "MIDI files (*.mid *.midi);;Notes JSON (*.json)"


def visible_tooth_lines(
    context: CombContext,
    left: float,
    right: float,
    center_y: float,
    half_height: float = TOOTH_HALF_HEIGHT,
) -> list[ToothLine]:
    """Tooth lines whose absolute x falls inside ``[left, right)`` of the canvas."""
    teeth = context.teeth(origin=left, until=right)
    return list(tooth_lines(teeth, y1=center_y - half_height, y2=center_y + half_height))


class CombCanvas(QtWidgets.QWidget):
    """Timeline strip painting the comb in absolute pixel coordinates."""

    def __init__(self, session: CombSession, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.session = session
        self.setMinimumHeight(200)

    def refresh(self, viewport_width: float) -> None:
        self.setMinimumWidth(int(self.session.timeline_width(viewport_width)))
        self.update()

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # noqa: N802
        painter = QtGui.QPainter(self)
        try:
            painter.fillRect(self.rect(), QtGui.QColor(*BACKGROUND_COLOR))
            if self.session.tracks is None:
                painter.setPen(QtGui.QColor(200, 200, 200))
                painter.drawText(
                    self.visibleRegion().boundingRect(),
                    QtCore.Qt.AlignCenter,
                    "Please load a MIDI file to generate patterns.",
                )
                return

            clip = event.rect()
            center_y = self.height() / 2.0
            painter.setPen(QtGui.QPen(QtGui.QColor(*TOOTH_COLOR), TOOTH_PEN_WIDTH))
            for line in visible_tooth_lines(
                self.session.snapshot(),
                left=float(clip.left()),
                right=float(clip.right() + 1),
                center_y=center_y,
            ):
                painter.drawLine(QtCore.QLineF(line.x1, line.y1, line.x2, line.y2))

            painter.setPen(QtGui.QPen(QtGui.QColor(QtCore.Qt.gray), 1.0))
            baseline = center_y + TOOTH_HALF_HEIGHT
            painter.drawLine(QtCore.QLineF(0.0, baseline, float(self.width()), baseline))
        finally:
            painter.end()


class CombDesignerWindow(QtWidgets.QWidget):
    def __init__(self, session: CombSession, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.session = session

        self.canvas = CombCanvas(session)
        self.scroll_area = QtWidgets.QScrollArea()
        self.scroll_area.setWidget(self.canvas)
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setVerticalScrollBarPolicy(QtCore.Qt.ScrollBarAlwaysOff)
        self.scroll_area.horizontalScrollBar().valueChanged.connect(self._on_scrolled)

        sidebar = QtWidgets.QVBoxLayout()
        heading = QtWidgets.QLabel("Musical Comb Designer")
        heading.setStyleSheet("font-weight: bold; font-size: 16px;")
        sidebar.addWidget(heading)

        load_button = QtWidgets.QPushButton("Load MIDI")
        load_button.clicked.connect(self._on_load_clicked)
        sidebar.addWidget(load_button)
        self.file_label = QtWidgets.QLabel()
        self.file_label.setWordWrap(True)
        sidebar.addWidget(self.file_label)

        sidebar.addWidget(QtWidgets.QLabel("Select Track:"))
        self.track_list = QtWidgets.QListWidget()
        self.track_list.setMaximumHeight(200)
        self.track_list.currentRowChanged.connect(self._on_track_selected)
        sidebar.addWidget(self.track_list)

        sidebar.addWidget(QtWidgets.QLabel("Physics Calibration"))
        calibration = session.calibration
        self.ref_note_slider = QtWidgets.QSlider(QtCore.Qt.Horizontal)
        self.ref_note_slider.setRange(0, 127)
        self.ref_note_slider.setValue(calibration.reference_pitch)
        self.ref_note_label = QtWidgets.QLabel()
        self.ref_note_slider.valueChanged.connect(self._on_calibration_changed)
        sidebar.addWidget(self.ref_note_label)
        sidebar.addWidget(self.ref_note_slider)

        self.ref_spacing_box = self._float_box(0.5, 50.0, calibration.reference_spacing, " px", 0.5)
        sidebar.addWidget(QtWidgets.QLabel("Ref Spacing"))
        sidebar.addWidget(self.ref_spacing_box)
        self.px_per_beat_box = self._float_box(10.0, 2000.0, calibration.px_per_beat, " px", 10.0)
        sidebar.addWidget(QtWidgets.QLabel("Pixels per Beat"))
        sidebar.addWidget(self.px_per_beat_box)

        sidebar.addWidget(QtWidgets.QLabel("Timeline View"))
        jump_button = QtWidgets.QPushButton("Jump to Start of Notes")
        jump_button.clicked.connect(self._on_jump_clicked)
        sidebar.addWidget(jump_button)
        self.scroll_box = QtWidgets.QDoubleSpinBox()
        self.scroll_box.setPrefix("Scroll X: ")
        self.scroll_box.setRange(0.0, 1e9)
        self.scroll_box.setSingleStep(5.0)
        self.scroll_box.valueChanged.connect(self._on_scroll_box_changed)
        sidebar.addWidget(self.scroll_box)

        export_button = QtWidgets.QPushButton("Export SVG")
        export_button.clicked.connect(self._on_export_clicked)
        sidebar.addWidget(export_button)
        self.status_label = QtWidgets.QLabel()
        sidebar.addWidget(self.status_label)
        sidebar.addStretch(1)

        sidebar_widget = QtWidgets.QWidget()
        sidebar_widget.setLayout(sidebar)
        sidebar_widget.setFixedWidth(260)

        layout = QtWidgets.QHBoxLayout(self)
        layout.addWidget(sidebar_widget)
        layout.addWidget(self.scroll_area, 1)

        self._syncing_scroll = False
        self.refresh()

    def _float_box(self, low: float, high: float, value: float, suffix: str, step: float) -> QtWidgets.QDoubleSpinBox:
        box = QtWidgets.QDoubleSpinBox()
        box.setRange(low, high)
        box.setSingleStep(step)
        box.setSuffix(suffix)
        box.setValue(value)
        box.valueChanged.connect(self._on_calibration_changed)
        return box

    def refresh(self) -> None:
        self.file_label.setText(f"File: {self.session.file_path}")
        self.ref_note_label.setText(f"Ref Note (MIDI): {self.session.calibration.reference_pitch}")
        self.status_label.setText(self.session.export_status)
        self.canvas.refresh(float(self.scroll_area.viewport().width()))

    def _reload_track_list(self) -> None:
        self.track_list.blockSignals(True)
        self.track_list.clear()
        self.track_list.addItems(self.session.track_labels())
        if self.session.tracks:
            self.track_list.setCurrentRow(self.session.selected_track)
        self.track_list.blockSignals(False)

    def load_source(self, path: str) -> bool:
        ok = self.session.load_source(path)
        if ok:
            self._reload_track_list()
            self._scroll_to(0.0)
        self.refresh()
        return ok

    def _scroll_to(self, offset: float) -> None:
        self.session.scroll_offset = offset
        self.scroll_area.horizontalScrollBar().setValue(int(offset))

    def _on_load_clicked(self) -> None:
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Load MIDI", "", SOURCE_FILTER)
        if path:
            self.load_source(path)

    def _on_track_selected(self, row: int) -> None:
        if self.session.select_track(row):
            self.refresh()

    def _on_calibration_changed(self, *_args: object) -> None:
        self.session.set_calibration(
            reference_pitch=self.ref_note_slider.value(),
            reference_spacing=self.ref_spacing_box.value(),
            px_per_beat=self.px_per_beat_box.value(),
        )
        self.refresh()

    def _on_jump_clicked(self) -> None:
        offset = self.session.jump_to_notes_start()
        if offset is not None:
            self._scroll_to(offset)

    def _on_scroll_box_changed(self, value: float) -> None:
        if not self._syncing_scroll:
            self._scroll_to(value)

    def _on_scrolled(self, value: int) -> None:
        self.session.scroll_offset = float(value)
        self._syncing_scroll = True
        self.scroll_box.setValue(float(value))
        self._syncing_scroll = False

    def _on_export_clicked(self) -> None:
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Export SVG", "comb_pattern.svg", "SVG (*.svg)")
        if path:
            self.session.export_svg(path)
            self.refresh()
