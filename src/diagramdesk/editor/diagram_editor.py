"""Qt editor components loaded lazily, one per provider type.

Nothing imports this module directly: :class:`diagramdesk.tabs.CapabilityLoader`
pulls classes out of it on first display of a tab, so PySide6 is only needed
once a window actually shows a diagram.
"""

from __future__ import annotations

from typing import Callable, Sequence

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QPlainTextEdit, QPushButton, QVBoxLayout, QWidget

from ..tabs.descriptor import MenuEntry
from ..tabs.sessions import Tab

__all__ = [
    "BpmnEditor",
    "CloudBpmnEditor",
    "CmmnEditor",
    "DiagramEditor",
    "DmnEditor",
    "EmptyTab",
]


class DiagramEditor(QWidget):
    """XML source view bound to a tab; edits write through to the tab's file."""

    dialect: str = "xml"

    def __init__(self, tab: Tab, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._tab = tab
        self.setObjectName(f"{self.dialect}-editor")

        self._source = QPlainTextEdit(self)
        self._source.setPlainText(tab.contents or "")
        self._source.textChanged.connect(self._sync_contents)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._source)

    @property
    def tab(self) -> Tab:
        return self._tab

    def xml(self) -> str:
        return self._source.toPlainText()

    def set_xml(self, xml: str) -> None:
        self._source.setPlainText(xml)

    def _sync_contents(self) -> None:
        self._tab.contents = self._source.toPlainText()


class BpmnEditor(DiagramEditor):
    dialect = "bpmn"


class CloudBpmnEditor(DiagramEditor):
    dialect = "cloud-bpmn"


class DmnEditor(DiagramEditor):
    dialect = "dmn"


class CmmnEditor(DiagramEditor):
    dialect = "cmmn"


class EmptyTab(QWidget):
    """Placeholder shown when no diagram is open, offering new-file buttons."""

    def __init__(
        self,
        buttons: Sequence[MenuEntry] = (),
        on_action: Callable[[str], None] | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setObjectName("empty-tab")
        layout = QVBoxLayout(self)
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(QLabel("Create a new file or open an existing diagram.", self))
        self._buttons: list[QPushButton] = []
        for entry in buttons:
            button = QPushButton(entry.label, self)
            if on_action is not None:
                button.clicked.connect(lambda _checked=False, action=entry.action: on_action(action))
            layout.addWidget(button)
            self._buttons.append(button)

    def button_labels(self) -> list[str]:
        return [button.text() for button in self._buttons]
