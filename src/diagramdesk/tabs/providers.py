"""Provider configuration table for every diagram dialect the editor ships."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..diagrams import classifier
from ..utils.flags import DISABLE_CMMN, DISABLE_DMN
from .descriptor import Encoding, ExportFormat, FeatureGate, MenuEntry, ProviderDescriptor

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .sessions import DiagramFile

__all__ = ["DEFAULT_PROVIDERS", "EXPORT_FORMATS", "default_providers"]

EXPORT_PNG = ExportFormat(name="PNG image", encoding=Encoding.BASE64, extensions=("png",))
EXPORT_JPEG = ExportFormat(name="JPEG image", encoding=Encoding.BASE64, extensions=("jpeg",))
EXPORT_SVG = ExportFormat(name="SVG image", encoding=Encoding.UTF8, extensions=("svg",))

EXPORT_FORMATS = {"png": EXPORT_PNG, "jpeg": EXPORT_JPEG, "svg": EXPORT_SVG}

_COMPONENTS = "diagramdesk.editor.diagram_editor"


def _dialect_detector(dialect: str):
    def detect(file: "DiagramFile") -> bool:
        return classifier.classify(file.contents) == dialect

    detect.__name__ = f"detect_{dialect}"
    return detect


def _detect_zeebe(file: "DiagramFile") -> bool:
    # TODO: prefer modeler:executionPlatform once every cloud diagram declares it
    if not file.contents:
        return False
    return classifier.has_namespace_usage(file.contents, classifier.NAMESPACE_ZEEBE)


EMPTY = ProviderDescriptor(
    type="empty",
    component=f"{_COMPONENTS}:EmptyTab",
)

# Listed ahead of ``bpmn`` so the extension index tries it first; the generic
# provider comes last and becomes the fallback for unmatched ``.bpmn`` files.
CLOUD_BPMN = ProviderDescriptor(
    type="cloud-bpmn",
    display_name=None,
    extensions=("bpmn",),
    open_extensions=("xml",),
    encoding=Encoding.UTF8,
    exports=EXPORT_FORMATS,
    detector=_detect_zeebe,
    template="cloud-diagram.bpmn",
    filename_pattern="diagram_{counter}.bpmn",
    component=f"{_COMPONENTS}:CloudBpmnEditor",
    new_file_menu=(MenuEntry(label="BPMN Diagram (Zeebe)", action="create-cloud-bpmn-diagram"),),
    new_file_button=MenuEntry(label="Create new BPMN Diagram (Zeebe)", action="create-cloud-bpmn-diagram"),
)

BPMN = ProviderDescriptor(
    type="bpmn",
    display_name="BPMN",
    extensions=("bpmn",),
    open_extensions=("xml",),
    encoding=Encoding.UTF8,
    exports=EXPORT_FORMATS,
    detector=_dialect_detector(classifier.BPMN),
    template="diagram.bpmn",
    filename_pattern="diagram_{counter}.bpmn",
    component=f"{_COMPONENTS}:BpmnEditor",
    help_menu=(
        MenuEntry(label="BPMN 2.0 Tutorial", action="https://camunda.org/bpmn/tutorial/"),
        MenuEntry(label="BPMN Modeling Reference", action="https://camunda.org/bpmn/reference/"),
    ),
    new_file_menu=(
        MenuEntry(
            label="BPMN Diagram (Camunda)",
            action="create-bpmn-diagram",
            accelerator="CommandOrControl+T",
        ),
    ),
    new_file_button=MenuEntry(label="Create new BPMN Diagram (Camunda)", action="create-bpmn-diagram"),
)

DMN = ProviderDescriptor(
    type="dmn",
    display_name="DMN",
    extensions=("dmn",),
    open_extensions=("xml",),
    encoding=Encoding.UTF8,
    exports=EXPORT_FORMATS,
    detector=_dialect_detector(classifier.DMN),
    template="diagram.dmn",
    filename_pattern="diagram_{counter}.dmn",
    component=f"{_COMPONENTS}:DmnEditor",
    help_menu=(MenuEntry(label="DMN 1.3 Tutorial", action="https://camunda.org/dmn/tutorial/"),),
    new_file_menu=(MenuEntry(label="DMN Diagram (Camunda)", action="create-dmn-diagram"),),
    new_file_button=MenuEntry(label="Create new DMN Diagram (Camunda)", action="create-dmn-diagram"),
    disabled_by=FeatureGate(DISABLE_DMN, default=False),
)

CMMN = ProviderDescriptor(
    type="cmmn",
    display_name="CMMN",
    extensions=("cmmn",),
    open_extensions=("xml",),
    encoding=Encoding.UTF8,
    exports=EXPORT_FORMATS,
    detector=_dialect_detector(classifier.CMMN),
    template="diagram.cmmn",
    filename_pattern="diagram_{counter}.cmmn",
    component=f"{_COMPONENTS}:CmmnEditor",
    help_menu=(
        MenuEntry(label="CMMN 1.1 Tutorial", action="https://docs.camunda.org/get-started/cmmn11/"),
        MenuEntry(
            label="CMMN Modeling Reference",
            action="https://docs.camunda.org/manual/latest/reference/cmmn11/",
        ),
    ),
    new_file_menu=(MenuEntry(label="CMMN Diagram", action="create-cmmn-diagram"),),
    new_file_button=MenuEntry(label="Create new CMMN Diagram", action="create-cmmn-diagram"),
    disabled_by=FeatureGate(DISABLE_CMMN, default=True),
)

DEFAULT_PROVIDERS: tuple[ProviderDescriptor, ...] = (EMPTY, CLOUD_BPMN, BPMN, DMN, CMMN)


def default_providers() -> tuple[ProviderDescriptor, ...]:
    """Return the built-in providers in declaration (= priority) order."""

    return DEFAULT_PROVIDERS
