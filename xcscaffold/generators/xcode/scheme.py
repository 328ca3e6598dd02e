from pathlib import Path
from typing import Dict
from xml.dom.minidom import Document, Element, Node

from xcscaffold.generators.xcode.graph import ObjectGraph
from xcscaffold.generators.xcode.model import PBXFileReference, PBXNativeTarget
from xcscaffold.generators.xcode.utils import write_atomic

LAST_UPGRADE_VERSION = "1500"
SCHEME_VERSION = "1.7"
LLDB_DEBUGGER = "Xcode.DebuggerFoundation.Debugger.LLDB"
LLDB_LAUNCHER = "Xcode.DebuggerFoundation.Launcher.LLDB"


def owner_doc(xnode: Node) -> Document:
    if isinstance(xnode, Document):
        return xnode
    else:
        assert xnode.ownerDocument
        return xnode.ownerDocument


def append_element(xparent: Node, name: str, attributes: Dict[str, str] = {}) -> Element:
    xelement = owner_doc(xparent).createElement(name)
    for key, value in attributes.items():
        xelement.setAttribute(key, value)
    xparent.appendChild(xelement)
    return xelement


def write_xml_to_path(xdoc: Document, path: Path) -> bool:
    return write_atomic(path, xdoc.toprettyxml(indent="   ", newl="\n", encoding="UTF-8"))


def scheme_path(xcodeproj: Path, name: str) -> Path:
    return xcodeproj.joinpath("xcshareddata", "xcschemes", f"{name}.xcscheme")


class SchemeWriter:
    def __init__(self, graph: ObjectGraph, target: PBXNativeTarget, container: str):
        self.graph = graph
        self.target = target
        self.container = container

    @property
    def buildable_name(self) -> str:
        product = self.graph.get(self.target.productReference.id, PBXFileReference)
        return product.path

    def _append_buildable_reference(self, xparent: Node) -> Element:
        return append_element(
            xparent,
            "BuildableReference",
            {
                "BuildableIdentifier": "primary",
                "BlueprintIdentifier": self.target.id,
                "BuildableName": self.buildable_name,
                "BlueprintName": self.target.name,
                "ReferencedContainer": f"container:{self.container}",
            },
        )

    def _append_runnable(self, xparent: Node) -> None:
        xrunnable = append_element(
            xparent, "BuildableProductRunnable", {"runnableDebuggingMode": "0"}
        )
        self._append_buildable_reference(xrunnable)

    def _append_build_action(self, xparent: Node) -> None:
        xaction = append_element(
            xparent,
            "BuildAction",
            {"parallelizeBuildables": "YES", "buildImplicitDependencies": "YES"},
        )
        xentries = append_element(xaction, "BuildActionEntries")
        xentry = append_element(
            xentries,
            "BuildActionEntry",
            {
                "buildForTesting": "YES",
                "buildForRunning": "YES",
                "buildForProfiling": "YES",
                "buildForArchiving": "YES",
                "buildForAnalyzing": "YES",
            },
        )
        self._append_buildable_reference(xentry)

    def document(self) -> Document:
        xdoc = Document()
        xscheme = append_element(
            xdoc,
            "Scheme",
            {"LastUpgradeVersion": LAST_UPGRADE_VERSION, "version": SCHEME_VERSION},
        )
        self._append_build_action(xscheme)
        append_element(
            xscheme,
            "TestAction",
            {
                "buildConfiguration": "Debug",
                "selectedDebuggerIdentifier": LLDB_DEBUGGER,
                "selectedLauncherIdentifier": LLDB_LAUNCHER,
                "shouldUseLaunchSchemeArgsEnv": "YES",
                "shouldAutocreateTestPlan": "YES",
            },
        )
        xlaunch = append_element(
            xscheme,
            "LaunchAction",
            {
                "buildConfiguration": "Debug",
                "selectedDebuggerIdentifier": LLDB_DEBUGGER,
                "selectedLauncherIdentifier": LLDB_LAUNCHER,
                "launchStyle": "0",
                "useCustomWorkingDirectory": "NO",
                "ignoresPersistentStateOnLaunch": "NO",
                "debugDocumentVersioning": "YES",
                "debugServiceExtension": "internal",
                "allowLocationSimulation": "YES",
            },
        )
        self._append_runnable(xlaunch)
        xprofile = append_element(
            xscheme,
            "ProfileAction",
            {
                "buildConfiguration": "Release",
                "shouldUseLaunchSchemeArgsEnv": "YES",
                "savedToolIdentifier": "",
                "useCustomWorkingDirectory": "NO",
                "debugDocumentVersioning": "YES",
            },
        )
        self._append_runnable(xprofile)
        append_element(xscheme, "AnalyzeAction", {"buildConfiguration": "Debug"})
        append_element(
            xscheme,
            "ArchiveAction",
            {"buildConfiguration": "Release", "revealArchiveInOrganizer": "YES"},
        )
        return xdoc

    def write(self, xcodeproj: Path) -> bool:
        return write_xml_to_path(self.document(), scheme_path(xcodeproj, self.target.name))
