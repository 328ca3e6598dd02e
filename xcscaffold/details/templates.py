import json
import plistlib
from typing import Any, Dict

from xcscaffold.config import LibraryLink, Platform


def main_cpp(app_name: str) -> str:
    return f"""#include <iostream>

int main(int argc, char** argv) {{
    std::cout << "Hello from {app_name}" << std::endl;
    return 0;
}}
"""


# Starter that includes the linked library so a first build exercises the link
def main_cpp_with_library(app_name: str, library: LibraryLink) -> str:
    return f"""// {app_name}, linked against {library.name}

#include <iostream>

#include <{library.name}/{library.name}.h>

int main(int argc, char** argv) {{
    std::cout << "Hello from {app_name} with {library.name}" << std::endl;
    return 0;
}}
"""


def info_plist(platform: Platform) -> bytes:
    plist: Dict[str, Any] = {
        "CFBundleDevelopmentRegion": "$(DEVELOPMENT_LANGUAGE)",
        "CFBundleExecutable": "$(EXECUTABLE_NAME)",
        "CFBundleIdentifier": "$(PRODUCT_BUNDLE_IDENTIFIER)",
        "CFBundleInfoDictionaryVersion": "6.0",
        "CFBundleName": "$(PRODUCT_NAME)",
        "CFBundlePackageType": "APPL",
        "CFBundleShortVersionString": "$(MARKETING_VERSION)",
        "CFBundleVersion": "$(CURRENT_PROJECT_VERSION)",
    }
    if platform is Platform.IOS:
        plist["LSRequiresIPhoneOS"] = True
    else:
        plist["LSMinimumSystemVersion"] = "$(MACOSX_DEPLOYMENT_TARGET)"
        plist["NSPrincipalClass"] = "NSApplication"
    return plistlib.dumps(plist)


def entitlements_plist(platform: Platform) -> bytes:
    entitlements: Dict[str, Any] = {}
    if platform is Platform.MACOS:
        entitlements["com.apple.security.app-sandbox"] = True
        entitlements["com.apple.security.files.user-selected.read-only"] = True
    return plistlib.dumps(entitlements)


def _asset_json(contents: Dict[str, Any]) -> bytes:
    contents["info"] = {"author": "xcode", "version": 1}
    return (json.dumps(contents, indent=2) + "\n").encode("utf-8")


def asset_catalog_contents() -> bytes:
    return _asset_json({})


def app_icon_contents(platform: Platform) -> bytes:
    """
    Contents.json of an empty AppIcon set.

    Slots are declared without image files; Xcode accepts the catalog and
    reports the missing artwork as a warning until icons are dropped in.
    """
    if platform is Platform.IOS:
        images = [{"idiom": "universal", "platform": "ios", "size": "1024x1024"}]
    else:
        images = [
            {"idiom": "mac", "scale": scale, "size": f"{size}x{size}"}
            for size in (16, 32, 128, 256, 512)
            for scale in ("1x", "2x")
        ]
    return _asset_json({"images": images})
