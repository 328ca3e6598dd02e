import re

DEFAULT_BUNDLE_PREFIX = "com.example"

_BUNDLE_ID_PATTERN = re.compile(r"[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+")


# "My App!" -> com.example.myapp
def generate_bundle_id(app_name: str, prefix: str = DEFAULT_BUNDLE_PREFIX) -> str:
    sanitized = re.sub(r"[^a-z0-9]", "", app_name.lower())
    if not sanitized:
        raise ValueError(f"cannot derive a bundle identifier from {app_name!r}")
    return f"{prefix}.{sanitized}"


def is_valid_bundle_id(bundle_id: str) -> bool:
    return _BUNDLE_ID_PATTERN.fullmatch(bundle_id) is not None
